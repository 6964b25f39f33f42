"""
Transactional email provider adapters.

Every provider exposes the same contract:

    send(DeliveryRequest) -> DeliveryOutcome

send() never raises. Inside an adapter a failure is raised as DeliveryError
(or comes out of httpx / smtplib) and is converted to a failed
DeliveryOutcome at the send() boundary. Adapters make exactly one network
call per send and never retry; fallback is the orchestrator's job.

Supported providers:
  - resend       Resend HTTP API         (RESEND_API_KEY)
  - smtp         authenticated SMTP relay (SMTP_HOST + SMTP_USER + SMTP_PASS)
  - mailchannels MailChannels HTTP API   (MAILCHANNELS_API_KEY)
  - null         logs instead of sending (selected when nothing is configured)

Selection is driven purely by which credentials are present. Candidates are
tried in the order resend, smtp, mailchannels: the first configured one is
the primary and the second, if any, the fallback.

Adding a new provider:
  1. Subclass DeliveryProvider and implement _deliver().
  2. Register it in _CANDIDATES with a predicate over ContactSettings.
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Callable, NamedTuple, Optional

import httpx

from contact_api.config import ContactSettings
from contact_api.errors import DeliveryError
from contact_api.models.delivery import DeliveryOutcome, DeliveryRequest

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
MAILCHANNELS_API_URL = "https://api.mailchannels.net/tx/v1/send"

# Longest provider error body we keep in a DeliveryOutcome
_MAX_ERROR_DETAIL = 500


def _truncate(text: str) -> str:
    return text if len(text) <= _MAX_ERROR_DETAIL else text[:_MAX_ERROR_DETAIL] + "..."


class DeliveryProvider(ABC):
    """Uniform interface over one transactional email backend."""

    name: str = "provider"

    def send(self, request: DeliveryRequest) -> DeliveryOutcome:
        """Deliver one message; map every failure to a failed outcome."""
        try:
            message_id = self._deliver(request)
        except DeliveryError as exc:
            logger.error(f"{self.name}: delivery to {request.to} failed: {exc.message}")
            return DeliveryOutcome(ok=False, provider=self.name, error=exc.message)
        except httpx.TimeoutException as exc:
            logger.error(f"{self.name}: timed out sending to {request.to}: {exc}")
            return DeliveryOutcome(ok=False, provider=self.name, error=f"Timeout: {exc}")
        except httpx.HTTPError as exc:
            logger.error(f"{self.name}: network error sending to {request.to}: {exc}")
            return DeliveryOutcome(ok=False, provider=self.name, error=f"Network error: {exc}")
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"{self.name}: relay error sending to {request.to}: {exc}")
            return DeliveryOutcome(ok=False, provider=self.name, error=f"SMTP error: {exc}")
        except Exception as exc:
            logger.exception(f"{self.name}: unexpected error sending to {request.to}")
            return DeliveryOutcome(
                ok=False, provider=self.name, error=f"Unexpected error: {type(exc).__name__}: {exc}"
            )

        logger.info(f"{self.name}: sent to {request.to} (id={message_id})")
        return DeliveryOutcome(ok=True, provider=self.name, message_id=message_id)

    @abstractmethod
    def _deliver(self, request: DeliveryRequest) -> Optional[str]:
        """Make the network call; return the provider message id if any."""


# ---------------------------------------------------------------------------
# HTTP providers
# ---------------------------------------------------------------------------

class _HttpProvider(DeliveryProvider):
    """Shared plumbing for JSON-over-HTTPS providers."""

    url: str = ""

    def __init__(self, api_key: str, connect_timeout: float = 10.0, timeout: float = 20.0):
        self.api_key = api_key
        self.timeout = httpx.Timeout(timeout, connect=connect_timeout)

    @abstractmethod
    def build_payload(self, request: DeliveryRequest) -> dict:
        """Translate a DeliveryRequest into the provider's JSON body."""

    @abstractmethod
    def build_headers(self) -> dict:
        """Authentication and content-type headers for the provider."""

    def _post(self, request: DeliveryRequest) -> httpx.Response:
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(
                self.url,
                json=self.build_payload(request),
                headers=self.build_headers(),
            )
        if response.is_error:
            raise DeliveryError(
                f"{response.status_code} {response.reason_phrase}: "
                f"{_truncate(self._error_detail(response))}"
            )
        return response

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(data, dict):
            return str(data.get("message") or data.get("error") or data)
        return str(data)


class ResendProvider(_HttpProvider):
    """Resend (https://resend.com) transactional email API."""

    name = "resend"
    url = RESEND_API_URL

    def build_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, request: DeliveryRequest) -> dict:
        payload = {
            "from": formataddr((request.from_name or "", request.from_address)),
            "to": [request.to],
            "subject": request.subject,
            "text": request.text,
            "html": request.html,
        }
        if request.cc:
            payload["cc"] = list(request.cc)
        if request.reply_to:
            payload["reply_to"] = formataddr((request.reply_to_name or "", request.reply_to))
        return payload

    def _deliver(self, request: DeliveryRequest) -> Optional[str]:
        response = self._post(request)
        try:
            return response.json().get("id")
        except (ValueError, AttributeError):
            logger.warning("resend: response body was not a JSON object")
            return None


class MailChannelsProvider(_HttpProvider):
    """MailChannels Email API; answers 202 with no message id."""

    name = "mailchannels"
    url = MAILCHANNELS_API_URL

    def build_headers(self) -> dict:
        return {
            "X-Api-Key": self.api_key,
            "Content-Type": "application/json",
        }

    def build_payload(self, request: DeliveryRequest) -> dict:
        personalization: dict = {"to": [{"email": request.to}]}
        if request.cc:
            personalization["cc"] = [{"email": address} for address in request.cc]

        sender: dict = {"email": request.from_address}
        if request.from_name:
            sender["name"] = request.from_name

        payload = {
            "personalizations": [personalization],
            "from": sender,
            "subject": request.subject,
            "content": [
                {"type": "text/plain", "value": request.text},
                {"type": "text/html", "value": request.html},
            ],
        }
        if request.reply_to:
            reply_to = {"email": request.reply_to}
            if request.reply_to_name:
                reply_to["name"] = request.reply_to_name
            payload["reply_to"] = reply_to
        return payload

    def _deliver(self, request: DeliveryRequest) -> Optional[str]:
        self._post(request)
        return None


# ---------------------------------------------------------------------------
# SMTP relay
# ---------------------------------------------------------------------------

class SmtpProvider(DeliveryProvider):
    """
    Authenticated SMTP relay.

    Supports both:
    - Implicit TLS (port 465): SMTP_SECURE=true
    - STARTTLS (port 587 and friends): SMTP_SECURE=false
    """

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        secure: bool = False,
        timeout: float = 20.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.secure = secure
        self.timeout = timeout

    def build_message(self, request: DeliveryRequest) -> EmailMessage:
        """Build a multipart/alternative message with a fresh Message-ID."""
        msg = EmailMessage()
        msg["From"] = formataddr((request.from_name or "", request.from_address))
        msg["To"] = request.to
        if request.cc:
            msg["Cc"] = ", ".join(request.cc)
        if request.reply_to:
            msg["Reply-To"] = formataddr((request.reply_to_name or "", request.reply_to))
        msg["Subject"] = request.subject

        domain = request.from_address.rpartition("@")[2] or None
        msg["Message-ID"] = make_msgid(domain=domain)

        msg.set_content(request.text)
        msg.add_alternative(request.html, subtype="html")
        return msg

    def _connect(self) -> smtplib.SMTP:
        if self.secure:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        server.starttls()
        return server

    def _deliver(self, request: DeliveryRequest) -> Optional[str]:
        msg = self.build_message(request)
        with self._connect() as server:
            server.login(self.user, self.password)
            refused = server.send_message(msg)
        if refused:
            raise DeliveryError(f"Recipients refused: {sorted(refused)}")
        return msg["Message-ID"]


# ---------------------------------------------------------------------------
# Logging-only provider
# ---------------------------------------------------------------------------

class NullProvider(DeliveryProvider):
    """Logs the message instead of sending it; used when no credentials exist."""

    name = "null"

    def _deliver(self, request: DeliveryRequest) -> Optional[str]:
        logger.info(
            "Contact message logged (no email provider configured)\n"
            f"To: {request.to}\n"
            f"Reply-To: {request.reply_to}\n"
            f"Subject: {request.subject}\n"
            f"{request.text}"
        )
        return None


# ---------------------------------------------------------------------------
# Registry and chain construction
# ---------------------------------------------------------------------------

class ProviderChain(NamedTuple):
    """The providers available to one process: a primary and an optional fallback."""

    primary: DeliveryProvider
    fallback: Optional[DeliveryProvider] = None

    @property
    def names(self) -> list[str]:
        return [p.name for p in (self.primary, self.fallback) if p is not None]


def _make_resend(settings: ContactSettings) -> DeliveryProvider:
    return ResendProvider(
        settings.resend_api_key,
        connect_timeout=settings.connect_timeout,
        timeout=settings.timeout,
    )


def _make_smtp(settings: ContactSettings) -> DeliveryProvider:
    return SmtpProvider(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_password,
        secure=settings.smtp_secure,
        timeout=settings.timeout,
    )


def _make_mailchannels(settings: ContactSettings) -> DeliveryProvider:
    return MailChannelsProvider(
        settings.mailchannels_api_key,
        connect_timeout=settings.connect_timeout,
        timeout=settings.timeout,
    )


_CANDIDATES: list[tuple[Callable[[ContactSettings], bool], Callable[[ContactSettings], DeliveryProvider]]] = [
    (lambda s: s.has_resend, _make_resend),
    (lambda s: s.has_smtp, _make_smtp),
    (lambda s: s.has_mailchannels, _make_mailchannels),
]


def build_provider_chain(settings: ContactSettings) -> ProviderChain:
    """
    Pick the primary and fallback providers from the configured credentials.

    Returns a chain with a lone NullProvider when nothing is configured.
    """
    configured = [factory(settings) for is_configured, factory in _CANDIDATES if is_configured(settings)]

    if not configured:
        logger.warning("No email provider credentials configured; submissions will only be logged")
        return ProviderChain(primary=NullProvider())

    if len(configured) > 2:
        logger.info(
            f"Ignoring extra providers {[p.name for p in configured[2:]]}; "
            "only a primary and one fallback are used"
        )

    chain = ProviderChain(
        primary=configured[0],
        fallback=configured[1] if len(configured) > 1 else None,
    )
    logger.info(f"Email providers: {chain.names}")
    return chain
