"""
Contact service configuration.

Settings are read from the environment once, when the application is
created, and frozen into a ContactSettings instance that is handed to the
request handler. Nothing else in the package reads os.environ.

Environment variables
---------------------
CONTACT_TO / NOTIFY_EMAIL       Owner (destination) address. Required.
CONTACT_FROM / SMTP_FROM        Sender address. Falls back to SMTP_USER.
CONTACT_FROM_NAME / SMTP_FROM_NAME
                                Optional display name for the From header.
CONTACT_CC                      Comma-separated cc list for owner notifications.
SITE_OWNER_NAME, SITE_URL       Used to sign the confirmation email.
RESEND_API_KEY                  Enables the Resend HTTP provider.
SMTP_HOST, SMTP_PORT, SMTP_SECURE, SMTP_USER, SMTP_PASS
                                Enables the SMTP relay provider (host, user and
                                password must all be present).
MAILCHANNELS_API_KEY            Enables the MailChannels HTTP provider.
CONTACT_CONNECT_TIMEOUT         Per-call connect timeout in seconds (default 10).
CONTACT_TIMEOUT                 Per-call overall timeout in seconds (default 20).
CONTACT_HONEYPOT_FIELDS         Comma-separated trap field names
                                (default: company,website).
CORS_ORIGINS                    Comma-separated allowed origins (default: *).

Lower-case spellings of the variable names are accepted as well.
"""

import logging
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from contact_api.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_HONEYPOT_FIELDS = ("company", "website")


class ContactSettings(BaseModel):
    """Immutable process-wide configuration."""

    model_config = {"frozen": True}

    owner_email: Optional[str] = None
    sender_email: Optional[str] = None
    sender_name: Optional[str] = None
    cc_emails: tuple[str, ...] = ()

    site_owner_name: str = "Portfolio"
    site_url: Optional[str] = None

    resend_api_key: Optional[str] = None

    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None

    mailchannels_api_key: Optional[str] = None

    connect_timeout: float = 10.0
    timeout: float = 20.0

    honeypot_fields: tuple[str, ...] = DEFAULT_HONEYPOT_FIELDS
    cors_origins: tuple[str, ...] = ("*",)

    @property
    def has_resend(self) -> bool:
        return bool(self.resend_api_key)

    @property
    def has_smtp(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    @property
    def has_mailchannels(self) -> bool:
        return bool(self.mailchannels_api_key)

    @property
    def has_real_provider(self) -> bool:
        return self.has_resend or self.has_smtp or self.has_mailchannels

    def require_addresses(self) -> None:
        """
        Fail loudly when the service cannot deliver anywhere meaningful.

        A missing destination is always fatal. A missing sender is only
        fatal when a real provider is configured; the logging-only
        provider never puts a From header on the wire.

        Raises:
            ConfigurationError: destination or sender address is missing.
        """
        if not self.owner_email:
            raise ConfigurationError(
                "Contact service is not properly configured. "
                "Please contact the site administrator."
            )
        if self.has_real_provider and not self.sender_email:
            raise ConfigurationError(
                "Contact service is not properly configured. "
                "Please contact the site administrator."
            )


# ---------------------------------------------------------------------------
# Environment parsing helpers
# ---------------------------------------------------------------------------

def _get(environ: Mapping[str, str], *names: str) -> Optional[str]:
    """Return the first non-empty value among names (upper or lower case)."""
    for name in names:
        for key in (name, name.lower()):
            value = environ.get(key, "").strip()
            if value:
                return value
    return None


def _split_list(raw: Optional[str]) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _parse_bool(raw: Optional[str]) -> bool:
    return (raw or "").strip().lower() in ("1", "true", "yes", "on")


def _parse_number(raw: Optional[str], default, cast):
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid numeric setting {raw!r}; using {default}")
        return default


def load_settings(environ: Optional[Mapping[str, str]] = None) -> ContactSettings:
    """
    Build ContactSettings from the environment.

    When environ is None the process environment is used, after loading a
    .env file if one is present (existing variables are never overridden).
    Tests pass an explicit mapping instead.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    smtp_user = _get(environ, "SMTP_USER")
    sender_name = _get(environ, "CONTACT_FROM_NAME", "SMTP_FROM_NAME")
    if sender_name:
        sender_name = " ".join(sender_name.split())

    honeypot_fields = _split_list(_get(environ, "CONTACT_HONEYPOT_FIELDS"))

    settings = ContactSettings(
        owner_email=_get(environ, "CONTACT_TO", "NOTIFY_EMAIL"),
        sender_email=_get(environ, "CONTACT_FROM", "SMTP_FROM") or smtp_user,
        sender_name=sender_name,
        cc_emails=_split_list(_get(environ, "CONTACT_CC")),
        site_owner_name=_get(environ, "SITE_OWNER_NAME") or "Portfolio",
        site_url=_get(environ, "SITE_URL"),
        resend_api_key=_get(environ, "RESEND_API_KEY"),
        smtp_host=_get(environ, "SMTP_HOST"),
        smtp_port=_parse_number(_get(environ, "SMTP_PORT"), 587, int),
        smtp_secure=_parse_bool(_get(environ, "SMTP_SECURE")),
        smtp_user=smtp_user,
        smtp_password=_get(environ, "SMTP_PASS"),
        mailchannels_api_key=_get(environ, "MAILCHANNELS_API_KEY"),
        connect_timeout=_parse_number(_get(environ, "CONTACT_CONNECT_TIMEOUT"), 10.0, float),
        timeout=_parse_number(_get(environ, "CONTACT_TIMEOUT"), 20.0, float),
        honeypot_fields=honeypot_fields or DEFAULT_HONEYPOT_FIELDS,
        cors_origins=_split_list(_get(environ, "CORS_ORIGINS")) or ("*",),
    )

    if not settings.owner_email:
        logger.warning(
            "CONTACT_TO/NOTIFY_EMAIL is not configured; every submission "
            "will be rejected as a configuration error"
        )

    return settings
