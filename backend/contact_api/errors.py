"""
Error taxonomy for the contact form pipeline.

Every failure the request handler knows how to shape into a response is a
ContactFormError subclass. Each carries the HTTP status it maps to, a
user-facing message, and a short ``service`` tag that ends up in the JSON
body so operators can tell failure classes apart in logs and dashboards.

  ValidationError     400  client input failed a rule (never retried)
  ParseError          400  request body was not valid JSON
  ConfigurationError  500  destination / sender / credentials missing
  DeliveryError       502  provider call failed

HoneypotTriggered is not an error from the client's point of view: the
handler answers it with the normal success body.
"""

from typing import Optional


class ContactFormError(Exception):
    """Base class for failures the contact endpoint maps to a response."""

    status_code: int = 500
    service: Optional[str] = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ContactFormError):
    """A submission field failed validation."""

    status_code = 400

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code


class ParseError(ContactFormError):
    """The request body could not be parsed as a JSON object."""

    status_code = 400


class ConfigurationError(ContactFormError):
    """Required configuration is missing; an operator problem, not a client one."""

    status_code = 500
    service = "contact_form_misconfiguration"


class DeliveryError(ContactFormError):
    """A provider call failed (non-2xx response, network fault, relay refusal)."""

    status_code = 502
    service = "email_service_failure"


class HoneypotTriggered(Exception):
    """A hidden trap field was filled in; the submission is silently dropped."""

    def __init__(self, field: str):
        super().__init__(f"honeypot field {field!r} was filled")
        self.field = field
