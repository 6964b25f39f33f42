"""
Pydantic models for contact form submissions.

Models:
  CleanSubmission  validated, normalized submission (safe for headers and bodies)
  RequestMeta      optional request metadata included in the owner notification

The raw submission is deliberately NOT modelled: it is untrusted JSON and
the validator inspects it field by field so that wrong types produce the
same field-specific errors as missing values.
"""

from pydantic import BaseModel

DEFAULT_SUBJECT = "Portfolio Contact Form"

MAX_NAME_LEN = 100
MAX_EMAIL_LEN = 254
MAX_SUBJECT_LEN = 200
MAX_MESSAGE_LEN = 5000


class CleanSubmission(BaseModel):
    """
    A submission that passed validation.

    Every field is trimmed, length-capped and free of control characters.
    name, email and subject contain no line breaks at all; message keeps
    its line breaks (normalized to \\n) and tabs.
    """

    model_config = {"frozen": True}

    name: str
    email: str
    subject: str = DEFAULT_SUBJECT
    message: str


class RequestMeta(BaseModel):
    """Who sent the request, as far as the edge can tell."""

    model_config = {"frozen": True}

    client_ip: str = "unknown"
    user_agent: str = "unknown"
    referer: str = "unknown"
