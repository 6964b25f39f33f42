"""
Submission validation and sanitization.

Turns an untrusted JSON object into a CleanSubmission, or raises.

Rules are applied in order and the first failure wins:
  1. Honeypot: any configured trap field with a value -> HoneypotTriggered
  2. name:     string, at least 2 characters after cleaning -> else InvalidName
  3. email:    string, <= 254 characters, local@domain.tld -> else InvalidEmail
  4. message:  string, at least 10 characters after cleaning -> else InvalidMessage

Oversized but otherwise valid values are clipped, never rejected.

Public API:
  validate_submission(payload, honeypot_fields) -> CleanSubmission
  clean_single_line(value, limit) -> str
  clean_multiline(value, limit) -> str
"""

import re
from typing import Any, Iterable, Mapping

from contact_api.config import DEFAULT_HONEYPOT_FIELDS
from contact_api.errors import HoneypotTriggered, ValidationError
from contact_api.models.submission import (
    DEFAULT_SUBJECT,
    MAX_EMAIL_LEN,
    MAX_MESSAGE_LEN,
    MAX_NAME_LEN,
    MAX_SUBJECT_LEN,
    CleanSubmission,
)

EMAIL_REGEX = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", re.IGNORECASE)

MIN_NAME_LEN = 2
MIN_MESSAGE_LEN = 10

# C0 controls except tab/LF/CR, DEL, and the C1 block
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_LINE_BREAKS = re.compile(r"[\r\n\t\u2028\u2029]+")


# ---------------------------------------------------------------------------
# Cleaning helpers
# ---------------------------------------------------------------------------

def clean_single_line(value: str, limit: int) -> str:
    """
    Collapse line breaks to spaces, drop control characters, trim, clip.

    Used for anything that can end up in a header (name, subject) and for
    request metadata.
    """
    value = _LINE_BREAKS.sub(" ", value)
    value = _CONTROL_CHARS.sub("", value)
    return value.strip()[:limit]


def clean_multiline(value: str, limit: int) -> str:
    """Normalize line endings to \\n, drop other control characters, trim, clip."""
    value = value.replace("\r\n", "\n").replace("\r", "\n")
    value = value.replace("\u2028", "\n").replace("\u2029", "\n")
    value = _CONTROL_CHARS.sub("", value)
    return value.strip()[:limit]


def _honeypot_field(payload: Mapping[str, Any], fields: Iterable[str]):
    """Return the name of the first filled trap field, or None."""
    for field in fields:
        value = payload.get(field)
        if isinstance(value, str):
            if value.strip():
                return field
        elif value:
            return field
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_submission(
    payload: Mapping[str, Any],
    honeypot_fields: Iterable[str] = DEFAULT_HONEYPOT_FIELDS,
) -> CleanSubmission:
    """
    Validate and normalize a raw submission.

    Args:
        payload:          Parsed JSON object from the request body.
        honeypot_fields:  Names of hidden trap fields real users never fill.

    Returns:
        CleanSubmission with every field trimmed, clipped and control-free.

    Raises:
        HoneypotTriggered: a trap field carried a value (drop silently).
        ValidationError:   a field failed its rule; .code names the rule.
    """
    trap = _honeypot_field(payload, honeypot_fields)
    if trap is not None:
        raise HoneypotTriggered(trap)

    name = payload.get("name")
    clean_name = clean_single_line(name, MAX_NAME_LEN) if isinstance(name, str) else ""
    if len(clean_name) < MIN_NAME_LEN:
        raise ValidationError(
            "InvalidName", "Name is required and must be at least 2 characters"
        )

    email = payload.get("email")
    clean_email = email.strip().lower() if isinstance(email, str) else ""
    if not clean_email or len(clean_email) > MAX_EMAIL_LEN:
        raise ValidationError("InvalidEmail", "Email address is invalid or too long")
    if not EMAIL_REGEX.fullmatch(clean_email):
        raise ValidationError("InvalidEmail", "Email address format is invalid")

    message = payload.get("message")
    clean_message = clean_multiline(message, MAX_MESSAGE_LEN) if isinstance(message, str) else ""
    if len(clean_message) < MIN_MESSAGE_LEN:
        raise ValidationError(
            "InvalidMessage", "Message is required and must be at least 10 characters"
        )

    subject = payload.get("subject")
    clean_subject = clean_single_line(subject, MAX_SUBJECT_LEN) if isinstance(subject, str) else ""

    return CleanSubmission(
        name=clean_name,
        email=clean_email,
        subject=clean_subject or DEFAULT_SUBJECT,
        message=clean_message,
    )
