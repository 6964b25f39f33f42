"""
Provider-agnostic delivery models.

The composer produces DeliveryRequest values, providers turn each one into
a DeliveryOutcome, and the orchestrator folds the outcomes of one
submission into a SubmissionResult. None of these are persisted; they live
for the duration of one HTTP request.
"""

from typing import Optional

from pydantic import BaseModel


class DeliveryRequest(BaseModel):
    """One outbound email, ready to hand to any provider."""

    model_config = {"frozen": True}

    to: str
    from_address: str
    from_name: Optional[str] = None
    reply_to: Optional[str] = None
    reply_to_name: Optional[str] = None
    cc: tuple[str, ...] = ()
    subject: str
    text: str
    html: str


class DeliveryOutcome(BaseModel):
    """Result of a single send attempt on a single provider."""

    model_config = {"frozen": True}

    ok: bool
    provider: str
    message_id: Optional[str] = None
    error: Optional[str] = None


class SubmissionResult(BaseModel):
    """
    Aggregate result of delivering one submission.

    ok reflects the owner notification only. owner_attempts lists every
    attempt made for the owner notification in order (primary, then
    fallback), so both error details are available when everything failed.
    confirmation is None when no confirmation was attempted.
    """

    ok: bool
    owner_outcome: DeliveryOutcome
    owner_attempts: list[DeliveryOutcome] = []
    confirmation: Optional[DeliveryOutcome] = None

    @property
    def provider(self) -> str:
        return self.owner_outcome.provider

    @property
    def error_summary(self) -> str:
        """Join the error details of every failed owner attempt."""
        details = [
            f"{attempt.provider}: {attempt.error or 'unknown error'}"
            for attempt in self.owner_attempts
            if not attempt.ok
        ]
        return "; ".join(details) or "unknown error"
