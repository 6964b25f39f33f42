"""
Delivery orchestration for one contact form submission.

  1. Send the owner notification (critical) on the primary provider.
  2. If that fails and a fallback provider is configured, send it once more
     on the fallback. If the fallback fails too, stop: the result is a
     failure and no confirmation is attempted.
  3. Send the submitter confirmation (best-effort) on whichever provider
     delivered the owner notification. A failure here is logged and
     recorded but never changes SubmissionResult.ok.

The two sends are sequential because the confirmation's provider depends on
the outcome of the owner send.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from contact_api.config import ContactSettings
from contact_api.models.delivery import DeliveryOutcome, SubmissionResult
from contact_api.models.submission import CleanSubmission, RequestMeta
from contact_api.services.composer import (
    compose_confirmation_message,
    compose_owner_message,
)
from contact_api.services.providers import DeliveryProvider, ProviderChain

logger = logging.getLogger(__name__)


def deliver_submission(
    submission: CleanSubmission,
    settings: ContactSettings,
    chain: ProviderChain,
    meta: Optional[RequestMeta] = None,
) -> SubmissionResult:
    """
    Deliver the owner notification and the submitter confirmation.

    Args:
        submission: Validated submission.
        settings:   Process configuration (addresses, cc list, signature).
        chain:      Primary provider and optional fallback.
        meta:       Request metadata for the owner notification.

    Returns:
        SubmissionResult. ok is True iff the owner notification was delivered.
    """
    received_at = datetime.now(timezone.utc)
    owner_request = compose_owner_message(submission, settings, meta, received_at)

    attempts: list[DeliveryOutcome] = []
    delivered_by: Optional[DeliveryProvider] = None

    for provider in (chain.primary, chain.fallback):
        if provider is None:
            continue
        if attempts:
            logger.warning(
                f"Owner notification failed on {attempts[-1].provider}; "
                f"retrying once on fallback {provider.name}"
            )
        outcome = provider.send(owner_request)
        attempts.append(outcome)
        if outcome.ok:
            delivered_by = provider
            break

    if delivered_by is None:
        logger.error(
            "Owner notification failed on every configured provider: "
            + ", ".join(f"{a.provider}: {a.error}" for a in attempts)
        )
        return SubmissionResult(
            ok=False,
            owner_outcome=attempts[-1],
            owner_attempts=attempts,
        )

    logger.info(f"Owner notification delivered via {delivered_by.name}")

    confirmation_request = compose_confirmation_message(submission, settings, received_at)
    confirmation = delivered_by.send(confirmation_request)
    if not confirmation.ok:
        logger.warning(
            f"Sender confirmation failed on {confirmation.provider} "
            f"(non-critical): {confirmation.error}"
        )

    return SubmissionResult(
        ok=True,
        owner_outcome=attempts[-1],
        owner_attempts=attempts,
        confirmation=confirmation,
    )
