"""Leech detection: remediation policy for chronically failed items."""

import logging
from dataclasses import dataclass, replace

from retain.domain.constants import DEFAULT_LEECH_THRESHOLD, LEECH_TAG
from retain.domain.models import LeechAction, ReviewableItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeechPolicy:
    threshold: int = DEFAULT_LEECH_THRESHOLD
    action: LeechAction = LeechAction.SUSPEND


@dataclass(frozen=True)
class LeechVerdict:
    """
    Outcome of a leech check.

    Attributes:
        item: The item after the policy was applied (unchanged for warn).
        is_leech: Whether the item crossed the threshold on this review.
        warn: True when the caller should surface an advisory warning.
    """

    item: ReviewableItem
    is_leech: bool = False
    warn: bool = False


def check_leech(
    before: ReviewableItem,
    after: ReviewableItem,
    policy: LeechPolicy = LeechPolicy(),
) -> LeechVerdict:
    """
    Apply the leech policy to a freshly scheduled item.

    Args:
        before: The item as it was before the review.
        after: The item returned by the scheduler for this review.
        policy: Threshold and action.

    Returns:
        LeechVerdict with the (possibly suspended or tagged) item.
    """
    if after.lapses < policy.threshold or before.suspended:
        return LeechVerdict(item=after)

    logger.warning(
        f"Leech detected: {after.id} has {after.lapses} lapses (action={policy.action.value})"
    )

    match policy.action:
        case LeechAction.SUSPEND:
            return LeechVerdict(item=replace(after, suspended=True), is_leech=True)
        case LeechAction.TAG:
            return LeechVerdict(item=after.with_tag(LEECH_TAG), is_leech=True)
        case LeechAction.WARN:
            return LeechVerdict(item=after, is_leech=True, warn=True)
