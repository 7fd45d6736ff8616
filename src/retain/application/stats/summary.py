"""End-of-session summary derived from the review log."""

from dataclasses import dataclass, field
from datetime import date, timedelta

from retain.domain.constants import MAX_CHALLENGING_ITEMS, SUMMARY_WEEK_DAYS
from retain.domain.models import Rating, ReviewableItem
from retain.domain.session.models import ReviewLogEntry


@dataclass
class SessionSummary:
    reviewed: int
    due_tomorrow: int
    due_next_week: int  # due after tomorrow, within seven days
    challenging: list[ReviewableItem] = field(default_factory=list)


def summarize(review_log: list[ReviewLogEntry], today: date) -> SessionSummary:
    """
    Summarize a session's reviews.

    Challenging items are the ones rated Again or Hard, Again first, capped
    at MAX_CHALLENGING_ITEMS. Suspend actions count as reviewed but are never
    due and never challenging.
    """
    tomorrow = today + timedelta(days=1)
    next_week = today + timedelta(days=SUMMARY_WEEK_DAYS)

    due_tomorrow = 0
    due_next_week = 0
    for entry in review_log:
        item = entry.new_item
        if item.suspended:
            continue
        if today < item.due_date <= tomorrow:
            due_tomorrow += 1
        elif tomorrow < item.due_date <= next_week:
            due_next_week += 1

    struggled = [
        entry for entry in review_log if entry.rating in (Rating.AGAIN, Rating.HARD)
    ]
    struggled.sort(key=lambda entry: entry.rating)

    return SessionSummary(
        reviewed=len(review_log),
        due_tomorrow=due_tomorrow,
        due_next_week=due_next_week,
        challenging=[entry.new_item for entry in struggled[:MAX_CHALLENGING_ITEMS]],
    )
