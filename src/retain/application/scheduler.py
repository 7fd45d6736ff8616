"""
Review scheduler.

An SM-2 style interval/ease scheduler with a logarithmic mastery scale and
exponential mastery decay. Every function is pure: the caller passes the
current date in and gets a new item back.
"""

import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta

from retain.domain import constants
from retain.domain.models import Deck, Rating, ReviewableItem


@dataclass(frozen=True)
class SchedulerParams:
    """
    Tunable scheduling constants.

    The lapse penalty and half-life factor are empirical choices, so they
    are parameters rather than hard-coded values.
    """

    initial_ease: float = constants.INITIAL_EASE_FACTOR
    min_ease: float = constants.MIN_EASE_FACTOR
    relearn_days: int = constants.RELEARN_INTERVAL_DAYS
    ease_deltas: dict[Rating, float] = field(
        default_factory=lambda: {Rating(k): v for k, v in constants.EASE_DELTAS.items()}
    )
    graduating_intervals: dict[Rating, int] = field(
        default_factory=lambda: {Rating(k): v for k, v in constants.GRADUATING_INTERVALS.items()}
    )
    hard_multiplier: float = constants.HARD_INTERVAL_MULTIPLIER
    easy_multiplier: float = constants.EASY_INTERVAL_MULTIPLIER
    lapse_penalty: float = constants.LAPSE_PENALTY
    lapse_penalty_grace: int = constants.LAPSE_PENALTY_GRACE
    mastery_cap_days: int = constants.MASTERY_CAP_DAYS
    half_life_factor: float = constants.HALF_LIFE_FACTOR

    def multiplier(self, rating: Rating) -> float:
        if rating is Rating.HARD:
            return self.hard_multiplier
        if rating is Rating.EASY:
            return self.easy_multiplier
        return 1.0


DEFAULT_PARAMS = SchedulerParams()


def next_state(
    item: ReviewableItem,
    rating: Rating | int | str,
    today: date,
    params: SchedulerParams = DEFAULT_PARAMS,
) -> ReviewableItem:
    """
    Compute an item's scheduling state after a review.

    Args:
        item: The item as it was before the review.
        rating: Again, Hard, Good or Easy (enum, 1-4, or name).
        today: The review date; time of day is ignored.
        params: Scheduling constants.

    Returns:
        A new item; the input is not modified.

    Raises:
        InvalidInputError: if `rating` is not one of the four ratings.
    """
    rating = Rating.parse(rating)
    today = _as_day(today)

    # Any successful review resets the lapse streak
    lapses = item.lapses + 1 if rating is Rating.AGAIN else 0

    ease = item.ease_factor + params.ease_deltas[rating]
    if rating is Rating.AGAIN and lapses > params.lapse_penalty_grace:
        ease -= (lapses - params.lapse_penalty_grace) * params.lapse_penalty
    ease = max(params.min_ease, ease)

    if rating is Rating.AGAIN:
        interval = params.relearn_days
    elif item.interval == 0:
        interval = params.graduating_intervals[rating]
    else:
        interval = math.ceil(item.interval * ease * params.multiplier(rating))
    interval = max(1, interval)

    return replace(
        item,
        interval=interval,
        ease_factor=ease,
        due_date=today + timedelta(days=interval),
        last_reviewed=today,
        mastery_level=mastery_for_interval(interval, params),
        lapses=lapses,
    )


def mastery_for_interval(interval: int, params: SchedulerParams = DEFAULT_PARAMS) -> float:
    """Logarithmic mastery scale; `mastery_cap_days` maps to 1.0."""
    if interval <= 0:
        return 0.0
    return min(1.0, math.log1p(interval) / math.log1p(params.mastery_cap_days))


def reset(
    item: ReviewableItem,
    today: date,
    params: SchedulerParams = DEFAULT_PARAMS,
) -> ReviewableItem:
    """Return an item to its never-reviewed state, due today."""
    return replace(
        item,
        due_date=_as_day(today),
        interval=0,
        ease_factor=params.initial_ease,
        suspended=False,
        mastery_level=0.0,
        last_reviewed=None,
        lapses=0,
    )


def effective_mastery(
    item: ReviewableItem,
    now: date | datetime,
    params: SchedulerParams = DEFAULT_PARAMS,
) -> float:
    """
    Stored mastery decayed along a forgetting curve.

    M(t) = M0 * 0.5^(t / half_life), with half_life = interval * factor and t
    the days elapsed since the last review. Never stored, always recomputed.
    """
    if item.mastery_level <= 0 or item.last_reviewed is None or item.suspended:
        return 0.0

    half_life_days = max(item.interval, 1) * params.half_life_factor
    days_since = max(0.0, _days_between(item.last_reviewed, now))
    if days_since == 0:
        return item.mastery_level

    return item.mastery_level * 0.5 ** (days_since / half_life_days)


def _as_day(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _days_between(start: date, end: date | datetime) -> float:
    if isinstance(end, datetime):
        midnight = datetime.combine(_as_day(start), datetime.min.time(), tzinfo=end.tzinfo)
        return (end - midnight).total_seconds() / 86400.0
    return float((end - _as_day(start)).days)


def reset_deck(
    deck: Deck,
    today: date,
    params: SchedulerParams = DEFAULT_PARAMS,
) -> Deck:
    """Reset every reviewable item of a deck. Info cards carry no progress."""
    return deck.with_items([reset(item, today, params) for item in deck.items])
