"""
Workload simulation.

Projects daily review load by replaying the real scheduler against a simulated
calendar. The outcome of each simulated review is drawn from `rng`, so a seeded
generator gives a reproducible forecast.
"""

import random
from dataclasses import dataclass
from datetime import date, timedelta

from retain.application.scheduler import DEFAULT_PARAMS, SchedulerParams, next_state
from retain.domain.errors import InvalidInputError
from retain.domain.models import Rating, ReviewableItem


@dataclass(frozen=True)
class SimulationDay:
    day: int  # offset from the start date
    date: date
    review_count: int
    new_count: int

    @property
    def total_load(self) -> int:
        return self.review_count + self.new_count


def simulate_workload(
    items: list[ReviewableItem],
    today: date,
    days: int,
    new_per_day: int,
    retention: float,
    rng: random.Random | None = None,
    params: SchedulerParams = DEFAULT_PARAMS,
) -> list[SimulationDay]:
    """
    Simulate `days` days of study, clearing every due item each day.

    Args:
        items: Items to simulate; suspended items are ignored.
        today: First simulated day.
        days: Number of days to simulate.
        new_per_day: Maximum never-reviewed items introduced per day.
        retention: Probability in [0, 1] that a review is rated Good (else Again).
        rng: Random source; defaults to an unseeded generator.
        params: Scheduling constants.

    Returns:
        One SimulationDay per simulated day.
    """
    if not 0.0 <= retention <= 1.0:
        raise InvalidInputError(f"retention must be within [0, 1], got {retention}")
    if days < 0 or new_per_day < 0:
        raise InvalidInputError("days and new_per_day must be non-negative")

    rng = rng or random.Random()
    reviewing = [item for item in items if not item.suspended and not item.is_new]
    fresh = [item for item in items if not item.suspended and item.is_new]

    results: list[SimulationDay] = []
    for offset in range(days):
        current = today + timedelta(days=offset)

        due_today = [item for item in reviewing if item.due_date <= current]
        later = [item for item in reviewing if item.due_date > current]
        reviewed = [next_state(item, _draw(rng, retention), current, params) for item in due_today]

        introduced = fresh[:new_per_day]
        fresh = fresh[new_per_day:]
        graduated = [next_state(item, _draw(rng, retention), current, params) for item in introduced]

        reviewing = later + reviewed + graduated
        results.append(
            SimulationDay(
                day=offset,
                date=current,
                review_count=len(due_today),
                new_count=len(introduced),
            )
        )

    return results


def _draw(rng: random.Random, retention: float) -> Rating:
    return Rating.GOOD if rng.random() < retention else Rating.AGAIN
