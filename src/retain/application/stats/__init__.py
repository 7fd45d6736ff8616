# Application Stats Package
from .aggregates import (
    DeckStats,
    StatsCalculator,
    collection_mastery,
    due_count,
    due_forecast,
)
from .summary import SessionSummary, summarize
from .workload import SimulationDay, simulate_workload

__all__ = [
    "DeckStats",
    "SessionSummary",
    "SimulationDay",
    "StatsCalculator",
    "collection_mastery",
    "due_count",
    "due_forecast",
    "simulate_workload",
    "summarize",
]
