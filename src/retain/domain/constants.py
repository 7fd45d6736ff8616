"""Centralized constants for the retain engine.

All scheduling magic numbers and configuration defaults live here so every
layer imports from a single source of truth.
"""

# ---------- Ease ----------
INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3

# Per-rating ease adjustment, keyed by rating value (1=Again .. 4=Easy)
EASE_DELTAS = {1: -0.20, 2: -0.15, 3: 0.0, 4: 0.15}

# Extra ease penalty for each lapse beyond the grace count
LAPSE_PENALTY = 0.05
LAPSE_PENALTY_GRACE = 2

# ---------- Intervals ----------
RELEARN_INTERVAL_DAYS = 1
GRADUATING_INTERVALS = {2: 1, 3: 3, 4: 5}  # Hard, Good, Easy
HARD_INTERVAL_MULTIPLIER = 0.8
EASY_INTERVAL_MULTIPLIER = 1.3

# ---------- Mastery ----------
MASTERY_CAP_DAYS = 90  # interval considered fully mastered
HALF_LIFE_FACTOR = 2.0  # half-life = interval * factor
MASTERED_THRESHOLD = 0.85

# ---------- Leeches ----------
DEFAULT_LEECH_THRESHOLD = 8
LEECH_TAG = "leech"

# ---------- Session summary ----------
MAX_CHALLENGING_ITEMS = 5
SUMMARY_WEEK_DAYS = 7

# ---------- Forecast ----------
DEFAULT_FORECAST_DAYS = 30
