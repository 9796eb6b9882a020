"""Centralized constants for the anamnesis engine.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth. Runtime code reads them through the
injectable config models in ``anamnesis.application.config``.
"""

# ---------- Time ----------
SECONDS_PER_DAY = 86400.0

# ---------- Forgetting curve ----------
DECAY = -0.5
TARGET_RETENTION = 0.9

# ---------- Card seeds ----------
SEED_STABILITY = 1.0  # days
SEED_DIFFICULTY = 5.0
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0

# ---------- Stability update ----------
LAPSE_PENALTY = 0.3
STABILITY_DAMPING = 0.2
RECALL_BONUS = 2.0
GROWTH_HARD = 0.6
GROWTH_GOOD = 1.5
GROWTH_EASY = 3.0

# ---------- Difficulty update ----------
DIFFICULTY_STEP_AGAIN = 1.0
DIFFICULTY_STEP_HARD = 0.3
DIFFICULTY_STEP_EASY = -0.3

# ---------- Intervals ----------
MINIMUM_INTERVAL_DAYS = 1
MAXIMUM_INTERVAL_DAYS = 365

# ---------- Mastery ladder (stability cutoffs, days) ----------
FRAGILE_CUTOFF = 2.0
DEVELOPING_CUTOFF = 7.0
SOLID_CUTOFF = 21.0
MASTERED_CUTOFF = 60.0
DIFFICULTY_SHIFT = 0.5

# ---------- Misconception detection ----------
MISCONCEPTION_MIN_LAPSES = 3
MISCONCEPTION_LAPSE_RATIO = 0.4
MISCONCEPTION_CLEAR_STREAK = 3

# ---------- Review queue ----------
DEFAULT_MAX_SESSION_SIZE = 50
DEFAULT_LOAD_DAYS_AHEAD = 7

# ---------- Prerequisite gap analysis ----------
GAP_REVIEW_SUGGESTED_PERCENT = 50
