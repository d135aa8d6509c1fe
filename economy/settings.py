# Settings for the economy engine

from pathlib import Path

from catalog import research

# Version written into every save. Saves with any other version are rejected.
GAME_VERSION = "0.1.0"

# Default save location and how often the engine writes it (seconds).
SAVE_FILE = Path("kingdoms_save.json")
AUTOSAVE_INTERVAL_SECONDS = 30.0

# Research points awarded for every completed settlement before bonuses.
BASE_COMPLETION_RESEARCH = 10

# Cost factor between consecutive levels of a repeatable research chain.
RESEARCH_COST_ESCALATION = research.RESEARCH_COST_ESCALATION

# Floor for the completions needed to unlock (or re-arm) the next tier. The
# unreduced count comes from the next tier's unlock_requirement.
MIN_TIER_REQUIREMENT = 2

# Share of a higher tier's first-building income paid to lower tiers per
# completed settlement. Halved for every tier of distance.
PATRONAGE_PER_COMPLETION = 0.05

# Auto-builders only spend up to this share of a settlement's treasury.
AUTO_BUILD_TREASURY_PCT = 0.05
# Combined speed bonuses never shorten an auto-build interval by more than this.
MAX_AUTOBUILD_SPEED_BONUS = 0.9

# Income multiplier while dev mode is on.
DEV_MODE_MULTIPLIER = 1000

# Upper bound for "max" purchases in a single call.
MAX_BULK_BUY = 500

# Number of goals given to every new settlement.
GOALS_PER_SETTLEMENT = 1

# Goal reductions never cut a target by more than this share.
MAX_GOAL_REDUCTION = 0.75

# Mastery: permanent per-run bonuses from completing many settlements of a tier.
MASTERY_INCOME_PER_COMPLETION = 0.001
MASTERY_STARTING_CURRENCY_FACTOR = 0.1
MASTERY_AUTOBUILD_HALFPOINT = 500
MASTERY_SOFTCAP_START = 200

# Pending notifications kept for the driver.
MAX_NOTIFICATIONS = 10

# Seconds between periodic achievement checks during update().
ACHIEVEMENT_CHECK_INTERVAL = 2.0
