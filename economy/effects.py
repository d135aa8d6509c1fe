from __future__ import annotations

"""Effect aggregation rules and the per-generation memo used by the engine."""

from enum import Enum, auto
from typing import Any, Callable, Dict, Hashable, Iterable, Tuple

from catalog.achievements import AchievementBonusType
from catalog.prestige import PrestigeEffectType
from catalog.research import ResearchEffectType
from catalog.tiers import BuildingEffectType


class Aggregation(Enum):
    """How the values of several effects of one type combine."""

    ADDITIVE = auto()        # sum of value * level
    MULTIPLICATIVE = auto()  # product of value ** level
    INDIVIDUAL = auto()      # applied per building or per upgrade, never summed


BUILDING_AGGREGATION: Dict[BuildingEffectType, Aggregation] = {
    BuildingEffectType.INCOME_MULTIPLIER: Aggregation.ADDITIVE,
    BuildingEffectType.COST_REDUCTION: Aggregation.MULTIPLICATIVE,
    BuildingEffectType.COMPLETION_BONUS: Aggregation.ADDITIVE,
    BuildingEffectType.INCOME_PER_BUILDING: Aggregation.INDIVIDUAL,
    BuildingEffectType.PRODUCTION_BOOST: Aggregation.INDIVIDUAL,
    BuildingEffectType.GOAL_REDUCTION: Aggregation.ADDITIVE,
}

RESEARCH_AGGREGATION: Dict[ResearchEffectType, Aggregation] = {
    ResearchEffectType.AUTOBUY_SPEED: Aggregation.ADDITIVE,
    ResearchEffectType.BULK_BUY: Aggregation.INDIVIDUAL,
    ResearchEffectType.COST_REDUCTION: Aggregation.MULTIPLICATIVE,
    ResearchEffectType.PARALLEL_SLOTS: Aggregation.ADDITIVE,
    ResearchEffectType.STARTING_INCOME: Aggregation.ADDITIVE,
    ResearchEffectType.STARTING_CAPITAL: Aggregation.ADDITIVE,
    ResearchEffectType.AUTO_BUILDING: Aggregation.INDIVIDUAL,
    ResearchEffectType.COST_SCALING_REDUCTION: Aggregation.ADDITIVE,
    ResearchEffectType.FLAT_COST_COUNT: Aggregation.ADDITIVE,
    ResearchEffectType.TIER_REQUIREMENT_REDUCTION: Aggregation.ADDITIVE,
    ResearchEffectType.STARTING_BUILDINGS: Aggregation.INDIVIDUAL,
}

PRESTIGE_AGGREGATION: Dict[PrestigeEffectType, Aggregation] = {
    PrestigeEffectType.INCOME_MULTIPLIER: Aggregation.ADDITIVE,
    PrestigeEffectType.COST_REDUCTION: Aggregation.MULTIPLICATIVE,
    PrestigeEffectType.RESEARCH_BONUS: Aggregation.ADDITIVE,
    PrestigeEffectType.GOAL_REDUCTION: Aggregation.ADDITIVE,
    PrestigeEffectType.STARTING_CURRENCY: Aggregation.MULTIPLICATIVE,
    PrestigeEffectType.AUTOBUILD_SPEED: Aggregation.ADDITIVE,
    PrestigeEffectType.SURVIVAL_SPEED: Aggregation.ADDITIVE,
    PrestigeEffectType.FLAT_COST_COUNT: Aggregation.ADDITIVE,
    PrestigeEffectType.COST_SCALING_REDUCTION: Aggregation.ADDITIVE,
    PrestigeEffectType.BUILDING_INCOME_BOOST: Aggregation.INDIVIDUAL,
    PrestigeEffectType.PATRONAGE_BOOST: Aggregation.ADDITIVE,
    PrestigeEffectType.RESEARCH_DISCOUNT: Aggregation.MULTIPLICATIVE,
    PrestigeEffectType.FREE_BUILDINGS: Aggregation.ADDITIVE,
    PrestigeEffectType.CURRENCY_BOOST: Aggregation.ADDITIVE,
    PrestigeEffectType.MASTERY_BOOST: Aggregation.ADDITIVE,
    PrestigeEffectType.PRODUCTION_BOOST_AMPLIFIER: Aggregation.ADDITIVE,
    PrestigeEffectType.GRANT_BUILDING: Aggregation.INDIVIDUAL,
    PrestigeEffectType.TIER_REQUIREMENT_REDUCTION: Aggregation.ADDITIVE,
    PrestigeEffectType.BUILDING_SYNERGY: Aggregation.INDIVIDUAL,
    PrestigeEffectType.PARALLEL_SLOTS: Aggregation.ADDITIVE,
}

ACHIEVEMENT_AGGREGATION: Dict[AchievementBonusType, Aggregation] = {
    AchievementBonusType.INCOME_MULTIPLIER: Aggregation.ADDITIVE,
    AchievementBonusType.COST_REDUCTION: Aggregation.MULTIPLICATIVE,
    AchievementBonusType.RESEARCH_BONUS: Aggregation.ADDITIVE,
    AchievementBonusType.STARTING_CURRENCY: Aggregation.ADDITIVE,
    AchievementBonusType.TIER_REQUIREMENT_REDUCTION: Aggregation.ADDITIVE,
    AchievementBonusType.BUILDING_SYNERGY: Aggregation.INDIVIDUAL,
}


def aggregate(mode: Aggregation, terms: Iterable[Tuple[float, float]]) -> float:
    """
    Combine ``(value, level)`` pairs according to ``mode``.

    The neutral element is returned when ``terms`` is empty: 0 for additive
    and individual effects, 1 for multiplicative ones.
    """
    if mode is Aggregation.ADDITIVE:
        return sum(value * level for value, level in terms)
    if mode is Aggregation.MULTIPLICATIVE:
        result = 1.0
        for value, level in terms:
            result *= value ** level
        return result
    return 0.0


class EffectCache:
    """
    Memo of derived effect values, scoped to one generation.

    The engine calls ``bump`` at the start of every tick and after anything
    that changes purchased upgrades or unlocked achievements.
    """

    def __init__(self) -> None:
        self.generation = 0
        self.misses = 0
        self._values: Dict[Hashable, Any] = {}

    def bump(self) -> None:
        self.generation += 1
        self._values.clear()

    def get(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        if key in self._values:
            return self._values[key]
        self.misses += 1
        value = compute()
        self._values[key] = value
        return value

    def __len__(self) -> int:
        return len(self._values)
