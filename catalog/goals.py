from __future__ import annotations

"""Goal templates and the randomized goal generator."""

import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .format import format_short
from .tiers import BASE_TIER, TierType, get_tier_by_type


class GoalType(Enum):
    REACH_INCOME = "reach_income"
    ACCUMULATE_CURRENCY = "accumulate_currency"
    CURRENT_CURRENCY = "current_currency"
    BUILDING_COUNT = "building_count"
    SURVIVAL = "survival"
    CURRENCY_SPENT = "currency_spent"
    TOTAL_BUILDINGS = "total_buildings"


@dataclass
class Goal:
    id: str
    type: GoalType
    description: str
    target_value: float
    current_value: float = 0.0
    is_completed: bool = False
    building_id: Optional[str] = None


@dataclass(frozen=True)
class GoalTemplate:
    """A goal before it receives an id and a formatted description."""

    type: GoalType
    base_value: int
    description: str
    building_id: Optional[str] = None


# Calibrated against ACCUMULATE_CURRENCY, the most linear goal type. Other
# goal types dampen this value themselves.
TIER_DIFFICULTY: Dict[TierType, float] = {
    TierType.HAMLET: 1.2,
    TierType.VILLAGE: 4.0,
    TierType.TOWN: 4.0,
    TierType.CITY: 4.5,
    TierType.COUNTY: 3.5,
    TierType.DUCHY: 3.5,
    TierType.REALM: 10.0,
    TierType.KINGDOM: 6.0,
}

# Building goals scale separately because building costs grow exponentially.
BUILDING_TIER_SCALE: Dict[TierType, float] = {
    TierType.HAMLET: 1.0,
    TierType.VILLAGE: 1.85,
    TierType.TOWN: 1.35,
    TierType.CITY: 1.9,
    TierType.COUNTY: 1.33,
    TierType.DUCHY: 1.4,
    TierType.REALM: 2.5,
    TierType.KINGDOM: 1.4,
}

INCOME_DAMPENING = 0.55
MIN_BUILDING_TARGET = 10


def _round(value: float) -> int:
    """Round half up, matching how targets were originally tuned."""
    return int(math.floor(value + 0.5))


def get_tier_scale(tier: TierType) -> float:
    """Average building income of ``tier`` relative to the base tier."""
    tier_def = get_tier_by_type(tier)
    base_def = get_tier_by_type(BASE_TIER)
    if tier_def is None or base_def is None:
        return 1.0
    tier_avg = sum(b.base_income for b in tier_def.buildings) / len(tier_def.buildings)
    base_avg = sum(b.base_income for b in base_def.buildings) / len(base_def.buildings)
    return tier_avg / base_avg


def get_cost_scale(tier: TierType) -> float:
    """First building cost of ``tier`` relative to the base tier."""
    tier_def = get_tier_by_type(tier)
    base_def = get_tier_by_type(BASE_TIER)
    if tier_def is None or base_def is None:
        return 1.0
    return tier_def.buildings[0].base_cost / base_def.buildings[0].base_cost


def build_goal_templates(tier: TierType) -> List[GoalTemplate]:
    """Enumerate every goal template for ``tier`` in a fixed order."""
    tier_def = get_tier_by_type(tier)
    if tier_def is None:
        return []

    income_scale = get_tier_scale(tier)
    cost_scale = get_cost_scale(tier)
    difficulty = TIER_DIFFICULTY[tier_def.type]
    damped = difficulty ** INCOME_DAMPENING
    survival_scale = 1 + math.log10(max(income_scale, 1)) * 0.15
    building_scale = BUILDING_TIER_SCALE[tier_def.type]

    templates = [
        GoalTemplate(GoalType.REACH_INCOME, _round(500 * income_scale * damped),
                     "Reach {value} income per second"),
        GoalTemplate(GoalType.ACCUMULATE_CURRENCY, _round(120_000 * cost_scale * difficulty),
                     "Earn {value} total currency"),
        GoalTemplate(GoalType.ACCUMULATE_CURRENCY, _round(180_000 * cost_scale * difficulty),
                     "Earn {value} total currency"),
        GoalTemplate(GoalType.CURRENT_CURRENCY, _round(10_000 * cost_scale * damped),
                     "Have {value} currency at once"),
        GoalTemplate(GoalType.CURRENT_CURRENCY, _round(20_000 * cost_scale * damped),
                     "Have {value} currency at once"),
        GoalTemplate(GoalType.CURRENCY_SPENT, _round(110_000 * cost_scale * difficulty),
                     "Spend {value} currency on buildings"),
        GoalTemplate(GoalType.TOTAL_BUILDINGS, _round(120 * building_scale),
                     "Own {value} total buildings"),
        GoalTemplate(GoalType.SURVIVAL, _round(600 * survival_scale * difficulty),
                     "Prosper for {minutes} minutes"),
        GoalTemplate(GoalType.SURVIVAL, _round(900 * survival_scale * difficulty),
                     "Prosper for {minutes} minutes"),
    ]

    # Cheap buildings get high targets (1.5x), the priciest ones low (0.4x).
    # Steep cost curves lower the target further.
    count = len(tier_def.buildings)
    for i, building in enumerate(tier_def.buildings):
        position = 1.5 - (i / count) * 1.1
        steepness = (1.15 / building.cost_multiplier) ** (position * 2.5)
        target = max(MIN_BUILDING_TARGET, _round(30 * position * building_scale * steepness))
        templates.append(
            GoalTemplate(
                GoalType.BUILDING_COUNT,
                target,
                f"Build {target} {building.name}s",
                building_id=building.id,
            )
        )
    return templates


def format_description(description: str, value: float) -> str:
    if "{minutes}" in description:
        return description.replace("{minutes}", str(int(value // 60)))
    return description.replace("{value}", format_short(value))


class GoalGenerator:
    """Turns templates into goals with fresh ids."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.goal_counter = 0

    def _instantiate(self, template: GoalTemplate) -> Goal:
        goal = Goal(
            id=f"goal_{self.goal_counter}",
            type=template.type,
            description=format_description(template.description, template.base_value),
            target_value=template.base_value,
            building_id=template.building_id,
        )
        self.goal_counter += 1
        return goal

    def get_all_goal_templates(self, tier: TierType) -> List[Goal]:
        return [self._instantiate(t) for t in build_goal_templates(tier)]

    def generate_random_goals(self, tier: TierType, count: int = 1) -> List[Goal]:
        templates = build_goal_templates(tier)
        self.rng.shuffle(templates)
        return [self._instantiate(t) for t in templates[:count]]


_default_generator = GoalGenerator()


def get_all_goal_templates(tier: TierType) -> List[Goal]:
    return _default_generator.get_all_goal_templates(tier)


def generate_random_goals(tier: TierType, count: int = 1) -> List[Goal]:
    return _default_generator.generate_random_goals(tier, count)
