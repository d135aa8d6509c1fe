from __future__ import annotations

"""Achievements and the permanent bonuses they grant."""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .tiers import TierType


class AchievementConditionType(Enum):
    TIER_COMPLETIONS = "tier_completions"
    TOTAL_COMPLETIONS = "total_completions"
    PRESTIGE_COUNT = "prestige_count"
    SPEED_COMPLETION = "speed_completion"
    MAX_SINGLE_BUILDING = "max_single_building"
    MAX_CURRENCY_HELD = "max_currency_held"
    SETTLEMENT_COUNT = "settlement_count"
    RESEARCH_PURCHASED = "research_purchased"
    NEAR_BROKE = "near_broke"
    SPECIFIC_BUILDING_COUNT = "specific_building_count"


class AchievementBonusType(Enum):
    INCOME_MULTIPLIER = "income_multiplier"
    COST_REDUCTION = "cost_reduction"
    RESEARCH_BONUS = "research_bonus"
    STARTING_CURRENCY = "starting_currency"
    TIER_REQUIREMENT_REDUCTION = "tier_requirement_reduction"
    BUILDING_SYNERGY = "building_synergy"


@dataclass(frozen=True)
class AchievementCondition:
    type: AchievementConditionType
    value: float
    tier: Optional[TierType] = None
    building_id: Optional[str] = None


@dataclass(frozen=True)
class AchievementBonus:
    type: AchievementBonusType
    value: float
    tier: Optional[TierType] = None
    source_building_id: Optional[str] = None
    target_building_id: Optional[str] = None


@dataclass
class Achievement:
    id: str
    name: str
    description: str
    condition: AchievementCondition
    bonus: AchievementBonus
    unlocked: bool = False


C = AchievementConditionType
B = AchievementBonusType

ACHIEVEMENTS: List[Achievement] = [
    Achievement("first_steps", "First Steps", "Complete your first settlement",
                AchievementCondition(C.TOTAL_COMPLETIONS, 1),
                AchievementBonus(B.INCOME_MULTIPLIER, 0.01)),
    Achievement("hamlet_veteran", "Hamlet Veteran", "Complete 10 Hamlets",
                AchievementCondition(C.TIER_COMPLETIONS, 10, tier=TierType.HAMLET),
                AchievementBonus(B.RESEARCH_BONUS, 1)),
    Achievement("hamlet_master", "Hamlet Master", "Complete 50 Hamlets",
                AchievementCondition(C.TIER_COMPLETIONS, 50, tier=TierType.HAMLET),
                AchievementBonus(B.TIER_REQUIREMENT_REDUCTION, 1, tier=TierType.HAMLET)),
    Achievement("village_founder", "Village Founder", "Complete a Village",
                AchievementCondition(C.TIER_COMPLETIONS, 1, tier=TierType.VILLAGE),
                AchievementBonus(B.INCOME_MULTIPLIER, 0.02)),
    Achievement("town_founder", "Town Founder", "Complete a Town",
                AchievementCondition(C.TIER_COMPLETIONS, 1, tier=TierType.TOWN),
                AchievementBonus(B.COST_REDUCTION, 0.98)),
    Achievement("city_founder", "City Founder", "Complete a City",
                AchievementCondition(C.TIER_COMPLETIONS, 1, tier=TierType.CITY),
                AchievementBonus(B.RESEARCH_BONUS, 2)),
    Achievement("county_founder", "County Founder", "Complete a County",
                AchievementCondition(C.TIER_COMPLETIONS, 1, tier=TierType.COUNTY),
                AchievementBonus(B.INCOME_MULTIPLIER, 0.03)),
    Achievement("duchy_founder", "Duchy Founder", "Complete a Duchy",
                AchievementCondition(C.TIER_COMPLETIONS, 1, tier=TierType.DUCHY),
                AchievementBonus(B.INCOME_MULTIPLIER, 0.04)),
    Achievement("realm_founder", "Realm Founder", "Complete a Realm",
                AchievementCondition(C.TIER_COMPLETIONS, 1, tier=TierType.REALM),
                AchievementBonus(B.INCOME_MULTIPLIER, 0.05)),
    Achievement("kingdom_founder", "Long Live the King", "Complete a Kingdom",
                AchievementCondition(C.TIER_COMPLETIONS, 1, tier=TierType.KINGDOM),
                AchievementBonus(B.INCOME_MULTIPLIER, 0.1)),
    Achievement("prolific", "Prolific Founder", "Complete 100 settlements",
                AchievementCondition(C.TOTAL_COMPLETIONS, 100),
                AchievementBonus(B.COST_REDUCTION, 0.97)),
    Achievement("first_prestige", "A New Dynasty", "Prestige once",
                AchievementCondition(C.PRESTIGE_COUNT, 1),
                AchievementBonus(B.STARTING_CURRENCY, 0.1)),
    Achievement("dynasty", "Old Dynasty", "Prestige 5 times",
                AchievementCondition(C.PRESTIGE_COUNT, 5),
                AchievementBonus(B.INCOME_MULTIPLIER, 0.05)),
    Achievement("speed_runner", "Speed Runner", "Complete a settlement within 60 seconds",
                AchievementCondition(C.SPEED_COMPLETION, 60),
                AchievementBonus(B.INCOME_MULTIPLIER, 0.02)),
    Achievement("hoarder", "Builder", "Own 100 of a single building",
                AchievementCondition(C.MAX_SINGLE_BUILDING, 100),
                AchievementBonus(B.COST_REDUCTION, 0.99)),
    Achievement("treasure_keeper", "Treasure Keeper", "Hold 1M currency in one settlement",
                AchievementCondition(C.MAX_CURRENCY_HELD, 1_000_000),
                AchievementBonus(B.STARTING_CURRENCY, 0.05)),
    Achievement("sprawl", "Sprawl", "Run 5 settlements at once",
                AchievementCondition(C.SETTLEMENT_COUNT, 5),
                AchievementBonus(B.RESEARCH_BONUS, 1)),
    Achievement("scholar", "Scholar", "Purchase 10 research upgrades",
                AchievementCondition(C.RESEARCH_PURCHASED, 10),
                AchievementBonus(B.RESEARCH_BONUS, 2)),
    Achievement("shoestring", "Shoestring Budget", "Drop below 1 currency while earning income",
                AchievementCondition(C.NEAR_BROKE, 1),
                AchievementBonus(B.STARTING_CURRENCY, 0.05)),
    Achievement("green_thumb", "Green Thumb", "Own 50 Gardens in one Hamlet",
                AchievementCondition(C.SPECIFIC_BUILDING_COUNT, 50, building_id="hamlet_garden"),
                AchievementBonus(B.BUILDING_SYNERGY, 0.005,
                                 source_building_id="hamlet_garden",
                                 target_building_id="hamlet_hut")),
]

del C, B


def create_achievement_catalog() -> List[Achievement]:
    return copy.deepcopy(ACHIEVEMENTS)
