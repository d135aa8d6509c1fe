from __future__ import annotations

"""Permanent upgrades bought with prestige currency."""

import copy
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .tiers import TierType


class PrestigeEffectType(Enum):
    INCOME_MULTIPLIER = "prestige_income_multiplier"
    COST_REDUCTION = "prestige_cost_reduction"
    RESEARCH_BONUS = "prestige_research_bonus"
    GOAL_REDUCTION = "prestige_goal_reduction"
    STARTING_CURRENCY = "prestige_starting_currency"
    AUTOBUILD_SPEED = "prestige_autobuild_speed"
    SURVIVAL_SPEED = "prestige_survival_speed"
    FLAT_COST_COUNT = "prestige_flat_cost_count"
    COST_SCALING_REDUCTION = "prestige_cost_scaling_reduction"
    BUILDING_INCOME_BOOST = "prestige_building_income_boost"
    PATRONAGE_BOOST = "prestige_patronage_boost"
    RESEARCH_DISCOUNT = "prestige_research_discount"
    FREE_BUILDINGS = "prestige_free_buildings"
    CURRENCY_BOOST = "prestige_currency_boost"
    MASTERY_BOOST = "prestige_mastery_boost"
    PRODUCTION_BOOST_AMPLIFIER = "prestige_production_boost_amplifier"
    GRANT_BUILDING = "prestige_grant_building"
    TIER_REQUIREMENT_REDUCTION = "prestige_tier_requirement_reduction"
    BUILDING_SYNERGY = "prestige_building_synergy"
    PARALLEL_SLOTS = "prestige_parallel_slots"


@dataclass(frozen=True)
class PrestigeEffect:
    type: PrestigeEffectType
    value: float
    target_building: Optional[str] = None
    source_building: Optional[str] = None


@dataclass
class PrestigeUpgrade:
    id: str
    name: str
    description: str
    cost: int
    tier: TierType
    effect: PrestigeEffect
    purchased: bool = False
    prerequisite: Optional[str] = None
    repeatable: bool = False
    level: int = 0


def _upgrade(id, name, description, cost, tier, effect_type, value, prerequisite=None, **kwargs):
    repeatable = kwargs.pop("repeatable", False)
    return PrestigeUpgrade(
        id=id,
        name=name,
        description=description,
        cost=cost,
        tier=tier,
        effect=PrestigeEffect(effect_type, value, **kwargs),
        prerequisite=prerequisite,
        repeatable=repeatable,
    )


E = PrestigeEffectType

PRESTIGE_UPGRADES: List[PrestigeUpgrade] = [
    # Village crowns: income
    _upgrade("prestige_growth_1", "Crown of Growth I", "+15% income to all settlements",
             1, TierType.VILLAGE, E.INCOME_MULTIPLIER, 0.15),
    _upgrade("prestige_growth_2", "Crown of Growth II", "+25% income to all settlements",
             2, TierType.VILLAGE, E.INCOME_MULTIPLIER, 0.25, "prestige_growth_1"),
    _upgrade("prestige_growth_3", "Crown of Growth III", "+40% income to all settlements",
             4, TierType.VILLAGE, E.INCOME_MULTIPLIER, 0.4, "prestige_growth_2"),
    _upgrade("prestige_growth_repeat", "Endless Growth", "+3% income per level",
             5, TierType.VILLAGE, E.INCOME_MULTIPLIER, 0.03, "prestige_growth_3", repeatable=True),
    _upgrade("prestige_hut_boost", "Sturdy Huts", "+100% Hut income",
             1, TierType.VILLAGE, E.BUILDING_INCOME_BOOST, 1.0, target_building="hamlet_hut"),

    # Town crowns: costs
    _upgrade("prestige_industry_1", "Crown of Industry I", "-10% all building costs",
             1, TierType.TOWN, E.COST_REDUCTION, 0.9),
    _upgrade("prestige_industry_2", "Crown of Industry II", "-15% all building costs",
             2, TierType.TOWN, E.COST_REDUCTION, 0.85, "prestige_industry_1"),
    _upgrade("prestige_industry_3", "Crown of Industry III", "-25% all building costs",
             4, TierType.TOWN, E.COST_REDUCTION, 0.75, "prestige_industry_2"),
    _upgrade("prestige_forge_boost", "Masterwork Forges", "+50% Forge income",
             2, TierType.TOWN, E.BUILDING_INCOME_BOOST, 0.5, target_building="town_forge"),
    _upgrade("prestige_flat_cost", "Guild Templates", "First 2 copies of each building ignore cost growth",
             3, TierType.TOWN, E.FLAT_COST_COUNT, 2),

    # City crowns: research
    _upgrade("prestige_knowledge_1", "Crown of Knowledge I", "+5 research points per completion",
             1, TierType.CITY, E.RESEARCH_BONUS, 5),
    _upgrade("prestige_knowledge_2", "Crown of Knowledge II", "+10 research points per completion",
             2, TierType.CITY, E.RESEARCH_BONUS, 10, "prestige_knowledge_1"),
    _upgrade("prestige_scholarship", "Royal Scholarship", "-15% research costs",
             3, TierType.CITY, E.RESEARCH_DISCOUNT, 0.85, "prestige_knowledge_1"),
    _upgrade("prestige_bazaar_boost", "Silk Road", "+75% Bazaar income",
             2, TierType.CITY, E.BUILDING_INCOME_BOOST, 0.75, target_building="city_bazaar"),

    # County crowns: goals and time
    _upgrade("prestige_ambition_1", "Crown of Ambition I", "-10% goal targets",
             1, TierType.COUNTY, E.GOAL_REDUCTION, 0.1),
    _upgrade("prestige_ambition_2", "Crown of Ambition II", "-15% goal targets",
             2, TierType.COUNTY, E.GOAL_REDUCTION, 0.15, "prestige_ambition_1"),
    _upgrade("prestige_seasons_1", "Gentle Seasons", "Prosperity goals progress 20% faster",
             2, TierType.COUNTY, E.SURVIVAL_SPEED, 0.2),
    _upgrade("prestige_seasons_repeat", "Endless Summer", "Prosperity goals progress 5% faster per level",
             3, TierType.COUNTY, E.SURVIVAL_SPEED, 0.05, "prestige_seasons_1", repeatable=True),

    # Duchy crowns: fresh starts
    _upgrade("prestige_fortune_1", "Crown of Fortune I", "2x starting currency",
             1, TierType.DUCHY, E.STARTING_CURRENCY, 2),
    _upgrade("prestige_fortune_2", "Crown of Fortune II", "3x starting currency",
             2, TierType.DUCHY, E.STARTING_CURRENCY, 3, "prestige_fortune_1"),
    _upgrade("prestige_free_huts", "Settler Caravans", "New settlements start with 2 of their cheapest building",
             2, TierType.DUCHY, E.FREE_BUILDINGS, 2),
    _upgrade("prestige_grant_library", "Royal Archive", "New Hamlets start with a Library",
             3, TierType.DUCHY, E.GRANT_BUILDING, 1, target_building="hamlet_library"),

    # Realm crowns: automation
    _upgrade("prestige_automation_1", "Crown of Automation I", "Auto-builders 15% faster",
             1, TierType.REALM, E.AUTOBUILD_SPEED, 0.15),
    _upgrade("prestige_automation_2", "Crown of Automation II", "Auto-builders 25% faster",
             2, TierType.REALM, E.AUTOBUILD_SPEED, 0.25, "prestige_automation_1"),
    _upgrade("prestige_mastery", "Ancestral Mastery", "+50% mastery bonuses",
             2, TierType.REALM, E.MASTERY_BOOST, 0.5),
    _upgrade("prestige_hamlet_slot", "Twin Hamlets", "Run one more Hamlet at a time",
             4, TierType.REALM, E.PARALLEL_SLOTS, 1),

    # Kingdom crowns: everything else
    _upgrade("prestige_legacy", "Crown of Legacy", "+25% prestige currency earned",
             1, TierType.KINGDOM, E.CURRENCY_BOOST, 0.25),
    _upgrade("prestige_patronage", "Royal Patronage", "+50% patronage income",
             1, TierType.KINGDOM, E.PATRONAGE_BOOST, 0.5),
    _upgrade("prestige_amplifier", "Harmonious Crafts", "Production boosts 20% stronger",
             2, TierType.KINGDOM, E.PRODUCTION_BOOST_AMPLIFIER, 0.2),
    _upgrade("prestige_charter", "Royal Charter", "One fewer completion needed to advance a tier",
             3, TierType.KINGDOM, E.TIER_REQUIREMENT_REDUCTION, 1),
    _upgrade("prestige_scaling", "Imperial Standards", "Building cost growth reduced by 0.02",
             3, TierType.KINGDOM, E.COST_SCALING_REDUCTION, 0.02),
    _upgrade("prestige_garden_synergy", "Kitchen Gardens", "+2% Hut income per Garden",
             2, TierType.KINGDOM, E.BUILDING_SYNERGY, 0.02,
             target_building="hamlet_hut", source_building="hamlet_garden"),
]

del E


def calculate_prestige_currency(completions: int) -> int:
    """Prestige currency earned from ``completions`` in one tier."""
    if completions <= 0:
        return 0
    return math.isqrt(int(completions))


def get_prestige_upgrade_cost(upgrade: PrestigeUpgrade) -> int:
    """Repeatable upgrades cost one more per level already bought."""
    if upgrade.repeatable:
        return upgrade.cost + upgrade.level
    return upgrade.cost


def create_prestige_catalog() -> List[PrestigeUpgrade]:
    return copy.deepcopy(PRESTIGE_UPGRADES)
