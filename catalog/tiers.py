from __future__ import annotations

"""Tier ladder and the buildings available in each tier."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union


class TierType(Enum):
    """Rungs of the progression ladder, in unlock order."""

    HAMLET = "hamlet"
    VILLAGE = "village"
    TOWN = "town"
    CITY = "city"
    COUNTY = "county"
    DUCHY = "duchy"
    REALM = "realm"
    KINGDOM = "kingdom"


class BuildingEffectType(Enum):
    """Special effects a building applies to its own settlement."""

    INCOME_MULTIPLIER = "income_multiplier"
    COST_REDUCTION = "cost_reduction"
    COMPLETION_BONUS = "completion_bonus"
    INCOME_PER_BUILDING = "income_per_building"
    PRODUCTION_BOOST = "production_boost"
    GOAL_REDUCTION = "goal_reduction"


@dataclass(frozen=True)
class BuildingEffect:
    type: BuildingEffectType
    value: float
    description: str = ""
    # Only used by PRODUCTION_BOOST
    target_building: Optional[str] = None


@dataclass(frozen=True)
class Building:
    id: str
    name: str
    base_cost: float
    base_income: float
    cost_multiplier: float
    description: str = ""
    effect: Optional[BuildingEffect] = None


@dataclass(frozen=True)
class TierDefinition:
    type: TierType
    name: str
    unlock_requirement: int
    completion_threshold: float
    buildings: List[Building] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Tier data
# ---------------------------------------------------------------------------
TIER_DATA: List[TierDefinition] = [
    TierDefinition(
        type=TierType.HAMLET,
        name="Hamlet",
        unlock_requirement=0,
        completion_threshold=1_000,
        buildings=[
            Building("hamlet_hut", "Hut", 10, 1, 1.15, "A humble dwelling"),
            Building("hamlet_garden", "Garden", 75, 4, 1.15, "Grows food for the hamlet"),
            Building("hamlet_workshop", "Workshop", 400, 15, 1.16, "Simple tools and crafts"),
            Building(
                "hamlet_shrine", "Shrine", 1_500, 35, 1.18, "A place of quiet worship",
                BuildingEffect(BuildingEffectType.INCOME_MULTIPLIER, 0.02, "+2% settlement income each"),
            ),
            Building(
                "hamlet_market", "Market Stall", 4_000, 70, 1.2, "Local traders haggle here",
                BuildingEffect(BuildingEffectType.COST_REDUCTION, 0.01, "-1% building costs each"),
            ),
            Building(
                "hamlet_library", "Library", 10_000, 120, 1.22, "Scrolls and ledgers",
                BuildingEffect(BuildingEffectType.COMPLETION_BONUS, 1, "+1 research on completion each"),
            ),
        ],
    ),
    TierDefinition(
        type=TierType.VILLAGE,
        name="Village",
        unlock_requirement=6,
        completion_threshold=10_000,
        buildings=[
            Building("village_cottage", "Cottage", 100, 8, 1.15, "Homes for growing families"),
            Building(
                "village_mill", "Mill", 600, 30, 1.15, "Grinds grain for the cottages",
                BuildingEffect(
                    BuildingEffectType.PRODUCTION_BOOST, 0.05, "+5% Cottage income each",
                    target_building="village_cottage",
                ),
            ),
            Building(
                "village_well", "Well", 2_500, 90, 1.17, "Fresh water eases every task",
                BuildingEffect(BuildingEffectType.GOAL_REDUCTION, 0.01, "-1% goal targets each"),
            ),
            Building(
                "village_herbalist", "Herbalist", 8_000, 220, 1.19, "Remedies keep workers healthy",
                BuildingEffect(BuildingEffectType.INCOME_MULTIPLIER, 0.03, "+3% settlement income each"),
            ),
            Building(
                "village_chapel", "Chapel", 20_000, 450, 1.22, "Records births and harvests",
                BuildingEffect(BuildingEffectType.COMPLETION_BONUS, 2, "+2 research on completion each"),
            ),
        ],
    ),
    TierDefinition(
        type=TierType.TOWN,
        name="Town",
        unlock_requirement=6,
        completion_threshold=100_000,
        buildings=[
            Building("town_market", "Market", 1_000, 60, 1.15, "A bustling square"),
            Building("town_forge", "Forge", 6_000, 220, 1.16, "Smiths hammer out tools"),
            Building(
                "town_granary", "Granary", 25_000, 700, 1.18, "Stores the surplus of every building",
                BuildingEffect(BuildingEffectType.INCOME_PER_BUILDING, 0.5, "+0.5 income per building owned each"),
            ),
            Building(
                "town_watchtower", "Watchtower", 80_000, 1_600, 1.2, "Guards the trade roads",
                BuildingEffect(BuildingEffectType.COST_REDUCTION, 0.01, "-1% building costs each"),
            ),
            Building(
                "town_guildhall", "Guildhall", 200_000, 3_200, 1.22, "Masters train apprentices",
                BuildingEffect(BuildingEffectType.COMPLETION_BONUS, 3, "+3 research on completion each"),
            ),
        ],
    ),
    TierDefinition(
        type=TierType.CITY,
        name="City",
        unlock_requirement=6,
        completion_threshold=1_000_000,
        buildings=[
            Building("city_bazaar", "Bazaar", 10_000, 450, 1.15, "Goods from distant lands"),
            Building(
                "city_university", "University", 60_000, 1_700, 1.16, "Scholars improve the bazaars",
                BuildingEffect(
                    BuildingEffectType.PRODUCTION_BOOST, 0.05, "+5% Bazaar income each",
                    target_building="city_bazaar",
                ),
            ),
            Building(
                "city_observatory", "Observatory", 250_000, 5_000, 1.18, "Charts the seasons",
                BuildingEffect(BuildingEffectType.GOAL_REDUCTION, 0.01, "-1% goal targets each"),
            ),
            Building(
                "city_cathedral", "Cathedral", 800_000, 12_000, 1.2, "Draws pilgrims and their coin",
                BuildingEffect(BuildingEffectType.INCOME_MULTIPLIER, 0.03, "+3% settlement income each"),
            ),
            Building(
                "city_trade_guild", "Trade Guild", 2_000_000, 25_000, 1.22, "Negotiates bulk materials",
                BuildingEffect(BuildingEffectType.COST_REDUCTION, 0.015, "-1.5% building costs each"),
            ),
        ],
    ),
    TierDefinition(
        type=TierType.COUNTY,
        name="County",
        unlock_requirement=6,
        completion_threshold=10_000_000,
        buildings=[
            Building("county_farmstead", "Farmstead", 100_000, 3_500, 1.15, "Fields as far as the eye sees"),
            Building(
                "county_manor", "Manor", 600_000, 13_000, 1.16, "Stewards manage the estate",
                BuildingEffect(BuildingEffectType.INCOME_PER_BUILDING, 2, "+2 income per building owned each"),
            ),
            Building(
                "county_courthouse", "Courthouse", 2_500_000, 40_000, 1.18, "Settles disputes quickly",
                BuildingEffect(BuildingEffectType.GOAL_REDUCTION, 0.01, "-1% goal targets each"),
            ),
            Building(
                "county_plantation", "Plantation", 8_000_000, 95_000, 1.2, "Feeds the farmsteads",
                BuildingEffect(
                    BuildingEffectType.PRODUCTION_BOOST, 0.05, "+5% Farmstead income each",
                    target_building="county_farmstead",
                ),
            ),
            Building(
                "county_keep", "Keep", 20_000_000, 200_000, 1.22, "Seat of the count",
                BuildingEffect(BuildingEffectType.COMPLETION_BONUS, 5, "+5 research on completion each"),
            ),
        ],
    ),
    TierDefinition(
        type=TierType.DUCHY,
        name="Duchy",
        unlock_requirement=6,
        completion_threshold=100_000_000,
        buildings=[
            Building("duchy_port", "Port", 1_000_000, 28_000, 1.15, "Ships carry the duchy's wares"),
            Building(
                "duchy_exchange", "Exchange", 6_000_000, 100_000, 1.17, "Merchants pool their capital",
                BuildingEffect(BuildingEffectType.COST_REDUCTION, 0.015, "-1.5% building costs each"),
            ),
            Building(
                "duchy_academy", "Academy", 30_000_000, 350_000, 1.19, "Trains the duke's officials",
                BuildingEffect(BuildingEffectType.COMPLETION_BONUS, 6, "+6 research on completion each"),
            ),
            Building(
                "duchy_palace", "Palace", 100_000_000, 900_000, 1.22, "A court of splendour",
                BuildingEffect(BuildingEffectType.INCOME_MULTIPLIER, 0.04, "+4% settlement income each"),
            ),
        ],
    ),
    TierDefinition(
        type=TierType.REALM,
        name="Realm",
        unlock_requirement=6,
        completion_threshold=1_000_000_000,
        buildings=[
            Building("realm_guild", "Grand Guild", 10_000_000, 220_000, 1.15, "Crafts for the whole realm"),
            Building(
                "realm_sanctum", "Sanctum", 70_000_000, 850_000, 1.17, "Oracles foresee every need",
                BuildingEffect(BuildingEffectType.GOAL_REDUCTION, 0.015, "-1.5% goal targets each"),
            ),
            Building(
                "realm_wonder", "Wonder", 300_000_000, 2_800_000, 1.2, "Admired across the continent",
                BuildingEffect(BuildingEffectType.INCOME_MULTIPLIER, 0.05, "+5% settlement income each"),
            ),
            Building(
                "realm_citadel", "Citadel", 1_000_000_000, 7_000_000, 1.23, "Protects the guild routes",
                BuildingEffect(
                    BuildingEffectType.PRODUCTION_BOOST, 0.04, "+4% Grand Guild income each",
                    target_building="realm_guild",
                ),
            ),
        ],
    ),
    TierDefinition(
        type=TierType.KINGDOM,
        name="Kingdom",
        unlock_requirement=6,
        completion_threshold=10_000_000_000,
        buildings=[
            Building("kingdom_capital", "Capital District", 100_000_000, 1_800_000, 1.15, "Heart of the kingdom"),
            Building(
                "kingdom_treasury", "Royal Treasury", 700_000_000, 7_000_000, 1.17, "Funds every project",
                BuildingEffect(BuildingEffectType.COST_REDUCTION, 0.02, "-2% building costs each"),
            ),
            Building(
                "kingdom_senate", "Senate", 3_000_000_000, 24_000_000, 1.19, "Coordinates the provinces",
                BuildingEffect(BuildingEffectType.INCOME_PER_BUILDING, 50, "+50 income per building owned each"),
            ),
            Building(
                "kingdom_monument", "Monument", 10_000_000_000, 60_000_000, 1.23, "Legacy carved in stone",
                BuildingEffect(BuildingEffectType.COMPLETION_BONUS, 10, "+10 research on completion each"),
            ),
        ],
    ),
]

TIER_ORDER: List[TierType] = [tier.type for tier in TIER_DATA]
BASE_TIER: TierType = TIER_ORDER[0]

_TIERS_BY_TYPE: Dict[TierType, TierDefinition] = {tier.type: tier for tier in TIER_DATA}
BUILDINGS_BY_ID: Dict[str, Building] = {
    building.id: building for tier in TIER_DATA for building in tier.buildings
}
BUILDING_TIER: Dict[str, TierType] = {
    building.id: tier.type for tier in TIER_DATA for building in tier.buildings
}


def _coerce_tier(tier: Union[TierType, str]) -> Optional[TierType]:
    if isinstance(tier, TierType):
        return tier
    try:
        return TierType(tier)
    except ValueError:
        return None


def get_tier_by_type(tier: Union[TierType, str]) -> Optional[TierDefinition]:
    """Return the tier definition, or ``None`` for an unknown tier."""
    tier_type = _coerce_tier(tier)
    if tier_type is None:
        return None
    return _TIERS_BY_TYPE.get(tier_type)


def get_tier_index(tier: TierType) -> int:
    return TIER_ORDER.index(tier)


def get_next_tier(tier: TierType) -> Optional[TierType]:
    index = get_tier_index(tier)
    if index + 1 < len(TIER_ORDER):
        return TIER_ORDER[index + 1]
    return None


def get_building(building_id: str) -> Optional[Building]:
    return BUILDINGS_BY_ID.get(building_id)
