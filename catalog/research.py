from __future__ import annotations

"""Research upgrades bought with tier-scoped research points."""

import copy
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional

from .tiers import TIER_DATA, TierDefinition, TierType


class ResearchEffectType(Enum):
    AUTOBUY_SPEED = "autobuy_speed"
    BULK_BUY = "bulk_buy"
    COST_REDUCTION = "cost_reduction"
    PARALLEL_SLOTS = "parallel_slots"
    STARTING_INCOME = "starting_income"
    STARTING_CAPITAL = "starting_capital"
    AUTO_BUILDING = "auto_building"
    COST_SCALING_REDUCTION = "cost_scaling_reduction"
    FLAT_COST_COUNT = "flat_cost_count"
    TIER_REQUIREMENT_REDUCTION = "tier_requirement_reduction"
    STARTING_BUILDINGS = "starting_buildings"


@dataclass(frozen=True)
class ResearchEffect:
    type: ResearchEffectType
    value: float = 0.0
    building_id: Optional[str] = None
    # Seconds between auto-building attempts
    interval: Optional[float] = None


@dataclass
class ResearchUpgrade:
    id: str
    name: str
    description: str
    cost: int
    tier: TierType
    effect: ResearchEffect
    purchased: bool = False
    prerequisite: Optional[str] = None
    repeatable: bool = False
    level: int = 1


# ---------------------------------------------------------------------------
# Repeatable escalation policy
# ---------------------------------------------------------------------------
RESEARCH_COST_ESCALATION = 3
MIN_AUTO_BUILD_INTERVAL = 5.0

# Effect types that never get a generated next level.
ESCALATION_DENYLIST: FrozenSet[ResearchEffectType] = frozenset({
    ResearchEffectType.PARALLEL_SLOTS,
    ResearchEffectType.TIER_REQUIREMENT_REDUCTION,
    ResearchEffectType.STARTING_BUILDINGS,
    ResearchEffectType.BULK_BUY,
})


def _faster_interval(effect: ResearchEffect) -> ResearchEffect:
    interval = effect.interval if effect.interval is not None else 30.0
    return replace(effect, interval=max(MIN_AUTO_BUILD_INTERVAL, interval * 0.8))


def _deeper_discount(effect: ResearchEffect) -> ResearchEffect:
    return replace(effect, value=round(effect.value * 0.95, 4))


def _same_value(effect: ResearchEffect) -> ResearchEffect:
    return replace(effect)


# Effect of level n+1 given the effect of level n. Additive effects keep their
# value so every level contributes the same amount to the sum.
NEXT_LEVEL_EFFECT: Dict[ResearchEffectType, Callable[[ResearchEffect], ResearchEffect]] = {
    ResearchEffectType.AUTO_BUILDING: _faster_interval,
    ResearchEffectType.COST_REDUCTION: _deeper_discount,
    ResearchEffectType.STARTING_INCOME: _same_value,
    ResearchEffectType.STARTING_CAPITAL: _same_value,
    ResearchEffectType.AUTOBUY_SPEED: _same_value,
    ResearchEffectType.COST_SCALING_REDUCTION: _same_value,
    ResearchEffectType.FLAT_COST_COUNT: _same_value,
}

_LEVEL_ID = re.compile(r"^(?P<base>.+)_(?P<level>\d+)$")
_ROMAN_SUFFIX = re.compile(r"\s+[IVXLCDM]+$")
_ROMAN_NUMERALS = [
    (1000, "M"), (900, "CM"), (500, "D"), (400, "CD"), (100, "C"), (90, "XC"),
    (50, "L"), (40, "XL"), (10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I"),
]


def to_roman(number: int) -> str:
    result = []
    for value, numeral in _ROMAN_NUMERALS:
        while number >= value:
            result.append(numeral)
            number -= value
    return "".join(result)


def split_level_id(upgrade_id: str) -> Optional[tuple]:
    """Split ``<base>_<n>`` into ``(base, n)``."""
    match = _LEVEL_ID.match(upgrade_id)
    if match is None:
        return None
    return match.group("base"), int(match.group("level"))


def next_research_level(
    purchased: ResearchUpgrade,
    research: List[ResearchUpgrade],
    escalation: float = RESEARCH_COST_ESCALATION,
) -> Optional[ResearchUpgrade]:
    """
    Build the next level of a research chain after ``purchased`` was bought.

    Returns ``None`` when the effect type is not escalated, when the id does
    not follow the ``<base>_<n>`` convention, or when the chain already has an
    unpurchased later level. The new level costs ``escalation`` times the
    purchased one.
    """
    effect_type = purchased.effect.type
    if effect_type in ESCALATION_DENYLIST or effect_type not in NEXT_LEVEL_EFFECT:
        return None
    parts = split_level_id(purchased.id)
    if parts is None:
        return None
    base, level = parts

    existing_ids = set()
    for upgrade in research:
        existing_ids.add(upgrade.id)
        other = split_level_id(upgrade.id)
        if other and other[0] == base and other[1] > level and not upgrade.purchased:
            return None

    next_id = f"{base}_{level + 1}"
    if next_id in existing_ids:
        return None

    base_name = _ROMAN_SUFFIX.sub("", purchased.name)
    return ResearchUpgrade(
        id=next_id,
        name=f"{base_name} {to_roman(level + 1)}",
        description=purchased.description,
        cost=int(round(purchased.cost * escalation)),
        tier=purchased.tier,
        effect=NEXT_LEVEL_EFFECT[effect_type](purchased.effect),
        prerequisite=purchased.id,
        repeatable=True,
        level=level + 1,
    )


# ---------------------------------------------------------------------------
# Seed catalog
# ---------------------------------------------------------------------------
def _tier_research(tier: TierDefinition) -> List[ResearchUpgrade]:
    t = tier.type.value
    first, second = tier.buildings[0], tier.buildings[1]
    return [
        ResearchUpgrade(
            id=f"{t}_cost_reduction_1",
            name=f"{tier.name} Efficient Building",
            description=f"-10% building costs in every {tier.name}",
            cost=10,
            tier=tier.type,
            effect=ResearchEffect(ResearchEffectType.COST_REDUCTION, 0.9),
        ),
        ResearchUpgrade(
            id=f"{t}_starting_income_1",
            name=f"{tier.name} Trade Routes",
            description=f"+{first.base_income * 2:g} base income in every {tier.name}",
            cost=15,
            tier=tier.type,
            effect=ResearchEffect(ResearchEffectType.STARTING_INCOME, first.base_income * 2),
        ),
        ResearchUpgrade(
            id=f"{t}_starting_capital_1",
            name=f"{tier.name} Founding Grant",
            description=f"New {tier.name}s start with {first.base_cost * 5:g} extra currency",
            cost=10,
            tier=tier.type,
            effect=ResearchEffect(ResearchEffectType.STARTING_CAPITAL, first.base_cost * 5),
        ),
        ResearchUpgrade(
            id=f"{t}_bulk_buy_1",
            name=f"{tier.name} Bulk Orders",
            description="Buy 10 buildings at once",
            cost=5,
            tier=tier.type,
            effect=ResearchEffect(ResearchEffectType.BULK_BUY, 10),
        ),
        ResearchUpgrade(
            id=f"auto_{first.id}_1",
            name=f"Automated {first.name}",
            description=f"Builds a {first.name} every 30 seconds",
            cost=20,
            tier=tier.type,
            effect=ResearchEffect(ResearchEffectType.AUTO_BUILDING, building_id=first.id, interval=30.0),
        ),
        ResearchUpgrade(
            id=f"auto_{second.id}_1",
            name=f"Automated {second.name}",
            description=f"Builds a {second.name} every 45 seconds",
            cost=30,
            tier=tier.type,
            effect=ResearchEffect(ResearchEffectType.AUTO_BUILDING, building_id=second.id, interval=45.0),
            prerequisite=f"auto_{first.id}_1",
        ),
        ResearchUpgrade(
            id=f"{t}_autobuy_speed_1",
            name=f"{tier.name} Foremen",
            description="Auto-builders work 10% faster",
            cost=25,
            tier=tier.type,
            effect=ResearchEffect(ResearchEffectType.AUTOBUY_SPEED, 0.1),
            prerequisite=f"auto_{first.id}_1",
        ),
        ResearchUpgrade(
            id=f"{t}_flat_cost_1",
            name=f"{tier.name} Prefabrication",
            description="The first 2 copies of each building ignore cost growth",
            cost=25,
            tier=tier.type,
            effect=ResearchEffect(ResearchEffectType.FLAT_COST_COUNT, 2),
        ),
        ResearchUpgrade(
            id=f"{t}_cost_scaling_1",
            name=f"{tier.name} Standardization",
            description="Building cost growth reduced by 0.01",
            cost=50,
            tier=tier.type,
            effect=ResearchEffect(ResearchEffectType.COST_SCALING_REDUCTION, 0.01),
            prerequisite=f"{t}_cost_reduction_1",
        ),
        ResearchUpgrade(
            id=f"{t}_parallel_slots_1",
            name=f"{tier.name} Expansion",
            description=f"Run one more {tier.name} at a time",
            cost=40,
            tier=tier.type,
            effect=ResearchEffect(ResearchEffectType.PARALLEL_SLOTS, 1),
        ),
        ResearchUpgrade(
            id=f"{t}_parallel_slots_2",
            name=f"{tier.name} Expansion II",
            description=f"Run one more {tier.name} at a time",
            cost=120,
            tier=tier.type,
            effect=ResearchEffect(ResearchEffectType.PARALLEL_SLOTS, 1),
            prerequisite=f"{t}_parallel_slots_1",
        ),
        ResearchUpgrade(
            id=f"{t}_tier_requirement_1",
            name=f"{tier.name} Charter",
            description="One fewer completion needed to advance",
            cost=60,
            tier=tier.type,
            effect=ResearchEffect(ResearchEffectType.TIER_REQUIREMENT_REDUCTION, 1),
        ),
        ResearchUpgrade(
            id=f"{t}_starting_buildings_1",
            name=f"{tier.name} Settlers",
            description=f"New {tier.name}s start with 5 {first.name}s",
            cost=35,
            tier=tier.type,
            effect=ResearchEffect(ResearchEffectType.STARTING_BUILDINGS, 5, building_id=first.id),
        ),
    ]


RESEARCH_DATA: List[ResearchUpgrade] = [
    upgrade for tier in TIER_DATA for upgrade in _tier_research(tier)
]


def create_research_catalog() -> List[ResearchUpgrade]:
    """Fresh, unpurchased copy of the seed research list."""
    return copy.deepcopy(RESEARCH_DATA)
