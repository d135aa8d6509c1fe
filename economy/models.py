from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Union

from catalog.achievements import Achievement
from catalog.goals import Goal
from catalog.prestige import PrestigeUpgrade
from catalog.research import ResearchUpgrade
from catalog.tiers import TierType

# 1, 5, "max" or the size unlocked by a bulk-buy research
BuyAmount = Union[int, str]


@dataclass
class Settlement:
    """A single playable instance of a tier."""

    id: str
    tier: TierType
    currency: float
    buildings: Dict[str, int]
    spawn_time: float
    total_income: float = 0.0
    lifetime_currency_earned: float = 0.0
    total_currency_spent: float = 0.0
    is_complete: bool = False
    goals: List[Goal] = field(default_factory=list)

    def total_buildings(self) -> int:
        return sum(self.buildings.values())


@dataclass
class GameSettings:
    dev_mode_enabled: bool = False
    buy_amount: BuyAmount = 1
    autobuy_enabled: bool = True
    show_completed_research: bool = True
    show_prestige_shop: bool = False
    show_completed_prestige: bool = True
    compact_view: bool = False
    goal_notifications_by_tier: Dict[str, bool] = field(default_factory=dict)


@dataclass
class GameNotification:
    id: int
    type: str
    message: str
    timestamp: float
    tier: Optional[TierType] = None


@dataclass
class GameState:
    """Everything the engine owns. Only the engine mutates it."""

    settlements: List[Settlement] = field(default_factory=list)
    research_points: Dict[TierType, float] = field(default_factory=dict)
    unlocked_tiers: Set[TierType] = field(default_factory=set)
    completed_settlements: Dict[TierType, int] = field(default_factory=dict)
    research: List[ResearchUpgrade] = field(default_factory=list)
    auto_building_timers: Dict[str, float] = field(default_factory=dict)
    prestige_currency: Dict[TierType, int] = field(default_factory=dict)
    prestige_count: int = 0
    lifetime_completions: Dict[TierType, int] = field(default_factory=dict)
    prestige_upgrades: List[PrestigeUpgrade] = field(default_factory=list)
    achievements: List[Achievement] = field(default_factory=list)
    # Single-slot higher tiers waiting for a re-arm or a manual spawn
    dormant_tiers: Set[TierType] = field(default_factory=set)
    next_settlement_id: int = 0
    settings: GameSettings = field(default_factory=GameSettings)
