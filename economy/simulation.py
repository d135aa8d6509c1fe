from __future__ import annotations

"""
Balance simulation harness.

Strategy: buy a random affordable building once per simulated second and
measure how long each goal template of a tier takes to complete. No prestige
or mastery is active, so this measures the raw baseline economy. Research
can be pre-purchased to compare its value against the baseline.
"""

import copy
import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from catalog.goals import Goal, GoalGenerator, GoalType
from catalog.research import create_research_catalog
from catalog.tiers import BASE_TIER, TierType, get_tier_by_type
from .engine import GameStateManager
from .models import GameState

logger = logging.getLogger("kingdoms.Simulation")
logger.addHandler(logging.NullHandler())

# Acceptable completion window per tier, in simulated minutes
TIER_BOUNDS: Dict[TierType, Tuple[int, int]] = {
    TierType.HAMLET: (5, 20),
    TierType.VILLAGE: (7, 23),
    TierType.TOWN: (9, 26),
    TierType.CITY: (11, 29),
    TierType.COUNTY: (13, 32),
    TierType.DUCHY: (15, 35),
    TierType.REALM: (17, 38),
    TierType.KINGDOM: (19, 41),
}

HARD_CAP_SECONDS = 60 * 240
SIMULATION_START = 1_000_000.0

STATUS_OK = "OK"
STATUS_TOO_FAST = "TOO FAST"
STATUS_TOO_SLOW = "TOO SLOW"
STATUS_DNF = "DID NOT COMPLETE"


class SimulatedClock:
    """Manually advanced clock for driving the engine deterministically."""

    def __init__(self, start: float = SIMULATION_START):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@dataclass
class SimResult:
    tier: TierType
    goal: str
    target: float
    seconds: Optional[int]
    max_minutes: int
    status: str

    @property
    def minutes(self) -> Optional[float]:
        return None if self.seconds is None else self.seconds / 60


@dataclass
class ResearchComparison:
    goal: str
    baseline_seconds: Optional[int]
    research_seconds: Optional[int]

    @property
    def speedup_percent(self) -> Optional[float]:
        if not self.baseline_seconds or self.research_seconds is None:
            return None
        return (self.baseline_seconds - self.research_seconds) / self.baseline_seconds * 100


def goal_max_minutes(goal: Goal, tier: TierType) -> int:
    """
    Upper bound for ``goal``. Building-count goals on expensive buildings get
    a wider window, scaled by log10 of their cost relative to the cheapest.
    """
    base_max = TIER_BOUNDS[tier][1]
    if goal.type is not GoalType.BUILDING_COUNT or not goal.building_id:
        return base_max
    tier_def = get_tier_by_type(tier)
    building = next((b for b in tier_def.buildings if b.id == goal.building_id), None)
    if building is None:
        return base_max
    cost_ratio = building.base_cost / tier_def.buildings[0].base_cost
    if cost_ratio <= 1:
        return base_max
    return math.ceil(base_max * (1 + math.log10(cost_ratio) * 3))


def _build_state(tier: TierType, research_ids: Iterable[str]) -> GameState:
    research = create_research_catalog()
    wanted = set(research_ids)
    for upgrade in research:
        if upgrade.id in wanted:
            upgrade.purchased = True
    state = GameState(
        research_points={BASE_TIER: 0, tier: 0},
        unlocked_tiers={tier},
        research=research,
    )
    # The harness drives purchases itself
    state.settings.autobuy_enabled = False
    return state


def simulate_goal(
    tier: TierType,
    goal: Goal,
    *,
    seed: int = 42,
    hard_cap_seconds: int = HARD_CAP_SECONDS,
    research_ids: Iterable[str] = (),
) -> Optional[int]:
    """
    Simulated seconds a fresh ``tier`` settlement needs to complete ``goal``,
    or ``None`` when it hits ``hard_cap_seconds``.
    """
    clock = SimulatedClock()
    game = GameStateManager(
        _build_state(tier, research_ids), clock=clock, rng=random.Random(seed)
    )
    settlement = next(s for s in game.state.settlements if s.tier == tier)
    game.state.settlements = [settlement]

    trial = copy.deepcopy(goal)
    trial.current_value = 0.0
    trial.is_completed = False
    settlement.goals = [trial]

    buyer = random.Random(seed)
    building_ids = [b.id for b in get_tier_by_type(tier).buildings]

    for tick in range(hard_cap_seconds):
        clock.advance(1)
        game.update()
        if settlement.is_complete:
            return tick

        affordable = [
            bid for bid in building_ids
            if settlement.currency >= game.get_building_cost(settlement.id, bid)
        ]
        if affordable:
            game.buy_building(settlement.id, buyer.choice(affordable))
        if settlement.is_complete:
            return tick

    return None


def classify(seconds: Optional[int], tier: TierType, max_minutes: int) -> str:
    if seconds is None:
        return STATUS_DNF
    minutes = seconds / 60
    if minutes < TIER_BOUNDS[tier][0]:
        return STATUS_TOO_FAST
    if minutes > max_minutes:
        return STATUS_TOO_SLOW
    return STATUS_OK


def run_tier_simulation(tier: TierType, *, seed: int = 42, hard_cap_seconds: int = HARD_CAP_SECONDS) -> List[SimResult]:
    """Simulate every goal template of ``tier``."""
    results = []
    for goal in GoalGenerator().get_all_goal_templates(tier):
        seconds = simulate_goal(tier, goal, seed=seed, hard_cap_seconds=hard_cap_seconds)
        max_minutes = goal_max_minutes(goal, tier)
        result = SimResult(
            tier=tier,
            goal=goal.description,
            target=goal.target_value,
            seconds=seconds,
            max_minutes=max_minutes,
            status=classify(seconds, tier, max_minutes),
        )
        logger.debug("%s: %s -> %s", tier.value, goal.description, result.status)
        results.append(result)
    return results


def compare_research(
    tier: TierType,
    research_ids: Iterable[str],
    *,
    seed: int = 42,
    hard_cap_seconds: int = HARD_CAP_SECONDS,
) -> List[ResearchComparison]:
    """Completion times of every goal template with and without ``research_ids``."""
    research_ids = list(research_ids)
    comparisons = []
    for goal in GoalGenerator().get_all_goal_templates(tier):
        comparisons.append(
            ResearchComparison(
                goal=goal.description,
                baseline_seconds=simulate_goal(tier, goal, seed=seed, hard_cap_seconds=hard_cap_seconds),
                research_seconds=simulate_goal(
                    tier, goal, seed=seed, hard_cap_seconds=hard_cap_seconds, research_ids=research_ids
                ),
            )
        )
    return comparisons


_STATUS_MARKS = {
    STATUS_OK: "  OK",
    STATUS_TOO_FAST: "  << TOO FAST",
    STATUS_TOO_SLOW: "  >> TOO SLOW",
    STATUS_DNF: "  !! DID NOT COMPLETE",
}


def format_report(results: List[SimResult]) -> str:
    if not results:
        return "No simulation results."
    tier_name = get_tier_by_type(results[0].tier).name
    lines = [
        "=" * 90,
        f"  BALANCE SIMULATION - {tier_name.upper()}",
        "=" * 90,
        f"  {'Tier':<10} {'Goal':<30} {'Target':>12} {'Time':>10} {'Max':>6}  Status",
        "-" * 90,
    ]
    for r in results:
        time_str = f"{r.minutes:.1f} min" if r.minutes is not None else "DNF"
        lines.append(
            f"  {tier_name:<10} {r.goal[:30]:<30} {r.target:>12g} {time_str:>10} {r.max_minutes:>6}"
            f"{_STATUS_MARKS[r.status]}"
        )
    passed = sum(1 for r in results if r.status == STATUS_OK)
    lines += ["-" * 90, f"  {passed}/{len(results)} goals within bounds", "=" * 90]
    return "\n".join(lines)
