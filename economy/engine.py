from __future__ import annotations

import logging
import math
import random
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from catalog.achievements import (
    Achievement,
    AchievementBonusType,
    AchievementCondition,
    AchievementConditionType,
    create_achievement_catalog,
)
from catalog.goals import GoalGenerator, GoalType
from catalog.prestige import (
    PrestigeEffectType,
    PrestigeUpgrade,
    calculate_prestige_currency,
    create_prestige_catalog,
    get_prestige_upgrade_cost,
)
from catalog.research import (
    ResearchEffectType,
    ResearchUpgrade,
    create_research_catalog,
    next_research_level,
)
from catalog.tiers import (
    BASE_TIER,
    TIER_DATA,
    TIER_ORDER,
    Building,
    BuildingEffectType,
    TierDefinition,
    TierType,
    get_next_tier,
    get_tier_by_type,
    get_tier_index,
)
from . import persistence, settings
from .effects import (
    ACHIEVEMENT_AGGREGATION,
    BUILDING_AGGREGATION,
    PRESTIGE_AGGREGATION,
    RESEARCH_AGGREGATION,
    Aggregation,
    EffectCache,
    aggregate,
)
from .models import BuyAmount, GameNotification, GameState, Settlement

logger = logging.getLogger("kingdoms.Engine")
logger.addHandler(logging.NullHandler())

Clock = Callable[[], float]
P = PrestigeEffectType
R = ResearchEffectType
A = AchievementBonusType

# Goal types whose current value is read straight from the settlement
_GOAL_VALUES: Dict[GoalType, Callable[[Settlement], float]] = {
    GoalType.REACH_INCOME: lambda s: s.total_income,
    GoalType.ACCUMULATE_CURRENCY: lambda s: s.lifetime_currency_earned,
    GoalType.CURRENT_CURRENCY: lambda s: s.currency,
    GoalType.CURRENCY_SPENT: lambda s: s.total_currency_spent,
    GoalType.TOTAL_BUILDINGS: lambda s: s.total_buildings(),
}

# Count goals round their reduced target up so at least one unit is needed
_COUNT_GOALS = frozenset({GoalType.BUILDING_COUNT, GoalType.TOTAL_BUILDINGS})


def create_initial_state() -> GameState:
    """A new game: only the base tier unlocked, catalogs unpurchased."""
    return GameState(
        research_points={BASE_TIER: 0},
        unlocked_tiers={BASE_TIER},
        research=create_research_catalog(),
        prestige_upgrades=create_prestige_catalog(),
        achievements=create_achievement_catalog(),
    )


class GameStateManager:
    """
    Owns the game state and every rule that changes it:
      - Settlement spawning, building purchases and income
      - Goal progress, completion, tier unlocks and autospawn
      - Research, prestige and achievements
      - Time advancement via ``update()``
      - Save, load, export and import
    """

    def __init__(
        self,
        state: Optional[GameState] = None,
        *,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        save_file: Optional[Path] = None,
        autoload: bool = False,
        autosave_interval: Optional[float] = None,
    ):
        # 1) Time source and goal randomness
        self.clock: Clock = clock or time.time
        self.goal_generator = GoalGenerator(rng)

        # 2) Save location; autosave only runs when one is configured
        self.save_file = save_file
        self.autosave_interval = (
            autosave_interval if autosave_interval is not None else settings.AUTOSAVE_INTERVAL_SECONDS
        )

        # 3) Derived effect values, memoized per generation
        self.effects = EffectCache()

        # 4) Notifications waiting for the driver
        self.notifications: List[GameNotification] = []
        self._notification_counter = 0

        # 5) Tick bookkeeping
        now = self.clock()
        self.last_update = now
        self.last_achievement_check = now
        self.last_autosave = now

        # 6) Restore a save, adopt the given state or start fresh
        self.state: GameState = state or create_initial_state()
        if not (autoload and self.load_game()):
            self._autospawn()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get_state(self) -> GameState:
        return self.state

    def get_settlement(self, settlement_id: str) -> Optional[Settlement]:
        for settlement in self.state.settlements:
            if settlement.id == settlement_id:
                return settlement
        return None

    def _find_building(self, settlement: Settlement, building_id: str) -> Optional[Building]:
        tier_def = get_tier_by_type(settlement.tier)
        if tier_def is None:
            return None
        for building in tier_def.buildings:
            if building.id == building_id:
                return building
        return None

    def _live_count(self, tier: TierType) -> int:
        return sum(1 for s in self.state.settlements if s.tier == tier)

    # ------------------------------------------------------------------
    # Effect aggregation
    # ------------------------------------------------------------------
    @staticmethod
    def _prestige_level(upgrade: PrestigeUpgrade) -> int:
        return upgrade.level if upgrade.repeatable else 1

    def _purchased_prestige(self) -> List[PrestigeUpgrade]:
        return [
            u for u in self.state.prestige_upgrades
            if u.purchased or (u.repeatable and u.level > 0)
        ]

    def _unlocked_achievements(self) -> List[Achievement]:
        return [a for a in self.state.achievements if a.unlocked]

    def get_prestige_effect(self, effect_type: PrestigeEffectType) -> float:
        def compute() -> float:
            terms = [
                (u.effect.value, self._prestige_level(u))
                for u in self._purchased_prestige()
                if u.effect.type is effect_type
            ]
            return aggregate(PRESTIGE_AGGREGATION[effect_type], terms)

        return self.effects.get(("prestige", effect_type), compute)

    def get_prestige_building_boost(self, building_id: str) -> float:
        """Additive income boost prestige grants to one building (1.0 = +100%)."""
        def compute() -> float:
            return sum(
                u.effect.value * self._prestige_level(u)
                for u in self._purchased_prestige()
                if u.effect.type is P.BUILDING_INCOME_BOOST and u.effect.target_building == building_id
            )

        return self.effects.get(("building_boost", building_id), compute)

    def get_achievement_effect(self, bonus_type: AchievementBonusType, tier: Optional[TierType] = None) -> float:
        def compute() -> float:
            terms = []
            for achievement in self._unlocked_achievements():
                bonus = achievement.bonus
                if bonus.type is not bonus_type:
                    continue
                # Tier-bound reductions only apply to their own tier
                if bonus_type is A.TIER_REQUIREMENT_REDUCTION and bonus.tier not in (None, tier):
                    continue
                terms.append((bonus.value, 1))
            return aggregate(ACHIEVEMENT_AGGREGATION[bonus_type], terms)

        return self.effects.get(("achievement", bonus_type, tier), compute)

    def get_research_effect(self, effect_type: ResearchEffectType, tier: Optional[TierType] = None) -> float:
        def compute() -> float:
            terms = [
                (r.effect.value, 1)
                for r in self.state.research
                if r.purchased and r.effect.type is effect_type and (tier is None or r.tier == tier)
            ]
            return aggregate(RESEARCH_AGGREGATION[effect_type], terms)

        return self.effects.get(("research", effect_type, tier), compute)

    def _building_effect_total(self, settlement: Settlement, effect_type: BuildingEffectType) -> float:
        tier_def = get_tier_by_type(settlement.tier)
        mode = BUILDING_AGGREGATION[effect_type]
        terms = []
        for building in tier_def.buildings:
            effect = building.effect
            if effect is None or effect.type is not effect_type:
                continue
            count = settlement.buildings.get(building.id, 0)
            # Cost reductions stack as (1 - value) ** count
            value = 1 - effect.value if mode is Aggregation.MULTIPLICATIVE else effect.value
            terms.append((value, count))
        return aggregate(mode, terms)

    # ------------------------------------------------------------------
    # Mastery
    # ------------------------------------------------------------------
    def get_mastery_level(self, tier: TierType) -> int:
        return self.state.completed_settlements.get(tier, 0)

    @staticmethod
    def _effective_mastery(completions: int) -> float:
        start = settings.MASTERY_SOFTCAP_START
        if completions <= start:
            return float(completions)
        return start + math.sqrt((completions - start) * start)

    def get_mastery_income_multiplier(self, tier: TierType) -> float:
        effective = self._effective_mastery(self.get_mastery_level(tier))
        boost = 1 + self.get_prestige_effect(P.MASTERY_BOOST)
        return 1 + effective * settings.MASTERY_INCOME_PER_COMPLETION * boost

    def get_mastery_starting_currency(self, tier: TierType) -> int:
        tier_def = get_tier_by_type(tier)
        if tier_def is None:
            return 0
        effective = self._effective_mastery(self.get_mastery_level(tier))
        return math.floor(effective * tier_def.buildings[0].base_cost * settings.MASTERY_STARTING_CURRENCY_FACTOR)

    def get_mastery_auto_build_speed(self, tier: TierType) -> float:
        completions = self.get_mastery_level(tier)
        if completions == 0:
            return 0.0
        effective = self._effective_mastery(completions)
        return effective / (effective + settings.MASTERY_AUTOBUILD_HALFPOINT)

    # ------------------------------------------------------------------
    # Costs
    # ------------------------------------------------------------------
    def _cost_terms(self, settlement: Settlement, building: Building) -> Tuple[float, float, float]:
        """Growth multiplier, flat-cost count and reduction factor for ``building``."""
        tier = settlement.tier
        scaling = self.get_prestige_effect(P.COST_SCALING_REDUCTION) + self.get_research_effect(
            R.COST_SCALING_REDUCTION, tier
        )
        multiplier = max(1.01, building.cost_multiplier - scaling)
        flat = self.get_prestige_effect(P.FLAT_COST_COUNT) + self.get_research_effect(R.FLAT_COST_COUNT, tier)
        reduction = (
            self.get_research_effect(R.COST_REDUCTION, tier)
            * self._building_effect_total(settlement, BuildingEffectType.COST_REDUCTION)
            * self.get_prestige_effect(P.COST_REDUCTION)
            * self.get_achievement_effect(A.COST_REDUCTION)
        )
        return multiplier, flat, reduction

    @staticmethod
    def _cost_at(building: Building, owned: int, terms: Tuple[float, float, float]) -> float:
        """Whole-number unit cost, or ``math.inf`` once it no longer fits a float."""
        multiplier, flat, reduction = terms
        exponent = max(0, owned - flat)
        try:
            return max(1, math.floor(building.base_cost * multiplier ** exponent * reduction))
        except OverflowError:
            return math.inf

    def _unit_cost(self, settlement: Settlement, building: Building) -> float:
        owned = settlement.buildings.get(building.id, 0)
        return self._cost_at(building, owned, self._cost_terms(settlement, building))

    def get_building_cost(self, settlement_id: str, building_id: str) -> Optional[float]:
        settlement = self.get_settlement(settlement_id)
        if settlement is None:
            return None
        building = self._find_building(settlement, building_id)
        if building is None:
            return None
        return self._unit_cost(settlement, building)

    def get_bulk_buy_cost(self, settlement_id: str, building_id: str, count: int) -> Optional[float]:
        """Exact sum of the next ``count`` unit costs."""
        settlement = self.get_settlement(settlement_id)
        if settlement is None:
            return None
        building = self._find_building(settlement, building_id)
        if building is None:
            return None
        terms = self._cost_terms(settlement, building)
        owned = settlement.buildings.get(building_id, 0)
        return sum(self._cost_at(building, owned + i, terms) for i in range(max(0, count)))

    def get_max_affordable_with_cost(self, settlement_id: str, building_id: str) -> Tuple[int, float]:
        settlement = self.get_settlement(settlement_id)
        if settlement is None:
            return 0, 0
        building = self._find_building(settlement, building_id)
        if building is None:
            return 0, 0
        terms = self._cost_terms(settlement, building)
        owned = settlement.buildings.get(building_id, 0)
        count, total = 0, 0
        while count < settings.MAX_BULK_BUY:
            cost = self._cost_at(building, owned + count, terms)
            if total + cost > settlement.currency:
                break
            total += cost
            count += 1
        return count, total

    def get_max_affordable(self, settlement_id: str, building_id: str) -> int:
        return self.get_max_affordable_with_cost(settlement_id, building_id)[0]

    # ------------------------------------------------------------------
    # Income
    # ------------------------------------------------------------------
    def _production_boosts(self, settlement: Settlement, tier_def: TierDefinition) -> Dict[str, float]:
        boosts: Dict[str, float] = {}
        amplifier = 1 + self.get_prestige_effect(P.PRODUCTION_BOOST_AMPLIFIER)
        for building in tier_def.buildings:
            effect = building.effect
            if effect is not None and effect.type is BuildingEffectType.PRODUCTION_BOOST and effect.target_building:
                count = settlement.buildings.get(building.id, 0)
                boosts[effect.target_building] = (
                    boosts.get(effect.target_building, 0.0) + effect.value * count * amplifier
                )

        synergies = [
            (a.bonus.source_building_id, a.bonus.target_building_id, a.bonus.value, 1)
            for a in self._unlocked_achievements()
            if a.bonus.type is A.BUILDING_SYNERGY
        ] + [
            (u.effect.source_building, u.effect.target_building, u.effect.value, self._prestige_level(u))
            for u in self._purchased_prestige()
            if u.effect.type is P.BUILDING_SYNERGY
        ]
        for source, target, value, level in synergies:
            source_count = settlement.buildings.get(source, 0) if source else 0
            if source_count > 0 and target:
                boosts[target] = boosts.get(target, 0.0) + value * level * source_count
        return boosts

    def _building_income(self, building: Building, count: int, boosts: Dict[str, float]) -> float:
        income = building.base_income * count
        boost = boosts.get(building.id, 0.0)
        if boost > 0:
            income *= 1 + boost
        prestige_boost = self.get_prestige_building_boost(building.id)
        if prestige_boost > 0:
            income *= 1 + prestige_boost
        return income

    def _calculate_income(self, settlement: Settlement) -> float:
        tier_def = get_tier_by_type(settlement.tier)
        if tier_def is None:
            return 0.0
        boosts = self._production_boosts(settlement, tier_def)
        total_buildings = settlement.total_buildings()

        income = 0.0
        for building in tier_def.buildings:
            count = settlement.buildings.get(building.id, 0)
            income += self._building_income(building, count, boosts)
            effect = building.effect
            if effect is not None and effect.type is BuildingEffectType.INCOME_PER_BUILDING:
                income += effect.value * total_buildings * count

        income += self.get_research_effect(R.STARTING_INCOME, settlement.tier)

        income *= 1 + self._building_effect_total(settlement, BuildingEffectType.INCOME_MULTIPLIER)
        income *= self.get_mastery_income_multiplier(settlement.tier)
        income *= 1 + self.get_prestige_effect(P.INCOME_MULTIPLIER)
        income *= 1 + self.get_achievement_effect(A.INCOME_MULTIPLIER)
        return income

    def _recalculate_incomes(self, tier: Optional[TierType] = None) -> None:
        for settlement in self.state.settlements:
            if tier is None or settlement.tier == tier:
                settlement.total_income = self._calculate_income(settlement)

    def get_effective_building_income(self, settlement_id: str, building_id: str) -> float:
        """Income of all copies of one building before settlement-wide multipliers."""
        settlement = self.get_settlement(settlement_id)
        if settlement is None:
            return 0.0
        building = self._find_building(settlement, building_id)
        if building is None:
            return 0.0
        boosts = self._production_boosts(settlement, get_tier_by_type(settlement.tier))
        return self._building_income(building, settlement.buildings.get(building_id, 0), boosts)

    def get_total_income(self) -> float:
        return sum(s.total_income for s in self.state.settlements)

    def _cross_tier_bonus(self, settlement: Settlement) -> float:
        index = get_tier_index(settlement.tier)
        bonus = 0.0
        for distance, tier_def in enumerate(TIER_DATA[index + 1:], start=1):
            completed = self.state.completed_settlements.get(tier_def.type, 0)
            if completed == 0:
                continue
            first_income = tier_def.buildings[0].base_income
            bonus += completed * first_income * settings.PATRONAGE_PER_COMPLETION / 2 ** distance
        return bonus * (1 + self.get_prestige_effect(P.PATRONAGE_BOOST))

    def get_cross_tier_bonus(self, settlement_id: str) -> float:
        """Passive patronage income a settlement receives from higher-tier completions."""
        settlement = self.get_settlement(settlement_id)
        if settlement is None:
            return 0.0
        return self._cross_tier_bonus(settlement)

    # ------------------------------------------------------------------
    # Spawning
    # ------------------------------------------------------------------
    def _create_settlement(self, tier: TierType) -> Settlement:
        tier_def = get_tier_by_type(tier)
        if tier_def is None:
            raise ValueError(f"Unknown tier: {tier!r}")
        first = tier_def.buildings[0]

        # Currency: enough for one cheapest building, then bonuses in order
        currency = float(first.base_cost)
        currency += self.get_research_effect(R.STARTING_CAPITAL, tier)
        currency += self.get_mastery_starting_currency(tier)
        currency = math.floor(currency * self.get_prestige_effect(P.STARTING_CURRENCY))
        currency += math.floor(currency * self.get_achievement_effect(A.STARTING_CURRENCY))

        buildings = {b.id: 0 for b in tier_def.buildings}
        buildings[first.id] += int(self.get_prestige_effect(P.FREE_BUILDINGS))
        for upgrade in self._purchased_prestige():
            target = upgrade.effect.target_building
            if upgrade.effect.type is P.GRANT_BUILDING and target in buildings:
                buildings[target] += int(upgrade.effect.value * self._prestige_level(upgrade))
        for research in self.state.research:
            target = research.effect.building_id
            if (
                research.purchased
                and research.tier == tier
                and research.effect.type is R.STARTING_BUILDINGS
                and target in buildings
            ):
                buildings[target] += int(research.effect.value)

        settlement = Settlement(
            id=f"{tier.value}_{self.state.next_settlement_id}",
            tier=tier,
            currency=float(currency),
            buildings=buildings,
            spawn_time=self.clock(),
            goals=self.goal_generator.generate_random_goals(tier, settings.GOALS_PER_SETTLEMENT),
        )
        self.state.next_settlement_id += 1
        settlement.total_income = self._calculate_income(settlement)
        self.state.settlements.append(settlement)
        logger.debug("Spawned %s with %.0f currency", settlement.id, settlement.currency)
        return settlement

    def spawn_settlement(self, tier: Union[TierType, str]) -> Optional[Settlement]:
        """Create a settlement of an unlocked tier. Returns ``None`` otherwise."""
        tier_def = get_tier_by_type(tier)
        if tier_def is None or tier_def.type not in self.state.unlocked_tiers:
            return None
        self.state.dormant_tiers.discard(tier_def.type)
        return self._create_settlement(tier_def.type)

    def get_parallel_slots(self, tier: TierType) -> int:
        slots = 1 + self.get_research_effect(R.PARALLEL_SLOTS, tier)
        if tier is BASE_TIER:
            slots += self.get_prestige_effect(P.PARALLEL_SLOTS)
        return int(slots)

    def _autospawn(self) -> None:
        """Fill every unlocked tier up to its slot count, skipping dormant ones."""
        for tier in TIER_ORDER:
            if tier not in self.state.unlocked_tiers:
                continue
            slots = self.get_parallel_slots(tier)
            if tier in self.state.dormant_tiers:
                if slots <= 1:
                    continue
                # Multi-slot tiers are replenished like the base tier
                self.state.dormant_tiers.discard(tier)
            for _ in range(slots - self._live_count(tier)):
                self._create_settlement(tier)

    # ------------------------------------------------------------------
    # Buying buildings
    # ------------------------------------------------------------------
    def buy_building(self, settlement_id: str, building_id: str) -> bool:
        settlement = self.get_settlement(settlement_id)
        if settlement is None:
            return False
        building = self._find_building(settlement, building_id)
        if building is None:
            return False
        cost = self._unit_cost(settlement, building)
        if math.isinf(cost) or settlement.currency < cost:
            return False

        settlement.currency -= cost
        settlement.total_currency_spent += cost
        settlement.buildings[building_id] += 1
        settlement.total_income = self._calculate_income(settlement)
        self._update_goal_progress(settlement)
        return True

    def buy_multiple_buildings(self, settlement_id: str, building_id: str, count: int) -> int:
        """Buy up to ``count`` units one at a time. Returns how many were bought."""
        bought = 0
        while bought < count and self.buy_building(settlement_id, building_id):
            bought += 1
        return bought

    def get_available_buy_amounts(self) -> List[BuyAmount]:
        amounts: List[BuyAmount] = [1, 5]
        for research in self.state.research:
            if research.purchased and research.effect.type is R.BULK_BUY:
                size = int(research.effect.value)
                if size not in amounts:
                    amounts.append(size)
        amounts.sort()
        amounts.append("max")
        return amounts

    def get_buy_amount(self) -> BuyAmount:
        return self.state.settings.buy_amount

    def set_buy_amount(self, amount: BuyAmount) -> bool:
        if isinstance(amount, bool) or amount not in self.get_available_buy_amounts():
            return False
        self.state.settings.buy_amount = amount
        return True

    def buy_selected_amount(self, settlement_id: str, building_id: str) -> int:
        amount = self.state.settings.buy_amount
        if amount == "max":
            count = self.get_max_affordable(settlement_id, building_id)
        else:
            count = int(amount)
        return self.buy_multiple_buildings(settlement_id, building_id, count)

    # ------------------------------------------------------------------
    # Goals and completion
    # ------------------------------------------------------------------
    def _goal_reduction_factor(self, settlement: Settlement) -> float:
        reduction = self._building_effect_total(settlement, BuildingEffectType.GOAL_REDUCTION)
        reduction += self.get_prestige_effect(P.GOAL_REDUCTION)
        return max(1 - settings.MAX_GOAL_REDUCTION, 1 - reduction)

    def get_goal_reduction_factor(self, settlement_id: str) -> float:
        settlement = self.get_settlement(settlement_id)
        if settlement is None:
            return 1.0
        return self._goal_reduction_factor(settlement)

    def _update_goal_progress(self, settlement: Settlement, now: Optional[float] = None) -> None:
        if settlement.is_complete:
            return
        now = self.clock() if now is None else now
        factor = self._goal_reduction_factor(settlement)
        survival_speed = 1 + self.get_prestige_effect(P.SURVIVAL_SPEED)

        for goal in settlement.goals:
            if goal.is_completed:
                continue
            target = goal.target_value * factor
            # Survival counts elapsed seconds only; income does not speed it up
            if goal.type is GoalType.SURVIVAL:
                value = (now - settlement.spawn_time) * survival_speed
            elif goal.type is GoalType.BUILDING_COUNT:
                value = settlement.buildings.get(goal.building_id, 0) if goal.building_id else 0
            else:
                value = _GOAL_VALUES[goal.type](settlement)
            if goal.type in _COUNT_GOALS:
                target = math.ceil(target)
            goal.current_value = value
            if value >= target:
                goal.is_completed = True

        self._complete_if_done(settlement)

    def check_settlement_completion(self, settlement_id: str) -> bool:
        """Complete the settlement if every goal is done. Returns whether it completed."""
        settlement = self.get_settlement(settlement_id)
        if settlement is None:
            return False
        return self._complete_if_done(settlement)

    def _complete_if_done(self, settlement: Settlement) -> bool:
        if settlement.is_complete:
            return False
        if not settlement.goals or not all(g.is_completed for g in settlement.goals):
            return False

        settlement.is_complete = True
        tier = settlement.tier

        award = (
            settings.BASE_COMPLETION_RESEARCH
            + self._building_effect_total(settlement, BuildingEffectType.COMPLETION_BONUS)
            + self.get_prestige_effect(P.RESEARCH_BONUS)
            + self.get_achievement_effect(A.RESEARCH_BONUS)
        )
        self.state.research_points[tier] = self.state.research_points.get(tier, 0) + award
        if self.is_goal_notification_enabled(tier):
            self._notify("goal_complete", f"{get_tier_by_type(tier).name} completed! +{award:g} research", tier)

        self.state.completed_settlements[tier] = self.state.completed_settlements.get(tier, 0) + 1
        self.state.lifetime_completions[tier] = self.state.lifetime_completions.get(tier, 0) + 1
        self.check_achievements(completion_time_seconds=self.clock() - settlement.spawn_time)

        self.state.settlements = [s for s in self.state.settlements if s.id != settlement.id]
        logger.debug("Completed %s, awarded %s research", settlement.id, award)

        if tier is not BASE_TIER and self.get_parallel_slots(tier) == 1:
            self.state.dormant_tiers.add(tier)
        self._check_tier_advance(tier)
        # Mastery changed for this tier
        self._recalculate_incomes(tier)
        self._autospawn()
        return True

    def get_tier_requirement(self, tier: Optional[TierType] = None) -> int:
        """Completions of ``tier`` needed to unlock or re-arm the next tier."""
        base_tier = tier or BASE_TIER
        # The top tier keeps the requirement that unlocked it
        next_tier = get_next_tier(base_tier) or base_tier
        requirement = get_tier_by_type(next_tier).unlock_requirement
        reduction = (
            self.get_research_effect(R.TIER_REQUIREMENT_REDUCTION, tier)
            + self.get_prestige_effect(P.TIER_REQUIREMENT_REDUCTION)
            + self.get_achievement_effect(A.TIER_REQUIREMENT_REDUCTION, tier)
        )
        return int(max(settings.MIN_TIER_REQUIREMENT, requirement - reduction))

    def _check_tier_advance(self, tier: TierType) -> None:
        completed = self.state.completed_settlements.get(tier, 0)
        if completed % self.get_tier_requirement(tier) != 0:
            return
        next_tier = get_next_tier(tier)
        if next_tier is None:
            return
        if next_tier not in self.state.unlocked_tiers:
            self.state.unlocked_tiers.add(next_tier)
            tier_name = get_tier_by_type(next_tier).name
            self._notify("tier_unlocked", f"{tier_name} tier unlocked!", next_tier)
            logger.info("%s tier unlocked", tier_name)
        self.state.research_points.setdefault(next_tier, 0)
        self.state.dormant_tiers.discard(next_tier)

    # ------------------------------------------------------------------
    # Time
    # ------------------------------------------------------------------
    def update(self) -> None:
        """Advance the economy by the wall-clock time since the previous call."""
        now = self.clock()
        delta = now - self.last_update
        self.last_update = now
        self.effects.bump()

        multiplier = settings.DEV_MODE_MULTIPLIER if self.state.settings.dev_mode_enabled else 1
        for settlement in self.state.settlements:
            gained = (settlement.total_income + self._cross_tier_bonus(settlement)) * delta * multiplier
            settlement.currency += gained
            settlement.lifetime_currency_earned += gained

        for settlement in list(self.state.settlements):
            self._update_goal_progress(settlement, now)

        if self.state.settings.autobuy_enabled:
            self._process_auto_building(now)

        if now - self.last_achievement_check >= settings.ACHIEVEMENT_CHECK_INTERVAL:
            self.last_achievement_check = now
            self.check_achievements()

        if self.save_file is not None and now - self.last_autosave >= self.autosave_interval:
            self.last_autosave = now
            self.save_game()

    def _auto_buy(self, settlement: Settlement, building_id: str) -> bool:
        building = self._find_building(settlement, building_id)
        if building is None:
            return False
        owned = settlement.buildings.get(building_id, 0)
        cost = self._unit_cost(settlement, building)
        if math.isinf(cost) or settlement.currency < cost:
            return False
        # The first unit ignores the treasury cap so cold settlements can start
        if owned > 0 and cost > settlement.currency * settings.AUTO_BUILD_TREASURY_PCT:
            return False
        settlement.currency -= cost
        settlement.total_currency_spent += cost
        settlement.buildings[building_id] = owned + 1
        return True

    def get_auto_build_interval(self, research: ResearchUpgrade) -> float:
        speed = (
            self.get_mastery_auto_build_speed(research.tier)
            + self.get_prestige_effect(P.AUTOBUILD_SPEED)
            + self.get_research_effect(R.AUTOBUY_SPEED, research.tier)
        )
        return (research.effect.interval or 0.0) * (1 - min(settings.MAX_AUTOBUILD_SPEED_BONUS, speed))

    def _process_auto_building(self, now: float) -> None:
        dirty: Dict[str, Settlement] = {}
        for research in self.state.research:
            if not research.purchased or research.effect.type is not R.AUTO_BUILDING:
                continue
            building_id = research.effect.building_id
            if not building_id or not research.effect.interval:
                continue
            last = self.state.auto_building_timers.get(research.id)
            if last is not None and now - last < self.get_auto_build_interval(research):
                continue

            self.state.auto_building_timers[research.id] = now
            for settlement in self.state.settlements:
                if settlement.tier == research.tier and self._auto_buy(settlement, building_id):
                    dirty[settlement.id] = settlement
            logger.debug("Auto-builder %s fired", research.id)

        for settlement in dirty.values():
            settlement.total_income = self._calculate_income(settlement)
            self._update_goal_progress(settlement, now)

    # ------------------------------------------------------------------
    # Research
    # ------------------------------------------------------------------
    def get_research_points(self, tier: TierType) -> float:
        return self.state.research_points.get(tier, 0)

    def get_research_cost(self, research_id: str) -> Optional[int]:
        for research in self.state.research:
            if research.id == research_id:
                discount = self.get_prestige_effect(P.RESEARCH_DISCOUNT)
                return max(1, math.floor(research.cost * discount))
        return None

    def purchase_research(self, research_id: str) -> bool:
        self.effects.bump()
        research = next((r for r in self.state.research if r.id == research_id), None)
        if research is None or research.purchased:
            return False
        if research.tier not in self.state.unlocked_tiers:
            return False
        cost = self.get_research_cost(research_id)
        points = self.get_research_points(research.tier)
        if points < cost:
            return False
        if research.prerequisite:
            prerequisite = next((r for r in self.state.research if r.id == research.prerequisite), None)
            if prerequisite is None or not prerequisite.purchased:
                return False

        self.state.research_points[research.tier] = points - cost
        research.purchased = True
        self.effects.bump()
        logger.debug("Purchased research %s for %s points", research.id, cost)

        next_level = next_research_level(
            research, self.state.research, escalation=settings.RESEARCH_COST_ESCALATION
        )
        if next_level is not None:
            self.state.research.append(next_level)
        if research.effect.type is R.PARALLEL_SLOTS:
            self._autospawn()
        self._recalculate_incomes(research.tier)
        self.check_achievements()
        return True

    # ------------------------------------------------------------------
    # Prestige
    # ------------------------------------------------------------------
    def get_prestige_currency(self, tier: TierType) -> int:
        return self.state.prestige_currency.get(tier, 0)

    def get_prestige_count(self) -> int:
        return self.state.prestige_count

    def get_lifetime_completions(self, tier: TierType) -> int:
        return self.state.lifetime_completions.get(tier, 0)

    def get_total_lifetime_completions(self) -> int:
        return sum(self.state.lifetime_completions.values())

    def get_prestige_preview(self) -> Dict[TierType, int]:
        """Prestige currency a reset would award now, per tier."""
        boost = 1 + self.get_prestige_effect(P.CURRENCY_BOOST)
        preview: Dict[TierType, int] = {}
        for tier in TIER_ORDER[1:]:
            amount = math.floor(calculate_prestige_currency(self.state.completed_settlements.get(tier, 0)) * boost)
            if amount > 0:
                preview[tier] = amount
        return preview

    def can_prestige(self) -> bool:
        return any(self.state.completed_settlements.get(tier, 0) > 0 for tier in TIER_ORDER[1:])

    def perform_prestige(self) -> bool:
        """Trade this run's progress for prestige currency."""
        self.effects.bump()
        if not self.can_prestige():
            return False

        for tier, amount in self.get_prestige_preview().items():
            self.state.prestige_currency[tier] = self.state.prestige_currency.get(tier, 0) + amount
        self.state.prestige_count += 1

        # Per-run state; lifetime completions, prestige upgrades and achievements stay
        self.state.settlements = []
        self.state.research = create_research_catalog()
        self.state.research_points = {BASE_TIER: 0}
        self.state.completed_settlements = {}
        self.state.auto_building_timers = {}
        self.state.unlocked_tiers = {BASE_TIER}
        self.state.dormant_tiers = set()
        self.effects.bump()

        self._autospawn()
        self.check_achievements()
        logger.info("Prestige #%d performed", self.state.prestige_count)
        return True

    def purchase_prestige_upgrade(self, upgrade_id: str) -> bool:
        self.effects.bump()
        upgrade = next((u for u in self.state.prestige_upgrades if u.id == upgrade_id), None)
        if upgrade is None:
            return False
        if not upgrade.repeatable and upgrade.purchased:
            return False
        if upgrade.prerequisite:
            prerequisite = next(
                (u for u in self.state.prestige_upgrades if u.id == upgrade.prerequisite), None
            )
            if prerequisite is None:
                return False
            owned = prerequisite.level > 0 if prerequisite.repeatable else prerequisite.purchased
            if not owned:
                return False
        cost = get_prestige_upgrade_cost(upgrade)
        currency = self.get_prestige_currency(upgrade.tier)
        if currency < cost:
            return False

        self.state.prestige_currency[upgrade.tier] = currency - cost
        if upgrade.repeatable:
            upgrade.level += 1
        else:
            upgrade.purchased = True
        self.effects.bump()
        logger.debug("Purchased prestige upgrade %s", upgrade.id)

        if upgrade.effect.type is P.PARALLEL_SLOTS:
            self._autospawn()
        self._recalculate_incomes()
        return True

    # ------------------------------------------------------------------
    # Achievements
    # ------------------------------------------------------------------
    def _condition_met(self, condition: AchievementCondition, completion_time_seconds: Optional[float]) -> bool:
        C = AchievementConditionType
        settlements = self.state.settlements
        kind = condition.type
        if kind is C.TIER_COMPLETIONS:
            return condition.tier is not None and self.get_lifetime_completions(condition.tier) >= condition.value
        if kind is C.TOTAL_COMPLETIONS:
            return self.get_total_lifetime_completions() >= condition.value
        if kind is C.PRESTIGE_COUNT:
            return self.state.prestige_count >= condition.value
        if kind is C.SPEED_COMPLETION:
            return completion_time_seconds is not None and completion_time_seconds <= condition.value
        if kind is C.MAX_SINGLE_BUILDING:
            return any(count >= condition.value for s in settlements for count in s.buildings.values())
        if kind is C.MAX_CURRENCY_HELD:
            return any(s.currency >= condition.value for s in settlements)
        if kind is C.SETTLEMENT_COUNT:
            return len(settlements) >= condition.value
        if kind is C.RESEARCH_PURCHASED:
            return sum(1 for r in self.state.research if r.purchased) >= condition.value
        if kind is C.NEAR_BROKE:
            return any(s.currency < condition.value and s.total_income > 0 for s in settlements)
        if kind is C.SPECIFIC_BUILDING_COUNT:
            return bool(condition.building_id) and any(
                s.buildings.get(condition.building_id, 0) >= condition.value for s in settlements
            )
        return False

    def check_achievements(self, completion_time_seconds: Optional[float] = None) -> List[Achievement]:
        """Unlock every achievement whose condition holds. Returns the new ones."""
        unlocked = []
        for achievement in self.state.achievements:
            if achievement.unlocked:
                continue
            if self._condition_met(achievement.condition, completion_time_seconds):
                achievement.unlocked = True
                unlocked.append(achievement)
                self._notify("achievement_unlocked", f"Achievement: {achievement.name}")
                logger.info("Achievement unlocked: %s", achievement.name)
        if unlocked:
            self.effects.bump()
            self._recalculate_incomes()
        return unlocked

    # ------------------------------------------------------------------
    # Settings and notifications
    # ------------------------------------------------------------------
    def toggle_dev_mode(self) -> bool:
        self.state.settings.dev_mode_enabled = not self.state.settings.dev_mode_enabled
        return self.state.settings.dev_mode_enabled

    def is_dev_mode_enabled(self) -> bool:
        return self.state.settings.dev_mode_enabled

    def toggle_autobuy(self) -> bool:
        self.state.settings.autobuy_enabled = not self.state.settings.autobuy_enabled
        return self.state.settings.autobuy_enabled

    def toggle_show_completed_research(self) -> bool:
        self.state.settings.show_completed_research = not self.state.settings.show_completed_research
        return self.state.settings.show_completed_research

    def toggle_show_prestige_shop(self) -> bool:
        self.state.settings.show_prestige_shop = not self.state.settings.show_prestige_shop
        return self.state.settings.show_prestige_shop

    def toggle_show_completed_prestige(self) -> bool:
        self.state.settings.show_completed_prestige = not self.state.settings.show_completed_prestige
        return self.state.settings.show_completed_prestige

    def toggle_compact_view(self) -> bool:
        self.state.settings.compact_view = not self.state.settings.compact_view
        return self.state.settings.compact_view

    def is_goal_notification_enabled(self, tier: TierType) -> bool:
        return self.state.settings.goal_notifications_by_tier.get(tier.value, True)

    def toggle_goal_notification(self, tier: TierType) -> bool:
        enabled = not self.is_goal_notification_enabled(tier)
        self.state.settings.goal_notifications_by_tier[tier.value] = enabled
        return enabled

    def _notify(self, kind: str, message: str, tier: Optional[TierType] = None) -> None:
        self._notification_counter += 1
        self.notifications.append(
            GameNotification(self._notification_counter, kind, message, self.clock(), tier)
        )
        overflow = len(self.notifications) - settings.MAX_NOTIFICATIONS
        if overflow > 0:
            del self.notifications[:overflow]

    def get_and_clear_notifications(self) -> List[GameNotification]:
        pending, self.notifications = self.notifications, []
        return pending

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def _save_path(self) -> Path:
        return self.save_file or settings.SAVE_FILE

    def save_game(self) -> bool:
        try:
            persistence.save_state(self.state, file_path=self._save_path(), timestamp=self.clock())
        except persistence.GameSaveError as e:
            logger.error("Failed to save game state: %s", e)
            return False
        logger.info("Game saved to %s", self._save_path())
        return True

    def load_game(self) -> bool:
        try:
            result = persistence.load_state(file_path=self._save_path())
        except persistence.GameLoadError as e:
            logger.warning("Could not load save: %s", e)
            return False
        if result is None:
            return False
        self._adopt_state(result.state, result.timestamp)
        logger.info("Game loaded from %s", self._save_path())
        return True

    def delete_save(self) -> bool:
        return persistence.delete_save(file_path=self._save_path())

    def export_save(self) -> str:
        return persistence.export_state(self.state, timestamp=self.clock())

    def import_save(self, text: str) -> bool:
        try:
            result = persistence.import_state(text)
        except persistence.GameLoadError as e:
            logger.warning("Rejected imported save: %s", e)
            return False
        self._adopt_state(result.state, result.timestamp)
        return True

    def _adopt_state(self, state: GameState, saved_at: float) -> None:
        self.state = state
        self.effects.bump()
        now = self.clock()
        # Time since the save is credited on the next update()
        self.last_update = min(saved_at, now)
        goal_numbers = [
            int(goal.id.rsplit("_", 1)[-1])
            for s in state.settlements
            for goal in s.goals
            if goal.id.rsplit("_", 1)[-1].isdigit()
        ]
        self.goal_generator.goal_counter = max(goal_numbers, default=-1) + 1
        self._recalculate_incomes()
        self._autospawn()
