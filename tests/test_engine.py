import os
import sys
import math
import random
from dataclasses import replace

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from catalog import tiers
from catalog.achievements import AchievementBonusType
from catalog.goals import Goal, GoalType
from catalog.prestige import PrestigeEffectType
from catalog.research import ResearchEffectType
from catalog.tiers import TierType, get_tier_by_type
from economy import settings
from economy.engine import GameStateManager, create_initial_state
from economy.simulation import SimulatedClock

HAMLET = TierType.HAMLET
VILLAGE = TierType.VILLAGE


# --- Helpers ------------------------------------------------------------------

def make_game(achievements=False, **kwargs):
    """Engine on a manual clock with a seeded goal generator. Achievements are off unless asked for."""
    clock = SimulatedClock()
    state = create_initial_state()
    if not achievements:
        state.achievements = []
    game = GameStateManager(state, clock=clock, rng=random.Random(0), **kwargs)
    return game, clock


def settlements_of(game, tier):
    return [s for s in game.get_state().settlements if s.tier == tier]


def hamlet(game):
    return settlements_of(game, HAMLET)[0]


def pin_goal(settlement, goal_type=GoalType.SURVIVAL, target=1e9, building_id=None):
    """Replace the settlement's goals with one controlled goal."""
    goal = Goal("goal_pinned", goal_type, "pinned", target, building_id=building_id)
    settlement.goals = [goal]
    return goal


def complete(game, settlement):
    for goal in settlement.goals:
        goal.is_completed = True
    assert game.check_settlement_completion(settlement.id)


def complete_hamlets(game, count):
    for _ in range(count):
        complete(game, hamlet(game))


# --- Fresh game ---------------------------------------------------------------

def test_fresh_game_has_one_hamlet():
    game, _ = make_game()
    state = game.get_state()

    assert len(state.settlements) == 1
    settlement = state.settlements[0]
    assert settlement.tier is HAMLET
    assert settlement.currency == 10
    assert len(settlement.goals) == 1
    assert settlement.lifetime_currency_earned == 0
    assert settlement.total_income == 0
    assert set(settlement.buildings) == {
        "hamlet_hut", "hamlet_garden", "hamlet_workshop",
        "hamlet_shrine", "hamlet_market", "hamlet_library",
    }
    assert state.unlocked_tiers == {HAMLET}
    assert state.research_points == {HAMLET: 0}


def test_settlement_ids_are_unique_and_increasing():
    game, _ = make_game()
    first = hamlet(game).id
    complete_hamlets(game, 1)
    second = hamlet(game).id
    assert first != second
    assert int(second.rsplit("_", 1)[1]) > int(first.rsplit("_", 1)[1])


# --- Buying -------------------------------------------------------------------

def test_buying_first_hut():
    game, _ = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)

    assert game.buy_building(settlement.id, "hamlet_hut")
    assert settlement.currency == 0
    assert settlement.buildings["hamlet_hut"] == 1
    assert settlement.total_income == 1
    assert settlement.total_currency_spent == 10
    assert game.get_building_cost(settlement.id, "hamlet_hut") == 11


def test_failed_purchase_leaves_state_untouched():
    game, _ = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    before = dict(settlement.buildings)

    assert not game.buy_building(settlement.id, "hamlet_garden")
    assert settlement.currency == 10
    assert settlement.buildings == before
    assert settlement.total_currency_spent == 0


def test_unknown_ids_are_rejected():
    game, _ = make_game()
    settlement = hamlet(game)
    assert not game.buy_building("hamlet_999", "hamlet_hut")
    assert not game.buy_building(settlement.id, "village_cottage")
    assert game.get_building_cost(settlement.id, "nope") is None
    assert game.get_bulk_buy_cost("nope", "hamlet_hut", 3) is None
    assert game.get_max_affordable("nope", "hamlet_hut") == 0


def test_bulk_costs_and_max_affordable():
    game, _ = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    settlement.currency = 100

    # Hut costs: 10, 11, 13, 15, 17, 20, 23
    assert game.get_bulk_buy_cost(settlement.id, "hamlet_hut", 3) == 34
    assert game.get_max_affordable_with_cost(settlement.id, "hamlet_hut") == (6, 86)
    assert game.buy_multiple_buildings(settlement.id, "hamlet_hut", 10) == 6
    assert settlement.buildings["hamlet_hut"] == 6
    assert settlement.currency == 14


def test_max_affordable_is_capped(monkeypatch):
    monkeypatch.setattr(settings, "MAX_BULK_BUY", 3)
    game, _ = make_game()
    settlement = hamlet(game)
    settlement.currency = 1e12
    assert game.get_max_affordable(settlement.id, "hamlet_hut") == 3


def test_costs_are_integers_and_strictly_increasing():
    game, _ = make_game()
    game.get_state().unlocked_tiers.update(TierType)
    for tier in TierType:
        settlement = settlements_of(game, tier)[0] if tier is HAMLET else game.spawn_settlement(tier)
        for building_id in list(settlement.buildings):
            costs = []
            for owned in range(40):
                settlement.buildings[building_id] = owned
                costs.append(game.get_building_cost(settlement.id, building_id))
            settlement.buildings[building_id] = 0
            assert all(isinstance(c, int) and c > 0 for c in costs)
            assert all(a < b for a, b in zip(costs, costs[1:])), building_id


def test_cost_projection_is_idempotent():
    game, _ = make_game()
    settlement = hamlet(game)
    costs = {game.get_building_cost(settlement.id, "hamlet_garden") for _ in range(5)}
    assert costs == {75}
    assert game.get_bulk_buy_cost(settlement.id, "hamlet_garden", 4) == game.get_bulk_buy_cost(
        settlement.id, "hamlet_garden", 4
    )
    assert settlement.buildings["hamlet_garden"] == 0


def test_costs_past_float_range_are_unaffordable():
    game, _ = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    assert game.get_bulk_buy_cost(settlement.id, "hamlet_hut", 6000) == math.inf

    settlement.buildings["hamlet_hut"] = 6000
    settlement.currency = 1e300
    assert game.get_building_cost(settlement.id, "hamlet_hut") == math.inf
    assert game.get_max_affordable(settlement.id, "hamlet_hut") == 0
    assert not game.buy_building(settlement.id, "hamlet_hut")

    settlement.currency = math.inf
    assert not game.buy_building(settlement.id, "hamlet_hut")
    assert settlement.buildings["hamlet_hut"] == 6000
    assert settlement.total_currency_spent == 0


def test_buy_amount_selection():
    game, _ = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)

    assert game.get_available_buy_amounts() == [1, 5, "max"]
    assert not game.set_buy_amount(10)
    assert game.set_buy_amount(5)
    assert game.get_buy_amount() == 5

    game.get_state().research_points[HAMLET] = 5
    assert game.purchase_research("hamlet_bulk_buy_1")
    assert game.get_available_buy_amounts() == [1, 5, 10, "max"]
    assert game.set_buy_amount(10)

    assert game.set_buy_amount("max")
    settlement.currency = 100
    assert game.buy_selected_amount(settlement.id, "hamlet_hut") == 6


def test_income_multiplier_building():
    game, _ = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    settlement.currency = 2000

    assert game.buy_building(settlement.id, "hamlet_hut")
    assert game.buy_building(settlement.id, "hamlet_shrine")
    assert settlement.total_income == pytest.approx((1 + 35) * 1.02)


def test_cost_reduction_building_lowers_costs():
    game, _ = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    settlement.currency = 1e6
    before = game.get_building_cost(settlement.id, "hamlet_workshop")
    for _ in range(10):
        assert game.buy_building(settlement.id, "hamlet_market")
    assert game.get_building_cost(settlement.id, "hamlet_workshop") == math.floor(400 * 0.99 ** 10)
    assert game.get_building_cost(settlement.id, "hamlet_workshop") < before


# --- Time ---------------------------------------------------------------------

def test_income_accrues_with_time():
    game, clock = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    game.buy_building(settlement.id, "hamlet_hut")

    clock.advance(10)
    game.update()
    assert settlement.currency == pytest.approx(10)
    assert settlement.lifetime_currency_earned == pytest.approx(10)


def test_large_gaps_are_not_clamped():
    game, clock = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    game.buy_building(settlement.id, "hamlet_hut")

    clock.advance(3600 * 24)
    game.update()
    assert settlement.lifetime_currency_earned == pytest.approx(3600 * 24)


def test_dev_mode_multiplies_income():
    game, clock = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    game.buy_building(settlement.id, "hamlet_hut")
    assert game.toggle_dev_mode()
    assert game.is_dev_mode_enabled()

    clock.advance(1)
    game.update()
    assert settlement.currency == pytest.approx(1000)


def test_lifetime_earnings_never_decrease():
    game, clock = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    game.buy_building(settlement.id, "hamlet_hut")

    previous = settlement.lifetime_currency_earned
    for _ in range(30):
        clock.advance(1)
        game.update()
        game.buy_building(settlement.id, "hamlet_hut")
        assert settlement.lifetime_currency_earned >= previous
        previous = settlement.lifetime_currency_earned


# --- Goals & completion -------------------------------------------------------

def test_accumulate_goal_progress_never_decreases():
    game, clock = make_game()
    settlement = hamlet(game)
    goal = pin_goal(settlement, GoalType.ACCUMULATE_CURRENCY, 1e9)
    game.buy_building(settlement.id, "hamlet_hut")

    previous = goal.current_value
    for _ in range(20):
        clock.advance(0.5)
        game.update()
        game.buy_building(settlement.id, "hamlet_hut")
        assert goal.current_value >= previous
        previous = goal.current_value
    assert previous > 0


def test_goal_completion_is_sticky():
    game, clock = make_game()
    settlement = hamlet(game)
    currency_goal = Goal("goal_a", GoalType.CURRENT_CURRENCY, "have 5", 5)
    settlement.goals = [currency_goal, Goal("goal_b", GoalType.SURVIVAL, "wait", 1e9)]

    game.update()
    assert currency_goal.is_completed

    game.buy_building(settlement.id, "hamlet_hut")
    clock.advance(1)
    game.update()
    assert settlement.currency < 5
    assert currency_goal.is_completed
    assert not settlement.is_complete


def test_survival_goal():
    game, clock = make_game()
    settlement = hamlet(game)
    pin_goal(settlement, GoalType.SURVIVAL, 30)

    clock.advance(29)
    game.update()
    assert not settlement.is_complete
    clock.advance(1)
    game.update()
    assert settlement.is_complete


def test_survival_goal_ignores_income():
    game, clock = make_game()
    settlement = hamlet(game)
    goal = pin_goal(settlement, GoalType.SURVIVAL, 1000)
    settlement.total_income = 1e6

    clock.advance(10)
    game.update()
    assert goal.current_value == pytest.approx(10)
    assert not goal.is_completed


def test_completion_through_update():
    game, _ = make_game()
    settlement = hamlet(game)
    pin_goal(settlement, GoalType.CURRENT_CURRENCY, 5)

    game.update()
    state = game.get_state()
    assert settlement.is_complete
    assert settlement not in state.settlements
    assert state.research_points[HAMLET] == 10
    assert state.completed_settlements[HAMLET] == 1
    assert state.lifetime_completions[HAMLET] == 1
    assert len(settlements_of(game, HAMLET)) == 1


def test_completion_requires_every_goal():
    game, _ = make_game()
    settlement = hamlet(game)
    settlement.goals = [
        Goal("goal_a", GoalType.SURVIVAL, "a", 1, is_completed=True),
        Goal("goal_b", GoalType.SURVIVAL, "b", 1e9),
    ]
    assert not game.check_settlement_completion(settlement.id)
    assert settlement in game.get_state().settlements


def test_settlement_without_goals_never_completes():
    game, _ = make_game()
    settlement = hamlet(game)
    settlement.goals = []
    assert not game.check_settlement_completion(settlement.id)
    assert not game.check_settlement_completion("hamlet_999")


def test_library_adds_completion_research():
    game, _ = make_game()
    settlement = hamlet(game)
    settlement.buildings["hamlet_library"] = 3
    complete(game, settlement)
    assert game.get_research_points(HAMLET) == 13


def test_goal_reduction_and_count_goal_rounding():
    game, _ = make_game()
    game.get_state().unlocked_tiers.add(VILLAGE)
    village = game.spawn_settlement(VILLAGE)
    count_goal = Goal("goal_a", GoalType.BUILDING_COUNT, "cottages", 10, building_id="village_cottage")
    village.goals = [count_goal, Goal("goal_b", GoalType.SURVIVAL, "wait", 1e9)]

    village.buildings["village_well"] = 50
    assert game.get_goal_reduction_factor(village.id) == pytest.approx(0.5)

    village.buildings["village_cottage"] = 4
    game.update()
    assert not count_goal.is_completed
    village.buildings["village_cottage"] = 5
    game.update()
    assert count_goal.is_completed

    village.buildings["village_well"] = 500
    assert game.get_goal_reduction_factor(village.id) == pytest.approx(0.25)


# --- Tier progression ---------------------------------------------------------

def test_six_completions_unlock_village():
    game, _ = make_game()
    complete_hamlets(game, 5)
    assert VILLAGE not in game.get_state().unlocked_tiers

    complete_hamlets(game, 1)
    state = game.get_state()
    assert VILLAGE in state.unlocked_tiers
    assert state.research_points[VILLAGE] == 0
    assert len(settlements_of(game, VILLAGE)) == 1
    assert len(settlements_of(game, HAMLET)) == 1
    kinds = [n.type for n in game.get_and_clear_notifications()]
    assert "tier_unlocked" in kinds


def test_spawning_locked_or_unknown_tier_fails():
    game, _ = make_game()
    assert game.spawn_settlement(VILLAGE) is None
    assert game.spawn_settlement("nowhere") is None
    assert len(game.get_state().settlements) == 1


def test_internal_factory_rejects_unknown_tier():
    game, _ = make_game()
    with pytest.raises(ValueError):
        game._create_settlement("nowhere")


def test_single_slot_higher_tier_goes_dormant_and_rearms():
    game, _ = make_game()
    complete_hamlets(game, 6)
    village = settlements_of(game, VILLAGE)[0]

    complete(game, village)
    state = game.get_state()
    assert VILLAGE in state.dormant_tiers
    assert settlements_of(game, VILLAGE) == []

    complete_hamlets(game, 5)
    assert settlements_of(game, VILLAGE) == []

    complete_hamlets(game, 1)
    assert VILLAGE not in state.dormant_tiers
    assert len(settlements_of(game, VILLAGE)) == 1


def test_manual_spawn_clears_dormancy():
    game, _ = make_game()
    complete_hamlets(game, 6)
    complete(game, settlements_of(game, VILLAGE)[0])

    spawned = game.spawn_settlement(VILLAGE)
    assert spawned is not None
    assert spawned.tier is VILLAGE
    assert VILLAGE not in game.get_state().dormant_tiers


def test_base_tier_never_goes_dormant():
    game, _ = make_game()
    complete_hamlets(game, 3)
    assert HAMLET not in game.get_state().dormant_tiers
    assert len(settlements_of(game, HAMLET)) == 1


# --- Patronage ----------------------------------------------------------------

def test_cross_tier_bonus():
    game, clock = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    state = game.get_state()
    assert game.get_cross_tier_bonus(settlement.id) == 0

    state.completed_settlements[VILLAGE] = 2
    # 2 completions * cottage income 8 * 5%, halved for one tier of distance
    assert game.get_cross_tier_bonus(settlement.id) == pytest.approx(0.4)

    state.completed_settlements[TierType.TOWN] = 1
    assert game.get_cross_tier_bonus(settlement.id) == pytest.approx(0.4 + 60 * 0.05 / 4)

    state.completed_settlements.pop(TierType.TOWN)
    clock.advance(10)
    game.update()
    assert settlement.currency == pytest.approx(14)
    assert game.get_cross_tier_bonus("hamlet_999") == 0


# --- Research -----------------------------------------------------------------

def test_research_purchase_and_next_level():
    game, _ = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    state = game.get_state()
    state.research_points[HAMLET] = 100

    assert game.purchase_research("hamlet_cost_reduction_1")
    assert state.research_points[HAMLET] == 90
    assert game.get_building_cost(settlement.id, "hamlet_hut") == 9

    level_two = next(r for r in state.research if r.id == "hamlet_cost_reduction_2")
    assert level_two.cost == 30
    assert not level_two.purchased
    assert not game.purchase_research("hamlet_cost_reduction_1")


def test_research_purchase_failures():
    game, _ = make_game()
    state = game.get_state()
    state.research_points[HAMLET] = 5
    assert not game.purchase_research("hamlet_cost_reduction_1")
    assert state.research_points[HAMLET] == 5

    state.research_points[HAMLET] = 100
    assert not game.purchase_research("no_such_research")
    assert not game.purchase_research("auto_hamlet_garden_1")
    assert state.research_points[HAMLET] == 100

    state.research_points[VILLAGE] = 100
    assert not game.purchase_research("village_cost_reduction_1")
    assert state.research_points[VILLAGE] == 100


def test_parallel_slot_research_spawns_extra_settlement():
    game, _ = make_game()
    game.get_state().research_points[HAMLET] = 40
    assert game.purchase_research("hamlet_parallel_slots_1")
    assert game.get_parallel_slots(HAMLET) == 2
    assert len(settlements_of(game, HAMLET)) == 2


def test_starting_capital_and_mastery_apply_on_spawn():
    game, _ = make_game()
    game.get_state().research_points[HAMLET] = 10
    assert game.purchase_research("hamlet_starting_capital_1")

    complete_hamlets(game, 1)
    # 10 base + 50 capital + floor(1 completion * 10 * 0.1) mastery
    assert hamlet(game).currency == 61


def test_tier_requirement_comes_from_next_tier(monkeypatch):
    game, _ = make_game()
    assert game.get_tier_requirement(HAMLET) == get_tier_by_type(VILLAGE).unlock_requirement
    assert game.get_tier_requirement() == game.get_tier_requirement(HAMLET)

    village = replace(get_tier_by_type(VILLAGE), unlock_requirement=3)
    monkeypatch.setitem(tiers._TIERS_BY_TYPE, VILLAGE, village)
    assert game.get_tier_requirement(HAMLET) == 3
    complete_hamlets(game, 3)
    assert VILLAGE in game.get_state().unlocked_tiers


def test_research_cost_escalation_setting(monkeypatch):
    monkeypatch.setattr(settings, "RESEARCH_COST_ESCALATION", 2)
    game, _ = make_game()
    game.get_state().research_points[HAMLET] = 10
    assert game.purchase_research("hamlet_cost_reduction_1")
    level_two = next(r for r in game.get_state().research if r.id == "hamlet_cost_reduction_2")
    assert level_two.cost == 20


def test_tier_requirement_research():
    game, _ = make_game()
    assert game.get_tier_requirement(HAMLET) == 6
    game.get_state().research_points[HAMLET] = 60
    assert game.purchase_research("hamlet_tier_requirement_1")
    assert game.get_tier_requirement(HAMLET) == 5

    complete_hamlets(game, 5)
    assert VILLAGE in game.get_state().unlocked_tiers


# --- Auto-building ------------------------------------------------------------

def test_auto_builder_bootstraps_then_respects_treasury_cap():
    game, clock = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    game.get_state().research_points[HAMLET] = 100
    assert game.purchase_research("auto_hamlet_hut_1")

    # First unit ignores the 5% cap
    clock.advance(1)
    game.update()
    assert settlement.buildings["hamlet_hut"] == 1

    # 11 is more than 5% of ~131
    settlement.currency = 100
    clock.advance(31)
    game.update()
    assert settlement.buildings["hamlet_hut"] == 1

    settlement.currency = 1000
    clock.advance(31)
    game.update()
    assert settlement.buildings["hamlet_hut"] == 2


def test_auto_builder_waits_for_interval():
    game, clock = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    game.get_state().research_points[HAMLET] = 100
    assert game.purchase_research("auto_hamlet_hut_1")

    clock.advance(1)
    game.update()
    settlement.currency = 1e6
    clock.advance(10)
    game.update()
    assert settlement.buildings["hamlet_hut"] == 1


def test_auto_builder_timer_resets_without_purchase():
    game, clock = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    game.get_state().research_points[HAMLET] = 100
    assert game.purchase_research("auto_hamlet_hut_1")

    clock.advance(1)
    game.update()
    assert settlement.buildings["hamlet_hut"] == 1

    # Fires but the treasury cap blocks the purchase
    settlement.currency = 100
    clock.advance(31)
    game.update()
    assert settlement.buildings["hamlet_hut"] == 1
    assert game.get_state().auto_building_timers["auto_hamlet_hut_1"] == clock()

    settlement.currency = 1e6
    clock.advance(1)
    game.update()
    assert settlement.buildings["hamlet_hut"] == 1


def test_autobuy_toggle_disables_auto_builders():
    game, clock = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    game.get_state().research_points[HAMLET] = 100
    assert game.purchase_research("auto_hamlet_hut_1")
    assert not game.toggle_autobuy()

    clock.advance(1)
    game.update()
    assert settlement.buildings["hamlet_hut"] == 0


# --- Mastery ------------------------------------------------------------------

def test_mastery_soft_cap():
    game, _ = make_game()
    state = game.get_state()
    assert game.get_mastery_auto_build_speed(HAMLET) == 0

    state.completed_settlements[HAMLET] = 100
    assert game.get_mastery_income_multiplier(HAMLET) == pytest.approx(1.1)

    state.completed_settlements[HAMLET] = 300
    effective = 200 + math.sqrt(100 * 200)
    assert game.get_mastery_level(HAMLET) == 300
    assert game.get_mastery_income_multiplier(HAMLET) == pytest.approx(1 + effective * 0.001)
    assert game.get_mastery_auto_build_speed(HAMLET) == pytest.approx(effective / (effective + 500))
    assert game.get_mastery_starting_currency(HAMLET) == math.floor(effective * 10 * 0.1)


# --- Prestige -----------------------------------------------------------------

def test_cannot_prestige_without_higher_tier_completions():
    game, _ = make_game()
    complete_hamlets(game, 3)
    assert not game.can_prestige()
    assert not game.perform_prestige()
    assert game.get_prestige_count() == 0


def test_prestige_resets_run_and_keeps_lifetime():
    game, _ = make_game()
    state = game.get_state()
    state.unlocked_tiers.add(VILLAGE)
    state.completed_settlements.update({HAMLET: 10, VILLAGE: 4})
    state.lifetime_completions.update({HAMLET: 10, VILLAGE: 4})
    state.research_points[HAMLET] = 10
    assert game.purchase_research("hamlet_cost_reduction_1")

    assert game.can_prestige()
    assert game.get_prestige_preview() == {VILLAGE: 2}
    assert game.perform_prestige()

    state = game.get_state()
    assert game.get_prestige_currency(VILLAGE) == 2
    assert game.get_prestige_currency(HAMLET) == 0
    assert game.get_prestige_count() == 1
    assert state.unlocked_tiers == {HAMLET}
    assert state.completed_settlements == {}
    assert state.research_points == {HAMLET: 0}
    assert not any(r.purchased for r in state.research)
    assert state.auto_building_timers == {}
    assert state.lifetime_completions == {HAMLET: 10, VILLAGE: 4}
    assert game.get_total_lifetime_completions() == 14
    assert len(state.settlements) == 1
    assert state.settlements[0].tier is HAMLET


def test_prestige_upgrade_purchase():
    game, _ = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    state = game.get_state()
    state.prestige_currency[VILLAGE] = 1

    assert game.purchase_prestige_upgrade("prestige_growth_1")
    assert game.get_prestige_currency(VILLAGE) == 0
    assert not game.purchase_prestige_upgrade("prestige_growth_1")
    assert game.get_prestige_effect(PrestigeEffectType.INCOME_MULTIPLIER) == pytest.approx(0.15)

    game.buy_building(settlement.id, "hamlet_hut")
    assert settlement.total_income == pytest.approx(1.15)


def test_prestige_upgrade_failures():
    game, _ = make_game()
    state = game.get_state()
    assert not game.purchase_prestige_upgrade("prestige_growth_1")
    assert not game.purchase_prestige_upgrade("no_such_upgrade")

    state.prestige_currency[VILLAGE] = 10
    assert not game.purchase_prestige_upgrade("prestige_growth_3")
    assert game.get_prestige_currency(VILLAGE) == 10


def test_repeatable_prestige_upgrade_levels():
    game, _ = make_game()
    state = game.get_state()
    for upgrade in state.prestige_upgrades:
        if upgrade.id in ("prestige_growth_1", "prestige_growth_2", "prestige_growth_3"):
            upgrade.purchased = True
    state.prestige_currency[VILLAGE] = 20

    assert game.purchase_prestige_upgrade("prestige_growth_repeat")
    assert game.purchase_prestige_upgrade("prestige_growth_repeat")
    repeat = next(u for u in state.prestige_upgrades if u.id == "prestige_growth_repeat")
    assert repeat.level == 2
    assert game.get_prestige_currency(VILLAGE) == 20 - 5 - 6
    assert game.get_prestige_effect(PrestigeEffectType.INCOME_MULTIPLIER) == pytest.approx(
        0.15 + 0.25 + 0.4 + 0.03 * 2
    )


def test_prestige_building_boost_and_free_buildings():
    game, _ = make_game()
    settlement = hamlet(game)
    pin_goal(settlement)
    state = game.get_state()
    state.prestige_currency[VILLAGE] = 1
    state.prestige_currency[TierType.DUCHY] = 2

    assert game.purchase_prestige_upgrade("prestige_hut_boost")
    assert game.get_prestige_building_boost("hamlet_hut") == 1.0
    game.buy_building(settlement.id, "hamlet_hut")
    assert settlement.total_income == pytest.approx(2)

    assert game.purchase_prestige_upgrade("prestige_free_huts")
    complete(game, settlement)
    assert hamlet(game).buildings["hamlet_hut"] == 2


def test_prestige_parallel_slot_applies_to_base_tier():
    game, _ = make_game()
    game.get_state().prestige_currency[TierType.REALM] = 4
    assert game.purchase_prestige_upgrade("prestige_hamlet_slot")
    assert len(settlements_of(game, HAMLET)) == 2


# --- Achievements -------------------------------------------------------------

def test_first_completion_unlocks_achievements():
    game, _ = make_game(achievements=True)
    complete_hamlets(game, 1)

    unlocked = {a.id for a in game.get_state().achievements if a.unlocked}
    assert "first_steps" in unlocked
    assert "speed_runner" in unlocked
    kinds = [n.type for n in game.get_and_clear_notifications()]
    assert "achievement_unlocked" in kinds
    assert "goal_complete" in kinds

    settlement = hamlet(game)
    pin_goal(settlement)
    game.buy_building(settlement.id, "hamlet_hut")
    # first_steps +1%, speed_runner +2%, one completion of mastery
    assert settlement.total_income == pytest.approx(1.001 * 1.03)


def test_achievements_unlock_once():
    game, _ = make_game(achievements=True)
    settlement = hamlet(game)
    pin_goal(settlement)
    settlement.buildings["hamlet_hut"] = 100

    unlocked = [a.id for a in game.check_achievements()]
    assert "hoarder" in unlocked
    assert "hoarder" not in [a.id for a in game.check_achievements()]


# --- Effect cache -------------------------------------------------------------

def test_effect_lookups_are_memoized_within_a_tick():
    game, _ = make_game(achievements=True)
    game.update()

    def read_effects():
        return (
            game.get_prestige_effect(PrestigeEffectType.INCOME_MULTIPLIER),
            game.get_achievement_effect(AchievementBonusType.INCOME_MULTIPLIER),
            game.get_prestige_building_boost("hamlet_hut"),
            game.get_research_effect(ResearchEffectType.COST_REDUCTION, HAMLET),
        )

    first = read_effects()
    misses = game.effects.misses
    for _ in range(3):
        assert read_effects() == first
    assert game.effects.misses == misses


def test_purchases_invalidate_cached_effects():
    game, _ = make_game(achievements=True)
    state = game.get_state()
    state.research_points[HAMLET] = 10
    state.prestige_currency[VILLAGE] = 1

    assert game.get_research_effect(ResearchEffectType.COST_REDUCTION, HAMLET) == 1
    assert game.purchase_research("hamlet_cost_reduction_1")
    assert game.get_research_effect(ResearchEffectType.COST_REDUCTION, HAMLET) == pytest.approx(0.9)

    assert game.get_prestige_effect(PrestigeEffectType.INCOME_MULTIPLIER) == 0
    assert game.purchase_prestige_upgrade("prestige_growth_1")
    assert game.get_prestige_effect(PrestigeEffectType.INCOME_MULTIPLIER) == pytest.approx(0.15)


def test_achievement_unlock_invalidates_cached_effects():
    game, _ = make_game(achievements=True)
    settlement = hamlet(game)
    pin_goal(settlement)

    assert game.get_achievement_effect(AchievementBonusType.COST_REDUCTION) == 1
    settlement.buildings["hamlet_hut"] = 100
    assert "hoarder" in [a.id for a in game.check_achievements()]
    assert game.get_achievement_effect(AchievementBonusType.COST_REDUCTION) == pytest.approx(0.99)


# --- Settings & notifications -------------------------------------------------

def test_display_toggles():
    game, _ = make_game()
    assert not game.toggle_show_completed_research()
    assert game.toggle_show_prestige_shop()
    assert not game.toggle_show_completed_prestige()
    assert game.toggle_compact_view()


def test_goal_notifications_can_be_muted_per_tier():
    game, _ = make_game()
    assert game.is_goal_notification_enabled(HAMLET)
    assert not game.toggle_goal_notification(HAMLET)

    complete_hamlets(game, 1)
    assert [n for n in game.get_and_clear_notifications() if n.type == "goal_complete"] == []


def test_notification_queue_is_capped():
    game, _ = make_game()
    complete_hamlets(game, 12)
    pending = game.get_and_clear_notifications()
    assert len(pending) == settings.MAX_NOTIFICATIONS
    assert game.get_and_clear_notifications() == []
