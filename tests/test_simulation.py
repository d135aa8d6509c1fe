import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from catalog.goals import Goal, GoalType, build_goal_templates
from catalog.tiers import TierType
from economy.simulation import (
    STATUS_DNF,
    STATUS_OK,
    STATUS_TOO_FAST,
    STATUS_TOO_SLOW,
    ResearchComparison,
    SimResult,
    SimulatedClock,
    classify,
    compare_research,
    format_report,
    goal_max_minutes,
    simulate_goal,
)

HAMLET = TierType.HAMLET


def easy_goal():
    return Goal("goal_easy", GoalType.ACCUMULATE_CURRENCY, "Earn 300 total currency", 300)


def test_simulated_clock():
    clock = SimulatedClock(start=100.0)
    assert clock() == 100.0
    assert clock.advance(2.5) == 102.5
    assert clock() == 102.5


def test_easy_goal_completes():
    seconds = simulate_goal(HAMLET, easy_goal())
    assert seconds is not None
    assert 0 < seconds < 600


def test_same_seed_same_result():
    goal = Goal("goal_huts", GoalType.BUILDING_COUNT, "Build 12 Huts", 12, building_id="hamlet_hut")
    assert simulate_goal(HAMLET, goal, seed=5) == simulate_goal(HAMLET, goal, seed=5)


def test_original_goal_is_not_mutated():
    goal = easy_goal()
    simulate_goal(HAMLET, goal)
    assert not goal.is_completed
    assert goal.current_value == 0


def test_hard_cap_stops_simulation():
    impossible = Goal("goal_never", GoalType.REACH_INCOME, "Reach a lot", 1e15)
    assert simulate_goal(HAMLET, impossible, hard_cap_seconds=20) is None


def test_research_can_be_pre_purchased():
    goal = Goal("goal_income", GoalType.REACH_INCOME, "Reach 2 income", 2)
    # Starting income research alone satisfies the goal on the first tick
    assert simulate_goal(HAMLET, goal, research_ids=["hamlet_starting_income_1"]) == 0


def test_goal_max_minutes():
    assert goal_max_minutes(easy_goal(), HAMLET) == 20
    hut_goal = Goal("g", GoalType.BUILDING_COUNT, "Huts", 20, building_id="hamlet_hut")
    assert goal_max_minutes(hut_goal, HAMLET) == 20
    workshop_goal = Goal("g", GoalType.BUILDING_COUNT, "Workshops", 10, building_id="hamlet_workshop")
    assert goal_max_minutes(workshop_goal, HAMLET) > 20


def test_classify():
    assert classify(None, HAMLET, 20) == STATUS_DNF
    assert classify(60, HAMLET, 20) == STATUS_TOO_FAST
    assert classify(600, HAMLET, 20) == STATUS_OK
    assert classify(60 * 30, HAMLET, 20) == STATUS_TOO_SLOW


def test_compare_research_covers_every_template():
    comparisons = compare_research(HAMLET, ["hamlet_cost_reduction_1"], hard_cap_seconds=3)
    assert len(comparisons) == len(build_goal_templates(HAMLET))
    assert all(isinstance(c, ResearchComparison) for c in comparisons)


def test_speedup_percent():
    assert ResearchComparison("g", 200, 150).speedup_percent == 25
    assert ResearchComparison("g", None, 150).speedup_percent is None
    assert ResearchComparison("g", 200, None).speedup_percent is None


def test_format_report():
    results = [
        SimResult(HAMLET, "Earn 144.0K total currency", 144_000, 600, 20, STATUS_OK),
        SimResult(HAMLET, "Build 45 Huts", 45, None, 20, STATUS_DNF),
    ]
    report = format_report(results)
    assert "BALANCE SIMULATION - HAMLET" in report
    assert "DID NOT COMPLETE" in report
    assert "10.0 min" in report
    assert "1/2 goals within bounds" in report
    assert format_report([]) == "No simulation results."
