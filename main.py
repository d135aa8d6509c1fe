import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional

from catalog.format import format_income, format_number
from catalog.tiers import TIER_ORDER, get_tier_by_type
from economy import settings
from economy.engine import GameStateManager
from economy.simulation import format_report, run_tier_simulation

logger = logging.getLogger("kingdoms.Main")

STATUS_INTERVAL_SECONDS = 5.0


def print_status(game: GameStateManager) -> None:
    state = game.get_state()
    print(f"Income {format_income(game.get_total_income())} | prestige #{state.prestige_count}")
    for settlement in state.settlements:
        goals = ", ".join(
            f"{g.description} ({format_number(g.current_value)}/{format_number(g.target_value)})"
            for g in settlement.goals
        )
        print(f"  {settlement.id:<12} {format_number(settlement.currency):>10}  {goals}")
    for notification in game.get_and_clear_notifications():
        print(f"  * {notification.message}")


def run_simulation(tier_name: str) -> int:
    if get_tier_by_type(tier_name) is None:
        logger.error("Unknown tier %r", tier_name)
        return 1
    print(format_report(run_tier_simulation(get_tier_by_type(tier_name).type)))
    return 0


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Run the Path to Kingdoms idle economy in the terminal.")
    parser.add_argument(
        "--save-file", type=str, default=str(settings.SAVE_FILE),
        help="Path of the save file to load and autosave to"
    )
    parser.add_argument(
        "--no-save", action="store_true",
        help="Run without reading or writing the save file"
    )
    parser.add_argument(
        "--dev-mode", action="store_true",
        help="Multiply all income by 1000"
    )
    parser.add_argument(
        "--tick", type=float, default=0.1,
        help="Seconds between engine updates (default: 0.1)"
    )
    parser.add_argument(
        "--simulate", type=str, default="", metavar="TIER",
        choices=[""] + [tier.value for tier in TIER_ORDER],
        help="Print a balance simulation report for TIER and exit"
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level"
    )
    args = parser.parse_args(argv)

    # Set up logging as early as possible
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.simulate:
        return run_simulation(args.simulate)

    # 1) Load the save unless running without one
    save_file = None if args.no_save else Path(args.save_file)
    game = GameStateManager(save_file=save_file, autoload=save_file is not None)

    # 2) Apply command-line toggles
    if args.dev_mode and not game.is_dev_mode_enabled():
        game.toggle_dev_mode()

    # 3) Main loop: tick the engine, print progress now and then
    last_status = 0.0
    try:
        while True:
            game.update()
            now = time.time()
            if now - last_status >= STATUS_INTERVAL_SECONDS:
                last_status = now
                print_status(game)
            time.sleep(args.tick)
    except KeyboardInterrupt:
        print("\nStopping game...")
    finally:
        if save_file is not None:
            game.save_game()
        else:
            print("Skipping save (--no-save)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
