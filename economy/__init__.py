"""Economy package exposing the engine and its state model."""

from .engine import GameStateManager, create_initial_state
from .models import BuyAmount, GameNotification, GameSettings, GameState, Settlement
from .persistence import GameLoadError, GameSaveError, LoadResult
from .effects import Aggregation, EffectCache
from .simulation import SimulatedClock, SimResult, run_tier_simulation, simulate_goal

__all__ = [
    "GameStateManager",
    "create_initial_state",
    "BuyAmount",
    "GameNotification",
    "GameSettings",
    "GameState",
    "Settlement",
    "GameLoadError",
    "GameSaveError",
    "LoadResult",
    "Aggregation",
    "EffectCache",
    "SimulatedClock",
    "SimResult",
    "run_tier_simulation",
    "simulate_goal",
]
