from __future__ import annotations

import json
import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from catalog.achievements import create_achievement_catalog
from catalog.goals import Goal, GoalType
from catalog.prestige import create_prestige_catalog
from catalog.research import (
    ResearchEffect,
    ResearchEffectType,
    ResearchUpgrade,
    create_research_catalog,
)
from catalog.tiers import TierType, get_tier_by_type
from . import settings
from .models import GameSettings, GameState, Settlement

logger = logging.getLogger("kingdoms.Persistence")
logger.addHandler(logging.NullHandler())


# -----------------------------------------------------------------------------
# Custom Exceptions
# -----------------------------------------------------------------------------
class GameSaveError(Exception):
    """Exception raised when saving the game state fails."""


class GameLoadError(Exception):
    """Exception raised when save data is unreadable, malformed or from another version."""


@dataclass
class LoadResult:
    """A restored state plus the time it was saved at."""

    state: GameState
    timestamp: float

    def __iter__(self):
        return iter((self.state, self.timestamp))


# -----------------------------------------------------------------------------
# Serialization Helpers
# -----------------------------------------------------------------------------
def _tier_pairs(data: Dict[TierType, Any]) -> List[List[Any]]:
    return [[tier.value, value] for tier, value in data.items()]


def _pairs_to_tier_dict(pairs: Any, cast) -> Dict[TierType, Any]:
    if not isinstance(pairs, list):
        raise GameLoadError(f"Expected a list of pairs, got {type(pairs).__name__}")
    result: Dict[TierType, Any] = {}
    for key, value in pairs:
        result[TierType(key)] = cast(value)
    return result


def serialize_goal(goal: Goal) -> Dict[str, Any]:
    return {
        "id": goal.id,
        "type": goal.type.value,
        "description": goal.description,
        "target_value": goal.target_value,
        "current_value": goal.current_value,
        "is_completed": goal.is_completed,
        "building_id": goal.building_id,
    }


def deserialize_goal(data: Dict[str, Any]) -> Goal:
    return Goal(
        id=str(data["id"]),
        type=GoalType(data["type"]),
        description=str(data["description"]),
        target_value=float(data["target_value"]),
        current_value=float(data.get("current_value", 0)),
        is_completed=bool(data.get("is_completed", False)),
        building_id=data.get("building_id"),
    )


def serialize_settlement(settlement: Settlement) -> Dict[str, Any]:
    return {
        "id": settlement.id,
        "tier": settlement.tier.value,
        "currency": settlement.currency,
        "total_income": settlement.total_income,
        "buildings": [[bid, count] for bid, count in settlement.buildings.items()],
        "lifetime_currency_earned": settlement.lifetime_currency_earned,
        "total_currency_spent": settlement.total_currency_spent,
        "spawn_time": settlement.spawn_time,
        "is_complete": settlement.is_complete,
        "goals": [serialize_goal(g) for g in settlement.goals],
    }


def deserialize_settlement(data: Dict[str, Any]) -> Settlement:
    tier = TierType(data["tier"])
    tier_def = get_tier_by_type(tier)
    # Every building of the tier is present, even at zero
    buildings = {b.id: 0 for b in tier_def.buildings}
    for building_id, count in data["buildings"]:
        if building_id in buildings:
            buildings[building_id] = int(count)
        else:
            logger.warning("Skipping unknown building %r in settlement %r", building_id, data.get("id"))
    return Settlement(
        id=str(data["id"]),
        tier=tier,
        currency=float(data["currency"]),
        buildings=buildings,
        spawn_time=float(data["spawn_time"]),
        total_income=float(data.get("total_income", 0)),
        lifetime_currency_earned=float(data.get("lifetime_currency_earned", 0)),
        total_currency_spent=float(data.get("total_currency_spent", 0)),
        is_complete=bool(data.get("is_complete", False)),
        goals=[deserialize_goal(g) for g in data.get("goals", [])],
    )


def serialize_research(upgrade: ResearchUpgrade) -> Dict[str, Any]:
    return {
        "id": upgrade.id,
        "name": upgrade.name,
        "description": upgrade.description,
        "cost": upgrade.cost,
        "tier": upgrade.tier.value,
        "effect": {
            "type": upgrade.effect.type.value,
            "value": upgrade.effect.value,
            "building_id": upgrade.effect.building_id,
            "interval": upgrade.effect.interval,
        },
        "purchased": upgrade.purchased,
        "prerequisite": upgrade.prerequisite,
        "repeatable": upgrade.repeatable,
        "level": upgrade.level,
    }


def deserialize_research(data: Dict[str, Any]) -> ResearchUpgrade:
    effect = data["effect"]
    interval = effect.get("interval")
    return ResearchUpgrade(
        id=str(data["id"]),
        name=str(data["name"]),
        description=str(data.get("description", "")),
        cost=int(data["cost"]),
        tier=TierType(data["tier"]),
        effect=ResearchEffect(
            type=ResearchEffectType(effect["type"]),
            value=float(effect.get("value", 0)),
            building_id=effect.get("building_id"),
            interval=float(interval) if interval is not None else None,
        ),
        purchased=bool(data.get("purchased", False)),
        prerequisite=data.get("prerequisite"),
        repeatable=bool(data.get("repeatable", False)),
        level=int(data.get("level", 1)),
    )


def merge_research(saved: Iterable[Any]) -> List[ResearchUpgrade]:
    """
    Apply saved purchase flags to the current research catalog.

    Levels generated during play are not part of the catalog and are
    restored from their saved definition, after the catalog entries.
    """
    research = create_research_catalog()
    by_id = {r.id: r for r in research}
    generated: List[ResearchUpgrade] = []
    for entry in saved:
        upgrade_id = entry["id"]
        if upgrade_id in by_id:
            by_id[upgrade_id].purchased = bool(entry.get("purchased", False))
        else:
            generated.append(deserialize_research(entry))
    return research + generated


def serialize_settings(game_settings: GameSettings) -> Dict[str, Any]:
    return {
        "dev_mode_enabled": game_settings.dev_mode_enabled,
        "buy_amount": game_settings.buy_amount,
        "autobuy_enabled": game_settings.autobuy_enabled,
        "show_completed_research": game_settings.show_completed_research,
        "show_prestige_shop": game_settings.show_prestige_shop,
        "show_completed_prestige": game_settings.show_completed_prestige,
        "compact_view": game_settings.compact_view,
        "goal_notifications_by_tier": [
            [tier, enabled] for tier, enabled in game_settings.goal_notifications_by_tier.items()
        ],
    }


def deserialize_settings(data: Any) -> GameSettings:
    if not isinstance(data, dict):
        logger.warning("'settings' in save data is not an object; using defaults.")
        return GameSettings()
    buy_amount = data.get("buy_amount", 1)
    if buy_amount != "max":
        buy_amount = int(buy_amount)
    return GameSettings(
        dev_mode_enabled=bool(data.get("dev_mode_enabled", False)),
        buy_amount=buy_amount,
        autobuy_enabled=bool(data.get("autobuy_enabled", True)),
        show_completed_research=bool(data.get("show_completed_research", True)),
        show_prestige_shop=bool(data.get("show_prestige_shop", False)),
        show_completed_prestige=bool(data.get("show_completed_prestige", True)),
        compact_view=bool(data.get("compact_view", False)),
        goal_notifications_by_tier={
            str(tier): bool(enabled) for tier, enabled in data.get("goal_notifications_by_tier", [])
        },
    )


def serialize_state(state: GameState, timestamp: Optional[float] = None) -> Dict[str, Any]:
    """Versioned, JSON-ready projection of the game state."""
    return {
        "version": settings.GAME_VERSION,
        "timestamp": timestamp if timestamp is not None else time.time(),
        "game_state": {
            "settlements": [serialize_settlement(s) for s in state.settlements],
            "research_points": _tier_pairs(state.research_points),
            "unlocked_tiers": [tier.value for tier in state.unlocked_tiers],
            "completed_settlements": _tier_pairs(state.completed_settlements),
            "research": [serialize_research(r) for r in state.research],
            "auto_building_timers": [[rid, t] for rid, t in state.auto_building_timers.items()],
            "prestige_currency": _tier_pairs(state.prestige_currency),
            "prestige_count": state.prestige_count,
            "lifetime_completions": _tier_pairs(state.lifetime_completions),
            "prestige_upgrades": [
                {"id": u.id, "purchased": u.purchased, "level": u.level}
                for u in state.prestige_upgrades
            ],
            "achievements": [{"id": a.id, "unlocked": a.unlocked} for a in state.achievements],
            "dormant_tiers": [tier.value for tier in state.dormant_tiers],
            "next_settlement_id": state.next_settlement_id,
            "settings": serialize_settings(state.settings),
        },
    }


def _restore_state(raw: Dict[str, Any]) -> GameState:
    prestige_upgrades = create_prestige_catalog()
    prestige_by_id = {u.id: u for u in prestige_upgrades}
    for entry in raw.get("prestige_upgrades", []):
        upgrade = prestige_by_id.get(entry.get("id"))
        if upgrade is None:
            logger.warning("Skipping unknown prestige upgrade in save: %r", entry.get("id"))
            continue
        upgrade.purchased = bool(entry.get("purchased", False))
        upgrade.level = int(entry.get("level", 0))

    achievements = create_achievement_catalog()
    achievements_by_id = {a.id: a for a in achievements}
    for entry in raw.get("achievements", []):
        achievement = achievements_by_id.get(entry.get("id"))
        if achievement is None:
            logger.warning("Skipping unknown achievement in save: %r", entry.get("id"))
            continue
        achievement.unlocked = bool(entry.get("unlocked", False))

    return GameState(
        settlements=[deserialize_settlement(s) for s in raw["settlements"]],
        research_points=_pairs_to_tier_dict(raw["research_points"], float),
        unlocked_tiers={TierType(t) for t in raw["unlocked_tiers"]},
        completed_settlements=_pairs_to_tier_dict(raw.get("completed_settlements", []), int),
        research=merge_research(raw.get("research", [])),
        auto_building_timers={str(k): float(v) for k, v in raw.get("auto_building_timers", [])},
        prestige_currency=_pairs_to_tier_dict(raw.get("prestige_currency", []), int),
        prestige_count=int(raw.get("prestige_count", 0)),
        lifetime_completions=_pairs_to_tier_dict(raw.get("lifetime_completions", []), int),
        prestige_upgrades=prestige_upgrades,
        achievements=achievements,
        dormant_tiers={TierType(t) for t in raw.get("dormant_tiers", [])},
        next_settlement_id=int(raw.get("next_settlement_id", 0)),
        settings=deserialize_settings(raw.get("settings")),
    )


def deserialize_state(data: Any) -> LoadResult:
    """
    Rebuild a game state from its serialized projection.

    Raises:
        GameLoadError: on a version mismatch or malformed structure.
    """
    if not isinstance(data, dict):
        raise GameLoadError("Save data must be a JSON object.")
    version = data.get("version")
    if version != settings.GAME_VERSION:
        raise GameLoadError(f"Unsupported save version: {version}. Expected {settings.GAME_VERSION}.")
    raw = data.get("game_state")
    if not isinstance(raw, dict):
        raise GameLoadError("Save data has no 'game_state' object.")

    try:
        state = _restore_state(raw)
        timestamp = float(data.get("timestamp", time.time()))
    except GameLoadError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as e:
        raise GameLoadError(f"Malformed save data: {e!r}") from e
    return LoadResult(state=state, timestamp=timestamp)


def export_state(state: GameState, timestamp: Optional[float] = None) -> str:
    return json.dumps(serialize_state(state, timestamp))


def import_state(text: str) -> LoadResult:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise GameLoadError(f"Save data is not valid JSON: {e}") from e
    return deserialize_state(data)


# -----------------------------------------------------------------------------
# Loading and Saving Files
# -----------------------------------------------------------------------------
def load_state(*, file_path: Optional[Path] = None) -> Optional[LoadResult]:
    """
    Load the saved game state, or ``None`` when no save file exists.

    Raises:
        GameLoadError: if the file cannot be read or its content is rejected.
    """
    path = file_path or settings.SAVE_FILE
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise GameLoadError(f"Failed to read save file: {e}") from e
    return import_state(text)


def save_state(
    state: GameState, *, file_path: Optional[Path] = None, timestamp: Optional[float] = None
) -> None:
    """
    Persist the current game state to disk in an atomic manner.

    Raises:
        GameSaveError: if writing or renaming fails.
    """
    path = file_path or settings.SAVE_FILE
    temp_file = path.with_suffix(".json.tmp")
    data = serialize_state(state, timestamp)

    # Write to a temporary file first
    try:
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
    except (OSError, TypeError, ValueError) as e:
        raise GameSaveError(f"Failed to write to temporary save file: {e}") from e

    try:
        shutil.move(str(temp_file), str(path))
    except OSError as e:
        raise GameSaveError(f"Failed to move temporary save file into place: {e}") from e


def delete_save(*, file_path: Optional[Path] = None) -> bool:
    path = file_path or settings.SAVE_FILE
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
