# battlecore/debug/debug_logger.py

from __future__ import annotations

import logging
from typing import Any, Iterable

# ----------------------------------------------------------------------
# Core debug toggles
# ----------------------------------------------------------------------

DEBUG_ENABLED: bool = True

ENABLED_CATEGORIES: set[str] = {
    "runtime",
    "scheduler",
    "enemy_ai",
    "battle",    # battle-inspection snapshots
    "status",    # status apply / tick / expire tracing
    "resolver",  # SkillResolver operation tracing
    "damage",    # pipeline breakdowns
}

# Warnings are configuration errors; they bypass the category gate.
ALWAYS_ON: frozenset[str] = frozenset({"warn"})

_LOGGER_ROOT = "battlecore"


def enable_categories(*cats: str) -> None:
    ENABLED_CATEGORIES.update(cats)


def disable_categories(*cats: str) -> None:
    for c in cats:
        ENABLED_CATEGORIES.discard(c)


def set_categories(cats: Iterable[str]) -> None:
    global ENABLED_CATEGORIES
    ENABLED_CATEGORIES = set(cats)


def get_logger(category: str) -> logging.Logger:
    return logging.getLogger(f"{_LOGGER_ROOT}.{category}")


def log(category: str, message: str) -> None:
    if category in ALWAYS_ON:
        get_logger(category).warning(message)
        return
    if not DEBUG_ENABLED:
        return
    if category not in ENABLED_CATEGORIES:
        return
    get_logger(category).debug(f"[BATTLE {category.upper()}] {message}")


def warn(message: str) -> None:
    log("warn", message)


# ----------------------------------------------------------------------
# High-level Battle Debug Helper
# ----------------------------------------------------------------------

class BattleDebug:
    """
    Helper that formats structured debug messages for the battle engine.

    BattleController, TurnScheduler, StatusManager and SkillResolver
    should call these helpers instead of hand-rolling debug strings.
    """

    # --------------------------------------------------------------
    # Category shorthands
    # --------------------------------------------------------------
    def runtime(self, msg: str) -> None:
        log("runtime", msg)

    def scheduler(self, msg: str) -> None:
        log("scheduler", msg)

    def status(self, msg: str) -> None:
        log("status", msg)

    def resolver(self, msg: str) -> None:
        log("resolver", msg)

    def enemy_ai(self, msg: str) -> None:
        log("enemy_ai", msg)

    def warn(self, msg: str) -> None:
        warn(msg)

    # --------------------------------------------------------------
    # Snapshots
    # --------------------------------------------------------------
    def _side_rows(self, units: Iterable[Any], prefix: str) -> list[str]:
        rows = []
        for i, u in enumerate(units):
            name = getattr(u, "name", f"{prefix}{i}")
            hp = getattr(u, "hp", None)
            max_hp = getattr(u, "max_hp", None)
            pool = getattr(u, "resource", None)
            res = f"  {pool.kind} {pool.current}/{pool.max}" if pool is not None else ""
            effects = ""
            mgr = getattr(u, "status", None)
            if mgr is not None:
                ids = mgr.get_active_ids()
                if ids:
                    effects = "  [" + ", ".join(ids) + "]"
            rows.append(f"  [{prefix}{i}] {name}: HP {hp}/{max_hp}{res}{effects}")
        return rows

    def party_snapshot(self, party: Iterable[Any]) -> None:
        log("battle", "[PARTY]\n" + "\n".join(self._side_rows(party, "P")))

    def enemy_snapshot(self, enemies: Iterable[Any]) -> None:
        log("battle", "[ENEMIES]\n" + "\n".join(self._side_rows(enemies, "E")))

    def battle_snapshot(self, controller: Any) -> None:
        """Full battle-state dump: state, round, queue and both sides."""
        lines: list[str] = []
        lines.append("=== DEBUG: Battle State ===")
        lines.append(f"state: {getattr(controller, 'state', None)!r}")
        lines.append(f"round: {getattr(controller, 'round_number', None)}")
        current = getattr(controller, "current_unit", None)
        lines.append(f"actor: {getattr(current, 'name', None)!r}")
        order = getattr(controller, "turn_order", [])
        lines.append("queue: " + ", ".join(getattr(u, "name", "?") for u in order))
        lines.append("")
        lines.append("Party:")
        lines.extend(self._side_rows(getattr(controller, "heroes", []), "P"))
        lines.append("")
        lines.append("Enemies:")
        lines.extend(self._side_rows(getattr(controller, "enemies", []), "E"))
        lines.append("=== END BATTLE DEBUG ===")
        log("battle", "\n".join(lines))
