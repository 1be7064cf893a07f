# battlecore/battle/scheduler.py
#
# Round-based turn scheduler.
#
# This system manages:
#   - A per-round queue ordered by effective SPD (descending, ties by the
#     unit's stable index in the battle)
#   - Shattered Tempo holders placed ahead of everyone for one round,
#     higher turn_order_priority first
#   - Mid-round reordering: priority injection, turn reset, extra turns
#
# Summoned units are not inserted into a running round; they are picked up
# by the next start_round().

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Set

from battlecore.battle.damage import effective_stats
from battlecore.battle.errors import SchedulerError
from battlecore.battle.status.catalog import EffectType
from battlecore.debug.debug_logger import log as battle_log


def effective_speed(unit: Any) -> float:
    """Base SPD with SPD_UP / SPD_DOWN / momentum percentages applied."""
    return effective_stats(unit)["spd"]


class TurnScheduler:
    """
    Turn-order manager.

    Responsibilities:
      - Build the round's queue from living units.
      - Hand out the next living actor.
      - Allow the controller to reorder the remaining queue mid-round.

    It never decides victory; it only refuses to run when a side is empty.
    """

    def __init__(self) -> None:
        self.round_number: int = 0
        self._queue: List[Any] = []
        self._acted: Set[str] = set()
        self._extra_turn: Optional[Any] = None
        self._units: List[Any] = []

    # ------------------------------------------------------------
    # Round construction
    # ------------------------------------------------------------
    def start_round(self, units: Iterable[Any]) -> List[Any]:
        """
        Begin a new round: recompute speeds and rebuild the queue.

        `units` is every battle participant in stable index order (heroes
        then enemies); the dead are skipped. Shattered Tempo is consumed
        here, so its priority covers exactly this round.
        """
        self._units = list(units)
        self.round_number += 1
        self._acted.clear()
        self._extra_turn = None

        indexed = [(i, u) for i, u in enumerate(self._units) if u.alive]

        def speed_key(item):
            idx, unit = item
            return (-effective_speed(unit), idx)

        def priority_key(item):
            idx, unit = item
            tempo = unit.status.get(EffectType.SHATTERED_TEMPO)
            rank = float(tempo.get("turn_order_priority", 0) or 0)
            return (-rank,) + speed_key(item)

        priority = [
            (i, u) for i, u in indexed
            if u.status.has(EffectType.SHATTERED_TEMPO)
        ]
        priority_idx = {i for i, _ in priority}
        regular = [(i, u) for i, u in indexed if i not in priority_idx]

        priority.sort(key=priority_key)
        regular.sort(key=speed_key)
        self._queue = [u for _, u in priority] + [u for _, u in regular]

        # One round of priority only.
        for _, unit in priority:
            unit.status.remove_kind(EffectType.SHATTERED_TEMPO)

        battle_log(
            "scheduler",
            f"[ROUND {self.round_number}] order: "
            + ", ".join(f"{u.name}({effective_speed(u):g})" for u in self._queue),
        )
        return list(self._queue)

    # ------------------------------------------------------------
    # Consumption
    # ------------------------------------------------------------
    def next_actor(self) -> Optional[Any]:
        """
        Pop the next living actor, or None when the round is exhausted.

        Raises SchedulerError if either side has no living unit: the
        controller should have ended the battle before asking.
        """
        sides = {}
        for unit in self._units:
            sides.setdefault(unit.side, False)
            if unit.alive:
                sides[unit.side] = True
        if len(sides) < 2 or not all(sides.values()):
            raise SchedulerError(
                f"next_actor() with an empty side (round {self.round_number}): {sides}"
            )

        if self._extra_turn is not None:
            unit = self._extra_turn
            self._extra_turn = None
            if unit.alive:
                battle_log("scheduler", f"[EXTRA TURN] {unit.name}")
                return unit

        while self._queue:
            unit = self._queue.pop(0)
            if unit.alive:
                self._acted.add(unit.id)
                return unit
        return None

    @property
    def round_exhausted(self) -> bool:
        return self._extra_turn is None and not any(u.alive for u in self._queue)

    # ------------------------------------------------------------
    # Mid-round reordering
    # ------------------------------------------------------------
    def inject_priority(self, unit: Any, slot: int = 0) -> None:
        """
        Move (or insert) `unit` into `slot` of the remaining queue,
        preserving everyone else's relative order.
        """
        if unit in self._queue:
            self._queue.remove(unit)
        slot = max(0, min(int(slot), len(self._queue)))
        self._queue.insert(slot, unit)
        battle_log("scheduler", f"[PRIORITY] {unit.name} -> slot {slot}")

    def reset_turn(self, unit: Any) -> None:
        """The unit acts again at the front of the remaining queue."""
        self._acted.discard(unit.id)
        self.inject_priority(unit, 0)

    def grant_extra_turn(self, unit: Any) -> None:
        """The unit acts again immediately after its current turn."""
        self._extra_turn = unit

    def add_unit(self, unit: Any) -> None:
        """
        Register a unit that joined mid-round (a summon). It counts toward
        its side from now on but only gets a turn from the next round.
        """
        if unit not in self._units:
            self._units.append(unit)
        battle_log("scheduler", f"[JOIN] {unit.name} waits for round {self.round_number + 1}")

    def remove(self, unit: Any) -> None:
        if unit in self._queue:
            self._queue.remove(unit)
        if self._extra_turn is unit:
            self._extra_turn = None

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------
    @property
    def turn_order(self) -> List[Any]:
        """Remaining living actors for this round, in order."""
        upcoming = [u for u in self._queue if u.alive]
        if self._extra_turn is not None and self._extra_turn.alive:
            upcoming.insert(0, self._extra_turn)
        return upcoming

    def has_acted(self, unit: Any) -> bool:
        return unit.id in self._acted
