# battlecore/battle/status/status_events.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass
class DamageTickEvent:
    """
    Describes a single tick of damage or healing from a status.

    Convention:
      - amount < 0  => damage
      - amount > 0  => healing

    For mp_regen the amount is a resource delta rather than HP.
    """
    target: Any                  # unit object
    amount: int                  # signed change
    kind: str                    # "burn", "poison", "regen", "mp_regen", "divine_sacrifice"
    source_combatant: Optional[Any] = None  # who applied it (for logs)
    expired: bool = False        # the instance ran out on this tick


@dataclass
class ExpireEvent:
    """A status ran its duration out during a tick."""
    target: Any
    kind: str


@dataclass
class RetaliationEvent:
    """
    Reactive damage a defender's status deals back to an attacker.

    `status_to_apply` is an optional follow-up status on the attacker
    (Flame Shield's burn).
    """
    attacker: Any                # the unit that gets hit by the retaliation
    amount: int                  # damage (positive)
    kind: str                    # "thorns", "riposte", "reflect", "flame_shield"
    owner: Optional[Any] = None  # holder of the reactive status
    status_to_apply: Optional[Any] = None


# A convenience union of all supported status-event types.
StatusEvent = Union[
    DamageTickEvent,
    ExpireEvent,
    RetaliationEvent,
]
