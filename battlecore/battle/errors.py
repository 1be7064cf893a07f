# battlecore/battle/errors.py

from __future__ import annotations


class BattleError(Exception):
    """Base class for engine faults. Illegal player actions are NOT errors."""


class SchedulerError(BattleError):
    """
    The scheduler was asked for an actor while one side has no living
    units and the battle is not in a terminal state. This means a win/loss
    check was skipped after the previous operation.
    """
