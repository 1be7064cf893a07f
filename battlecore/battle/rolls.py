# battlecore/battle/rolls.py
#
# Every random decision in a battle goes through these helpers, and they
# only ever call rng.random(). A test can therefore drive a whole battle
# with a scripted sequence of floats.

from __future__ import annotations

from typing import Any, List, Optional, Sequence, TypeVar

T = TypeVar("T")


def roll_percent(rng: Any, percent: float) -> bool:
    """True when a draw lands under `percent` (0-100)."""
    if percent <= 0:
        return False
    return rng.random() < percent / 100.0


def roll_chance(rng: Any, chance: float) -> bool:
    """True when a draw lands under `chance` (0.0-1.0)."""
    if chance <= 0:
        return False
    if chance >= 1:
        return True
    return rng.random() < chance


def pick(rng: Any, seq: Sequence[T]) -> Optional[T]:
    if not seq:
        return None
    idx = int(rng.random() * len(seq))
    return seq[min(idx, len(seq) - 1)]


def sample(rng: Any, seq: Sequence[T], count: int) -> List[T]:
    """Pick up to `count` distinct items, in draw order."""
    pool = list(seq)
    chosen: List[T] = []
    while pool and len(chosen) < count:
        item = pick(rng, pool)
        pool.remove(item)
        chosen.append(item)
    return chosen
