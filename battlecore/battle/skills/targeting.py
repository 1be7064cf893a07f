# battlecore/battle/skills/targeting.py
#
# Target legality and expansion.
#
# Legality (what a player / AI may pick for a single-target skill) and
# expansion (the concrete unit list an operation acts on) both read live
# battle state, so expansion happens at resolution time.

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from battlecore.battle.damage import hp_percent
from battlecore.battle.rolls import pick
from battlecore.battle.status.catalog import EffectType


def _visible(candidates: List[Any]) -> List[Any]:
    """Drop untargetable units unless every candidate is untargetable."""
    visible = [u for u in candidates if not u.status.has(EffectType.UNTARGETABLE)]
    return visible or candidates


def attackable_enemies(user: Any, battle_state: Any) -> List[Any]:
    """Opponents `user` may single-target: taunt first, then visibility."""
    candidates = battle_state.living_enemies(user)
    taunters = [u for u in candidates if u.status.has(EffectType.TAUNT)]
    if taunters:
        return taunters
    return _visible(candidates)


def valid_targets(
    user: Any,
    target_type: str,
    battle_state: Any,
    target_filter: Optional[str] = None,
) -> List[Any]:
    """Units a single-target skill may be aimed at."""
    if target_type == "enemy":
        candidates = attackable_enemies(user, battle_state)
    elif target_type == "ally":
        candidates = [a for a in battle_state.living_allies(user) if a is not user]
    elif target_type == "dead_ally":
        candidates = [a for a in battle_state.allies_of(user) if not a.alive]
    else:
        return []

    if target_filter == "not_acted":
        scheduler = getattr(battle_state, "scheduler", None)
        if scheduler is not None:
            candidates = [u for u in candidates if not scheduler.has_acted(u)]
    return candidates


def default_target(user: Any, target_type: str, battle_state: Any, target_filter: Optional[str] = None) -> Optional[Any]:
    """First legal target in field order (used when none was given)."""
    candidates = valid_targets(user, target_type, battle_state, target_filter)
    return candidates[0] if candidates else None


def expand_targets(
    target_type: str,
    user: Any,
    primary: Optional[Any],
    battle_state: Any,
    count: int = 1,
) -> List[Any]:
    """
    Expand a skill's target selector into concrete units.

      enemy / ally / dead_ally -> [primary]
      self                     -> [user]
      all_enemies / all_allies -> every living unit on that side
      random_enemies           -> `count` draws, repeats allowed; a MARKED
                                  opponent is drawn first when present
      lowest_hp_ally           -> the living ally with the lowest HP%
    """
    if target_type in ("enemy", "ally", "dead_ally"):
        return [primary] if primary is not None else []
    if target_type == "self":
        return [user]
    if target_type == "all_enemies":
        return battle_state.living_enemies(user)
    if target_type == "all_allies":
        return battle_state.living_allies(user)
    if target_type == "lowest_hp_ally":
        allies = battle_state.living_allies(user)
        if not allies:
            return []
        return [min(allies, key=hp_percent)]
    if target_type == "random_enemies":
        chosen: List[Any] = []
        for _ in range(max(1, count)):
            pool = _visible(battle_state.living_enemies(user))
            if not pool:
                break
            marked = [u for u in pool if u.status.has(EffectType.MARKED)]
            chosen.append(pick(battle_state.rng, marked or pool))
        return chosen
    return [primary] if primary is not None else []


def resolve_selector(
    selector: str,
    user: Any,
    primary_targets: Sequence[Any],
    battle_state: Any,
) -> List[Any]:
    """Map an operation's `target` field onto units."""
    if selector == "self":
        return [user]
    if selector == "all_allies":
        return battle_state.living_allies(user)
    if selector == "other_allies":
        return [a for a in battle_state.living_allies(user) if a is not user]
    if selector == "all_enemies":
        return battle_state.living_enemies(user)
    # "primary" and the template words that mean it ("enemy", "ally", "target")
    return list(primary_targets)
