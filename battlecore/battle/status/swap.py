# battlecore/battle/status/swap.py
#
# Fortune swap: every swappable status on the field is flipped onto the
# other side as its mapped counterpart; anything without a mapping is
# dispelled. An empty field gets one random fallback effect instead.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from battlecore.battle.rolls import pick
from battlecore.battle.status.catalog import create_effect, get_definition
from battlecore.debug.debug_logger import log as battle_log


@dataclass
class FortuneSwapResult:
    success: bool = True
    swapped: int = 0
    dispelled: int = 0
    used_fallback: bool = False
    fallback_kind: Optional[str] = None
    message: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.swapped == 0 and self.dispelled == 0


def execute_fortune_swap(
    caster: Any,
    session: Any,
    swap_pairs: Dict[str, str],
    dispel_list: Iterable[str] = (),
    empty_fallback: Optional[Dict[str, Any]] = None,
) -> FortuneSwapResult:
    """
    Swap statuses between the caster's side and the opposing side.

    For every living unit on either side:
      - a kind in `swap_pairs` is removed and its paired kind (same duration
        and value, sourced from the caster) lands on every living unit of
        the opposite side
      - any other kind is dispelled; `dispel_list` names the kinds that are
        always stripped even when a pairing exists

    Dead units keep their statuses. Paired effects are applied after the
    whole field was processed, so nothing is swapped twice.
    """
    result = FortuneSwapResult()
    always_dispel = set(dispel_list)
    allies = session.living_allies(caster)
    enemies = session.living_enemies(caster)

    pending: List[Tuple[List[Any], str, Any, Any]] = []
    for side, opposite in ((allies, enemies), (enemies, allies)):
        for unit in side:
            for eff in unit.status.get_effects():
                unit.status.remove(eff)
                paired = swap_pairs.get(eff.kind)
                if paired is None or eff.kind in always_dispel:
                    result.dispelled += 1
                    battle_log("status", f"[SWAP] {unit.name} {eff.kind} dispelled")
                    continue
                result.swapped += 1
                pending.append((opposite, paired, eff.duration, eff.value))
                battle_log("status", f"[SWAP] {unit.name} {eff.kind} -> {paired} on the other side")

    for recipients, kind, duration, value in pending:
        for unit in recipients:
            effect = create_effect(kind, duration=duration, value=value, source_id=caster.id)
            session.apply_status(unit, effect)

    if result.is_empty and empty_fallback:
        _apply_fallback(caster, session, empty_fallback, result)

    session.emit(
        f"{caster.name}'s fortune turns: {result.swapped} swapped, {result.dispelled} dispelled",
        kind="swap",
        actor=caster,
        amount=result.swapped + result.dispelled,
    )
    return result


def _apply_fallback(caster: Any, session: Any, fallback: Dict[str, Any], result: FortuneSwapResult) -> None:
    options = list(fallback.get("options", []))
    option = pick(session.rng, options)
    if option is None:
        return

    kind = option.get("type")
    definition = get_definition(kind)
    if definition is None:
        battle_log("warn", f"Fortune swap fallback with unknown effect {kind!r}")
        return

    # Buffs land on a random ally, debuffs on a random enemy.
    pool = session.living_allies(caster) if definition.is_buff else session.living_enemies(caster)
    recipient = pick(session.rng, pool)
    if recipient is None:
        return

    effect = create_effect(
        kind,
        duration=option.get("duration", 2),
        value=option.get("value", 0),
        source_id=caster.id,
    )
    session.apply_status(recipient, effect)
    result.used_fallback = True
    result.fallback_kind = kind
    result.message = fallback.get("message")
    if result.message:
        session.emit(result.message, kind="swap", actor=caster, target=recipient)
