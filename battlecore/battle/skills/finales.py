# battlecore/battle/skills/finales.py
#
# Bard finales. A bard earns a verse for each skill that differs from
# the previous one; at a full verse pool the template's finale fires and
# the verses reset.
#
# A finale is either:
#   - a regular skill dict (target / target_type + any skill op keys), or
#   - a fortune swap: {"fortune_swap": True, "swap_pairs": {...},
#                      "dispel_list": [...], "empty_fallback": {...}}

from __future__ import annotations

from typing import Any, Optional, Union

from battlecore.battle.resources import reset_verses
from battlecore.battle.status.swap import FortuneSwapResult, execute_fortune_swap
from battlecore.debug.debug_logger import log as battle_log

from . import registry
from .base import SkillResolutionResult
from .resolver import SkillResolver

FinaleResult = Union[SkillResolutionResult, FortuneSwapResult]


def finale_of(bard: Any) -> Optional[dict]:
    return getattr(bard.template, "finale", None) or None


def is_fortune_swap(bard: Any) -> bool:
    finale = finale_of(bard)
    return bool(finale and finale.get("fortune_swap"))


def run_fortune_swap(bard: Any, session: Any) -> FortuneSwapResult:
    """Run the bard's fortune-swap finale; success=False for any other finale."""
    finale = finale_of(bard)
    if not finale or not finale.get("fortune_swap"):
        return FortuneSwapResult(success=False)

    session.emit(f"{bard.name} performs {finale.get('name', 'the finale')}!", kind="finale", actor=bard)
    result = execute_fortune_swap(
        bard,
        session,
        dict(finale.get("swap_pairs", {})),
        finale.get("dispel_list", ()),
        finale.get("empty_fallback"),
    )
    reset_verses(bard)
    return result


def run_finale(bard: Any, session: Any) -> Optional[FinaleResult]:
    """
    Fire `bard`'s finale and reset its verses. Returns None when the
    template has no finale.
    """
    finale = finale_of(bard)
    if finale is None:
        battle_log("resolver", f"{bard.name} has no finale")
        return None

    if finale.get("fortune_swap"):
        return run_fortune_swap(bard, session)

    data = dict(finale)
    data.setdefault("target_type", finale.get("target", "all_allies"))
    skill_def = registry.get_or_parse(
        data,
        owner_id=bard.template_id,
        resource_kind=None,
        key="finale",
    )

    session.emit(f"{bard.name} performs {skill_def.meta.name}!", kind="finale", actor=bard)
    result = SkillResolver.resolve(skill_def, bard, None, session)
    reset_verses(bard)
    return result
