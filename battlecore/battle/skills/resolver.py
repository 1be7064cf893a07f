# battlecore/battle/skills/resolver.py
#
# Central logic for resolving a skill use in battle.
#
# It:
#   - Takes a SkillDefinition + user + chosen primary target + session
#   - Expands the skill's target selector against live state
#   - Executes each SkillOp in order
#   - Produces a SkillResolutionResult the controller turns into log
#     entries and win/loss checks.

from __future__ import annotations

from typing import Any, Dict, Optional

from battlecore.battle.scaling import scaling_context
from battlecore.battle.status.catalog import EffectType
from battlecore.debug.debug_logger import log as battle_log

from .base import SkillDefinition, SkillResolutionResult
from .targeting import expand_targets

DEFAULT_ECHO_PERCENT = 50


class SkillResolver:
    """
    Resolves a skill into concrete changes to battle state.

    Typical usage from BattleController:
        result = SkillResolver.resolve(skill_def, actor, target, session)
    """

    @staticmethod
    def resolve(
        skill_def: SkillDefinition,
        user: Any,
        primary: Optional[Any],
        battle_state: Any,
        *,
        consumed: int = 0,
        context_value: Optional[int] = None,
        flags: Optional[Dict[str, Any]] = None,
    ) -> SkillResolutionResult:
        """
        Apply the mechanical effects of the given skill to the battle state.

        This does NOT:
          - validate legality or pay costs (the controller does, atomically,
            before calling)
          - manage turn order

        `context_value` is the resource amount scaling tables resolve
        against; it defaults to the user's current pool. Callers that pay
        the cost first pass the pre-payment value.

        `flags` seeds result.flags; passives pass {"posthumous": True} so an
        on-death effect still resolves for a fallen owner.
        """
        meta = skill_def.meta
        result = SkillResolutionResult(
            skill=meta,
            user=user,
            consumed=int(consumed),
            context_value=scaling_context(user) if context_value is None else int(context_value),
        )
        result.flags.update(flags or {})

        targets = expand_targets(meta.target_type, user, primary, battle_state, meta.hits)

        # Echoing turns the next single-hit damaging skill into an AoE.
        echo = user.status.get(EffectType.ECHOING)
        if echo is not None and skill_def.is_single_hit_damage:
            targets = battle_state.living_enemies(user)
            result.multiplier = float(echo.value or DEFAULT_ECHO_PERCENT) / 100.0
            user.status.remove(echo)
            result.flags["echoed"] = True
            battle_log("resolver", f"{user.name}'s {meta.name} echoes across {len(targets)} enemies")

        battle_log(
            "resolver",
            f"{user.name} resolves {meta.name} -> "
            + ", ".join(getattr(t, "name", "?") for t in targets),
        )

        for op in skill_def.ops:
            op.apply(user, targets, battle_state, result)

        if result.message is None:
            result.message = f"{user.name} used {meta.name}!"
        return result
