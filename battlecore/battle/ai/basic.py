from __future__ import annotations

from typing import Any, List, Optional

from battlecore.battle.battle_command import BattleCommand
from battlecore.battle.damage import hp_percent
from battlecore.battle.resources import can_afford
from battlecore.battle.rolls import pick
from battlecore.battle.skills.base import SkillDefinition
from battlecore.battle.skills.effects import HealOp
from battlecore.battle.skills.registry import basic_attack
from battlecore.battle.skills.targeting import valid_targets
from battlecore.battle.status.catalog import EffectType

# Heroes reach for a heal when an ally drops under this HP%
HEAL_THRESHOLD = 50


def is_ready(unit: Any, skill: SkillDefinition) -> bool:
    return unit.cooldown_remaining(skill) == 0 and can_afford(unit, skill.meta.cost)


def _pick_target(unit: Any, skill: SkillDefinition, session: Any) -> Optional[Any]:
    """Random legal target, MARKED opponents first."""
    meta = skill.meta
    candidates = valid_targets(unit, meta.target_type, session, meta.target_filter)
    if meta.target_type == "enemy":
        marked = [c for c in candidates if c.status.has(EffectType.MARKED)]
        candidates = marked or candidates
    return pick(session.rng, candidates)


def _command(unit: Any, index: Optional[int], skill: SkillDefinition, session: Any, reason: str) -> Optional[BattleCommand]:
    target_id = None
    if skill.meta.needs_target:
        target = _pick_target(unit, skill, session)
        if target is None:
            return None
        target_id = target.id
    return BattleCommand(
        actor_id=unit.id,
        command_type="basic" if index is None else "skill",
        skill_index=index,
        target_id=target_id,
        source="ai",
        reason=reason,
    )


def _basic(unit: Any, session: Any, reason: str) -> Optional[BattleCommand]:
    return _command(unit, None, basic_attack(), session, reason)


def choose_enemy_action(enemy: Any, session: Any) -> Optional[BattleCommand]:
    """
    First ready skill with a legal target, else the basic attack.
    Taunt / untargetable come from target legality; MARKED heroes are
    preferred.
    """
    if not enemy.status.has(EffectType.SEATED):
        for index, skill in enumerate(enemy.skills):
            if not is_ready(enemy, skill):
                continue
            cmd = _command(enemy, index, skill, session, f"enemy_ai_skill:{skill.meta.name}")
            if cmd is not None:
                return cmd
    return _basic(enemy, session, "enemy_ai_basic")


def _heal_skills(hero: Any) -> List[int]:
    return [
        i for i, s in enumerate(hero.skills)
        if any(isinstance(op, HealOp) and not op.revive for op in s.ops)
    ]


def choose_hero_action(hero: Any, session: Any) -> Optional[BattleCommand]:
    """
    Auto-play for heroes:
      1) heal when any living ally is under HEAL_THRESHOLD% HP
      2) first ready damaging skill
      3) basic attack
    """
    if hero.status.has(EffectType.SEATED):
        return _basic(hero, session, "hero_ai_seated")

    wounded = [a for a in session.living_allies(hero) if hp_percent(a) < HEAL_THRESHOLD]
    if wounded:
        for index in _heal_skills(hero):
            skill = hero.skills[index]
            if not is_ready(hero, skill):
                continue
            if skill.meta.needs_target:
                candidates = valid_targets(hero, skill.meta.target_type, session, skill.meta.target_filter)
                if not candidates:
                    continue
                target = min(candidates, key=hp_percent)
                return BattleCommand(hero.id, "skill", index, target.id, source="ai", reason="hero_ai_heal")
            return BattleCommand(hero.id, "skill", index, None, source="ai", reason="hero_ai_heal")

    for index, skill in enumerate(hero.skills):
        if skill.is_damaging and is_ready(hero, skill):
            cmd = _command(hero, index, skill, session, f"hero_ai_skill:{skill.meta.name}")
            if cmd is not None:
                return cmd
    return _basic(hero, session, "hero_ai_basic")
