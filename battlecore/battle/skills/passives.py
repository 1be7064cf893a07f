"""
battlecore/battle/skills/passives.py

Passive hooks and leader skills.

A passive is a skill dict with a "trigger" naming the hook it listens
to. It resolves through the same SkillResolver as an active skill, so a
passive can carry any op a skill can (effects, heal, damage, cleanse...).

Extra passive keys:
    once_per_battle   fire at most once
    condition         {hp_below, hp_above, has_effect, chance, round}
    extra_turn        grant the owner an extra turn (scheduler)
    reset_turn        move the owner back to the front of the round

Hooks: battle_start, round_start, turn_start, on_hit_taken, on_kill,
on_death, on_ally_death, on_skill_use.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from battlecore import config
from battlecore.battle.damage import effective_stats, hp_percent
from battlecore.battle.rolls import roll_chance
from battlecore.battle.status.catalog import create_effect
from battlecore.debug.debug_logger import log as battle_log

from . import registry
from .resolver import SkillResolver

HOOKS = (
    "battle_start",
    "round_start",
    "turn_start",
    "on_hit_taken",
    "on_kill",
    "on_death",
    "on_ally_death",
    "on_skill_use",
)

# Passives triggering passives (thorns-style ping-pong) stop here.
MAX_CHAIN_DEPTH = 3

# Which hook context key is the passive's "enemy"/"ally" target
_PRIMARY_KEYS = {
    "on_hit_taken": "attacker",
    "on_kill": "victim",
    "on_death": "killer",
    "on_ally_death": "dead",
}


def passives_for(unit: Any, hook: str) -> List[Dict[str, Any]]:
    return [p for p in unit.template.passives if p.get("trigger") == hook]


def _condition_holds(unit: Any, condition: Dict[str, Any], session: Any) -> bool:
    if not condition:
        return True
    if "hp_below" in condition and hp_percent(unit) >= condition["hp_below"]:
        return False
    if "hp_above" in condition and hp_percent(unit) <= condition["hp_above"]:
        return False
    if "has_effect" in condition and not unit.status.has(condition["has_effect"]):
        return False
    if "round" in condition and session.round_number != condition["round"]:
        return False
    if "chance" in condition and not roll_chance(session.rng, float(condition["chance"])):
        return False
    return True


def fire(hook: str, unit: Any, session: Any, **ctx: Any) -> int:
    """
    Run every passive `unit` has for `hook`. Returns how many fired.

    on_death passives run for a unit that is already at 0 HP; every other
    hook requires the owner alive.
    """
    if hook != "on_death" and not unit.alive:
        return 0
    entries = passives_for(unit, hook)
    if not entries:
        return 0

    depth = getattr(session, "_passive_depth", 0)
    if depth >= MAX_CHAIN_DEPTH:
        battle_log("resolver", f"[PASSIVE] {unit.name} {hook} suppressed at depth {depth}")
        return 0

    fired = 0
    session._passive_depth = depth + 1
    try:
        for data in entries:
            name = data.get("name", hook)
            flag = f"passive:{name}"
            if data.get("once_per_battle") and unit.flags.get(flag):
                continue
            if not _condition_holds(unit, data.get("condition") or {}, session):
                continue

            unit.flags[flag] = True
            fired += 1
            _resolve_passive(unit, data, hook, session, ctx)
    finally:
        session._passive_depth = depth
    return fired


def _resolve_passive(unit: Any, data: Dict[str, Any], hook: str, session: Any, ctx: Dict[str, Any]) -> None:
    name = data.get("name", hook)
    kind = unit.resource.kind if unit.resource is not None else None
    skill_def = registry.get_or_parse(
        dict(data, target_type=data.get("target_type", "self")),
        owner_id=unit.template_id,
        resource_kind=kind,
        key=f"passive:{name}",
    )

    primary = ctx.get(_PRIMARY_KEYS.get(hook, ""), None)
    if skill_def.meta.target_type in ("enemy", "ally", "dead_ally") and primary is None:
        battle_log("resolver", f"[PASSIVE] {unit.name} {name}: no target for {hook}")
    else:
        SkillResolver.resolve(
            skill_def,
            unit,
            primary,
            session,
            flags={"posthumous": hook == "on_death", "passive": name},
        )

    session.emit(f"{unit.name}'s {name} triggers", kind="passive", actor=unit)

    scheduler = getattr(session, "scheduler", None)
    if scheduler is not None and unit.alive:
        if data.get("extra_turn"):
            scheduler.grant_extra_turn(unit)
            session.emit(f"{unit.name} gains an extra turn!", kind="turn", actor=unit)
        elif data.get("reset_turn"):
            scheduler.reset_turn(unit)
            session.emit(f"{unit.name}'s turn resets!", kind="turn", actor=unit)


# ----------------------------------------------------------------------
# Leader skills
# ----------------------------------------------------------------------

def _leader_targets(leader: Any, session: Any, selector: Optional[str]) -> List[Any]:
    if selector == "self":
        return [leader]
    if selector == "all_enemies":
        return session.living_enemies(leader)
    return session.living_allies(leader)


def _class_matches(unit: Any, rule: Any) -> bool:
    if rule is None:
        return True
    if isinstance(rule, dict) and "not" in rule:
        return unit.class_id != rule["not"]
    return unit.class_id == rule


def _grant(leader: Any, session: Any, targets: Iterable[Any], apply: Any) -> None:
    grants = apply if isinstance(apply, list) else [apply]
    for entry in grants:
        params = dict(entry)
        kind = params.pop("type", None)
        duration = params.pop("duration", config.DEFAULT_EFFECT_DURATION)
        value = params.pop("value", 0)
        for t in targets:
            effect = create_effect(kind, duration=duration, value=value, source_id=leader.id, **params)
            session.apply_status(t, effect)


def apply_leader_skill(leader: Any, session: Any, phase: str) -> None:
    """
    Run the leader's entries for `phase` ("battle_start" / "round_start").

    Entry types:
      passive        conditional stat bonus attached at battle start
                     {stat, value, condition{hp_below, hp_above, class_id}}
      battle_start   {target, apply{type, duration, value} | [..]}
      timed          {trigger_round, target, apply}
      round_start    {condition{has_effect}, heal{atk_percent},
                      extend_effect{type, duration}}
      passive_regen  {target, percent_max_hp} every round start
    """
    data = getattr(leader.template, "leader_skill", None)
    if not data:
        return
    if phase == "round_start" and not leader.alive:
        return

    name = data.get("name", "Leader Skill")
    for entry in data.get("effects", []):
        kind = entry.get("type")
        targets = _leader_targets(leader, session, entry.get("target"))

        if phase == "battle_start" and kind == "passive":
            condition = dict(entry.get("condition") or {})
            class_rule = condition.pop("class_id", None)
            for t in targets:
                if _class_matches(t, class_rule):
                    t.stat_bonuses.append(
                        {"stat": entry.get("stat"), "value": entry.get("value", 0), "condition": condition}
                    )
            session.emit(f"{leader.name}'s {name} empowers the party", kind="leader", actor=leader)

        elif phase == "battle_start" and kind == "battle_start":
            _grant(leader, session, targets, entry.get("apply", {}))

        elif phase == "round_start" and kind == "timed":
            if session.round_number == entry.get("trigger_round"):
                _grant(leader, session, targets, entry.get("apply", {}))
                session.emit(f"{leader.name}'s {name} activates", kind="leader", actor=leader)

        elif phase == "round_start" and kind == "round_start":
            _round_start_rider(leader, session, entry, name)

        elif phase == "round_start" and kind == "passive_regen":
            pct = float(entry.get("percent_max_hp", 0))
            for t in targets:
                session.heal_unit(t, int(t.max_hp * pct / 100), leader)


def _round_start_rider(leader: Any, session: Any, entry: Dict[str, Any], name: str) -> None:
    required = (entry.get("condition") or {}).get("has_effect")
    foes = session.living_enemies(leader)
    if required and not any(u.status.has(required) for u in foes):
        return

    heal = entry.get("heal") or {}
    if heal.get("atk_percent"):
        amount = int(effective_stats(leader)["atk"] * float(heal["atk_percent"]) / 100)
        for ally in session.living_allies(leader):
            session.heal_unit(ally, amount, leader)

    extend = entry.get("extend_effect") or {}
    if extend.get("type"):
        for unit in session.all_units():
            if unit.alive:
                unit.status.extend(int(extend.get("duration", 1)), kinds=(extend["type"],))

    session.emit(f"{leader.name}'s {name} activates", kind="leader", actor=leader)
