# battlecore/battle/skills/parser.py
#
# Turns declarative skill dicts (template data) into SkillDefinitions.
#
# Recognised keys, all optional:
#
#   name, description, target_type, hits, target_filter, cooldown
#   mp_cost / rage_cost / rage_required / valor_required / valor_cost /
#       essence_cost / no_focus_cost                    -> SkillMeta.cost
#   damage (alias damage_percent), use_stat, base_damage,
#       damage_per_resource, ignore_def, true_damage, multi_hit,
#       crit_chance, bonuses[], execute{}, splash{}, chain{},
#       lifesteal, heal_allies_percent                  -> DamageOp
#   heal{percent, stat, target, revive, flat}           -> HealOp
#   effects[]                                           -> ApplyEffectOp
#       ({"type": "resource_grant"} / {"type": "heal"} entries map to
#        ResourceGrantOp / HealOp)
#   conditional[{when, effects..., otherwise}]          -> ConditionalOp
#   random_effect{chance, options, target}, bonus_chance{chance, effect}
#                                                       -> RandomEffectOp
#   cleanse{}, remove_buffs{}, dispel{}, extend{}       -> Cleanse/Dispel/ExtendOp
#   consume{kind, source, grant{type, target, duration, base, per_stack}}
#                                                       -> ConsumeEffectOp
#   summon{template_id, count, fallback}                -> SummonOp
#   grant_resource{amount, target}, valor_gain          -> ResourceGrantOp
#   self_damage_percent, ally_hp_cost_percent           -> SelfDamageOp

from __future__ import annotations

from typing import Any, Dict, List, Optional

from battlecore.battle.damage import DamageBonus, ExecuteRule
from battlecore.battle.resources import parse_cost
from battlecore.debug.debug_logger import warn

from .base import SkillDefinition, SkillMeta, SkillOp
from .effects import (
    ApplyEffectOp,
    CleanseOp,
    ConditionalOp,
    ConsumeEffectOp,
    DamageOp,
    DispelOp,
    ExtendOp,
    HealOp,
    RandomEffectOp,
    ResourceGrantOp,
    SelfDamageOp,
    SummonOp,
)

# Template words for "the skill's own target(s)"
_PRIMARY_WORDS = {"enemy", "ally", "target", "primary", None}

# Keys on an effect dict that are not status payload
_EFFECT_KEYS = {"type", "target", "duration", "value", "chance", "valor_threshold", "atk_percent"}


def _selector(word: Optional[str]) -> str:
    return "primary" if word in _PRIMARY_WORDS else str(word)


def _tuple(value: Any) -> Optional[tuple]:
    if value is None:
        return None
    if isinstance(value, (list, tuple, set)):
        return tuple(value)
    return (value,)


# ---------------------------------------------------------------------------
# Single-entry parsers
# ---------------------------------------------------------------------------

def parse_effect(entry: Dict[str, Any]) -> Optional[SkillOp]:
    """One `effects[]` entry -> op."""
    kind = entry.get("type")
    target = _selector(entry.get("target"))

    if kind == "resource_grant":
        return ResourceGrantOp(amount=entry.get("amount", entry.get("value", 0)), target=target)
    if kind == "heal":
        return HealOp(
            percent=entry.get("percent", entry.get("value", 0)),
            stat=entry.get("stat", "atk"),
            target=target,
        )
    if not kind:
        warn(f"Effect entry without a type: {entry!r}")
        return None

    value = entry.get("value", entry.get("atk_percent", 0))
    payload = {k: v for k, v in entry.items() if k not in _EFFECT_KEYS}
    return ApplyEffectOp(
        kind=kind,
        target=target,
        duration=entry.get("duration"),
        value=value,
        chance=float(entry.get("chance", 1.0)),
        min_resource=entry.get("valor_threshold"),
        untimed="duration" in entry and entry["duration"] is None,
        payload=payload,
    )


def _effect_op(entry: Dict[str, Any], default_target: str = "primary") -> Optional[ApplyEffectOp]:
    op = parse_effect(entry)
    if isinstance(op, ApplyEffectOp) and entry.get("target") is None:
        op.target = default_target
    return op if isinstance(op, ApplyEffectOp) else None


def _damage_op(data: Dict[str, Any]) -> Optional[DamageOp]:
    has_damage = any(k in data for k in ("damage", "damage_percent", "base_damage"))
    if not has_damage or data.get("no_damage"):
        return None

    bonuses = tuple(
        DamageBonus(b["condition"], float(b.get("percent", 0)), b.get("param"))
        for b in data.get("bonuses", [])
    )
    execute = None
    if data.get("execute"):
        ex = data["execute"]
        execute = ExecuteRule(float(ex.get("threshold", 0)), float(ex.get("marked_bonus", 0)))

    splash = data.get("splash") or {}
    chain = data.get("chain") or {}
    return DamageOp(
        damage_percent=data.get("damage", data.get("damage_percent", 100)),
        use_stat=data.get("use_stat", "atk"),
        base_damage=data.get("base_damage"),
        per_resource=float(data.get("damage_per_resource", 0)),
        bonuses=bonuses,
        ignore_def=data.get("ignore_def", 0),
        true_damage=bool(data.get("true_damage", False)),
        execute=execute,
        crit_chance=float(data.get("crit_chance", 0)),
        hits=int(data.get("multi_hit", 1)),
        splash_count=int(splash.get("count", 0)),
        splash_percent=float(splash.get("percent", 0)),
        chain_bounces=int(chain.get("bounces", 0)),
        chain_percent=float(chain.get("percent", 0)),
        lifesteal=float(data.get("lifesteal", 0)),
        heal_allies_percent=float(data.get("heal_allies_percent", 0)),
    )


def parse_ops(data: Dict[str, Any]) -> List[SkillOp]:
    """Every op a skill (or conditional block / passive) describes, in run order."""
    ops: List[SkillOp] = []

    damage = _damage_op(data)
    if damage is not None:
        ops.append(damage)

    if data.get("ally_hp_cost_percent"):
        ops.append(SelfDamageOp(percent=float(data["ally_hp_cost_percent"]), target="primary"))

    if data.get("heal"):
        h = data["heal"]
        ops.append(
            HealOp(
                percent=h.get("percent", 0),
                stat=h.get("stat", "atk"),
                flat=int(h.get("flat", 0)),
                revive=bool(h.get("revive", False)),
                target=_selector(h.get("target")),
            )
        )

    for entry in data.get("effects", []):
        op = parse_effect(entry)
        if op is not None:
            ops.append(op)

    for block in data.get("conditional", []):
        ops.append(
            ConditionalOp(
                when=dict(block.get("when", {})),
                ops=parse_ops(block),
                otherwise=parse_ops(block.get("otherwise", {})),
            )
        )

    if data.get("random_effect"):
        r = data["random_effect"]
        options = [o for o in (_effect_op(e) for e in r.get("options", [])) if o is not None]
        ops.append(
            RandomEffectOp(
                chance=float(r.get("chance", 1.0)),
                options=options,
                target=_selector(r.get("target")),
            )
        )

    if data.get("bonus_chance"):
        b = data["bonus_chance"]
        option = _effect_op(b.get("effect", {}))
        if option is not None:
            ops.append(RandomEffectOp(chance=float(b.get("chance", 1.0)), options=[option]))

    if data.get("cleanse"):
        c = data["cleanse"]
        ops.append(
            CleanseOp(
                count=c.get("count"),
                kinds=_tuple(c.get("kinds")),
                family=c.get("family"),
                target=_selector(c.get("target")),
            )
        )

    if data.get("remove_buffs"):
        r = data["remove_buffs"]
        per_removed = _effect_op(r["per_removed"], "self") if r.get("per_removed") else None
        ops.append(
            CleanseOp(
                count=r.get("count", 1),
                kinds=_tuple(r.get("kinds")),
                polarity="buff",
                per_removed=per_removed,
                target=_selector(r.get("target")),
            )
        )

    if data.get("dispel"):
        d = data["dispel"]
        ops.append(DispelOp(kinds=_tuple(d.get("kinds")) or (), target=_selector(d.get("target"))))

    if data.get("extend"):
        x = data["extend"]
        ops.append(
            ExtendOp(
                turns=int(x.get("turns", 1)),
                kinds=_tuple(x.get("kinds")),
                polarity=x.get("polarity"),
                target=_selector(x.get("target")),
            )
        )

    if data.get("consume"):
        c = data["consume"]
        g = c.get("grant") or {}
        ops.append(
            ConsumeEffectOp(
                kind=c.get("kind", "poison"),
                source=c.get("source", "all_enemies"),
                grant_kind=g.get("type"),
                grant_duration=int(g.get("duration", 2)),
                base_value=float(g.get("base", 0)),
                per_stack=float(g.get("per_stack", 0)),
                target=g.get("target", "all_allies"),
            )
        )

    if data.get("summon"):
        s = data["summon"]
        fallback = parse_effect(s["fallback"]) if s.get("fallback") else None
        ops.append(
            SummonOp(
                template_id=s["template_id"],
                count=int(s.get("count", 1)),
                fallback=fallback,
            )
        )

    if data.get("grant_resource"):
        g = data["grant_resource"]
        ops.append(ResourceGrantOp(amount=g.get("amount", 0), target=_selector(g.get("target", "self"))))

    if data.get("valor_gain"):
        ops.append(ResourceGrantOp(amount=data["valor_gain"], target="self"))

    if data.get("self_damage_percent"):
        ops.append(SelfDamageOp(percent=float(data["self_damage_percent"]), target="self"))

    return ops


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def parse_skill(
    data: Dict[str, Any],
    *,
    resource_kind: Optional[str] = None,
    owner_id: str = "shared",
) -> SkillDefinition:
    name = data.get("name", "Unnamed")
    meta = SkillMeta(
        id=data.get("id") or f"{owner_id}:{name}",
        name=name,
        target_type=data.get("target_type", "enemy"),
        cost=parse_cost(data, resource_kind),
        cooldown=int(data.get("cooldown", 0) or 0),
        description=data.get("description", ""),
        hits=int(data.get("hits", 1)),
        target_filter=data.get("target_filter"),
        tags=set(data.get("tags", ())),
    )
    return SkillDefinition(meta=meta, ops=parse_ops(data))


BASIC_ATTACK = {
    "id": "basic_attack",
    "name": "Attack",
    "target_type": "enemy",
    "damage": 100,
    "tags": ["basic"],
}
