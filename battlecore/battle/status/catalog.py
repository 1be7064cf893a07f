# battlecore/battle/status/catalog.py
#
# Static status-effect definitions keyed by kind, plus the factory that
# turns a definition + per-application parameters into a mutable
# ActiveEffect record.
#
# This layer is intentionally data-only: no HP mutation happens here.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from battlecore.battle.status.effects import ActiveEffect
from battlecore.debug.debug_logger import warn


class EffectType:
    # Stat modifiers (percentage-based)
    ATK_UP = "atk_up"
    ATK_DOWN = "atk_down"
    DEF_UP = "def_up"
    DEF_DOWN = "def_down"
    SPD_UP = "spd_up"
    SPD_DOWN = "spd_down"

    # Damage / heal over time
    POISON = "poison"
    BURN = "burn"
    REGEN = "regen"
    MP_REGEN = "mp_regen"

    # Control
    STUN = "stun"
    SLEEP = "sleep"
    SEATED = "seated"

    # Reactive
    THORNS = "thorns"
    RIPOSTE = "riposte"
    REFLECT = "reflect"
    FLAME_SHIELD = "flame_shield"

    # Targeting manipulation
    TAUNT = "taunt"
    UNTARGETABLE = "untargetable"
    MARKED = "marked"

    # Chance gates
    EVASION = "evasion"
    BLIND = "blind"

    # Protection / redirection
    SHIELD = "shield"
    GUARDING = "guarding"
    GUARDIAN_LINK = "guardian_link"
    DIVINE_SACRIFICE = "divine_sacrifice"
    DAMAGE_REDUCTION = "damage_reduction"
    DEATH_PREVENTION = "death_prevention"
    DEBUFF_IMMUNE = "debuff_immune"

    # Tempo / offence
    SHATTERED_TEMPO = "shattered_tempo"
    ECHOING = "echoing"
    SWIFT_MOMENTUM = "swift_momentum"
    VICIOUS = "vicious"


# Stacking rules:
#   "refresh"   - one instance; re-application overwrites magnitude and keeps
#                 the longer duration
#   "instances" - independent instances, optionally capped at max_stacks
#   "counter"   - one instance with a stack counter capped at max_stacks
STACK_REFRESH = "refresh"
STACK_INSTANCES = "instances"
STACK_COUNTER = "counter"


@dataclass(frozen=True)
class EffectDefinition:
    kind: str
    name: str
    is_buff: bool
    stackable: bool = False
    max_stacks: Optional[int] = None
    stack_mode: str = STACK_REFRESH
    stat: Optional[str] = None      # "atk" | "def" | "spd" for stat modifiers
    family: Optional[str] = None    # "dot" | "hot" | "control" | "protection"
    icon: str = ""
    color: str = "#9ca3af"


def _d(kind: str, name: str, is_buff: bool, **kw: Any) -> EffectDefinition:
    return EffectDefinition(kind=kind, name=name, is_buff=is_buff, **kw)


_DEFINITIONS: Dict[str, EffectDefinition] = {
    d.kind: d
    for d in (
        _d(EffectType.ATK_UP, "ATK Up", True, stat="atk", icon="atk+", color="#ef4444"),
        _d(EffectType.ATK_DOWN, "ATK Down", False, stat="atk", icon="atk-"),
        _d(EffectType.DEF_UP, "DEF Up", True, stat="def", icon="def+", color="#3b82f6"),
        _d(EffectType.DEF_DOWN, "DEF Down", False, stat="def", icon="def-"),
        _d(EffectType.SPD_UP, "SPD Up", True, stat="spd", icon="spd+", color="#22c55e"),
        _d(EffectType.SPD_DOWN, "SPD Down", False, stat="spd", icon="spd-"),
        _d(EffectType.POISON, "Poison", False, stackable=True,
           stack_mode=STACK_INSTANCES, family="dot", icon="poison", color="#a855f7"),
        _d(EffectType.BURN, "Burn", False, stackable=True,
           stack_mode=STACK_INSTANCES, family="dot", icon="burn", color="#f97316"),
        _d(EffectType.REGEN, "Regen", True, family="hot", icon="regen", color="#22c55e"),
        _d(EffectType.MP_REGEN, "MP Regen", True, family="hot", icon="mp_regen"),
        _d(EffectType.STUN, "Stunned", False, family="control", icon="stun", color="#fbbf24"),
        _d(EffectType.SLEEP, "Asleep", False, family="control", icon="sleep"),
        _d(EffectType.SEATED, "Seated", False, family="control", icon="seated"),
        _d(EffectType.THORNS, "Thorns", True, icon="thorns"),
        _d(EffectType.RIPOSTE, "Riposte", True, icon="riposte"),
        _d(EffectType.REFLECT, "Reflect", True, icon="reflect"),
        _d(EffectType.FLAME_SHIELD, "Flame Shield", True, icon="flame_shield"),
        _d(EffectType.TAUNT, "Taunt", True, icon="taunt"),
        _d(EffectType.UNTARGETABLE, "Untargetable", True, icon="untargetable"),
        _d(EffectType.MARKED, "Marked", False, icon="marked", color="#dc2626"),
        _d(EffectType.EVASION, "Evasion", True, stackable=True,
           stack_mode=STACK_INSTANCES, icon="evasion"),
        _d(EffectType.BLIND, "Blind", False, icon="blind"),
        _d(EffectType.SHIELD, "Shield", True, family="protection", icon="shield", color="#60a5fa"),
        _d(EffectType.GUARDING, "Guarded", True, family="protection", icon="guarding"),
        _d(EffectType.GUARDIAN_LINK, "Guardian Link", True, family="protection", icon="link"),
        _d(EffectType.DIVINE_SACRIFICE, "Divine Sacrifice", True, family="protection", icon="sacrifice"),
        _d(EffectType.DAMAGE_REDUCTION, "Damage Reduction", True, family="protection", icon="dr"),
        _d(EffectType.DEATH_PREVENTION, "Death Prevention", True, family="protection", icon="undying"),
        _d(EffectType.DEBUFF_IMMUNE, "Debuff Immune", True, icon="immune"),
        _d(EffectType.SHATTERED_TEMPO, "Shattered Tempo", True, icon="tempo"),
        _d(EffectType.ECHOING, "Echoing", True, icon="echo"),
        _d(EffectType.SWIFT_MOMENTUM, "Swift Momentum", True, stackable=True,
           max_stacks=6, stack_mode=STACK_COUNTER, stat="spd", icon="momentum"),
        _d(EffectType.VICIOUS, "Vicious", True, icon="vicious"),
    )
}


def get_definition(kind: str) -> Optional[EffectDefinition]:
    return _DEFINITIONS.get(kind)


def all_definitions() -> Dict[str, EffectDefinition]:
    return dict(_DEFINITIONS)


def register_definition(definition: EffectDefinition) -> None:
    """Add or replace a definition (content packs extend the catalog)."""
    _DEFINITIONS[definition.kind] = definition


def create_effect(
    kind: str,
    *,
    duration: Optional[int] = 2,
    value: Any = 0,
    source_id: Optional[str] = None,
    **payload: Any,
) -> Optional[ActiveEffect]:
    """
    Instantiate an ActiveEffect from its catalog definition.

    Unknown kinds are a template configuration error: warn and return None
    so the caller skips that single application.

    A template may override stacking for one application with
    `stacking=True, max_stacks=N`, which merges into a capped counter.
    """
    definition = get_definition(kind)
    if definition is None:
        warn(f"Unknown effect type: {kind!r}; application skipped")
        return None

    stack_mode = definition.stack_mode
    max_stacks = definition.max_stacks
    if payload.pop("stacking", False):
        stack_mode = STACK_COUNTER
        max_stacks = payload.pop("max_stacks", max_stacks)
    elif "max_stacks" in payload:
        max_stacks = payload.pop("max_stacks")

    return ActiveEffect(
        kind=kind,
        duration=duration,
        value=value,
        source_id=source_id,
        is_buff=definition.is_buff,
        stack_mode=stack_mode,
        max_stacks=max_stacks,
        payload=dict(payload),
    )
