# battlecore/battle/damage.py
#
# Centralized damage model. Every hit (skills, basic attacks, splash,
# chain bounces, echoes, counters) computes its number here; committing
# that number to HP is the protection chain's job (protection.py +
# BattleSession.apply_damage).

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence

from battlecore import config
from battlecore.battle.rolls import roll_chance, roll_percent
from battlecore.battle.status.catalog import EffectType
from battlecore.debug.debug_logger import log as battle_log

_NEUTRAL_MODS = {
    "atk_mult": 1.0, "def_mult": 1.0, "spd_mult": 1.0,
    "atk_add": 0.0, "def_add": 0.0, "spd_add": 0.0,
}


def effective_stats(entity: Any) -> Dict[str, Any]:
    """
    Build a full effective stat block from entity:
      - base stats (atk, defense, spd)
      - status modifiers (mults + adds via StatusManager.get_stat_modifiers)
    """
    base_atk = float(getattr(entity, "atk", 0))
    base_def = float(getattr(entity, "defense", 0))
    base_spd = float(getattr(entity, "spd", 0))

    status_mgr = getattr(entity, "status", None)
    if status_mgr and hasattr(status_mgr, "get_stat_modifiers"):
        mods = status_mgr.get_stat_modifiers()
    else:
        mods = dict(_NEUTRAL_MODS)

    return {
        "atk": base_atk * mods["atk_mult"] + mods["atk_add"],
        "def": base_def * mods["def_mult"] + mods["def_add"],
        "spd": base_spd * mods["spd_mult"] + mods["spd_add"],
        "mods": mods,
    }


def hp_percent(unit: Any) -> float:
    max_hp = max(1, int(getattr(unit, "max_hp", 1)))
    return 100.0 * int(getattr(unit, "hp", 0)) / max_hp


# ------------------------------------------------------------
# Chance gates
# ------------------------------------------------------------
def check_blind_miss(attacker: Any, rng: Any) -> bool:
    """Blinded attackers miss on a draw under the blind value (%)."""
    blind = attacker.status.get(EffectType.BLIND)
    if blind is None:
        return False
    return roll_percent(rng, float(blind.value or 0))


def check_evasion(defender: Any, rng: Any) -> bool:
    """Evasion instances sum (capped) into one dodge roll."""
    total = defender.status.total_value(EffectType.EVASION)
    if total <= 0:
        return False
    return roll_percent(rng, min(float(config.EVASION_CAP), total))


# ------------------------------------------------------------
# Conditional bonuses
# ------------------------------------------------------------
@dataclass(frozen=True)
class DamageBonus:
    """
    An additive damage% bonus evaluated against live state at resolution.

    condition:
      target_debuffed         - target holds any debuff
      target_has              - target holds effect kind `param`
      target_debuffs_at_least - target holds >= `param` debuffs
      target_hp_below         - target HP% < `param`
      caster_hp_below         - attacker HP% < `param` (desperate / frenzy)
      per_target_stack        - + percent per stack of kind `param` on target
    """

    condition: str
    percent: float
    param: Any = None

    def applies(self, attacker: Any, defender: Any) -> float:
        """Bonus percent contributed right now (0 when not satisfied)."""
        c = self.condition
        if c == "target_debuffed":
            hit = bool(defender.status.debuffs())
        elif c == "target_has":
            hit = defender.status.has(self.param)
        elif c == "target_debuffs_at_least":
            hit = len(defender.status.debuffs()) >= int(self.param or 0)
        elif c == "target_hp_below":
            hit = hp_percent(defender) < float(self.param or 0)
        elif c == "caster_hp_below":
            hit = hp_percent(attacker) < float(self.param or 0)
        elif c == "per_target_stack":
            return self.percent * defender.status.stacks(self.param)
        else:
            battle_log("warn", f"Unknown damage bonus condition: {c!r}")
            return 0.0
        return self.percent if hit else 0.0


@dataclass(frozen=True)
class ExecuteRule:
    """Lethal when target HP% <= threshold (+ marked_bonus if MARKED)."""

    threshold: float
    marked_bonus: float = 0.0

    def triggers(self, defender: Any) -> bool:
        threshold = self.threshold
        if self.marked_bonus and defender.status.has(EffectType.MARKED):
            threshold += self.marked_bonus
        return hp_percent(defender) <= threshold


# ------------------------------------------------------------
# Results
# ------------------------------------------------------------
@dataclass
class DamageResult:
    amount: int = 0
    was_crit: bool = False
    was_evaded: bool = False
    was_blinded: bool = False
    was_execute: bool = False
    breakdown: Dict[str, Any] = field(default_factory=dict)

    @property
    def landed(self) -> bool:
        return not (self.was_evaded or self.was_blinded)


def resolve_damage(
    attacker: Any,
    defender: Any,
    *,
    rng: Any,
    damage_percent: float = 100.0,
    use_stat: str = "atk",
    base_damage: Optional[float] = None,
    per_resource: float = 0.0,
    consumed: int = 0,
    bonuses: Sequence[DamageBonus] = (),
    ignore_def: float = 0.0,
    true_damage: bool = False,
    execute: Optional[ExecuteRule] = None,
    crit_chance: float = 0.0,
    outgoing_bonus: float = 0.0,
    multiplier: float = 1.0,
    roll_gates: bool = True,
) -> DamageResult:
    """
    Compute one hit.

      1) chance gates: attacker blind, then defender evasion
      2) base: stat x damage% (or base_damage + per_resource x consumed)
      3) conditional bonuses, additive to damage%, in listed order
      4) DEF mitigation scaled by (1 - ignore_def/100); floored at MIN_DAMAGE
      5) crit, MARKED amplification, outgoing bonuses, multiplier
      6) execute: at/below threshold the hit is lethal

    Nothing is committed here.
    """
    result = DamageResult()

    if roll_gates:
        if check_blind_miss(attacker, rng):
            result.was_blinded = True
            battle_log("damage", f"{attacker.name} is blinded and misses {defender.name}")
            return result
        if check_evasion(defender, rng):
            result.was_evaded = True
            battle_log("damage", f"{defender.name} evades {attacker.name}")
            return result

    atk_stats = effective_stats(attacker)
    def_stats = effective_stats(defender)

    stat_value = atk_stats["def"] if use_stat == "def" else atk_stats["atk"]

    if base_damage is not None:
        pct = float(base_damage) + float(per_resource) * int(consumed)
    else:
        pct = float(damage_percent)

    bonus_total = 0.0
    for bonus in bonuses:
        bonus_total += bonus.applies(attacker, defender)
    pct += bonus_total

    raw = stat_value * pct / 100.0
    mitigation = 0.0
    if not true_damage:
        mitigation = def_stats["def"] * (1.0 - min(100.0, float(ignore_def)) / 100.0)
    amount = max(float(config.MIN_DAMAGE), raw - mitigation)

    if crit_chance and roll_chance(rng, crit_chance):
        result.was_crit = True
        amount *= config.CRIT_MULTIPLIER

    marked = defender.status.get(EffectType.MARKED)
    if marked is not None:
        amount = amount * (100.0 + float(marked.value or 0)) / 100.0

    if outgoing_bonus:
        amount = amount * (100.0 + float(outgoing_bonus)) / 100.0

    amount *= multiplier
    final = max(config.MIN_DAMAGE, int(amount))

    if execute is not None and execute.triggers(defender):
        result.was_execute = True
        final = max(final, int(defender.hp))

    result.amount = final
    result.breakdown = {
        "stat": use_stat,
        "stat_value": stat_value,
        "damage_percent": pct,
        "bonus_percent": bonus_total,
        "mitigation": mitigation,
        "final": final,
    }
    battle_log(
        "damage",
        f"{attacker.name} -> {defender.name}: pct={pct:g} raw={raw:g} "
        f"mit={mitigation:g} final={final}"
        + (" CRIT" if result.was_crit else "")
        + (" EXECUTE" if result.was_execute else ""),
    )
    return result


def resolve_heal(
    healer: Any,
    target: Any,
    *,
    percent: float,
    stat: str = "atk",
    bonuses: Sequence[DamageBonus] = (),
    flat: int = 0,
) -> int:
    """
    Heal amount before commit, capped at missing HP.

    stat: "atk" | "def" (healer's effective stat), "max_hp" (healer's max
    HP) or "target_max_hp".
    """
    stats = effective_stats(healer)
    if stat == "def":
        base = stats["def"]
    elif stat == "max_hp":
        base = float(healer.max_hp)
    elif stat == "target_max_hp":
        base = float(target.max_hp)
    else:
        base = stats["atk"]

    pct = float(percent)
    for bonus in bonuses:
        pct += bonus.applies(healer, target)

    amount = int(base * pct / 100.0) + int(flat)
    missing = max(0, int(target.max_hp) - int(target.hp))
    return max(0, min(amount, missing))
