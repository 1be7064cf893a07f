# battlecore/battle/protection.py
#
# Protection & redirection chain.
#
# Incoming damage for a unit walks an ordered list of interceptors; the
# first one that claims the event decides who takes how much, and the
# rest of the list is skipped:
#
#     1. Guarding          100% to the guardian
#     2. Guardian Link     a fixed % to the guardian, the rest stays
#     3. Divine Sacrifice  100% to an ally holding the sacrifice
#
# Each recipient then goes through its own mitigation (damage reduction,
# shield absorption) and, if the hit would be lethal, death prevention.
# Reactive statuses on the original defender fire after HP is committed.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from battlecore.battle.damage import effective_stats
from battlecore.battle.status.catalog import EffectType, create_effect
from battlecore.battle.status.effects import ActiveEffect
from battlecore.battle.status.status_events import RetaliationEvent
from battlecore.debug.debug_logger import log as battle_log


@dataclass
class Allocation:
    """One recipient's share of an incoming damage event."""

    recipient: Any
    amount: int
    via: Optional[str] = None          # interceptor kind, None for the target itself
    effect: Optional[ActiveEffect] = None


# ------------------------------------------------------------
# Interceptors
# ------------------------------------------------------------
class Interceptor:
    kind: str = ""

    def intercept(self, target: Any, amount: int, context: Any) -> Optional[List[Allocation]]:
        raise NotImplementedError


class GuardingInterceptor(Interceptor):
    kind = EffectType.GUARDING

    def intercept(self, target, amount, context):
        eff = target.status.get(EffectType.GUARDING)
        if eff is None:
            return None
        guardian = context.find_unit(eff.get("guardian_id") or eff.source_id)
        if guardian is None or guardian is target or not guardian.alive:
            return None
        return [Allocation(guardian, amount, via=self.kind, effect=eff)]


class GuardianLinkInterceptor(Interceptor):
    kind = EffectType.GUARDIAN_LINK

    def intercept(self, target, amount, context):
        eff = target.status.get(EffectType.GUARDIAN_LINK)
        if eff is None:
            return None
        guardian = context.find_unit(eff.get("guardian_id") or eff.source_id)
        if guardian is None or guardian is target or not guardian.alive:
            return None
        pct = float(eff.get("redirect_percent", eff.value) or 0)
        share = int(amount * pct / 100)
        allocations = []
        if share > 0:
            allocations.append(Allocation(guardian, share, via=self.kind, effect=eff))
        if amount - share > 0:
            allocations.append(Allocation(target, amount - share))
        return allocations


class DivineSacrificeInterceptor(Interceptor):
    kind = EffectType.DIVINE_SACRIFICE

    def intercept(self, target, amount, context):
        for ally in context.allies_of(target):
            if ally is target or not ally.alive:
                continue
            eff = ally.status.get(EffectType.DIVINE_SACRIFICE)
            if eff is not None:
                return [Allocation(ally, amount, via=self.kind, effect=eff)]
        return None


INTERCEPTORS: Sequence[Interceptor] = (
    GuardingInterceptor(),
    GuardianLinkInterceptor(),
    DivineSacrificeInterceptor(),
)


def route_damage(
    target: Any,
    amount: int,
    context: Any,
    interceptors: Sequence[Interceptor] = INTERCEPTORS,
) -> List[Allocation]:
    """First claiming interceptor wins; unclaimed damage stays on target."""
    for interceptor in interceptors:
        allocations = interceptor.intercept(target, amount, context)
        if allocations:
            battle_log(
                "damage",
                f"[ROUTE] {target.name} {amount} via {interceptor.kind}: "
                + ", ".join(f"{a.recipient.name}={a.amount}" for a in allocations),
            )
            return allocations
    return [Allocation(target, amount)]


# ------------------------------------------------------------
# Per-recipient mitigation
# ------------------------------------------------------------
def damage_reduction_percent(unit: Any, allocation: Optional[Allocation] = None) -> float:
    pct = unit.status.total_value(EffectType.DAMAGE_REDUCTION)
    if allocation is not None and allocation.via == EffectType.DIVINE_SACRIFICE and allocation.effect:
        pct += float(allocation.effect.get("damage_reduction", 0) or 0)
    return min(100.0, pct)


def reduce_damage(unit: Any, amount: int, allocation: Optional[Allocation] = None) -> int:
    pct = damage_reduction_percent(unit, allocation)
    if pct <= 0:
        return amount
    return int(amount * (100.0 - pct) / 100.0)


def absorb_shield(unit: Any, amount: int) -> tuple[int, int]:
    """
    Drain shield budgets (oldest first). Returns (remaining, absorbed).
    A shield is removed when its budget reaches zero.
    """
    remaining = amount
    absorbed = 0
    for shield in unit.status.get_all(EffectType.SHIELD):
        if remaining <= 0:
            break
        budget = int(shield.get("shield_hp", shield.value) or 0)
        take = min(budget, remaining)
        budget -= take
        remaining -= take
        absorbed += take
        shield.payload["shield_hp"] = budget
        if budget <= 0:
            unit.status.remove(shield)
    return remaining, absorbed


def check_death_prevention(unit: Any, amount: int) -> Optional[ActiveEffect]:
    """
    If `amount` would kill `unit` and it holds DEATH_PREVENTION, consume the
    effect and return it. The caller commits HP at 1 and runs the
    effect's trigger riders.
    """
    if int(unit.hp) - amount > 0:
        return None
    eff = unit.status.get(EffectType.DEATH_PREVENTION)
    if eff is None:
        return None
    unit.status.remove(eff)
    battle_log("damage", f"[UNDYING] {unit.name} refuses to fall")
    return eff


# ------------------------------------------------------------
# Reactive statuses
# ------------------------------------------------------------
def fire_reactive_effects(defender: Any, attacker: Any, damage_taken: int) -> List[RetaliationEvent]:
    """
    Counter-damage a defender's statuses deal back to the attacker.

      thorns       - value% of damage taken
      reflect      - value% of damage taken
      riposte      - value% of the defender's ATK, minus attacker DEF
      flame_shield - value% of the defender's ATK, plus a burn
    """
    events: List[RetaliationEvent] = []
    if attacker is None or attacker is defender or not attacker.alive:
        return events
    if getattr(attacker, "side", None) == getattr(defender, "side", None):
        return events

    for kind in (EffectType.THORNS, EffectType.RIPOSTE, EffectType.REFLECT, EffectType.FLAME_SHIELD):
        eff = defender.status.get(kind)
        if eff is None:
            continue
        value = float(eff.value or 0)
        status_to_apply = None

        if kind in (EffectType.THORNS, EffectType.REFLECT):
            amount = int(damage_taken * value / 100)
        elif kind == EffectType.RIPOSTE:
            atk = effective_stats(defender)["atk"] * value / 100
            amount = int(atk - effective_stats(attacker)["def"])
        else:
            amount = int(effective_stats(defender)["atk"] * value / 100)
            burn = eff.get("burn")
            if burn:
                status_to_apply = create_effect(
                    EffectType.BURN,
                    duration=burn.get("duration", 2),
                    value=burn.get("value", 0),
                    source_id=defender.id,
                    source_atk=effective_stats(defender)["atk"],
                )

        amount = max(1, amount) if damage_taken > 0 else 0
        if amount <= 0:
            continue
        events.append(
            RetaliationEvent(
                attacker=attacker,
                amount=amount,
                kind=kind,
                owner=defender,
                status_to_apply=status_to_apply,
            )
        )
    return events
