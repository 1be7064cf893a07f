# battlecore/battle/skills/effects.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from battlecore import config
from battlecore.battle.damage import DamageBonus, ExecuteRule, hp_percent, resolve_heal
from battlecore.battle.resources import grant
from battlecore.battle.rolls import pick, roll_chance, sample
from battlecore.battle.scaling import ScalingValue, is_scaling_table, resolve_scaling
from battlecore.battle.status.catalog import EffectType, create_effect
from battlecore.battle.status.effects import ActiveEffect
from battlecore.debug.debug_logger import log as battle_log

from .base import SkillOp, SkillResolutionResult
from .targeting import resolve_selector

# ---------------------------------------------------------------------------
# SkillOp / Result contract
# ---------------------------------------------------------------------------
# SkillResolver builds a SkillResolutionResult and then calls
#     op.apply(user, targets, battle_state, result)
# for each SkillOp in SkillDefinition.ops.
#
# Each op is responsible for BOTH:
#   1) Applying its mechanical changes through the battle session
#      (attack / heal / apply_status / summon ...), never by poking HP
#      directly, so the protection chain and death triggers always run.
#   2) Recording what happened into the shared SkillResolutionResult via
#      result.change_for(target).
#
# There is at most one TargetChange per unit; damage and healing are
# additive across ops.


def _targets_for(op: SkillOp, user: Any, targets: Sequence[Any], battle_state: Any) -> List[Any]:
    return resolve_selector(op.target, user, targets, battle_state)


def _can_act(user: Any, result: SkillResolutionResult) -> bool:
    return user.alive or bool(result.flags.get("posthumous"))


def _heartbreak_lifesteal(user: Any) -> float:
    bonus = getattr(user, "heartbreak_lifesteal", None)
    return float(bonus()) if callable(bonus) else 0.0


def _missed(result: SkillResolutionResult, target: Any) -> bool:
    """An earlier damage op in this skill whiffed on `target`."""
    for tc in result.targets:
        if tc.target is target:
            return (tc.was_evaded or tc.was_blinded) and tc.damage == 0
    return False


# ---------------------------------------------------------------------------
# Damage
# ---------------------------------------------------------------------------
@dataclass
class DamageOp(SkillOp):
    """
    Damage each target `hits` times.

    Each hit rolls blind/evasion/crit independently. Riders:
      splash   - `splash_count` random other enemies at splash_percent%
      chain    - up to `chain_bounces` other living enemies at chain_percent%
      lifesteal / heal_allies_percent - % of the damage actually dealt
    """

    damage_percent: ScalingValue = 100
    use_stat: str = "atk"
    base_damage: Optional[float] = None
    per_resource: float = 0.0
    bonuses: Tuple[DamageBonus, ...] = ()
    ignore_def: ScalingValue = 0
    true_damage: bool = False
    execute: Optional[ExecuteRule] = None
    crit_chance: float = 0.0
    hits: int = 1
    splash_count: int = 0
    splash_percent: float = 0.0
    chain_bounces: int = 0
    chain_percent: float = 0.0
    lifesteal: float = 0.0
    heal_allies_percent: float = 0.0
    target: str = "primary"

    def hit_kwargs(self, result: SkillResolutionResult) -> Dict[str, Any]:
        ctx = result.context_value
        return {
            "damage_percent": float(resolve_scaling(self.damage_percent, ctx, 100)),
            "use_stat": self.use_stat,
            "base_damage": self.base_damage,
            "per_resource": self.per_resource,
            "consumed": result.consumed,
            "bonuses": self.bonuses,
            "ignore_def": float(resolve_scaling(self.ignore_def, ctx, 0)),
            "true_damage": self.true_damage,
            "execute": self.execute,
            "crit_chance": self.crit_chance,
        }

    def apply(self, user, targets, battle_state, result):
        kwargs = self.hit_kwargs(result)
        primary_targets = _targets_for(self, user, targets, battle_state)
        dealt_total = 0
        landed_primary = False

        for target in primary_targets:
            for _ in range(max(1, self.hits)):
                if not target.alive or not _can_act(user, result):
                    break
                hit = battle_state.attack(user, target, multiplier=result.multiplier, **kwargs)
                self._record(result, target, hit)
                dealt_total += hit.dealt
                landed_primary = landed_primary or hit.result.landed

        if landed_primary and _can_act(user, result):
            dealt_total += self._secondary(user, primary_targets, battle_state, result, kwargs)

        if dealt_total > 0 and user.alive:
            lifesteal = self.lifesteal + _heartbreak_lifesteal(user)
            if lifesteal:
                healed = battle_state.heal_unit(user, int(dealt_total * lifesteal / 100), user)
                result.change_for(user).healed += healed
            if self.heal_allies_percent:
                amount = int(dealt_total * self.heal_allies_percent / 100)
                for ally in battle_state.living_allies(user):
                    result.change_for(ally).healed += battle_state.heal_unit(ally, amount, user)

        result.total_damage += dealt_total

    def _secondary(self, user, primary_targets, battle_state, result, kwargs) -> int:
        dealt = 0
        others = [
            e for e in battle_state.living_enemies(user)
            if all(e is not p for p in primary_targets)
        ]
        if self.splash_count and self.splash_percent:
            for victim in sample(battle_state.rng, others, self.splash_count):
                hit = battle_state.attack(
                    user, victim,
                    multiplier=result.multiplier * self.splash_percent / 100,
                    **kwargs,
                )
                self._record(result, victim, hit)
                dealt += hit.dealt
        if self.chain_bounces and self.chain_percent:
            living = [e for e in others if e.alive]
            for victim in sample(battle_state.rng, living, self.chain_bounces):
                hit = battle_state.attack(
                    user, victim,
                    multiplier=result.multiplier * self.chain_percent / 100,
                    **kwargs,
                )
                self._record(result, victim, hit)
                dealt += hit.dealt
        return dealt

    @staticmethod
    def _record(result: SkillResolutionResult, target: Any, hit: Any) -> None:
        tc = result.change_for(target)
        tc.damage += hit.dealt
        tc.was_evaded = tc.was_evaded or hit.result.was_evaded
        tc.was_blinded = tc.was_blinded or hit.result.was_blinded
        tc.was_crit = tc.was_crit or hit.result.was_crit
        tc.was_execute = tc.was_execute or hit.result.was_execute
        tc.killed = tc.killed or hit.killed


# ---------------------------------------------------------------------------
# Healing
# ---------------------------------------------------------------------------
@dataclass
class HealOp(SkillOp):
    """
    Heal `percent` of a stat ("atk", "def", "max_hp", "target_max_hp").
    With revive=True the op targets the dead and restores percent% of the
    target's max HP instead.
    """

    percent: ScalingValue = 0
    stat: str = "atk"
    flat: int = 0
    revive: bool = False
    bonuses: Tuple[DamageBonus, ...] = ()
    target: str = "primary"

    def apply(self, user, targets, battle_state, result):
        pct = float(resolve_scaling(self.percent, result.context_value, 0))
        for t in _targets_for(self, user, targets, battle_state):
            tc = result.change_for(t)
            if self.revive:
                if t.alive:
                    continue
                restored = battle_state.revive(t, max(1, int(t.max_hp * pct / 100)), user)
                tc.healed += restored
                tc.was_revived = restored > 0
                continue
            if not t.alive:
                continue
            amount = resolve_heal(user, t, percent=pct, stat=self.stat, bonuses=self.bonuses, flat=self.flat)
            tc.healed += battle_state.heal_unit(t, amount, user)


# Shield budget keys, as a percent of someone's max HP.
_SHIELD_TARGET_PCT = ("shield_percent_max_hp",)
_SHIELD_CASTER_PCT = ("shield_percent_caster_max_hp", "caster_max_hp_percent")


def _size_shield(payload: Dict[str, Any], user: Any, target: Any) -> None:
    """Turn percent-of-max-HP shield keys into a concrete shield_hp budget."""
    if payload.get("shield_hp") is not None:
        return
    for key in _SHIELD_TARGET_PCT:
        if key in payload:
            payload["shield_hp"] = int(target.max_hp * float(payload.pop(key)) / 100)
            return
    for key in _SHIELD_CASTER_PCT:
        if key in payload:
            payload["shield_hp"] = int(user.max_hp * float(payload.pop(key)) / 100)
            return


# ---------------------------------------------------------------------------
# Status application
# ---------------------------------------------------------------------------
@dataclass
class ApplyEffectOp(SkillOp):
    """
    Attach a status. Duration, value and payload entries may be scaling
    tables; they resolve against the caster's resource at use time.

    min_resource: only fires when the caster held at least this much
    (valor-gated riders).
    untimed: the template gave "duration": None; the effect lasts until
    consumed or cleansed.
    """

    kind: str = ""
    target: str = "primary"
    duration: ScalingValue = None
    value: ScalingValue = 0
    chance: float = 1.0
    min_resource: Optional[int] = None
    untimed: bool = False
    payload: Dict[str, Any] = field(default_factory=dict)

    def build(
        self,
        user: Any,
        result: SkillResolutionResult,
        value_override: Any = None,
        target: Any = None,
    ) -> Optional[ActiveEffect]:
        ctx = result.context_value
        if self.untimed or (self.kind == EffectType.SHIELD and self.duration is None):
            # Shields last until their budget is spent unless a duration bounds them.
            duration = None
        else:
            duration = resolve_scaling(self.duration, ctx, config.DEFAULT_EFFECT_DURATION)
        value = value_override if value_override is not None else resolve_scaling(self.value, ctx, 0)
        payload = {
            k: (resolve_scaling(v, ctx) if is_scaling_table(v) else v)
            for k, v in self.payload.items()
        }
        if self.kind in (EffectType.GUARDING, EffectType.GUARDIAN_LINK):
            payload.setdefault("guardian_id", user.id)
        if self.kind == EffectType.SHIELD:
            _size_shield(payload, user, target if target is not None else user)
        return create_effect(self.kind, duration=duration, value=value, source_id=user.id, **payload)

    def apply(self, user, targets, battle_state, result):
        if self.min_resource is not None and result.context_value < self.min_resource:
            return
        for t in _targets_for(self, user, targets, battle_state):
            if not t.alive or _missed(result, t):
                continue
            if self.chance < 1.0 and not roll_chance(battle_state.rng, self.chance):
                continue
            effect = self.build(user, result, target=t)
            if effect is None:
                return
            if battle_state.apply_status(t, effect):
                result.change_for(t).status_applied.append(effect.kind)


@dataclass
class RandomEffectOp(SkillOp):
    """
    With probability `chance`, apply one of `options` (drawn uniformly).
    Covers coin-flip debuffs and bonus-chance riders.
    """

    chance: float = 1.0
    options: List[ApplyEffectOp] = field(default_factory=list)
    target: str = "primary"

    def apply(self, user, targets, battle_state, result):
        if not self.options or not roll_chance(battle_state.rng, self.chance):
            return
        option = self.options[0] if len(self.options) == 1 else pick(battle_state.rng, self.options)
        chosen = _targets_for(self, user, targets, battle_state)
        option.apply(user, chosen, battle_state, result)


# ---------------------------------------------------------------------------
# Status manipulation
# ---------------------------------------------------------------------------
@dataclass
class CleanseOp(SkillOp):
    """
    Remove debuffs (default) or, with polarity="buff", random buffs.
    `per_removed` is applied to the caster once per removed effect.
    """

    count: Optional[int] = None
    kinds: Optional[Tuple[str, ...]] = None
    family: Optional[str] = None
    polarity: str = "debuff"
    per_removed: Optional[ApplyEffectOp] = None
    target: str = "primary"

    def apply(self, user, targets, battle_state, result):
        removed_total = 0
        for t in _targets_for(self, user, targets, battle_state):
            if not t.alive:
                continue
            if self.polarity == "buff":
                buffs = t.status.buffs()
                if self.kinds is not None:
                    buffs = [b for b in buffs if b.kind in self.kinds]
                removed = sample(battle_state.rng, buffs, self.count or len(buffs))
                for eff in removed:
                    t.status.remove(eff)
            else:
                removed = t.status.cleanse(self.count, kinds=self.kinds, family=self.family)
            if removed:
                result.change_for(t).status_removed.extend(e.kind for e in removed)
                battle_state.emit(
                    f"{t.name} loses {', '.join(e.kind for e in removed)}",
                    kind="status", actor=user, target=t,
                )
            removed_total += len(removed)

        if self.per_removed is not None and user.alive:
            for _ in range(removed_total):
                self.per_removed.apply(user, [user], battle_state, result)


@dataclass
class DispelOp(SkillOp):
    kinds: Tuple[str, ...] = ()
    target: str = "primary"

    def apply(self, user, targets, battle_state, result):
        for t in _targets_for(self, user, targets, battle_state):
            removed = t.status.dispel(self.kinds)
            if removed:
                result.change_for(t).status_removed.extend(e.kind for e in removed)
                battle_state.emit(
                    f"{t.name}'s {', '.join(e.kind for e in removed)} dispelled",
                    kind="status", actor=user, target=t,
                )


@dataclass
class ExtendOp(SkillOp):
    turns: int = 1
    kinds: Optional[Tuple[str, ...]] = None
    polarity: Optional[str] = None
    target: str = "primary"

    def apply(self, user, targets, battle_state, result):
        for t in _targets_for(self, user, targets, battle_state):
            if t.alive and t.status.extend(self.turns, kinds=self.kinds, polarity=self.polarity):
                battle_state.emit(
                    f"{t.name}'s effects extended by {self.turns}",
                    kind="status", actor=user, target=t,
                )


@dataclass
class ConsumeEffectOp(SkillOp):
    """
    Strip every `kind` instance from the `source` side, then grant
    `grant_kind` to `target` with value base_value + per_stack x consumed.
    Only `kind` is removed; other debuffs stay.
    """

    kind: str = EffectType.POISON
    source: str = "all_enemies"
    grant_kind: Optional[str] = None
    grant_duration: int = 2
    base_value: float = 0
    per_stack: float = 0
    target: str = "all_allies"

    def apply(self, user, targets, battle_state, result):
        consumed = 0
        for unit in resolve_selector(self.source, user, targets, battle_state):
            stacks = unit.status.stacks(self.kind)
            if not stacks:
                continue
            unit.status.remove_kind(self.kind)
            consumed += stacks
            result.change_for(unit).status_removed.append(self.kind)

        result.flags["consumed_stacks"] = consumed
        battle_log("resolver", f"{user.name} consumes {consumed} {self.kind} stack(s)")

        if self.grant_kind is None:
            return
        value = self.base_value + self.per_stack * consumed
        for t in _targets_for(self, user, targets, battle_state):
            if not t.alive:
                continue
            effect = create_effect(
                self.grant_kind,
                duration=self.grant_duration,
                value=value,
                source_id=user.id,
            )
            if battle_state.apply_status(t, effect):
                result.change_for(t).status_applied.append(self.grant_kind)


# ---------------------------------------------------------------------------
# Resources, self-cost, summons, branches
# ---------------------------------------------------------------------------
@dataclass
class ResourceGrantOp(SkillOp):
    amount: ScalingValue = 0
    target: str = "self"

    def apply(self, user, targets, battle_state, result):
        amount = resolve_scaling(self.amount, result.context_value, 0)
        for t in _targets_for(self, user, targets, battle_state):
            if not t.alive:
                continue
            delta = grant(t, amount)
            if delta:
                result.change_for(t).resource_delta += delta
                battle_state.emit(
                    f"{t.name} gains {delta} {t.resource.kind}",
                    kind="resource", actor=user, target=t, amount=delta,
                )


@dataclass
class SelfDamageOp(SkillOp):
    """Lose percent% of max HP (never below 1 HP)."""

    percent: float = 0
    target: str = "self"

    def apply(self, user, targets, battle_state, result):
        for t in _targets_for(self, user, targets, battle_state):
            if not t.alive:
                continue
            amount = int(t.max_hp * self.percent / 100)
            lost = battle_state.self_damage(t, amount)
            result.change_for(t).damage += lost


@dataclass
class SummonOp(SkillOp):
    """
    Bring `count` units of `template_id` onto the caster's side. When the
    field is full the fallback op runs instead (once).
    """

    template_id: str = ""
    count: int = 1
    fallback: Optional[SkillOp] = None
    target: str = "self"

    def apply(self, user, targets, battle_state, result):
        for _ in range(max(1, self.count)):
            unit = battle_state.summon(self.template_id, user)
            if unit is None:
                if self.fallback is not None:
                    battle_log("resolver", f"{user.name}: field full, summon falls back")
                    self.fallback.apply(user, targets, battle_state, result)
                return
            result.summoned.append(unit)


@dataclass
class ConditionalOp(SkillOp):
    """
    Run `ops` when every predicate in `when` holds at resolution time,
    else `otherwise`.

    Predicates: target_has, target_hp_below, target_debuffs_at_least,
    caster_hp_below, any_ally_below, resource_at_least.
    """

    when: Dict[str, Any] = field(default_factory=dict)
    ops: List[SkillOp] = field(default_factory=list)
    otherwise: List[SkillOp] = field(default_factory=list)

    def holds(self, user: Any, targets: Sequence[Any], battle_state: Any, result: SkillResolutionResult) -> bool:
        living = [t for t in targets if t.alive]
        for key, param in self.when.items():
            if key == "target_has":
                ok = any(t.status.has(param) for t in living)
            elif key == "target_hp_below":
                ok = any(hp_percent(t) < param for t in living)
            elif key == "target_debuffs_at_least":
                ok = any(len(t.status.debuffs()) >= param for t in living)
            elif key == "caster_hp_below":
                ok = hp_percent(user) < param
            elif key == "any_ally_below":
                ok = any(hp_percent(a) < param for a in battle_state.living_allies(user))
            elif key == "resource_at_least":
                ok = result.context_value >= param
            else:
                battle_log("warn", f"Unknown skill predicate: {key!r}")
                ok = False
            if not ok:
                return False
        return True

    def apply(self, user, targets, battle_state, result):
        branch = self.ops if self.holds(user, targets, battle_state, result) else self.otherwise
        for op in branch:
            op.apply(user, targets, battle_state, result)
