# battlecore/battle/session.py
#
# Battle truth: units, the injected rng, the battle log, and every commit
# of damage, healing and statuses.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from battlecore import config
from battlecore.battle import resources
from battlecore.battle.combatants import BattleUnit, create_unit
from battlecore.battle.damage import DamageResult, effective_stats, resolve_damage
from battlecore.battle.protection import (
    Allocation,
    absorb_shield,
    check_death_prevention,
    fire_reactive_effects,
    reduce_damage,
    route_damage,
)
from battlecore.battle.status.catalog import EffectType
from battlecore.battle.status.effects import ActiveEffect
from battlecore.battle.status.status_events import DamageTickEvent, ExpireEvent, StatusEvent
from battlecore.battle.templates import TemplateCatalog
from battlecore.debug.debug_logger import BattleDebug

# Damage sources that walk the redirection chain. DoT ticks, reactive
# counters and self-inflicted costs land on their holder directly.
ROUTED_SOURCES = frozenset({"attack", "external"})


# --- Log records -------------------------------------------------------------


@dataclass
class BattleLogEntry:
    """
    One human-readable battle message plus the structured fields a
    statistics layer needs (actor, action, amount, target).
    """

    round: int
    message: str
    kind: str = "info"               # "damage", "heal", "status", "death", "turn", ...
    actor: Optional[str] = None      # instance ids
    target: Optional[str] = None
    amount: Optional[int] = None


@dataclass
class HitOutcome:
    result: DamageResult
    dealt: int = 0
    killed: bool = False


@dataclass
class DamageApplication:
    """What apply_damage() committed, per recipient."""

    total: int = 0
    per_unit: Dict[str, int] = field(default_factory=dict)
    redirected: bool = False


# --- Core session object -----------------------------------------------------


class BattleSession:
    """
    BattleSession is the keeper of battle truth.

    It owns:
        - hero & enemy units (HP, resources, statuses via the unit objects)
        - the injected random source
        - the battle log
        - damage / heal / status commit, including the protection chain
          and death triggers

    It does NOT:
        - decide turn order (TurnScheduler)
        - decide what a skill does (SkillResolver)
        - accept player input (BattleController)
    """

    # --------------------------------------------------------------------- #
    # Construction
    # --------------------------------------------------------------------- #

    def __init__(
        self,
        heroes: Iterable[BattleUnit],
        enemies: Iterable[BattleUnit],
        *,
        rng: Any,
        catalog: Optional[TemplateCatalog] = None,
        scheduler: Any = None,
    ) -> None:
        self.heroes: List[BattleUnit] = list(heroes)
        self.enemies: List[BattleUnit] = list(enemies)
        self.rng = rng
        self.catalog = catalog
        self.scheduler = scheduler
        self.round_number: int = 0
        self.log: List[BattleLogEntry] = []
        self.debug = BattleDebug()
        self._summon_serial: int = 0
        self._passive_depth: int = 0

    # --------------------------------------------------------------------- #
    # Lookups
    # --------------------------------------------------------------------- #

    def all_units(self) -> List[BattleUnit]:
        return self.heroes + self.enemies

    def find_unit(self, unit_id: Optional[str]) -> Optional[BattleUnit]:
        if unit_id is None:
            return None
        for unit in self.all_units():
            if unit.id == unit_id:
                return unit
        return None

    def allies_of(self, unit: Any) -> List[BattleUnit]:
        return self.heroes if unit.side == "hero" else self.enemies

    def opponents_of(self, unit: Any) -> List[BattleUnit]:
        return self.enemies if unit.side == "hero" else self.heroes

    def living_allies(self, unit: Any) -> List[BattleUnit]:
        return [u for u in self.allies_of(unit) if u.alive]

    def living_enemies(self, unit: Any) -> List[BattleUnit]:
        return [u for u in self.opponents_of(unit) if u.alive]

    # --------------------------------------------------------------------- #
    # Log
    # --------------------------------------------------------------------- #

    def emit(
        self,
        message: str,
        *,
        kind: str = "info",
        actor: Any = None,
        target: Any = None,
        amount: Optional[int] = None,
    ) -> BattleLogEntry:
        entry = BattleLogEntry(
            round=self.round_number,
            message=message,
            kind=kind,
            actor=getattr(actor, "id", actor),
            target=getattr(target, "id", target),
            amount=amount,
        )
        self.log.append(entry)
        self.debug.runtime(f"[LOG] {message}")
        return entry

    # --------------------------------------------------------------------- #
    # Hits
    # --------------------------------------------------------------------- #

    def attack(
        self,
        attacker: BattleUnit,
        target: BattleUnit,
        *,
        multiplier: float = 1.0,
        **damage_kwargs: Any,
    ) -> HitOutcome:
        """
        One hit from `attacker` on `target`: compute through the damage
        pipeline, then commit through the protection chain.
        """
        outgoing = resources.essence_damage_bonus(attacker)
        vicious = attacker.status.get(EffectType.VICIOUS)
        if vicious is not None and target.status.debuffs():
            outgoing += float(vicious.value or 0)

        result = resolve_damage(
            attacker,
            target,
            rng=self.rng,
            multiplier=multiplier,
            outgoing_bonus=outgoing,
            **damage_kwargs,
        )
        outcome = HitOutcome(result=result)

        if result.was_blinded:
            self.emit(f"{attacker.name} is blinded and misses!", kind="miss", actor=attacker, target=target)
            return outcome
        if result.was_evaded:
            self.emit(f"{target.name} evades {attacker.name}'s attack!", kind="evade", actor=attacker, target=target)
            return outcome

        applied = self._apply_damage(target, result.amount, "attack", attacker)
        outcome.dealt = applied.total
        outcome.killed = not target.alive

        if applied.total > 0:
            resources.gain_from_action(attacker, resources.DEALT_DAMAGE)
        return outcome

    # --------------------------------------------------------------------- #
    # Damage commit
    # --------------------------------------------------------------------- #

    def apply_damage(
        self,
        unit: BattleUnit,
        amount: int,
        source: str = "external",
        attacker: Optional[BattleUnit] = None,
    ) -> int:
        """
        Commit `amount` of damage aimed at `unit`. Returns total HP lost
        across every recipient the chain routed it to.
        """
        return self._apply_damage(unit, amount, source, attacker).total

    def _apply_damage(
        self,
        unit: BattleUnit,
        amount: int,
        source: str,
        attacker: Optional[BattleUnit],
    ) -> DamageApplication:
        applied = DamageApplication()
        amount = int(amount)
        if not unit.alive or amount <= 0:
            return applied

        if source in ROUTED_SOURCES:
            allocations = route_damage(unit, amount, self)
        else:
            allocations = [Allocation(unit, amount)]

        for alloc in allocations:
            if alloc.amount <= 0:
                continue
            if alloc.via is not None:
                applied.redirected = True
                resources.gain_from_action(alloc.recipient, resources.REDIRECTED)
                self.emit(
                    f"{alloc.recipient.name} intercepts {alloc.amount} damage for {unit.name}",
                    kind="redirect", actor=alloc.recipient, target=unit, amount=alloc.amount,
                )
            lost = self._commit(alloc, source, attacker)
            applied.total += lost
            applied.per_unit[alloc.recipient.id] = applied.per_unit.get(alloc.recipient.id, 0) + lost

        if source == "attack" and attacker is not None and applied.total > 0:
            for event in fire_reactive_effects(unit, attacker, applied.total):
                self.emit(
                    f"{unit.name}'s {event.kind} strikes {attacker.name} for {event.amount}",
                    kind="reactive", actor=unit, target=attacker, amount=event.amount,
                )
                self._apply_damage(attacker, event.amount, "reactive", unit)
                if event.status_to_apply is not None:
                    self.apply_status(attacker, event.status_to_apply)

        if source == "attack" and unit.alive and applied.per_unit.get(unit.id):
            from battlecore.battle.skills import passives

            passives.fire("on_hit_taken", unit, self, attacker=attacker)

        return applied

    def _commit(self, alloc: Allocation, source: str, attacker: Optional[BattleUnit]) -> int:
        recipient = alloc.recipient
        if not recipient.alive:
            return 0

        amount = reduce_damage(recipient, alloc.amount, alloc)
        amount, absorbed = absorb_shield(recipient, amount)
        if absorbed:
            self.emit(
                f"{recipient.name}'s shield absorbs {absorbed}",
                kind="shield", target=recipient, amount=absorbed,
            )
        if amount <= 0:
            return 0

        hp_before = recipient.hp
        saved_by = check_death_prevention(recipient, amount)
        if saved_by is not None:
            lost = recipient.hp - 1
            recipient.set_hp(1)
            self._death_prevention_riders(recipient, saved_by)
        else:
            lost = recipient.take_damage(amount)

        if lost > 0:
            resources.gain_from_action(recipient, resources.TOOK_DAMAGE)
            recipient.status.remove_kind(EffectType.SLEEP)
            self._heartbreak_on_hit(recipient, hp_before, lost)

        self.emit(
            f"{recipient.name} takes {lost} damage ({source})",
            kind="damage",
            actor=attacker,
            target=recipient,
            amount=lost,
        )

        if not recipient.alive:
            self._handle_death(recipient, attacker)
        return lost

    def _death_prevention_riders(self, unit: BattleUnit, effect: ActiveEffect) -> None:
        self.emit(f"{unit.name} clings to life!", kind="death_prevented", target=unit)
        granter = self.find_unit(effect.source_id)

        heal_pct = float(effect.get("heal_on_trigger", 0) or 0)
        if heal_pct:
            caster = granter or unit
            amount = int(effective_stats(caster)["atk"] * heal_pct / 100)
            self.heal_unit(unit, amount, caster)

        cost_pct = float(effect.get("damage_to_source_on_trigger", 0) or 0)
        if cost_pct and granter is not None and granter.alive:
            self._bill_granter(granter, int(granter.max_hp * cost_pct / 100), unit)

    def _bill_granter(self, granter: BattleUnit, amount: int, saved: BattleUnit) -> int:
        """The full cost of a death save, straight to HP. It can kill the granter."""
        lost = granter.take_damage(amount)
        self.emit(
            f"{granter.name} pays {lost} HP to keep {saved.name} standing",
            kind="self_damage", actor=granter, target=granter, amount=lost,
        )
        if not granter.alive:
            self._handle_death(granter, None)
        return lost

    # --------------------------------------------------------------------- #
    # Heartbreak stacks
    # --------------------------------------------------------------------- #

    def _gain_heartbreak(self, holder: BattleUnit, reason: str) -> None:
        if holder.gain_heartbreak(1):
            self.emit(
                f"{holder.name} gains Heartbreak ({holder.heartbreak_stacks}) - {reason}",
                kind="heartbreak", actor=holder, target=holder, amount=holder.heartbreak_stacks,
            )

    def _heartbreak_on_hit(self, recipient: BattleUnit, hp_before: int, lost: int) -> None:
        triggers = recipient.heartbreak.get("triggers") or {}
        heavy = triggers.get("heavy_damage_percent")
        if heavy and recipient.alive and lost * 100 >= float(heavy) * recipient.max_hp:
            self._gain_heartbreak(recipient, "heavy hit")

        # Each ally crossing under half HP counts once per battle.
        crossed = 2 * hp_before >= recipient.max_hp > 2 * recipient.hp
        if not crossed or not recipient.alive:
            return
        for holder in self.living_allies(recipient):
            if holder is recipient:
                continue
            if not (holder.heartbreak.get("triggers") or {}).get("ally_below_half_hp"):
                continue
            key = f"heartbreak_low:{recipient.id}"
            if holder.flags.get(key):
                continue
            holder.flags[key] = True
            self._gain_heartbreak(holder, f"{recipient.name} is wounded")

    # --------------------------------------------------------------------- #
    # Heals, self-costs, revives
    # --------------------------------------------------------------------- #

    def heal_unit(self, unit: BattleUnit, amount: int, healer: Optional[BattleUnit] = None) -> int:
        if not unit.alive or amount <= 0:
            return 0
        healed = unit.heal(amount)
        if healed:
            self.emit(f"{unit.name} recovers {healed} HP", kind="heal", actor=healer, target=unit, amount=healed)
        return healed

    def self_damage(self, unit: BattleUnit, amount: int) -> int:
        """HP cost that never takes a unit below 1 HP."""
        if not unit.alive or amount <= 0:
            return 0
        lost = min(int(amount), unit.hp - 1)
        if lost <= 0:
            return 0
        unit.set_hp(unit.hp - lost)
        self.emit(f"{unit.name} pays {lost} HP", kind="self_damage", actor=unit, target=unit, amount=lost)
        return lost

    def revive(self, unit: BattleUnit, hp: int, healer: Optional[BattleUnit] = None) -> int:
        if unit.alive:
            return 0
        unit.set_hp(hp)
        unit.status.clear()
        self.emit(f"{unit.name} is revived with {unit.hp} HP", kind="revive", actor=healer, target=unit, amount=unit.hp)
        return unit.hp

    # --------------------------------------------------------------------- #
    # Statuses
    # --------------------------------------------------------------------- #

    def apply_status(self, unit: BattleUnit, effect: Optional[ActiveEffect]) -> bool:
        """Attach an effect, snapshotting the source's ATK for DoT/HoT."""
        if effect is None or not unit.alive:
            return False
        source = self.find_unit(effect.source_id)
        if source is not None and "source_atk" not in effect.payload:
            effect.payload["source_atk"] = effective_stats(source)["atk"]
        applied = unit.status.add(effect, context=self)
        if applied:
            self.emit(
                f"{unit.name} gains {effect.kind}",
                kind="status", actor=source, target=unit, amount=None,
            )
        return applied

    def tick_statuses(self, unit: BattleUnit) -> List[StatusEvent]:
        """End-of-turn tick for `unit`, committing the payloads."""
        events = unit.status.tick(context=self)
        for ev in events:
            if isinstance(ev, DamageTickEvent):
                if ev.kind == EffectType.MP_REGEN:
                    resources.grant(ev.target, ev.amount)
                elif ev.amount < 0:
                    self._apply_damage(ev.target, -ev.amount, "dot", ev.source_combatant)
                elif ev.amount > 0:
                    self.heal_unit(ev.target, ev.amount, ev.source_combatant)
            elif isinstance(ev, ExpireEvent):
                self.emit(f"{ev.target.name}'s {ev.kind} wears off", kind="expire", target=ev.target)
        return events

    # --------------------------------------------------------------------- #
    # Summons & deaths
    # --------------------------------------------------------------------- #

    def summon(self, template_id: str, summoner: BattleUnit) -> Optional[BattleUnit]:
        """
        Add a unit to the summoner's side. Returns None when the side is
        at capacity or the template is unknown. Summons join the turn
        order from the next round.
        """
        side = self.allies_of(summoner)
        if len([u for u in side if u.alive]) >= config.MAX_ENEMIES:
            return None
        template = self.catalog.get_template(template_id) if self.catalog else None
        if template is None:
            return None

        self._summon_serial += 1
        unit = create_unit(template, f"{template_id}_s{self._summon_serial}")
        unit.side = summoner.side
        unit.summoned = True
        side.append(unit)
        if self.scheduler is not None:
            self.scheduler.add_unit(unit)
        self.emit(f"{summoner.name} summons {unit.name}!", kind="summon", actor=summoner, target=unit)
        return unit

    def _handle_death(self, unit: BattleUnit, killer: Optional[BattleUnit]) -> None:
        from battlecore.battle.skills import passives

        self.emit(f"{unit.name} is defeated!", kind="death", actor=killer, target=unit)
        unit.status.clear()
        if self.scheduler is not None:
            self.scheduler.remove(unit)

        passives.fire("on_death", unit, self, killer=killer)
        for ally in self.living_allies(unit):
            if (ally.heartbreak.get("triggers") or {}).get("ally_death"):
                self._gain_heartbreak(ally, f"{unit.name} has fallen")
            passives.fire("on_ally_death", ally, self, dead=unit)
        if killer is not None and killer.alive and killer.side != unit.side:
            passives.fire("on_kill", killer, self, victim=unit)

    # --------------------------------------------------------------------- #
    # Invariants
    # --------------------------------------------------------------------- #

    def validate_invariants(self) -> None:
        """Clamp every unit's HP and resource back into bounds."""
        for unit in self.all_units():
            unit.set_hp(unit.hp)
            if unit.resource is not None:
                unit.resource.set(unit.resource.current)
