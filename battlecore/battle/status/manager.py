# battlecore/battle/status/manager.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from battlecore.battle.status.catalog import (
    EffectType,
    STACK_COUNTER,
    STACK_INSTANCES,
    get_definition,
)
from battlecore.battle.status.effects import ActiveEffect
from battlecore.battle.status.status_events import DamageTickEvent, ExpireEvent, StatusEvent
from battlecore.debug.debug_logger import log as battle_log

_STAT_UP = {
    EffectType.ATK_UP: "atk",
    EffectType.DEF_UP: "def",
    EffectType.SPD_UP: "spd",
}
_STAT_DOWN = {
    EffectType.ATK_DOWN: "atk",
    EffectType.DEF_DOWN: "def",
    EffectType.SPD_DOWN: "spd",
}

_DOT_KINDS = (EffectType.POISON, EffectType.BURN)


class StatusManager:
    """
    Holds and manages all ActiveEffect records attached to a single unit.

    The manager owns stacking, duration countdown and removal. It never
    mutates HP itself: per-turn payloads come back from tick() as
    DamageTickEvent objects and the battle session commits them, so DoT
    damage still runs through shields and death prevention.
    """

    def __init__(self, owner: Any):
        self.owner = owner
        self.effects: List[ActiveEffect] = []

    # --------------------------------------------------------------
    # Basic add/remove
    # --------------------------------------------------------------
    def add(self, effect: Optional[ActiveEffect], context: Any | None = None) -> bool:
        """
        Attach an effect to the owner. Returns False when nothing changed.

        Stacking follows effect.stack_mode:
          - refresh:   a same-kind instance takes the new magnitude and the
                       longer of the two durations
          - instances: appended; applications past max_stacks are dropped
          - counter:   one instance whose stack count climbs to max_stacks;
                       every application refreshes the duration, even at cap
        """
        if effect is None:
            return False

        owner_name = getattr(self.owner, "name", "<??>")
        if not getattr(self.owner, "alive", True):
            return False

        if effect.is_debuff and self.has(EffectType.DEBUFF_IMMUNE):
            battle_log("status", f"[IMMUNE] {owner_name} shrugs off {effect.kind}")
            return False

        same = self.get_all(effect.kind)

        if effect.stack_mode == STACK_INSTANCES:
            if effect.max_stacks is not None and len(same) >= effect.max_stacks:
                battle_log(
                    "status",
                    f"[CAP] {owner_name} {effect.kind} at {len(same)}/{effect.max_stacks}; dropped",
                )
                return False
            self.effects.append(effect)

        elif effect.stack_mode == STACK_COUNTER and same:
            existing = same[0]
            cap = effect.max_stacks if effect.max_stacks is not None else existing.max_stacks
            if cap is None or existing.stacks < cap:
                existing.stacks += 1
            existing.duration = effect.duration
            existing.value = effect.value
            existing.source_id = effect.source_id
            existing.payload.update(effect.payload)

        elif same:
            existing = same[0]
            existing.value = effect.value
            existing.source_id = effect.source_id
            existing.payload.update(effect.payload)
            # An untimed side wins: it is the longer duration.
            if existing.duration is None or effect.duration is None:
                existing.duration = None
            else:
                existing.duration = max(existing.duration, effect.duration)

        else:
            self.effects.append(effect)

        battle_log(
            "status",
            f"[ADD] {owner_name} <- {effect.describe()} value={effect.value} "
            f"src={effect.source_id}",
        )
        return True

    def remove(self, effect: ActiveEffect) -> None:
        if effect in self.effects:
            self.effects.remove(effect)

    def remove_kind(self, kind: str) -> int:
        """Remove every instance of `kind`. Returns how many went."""
        before = len(self.effects)
        self.effects = [e for e in self.effects if e.kind != kind]
        return before - len(self.effects)

    def clear(self) -> None:
        self.effects = []

    # --------------------------------------------------------------
    # Queries
    # --------------------------------------------------------------
    def has(self, kind: str) -> bool:
        return any(e.kind == kind for e in self.effects)

    def get(self, kind: str) -> Optional[ActiveEffect]:
        for e in self.effects:
            if e.kind == kind:
                return e
        return None

    def get_all(self, kind: str) -> List[ActiveEffect]:
        return [e for e in self.effects if e.kind == kind]

    def stacks(self, kind: str) -> int:
        """Instances for instance-stacking kinds, the counter otherwise."""
        return sum(max(1, e.stacks) for e in self.effects if e.kind == kind)

    def total_value(self, kind: str) -> float:
        return sum(e.magnitude() for e in self.effects if e.kind == kind)

    def buffs(self) -> List[ActiveEffect]:
        return [e for e in self.effects if e.is_buff]

    def debuffs(self) -> List[ActiveEffect]:
        return [e for e in self.effects if e.is_debuff]

    # --------------------------------------------------------------
    # Cleanse / dispel / extend
    # --------------------------------------------------------------
    def cleanse(
        self,
        count: Optional[int] = None,
        *,
        kinds: Optional[Iterable[str]] = None,
        family: Optional[str] = None,
    ) -> List[ActiveEffect]:
        """
        Remove debuffs, oldest first. `count=None` removes all matches;
        `kinds` / `family` narrow what qualifies.
        """
        kind_set = set(kinds) if kinds is not None else None
        removed: List[ActiveEffect] = []
        for eff in list(self.effects):
            if count is not None and len(removed) >= count:
                break
            if not eff.is_debuff:
                continue
            if kind_set is not None and eff.kind not in kind_set:
                continue
            if family is not None:
                definition = get_definition(eff.kind)
                if definition is None or definition.family != family:
                    continue
            self.effects.remove(eff)
            removed.append(eff)

        if removed:
            battle_log(
                "status",
                f"[CLEANSE] {getattr(self.owner, 'name', '<??>')} -"
                + ",".join(e.kind for e in removed),
            )
        return removed

    def dispel(self, kinds: Iterable[str]) -> List[ActiveEffect]:
        """Remove the listed kinds regardless of polarity."""
        kind_set = set(kinds)
        removed = [e for e in self.effects if e.kind in kind_set]
        if removed:
            self.effects = [e for e in self.effects if e.kind not in kind_set]
        return removed

    def extend(
        self,
        turns: int,
        *,
        kinds: Optional[Iterable[str]] = None,
        polarity: Optional[str] = None,
    ) -> int:
        """
        Add `turns` to timed effects without re-applying them.
        polarity: "buff" | "debuff" | None (both).
        """
        kind_set = set(kinds) if kinds is not None else None
        extended = 0
        for eff in self.effects:
            if eff.duration is None:
                continue
            if kind_set is not None and eff.kind not in kind_set:
                continue
            if polarity == "buff" and not eff.is_buff:
                continue
            if polarity == "debuff" and not eff.is_debuff:
                continue
            eff.duration += turns
            extended += 1
        return extended

    # --------------------------------------------------------------
    # Turn-based hooks
    # --------------------------------------------------------------
    def tick(self, context: Any | None = None) -> List[StatusEvent]:
        """
        End-of-owner's-turn processing.

        Every effect fires its per-turn payload once, then loses one turn;
        an effect reaching 0 is removed after its payload fired. DoT/HoT
        amounts read the *source's* current ATK unless the effect froze a
        snapshot at application.
        """
        events: List[StatusEvent] = []
        owner_name = getattr(self.owner, "name", "<??>")

        for eff in list(self.effects):
            payload_event = self._tick_payload(eff, context)

            if eff.duration is not None:
                eff.duration -= 1
                if eff.duration <= 0:
                    self.effects.remove(eff)
                    events.append(ExpireEvent(target=self.owner, kind=eff.kind))
                    if payload_event is not None:
                        payload_event.expired = True

            if payload_event is not None:
                battle_log(
                    "status",
                    f"[TICK] {owner_name} {eff.kind} amount={payload_event.amount} "
                    f"remaining={eff.duration}",
                )
                events.append(payload_event)

        return events

    def _tick_payload(self, eff: ActiveEffect, context: Any | None) -> Optional[DamageTickEvent]:
        if eff.kind == EffectType.DIVINE_SACRIFICE:
            pct = float(eff.get("heal_per_turn", 0) or 0)
            if pct <= 0:
                return None
            max_hp = int(getattr(self.owner, "max_hp", 0))
            return DamageTickEvent(
                target=self.owner,
                amount=max(1, int(max_hp * pct / 100)),
                kind=eff.kind,
                source_combatant=self.owner,
            )

        if eff.kind not in _DOT_KINDS and eff.kind not in (EffectType.REGEN, EffectType.MP_REGEN):
            return None

        source = None
        find_unit = getattr(context, "find_unit", None)
        if eff.source_id is not None and find_unit is not None:
            source = find_unit(eff.source_id)

        if eff.kind == EffectType.MP_REGEN:
            return DamageTickEvent(
                target=self.owner,
                amount=int(eff.magnitude()),
                kind=eff.kind,
                source_combatant=source,
            )

        atk = self._source_atk(eff, source)
        amount = int(atk * eff.magnitude() / 100)
        if eff.magnitude() > 0:
            amount = max(1, amount)

        signed = -amount if eff.kind in _DOT_KINDS else amount
        return DamageTickEvent(
            target=self.owner,
            amount=signed,
            kind=eff.kind,
            source_combatant=source,
        )

    @staticmethod
    def _source_atk(eff: ActiveEffect, source: Any) -> float:
        if eff.get("frozen") or source is None:
            return float(eff.get("source_atk", 0) or 0)

        # Local import: damage reads StatusManager modifiers.
        from battlecore.battle.damage import effective_stats

        return effective_stats(source)["atk"]

    # --------------------------------------------------------------
    # Aggregated stat modifiers
    # --------------------------------------------------------------
    def get_stat_modifiers(self) -> Dict[str, float]:
        """
        Aggregate all stat modifiers contributed by active statuses and
        the owner's conditional (leader / passive) bonuses.

        Returns atk_mult, def_mult, spd_mult (default 1.0) and
        atk_add, def_add, spd_add (default 0.0). Multipliers never go
        below 0.
        """
        percents: Dict[str, float] = {"atk": 0.0, "def": 0.0, "spd": 0.0}

        for eff in self.effects:
            if eff.kind in _STAT_UP:
                percents[_STAT_UP[eff.kind]] += eff.magnitude()
            elif eff.kind in _STAT_DOWN:
                percents[_STAT_DOWN[eff.kind]] -= eff.magnitude()
            elif eff.kind == EffectType.SWIFT_MOMENTUM:
                percents["spd"] += eff.magnitude()

        bonuses = getattr(self.owner, "conditional_stat_bonuses", None)
        if callable(bonuses):
            for stat, pct in bonuses().items():
                if stat in percents:
                    percents[stat] += pct

        mods: Dict[str, float] = {}
        for stat, pct in percents.items():
            mods[f"{stat}_mult"] = max(0.0, 1.0 + pct / 100.0)
            mods[f"{stat}_add"] = 0.0
        return mods

    # --------------------------------------------------------------
    # Utility for debugging / snapshots
    # --------------------------------------------------------------
    def get_active_ids(self) -> List[str]:
        """Return effect descriptions for debug/status-window use."""
        return [eff.describe() for eff in self.effects]

    def get_effects(self) -> List[ActiveEffect]:
        return list(self.effects)
