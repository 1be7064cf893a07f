# battlecore/battle/combatants.py

from __future__ import annotations

from typing import Any, Dict, List, Optional

from battlecore.battle.resources import ResourcePool, create_pool
from battlecore.battle.skills.parser import parse_skill
from battlecore.battle.skills.base import SkillDefinition
from battlecore.battle.status.manager import StatusManager
from battlecore.battle.templates import ENEMY, HERO, UnitTemplate

HEARTBREAK = "heartbreak"


class BattleUnit:
    """
    One hero or enemy instance in a battle.

    HP is always kept within [0, max_hp] by set_hp(); a unit at 0 HP is
    dead and drops out of targeting and scheduling.
    """

    def __init__(
        self,
        instance_id: str,
        template: UnitTemplate,
        *,
        side: Optional[str] = None,
        resource: Optional[ResourcePool] = None,
    ):
        self.id = instance_id
        self.template = template
        self.template_id = template.id
        self.name = template.name
        self.side = side or template.side
        self.class_id = template.class_id

        stats = template.base_stats
        self.max_hp = int(stats.get("hp", 1))
        self.hp = self.max_hp
        self.atk = int(stats.get("atk", 0))
        self.defense = int(stats.get("def", 0))
        self.spd = int(stats.get("spd", 0))

        self.resource = resource
        self.status = StatusManager(self)

        kind = resource.kind if resource is not None else None
        self.skills: List[SkillDefinition] = [
            parse_skill(data, resource_kind=kind, owner_id=template.id)
            for data in template.skills
        ]

        # Per-battle transient state
        self.cooldowns: Dict[str, int] = {}
        self.counters: Dict[str, int] = {}
        self.flags: Dict[str, bool] = {}
        self.stat_bonuses: List[Dict[str, Any]] = []
        self.last_skill_name: Optional[str] = None
        if template.heartbreak:
            self.counters[HEARTBREAK] = 0
        self.summoned: bool = False

    # ------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------
    @classmethod
    def from_template(cls, template: UnitTemplate, instance_id: str) -> "BattleUnit":
        resource = None
        if template.side == HERO:
            resource = create_pool(template.class_id, template.base_stats)
        return cls(instance_id, template, resource=resource)

    # ------------------------------------------------------------
    # HP
    # ------------------------------------------------------------
    @property
    def alive(self) -> bool:
        return self.hp > 0

    @property
    def is_hero(self) -> bool:
        return self.side == HERO

    @property
    def is_enemy(self) -> bool:
        return self.side == ENEMY

    def set_hp(self, new_hp: int) -> None:
        """Set HP with clamping."""
        self.hp = max(0, min(int(self.max_hp), int(new_hp)))

    def take_damage(self, amount: int) -> int:
        """Direct HP loss, no protection chain. Returns HP actually lost."""
        before = self.hp
        self.set_hp(self.hp - max(0, int(amount)))
        return before - self.hp

    def heal(self, amount: int) -> int:
        before = self.hp
        self.set_hp(self.hp + max(0, int(amount)))
        return self.hp - before

    # ------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------
    def cooldown_remaining(self, skill: SkillDefinition) -> int:
        return int(self.cooldowns.get(skill.meta.name, 0))

    def tick_cooldowns(self) -> None:
        for name in list(self.cooldowns):
            self.cooldowns[name] = max(0, self.cooldowns[name] - 1)

    # ------------------------------------------------------------
    # Heartbreak stacks
    # ------------------------------------------------------------
    @property
    def heartbreak(self) -> Dict[str, Any]:
        return self.template.heartbreak or {}

    @property
    def heartbreak_stacks(self) -> int:
        return self.counters.get(HEARTBREAK, 0)

    def gain_heartbreak(self, amount: int = 1) -> int:
        """Add stacks up to max_stacks. Returns the stacks actually gained."""
        if HEARTBREAK not in self.counters or not self.alive:
            return 0
        cap = int(self.heartbreak.get("max_stacks", 5))
        before = self.counters[HEARTBREAK]
        self.counters[HEARTBREAK] = max(0, min(cap, before + int(amount)))
        return self.counters[HEARTBREAK] - before

    def consume_heartbreak(self) -> int:
        stacks = self.heartbreak_stacks
        if HEARTBREAK in self.counters:
            self.counters[HEARTBREAK] = 0
        return stacks

    def heartbreak_lifesteal(self) -> float:
        return self.heartbreak_stacks * float(self.heartbreak.get("lifesteal_per_stack", 0))

    # ------------------------------------------------------------
    # Conditional stat bonuses (leader skills, passives)
    # ------------------------------------------------------------
    def conditional_stat_bonuses(self) -> Dict[str, float]:
        totals: Dict[str, float] = {}
        for bonus in self.stat_bonuses:
            condition = bonus.get("condition") or {}
            hp_below = condition.get("hp_below")
            if hp_below is not None and 100.0 * self.hp / max(1, self.max_hp) >= hp_below:
                continue
            hp_above = condition.get("hp_above")
            if hp_above is not None and 100.0 * self.hp / max(1, self.max_hp) <= hp_above:
                continue
            stat = bonus.get("stat")
            totals[stat] = totals.get(stat, 0.0) + float(bonus.get("value", 0))
        if self.heartbreak_stacks:
            per_stack = float(self.heartbreak.get("atk_per_stack", 0))
            totals["atk"] = totals.get("atk", 0.0) + per_stack * self.heartbreak_stacks
        return totals

    def __repr__(self) -> str:
        return f"<BattleUnit {self.id} {self.name} {self.hp}/{self.max_hp}>"


def create_unit(template: UnitTemplate, instance_id: str, state: Optional[Dict[str, Any]] = None) -> BattleUnit:
    """
    Build a unit, optionally restoring a saved party-state entry
    ({"hp": ..., "resource": ...}).
    """
    unit = BattleUnit.from_template(template, instance_id)
    if state:
        if state.get("hp") is not None:
            unit.set_hp(state["hp"])
        if state.get("resource") is not None and unit.resource is not None:
            unit.resource.set(state["resource"])
    return unit
