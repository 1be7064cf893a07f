# battlecore/battle/skills/base.py
#
# Core skill data structures for the battle engine.
#
# A skill is metadata plus an ordered list of operations. Template dicts
# are parsed into this shape once (skills.parser) and the SkillResolver
# runs the operations in order against the battle session.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from battlecore.battle.resources import FREE, SkillCost

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

# "enemy", "ally", "self", "dead_ally", "lowest_hp_ally",
# "all_enemies", "all_allies", "random_enemies"
TargetType = str

SINGLE_TARGET_TYPES = ("enemy", "ally", "dead_ally")


# ---------------------------------------------------------------------------
# Skill metadata + definition
# ---------------------------------------------------------------------------

@dataclass
class SkillMeta:
    """
    Describes *what* a skill is, but not *how* it works internally.
    """

    id: str
    name: str
    target_type: TargetType = "enemy"
    cost: SkillCost = FREE
    cooldown: int = 0
    description: str = ""
    hits: int = 1                       # random_enemies draw count
    target_filter: Optional[str] = None # "not_acted"
    tags: set[str] = field(default_factory=set)

    @property
    def needs_target(self) -> bool:
        return self.target_type in SINGLE_TARGET_TYPES


class SkillOp:
    """
    Base class for all mechanical skill operations.

    Concrete subclasses live in skills.effects (DamageOp, HealOp,
    ApplyEffectOp, ...). The SkillResolver calls .apply(...) on each
    operation in sequence.
    """

    # Which units the op acts on: "primary" (the skill's resolved
    # targets), "self", "all_allies", "all_enemies", "other_allies".
    target: str = "primary"

    def apply(
        self,
        user: Any,
        targets: Sequence[Any],
        battle_state: Any,
        result: "SkillResolutionResult",
    ) -> None:
        """
        Mutate units through `battle_state` (a BattleSession) and record
        what happened in `result`.
        """
        raise NotImplementedError("SkillOp.apply() must be implemented")


@dataclass
class SkillDefinition:
    """
    A complete skill: metadata + one or more SkillOp components.
    """

    meta: SkillMeta
    ops: List[SkillOp] = field(default_factory=list)

    @property
    def is_damaging(self) -> bool:
        from .effects import DamageOp

        return any(isinstance(op, DamageOp) for op in self.ops)

    @property
    def is_single_hit_damage(self) -> bool:
        """Echo candidates: one damaging op, one target, one hit."""
        from .effects import DamageOp

        damage_ops = [op for op in self.ops if isinstance(op, DamageOp)]
        return (
            self.meta.target_type == "enemy"
            and len(damage_ops) == 1
            and damage_ops[0].hits == 1
        )


# ---------------------------------------------------------------------------
# Resolution result (what the resolver returns to the controller)
# ---------------------------------------------------------------------------

@dataclass
class TargetChange:
    """
    Records what happened to a single target during a skill resolution.
    """

    target: Any
    damage: int = 0
    healed: int = 0
    resource_delta: int = 0
    status_applied: List[str] = field(default_factory=list)
    status_removed: List[str] = field(default_factory=list)
    was_evaded: bool = False
    was_blinded: bool = False
    was_crit: bool = False
    was_execute: bool = False
    was_revived: bool = False
    killed: bool = False


@dataclass
class SkillResolutionResult:
    """
    High-level outcome of resolving a single skill use.

    consumed:      resource consumed by an "all" cost
    context_value: resource value scaling tables resolve against
    multiplier:    global damage multiplier (echo)
    """

    skill: SkillMeta
    user: Any
    targets: List[TargetChange] = field(default_factory=list)
    consumed: int = 0
    context_value: int = 0
    multiplier: float = 1.0
    total_damage: int = 0
    summoned: List[Any] = field(default_factory=list)
    message: Optional[str] = None
    flags: Dict[str, Any] = field(default_factory=dict)

    def change_for(self, target: Any) -> TargetChange:
        """Find or create the TargetChange entry for a given target."""
        for tc in self.targets:
            if tc.target is target:
                return tc
        tc = TargetChange(target=target)
        self.targets.append(tc)
        return tc

    @property
    def kills(self) -> List[Any]:
        return [tc.target for tc in self.targets if tc.killed]
