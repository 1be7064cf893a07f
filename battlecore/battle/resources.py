# battlecore/battle/resources.py
#
# Per-class action resources.
#
#   knight    -> valor    (0-100, earned by taking / redirecting hits)
#   berserker -> rage     (0-100, earned by dealing and taking damage)
#   ranger    -> focus    (0/1, skills spend it, basic attacks restore it)
#   bard      -> verse    (0-3, earned by varied skill use, feeds the finale)
#   alchemist -> essence  (max = MP stat, regenerates each turn)
#   others    -> mana     (max = MP stat, regenerates each round)
#
# Enemies carry no pool and are gated by cooldowns only.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from battlecore import config
from battlecore.debug.debug_logger import log


class ResourceKind:
    MANA = "mana"
    RAGE = "rage"
    FOCUS = "focus"
    VALOR = "valor"
    VERSE = "verse"
    ESSENCE = "essence"


CLASS_RESOURCES: Dict[str, str] = {
    "knight": ResourceKind.VALOR,
    "berserker": ResourceKind.RAGE,
    "ranger": ResourceKind.FOCUS,
    "bard": ResourceKind.VERSE,
    "alchemist": ResourceKind.ESSENCE,
}

# Action triggers understood by gain_from_action()
DEALT_DAMAGE = "dealt_damage"
TOOK_DAMAGE = "took_damage"
REDIRECTED = "redirected"
SKILL_USED = "skill_used"
BASIC_ATTACK = "basic_attack"
ROUND_START = "round_start"
TURN_START = "turn_start"


@dataclass
class ResourcePool:
    kind: str
    current: int
    max: int

    def set(self, value: float) -> int:
        """Clamp into [0, max] and return the new value."""
        self.current = max(0, min(int(self.max), int(value)))
        return self.current

    @property
    def is_full(self) -> bool:
        return self.current >= self.max


def resource_kind_for(class_id: Optional[str]) -> str:
    return CLASS_RESOURCES.get((class_id or "").lower(), ResourceKind.MANA)


def create_pool(class_id: Optional[str], base_stats: Dict[str, Any]) -> ResourcePool:
    """Fresh pool at its battle-start value."""
    kind = resource_kind_for(class_id)
    mp = int(base_stats.get("mp", 100) or 0)

    if kind == ResourceKind.RAGE:
        return ResourcePool(kind, 0, config.RAGE_MAX)
    if kind == ResourceKind.VALOR:
        return ResourcePool(kind, 0, config.VALOR_MAX)
    if kind == ResourceKind.FOCUS:
        return ResourcePool(kind, config.FOCUS_MAX, config.FOCUS_MAX)
    if kind == ResourceKind.VERSE:
        return ResourcePool(kind, 0, config.VERSE_MAX)
    if kind == ResourceKind.ESSENCE:
        # The first turn-start regen tick brings it to exactly half.
        start = max(0, mp // 2 - config.ESSENCE_TURN_REGEN)
        return ResourcePool(kind, start, mp)
    return ResourcePool(kind, int(mp * config.MANA_START_FRACTION), mp)


# ----------------------------------------------------------------------
# Skill costs
# ----------------------------------------------------------------------

COST_FREE = "free"
COST_SPEND = "spend"
COST_THRESHOLD = "threshold"
COST_ALL = "all"


@dataclass(frozen=True)
class SkillCost:
    """
    mode:
      free      - no resource involved (cooldown-gated only)
      spend     - pay `amount`
      threshold - must hold >= `amount`, nothing is spent
      all       - must hold >= `amount`, then the whole pool is consumed and
                  the consumed amount feeds the skill's scaling
    """

    mode: str = COST_FREE
    amount: int = 0

    @property
    def is_free(self) -> bool:
        return self.mode == COST_FREE


FREE = SkillCost()


def parse_cost(data: Dict[str, Any], kind: Optional[str]) -> SkillCost:
    """Read a skill's cost fields for a unit whose pool is `kind`."""
    if kind is None:
        return FREE

    if kind == ResourceKind.VALOR:
        required = int(data.get("valor_required", 0) or 0)
        if data.get("valor_cost") == "all":
            return SkillCost(COST_ALL, required)
        if isinstance(data.get("valor_cost"), int):
            return SkillCost(COST_SPEND, int(data["valor_cost"]))
        if required:
            return SkillCost(COST_THRESHOLD, required)
        return FREE

    if kind == ResourceKind.RAGE:
        cost = data.get("rage_cost", 0)
        if cost == "all":
            return SkillCost(COST_ALL, int(data.get("rage_required", 0) or 0))
        return SkillCost(COST_SPEND, int(cost)) if cost else FREE

    if kind == ResourceKind.FOCUS:
        if data.get("no_focus_cost"):
            return FREE
        return SkillCost(COST_SPEND, 1)

    if kind == ResourceKind.ESSENCE:
        cost = int(data.get("essence_cost", 0) or 0)
        return SkillCost(COST_SPEND, cost) if cost else FREE

    if kind == ResourceKind.VERSE:
        return FREE

    cost = int(data.get("mp_cost", 0) or 0)
    return SkillCost(COST_SPEND, cost) if cost else FREE


def can_afford(unit: Any, cost: SkillCost) -> bool:
    if cost.is_free:
        return True
    pool: Optional[ResourcePool] = getattr(unit, "resource", None)
    if pool is None:
        return cost.amount <= 0
    return pool.current >= cost.amount


def spend(unit: Any, cost: SkillCost) -> int:
    """
    Pay a cost. Returns the consumed amount (the whole pool for "all").

    Callers check can_afford() first; spend never drives a pool negative.
    """
    pool: Optional[ResourcePool] = getattr(unit, "resource", None)
    if pool is None or cost.is_free or cost.mode == COST_THRESHOLD:
        return 0

    if cost.mode == COST_ALL:
        consumed = pool.current
        pool.set(0)
    else:
        consumed = min(pool.current, cost.amount)
        pool.set(pool.current - consumed)

    log("runtime", f"{getattr(unit, 'name', '?')} spends {consumed} {pool.kind}")
    return consumed


def grant(unit: Any, amount: float) -> int:
    """Add (or with a negative amount, drain) resource. Returns the delta."""
    pool: Optional[ResourcePool] = getattr(unit, "resource", None)
    if pool is None:
        return 0
    before = pool.current
    pool.set(pool.current + amount)
    return pool.current - before


def gain_from_action(unit: Any, trigger: str) -> int:
    """Apply the passive resource gain a class earns for `trigger`."""
    pool: Optional[ResourcePool] = getattr(unit, "resource", None)
    if pool is None or not getattr(unit, "alive", True):
        return 0

    kind = pool.kind
    amount = 0
    if kind == ResourceKind.RAGE:
        if trigger == DEALT_DAMAGE:
            amount = config.RAGE_ON_DAMAGE_DEALT
        elif trigger == TOOK_DAMAGE:
            amount = config.RAGE_ON_DAMAGE_TAKEN
    elif kind == ResourceKind.VALOR:
        if trigger == TOOK_DAMAGE:
            amount = config.VALOR_ON_DAMAGE_TAKEN
        elif trigger == REDIRECTED:
            amount = config.VALOR_ON_REDIRECT
    elif kind == ResourceKind.FOCUS:
        if trigger == BASIC_ATTACK:
            amount = config.FOCUS_MAX
    elif kind == ResourceKind.MANA:
        if trigger == ROUND_START:
            amount = int(pool.max * config.MANA_ROUND_REGEN_FRACTION)
    elif kind == ResourceKind.ESSENCE:
        if trigger == TURN_START:
            amount = config.ESSENCE_TURN_REGEN

    if amount <= 0:
        return 0
    return grant(unit, amount)


# ----------------------------------------------------------------------
# Verse (bard)
# ----------------------------------------------------------------------

def advance_verse(unit: Any, skill_name: str) -> bool:
    """
    Record a bard skill use. A verse is earned only when the skill differs
    from the previous one. Returns True when the pool is full and the
    finale should fire.
    """
    pool: Optional[ResourcePool] = getattr(unit, "resource", None)
    if pool is None or pool.kind != ResourceKind.VERSE:
        return False

    if skill_name != getattr(unit, "last_skill_name", None):
        grant(unit, 1)
    unit.last_skill_name = skill_name
    return pool.is_full


def reset_verses(unit: Any) -> None:
    pool: Optional[ResourcePool] = getattr(unit, "resource", None)
    if pool is not None and pool.kind == ResourceKind.VERSE:
        pool.set(0)
    unit.last_skill_name = None


# ----------------------------------------------------------------------
# Essence volatility (alchemist)
# ----------------------------------------------------------------------

STABLE = "stable"
REACTIVE = "reactive"
VOLATILE = "volatile"


def essence_tier(unit: Any) -> Optional[str]:
    pool: Optional[ResourcePool] = getattr(unit, "resource", None)
    if pool is None or pool.kind != ResourceKind.ESSENCE:
        return None
    if pool.current <= config.ESSENCE_STABLE_MAX:
        return STABLE
    if pool.current <= config.ESSENCE_REACTIVE_MAX:
        return REACTIVE
    return VOLATILE


def essence_damage_bonus(unit: Any) -> int:
    """Outgoing damage bonus (%) granted by the current volatility tier."""
    tier = essence_tier(unit)
    if tier == REACTIVE:
        return config.ESSENCE_REACTIVE_BONUS
    if tier == VOLATILE:
        return config.ESSENCE_VOLATILE_BONUS
    return 0


def essence_self_damage(unit: Any) -> int:
    """HP a volatile alchemist loses after using a skill."""
    if essence_tier(unit) != VOLATILE:
        return 0
    max_hp = int(getattr(unit, "max_hp", 0))
    return max(1, max_hp * config.ESSENCE_VOLATILE_SELF_DAMAGE_PERCENT // 100)
