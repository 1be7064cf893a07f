# battlecore/battle/status/effects.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ActiveEffect:
    """
    One status currently attached to a unit.

    Durations are expressed in *turns of the owner*: the value already
    reflects "turns remaining after the next decrement", and the effect is
    removed when the owner's end-of-turn tick brings it to 0.

    duration=None marks an until-consumed effect (shields without an
    explicit bound, death prevention from some passives).

    `value` is the magnitude: a percentage for stat modifiers, % of the
    source's ATK for DoT/HoT, redirect/evasion/miss percentages, etc.

    `payload` holds per-kind extras, e.g.
        guardian_id, redirect_percent        (GUARDIAN_LINK / GUARDING)
        shield_hp                            (SHIELD)
        heal_on_trigger, damage_to_source_on_trigger   (DEATH_PREVENTION)
        damage_reduction, heal_per_turn      (DIVINE_SACRIFICE)
        turn_order_priority                  (SHATTERED_TEMPO: rank among holders)
        source_atk, frozen                   (DoT/HoT snapshot)
    """

    kind: str
    duration: Optional[int]
    value: Any = 0
    source_id: Optional[str] = None
    is_buff: bool = True
    stack_mode: str = "refresh"
    max_stacks: Optional[int] = None
    stacks: int = 1
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_debuff(self) -> bool:
        return not self.is_buff

    @property
    def is_timed(self) -> bool:
        return self.duration is not None

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)

    def magnitude(self) -> float:
        """Total contribution of this record (value x stacks for counters)."""
        try:
            base = float(self.value or 0)
        except (TypeError, ValueError):
            return 0.0
        return base * max(1, int(self.stacks))

    def copy_as(self, kind: str, *, is_buff: bool, source_id: Optional[str]) -> "ActiveEffect":
        """Clone duration/value/payload under a different kind (fortune swap)."""
        return ActiveEffect(
            kind=kind,
            duration=self.duration,
            value=self.value,
            source_id=source_id,
            is_buff=is_buff,
            payload=dict(self.payload),
        )

    def describe(self) -> str:
        dur = "∞" if self.duration is None else str(self.duration)
        if self.stack_mode == "counter" and self.stacks > 1:
            return f"{self.kind}x{self.stacks}({dur})"
        return f"{self.kind}({dur})"
