# battlecore/battle/battle_command.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union


class RefusalReason(Enum):
    NOT_PLAYER_TURN = "not_player_turn"
    INVALID_ACTION = "invalid_action"
    INSUFFICIENT_RESOURCE = "insufficient_resource"
    ON_COOLDOWN = "on_cooldown"
    NO_VALID_TARGET = "no_valid_target"
    SKILLS_SEALED = "skills_sealed"


@dataclass
class BattleCommand:
    """
    A neutral, side-agnostic representation of an intended action.
    This is where AI or player input 'interfaces' with the combat engine.
    """
    actor_id: str

    # "skill" or "basic"
    command_type: str = "skill"

    # Index into the actor's skill list (command_type == "skill")
    skill_index: Optional[int] = None

    target_id: Optional[str] = None

    # Debug / introspection fields (used by AI)
    source: str = "player"   # or "ai"
    reason: Optional[str] = None

    @property
    def is_basic(self) -> bool:
        return self.command_type == "basic"


@dataclass
class ActionOutcome:
    """What select_action() reports back. Refusals carry a reason and leave state untouched."""
    accepted: bool
    reason: Optional[RefusalReason] = None
    message: str = ""
    result: Any = None

    @classmethod
    def refuse(cls, reason: RefusalReason, message: str) -> "ActionOutcome":
        return cls(accepted=False, reason=reason, message=message)


BASIC_TOKENS = ("attack", "basic", "basic_attack")


def parse_action_token(actor_id: str, token: Union[int, str, None], target_id: Optional[str] = None) -> Optional[BattleCommand]:
    """
    An int (or digit string) is a skill index; "attack" / "basic" is the
    basic attack. Anything else is not an action.
    """
    if isinstance(token, bool):
        return None
    if isinstance(token, int):
        return BattleCommand(actor_id, "skill", skill_index=token, target_id=target_id)
    if isinstance(token, str):
        word = token.strip().lower()
        if word in BASIC_TOKENS:
            return BattleCommand(actor_id, "basic", target_id=target_id)
        if word.isdigit():
            return BattleCommand(actor_id, "skill", skill_index=int(word), target_id=target_id)
    return None
