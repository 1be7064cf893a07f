"""
battlecore/battle/skills/registry.py

Registry of parsed SkillDefinitions.

Unit skills are parsed when a unit is built; passives, leader riders and
finales are parsed on first use and cached here by id. The basic attack
is registered up front.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from .base import SkillDefinition
from .parser import BASIC_ATTACK, parse_skill

# ---------------------------------------------------------------------------
# Global registry
# ---------------------------------------------------------------------------

_SKILLS: Dict[str, SkillDefinition] = {}


def register(skill_def: SkillDefinition) -> None:
    """Register (or overwrite) a skill in the global registry."""
    _SKILLS[skill_def.meta.id] = skill_def


def get(skill_id: str) -> SkillDefinition:
    """Retrieve a skill definition by id."""
    return _SKILLS[skill_id]


def get_or_parse(
    data: Dict[str, Any],
    *,
    owner_id: str,
    resource_kind: Optional[str] = None,
    key: Optional[str] = None,
) -> SkillDefinition:
    """Parse a declarative block once per (owner, key) and cache it."""
    skill_id = f"{owner_id}:{key or data.get('name', 'unnamed')}"
    cached = _SKILLS.get(skill_id)
    if cached is None:
        cached = parse_skill(dict(data, id=skill_id), resource_kind=resource_kind, owner_id=owner_id)
        register(cached)
    return cached


def basic_attack() -> SkillDefinition:
    return _SKILLS[BASIC_ATTACK["id"]]


def clear() -> None:
    """Drop every cached definition (tests swapping template data)."""
    _SKILLS.clear()
    register(parse_skill(BASIC_ATTACK))


register(parse_skill(BASIC_ATTACK))
