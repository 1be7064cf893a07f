# battlecore/battle/templates.py
#
# Read-only unit templates (heroes and enemies) and the catalog the
# controller looks them up in. The engine never mutates a template.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from battlecore.debug.debug_logger import warn

HERO = "hero"
ENEMY = "enemy"


@dataclass(frozen=True)
class UnitTemplate:
    """
    Static description of a unit.

    base_stats: {"hp", "atk", "def", "spd", "mp"}
    skills:     list of skill dicts (see skills.parser)
    passives:   list of passive dicts, each with a "trigger"
    leader_skill / finale: optional dicts
    heartbreak: optional stack-counter passive
                {max_stacks, atk_per_stack, lifesteal_per_stack,
                 triggers{ally_below_half_hp, ally_death, heavy_damage_percent}}
    """

    id: str
    name: str
    side: str = HERO
    class_id: Optional[str] = None
    rarity: int = 1
    base_stats: Dict[str, int] = field(default_factory=dict)
    skills: List[Dict[str, Any]] = field(default_factory=list)
    passives: List[Dict[str, Any]] = field(default_factory=list)
    leader_skill: Optional[Dict[str, Any]] = None
    finale: Optional[Dict[str, Any]] = None
    heartbreak: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], side: Optional[str] = None) -> "UnitTemplate":
        passives = data.get("passives")
        if passives is None:
            single = data.get("passive")
            passives = [single] if single else []
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            side=side or data.get("side", HERO),
            class_id=data.get("class_id"),
            rarity=int(data.get("rarity", 1)),
            base_stats=dict(data.get("base_stats", {})),
            skills=list(data.get("skills", [])),
            passives=list(passives),
            leader_skill=data.get("leader_skill"),
            finale=data.get("finale"),
            heartbreak=data.get("heartbreak"),
        )


class TemplateCatalog:
    """Template lookup keyed by id."""

    def __init__(self, templates: Iterable[UnitTemplate] = ()) -> None:
        self._templates: Dict[str, UnitTemplate] = {}
        for t in templates:
            self.register(t)

    def register(self, template: UnitTemplate) -> None:
        self._templates[template.id] = template

    def get_template(self, template_id: str) -> Optional[UnitTemplate]:
        template = self._templates.get(template_id)
        if template is None:
            warn(f"Unknown template id: {template_id!r}")
        return template

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._templates

    @classmethod
    def from_dicts(
        cls,
        heroes: Iterable[Dict[str, Any]] = (),
        enemies: Iterable[Dict[str, Any]] = (),
    ) -> "TemplateCatalog":
        catalog = cls()
        for data in heroes:
            catalog.register(UnitTemplate.from_dict(data, side=HERO))
        for data in enemies:
            catalog.register(UnitTemplate.from_dict(data, side=ENEMY))
        return catalog
