from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from battlecore.battle.combatants import BattleUnit, create_unit
from battlecore.battle.scheduler import TurnScheduler
from battlecore.battle.session import BattleSession
from battlecore.battle.status.catalog import create_effect
from battlecore.battle.status.effects import ActiveEffect
from battlecore.battle.templates import ENEMY, HERO, TemplateCatalog, UnitTemplate


class ScriptedRng:
    """Stand-in random source: hands out queued floats, then `default`.

    The engine only ever calls ``random()``, so a list of floats fully
    scripts every evasion, crit and pick roll. The default of 0.99 fails
    any chance under 100% and picks the last candidate.
    """

    def __init__(self, values: Iterable[float] = (), default: float = 0.99) -> None:
        self.values = list(values)
        self.default = default
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        return self.default


def make_template(
    template_id: str,
    *,
    side: str = HERO,
    hp: int = 100,
    atk: int = 100,
    defense: int = 0,
    spd: int = 10,
    mp: int | None = None,
    class_id: str | None = None,
    skills: Sequence[dict[str, Any]] = (),
    passives: Sequence[dict[str, Any]] = (),
    **extra: Any,
) -> UnitTemplate:
    stats = {"hp": hp, "atk": atk, "def": defense, "spd": spd}
    if mp is not None:
        stats["mp"] = mp
    data = {
        "id": template_id,
        "name": extra.pop("name", template_id.replace("_", " ").title()),
        "class_id": class_id,
        "base_stats": stats,
        "skills": list(skills),
        "passives": list(passives),
        **extra,
    }
    return UnitTemplate.from_dict(data, side=side)


def make_unit(instance_id: str, *, side: str = HERO, **kwargs: Any) -> BattleUnit:
    """A unit whose template id matches its instance id."""
    return create_unit(make_template(instance_id, side=side, **kwargs), instance_id)


def make_enemy(instance_id: str, **kwargs: Any) -> BattleUnit:
    return make_unit(instance_id, side=ENEMY, **kwargs)


def make_session(
    heroes: Sequence[BattleUnit],
    enemies: Sequence[BattleUnit],
    *,
    rng: Any = None,
    catalog: TemplateCatalog | None = None,
    with_scheduler: bool = False,
) -> BattleSession:
    return BattleSession(
        heroes,
        enemies,
        rng=rng if rng is not None else ScriptedRng(),
        catalog=catalog,
        scheduler=TurnScheduler() if with_scheduler else None,
    )


def effect(kind: str, duration: int | None = 2, value: Any = 0, source: BattleUnit | None = None, **payload: Any) -> ActiveEffect:
    made = create_effect(
        kind,
        duration=duration,
        value=value,
        source_id=source.id if source is not None else None,
        **payload,
    )
    assert made is not None
    return made


def kinds_on(unit: BattleUnit) -> list[str]:
    return [e.kind for e in unit.status.get_effects()]
