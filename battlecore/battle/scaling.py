# battlecore/battle/scaling.py
#
# Scaling tables: a value that is either a plain number or a tier dict
#
#     {"base": 20, "at25": 25, "at50": 30}
#
# Resolving picks the highest "atNN" threshold <= the context value
# (usually the unit's current valor / rage / resource) and falls back to
# "base". Damage %, durations, magnitudes and ignore-DEF all resolve here.

from __future__ import annotations

from typing import Any, Dict, List, Tuple, Union

ScalingValue = Union[int, float, Dict[str, Any], None]

_THRESHOLD_PREFIX = "at"


def _thresholds(table: Dict[str, Any]) -> List[Tuple[int, Any]]:
    tiers: List[Tuple[int, Any]] = []
    for key, val in table.items():
        if not key.startswith(_THRESHOLD_PREFIX):
            continue
        digits = key[len(_THRESHOLD_PREFIX):]
        if not digits.isdigit():
            continue
        tiers.append((int(digits), val))
    tiers.sort(key=lambda t: t[0])
    return tiers


def is_scaling_table(value: Any) -> bool:
    return isinstance(value, dict) and (
        "base" in value or bool(_thresholds(value))
    )


def resolve_scaling(table: ScalingValue, context_value: float = 0, default: Any = 0) -> Any:
    """
    Resolve a scaling table against a context value.

    Scalars pass through unchanged; None resolves to `default`.
    """
    if table is None:
        return default
    if not isinstance(table, dict):
        return table

    resolved = table.get("base", default)
    for threshold, val in _thresholds(table):
        if threshold <= context_value:
            resolved = val
        else:
            break
    return resolved


def scaling_context(unit: Any) -> int:
    """
    The value a unit's scaling tables resolve against: its current
    resource amount (valor, rage, essence...), or 0 without a pool.
    """
    pool = getattr(unit, "resource", None)
    if pool is None:
        return 0
    return int(pool.current)
