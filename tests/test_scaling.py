from battlecore.battle.scaling import is_scaling_table, resolve_scaling, scaling_context
from tests.helpers import make_unit

TIERS = {"base": 20, "at25": 25, "at50": 30}


def test_highest_threshold_at_or_below_context_wins() -> None:
    assert resolve_scaling(TIERS, 40) == 25
    assert resolve_scaling(TIERS, 60) == 30


def test_threshold_is_inclusive() -> None:
    assert resolve_scaling(TIERS, 25) == 25
    assert resolve_scaling(TIERS, 50) == 30


def test_below_every_threshold_falls_back_to_base() -> None:
    assert resolve_scaling(TIERS, 0) == 20
    assert resolve_scaling(TIERS, 24) == 20


def test_table_without_base_uses_default() -> None:
    assert resolve_scaling({"at50": 9}, 10, default=3) == 3
    assert resolve_scaling({"at50": 9}, 75, default=3) == 9


def test_scalars_and_none_pass_through() -> None:
    assert resolve_scaling(15, 99) == 15
    assert resolve_scaling(None, 99, default=2) == 2


def test_threshold_order_does_not_depend_on_key_order() -> None:
    shuffled = {"at50": 30, "base": 20, "at25": 25}
    assert resolve_scaling(shuffled, 30) == 25


def test_is_scaling_table() -> None:
    assert is_scaling_table(TIERS)
    assert is_scaling_table({"at10": 1})
    assert not is_scaling_table({"guardian_id": "hero_0"})
    assert not is_scaling_table(12)


def test_scaling_context_reads_the_resource_pool() -> None:
    knight = make_unit("knight", class_id="knight")
    knight.resource.set(45)
    assert scaling_context(knight) == 45
    assert resolve_scaling(TIERS, scaling_context(knight)) == 25
