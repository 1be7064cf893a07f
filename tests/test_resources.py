import pytest

from battlecore import config
from battlecore.battle import resources
from battlecore.battle.resources import (
    COST_ALL,
    COST_SPEND,
    COST_THRESHOLD,
    ResourceKind,
    SkillCost,
    advance_verse,
    can_afford,
    create_pool,
    essence_damage_bonus,
    essence_self_damage,
    essence_tier,
    gain_from_action,
    parse_cost,
    reset_verses,
    spend,
)
from tests.helpers import make_unit


@pytest.mark.parametrize(
    ("class_id", "kind", "current", "maximum"),
    [
        ("berserker", ResourceKind.RAGE, 0, 100),
        ("knight", ResourceKind.VALOR, 0, 100),
        ("ranger", ResourceKind.FOCUS, 1, 1),
        ("bard", ResourceKind.VERSE, 0, 3),
        ("alchemist", ResourceKind.ESSENCE, 30, 80),
        ("cleric", ResourceKind.MANA, 24, 80),
        (None, ResourceKind.MANA, 24, 80),
    ],
)
def test_starting_pools(class_id, kind, current, maximum) -> None:
    pool = create_pool(class_id, {"mp": 80})
    assert (pool.kind, pool.current, pool.max) == (kind, current, maximum)


def test_pool_clamps() -> None:
    pool = create_pool("berserker", {})
    assert pool.set(150) == 100
    assert pool.set(-5) == 0


def test_rage_all_cost_consumes_the_whole_pool() -> None:
    cost = parse_cost({"rage_cost": "all", "rage_required": 50}, ResourceKind.RAGE)
    assert cost == SkillCost(COST_ALL, 50)

    brakka = make_unit("brakka", class_id="berserker")
    brakka.resource.set(40)
    assert not can_afford(brakka, cost)

    brakka.resource.set(70)
    assert can_afford(brakka, cost)
    assert spend(brakka, cost) == 70
    assert brakka.resource.current == 0


def test_valor_threshold_is_not_spent() -> None:
    cost = parse_cost({"valor_required": 25}, ResourceKind.VALOR)
    assert cost.mode == COST_THRESHOLD

    knight = make_unit("knight", class_id="knight")
    knight.resource.set(30)
    assert can_afford(knight, cost)
    assert spend(knight, cost) == 0
    assert knight.resource.current == 30


def test_mana_cost_is_paid() -> None:
    cost = parse_cost({"mp_cost": 15}, ResourceKind.MANA)
    assert cost == SkillCost(COST_SPEND, 15)

    cleric = make_unit("cleric", class_id="cleric", mp=100)
    assert cleric.resource.current == 30
    spend(cleric, cost)
    assert cleric.resource.current == 15


def test_enemies_pay_nothing() -> None:
    assert parse_cost({"mp_cost": 40, "rage_cost": 30}, None).is_free


def test_focus_is_spent_by_skills_and_restored_by_basic_attacks() -> None:
    ranger = make_unit("ranger", class_id="ranger")
    cost = parse_cost({}, ResourceKind.FOCUS)

    spend(ranger, cost)
    assert ranger.resource.current == 0
    assert not can_afford(ranger, cost)
    assert parse_cost({"no_focus_cost": True}, ResourceKind.FOCUS).is_free

    gain_from_action(ranger, resources.BASIC_ATTACK)
    assert ranger.resource.current == 1


def test_rage_builds_from_dealing_and_taking_damage() -> None:
    brakka = make_unit("brakka", class_id="berserker")
    gain_from_action(brakka, resources.DEALT_DAMAGE)
    gain_from_action(brakka, resources.TOOK_DAMAGE)
    assert brakka.resource.current == config.RAGE_ON_DAMAGE_DEALT + config.RAGE_ON_DAMAGE_TAKEN


def test_dead_units_gain_nothing() -> None:
    brakka = make_unit("brakka", class_id="berserker")
    brakka.set_hp(0)
    assert gain_from_action(brakka, resources.DEALT_DAMAGE) == 0


def test_mana_regenerates_at_round_start() -> None:
    mage = make_unit("mage", mp=100)
    gain_from_action(mage, resources.ROUND_START)
    assert mage.resource.current == 40


def test_verses_need_varied_skills() -> None:
    bard = make_unit("bard", class_id="bard")

    assert not advance_verse(bard, "Ballad")
    assert not advance_verse(bard, "Ballad")
    assert bard.resource.current == 1
    assert not advance_verse(bard, "Dirge")
    assert advance_verse(bard, "Ballad")
    assert bard.resource.current == 3

    reset_verses(bard)
    assert bard.resource.current == 0
    assert bard.last_skill_name is None


def test_non_bards_never_earn_verses() -> None:
    mage = make_unit("mage")
    assert not advance_verse(mage, "Bolt")


def test_essence_tiers() -> None:
    alchemist = make_unit("alchemist", class_id="alchemist", hp=200, mp=100)

    alchemist.resource.set(20)
    assert essence_tier(alchemist) == resources.STABLE
    assert essence_damage_bonus(alchemist) == 0
    assert essence_self_damage(alchemist) == 0

    alchemist.resource.set(40)
    assert essence_tier(alchemist) == resources.REACTIVE
    assert essence_damage_bonus(alchemist) == config.ESSENCE_REACTIVE_BONUS

    alchemist.resource.set(41)
    assert essence_tier(alchemist) == resources.VOLATILE
    assert essence_damage_bonus(alchemist) == config.ESSENCE_VOLATILE_BONUS
    assert essence_self_damage(alchemist) == 10


def test_essence_regenerates_each_turn() -> None:
    alchemist = make_unit("alchemist", class_id="alchemist", mp=100)
    assert alchemist.resource.current == 40
    gain_from_action(alchemist, resources.TURN_START)
    assert alchemist.resource.current == 50
