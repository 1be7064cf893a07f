import pytest

from battlecore.battle.damage import DamageBonus, ExecuteRule, effective_stats, resolve_damage
from battlecore.battle.status.catalog import EffectType
from tests.helpers import ScriptedRng, effect, make_enemy, make_session, make_unit


def test_linear_def_subtraction() -> None:
    attacker = make_unit("attacker", atk=100)
    defender = make_enemy("defender", hp=200, defense=20)
    session = make_session([attacker], [defender])

    hit = session.attack(attacker, defender, damage_percent=110)

    assert hit.dealt == 90
    assert defender.hp == 110
    assert not hit.killed


def test_damage_never_drops_below_the_floor() -> None:
    attacker = make_unit("attacker", atk=10)
    defender = make_enemy("defender", defense=500)
    result = resolve_damage(attacker, defender, rng=ScriptedRng())
    assert result.amount == 1


def test_blinded_attacker_misses() -> None:
    attacker = make_unit("attacker")
    defender = make_enemy("defender")
    attacker.status.add(effect(EffectType.BLIND, 2, 50))
    session = make_session([attacker], [defender], rng=ScriptedRng([0.1]))

    hit = session.attack(attacker, defender)

    assert hit.result.was_blinded
    assert hit.dealt == 0
    assert defender.hp == defender.max_hp
    assert session.log[-1].kind == "miss"


def test_blind_roll_can_fail() -> None:
    attacker = make_unit("attacker")
    defender = make_enemy("defender", hp=500)
    attacker.status.add(effect(EffectType.BLIND, 2, 50))
    session = make_session([attacker], [defender], rng=ScriptedRng([0.6]))

    hit = session.attack(attacker, defender)

    assert not hit.result.was_blinded
    assert hit.dealt == 100


def test_evasion_instances_sum_into_one_roll() -> None:
    attacker = make_unit("attacker")
    defender = make_enemy("defender", hp=500)
    defender.status.add(effect(EffectType.EVASION, 2, 30))
    defender.status.add(effect(EffectType.EVASION, 2, 30))

    dodged = make_session([attacker], [defender], rng=ScriptedRng([0.55])).attack(attacker, defender)
    assert dodged.result.was_evaded
    assert defender.hp == 500

    landed = make_session([attacker], [defender], rng=ScriptedRng([0.65])).attack(attacker, defender)
    assert landed.dealt == 100


def test_crit_multiplies_after_mitigation() -> None:
    attacker = make_unit("attacker", atk=100)
    defender = make_enemy("defender", defense=20)
    result = resolve_damage(attacker, defender, rng=ScriptedRng([0.1]), crit_chance=0.5)
    assert result.was_crit
    assert result.amount == 120


def test_no_crit_without_a_crit_chance() -> None:
    attacker = make_unit("attacker", atk=100)
    defender = make_enemy("defender")
    rng = ScriptedRng([0.0])
    result = resolve_damage(attacker, defender, rng=rng)
    assert not result.was_crit
    assert rng.calls == 0


def test_marked_amplifies_damage() -> None:
    attacker = make_unit("attacker", atk=100)
    defender = make_enemy("defender", defense=20)
    defender.status.add(effect(EffectType.MARKED, 2, 50))
    result = resolve_damage(attacker, defender, rng=ScriptedRng())
    assert result.amount == 120


def test_conditional_bonuses_add_to_damage_percent() -> None:
    attacker = make_unit("attacker", atk=100)
    defender = make_enemy("defender", hp=100)
    defender.set_hp(40)
    defender.status.add(effect(EffectType.POISON, 2, 10))

    bonuses = (
        DamageBonus("target_debuffed", 20),
        DamageBonus("target_hp_below", 30, 50),
        DamageBonus("caster_hp_below", 100, 50),
    )
    result = resolve_damage(attacker, defender, rng=ScriptedRng(), bonuses=bonuses)

    assert result.breakdown["bonus_percent"] == 50
    assert result.amount == 150


def test_per_stack_bonus() -> None:
    attacker = make_unit("attacker", atk=100)
    defender = make_enemy("defender")
    for _ in range(3):
        defender.status.add(effect(EffectType.POISON, 2, 10))
    bonus = DamageBonus("per_target_stack", 10, EffectType.POISON)
    result = resolve_damage(attacker, defender, rng=ScriptedRng(), bonuses=(bonus,))
    assert result.amount == 130


def test_ignore_def_and_true_damage() -> None:
    attacker = make_unit("attacker", atk=100)
    defender = make_enemy("defender", defense=20)

    assert resolve_damage(attacker, defender, rng=ScriptedRng(), ignore_def=50).amount == 90
    assert resolve_damage(attacker, defender, rng=ScriptedRng(), true_damage=True).amount == 100


def test_def_scaling_skills_read_the_attacker_def() -> None:
    attacker = make_unit("attacker", atk=10, defense=50)
    defender = make_enemy("defender", defense=20)
    result = resolve_damage(attacker, defender, rng=ScriptedRng(), use_stat="def")
    assert result.amount == 30


def test_resource_scaled_base_damage() -> None:
    attacker = make_unit("attacker", atk=100)
    defender = make_enemy("defender")
    result = resolve_damage(
        attacker, defender, rng=ScriptedRng(), base_damage=20, per_resource=1.5, consumed=60
    )
    assert result.amount == 110


def test_execute_makes_the_hit_lethal() -> None:
    attacker = make_unit("attacker", atk=100)
    defender = make_enemy("defender", hp=1000)
    defender.set_hp(150)

    result = resolve_damage(attacker, defender, rng=ScriptedRng(), execute=ExecuteRule(20))

    assert result.was_execute
    assert result.amount == 150


def test_execute_threshold_grows_on_marked_targets() -> None:
    attacker = make_unit("attacker", atk=100)
    defender = make_enemy("defender", hp=1000)
    defender.set_hp(250)
    rule = ExecuteRule(20, marked_bonus=10)

    assert not rule.triggers(defender)
    defender.status.add(effect(EffectType.MARKED, 2, 0))
    assert rule.triggers(defender)
    assert resolve_damage(attacker, defender, rng=ScriptedRng(), execute=rule).amount == 250


def test_vicious_boosts_hits_on_debuffed_targets() -> None:
    attacker = make_unit("attacker", atk=100)
    defender = make_enemy("defender", hp=500)
    attacker.status.add(effect(EffectType.VICIOUS, 2, 50))
    session = make_session([attacker], [defender])

    assert session.attack(attacker, defender).dealt == 100
    defender.status.add(effect(EffectType.ATK_DOWN, 2, 10))
    assert session.attack(attacker, defender).dealt == 150


def test_essence_tier_bonus_applies_at_hit_time() -> None:
    alchemist = make_unit("alchemist", class_id="alchemist", atk=100, mp=100)
    defender = make_enemy("defender", hp=1000)
    session = make_session([alchemist], [defender])

    alchemist.resource.set(30)
    assert session.attack(alchemist, defender).dealt == 115
    alchemist.resource.set(60)
    assert session.attack(alchemist, defender).dealt == 130


def test_leader_bonus_counts_only_under_its_condition() -> None:
    unit = make_unit("knight", defense=100, hp=100)
    unit.stat_bonuses.append({"stat": "def", "value": 15, "condition": {"hp_below": 50}})

    assert effective_stats(unit)["def"] == 100
    unit.set_hp(40)
    assert effective_stats(unit)["def"] == pytest.approx(115)
