import pytest

from battlecore.battle.status.catalog import EffectType, create_effect
from battlecore.battle.status.status_events import DamageTickEvent, ExpireEvent
from tests.helpers import effect, kinds_on, make_enemy, make_session, make_unit


def test_same_kind_refreshes_into_one_instance() -> None:
    unit = make_unit("hero")
    unit.status.add(effect(EffectType.ATK_UP, 2, 20))
    unit.status.add(effect(EffectType.ATK_UP, 3, 30))

    instances = unit.status.get_all(EffectType.ATK_UP)
    assert len(instances) == 1
    assert instances[0].value == 30
    assert instances[0].duration == 3


def test_refresh_keeps_the_longer_duration() -> None:
    unit = make_unit("hero")
    unit.status.add(effect(EffectType.DEF_UP, 4, 10))
    unit.status.add(effect(EffectType.DEF_UP, 1, 15))

    only = unit.status.get(EffectType.DEF_UP)
    assert only.value == 15
    assert only.duration == 4


def test_untimed_side_wins_a_refresh() -> None:
    unit = make_unit("hero")
    unit.status.add(effect(EffectType.DAMAGE_REDUCTION, None, 10))
    unit.status.add(effect(EffectType.DAMAGE_REDUCTION, 2, 20))
    assert unit.status.get(EffectType.DAMAGE_REDUCTION).duration is None


def test_counter_stacks_cap_at_max_stacks() -> None:
    unit = make_unit("hero")
    for _ in range(8):
        unit.status.add(effect(EffectType.SWIFT_MOMENTUM, 2, 5))

    momentum = unit.status.get_all(EffectType.SWIFT_MOMENTUM)
    assert len(momentum) == 1
    assert momentum[0].stacks == 6
    assert unit.status.stacks(EffectType.SWIFT_MOMENTUM) == 6
    assert unit.status.get_stat_modifiers()["spd_mult"] == pytest.approx(1.3)


def test_template_stacking_override_merges_into_a_counter() -> None:
    unit = make_unit("hero")
    for _ in range(4):
        unit.status.add(create_effect(EffectType.POISON, duration=2, value=10, stacking=True, max_stacks=3))

    assert len(unit.status.get_all(EffectType.POISON)) == 1
    assert unit.status.stacks(EffectType.POISON) == 3


def test_dot_instances_stack_independently() -> None:
    unit = make_unit("hero")
    for _ in range(3):
        unit.status.add(effect(EffectType.POISON, 2, 10))
    assert len(unit.status.get_all(EffectType.POISON)) == 3
    assert unit.status.stacks(EffectType.POISON) == 3


def test_dot_reads_the_source_attack_at_tick_time() -> None:
    caster = make_unit("caster", atk=100)
    victim = make_enemy("victim", hp=1000)
    session = make_session([caster], [victim])

    session.apply_status(victim, effect(EffectType.POISON, 2, 20, source=caster))
    caster.status.add(effect(EffectType.ATK_UP, 3, 50))
    session.tick_statuses(victim)

    # 20% of the caster's buffed 150 ATK
    assert victim.hp == 970
    assert victim.status.get(EffectType.POISON).duration == 1


def test_frozen_dot_uses_the_snapshot() -> None:
    caster = make_unit("caster", atk=100)
    victim = make_enemy("victim", hp=1000)
    session = make_session([caster], [victim])

    session.apply_status(victim, effect(EffectType.BURN, 2, 20, source=caster, frozen=True))
    caster.status.add(effect(EffectType.ATK_UP, 3, 50))
    session.tick_statuses(victim)

    assert victim.hp == 980


def test_regen_ticks_as_healing() -> None:
    healer = make_unit("healer", atk=50)
    patient = make_unit("patient", hp=200)
    patient.set_hp(100)
    session = make_session([healer, patient], [make_enemy("foe")])

    session.apply_status(patient, effect(EffectType.REGEN, 2, 40, source=healer))
    events = session.tick_statuses(patient)

    assert patient.hp == 120
    assert any(isinstance(e, DamageTickEvent) and e.amount == 20 for e in events)


def test_effect_expires_after_its_last_tick() -> None:
    unit = make_unit("hero")
    unit.status.add(effect(EffectType.ATK_UP, 1, 10))

    events = unit.status.tick()

    assert not unit.status.has(EffectType.ATK_UP)
    assert [e.kind for e in events if isinstance(e, ExpireEvent)] == [EffectType.ATK_UP]


def test_expiring_dot_still_deals_its_final_tick() -> None:
    caster = make_unit("caster", atk=100)
    victim = make_enemy("victim", hp=500)
    session = make_session([caster], [victim])
    session.apply_status(victim, effect(EffectType.POISON, 1, 10, source=caster))

    session.tick_statuses(victim)

    assert victim.hp == 490
    assert not victim.status.has(EffectType.POISON)


def test_untimed_effects_never_count_down() -> None:
    unit = make_unit("hero")
    unit.status.add(effect(EffectType.SHIELD, None, 0, shield_hp=50))
    for _ in range(5):
        unit.status.tick()
    assert unit.status.get(EffectType.SHIELD).duration is None


def test_cleanse_removes_oldest_debuffs_first() -> None:
    unit = make_unit("hero")
    unit.status.add(effect(EffectType.POISON, 2, 10))
    unit.status.add(effect(EffectType.ATK_UP, 2, 10))
    unit.status.add(effect(EffectType.BURN, 2, 10))
    unit.status.add(effect(EffectType.ATK_DOWN, 2, 10))

    removed = unit.status.cleanse(1)
    assert [e.kind for e in removed] == [EffectType.POISON]

    unit.status.cleanse()
    assert kinds_on(unit) == [EffectType.ATK_UP]


def test_cleanse_by_family() -> None:
    unit = make_unit("hero")
    unit.status.add(effect(EffectType.POISON, 2, 10))
    unit.status.add(effect(EffectType.STUN, 1))
    unit.status.add(effect(EffectType.BURN, 2, 10))

    unit.status.cleanse(family="dot")

    assert kinds_on(unit) == [EffectType.STUN]


def test_dispel_ignores_polarity() -> None:
    unit = make_unit("hero")
    unit.status.add(effect(EffectType.ATK_UP, 2, 10))
    unit.status.add(effect(EffectType.BLIND, 2, 30))

    removed = unit.status.dispel([EffectType.ATK_UP, EffectType.BLIND])

    assert len(removed) == 2
    assert kinds_on(unit) == []


def test_extend_only_touches_matching_timed_effects() -> None:
    unit = make_unit("hero")
    unit.status.add(effect(EffectType.ATK_UP, 2, 10))
    unit.status.add(effect(EffectType.POISON, 2, 10))
    unit.status.add(effect(EffectType.MARKED, None, 20))

    assert unit.status.extend(2, polarity="debuff") == 1
    assert unit.status.get(EffectType.POISON).duration == 4
    assert unit.status.get(EffectType.ATK_UP).duration == 2
    assert unit.status.get(EffectType.MARKED).duration is None


def test_debuff_immunity_blocks_debuffs_only() -> None:
    unit = make_unit("hero")
    unit.status.add(effect(EffectType.DEBUFF_IMMUNE, 2))

    assert unit.status.add(effect(EffectType.POISON, 2, 10)) is False
    assert unit.status.add(effect(EffectType.ATK_UP, 2, 10)) is True
    assert not unit.status.has(EffectType.POISON)


def test_dead_units_take_no_statuses() -> None:
    unit = make_unit("hero")
    unit.set_hp(0)
    assert unit.status.add(effect(EffectType.ATK_UP, 2, 10)) is False


def test_unknown_effect_kind_is_skipped() -> None:
    assert create_effect("definitely_not_an_effect") is None


def test_stat_modifiers_sum_ups_and_downs() -> None:
    unit = make_unit("hero", atk=100, defense=40)
    unit.status.add(effect(EffectType.ATK_UP, 2, 30))
    unit.status.add(effect(EffectType.ATK_DOWN, 2, 10))
    unit.status.add(effect(EffectType.DEF_DOWN, 2, 150))

    mods = unit.status.get_stat_modifiers()
    assert mods["atk_mult"] == pytest.approx(1.2)
    assert mods["def_mult"] == 0.0


@pytest.mark.parametrize("kind", [EffectType.EVASION, EffectType.POISON])
def test_instance_stacks_past_max_stacks_are_dropped(kind) -> None:
    unit = make_unit("hero")

    accepted = [unit.status.add(effect(kind, 2, 10, max_stacks=6)) for _ in range(10)]

    assert accepted == [True] * 6 + [False] * 4
    assert len(unit.status.get_all(kind)) == 6
    assert all(e.stacks == 1 for e in unit.status.get_all(kind))
