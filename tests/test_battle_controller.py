import random

import pytest

from battlecore import config
from battlecore.battle.battle_command import RefusalReason, parse_action_token
from battlecore.battle.battle_controller import BattleController, BattleState
from battlecore.battle.status.catalog import EffectType
from battlecore.battle.templates import TemplateCatalog
from battlecore.debug.sample_templates import SAMPLE_ENEMIES, SAMPLE_HEROES, sample_catalog
from tests.helpers import ScriptedRng, effect

HEROES = [
    {
        "id": "tester",
        "name": "Tester",
        "base_stats": {"hp": 100, "atk": 100, "def": 0, "spd": 20, "mp": 100},
        "skills": [
            {"name": "Big Hit", "target_type": "enemy", "mp_cost": 50, "damage": 200},
            {"name": "Cooldown Strike", "target_type": "enemy", "cooldown": 2, "damage": 50},
            {"name": "Rally", "target_type": "all_allies", "effects": [{"type": "atk_up", "target": "all_allies", "value": 10}]},
            {"name": "Patch Up", "target_type": "ally", "heal": {"percent": 10}},
        ],
    },
    {
        "id": "squire",
        "name": "Squire",
        "base_stats": {"hp": 100, "atk": 10, "def": 0, "spd": 15},
    },
]

ENEMIES = [
    {"id": "dummy", "name": "Training Dummy", "base_stats": {"hp": 500, "atk": 1, "def": 0, "spd": 1}},
    {"id": "weakling", "name": "Weakling", "base_stats": {"hp": 50, "atk": 1, "def": 0, "spd": 1}},
]


@pytest.fixture
def catalog() -> TemplateCatalog:
    return TemplateCatalog.from_dicts(HEROES, ENEMIES)


def _controller(catalog, party=("tester",), enemies=("dummy",)):
    controller = BattleController(catalog, rng=ScriptedRng())
    controller.init_battle(list(party), list(enemies))
    return controller


def _snapshot(controller):
    return (
        controller.state,
        getattr(controller.current_unit, "id", None),
        [(u.hp, u.resource.current if u.resource else None, tuple(u.status.get_active_ids())) for u in controller.heroes],
        [(u.hp, tuple(u.status.get_active_ids())) for u in controller.enemies],
        dict(controller.heroes[0].cooldowns),
        len(controller.log),
    )


def test_init_runs_to_the_first_hero_turn(catalog) -> None:
    controller = _controller(catalog)

    assert controller.state == BattleState.PLAYER_TURN
    assert controller.current_unit.id == "hero_0"
    assert controller.round_number == 1
    assert [e.id for e in controller.enemies] == ["enemy_0"]
    assert controller.log[0].kind == "battle_start"


def test_refusals_leave_the_battle_untouched(catalog) -> None:
    controller = _controller(catalog)
    before = _snapshot(controller)

    refusals = [
        (controller.select_action(0, "enemy_0"), RefusalReason.INSUFFICIENT_RESOURCE),
        (controller.select_action(9), RefusalReason.INVALID_ACTION),
        (controller.select_action("dance"), RefusalReason.INVALID_ACTION),
        (controller.select_action("attack", "hero_0"), RefusalReason.NO_VALID_TARGET),
        (controller.select_action(3), RefusalReason.NO_VALID_TARGET),
    ]

    for outcome, reason in refusals:
        assert not outcome.accepted
        assert outcome.reason == reason
    assert _snapshot(controller) == before


def test_cooldowns_gate_reuse(catalog) -> None:
    controller = _controller(catalog)

    assert controller.select_action(1, "enemy_0").accepted
    assert controller.state == BattleState.PLAYER_TURN
    assert controller.round_number == 2

    outcome = controller.select_action(1, "enemy_0")
    assert outcome.reason == RefusalReason.ON_COOLDOWN

    controller.select_action("attack")
    assert controller.select_action(1, "enemy_0").accepted


def test_cost_is_paid_once(catalog) -> None:
    controller = _controller(catalog)
    hero = controller.current_unit
    hero.resource.set(60)

    assert controller.select_action(0, "enemy_0").accepted
    # 60 - 50, then +10 regen at the next round start
    assert hero.resource.current == 20
    assert controller.enemies[0].hp == 300


def test_missing_target_defaults_to_the_first_legal_one(catalog) -> None:
    controller = _controller(catalog, enemies=("dummy", "dummy"))
    outcome = controller.select_action("attack")

    assert outcome.accepted
    assert controller.enemies[0].hp == 400
    assert controller.enemies[1].hp == 500


def test_enemies_act_between_hero_turns(catalog) -> None:
    controller = _controller(catalog)
    hero = controller.current_unit

    controller.select_action("attack")

    assert hero.hp == 99
    assert any(e.kind == "action" and e.actor == "enemy_0" for e in controller.log)


def test_victory(catalog) -> None:
    controller = _controller(catalog, enemies=("weakling",))

    outcome = controller.select_action("attack", "enemy_0")

    assert outcome.accepted
    assert controller.state == BattleState.VICTORY
    assert controller.is_over
    assert controller.log[-1].kind == "victory"
    assert controller.select_action("attack").reason == RefusalReason.NOT_PLAYER_TURN


def test_defeat_through_external_damage(catalog) -> None:
    controller = _controller(catalog)
    hero = controller.heroes[0]

    lost = controller.apply_damage(hero, 999)

    assert lost == 100
    assert controller.state == BattleState.DEFEAT
    assert controller.current_unit is None


def test_external_damage_killing_the_active_hero_moves_on(catalog) -> None:
    controller = _controller(catalog, party=("tester", "squire"))
    assert controller.current_unit.id == "hero_0"

    controller.apply_damage(controller.heroes[0], 999)

    assert controller.state == BattleState.PLAYER_TURN
    assert controller.current_unit.id == "hero_1"


def test_stunned_hero_loses_a_turn(catalog) -> None:
    controller = _controller(catalog)
    hero = controller.current_unit
    hero.status.add(effect(EffectType.STUN, 2))

    controller.select_action("attack")

    assert controller.round_number == 3
    assert controller.current_unit is hero
    assert any(e.kind == "skip" and e.actor == "hero_0" for e in controller.log)
    assert not hero.status.has(EffectType.STUN)


def test_seated_hero_can_only_attack(catalog) -> None:
    controller = _controller(catalog)
    controller.current_unit.status.add(effect(EffectType.SEATED, 2))

    assert controller.select_action(2).reason == RefusalReason.SKILLS_SEALED
    assert controller.select_action("basic").accepted


def test_party_state_round_trips(catalog) -> None:
    controller = _controller(catalog, party=("tester", "squire"))
    controller.select_action("attack")
    controller.heroes[1].set_hp(42)

    saved = controller.get_party_state()
    assert saved[0]["template_id"] == "tester"
    assert saved[1]["hp"] == 42
    assert saved[0]["resource_kind"] == "mana"

    restored = BattleController(catalog, rng=ScriptedRng())
    restored.init_battle(saved, ["dummy"])
    assert [h.hp for h in restored.heroes] == [s["hp"] for s in saved]
    assert restored.heroes[0].resource.current == min(100, saved[0]["resource"] + 10)


def test_enemy_line_is_capped(catalog) -> None:
    controller = _controller(catalog, enemies=["dummy"] * (config.MAX_ENEMIES + 2))
    assert len(controller.enemies) == config.MAX_ENEMIES


def test_unknown_templates_are_skipped(catalog) -> None:
    controller = _controller(catalog, party=("tester", "nobody"), enemies=("dummy", "ghost"))
    assert len(controller.heroes) == 1
    assert len(controller.enemies) == 1


def test_turn_order_starts_with_the_acting_unit(catalog) -> None:
    controller = _controller(catalog, party=("tester", "squire"))
    assert [u.id for u in controller.turn_order] == ["hero_0", "hero_1", "enemy_0"]


def test_actions_outside_a_battle_are_refused(catalog) -> None:
    controller = BattleController(catalog, rng=ScriptedRng())
    assert controller.select_action("attack").reason == RefusalReason.NOT_PLAYER_TURN
    assert controller.auto_play_turn().reason == RefusalReason.NOT_PLAYER_TURN


def test_action_tokens() -> None:
    assert parse_action_token("hero_0", 2).skill_index == 2
    assert parse_action_token("hero_0", "1").skill_index == 1
    assert parse_action_token("hero_0", "Attack").is_basic
    assert parse_action_token("hero_0", True) is None
    assert parse_action_token("hero_0", "fireball") is None


def test_bard_finale_fires_on_a_full_verse_pool() -> None:
    catalog = sample_catalog()
    controller = BattleController(catalog, rng=ScriptedRng())
    controller.init_battle(["wren"], ["cave_troll"])
    bard = controller.heroes[0]
    bard.resource.set(2)
    bard.last_skill_name = "Jarring Whistle"
    bard.set_hp(50)

    controller.select_action(0)

    assert any(e.kind == "finale" for e in controller.log)
    assert bard.resource.current == 0


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_seeded_auto_battles_keep_every_invariant(seed) -> None:
    controller = BattleController(sample_catalog(), rng=random.Random(seed))
    controller.init_battle([h["id"] for h in SAMPLE_HEROES], [e["id"] for e in SAMPLE_ENEMIES])

    for _ in range(300):
        if controller.state != BattleState.PLAYER_TURN:
            break
        assert controller.auto_play_turn().accepted
        for unit in controller.heroes + controller.enemies:
            assert 0 <= unit.hp <= unit.max_hp
            if unit.resource is not None:
                assert 0 <= unit.resource.current <= unit.resource.max

    assert controller.state in (BattleState.PLAYER_TURN, BattleState.VICTORY, BattleState.DEFEAT)


def test_same_seed_same_battle() -> None:
    def play(seed):
        controller = BattleController(sample_catalog(), rng=random.Random(seed))
        controller.init_battle(["sir_gallan", "brakka"], ["goblin_cutthroat", "shaman"])
        for _ in range(50):
            if controller.state != BattleState.PLAYER_TURN:
                break
            controller.auto_play_turn()
        return [e.message for e in controller.log]

    assert play(3) == play(3)


def test_summoner_killed_mid_round_leaves_its_summon_fighting() -> None:
    enemies = ENEMIES + [
        {
            "id": "conjurer",
            "name": "Conjurer",
            "base_stats": {"hp": 10, "atk": 1, "def": 0, "spd": 30},
            "skills": [{"name": "Call Imp", "target_type": "self", "cooldown": 5, "summon": {"template_id": "imp"}}],
        },
        {"id": "imp", "name": "Imp", "base_stats": {"hp": 50, "atk": 1, "def": 0, "spd": 1}},
    ]
    controller = _controller(TemplateCatalog.from_dicts(HEROES, enemies), enemies=("conjurer",))
    assert any(e.kind == "summon" for e in controller.log)

    outcome = controller.select_action("attack", "enemy_0")

    assert outcome.accepted
    assert controller.state == BattleState.PLAYER_TURN
    assert controller.round_number == 2
    imp = controller.enemies[-1]
    assert imp.summoned and imp.alive
    assert not controller.enemies[0].alive
