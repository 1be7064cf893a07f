from battlecore.battle.battle_controller import BattleState
from battlecore.debug import run_battle


def test_defaults_use_the_sample_roster() -> None:
    args = run_battle.parse_args(["--seed", "5"])
    assert args.seed == 5
    assert "wren" in args.party
    assert "cave_troll" in args.enemies


def test_run_stops_at_the_turn_limit() -> None:
    args = run_battle.parse_args(["--seed", "5", "--max-turns", "1"])
    controller = run_battle.run(args)
    assert controller.round_number >= 1
    assert controller.state in (BattleState.PLAYER_TURN, BattleState.VICTORY, BattleState.DEFEAT)


def test_main_prints_the_battle_log(capsys) -> None:
    code = run_battle.main(["--seed", "11", "--party", "brakka", "--enemies", "goblin_cutthroat"])

    out = capsys.readouterr().out
    assert "Battle begins" in out
    assert "Result:" in out
    assert code in (0, 1)
