# battlecore/debug/run_battle.py
#
# Headless auto-battle for eyeballing the engine:
#
#   python -m battlecore.debug.run_battle --seed 7 --verbose
#
from __future__ import annotations

import argparse
import logging
import random
from typing import Optional, Sequence

from battlecore.battle.battle_controller import BattleController, BattleState
from battlecore.debug import debug_logger
from battlecore.debug.sample_templates import SAMPLE_ENEMIES, SAMPLE_HEROES, sample_catalog


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a seeded auto-battle between sample templates.")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed (default: random)")
    parser.add_argument(
        "--party",
        nargs="+",
        default=[h["id"] for h in SAMPLE_HEROES],
        help="hero template ids",
    )
    parser.add_argument(
        "--enemies",
        nargs="+",
        default=[e["id"] for e in SAMPLE_ENEMIES],
        help="enemy template ids",
    )
    parser.add_argument("--max-turns", type=int, default=500, help="stop after this many hero turns")
    parser.add_argument("--verbose", action="store_true", help="print engine debug categories too")
    parser.add_argument(
        "--categories",
        nargs="*",
        default=None,
        help="debug categories to enable with --verbose (default: all)",
    )
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> BattleController:
    rng = random.Random(args.seed)
    controller = BattleController(sample_catalog(), rng=rng)
    controller.init_battle(args.party, args.enemies)

    turns = 0
    while controller.state == BattleState.PLAYER_TURN and turns < args.max_turns:
        controller.auto_play_turn()
        turns += 1
    return controller


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )
    if args.verbose and args.categories is not None:
        debug_logger.set_categories(args.categories)

    controller = run(args)
    for entry in controller.log:
        print(f"[R{entry.round:>2}] {entry.message}")
    print(f"\nResult: {controller.state.value} after {controller.round_number} round(s)")
    return 0 if controller.state == BattleState.VICTORY else 1


if __name__ == "__main__":
    raise SystemExit(main())
