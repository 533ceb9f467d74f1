from __future__ import annotations

import argparse
import logging
import random
from collections import defaultdict

from bonaparte.ai import run_until_human
from bonaparte.games.napoleon.constants import DEFAULT_MAX_REDEALS, difficulty_from_env
from bonaparte.games.napoleon.game import create_game
from bonaparte.games.napoleon.scoring import calculate_game_result
from bonaparte.strategy import Difficulty, get_strategy_config_by_difficulty

log = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Napoleon headless AI self-play")
    parser.add_argument("--games", type=int, default=10)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument(
        "--difficulty",
        type=str,
        default=difficulty_from_env(),
        choices=[d.value for d in Difficulty],
    )
    parser.add_argument("--max-redeals", type=int, default=DEFAULT_MAX_REDEALS)
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = get_strategy_config_by_difficulty(args.difficulty)
    rng = random.Random(args.seed)

    napoleon_wins = 0
    redeals = 0
    points: dict[str, int] = defaultdict(int)
    for g in range(args.games):
        state = create_game(["North", "East", "South", "West"], ai_seats=range(4), game_id=f"selfplay-{g + 1}")
        state = run_until_human(state, config, rng, auto_continue=True, max_redeals=args.max_redeals)
        result = calculate_game_result(state)
        redeals += state.reshuffle_count
        napoleon_wins += result.napoleon_won
        for s in result.scores:
            points[s.player_id] += s.points
        decl = state.napoleon_declaration
        log.info(
            "Game %d: %s declared %d %s, side took %d -> %s",
            g + 1, decl.player_id, decl.target, decl.suit.value,
            result.napoleon_face_cards, "won" if result.napoleon_won else "lost",
        )

    print(f"Games: {args.games}  difficulty={args.difficulty}  redeals={redeals}")
    if args.games:
        print(f"Napoleon won {napoleon_wins}/{args.games} ({napoleon_wins / args.games:.0%})")
    for pid in sorted(points):
        print(f"  {pid}: {points[pid]:+d}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
