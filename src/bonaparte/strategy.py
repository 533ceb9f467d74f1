"""AI strategy selection: heuristic, MCTS, or hybrid.

Hybrid play uses the strategic evaluator early in the game, where
search trees are shallow and the sampled worlds are too uncertain to
be worth the cost, and switches to determinized MCTS once
``HYBRID_HEURISTIC_UNTIL`` of the tricks are done.

Usage:
    config = get_strategy_config_by_difficulty("hard")
    card = select_ai_card(state, player, config, rng)
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bonaparte.evaluator import best_card_by_value
from bonaparte.games.napoleon.constants import HYBRID_HEURISTIC_UNTIL, difficulty_from_env
from bonaparte.games.napoleon.errors import NoLegalMovesError
from bonaparte.games.napoleon.game import GameState, Phase, Player
from bonaparte.games.napoleon.rules import legal_plays
from bonaparte.games.napoleon.scoring import game_progress
from bonaparte.mcts import MCTS_PRESETS, MCTSConfig, mcts_choose

log = logging.getLogger(__name__)


class StrategyType(str, Enum):
    HEURISTIC = "heuristic"
    MCTS = "mcts"
    HYBRID = "hybrid"


class Difficulty(str, Enum):
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"
    STRONG = "strong"


@dataclass(frozen=True, slots=True)
class StrategyConfig:
    strategy: StrategyType
    difficulty: Difficulty
    mcts_config: Optional[MCTSConfig] = None


DEFAULT_STRATEGY_CONFIGS: dict[Difficulty, StrategyConfig] = {
    Difficulty.EASY: StrategyConfig(StrategyType.HEURISTIC, Difficulty.EASY),
    Difficulty.NORMAL: StrategyConfig(StrategyType.HYBRID, Difficulty.NORMAL, MCTS_PRESETS["fast"]),
    Difficulty.HARD: StrategyConfig(StrategyType.HYBRID, Difficulty.HARD, MCTS_PRESETS["normal"]),
    Difficulty.STRONG: StrategyConfig(StrategyType.HYBRID, Difficulty.STRONG, MCTS_PRESETS["strong"]),
}


def get_strategy_config_by_difficulty(level: Difficulty | str) -> StrategyConfig:
    """Map a difficulty name to its strategy; raises ValueError on unknown names."""
    return DEFAULT_STRATEGY_CONFIGS[Difficulty(level)]


def default_strategy_config() -> StrategyConfig:
    """Strategy for the difficulty named in the environment (see constants)."""
    level = difficulty_from_env()
    try:
        return get_strategy_config_by_difficulty(level)
    except ValueError:
        log.warning("Unknown AI difficulty %r, using normal", level)
        return DEFAULT_STRATEGY_CONFIGS[Difficulty.NORMAL]


def create_custom_mcts_config(
    simulation_count: int,
    time_limit_ms: int,
    determinization_count: int,
) -> MCTSConfig:
    """MCTS settings for custom tuning; exploration is fixed at sqrt(2)."""
    return MCTSConfig(
        simulation_count=simulation_count,
        exploration_constant=math.sqrt(2),
        time_limit_ms=time_limit_ms,
        determinization_count=determinization_count,
    )


# ---------------------------------------------------------------------------
#  Card selection
# ---------------------------------------------------------------------------


def _search(
    state: GameState,
    player: Player,
    legal: list,
    config: StrategyConfig,
    rng: random.Random,
):
    mcts_config = config.mcts_config or MCTS_PRESETS["normal"]
    try:
        return mcts_choose(state, player.id, mcts_config, rng)
    except Exception:  # noqa: BLE001
        # Search trouble must never reach the player; fall back to the heuristic.
        log.exception("MCTS failed for %s, falling back to heuristic", player.id)
        return best_card_by_value(legal, state, player)


def select_ai_card(
    state: GameState,
    player: Player,
    config: StrategyConfig,
    rng: Optional[random.Random] = None,
):
    """Pick the card *player* should play, or ``None`` if they have no cards.

    A player who still holds cards always has a legal play in a
    consistent state; an empty legal set therefore raises
    ``NoLegalMovesError``.
    """
    if not player.hand:
        return None
    leading = state.current_trick.leading_suit if state.phase == Phase.PLAYING else None
    legal = legal_plays(player.hand, leading)
    if not legal:
        raise NoLegalMovesError(f"{player.id} holds cards but has no legal play")
    if len(legal) == 1:
        return legal[0]

    rng = rng or random.Random()
    strategy = config.strategy
    if strategy == StrategyType.HEURISTIC:
        return best_card_by_value(legal, state, player)
    if strategy == StrategyType.MCTS:
        return _search(state, player, legal, config, rng)

    progress = game_progress(state)
    if progress < HYBRID_HEURISTIC_UNTIL:
        log.debug("Hybrid %s: heuristic (progress=%.2f)", player.id, progress)
        return best_card_by_value(legal, state, player)
    log.debug("Hybrid %s: MCTS (progress=%.2f)", player.id, progress)
    return _search(state, player, legal, config, rng)
