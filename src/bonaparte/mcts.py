"""Monte Carlo Tree Search agent for Napoleon.

Uses Information Set MCTS (determinization) to handle the hidden hands
and the secret adjutant: sample several worlds consistent with what the
searching player can observe, run UCT on each, and aggregate the root
visit counts.  The most-visited card over all worlds is played, which
hedges against any single misleading sample.

The tree search itself only talks to
:class:`~bonaparte.games.interface.GameInterface`.  When no simulation
completes (time budget spent, or the result is already decided) the
heuristic evaluator picks the card instead.
"""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from bonaparte.evaluator import best_card_by_value, select_best_strategic_card
from bonaparte.games.interface import GameInterface
from bonaparte.games.napoleon.adapter import NapoleonGame, NapoleonNode, node_from_state
from bonaparte.games.napoleon.cards import Card
from bonaparte.games.napoleon.constants import DEFAULT_ROLLOUT_HEURISTIC_RATIO, UCT_EXPLORATION
from bonaparte.games.napoleon.errors import NoLegalMovesError
from bonaparte.games.napoleon.game import GameState, get_player, seat_of

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MCTSConfig:
    """Configuration for MCTS search."""

    simulation_count: int = 500  # UCT iterations per determinization
    exploration_constant: float = UCT_EXPLORATION
    time_limit_ms: int = 2000  # total budget, split evenly across worlds
    determinization_count: int = 5  # number of sampled worlds
    rollout_heuristic_ratio: float = DEFAULT_ROLLOUT_HEURISTIC_RATIO


MCTS_PRESETS: dict[str, MCTSConfig] = {
    "fast": MCTSConfig(simulation_count=100, time_limit_ms=1000, determinization_count=3),
    "normal": MCTSConfig(simulation_count=500, time_limit_ms=2000, determinization_count=5),
    "strong": MCTSConfig(simulation_count=2000, time_limit_ms=5000, determinization_count=10),
}


_GAME = NapoleonGame()


# ---------------------------------------------------------------------------
# MCTS tree
# ---------------------------------------------------------------------------


@dataclass
class _Node:
    player: int  # seat that acts at this node
    action: Optional[Card] = None  # card played to reach this node
    parent: Optional[_Node] = None
    children: list[_Node] = field(default_factory=list)
    untried: list[Card] = field(default_factory=list)
    visits: int = 0
    value: float = 0.0  # cumulative wins for the searching side


def _ucb1(child: _Node, parent_visits: int, c: float, invert: bool) -> float:
    if child.visits == 0:
        return float("inf")
    q = child.value / child.visits
    if invert:
        q = 1.0 - q
    return q + c * math.sqrt(math.log(parent_visits) / child.visits)


def _select(
    root: _Node,
    c: float,
    perspective: int,
    world: NapoleonNode,
    game: GameInterface,
) -> _Node:
    node = root
    while node.children and not node.untried:
        # Opponents of the searching side minimise its win rate.
        opp = not game.same_team(world, node.player, perspective)
        node = max(node.children, key=lambda ch, _o=opp: _ucb1(ch, node.visits, c, _o))
    return node


def _rollout(
    node: NapoleonNode,
    game: GameInterface,
    perspective: int,
    rng: random.Random,
    heuristic_ratio: float,
) -> float:
    """Play to the end (or until decided).  Returns 1.0 on a win for *perspective*'s side."""
    st = node.clone()
    while not game.is_terminal(st) and not game.is_decided(st):
        actions = game.legal_actions(st)
        if rng.random() < heuristic_ratio:
            player = st.gs.players[st.gs.current_player_index]
            card = select_best_strategic_card(actions, st.gs, player)
        else:
            card = rng.choice(actions)
        game.apply_in_place(st, card)
    return game.outcome(st, perspective)


def _backprop(node: Optional[_Node], val: float) -> None:
    while node is not None:
        node.visits += 1
        node.value += val
        node = node.parent


# ---------------------------------------------------------------------------
# Single-determinization MCTS
# ---------------------------------------------------------------------------


def _mcts(
    world: NapoleonNode,
    game: GameInterface,
    perspective: int,
    config: MCTSConfig,
    rng: random.Random,
    deadline: float,
) -> dict[Card, int]:
    """Run UCT on one determinized world.  Returns card -> visit count."""
    actions = game.legal_actions(world)
    if len(actions) <= 1:
        return {a: 1 for a in actions}

    root = _Node(player=game.current_player(world), untried=list(actions))
    root.visits = 1

    # Map node id -> world state for simulation.
    node_states: dict[int, NapoleonNode] = {id(root): world}

    sims = 0
    for _ in range(config.simulation_count):
        if time.perf_counter() >= deadline:
            break
        sims += 1

        # Selection
        node = _select(root, config.exploration_constant, perspective, world, game)
        n_st = node_states[id(node)]

        # Expansion
        if node.untried and not game.is_terminal(n_st) and not game.is_decided(n_st):
            act = node.untried.pop()
            new_st = game.apply(n_st, act)
            done = game.is_terminal(new_st) or game.is_decided(new_st)
            child = _Node(
                player=game.current_player(new_st) if not done else node.player,
                action=act,
                parent=node,
                untried=list(game.legal_actions(new_st)) if not done else [],
            )
            node.children.append(child)
            node_states[id(child)] = new_st
            node = child
            n_st = new_st

        # Simulation
        if game.is_terminal(n_st) or game.is_decided(n_st):
            val = game.outcome(n_st, perspective)
        else:
            val = _rollout(n_st, game, perspective, rng, config.rollout_heuristic_ratio)

        # Backpropagation
        _backprop(node, val)

    log.debug("UCT world done: %d simulations, %d root children", sims, len(root.children))
    return {ch.action: ch.visits for ch in root.children if ch.action is not None}


# ---------------------------------------------------------------------------
# Public API: determinized MCTS
# ---------------------------------------------------------------------------


def mcts_visit_counts(
    state: GameState,
    player_id: str,
    config: MCTSConfig,
    rng: Optional[random.Random] = None,
) -> tuple[list[Card], np.ndarray]:
    """Aggregated root visits over ``config.determinization_count`` worlds.

    Returns ``(legal_cards, visits)`` where ``visits[i]`` belongs to
    ``legal_cards[i]``.
    """
    rng = rng or random.Random()
    game: GameInterface = _GAME
    seat = seat_of(state, player_id)
    if state.current_player_index != seat:
        raise ValueError(f"Not {player_id}'s turn")
    root = node_from_state(state)
    legal = game.legal_actions(root)
    if not legal:
        raise NoLegalMovesError(f"{player_id} has no legal card")
    if len(legal) == 1:
        return legal, np.ones(1, dtype=np.int64)

    totals = np.zeros(game.action_space_size, dtype=np.int64)
    n_worlds = max(1, config.determinization_count)
    budget = config.time_limit_ms / 1000.0 / n_worlds
    for _ in range(n_worlds):
        det = game.determinize(root, seat, rng)
        rollout_rng = random.Random(rng.randrange(1 << 30))
        deadline = time.perf_counter() + budget
        visits = _mcts(det, game, seat, config, rollout_rng, deadline)
        for act, cnt in visits.items():
            totals[game.action_to_index(act)] += cnt

    idx = np.fromiter((game.action_to_index(c) for c in legal), dtype=np.int64, count=len(legal))
    return legal, totals[idx]


def mcts_choose(
    state: GameState,
    player_id: str,
    config: MCTSConfig,
    rng: Optional[random.Random] = None,
) -> Card:
    """Choose a card using MCTS with determinization.

    Runs independent searches on randomly sampled worlds, sums the visit
    counts per card, and returns the most-visited card (first legal card
    on ties).  With no visits at all the heuristic's best card is played.
    """
    legal, visits = mcts_visit_counts(state, player_id, config, rng)
    if len(legal) == 1:
        return legal[0]
    if not visits.any():
        best = best_card_by_value(legal, state, get_player(state, player_id))
        log.debug("MCTS %s: no simulations finished, heuristic -> %s", player_id, best)
        return best
    best = legal[int(np.argmax(visits))]
    log.debug("MCTS %s -> %s (visits=%s)", player_id, best, visits.tolist())
    return best
