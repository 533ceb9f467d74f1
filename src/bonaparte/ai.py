"""AI driver: one function that plays any phase, plus a background scheduler.

``take_ai_turn`` advances a game by exactly one AI action (a bid or
pass, the adjutant nomination, the exchange, or a card).
``run_until_human`` repeats it until a human seat must act.

``AIScheduler`` computes moves off the request thread after a short
delay.  Every result is tagged with the ``(game_id, version)`` it was
computed from; ``apply_ai_move`` rejects results whose state has moved
on in the meantime.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from bonaparte.bidding.evaluator import (
    choose_adjutant_card,
    choose_discards,
    should_declare,
    should_declare_by_simulation,
)
from bonaparte.games.napoleon.constants import DEFAULT_AI_DELAY_S, DEFAULT_MAX_REDEALS
from bonaparte.games.napoleon.errors import (
    InvalidPhaseError,
    OutOfTurnError,
    RedealLimitExceededError,
    StaleStateError,
)
from bonaparte.games.napoleon.game import (
    GameState,
    Phase,
    Player,
    close_trick_result,
    deal,
    declare_napoleon,
    exchange_cards,
    get_player,
    pass_declaration,
    play_card,
    redeal,
    seat_of,
    set_adjutant,
)
from bonaparte.strategy import StrategyConfig, StrategyType, select_ai_card

log = logging.getLogger(__name__)


def next_actor(state: GameState) -> Optional[Player]:
    """The player who must act next, or ``None`` when nobody does.

    Nobody acts while a completed trick is on display, before or between
    deals, and after the game.
    """
    if state.phase in (Phase.SETUP, Phase.DEALING, Phase.FINISHED):
        return None
    if state.phase == Phase.PLAYING and state.showing_trick_result:
        return None
    return state.players[state.current_player_index]


def advance_deal(
    state: GameState,
    rng: Optional[random.Random] = None,
    max_redeals: int = DEFAULT_MAX_REDEALS,
) -> GameState:
    """Deal (SETUP) or redeal after four passes, within the redeal cap."""
    if state.phase == Phase.SETUP:
        return deal(state, rng)
    if state.phase != Phase.DEALING:
        raise InvalidPhaseError(f"Nothing to deal in phase {state.phase.value}")
    if state.reshuffle_count >= max_redeals:
        raise RedealLimitExceededError(
            f"Game {state.id}: {state.reshuffle_count} redeals, giving up"
        )
    return redeal(state, rng)


# ---------------------------------------------------------------------------
#  Single AI action
# ---------------------------------------------------------------------------


def _bid(state: GameState, player: Player, config: StrategyConfig, rng: random.Random) -> GameState:
    current = state.napoleon_declaration
    if config.strategy == StrategyType.HEURISTIC:
        decl = should_declare(player.hand, current, player.id)
    else:
        decl = should_declare_by_simulation(
            player.hand, current, player.id, seat_of(state, player.id), rng,
        )
    if decl is None:
        log.debug("%s passes", player.id)
        return pass_declaration(state, player.id)
    return declare_napoleon(state, decl)


def take_ai_turn(
    state: GameState,
    player_id: str,
    config: StrategyConfig,
    rng: Optional[random.Random] = None,
) -> GameState:
    """Perform one action for *player_id* and return the new state.

    Raises ``OutOfTurnError`` if *player_id* is not the one to act.
    """
    rng = rng or random.Random()
    player = get_player(state, player_id)
    actor = next_actor(state)
    if state.phase == Phase.PLAYING and state.showing_trick_result:
        return close_trick_result(state)
    if actor is None:
        raise InvalidPhaseError(f"No player acts in phase {state.phase.value}")
    if actor.id != player_id:
        raise OutOfTurnError(f"Not {player_id}'s turn (current={actor.id})")

    if state.phase == Phase.NAPOLEON:
        return _bid(state, player, config, rng)

    decl = state.napoleon_declaration
    assert decl is not None
    if state.phase == Phase.ADJUTANT:
        card = choose_adjutant_card(player.hand, decl.suit)
        log.debug("%s names adjutant card %s", player_id, card)
        return set_adjutant(state, card)
    if state.phase == Phase.CARD_EXCHANGE:
        discards = choose_discards(player.hand, decl.suit, decl.adjutant_card)
        log.debug("%s discards %s", player_id, discards)
        return exchange_cards(state, player_id, discards)

    card = select_ai_card(state, player, config, rng)
    assert card is not None
    log.debug("%s plays %s", player_id, card)
    return play_card(state, player_id, card)


def run_until_human(
    state: GameState,
    config: StrategyConfig,
    rng: Optional[random.Random] = None,
    *,
    auto_continue: bool = False,
    max_redeals: int = DEFAULT_MAX_REDEALS,
) -> GameState:
    """Let AI seats act until a human must move or the game is over.

    Deals and redeals happen automatically.  A completed trick stops
    the loop unless *auto_continue* is set, so a human can look at it.
    """
    rng = rng or random.Random()
    while state.phase != Phase.FINISHED:
        if state.phase in (Phase.SETUP, Phase.DEALING):
            state = advance_deal(state, rng, max_redeals)
            continue
        if state.phase == Phase.PLAYING and state.showing_trick_result:
            if not auto_continue:
                break
            state = close_trick_result(state)
            continue
        actor = next_actor(state)
        if actor is None or not actor.is_ai:
            break
        state = take_ai_turn(state, actor.id, config, rng)
    return state


# ---------------------------------------------------------------------------
#  Versioned moves
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AIMove:
    game_id: str
    version: int        # version of the state the move was computed from
    player_id: str
    state: GameState    # resulting state


def compute_ai_move(
    state: GameState,
    config: StrategyConfig,
    rng: Optional[random.Random] = None,
) -> Optional[AIMove]:
    """One AI action for whoever must act, or ``None`` if that is a human."""
    actor = next_actor(state)
    if actor is None or not actor.is_ai:
        return None
    new_state = take_ai_turn(state, actor.id, config, rng)
    return AIMove(game_id=state.id, version=state.version, player_id=actor.id, state=new_state)


def apply_ai_move(current: GameState, move: AIMove) -> GameState:
    """Accept *move* only if it was computed from *current*."""
    if move.game_id != current.id or move.version != current.version:
        raise StaleStateError(
            f"AI move for {move.game_id}@{move.version} does not match {current.id}@{current.version}"
        )
    return move.state


# ---------------------------------------------------------------------------
#  Background scheduling
# ---------------------------------------------------------------------------


@dataclass
class _Pending:
    cancel: threading.Event = field(default_factory=threading.Event)
    thread: Optional[threading.Thread] = None


class AIScheduler:
    """Compute AI moves on daemon threads after a fixed delay.

    At most one computation runs per game; scheduling again (or calling
    ``cancel``) abandons the previous one.  *on_move* is called from the
    worker thread and is expected to go through ``apply_ai_move``.
    """

    def __init__(
        self,
        config: StrategyConfig,
        delay: float = DEFAULT_AI_DELAY_S,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config
        self.delay = delay
        self._rng = rng or random.Random()
        self._pending: dict[str, _Pending] = {}
        self._lock = threading.Lock()

    def schedule(self, state: GameState, on_move: Callable[[AIMove], None]) -> bool:
        """Start computing the next AI move; False if no AI has to act."""
        actor = next_actor(state)
        if actor is None or not actor.is_ai:
            return False
        self.cancel(state.id)
        pending = _Pending()
        snapshot = state.clone()
        seed = self._rng.randrange(1 << 30)
        t = threading.Thread(
            target=self._worker,
            args=(snapshot, pending, on_move, random.Random(seed)),
            daemon=True,
        )
        pending.thread = t
        with self._lock:
            self._pending[state.id] = pending
        t.start()
        return True

    def cancel(self, game_id: str) -> None:
        with self._lock:
            existing = self._pending.pop(game_id, None)
        if existing is not None:
            existing.cancel.set()

    def join(self, game_id: str, timeout: Optional[float] = None) -> None:
        with self._lock:
            pending = self._pending.get(game_id)
        if pending is not None and pending.thread is not None:
            pending.thread.join(timeout)

    def _worker(
        self,
        state: GameState,
        pending: _Pending,
        on_move: Callable[[AIMove], None],
        rng: random.Random,
    ) -> None:
        try:
            self._run(state, pending, on_move, rng)
        finally:
            with self._lock:
                # on_move may already have scheduled a successor under the same id
                if self._pending.get(state.id) is pending:
                    del self._pending[state.id]

    def _run(
        self,
        state: GameState,
        pending: _Pending,
        on_move: Callable[[AIMove], None],
        rng: random.Random,
    ) -> None:
        if pending.cancel.wait(self.delay):
            return
        try:
            move = compute_ai_move(state, self.config, rng)
        except Exception:  # noqa: BLE001
            log.exception("AI move for game %s failed", state.id)
            return
        if move is None:
            return
        if pending.cancel.is_set():
            log.info("Discarding AI move for %s@%d: cancelled", move.game_id, move.version)
            return
        on_move(move)
