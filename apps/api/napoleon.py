"""FastAPI router for Napoleon game sessions.

The human is always ``player_1`` (seat 0); the other three seats are
AI.  After every human action the AI seats play until the human has to
act again, or, for sessions created with ``background: true``, their
moves are computed by an ``AIScheduler`` after a short delay.

Game flow: NAPOLEON (bidding) -> ADJUTANT -> CARD_EXCHANGE -> PLAYING
-> FINISHED, with automatic redeals when everybody passes.
"""

from __future__ import annotations

import logging
import random
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from fastapi import APIRouter, HTTPException

from bonaparte.ai import AIMove, AIScheduler, apply_ai_move, compute_ai_move, run_until_human
from bonaparte.games.napoleon.cards import Card, Suit, card_from_id
from bonaparte.games.napoleon.constants import DEFAULT_AI_DELAY_S, DEFAULT_MAX_REDEALS
from bonaparte.games.napoleon.declaration import NapoleonDeclaration
from bonaparte.games.napoleon.errors import (
    NapoleonError,
    OutOfTurnError,
    RedealLimitExceededError,
    StaleStateError,
)
from bonaparte.games.napoleon.game import (
    GameState,
    Phase,
    close_trick_result,
    declare_napoleon,
    exchange_cards,
    initialize_game,
    pass_declaration,
    play_card,
    redeal,
    set_adjutant,
)
from bonaparte.games.napoleon.scoring import calculate_game_result, player_stats
from bonaparte.games.napoleon.snapshot import state_to_dict
from bonaparte.games.napoleon.views import public_state
from bonaparte.strategy import StrategyConfig, default_strategy_config, get_strategy_config_by_difficulty

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/napoleon")

HUMAN_ID = "player_1"
DEFAULT_NAMES = ["You", "Marie", "Louis", "Josephine"]


@dataclass
class Session:
    state: GameState
    config: StrategyConfig
    rng: random.Random
    background: bool = False
    scheduler: Optional[AIScheduler] = None
    lock: threading.Lock = field(default_factory=threading.Lock)


_SESSIONS: dict[str, Session] = {}


# ---------------------------------------------------------------------------
#  Helpers
# ---------------------------------------------------------------------------


def _get_session(game_id: str) -> Session:
    sess = _SESSIONS.get(game_id)
    if sess is None:
        raise HTTPException(status_code=404, detail="Unknown gameId")
    return sess


def _payload_session(payload: dict[str, Any]) -> Session:
    return _get_session(str(payload.get("gameId", "") or ""))


def _bad_request(e: NapoleonError) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": e.code, "message": str(e)})


def _card_from_payload(obj: Any) -> Card:
    try:
        return card_from_id(str(obj))
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"code": "INVALID_INPUT", "message": str(e)})


def _response(sess: Session) -> dict[str, Any]:
    out = public_state(sess.state, HUMAN_ID)
    out["difficulty"] = sess.config.difficulty.value
    return out


def _on_background_move(game_id: str, move: AIMove) -> None:
    sess = _SESSIONS.get(game_id)
    if sess is None:
        return
    with sess.lock:
        try:
            sess.state = apply_ai_move(sess.state, move)
        except StaleStateError as e:
            log.info("Dropped stale AI move: %s", e)
            return
        try:
            _schedule(sess)
        except NapoleonError:
            log.exception("Background AI stopped for game %s", game_id)


def _schedule(sess: Session) -> None:
    assert sess.scheduler is not None
    gid = sess.state.id
    if sess.scheduler.schedule(sess.state, lambda move: _on_background_move(gid, move)):
        return
    # Nobody to move: the scheduler cannot deal or close tricks itself.
    if sess.state.phase in (Phase.SETUP, Phase.DEALING):
        sess.state = run_until_human(sess.state, sess.config, sess.rng)
        sess.scheduler.schedule(sess.state, lambda move: _on_background_move(gid, move))


def _advance_ai(sess: Session) -> None:
    """Let the AI seats move, synchronously or in the background."""
    if sess.background:
        _schedule(sess)
        return
    sess.state = run_until_human(sess.state, sess.config, sess.rng)


def _human_set_adjutant(state: GameState, card: Optional[Card]) -> GameState:
    if state.phase == Phase.ADJUTANT and state.players[state.current_player_index].id != HUMAN_ID:
        raise OutOfTurnError("Only the Napoleon names the adjutant card")
    return set_adjutant(state, card)


def _apply(sess: Session, fn, *args) -> dict[str, Any]:
    """Run a human transition under the session lock, then let the AI move."""
    with sess.lock:
        if sess.scheduler is not None:
            sess.scheduler.cancel(sess.state.id)
        try:
            sess.state = fn(sess.state, *args)
            _advance_ai(sess)
        except NapoleonError as e:
            raise _bad_request(e)
        return _response(sess)


# ---------------------------------------------------------------------------
#  Endpoints
# ---------------------------------------------------------------------------


@router.post("/new")
def new_game(payload: dict[str, Any]) -> dict[str, Any]:
    seed_raw = payload.get("seed")
    if seed_raw is not None and str(seed_raw).strip() != "":
        try:
            seed = int(seed_raw)
        except (TypeError, ValueError):
            raise HTTPException(status_code=400, detail={"code": "INVALID_INPUT", "message": f"Invalid seed: {seed_raw!r}"})
    else:
        seed = random.randint(0, 2_147_483_647)
    difficulty = payload.get("difficulty")
    try:
        config = get_strategy_config_by_difficulty(difficulty) if difficulty else default_strategy_config()
    except ValueError:
        raise HTTPException(status_code=400, detail={"code": "INVALID_INPUT", "message": f"Unknown difficulty: {difficulty!r}"})
    names = payload.get("names") or DEFAULT_NAMES
    background = bool(payload.get("background", False))

    rng = random.Random(seed)
    gid = str(uuid.uuid4())
    try:
        state = initialize_game(names, ai_seats=(1, 2, 3), rng=rng, game_id=gid)
    except NapoleonError as e:
        raise _bad_request(e)
    sess = Session(state=state, config=config, rng=rng, background=background)
    if background:
        delay = float(payload.get("aiDelay", DEFAULT_AI_DELAY_S))
        sess.scheduler = AIScheduler(config, delay=delay, rng=random.Random(seed + 1))
    _SESSIONS[gid] = sess
    log.info("New Napoleon game %s (difficulty=%s, seed=%d)", gid, config.difficulty.value, seed)
    with sess.lock:
        try:
            _advance_ai(sess)
        except RedealLimitExceededError as e:
            raise _bad_request(e)
        out = _response(sess)
    out["seed"] = seed
    return out


@router.get("/state/{game_id}")
def get_state(game_id: str) -> dict[str, Any]:
    sess = _get_session(game_id)
    with sess.lock:
        return _response(sess)


@router.post("/declare")
def declare(payload: dict[str, Any]) -> dict[str, Any]:
    sess = _payload_session(payload)
    try:
        decl = NapoleonDeclaration(
            player_id=HUMAN_ID,
            target=int(payload["target"]),
            suit=Suit(str(payload["suit"])),
        )
    except (KeyError, ValueError) as e:
        raise HTTPException(status_code=400, detail={"code": "INVALID_INPUT", "message": f"Bad declaration: {e}"})
    return _apply(sess, declare_napoleon, decl)


@router.post("/pass")
def pass_turn(payload: dict[str, Any]) -> dict[str, Any]:
    sess = _payload_session(payload)
    return _apply(sess, pass_declaration, HUMAN_ID)


@router.post("/redeal")
def redeal_hand(payload: dict[str, Any]) -> dict[str, Any]:
    sess = _payload_session(payload)
    if sess.state.reshuffle_count >= DEFAULT_MAX_REDEALS:
        raise _bad_request(RedealLimitExceededError("Too many redeals in this game"))
    return _apply(sess, redeal, sess.rng, "requested by player")


@router.post("/adjutant")
def adjutant(payload: dict[str, Any]) -> dict[str, Any]:
    sess = _payload_session(payload)
    raw = payload.get("card")
    card = _card_from_payload(raw) if raw else None
    return _apply(sess, _human_set_adjutant, card)


@router.post("/exchange")
def exchange(payload: dict[str, Any]) -> dict[str, Any]:
    sess = _payload_session(payload)
    cards = [_card_from_payload(c) for c in payload.get("cards", [])]
    return _apply(sess, exchange_cards, HUMAN_ID, cards)


@router.post("/play")
def play(payload: dict[str, Any]) -> dict[str, Any]:
    sess = _payload_session(payload)
    card = _card_from_payload(payload.get("card"))
    return _apply(sess, play_card, HUMAN_ID, card)


@router.post("/continue")
def continue_game(payload: dict[str, Any]) -> dict[str, Any]:
    sess = _payload_session(payload)
    return _apply(sess, close_trick_result)


@router.post("/ai-step")
def ai_step(payload: dict[str, Any]) -> dict[str, Any]:
    """Compute and apply exactly one AI move (for step-by-step clients)."""
    sess = _payload_session(payload)
    with sess.lock:
        try:
            move = compute_ai_move(sess.state, sess.config, sess.rng)
            if move is not None:
                sess.state = apply_ai_move(sess.state, move)
        except NapoleonError as e:
            raise _bad_request(e)
        out = _response(sess)
    out["moved"] = move.player_id if move is not None else None
    return out


@router.get("/snapshot/{game_id}")
def snapshot(game_id: str) -> dict[str, Any]:
    """Full, unredacted state (debugging and persistence)."""
    sess = _get_session(game_id)
    with sess.lock:
        return state_to_dict(sess.state)


@router.get("/result/{game_id}")
def result(game_id: str) -> dict[str, Any]:
    sess = _get_session(game_id)
    with sess.lock:
        state = sess.state
        try:
            res = calculate_game_result(state)
        except ValueError as e:
            raise HTTPException(status_code=400, detail={"code": "INVALID_STATE", "message": str(e)})
        return {
            "gameId": state.id,
            "napoleonWon": res.napoleon_won,
            "target": res.target,
            "napoleonFaceCards": res.napoleon_face_cards,
            "citizenFaceCards": res.citizen_face_cards,
            "scores": [
                {**player_stats(state, s.player_id), "points": s.points}
                for s in res.scores
            ],
        }
