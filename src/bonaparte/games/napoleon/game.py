"""Game state and phase transitions for a Napoleon deal.

Phases: SETUP -> DEALING -> NAPOLEON (bidding) -> ADJUTANT ->
CARD_EXCHANGE -> PLAYING -> FINISHED, with DEALING re-entered whenever
every player passes.

Every public transition validates first and then works on a clone, so
the state passed in is never modified and a rejected action leaves no
trace.  The in-place ``_play`` helper exists for search code that owns
its own copies.
"""

from __future__ import annotations

import logging
import random
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence

from bonaparte.games.napoleon.cards import (
    Card,
    HIDDEN_SIZE,
    NUM_PLAYERS,
    Suit,
    TRICKS_PER_GAME,
    deal_cards,
)
from bonaparte.games.napoleon.declaration import (
    NapoleonDeclaration,
    is_ceiling,
    is_valid_declaration,
    next_declarer,
)
from bonaparte.games.napoleon.errors import (
    AllPlayersPassedError,
    IllegalPlayError,
    InvalidDeclarationError,
    InvalidPhaseError,
    InvalidPlayerCountError,
    NapoleonError,
    OutOfTurnError,
)
from bonaparte.games.napoleon.rules import (
    TrickResult,
    can_follow_suit,
    legal_plays,
    select_adjutant_card,
    trick_winner,
)

log = logging.getLogger(__name__)


class Phase(str, Enum):
    SETUP = "setup"
    DEALING = "dealing"
    NAPOLEON = "napoleon"
    ADJUTANT = "adjutant"
    CARD_EXCHANGE = "card_exchange"
    PLAYING = "playing"
    FINISHED = "finished"


# ---------------------------------------------------------------------------
#  Players and tricks
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Player:
    id: str
    name: str
    position: int                 # 1..4, fixed seating
    hand: list[Card] = field(default_factory=list)
    is_napoleon: bool = False
    is_adjutant: bool = False
    is_ai: bool = False

    def clone(self) -> Player:
        return Player(
            id=self.id,
            name=self.name,
            position=self.position,
            hand=list(self.hand),
            is_napoleon=self.is_napoleon,
            is_adjutant=self.is_adjutant,
            is_ai=self.is_ai,
        )


@dataclass(frozen=True, slots=True)
class PlayedCard:
    card: Card
    player_id: str
    order: int                    # 0..3 within the trick
    reveals_adjutant: bool = False


@dataclass(slots=True)
class Trick:
    """One round of four cards.  Treated as immutable once completed."""

    id: str
    cards: list[PlayedCard] = field(default_factory=list)
    leading_suit: Optional[Suit] = None
    winner_player_id: Optional[str] = None
    completed: bool = False

    @property
    def plays(self) -> list[tuple[str, Card]]:
        return [(pc.player_id, pc.card) for pc in self.cards]

    def clone(self) -> Trick:
        return Trick(
            id=self.id,
            cards=list(self.cards),
            leading_suit=self.leading_suit,
            winner_player_id=self.winner_player_id,
            completed=self.completed,
        )


# ---------------------------------------------------------------------------
#  Game state
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class GameState:
    id: str
    players: list[Player]
    phase: Phase = Phase.SETUP
    current_trick: Trick = field(default_factory=lambda: Trick(id="trick-1"))
    tricks: list[Trick] = field(default_factory=list)
    current_player_index: int = 0
    napoleon_declaration: Optional[NapoleonDeclaration] = None
    leading_suit: Optional[Suit] = None
    trump_suit: Optional[Suit] = None
    hidden_cards: list[Card] = field(default_factory=list)
    passed_players: list[str] = field(default_factory=list)
    declaration_turn: int = 0
    needs_redeal: bool = False
    exchanged_cards: list[Card] = field(default_factory=list)
    showing_trick_result: bool = False
    last_completed_trick: Optional[Trick] = None
    reshuffle_count: int = 0
    last_reshuffle_reason: Optional[str] = None
    version: int = 0
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def clone(self) -> GameState:
        """Copy that shares only immutable parts (cards, completed tricks)."""
        return GameState(
            id=self.id,
            players=[p.clone() for p in self.players],
            phase=self.phase,
            current_trick=self.current_trick.clone(),
            tricks=list(self.tricks),
            current_player_index=self.current_player_index,
            napoleon_declaration=self.napoleon_declaration,
            leading_suit=self.leading_suit,
            trump_suit=self.trump_suit,
            hidden_cards=list(self.hidden_cards),
            passed_players=list(self.passed_players),
            declaration_turn=self.declaration_turn,
            needs_redeal=self.needs_redeal,
            exchanged_cards=list(self.exchanged_cards),
            showing_trick_result=self.showing_trick_result,
            last_completed_trick=self.last_completed_trick,
            reshuffle_count=self.reshuffle_count,
            last_reshuffle_reason=self.last_reshuffle_reason,
            version=self.version,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @property
    def player_ids(self) -> list[str]:
        return [p.id for p in self.players]


def _touch(st: GameState) -> None:
    st.version += 1
    st.updated_at = time.time()


# ---------------------------------------------------------------------------
#  Queries
# ---------------------------------------------------------------------------


def seat_of(state: GameState, player_id: str) -> int:
    for i, p in enumerate(state.players):
        if p.id == player_id:
            return i
    raise NapoleonError(f"Unknown player: {player_id!r}")


def get_player(state: GameState, player_id: str) -> Player:
    return state.players[seat_of(state, player_id)]


def current_player(state: GameState) -> Player:
    return state.players[state.current_player_index]


def napoleon_player(state: GameState) -> Optional[Player]:
    for p in state.players:
        if p.is_napoleon:
            return p
    return None


def adjutant_player(state: GameState) -> Optional[Player]:
    for p in state.players:
        if p.is_adjutant:
            return p
    return None


def adjutant_revealed(state: GameState) -> bool:
    """True once the adjutant card has been played."""
    for trick in (*state.tricks, state.current_trick):
        for pc in trick.cards:
            if pc.reveals_adjutant:
                return True
    return False


def is_self_adjutant(state: GameState) -> bool:
    """The nominated card came out of the hidden cards: Napoleon is their own ally."""
    decl = state.napoleon_declaration
    if decl is None or decl.adjutant_card is None:
        return False
    if state.phase in (Phase.SETUP, Phase.DEALING, Phase.NAPOLEON, Phase.ADJUTANT):
        return False
    holder = adjutant_player(state)
    if holder is not None:
        return holder.is_napoleon
    nap = napoleon_player(state)
    if nap is None:
        return False
    if decl.adjutant_card in nap.hand:
        return True
    for trick in (*state.tricks, state.current_trick):
        for pc in trick.cards:
            if pc.card == decl.adjutant_card:
                return pc.player_id == nap.id
    return False


def is_finished(state: GameState) -> bool:
    return state.phase == Phase.FINISHED


def legal_actions(state: GameState) -> list[Card]:
    """Legal cards for the player to move (empty outside trick play)."""
    if state.phase != Phase.PLAYING:
        return []
    hand = state.players[state.current_player_index].hand
    return legal_plays(hand, state.current_trick.leading_suit)


def all_cards(state: GameState) -> list[Card]:
    """Every card the state accounts for; 52 unique cards after the deal."""
    out: list[Card] = []
    for p in state.players:
        out.extend(p.hand)
    for trick in state.tricks:
        out.extend(pc.card for pc in trick.cards)
    out.extend(pc.card for pc in state.current_trick.cards)
    out.extend(state.hidden_cards)
    out.extend(state.exchanged_cards)
    return out


def _require_phase(state: GameState, *phases: Phase) -> None:
    if state.phase not in phases:
        wanted = ", ".join(p.value for p in phases)
        raise InvalidPhaseError(f"Action requires phase {wanted} (phase={state.phase.value})")


def _require_turn(state: GameState, player_id: str) -> int:
    seat = seat_of(state, player_id)
    if seat != state.current_player_index:
        cur = state.players[state.current_player_index].id
        raise OutOfTurnError(f"Not {player_id}'s turn (current={cur})")
    return seat


# ---------------------------------------------------------------------------
#  Setup and dealing
# ---------------------------------------------------------------------------


def create_game(
    player_names: Sequence[str],
    *,
    ai_seats: Iterable[int] = (),
    game_id: Optional[str] = None,
) -> GameState:
    """Seat four players; no cards are dealt yet (phase SETUP)."""
    if len(player_names) != NUM_PLAYERS:
        raise InvalidPlayerCountError(
            f"Napoleon needs exactly {NUM_PLAYERS} players, got {len(player_names)}"
        )
    ai = set(ai_seats)
    players = [
        Player(id=f"player_{i + 1}", name=str(name), position=i + 1, is_ai=i in ai)
        for i, name in enumerate(player_names)
    ]
    return GameState(id=game_id or str(uuid.uuid4()), players=players)


def _deal_into(st: GameState, rng: Optional[random.Random]) -> None:
    hands, hidden = deal_cards(st.players, rng)
    for p, hand in zip(st.players, hands):
        p.hand = hand
        p.is_napoleon = False
        p.is_adjutant = False
    st.hidden_cards = hidden
    st.exchanged_cards = []
    st.tricks = []
    st.current_trick = Trick(id="trick-1")
    st.napoleon_declaration = None
    st.trump_suit = None
    st.leading_suit = None
    st.passed_players = []
    st.declaration_turn = 0
    st.needs_redeal = False
    st.showing_trick_result = False
    st.last_completed_trick = None
    st.current_player_index = 0
    st.phase = Phase.NAPOLEON


def deal(state: GameState, rng: Optional[random.Random] = None) -> GameState:
    """Deal a fresh hand and open the bidding with seat 0."""
    _require_phase(state, Phase.SETUP, Phase.DEALING)
    st = state.clone()
    st.phase = Phase.DEALING
    _deal_into(st, rng)
    _touch(st)
    return st


def initialize_game(
    player_names: Sequence[str],
    *,
    ai_seats: Iterable[int] = (),
    rng: Optional[random.Random] = None,
    game_id: Optional[str] = None,
) -> GameState:
    """Seat the players and deal: the returned state is ready for bidding."""
    return deal(create_game(player_names, ai_seats=ai_seats, game_id=game_id), rng)


def redeal(
    state: GameState,
    rng: Optional[random.Random] = None,
    reason: str = "all players passed",
) -> GameState:
    """Throw the hand in and deal again.

    No cap is enforced here; callers bound the number of consecutive
    redeals themselves (see ``DEFAULT_MAX_REDEALS``).
    """
    _require_phase(state, Phase.DEALING, Phase.NAPOLEON)
    st = state.clone()
    st.phase = Phase.DEALING
    _deal_into(st, rng)
    st.reshuffle_count += 1
    st.last_reshuffle_reason = reason
    _touch(st)
    log.info("Game %s redealt (%d): %s", st.id, st.reshuffle_count, reason)
    return st


# ---------------------------------------------------------------------------
#  Bidding
# ---------------------------------------------------------------------------


def _enter_adjutant_phase(st: GameState) -> None:
    decl = st.napoleon_declaration
    assert decl is not None
    st.phase = Phase.ADJUTANT
    st.trump_suit = decl.suit
    st.current_player_index = seat_of(st, decl.player_id)


def _advance_bidding(st: GameState, start: int) -> None:
    decl = st.napoleon_declaration
    if decl is not None and is_ceiling(decl):
        _enter_adjutant_phase(st)
        return
    nxt = next_declarer(st.player_ids, st.passed_players, decl, start)
    if nxt is not None:
        st.current_player_index = nxt
        return
    if decl is not None:
        _enter_adjutant_phase(st)
    else:
        st.needs_redeal = True
        st.phase = Phase.DEALING
        log.info("Game %s: every player passed, redeal required", st.id)


def _check_bidding_turn(state: GameState, player_id: str) -> int:
    if state.needs_redeal:
        raise AllPlayersPassedError("All players passed; redeal before bidding again")
    _require_phase(state, Phase.NAPOLEON)
    seat = _require_turn(state, player_id)
    if player_id in state.passed_players:
        raise InvalidDeclarationError(f"{player_id} has already passed")
    return seat


def declare_napoleon(state: GameState, declaration: NapoleonDeclaration) -> GameState:
    """Record a bid.  The bidder becomes the (provisional) Napoleon."""
    seat = _check_bidding_turn(state, declaration.player_id)
    if not is_valid_declaration(declaration, state.napoleon_declaration):
        raise InvalidDeclarationError(
            f"Invalid Napoleon declaration: target={declaration.target} suit={declaration.suit}"
        )
    st = state.clone()
    for p in st.players:
        p.is_napoleon = p.id == declaration.player_id
    st.napoleon_declaration = declaration.with_adjutant(None)
    st.declaration_turn += 1
    _advance_bidding(st, seat + 1)
    _touch(st)
    return st


def pass_declaration(state: GameState, player_id: str) -> GameState:
    seat = _check_bidding_turn(state, player_id)
    st = state.clone()
    st.passed_players.append(player_id)
    st.declaration_turn += 1
    _advance_bidding(st, seat + 1)
    _touch(st)
    return st


# ---------------------------------------------------------------------------
#  Adjutant and exchange
# ---------------------------------------------------------------------------


def set_adjutant(state: GameState, card: Optional[Card] = None) -> GameState:
    """Nominate the adjutant card and hand the hidden cards to the Napoleon.

    With no *card*, the standard nomination (``select_adjutant_card``)
    is used; it may resolve to ``None``, in which case the Napoleon plays
    alone.  If the nominated card lies among the hidden cards, no other
    player is the adjutant: the Napoleon is secretly their own ally.
    """
    _require_phase(state, Phase.ADJUTANT)
    decl = state.napoleon_declaration
    assert decl is not None
    nap_seat = seat_of(state, decl.player_id)
    nap_hand = state.players[nap_seat].hand
    if card is None:
        card = select_adjutant_card(nap_hand, decl.suit)
    elif card in nap_hand:
        raise InvalidDeclarationError("The adjutant card cannot be in the Napoleon's own hand")

    st = state.clone()
    for i, p in enumerate(st.players):
        p.is_adjutant = card is not None and i != nap_seat and card in p.hand
    st.players[nap_seat].hand.extend(c.mark_hidden() for c in st.hidden_cards)
    st.hidden_cards = []
    st.napoleon_declaration = decl.with_adjutant(card)
    st.phase = Phase.CARD_EXCHANGE
    st.current_player_index = nap_seat
    _touch(st)
    return st


def exchange_cards(state: GameState, player_id: str, discards: Sequence[Card]) -> GameState:
    """Napoleon discards 4 cards from the 16-card hand; play begins."""
    _require_phase(state, Phase.CARD_EXCHANGE)
    seat = seat_of(state, player_id)
    if not state.players[seat].is_napoleon:
        raise IllegalPlayError("Only Napoleon can exchange cards")
    hand = state.players[seat].hand
    if len(discards) != HIDDEN_SIZE or len(set(discards)) != HIDDEN_SIZE:
        raise IllegalPlayError(f"Must discard exactly {HIDDEN_SIZE} cards")
    for c in discards:
        if c not in hand:
            raise IllegalPlayError(f"Card not in hand: {c}")

    st = state.clone()
    nap = st.players[seat]
    drop = set(discards)
    st.exchanged_cards = [c for c in nap.hand if c in drop]
    nap.hand = [c for c in nap.hand if c not in drop]
    st.phase = Phase.PLAYING
    st.current_player_index = seat
    st.current_trick = Trick(id="trick-1")
    st.leading_suit = None
    _touch(st)
    return st


# ---------------------------------------------------------------------------
#  Trick play
# ---------------------------------------------------------------------------


def _play(st: GameState, seat: int, card: Card) -> Optional[TrickResult]:
    """Play *card* for *seat* in place.  Assumes the play is legal.

    Returns the TrickResult when the card completes a trick.
    """
    player = st.players[seat]
    held = player.hand.pop(player.hand.index(card))
    trick = st.current_trick
    if not trick.cards:
        trick.leading_suit = held.suit
        st.leading_suit = held.suit
    decl = st.napoleon_declaration
    reveals = decl is not None and decl.adjutant_card is not None and held == decl.adjutant_card
    trick.cards.append(PlayedCard(held, player.id, len(trick.cards), reveals))
    if reveals and player.is_napoleon:
        player.is_adjutant = True

    if len(trick.cards) < NUM_PLAYERS:
        st.current_player_index = (seat + 1) % NUM_PLAYERS
        return None

    winner, _ = trick_winner(trick.plays, trump=st.trump_suit, leading=trick.leading_suit)
    trick.winner_player_id = winner
    trick.completed = True
    st.tricks.append(trick)
    st.last_completed_trick = trick
    st.showing_trick_result = True
    st.current_trick = Trick(id=f"trick-{len(st.tricks) + 1}")
    st.leading_suit = None
    st.current_player_index = seat_of(st, winner)
    if len(st.tricks) == TRICKS_PER_GAME:
        st.phase = Phase.FINISHED
    return TrickResult(
        cards=tuple(pc.card for pc in trick.cards),
        players=tuple(pc.player_id for pc in trick.cards),
        winner=winner,
    )


def play_card(state: GameState, player_id: str, card: Card) -> GameState:
    """Play a card.  Raises IllegalPlayError (or OutOfTurnError) on violations."""
    if state.phase != Phase.PLAYING:
        raise IllegalPlayError(f"Cards can only be played in the playing phase (phase={state.phase.value})")
    if state.showing_trick_result:
        raise IllegalPlayError("The last trick must be acknowledged before play continues")
    seat = _require_turn(state, player_id)
    hand = state.players[seat].hand
    if card not in hand:
        raise IllegalPlayError(f"Card not in hand: {card}")
    leading = state.current_trick.leading_suit
    if leading is not None and card.suit != leading and can_follow_suit(hand, leading):
        raise IllegalPlayError(f"Must follow suit ({leading.value})")

    st = state.clone()
    _play(st, seat, card)
    _touch(st)
    return st


def close_trick_result(state: GameState) -> GameState:
    """Acknowledge the completed trick so the next one can start."""
    if not state.showing_trick_result:
        return state
    st = state.clone()
    st.showing_trick_result = False
    _touch(st)
    return st
