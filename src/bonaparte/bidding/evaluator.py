"""Hand evaluation for the bidding, adjutant and exchange decisions.

Two bidders are provided:

  ``should_declare``                 closed-form hand-strength estimate,
                                     cheap enough for every difficulty.
  ``should_declare_by_simulation``   plays out heuristic games in worlds
                                     sampled around the bidder's hand and
                                     declares when the observed win rate
                                     is high enough.

The exchange helper ``choose_discards`` picks the 4 cards the Napoleon
puts away after taking the hidden cards.
"""
from __future__ import annotations

import logging
import random
from collections import Counter
from typing import Optional, Sequence

from bonaparte.evaluator import select_best_strategic_card
from bonaparte.games.napoleon.cards import (
    Card,
    HAND_SIZE,
    HIDDEN_SIZE,
    Rank,
    Suit,
    create_deck,
    is_face_card,
)
from bonaparte.games.napoleon.constants import DECLARE_SIM_WIN_RATE, DECLARE_WIN_PROBABILITY
from bonaparte.games.napoleon.declaration import (
    MIN_TARGET,
    SUIT_PRIORITY,
    NapoleonDeclaration,
    minimum_declaration,
)
from bonaparte.games.napoleon.game import (
    GameState,
    Phase,
    _play,
    create_game,
    exchange_cards,
    legal_actions,
    set_adjutant,
)
from bonaparte.games.napoleon.rules import card_strength, is_special_card, select_adjutant_card
from bonaparte.games.napoleon.scoring import is_game_decided, team_face_card_counts

log = logging.getLogger(__name__)

_DECK: tuple[Card, ...] = tuple(create_deck())

STRENGTH_SCALE = 180.0
MAX_STRENGTH_RATIO = 0.9
TARGET_PENALTY = 0.1        # per face card above the minimum target
MIN_TARGET_FACTOR = 0.3
LONG_TRUMP_BONUS = 0.1      # 3 or more cards of the proposed trump

DEFAULT_SIM_SAMPLES = 8


# ---------------------------------------------------------------------------
#  Closed-form estimate
# ---------------------------------------------------------------------------


def hand_strength(hand: Sequence[Card]) -> int:
    """Sum of card values with bonuses for Aces, Kings/Queens and long suits."""
    s = sum(c.value for c in hand)
    s += 5 * sum(1 for c in hand if c.rank == Rank.ACE)
    s += 2 * sum(1 for c in hand if c.rank in (Rank.KING, Rank.QUEEN))
    for n in Counter(c.suit for c in hand).values():
        if n >= 4:
            s += 3 * (n - 3)
    return s


def win_probability(hand: Sequence[Card], target: int, suit: Suit) -> float:
    """Rough chance that *hand* makes *target* face cards with *suit* as trump."""
    p = min(hand_strength(hand) / STRENGTH_SCALE, MAX_STRENGTH_RATIO)
    p *= max(MIN_TARGET_FACTOR, 1.0 - (target - MIN_TARGET) * TARGET_PENALTY)
    if sum(1 for c in hand if c.suit == suit) >= 3:
        p += LONG_TRUMP_BONUS
    return p


def should_declare(
    hand: Sequence[Card],
    current: Optional[NapoleonDeclaration],
    player_id: str,
) -> Optional[NapoleonDeclaration]:
    """Cheapest declaration that outbids *current* and looks winnable, or ``None`` to pass.

    Among the suits allowed at the minimum target the one with the best
    estimate is chosen; ties go to the longer holding, then the
    stronger suit.
    """
    target, suits = minimum_declaration(current)
    if not suits:
        return None
    lengths = Counter(c.suit for c in hand)
    suit = max(suits, key=lambda s: (win_probability(hand, target, s), lengths[s], SUIT_PRIORITY[s]))
    p = win_probability(hand, target, suit)
    if p < DECLARE_WIN_PROBABILITY:
        return None
    log.debug("%s declares %d %s (p=%.2f)", player_id, target, suit.value, p)
    return NapoleonDeclaration(player_id=player_id, target=target, suit=suit)


# ---------------------------------------------------------------------------
#  Simulation-based estimate
# ---------------------------------------------------------------------------


def _sample_world(
    hand: Sequence[Card],
    seat: int,
    declaration: NapoleonDeclaration,
    rng: random.Random,
) -> GameState:
    """A fresh deal around *hand* with the bid already won by *seat*."""
    st = create_game([f"sim{i}" for i in range(4)], game_id="bidding-sim")
    held = set(hand)
    rest = [c for c in _DECK if c not in held]
    rng.shuffle(rest)
    st.hidden_cards = rest[:HIDDEN_SIZE]
    rest = rest[HIDDEN_SIZE:]
    for i, p in enumerate(st.players):
        if i == seat:
            p.hand = list(hand)
        else:
            p.hand, rest = rest[:HAND_SIZE], rest[HAND_SIZE:]
    nap = st.players[seat]
    nap.is_napoleon = True
    st.napoleon_declaration = NapoleonDeclaration(nap.id, declaration.target, declaration.suit)
    st.trump_suit = declaration.suit
    st.phase = Phase.ADJUTANT
    st.current_player_index = seat
    return st


def simulate_declaration(
    hand: Sequence[Card],
    seat: int,
    declaration: NapoleonDeclaration,
    rng: random.Random,
    samples: int = DEFAULT_SIM_SAMPLES,
) -> float:
    """Fraction of sampled heuristic games the declaration wins."""
    wins = 0
    for _ in range(samples):
        st = _sample_world(hand, seat, declaration, rng)
        st = set_adjutant(st)
        nap = st.players[seat]
        discards = choose_discards(nap.hand, declaration.suit, st.napoleon_declaration.adjutant_card)
        st = exchange_cards(st, nap.id, discards)
        while st.phase == Phase.PLAYING and not is_game_decided(st):
            st.showing_trick_result = False
            player = st.players[st.current_player_index]
            card = select_best_strategic_card(legal_actions(st), st, player)
            _play(st, st.current_player_index, card)
        if team_face_card_counts(st).napoleon >= declaration.target:
            wins += 1
    return wins / samples if samples else 0.0


def should_declare_by_simulation(
    hand: Sequence[Card],
    current: Optional[NapoleonDeclaration],
    player_id: str,
    seat: int,
    rng: Optional[random.Random] = None,
    samples: int = DEFAULT_SIM_SAMPLES,
) -> Optional[NapoleonDeclaration]:
    """Declare at the minimum legal target in the suit with the best simulated win rate.

    Returns ``None`` (pass) when no suit reaches ``DECLARE_SIM_WIN_RATE``.
    """
    rng = rng or random.Random()
    target, suits = minimum_declaration(current)
    best: Optional[NapoleonDeclaration] = None
    best_rate = -1.0
    for suit in suits:
        decl = NapoleonDeclaration(player_id=player_id, target=target, suit=suit)
        rate = simulate_declaration(hand, seat, decl, rng, samples)
        log.debug("%s simulated %d %s: win rate %.2f", player_id, target, suit.value, rate)
        if rate > best_rate:
            best, best_rate = decl, rate
    if best is not None and best_rate >= DECLARE_SIM_WIN_RATE:
        return best
    return None


# ---------------------------------------------------------------------------
#  Adjutant and exchange
# ---------------------------------------------------------------------------


def choose_adjutant_card(hand: Sequence[Card], trump: Suit) -> Optional[Card]:
    return select_adjutant_card(hand, trump)


def choose_discards(
    hand: Sequence[Card],
    trump: Suit,
    adjutant_card: Optional[Card],
) -> list[Card]:
    """The 4 cards the Napoleon should put away.

    Specials, trump and the adjutant card are kept.  Of the rest, plain
    cards from short side suits go first (emptying a suit lets the
    Napoleon trump it later), lowest value first; face cards go last
    since discarded face cards are lost to both sides.
    """
    lengths = Counter(c.suit for c in hand)

    def keep(c: Card) -> bool:
        return c.suit == trump or is_special_card(c, trump) or c == adjutant_card

    def key(c: Card) -> tuple[bool, int, int]:
        return is_face_card(c), lengths[c.suit], c.value

    pool = sorted((c for c in hand if not keep(c)), key=key)
    out = pool[:HIDDEN_SIZE]
    if len(out) < HIDDEN_SIZE:
        # Mostly trump: give up the weakest kept cards.
        kept = sorted(
            (c for c in hand if keep(c) and c != adjutant_card),
            key=lambda c: card_strength(c, trump, trump),
        )
        out.extend(kept[: HIDDEN_SIZE - len(out)])
    assert len(out) == HIDDEN_SIZE
    return out
