"""Card definitions for Napoleon (4-player trick-taking game).

Standard 52-card French deck, no jokers.  Rank strength is the plain
card value: 2 (lowest) .. 10, J = 11, Q = 12, K = 13, A = 14.

Face (counting) cards are 10, J, Q, K, A: 5 per suit, 20 in the deck.
The contract is expressed in face cards captured, not in tricks.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Iterable, List, Optional, Sequence

from bonaparte.games.napoleon.errors import InvalidPlayerCountError


# ---------------------------------------------------------------------------
#  Suits
# ---------------------------------------------------------------------------


class Suit(str, Enum):
    SPADES = "spades"
    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"


# Display / iteration order: spades > hearts > diamonds > clubs.
ALL_SUITS: tuple[Suit, ...] = tuple(Suit)


# ---------------------------------------------------------------------------
#  Ranks (IntEnum values are the card values)
# ---------------------------------------------------------------------------


class Rank(IntEnum):
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14


ALL_RANKS: tuple[Rank, ...] = tuple(Rank)

FACE_RANKS: frozenset[Rank] = frozenset(
    {Rank.TEN, Rank.JACK, Rank.QUEEN, Rank.KING, Rank.ACE}
)


# ---------------------------------------------------------------------------
#  Constants
# ---------------------------------------------------------------------------

NUM_PLAYERS: int = 4
HAND_SIZE: int = 12           # cards per player after the deal
HIDDEN_SIZE: int = 4          # cards set aside for the Napoleon
TRICKS_PER_GAME: int = 12
DECK_SIZE: int = 52
TOTAL_FACE_CARDS: int = 20    # 5 face ranks x 4 suits


# ---------------------------------------------------------------------------
#  Card
# ---------------------------------------------------------------------------

_RANK_LABEL: dict[Rank, str] = {
    Rank.TWO: "2", Rank.THREE: "3", Rank.FOUR: "4", Rank.FIVE: "5",
    Rank.SIX: "6", Rank.SEVEN: "7", Rank.EIGHT: "8", Rank.NINE: "9",
    Rank.TEN: "10", Rank.JACK: "J", Rank.QUEEN: "Q", Rank.KING: "K",
    Rank.ACE: "A",
}

_LABEL_RANK: dict[str, Rank] = {v: k for k, v in _RANK_LABEL.items()}

_SUIT_SHORT: dict[Suit, str] = {
    Suit.SPADES: "S", Suit.HEARTS: "H",
    Suit.DIAMONDS: "D", Suit.CLUBS: "C",
}


@dataclass(frozen=True, slots=True)
class Card:
    suit: Suit
    rank: Rank
    # Set on the 4 hidden cards once they reach the Napoleon's hand.
    # Not part of the card's identity.
    was_hidden: bool = field(default=False, compare=False)

    @property
    def value(self) -> int:
        return int(self.rank)

    @property
    def card_id(self) -> str:
        """Stable identifier, e.g. ``'spades-A'``, ``'hearts-10'``."""
        return f"{self.suit.value}-{_RANK_LABEL[self.rank]}"

    def short(self) -> str:
        """Human-readable short label, e.g. 'SA', 'H10'."""
        return f"{_SUIT_SHORT[self.suit]}{_RANK_LABEL[self.rank]}"

    def mark_hidden(self) -> Card:
        return Card(self.suit, self.rank, was_hidden=True)

    def __repr__(self) -> str:
        return f"Card({self.short()})"


def rank_label(rank: Rank) -> str:
    return _RANK_LABEL[rank]


def card_from_id(card_id: str) -> Card:
    """Parse ``'<suit>-<rank>'`` back into a Card."""
    suit_part, sep, rank_part = str(card_id).partition("-")
    if not sep or rank_part not in _LABEL_RANK:
        raise ValueError(f"Invalid card id: {card_id!r}")
    try:
        suit = Suit(suit_part)
    except ValueError:
        raise ValueError(f"Invalid card id: {card_id!r}") from None
    return Card(suit, _LABEL_RANK[rank_part])


def is_face_card(card: Card) -> bool:
    return card.rank in FACE_RANKS


def count_face_cards(cards: Iterable[Card]) -> int:
    return sum(1 for c in cards if c.rank in FACE_RANKS)


# ---------------------------------------------------------------------------
#  Deck
# ---------------------------------------------------------------------------


def create_deck() -> List[Card]:
    """Create the full 52-card deck in suit-major order."""
    return [Card(s, r) for s in ALL_SUITS for r in ALL_RANKS]


def create_game_deck() -> List[Card]:
    """The 48-card variant deck with every 2 removed."""
    return [c for c in create_deck() if c.rank != Rank.TWO]


def shuffle_deck(deck: Sequence[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """Return a uniformly shuffled copy of *deck* (Fisher-Yates).

    The input sequence is left untouched.
    """
    rng = rng or random.Random()
    out = list(deck)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def partition_deck(deck: Sequence[Card]) -> tuple[list[list[Card]], list[Card]]:
    """Split an already-shuffled 52-card deck into hands and hidden cards.

    The first 4 cards are set aside as hidden cards; the remaining 48 go
    out in contiguous 12-card blocks, seat 0 first.
    """
    assert len(deck) == DECK_SIZE
    hidden = list(deck[:HIDDEN_SIZE])
    pos = HIDDEN_SIZE
    hands: list[list[Card]] = []
    for _ in range(NUM_PLAYERS):
        hands.append(list(deck[pos : pos + HAND_SIZE]))
        pos += HAND_SIZE
    return hands, hidden


def deal_cards(
    players: Sequence[Any],
    rng: Optional[random.Random] = None,
) -> tuple[list[list[Card]], list[Card]]:
    """Shuffle a fresh deck and deal it to exactly 4 players.

    Returns ``(hands, hidden)`` with hands in the same order as *players*.
    """
    if len(players) != NUM_PLAYERS:
        raise InvalidPlayerCountError(
            f"Napoleon needs exactly {NUM_PLAYERS} players, got {len(players)}"
        )
    return partition_deck(shuffle_deck(create_deck(), rng))


# ---------------------------------------------------------------------------
#  Display helpers
# ---------------------------------------------------------------------------

_SUIT_ORDER: dict[Suit, int] = {s: i for i, s in enumerate(ALL_SUITS)}


def sort_hand(hand: Iterable[Card]) -> List[Card]:
    """Display order: spades, hearts, diamonds, clubs; high values first."""
    return sorted(hand, key=lambda c: (_SUIT_ORDER[c.suit], -c.value))
