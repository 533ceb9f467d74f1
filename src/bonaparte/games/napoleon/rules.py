"""Napoleon trick-taking rules.

Card precedence inside a trick (strongest first):

  1. Mighty: the Ace of Spades, regardless of trump or the led suit.
  2. Trump Jack ("front Jack"): Jack of the trump suit.
  3. Reverse Jack ("back Jack"): Jack of the same-colour suit
     (spades <-> clubs, hearts <-> diamonds).
  4. Other trumps, by value.
  5. Cards of the led suit, by value.
  6. Everything else never wins.

Follow-suit is mandatory when possible; a void player may play any
card and is *not* obliged to trump.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from bonaparte.games.napoleon.cards import ALL_SUITS, Card, Rank, Suit

MIGHTY: Card = Card(Suit.SPADES, Rank.ACE)

_REVERSE_SUIT: dict[Suit, Suit] = {
    Suit.SPADES: Suit.CLUBS,
    Suit.CLUBS: Suit.SPADES,
    Suit.HEARTS: Suit.DIAMONDS,
    Suit.DIAMONDS: Suit.HEARTS,
}

MIGHTY_STRENGTH = 1000
TRUMP_JACK_STRENGTH = 900
REVERSE_JACK_STRENGTH = 800
TRUMP_BASE = 700
LEAD_BASE = 600


# ---------------------------------------------------------------------------
#  Special cards
# ---------------------------------------------------------------------------


def reverse_suit(trump: Suit) -> Suit:
    """Same-colour partner suit of *trump* (a fixed involution)."""
    return _REVERSE_SUIT[trump]


def is_mighty(card: Card) -> bool:
    return card == MIGHTY


def trump_jack(trump: Suit) -> Card:
    return Card(trump, Rank.JACK)


def reverse_jack(trump: Suit) -> Card:
    return Card(_REVERSE_SUIT[trump], Rank.JACK)


def is_trump_jack(card: Card, trump: Optional[Suit]) -> bool:
    return trump is not None and card.rank == Rank.JACK and card.suit == trump


def is_reverse_jack(card: Card, trump: Optional[Suit]) -> bool:
    return (
        trump is not None
        and card.rank == Rank.JACK
        and card.suit == _REVERSE_SUIT[trump]
    )


def is_special_card(card: Card, trump: Optional[Suit]) -> bool:
    return is_mighty(card) or is_trump_jack(card, trump) or is_reverse_jack(card, trump)


def card_strength(card: Card, trump: Optional[Suit], leading: Optional[Suit]) -> int:
    """Absolute trick strength of *card* in the given context.

    Higher always beats lower, so the trick winner is simply the card
    with the maximum strength.  Cards that are neither trump nor of the
    led suit keep their bare value and can never win a trick that has
    a led-suit card in it.
    """
    if is_mighty(card):
        return MIGHTY_STRENGTH
    if is_trump_jack(card, trump):
        return TRUMP_JACK_STRENGTH
    if is_reverse_jack(card, trump):
        return REVERSE_JACK_STRENGTH
    if trump is not None and card.suit == trump:
        return TRUMP_BASE + card.value
    if leading is not None and card.suit == leading:
        return LEAD_BASE + card.value
    return card.value


# ---------------------------------------------------------------------------
#  Adjutant nomination
# ---------------------------------------------------------------------------


def adjutant_candidates(trump: Suit) -> list[Card]:
    """Nomination order: Mighty, trump Jack, reverse Jack, then plain Aces."""
    out = [MIGHTY, trump_jack(trump), reverse_jack(trump)]
    out.extend(Card(s, Rank.ACE) for s in ALL_SUITS if s != Suit.SPADES)
    return out


def select_adjutant_card(hand: Iterable[Card], trump: Suit) -> Optional[Card]:
    """The card the Napoleon names to identify the secret adjutant.

    Picks the first candidate the Napoleon does *not* hold.  Returns
    ``None`` when every candidate is already in hand, meaning the
    Napoleon plays alone.
    """
    held = set(hand)
    for card in adjutant_candidates(trump):
        if card not in held:
            return card
    return None


# ---------------------------------------------------------------------------
#  Legal plays
# ---------------------------------------------------------------------------


def can_follow_suit(hand: Iterable[Card], leading: Suit) -> bool:
    return any(c.suit == leading for c in hand)


def legal_plays(hand: Sequence[Card], leading: Optional[Suit]) -> list[Card]:
    """Cards that may legally be played from *hand*.

    The first card of a trick is unrestricted.  Afterwards a player
    holding the led suit must play it; otherwise any card is legal.
    """
    if leading is None:
        return list(hand)
    same = [c for c in hand if c.suit == leading]
    return same if same else list(hand)


# ---------------------------------------------------------------------------
#  Trick resolution
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TrickResult:
    cards: tuple[Card, ...]
    players: tuple[str, ...]
    winner: str


def trick_winner(
    plays: Sequence[tuple[str, Card]],
    *,
    trump: Optional[Suit],
    leading: Optional[Suit] = None,
) -> tuple[str, Card]:
    """Return the winning ``(player_id, card)`` pair of a trick."""
    if not plays:
        raise ValueError("Cannot determine the winner of an empty trick")
    lead = leading if leading is not None else plays[0][1].suit
    best = plays[0]
    best_strength = card_strength(best[1], trump, lead)
    for pid, card in plays[1:]:
        s = card_strength(card, trump, lead)
        if s > best_strength:
            best, best_strength = (pid, card), s
    return best


def resolve_trick(
    plays: Sequence[tuple[str, Card]],
    *,
    trump: Optional[Suit],
) -> TrickResult:
    winner, _ = trick_winner(plays, trump=trump)
    return TrickResult(
        cards=tuple(c for _, c in plays),
        players=tuple(p for p, _ in plays),
        winner=winner,
    )
