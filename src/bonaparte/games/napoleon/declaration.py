"""Napoleon declaration (bidding) rules.

A declaration names a target (number of face cards the Napoleon side
commits to capture) and a trump suit.  Each new declaration must
outbid the standing one: a higher target, or the same target with a
stronger suit (spades > hearts > diamonds > clubs).

The adjutant card is *not* part of the bid; it is nominated later, in
the Adjutant phase.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Sequence

from bonaparte.games.napoleon.cards import Card, NUM_PLAYERS, Suit, TOTAL_FACE_CARDS

MIN_TARGET: int = 13
MAX_TARGET: int = TOTAL_FACE_CARDS  # 20

SUIT_PRIORITY: dict[Suit, int] = {
    Suit.SPADES: 4,
    Suit.HEARTS: 3,
    Suit.DIAMONDS: 2,
    Suit.CLUBS: 1,
}

# Weakest first, the order in which suits are offered for a given target.
SUITS_BY_PRIORITY: tuple[Suit, ...] = tuple(sorted(SUIT_PRIORITY, key=SUIT_PRIORITY.__getitem__))


@dataclass(frozen=True, slots=True)
class NapoleonDeclaration:
    player_id: str
    target: int
    suit: Suit
    adjutant_card: Optional[Card] = None

    def with_adjutant(self, card: Optional[Card]) -> NapoleonDeclaration:
        return replace(self, adjutant_card=card)


def is_valid_declaration(
    declaration: NapoleonDeclaration,
    current: Optional[NapoleonDeclaration] = None,
) -> bool:
    if not isinstance(declaration.target, int) or isinstance(declaration.target, bool):
        return False
    if not (MIN_TARGET <= declaration.target <= MAX_TARGET):
        return False
    if not isinstance(declaration.suit, Suit):
        return False
    if current is None:
        return True
    if declaration.target > current.target:
        return True
    if declaration.target == current.target:
        return SUIT_PRIORITY[declaration.suit] > SUIT_PRIORITY[current.suit]
    return False


def minimum_declaration(
    current: Optional[NapoleonDeclaration] = None,
) -> tuple[int, list[Suit]]:
    """Lowest legal target and the suits available at that target.

    Returns an empty suit list once the ceiling (20, spades) is on the
    table.
    """
    if current is None:
        return MIN_TARGET, list(SUITS_BY_PRIORITY)
    stronger = [s for s in SUITS_BY_PRIORITY if SUIT_PRIORITY[s] > SUIT_PRIORITY[current.suit]]
    if stronger:
        return current.target, stronger
    if current.target < MAX_TARGET:
        return current.target + 1, list(SUITS_BY_PRIORITY)
    return MAX_TARGET + 1, []


def is_ceiling(declaration: NapoleonDeclaration) -> bool:
    """True when nothing can outbid *declaration*."""
    return not minimum_declaration(declaration)[1]


def legal_declarations(current: Optional[NapoleonDeclaration], player_id: str) -> list[NapoleonDeclaration]:
    """Every declaration that would outbid *current*, lowest first."""
    out: list[NapoleonDeclaration] = []
    for target in range(MIN_TARGET, MAX_TARGET + 1):
        for suit in SUITS_BY_PRIORITY:
            d = NapoleonDeclaration(player_id=player_id, target=target, suit=suit)
            if is_valid_declaration(d, current):
                out.append(d)
    return out


def next_declarer(
    player_ids: Sequence[str],
    passed: Sequence[str],
    current: Optional[NapoleonDeclaration],
    start: int,
) -> Optional[int]:
    """Seat index of the next player allowed to bid, or ``None``.

    Scans cyclically from seat *start*, skipping players who passed and
    the player holding the standing declaration.
    """
    holder = current.player_id if current is not None else None
    for i in range(NUM_PLAYERS):
        seat = (start + i) % len(player_ids)
        pid = player_ids[seat]
        if pid in passed or pid == holder:
            continue
        return seat
    return None
