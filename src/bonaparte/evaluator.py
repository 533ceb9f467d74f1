"""Strategic card evaluation for Napoleon.

``evaluate_card_strategic_value`` scores one candidate card for one
player as a sum of weighted terms:

  base strength   card_strength() with the led suit (or trump, when leading)
  special cards   Mighty +500, reverse Jack +400, trump Jack +350, trump +200
  role            Napoleon favours strong cards, the adjutant wants to show
                  the adjutant card (+500), citizens lead low / hoard high
  game phase      small offsets for early / middle / late game
  suit exhaustion cheap off-suit discards when void in the led suit
  trick potential taking the trick so far, worth more with face cards in it
  endgame         late in the game, winning cards are worth more to the side
                  that still needs face cards

Everything is read through ``player_view`` so the score can only use
what the evaluating player is allowed to know.  The function has no
randomness: identical inputs always give identical scores, which MCTS
rollouts and the tests rely on.
"""

from __future__ import annotations

from typing import Optional, Sequence

from bonaparte.games.napoleon.cards import Card, Suit, TRICKS_PER_GAME, count_face_cards
from bonaparte.games.napoleon.declaration import MAX_TARGET
from bonaparte.games.napoleon.game import GameState, Player
from bonaparte.games.napoleon.rules import (
    card_strength,
    is_mighty,
    is_reverse_jack,
    is_special_card,
    is_trump_jack,
)
from bonaparte.games.napoleon.views import PlayerView, player_view

# Special-card bonuses
MIGHTY_BONUS = 500
REVERSE_JACK_BONUS = 400
TRUMP_JACK_BONUS = 350
TRUMP_BONUS = 200

ADJUTANT_CARD_BONUS = 500

# Lead-selection threshold: citizens lead with cards scoring below this.
STRONG_CARD_THRESHOLD = 500

ENDGAME_PROGRESS = 2 / 3


def _context(view: PlayerView) -> tuple[Suit, Suit]:
    trump = view.trump_suit or Suit.SPADES
    trick = view.current_trick
    leading = trick.leading_suit if trick.cards else trump
    return trump, leading


def _progress(view: PlayerView) -> float:
    return len(view.tricks) / TRICKS_PER_GAME


def _best_in_trick(view: PlayerView, trump: Suit, leading: Suit) -> tuple[Optional[str], int]:
    best_pid: Optional[str] = None
    best = -1
    for pc in view.current_trick.cards:
        s = card_strength(pc.card, trump, leading)
        if s > best:
            best_pid, best = pc.player_id, s
    return best_pid, best


def _side_of(view: PlayerView, player_id: str) -> Optional[bool]:
    """True = Napoleon side, False = citizens, None = unknown to the viewer."""
    if player_id == view.napoleon_id:
        return True
    if view.adjutant_id is not None:
        return player_id == view.adjutant_id
    if view.adjutant_card_known and view.adjutant_card is None:
        return False      # lone Napoleon, everybody else is a citizen
    if player_id == view.viewer_id:
        return view.is_napoleon or view.is_adjutant
    return None


def _known_face_counts(view: PlayerView) -> tuple[int, int]:
    """Face cards won so far by (Napoleon side, citizens), as far as known.

    Tricks won by a player of unknown allegiance count for the citizens.
    """
    nap = cit = 0
    for trick in view.tricks:
        n = count_face_cards(pc.card for pc in trick.cards)
        if _side_of(view, trick.winner_player_id) is True:
            nap += n
        else:
            cit += n
    return nap, cit


def _deficit(view: PlayerView) -> int:
    """Face cards the viewer's side still needs to secure its goal."""
    if view.target is None:
        return 0
    nap, cit = _known_face_counts(view)
    if view.is_napoleon or view.is_adjutant:
        return max(0, view.target - nap)
    # Citizens defeat the contract once the Napoleon side can no longer reach it.
    return max(0, MAX_TARGET - view.target + 1 - cit)


# ---------------------------------------------------------------------------
#  Scoring terms
# ---------------------------------------------------------------------------


def _special_bonus(card: Card, trump: Suit) -> int:
    if is_mighty(card):
        return MIGHTY_BONUS
    if is_reverse_jack(card, trump):
        return REVERSE_JACK_BONUS
    if is_trump_jack(card, trump):
        return TRUMP_JACK_BONUS
    if card.suit == trump:
        return TRUMP_BONUS
    return 0


def _role_bonus(card: Card, base: int, view: PlayerView) -> int:
    if view.is_napoleon:
        return 100 if base > 700 else 0
    if view.is_adjutant:
        bonus = 50 if 400 <= base <= 600 else 0
        if view.adjutant_card is not None and card == view.adjutant_card:
            bonus += ADJUTANT_CARD_BONUS
        return bonus
    bonus = 0
    if base < 300:
        bonus += 30
    if base > 800:
        bonus += 80
    return bonus


def _phase_bonus(view: PlayerView) -> int:
    progress = _progress(view)
    if progress < 0.3:
        return 20 if view.is_napoleon else -20
    if progress < 0.7:
        return 30
    return 50 if view.is_napoleon else 40


def _context_bonus(card: Card, base: int, view: PlayerView, trump: Suit, leading: Suit) -> int:
    trick = view.current_trick
    if not trick.cards:
        return 0
    bonus = 0
    void = not any(c.suit == leading for c in view.hand)
    if void and card.suit != trump and not is_special_card(card, trump):
        bonus += (15 - card.value) * 2

    _, best = _best_in_trick(view, trump, leading)
    if base > best:
        bonus += 60 + 10 * count_face_cards(pc.card for pc in trick.cards)
        if _progress(view) >= ENDGAME_PROGRESS:
            bonus += 15 * _deficit(view)
    return bonus


def evaluate_card_strategic_value(
    card: Card,
    state: GameState,
    player: Player,
    view: Optional[PlayerView] = None,
) -> int:
    """Desirability of *player* playing *card* now (higher = better).

    *view* may be passed in when the caller already built it for
    *player*; it must match *state*.
    """
    if view is None:
        view = player_view(state, player.id)
    trump, leading = _context(view)
    base = card_strength(card, trump, leading)

    value = base
    value += _special_bonus(card, trump)
    value += _role_bonus(card, base, view)
    value += _phase_bonus(view)
    value += _context_bonus(card, base, view, trump, leading)
    return value


# ---------------------------------------------------------------------------
#  Card choice
# ---------------------------------------------------------------------------


def best_card_by_value(cards: Sequence[Card], state: GameState, player: Player) -> Optional[Card]:
    """Highest-scoring card; ties go to the first one in *cards*."""
    if not cards:
        return None
    view = player_view(state, player.id)
    best = cards[0]
    best_score = evaluate_card_strategic_value(best, state, player, view)
    for card in cards[1:]:
        score = evaluate_card_strategic_value(card, state, player, view)
        if score > best_score:
            best, best_score = card, score
    return best


def _select_lead(cards: Sequence[Card], state: GameState, player: Player, view: PlayerView) -> Card:
    trump, leading = _context(view)
    scored = [
        (evaluate_card_strategic_value(c, state, player, view), c)
        for c in cards
    ]
    if view.is_napoleon:
        biased = [(s + (100 if card_strength(c, trump, leading) > 600 else -50), c) for s, c in scored]
        return max(biased, key=lambda sc: sc[0])[1]
    weak = [sc for sc in scored if sc[0] < STRONG_CARD_THRESHOLD]
    if weak:
        return min(weak, key=lambda sc: sc[0])[1]
    return max(scored, key=lambda sc: sc[0])[1]


def _select_follow(cards: Sequence[Card], view: PlayerView) -> Card:
    trump, leading = _context(view)
    best_pid, best = _best_in_trick(view, trump, leading)
    by_strength = sorted(cards, key=lambda c: card_strength(c, trump, leading))
    winners = [c for c in by_strength if card_strength(c, trump, leading) > best]

    my_side = view.is_napoleon or view.is_adjutant
    partner_winning = best_pid is not None and _side_of(view, best_pid) is my_side
    if winners and not partner_winning:
        return winners[0]
    return by_strength[0]


def select_best_strategic_card(
    cards: Sequence[Card],
    state: GameState,
    player: Player,
) -> Optional[Card]:
    """Role-aware lead / follow policy.

    Leading: the Napoleon opens with its strongest card; others lead
    with their weakest card scoring below 500 and only lead strength
    when they hold nothing else.  Following: take the trick with the
    cheapest winning card unless a known partner already has it,
    otherwise throw the weakest card.
    """
    if not cards:
        return None
    if len(cards) == 1:
        return cards[0]
    view = player_view(state, player.id)
    if not view.current_trick.cards:
        return _select_lead(cards, state, player, view)
    return _select_follow(cards, view)
