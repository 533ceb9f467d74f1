"""Face-card accounting and end-of-game scoring.

The Napoleon side (Napoleon + adjutant, if any) wins when the face
cards contained in the tricks it took reach the declared target.

Point awards, with ``n`` = face cards captured by the Napoleon side:

  Napoleon   win: NAPOLEON_BONUS + n * BASE_POINTS          loss: -NAPOLEON_BONUS / 2
  Adjutant   win: ADJUTANT_BONUS + n * BASE_POINTS / 2      loss: -ADJUTANT_BONUS / 2
  Citizen    win: ADJUTANT_BONUS + (20 - n) * BASE_POINTS / 2
             loss: -BASE_POINTS
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bonaparte.games.napoleon.cards import (
    TOTAL_FACE_CARDS,
    TRICKS_PER_GAME,
    count_face_cards,
)
from bonaparte.games.napoleon.game import GameState, Phase, napoleon_player

NAPOLEON_BONUS: int = 100
BASE_POINTS: int = 10
ADJUTANT_BONUS: int = 50


@dataclass(frozen=True, slots=True)
class TeamCounts:
    napoleon: int      # face cards won by Napoleon + adjutant
    citizens: int      # face cards won by everybody else


@dataclass(frozen=True, slots=True)
class PlayerScore:
    player_id: str
    role: str          # "napoleon" | "adjutant" | "citizen"
    face_cards: int    # face cards in tricks this player won
    tricks_won: int
    points: int


@dataclass(frozen=True, slots=True)
class GameResult:
    napoleon_won: bool
    target: int
    napoleon_face_cards: int
    citizen_face_cards: int
    scores: tuple[PlayerScore, ...]

    def score_for(self, player_id: str) -> int:
        for s in self.scores:
            if s.player_id == player_id:
                return s.points
        raise KeyError(player_id)


# ---------------------------------------------------------------------------
#  Progress and face-card counts
# ---------------------------------------------------------------------------


def game_progress(state: GameState) -> float:
    """Completed tricks as a fraction of the 12 in a game."""
    return len(state.tricks) / TRICKS_PER_GAME


def napoleon_side_ids(state: GameState) -> set[str]:
    return {p.id for p in state.players if p.is_napoleon or p.is_adjutant}


def player_role(state: GameState, player_id: str) -> str:
    for p in state.players:
        if p.id == player_id:
            if p.is_napoleon:
                return "napoleon"
            if p.is_adjutant:
                return "adjutant"
            return "citizen"
    raise KeyError(player_id)


def face_cards_won(state: GameState, player_id: str) -> int:
    return sum(
        count_face_cards(pc.card for pc in trick.cards)
        for trick in state.tricks
        if trick.winner_player_id == player_id
    )


def team_face_card_counts(state: GameState) -> TeamCounts:
    side = napoleon_side_ids(state)
    nap = cit = 0
    for trick in state.tricks:
        n = count_face_cards(pc.card for pc in trick.cards)
        if trick.winner_player_id in side:
            nap += n
        else:
            cit += n
    return TeamCounts(napoleon=nap, citizens=cit)


def remaining_face_cards(state: GameState) -> int:
    """Face cards still to be won in tricks (hands + the open trick)."""
    n = sum(count_face_cards(p.hand) for p in state.players)
    n += count_face_cards(pc.card for pc in state.current_trick.cards)
    return n


def is_game_decided(state: GameState) -> bool:
    """True when the outcome can no longer change.

    Either the Napoleon side has reached its target, or even winning
    every remaining face card would leave it short.
    """
    decl = state.napoleon_declaration
    if decl is None or state.phase not in (Phase.PLAYING, Phase.FINISHED):
        return False
    counts = team_face_card_counts(state)
    if counts.napoleon >= decl.target:
        return True
    return counts.napoleon + remaining_face_cards(state) < decl.target


def napoleon_wins(state: GameState) -> Optional[bool]:
    """Outcome once decided, else ``None``."""
    decl = state.napoleon_declaration
    if decl is None or not is_game_decided(state):
        return None
    return team_face_card_counts(state).napoleon >= decl.target


def player_stats(state: GameState, player_id: str) -> dict[str, object]:
    won = [t for t in state.tricks if t.winner_player_id == player_id]
    return {
        "playerId": player_id,
        "role": player_role(state, player_id),
        "tricksWon": len(won),
        "faceCards": sum(count_face_cards(pc.card for pc in t.cards) for t in won),
    }


# ---------------------------------------------------------------------------
#  Final scoring
# ---------------------------------------------------------------------------


def _points(role: str, napoleon_won: bool, n: int) -> int:
    if role == "napoleon":
        pts = NAPOLEON_BONUS + n * BASE_POINTS if napoleon_won else -NAPOLEON_BONUS / 2
    elif role == "adjutant":
        pts = ADJUTANT_BONUS + n * BASE_POINTS / 2 if napoleon_won else -ADJUTANT_BONUS / 2
    elif napoleon_won:
        pts = -BASE_POINTS
    else:
        pts = ADJUTANT_BONUS + (TOTAL_FACE_CARDS - n) * BASE_POINTS / 2
    return int(round(pts))


def calculate_game_result(state: GameState) -> GameResult:
    if state.phase != Phase.FINISHED:
        raise ValueError(f"Game is not finished (phase={state.phase.value})")
    decl = state.napoleon_declaration
    assert decl is not None
    assert napoleon_player(state) is not None

    counts = team_face_card_counts(state)
    won = counts.napoleon >= decl.target
    scores = []
    for p in state.players:
        role = player_role(state, p.id)
        scores.append(PlayerScore(
            player_id=p.id,
            role=role,
            face_cards=face_cards_won(state, p.id),
            tricks_won=sum(1 for t in state.tricks if t.winner_player_id == p.id),
            points=_points(role, won, counts.napoleon),
        ))
    return GameResult(
        napoleon_won=won,
        target=decl.target,
        napoleon_face_cards=counts.napoleon,
        citizen_face_cards=counts.citizens,
        scores=tuple(scores),
    )
