"""Per-player projections of a GameState.

The full GameState knows everything: every hand, the hidden cards,
the nominated adjutant card and who holds it.  Players, and the AI
acting for them, only ever see a ``PlayerView``:

  * their own hand, and only the *sizes* of the other hands;
  * the public trick history and the open trick;
  * trump and the public part of the declaration (player, target, suit);
  * the adjutant card, only for the Napoleon, the player holding it, or
    once it has been played;
  * who the adjutant is, only for the adjutant themself or after the
    adjutant card has been played;
  * hidden / exchanged cards, only for the Napoleon.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from bonaparte.games.napoleon.cards import Card, Suit, rank_label, sort_hand
from bonaparte.games.napoleon.game import (
    GameState,
    Phase,
    Trick,
    adjutant_player,
    adjutant_revealed,
    get_player,
    legal_actions,
    seat_of,
)
from bonaparte.games.napoleon.rules import legal_plays


@dataclass(frozen=True, slots=True)
class PlayerView:
    game_id: str
    version: int
    viewer_id: str
    viewer_seat: int
    phase: Phase
    player_ids: tuple[str, ...]
    hand: tuple[Card, ...]
    hand_sizes: tuple[int, ...]
    tricks: tuple[Trick, ...]
    current_trick: Trick
    current_player_index: int
    trump_suit: Optional[Suit]
    napoleon_id: Optional[str]
    target: Optional[int]
    adjutant_card: Optional[Card]     # None when unknown to the viewer
    adjutant_id: Optional[str]        # None when unknown (or nobody)
    adjutant_card_known: bool         # True also for a lone Napoleon (card None)
    is_napoleon: bool
    is_adjutant: bool
    hidden_cards: tuple[Card, ...]
    exchanged_cards: tuple[Card, ...]

    @property
    def role(self) -> str:
        if self.is_napoleon:
            return "napoleon"
        if self.is_adjutant:
            return "adjutant"
        return "citizen"

    def played_cards(self) -> list[Card]:
        out = [pc.card for t in self.tricks for pc in t.cards]
        out.extend(pc.card for pc in self.current_trick.cards)
        return out

    def legal_cards(self) -> list[Card]:
        if self.phase != Phase.PLAYING or self.current_player_index != self.viewer_seat:
            return []
        return legal_plays(list(self.hand), self.current_trick.leading_suit)


def player_view(state: GameState, viewer_id: str) -> PlayerView:
    seat = seat_of(state, viewer_id)
    viewer = state.players[seat]
    decl = state.napoleon_declaration
    revealed = adjutant_revealed(state)

    adj_card: Optional[Card] = None
    if decl is not None and decl.adjutant_card is not None:
        if viewer.is_napoleon or decl.adjutant_card in viewer.hand or revealed:
            adj_card = decl.adjutant_card

    adj_id: Optional[str] = None
    holder = adjutant_player(state)
    if viewer.is_adjutant or revealed:
        if holder is not None:
            adj_id = holder.id
        elif revealed and decl is not None:
            adj_id = decl.player_id   # self-adjutant

    return PlayerView(
        game_id=state.id,
        version=state.version,
        viewer_id=viewer_id,
        viewer_seat=seat,
        phase=state.phase,
        player_ids=tuple(state.player_ids),
        hand=tuple(viewer.hand),
        hand_sizes=tuple(len(p.hand) for p in state.players),
        tricks=tuple(state.tricks),
        current_trick=state.current_trick,
        current_player_index=state.current_player_index,
        trump_suit=state.trump_suit,
        napoleon_id=decl.player_id if decl is not None else None,
        target=decl.target if decl is not None else None,
        adjutant_card=adj_card,
        adjutant_id=adj_id,
        adjutant_card_known=adj_card is not None or viewer.is_napoleon,
        is_napoleon=viewer.is_napoleon,
        is_adjutant=viewer.is_adjutant,
        hidden_cards=tuple(state.hidden_cards) if viewer.is_napoleon and state.phase != Phase.NAPOLEON else (),
        exchanged_cards=tuple(state.exchanged_cards) if viewer.is_napoleon else (),
    )


# ---------------------------------------------------------------------------
#  JSON projection (transport boundary)
# ---------------------------------------------------------------------------


def card_json(c: Card) -> dict[str, Any]:
    return {"id": c.card_id, "suit": c.suit.value, "rank": rank_label(c.rank), "value": c.value,
            "wasHidden": c.was_hidden}


def trick_json(t: Trick) -> dict[str, Any]:
    return {
        "id": t.id,
        "cards": [
            {"card": card_json(pc.card), "playerId": pc.player_id, "order": pc.order,
             "revealsAdjutant": pc.reveals_adjutant}
            for pc in t.cards
        ],
        "leadingSuit": t.leading_suit.value if t.leading_suit else None,
        "winnerPlayerId": t.winner_player_id,
        "completed": t.completed,
    }


def public_state(state: GameState, viewer_id: str) -> dict[str, Any]:
    """What *viewer_id* is allowed to see, as a JSON-ready dict."""
    view = player_view(state, viewer_id)
    players = []
    for i, p in enumerate(state.players):
        players.append({
            "id": p.id,
            "name": p.name,
            "position": p.position,
            "isAI": p.is_ai,
            "isNapoleon": p.is_napoleon,
            "isAdjutant": p.id == view.adjutant_id,
            "handSize": view.hand_sizes[i],
        })
    decl = None
    if view.napoleon_id is not None:
        decl = {
            "playerId": view.napoleon_id,
            "targetTricks": view.target,
            "suit": state.napoleon_declaration.suit.value,
            "adjutantCard": card_json(view.adjutant_card) if view.adjutant_card else None,
        }
    legal = view.legal_cards() if not state.showing_trick_result else []
    return {
        "gameId": state.id,
        "version": state.version,
        "phase": state.phase.value,
        "viewerId": viewer_id,
        "hand": [card_json(c) for c in sort_hand(view.hand)],
        "legalCards": [card_json(c) for c in legal],
        "players": players,
        "currentPlayerId": state.players[state.current_player_index].id,
        "currentTrick": trick_json(state.current_trick),
        "tricks": [trick_json(t) for t in state.tricks],
        "trumpSuit": state.trump_suit.value if state.trump_suit else None,
        "napoleonDeclaration": decl,
        "passedPlayers": list(state.passed_players),
        "needsRedeal": state.needs_redeal,
        "hiddenCards": [card_json(c) for c in view.hidden_cards],
        "exchangedCards": [card_json(c) for c in view.exchanged_cards],
        "showingTrickResult": state.showing_trick_result,
        "lastCompletedTrick": trick_json(state.last_completed_trick) if state.last_completed_trick else None,
        "reshuffleCount": state.reshuffle_count,
        "canAct": viewer_can_act(state, viewer_id),
    }


def viewer_can_act(state: GameState, viewer_id: str) -> bool:
    """Whether *viewer_id* is the one the game is waiting on."""
    if state.phase in (Phase.SETUP, Phase.DEALING, Phase.FINISHED):
        return False
    if state.phase == Phase.PLAYING and state.showing_trick_result:
        return False
    if state.phase == Phase.PLAYING:
        return state.players[state.current_player_index].id == viewer_id and bool(legal_actions(state))
    return get_player(state, viewer_id) is state.players[state.current_player_index]
