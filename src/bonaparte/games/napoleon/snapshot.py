"""Full-view snapshots for the persistence boundary.

``state_to_dict`` / ``state_from_dict`` convert a complete GameState to
and from plain JSON-ready data.  Unlike ``views.public_state`` nothing
is masked, so snapshots must never be sent to a player.
"""

from __future__ import annotations

from typing import Any, Optional

from bonaparte.games.napoleon.cards import Card, Suit, card_from_id
from bonaparte.games.napoleon.declaration import NapoleonDeclaration
from bonaparte.games.napoleon.game import GameState, Phase, PlayedCard, Player, Trick


def _card(c: Card) -> dict[str, Any]:
    d: dict[str, Any] = {"id": c.card_id}
    if c.was_hidden:
        d["wasHidden"] = True
    return d


def _card_back(obj: Any) -> Card:
    if isinstance(obj, str):
        return card_from_id(obj)
    card = card_from_id(obj["id"])
    return card.mark_hidden() if obj.get("wasHidden") else card


def _suit(s: Optional[Suit]) -> Optional[str]:
    return s.value if s is not None else None


def _suit_back(s: Optional[str]) -> Optional[Suit]:
    return Suit(s) if s is not None else None


def _trick(t: Trick) -> dict[str, Any]:
    return {
        "id": t.id,
        "cards": [
            {"card": _card(pc.card), "playerId": pc.player_id, "order": pc.order,
             "revealsAdjutant": pc.reveals_adjutant}
            for pc in t.cards
        ],
        "leadingSuit": _suit(t.leading_suit),
        "winnerPlayerId": t.winner_player_id,
        "completed": t.completed,
    }


def _trick_back(d: dict[str, Any]) -> Trick:
    return Trick(
        id=d["id"],
        cards=[
            PlayedCard(_card_back(pc["card"]), pc["playerId"], int(pc["order"]),
                       bool(pc.get("revealsAdjutant", False)))
            for pc in d.get("cards", [])
        ],
        leading_suit=_suit_back(d.get("leadingSuit")),
        winner_player_id=d.get("winnerPlayerId"),
        completed=bool(d.get("completed", False)),
    )


def state_to_dict(state: GameState) -> dict[str, Any]:
    decl = state.napoleon_declaration
    return {
        "id": state.id,
        "players": [
            {"id": p.id, "name": p.name, "position": p.position,
             "hand": [_card(c) for c in p.hand], "isNapoleon": p.is_napoleon,
             "isAdjutant": p.is_adjutant, "isAI": p.is_ai}
            for p in state.players
        ],
        "phase": state.phase.value,
        "currentTrick": _trick(state.current_trick),
        "tricks": [_trick(t) for t in state.tricks],
        "currentPlayerIndex": state.current_player_index,
        "napoleonDeclaration": None if decl is None else {
            "playerId": decl.player_id,
            "targetTricks": decl.target,
            "suit": decl.suit.value,
            "adjutantCard": _card(decl.adjutant_card) if decl.adjutant_card else None,
        },
        "leadingSuit": _suit(state.leading_suit),
        "trumpSuit": _suit(state.trump_suit),
        "hiddenCards": [_card(c) for c in state.hidden_cards],
        "passedPlayers": list(state.passed_players),
        "declarationTurn": state.declaration_turn,
        "needsRedeal": state.needs_redeal,
        "exchangedCards": [_card(c) for c in state.exchanged_cards],
        "showingTrickResult": state.showing_trick_result,
        "lastCompletedTrick": _trick(state.last_completed_trick) if state.last_completed_trick else None,
        "reshuffleCount": state.reshuffle_count,
        "lastReshuffleReason": state.last_reshuffle_reason,
        "version": state.version,
        "createdAt": state.created_at,
        "updatedAt": state.updated_at,
    }


def state_from_dict(d: dict[str, Any]) -> GameState:
    """Rebuild a GameState; raises ``ValueError`` / ``KeyError`` on malformed input."""
    decl_d = d.get("napoleonDeclaration")
    decl = None
    if decl_d is not None:
        adj = decl_d.get("adjutantCard")
        decl = NapoleonDeclaration(
            player_id=decl_d["playerId"],
            target=int(decl_d["targetTricks"]),
            suit=Suit(decl_d["suit"]),
            adjutant_card=_card_back(adj) if adj else None,
        )
    tricks = [_trick_back(t) for t in d.get("tricks", [])]
    last = d.get("lastCompletedTrick")
    last_trick = None
    if last is not None:
        # Keep identity with the history entry when it is there.
        last_trick = next((t for t in tricks if t.id == last["id"]), None) or _trick_back(last)
    return GameState(
        id=d["id"],
        players=[
            Player(id=p["id"], name=p["name"], position=int(p["position"]),
                   hand=[_card_back(c) for c in p.get("hand", [])],
                   is_napoleon=bool(p.get("isNapoleon", False)),
                   is_adjutant=bool(p.get("isAdjutant", False)),
                   is_ai=bool(p.get("isAI", False)))
            for p in d["players"]
        ],
        phase=Phase(d["phase"]),
        current_trick=_trick_back(d["currentTrick"]),
        tricks=tricks,
        current_player_index=int(d.get("currentPlayerIndex", 0)),
        napoleon_declaration=decl,
        leading_suit=_suit_back(d.get("leadingSuit")),
        trump_suit=_suit_back(d.get("trumpSuit")),
        hidden_cards=[_card_back(c) for c in d.get("hiddenCards", [])],
        passed_players=list(d.get("passedPlayers", [])),
        declaration_turn=int(d.get("declarationTurn", 0)),
        needs_redeal=bool(d.get("needsRedeal", False)),
        exchanged_cards=[_card_back(c) for c in d.get("exchangedCards", [])],
        showing_trick_result=bool(d.get("showingTrickResult", False)),
        last_completed_trick=last_trick,
        reshuffle_count=int(d.get("reshuffleCount", 0)),
        last_reshuffle_reason=d.get("lastReshuffleReason"),
        version=int(d.get("version", 0)),
        created_at=float(d.get("createdAt", 0.0)),
        updated_at=float(d.get("updatedAt", 0.0)),
    )
