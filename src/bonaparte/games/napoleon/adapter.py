"""NapoleonGame: implements GameInterface for trick-play search.

Wraps the Napoleon engine behind the generic GameInterface protocol
so that MCTS stays game-agnostic.

Key design points:
  - 4 players in two secret sides: Napoleon (+ adjutant) vs. citizens.
    ``same_team`` answers from the state's role flags, which in a
    determinized world are the *sampled* roles.
  - Action space = 52 (one per card in the deck).
  - Only the PLAYING phase is searched; bidding, adjutant nomination
    and the exchange are handled by ``bonaparte.bidding``.
  - ``determinize`` starts from what the searching player may see
    (``views.player_view``) so hidden roles and hands never leak into
    the sampled worlds.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from bonaparte.games.napoleon.cards import Card, NUM_PLAYERS, Suit, create_deck
from bonaparte.games.napoleon.game import (
    GameState,
    Phase,
    Trick,
    _play,
    legal_actions as _legal_actions,
)
from bonaparte.games.napoleon.rules import adjutant_candidates
from bonaparte.games.napoleon.scoring import is_game_decided, napoleon_side_ids, team_face_card_counts
from bonaparte.games.napoleon.views import player_view

# ---------------------------------------------------------------------------
#  Pre-computed card sets / indices
# ---------------------------------------------------------------------------

_DECK: tuple[Card, ...] = tuple(create_deck())

_CARD_IDX: dict[Card, int] = {c: i for i, c in enumerate(_DECK)}

NUM_CARDS: int = len(_DECK)


# ---------------------------------------------------------------------------
#  State wrapper
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class NapoleonNode:
    """Game node for search: underlying GameState + inference context.

    ``known_voids[p]`` is the set of suits that seat *p* is provably
    missing (inferred when they fail to follow suit).  It is public
    information: everybody saw the same plays.
    """

    gs: GameState
    known_voids: tuple[frozenset[Suit], ...]

    def clone(self) -> NapoleonNode:
        return NapoleonNode(gs=self.gs.clone(), known_voids=self.known_voids)


def infer_voids(tricks: Sequence[Trick], player_ids: Sequence[str]) -> tuple[frozenset[Suit], ...]:
    """Suits each seat has shown out of, from the given tricks."""
    voids: list[set[Suit]] = [set() for _ in player_ids]
    seat = {pid: i for i, pid in enumerate(player_ids)}
    for trick in tricks:
        lead = trick.leading_suit
        if lead is None:
            continue
        for pc in trick.cards[1:]:
            if pc.card.suit != lead:
                voids[seat[pc.player_id]].add(lead)
    return tuple(frozenset(v) for v in voids)


def node_from_state(gs: GameState) -> NapoleonNode:
    tricks = [*gs.tricks, gs.current_trick]
    return NapoleonNode(gs=gs, known_voids=infer_voids(tricks, gs.player_ids))


# ---------------------------------------------------------------------------
#  NapoleonGame
# ---------------------------------------------------------------------------


class NapoleonGame:
    """GameInterface implementation for the Napoleon play phase."""

    @property
    def num_players(self) -> int:
        return NUM_PLAYERS

    def current_player(self, state: NapoleonNode) -> int:
        return state.gs.current_player_index

    def legal_actions(self, state: NapoleonNode) -> list[Card]:
        return _legal_actions(state.gs)

    def apply(self, state: NapoleonNode, action: Card) -> NapoleonNode:
        node = state.clone()
        self.apply_in_place(node, action)
        return node

    def apply_in_place(self, node: NapoleonNode, action: Card) -> None:
        """Play *action* for the current seat, mutating *node*."""
        gs = node.gs
        gs.showing_trick_result = False
        seat = gs.current_player_index
        lead = gs.current_trick.leading_suit
        if lead is not None and action.suit != lead and lead not in node.known_voids[seat]:
            voids = list(node.known_voids)
            voids[seat] = voids[seat] | {lead}
            node.known_voids = tuple(voids)
        _play(gs, seat, action)

    def is_terminal(self, state: NapoleonNode) -> bool:
        return state.gs.phase == Phase.FINISHED

    def is_decided(self, state: NapoleonNode) -> bool:
        return is_game_decided(state.gs)

    def napoleon_won(self, state: NapoleonNode) -> bool:
        decl = state.gs.napoleon_declaration
        assert decl is not None
        return team_face_card_counts(state.gs).napoleon >= decl.target

    def on_napoleon_side(self, state: NapoleonNode, player: int) -> bool:
        return state.gs.players[player].id in napoleon_side_ids(state.gs)

    def outcome(self, state: NapoleonNode, player: int) -> float:
        won = self.napoleon_won(state)
        return 1.0 if won == self.on_napoleon_side(state, player) else 0.0

    def same_team(self, state: NapoleonNode, a: int, b: int) -> bool:
        return self.on_napoleon_side(state, a) == self.on_napoleon_side(state, b)

    # ------------------------------------------------------------------
    #  Action indexing
    # ------------------------------------------------------------------

    @property
    def action_space_size(self) -> int:
        return NUM_CARDS

    def action_to_index(self, action: Card) -> int:
        return _CARD_IDX[action]

    def index_to_action(self, index: int) -> Card:
        return _DECK[index]

    def legal_action_mask(self, state: NapoleonNode) -> np.ndarray:
        mask = np.zeros(NUM_CARDS, dtype=bool)
        for c in self.legal_actions(state):
            mask[_CARD_IDX[c]] = True
        return mask

    # ------------------------------------------------------------------
    #  Imperfect information
    # ------------------------------------------------------------------

    def determinize(
        self, state: NapoleonNode, player: int, rng: random.Random,
    ) -> NapoleonNode:
        """Sample a world consistent with *player*'s observations.

        1. Cards the player can see stay where they are: own hand,
           every played card, and (for the Napoleon) the discards.
        2. All other cards are dealt to the opponents in their exact
           hand sizes, respecting inferred voids; whatever is left over
           becomes the discard pile.
        3. The adjutant card is kept if the player knows it; otherwise
           one is re-nominated from the sampled Napoleon hand.  The
           sampled holder gets the adjutant role.
        """
        gs = state.gs
        pid = gs.players[player].id
        view = player_view(gs, pid)
        world = gs.clone()

        # 1. Identify all cards visible to the observer
        known: set[Card] = set(view.hand)
        known.update(view.played_cards())
        known.update(view.exchanged_cards)

        # 2. Unknown cards = full deck minus all known
        unknown = [c for c in _DECK if c not in known]
        opps = [i for i in range(NUM_PLAYERS) if i != player]
        # Most constrained first so voided players still get legal cards.
        opps.sort(key=lambda i: -len(state.known_voids[i]))

        pool = list(unknown)
        rng.shuffle(pool)
        for opp in opps:
            need = view.hand_sizes[opp]
            voids = state.known_voids[opp]
            if voids:
                eligible = [c for c in pool if c.suit not in voids]
                ineligible = [c for c in pool if c.suit in voids]
                if len(eligible) >= need:
                    assigned = eligible[:need]
                    pool = eligible[need:] + ineligible
                else:
                    # Inconsistent constraints; fill up with what is left.
                    short = need - len(eligible)
                    assigned = eligible + ineligible[:short]
                    pool = ineligible[short:]
            else:
                assigned = pool[:need]
                pool = pool[need:]
            world.players[opp].hand = assigned

        if not view.is_napoleon:
            world.exchanged_cards = pool
        else:
            assert not pool

        # 3. Roles
        decl = world.napoleon_declaration
        if decl is not None:
            adj = view.adjutant_card if view.adjutant_card_known else self._guess_adjutant(world, view.hand)
            world.napoleon_declaration = decl.with_adjutant(adj)
            holder = self._holder_of(world, adj) if adj is not None else None
            for i, p in enumerate(world.players):
                if not p.is_napoleon:
                    p.is_adjutant = holder == i

        return NapoleonNode(gs=world, known_voids=state.known_voids)

    @staticmethod
    def _guess_adjutant(world: GameState, observer_hand: Sequence[Card]) -> Optional[Card]:
        """Plausible nominee for an observer who was not told the card."""
        nap = next((p for p in world.players if p.is_napoleon), None)
        if nap is None or world.trump_suit is None:
            return None
        played = {pc.card for t in world.tricks for pc in t.cards}
        played.update(pc.card for pc in world.current_trick.cards)
        for card in adjutant_candidates(world.trump_suit):
            if card in nap.hand or card in played or card in observer_hand:
                continue
            return card
        return None

    @staticmethod
    def _holder_of(world: GameState, card: Card) -> Optional[int]:
        for i, p in enumerate(world.players):
            if card in p.hand:
                return i
        for trick in (*world.tricks, world.current_trick):
            for pc in trick.cards:
                if pc.card == card:
                    return world.player_ids.index(pc.player_id)
        return None
