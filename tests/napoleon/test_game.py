"""Tests for the Napoleon game engine: bidding, adjutant, exchange, trick play."""

from __future__ import annotations

import random

import pytest

from bonaparte.games.napoleon.cards import Card, Rank, Suit, create_deck, partition_deck
from bonaparte.games.napoleon.declaration import NapoleonDeclaration
from bonaparte.games.napoleon.errors import (
    AllPlayersPassedError,
    IllegalPlayError,
    InvalidDeclarationError,
    InvalidPhaseError,
    InvalidPlayerCountError,
    OutOfTurnError,
)
from bonaparte.games.napoleon.game import (
    GameState,
    Phase,
    adjutant_player,
    adjutant_revealed,
    all_cards,
    close_trick_result,
    create_game,
    deal,
    declare_napoleon,
    exchange_cards,
    initialize_game,
    is_self_adjutant,
    legal_actions,
    napoleon_player,
    pass_declaration,
    play_card,
    redeal,
    set_adjutant,
)
from bonaparte.games.napoleon.scoring import calculate_game_result, player_role

S, H, D, CL = Suit.SPADES, Suit.HEARTS, Suit.DIAMONDS, Suit.CLUBS
NAMES = ["Ann", "Ben", "Cid", "Dee"]


def C(suit, rank):
    return Card(suit, Rank(rank))


# ---------------------------------------------------------------------------
#  Helpers
# ---------------------------------------------------------------------------


def _fixed_deal() -> GameState:
    """Unshuffled deck: hidden S2-S5; p1 S6-SA + H2-H4; p2 H5-HA + D2 D3;
    p3 D4-DA + C2; p4 C3-CA."""
    st = create_game(NAMES)
    hands, hidden = partition_deck(create_deck())
    for p, h in zip(st.players, hands):
        p.hand = list(h)
    st.hidden_cards = hidden
    st.phase = Phase.NAPOLEON
    return st


def _bid_spades(st: GameState, target: int = 13) -> GameState:
    st = declare_napoleon(st, NapoleonDeclaration("player_1", target, S))
    for pid in ("player_2", "player_3", "player_4"):
        st = pass_declaration(st, pid)
    return st


def _ready_to_play() -> GameState:
    st = set_adjutant(_bid_spades(_fixed_deal()))
    return exchange_cards(st, "player_1", [C(H, 2), C(H, 3), C(H, 4), C(S, 6)])


def _playing(hands, trump=H, adjutant_card=None, leader=0) -> GameState:
    st = create_game(NAMES)
    for p, h in zip(st.players, hands):
        p.hand = list(h)
    st.players[0].is_napoleon = True
    for p in st.players[1:]:
        p.is_adjutant = adjutant_card is not None and adjutant_card in p.hand
    st.napoleon_declaration = NapoleonDeclaration("player_1", 13, trump, adjutant_card)
    st.trump_suit = trump
    st.phase = Phase.PLAYING
    st.current_player_index = leader
    return st


# ---------------------------------------------------------------------------
#  Setup and dealing
# ---------------------------------------------------------------------------


class TestSetup:
    def test_create_game(self):
        st = create_game(NAMES, ai_seats=[1, 2, 3])
        assert st.phase == Phase.SETUP
        assert st.player_ids == ["player_1", "player_2", "player_3", "player_4"]
        assert [p.position for p in st.players] == [1, 2, 3, 4]
        assert [p.is_ai for p in st.players] == [False, True, True, True]

    def test_wrong_player_count(self):
        with pytest.raises(InvalidPlayerCountError):
            create_game(NAMES[:3])

    def test_initialize_deals(self):
        st = initialize_game(NAMES, rng=random.Random(1))
        assert st.phase == Phase.NAPOLEON
        assert all(len(p.hand) == 12 for p in st.players)
        assert len(st.hidden_cards) == 4
        assert len(set(all_cards(st))) == 52
        assert st.current_player_index == 0

    def test_deal_wrong_phase(self):
        st = _fixed_deal()
        with pytest.raises(InvalidPhaseError):
            deal(st)


# ---------------------------------------------------------------------------
#  Bidding
# ---------------------------------------------------------------------------


class TestBidding:
    def test_declare_advances_and_does_not_mutate(self):
        st = _fixed_deal()
        after = declare_napoleon(st, NapoleonDeclaration("player_1", 13, S))
        assert after.current_player_index == 1
        assert napoleon_player(after).id == "player_1"
        assert after.version == st.version + 1
        assert st.napoleon_declaration is None
        assert napoleon_player(st) is None

    def test_out_of_turn(self):
        with pytest.raises(OutOfTurnError):
            declare_napoleon(_fixed_deal(), NapoleonDeclaration("player_2", 13, S))

    def test_out_of_turn_is_illegal_play(self):
        with pytest.raises(IllegalPlayError):
            pass_declaration(_fixed_deal(), "player_3")

    def test_must_outbid(self):
        st = declare_napoleon(_fixed_deal(), NapoleonDeclaration("player_1", 13, H))
        with pytest.raises(InvalidDeclarationError):
            declare_napoleon(st, NapoleonDeclaration("player_2", 13, D))

    def test_outbid_moves_napoleon(self):
        st = declare_napoleon(_fixed_deal(), NapoleonDeclaration("player_1", 13, H))
        st = declare_napoleon(st, NapoleonDeclaration("player_2", 14, CL))
        assert napoleon_player(st).id == "player_2"
        assert not st.players[0].is_napoleon

    def test_everyone_else_passes(self):
        st = _bid_spades(_fixed_deal())
        assert st.phase == Phase.ADJUTANT
        assert st.trump_suit == S
        assert st.current_player_index == 0

    def test_ceiling_ends_bidding(self):
        st = declare_napoleon(_fixed_deal(), NapoleonDeclaration("player_1", 20, S))
        assert st.phase == Phase.ADJUTANT
        assert st.passed_players == []

    def test_all_pass_needs_redeal(self):
        st = _fixed_deal()
        for pid in ("player_1", "player_2", "player_3", "player_4"):
            st = pass_declaration(st, pid)
        assert st.needs_redeal
        assert st.phase == Phase.DEALING
        with pytest.raises(AllPlayersPassedError):
            pass_declaration(st, "player_1")

    def test_redeal(self):
        st = _fixed_deal()
        for pid in ("player_1", "player_2", "player_3", "player_4"):
            st = pass_declaration(st, pid)
        st = redeal(st, random.Random(5))
        assert st.phase == Phase.NAPOLEON
        assert not st.needs_redeal
        assert st.reshuffle_count == 1
        assert st.last_reshuffle_reason == "all players passed"
        assert st.passed_players == []
        assert all(len(p.hand) == 12 for p in st.players)

    def test_redeal_not_during_play(self):
        with pytest.raises(InvalidPhaseError):
            redeal(_ready_to_play())


# ---------------------------------------------------------------------------
#  Adjutant and exchange
# ---------------------------------------------------------------------------


class TestAdjutant:
    def test_default_nomination(self):
        # Player 1 holds Mighty and the spade Jack: the club Jack is named.
        st = set_adjutant(_bid_spades(_fixed_deal()))
        assert st.napoleon_declaration.adjutant_card == C(CL, 11)
        assert adjutant_player(st).id == "player_4"
        assert st.phase == Phase.CARD_EXCHANGE
        assert st.hidden_cards == []
        nap = st.players[0]
        assert len(nap.hand) == 16
        assert sum(c.was_hidden for c in nap.hand) == 4

    def test_own_card_rejected(self):
        st = _bid_spades(_fixed_deal())
        with pytest.raises(InvalidDeclarationError):
            set_adjutant(st, C(S, 11))

    def test_wrong_phase(self):
        with pytest.raises(InvalidPhaseError):
            set_adjutant(_fixed_deal())

    def test_hidden_card_means_self_adjutant(self):
        st = set_adjutant(_bid_spades(_fixed_deal()), C(S, 2))
        assert adjutant_player(st) is None
        assert is_self_adjutant(st)

    def test_self_adjutant_flagged_when_card_is_played(self):
        st = set_adjutant(_bid_spades(_fixed_deal()), C(S, 2))
        st = exchange_cards(st, "player_1", [C(H, 2), C(H, 3), C(H, 4), C(S, 6)])
        assert not st.players[0].is_adjutant
        st = play_card(st, "player_1", C(S, 2))
        assert adjutant_revealed(st)
        assert st.players[0].is_adjutant
        assert adjutant_player(st).id == "player_1"
        assert is_self_adjutant(st)
        assert player_role(st, "player_1") == "napoleon"
        assert [p.id for p in st.players if p.is_adjutant] == ["player_1"]


class TestExchange:
    def test_exchange_starts_play(self):
        st = _ready_to_play()
        assert st.phase == Phase.PLAYING
        assert st.current_player_index == 0
        assert len(st.players[0].hand) == 12
        assert st.exchanged_cards == [C(S, 6), C(H, 2), C(H, 3), C(H, 4)]

    def test_only_napoleon(self):
        st = set_adjutant(_bid_spades(_fixed_deal()))
        with pytest.raises(IllegalPlayError):
            exchange_cards(st, "player_2", st.players[1].hand[:4])

    @pytest.mark.parametrize("discards", [
        [C(H, 2), C(H, 3), C(H, 4)],
        [C(H, 2), C(H, 2), C(H, 3), C(H, 4)],
        [C(H, 2), C(H, 3), C(H, 4), C(D, 14)],
    ])
    def test_bad_discards(self, discards):
        st = set_adjutant(_bid_spades(_fixed_deal()))
        with pytest.raises(IllegalPlayError):
            exchange_cards(st, "player_1", discards)


# ---------------------------------------------------------------------------
#  Trick play
# ---------------------------------------------------------------------------


class TestPlay:
    def test_out_of_turn(self):
        with pytest.raises(OutOfTurnError):
            play_card(_ready_to_play(), "player_2", C(H, 5))

    def test_card_not_held(self):
        with pytest.raises(IllegalPlayError):
            play_card(_ready_to_play(), "player_1", C(H, 5))

    def test_not_in_playing_phase(self):
        with pytest.raises(IllegalPlayError):
            play_card(_fixed_deal(), "player_1", C(S, 6))

    def test_follow_suit(self):
        hands = [[C(H, 2), C(CL, 5)], [C(H, 3), C(S, 4)], [C(D, 3), C(D, 4)], [C(CL, 3), C(CL, 4)]]
        st = play_card(_playing(hands), "player_1", C(H, 2))
        assert st.current_trick.leading_suit == H
        assert legal_actions(st) == [C(H, 3)]
        with pytest.raises(IllegalPlayError):
            play_card(st, "player_2", C(S, 4))
        st = play_card(st, "player_2", C(H, 3))
        # Void in hearts: any card.
        st = play_card(st, "player_3", C(D, 3))
        assert st.current_player_index == 3

    def test_winner_leads_and_result_must_be_closed(self):
        hands = [[C(CL, 2), C(H, 9)], [C(CL, 9), C(S, 4)], [C(CL, 13), C(D, 4)], [C(H, 2), C(CL, 4)]]
        st = _playing(hands, trump=H)
        st = play_card(st, "player_1", C(CL, 2))
        st = play_card(st, "player_2", C(CL, 9))
        st = play_card(st, "player_3", C(CL, 13))
        st = play_card(st, "player_4", C(CL, 4))
        assert st.tricks[0].winner_player_id == "player_3"
        assert st.tricks[0].completed
        assert st.current_player_index == 2
        assert st.showing_trick_result
        assert st.last_completed_trick is st.tricks[0]
        with pytest.raises(IllegalPlayError):
            play_card(st, "player_3", C(D, 4))
        st = close_trick_result(st)
        assert not st.showing_trick_result
        assert st.current_trick.id == "trick-2"
        st = play_card(st, "player_3", C(D, 4))
        assert st.current_player_index == 3

    def test_close_without_result_is_noop(self):
        st = _ready_to_play()
        assert close_trick_result(st) is st

    def test_adjutant_card_reveals(self):
        hands = [[C(H, 2)], [C(H, 14)], [C(H, 3)], [C(H, 4)]]
        st = _playing(hands, trump=H, adjutant_card=C(H, 14))
        st = play_card(st, "player_1", C(H, 2))
        assert not adjutant_revealed(st)
        st = play_card(st, "player_2", C(H, 14))
        assert st.current_trick.cards[1].reveals_adjutant
        assert adjutant_revealed(st)


class TestFullGame:
    def test_twelve_tricks(self):
        st = _ready_to_play()
        versions = [st.version]
        while st.phase != Phase.FINISHED:
            if st.showing_trick_result:
                st = close_trick_result(st)
                continue
            card = legal_actions(st)[0]
            st = play_card(st, st.players[st.current_player_index].id, card)
            versions.append(st.version)
        assert len(st.tricks) == 12
        assert all(not p.hand for p in st.players)
        assert versions == sorted(versions)
        assert len(set(all_cards(st))) == 52
        # Player 1 holds 12 spades and wins every trick.
        assert {t.winner_player_id for t in st.tricks} == {"player_1"}
        result = calculate_game_result(st)
        assert result.napoleon_won
        assert result.napoleon_face_cards == 20
        assert result.score_for("player_1") == 300
        assert result.score_for("player_4") == 150
        assert result.score_for("player_2") == -10
