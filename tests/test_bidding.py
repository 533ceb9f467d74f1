"""Tests for the bidding, adjutant and exchange heuristics."""

from __future__ import annotations

import random

import pytest

import bonaparte.bidding.evaluator as bidding
from bonaparte.bidding.evaluator import (
    choose_adjutant_card,
    choose_discards,
    hand_strength,
    should_declare,
    should_declare_by_simulation,
    simulate_declaration,
    win_probability,
)
from bonaparte.games.napoleon.cards import Card, Rank, Suit, create_deck
from bonaparte.games.napoleon.declaration import NapoleonDeclaration

S, H, D, CL = Suit.SPADES, Suit.HEARTS, Suit.DIAMONDS, Suit.CLUBS


def C(suit, rank):
    return Card(suit, Rank(rank))


# Twelve spades, 3 through Ace (Mighty and the trump Jack included).
STRONG = [C(S, r) for r in range(3, 15)]
# 2-4 of every suit.
WEAK = [C(s, r) for s in (S, H, D, CL) for r in (2, 3, 4)]


class TestHandStrength:
    def test_strong_hand(self):
        # 102 face value, +5 Ace, +4 King/Queen, +27 for twelve of a suit
        assert hand_strength(STRONG) == 138

    def test_weak_hand(self):
        assert hand_strength(WEAK) == 36

    def test_long_suit_bonus_starts_at_four(self):
        three = [C(H, 2), C(H, 3), C(H, 4)]
        assert hand_strength(three) == 9
        assert hand_strength(three + [C(H, 5)]) == 14 + 3


class TestWinProbability:
    def test_long_trump_bonus(self):
        base = 138 / 180
        assert win_probability(STRONG, 13, S) == pytest.approx(base + 0.1)
        assert win_probability(STRONG, 13, H) == pytest.approx(base)

    def test_higher_targets_are_harder(self):
        assert win_probability(STRONG, 16, S) < win_probability(STRONG, 13, S)

    def test_target_factor_has_a_floor(self):
        assert win_probability(STRONG, 20, H) == pytest.approx(138 / 180 * 0.3)


class TestShouldDeclare:
    def test_strong_hand_declares_its_long_suit(self):
        decl = should_declare(STRONG, None, "player_1")
        assert decl == NapoleonDeclaration("player_1", 13, S)

    def test_weak_hand_passes(self):
        assert should_declare(WEAK, None, "player_1") is None

    def test_outbids_current(self):
        current = NapoleonDeclaration("player_2", 13, S)
        decl = should_declare(STRONG, current, "player_1")
        assert decl is not None
        assert decl.target == 14
        assert decl.suit == S

    def test_same_target_stronger_suit(self):
        current = NapoleonDeclaration("player_2", 13, D)
        decl = should_declare(STRONG, current, "player_1")
        assert decl == NapoleonDeclaration("player_1", 13, S)

    def test_nothing_beats_the_ceiling(self):
        current = NapoleonDeclaration("player_2", 20, S)
        assert should_declare(STRONG, current, "player_1") is None


class TestSimulationBidder:
    def test_strong_hand_wins_simulations(self):
        decl = NapoleonDeclaration("player_1", 13, S)
        rate = simulate_declaration(STRONG, 0, decl, random.Random(1), samples=4)
        assert rate >= 0.5

    def test_strong_hand_declares(self):
        decl = should_declare_by_simulation(STRONG, None, "player_1", 0, random.Random(2), samples=3)
        assert decl is not None
        assert decl.player_id == "player_1"
        assert decl.target == 13

    def test_below_threshold_passes(self, monkeypatch):
        monkeypatch.setattr(bidding, "simulate_declaration", lambda *a, **k: 0.2)
        assert should_declare_by_simulation(STRONG, None, "player_1", 0, random.Random(0)) is None

    def test_threshold_is_inclusive(self, monkeypatch):
        monkeypatch.setattr(bidding, "simulate_declaration", lambda *a, **k: 0.3)
        decl = should_declare_by_simulation(STRONG, None, "player_1", 0, random.Random(0))
        # equal rates: the first suit offered wins
        assert decl == NapoleonDeclaration("player_1", 13, CL)

    def test_best_suit_wins(self, monkeypatch):
        def fake(hand, seat, decl, rng, samples):
            return 0.6 if decl.suit == H else 0.35

        monkeypatch.setattr(bidding, "simulate_declaration", fake)
        decl = should_declare_by_simulation(STRONG, None, "player_1", 0, random.Random(0))
        assert decl.suit == H


class TestAdjutantAndExchange:
    def test_adjutant_card_skips_own_cards(self):
        # Mighty and the trump Jack are held; the reverse Jack is next.
        assert choose_adjutant_card(STRONG, S) == C(CL, 11)

    def test_discards_short_plain_cards_first(self):
        hand = [C(H, 14), C(H, 13), C(H, 10), C(S, 3), C(D, 4), C(D, 5), C(D, 6),
                C(CL, 13), C(CL, 12), C(CL, 5)]
        out = choose_discards(hand, H, None)
        assert set(out) == {C(S, 3), C(D, 4), C(D, 5), C(CL, 5)}

    def test_adjutant_card_is_kept(self):
        hand = [C(H, 14), C(H, 13), C(H, 10), C(S, 3), C(D, 4), C(D, 5), C(D, 6),
                C(CL, 13), C(CL, 12), C(CL, 5)]
        out = choose_discards(hand, H, C(S, 3))
        assert C(S, 3) not in out
        assert set(out) == {C(D, 4), C(D, 5), C(D, 6), C(CL, 5)}

    def test_mostly_trump_gives_up_weakest_trump(self):
        hand = [C(S, r) for r in range(2, 15)] + [C(H, 2), C(H, 3), C(H, 4)]
        out = choose_discards(hand, S, C(CL, 11))
        assert set(out) == {C(H, 2), C(H, 3), C(H, 4), C(S, 2)}

    def test_always_four(self):
        rng = random.Random(5)
        deck = create_deck()
        for _ in range(20):
            hand = rng.sample(deck, 16)
            trump = rng.choice([S, H, D, CL])
            out = choose_discards(hand, trump, choose_adjutant_card(hand, trump))
            assert len(out) == 4
            assert len(set(out)) == 4
            assert all(c in hand for c in out)
