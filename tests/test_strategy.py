"""Tests for difficulty presets and AI card selection."""

from __future__ import annotations

import logging
import math
import random

import pytest

import bonaparte.strategy as strategy
from bonaparte.evaluator import best_card_by_value
from bonaparte.games.napoleon.cards import Suit
from bonaparte.games.napoleon.constants import difficulty_from_env
from bonaparte.games.napoleon.declaration import NapoleonDeclaration
from bonaparte.games.napoleon.errors import NoLegalMovesError
from bonaparte.games.napoleon.game import (
    GameState,
    close_trick_result,
    declare_napoleon,
    exchange_cards,
    initialize_game,
    legal_actions,
    pass_declaration,
    play_card,
    set_adjutant,
)
from bonaparte.mcts import MCTS_PRESETS
from bonaparte.strategy import (
    DEFAULT_STRATEGY_CONFIGS,
    Difficulty,
    StrategyConfig,
    StrategyType,
    create_custom_mcts_config,
    default_strategy_config,
    get_strategy_config_by_difficulty,
    select_ai_card,
)


def _play_state(seed: int = 0, plays: int = 0) -> GameState:
    """A PLAYING state after *plays* cards (first legal card each time)."""
    st = initialize_game(["a", "b", "c", "d"], rng=random.Random(seed), game_id=f"s{seed}")
    st = declare_napoleon(st, NapoleonDeclaration("player_1", 13, Suit.SPADES))
    for pid in ("player_2", "player_3", "player_4"):
        st = pass_declaration(st, pid)
    st = set_adjutant(st)
    st = exchange_cards(st, "player_1", st.players[0].hand[:4])
    for _ in range(plays):
        if st.showing_trick_result:
            st = close_trick_result(st)
        st = play_card(st, st.players[st.current_player_index].id, legal_actions(st)[0])
    if st.showing_trick_result:
        st = close_trick_result(st)
    return st


def _current(st: GameState):
    return st.players[st.current_player_index]


HYBRID = StrategyConfig(StrategyType.HYBRID, Difficulty.HARD, MCTS_PRESETS["fast"])
MCTS_ONLY = StrategyConfig(StrategyType.MCTS, Difficulty.HARD, MCTS_PRESETS["fast"])


# ---------------------------------------------------------------------------
#  Configuration
# ---------------------------------------------------------------------------


class TestDifficulty:
    def test_easy_is_heuristic(self):
        cfg = get_strategy_config_by_difficulty("easy")
        assert cfg.strategy == StrategyType.HEURISTIC
        assert cfg.mcts_config is None

    @pytest.mark.parametrize("level,preset", [("normal", "fast"), ("hard", "normal"), ("strong", "strong")])
    def test_search_levels_are_hybrid(self, level, preset):
        cfg = get_strategy_config_by_difficulty(level)
        assert cfg.strategy == StrategyType.HYBRID
        assert cfg.mcts_config == MCTS_PRESETS[preset]
        assert cfg.difficulty == Difficulty(level)

    def test_accepts_enum(self):
        assert get_strategy_config_by_difficulty(Difficulty.HARD) is DEFAULT_STRATEGY_CONFIGS[Difficulty.HARD]

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            get_strategy_config_by_difficulty("impossible")

    def test_presets_grow(self):
        fast, normal, strong = MCTS_PRESETS["fast"], MCTS_PRESETS["normal"], MCTS_PRESETS["strong"]
        assert fast.simulation_count < normal.simulation_count < strong.simulation_count
        assert fast.determinization_count < normal.determinization_count < strong.determinization_count


class TestDefaultConfig:
    def test_env_selects_difficulty(self, monkeypatch):
        monkeypatch.setenv("BONAPARTE_AI_DIFFICULTY", "Strong")
        assert default_strategy_config().difficulty == Difficulty.STRONG

    def test_env_is_normalised(self, monkeypatch):
        monkeypatch.setenv("BONAPARTE_AI_DIFFICULTY", "  HARD ")
        assert difficulty_from_env() == "hard"

    def test_unset_env_is_normal(self, monkeypatch):
        monkeypatch.delenv("BONAPARTE_AI_DIFFICULTY", raising=False)
        assert default_strategy_config().difficulty == Difficulty.NORMAL

    def test_bad_env_falls_back(self, monkeypatch, caplog):
        monkeypatch.setenv("BONAPARTE_AI_DIFFICULTY", "godlike")
        with caplog.at_level(logging.WARNING, logger="bonaparte.strategy"):
            cfg = default_strategy_config()
        assert cfg.difficulty == Difficulty.NORMAL
        assert "godlike" in caplog.text


class TestCustomConfig:
    def test_fields(self):
        cfg = create_custom_mcts_config(50, 300, 2)
        assert cfg.simulation_count == 50
        assert cfg.time_limit_ms == 300
        assert cfg.determinization_count == 2
        assert cfg.exploration_constant == pytest.approx(math.sqrt(2))


# ---------------------------------------------------------------------------
#  Card selection
# ---------------------------------------------------------------------------


class TestSelectCard:
    def test_empty_hand(self):
        st = _play_state()
        p = _current(st)
        p.hand = []
        assert select_ai_card(st, p, DEFAULT_STRATEGY_CONFIGS[Difficulty.EASY]) is None

    def test_single_legal_card_skips_search(self, monkeypatch):
        st = _play_state(seed=3, plays=47)
        p = _current(st)
        assert len(p.hand) == 1

        def boom(*a, **k):
            raise AssertionError("search should not run")

        monkeypatch.setattr(strategy, "mcts_choose", boom)
        assert select_ai_card(st, p, MCTS_ONLY) == p.hand[0]

    def test_heuristic_matches_evaluator(self):
        st = _play_state(seed=1)
        p = _current(st)
        cfg = get_strategy_config_by_difficulty("easy")
        assert select_ai_card(st, p, cfg) == best_card_by_value(legal_actions(st), st, p)

    def test_result_is_legal(self):
        st = _play_state(seed=2, plays=5)
        p = _current(st)
        assert select_ai_card(st, p, get_strategy_config_by_difficulty("easy")) in legal_actions(st)

    def test_hybrid_early_uses_heuristic(self, monkeypatch):
        calls = []
        monkeypatch.setattr(strategy, "mcts_choose", lambda *a, **k: calls.append(a))
        st = _play_state(seed=4)
        p = _current(st)
        assert select_ai_card(st, p, HYBRID) == best_card_by_value(legal_actions(st), st, p)
        assert calls == []

    def test_hybrid_late_uses_search(self, monkeypatch):
        st = _play_state(seed=4, plays=16)
        assert len(st.tricks) == 4
        p = _current(st)
        legal = legal_actions(st)
        if len(legal) == 1:
            pytest.skip("forced play")
        pick = legal[-1]
        monkeypatch.setattr(strategy, "mcts_choose", lambda *a, **k: pick)
        assert select_ai_card(st, p, HYBRID, random.Random(0)) == pick

    def test_search_failure_falls_back(self, monkeypatch, caplog):
        def boom(*a, **k):
            raise RuntimeError("search exploded")

        monkeypatch.setattr(strategy, "mcts_choose", boom)
        st = _play_state(seed=5)
        p = _current(st)
        with caplog.at_level(logging.ERROR, logger="bonaparte.strategy"):
            card = select_ai_card(st, p, MCTS_ONLY, random.Random(0))
        assert card == best_card_by_value(legal_actions(st), st, p)
        assert "falling back" in caplog.text

    def test_no_legal_moves(self, monkeypatch):
        monkeypatch.setattr(strategy, "legal_plays", lambda hand, leading: [])
        st = _play_state()
        with pytest.raises(NoLegalMovesError):
            select_ai_card(st, _current(st), MCTS_ONLY)

    def test_real_search_returns_legal_card(self):
        st = _play_state(seed=6, plays=18)
        p = _current(st)
        cfg = StrategyConfig(StrategyType.MCTS, Difficulty.HARD, create_custom_mcts_config(20, 2000, 2))
        assert select_ai_card(st, p, cfg, random.Random(0)) in legal_actions(st)

    def test_search_out_of_time_plays_heuristic_card(self):
        st = _play_state(seed=7)
        p = _current(st)
        cfg = StrategyConfig(StrategyType.MCTS, Difficulty.HARD, create_custom_mcts_config(200, 0, 2))
        assert select_ai_card(st, p, cfg, random.Random(0)) == best_card_by_value(legal_actions(st), st, p)
