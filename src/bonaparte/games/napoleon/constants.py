"""Centralized constants and defaults for Napoleon AI & play.

Every tunable default lives here.  Import from this module instead
of hardcoding magic numbers elsewhere.

Usage::

    from bonaparte.games.napoleon.constants import (
        DEFAULT_AI_DELAY_S,
        DEFAULT_MAX_REDEALS,
    )
"""
from __future__ import annotations

import math
import os

# ---------------------------------------------------------------------------
#  Search defaults
# ---------------------------------------------------------------------------

UCT_EXPLORATION: float = math.sqrt(2)
"""Standard UCT exploration constant; fixed for every preset."""

DEFAULT_ROLLOUT_HEURISTIC_RATIO: float = 0.5
"""Share of rollout moves chosen by the strategic evaluator.

The remainder are uniformly random legal cards.  Pure heuristic
rollouts make every world play out the same way; pure random ones
undervalue Mighty and the Jacks.
"""

HYBRID_HEURISTIC_UNTIL: float = 0.3
"""Game progress (tricks done / 12) below which hybrid play stays heuristic."""

# ---------------------------------------------------------------------------
#  Declaration AI
# ---------------------------------------------------------------------------

DECLARE_WIN_PROBABILITY: float = 0.7
"""Estimated win probability the heuristic bidder needs before declaring."""

DECLARE_SIM_WIN_RATE: float = 0.3
"""Simulated win rate the search-based bidder needs before declaring."""

# ---------------------------------------------------------------------------
#  Caller policy
# ---------------------------------------------------------------------------

DEFAULT_MAX_REDEALS: int = 20
"""Consecutive all-pass redeals tolerated by the AI driver and the API.

The engine itself never caps redeals.  With the default bidding
heuristic roughly half of all deals end with four passes, so 20 in a
row is about a one-in-a-million event.
"""

DEFAULT_AI_DELAY_S: float = 0.8
"""Pause before a scheduled AI move is computed, in seconds."""

DEFAULT_DIFFICULTY: str = "normal"

DIFFICULTY_ENV_VAR: str = "BONAPARTE_AI_DIFFICULTY"


def difficulty_from_env() -> str:
    """Difficulty named by ``BONAPARTE_AI_DIFFICULTY``, else the default."""
    value = os.environ.get(DIFFICULTY_ENV_VAR, "").strip().lower()
    return value or DEFAULT_DIFFICULTY
