"""Generic game interface for search-based AI.

A game implements this protocol so that MCTS and simulation code can
stay game-agnostic.  Players are addressed by seat index.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import numpy as np
import random


# Generic type aliases; concrete games define their own State / Action types.
State = Any
Action = Any


@runtime_checkable
class GameInterface(Protocol):
    """Protocol that every game must implement."""

    # ------------------------------------------------------------------
    #  Game rules
    # ------------------------------------------------------------------

    @property
    def num_players(self) -> int:
        ...

    def current_player(self, state: State) -> int:
        """Seat of the player who acts next."""
        ...

    def legal_actions(self, state: State) -> list[Action]:
        """Legal actions for the current player."""
        ...

    def apply(self, state: State, action: Action) -> State:
        """Apply *action* and return a **new** state (no mutation)."""
        ...

    def apply_in_place(self, state: State, action: Action) -> None:
        """Apply *action* to *state* itself (rollouts)."""
        ...

    def is_terminal(self, state: State) -> bool:
        ...

    def is_decided(self, state: State) -> bool:
        """Whether the winner is fixed even though play continues."""
        ...

    def outcome(self, state: State, player: int) -> float:
        """Outcome in ``[0, 1]`` for *player*: 1 = win, 0 = loss.

        Called only on terminal (or decided) states.
        """
        ...

    def same_team(self, state: State, a: int, b: int) -> bool:
        """Whether seats *a* and *b* currently play on the same side."""
        ...

    # ------------------------------------------------------------------
    #  Imperfect information
    # ------------------------------------------------------------------

    def determinize(self, state: State, player: int, rng: random.Random) -> State:
        """Sample a concrete state consistent with *player*'s observations."""
        ...

    # ------------------------------------------------------------------
    #  Fixed action indexing
    # ------------------------------------------------------------------

    @property
    def action_space_size(self) -> int:
        """Total number of distinct actions."""
        ...

    def action_to_index(self, action: Action) -> int:
        """Map an action to its fixed index in [0, action_space_size)."""
        ...

    def legal_action_mask(self, state: State) -> np.ndarray:
        """Boolean mask of shape (action_space_size,), True = legal."""
        ...
