"""Rule-violation errors raised by the Napoleon engine.

Every error is a ``ValueError`` so callers that only care about "bad
input" can catch that; the ``code`` attribute gives transport layers a
stable machine-readable tag.  A raised error never leaves a partially
applied state behind: transitions validate before they copy.
"""

from __future__ import annotations


class NapoleonError(ValueError):
    code: str = "INVALID_INPUT"


class InvalidPlayerCountError(NapoleonError):
    code = "INVALID_PLAYER_COUNT"


class IllegalPlayError(NapoleonError):
    """Card not held, follow-suit violated, or play attempted at the wrong time."""

    code = "ILLEGAL_PLAY"


class OutOfTurnError(IllegalPlayError):
    code = "OUT_OF_TURN"


class InvalidDeclarationError(NapoleonError):
    code = "INVALID_DECLARATION"


class InvalidPhaseError(NapoleonError):
    code = "INVALID_STATE"


class NoLegalMovesError(NapoleonError):
    code = "NO_LEGAL_MOVES"


class AllPlayersPassedError(NapoleonError):
    """Nobody declared; the hand must be redealt before bidding resumes."""

    code = "ALL_PLAYERS_PASSED"


class RedealLimitExceededError(NapoleonError):
    code = "REDEAL_LIMIT"


class StaleStateError(NapoleonError):
    """An AI result was computed for a state that has since been superseded."""

    code = "STALE_STATE"
