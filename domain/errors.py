# domain/errors.py
from __future__ import annotations

from typing import Union


class BracketError(Exception):
    pass


class InvalidInputError(BracketError):
    pass


class MatchNotFoundError(BracketError):
    def __init__(self, match_ref: Union[int, str]) -> None:
        super().__init__(f"Match not found: {match_ref}")
        self.match_ref = match_ref


class InvalidWinnerError(BracketError):
    pass


class ResultLockedError(InvalidWinnerError):
    """
    Raised under RevisionPolicy.FORBID when a decided match is re-reported
    with a different winner.
    """
