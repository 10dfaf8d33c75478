# domain/models.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional

from domain.enums import TournamentStatus


def match_code(round_no: int, position: int) -> str:
    return f"R{int(round_no)}-{int(position):02d}"


def parse_match_code(code: str) -> tuple[int, int]:
    """
    R2-01 -> (2, 1). Also accepts "2-1" and lowercase.
    Raises ValueError on anything else.
    """
    s = (code or "").strip().upper()
    if s.startswith("R"):
        s = s[1:]
    try:
        round_s, pos_s = s.split("-", 1)
        round_no = int(round_s)
        position = int(pos_s)
    except ValueError as e:
        raise ValueError(f"Invalid match code: {code!r} (expected like R1-02)") from e
    if round_no < 1 or position < 1:
        raise ValueError(f"Invalid match code: {code!r} (round and position start at 1)")
    return round_no, position


@dataclass(frozen=True)
class Participant:
    participant_id: int
    name: str


@dataclass(frozen=True)
class Match:
    match_id: int
    round_no: int
    position: int

    participant_a: Optional[Participant] = None
    participant_b: Optional[Participant] = None
    winner: Optional[Participant] = None

    @property
    def code(self) -> str:
        return match_code(self.round_no, self.position)

    @property
    def key(self) -> tuple[int, int]:
        return (self.round_no, self.position)

    @property
    def is_placeholder(self) -> bool:
        return self.participant_a is None and self.participant_b is None

    @property
    def is_ready(self) -> bool:
        return self.participant_a is not None and self.participant_b is not None

    @property
    def is_decided(self) -> bool:
        return self.winner is not None

    @property
    def loser(self) -> Optional[Participant]:
        if self.winner is None or not self.is_ready:
            return None
        return self.participant_b if self.winner == self.participant_a else self.participant_a

    def slot_of(self, participant_id: int) -> Optional[Participant]:
        try:
            pid = int(participant_id)
        except (TypeError, ValueError):
            return None
        for p in (self.participant_a, self.participant_b):
            if p is not None and p.participant_id == pid:
                return p
        return None

    def with_changes(self, **changes) -> "Match":
        return replace(self, **changes)


@dataclass(frozen=True)
class Tournament:
    tournament_id: int
    name: str
    date: date
    status: TournamentStatus = TournamentStatus.UPCOMING
    participants: tuple[Participant, ...] = field(default_factory=tuple)

    guild_id: Optional[int] = None
    created_by: Optional[int] = None

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    def participant_by_name(self, name: str) -> Optional[Participant]:
        needle = (name or "").strip().casefold()
        for p in self.participants:
            if p.name.casefold() == needle:
                return p
        return None
