# domain/generator.py
from __future__ import annotations

from typing import Sequence

from domain.enums import EntrantPolicy
from domain.errors import InvalidInputError
from domain.models import Match, Participant


def is_power_of_two(n: int) -> bool:
    return n >= 1 and (n & (n - 1)) == 0


def round_count(n: int) -> int:
    """
    ceil(log2(n)) for n >= 1, computed on integers. n=1 => 0 rounds.
    """
    if n < 1:
        raise InvalidInputError(f"participant count must be >= 1, got {n}")
    return (n - 1).bit_length()


def matches_in_round(n: int, round_no: int) -> int:
    if round_no < 1:
        return 0
    return n // (2 ** round_no)


def round_name(round_no: int, max_round: int) -> str:
    if round_no == max_round:
        return "Final"
    if round_no == max_round - 1:
        return "Semifinal"
    if round_no == max_round - 2:
        return "Quarterfinal"
    if round_no == 1:
        return "First Round"
    return f"Round {round_no}"


def generate(
    participants: Sequence[Participant],
    *,
    entrant_policy: EntrantPolicy = EntrantPolicy.FLOOR,
) -> list[Match]:
    """
    Lay out the full single-elimination tree for participants in seed order.

    Round 1 pairs participants[2i] vs participants[2i+1]; later rounds are
    placeholders filled by the progressor. Match ids run 1..N in
    (round, position) order.

    Under EntrantPolicy.FLOOR an odd last participant is left out of round 1,
    and later round sizes are floor(n / 2^r).
    """
    entrants = list(participants)
    n = len(entrants)
    if n < 1:
        raise InvalidInputError("A tournament needs at least one participant.")

    seen: set[int] = set()
    for p in entrants:
        if p.participant_id in seen:
            raise InvalidInputError(f"Duplicate participant id: {p.participant_id}")
        seen.add(p.participant_id)

    if entrant_policy == EntrantPolicy.STRICT and not is_power_of_two(n):
        raise InvalidInputError(f"Participant count must be a power of two (2, 4, 8, 16, ...), got {n}.")

    rounds = round_count(n)
    matches: list[Match] = []

    for i in range(n // 2):
        matches.append(
            Match(
                match_id=len(matches) + 1,
                round_no=1,
                position=i + 1,
                participant_a=entrants[2 * i],
                participant_b=entrants[2 * i + 1],
            )
        )

    for r in range(2, rounds + 1):
        for pos in range(1, matches_in_round(n, r) + 1):
            matches.append(Match(match_id=len(matches) + 1, round_no=r, position=pos))

    return matches
