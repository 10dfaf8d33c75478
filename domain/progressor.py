# domain/progressor.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from domain.enums import RevisionPolicy, TournamentStatus
from domain.errors import InvalidWinnerError, MatchNotFoundError, ResultLockedError
from domain.models import Match, Participant


def next_slot(round_no: int, position: int) -> tuple[int, int, str]:
    """
    (round, position) of the match a winner advances into, plus the slot
    name: "a" for odd positions, "b" for even.
    """
    return round_no + 1, (position + 1) // 2, ("a" if position % 2 == 1 else "b")


@dataclass(frozen=True)
class ProgressResult:
    matches: list[Match]
    decided: Match
    advanced_to: Optional[Match]
    changed: list[Match]
    max_round: int

    @property
    def match_round(self) -> int:
        return self.decided.round_no

    @property
    def completed(self) -> bool:
        return self.decided.round_no == self.max_round and self.decided.winner is not None

    @property
    def champion(self) -> Optional[Participant]:
        return self.decided.winner if self.completed else None


def record_result(
    matches: Sequence[Match],
    match_id: int,
    winner_id: int,
    *,
    revision_policy: RevisionPolicy = RevisionPolicy.OVERWRITE,
) -> ProgressResult:
    """
    Decide match_id in favour of winner_id and advance the winner.

    The input sequence is never mutated; all validation happens before the
    updated list is built, so an error leaves the caller's state as it was.
    """
    try:
        match_id = int(match_id)
    except (TypeError, ValueError) as e:
        raise MatchNotFoundError(str(match_id)) from e

    by_key: dict[tuple[int, int], Match] = {m.key: m for m in matches}
    target = next((m for m in matches if m.match_id == match_id), None)
    if target is None:
        raise MatchNotFoundError(match_id)

    if target.is_placeholder:
        raise InvalidWinnerError(f"Match {target.code} has no participants yet and cannot be decided.")

    winner = target.slot_of(winner_id)
    if winner is None:
        raise InvalidWinnerError(f"Participant {winner_id} is not playing in match {target.code}.")

    if not target.is_ready:
        raise InvalidWinnerError(f"Match {target.code} is still waiting for an opponent.")

    previous = target.winner
    revising = previous is not None and previous != winner
    if revising and revision_policy == RevisionPolicy.FORBID:
        raise ResultLockedError(
            f"Match {target.code} was already decided for {previous.name}; results cannot be changed."
        )

    updated: dict[tuple[int, int], Match] = {}
    updated[target.key] = target.with_changes(winner=winner)

    nr, np_, slot = next_slot(target.round_no, target.position)
    nxt = by_key.get((nr, np_))
    if nxt is not None:
        advanced = nxt.with_changes(**{f"participant_{slot}": winner})
        if revising and revision_policy == RevisionPolicy.CASCADE and nxt.winner is not None:
            advanced = advanced.with_changes(winner=None)
            updated.update(_clear_descendants(by_key, nxt))
        elif advanced.winner is not None and advanced.slot_of(advanced.winner.participant_id) is None:
            # the displaced participant had won the next match; that result no longer stands
            advanced = advanced.with_changes(winner=None)
        updated[nxt.key] = advanced

    new_matches = [updated.get(m.key, m) for m in matches]
    changed = [m_new for m_old, m_new in zip(matches, new_matches) if m_new != m_old]
    max_round = max(m.round_no for m in matches)

    return ProgressResult(
        matches=new_matches,
        decided=updated[target.key],
        advanced_to=updated.get((nr, np_)),
        changed=changed,
        max_round=max_round,
    )


def _clear_descendants(by_key: dict[tuple[int, int], Match], source: Match) -> dict[tuple[int, int], Match]:
    # source had a winner; that winner sits in the next slot up, and so on while results exist
    out: dict[tuple[int, int], Match] = {}
    curr = source
    while curr.winner is not None:
        nr, np_, slot = next_slot(curr.round_no, curr.position)
        nxt = by_key.get((nr, np_))
        if nxt is None:
            break
        out[nxt.key] = nxt.with_changes(**{f"participant_{slot}": None, "winner": None})
        curr = nxt
    return out


def next_status(current: TournamentStatus, result: ProgressResult) -> Optional[TournamentStatus]:
    """
    Status transition implied by a recorded result, or None when unchanged.
    Status only moves forward: upcoming -> in-progress -> completed.
    """
    if current == TournamentStatus.COMPLETED:
        return None
    if result.completed:
        return TournamentStatus.COMPLETED
    if current == TournamentStatus.UPCOMING:
        return TournamentStatus.IN_PROGRESS
    return None
