# services/bracket_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, Sequence, TypeVar

from domain.enums import EntrantPolicy, RevisionPolicy, TournamentStatus
from domain.errors import InvalidInputError, InvalidWinnerError, MatchNotFoundError
from domain.generator import generate
from domain.models import Match, Participant, Tournament, parse_match_code
from domain.progressor import ProgressResult, next_status, record_result

log = logging.getLogger(__name__)

T = TypeVar("T")

MAX_NAME_LEN = 100


class BracketServiceError(Exception):
    pass


class TournamentNotFoundError(BracketServiceError):
    pass


class UnitOfWork(Protocol):
    async def load_tournament(self) -> Optional[Tournament]: ...

    async def load_participants(self) -> list[Participant]: ...

    async def load_matches(self) -> list[Match]: ...

    async def save_matches(self, matches: Sequence[Match]) -> None: ...

    async def set_status(self, status: TournamentStatus) -> None: ...


class BracketStore(Protocol):
    """
    Persistence the service needs. run_locked must give work exclusive access to
    one tournament for its whole read/compute/write cycle, and may re-run it on a
    transient write conflict.
    """

    async def create_tournament(
        self,
        *,
        name: str,
        date: date,
        participant_names: Sequence[str],
        guild_id: Optional[int],
        created_by: Optional[int],
        build_matches: Callable[[list[Participant]], list[Match]],
    ) -> Tournament: ...

    async def run_locked(self, tournament_id: int, work: Callable[[UnitOfWork], Awaitable[T]]) -> T: ...

    async def get_tournament(self, *, tournament_id: int) -> Optional[Tournament]: ...

    async def list_matches(self, *, tournament: Tournament) -> list[Match]: ...

    async def list_tournaments(self, *, guild_id: Optional[int], limit: int = 25) -> list[Mapping[str, Any]]: ...


@dataclass(frozen=True)
class ReportOutcome:
    tournament_id: int
    result: ProgressResult
    status: TournamentStatus
    status_changed: bool


def clean_participant_names(names: Sequence[str]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for raw in names:
        n = (raw or "").strip()
        if not n:
            continue
        if len(n) > MAX_NAME_LEN:
            raise InvalidInputError(f"Participant name too long (max {MAX_NAME_LEN}): {n[:20]}…")
        key = n.casefold()
        if key in seen:
            raise InvalidInputError(f"Duplicate participant name: {n}")
        seen.add(key)
        out.append(n)
    if not out:
        raise InvalidInputError("A tournament needs at least one participant.")
    return out


def champion(matches: Sequence[Match]) -> Optional[Participant]:
    if not matches:
        return None
    max_round = max(m.round_no for m in matches)
    final = next((m for m in matches if m.round_no == max_round and m.position == 1), None)
    return final.winner if final else None


def runner_up(matches: Sequence[Match]) -> Optional[Participant]:
    if not matches:
        return None
    max_round = max(m.round_no for m in matches)
    final = next((m for m in matches if m.round_no == max_round and m.position == 1), None)
    return final.loser if final else None


class BracketService:
    """
    Responsible for:
      - Creating a tournament with its full bracket (generator)
      - Recording results and advancing winners (progressor)
      - Driving tournament status from the facts the progressor reports

    The domain functions are pure; everything stateful goes through the store.
    """

    def __init__(
        self,
        store: BracketStore,
        *,
        entrant_policy: EntrantPolicy = EntrantPolicy.FLOOR,
        revision_policy: RevisionPolicy = RevisionPolicy.OVERWRITE,
    ) -> None:
        self._store = store
        self._entrant_policy = entrant_policy
        self._revision_policy = revision_policy

    @property
    def entrant_policy(self) -> EntrantPolicy:
        return self._entrant_policy

    @property
    def revision_policy(self) -> RevisionPolicy:
        return self._revision_policy

    # -------------------------
    # Public API
    # -------------------------

    async def create_tournament(
        self,
        *,
        name: str,
        date: date,
        participant_names: Sequence[str],
        guild_id: Optional[int] = None,
        created_by: Optional[int] = None,
    ) -> Tournament:
        name = (name or "").strip()
        if not name:
            raise InvalidInputError("Tournament name is required.")
        names = clean_participant_names(participant_names)

        # fail before touching the store; generate() is re-run with real ids below
        generate(
            [Participant(participant_id=i, name=n) for i, n in enumerate(names, start=1)],
            entrant_policy=self._entrant_policy,
        )

        t = await self._store.create_tournament(
            name=name[:128],
            date=date,
            participant_names=names,
            guild_id=guild_id,
            created_by=created_by,
            build_matches=lambda ps: generate(ps, entrant_policy=self._entrant_policy),
        )
        if len(names) % 2 == 1 and len(names) > 1:
            log.warning("Tournament %s has an odd field (%d); %s has no first-round match", t.tournament_id, len(names), names[-1])
        log.info("Created tournament %s %r with %d participants", t.tournament_id, t.name, t.participant_count)
        return t

    async def report_result(self, *, tournament_id: int, match_id: int, winner_id: int) -> ReportOutcome:
        async def work(uow: UnitOfWork) -> ReportOutcome:
            t = await uow.load_tournament()
            if t is None:
                raise TournamentNotFoundError(f"Tournament not found: {tournament_id}")

            matches = await uow.load_matches()
            result = record_result(matches, match_id, winner_id, revision_policy=self._revision_policy)
            if result.changed:
                await uow.save_matches(result.changed)

            new_status = next_status(t.status, result)
            if new_status is not None:
                await uow.set_status(new_status)

            return ReportOutcome(
                tournament_id=t.tournament_id,
                result=result,
                status=new_status or t.status,
                status_changed=new_status is not None,
            )

        outcome = await self._store.run_locked(int(tournament_id), work)

        r = outcome.result
        log.info(
            "Tournament %s: %s won by %s (round %d/%d)",
            outcome.tournament_id, r.decided.code, r.decided.winner.name if r.decided.winner else "?", r.match_round, r.max_round,
        )
        if outcome.status_changed:
            log.info("Tournament %s is now %s", outcome.tournament_id, outcome.status.value)
        return outcome

    async def report_result_by_code(self, *, tournament_id: int, match_code: str, winner_name: str) -> ReportOutcome:
        """
        Chat-friendly form: R2-01 style code and a participant name.
        """
        try:
            round_no, position = parse_match_code(match_code)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        t, matches = await self.get_bracket(tournament_id=tournament_id)
        m = next((x for x in matches if x.round_no == round_no and x.position == position), None)
        if m is None:
            raise MatchNotFoundError(match_code.strip().upper())

        p = t.participant_by_name(winner_name)
        if p is None:
            raise InvalidWinnerError(f"{winner_name!r} is not a participant of {t.name}.")

        return await self.report_result(tournament_id=t.tournament_id, match_id=m.match_id, winner_id=p.participant_id)

    async def get_tournament(self, *, tournament_id: int) -> Tournament:
        t = await self._store.get_tournament(tournament_id=int(tournament_id))
        if t is None:
            raise TournamentNotFoundError(f"Tournament not found: {tournament_id}")
        return t

    async def get_bracket(self, *, tournament_id: int) -> tuple[Tournament, list[Match]]:
        t = await self.get_tournament(tournament_id=tournament_id)
        matches = await self._store.list_matches(tournament=t)
        return t, matches

    async def list_tournaments(self, *, guild_id: Optional[int], limit: int = 25) -> list[Mapping[str, Any]]:
        return await self._store.list_tournaments(guild_id=guild_id, limit=limit)
