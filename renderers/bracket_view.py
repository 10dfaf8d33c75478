# renderers/bracket_view.py
from __future__ import annotations

from itertools import groupby
from typing import Optional, Sequence

from domain.generator import round_name
from domain.models import Match, Participant


def _pad(s: str, width: int) -> str:
    s = s or ""
    if len(s) > width:
        return s[: max(0, width - 1)] + "…" if width >= 2 else s[:width]
    return s + (" " * (width - len(s)))


def _slot_label(p: Optional[Participant], seeds: dict[int, int], *, name_width: int) -> str:
    if p is None:
        return _pad("TBD", name_width)
    seed = seeds.get(p.participant_id)
    name = f"[{seed}] {p.name}" if seed is not None else p.name
    return _pad(name, name_width)


def _status_mark(m: Match) -> str:
    if m.winner is not None:
        return f"✅ {m.winner.name}"
    if m.is_ready:
        return "⏳"
    return "•"


class BracketView:
    """
    Text bracket renderer for Discord (monospace).

    Input:
      - matches: the tournament's match set
      - participants: seed order (seed = index + 1)
    """

    def __init__(self, *, name_width: int = 20) -> None:
        self._name_width = int(name_width)

    def render(
        self,
        *,
        matches: Sequence[Match],
        participants: Sequence[Participant],
        title: str = "Bracket",
        max_lines: int = 55,
    ) -> str:
        seeds = {p.participant_id: i for i, p in enumerate(participants, start=1)}
        ordered = sorted(matches, key=lambda m: (m.round_no, m.position))
        max_round = ordered[-1].round_no if ordered else 0

        lines: list[str] = [f"=== {title} ===", ""]
        if not ordered:
            lines.append("(no matches)")

        for round_no, group in groupby(ordered, key=lambda m: m.round_no):
            lines.append(f"{round_name(round_no, max_round)}:")
            for m in group:
                left = _slot_label(m.participant_a, seeds, name_width=self._name_width)
                right = _slot_label(m.participant_b, seeds, name_width=self._name_width)
                lines.append(f"  {m.code}  {left} vs {right}  {_status_mark(m)}")
            lines.append("")

        unpaired = self._unpaired(ordered, participants)
        if unpaired:
            lines.append("Unpaired: " + ", ".join(p.name for p in unpaired))

        # keep the end when trimming; the final matters most
        if len(lines) > max_lines:
            head = lines[:6]
            tail = lines[-(max_lines - 8) :]
            lines = head + ["...", ""] + tail

        return "```text\n" + "\n".join(lines).rstrip() + "\n```"

    @staticmethod
    def _unpaired(matches: Sequence[Match], participants: Sequence[Participant]) -> list[Participant]:
        placed: set[int] = set()
        for m in matches:
            if m.round_no != 1:
                continue
            for p in (m.participant_a, m.participant_b):
                if p is not None:
                    placed.add(p.participant_id)
        return [p for p in participants if p.participant_id not in placed]
