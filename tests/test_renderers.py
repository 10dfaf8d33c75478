"""
Tests for the text, image and embed renderers.
"""
from datetime import date

from PIL import Image

from domain.enums import TournamentStatus
from domain.generator import generate
from domain.models import Tournament
from domain.progressor import record_result
from renderers.bracket_diagram import BracketDiagramRenderer, DiagramStyle
from renderers.bracket_view import BracketView
from renderers.embeds import EmbedTheme, Embeds
from renderers.leaderboard_view import LeaderboardView
from services.bracket_service import ReportOutcome
from services.stats_service import ArchivedTournament, LeaderboardEntry, points_table
from tests.conftest import make_participants


def _played(participants):
    matches = generate(participants)
    first = matches[0]
    return record_result(matches, first.match_id, first.participant_a.participant_id).matches


class TestBracketView:
    def test_renders_rounds_codes_and_marks(self, four):
        text = BracketView().render(matches=_played(four), participants=four, title="Cup")
        assert text.startswith("```text\n=== Cup ===")
        assert text.endswith("\n```")
        assert "Semifinal:" in text
        assert "Final:" in text
        assert "R1-01" in text and "R2-01" in text
        assert "✅ A" in text
        assert "[4] D" in text
        assert "TBD" in text

    def test_odd_field_lists_unpaired(self):
        ps = make_participants("A", "B", "C")
        text = BracketView().render(matches=generate(ps), participants=ps)
        assert "Unpaired: C" in text

    def test_no_matches(self):
        ps = make_participants("Solo")
        text = BracketView().render(matches=[], participants=ps)
        assert "(no matches)" in text
        assert "Unpaired: Solo" in text

    def test_long_brackets_are_trimmed_but_keep_the_final(self):
        ps = make_participants(*[f"P{i}" for i in range(1, 65)])
        text = BracketView().render(matches=generate(ps), participants=ps, max_lines=30)
        assert "..." in text
        assert "Final:" in text
        assert len(text.splitlines()) <= 32


class TestBracketDiagram:
    def test_layout_centres_later_rounds_between_feeders(self, four):
        r = BracketDiagramRenderer()
        pos = r.layout(generate(four))
        (_x1, y1), (_x2, y2), (x3, y3) = pos[(1, 1)], pos[(1, 2)], pos[(2, 1)]
        assert y3 == (y1 + y2) // 2
        assert x3 > pos[(1, 1)][0]

    def test_render_png(self, eight):
        r = BracketDiagramRenderer(style=DiagramStyle(bg_image_path=None, scale=1.0))
        buf = r.render_png(matches=_played(eight), participants=eight, title="Cup")
        assert buf.getvalue()[:8] == b"\x89PNG\r\n\x1a\n"
        with Image.open(buf) as img:
            assert img.width > 0 and img.height > 0

    def test_render_png_with_no_matches(self):
        r = BracketDiagramRenderer(style=DiagramStyle(bg_image_path=None))
        buf = r.render_png(matches=[], participants=make_participants("Solo"))
        assert buf.getvalue()[:4] == b"\x89PNG"


class TestLeaderboardView:
    def test_leaderboard_rows(self):
        rows = [LeaderboardEntry(rank=1, name="Alice", wins=5, losses=1, tournaments_played=2, tournaments_won=1)]
        text = LeaderboardView().render_leaderboard(rows)
        assert "Alice" in text
        assert "(no results yet)" not in text

    def test_empty_tables(self):
        view = LeaderboardView()
        assert "(no results yet)" in view.render_leaderboard([])
        assert "(no completed tournaments)" in view.render_archive([])
        assert "(empty bracket)" in view.render_points([])

    def test_archive_shows_winner_and_runner_up(self):
        rows = [ArchivedTournament(tournament_id=3, name="Cup", date=date(2026, 10, 19), participants=4, winner="A", runner_up="D")]
        text = LeaderboardView().render_archive(rows)
        assert "#3 2026-10-19  Cup (4 players)" in text
        assert "🏆 A" in text and "🥈 D" in text

    def test_points(self, four):
        text = LeaderboardView().render_points(points_table(_played(four)), title="Cup")
        first_row = text.splitlines()[2]
        assert "A" in first_row and first_row.endswith("100")


class TestEmbeds:
    def _tournament(self, participants, status=TournamentStatus.IN_PROGRESS):
        return Tournament(tournament_id=9, name="Cup", date=date(2026, 10, 19), status=status, participants=tuple(participants))

    def test_match_recorded_mentions_advancement(self, four):
        matches = generate(four)
        result = record_result(matches, matches[0].match_id, four[0].participant_id)
        outcome = ReportOutcome(tournament_id=9, result=result, status=TournamentStatus.IN_PROGRESS, status_changed=True)

        e = Embeds().match_recorded(self._tournament(four), outcome)
        assert "`R1-01` winner: **A**" in e.description
        assert "Advances to `R2-01`" in e.description
        assert "now `in-progress`" in e.description

    def test_match_recorded_announces_champion(self):
        ps = make_participants("A", "B")
        matches = generate(ps)
        result = record_result(matches, matches[0].match_id, ps[1].participant_id)
        outcome = ReportOutcome(tournament_id=9, result=result, status=TournamentStatus.COMPLETED, status_changed=True)

        e = Embeds().match_recorded(self._tournament(ps), outcome)
        assert "🏆 **B** wins Cup!" in e.description

    def test_card_colour_follows_status(self, four):
        theme = EmbedTheme()
        t = self._tournament(four, status=TournamentStatus.COMPLETED)
        e = Embeds(theme=theme).tournament_card(t, generate(four), champion=four[0])
        assert e.colour.value == theme.success
        assert [f.name for f in e.fields] == ["Status", "Date", "Participants", "Matches", "Champion"]
        assert e.footer.text == "Bracket Bot"
