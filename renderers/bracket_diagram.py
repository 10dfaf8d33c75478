# renderers/bracket_diagram.py
from __future__ import annotations

import os
from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from domain.generator import round_name
from domain.models import Match, Participant


@dataclass(frozen=True)
class DiagramStyle:
    # Layout (logical units; final pixels = logical * scale)
    margin: int = 36
    header_h: int = 40
    box_w: int = 300
    box_h: int = 84
    h_gap: int = 70
    v_gap: int = 22

    scale: float = 1.5

    bg: tuple[int, int, int] = (10, 10, 12)
    text: tuple[int, int, int] = (240, 232, 220)
    subtle: tuple[int, int, int] = (170, 160, 150)

    box_fill: tuple[int, int, int] = (28, 24, 24)
    box_border: tuple[int, int, int] = (128, 118, 110)
    line: tuple[int, int, int] = (90, 78, 72)
    winner_gold: tuple[int, int, int] = (210, 175, 90)
    winner_green: tuple[int, int, int] = (34, 150, 70)

    font_size: int = 18
    font_size_small: int = 14

    bg_image_path: str | None = "assets/bracket_bg.png"


class BracketDiagramRenderer:
    """
    PNG bracket: one column per round, matches centred between the two
    matches that feed them, connectors drawn from each match to its next slot.
    """

    def __init__(self, style: DiagramStyle | None = None, font_path: Optional[str] = None) -> None:
        self.style = style or DiagramStyle()
        self.font_path = font_path

    def _s(self, v: float) -> int:
        return int(round(v * self.style.scale))

    def _font(self, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        candidates = [self.font_path] if self.font_path else []
        candidates += ["DejaVuSans.ttf", "DejaVuSansMono.ttf", "Arial.ttf"]
        for name in candidates:
            try:
                return ImageFont.truetype(name, size)
            except OSError:
                continue
        return ImageFont.load_default()

    def _canvas(self, width: int, height: int) -> Image.Image:
        img = Image.new("RGBA", (max(2, width), max(2, height)), (*self.style.bg, 255))
        path = self.style.bg_image_path
        if path and os.path.exists(path):
            with Image.open(path) as raw:
                bg = raw.convert("RGBA").resize(img.size)
            img.alpha_composite(bg, (0, 0))
        return img

    def layout(self, matches: Sequence[Match]) -> dict[tuple[int, int], tuple[int, int]]:
        """
        (round, position) -> logical (x, y) of the card's top-left corner.
        Round-1 cards stack top to bottom; each later card sits midway between
        its two feeders, or level with the one feeder that exists.
        """
        st = self.style
        pos: dict[tuple[int, int], tuple[int, int]] = {}
        for m in sorted(matches, key=lambda x: (x.round_no, x.position)):
            x = st.margin + (m.round_no - 1) * (st.box_w + st.h_gap)
            if m.round_no == 1:
                y = st.margin + st.header_h + (m.position - 1) * (st.box_h + st.v_gap)
            else:
                feeders = [
                    pos[k]
                    for k in ((m.round_no - 1, 2 * m.position - 1), (m.round_no - 1, 2 * m.position))
                    if k in pos
                ]
                if feeders:
                    y = sum(fy for _fx, fy in feeders) // len(feeders)
                else:
                    y = st.margin + st.header_h + (m.position - 1) * (st.box_h + st.v_gap) * (2 ** (m.round_no - 1))
            pos[m.key] = (x, y)
        return pos

    def render_png(
        self,
        *,
        matches: Sequence[Match],
        participants: Sequence[Participant],
        title: str = "Bracket",
    ) -> BytesIO:
        st = self.style
        seeds = {p.participant_id: i for i, p in enumerate(participants, start=1)}
        pos = self.layout(matches)
        max_round = max((m.round_no for m in matches), default=0)

        width_l = st.margin * 2 + max(1, max_round) * st.box_w + max(0, max_round - 1) * st.h_gap
        height_l = max((y for _x, y in pos.values()), default=st.margin + st.header_h) + st.box_h + st.margin

        img = self._canvas(self._s(width_l), self._s(height_l))
        draw = ImageDraw.Draw(img)
        f_main = self._font(self._s(st.font_size))
        f_small = self._font(self._s(st.font_size_small))

        draw.text((self._s(st.margin), self._s(st.margin // 2)), title, font=f_main, fill=st.text)
        for r in range(1, max_round + 1):
            x = st.margin + (r - 1) * (st.box_w + st.h_gap)
            draw.text((self._s(x), self._s(st.margin + st.header_h // 4)), round_name(r, max_round), font=f_small, fill=st.subtle)

        # connectors first so cards paint over line ends
        for m in matches:
            nxt = pos.get((m.round_no + 1, (m.position + 1) // 2))
            if nxt is None:
                continue
            x0, y0 = pos[m.key]
            sx, sy = x0 + st.box_w, y0 + st.box_h // 2
            tx = nxt[0]
            ty = nxt[1] + (st.box_h // 4 if m.position % 2 == 1 else 3 * st.box_h // 4)
            mx = sx + st.h_gap // 2
            col = (*(st.winner_gold if m.winner is not None else st.line), 255)
            w = max(2, self._s(2))
            draw.line([(self._s(sx), self._s(sy)), (self._s(mx), self._s(sy))], fill=col, width=w)
            draw.line([(self._s(mx), self._s(sy)), (self._s(mx), self._s(ty))], fill=col, width=w)
            draw.line([(self._s(mx), self._s(ty)), (self._s(tx), self._s(ty))], fill=col, width=w)

        for m in matches:
            x, y = pos[m.key]
            self._draw_card(draw, m, x, y, seeds, f_main, f_small)

        buf = BytesIO()
        img.convert("RGB").save(buf, format="PNG")
        buf.seek(0)
        return buf

    def _draw_card(
        self,
        draw: ImageDraw.ImageDraw,
        m: Match,
        x: int,
        y: int,
        seeds: dict[int, int],
        f_main: ImageFont.ImageFont,
        f_small: ImageFont.ImageFont,
    ) -> None:
        st = self.style
        x0, y0, x1, y1 = self._s(x), self._s(y), self._s(x + st.box_w), self._s(y + st.box_h)
        radius = self._s(8)
        draw.rounded_rectangle([x0, y0, x1, y1], radius=radius, fill=(*st.box_fill, 235), outline=(*st.box_border, 255), width=2)

        half = (y1 - y0) // 2
        draw.line([(x0 + radius, y0 + half), (x1 - radius, y0 + half)], fill=(*st.line, 255), width=1)
        draw.text((x1 - self._s(54), y0 + self._s(2)), m.code, font=f_small, fill=st.subtle)

        for i, p in enumerate((m.participant_a, m.participant_b)):
            top = y0 + i * half
            is_winner = p is not None and m.winner == p
            if is_winner:
                draw.rectangle([x0 + 2, top + 2, x0 + self._s(6), top + half - 2], fill=(*st.winner_green, 255))
            label = "TBD" if p is None else (f"#{seeds[p.participant_id]} {p.name}" if p.participant_id in seeds else p.name)
            label = self._ellipsize(draw, label, f_main, (x1 - x0) - self._s(80))
            draw.text(
                (x0 + self._s(14), top + (half - self._s(st.font_size)) // 2),
                label,
                font=f_main,
                fill=st.winner_gold if is_winner else (st.text if p is not None else st.subtle),
            )

    @staticmethod
    def _ellipsize(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont, max_w: int) -> str:
        t = (text or "").strip()
        if draw.textlength(t, font=font) <= max_w:
            return t
        while t and draw.textlength(t + "…", font=font) > max_w:
            t = t[:-1]
        return (t + "…") if t else "…"
