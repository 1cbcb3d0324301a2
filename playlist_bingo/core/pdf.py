"""
Vector PDF output: one A4 page per board, the grid drawn as a platypus Table.
"""

from __future__ import annotations

from io import BytesIO
import logging
import threading
from typing import Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.platypus import Flowable, PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .config import Settings
from .fonts import PdfFonts, load_pdf_fonts
from .models import Board, Cell
from .render import FREE_LABEL, BoardRenderer, board_title, check_cancelled, require_boards, show_free_label
from .textfit import fit_text


logger = logging.getLogger(__name__)

PAGE_MARGIN = 10 * mm
TITLE_FONT_SIZE = 16
FREE_FONT_SIZE = 14
FONT_SIZE_BY_GRID = {3: 14, 4: 12, 5: 10}
CELL_PADDING = 4
MAX_TEXT_LINES = 5
LEADING = 1.2


def base_font_size(size: int) -> float:
    if size in FONT_SIZE_BY_GRID:
        return FONT_SIZE_BY_GRID[size]
    return 10 if size > 5 else 14


class TableRenderer(BoardRenderer):
    extension = "pdf"

    def __init__(self, fonts: PdfFonts | None = None) -> None:
        self.fonts = fonts or load_pdf_fonts()
        self._styles: dict[tuple[str, float], ParagraphStyle] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "TableRenderer":
        return cls(load_pdf_fonts(settings.font_path, settings.font_bold_path))

    def _style(self, font_name: str, font_size: float) -> ParagraphStyle:
        key = (font_name, font_size)
        style = self._styles.get(key)
        if style is None:
            style = ParagraphStyle(
                name=f"cell-{font_name}-{font_size}",
                fontName=font_name,
                fontSize=font_size,
                leading=font_size * LEADING,
                alignment=TA_CENTER,
            )
            self._styles[key] = style
        return style

    def _cell_flowable(self, cell: Cell, cell_size: float, base: float, include_free_space: bool):
        if cell.is_free:
            if not show_free_label(cell, include_free_space):
                return ""
            return Paragraph(FREE_LABEL, self._style(self.fonts.bold, FREE_FONT_SIZE))

        name = cell.track.name
        font_name = self.fonts.font_for(name)
        box = cell_size - 2 * CELL_PADDING
        # Leave a little slack so Paragraph never re-wraps a fitted line.
        fitted = fit_text(
            name,
            box - 2,
            box,
            MAX_TEXT_LINES,
            base,
            measure=lambda text, size: stringWidth(text, font_name, size),
            leading=LEADING,
        )
        if not fitted.lines:
            return ""
        text = "<br/>".join(escape(line) for line in fitted.lines)
        return Paragraph(text, self._style(font_name, fitted.font_size))

    def _board_flowables(
        self,
        board: Board,
        board_number: int,
        include_free_space: bool,
        frame_width: float,
    ) -> list[Flowable]:
        # Frame padding is 6pt each side.
        cell_size = (frame_width - 12) / board.size
        base = base_font_size(board.size)

        body = [
            [self._cell_flowable(cell, cell_size, base, include_free_space) for cell in row]
            for row in board.cells
        ]
        table = Table(
            body,
            colWidths=[cell_size] * board.size,
            rowHeights=[cell_size] * board.size,
        )
        table.setStyle(TableStyle([
            ("GRID", (0, 0), (-1, -1), 1, colors.black),
            ("ALIGN", (0, 0), (-1, -1), "CENTER"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("LEFTPADDING", (0, 0), (-1, -1), CELL_PADDING),
            ("RIGHTPADDING", (0, 0), (-1, -1), CELL_PADDING),
            ("TOPPADDING", (0, 0), (-1, -1), CELL_PADDING),
            ("BOTTOMPADDING", (0, 0), (-1, -1), CELL_PADDING),
        ]))

        heading = ParagraphStyle(
            name="board-title",
            fontName=self.fonts.bold,
            fontSize=TITLE_FONT_SIZE,
            leading=TITLE_FONT_SIZE * LEADING,
        )
        return [Paragraph(escape(board_title(board_number)), heading), Spacer(1, 10), table]

    def _build(self, boards: Sequence[Board], first_number: int, include_free_space: bool, cancel) -> bytes:
        buf = BytesIO()
        doc = SimpleDocTemplate(
            buf,
            pagesize=A4,
            leftMargin=PAGE_MARGIN,
            rightMargin=PAGE_MARGIN,
            topMargin=PAGE_MARGIN,
            bottomMargin=PAGE_MARGIN,
            title="Bingo Boards",
        )
        story: list[Flowable] = []
        for i, board in enumerate(boards):
            check_cancelled(cancel)
            if i:
                story.append(PageBreak())
            story += self._board_flowables(board, first_number + i, include_free_space, doc.width)
        doc.build(story)
        return buf.getvalue()

    def render_board(self, board: Board, board_number: int, include_free_space: bool = True) -> bytes:
        return self._build([board], board_number, include_free_space, None)

    def render_single_document(
        self,
        boards: Sequence[Board],
        include_free_space: bool = True,
        *,
        cancel: threading.Event | None = None,
    ) -> bytes:
        require_boards(boards)
        pdf = self._build(boards, 1, include_free_space, cancel)
        logger.info("Rendered %d boards as a table PDF (%d bytes)", len(boards), len(pdf))
        return pdf
