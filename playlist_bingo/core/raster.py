"""
Raster output: each board is drawn onto an A4 canvas at 150 DPI with Pillow.

Cells may carry album artwork, fetched in parallel before drawing starts. The
combined PDF puts two board images side by side on each landscape A4 page.
"""

from __future__ import annotations

from io import BytesIO
import logging
import threading
from typing import Iterator, Mapping, Sequence

from PIL import Image, ImageDraw, ImageOps
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen.canvas import Canvas

from .artwork import ArtworkFetcher
from .config import Settings
from .fonts import RasterFonts
from .models import Board, Cell
from .render import FREE_LABEL, BoardRenderer, board_title, check_cancelled, require_boards, show_free_label
from .textfit import fit_text


logger = logging.getLogger(__name__)

# A4 at 150 DPI
PAGE_WIDTH = 1240
PAGE_HEIGHT = 1754
GRID_MARGIN = 120
TITLE_Y = 100
TITLE_FONT_SIZE = 48
LINE_WIDTH = 3
MAX_TEXT_LINES = 4
TEXT_WIDTH_RATIO = 0.85
ARTWORK_RATIO = 0.45
ARTWORK_RADIUS_RATIO = 0.12
MARK_FILL = (220, 220, 220)

SHEET_MARGIN = 10 * mm
SHEET_GAP = 8 * mm


def rounded_thumbnail(image: Image.Image, size: int, radius: int) -> tuple[Image.Image, Image.Image]:
    """Cover-scale `image` into a `size` square; return it with a rounded-corner mask."""
    thumb = ImageOps.fit(image.convert("RGB"), (size, size), method=Image.Resampling.LANCZOS)
    mask = Image.new("L", (size, size), 0)
    ImageDraw.Draw(mask).rounded_rectangle((0, 0, size - 1, size - 1), radius=radius, fill=255)
    return thumb, mask


class RasterRenderer(BoardRenderer):
    extension = "png"
    mimetype = "image/png"

    def __init__(
        self,
        fonts: RasterFonts | None = None,
        artwork: ArtworkFetcher | None = None,
        *,
        show_artwork: bool = True,
        show_marks: bool = False,
    ) -> None:
        self.fonts = fonts or RasterFonts()
        self.artwork = artwork or ArtworkFetcher()
        self.show_artwork = show_artwork
        self.show_marks = show_marks

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "RasterRenderer":
        return cls(
            RasterFonts(settings.font_path, settings.font_bold_path),
            ArtworkFetcher(timeout=settings.artwork_timeout, max_workers=settings.artwork_workers),
            **kwargs,
        )

    def _prefetch(self, boards: Sequence[Board], cancel: threading.Event | None) -> dict[str, Image.Image]:
        if not self.show_artwork:
            return {}
        urls = (c.track.artwork_url for b in boards for c in b.iter_cells() if not c.is_free)
        return self.artwork.fetch_all(urls, cancel)

    def _draw_text(self, draw: ImageDraw.ImageDraw, text: str, box: tuple[float, float, float, float], base: float):
        x0, y0, x1, y1 = box
        width, height = x1 - x0, y1 - y0
        fitted = fit_text(
            text,
            width,
            height,
            MAX_TEXT_LINES,
            base,
            measure=self.fonts.measure(text=text),
            min_font_size=max(8, base * 0.5),
            step=1,
        )
        if not fitted.lines:
            return
        font = self.fonts.get(fitted.font_size, text=text)
        line_height = fitted.font_size * 1.2
        y = y0 + (height - len(fitted.lines) * line_height) / 2 + line_height / 2
        cx = x0 + width / 2
        for line in fitted.lines:
            draw.text((cx, y), line, fill="black", font=font, anchor="mm")
            y += line_height

    def _draw_cell(
        self,
        page: Image.Image,
        draw: ImageDraw.ImageDraw,
        cell: Cell,
        x: float,
        y: float,
        cell_size: float,
        include_free_space: bool,
        images: Mapping[str, Image.Image],
    ) -> None:
        if self.show_marks and cell.marked:
            draw.rectangle((x, y, x + cell_size, y + cell_size), fill=MARK_FILL)

        if cell.is_free:
            if show_free_label(cell, include_free_space):
                font = self.fonts.get(cell_size * 0.2, bold=True)
                draw.text((x + cell_size / 2, y + cell_size / 2), FREE_LABEL, fill="black", font=font, anchor="mm")
            return

        track = cell.track
        text_w = cell_size * TEXT_WIDTH_RATIO
        text_x0 = x + (cell_size - text_w) / 2
        text_box = (text_x0, y + cell_size * 0.075, text_x0 + text_w, y + cell_size * 0.925)

        image = images.get(track.artwork_url) if track.artwork_url else None
        if image is not None:
            side = int(cell_size * ARTWORK_RATIO)
            thumb, mask = rounded_thumbnail(image, side, int(side * ARTWORK_RADIUS_RATIO))
            top = y + cell_size * 0.06
            page.paste(thumb, (int(x + (cell_size - side) / 2), int(top)), mask)
            text_box = (text_x0, top + side + cell_size * 0.03, text_x0 + text_w, y + cell_size * 0.95)

        self._draw_text(draw, track.name, text_box, cell_size * 0.12)

    def _draw_board(
        self,
        board: Board,
        board_number: int,
        include_free_space: bool,
        images: Mapping[str, Image.Image],
    ) -> Image.Image:
        page = Image.new("RGB", (PAGE_WIDTH, PAGE_HEIGHT), "white")
        draw = ImageDraw.Draw(page)

        title_font = self.fonts.get(TITLE_FONT_SIZE, bold=True)
        draw.text((PAGE_WIDTH / 2, TITLE_Y), board_title(board_number), fill="black", font=title_font, anchor="mm")

        cell_size = (PAGE_WIDTH - 2 * GRID_MARGIN) / board.size
        grid_size = cell_size * board.size
        grid_top = (PAGE_HEIGHT - grid_size) / 2 + 60

        for row in board.cells:
            for cell in row:
                cx = GRID_MARGIN + cell.col * cell_size
                cy = grid_top + cell.row * cell_size
                self._draw_cell(page, draw, cell, cx, cy, cell_size, include_free_space, images)

        # Lines last so marks and artwork never cover them.
        for i in range(board.size + 1):
            offset = i * cell_size
            draw.line((GRID_MARGIN + offset, grid_top, GRID_MARGIN + offset, grid_top + grid_size),
                      fill="black", width=LINE_WIDTH)
            draw.line((GRID_MARGIN, grid_top + offset, GRID_MARGIN + grid_size, grid_top + offset),
                      fill="black", width=LINE_WIDTH)
        return page

    def draw_board(
        self,
        board: Board,
        board_number: int,
        include_free_space: bool = True,
        images: Mapping[str, Image.Image] | None = None,
    ) -> Image.Image:
        if images is None:
            images = self._prefetch([board], None)
        return self._draw_board(board, board_number, include_free_space, images)

    def render_board(self, board: Board, board_number: int, include_free_space: bool = True) -> bytes:
        return _png_bytes(self.draw_board(board, board_number, include_free_space))

    def _render_each(
        self,
        boards: Sequence[Board],
        include_free_space: bool,
        cancel: threading.Event | None,
    ) -> Iterator[bytes]:
        images = self._prefetch(boards, cancel)
        for i, board in enumerate(boards, start=1):
            check_cancelled(cancel)
            yield _png_bytes(self._draw_board(board, i, include_free_space, images))

    def render_single_document(
        self,
        boards: Sequence[Board],
        include_free_space: bool = True,
        *,
        cancel: threading.Event | None = None,
    ) -> bytes:
        require_boards(boards)
        pages = list(self._render_each(boards, include_free_space, cancel))
        check_cancelled(cancel)

        buf = BytesIO()
        pagesize = landscape(A4)
        canvas = Canvas(buf, pagesize=pagesize)
        page_w, page_h = pagesize
        slot_w = (page_w - 2 * SHEET_MARGIN - SHEET_GAP) / 2
        slot_h = page_h - 2 * SHEET_MARGIN

        for start in range(0, len(pages), 2):
            for slot, png in enumerate(pages[start:start + 2]):
                img = ImageReader(BytesIO(png))
                iw, ih = img.getSize()
                scale = min(slot_w / iw, slot_h / ih)
                draw_w, draw_h = iw * scale, ih * scale
                slot_x = SHEET_MARGIN + slot * (slot_w + SHEET_GAP)
                canvas.drawImage(
                    img,
                    slot_x + (slot_w - draw_w) / 2,
                    SHEET_MARGIN + (slot_h - draw_h) / 2,
                    width=draw_w,
                    height=draw_h,
                )
            canvas.showPage()

        canvas.save()
        pdf = buf.getvalue()
        logger.info("Rendered %d boards as an image PDF (%d bytes)", len(boards), len(pdf))
        return pdf


def _png_bytes(image: Image.Image) -> bytes:
    buf = BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()
