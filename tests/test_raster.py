from io import BytesIO
from pathlib import Path
import re
import threading
import time
import zipfile

from PIL import Image, ImageOps
import pytest
import requests

from conftest import make_track, png_bytes
from playlist_bingo.core.artwork import ArtworkFetcher
from playlist_bingo.core.errors import RenderCancelledError
from playlist_bingo.core.fonts import RasterFonts
from playlist_bingo.core.generator import generate_board, generate_multiple_boards
from playlist_bingo.core.raster import GRID_MARGIN, PAGE_HEIGHT, PAGE_WIDTH, RasterRenderer, rounded_thumbnail


class FakeResponse:
    def __init__(self, content: bytes, status: int = 200):
        self.content = content
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, routes, delay: float = 0.0):
        self.routes = routes
        self.delay = delay
        self.calls = []

    def get(self, url, timeout=None, headers=None):
        self.calls.append((url, timeout))
        if self.delay:
            time.sleep(self.delay)
        result = self.routes.get(url)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return FakeResponse(b"", 404)
        return FakeResponse(result)


@pytest.fixture(scope="module")
def fonts():
    return RasterFonts()


def renderer_with(fonts, routes, **kwargs):
    session = FakeSession(routes)
    return RasterRenderer(fonts, ArtworkFetcher(session, timeout=2), **kwargs), session


def test_board_png_has_page_dimensions(fonts, tracks):
    renderer, _ = renderer_with(fonts, {})
    png = renderer.render_board(generate_board(tracks, 5, True), 1, True)
    image = Image.open(BytesIO(png))
    assert image.format == "PNG"
    assert image.size == (PAGE_WIDTH, PAGE_HEIGHT)


def test_broken_artwork_degrades_to_text_only(fonts):
    pool = [make_track(i, artwork_url="https://img/ok") for i in range(8)]
    pool.append(make_track(8, artwork_url="https://img/broken"))
    pool.append(make_track(9, artwork_url="https://img/missing"))
    pool.append(make_track(10, artwork_url="https://img/garbage"))
    routes = {
        "https://img/ok": png_bytes(),
        "https://img/broken": requests.ConnectionError("boom"),
        "https://img/garbage": b"not an image",
    }
    renderer, session = renderer_with(fonts, routes)

    board = generate_board(pool, 3, False)
    png = renderer.render_board(board, 1, False)

    assert Image.open(BytesIO(png)).size == (PAGE_WIDTH, PAGE_HEIGHT)
    fetched = {url for url, _ in session.calls}
    assert fetched == {t.artwork_url for t in board.tracks}
    assert all(timeout == 2 for _, timeout in session.calls)


def test_artwork_is_fetched_once_per_url(fonts):
    pool = [make_track(i, artwork_url="https://img/same") for i in range(9)]
    renderer, session = renderer_with(fonts, {"https://img/same": png_bytes()})
    renderer.render_per_board_archive(generate_multiple_boards(pool, 3, 3, False), False)
    assert [url for url, _ in session.calls] == ["https://img/same"]


def test_archive_has_one_png_per_board_in_order(fonts, tracks):
    renderer, _ = renderer_with(fonts, {})
    boards = generate_multiple_boards(tracks, 3, 4, False, seed=5)
    data = renderer.render_per_board_archive(boards, False)
    with zipfile.ZipFile(BytesIO(data)) as zf:
        names = zf.namelist()
        assert names == ["bingo_board_001.png", "bingo_board_002.png", "bingo_board_003.png"]
        for name in names:
            assert Image.open(BytesIO(zf.read(name))).size == (PAGE_WIDTH, PAGE_HEIGHT)


@pytest.mark.parametrize("count,pages", [(1, 1), (2, 1), (3, 2), (4, 2)])
def test_single_document_puts_two_boards_per_page(fonts, tracks, count, pages):
    renderer, _ = renderer_with(fonts, {})
    boards = generate_multiple_boards(tracks, count, 5, True, seed=9)
    pdf = renderer.render_single_document(boards, True)
    assert pdf.startswith(b"%PDF-")
    assert len(re.findall(rb"/Type\s*/Page(?!s)", pdf)) == pages


def test_marked_cells_are_shaded_when_requested(fonts, tracks):
    board = generate_board(tracks, 3, False)
    board.cell(0, 0).marked = True
    plain, _ = renderer_with(fonts, {})
    marked, _ = renderer_with(fonts, {}, show_marks=True)
    assert plain.render_board(board, 1) != marked.render_board(board, 1)


def test_rounded_thumbnail_is_square_with_clear_corners():
    image = Image.new("RGB", (300, 120), (10, 200, 10))
    thumb, mask = rounded_thumbnail(image, 80, 12)
    assert thumb.size == (80, 80)
    assert mask.getpixel((0, 0)) == 0
    assert mask.getpixel((40, 40)) == 255


def test_cancel_abandons_artwork_fetches(fonts):
    pool = [make_track(i, artwork_url=f"https://img/{i}") for i in range(9)]
    session = FakeSession({f"https://img/{i}": png_bytes() for i in range(9)}, delay=0.2)
    renderer = RasterRenderer(fonts, ArtworkFetcher(session, timeout=2, max_workers=1))
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(RenderCancelledError):
        renderer.render_single_document([generate_board(pool, 3, False)], False, cancel=cancel)
    assert len(session.calls) < 9


def cell_has_ink(image, board_size, row, col):
    cell = (PAGE_WIDTH - 2 * GRID_MARGIN) / board_size
    top = (PAGE_HEIGHT - cell * board_size) / 2 + 60
    x, y = GRID_MARGIN + col * cell, top + row * cell
    region = image.crop((int(x) + 10, int(y) + 10, int(x + cell) - 10, int(y + cell) - 10))
    return ImageOps.invert(region.convert("L")).getbbox() is not None


def test_cells_with_broken_artwork_still_show_their_title(fonts):
    pool = [make_track(i, artwork_url="https://img/broken") for i in range(9)]
    renderer, _ = renderer_with(fonts, {"https://img/broken": requests.ConnectionError("boom")})
    board = generate_board(pool, 3, False)

    drawn = []
    draw_text = renderer._draw_text

    def spy(draw, text, box, base):
        drawn.append(text)
        return draw_text(draw, text, box, base)

    renderer._draw_text = spy
    image = Image.open(BytesIO(renderer.render_board(board, 1, False)))

    assert sorted(drawn) == sorted(t.name for t in pool)
    for cell in board.iter_cells():
        assert cell_has_ink(image, 3, cell.row, cell.col)


def test_text_the_main_font_lacks_uses_the_fallback_font():
    fonts = RasterFonts()
    latin, cjk = Path("latin.ttf"), Path("cjk.ttf")
    fonts.regular_path = fonts.bold_path = latin
    fonts.fallback_path = cjk
    fonts._char_maps = {latin: {ord(ch) for ch in "Hey Jude…"}, cjk: None}

    assert fonts.path_for("Hey Jude") == latin
    assert fonts.path_for("東京事変") == cjk
    assert fonts.path_for("東京事変", bold=True) == cjk
    assert fonts.path_for(None) == latin


def test_builtin_font_defers_to_fallback_for_cjk():
    fonts = RasterFonts()
    fonts.regular_path = fonts.bold_path = None
    fonts.fallback_path = Path("cjk.ttf")
    assert fonts.path_for("Café") is None
    assert fonts.path_for("東京") == Path("cjk.ttf")


@pytest.mark.parametrize("error", [ValueError("bad tile"), SyntaxError("not a PNG"), OSError("truncated")])
def test_any_decode_error_only_drops_that_image(monkeypatch, error):
    from playlist_bingo.core import artwork

    def broken(data):
        raise error

    monkeypatch.setattr(artwork, "image_from_bytes", broken)
    fetcher = ArtworkFetcher(FakeSession({"https://img/a": b"x", "https://img/b": b"y"}))
    assert fetcher.fetch_all(["https://img/a", "https://img/b"]) == {}
