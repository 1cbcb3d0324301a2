"""
Font resources for the renderers.

Fonts are resolved once, when a renderer is constructed, and then handed around
as plain values. Both renderers prefer a configured TTF, then well known system
fonts with wide Unicode coverage, then a built-in fallback.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Iterable

from PIL import ImageFont
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfbase.ttfonts import TTFError, TTFont, TTFontFile


logger = logging.getLogger(__name__)

CID_FALLBACK_FONT = "HeiseiKakuGo-W5"

_FONT_DIRS = [
    Path("/usr/share/fonts/truetype/dejavu"),
    Path("/usr/share/fonts/dejavu"),
    Path("/usr/share/fonts/TTF"),
    Path("/usr/share/fonts/opentype/noto"),
    Path("/usr/share/fonts/noto-cjk"),
    Path("/usr/share/fonts/truetype/wqy"),
    Path("/usr/share/fonts/truetype/droid"),
    Path("/Library/Fonts"),
    Path("/System/Library/Fonts/Supplemental"),
    Path("C:/Windows/Fonts"),
]

# Ordered by preference; .ttc/.otf are only usable by Pillow.
_RASTER_REGULAR = ["NotoSansCJK-Regular.ttc", "DejaVuSans.ttf", "Arial Unicode.ttf", "arial.ttf"]
_RASTER_BOLD = ["NotoSansCJK-Bold.ttc", "DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf"]
_PDF_REGULAR = ["DejaVuSans.ttf", "Arial Unicode.ttf", "arial.ttf"]
_PDF_BOLD = ["DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf"]
# Wide CJK coverage for image output when the main font lacks the glyphs.
_RASTER_FALLBACK = [
    "NotoSansCJK-Regular.ttc",
    "NotoSansCJKjp-Regular.otf",
    "wqy-microhei.ttc",
    "DroidSansFallbackFull.ttf",
    "Arial Unicode.ttf",
    "msgothic.ttc",
]


def find_font(configured: Path | None, candidates: Iterable[str]) -> Path | None:
    if configured is not None:
        if configured.is_file():
            return configured
        logger.warning("Configured font %s does not exist; falling back to system fonts", configured)
    for name in candidates:
        for directory in _FONT_DIRS:
            path = directory / name
            if path.is_file():
                return path
    return None


@dataclass(frozen=True)
class PdfFonts:
    regular: str
    bold: str
    fallback: str = CID_FALLBACK_FONT

    def covers(self, font_name: str, text: str) -> bool:
        # CID and standard fonts expose no glyph map; treat them as covering.
        char_map = getattr(getattr(pdfmetrics.getFont(font_name), "face", None), "charToGlyph", None)
        if char_map is None:
            return True
        return all(ord(ch) in char_map for ch in text if not ch.isspace())

    def font_for(self, text: str, bold: bool = False) -> str:
        name = self.bold if bold else self.regular
        return name if self.covers(name, text) else self.fallback


def _register_ttf(path: Path | None) -> str | None:
    if path is None:
        return None
    name = "Bingo-" + path.stem.replace(" ", "")
    if name in pdfmetrics.getRegisteredFontNames():
        return name
    try:
        pdfmetrics.registerFont(TTFont(name, str(path)))
    except TTFError as exc:
        logger.warning("Unable to register %s for PDF output: %s", path, exc)
        return None
    return name


def load_pdf_fonts(regular_path: Path | None = None, bold_path: Path | None = None) -> PdfFonts:
    # Built into reportlab and covers CJK as well as Latin text.
    if CID_FALLBACK_FONT not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(UnicodeCIDFont(CID_FALLBACK_FONT))

    regular = _register_ttf(find_font(regular_path, _PDF_REGULAR))
    if regular is None:
        logger.info("No TTF font found for PDF output; using %s", CID_FALLBACK_FONT)
        return PdfFonts(regular=CID_FALLBACK_FONT, bold=CID_FALLBACK_FONT)

    bold = _register_ttf(find_font(bold_path, _PDF_BOLD))
    return PdfFonts(regular=regular, bold=bold or regular)


def _char_map(path: Path) -> set[int] | None:
    """Code points of a TrueType font, or None when the file can't be parsed (e.g. CFF outlines)."""
    try:
        return set(TTFontFile(str(path), validate=0, subfontIndex=0).charToGlyph)
    except (TTFError, OSError) as exc:
        logger.debug("Cannot read the character map of %s: %s", path, exc)
        return None


class RasterFonts:
    """Pillow fonts by size, with a wide-coverage fallback for text the main font can't draw."""

    def __init__(self, regular_path: Path | None = None, bold_path: Path | None = None) -> None:
        self.regular_path = find_font(regular_path, _RASTER_REGULAR)
        self.bold_path = find_font(bold_path, _RASTER_BOLD) or self.regular_path
        self.fallback_path = find_font(None, _RASTER_FALLBACK)
        self._cache: dict[tuple[int, Path | None], ImageFont.ImageFont | ImageFont.FreeTypeFont] = {}
        self._char_maps: dict[Path, set[int] | None] = {}
        if self.regular_path is None:
            logger.info("No TTF font found for image output; using Pillow's default font")

    def covers(self, path: Path | None, text: str) -> bool:
        if path is None:
            # Pillow's built-in font only has Latin glyphs.
            return all(ord(ch) < 0x250 for ch in text)
        if path not in self._char_maps:
            self._char_maps[path] = _char_map(path)
        char_map = self._char_maps[path]
        return char_map is None or all(ord(ch) in char_map for ch in text if not ch.isspace())

    def path_for(self, text: str | None = None, bold: bool = False) -> Path | None:
        path = self.bold_path if bold else self.regular_path
        if text and self.fallback_path is not None and not self.covers(path, text):
            return self.fallback_path
        return path

    def get(self, size: float, bold: bool = False, text: str | None = None) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
        path = self.path_for(text, bold)
        key = (max(1, int(round(size))), path)
        font = self._cache.get(key)
        if font is None:
            if path is not None:
                font = ImageFont.truetype(str(path), key[0])
            else:
                font = ImageFont.load_default(size=key[0])
            self._cache[key] = font
        return font

    def measure(self, bold: bool = False, text: str | None = None):
        def _measure(line: str, size: float) -> float:
            return self.get(size, bold, text).getlength(line)

        return _measure
