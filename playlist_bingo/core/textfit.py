"""
Backend-independent text fitting.

`fit_text` only needs a `measure(text, font_size) -> width` callable, so the
same wrapping/shrinking rules drive both the reportlab and the Pillow renderers
and can be tested without either.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable


ELLIPSIS = "…"

Measure = Callable[[str, float], float]


@dataclass(frozen=True)
class FitResult:
    lines: list[str]
    font_size: float


def estimate_width(text: str, font_size: float) -> float:
    return len(text) * font_size * 0.55


def _shorten(text: str, width: float, size: float, measure: Measure) -> str:
    cut = text.rstrip()
    while cut and measure(cut + ELLIPSIS, size) > width:
        cut = cut[:-1].rstrip()
    return (cut + ELLIPSIS) if cut else ELLIPSIS


def _break_token(token: str, width: float, size: float, measure: Measure) -> list[str]:
    chunks: list[str] = []
    current = ""
    for ch in token:
        if current and measure(current + ch, size) > width:
            chunks.append(current)
            current = ch
        else:
            current += ch
    if current:
        chunks.append(current)
    return chunks


def _wrap(text: str, width: float, size: float, measure: Measure) -> tuple[list[str], bool]:
    """Greedy word wrap. The flag is True when some token had to be broken mid-word."""
    lines: list[str] = []
    current: list[str] = []
    broken = False
    for word in text.split():
        trial = " ".join(current + [word])
        if measure(trial, size) <= width:
            current.append(word)
            continue
        if current:
            lines.append(" ".join(current))
            current = []
        if measure(word, size) <= width:
            current = [word]
        else:
            # No spaces to wrap at (long words, CJK titles): break by character.
            broken = True
            *full, rest = _break_token(word, width, size, measure)
            lines.extend(full)
            current = [rest]
    if current:
        lines.append(" ".join(current))
    return lines, broken


def wrap_words(text: str, width: float, size: float, measure: Measure) -> list[str]:
    return _wrap(text, width, size, measure)[0]


def fit_text(
    text: str,
    box_width: float,
    box_height: float,
    max_lines: int,
    base_font_size: float,
    *,
    measure: Measure | None = None,
    min_font_size: float = 6,
    leading: float = 1.2,
    step: float = 0.5,
) -> FitResult:
    """Shrink, then wrap, then truncate.

    The font size steps down from `base_font_size` until the text wraps on
    word boundaries within `max_lines` and `box_height`. Only at
    `min_font_size` are words broken by character, and only lines beyond
    what the box can hold are dropped, the last kept line ending in an ellipsis.
    """
    measure = measure or estimate_width
    if not text or not text.strip():
        return FitResult(lines=[], font_size=base_font_size)

    min_font_size = min(min_font_size, base_font_size)
    size = base_font_size
    while True:
        lines, broken = _wrap(text, box_width, size, measure)
        if not broken and len(lines) <= max_lines and len(lines) * size * leading <= box_height:
            return FitResult(lines=lines, font_size=size)
        if size - step < min_font_size:
            break
        size -= step

    size = min_font_size
    lines, _ = _wrap(text, box_width, size, measure)
    keep = max(1, min(max_lines, int(box_height // (size * leading))))
    if len(lines) > keep:
        lines = lines[:keep]
        lines[-1] = _shorten(lines[-1], box_width, size, measure)
    return FitResult(lines=lines, font_size=size)
