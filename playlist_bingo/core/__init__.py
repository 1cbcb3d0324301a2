"""
Core modules (catalog client, board generator and state, renderers, export).

Avoid importing heavy dependencies at package import time; import submodules directly:
- `playlist_bingo.core.catalog`
- `playlist_bingo.core.generator` / `playlist_bingo.core.board`
- `playlist_bingo.core.pdf` / `playlist_bingo.core.raster`
- `playlist_bingo.core.export`
"""

__all__ = []
