from __future__ import annotations

import logging
from typing import Any, Mapping

from flask import Flask, Response, flash, jsonify, redirect, render_template_string, request

from playlist_bingo.core.board import board_state, reset_board, toggle_cell
from playlist_bingo.core.catalog import SpotifyCatalog
from playlist_bingo.core.config import Settings, load_settings
from playlist_bingo.core.errors import BingoError, ValidationError
from playlist_bingo.core.export import (
    ExportRequest,
    OutputKind,
    RenderStrategy,
    boards_for,
    default_renderers,
    export_boards,
)
from playlist_bingo.core.log import configure_logging
from playlist_bingo.core.models import Board
from playlist_bingo.core.playlist import playlist_as_csv
from playlist_bingo.core.raster import RasterRenderer


logger = logging.getLogger(__name__)


HTML = """
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>Playlist Bingo</title>
    <style>
      body { font-family: system-ui, -apple-system, Segoe UI, Roboto, sans-serif; margin: 24px; max-width: 920px; }
      h1 { margin: 0 0 8px; }
      .hint { color: #333; margin: 0 0 16px; }
      label { display: block; font-weight: 600; margin: 12px 0 6px; }
      input[type="text"], input[type="number"], select { width: 100%; padding: 10px; border: 1px solid #111; border-radius: 6px; }
      .row { display: grid; grid-template-columns: 1fr 1fr; gap: 12px; }
      .btn { margin-top: 14px; padding: 10px 14px; border: 2px solid #111; border-radius: 10px; background: #fff; font-weight: 700; cursor: pointer; }
      .box { border: 2px solid #111; border-radius: 12px; padding: 14px; }
      .flash { margin: 10px 0; padding: 10px 12px; border: 1px solid #111; border-radius: 8px; }
      .small { font-size: 12px; color: #333; }
    </style>
  </head>
  <body>
    <h1>Playlist Bingo</h1>
    <p class="hint">Paste a public Spotify playlist link and download printable bingo boards.</p>

    {% with messages = get_flashed_messages() %}
      {% if messages %}
        {% for msg in messages %}
          <div class="flash">{{ msg }}</div>
        {% endfor %}
      {% endif %}
    {% endwith %}

    <form class="box" method="post" action="/generate">
      <label>Playlist link</label>
      <input type="text" name="playlist" placeholder="https://open.spotify.com/playlist/..." required>

      <div class="row">
        <div>
          <label>Number of boards</label>
          <input type="number" name="count" value="10" min="1" max="{{ max_boards }}" step="1" required>
        </div>
        <div>
          <label>Board size</label>
          <select name="size">
            <option value="3">3 x 3</option>
            <option value="4">4 x 4</option>
            <option value="5" selected>5 x 5</option>
          </select>
        </div>
      </div>

      <div class="row">
        <div>
          <label>Layout</label>
          <select name="strategy">
            <option value="rasterized-image" selected>Images with artwork (two boards per page)</option>
            <option value="vector-table">Plain table (one board per page)</option>
          </select>
        </div>
        <div>
          <label>Download as</label>
          <select name="kind">
            <option value="single-document" selected>One PDF</option>
            <option value="per-board-archive">ZIP, one file per board</option>
          </select>
        </div>
      </div>

      <label><input type="checkbox" name="free_space" value="1" checked> Free space in the centre (5 x 5 only)</label>

      <button class="btn" type="submit">Generate</button>
      <p class="small">Seed (optional, for reproducible boards): <input type="number" name="seed"></p>
    </form>

  </body>
</html>
"""


class Services:
    """Per-app collaborators. Renderers load their fonts once, on first use."""

    def __init__(self, settings: Settings, catalog=None, renderers=None, snapshot=None) -> None:
        self.settings = settings
        self.catalog = catalog or SpotifyCatalog(settings=settings)
        self._renderers = renderers
        self._snapshot = snapshot

    @property
    def renderers(self):
        if self._renderers is None:
            self._renderers = default_renderers(self.settings)
        return self._renderers

    @property
    def snapshot(self) -> RasterRenderer:
        """Renders a board in play, with its marked cells shaded."""
        if self._snapshot is None:
            self._snapshot = RasterRenderer.from_settings(self.settings, show_marks=True)
        return self._snapshot


def _json_body() -> Mapping[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _reference(payload: Mapping[str, Any]) -> str:
    reference = payload.get("playlistReference")
    if not isinstance(reference, str) or not reference.strip():
        raise ValidationError("Playlist link cannot be empty")
    return reference.strip()


def _board_and_position(payload: Mapping[str, Any], with_position: bool) -> tuple[Board, int, int]:
    board = Board.from_dict(payload.get("board"))
    if not with_position:
        return board, 0, 0
    row, col = payload.get("row"), payload.get("col")
    if not isinstance(row, int) or not isinstance(col, int) or isinstance(row, bool) or isinstance(col, bool):
        raise ValidationError("row and col must be whole numbers")
    return board, row, col


def create_app(settings: Settings | None = None, *, catalog=None, renderers=None, snapshot=None) -> Flask:
    settings = settings or load_settings()
    app = Flask(__name__)
    app.secret_key = settings.secret_key
    services = Services(settings, catalog=catalog, renderers=renderers, snapshot=snapshot)
    app.extensions["playlist_bingo"] = services

    @app.errorhandler(BingoError)
    def handle_bingo_error(exc: BingoError):
        logger.info("%s: %s", type(exc).__name__, exc)
        return jsonify({"error": str(exc), "type": type(exc).__name__}), exc.http_status

    @app.get("/")
    def index() -> str:
        return render_template_string(HTML, max_boards=settings.max_boards)

    @app.post("/api/playlist")
    def fetch_playlist():
        playlist = services.catalog.fetch_playlist(_reference(_json_body()))
        return jsonify(playlist.to_dict())

    @app.post("/api/playlist/csv")
    def playlist_csv() -> Response:
        playlist = services.catalog.fetch_playlist(_reference(_json_body()))
        return Response(
            playlist_as_csv(playlist),
            mimetype="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{playlist.id}.csv"'},
        )

    @app.post("/api/boards")
    def generate_boards():
        req = ExportRequest.from_dict(_json_body(), max_boards=settings.max_boards)
        playlist = services.catalog.fetch_playlist(req.playlist_reference)
        boards = boards_for(playlist, req)
        return jsonify({"boards": [b.to_dict() for b in boards]})

    @app.post("/api/boards/toggle")
    def toggle():
        board, row, col = _board_and_position(_json_body(), with_position=True)
        return jsonify(board_state(toggle_cell(board, row, col)))

    @app.post("/api/boards/reset")
    def reset():
        board, _, _ = _board_and_position(_json_body(), with_position=False)
        return jsonify(board_state(reset_board(board)))

    @app.post("/api/boards/image")
    def board_image() -> Response:
        payload = _json_body()
        board, _, _ = _board_and_position(payload, with_position=False)
        include_free = payload.get("includeFreeSpace", True)
        if not isinstance(include_free, bool):
            raise ValidationError("includeFreeSpace must be true or false")
        renderer = services.snapshot
        return Response(
            renderer.render_board(board, 1, include_free),
            mimetype=renderer.mimetype,
            headers={"Content-Disposition": f'attachment; filename="{board.id}.png"'},
        )

    @app.post("/api/export")
    def export():
        req = ExportRequest.from_dict(_json_body(), max_boards=settings.max_boards)
        payload = export_boards(req, services.catalog, services.renderers)
        return jsonify(payload.to_dict())

    @app.post("/generate")
    def generate() -> Response:
        form = request.form
        seed_raw = (form.get("seed") or "").strip()
        raw = {
            "playlistReference": (form.get("playlist") or "").strip(),
            "boardCount": (form.get("count") or "1").strip(),
            "boardSize": (form.get("size") or "5").strip(),
            "includeFreeSpace": form.get("free_space") == "1",
            "outputKind": form.get("kind") or OutputKind.SINGLE_DOCUMENT.value,
            "renderStrategy": form.get("strategy") or RenderStrategy.RASTERIZED_IMAGE.value,
            "seed": seed_raw or None,
        }
        try:
            req = ExportRequest.from_dict(raw, max_boards=settings.max_boards)
            payload = export_boards(req, services.catalog, services.renderers)
        except BingoError as e:
            flash(str(e))
            return redirect("/")

        return Response(
            payload.raw(),
            mimetype=payload.mimetype,
            headers={"Content-Disposition": f'attachment; filename="{payload.filename}"'},
        )

    return app


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    create_app(settings).run(host="127.0.0.1", port=5000, debug=True)


if __name__ == "__main__":
    main()
