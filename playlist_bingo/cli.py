from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from playlist_bingo.core.catalog import SpotifyCatalog
from playlist_bingo.core.config import load_settings
from playlist_bingo.core.export import ExportRequest, OutputKind, RenderStrategy, default_renderers, export_boards
from playlist_bingo.core.log import configure_logging
from playlist_bingo.core.playlist import format_duration, total_duration


logger = logging.getLogger(__name__)

STRATEGIES = {"table": RenderStrategy.VECTOR_TABLE, "raster": RenderStrategy.RASTERIZED_IMAGE}


def _list_tracks(catalog: SpotifyCatalog, reference: str) -> int:
    playlist = catalog.fetch_playlist(reference)
    _, total = total_duration(playlist.tracks)
    print(f"{playlist.name} by {playlist.owner_name}: {len(playlist.tracks)} tracks, {total}")
    for i, track in enumerate(playlist.tracks, start=1):
        print(f"{i:4d}. {track.primary_artist} — {track.name} ({format_duration(track.duration_ms)})")
    return 0


def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(description="Generate printable bingo boards from a public Spotify playlist.")
    parser.add_argument("playlist", help="Playlist link, spotify:playlist: URI or playlist id")
    parser.add_argument("--count", type=int, default=10, help="Number of boards (default: 10)")
    parser.add_argument("--size", type=int, choices=[3, 4, 5], default=5, help="Grid size (default: 5)")
    parser.add_argument("--no-free-space", action="store_true", help="Do not put a FREE cell in the centre of 5x5 boards")
    parser.add_argument(
        "--strategy",
        choices=sorted(STRATEGIES),
        default="raster",
        help="raster: images with artwork, two boards per page; table: one vector table per page",
    )
    parser.add_argument("--archive", action="store_true", help="Write a ZIP with one file per board instead of one PDF")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible boards")
    parser.add_argument("--output", default=None, help="Output path (default: bingo_boards_<date>.pdf/.zip in the current folder)")
    parser.add_argument("--list-tracks", action="store_true", help="Print the playlist's tracks and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    settings = load_settings()
    configure_logging("DEBUG" if args.verbose else settings.log_level)
    catalog = SpotifyCatalog(settings=settings)

    if args.list_tracks:
        return _list_tracks(catalog, args.playlist)

    request = ExportRequest(
        playlist_reference=args.playlist,
        board_count=args.count,
        board_size=args.size,
        include_free_space=not args.no_free_space,
        output_kind=OutputKind.PER_BOARD_ARCHIVE if args.archive else OutputKind.SINGLE_DOCUMENT,
        strategy=STRATEGIES[args.strategy],
        seed=args.seed,
    ).validate(settings.max_boards)

    payload = export_boards(request, catalog, default_renderers(settings))
    out = Path(args.output).expanduser() if args.output else Path.cwd() / payload.filename
    out.write_bytes(payload.raw())
    print(f"Wrote {request.board_count} boards to {out}")
    return 0


def run() -> None:
    try:
        raise SystemExit(main(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        raise SystemExit(130)
    except Exception as exc:
        msg = str(exc).rstrip() or repr(exc)
        if "\n" in msg:
            first, rest = msg.split("\n", 1)
            print(f"ERROR: {first}", file=sys.stderr)
            print(rest, file=sys.stderr)
        else:
            print(f"ERROR: {msg}", file=sys.stderr)
        raise SystemExit(2)


if __name__ == "__main__":
    run()
