from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from dotenv import load_dotenv

from .errors import AuthError, ValidationError


_PLACEHOLDERS = {"your_client_id", "your_client_secret"}


@dataclass(frozen=True)
class Settings:
    spotify_client_id: str = ""
    spotify_client_secret: str = ""
    font_path: Path | None = None
    font_bold_path: Path | None = None
    artwork_timeout: float = 5.0
    artwork_workers: int = 8
    max_boards: int = 500
    log_level: str = "INFO"
    secret_key: str = "dev-secret-key"

    def require_spotify_credentials(self) -> tuple[str, str]:
        missing = [name for name, val in [
            ("SPOTIFY_CLIENT_ID", self.spotify_client_id),
            ("SPOTIFY_CLIENT_SECRET", self.spotify_client_secret),
        ] if not val]
        if missing:
            raise AuthError(
                "Spotify credentials not configured. Missing: " + ", ".join(missing)
                + "\nCreate an app at https://developer.spotify.com/dashboard and put the keys in .env"
            )
        return self.spotify_client_id, self.spotify_client_secret


def _normalize_env_value(value: str) -> str:
    v = (value or "").strip()
    if len(v) >= 2 and ((v[0] == v[-1] == '"') or (v[0] == v[-1] == "'")):
        v = v[1:-1].strip()
    return v


def _env(name: str, default: str = "") -> str:
    return _normalize_env_value(os.getenv(name, default))


def _env_path(name: str) -> Path | None:
    value = _env(name)
    return Path(value).expanduser() if value else None


def _env_number(name: str, default, cast):
    raw = _env(name)
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ValidationError(f"{name} must be > 0, got {raw!r}")
    return value


def load_settings(dotenv_path: Path | None = None) -> Settings:
    load_dotenv(dotenv_path=dotenv_path or Path.cwd() / ".env")

    client_id = _env("SPOTIFY_CLIENT_ID")
    client_secret = _env("SPOTIFY_CLIENT_SECRET")
    if client_id in _PLACEHOLDERS:
        client_id = ""
    if client_secret in _PLACEHOLDERS:
        client_secret = ""

    return Settings(
        spotify_client_id=client_id,
        spotify_client_secret=client_secret,
        font_path=_env_path("BINGO_FONT_PATH"),
        font_bold_path=_env_path("BINGO_FONT_BOLD_PATH"),
        artwork_timeout=_env_number("BINGO_ARTWORK_TIMEOUT", 5.0, float),
        artwork_workers=_env_number("BINGO_ARTWORK_WORKERS", 8, int),
        max_boards=_env_number("BINGO_MAX_BOARDS", 500, int),
        log_level=(_env("BINGO_LOG_LEVEL") or "INFO").upper(),
        secret_key=_env("FLASK_SECRET_KEY") or "dev-secret-key",
    )
