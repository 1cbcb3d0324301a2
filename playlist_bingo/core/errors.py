from __future__ import annotations


class BingoError(RuntimeError):
    http_status = 500


class ValidationError(BingoError):
    http_status = 400


class InsufficientTracksError(BingoError):
    http_status = 422

    def __init__(self, required: int, available: int, size: int | None = None) -> None:
        self.required = required
        self.available = available
        self.size = size
        grid = f" to generate a {size}x{size} bingo board" if size else ""
        super().__init__(f"Need at least {required} tracks{grid}. Got {available}.")


class OutOfRangeError(BingoError):
    http_status = 400

    def __init__(self, row: int, col: int, size: int) -> None:
        self.row = row
        self.col = col
        self.size = size
        super().__init__(f"Invalid cell position: ({row}, {col}) on a {size}x{size} board")


class UpstreamError(BingoError):
    http_status = 502

    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class NotFoundError(UpstreamError):
    http_status = 404


class AuthError(UpstreamError):
    http_status = 502


class RateLimitError(UpstreamError):
    http_status = 429

    def __init__(self, message: str, status: int | None = 429, retry_after: int | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message, status)


class RenderError(BingoError):
    http_status = 500


class RenderCancelledError(RenderError):
    http_status = 499
