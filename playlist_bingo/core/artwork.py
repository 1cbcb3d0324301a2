from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from io import BytesIO
import logging
import threading
from typing import Iterable

from PIL import Image
import requests

from .errors import RenderCancelledError


logger = logging.getLogger(__name__)

USER_AGENT = "playlist-bingo/1.0"
_POLL_INTERVAL = 0.1


def image_from_bytes(data: bytes) -> Image.Image:
    im = Image.open(BytesIO(data))
    im.load()
    if im.mode in ("RGBA", "LA", "P"):
        im = im.convert("RGBA")
        bg = Image.new("RGBA", im.size, (255, 255, 255, 255))
        bg.alpha_composite(im)
        return bg.convert("RGB")
    return im.convert("RGB")


class ArtworkFetcher:
    """Downloads cover art for the raster renderer.

    A failed download never fails the render: the URL simply has no image and
    the cell is drawn text-only.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        timeout: float = 5.0,
        max_workers: int = 8,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_workers = max_workers

    def fetch(self, url: str) -> Image.Image | None:
        # Pillow reports broken image data as OSError, ValueError or SyntaxError depending on the decoder.
        try:
            resp = self.session.get(url, timeout=self.timeout, headers={"User-Agent": USER_AGENT})
            resp.raise_for_status()
            return image_from_bytes(resp.content)
        except (requests.RequestException, OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
            logger.warning("Skipping artwork %s: %s", url, exc)
            return None

    def fetch_all(
        self,
        urls: Iterable[str | None],
        cancel: threading.Event | None = None,
    ) -> dict[str, Image.Image]:
        unique = list(dict.fromkeys(u for u in urls if u))
        if not unique:
            return {}

        images: dict[str, Image.Image] = {}
        executor = ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, len(unique))))
        try:
            pending: dict[Future, str] = {executor.submit(self.fetch, url): url for url in unique}
            while pending:
                if cancel is not None and cancel.is_set():
                    raise RenderCancelledError("Render cancelled while fetching artwork")
                done, _ = wait(pending, timeout=_POLL_INTERVAL, return_when=FIRST_COMPLETED)
                for future in done:
                    url = pending.pop(future)
                    image = future.result()
                    if image is not None:
                        images[url] = image
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.debug("Fetched %d/%d artwork images", len(images), len(unique))
        return images
