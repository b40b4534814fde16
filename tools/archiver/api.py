"""4chan API client – thread snapshots and media downloads."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import FourChanConfig
from .errors import MalformedResponseError, MediaFetchError, ThreadFetchError
from .models import ThreadSnapshot

logger = logging.getLogger("archiver.api")


class FourChanAPI:
    """Thin wrapper around the 4chan JSON API and media host.

    Only HTTP 200 counts as success.  There is no retry: a failed
    snapshot fetch ends the run, a failed media fetch is the caller's
    to log and skip.
    """

    def __init__(self, cfg: FourChanConfig | None = None, *, client: httpx.Client | None = None) -> None:
        self.cfg = cfg or FourChanConfig()
        self._client = client or httpx.Client(
            timeout=self.cfg.timeout,
            headers={"User-Agent": self.cfg.user_agent},
            follow_redirects=True,
        )

    # ── url helpers ──────────────────────────────────────────────

    def thread_url(self, board: str, thread_no: int) -> str:
        return f"{self.cfg.api_base}/{board}/thread/{thread_no}.json"

    def media_url(self, board: str, tim: int, ext: str) -> str:
        return f"{self.cfg.media_base}/{board}/{tim}{ext}"

    def thumbnail_url(self, board: str, tim: int) -> str:
        return f"{self.cfg.media_base}/{board}/{tim}s.jpg"

    # ── requests ─────────────────────────────────────────────────

    def _get_bytes(self, url: str) -> bytes:
        try:
            resp = self._client.get(url)
        except httpx.HTTPError as exc:
            raise MediaFetchError(url, str(exc)) from exc
        if resp.status_code != 200:
            raise MediaFetchError(url, f"server replied with status code {resp.status_code}")
        return resp.content

    def get_thread(self, board: str, thread_no: int) -> ThreadSnapshot:
        """Fetch and decode a full thread (OP + all replies)."""
        url = self.thread_url(board, thread_no)
        try:
            resp = self._client.get(url)
        except httpx.HTTPError as exc:
            raise ThreadFetchError(f"{url}: {exc}") from exc
        if resp.status_code != 200:
            raise ThreadFetchError(f"{url}: server replied with status code {resp.status_code}")

        try:
            data: Any = resp.json()
        except ValueError as exc:
            raise MalformedResponseError(f"{url}: invalid JSON: {exc}") from exc
        return ThreadSnapshot.from_api(data)

    def download_media(self, board: str, tim: int, ext: str) -> bytes:
        """Download a full-size attachment from i.4cdn.org."""
        return self._get_bytes(self.media_url(board, tim, ext))

    def download_thumbnail(self, board: str, tim: int) -> bytes:
        """Download the server-rendered thumbnail for an attachment."""
        return self._get_bytes(self.thumbnail_url(board, tim))

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> FourChanAPI:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
