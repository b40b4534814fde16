"""
Shared fixtures for the archiver tests.

Collaborators are replaced by in-memory fakes so the archive loop can be
exercised without a network, a database server or ffmpeg.
"""

from __future__ import annotations

import base64
import hashlib
from pathlib import Path
from typing import Any, Callable

import pytest

from archiver.archiver import ThreadArchiver
from archiver.config import ArchiverConfig, DatabaseConfig
from archiver.errors import MediaFetchError
from archiver.models import Post, ThreadSnapshot
from archiver.shutdown import ShutdownCoordinator
from archiver.storage import ContentStore


def md5_b64(data: bytes) -> str:
    return base64.b64encode(hashlib.md5(data).digest()).decode()


class FakeDatabase:
    """Records rows the way the real tables would."""

    def __init__(self) -> None:
        self.posts: list[dict[str, Any]] = []
        self.media: list[dict[str, Any]] = []

    def ensure_schema(self) -> None:
        pass

    def post_exists(self, post_no: int) -> bool:
        return any(row["no"] == post_no for row in self.posts)

    def insert_post(self, board: str, post: Post) -> None:
        self.posts.append({"no": post.no, "board": board, "attachment": post.has_attachment})

    def insert_deleted_media(self, board: str, post_no: int) -> None:
        self.media.append({"no": post_no, "board": board, "filedeleted": True, "sha": None})

    def insert_media(self, board: str, post: Post, sha: str) -> None:
        self.media.append({
            "no": post.no,
            "board": board,
            "tim": post.tim,
            "ext": post.ext,
            "md5": post.md5,
            "filedeleted": post.file_deleted,
            "sha": sha,
        })

    def close(self) -> None:
        pass

    def __enter__(self) -> FakeDatabase:
        return self

    def __exit__(self, *args: object) -> None:
        pass


class FakeAPI:
    """Serves queued snapshots and canned media bytes, counting every request."""

    def __init__(self) -> None:
        self.snapshots: list[dict] = []
        self.files: dict[int, bytes] = {}
        self.thumbs: dict[int, bytes] = {}
        self.thread_requests = 0
        self.media_requests: list[int] = []
        self.thumb_requests: list[int] = []
        self.on_media: Callable[[int], None] | None = None

    def get_thread(self, board: str, thread_no: int) -> ThreadSnapshot:
        self.thread_requests += 1
        idx = min(self.thread_requests, len(self.snapshots)) - 1
        return ThreadSnapshot.from_api(self.snapshots[idx])

    def download_media(self, board: str, tim: int, ext: str) -> bytes:
        self.media_requests.append(tim)
        if self.on_media:
            self.on_media(tim)
        if tim not in self.files:
            raise MediaFetchError(f"https://i.4cdn.org/{board}/{tim}{ext}", "server replied with status code 404")
        return self.files[tim]

    def download_thumbnail(self, board: str, tim: int) -> bytes:
        self.thumb_requests.append(tim)
        if tim not in self.thumbs:
            raise MediaFetchError(f"https://i.4cdn.org/{board}/{tim}s.jpg", "server replied with status code 404")
        return self.thumbs[tim]

    def close(self) -> None:
        pass

    def __enter__(self) -> FakeAPI:
        return self

    def __exit__(self, *args: object) -> None:
        pass


class FakeFingerprinter:
    """Fingerprints by a caller-chosen key, defaulting to SHA-1 of the bytes."""

    def __init__(self) -> None:
        self.streams: dict[bytes, bytes] = {}
        self.calls = 0

    def __call__(self, data: bytes) -> str:
        self.calls += 1
        return hashlib.sha1(self.streams.get(data, data)).hexdigest()


class RecordingShutdown(ShutdownCoordinator):
    """Coordinator that never really sleeps and records every wait."""

    def __init__(self) -> None:
        super().__init__()
        self.idles: list[float] = []
        self.pauses: list[float] = []

    def idle(self, seconds: float) -> bool:
        self.idles.append(seconds)
        return self.stop_requested

    def pause(self, seconds: float) -> None:
        self.pauses.append(seconds)


@pytest.fixture
def cfg(tmp_path: Path) -> ArchiverConfig:
    return ArchiverConfig(data_dir=tmp_path, db=DatabaseConfig())


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def fake_api() -> FakeAPI:
    return FakeAPI()


@pytest.fixture
def fingerprinter() -> FakeFingerprinter:
    return FakeFingerprinter()


@pytest.fixture
def shutdown() -> RecordingShutdown:
    return RecordingShutdown()


@pytest.fixture
def store(cfg: ArchiverConfig) -> ContentStore:
    return ContentStore(cfg.media_dir)


@pytest.fixture
def archiver(cfg, fake_api, fake_db, store, fingerprinter, shutdown) -> ThreadArchiver:
    return ThreadArchiver(
        cfg,
        api=fake_api,
        db=fake_db,
        store=store,
        fingerprint=fingerprinter,
        shutdown=shutdown,
    )


def stored_files(root: Path) -> list[Path]:
    return sorted(p for p in root.rglob("*") if p.is_file())
