"""Core archive loop – orchestrates API → Store → DB for one thread."""

from __future__ import annotations

import base64
import binascii
import logging

from .api import FourChanAPI
from .config import ArchiverConfig
from .db import Database
from .errors import HashDecodeError, MediaFetchError
from .fingerprint import Fingerprinter
from .models import Post, ThreadSnapshot
from .shutdown import ShutdownCoordinator
from .storage import ContentStore

logger = logging.getLogger("archiver.core")

# run() outcomes
CLOSED = "closed"
STOPPED = "stopped"


class ThreadArchiver:
    """Polls one thread until it closes and keeps a copy of everything in it.

    All collaborators are passed in; the loop itself is strictly
    sequential and is the only user of the database and the store.
    """

    def __init__(
        self,
        cfg: ArchiverConfig,
        *,
        api: FourChanAPI,
        db: Database,
        store: ContentStore,
        fingerprint: Fingerprinter,
        shutdown: ShutdownCoordinator | None = None,
    ) -> None:
        self.cfg = cfg
        self.api = api
        self.db = db
        self.store = store
        self.fingerprint = fingerprint
        self.shutdown = shutdown or ShutdownCoordinator()
        self.stats = {
            "polls": 0,
            "posts": 0,
            "skipped": 0,
            "media": 0,
            "deduplicated": 0,
            "deleted": 0,
            "thumbnails": 0,
            "errors": 0,
        }

    # ── poll loop ────────────────────────────────────────────────

    def run(self, board: str, thread_no: int) -> str:
        """Archive /board/thread_no until it is closed, archived, or a stop is requested."""
        logger.info("Archiving /%s/%d", board, thread_no)
        while True:
            if self.shutdown.stop_requested:
                return STOPPED

            snapshot = self.poll(board, thread_no)
            if self.shutdown.stop_requested:
                return STOPPED
            if not snapshot.is_live:
                logger.info("Thread /%s/%d is closed, final pass complete", board, thread_no)
                return CLOSED

            logger.debug("Sleeping %.0fs before next poll", self.cfg.poll_interval)
            if self.shutdown.idle(self.cfg.poll_interval):
                return STOPPED

    def poll(self, board: str, thread_no: int) -> ThreadSnapshot:
        """Fetch one snapshot and ingest its posts in delivered order."""
        snapshot = self.api.get_thread(board, thread_no)
        self.stats["polls"] += 1
        logger.debug("Snapshot of /%s/%d: %d posts", board, thread_no, len(snapshot.posts))
        for post in snapshot.posts:
            if not self.shutdown.proceed():
                break
            self.ingest_post(board, post)
        return snapshot

    # ── posts ────────────────────────────────────────────────────

    def ingest_post(self, board: str, post: Post) -> bool:
        """Record a post and its attachment.  Returns False if it was already recorded."""
        if self.db.post_exists(post.no):
            self.stats["skipped"] += 1
            return False

        self.db.insert_post(board, post)
        self.stats["posts"] += 1
        logger.debug("Recorded post %d", post.no)

        if not post.has_attachment:
            return True
        if post.file_deleted:
            logger.info("File from post no. %d is deleted", post.no)
            self.db.insert_deleted_media(board, post.no)
            self.stats["deleted"] += 1
            return True

        self.archive_media(board, post)
        return True

    # ── media ────────────────────────────────────────────────────

    def archive_media(self, board: str, post: Post) -> str | None:
        """Download, fingerprint and store one attachment.

        Returns the fingerprint, or None if the download failed.
        """
        logger.info("Downloading %s", post.media_name)
        try:
            data = self.api.download_media(board, post.tim, post.ext)
        except MediaFetchError as exc:
            logger.warning("Couldn't get file %s: %s", post.media_name, exc.reason)
            self.stats["errors"] += 1
            return None

        fp = self.fingerprint(data)
        md5 = decode_md5(post.md5)
        logger.debug("Post %d: sha1(stream)=%s md5(file)=%s", post.no, fp, md5.hex())

        if self.store.store(fp, post.ext, data, thumbnail=lambda: self._fetch_thumbnail(board, post)):
            self.stats["media"] += 1
        else:
            logger.info("%s has the same stream as %s, not storing again", post.media_name, fp)
            self.stats["deduplicated"] += 1

        self.db.insert_media(board, post, fp)
        self.shutdown.pause(self.cfg.request_delay)
        return fp

    def _fetch_thumbnail(self, board: str, post: Post) -> bytes | None:
        """Best effort: a failed thumbnail never blocks the attachment."""
        self.shutdown.pause(self.cfg.request_delay)
        try:
            thumb = self.api.download_thumbnail(board, post.tim)
        except MediaFetchError as exc:
            logger.warning("Couldn't get file %ds.jpg: %s", post.tim, exc.reason)
            self.stats["errors"] += 1
            return None
        self.stats["thumbnails"] += 1
        return thumb


def decode_md5(value: str) -> bytes:
    """Decode the API's base64 MD5 of the original file."""
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HashDecodeError(f"invalid base64 md5 {value!r}: {exc}") from exc
