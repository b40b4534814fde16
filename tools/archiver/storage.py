"""Content-addressed media store on local disk."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable

logger = logging.getLogger("archiver.storage")

THUMB_SUFFIX = "s.jpg"


class ContentStore:
    """Files keyed by stream fingerprint, sharded three levels deep.

    ``media/ab/cd/ef/abcdef...{ext}`` for the attachment and
    ``media/ab/cd/ef/abcdef...s.jpg`` for its thumbnail.  A file is
    written at most once and never replaced.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    # ── paths ────────────────────────────────────────────────────

    def shard_dir(self, fp: str) -> Path:
        fp = fp.lower()
        return self.root / fp[0:2] / fp[2:4] / fp[4:6]

    def path_for(self, fp: str, ext: str) -> Path:
        return self.shard_dir(fp) / f"{fp.lower()}{ext}"

    def thumb_path_for(self, fp: str) -> Path:
        return self.shard_dir(fp) / f"{fp.lower()}{THUMB_SUFFIX}"

    def find(self, fp: str) -> Path | None:
        """The stored attachment for ``fp``, whatever its extension."""
        shard = self.shard_dir(fp)
        if not shard.is_dir():
            return None
        # thumbnails are "{fp}s.jpg" and temp files start with ".", neither matches
        for path in sorted(shard.glob(f"{fp.lower()}.*")):
            if path.is_file():
                return path
        return None

    def exists(self, fp: str) -> bool:
        return self.find(fp) is not None

    # ── writes ───────────────────────────────────────────────────

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        """Write via a temp file in the same directory, then rename into place."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.chmod(tmp, 0o644)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def store(
        self,
        fp: str,
        ext: str,
        data: bytes,
        *,
        thumbnail: Callable[[], bytes | None] | None = None,
    ) -> bool:
        """Store an attachment unless a file with the same fingerprint exists.

        The first extension stored for a fingerprint is kept.  ``thumbnail``
        is only called when the attachment is new; it returns the thumbnail
        bytes, or None to skip it.  Returns False if nothing was written.
        """
        existing = self.find(fp)
        if existing is not None:
            logger.debug("Already stored: %s", existing)
            return False
        if thumbnail is not None:
            thumb = thumbnail()
            if thumb is not None:
                self.store_thumbnail(fp, thumb)
        path = self.path_for(fp, ext)
        self._write_atomic(path, data)
        logger.info("Stored %s (%d bytes)", path.relative_to(self.root), len(data))
        return True

    def store_thumbnail(self, fp: str, data: bytes) -> bool:
        path = self.thumb_path_for(fp)
        if path.exists():
            return False
        self._write_atomic(path, data)
        logger.debug("Stored thumbnail %s", path.relative_to(self.root))
        return True
