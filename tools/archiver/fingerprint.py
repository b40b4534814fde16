"""Stream fingerprints – SHA-1 of the first decoded video stream via ffmpeg."""

from __future__ import annotations

import hashlib
import logging
import shutil
import subprocess
import threading
from typing import Callable

from .errors import ConfigurationError, FingerprintError

logger = logging.getLogger("archiver.fingerprint")

# bytes -> lowercase hex digest
Fingerprinter = Callable[[bytes], str]

CHUNK_SIZE = 1 << 16


class FFmpegFingerprinter:
    """Hash the raw decoded frames of an attachment's first video stream.

    Container, metadata and audio never reach the hash, so a re-muxed or
    re-tagged copy of the same picture data yields the same fingerprint.
    Still images decode to a single frame and work the same way.
    """

    def __init__(self, ffmpeg_path: str = "ffmpeg") -> None:
        self.ffmpeg_path = ffmpeg_path

    @property
    def command(self) -> list[str]:
        return [
            self.ffmpeg_path,
            "-hide_banner",
            "-loglevel",
            "error",
            "-i",
            "-",
            "-map",
            "0:v:0",
            "-f",
            "rawvideo",
            "-",
        ]

    def ensure_available(self) -> None:
        if shutil.which(self.ffmpeg_path) is None:
            raise ConfigurationError(f"Couldn't find command {self.ffmpeg_path} in $PATH")

    def __call__(self, data: bytes) -> str:
        digest = hashlib.sha1()
        try:
            # own session: a terminal Ctrl-C must not kill the decoder mid-run
            proc = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            raise FingerprintError(f"could not start {self.ffmpeg_path}: {exc}") from exc

        write_error: list[OSError] = []
        stderr_chunks: list[bytes] = []

        def feed() -> None:
            try:
                proc.stdin.write(data)
            except OSError as exc:
                write_error.append(exc)
            finally:
                try:
                    proc.stdin.close()
                except OSError:
                    pass

        def drain_stderr() -> None:
            stderr_chunks.append(proc.stderr.read())

        writer = threading.Thread(target=feed, daemon=True)
        reader = threading.Thread(target=drain_stderr, daemon=True)
        writer.start()
        reader.start()
        with proc:
            for chunk in iter(lambda: proc.stdout.read(CHUNK_SIZE), b""):
                digest.update(chunk)
            writer.join()
            reader.join()
            returncode = proc.wait()

        stderr = b"".join(stderr_chunks).decode("utf-8", "replace").strip()
        if returncode != 0:
            raise FingerprintError(f"{self.ffmpeg_path} exited with status {returncode}: {stderr}")
        if write_error:
            if not isinstance(write_error[0], BrokenPipeError):
                raise FingerprintError(f"error feeding {self.ffmpeg_path}: {write_error[0]}")
            # decoder had all it needed and exited cleanly before reading the rest
            logger.debug("%s closed stdin early after a clean exit", self.ffmpeg_path)

        fp = digest.hexdigest()
        logger.debug("Fingerprinted %d bytes -> %s", len(data), fp)
        return fp
