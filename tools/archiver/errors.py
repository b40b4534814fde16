"""Exception types raised by the archiver."""

from __future__ import annotations


class ArchiverError(Exception):
    """Base class for archiver errors."""


class FatalError(ArchiverError):
    """Environment-level failure. The run stops; no state repair is attempted."""


class ThreadFetchError(FatalError):
    """The thread snapshot could not be fetched (transport error or non-200)."""


class MalformedResponseError(FatalError):
    """The thread snapshot did not decode into the expected structure."""


class FingerprintError(FatalError):
    """The external decoder failed to produce a stream fingerprint."""


class HashDecodeError(FatalError):
    """The server-declared MD5 was not valid base64."""


class ConfigurationError(FatalError):
    """Invalid arguments or an unusable environment."""


class MediaFetchError(ArchiverError):
    """A single attachment or thumbnail could not be downloaded."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
