"""Typed views of the 4chan thread JSON."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

from .errors import MalformedResponseError


@dataclass(frozen=True)
class Post:
    """One post as reported by ``/{board}/thread/{no}.json``.

    Fields absent from the API object keep their zero value.  ``closed``
    and ``archived`` are only meaningful on the thread's root post.
    """
    no: int
    resto: int = 0
    time: int = 0
    name: str = ""
    trip: str = ""
    id: str = ""
    capcode: str = ""
    country: str = ""
    country_name: str = ""
    board_flag: str = ""
    flag_name: str = ""
    sub: str = ""
    com: str = ""
    since4pass: int = 0
    # attachment
    tim: int = 0
    filename: str = ""
    ext: str = ""
    fsize: int = 0
    md5: str = ""
    w: int = 0
    h: int = 0
    tn_w: int = 0
    tn_h: int = 0
    filedeleted: int = 0
    # root post only
    closed: int = 0
    archived: int = 0

    @property
    def file_deleted(self) -> bool:
        return self.filedeleted == 1

    @property
    def has_attachment(self) -> bool:
        return self.fsize > 0 or self.file_deleted

    @property
    def media_name(self) -> str:
        return f"{self.tim}{self.ext}"

    @classmethod
    def from_api(cls, raw: Any) -> Post:
        if not isinstance(raw, dict):
            raise MalformedResponseError(f"post is not an object: {raw!r:.80}")
        if not isinstance(raw.get("no"), int):
            raise MalformedResponseError(f"post without a numeric 'no': {raw!r:.80}")

        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in raw or raw[f.name] is None:
                continue
            value = raw[f.name]
            expected = int if f.type in ("int", int) else str
            if expected is int and (isinstance(value, bool) or not isinstance(value, int)):
                raise MalformedResponseError(f"post {raw['no']}: field {f.name!r} is not an integer")
            if expected is str and not isinstance(value, str):
                raise MalformedResponseError(f"post {raw['no']}: field {f.name!r} is not a string")
            kwargs[f.name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class ThreadSnapshot:
    """The full thread as the server reports it at one moment."""
    posts: list[Post] = field(default_factory=list)

    @property
    def op(self) -> Post:
        return self.posts[0]

    @property
    def is_live(self) -> bool:
        """A thread stays live until its root post is closed or archived."""
        return self.op.archived == 0 and self.op.closed == 0

    @classmethod
    def from_api(cls, data: Any) -> ThreadSnapshot:
        if not isinstance(data, dict) or not isinstance(data.get("posts"), list):
            raise MalformedResponseError("thread JSON has no 'posts' array")
        if not data["posts"]:
            raise MalformedResponseError("thread JSON has an empty 'posts' array")
        return cls(posts=[Post.from_api(p) for p in data["posts"]])
