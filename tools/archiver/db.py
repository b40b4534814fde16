"""Database operations – append-only post and media records."""

from __future__ import annotations

import logging

import psycopg
from psycopg.rows import dict_row

from .config import DatabaseConfig
from .models import Post

logger = logging.getLogger("archiver.db")

# Thread-level fields (sticky, closed, replies, ...) are not stored.
# Attachment fields live in "media"; "board" and "attachment" are ours.
POST_SCHEMA = """
CREATE TABLE IF NOT EXISTS post (
    "no"          BIGINT NOT NULL,
    resto         BIGINT,
    "time"        BIGINT,
    name          TEXT,
    trip          TEXT,
    "id"          TEXT,
    capcode       TEXT,
    country       TEXT,
    country_name  TEXT,
    board_flag    TEXT,
    flag_name     TEXT,
    sub           TEXT,
    com           TEXT,
    since4pass    INTEGER,
    board         TEXT NOT NULL,
    attachment    BOOLEAN
)
"""

# sha: SHA-1 of the first decoded video stream, also the store key
MEDIA_SCHEMA = """
CREATE TABLE IF NOT EXISTS media (
    "no"          BIGINT NOT NULL,
    board         TEXT NOT NULL,
    tim           BIGINT,
    filename      TEXT,
    ext           TEXT,
    fsize         INTEGER,
    md5           TEXT,
    w             INTEGER,
    h             INTEGER,
    tn_w          INTEGER,
    tn_h          INTEGER,
    filedeleted   BOOLEAN,
    sha           TEXT
)
"""


class Database:
    """Postgres interface for the archiver.

    Every insert commits on its own, so an interrupted run never leaves
    half of a post behind in an open transaction.
    """

    def __init__(self, cfg: DatabaseConfig | None = None) -> None:
        self.cfg = cfg or DatabaseConfig.from_env()
        self._conn: psycopg.Connection | None = None

    @property
    def conn(self) -> psycopg.Connection:
        if self._conn is None or self._conn.closed:
            self._conn = psycopg.connect(self.cfg.dsn, row_factory=dict_row, autocommit=False)
        return self._conn

    def ensure_schema(self) -> None:
        self.conn.execute(POST_SCHEMA)
        self.conn.execute(MEDIA_SCHEMA)
        self.conn.commit()
        logger.debug("Schema ready on %s/%s", self.cfg.host, self.cfg.dbname)

    # ── posts ────────────────────────────────────────────────────

    def post_exists(self, post_no: int) -> bool:
        row = self.conn.execute(
            'SELECT 1 FROM post WHERE "no" = %s', (post_no,)
        ).fetchone()
        return row is not None

    def insert_post(self, board: str, post: Post) -> None:
        self.conn.execute(
            """INSERT INTO post (
                   "no", resto, "time", name, trip, "id", capcode,
                   country, country_name, board_flag, flag_name,
                   sub, com, since4pass, board, attachment
               ) VALUES (
                   %s, %s, %s, %s, %s, %s, %s,
                   %s, %s, %s, %s,
                   %s, %s, %s, %s, %s
               )""",
            (
                post.no, post.resto, post.time, post.name, post.trip, post.id, post.capcode,
                post.country, post.country_name, post.board_flag, post.flag_name,
                post.sub, post.com, post.since4pass, board, post.has_attachment,
            ),
        )
        self.conn.commit()

    # ── media ────────────────────────────────────────────────────

    def insert_deleted_media(self, board: str, post_no: int) -> None:
        self.conn.execute(
            'INSERT INTO media ("no", board, filedeleted) VALUES (%s, %s, %s)',
            (post_no, board, True),
        )
        self.conn.commit()

    def insert_media(self, board: str, post: Post, sha: str) -> None:
        self.conn.execute(
            """INSERT INTO media (
                   "no", board, tim, filename, ext, fsize, md5,
                   w, h, tn_w, tn_h, filedeleted, sha
               ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)""",
            (
                post.no, board, post.tim, post.filename, post.ext, post.fsize, post.md5,
                post.w, post.h, post.tn_w, post.tn_h, post.file_deleted, sha,
            ),
        )
        self.conn.commit()

    # ── lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        if self._conn and not self._conn.closed:
            self._conn.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
