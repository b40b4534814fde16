"""Configuration and environment settings for the archiver."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigurationError

APP_NAME = "aos"


@dataclass(frozen=True)
class DatabaseConfig:
    host: str = "localhost"
    port: int = 5432
    dbname: str = "aos"
    user: str = "aos"
    password: str = "aos"

    @property
    def dsn(self) -> str:
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.dbname}"

    @classmethod
    def from_env(cls) -> DatabaseConfig:
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            dbname=os.getenv("DB_NAME", "aos"),
            user=os.getenv("DB_USER", "aos"),
            password=os.getenv("DB_PASSWORD", "aos"),
        )


@dataclass(frozen=True)
class FourChanConfig:
    """4chan API endpoints.  Pacing lives in ArchiverConfig."""
    api_base: str = "https://a.4cdn.org"
    media_base: str = "https://i.4cdn.org"
    timeout: float = 30.0
    user_agent: str = "aos-archiver/1.0"


def default_data_dir(environ: dict[str, str] | None = None) -> Path:
    """Resolve the per-user state directory.

    ``$XDG_DATA_HOME/aos`` if set, otherwise ``$HOME/.local/state/aos``.
    Raises ConfigurationError when neither variable is available.
    """
    env = os.environ if environ is None else environ
    xdg = env.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / APP_NAME
    home = env.get("HOME")
    if home:
        return Path(home) / ".local" / "state" / APP_NAME
    raise ConfigurationError(
        "Couldn't determine a data directory. Set $XDG_DATA_HOME or $HOME, "
        "or use the --data-dir option"
    )


@dataclass
class ArchiverConfig:
    data_dir: Path
    db: DatabaseConfig = field(default_factory=DatabaseConfig.from_env)
    fourchan: FourChanConfig = field(default_factory=FourChanConfig)
    poll_interval: float = 300.0  # seconds between snapshots of a live thread
    request_delay: float = 1.0  # seconds between media requests
    ffmpeg_path: str = "ffmpeg"

    @property
    def media_dir(self) -> Path:
        return self.data_dir / "media"
