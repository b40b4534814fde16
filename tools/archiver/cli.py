"""CLI entry-point for the thread archiver."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import psycopg
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .api import FourChanAPI
from .archiver import ThreadArchiver
from .config import ArchiverConfig, DatabaseConfig, FourChanConfig, default_data_dir
from .db import Database
from .errors import ConfigurationError, FatalError
from .fingerprint import FFmpegFingerprinter, Fingerprinter
from .shutdown import ShutdownCoordinator
from .storage import ContentStore

console = Console(stderr=True)
logger = logging.getLogger("archiver.cli")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )
    # Suppress noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("psycopg").setLevel(logging.WARNING)


def _print_stats(stats: dict) -> None:
    table = Table(title="Archive Summary", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="bold")
    table.add_column("Count", justify="right")
    for key, val in stats.items():
        table.add_row(key.capitalize(), str(val))
    console.print(table)


def parse_target(board: str, thread: str | None) -> tuple[str, int]:
    """Resolve BOARD THREAD, or a single BOARD-THREAD argument.

    The combined form exists for service managers that pass one argument.
    """
    if thread is None:
        if "-" not in board:
            raise click.UsageError("Missing argument 'THREAD'.")
        board, thread = board.split("-", 1)
    try:
        thread_no = int(thread)
    except ValueError:
        raise ConfigurationError(f"'{thread}' is not a valid integer") from None
    return board, thread_no


def _resolve_data_dir(data_dir: Path | None) -> Path:
    if data_dir is not None:
        return data_dir
    path = default_data_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


@click.command()
@click.argument("board")
@click.argument("thread", required=False)
@click.option("--data-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Alternate data directory")
@click.option("--poll-interval", default=300.0, type=float, show_default=True,
              help="Seconds between polls of a live thread")
@click.option("--ffmpeg", "ffmpeg_path", envvar="FFMPEG", default="ffmpeg", help="ffmpeg executable")
@click.option("--db-host", envvar="DB_HOST", default="localhost", help="PostgreSQL host")
@click.option("--db-port", envvar="DB_PORT", default=5432, type=int, help="PostgreSQL port")
@click.option("--db-name", envvar="DB_NAME", default="aos", help="PostgreSQL database name")
@click.option("--db-user", envvar="DB_USER", default="aos", help="PostgreSQL user")
@click.option("--db-password", envvar="DB_PASSWORD", default="aos", help="PostgreSQL password")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(
    board: str,
    thread: str | None,
    data_dir: Path | None,
    poll_interval: float,
    ffmpeg_path: str,
    db_host: str,
    db_port: int,
    db_name: str,
    db_user: str,
    db_password: str,
    verbose: bool,
) -> None:
    """Archive a 4chan thread until it is closed or archived.

    Posts go to PostgreSQL; attachments go to DATA_DIR/media, stored once
    per distinct video stream.

    Example: aos g 12345678
    """
    _setup_logging(verbose)
    try:
        board, thread_no = parse_target(board, thread)
        cfg = ArchiverConfig(
            data_dir=_resolve_data_dir(data_dir),
            db=DatabaseConfig(host=db_host, port=db_port, dbname=db_name, user=db_user, password=db_password),
            fourchan=FourChanConfig(),
            poll_interval=poll_interval,
            ffmpeg_path=ffmpeg_path,
        )
        fingerprint = FFmpegFingerprinter(cfg.ffmpeg_path)
        fingerprint.ensure_available()
    except (FatalError, OSError) as exc:
        logger.critical("%s", exc)
        sys.exit(1)

    code = run(cfg, board, thread_no, fingerprint=fingerprint)
    sys.exit(code)


def run(cfg: ArchiverConfig, board: str, thread_no: int, *, fingerprint: Fingerprinter) -> int:
    """Wire the collaborators together and run the loop.  Returns the exit code."""
    with ShutdownCoordinator() as shutdown, FourChanAPI(cfg.fourchan) as api, Database(cfg.db) as db:
        archiver = ThreadArchiver(
            cfg,
            api=api,
            db=db,
            store=ContentStore(cfg.media_dir),
            fingerprint=fingerprint,
            shutdown=shutdown,
        )
        try:
            db.ensure_schema()
            outcome = archiver.run(board, thread_no)
        except (FatalError, psycopg.Error, OSError) as exc:
            logger.critical("%s: %s", type(exc).__name__, exc)
            return 1
        finally:
            _print_stats(archiver.stats)
    logger.info("Done (%s)", outcome)
    return 0


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
