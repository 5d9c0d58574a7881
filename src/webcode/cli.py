"""CLI entry point for webcode."""

import logging
import os

import click
import uvicorn

from .config import get_log_level
from .container import build_container

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="SQLite database file (default: WEBCODE_DB_PATH or the platform data dir).",
)
user_option = click.option("--user", "username", default=None, help="Owner to act for.")


def _setup_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


@click.group()
@click.option("--log-level", default=None, help="Logging level (default: WEBCODE_LOG_LEVEL or INFO).")
@click.pass_context
def main(ctx: click.Context, log_level: str | None):
    """Persist AI coding-assistant sessions, templates and workspace projects."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = (log_level or get_log_level()).upper()
    _setup_logging(ctx.obj["log_level"])


@main.command()
@click.option("--port", default=5000, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
@db_option
@click.pass_context
def serve(ctx: click.Context, port: int, host: str, db_path: str | None):
    """Start the REST API."""
    if db_path:
        # The app module builds its container from the environment at import.
        os.environ["WEBCODE_DB_PATH"] = db_path
    click.echo(f"Starting webcode on http://{host}:{port}")
    uvicorn.run(
        "webcode.server:app",
        host=host,
        port=port,
        reload=False,
        log_level=ctx.obj["log_level"].lower(),
    )


@main.command("init-db")
@db_option
def init_db(db_path: str | None):
    """Create the database tables and indexes."""
    container = build_container(db_path=db_path)
    container.db.initialize()
    click.echo(f"Database ready at {container.db.path}")
    container.db.close()


@main.command()
@user_option
@db_option
def sweep(username: str | None, db_path: str | None):
    """Flag sessions whose workspace directory no longer exists."""
    container = build_container(db_path=db_path)
    owner = username or container.default_owner
    invalid = container.history.cleanup_invalid_sessions(owner)
    click.echo(f"{invalid} session(s) of {owner} have a missing workspace")
    container.close()


@main.command()
@user_option
@db_option
def status(username: str | None, db_path: str | None):
    """Print how many records each table holds for an owner."""
    container = build_container(db_path=db_path)
    owner = username or container.default_owner
    counts = container.migrator.status(owner)
    click.echo(f"Database: {container.db.path}")
    click.echo(f"Owner:    {owner}")
    for name, count in counts.items():
        click.echo(f"  {name:<16} {count}")
    container.close()
