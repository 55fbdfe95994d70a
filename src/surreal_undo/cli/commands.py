"""
CLI commands for reversible migrations.

Uses click for command-line argument parsing.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

import click
from dotenv import load_dotenv

from ..config import DEFAULT_JOURNAL_DIR, DEFAULT_LOG_FILE, MigrationConfig
from ..connection_manager import StoreConnectionManager
from ..exceptions import UndoError
from ..log import configure_logging
from ..migrations.journal import JournalStore
from ..migrations.plan import load_plan
from ..migrations.runner import MigrationRunner
from ..migrations.snapshot import BackupSnapshotter
from ..migrations.tags import parse_tag
from ..migrations.undo import UndoEngine
from ..sdk import SurrealDBError

logger = logging.getLogger(__name__)

RUN_ERRORS = (UndoError, SurrealDBError)


def run_async(coro: Any) -> Any:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def fail(message: str) -> NoReturn:
    """Report a run-level failure and exit non-zero."""
    logger.error(message)
    click.echo(message, err=True)
    sys.exit(1)


@click.group()
@click.option("--url", "-u", envvar="SURREAL_URL", default="http://localhost:8000", help="SurrealDB URL")
@click.option("--namespace", "-n", envvar="SURREAL_NAMESPACE", default="test", help="SurrealDB namespace")
@click.option("--database", "-d", envvar="SURREAL_DATABASE", default="test", help="SurrealDB database")
@click.option("--user", envvar="SURREAL_USER", default="root", help="SurrealDB user")
@click.option("--password", envvar="SURREAL_PASSWORD", default="root", help="SurrealDB password")
@click.option(
    "--protocol",
    envvar="SURREAL_PROTOCOL",
    type=click.Choice(["cbor", "json"]),
    default="cbor",
    help="Wire protocol (default: cbor)",
)
@click.option(
    "--journal-dir",
    "-j",
    envvar="MIGRATION_JOURNAL_DIR",
    default=DEFAULT_JOURNAL_DIR,
    help=f"Journal directory (default: {DEFAULT_JOURNAL_DIR})",
)
@click.option(
    "--log-file",
    envvar="MIGRATION_LOG_FILE",
    default=DEFAULT_LOG_FILE,
    help=f"Log file (default: {DEFAULT_LOG_FILE}; empty to disable)",
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    url: str,
    namespace: str,
    database: str,
    user: str,
    password: str,
    protocol: str,
    journal_dir: str,
    log_file: str,
    verbose: bool,
) -> None:
    """Reversible data migrations for SurrealDB."""
    config = MigrationConfig(
        url=url,
        namespace=namespace,
        database=database,
        user=user,
        password=password,
        protocol=protocol,  # type: ignore[arg-type]
        journal_dir=Path(journal_dir),
        log_file=Path(log_file) if log_file else None,
    )
    level = logging.DEBUG if verbose else logging.INFO
    try:
        configure_logging(level, config.log_file)
    except OSError as e:
        configure_logging(level)
        fail(f"Cannot open log file {config.log_file}: {e}")

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.argument("plan_path", metavar="PLAN", type=click.Path(dir_okay=False))
@click.option("--dry-run", is_flag=True, envvar="MIGRATION_DRY_RUN", help="Journal intended effects only")
@click.pass_context
def migrate(ctx: click.Context, plan_path: str, dry_run: bool) -> None:
    """Apply the migration plan in PLAN, journaling every outcome."""
    config: MigrationConfig = ctx.obj["config"].with_dry_run(dry_run)

    try:
        plan = load_plan(plan_path)
    except UndoError as e:
        fail(f"Migration failed: {e}")

    async def run() -> Any:
        async with StoreConnectionManager(config) as store:
            return await MigrationRunner(store, config).run(plan)

    try:
        summary = run_async(run())
    except RUN_ERRORS as e:
        fail(f"Migration failed: {e}")

    click.echo(summary.summary())
    click.echo(f"Tag: {summary.tag}")
    click.echo(f"Journal: {summary.journal_path}")
    for backup, copied in summary.snapshots.items():
        click.echo(f"Backup: {backup} ({copied} document(s))")


@cli.command()
@click.argument("tag", required=False)
@click.argument("identifier", required=False)
@click.option("--reverse", is_flag=True, help="Replay newest action first")
@click.pass_context
def undo(ctx: click.Context, tag: str | None, identifier: str | None, reverse: bool) -> None:
    """Undo the run TAG, or only its actions on document IDENTIFIER."""
    if not tag:
        click.echo(ctx.get_usage(), err=True)
        click.echo("Error: a migration tag is required, e.g. 2026-10-18T09_15_02_123456Z", err=True)
        sys.exit(1)

    config: MigrationConfig = ctx.obj["config"]

    # The journal is read before connecting: an unknown tag never reaches the store
    try:
        migration_run = JournalStore(config.journal_dir).load(tag)
    except UndoError as e:
        fail(f"Undo failed: {e}")

    async def run() -> Any:
        async with StoreConnectionManager(config) as store:
            return await UndoEngine(store).undo_run(migration_run, identifier=identifier, reverse=reverse)

    try:
        report = run_async(run())
    except RUN_ERRORS as e:
        fail(f"Undo failed: {e}")

    click.echo(report.summary())


@cli.command()
@click.argument("tag", required=False)
@click.option(
    "--inserted",
    "-i",
    "inserted",
    multiple=True,
    help="Collection the run inserted into (repeatable)",
)
@click.option(
    "--updated",
    multiple=True,
    help="Collection the run bulk-updated (repeatable; discovered from backups if omitted)",
)
@click.option("--timestamp-field", default="createdAt", help="Creation timestamp field (default: createdAt)")
@click.pass_context
def restore(
    ctx: click.Context,
    tag: str | None,
    inserted: tuple[str, ...],
    updated: tuple[str, ...],
    timestamp_field: str,
) -> None:
    """Restore a snapshot-strategy run TAG from its backup collections."""
    if not tag:
        click.echo(ctx.get_usage(), err=True)
        click.echo("Error: a migration tag is required", err=True)
        sys.exit(1)

    try:
        parse_tag(tag)
    except ValueError as e:
        fail(f"Restore failed: {e}")

    config: MigrationConfig = ctx.obj["config"]

    async def run() -> Any:
        async with StoreConnectionManager(config) as store:
            return await BackupSnapshotter(store).restore(
                tag,
                insert_collections=inserted,
                update_collections=updated or None,
                timestamp_field=timestamp_field,
            )

    try:
        report = run_async(run())
    except RUN_ERRORS as e:
        fail(f"Restore failed: {e}")

    click.echo(report.summary())


@cli.group()
def journal() -> None:
    """Inspect run journals."""


@journal.command("list")
@click.pass_context
def list_journals(ctx: click.Context) -> None:
    """List journaled runs, oldest first."""
    config: MigrationConfig = ctx.obj["config"]
    tags = JournalStore(config.journal_dir).list_tags()
    if not tags:
        click.echo(f"No journals in {config.journal_dir}")
        return
    for tag in tags:
        click.echo(tag)


@journal.command("show")
@click.argument("tag")
@click.pass_context
def show_journal(ctx: click.Context, tag: str) -> None:
    """Print the journal of run TAG as one JSON document."""
    config: MigrationConfig = ctx.obj["config"]
    try:
        migration_run = JournalStore(config.journal_dir).load(tag)
    except UndoError as e:
        fail(f"Cannot read journal: {e}")

    click.echo(json.dumps(migration_run.to_json_dict(), indent=2, ensure_ascii=False))


def main() -> None:
    """Entry point for the CLI."""
    load_dotenv()
    cli(obj={})


if __name__ == "__main__":
    main()
