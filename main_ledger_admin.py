"""Mini README: Admin CLI for the donation ledger.

This script exposes a Typer CLI for the administrative side of the ledger:
live financials, receipt number previews, publishing, backup export and
restore. It reads settings from the environment (``DONATION_LEDGER_*``),
builds the configured storage backend and prints ledger errors as plain
messages with a non-zero exit code.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn, Optional

import typer

from donation_ledger.configuration import get_settings
from donation_ledger.core import LedgerCore
from donation_ledger.domain import utc_now
from donation_ledger.errors import InvalidSnapshot, LedgerError
from donation_ledger.logging_utils import configure_root_logger, get_logger
from donation_ledger.storage import BACKENDS, StorageBackend

LOGGER = get_logger(__name__)

cli = typer.Typer(help="Administer the donation ledger.")


def build_storage() -> StorageBackend:
    """Instantiate the backend named in the settings."""

    settings = get_settings()
    configure_root_logger(settings.log_level)
    return BACKENDS.create_from_settings(settings)


def _fail(error: LedgerError) -> NoReturn:
    typer.echo(f"Error: {error}", err=True)
    if isinstance(error, InvalidSnapshot):
        for problem in error.problems:
            typer.echo(f"  - {problem}", err=True)
    raise typer.Exit(code=1)


@cli.command()
def financials() -> None:
    """Print live totals and the per-task breakdown as JSON."""

    with build_storage() as storage:
        try:
            snapshot = LedgerCore(storage).get_financials()
        except LedgerError as error:
            _fail(error)
        typer.echo(json.dumps(snapshot.as_dict(), indent=2))


@cli.command("next-number")
def next_number(book_id: str = typer.Argument(..., help="Receipt book id.")) -> None:
    """Show the number the next receipt of a book would receive."""

    with build_storage() as storage:
        try:
            number = LedgerCore(storage).allocate_receipt_number(book_id)
        except LedgerError as error:
            _fail(error)
        typer.echo(str(number))


@cli.command()
def publish(actor: str = typer.Option(..., "--actor", help="User id publishing the report.")) -> None:
    """Freeze the current figures into a new published report."""

    with build_storage() as storage:
        core = LedgerCore(storage)
        try:
            report = core.publish_report(core.actor_for(actor))
        except LedgerError as error:
            _fail(error)
        typer.echo(f"Published report {report.id} at {report.published_at.isoformat()}")


@cli.command("latest-report")
def latest_report() -> None:
    """Print the current public report."""

    with build_storage() as storage:
        try:
            payload = LedgerCore(storage).get_public_report()
        except LedgerError as error:
            _fail(error)
        typer.echo(json.dumps(payload, indent=2))


@cli.command()
def export(
    actor: str = typer.Option(..., "--actor", help="User id requesting the export."),
    output_format: str = typer.Option("json", "--format", help="Backup format: json or sql."),
    output: Optional[Path] = typer.Option(None, "--output", help="Target file; defaults to the backup directory."),
) -> None:
    """Write a full backup of every collection."""

    output_format = output_format.strip().lower()
    if output_format not in {"json", "sql"}:
        typer.echo(f"Error: unsupported format '{output_format}' (use json or sql)", err=True)
        raise typer.Exit(code=2)

    settings = get_settings()
    with build_storage() as storage:
        core = LedgerCore(storage)
        try:
            caller = core.actor_for(actor)
            if output_format == "sql":
                content = core.export_backup_sql(caller)
            else:
                content = core.export_backup_document(caller)
        except LedgerError as error:
            _fail(error)

    if output is None:
        stamp = utc_now().strftime("%Y-%m-%d")
        output = settings.backup_directory / f"donation_ledger_backup_{stamp}.{output_format}"
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")
    LOGGER.info("Backup written to %s", output)
    typer.echo(f"Backup written to {output}")


@cli.command()
def restore(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Structured JSON backup to restore."),
    actor: str = typer.Option(..., "--actor", help="Administrator user id performing the restore."),
) -> None:
    """Replace every collection with the contents of a JSON backup."""

    payload = path.read_text(encoding="utf-8")
    with build_storage() as storage:
        core = LedgerCore(storage)
        try:
            core.restore_backup(core.actor_for(actor), payload)
        except LedgerError as error:
            _fail(error)
    typer.echo(f"Restored backup from {path}")


if __name__ == "__main__":
    cli()
