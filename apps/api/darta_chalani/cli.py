"""CLI tools for registry administration."""

import click

from darta_chalani.core.exceptions import CaseRegistryError
from darta_chalani.core.structured_logging import configure_logging
from darta_chalani.db.enums import DocumentType, Scope
from darta_chalani.db.session import SessionLocal
from darta_chalani.services import numbering_service

CLI_ACTOR = "cli"

scope_option = click.option(
    "--scope",
    type=click.Choice([s.value for s in Scope], case_sensitive=False),
    required=True,
    help="MUNICIPALITY or WARD",
)
ward_option = click.option("--ward-id", default=None, help="Ward id (required for WARD scope)")


@click.group()
def cli():
    """Darta/Chalani registry CLI tools."""
    configure_logging()


@cli.command()
def sweep_allocations():
    """
    Expire PROVISIONAL number allocations whose TTL has passed.

    Intended to run from cron every few minutes.

    Example:
        python -m darta_chalani.cli sweep-allocations
    """
    db = SessionLocal()
    try:
        expired = numbering_service.expire_stale_allocations(db)
        click.echo(f"✓ Expired {expired} allocation(s)")
    finally:
        db.close()


@cli.command()
@scope_option
@ward_option
@click.option("--fiscal-year", required=True, help="New fiscal year, e.g. 2083/84")
def rollover(scope: str, ward_id: str | None, fiscal_year: str):
    """
    Open counters for a new fiscal year and close the previous ones.

    Example:
        python -m darta_chalani.cli rollover --scope WARD --ward-id 5 --fiscal-year 2083/84
    """
    db = SessionLocal()
    try:
        counters = numbering_service.rollover_fiscal_year(
            db, scope=scope.upper(), ward_id=ward_id, new_fiscal_year=fiscal_year, actor=CLI_ACTOR
        )
        for counter in counters:
            click.echo(f"✓ {counter.document_type} {counter.fiscal_year} at {counter.current_value}")
    except CaseRegistryError as e:
        raise click.ClickException(e.reason) from e
    finally:
        db.close()


@cli.command()
@scope_option
@ward_option
@click.option(
    "--type",
    "document_type",
    type=click.Choice([t.value for t in DocumentType], case_sensitive=False),
    required=True,
)
@click.option("--fiscal-year", required=True)
@click.option("--reason", default=None, help="Why the counter is held")
def lock_counter(scope: str, ward_id: str | None, document_type: str, fiscal_year: str, reason: str | None):
    """Place an administrative hold on a counter."""
    db = SessionLocal()
    try:
        counter = numbering_service.lock_counter(
            db,
            scope=scope.upper(),
            document_type=document_type.upper(),
            fiscal_year=fiscal_year,
            ward_id=ward_id,
            actor=CLI_ACTOR,
            reason=reason,
        )
        click.echo(f"✓ Locked {counter.document_type} {counter.fiscal_year} at {counter.current_value}")
    except CaseRegistryError as e:
        raise click.ClickException(e.reason) from e
    finally:
        db.close()


@cli.command()
@scope_option
@ward_option
@click.option(
    "--type",
    "document_type",
    type=click.Choice([t.value for t in DocumentType], case_sensitive=False),
    required=True,
)
@click.option("--fiscal-year", required=True)
def unlock_counter(scope: str, ward_id: str | None, document_type: str, fiscal_year: str):
    """Release an administrative hold on a counter."""
    db = SessionLocal()
    try:
        counter = numbering_service.unlock_counter(
            db,
            scope=scope.upper(),
            document_type=document_type.upper(),
            fiscal_year=fiscal_year,
            ward_id=ward_id,
            actor=CLI_ACTOR,
        )
        click.echo(f"✓ Unlocked {counter.document_type} {counter.fiscal_year}")
    except CaseRegistryError as e:
        raise click.ClickException(e.reason) from e
    finally:
        db.close()


@cli.command()
@click.option("--fiscal-year", default=None)
def list_counters(fiscal_year: str | None):
    """Print counters with their current values."""
    db = SessionLocal()
    try:
        for counter in numbering_service.list_counters(db, fiscal_year=fiscal_year):
            flags = []
            if counter.is_locked:
                flags.append("locked")
            if counter.closed_at:
                flags.append("closed")
            ward = f" ward {counter.ward_id}" if counter.ward_id else ""
            suffix = f" ({', '.join(flags)})" if flags else ""
            click.echo(
                f"{counter.scope}{ward} {counter.document_type} {counter.fiscal_year}: "
                f"{counter.current_value}{suffix}"
            )
    finally:
        db.close()


if __name__ == "__main__":
    cli()
