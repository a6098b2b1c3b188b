"""Command-line interface for Visionara.

This module provides the CLI commands for running and managing
the Visionara identity service.
"""

import asyncio
from typing import NoReturn

import click

from visionara import __version__
from visionara.core.config import get_settings
from visionara.core.logging import configure_logging, get_logger


@click.group()
@click.version_option(version=__version__, prog_name="Visionara")
def cli() -> None:
    """Visionara - identity and credential consistency service.

    Settings are read from VISIONARA_* environment variables and .env.
    """


@cli.command()
@click.option("--host", type=str, default=None, help="Host to bind to (overrides config)")
@click.option("--port", type=int, default=None, help="Port to bind to (overrides config)")
@click.option(
    "--workers", type=int, default=None, help="Number of worker processes (overrides config)"
)
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development")
def serve(host: str | None, port: int | None, workers: int | None, reload: bool) -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()

    bind_host = host or settings.host
    bind_port = port or settings.port
    bind_workers = workers or settings.workers

    if bind_workers > 1 and settings.database_url.startswith("sqlite"):
        click.echo(
            "Error: SQLite does not support multiple worker processes. "
            "Use PostgreSQL or run with --workers 1.",
            err=True,
        )
        raise SystemExit(1)

    configure_logging(settings)
    logger = get_logger(__name__)
    logger.info(
        "Starting Visionara server",
        host=bind_host,
        port=bind_port,
        workers=bind_workers,
        reload=reload,
        environment=settings.environment,
    )

    uvicorn.run(
        "visionara.infrastructure.api.app:app",
        host=bind_host,
        port=bind_port,
        workers=1 if reload else bind_workers,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


@cli.command()
@click.option("--force", is_flag=True, help="Skip confirmation prompt")
def init_db(force: bool) -> None:
    """Create all tables and seed the reference roles.

    Use this only in development. In production, use migrations instead.
    """
    from visionara.infrastructure.persistence import models  # noqa: F401
    from visionara.infrastructure.persistence.database import get_db_manager, seed_default_roles

    settings = get_settings()
    configure_logging(settings)

    if settings.is_production and not force:
        click.echo(
            "ERROR: Running in production mode. Use migrations instead of init-db.",
            err=True,
        )
        raise SystemExit(1)

    if not force:
        click.confirm("This will create all database tables. Continue?", abort=True, default=False)

    async def initialize() -> int:
        db = get_db_manager()
        try:
            await db.create_tables()
            async with db.session() as session:
                return await seed_default_roles(session)
        finally:
            await db.disconnect()

    seeded = asyncio.run(initialize())
    click.echo(f"Database initialized successfully ({seeded} roles seeded).")


@cli.command()
@click.option("--email", type=str, default=None, help="Superadmin email (prompts if not provided)")
@click.option(
    "--password", type=str, default=None, help="Superadmin password (prompts if not provided)"
)
@click.option("--display-name", type=str, default=None, help="Display name")
def create_superadmin(email: str | None, password: str | None, display_name: str | None) -> None:
    """Create the superadmin at the identity provider and locally.

    Does nothing if a user with the email already exists.
    """
    from visionara.core.errors import IdentityError
    from visionara.domain.services.audit_ledger import AuditLedger
    from visionara.domain.services.identity_synchronizer import IdentitySynchronizer
    from visionara.domain.services.password_validator import PasswordValidator
    from visionara.domain.services.setup_service import SetupService
    from visionara.infrastructure.identity.provider import IdentityProviderSettings
    from visionara.infrastructure.identity.supabase_provider import SupabaseIdentityProvider
    from visionara.infrastructure.persistence.database import get_db_manager

    settings = get_settings()
    configure_logging(settings)

    if email is None:
        email = click.prompt("Superadmin email", type=str)
    email = email.strip().lower()
    if "@" not in email or "." not in email.split("@")[-1]:
        click.echo("Error: Invalid email format", err=True)
        raise SystemExit(1)

    if password is None:
        password = click.prompt("Superadmin password", hide_input=True, confirmation_prompt=True)

    provider = SupabaseIdentityProvider(IdentityProviderSettings.from_settings(settings))

    async def create():
        db = get_db_manager()
        try:
            async with db.session() as session:
                ledger = AuditLedger(session)
                synchronizer = IdentitySynchronizer(
                    session,
                    provider,
                    ledger,
                    password_validator=PasswordValidator(settings.password_min_length),
                )
                return await SetupService(session, synchronizer, ledger).bootstrap_superadmin(
                    email=email,
                    password=password,
                    display_name=display_name or settings.superadmin_display_name,
                )
        finally:
            await db.disconnect()

    try:
        user, created = asyncio.run(create())
    except IdentityError as e:
        click.echo(f"Error: {e.message}", err=True)
        raise SystemExit(1)

    if created:
        click.echo(f"\nSuperadmin created successfully!\n  User ID: {user.id}\n  Email:   {user.email}\n")
    else:
        click.echo(f"A user with email {user.email} already exists (ID {user.id}). Nothing changed.")


@cli.command()
def verify_audit_chain() -> None:
    """Check every audit entry's checksum and chain link."""
    from visionara.infrastructure.persistence.database import get_db_manager
    from visionara.infrastructure.persistence.repositories import AuditLogRepository

    settings = get_settings()
    configure_logging(settings)

    async def verify() -> tuple[int, bool, list[str]]:
        db = get_db_manager()
        try:
            async with db.session() as session:
                repo = AuditLogRepository(session)
                total = await repo.count_all()
                ok, errors = await repo.verify_integrity_chain()
                return total, ok, errors
        finally:
            await db.disconnect()

    total, ok, errors = asyncio.run(verify())
    if ok:
        click.echo(f"Audit chain intact ({total} entries).")
        return

    click.echo(f"Audit chain BROKEN ({len(errors)} problems in {total} entries):", err=True)
    for error in errors:
        click.echo(f"  {error}", err=True)
    raise SystemExit(1)


def main() -> NoReturn:
    """Main entry point for the CLI.

    Called by the `visionara` command and by `python -m visionara`.
    """
    cli()
