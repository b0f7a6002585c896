"""Command-line interface for Trove.

This module provides the CLI commands for running and managing
the Trove application.
"""

import asyncio
from typing import Any, Awaitable, Callable, NoReturn

import click

from trove.core.config import get_settings
from trove.core.logging import configure_logging, get_logger
from trove.domain.exceptions import TroveError


def run_with_store(operation: Callable[[Any], Awaitable[Any]]) -> Any:
    """Run an operation against the document store in one committed transaction.

    Domain errors are reported as CLI errors.
    """
    from trove.infrastructure.persistence.database import get_db_manager, init_database
    from trove.infrastructure.persistence.document_store import SQLAlchemyDocumentStore

    async def run() -> Any:
        db = get_db_manager()
        try:
            await init_database()
            async with db.session() as session:
                result = await operation(SQLAlchemyDocumentStore(session))
                await session.commit()
                return result
        finally:
            await db.disconnect()

    try:
        return asyncio.run(run())
    except TroveError as e:
        raise click.ClickException(e.message) from e


@click.group()
@click.version_option(version="0.1.0", prog_name="Trove")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default=None,
    help="Set log level (overrides TROVE_LOG_LEVEL)",
)
def cli(log_level: str | None) -> None:
    """Trove - collection cataloging backend.

    Template-driven item schemas with tier-limited usage quotas.
    """
    settings = get_settings()
    if log_level:
        settings.log_level = log_level
    configure_logging(settings)


@cli.command()
@click.option("--host", type=str, default=None, help="Host to bind to (overrides config)")
@click.option("--port", type=int, default=None, help="Port to bind to (overrides config)")
@click.option(
    "--workers",
    type=int,
    default=None,
    help="Number of worker processes (overrides config)",
)
@click.option(
    "--reload/--no-reload",
    default=None,
    help="Enable auto-reload (default: on in development)",
)
def serve(host: str | None, port: int | None, workers: int | None, reload: bool | None) -> None:
    """Start the Trove server."""
    import uvicorn

    settings = get_settings()

    bind_host = host or settings.host
    bind_port = port or settings.port
    bind_workers = workers or settings.workers
    if reload is None:
        reload = settings.is_development

    logger = get_logger(__name__)
    logger.info(
        "Starting Trove server",
        host=bind_host,
        port=bind_port,
        workers=bind_workers,
        reload=reload,
        environment=settings.environment,
    )

    uvicorn.run(
        "trove.infrastructure.api.app:app",
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
    """Initialize the database.

    Creates the documents table if it does not exist.
    """
    from trove.infrastructure.persistence.database import get_db_manager, init_database

    if not force:
        click.confirm("This will create the database tables. Continue?", abort=True, default=False)

    async def initialize() -> None:
        try:
            await init_database(create_tables=True)
            click.echo("Database initialized successfully.")
        finally:
            await get_db_manager().disconnect()

    asyncio.run(initialize())


@cli.command()
def tiers() -> None:
    """List the subscription tiers and their limits."""
    from trove.domain.entities.tier import TIER_PROFILES, is_unlimited

    def fmt(value: Any) -> str:
        if isinstance(value, bool):
            return "yes" if value else "no"
        return "unlimited" if is_unlimited(value) else str(value)

    for tier in TIER_PROFILES.values():
        click.echo(f"{tier.display_name} ({tier.name}) - ${tier.monthly_price:.2f}/month")
        for name, value in tier.limits().items():
            click.echo(f"  {name:<26} {fmt(value)}")


@cli.command()
@click.argument("user_id")
@click.argument("tier")
@click.option("--subscription-id", default=None, help="Payment provider subscription reference")
def set_tier(user_id: str, tier: str, subscription_id: str | None) -> None:
    """Move USER_ID to TIER, creating the profile if needed."""
    from trove.domain.services import SubscriptionService

    settings = get_settings()

    async def change(store: Any) -> Any:
        service = SubscriptionService(store, default_tier=settings.default_tier)
        await service.ensure_profile(user_id)
        return await service.change_tier(user_id, tier, subscription_id)

    profile = run_with_store(change)
    click.echo(f"User {profile.id} is now on the '{profile.tier}' tier.")


@cli.command()
@click.argument("user_id")
def reconcile_usage(user_id: str) -> None:
    """Recompute the usage counters of USER_ID from stored data."""
    from trove.domain.services import QuotaLedger, SubscriptionService

    async def reconcile(store: Any) -> Any:
        await SubscriptionService(store).get_profile(user_id)
        return await QuotaLedger(store).reconcile(user_id)

    usage = run_with_store(reconcile)
    click.echo(
        f"Usage of {user_id}: {usage.collections} collections, "
        f"{usage.total_items} items, {usage.storage_used_mb} MB"
    )


@cli.command()
@click.argument("user_id")
@click.option("--email", default=None, help="Email claim to include")
@click.option("--minutes", type=int, default=None, help="Lifetime in minutes (overrides config)")
def issue_token(user_id: str, email: str | None, minutes: int | None) -> None:
    """Print a signed access token for USER_ID (development only)."""
    from datetime import timedelta

    from trove.infrastructure.auth import JWTService

    settings = get_settings()
    if settings.is_production:
        raise click.ClickException("Tokens are issued by the auth provider in production.")

    expires = timedelta(minutes=minutes) if minutes else None
    click.echo(JWTService().create_access_token(user_id, email=email, expires_delta=expires))


@cli.command()
def info() -> None:
    """Display Trove configuration and system information."""
    settings = get_settings()

    click.echo(f"""
Trove v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Debug:        {settings.debug}
  API Prefix:   {settings.api_prefix}
  Default Tier: {settings.default_tier}

Server:
  Host:         {settings.host}
  Port:         {settings.port}
  Workers:      {settings.workers}

Database:
  URL:          {settings.database_url}
  Pool Size:    {settings.db_pool_size}
  Echo:         {settings.db_echo}

Security:
  Issuer:       {settings.token_issuer}
  Token Expire: {settings.access_token_expire_minutes} minutes

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when the `trove` command is run
    or when using `python -m trove`.
    """
    cli()


if __name__ == "__main__":
    main()
