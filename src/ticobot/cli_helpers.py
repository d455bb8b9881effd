"""Helper functions for CLI commands."""

import click

from ticobot.constants import CONTENT_PREVIEW_LENGTH
from ticobot.errors import ProviderError, ProviderNotImplementedError
from ticobot.models import SearchResult
from ticobot.service.database import RavenDBConfig, create_database, database_exists


def ensure_database_exists(create_if_missing: bool = False) -> bool:
    """Check if database exists, optionally create it.

    Args:
        create_if_missing: If True, attempt to create the database

    Returns:
        True if database exists (or was created)

    Raises:
        click.Abort: If database doesn't exist and can't be created
    """
    if database_exists():
        return True

    if create_if_missing:
        click.echo("Database does not exist. Creating database...")
        try:
            create_database()
            click.echo("✓ Database created successfully!")
            return True
        except Exception as e:
            click.echo(f"✗ Failed to create database: {e}", err=True)
            click.echo("\nPlease ensure RavenDB is running and accessible.", err=True)
            raise click.Abort()

    url, db_name = get_database_info()
    click.echo(f"✗ Error: Database '{db_name}' does not exist at {url}!", err=True)
    click.echo("\nPlease create the database first using:", err=True)
    click.echo("  ticobot-ingest <pdf> --create-database", err=True)
    raise click.Abort()


def format_search_result(
    index: int, result: SearchResult, max_length: int = CONTENT_PREVIEW_LENGTH
) -> str:
    """Format a search result for display.

    Args:
        index: Result number (1-based)
        result: Scored chunk from the vector store
        max_length: Maximum content length before truncation

    Returns:
        Formatted string for display
    """
    metadata = result.document.metadata
    party = metadata.get("party") or "?"
    title = metadata.get("title") or metadata.get("documentId") or "Unknown"
    page = metadata.get("pageNumber")
    content = result.document.content

    display_content = content[:max_length] + "..." if len(content) > max_length else content
    location = f"{party} - {title}" + (f", p. {page}" if page is not None else "")

    lines = [
        f"{index}. [{location}] (score: {result.score:.4f})",
        f"   {display_content}",
        "",
    ]
    return "\n".join(lines)


def get_database_info() -> tuple[str, str]:
    """Get database connection info.

    Returns:
        Tuple of (url, database_name)
    """
    return RavenDBConfig.get_url(), RavenDBConfig.get_database_name()


def abort_on_provider_error(error: Exception) -> None:
    """Report a provider failure and abort the command.

    Raises:
        click.Abort: Always
    """
    click.echo(f"✗ Error: {error}", err=True)
    if isinstance(error, ProviderNotImplementedError):
        click.echo("\nCheck LLM_PROVIDER / EMBEDDING_PROVIDER in your .env file.", err=True)
    elif isinstance(error, ProviderError) and error.retryable:
        click.echo("\nPlease ensure the provider and RavenDB are reachable.", err=True)
    raise click.Abort()
