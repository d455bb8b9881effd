"""Command-line interface for TicoBot using Click."""

import asyncio
from pathlib import Path

import click
from dotenv import load_dotenv

from ticobot.cli_helpers import (
    abort_on_provider_error,
    ensure_database_exists,
    format_search_result,
    get_database_info,
)
from ticobot.constants import DEFAULT_DOCUMENT_SOURCE, DEFAULT_TOP_K
from ticobot.errors import ProviderError, ProviderNotImplementedError
from ticobot.factory import ProviderFactory
from ticobot.ingest import IngestResult, ingest_pdf

# Load environment variables
load_dotenv()


async def _ingest_all(
    factory: ProviderFactory, pdf_files: tuple[Path, ...], **options
) -> list[IngestResult]:
    database = factory.get_database_provider()
    embedder = factory.get_embedding_provider()
    vector_store = factory.get_vector_store()
    await database.connect()
    await vector_store.initialize()

    results = []
    try:
        for pdf_path in pdf_files:
            try:
                result = await ingest_pdf(pdf_path, database, embedder, vector_store, **options)
            except ValueError as e:
                click.echo(f"  ✗ Skipping {pdf_path.name}: {e}", err=True)
                continue
            click.echo(
                f"  ✓ {pdf_path.name}: {result.chunk_count} chunks "
                f"(document {result.document.id})"
            )
            results.append(result)
    finally:
        await database.disconnect()
    return results


@click.command()
@click.argument(
    "pdf_files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--party", type=str, default=None, help="Party identifier, e.g. 'PLN'")
@click.option("--title", type=str, default=None, help="Document title (default: file name)")
@click.option(
    "--document-id",
    type=str,
    default=None,
    help="Explicit document id (default: generated)",
)
@click.option("--url", type=str, default="", help="Download URL of the original PDF")
@click.option(
    "--source",
    type=str,
    default=DEFAULT_DOCUMENT_SOURCE,
    show_default=True,
    help="Origin of the document",
)
@click.option(
    "--create-database",
    "create_database_flag",
    is_flag=True,
    default=False,
    help="Create the RavenDB database if it doesn't exist",
)
def ingest(
    pdf_files: tuple[Path, ...],
    party: str | None,
    title: str | None,
    document_id: str | None,
    url: str,
    source: str,
    create_database_flag: bool,
) -> None:
    """Ingest government plan PDF files into the TicoBot knowledge base.

    Example:
        ticobot-ingest plans/PLN.pdf --party PLN --create-database
        ticobot-ingest plans/*.pdf
        ticobot-ingest candidatos.pdf --document-id partidos-candidatos-2026
    """
    if len(pdf_files) > 1 and (title or document_id):
        raise click.UsageError("--title and --document-id apply to a single PDF file")

    ensure_database_exists(create_if_missing=create_database_flag)

    click.echo(f"Found {len(pdf_files)} PDF file(s)")
    if party:
        click.echo(f"Party: {party}")

    try:
        results = asyncio.run(
            _ingest_all(
                ProviderFactory(),
                pdf_files,
                party=party,
                title=title,
                document_id=document_id,
                url=url,
                source=source,
            )
        )
    except (ProviderError, ProviderNotImplementedError) as e:
        abort_on_provider_error(e)

    total_chunks = sum(result.chunk_count for result in results)
    click.echo(f"\n✓ Ingestion complete! {len(results)} document(s), {total_chunks} chunks.")


async def _search(factory: ProviderFactory, query: str, top_k: int, party: str | None):
    embedder = factory.get_embedding_provider()
    vector_store = factory.get_vector_store()
    embedding = await embedder.generate_embedding(query)
    filters = {"partyId": party} if party else None
    return await vector_store.similarity_search(embedding.embedding, top_k, filters)


@click.command()
@click.argument("query", type=str)
@click.option(
    "--top-k", type=int, default=DEFAULT_TOP_K, help="Number of results to return (default: 5)"
)
@click.option("--party", type=str, default=None, help="Only search one party's plan")
def search(query: str, top_k: int, party: str | None) -> None:
    """Search the government plans using vector search.

    QUERY is the text to search for.

    Example:
        ticobot-search "educación pública"
        ticobot-search "seguridad" --party PLN --top-k 3
    """
    ensure_database_exists()

    click.echo(f"🔍 Searching for: '{query}'")
    click.echo(f"   Returning top {top_k} results...\n")

    try:
        results = asyncio.run(_search(ProviderFactory(), query, top_k, party))
    except (ProviderError, ProviderNotImplementedError) as e:
        abort_on_provider_error(e)

    if not results:
        click.echo("No results found.")
        return

    click.echo(f"✅ Found {len(results)} result(s):\n")
    for i, result in enumerate(results, 1):
        click.echo(format_search_result(i, result))


@click.command()
def cache_stats() -> None:
    """Show how many answers are cached and how many have expired.

    Example:
        ticobot-cache-stats
    """
    ensure_database_exists()
    try:
        stats = asyncio.run(ProviderFactory().get_answer_cache().get_stats())
    except (ProviderError, ProviderNotImplementedError) as e:
        abort_on_provider_error(e)

    click.echo("📊 Answer cache")
    click.echo(f"   Total entries:  {stats['total']}")
    click.echo(f"   Expired:        {stats['expired']}")
    click.echo(f"   Never expire:   {stats['never_expires']}")


@click.command()
@click.option(
    "--expired-only", is_flag=True, default=False, help="Only remove expired entries"
)
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip confirmation prompt")
def clear_cache(expired_only: bool, yes: bool) -> None:
    """Remove cached chat answers.

    Example:
        ticobot-clear-cache --expired-only
        ticobot-clear-cache --yes
    """
    ensure_database_exists()
    _, db_name = get_database_info()

    if not expired_only and not yes:
        click.echo(f"⚠️  WARNING: You are about to delete every cached answer in '{db_name}'")
        if not click.confirm("Are you sure you want to proceed?", default=False):
            click.echo("Cache clearing cancelled.")
            return

    cache = ProviderFactory().get_answer_cache()
    try:
        if expired_only:
            removed = asyncio.run(cache.cleanup_expired())
        else:
            removed = asyncio.run(cache.clear())
    except (ProviderError, ProviderNotImplementedError) as e:
        abort_on_provider_error(e)

    kind = "expired " if expired_only else ""
    click.echo(f"🧹 Removed {removed} {kind}cache entr{'y' if removed == 1 else 'ies'}")


@click.command()
@click.option("--text", type=str, default="test", show_default=True, help="Text to embed")
def check_embedding(text: str) -> None:
    """Check the configured embedding provider and its vector dimension.

    Generates one embedding and compares its length with the dimension the
    provider declares. Set EMBEDDING_DIMENSIONS to the reported length when
    they differ.

    Example:
        ticobot-check-embedding
    """
    factory = ProviderFactory()
    provider_name = factory.provider_names()["embedding"]

    try:
        embedder = factory.get_embedding_provider()
        declared = embedder.get_dimension()
        click.echo(f"🔢 Provider: {provider_name}")
        click.echo(f"   Model: {embedder.get_model_name()}")
        click.echo(f"   Declared dimension: {declared}")
        click.echo(f"   Max input length: {embedder.get_max_input_length()} tokens")

        response = asyncio.run(embedder.generate_embedding(text))
    except (ProviderError, ProviderNotImplementedError) as e:
        abort_on_provider_error(e)

    actual = len(response.embedding)
    click.echo(f"   Returned dimension: {actual}")
    click.echo(f"   Tokens used: {response.usage.total_tokens}")

    if actual != declared:
        click.echo(f"\n⚠️  Dimension changed from {declared} to {actual}.")
        click.echo(f"   Set EMBEDDING_DIMENSIONS={actual} in your .env file.")
    else:
        click.echo("\n✓ Embedding configuration is consistent.")


if __name__ == "__main__":
    ingest()
