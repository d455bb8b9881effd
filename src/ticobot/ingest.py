"""PDF ingestion pipeline: extract, clean, chunk, embed and store government plans."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import fitz  # PyMuPDF
from dotenv import load_dotenv

from ticobot.constants import (
    CHUNK_OVERLAP_WORDS,
    CHUNK_SIZE_WORDS,
    DEFAULT_DOCUMENT_SOURCE,
    EMBEDDING_BATCH_SIZE,
)
from ticobot.embedding.base import EmbeddingProvider
from ticobot.errors import ProviderError
from ticobot.models import Chunk, Document, VectorDocument
from ticobot.service.database.base import DatabaseProvider, VectorStore

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

_PAGE_NUMBER_LINE = re.compile(r"^\s*(?:página\s+|page\s+)?\d+(?:\s*(?:de|of|/)\s*\d+)?\s*$", re.I)
_HYPHENATED_BREAK = re.compile(r"(\w)-\n(\w)")


@dataclass
class PageText:
    page_number: int
    text: str


@dataclass
class TextChunk:
    content: str
    page_number: int


@dataclass
class IngestResult:
    document: Document
    chunk_count: int


def extract_pages_from_pdf(pdf_path: Path) -> list[PageText]:
    """Extract the text of every page of a PDF file.

    Args:
        pdf_path: Path to the PDF file

    Returns:
        list[PageText]: One entry per page, numbered from 1
    """
    with fitz.open(pdf_path) as doc:
        return [PageText(number, page.get_text()) for number, page in enumerate(doc, start=1)]


def read_pdf_metadata(pdf_path: Path) -> dict:
    """Collect file and PDF metadata worth keeping on the Document."""
    metadata: dict = {"file_name": pdf_path.name, "file_size": pdf_path.stat().st_size}
    with fitz.open(pdf_path) as doc:
        pdf_metadata = doc.metadata or {}
    for key in ("title", "author", "creationDate"):
        if pdf_metadata.get(key):
            metadata[f"pdf_{key}"] = pdf_metadata[key]
    return metadata


def clean_text(text: str) -> str:
    """Normalize extracted page text.

    Joins words hyphenated across line breaks, drops lines holding only a
    page number and collapses whitespace.
    """
    text = _HYPHENATED_BREAK.sub(r"\1\2", text)
    lines = [line for line in text.splitlines() if not _PAGE_NUMBER_LINE.match(line)]
    return " ".join(" ".join(lines).split())


def chunk_text(
    text: str, chunk_size: int = CHUNK_SIZE_WORDS, overlap: int = CHUNK_OVERLAP_WORDS
) -> list[str]:
    """Split text into overlapping chunks based on word count.

    Args:
        text: The text to chunk
        chunk_size: Target number of words per chunk (default: 500)
        overlap: Number of words shared by consecutive chunks (default: 50)

    Returns:
        list[str]: List of text chunks
    """
    return [chunk.content for chunk in chunk_pages([PageText(1, text)], chunk_size, overlap)]


def chunk_pages(
    pages: list[PageText], chunk_size: int = CHUNK_SIZE_WORDS, overlap: int = CHUNK_OVERLAP_WORDS
) -> list[TextChunk]:
    """Chunk the words of consecutive pages, remembering where each chunk starts.

    Args:
        pages: Cleaned page texts in page order
        chunk_size: Target number of words per chunk
        overlap: Number of words shared by consecutive chunks

    Returns:
        list[TextChunk]: Chunks with the page number of their first word
    """
    if overlap >= chunk_size:
        raise ValueError("overlap must be smaller than chunk_size")

    words = [(word, page.page_number) for page in pages for word in page.text.split()]
    chunks = []
    start = 0
    while start < len(words):
        window = words[start : start + chunk_size]
        chunks.append(TextChunk(" ".join(word for word, _ in window), window[0][1]))
        if start + chunk_size >= len(words):
            break
        start += chunk_size - overlap
    return chunks


async def embed_in_batches(
    embedder: EmbeddingProvider, texts: list[str], batch_size: int = EMBEDDING_BATCH_SIZE
) -> list[list[float]]:
    """Embed texts with one generate_batch call per batch, keeping input order."""
    vectors: list[list[float]] = []
    for start in range(0, len(texts), batch_size):
        batch = await embedder.generate_batch(texts[start : start + batch_size])
        vectors.extend(batch.embeddings)
        logger.info(f"  🔢 Embedded {len(vectors)}/{len(texts)} chunks")
    return vectors


async def ingest_pdf(
    pdf_path: Path,
    database: DatabaseProvider,
    embedder: EmbeddingProvider,
    vector_store: VectorStore,
    party: str | None = None,
    title: str | None = None,
    document_id: str | None = None,
    url: str = "",
    source: str = DEFAULT_DOCUMENT_SOURCE,
) -> IngestResult:
    """Ingest one PDF into the document database and the vector store.

    Args:
        pdf_path: Path to the PDF file
        database: Receives the Document and its Chunks
        embedder: Embeds chunk texts
        vector_store: Receives the chunk embeddings
        party: Party identifier stored on the document and every chunk
        title: Document title (default: the file name without extension)
        document_id: Explicit document id (default: generated)
        url: Download URL of the original PDF
        source: Origin of the document

    Returns:
        IngestResult: The stored document and its number of chunks

    Raises:
        ValueError: If no text could be extracted
        ProviderError: If embedding or storage fails; the partially
            ingested document is removed first
    """
    logger.info(f"📄 Ingesting {pdf_path.name}...")
    pages = [
        PageText(page.page_number, clean_text(page.text))
        for page in extract_pages_from_pdf(pdf_path)
    ]
    text_chunks = chunk_pages(pages)
    if not text_chunks:
        raise ValueError(f"No text could be extracted from {pdf_path.name}")
    logger.info(f"  ✂️ {len(pages)} pages, {len(text_chunks)} chunks")

    title = title or pdf_path.stem
    document = await database.create_document(
        Document(
            id=document_id or "",
            title=title,
            source=source,
            url=url,
            page_count=len(pages),
            party=party,
            metadata=read_pdf_metadata(pdf_path),
        )
    )

    try:
        chunks = await database.create_chunks(
            [
                Chunk(
                    id="",
                    document_id=document.id,
                    content=text_chunk.content,
                    chunk_index=index,
                    page_number=text_chunk.page_number,
                    metadata={"party": party, "title": title} if party else {"title": title},
                )
                for index, text_chunk in enumerate(text_chunks)
            ]
        )
        embeddings = await embed_in_batches(embedder, [chunk.content for chunk in chunks])
        await vector_store.upsert(
            [
                VectorDocument(
                    id=chunk.id,
                    content=chunk.content,
                    embedding=embedding,
                    metadata={
                        **chunk.metadata,
                        "documentId": document.id,
                        "chunkIndex": chunk.chunk_index,
                        "pageNumber": chunk.page_number,
                    },
                )
                for chunk, embedding in zip(chunks, embeddings)
            ]
        )
    except ProviderError:
        logger.error(f"❌ Ingestion of {pdf_path.name} failed, removing document {document.id}")
        try:
            await database.delete_document(document.id)
        except Exception as cleanup_error:
            logger.error(f"❌ Rollback failed for document {document.id}: {cleanup_error}")
        raise

    logger.info(f"  ✅ Stored {len(chunks)} chunks for {title} ({document.id})")
    return IngestResult(document=document, chunk_count=len(chunks))
