"""Tests for the ingest module."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import fitz
import pytest

from ticobot.errors import ProviderError
from ticobot.ingest import (
    PageText,
    chunk_pages,
    chunk_text,
    clean_text,
    embed_in_batches,
    extract_pages_from_pdf,
    ingest_pdf,
    read_pdf_metadata,
)
from ticobot.models import Chunk, Document


@pytest.fixture
def sample_pdf(tmp_path) -> Path:
    """Write a two-page government plan PDF.

    Returns:
        Path to the generated PDF file
    """
    path = tmp_path / "PLN.pdf"
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Plan de Gobierno 2026\nEducación pública de calidad")
    page = doc.new_page()
    page.insert_text((72, 72), "Seguridad ciudadana y empleo\n2")
    doc.set_metadata({"title": "Plan PLN", "author": "PLN"})
    doc.save(path)
    doc.close()
    return path


@pytest.fixture
def database():
    """DatabaseProvider double echoing stored documents and chunks."""
    database = MagicMock()

    async def create_document(document: Document) -> Document:
        document.id = document.id or "Documents/generated"
        return document

    async def create_chunks(chunks: list[Chunk]) -> list[Chunk]:
        for index, chunk in enumerate(chunks):
            chunk.id = f"Chunks/{index}"
        return chunks

    database.create_document = AsyncMock(side_effect=create_document)
    database.create_chunks = AsyncMock(side_effect=create_chunks)
    database.delete_document = AsyncMock()
    return database


class TestExtractPages:
    """Tests for PDF text extraction."""

    def test_extract_pages(self, sample_pdf):
        pages = extract_pages_from_pdf(sample_pdf)

        assert [page.page_number for page in pages] == [1, 2]
        assert "Educación pública" in pages[0].text
        assert "Seguridad ciudadana" in pages[1].text

    def test_read_pdf_metadata(self, sample_pdf):
        metadata = read_pdf_metadata(sample_pdf)

        assert metadata["file_name"] == "PLN.pdf"
        assert metadata["file_size"] > 0
        assert metadata["pdf_title"] == "Plan PLN"

    def test_missing_file(self):
        with pytest.raises(Exception):  # PyMuPDF raises FileNotFoundError or similar
            extract_pages_from_pdf(Path("/nonexistent/file.pdf"))


class TestCleanText:
    """Tests for clean_text."""

    def test_joins_hyphenated_words(self):
        assert clean_text("educa-\nción pública") == "educación pública"

    def test_drops_page_number_lines(self):
        text = "Primera línea\n12\nPágina 3 de 40\nSegunda línea"
        assert clean_text(text) == "Primera línea Segunda línea"

    def test_collapses_whitespace(self):
        assert clean_text("  uno\t\tdos \n\n tres ") == "uno dos tres"


class TestChunkText:
    """Tests for chunk_text and chunk_pages."""

    def test_chunk_text_small_text(self):
        """Test chunking text smaller than chunk size."""
        text = " ".join(["palabra"] * 100)
        chunks = chunk_text(text, chunk_size=500, overlap=50)

        assert chunks == [text]

    def test_chunk_text_exact_chunk_size(self):
        text = " ".join(["palabra"] * 500)
        assert len(chunk_text(text, chunk_size=500, overlap=50)) == 1

    def test_chunk_text_with_overlap(self):
        """Test chunking text with overlap between chunks."""
        text = " ".join([f"word{i}" for i in range(600)])
        chunks = chunk_text(text, chunk_size=500, overlap=50)

        assert len(chunks) == 2
        chunk1_words = chunks[0].split()
        chunk2_words = chunks[1].split()
        assert len(chunk1_words) == 500
        # Second chunk starts 450 words in (500 - 50 overlap)
        assert chunk2_words[0] == chunk1_words[450]

    def test_chunk_text_no_overlap(self):
        text = " ".join([f"word{i}" for i in range(1000)])
        chunks = chunk_text(text, chunk_size=500, overlap=0)

        assert [len(chunk.split()) for chunk in chunks] == [500, 500]

    def test_empty_text(self):
        assert chunk_text("   ") == []

    def test_overlap_must_be_smaller(self):
        with pytest.raises(ValueError):
            chunk_text("a b c", chunk_size=10, overlap=10)

    def test_chunk_pages_tracks_start_page(self):
        pages = [
            PageText(1, " ".join(["uno"] * 6)),
            PageText(2, " ".join(["dos"] * 6)),
        ]

        chunks = chunk_pages(pages, chunk_size=5, overlap=1)

        assert [chunk.page_number for chunk in chunks] == [1, 1, 2]
        assert chunks[1].content == "uno uno dos dos dos"


class TestEmbedInBatches:
    """Tests for embed_in_batches."""

    @pytest.mark.asyncio
    async def test_one_call_per_batch(self, mock_embedder):
        texts = [f"chunk {i}" for i in range(5)]

        vectors = await embed_in_batches(mock_embedder, texts, batch_size=2)

        assert len(vectors) == 5
        assert [len(call.args[0]) for call in mock_embedder.generate_batch.call_args_list] == [
            2,
            2,
            1,
        ]


class TestIngestPdf:
    """Tests for ingest_pdf."""

    @pytest.mark.asyncio
    async def test_ingest_pdf(self, sample_pdf, database, mock_embedder):
        vector_store = MagicMock()
        vector_store.upsert = AsyncMock(return_value=["Chunks/0"])

        result = await ingest_pdf(
            sample_pdf, database, mock_embedder, vector_store, party="PLN", url="https://tse.go.cr"
        )

        document = database.create_document.call_args.args[0]
        assert document.title == "PLN"
        assert document.party == "PLN"
        assert document.page_count == 2
        assert document.source == "TSE"
        assert result.chunk_count == 1
        assert result.document.id == "Documents/generated"

        vectors = vector_store.upsert.call_args.args[0]
        assert vectors[0].id == "Chunks/0"
        assert vectors[0].metadata == {
            "party": "PLN",
            "title": "PLN",
            "documentId": "Documents/generated",
            "chunkIndex": 0,
            "pageNumber": 1,
        }
        assert "Seguridad ciudadana" in vectors[0].content

    @pytest.mark.asyncio
    async def test_explicit_document_id(self, sample_pdf, database, mock_embedder):
        vector_store = MagicMock()
        vector_store.upsert = AsyncMock()

        result = await ingest_pdf(
            sample_pdf,
            database,
            mock_embedder,
            vector_store,
            title="Partidos y candidatos",
            document_id="partidos-candidatos-2026",
        )

        assert result.document.id == "partidos-candidatos-2026"
        chunk = database.create_chunks.call_args.args[0][0]
        assert chunk.metadata == {"title": "Partidos y candidatos"}

    @pytest.mark.asyncio
    async def test_failure_removes_document(self, sample_pdf, database, mock_embedder):
        vector_store = MagicMock()
        vector_store.upsert = AsyncMock(side_effect=ProviderError("down", provider="RavenDB"))

        with pytest.raises(ProviderError):
            await ingest_pdf(sample_pdf, database, mock_embedder, vector_store)

        database.delete_document.assert_awaited_once_with("Documents/generated")

    @pytest.mark.asyncio
    async def test_failed_rollback_keeps_original_error(
        self, sample_pdf, database, mock_embedder
    ):
        vector_store = MagicMock()
        vector_store.upsert = AsyncMock(side_effect=ProviderError("down", provider="RavenDB"))
        database.delete_document.side_effect = RuntimeError("session closed")

        with pytest.raises(ProviderError, match="down"):
            await ingest_pdf(sample_pdf, database, mock_embedder, vector_store)

        database.delete_document.assert_awaited_once_with("Documents/generated")

    @pytest.mark.asyncio
    async def test_empty_pdf_is_rejected(self, tmp_path, database, mock_embedder):
        path = tmp_path / "vacio.pdf"
        doc = fitz.open()
        doc.new_page()
        doc.save(path)
        doc.close()

        with pytest.raises(ValueError, match="No text could be extracted"):
            await ingest_pdf(path, database, mock_embedder, MagicMock())

        database.create_document.assert_not_called()
