"""Base classes and protocols for embedding providers."""

import logging
from collections.abc import Sequence
from typing import Protocol

from ticobot.errors import ErrorKind, ProviderError
from ticobot.models import BatchEmbeddingResponse, EmbeddingResponse

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """Protocol defining the interface for embedding providers."""

    async def generate_embedding(self, text: str) -> EmbeddingResponse:
        """Generate the embedding vector for a single text."""
        ...

    async def generate_batch(self, texts: Sequence[str]) -> BatchEmbeddingResponse:
        """Generate embeddings for several texts.

        Returns exactly one vector per input text, in input order.
        """
        ...

    def get_dimension(self) -> int:
        """Length of every vector produced by this provider instance."""
        ...

    def get_max_input_length(self) -> int:
        """Maximum number of tokens accepted per input text."""
        ...

    def get_model_name(self) -> str:
        """Embedding model identifier."""
        ...


class DimensionGuardMixin:
    """Keeps the embedding dimension of a provider instance constant.

    A provider whose dimension is known up front (a documented model, or an
    explicit EMBEDDING_DIMENSIONS setting) is locked and rejects vectors of
    any other length. An unlocked provider adopts the length of the first
    vector it receives and is locked from then on.
    """

    provider_label = ""
    dimension: int = 0
    dimension_locked: bool = False

    def _set_dimension(self, dimension: int, locked: bool) -> None:
        self.dimension = dimension
        self.dimension_locked = locked

    def _check_vectors(self, vectors: list[list[float]], expected_count: int) -> None:
        """Validate vectors returned by the vendor.

        Args:
            vectors: Vectors from the vendor response
            expected_count: Number of input texts

        Raises:
            ProviderError: With kind MALFORMED_RESPONSE on a count mismatch, an
                empty vector, or a length different from the locked dimension
        """
        if len(vectors) != expected_count:
            raise ProviderError(
                f"{self.provider_label} returned {len(vectors)} embeddings for "
                f"{expected_count} inputs",
                ErrorKind.MALFORMED_RESPONSE,
                self.provider_label,
            )

        lengths = {len(vector) for vector in vectors}
        if 0 in lengths or len(lengths) > 1:
            raise ProviderError(
                f"{self.provider_label} returned empty or inconsistent embedding vectors",
                ErrorKind.MALFORMED_RESPONSE,
                self.provider_label,
            )

        length = lengths.pop()
        if length == self.dimension:
            self.dimension_locked = True
            return

        if self.dimension_locked:
            raise ProviderError(
                f"{self.provider_label} returned {length}-dimensional embeddings, "
                f"expected {self.dimension}",
                ErrorKind.MALFORMED_RESPONSE,
                self.provider_label,
            )

        logger.warning(
            f"⚠️ {self.provider_label} embedding dimension is {length}, "
            f"not the default {self.dimension}; set EMBEDDING_DIMENSIONS={length}"
        )
        self._set_dimension(length, locked=True)

    def get_dimension(self) -> int:
        return self.dimension
