from typing import TYPE_CHECKING

from fastapi.exceptions import HTTPException

if TYPE_CHECKING:
    from ncm_search.models.embedding_batch import EmbeddingBatch

"""
Custom HTTP exceptions for embedding workflows.
"""


class EmbeddingError(HTTPException):
    """
    Base class for embedding-related HTTP errors.
    """


class EmbeddingValidationError(EmbeddingError):
    """
    Raised when embedding requests fail validation rules.
    """

    def __init__(self, detail: str = "Embedding request is invalid.") -> None:
        super().__init__(status_code=400, detail=detail)


class EmbeddingProviderError(EmbeddingError):
    """
    Raised when the upstream embedding model call fails, times out,
    or returns an empty or malformed response.
    """

    def __init__(self, detail: str = "Embedding provider request failed.") -> None:
        super().__init__(status_code=502, detail=detail)


class BatchEmbeddingError(EmbeddingProviderError):
    """
    Raised when one or more chunks of a batch embedding call fail.

    The batch keeps vectors of successful chunks at their original
    positions so that a retry can target the failed chunks only.
    """

    def __init__(self, batch: "EmbeddingBatch") -> None:
        self.batch = batch
        failed = ", ".join(str(chunk.index) for chunk in batch.failed_chunks)
        super().__init__(
            detail=(
                f"Embedding failed for {len(batch.failed_chunks)} of {len(batch.chunks)} chunks "
                f"(chunks: {failed})."
            )
        )

    @property
    def failed_chunk_indexes(self) -> list[int]:
        return [chunk.index for chunk in self.batch.failed_chunks]
