"""
Exception package exposing domain errors.
"""

from ncm_search.core.exceptions.auth import AuthenticationError
from ncm_search.core.exceptions.embeddings import (
    BatchEmbeddingError,
    EmbeddingError,
    EmbeddingProviderError,
    EmbeddingValidationError,
)
from ncm_search.core.exceptions.nomenclature import (
    NomenclatureError,
    NomenclatureNotFoundError,
    NomenclatureValidationError,
)
from ncm_search.core.exceptions.search import IndexQueryError, InvalidQueryError, SearchError

__all__ = [
    "AuthenticationError",
    "BatchEmbeddingError",
    "EmbeddingError",
    "EmbeddingProviderError",
    "EmbeddingValidationError",
    "IndexQueryError",
    "InvalidQueryError",
    "NomenclatureError",
    "NomenclatureNotFoundError",
    "NomenclatureValidationError",
    "SearchError",
]
