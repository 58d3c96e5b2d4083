from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ncm_search.config import settings
from ncm_search.core.database import get_session
from ncm_search.repositories.nomenclature_repository import NomenclatureRepository
from ncm_search.services.classification_service import ClassificationService
from ncm_search.services.embedding_builder import QueryTextBuilder
from ncm_search.services.embedding_generator import EmbeddingGenerator
from ncm_search.services.lexical_scorer import LexicalScorer
from ncm_search.services.query_expander import QueryExpander
from ncm_search.services.search_engine import NcmSearchEngine
from ncm_search.services.vectorizer import Vectorizer, create_vectorizer


@lru_cache
def get_vectorizer() -> Vectorizer:
    """
    Provide a singleton vectorizer instance for embedding generation.
    """

    return create_vectorizer(settings=settings.embedding)


@lru_cache
def get_embedding_generator() -> EmbeddingGenerator:
    """
    Provide the shared embedding generator wrapping the vectorizer.
    """

    return EmbeddingGenerator(vectorizer=get_vectorizer(), settings=settings.embedding)


@lru_cache
def get_query_expander() -> QueryExpander | None:
    """
    Provide a singleton query expander when enabled in configuration.
    """

    if not settings.expansion.enabled:
        return None
    return QueryExpander(settings=settings.expansion)


async def get_nomenclature_repository(session: AsyncSession = Depends(get_session)) -> NomenclatureRepository:
    """
    Provide nomenclature repository bound to the current session.
    """

    return NomenclatureRepository(session=session, metric=settings.search.metric)


async def get_search_engine(
        repository: NomenclatureRepository = Depends(get_nomenclature_repository),
        embedding_generator: EmbeddingGenerator = Depends(get_embedding_generator),
        expander: QueryExpander | None = Depends(get_query_expander),
) -> NcmSearchEngine:
    """
    Dependency injector for NCM search.
    """

    return NcmSearchEngine(
        index=repository,
        embedding_generator=embedding_generator,
        settings=settings.search,
        scorer=LexicalScorer(weights=settings.search.lexical),
        query_builder=QueryTextBuilder(query_prefix=settings.embedding.query_prefix),
        expander=expander,
    )


async def get_classification_service(
        search_engine: NcmSearchEngine = Depends(get_search_engine),
        embedding_generator: EmbeddingGenerator = Depends(get_embedding_generator),
) -> ClassificationService:
    """
    Dependency injector for invoice item classification.
    """

    return ClassificationService(
        search_engine=search_engine,
        embedding_generator=embedding_generator,
        settings=settings.classification,
    )
