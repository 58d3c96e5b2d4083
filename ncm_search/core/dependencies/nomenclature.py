from fastapi import Depends

from ncm_search.config import settings
from ncm_search.core.dependencies.search import get_embedding_generator, get_nomenclature_repository
from ncm_search.repositories.nomenclature_repository import NomenclatureRepository
from ncm_search.services.embedding_builder import NomenclatureDocumentBuilder, QueryTextBuilder
from ncm_search.services.embedding_generator import EmbeddingGenerator
from ncm_search.services.nomenclature_service import NomenclatureService


async def get_nomenclature_service(
        repository: NomenclatureRepository = Depends(get_nomenclature_repository),
        embedding_generator: EmbeddingGenerator = Depends(get_embedding_generator),
) -> NomenclatureService:
    """
    Provide service coordinating seeding, embedding refresh and corrections.
    """

    return NomenclatureService(
        repository=repository,
        embedding_generator=embedding_generator,
        document_builder=NomenclatureDocumentBuilder(passage_prefix=settings.embedding.passage_prefix),
        query_builder=QueryTextBuilder(query_prefix=settings.embedding.query_prefix),
    )
