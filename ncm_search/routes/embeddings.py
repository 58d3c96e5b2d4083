from fastapi import APIRouter, Depends

from ncm_search.core.dependencies.auth import get_current_user
from ncm_search.core.dependencies.nomenclature import get_nomenclature_service
from ncm_search.core.dependencies.search import get_embedding_generator
from ncm_search.models.dto.embeddings import (
    InputFormDTO,
    NomenclatureVectorizeRequestDTO,
    NomenclatureVectorizeResultDTO,
    VectorDTO,
)
from ncm_search.services.embedding_generator import EmbeddingGenerator
from ncm_search.services.nomenclature_service import NomenclatureService

router = APIRouter(prefix="/embeddings", tags=["Embeddings"], dependencies=[Depends(get_current_user)])


@router.post("/input", summary="Vectorize product description", response_model=VectorDTO)
async def vectorize_input(
        payload: InputFormDTO,
        nomenclature_service: NomenclatureService = Depends(get_nomenclature_service),
        embedding_generator: EmbeddingGenerator = Depends(get_embedding_generator),
) -> VectorDTO:
    """
    Build an embedding vector from a product description.

    The text is normalized and prefixed exactly as search queries are, so the
    vector can be compared with stored nomenclature embeddings.

    :param payload: product description provided by the caller.
    :param nomenclature_service: service preparing input and calling the provider.
    :param embedding_generator: generator whose model name is reported.
    :return: embedding vector and model name.
    """

    embedding = await nomenclature_service.vectorize_input(user_input=payload.input)
    return VectorDTO(embedding=embedding, model=embedding_generator.model_name)


@router.post(
    "/nomenclature",
    summary="Vectorize nomenclature entries by code",
    response_model=NomenclatureVectorizeResultDTO,
)
async def vectorize_nomenclature(
        payload: NomenclatureVectorizeRequestDTO,
        nomenclature_service: NomenclatureService = Depends(get_nomenclature_service),
) -> NomenclatureVectorizeResultDTO:
    """
    Refresh embeddings for specific tariff codes.

    :param payload: codes that must be re-embedded.
    :param nomenclature_service: service handling document preparation and persistence.
    :return: processed, missing and failed codes.
    """

    return await nomenclature_service.reembed(codes=payload.codes)


@router.post(
    "/nomenclature/missing",
    summary="Vectorize entries without embeddings",
    response_model=int,
)
async def vectorize_missing_nomenclature(
        nomenclature_service: NomenclatureService = Depends(get_nomenclature_service),
) -> int:
    """
    Generate embeddings for entries that are not yet searchable semantically.

    :return: count of embeddings written during this invocation.
    """

    return await nomenclature_service.embed_missing()
