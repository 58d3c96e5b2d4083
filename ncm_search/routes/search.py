from fastapi import APIRouter, Depends, Query

from ncm_search.core.dependencies.auth import get_current_user
from ncm_search.core.dependencies.search import get_search_engine
from ncm_search.models.dto.search import SearchRequestDTO, SearchResultDTO
from ncm_search.models.search import SearchQuery
from ncm_search.services.search_engine import NcmSearchEngine

router = APIRouter(prefix="/ncm", tags=["NCM search"], dependencies=[Depends(get_current_user)])


@router.post("/search", summary="Search NCM codes", response_model=list[SearchResultDTO])
async def search_ncm(
        payload: SearchRequestDTO,
        search_engine: NcmSearchEngine = Depends(get_search_engine),
) -> list[SearchResultDTO]:
    """
    Rank nomenclature entries for a product description or code fragment.

    Semantic matches come from the embedding index and lexical matches from
    description and code lookups; both are merged by code. When the embedding
    provider is unavailable the response holds lexical matches only.

    :param payload: query text with optional limit and similarity threshold.
    :param search_engine: engine combining semantic and lexical retrieval.
    :return: results sorted by descending score.
    """

    results = await search_engine.search(
        query=SearchQuery(
            text=payload.query,
            limit=payload.limit,
            threshold=payload.threshold,
            skip_expansion=payload.skip_expansion,
        )
    )
    return [result.to_dto() for result in results]


@router.get("/search", summary="Search NCM codes by query string", response_model=list[SearchResultDTO])
async def search_ncm_get(
        q: str = Query(..., description="Product description or tariff code fragment"),
        limit: int | None = Query(default=None, description="Maximum number of results"),
        threshold: float | None = Query(default=None, description="Minimum semantic similarity"),
        skip_expansion: bool = Query(default=False, description="Search the raw text without query expansion"),
        search_engine: NcmSearchEngine = Depends(get_search_engine),
) -> list[SearchResultDTO]:
    """
    Query-string variant of the search endpoint for quick lookups.
    """

    results = await search_engine.search(
        query=SearchQuery(text=q, limit=limit, threshold=threshold, skip_expansion=skip_expansion)
    )
    return [result.to_dto() for result in results]
