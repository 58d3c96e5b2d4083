from fastapi import APIRouter, Depends

from ncm_search.core.dependencies.auth import get_current_user
from ncm_search.core.dependencies.search import get_classification_service
from ncm_search.models.dto.classification import ClassifyRequestDTO, ItemClassificationDTO
from ncm_search.services.classification_service import ClassificationService

router = APIRouter(prefix="/ncm", tags=["Classification"], dependencies=[Depends(get_current_user)])


@router.post("/classify", summary="Classify invoice items", response_model=list[ItemClassificationDTO])
async def classify_items(
        payload: ClassifyRequestDTO,
        classification_service: ClassificationService = Depends(get_classification_service),
) -> list[ItemClassificationDTO]:
    """
    Propose a tariff code and confidence level for each invoice item.

    Descriptions are embedded in one batch; items whose embedding failed are
    ranked lexically. Suggested codes are kept when search evidence is weak.

    :param payload: invoice items in invoice order.
    :param classification_service: service ranking and grading each item.
    :return: one classification per item, in request order.
    """

    return await classification_service.classify_items(items=payload.items)
