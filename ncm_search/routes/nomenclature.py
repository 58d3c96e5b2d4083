from fastapi import APIRouter, Depends

from ncm_search.core.dependencies.auth import get_current_user
from ncm_search.core.dependencies.nomenclature import get_nomenclature_service
from ncm_search.models.dto.nomenclature import (
    NomenclatureCorrectionDTO,
    NomenclatureEntryDTO,
    NomenclatureSeedRequestDTO,
    SeedReportDTO,
)
from ncm_search.services.nomenclature_service import NomenclatureService

router = APIRouter(prefix="/nomenclature", tags=["Nomenclature"], dependencies=[Depends(get_current_user)])


@router.post("/seed", summary="Bulk load nomenclature entries", response_model=SeedReportDTO)
async def seed_nomenclature(
        payload: NomenclatureSeedRequestDTO,
        nomenclature_service: NomenclatureService = Depends(get_nomenclature_service),
) -> SeedReportDTO:
    """
    Load dataset rows, leaving already stored codes untouched.

    New entries are embedded before insertion. Entries whose embedding chunk
    failed are stored without a vector and listed as pending so a later
    ``/embeddings/nomenclature/missing`` call can complete them.

    :param payload: dataset rows.
    :param nomenclature_service: service normalizing, embedding and inserting rows.
    :return: counts of inserted and skipped rows.
    """

    return await nomenclature_service.seed(entries=payload.entries)


@router.get("/{code}", summary="Get nomenclature entry", response_model=NomenclatureEntryDTO)
async def get_entry(
        code: str,
        nomenclature_service: NomenclatureService = Depends(get_nomenclature_service),
) -> NomenclatureEntryDTO:
    return await nomenclature_service.get_entry(code=code)


@router.patch("/{code}", summary="Correct nomenclature entry", response_model=NomenclatureEntryDTO)
async def correct_entry(
        code: str,
        payload: NomenclatureCorrectionDTO,
        nomenclature_service: NomenclatureService = Depends(get_nomenclature_service),
) -> NomenclatureEntryDTO:
    """
    Apply an administrative correction to an entry.

    A changed description is re-embedded before the update is written; if
    the embedding provider fails, the correction is refused with 502.

    :param code: tariff code of the entry.
    :param payload: description and/or notes to change.
    :param nomenclature_service: service validating and persisting the correction.
    :return: corrected entry.
    """

    return await nomenclature_service.correct_entry(code=code, correction=payload)
