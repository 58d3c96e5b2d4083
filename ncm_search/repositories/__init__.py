from ncm_search.repositories.base import NomenclatureIndex
from ncm_search.repositories.nomenclature_repository import NomenclatureRepository

__all__ = ["NomenclatureIndex", "NomenclatureRepository"]
