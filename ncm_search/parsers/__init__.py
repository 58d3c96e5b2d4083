from ncm_search.parsers.base import BaseNomenclatureParser
from ncm_search.parsers.csv_dataset import NomenclatureCsvParser

__all__ = ["BaseNomenclatureParser", "NomenclatureCsvParser"]
