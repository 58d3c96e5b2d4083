import csv
from pathlib import Path

from ncm_search.models.dto.nomenclature import NomenclatureSeedDTO
from ncm_search.parsers.base import BaseNomenclatureParser
from ncm_search.utils.logger import logger

REQUIRED_COLUMNS = ("ncm_code",)


class NomenclatureCsvParser(BaseNomenclatureParser):
    """
    Parser for the NCM nomenclature CSV export.

    Expected columns: ``ncm_code``, ``description``, ``full_description``,
    ``chapter`` and ``aec``. The full description is preferred because it
    carries the parent headings; the AEC rate is kept as a note.
    A directory path is parsed file by file in name order.
    """

    def __init__(self, path: str | Path, encoding: str = "utf-8-sig") -> None:
        super().__init__()
        self._path = Path(path)
        self._encoding = encoding

    def discover_sources(self) -> list[str]:
        if self._path.is_dir():
            return [str(path) for path in sorted(self._path.glob("*.csv"))]
        if self._path.is_file():
            return [str(self._path)]
        logger.warning(f"[{self._parser_name}] Dataset path {self._path} does not exist")
        return []

    def parse_source(self, source: str) -> list[NomenclatureSeedDTO]:
        with open(source, newline="", encoding=self._encoding) as handle:
            reader = csv.DictReader(handle)
            columns = reader.fieldnames or []
            missing = [column for column in REQUIRED_COLUMNS if column not in columns]
            if missing or not {"description", "full_description"} & set(columns):
                raise ValueError(f"{source} lacks required columns (ncm_code and a description column)")

            entries: list[NomenclatureSeedDTO] = []
            for row in reader:
                entry = self._parse_row(row=row)
                if entry is not None:
                    entries.append(entry)
            return entries

    def _parse_row(self, row: dict[str, str | None]) -> NomenclatureSeedDTO | None:
        code = self.normalize_text(row.get("ncm_code"))
        description = self.normalize_text(row.get("full_description")) or self.normalize_text(row.get("description"))
        if not code or not description:
            return None

        aec = self.normalize_text(row.get("aec"))
        return NomenclatureSeedDTO(
            code=code,
            description=description,
            chapter=self.normalize_text(row.get("chapter")) or None,
            notes=f"AEC: {aec}" if aec else None,
        )
