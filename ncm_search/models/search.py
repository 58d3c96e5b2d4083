from dataclasses import dataclass
from enum import Enum

from ncm_search.models.db.nomenclature import NomenclatureEntry
from ncm_search.models.dto.search import SearchResultDTO


class MatchType(str, Enum):
    semantic = "semantic"
    lexical = "lexical"


@dataclass(frozen=True)
class SearchQuery:
    """
    Caller-supplied search parameters; ``None`` means the configured default.
    """

    text: str
    limit: int | None = None
    threshold: float | None = None
    skip_expansion: bool = False


@dataclass
class ScoredEntry:
    """
    A nomenclature entry paired with a similarity or lexical score.
    """

    entry: NomenclatureEntry
    score: float


@dataclass
class SearchResult:
    """
    A ranked search hit and the retrieval path that produced it.
    """

    entry: NomenclatureEntry
    score: float
    match_type: MatchType

    @property
    def code(self) -> str:
        return self.entry.code

    def to_dto(self) -> SearchResultDTO:
        return SearchResultDTO(
            code=self.entry.code,
            description=self.entry.description,
            section=self.entry.section or "",
            chapter=self.entry.chapter or "",
            score=self.score,
            match_type=self.match_type.value,
        )
