from abc import ABC, abstractmethod

from ncm_search.models.db.nomenclature import NomenclatureEntry
from ncm_search.models.search import ScoredEntry


class NomenclatureIndex(ABC):
    """
    Read-only view over nomenclature entries used by the search path.
    """

    @abstractmethod
    async def search_by_vector(
            self,
            embedding: list[float],
            limit: int,
            threshold: float | None = None,
    ) -> list[ScoredEntry]:
        """
        Return up to ``limit`` entries nearest to ``embedding``, best first.

        :param embedding: query vector.
        :param limit: maximum number of neighbours.
        :param threshold: optional minimum similarity.
        :return: entries with similarity scores in descending order.
        """

    @abstractmethod
    async def find_lexical_candidates(
            self,
            text: str,
            terms: list[str],
            code_prefix: str | None,
            limit: int,
    ) -> list[NomenclatureEntry]:
        """
        Return entries whose description contains any of ``terms``
        (case-insensitive) or whose digits start with ``code_prefix``.

        Candidates are ordered by match strength before ``limit`` applies:
        exact code, code prefix (shorter codes first), exact description,
        description prefix, description substring, then the number of
        matched terms; ties by code.

        :param text: whole query, lowercase and accent-folded.
        :param terms: lowercase, accent-folded search terms.
        :param code_prefix: digits of a code query, or ``None``.
        :param limit: maximum number of candidates.
        :return: unscored candidate entries.
        """
