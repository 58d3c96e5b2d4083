from ncm_search.config import LexicalWeights
from ncm_search.models.db.nomenclature import NomenclatureEntry
from ncm_search.models.search import ScoredEntry
from ncm_search.services.embedding_builder import TextNormalizer
from ncm_search.utils.ncm_codes import code_digits, is_code_query


class LexicalScorer:
    """
    Deterministic match-quality scoring of nomenclature entries against raw query text.

    Ranking, strongest first: exact code, code prefix, exact description,
    description prefix, description substring, partial token overlap. Each
    kind maps to a configurable weight so lexical hits stay below
    high-confidence semantic similarities.
    """

    def __init__(self, weights: LexicalWeights, normalizer: TextNormalizer | None = None) -> None:
        self._weights = weights
        self._normalizer = normalizer or TextNormalizer()

    def retrieval_terms(self, query_text: str) -> list[str]:
        """
        Build the substring terms used to fetch lexical candidates from storage.

        :param query_text: raw query text.
        :return: folded terms; the whole folded query when no token is long enough.
        """

        terms: list[str] = []
        for token in self._normalizer.tokens(value=query_text, min_length=self._weights.min_token_length):
            term = self._normalizer.retrieval_term(token=token)
            if term not in terms:
                terms.append(term)
        if terms:
            return terms

        folded = self._normalizer.fold(value=query_text)
        return [folded] if folded else []

    def fold(self, query_text: str) -> str:
        return self._normalizer.fold(value=query_text)

    @staticmethod
    def code_prefix(query_text: str) -> str | None:
        """
        Return the digits of a code-like query, or ``None`` for free text.
        """

        if not is_code_query(query_text):
            return None
        return code_digits(query_text) or None

    def score(self, query_text: str, entry: NomenclatureEntry) -> float:
        """
        Score one entry against the query.

        :param query_text: raw query text.
        :param entry: candidate entry.
        :return: score in [0, 1]; ``0.0`` means no lexical match.
        """

        code_score = self._score_code(query_text=query_text, code=entry.code)
        if code_score:
            return code_score
        return self._score_description(query_text=query_text, description=entry.description)

    def rank(self, query_text: str, candidates: list[NomenclatureEntry]) -> list[ScoredEntry]:
        """
        Score candidates, dropping those without any lexical match.
        """

        scored: list[ScoredEntry] = []
        for entry in candidates:
            value = self.score(query_text=query_text, entry=entry)
            if value > 0:
                scored.append(ScoredEntry(entry=entry, score=value))
        return scored

    def _score_code(self, query_text: str, code: str) -> float:
        query_digits = self.code_prefix(query_text=query_text)
        if not query_digits:
            return 0.0

        entry_digits = code_digits(code)
        if not entry_digits:
            return 0.0
        if entry_digits == query_digits:
            return self._weights.code_exact
        if entry_digits.startswith(query_digits):
            # longer matched prefixes sit closer to an exact match
            coverage = len(query_digits) / len(entry_digits)
            bonus = max(0.0, self._weights.code_exact - self._weights.code_prefix) * coverage
            return min(self._weights.code_prefix + bonus, self._weights.code_exact)
        return 0.0

    def _score_description(self, query_text: str, description: str | None) -> float:
        folded_query = self._normalizer.fold(value=query_text)
        folded_description = self._normalizer.fold(value=description)
        if not folded_query or not folded_description:
            return 0.0

        if folded_description == folded_query:
            return self._weights.description_exact
        if folded_description.startswith(folded_query):
            return self._weights.description_prefix
        if folded_query in folded_description:
            return self._weights.description_substring
        return self._score_token_overlap(query_text=query_text, description=description)

    def _score_token_overlap(self, query_text: str, description: str | None) -> float:
        min_length = self._weights.min_token_length
        query_tokens = self._normalizer.tokens(value=query_text, min_length=min_length)
        if not query_tokens:
            return 0.0

        description_tokens = self._normalizer.tokens(value=description, min_length=min_length)
        matched = sum(
            1
            for query_token in query_tokens
            if any(
                self._normalizer.tokens_match(left=query_token, right=description_token)
                for description_token in description_tokens
            )
        )
        return self._weights.token_overlap * matched / len(query_tokens)
