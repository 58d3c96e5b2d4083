import asyncio
import math

from ncm_search.config import SearchSettings
from ncm_search.core.exceptions.search import IndexQueryError, InvalidQueryError
from ncm_search.models.outcome import Outcome
from ncm_search.models.search import MatchType, ScoredEntry, SearchQuery, SearchResult
from ncm_search.repositories.base import NomenclatureIndex
from ncm_search.services.embedding_builder import QueryTextBuilder
from ncm_search.services.embedding_generator import EmbeddingGenerator
from ncm_search.services.lexical_scorer import LexicalScorer
from ncm_search.services.query_expander import QueryExpander
from ncm_search.utils.logger import logger
from ncm_search.utils.ncm_codes import is_code_query


class NcmSearchEngine:
    """
    Rank nomenclature entries for a free-text product description.

    Semantic retrieval embeds the query and asks the similarity index for the
    nearest entries; lexical retrieval matches the raw text against
    descriptions and codes. Both result sets are merged by code, sorted by
    descending score with ties broken by ascending code, and truncated to the
    requested limit.

    Embedding and index failures never fail a request: the engine logs them
    and answers with whatever lexical matches it has. Only malformed queries
    raise, as ``InvalidQueryError``.
    """

    def __init__(
            self,
            index: NomenclatureIndex,
            embedding_generator: EmbeddingGenerator,
            settings: SearchSettings,
            scorer: LexicalScorer | None = None,
            query_builder: QueryTextBuilder | None = None,
            expander: QueryExpander | None = None,
    ) -> None:
        self._index = index
        self._embedding_generator = embedding_generator
        self._scorer = scorer or LexicalScorer(weights=settings.lexical)
        self._query_builder = query_builder or QueryTextBuilder()
        self._expander = expander
        self._default_limit = settings.default_limit
        self._max_limit = max(1, settings.max_limit)
        self._default_threshold = settings.default_threshold
        self._index_timeout_seconds = settings.index_timeout_seconds
        self._lexical_candidate_limit = max(1, settings.lexical_candidate_limit)

    async def search(self, query: SearchQuery) -> list[SearchResult]:
        """
        Search the nomenclature for a product description or code fragment.

        Code-like queries are answered from exact and prefix code matches when
        any exist; semantic scoring is only consulted when they find nothing.
        An expanded query feeds the embedding and a second lexical pass;
        ``skip_expansion`` keeps the raw text for both.

        :param query: caller-supplied text, limit and threshold.
        :return: ranked results, possibly empty.
        :raises InvalidQueryError: for blank text or malformed limit/threshold.
        """

        text, limit, threshold = self._validate(query=query)

        if is_code_query(text):
            lexical = await self._lexical_matches(text=text)
            if lexical:
                return self._merge(semantic=[], lexical=lexical, limit=limit)
            _, embedding = await self._embed_query(text=text, skip_expansion=True)
        else:
            (semantic_text, embedding), lexical = await asyncio.gather(
                self._embed_query(text=text, skip_expansion=query.skip_expansion),
                self._lexical_matches(text=text),
            )
            if semantic_text != text:
                # expanded wording is matched lexically too
                lexical = lexical + await self._lexical_matches(text=semantic_text)

        semantic = await self._semantic_matches(embedding=embedding, limit=limit, threshold=threshold)
        results = self._merge(semantic=semantic, lexical=lexical, limit=limit)
        logger.info(
            f"NCM search returned {len(results)} results "
            f"({len(semantic)} semantic, {len(lexical)} lexical candidates)"
        )
        return results

    async def rank_with_embedding(
            self,
            query: SearchQuery,
            embedding: Outcome[list[float]],
    ) -> list[SearchResult]:
        """
        Rank a query whose embedding was computed ahead of time.

        Used by batch workflows that embed many descriptions in one call. A
        failed outcome degrades to lexical matches exactly as ``search`` does.

        :param query: caller-supplied text, limit and threshold.
        :param embedding: precomputed query embedding or the error that prevented it.
        :return: ranked results, possibly empty.
        """

        text, limit, threshold = self._validate(query=query)
        lexical = await self._lexical_matches(text=text)
        if lexical and is_code_query(text):
            return self._merge(semantic=[], lexical=lexical, limit=limit)

        semantic = await self._semantic_matches(embedding=embedding, limit=limit, threshold=threshold)
        return self._merge(semantic=semantic, lexical=lexical, limit=limit)

    async def prepare_semantic_texts(self, texts: list[str]) -> list[str]:
        """
        Turn raw descriptions into the texts embedded for semantic retrieval.

        :param texts: product descriptions in item order.
        :return: expanded and prefixed texts aligned with ``texts``; blank for blank input.
        """

        cleaned = [text.strip() for text in texts]
        if self._expander is not None:
            cleaned = await self._expander.expand_many(queries=cleaned)
        return [self._query_builder.build_query(user_input=text) for text in cleaned]

    def _validate(self, query: SearchQuery) -> tuple[str, int, float]:
        if not isinstance(query.text, str) or not query.text.strip():
            raise InvalidQueryError(detail="Query text must not be empty.")

        limit = query.limit
        if limit is None:
            limit = self._default_limit
        elif isinstance(limit, bool) or not isinstance(limit, int):
            raise InvalidQueryError(detail="Limit must be an integer.")

        threshold = query.threshold
        if threshold is None:
            threshold = self._default_threshold
        elif isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or not math.isfinite(threshold):
            raise InvalidQueryError(detail="Threshold must be a number between 0 and 1.")

        bounded_limit = min(max(limit, 1), self._max_limit)
        bounded_threshold = min(max(float(threshold), 0.0), 1.0)
        return query.text.strip(), bounded_limit, bounded_threshold

    async def _embed_query(self, text: str, skip_expansion: bool) -> tuple[str, Outcome[list[float]]]:
        semantic_text = text
        if self._expander is not None and not skip_expansion:
            semantic_text = await self._expander.expand(query=text)

        outcome = await self._embedding_generator.try_embed(
            text=self._query_builder.build_query(user_input=semantic_text)
        )
        if not outcome.ok:
            logger.warning(f"Query embedding unavailable, continuing with lexical matches: {outcome.error}")
        return semantic_text, outcome

    async def _semantic_matches(
            self,
            embedding: Outcome[list[float]],
            limit: int,
            threshold: float,
    ) -> list[ScoredEntry]:
        if not embedding.ok or not embedding.value:
            return []

        try:
            matches = await self._with_index_timeout(
                self._index.search_by_vector(embedding=embedding.value, limit=limit, threshold=threshold)
            )
        except IndexQueryError as exc:
            logger.warning(f"Similarity index unavailable, continuing with lexical matches: {exc.detail}")
            return []
        return [match for match in matches if match.score >= threshold]

    async def _lexical_matches(self, text: str) -> list[ScoredEntry]:
        terms = self._scorer.retrieval_terms(query_text=text)
        code_prefix = self._scorer.code_prefix(query_text=text)
        try:
            candidates = await self._with_index_timeout(
                self._index.find_lexical_candidates(
                    text=self._scorer.fold(query_text=text),
                    terms=terms,
                    code_prefix=code_prefix,
                    limit=self._lexical_candidate_limit,
                )
            )
        except IndexQueryError as exc:
            logger.warning(f"Lexical lookup failed: {exc.detail}")
            return []
        return self._scorer.rank(query_text=text, candidates=candidates)

    async def _with_index_timeout(self, awaitable):
        try:
            if self._index_timeout_seconds > 0:
                return await asyncio.wait_for(awaitable, timeout=self._index_timeout_seconds)
            return await awaitable
        except asyncio.TimeoutError as exc:
            raise IndexQueryError(
                detail=f"Index query exceeded {self._index_timeout_seconds:.1f}s."
            ) from exc

    @staticmethod
    def _merge(semantic: list[ScoredEntry], lexical: list[ScoredEntry], limit: int) -> list[SearchResult]:
        merged: dict[str, SearchResult] = {}
        for match in semantic:
            score = min(max(match.score, 0.0), 1.0)
            existing = merged.get(match.entry.code)
            if existing is None or score > existing.score:
                merged[match.entry.code] = SearchResult(entry=match.entry, score=score, match_type=MatchType.semantic)

        for match in lexical:
            score = min(max(match.score, 0.0), 1.0)
            existing = merged.get(match.entry.code)
            if existing is None:
                merged[match.entry.code] = SearchResult(entry=match.entry, score=score, match_type=MatchType.lexical)
            elif score > existing.score:
                # found both ways: keep the better score, semantic evidence wins the tag
                existing.score = score

        ranked = sorted(merged.values(), key=lambda result: (-result.score, result.code))
        return ranked[:limit]
