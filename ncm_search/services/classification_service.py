from ncm_search.config import ClassificationSettings
from ncm_search.core.exceptions.embeddings import BatchEmbeddingError, EmbeddingProviderError
from ncm_search.models.dto.classification import (
    ClassificationSource,
    ConfidenceLevel,
    InvoiceItemDTO,
    ItemClassificationDTO,
)
from ncm_search.models.outcome import Outcome
from ncm_search.models.search import SearchQuery, SearchResult
from ncm_search.services.embedding_generator import EmbeddingGenerator
from ncm_search.services.search_engine import NcmSearchEngine
from ncm_search.utils.logger import logger
from ncm_search.utils.ncm_codes import heading_of, normalize_code


class ClassificationService:
    """
    Assign tariff codes and confidence levels to invoice line items.

    All descriptions are embedded with a single batch call; items whose chunk
    failed are still ranked, lexically.
    """

    def __init__(
            self,
            search_engine: NcmSearchEngine,
            embedding_generator: EmbeddingGenerator,
            settings: ClassificationSettings,
    ) -> None:
        self._search_engine = search_engine
        self._embedding_generator = embedding_generator
        self._high_threshold = settings.high_threshold
        self._medium_threshold = settings.medium_threshold
        self._candidate_limit = max(1, settings.candidate_limit)

    async def classify_items(self, items: list[InvoiceItemDTO]) -> list[ItemClassificationDTO]:
        """
        Classify invoice items in request order.

        :param items: invoice line items.
        :return: one classification per item, aligned with ``items``.
        """

        if not items:
            return []

        descriptions = [item.description.strip() for item in items]
        vectors = await self._embed_descriptions(descriptions=descriptions)

        classifications: list[ItemClassificationDTO] = []
        for index, (item, description) in enumerate(zip(items, descriptions, strict=True)):
            if not description:
                classifications.append(self._unclassified(index=index))
                continue

            vector = vectors[index]
            embedding: Outcome[list[float]] = (
                Outcome.success(vector)
                if vector
                else Outcome.failure(EmbeddingProviderError(detail="No embedding for this item."))
            )
            results = await self._search_engine.rank_with_embedding(
                query=SearchQuery(text=description, limit=self._candidate_limit),
                embedding=embedding,
            )
            classifications.append(self._decide(index=index, item=item, results=results))

        confident = sum(1 for item in classifications if item.confidence == ConfidenceLevel.high)
        logger.info(f"Classified {len(items)} invoice items, {confident} with high confidence")
        return classifications

    async def _embed_descriptions(self, descriptions: list[str]) -> list[list[float] | None]:
        texts = await self._search_engine.prepare_semantic_texts(texts=descriptions)
        try:
            return list(await self._embedding_generator.embed_batch(texts=texts))
        except BatchEmbeddingError as exc:
            logger.warning(f"Classifying failed embedding chunks lexically: {exc.detail}")
            return exc.batch.partial_vectors()

    def _decide(self, index: int, item: InvoiceItemDTO, results: list[SearchResult]) -> ItemClassificationDTO:
        suggested = normalize_code(item.suggested_ncm_code) if item.suggested_ncm_code else None

        if not results:
            if suggested:
                return ItemClassificationDTO(
                    index=index,
                    ncm_code=suggested,
                    confidence=ConfidenceLevel.medium,
                    source=ClassificationSource.suggested,
                )
            return self._unclassified(index=index)

        top = results[0]
        if top.score >= self._medium_threshold:
            level = ConfidenceLevel.high if top.score >= self._high_threshold else ConfidenceLevel.medium
            return self._from_result(index=index, result=top, confidence=level)

        if not suggested:
            return self._from_result(index=index, result=top, confidence=ConfidenceLevel.low)

        # a weak search still backs the suggestion when it lands in the same heading
        heading = heading_of(suggested)
        confirmed = bool(heading) and any(heading_of(result.code) == heading for result in results)
        same_code = next((result for result in results if result.code == suggested), None)
        return ItemClassificationDTO(
            index=index,
            ncm_code=suggested,
            description=same_code.entry.description if same_code else None,
            score=same_code.score if same_code else None,
            confidence=ConfidenceLevel.medium if confirmed else ConfidenceLevel.low,
            source=ClassificationSource.suggested,
        )

    @staticmethod
    def _from_result(index: int, result: SearchResult, confidence: ConfidenceLevel) -> ItemClassificationDTO:
        return ItemClassificationDTO(
            index=index,
            ncm_code=result.code,
            description=result.entry.description,
            score=result.score,
            confidence=confidence,
            source=ClassificationSource(result.match_type.value),
        )

    @staticmethod
    def _unclassified(index: int) -> ItemClassificationDTO:
        return ItemClassificationDTO(
            index=index,
            confidence=ConfidenceLevel.low,
            source=ClassificationSource.unclassified,
        )
