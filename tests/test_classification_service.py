import pytest

from ncm_search.config import ClassificationSettings
from ncm_search.models.dto.classification import ClassificationSource, ConfidenceLevel, InvoiceItemDTO
from ncm_search.services.classification_service import ClassificationService
from ncm_search.services.embedding_generator import EmbeddingGenerator


@pytest.fixture
def classification_settings() -> ClassificationSettings:
    return ClassificationSettings(high_threshold=0.85, medium_threshold=0.65, candidate_limit=5)


@pytest.fixture
def classification_service(search_engine, embedding_generator, classification_settings) -> ClassificationService:
    return ClassificationService(
        search_engine=search_engine,
        embedding_generator=embedding_generator,
        settings=classification_settings,
    )


class TestConfidence:
    """Confidence levels derived from the top result."""

    async def test_strong_semantic_match_is_high(self, classification_service, fake_vectorizer):
        results = await classification_service.classify_items([InvoiceItemDTO(description="laptop")])

        assert results[0].ncm_code == "8471.30.12"
        assert results[0].confidence == ConfidenceLevel.high
        assert results[0].source == ClassificationSource.semantic
        assert results[0].description == "Portable computers"
        assert fake_vectorizer.calls == [["laptop"]]

    async def test_medium_band(self, classification_service, fake_vectorizer):
        fake_vectorizer.vectors["grain"] = [0.0, 0.75, 0.0, 0.66]

        results = await classification_service.classify_items([InvoiceItemDTO(description="grain")])

        assert results[0].ncm_code == "0901.11.10"
        assert results[0].confidence == ConfidenceLevel.medium
        assert results[0].source == ClassificationSource.semantic

    async def test_lexical_match_reports_lexical_source(self, classification_service, fake_vectorizer):
        fake_vectorizer.error = RuntimeError("down")

        results = await classification_service.classify_items(
            [InvoiceItemDTO(description="portable computers")]
        )

        assert results[0].ncm_code == "8471.30.12"
        assert results[0].confidence == ConfidenceLevel.medium
        assert results[0].source == ClassificationSource.lexical


class TestSuggestedCodes:
    """Codes proposed upstream when search evidence is weak."""

    async def test_weak_match_in_same_heading_confirms_suggestion(self, classification_service, fake_vectorizer):
        fake_vectorizer.error = RuntimeError("down")

        results = await classification_service.classify_items(
            [InvoiceItemDTO(description="computers", suggested_ncm_code="84713090")]
        )

        assert results[0].ncm_code == "8471.30.90"
        assert results[0].confidence == ConfidenceLevel.medium
        assert results[0].source == ClassificationSource.suggested

    async def test_weak_match_elsewhere_keeps_suggestion_low(self, classification_service, fake_vectorizer):
        fake_vectorizer.error = RuntimeError("down")

        results = await classification_service.classify_items(
            [InvoiceItemDTO(description="computers", suggested_ncm_code="9503.00.99")]
        )

        assert results[0].ncm_code == "9503.00.99"
        assert results[0].confidence == ConfidenceLevel.low
        assert results[0].source == ClassificationSource.suggested

    async def test_no_results_keeps_suggestion_medium(self, classification_service, fake_vectorizer):
        fake_vectorizer.vectors["zzz unknown"] = [0.0, 0.0, -1.0, 0.0]

        results = await classification_service.classify_items(
            [InvoiceItemDTO(description="zzz unknown", suggested_ncm_code="9503.00.99")]
        )

        assert results[0].ncm_code == "9503.00.99"
        assert results[0].confidence == ConfidenceLevel.medium

    async def test_no_results_without_suggestion_is_unclassified(self, classification_service, fake_vectorizer):
        fake_vectorizer.vectors["zzz unknown"] = [0.0, 0.0, -1.0, 0.0]

        results = await classification_service.classify_items([InvoiceItemDTO(description="zzz unknown")])

        assert results[0].ncm_code is None
        assert results[0].confidence == ConfidenceLevel.low
        assert results[0].source == ClassificationSource.unclassified


class TestBatching:
    """One batch embedding call for all items, in item order."""

    async def test_items_keep_request_order(self, classification_service, fake_vectorizer):
        fake_vectorizer.vectors["coffee beans"] = [0.0, 1.0, 0.0, 0.0]

        results = await classification_service.classify_items(
            [
                InvoiceItemDTO(description="coffee beans"),
                InvoiceItemDTO(description="   "),
                InvoiceItemDTO(description="laptop"),
            ]
        )

        assert [result.index for result in results] == [0, 1, 2]
        assert results[0].ncm_code == "0901.11.10"
        assert results[1].source == ClassificationSource.unclassified
        assert results[2].ncm_code == "8471.30.12"
        assert fake_vectorizer.calls == [["coffee beans", "laptop"]]

    async def test_failed_chunks_are_ranked_lexically(
            self,
            search_engine,
            fake_vectorizer,
            embedding_settings,
            classification_settings,
    ):
        fake_vectorizer.fail_when = lambda texts: "portable computers" in texts
        service = ClassificationService(
            search_engine=search_engine,
            embedding_generator=EmbeddingGenerator(
                vectorizer=fake_vectorizer,
                settings=embedding_settings.model_copy(update={"chunk_size": 1}),
            ),
            settings=classification_settings,
        )

        results = await service.classify_items(
            [InvoiceItemDTO(description="laptop"), InvoiceItemDTO(description="portable computers")]
        )

        assert results[0].source == ClassificationSource.semantic
        assert results[1].ncm_code == "8471.30.12"
        assert results[1].source == ClassificationSource.lexical

    async def test_empty_items(self, classification_service):
        assert await classification_service.classify_items([]) == []

