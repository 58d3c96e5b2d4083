import os

# settings are read at import time, so the environment must be ready first
os.environ.setdefault("DB_USER", "ncm")
os.environ.setdefault("DB_PASSWORD", "ncm")
os.environ.setdefault("DB_HOST", "localhost")
os.environ.setdefault("DB_PORT", "5432")
os.environ.setdefault("DB_NAME", "ncm_test")
os.environ.setdefault("DB_RUN_MIGRATIONS", "0")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret-with-at-least-thirty-two-bytes")
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio
import math

import pytest

from ncm_search.config import EmbeddingSettings, LexicalWeights, SearchSettings
from ncm_search.core.exceptions.search import IndexQueryError
from ncm_search.models.db.nomenclature import NomenclatureEntry
from ncm_search.models.search import ScoredEntry
from ncm_search.repositories.base import NomenclatureIndex
from ncm_search.services.embedding_builder import TextNormalizer
from ncm_search.services.embedding_generator import EmbeddingGenerator
from ncm_search.services.lexical_scorer import LexicalScorer
from ncm_search.services.search_engine import NcmSearchEngine
from ncm_search.services.vectorizer import Vectorizer
from ncm_search.utils.ncm_codes import chapter_of, code_digits, section_of

DIMENSION = 4


def make_entry(code: str, description: str, embedding: list[float] | None = None) -> NomenclatureEntry:
    return NomenclatureEntry(
        code=code,
        description=description,
        section=section_of(code),
        chapter=chapter_of(code),
        embedding=embedding,
    )


class FakeVectorizer(Vectorizer):
    """
    Deterministic vectorizer: known texts map to fixed vectors, others to a
    vector derived from their characters.
    """

    def __init__(self, vectors: dict[str, list[float]] | None = None, dimension: int = DIMENSION) -> None:
        self.vectors = vectors or {}
        self._dimension = dimension
        self.calls: list[list[str]] = []
        self.error: Exception | None = None
        self.fail_when = None
        self.delay_seconds = 0.0

    @property
    def model_name(self) -> str:
        return "fake-embedding"

    @property
    def dimension(self) -> int:
        return self._dimension

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        if self.fail_when is not None and self.fail_when(texts):
            raise RuntimeError("upstream rejected the chunk")
        return [self.vector_for(text) for text in texts]

    def vector_for(self, text: str) -> list[float]:
        if text in self.vectors:
            return list(self.vectors[text])
        checksum = float(sum(ord(character) for character in text) % 997)
        return [float(len(text)), checksum, 1.0, 0.0][:self._dimension]


class InMemoryNomenclatureIndex(NomenclatureIndex):
    """
    Nomenclature index over a list of entries, scoring by cosine similarity.
    """

    def __init__(self, entries: list[NomenclatureEntry] | None = None) -> None:
        self.entries = list(entries or [])
        self.vector_error: Exception | None = None
        self.lexical_error: Exception | None = None
        self.vector_delay_seconds = 0.0
        self.vector_calls = 0
        self.lexical_calls: list[tuple[list[str], str | None]] = []
        self._normalizer = TextNormalizer()
        self._scorer = LexicalScorer(weights=LexicalWeights())

    async def search_by_vector(
            self,
            embedding: list[float],
            limit: int,
            threshold: float | None = None,
    ) -> list[ScoredEntry]:
        self.vector_calls += 1
        if self.vector_delay_seconds:
            await asyncio.sleep(self.vector_delay_seconds)
        if self.vector_error is not None:
            raise self.vector_error

        scored = [
            ScoredEntry(entry=entry, score=max(0.0, min(1.0, cosine(embedding, entry.embedding))))
            for entry in self.entries
            if entry.embedding is not None
        ]
        scored.sort(key=lambda item: item.score, reverse=True)
        scored = scored[:limit]
        if threshold is not None:
            scored = [item for item in scored if item.score >= threshold]
        return scored

    async def find_lexical_candidates(
            self,
            text: str,
            terms: list[str],
            code_prefix: str | None,
            limit: int,
    ) -> list[NomenclatureEntry]:
        self.lexical_calls.append((list(terms), code_prefix))
        if self.lexical_error is not None:
            raise self.lexical_error

        matches = []
        for entry in self.entries:
            description = self._normalizer.fold(value=entry.description)
            if any(term in description for term in terms):
                matches.append(entry)
            elif code_prefix and code_digits(entry.code).startswith(code_prefix):
                matches.append(entry)
        # strongest matches first, as the database orders them before its limit
        matches.sort(key=lambda entry: (-self._scorer.score(query_text=text, entry=entry), entry.code))
        return matches[:limit]


def cosine(left: list[float], right: list[float]) -> float:
    dot = sum(a * b for a, b in zip(left, right))
    norm = math.sqrt(sum(a * a for a in left)) * math.sqrt(sum(b * b for b in right))
    return dot / norm if norm else 0.0


@pytest.fixture
def embedding_settings() -> EmbeddingSettings:
    return EmbeddingSettings(
        backend="openai",
        model_name="fake-embedding",
        dimension=DIMENSION,
        api_key="test-key",
        chunk_size=500,
        max_concurrency=2,
        request_timeout_seconds=1,
        batch_timeout_seconds=1,
    )


@pytest.fixture
def search_settings() -> SearchSettings:
    return SearchSettings(
        default_limit=10,
        max_limit=50,
        default_threshold=0.5,
        index_timeout_seconds=1,
        lexical_candidate_limit=200,
        metric="cosine",
        lexical=LexicalWeights(),
    )


@pytest.fixture
def nomenclature_entries() -> list[NomenclatureEntry]:
    return [
        make_entry("8471.30.12", "Portable computers", [0.95, 0.31, 0.0, 0.0]),
        make_entry("8471.30.19", "Other portable computers", [0.9, 0.43, 0.0, 0.0]),
        make_entry("8471.41.00", "Other automatic data processing machines", [0.3, 0.0, 0.95, 0.0]),
        make_entry("8528.72.00", "Television receivers, colour", [0.0, 0.0, 0.0, 1.0]),
        make_entry("0901.11.10", "Coffee, not roasted, in grain", [0.0, 1.0, 0.0, 0.0]),
        make_entry("6403.99.90", "Footwear with outer soles of rubber and uppers of leather", None),
    ]


@pytest.fixture
def fake_vectorizer() -> FakeVectorizer:
    return FakeVectorizer(vectors={"laptop": [1.0, 0.0, 0.0, 0.0]})


@pytest.fixture
def index(nomenclature_entries) -> InMemoryNomenclatureIndex:
    return InMemoryNomenclatureIndex(entries=nomenclature_entries)


@pytest.fixture
def embedding_generator(fake_vectorizer, embedding_settings) -> EmbeddingGenerator:
    return EmbeddingGenerator(vectorizer=fake_vectorizer, settings=embedding_settings)


@pytest.fixture
def search_engine(index, embedding_generator, search_settings) -> NcmSearchEngine:
    return NcmSearchEngine(index=index, embedding_generator=embedding_generator, settings=search_settings)


@pytest.fixture
def unavailable_index_error() -> IndexQueryError:
    return IndexQueryError(detail="connection refused")
