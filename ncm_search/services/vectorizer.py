import asyncio
from abc import ABC, abstractmethod

from openai import AsyncOpenAI
from sentence_transformers import SentenceTransformer

from ncm_search.config import EmbeddingSettings
from ncm_search.utils.logger import logger


class Vectorizer(ABC):
    """
    Abstract interface for turning text into dense vectors.
    """

    @property
    @abstractmethod
    def model_name(self) -> str:
        """
        Return the underlying model identifier.

        :return: Model identifier.
        """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """
        Return the expected embedding dimensionality.

        :return: Embedding dimensionality.
        """

    @abstractmethod
    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings for non-empty texts in one upstream call.

        :param texts: Source texts to encode.
        :return: One vector per text, in input order.
        """

    async def embed_text(self, text: str) -> list[float]:
        """
        Generate an embedding for the provided text.

        The text is trimmed before encoding. Returns an empty list when the
        cleaned content is empty.

        :param text: Source text to encode.
        :return: Embedding vector.
        """

        cleaned = text.strip()
        if not cleaned:
            return []

        vectors = await self.embed_texts(texts=[cleaned])
        if len(vectors) != 1:
            raise ValueError(f"Expected one embedding from '{self.model_name}', got {len(vectors)}.")
        return vectors[0]

    async def warm_up(self) -> None:
        """
        Prepare the backend ahead of traffic; no-op by default.

        :return: None.
        """

    def _validate_vectors(self, vectors: list[list[float]], expected_count: int) -> list[list[float]]:
        if len(vectors) != expected_count:
            raise ValueError(
                f"Model '{self.model_name}' returned {len(vectors)} embeddings for {expected_count} texts."
            )
        for vector in vectors:
            if len(vector) != self.dimension:
                raise ValueError(
                    f"Unexpected embedding size {len(vector)} for model '{self.model_name}', "
                    f"expected {self.dimension}."
                )
        return vectors


class OpenAIVectorizer(Vectorizer):
    """
    Vectorizer backed by the OpenAI embeddings API.

    The client is created on first use so a missing API key surfaces as a
    provider failure rather than a startup crash.
    """

    def __init__(
            self,
            model_name: str,
            dimension: int,
            api_key: str,
            max_retries: int = 2,
            client: AsyncOpenAI | None = None,
    ) -> None:
        self._model_name = model_name
        self._dimension = dimension
        self._api_key = api_key
        self._max_retries = max_retries
        self._client = client

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimension(self) -> int:
        return self._dimension

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        client = self._get_client()
        response = await client.embeddings.create(model=self._model_name, input=texts)
        if not response.data:
            raise ValueError(f"Model '{self._model_name}' returned no embeddings.")

        # items carry their input position; do not rely on response order
        ordered = sorted(response.data, key=lambda item: item.index)
        vectors = [list(item.embedding) for item in ordered]
        return self._validate_vectors(vectors=vectors, expected_count=len(texts))

    async def warm_up(self) -> None:
        if not self._api_key and self._client is None:
            logger.warning(
                "OPENAI_API_KEY is not set; semantic search will fall back to lexical matching."
            )

    def _get_client(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client
        if not self._api_key:
            raise RuntimeError("OPENAI_API_KEY is not configured for the openai embedding backend.")

        self._client = AsyncOpenAI(api_key=self._api_key, max_retries=self._max_retries)
        return self._client


class SentenceTransformerVectorizer(Vectorizer):
    """
    Vectorizer backed by a local sentence-transformers model.

    Intended for offline development; the model dimension must match the
    pgvector column.
    """

    def __init__(self, model_name: str, dimension: int, load_timeout_seconds: float) -> None:
        self._model_name = model_name
        self._dimension = dimension
        self._load_timeout_seconds = load_timeout_seconds
        self._model: SentenceTransformer | None = None
        self._load_lock = asyncio.Lock()

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimension(self) -> int:
        return self._dimension

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        model = await self._ensure_model_loaded()
        embeddings = await asyncio.to_thread(
            model.encode,
            texts,
            normalize_embeddings=True,
            convert_to_numpy=True,
        )
        vectors = [embedding.tolist() for embedding in embeddings]
        return self._validate_vectors(vectors=vectors, expected_count=len(texts))

    async def warm_up(self) -> None:
        """
        Load the embedding model proactively during application startup.

        :return: None.
        """

        await self._ensure_model_loaded()

    async def _ensure_model_loaded(self) -> SentenceTransformer:
        """
        Lazily load the embedding model with timeout protection.

        :return: Loaded embedding model.
        """

        if self._model:
            return self._model

        async with self._load_lock:
            if self._model:
                return self._model

            logger.info(
                f"Loading embedding model '{self._model_name}' with timeout {self._load_timeout_seconds:.1f}s"
            )
            load_task = asyncio.to_thread(SentenceTransformer, self._model_name)
            try:
                if self._load_timeout_seconds > 0:
                    model = await asyncio.wait_for(load_task, timeout=self._load_timeout_seconds)
                else:
                    model = await load_task
            except asyncio.TimeoutError as exc:
                raise RuntimeError(
                    f"Timed out while loading embedding model '{self._model_name}'."
                ) from exc

            model_dim = model.get_sentence_embedding_dimension()
            if model_dim is not None and model_dim != self._dimension:
                raise RuntimeError(
                    f"Embedding dimension mismatch: configured {self._dimension} but model "
                    f"'{self._model_name}' reports {model_dim}. Adjust EMBEDDING_DIM and rerun "
                    "migrations so the pgvector column matches the model."
                )

            self._model = model
            logger.info(
                f"Embedding model '{self._model_name}' loaded successfully with dimension {self._dimension}"
            )
            return model


def create_vectorizer(settings: EmbeddingSettings) -> Vectorizer:
    """
    Build the vectorizer selected by ``EMBEDDING_BACKEND``.

    :param settings: embedding configuration.
    :return: configured vectorizer.
    """

    backend = settings.backend.strip().lower()
    if backend == "openai":
        return OpenAIVectorizer(
            model_name=settings.model_name,
            dimension=settings.dimension,
            api_key=settings.api_key,
            max_retries=settings.max_retries,
        )
    if backend in {"sentence_transformers", "local"}:
        return SentenceTransformerVectorizer(
            model_name=settings.model_name,
            dimension=settings.dimension,
            load_timeout_seconds=settings.load_timeout_seconds,
        )

    raise ValueError(f"Unsupported embedding backend '{settings.backend}'. Use openai or sentence_transformers.")
