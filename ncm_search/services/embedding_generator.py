import asyncio

from ncm_search.config import EmbeddingSettings
from ncm_search.core.exceptions.embeddings import BatchEmbeddingError, EmbeddingError, EmbeddingProviderError
from ncm_search.models.embedding_batch import EmbeddingBatch, EmbeddingChunk
from ncm_search.models.outcome import Outcome
from ncm_search.services.vectorizer import Vectorizer
from ncm_search.utils.logger import logger


class EmbeddingGenerator:
    """
    Turn text into vectors through the configured vectorizer.

    Single calls are bounded by a request timeout. Batch calls are split into
    ordered chunks, run with bounded concurrency and tracked per chunk so
    failed chunks can be retried without re-embedding the rest.
    """

    def __init__(self, vectorizer: Vectorizer, settings: EmbeddingSettings) -> None:
        self._vectorizer = vectorizer
        self._chunk_size = max(1, settings.chunk_size)
        self._max_concurrency = max(1, settings.max_concurrency)
        self._request_timeout_seconds = settings.request_timeout_seconds
        self._batch_timeout_seconds = settings.batch_timeout_seconds

    @property
    def model_name(self) -> str:
        return self._vectorizer.model_name

    async def embed(self, text: str) -> list[float]:
        """
        Embed a single text.

        Blank input yields an empty vector without an upstream call.

        :param text: text to embed.
        :return: embedding vector.
        :raises EmbeddingProviderError: when the model call fails, times out
            or returns a malformed response.
        """

        cleaned = text.strip()
        if not cleaned:
            return []

        vectors = await self._call_vectorizer(texts=[cleaned], timeout=self._request_timeout_seconds)
        if len(vectors) != 1 or not vectors[0]:
            raise EmbeddingProviderError(detail="Embedding provider returned an empty embedding.")
        return vectors[0]

    async def try_embed(self, text: str) -> Outcome[list[float]]:
        """
        Embed a single text, reporting provider failures as a failed outcome.
        """

        try:
            return Outcome.success(await self.embed(text=text))
        except EmbeddingProviderError as exc:
            return Outcome.failure(exc)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """
        Embed texts in chunks, returning vectors in input order.

        Blank texts map to empty vectors and are not sent upstream.

        :param texts: ordered texts to embed.
        :return: one vector per text, positionally aligned with ``texts``.
        :raises BatchEmbeddingError: when any chunk fails; the error carries
            the batch with vectors of the successful chunks in place.
        """

        if not texts:
            return []

        batch = EmbeddingBatch.plan(texts=texts, chunk_size=self._chunk_size)
        await self._run_chunks(chunks=batch.chunks)
        return self._finish(batch=batch)

    async def retry_failed(self, batch: EmbeddingBatch) -> list[list[float]]:
        """
        Re-run only the failed chunks of a previous batch call.

        :param batch: batch taken from a ``BatchEmbeddingError``.
        :return: complete vectors in input order.
        :raises BatchEmbeddingError: when chunks still fail.
        """

        failed = batch.failed_chunks
        for chunk in failed:
            chunk.vectors = None
            chunk.error = None

        logger.info(f"Retrying {len(failed)} failed embedding chunks")
        await self._run_chunks(chunks=failed)
        return self._finish(batch=batch)

    async def _run_chunks(self, chunks: list[EmbeddingChunk]) -> None:
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def run(chunk: EmbeddingChunk) -> None:
            async with semaphore:
                await self._embed_chunk(chunk=chunk)

        await asyncio.gather(*(run(chunk) for chunk in chunks))

    async def _embed_chunk(self, chunk: EmbeddingChunk) -> None:
        positions = [position for position, text in enumerate(chunk.texts) if text.strip()]
        vectors: list[list[float]] = [[] for _ in chunk.texts]
        if not positions:
            chunk.vectors = vectors
            return

        try:
            embedded = await self._call_vectorizer(
                texts=[chunk.texts[position].strip() for position in positions],
                timeout=self._batch_timeout_seconds,
            )
            if len(embedded) != len(positions):
                raise EmbeddingProviderError(
                    detail=f"Embedding provider returned {len(embedded)} vectors for {len(positions)} texts."
                )
        except EmbeddingProviderError as exc:
            logger.warning(
                f"Embedding chunk {chunk.index} ({chunk.start}..{chunk.end - 1}) failed: {exc.detail}"
            )
            chunk.error = exc
            return

        for position, vector in zip(positions, embedded, strict=True):
            vectors[position] = vector
        chunk.vectors = vectors

    async def _call_vectorizer(self, texts: list[str], timeout: float) -> list[list[float]]:
        try:
            if timeout > 0:
                return await asyncio.wait_for(self._vectorizer.embed_texts(texts=texts), timeout=timeout)
            return await self._vectorizer.embed_texts(texts=texts)
        except asyncio.TimeoutError as exc:
            raise EmbeddingProviderError(
                detail=f"Embedding provider did not respond within {timeout:.1f}s."
            ) from exc
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingProviderError(
                detail=f"Embedding provider request failed: {exc}"
            ) from exc

    @staticmethod
    def _finish(batch: EmbeddingBatch) -> list[list[float]]:
        if not batch.is_complete:
            raise BatchEmbeddingError(batch=batch)
        return batch.vectors()
