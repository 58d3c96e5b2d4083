from dataclasses import dataclass, field


@dataclass
class EmbeddingChunk:
    """
    A contiguous slice of a batch embedding request.

    ``start`` is the position of the first text in the original input.
    """

    index: int
    start: int
    texts: list[str]
    vectors: list[list[float]] | None = None
    error: Exception | None = None

    @property
    def end(self) -> int:
        return self.start + len(self.texts)

    @property
    def succeeded(self) -> bool:
        return self.vectors is not None and self.error is None


@dataclass
class EmbeddingBatch:
    """
    Chunk arena for a batch embedding call, indexed by original position.
    """

    size: int
    chunks: list[EmbeddingChunk] = field(default_factory=list)

    @classmethod
    def plan(cls, texts: list[str], chunk_size: int) -> "EmbeddingBatch":
        """
        Split texts into ordered chunks of at most ``chunk_size`` items.
        """

        if chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {chunk_size}.")

        chunks = [
            EmbeddingChunk(index=index, start=start, texts=texts[start:start + chunk_size])
            for index, start in enumerate(range(0, len(texts), chunk_size))
        ]
        return cls(size=len(texts), chunks=chunks)

    @property
    def failed_chunks(self) -> list[EmbeddingChunk]:
        return [chunk for chunk in self.chunks if not chunk.succeeded]

    @property
    def is_complete(self) -> bool:
        return not self.failed_chunks

    def partial_vectors(self) -> list[list[float] | None]:
        """
        Return vectors at their original positions, ``None`` where a chunk failed.
        """

        vectors: list[list[float] | None] = [None] * self.size
        for chunk in self.chunks:
            if not chunk.succeeded:
                continue
            vectors[chunk.start:chunk.end] = chunk.vectors
        return vectors

    def vectors(self) -> list[list[float]]:
        """
        Return all vectors in input order.

        :raises RuntimeError: when any chunk has not succeeded.
        """

        if not self.is_complete:
            raise RuntimeError("Embedding batch has failed chunks; vectors are incomplete.")
        return [vector for vector in self.partial_vectors() if vector is not None]
