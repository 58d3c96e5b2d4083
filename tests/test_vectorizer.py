from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from ncm_search.config import EmbeddingSettings
from ncm_search.services.vectorizer import (
    OpenAIVectorizer,
    SentenceTransformerVectorizer,
    create_vectorizer,
)


def openai_client(items: list[tuple[int, list[float]]]) -> MagicMock:
    client = MagicMock()
    client.embeddings.create = AsyncMock(
        return_value=SimpleNamespace(
            data=[SimpleNamespace(index=index, embedding=embedding) for index, embedding in items]
        )
    )
    return client


class TestOpenAIVectorizer:
    """OpenAI embeddings backend."""

    async def test_vectors_follow_input_order_not_response_order(self):
        client = openai_client([(1, [0.0, 1.0]), (0, [1.0, 0.0])])
        vectorizer = OpenAIVectorizer(model_name="text-embedding-3-small", dimension=2, api_key="", client=client)

        vectors = await vectorizer.embed_texts(["first", "second"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        client.embeddings.create.assert_awaited_once_with(
            model="text-embedding-3-small",
            input=["first", "second"],
        )

    async def test_dimension_mismatch_is_rejected(self):
        client = openai_client([(0, [1.0, 0.0, 0.0])])
        vectorizer = OpenAIVectorizer(model_name="m", dimension=2, api_key="", client=client)

        with pytest.raises(ValueError, match="Unexpected embedding size"):
            await vectorizer.embed_texts(["first"])

    async def test_missing_items_are_rejected(self):
        client = openai_client([(0, [1.0, 0.0])])
        vectorizer = OpenAIVectorizer(model_name="m", dimension=2, api_key="", client=client)

        with pytest.raises(ValueError, match="returned 1 embeddings for 2 texts"):
            await vectorizer.embed_texts(["first", "second"])

    async def test_empty_response_is_rejected(self):
        vectorizer = OpenAIVectorizer(model_name="m", dimension=2, api_key="", client=openai_client([]))

        with pytest.raises(ValueError, match="no embeddings"):
            await vectorizer.embed_texts(["first"])

    async def test_missing_api_key_fails_on_use(self):
        vectorizer = OpenAIVectorizer(model_name="m", dimension=2, api_key="")

        with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
            await vectorizer.embed_texts(["first"])

    async def test_embed_text_trims_and_skips_blank(self):
        client = openai_client([(0, [1.0, 0.0])])
        vectorizer = OpenAIVectorizer(model_name="m", dimension=2, api_key="", client=client)

        assert await vectorizer.embed_text("   ") == []
        assert await vectorizer.embed_text(" mouse ") == [1.0, 0.0]
        client.embeddings.create.assert_awaited_once_with(model="m", input=["mouse"])


class TestVectorizerFactory:
    """Backend selection."""

    def test_openai_backend(self):
        vectorizer = create_vectorizer(EmbeddingSettings(backend="openai", dimension=1536, api_key="k"))

        assert isinstance(vectorizer, OpenAIVectorizer)
        assert vectorizer.dimension == 1536

    def test_local_backend(self):
        vectorizer = create_vectorizer(
            EmbeddingSettings(backend="sentence_transformers", model_name="intfloat/multilingual-e5-small", dimension=384)
        )

        assert isinstance(vectorizer, SentenceTransformerVectorizer)
        assert vectorizer.model_name == "intfloat/multilingual-e5-small"

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unsupported embedding backend"):
            create_vectorizer(EmbeddingSettings(backend="word2vec"))
