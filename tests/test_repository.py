from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from ncm_search.core.exceptions.search import IndexQueryError
from ncm_search.repositories.nomenclature_repository import NomenclatureRepository
from tests.conftest import make_entry


def session_returning(rows) -> AsyncMock:
    session = AsyncMock()
    result = MagicMock()
    result.all.return_value = rows
    session.execute.return_value = result
    return session


class TestSearchByVector:
    """Conversion of pgvector distances into similarity scores."""

    async def test_cosine_distance_becomes_similarity(self):
        entry = make_entry("8471.30.12", "Portable computers")
        repository = NomenclatureRepository(session=session_returning([(entry, 0.25)]), metric="cosine")

        results = await repository.search_by_vector(embedding=[1.0, 0.0, 0.0, 0.0], limit=5)

        assert results[0].entry is entry
        assert results[0].score == pytest.approx(0.75)

    async def test_negative_inner_product(self):
        entry = make_entry("8471.30.12", "Portable computers")
        repository = NomenclatureRepository(session=session_returning([(entry, -0.6)]), metric="dot")

        results = await repository.search_by_vector(embedding=[1.0, 0.0, 0.0, 0.0], limit=5)

        assert results[0].score == pytest.approx(0.6)

    async def test_l2_distance(self):
        entry = make_entry("8471.30.12", "Portable computers")
        repository = NomenclatureRepository(session=session_returning([(entry, 1.0)]), metric="l2")

        results = await repository.search_by_vector(embedding=[1.0, 0.0, 0.0, 0.0], limit=5)

        assert results[0].score == pytest.approx(0.5)

    async def test_scores_are_clamped_and_thresholded(self):
        close = make_entry("8471.30.12", "Portable computers")
        opposite = make_entry("8528.72.00", "Television receivers")
        repository = NomenclatureRepository(
            session=session_returning([(close, -0.1), (opposite, 1.8)]),
            metric="cosine",
        )

        results = await repository.search_by_vector(embedding=[1.0, 0.0, 0.0, 0.0], limit=5, threshold=0.5)

        assert [(result.entry.code, result.score) for result in results] == [("8471.30.12", 1.0)]

    async def test_unsupported_metric(self):
        repository = NomenclatureRepository(session=AsyncMock(), metric="hamming")

        with pytest.raises(ValueError):
            await repository.search_by_vector(embedding=[1.0, 0.0, 0.0, 0.0], limit=5)


class TestIndexFailures:
    """Database errors surface as index errors after a rollback."""

    async def test_vector_query_failure(self):
        session = AsyncMock()
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))
        repository = NomenclatureRepository(session=session)

        with pytest.raises(IndexQueryError) as exc_info:
            await repository.search_by_vector(embedding=[1.0, 0.0, 0.0, 0.0], limit=5)

        assert "OperationalError" in exc_info.value.detail
        session.rollback.assert_awaited_once()

    async def test_lexical_query_failure(self):
        session = AsyncMock()
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))
        repository = NomenclatureRepository(session=session)

        with pytest.raises(IndexQueryError):
            await repository.find_lexical_candidates(
                text="computers", terms=["computer"], code_prefix=None, limit=10
            )

        session.rollback.assert_awaited_once()


class TestLexicalCandidates:
    """Candidates are ordered by match strength before the limit applies."""

    @staticmethod
    async def compiled_query(**kwargs) -> str:
        session = AsyncMock()
        session.execute.return_value = MagicMock()
        repository = NomenclatureRepository(session=session)

        await repository.find_lexical_candidates(**kwargs)

        statement = session.execute.await_args.args[0]
        return str(statement.compile(dialect=postgresql.dialect())).lower()

    async def test_text_query_orders_by_match_class(self):
        sql = await self.compiled_query(text="parts of steel", terms=["part", "steel"], code_prefix=None, limit=3)

        order_by = sql.split("order by", 1)[1]
        assert order_by.strip().startswith("case when")
        assert order_by.index("case when") < order_by.index("ncm_nomenclator.code") < order_by.index("limit")
        assert "unaccent" in sql

    async def test_code_query_orders_shorter_codes_first(self):
        sql = await self.compiled_query(text="84", terms=["84"], code_prefix="84", limit=3)

        order_by = sql.split("order by", 1)[1]
        assert order_by.strip().startswith("case when")
        assert "length(replace(ncm_nomenclator.code" in order_by

    async def test_nothing_to_match(self):
        session = AsyncMock()
        repository = NomenclatureRepository(session=session)

        assert await repository.find_lexical_candidates(text="", terms=[], code_prefix=None, limit=3) == []
        session.execute.assert_not_awaited()
