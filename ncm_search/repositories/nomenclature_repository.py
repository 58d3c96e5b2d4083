from sqlalchemy import Select, case, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ncm_search.core.exceptions.search import IndexQueryError
from ncm_search.models.db.nomenclature import NomenclatureEntry
from ncm_search.models.search import ScoredEntry
from ncm_search.repositories.base import NomenclatureIndex


class NomenclatureRepository(NomenclatureIndex):
    """
    Persistence layer for nomenclature entries and their embeddings.
    """

    def __init__(self, session: AsyncSession, metric: str = "cosine") -> None:
        self._session = session
        self._metric = metric

    async def search_by_vector(
            self,
            embedding: list[float],
            limit: int,
            threshold: float | None = None,
    ) -> list[ScoredEntry]:
        """
        Retrieve entries ordered by the configured distance or similarity metric.
        """

        normalized_metric = self._metric.lower()
        if normalized_metric in {"cosine", "cos"}:
            distance = NomenclatureEntry.embedding.cosine_distance(embedding)
            statement = self._nearest(score_expression=distance, limit=limit)
            results = await self._to_results_from_distance(statement=statement)
        elif normalized_metric in {"dot", "inner_product"}:
            negative_product = NomenclatureEntry.embedding.max_inner_product(embedding)
            statement = self._nearest(score_expression=negative_product, limit=limit)
            results = await self._to_results_from_negative_product(statement=statement)
        elif normalized_metric in {"l2", "euclidean"}:
            distance = NomenclatureEntry.embedding.l2_distance(embedding)
            statement = self._nearest(score_expression=distance, limit=limit)
            results = await self._to_results_from_distance(statement=statement, normalize_l2=True)
        else:
            raise ValueError(f"Unsupported search metric '{self._metric}'. Use cosine, dot, or l2.")

        if threshold is None:
            return results
        return [result for result in results if result.score >= threshold]

    async def find_lexical_candidates(
            self,
            text: str,
            terms: list[str],
            code_prefix: str | None,
            limit: int,
    ) -> list[NomenclatureEntry]:
        """
        Fetch lexical candidates, strongest matches first, so the limit never
        cuts an exact or prefix match in favour of a weaker one.
        """

        # terms arrive accent-folded, so compare against the unaccented description
        folded_description = func.lower(func.unaccent(NomenclatureEntry.description))
        term_matches = [folded_description.contains(term, autoescape=True) for term in terms]
        conditions = list(term_matches)
        match_classes = []
        ordering = []

        if code_prefix:
            digits_only = func.replace(NomenclatureEntry.code, ".", "")
            code_match = digits_only.startswith(code_prefix, autoescape=True)
            conditions.append(code_match)
            match_classes.extend([(digits_only == code_prefix, 0), (code_match, 1)])
            # shorter codes cover more of the query digits
            ordering.append(case((code_match, func.length(digits_only)), else_=0))
        if not conditions:
            return []

        if text:
            match_classes.extend(
                [
                    (folded_description == text, 2),
                    (folded_description.startswith(text, autoescape=True), 3),
                    (folded_description.contains(text, autoescape=True), 4),
                ]
            )
        if match_classes:
            ordering.insert(0, case(*match_classes, else_=5))
        if term_matches:
            term_hits = [case((match, 1), else_=0) for match in term_matches]
            ordering.append(sum(term_hits[1:], term_hits[0]).desc())

        statement = (
            select(NomenclatureEntry)
            .where(or_(*conditions))
            .order_by(*ordering, NomenclatureEntry.code)
            .limit(limit)
        )
        result = await self._execute_search(statement=statement)
        return list(result.scalars().all())

    async def get_by_code(self, code: str) -> NomenclatureEntry | None:
        statement = select(NomenclatureEntry).where(NomenclatureEntry.code == code)
        result = await self._session.execute(statement)
        return result.scalar_one_or_none()

    async def list_by_codes(self, codes: list[str]) -> list[NomenclatureEntry]:
        if not codes:
            return []

        statement = (
            select(NomenclatureEntry)
            .where(NomenclatureEntry.code.in_(codes))
            .order_by(NomenclatureEntry.code)
        )
        result = await self._session.execute(statement)
        return list(result.scalars().all())

    async def get_existing_codes(self, codes: list[str]) -> set[str]:
        """
        Fetch codes that are already stored.

        :param codes: codes to check
        :return: subset of codes present in storage
        """

        if not codes:
            return set()

        statement = select(NomenclatureEntry.code).where(NomenclatureEntry.code.in_(codes))
        result = await self._session.execute(statement)
        return set(result.scalars().all())

    async def insert_missing(self, rows: list[dict]) -> list[str]:
        """
        Insert rows, leaving any row whose code already exists untouched.

        :param rows: column mappings for new entries
        :return: codes that were actually inserted
        """

        if not rows:
            return []

        statement = (
            pg_insert(NomenclatureEntry)
            .values(rows)
            .on_conflict_do_nothing(index_elements=[NomenclatureEntry.code])
            .returning(NomenclatureEntry.code)
        )
        result = await self._session.execute(statement)
        await self._session.commit()
        return list(result.scalars().all())

    async def list_without_embeddings(self, limit: int | None = None) -> list[NomenclatureEntry]:
        """
        Fetch entries that are not yet searchable semantically.
        """

        statement: Select[tuple[NomenclatureEntry]] = (
            select(NomenclatureEntry)
            .where(NomenclatureEntry.embedding.is_(None))
            .order_by(NomenclatureEntry.code)
        )
        if limit:
            statement = statement.limit(limit)
        result = await self._session.execute(statement)
        return list(result.scalars().all())

    async def update_embeddings(self, embeddings: dict[str, list[float]], model_name: str) -> int:
        """
        Store fresh embeddings keyed by code.

        :return: number of updated entries
        """

        if not embeddings:
            return 0

        for code, embedding in embeddings.items():
            await self._session.execute(
                update(NomenclatureEntry)
                .where(NomenclatureEntry.code == code)
                .values(embedding=embedding, embedding_model=model_name)
            )
        await self._session.commit()
        return len(embeddings)

    async def save(self, entry: NomenclatureEntry) -> NomenclatureEntry:
        """
        Persist changes made to a loaded entry.
        """

        self._session.add(entry)
        await self._session.commit()
        await self._session.refresh(entry)
        return entry

    async def _execute_search(self, statement: Select):
        try:
            return await self._session.execute(statement)
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise IndexQueryError(detail=f"Nomenclature index query failed: {exc.__class__.__name__}") from exc

    @staticmethod
    def _nearest(score_expression, limit: int) -> Select:
        return (
            select(NomenclatureEntry, score_expression.label("score"))
            .where(NomenclatureEntry.embedding.is_not(None))
            .order_by(score_expression)
            .limit(limit)
        )

    async def _to_results_from_distance(self, statement: Select, normalize_l2: bool = False) -> list[ScoredEntry]:
        result = await self._execute_search(statement=statement)
        results: list[ScoredEntry] = []
        for row in result.all():
            distance_value = float(row[1])
            similarity = 1.0 / (1.0 + distance_value) if normalize_l2 else 1.0 - distance_value
            results.append(ScoredEntry(entry=row[0], score=self._clamp_similarity(value=similarity)))
        return results

    async def _to_results_from_negative_product(self, statement: Select) -> list[ScoredEntry]:
        # pgvector's <#> operator returns the negated inner product
        result = await self._execute_search(statement=statement)
        return [
            ScoredEntry(entry=row[0], score=self._clamp_similarity(value=-float(row[1])))
            for row in result.all()
        ]

    @staticmethod
    def _clamp_similarity(value: float) -> float:
        return max(0.0, min(1.0, value))
