from ncm_search.core.exceptions.embeddings import (
    BatchEmbeddingError,
    EmbeddingProviderError,
    EmbeddingValidationError,
)
from ncm_search.core.exceptions.nomenclature import NomenclatureNotFoundError, NomenclatureValidationError
from ncm_search.models.db.nomenclature import NomenclatureEntry
from ncm_search.models.dto.embeddings import NomenclatureVectorizeResultDTO
from ncm_search.models.dto.nomenclature import (
    NomenclatureCorrectionDTO,
    NomenclatureEntryDTO,
    NomenclatureSeedDTO,
    SeedReportDTO,
)
from ncm_search.repositories.nomenclature_repository import NomenclatureRepository
from ncm_search.services.embedding_builder import NomenclatureDocumentBuilder, QueryTextBuilder, TextNormalizer
from ncm_search.services.embedding_generator import EmbeddingGenerator
from ncm_search.utils.logger import logger
from ncm_search.utils.ncm_codes import chapter_of, is_code_query, normalize_code, section_of

# keeps a single INSERT well below the driver's bind parameter limit
INSERT_BATCH_SIZE = 500


class NomenclatureService:
    """
    Maintenance workflows for the nomenclature table: bulk seeding,
    embedding refresh and administrative corrections.
    """

    def __init__(
            self,
            repository: NomenclatureRepository,
            embedding_generator: EmbeddingGenerator,
            document_builder: NomenclatureDocumentBuilder,
            query_builder: QueryTextBuilder,
    ) -> None:
        self._repository = repository
        self._embedding_generator = embedding_generator
        self._document_builder = document_builder
        self._query_builder = query_builder
        self._normalizer = TextNormalizer()

    async def seed(self, entries: list[NomenclatureSeedDTO]) -> SeedReportDTO:
        """
        Bulk load nomenclature entries.

        Codes already stored are left untouched. New entries are embedded in
        one batch call; entries from failed chunks are still inserted, without
        an embedding, and reported as pending.

        :param entries: dataset rows.
        :return: counts of inserted and skipped rows.
        """

        candidates: list[tuple[str, str, NomenclatureSeedDTO]] = []
        seen: set[str] = set()
        skipped_invalid = 0
        skipped_duplicates = 0
        for entry in entries:
            code = normalize_code(entry.code or "")
            description = self._normalizer.normalize(value=entry.description)
            if not code or not description or not is_code_query(code):
                skipped_invalid += 1
                continue
            if code in seen:
                skipped_duplicates += 1
                continue
            seen.add(code)
            candidates.append((code, description, entry))

        existing = await self._repository.get_existing_codes(codes=[code for code, _, _ in candidates])
        new_entries = [candidate for candidate in candidates if candidate[0] not in existing]
        if not new_entries:
            logger.info(f"Seed skipped: all {len(candidates)} codes are already stored")
            return SeedReportDTO(
                inserted=0,
                skipped_existing=len(existing),
                skipped_invalid=skipped_invalid,
                skipped_duplicates=skipped_duplicates,
            )

        vectors = await self._embed_documents(descriptions=[description for _, description, _ in new_entries])
        rows = [
            self._build_row(code=code, description=description, entry=entry, embedding=vector)
            for (code, description, entry), vector in zip(new_entries, vectors, strict=True)
        ]

        inserted: list[str] = []
        for start in range(0, len(rows), INSERT_BATCH_SIZE):
            inserted.extend(await self._repository.insert_missing(rows=rows[start:start + INSERT_BATCH_SIZE]))

        inserted_codes = set(inserted)
        pending = [row["code"] for row in rows if row["embedding"] is None and row["code"] in inserted_codes]
        report = SeedReportDTO(
            inserted=len(inserted),
            # rows inserted concurrently by another loader count as existing
            skipped_existing=len(existing) + len(rows) - len(inserted),
            skipped_invalid=skipped_invalid,
            skipped_duplicates=skipped_duplicates,
            pending_embedding=pending,
        )
        logger.info(
            f"Seeded {report.inserted} nomenclature entries "
            f"({report.skipped_existing} existing, {len(pending)} pending embedding)"
        )
        return report

    async def embed_missing(self) -> int:
        """
        Embed entries that have no vector yet.

        :return: number of entries that received an embedding.
        """

        entries = await self._repository.list_without_embeddings()
        if not entries:
            logger.info("No nomenclature entries without embeddings")
            return 0

        vectors = await self._embed_documents(descriptions=[entry.description for entry in entries])
        embeddings = {
            entry.code: vector
            for entry, vector in zip(entries, vectors, strict=True)
            if vector
        }
        updated = await self._repository.update_embeddings(
            embeddings=embeddings,
            model_name=self._embedding_generator.model_name,
        )
        if updated < len(entries):
            logger.warning(f"{len(entries) - updated} nomenclature entries still lack embeddings")
        return updated

    async def reembed(self, codes: list[str]) -> NomenclatureVectorizeResultDTO:
        """
        Refresh embeddings for the given codes.

        :param codes: tariff codes to re-embed.
        :return: processed, missing and failed codes.
        """

        normalized = list(dict.fromkeys(normalize_code(code) for code in codes if code and code.strip()))
        if not normalized:
            raise EmbeddingValidationError(detail="Tariff codes are required for vectorization.")

        entries = await self._repository.list_by_codes(codes=normalized)
        if not entries:
            raise NomenclatureNotFoundError(detail="No nomenclature entries found for the provided codes.")

        vectors = await self._embed_documents(descriptions=[entry.description for entry in entries])
        embeddings = {
            entry.code: vector
            for entry, vector in zip(entries, vectors, strict=True)
            if vector
        }
        failed = [entry.code for entry in entries if entry.code not in embeddings]
        if not embeddings:
            raise EmbeddingProviderError(detail="Failed to create embeddings for the provided codes.")

        await self._repository.update_embeddings(
            embeddings=embeddings,
            model_name=self._embedding_generator.model_name,
        )
        found = {entry.code for entry in entries}
        return NomenclatureVectorizeResultDTO(
            processed_codes=[code for code in normalized if code in embeddings],
            missing_codes=[code for code in normalized if code not in found],
            failed_codes=failed,
        )

    async def correct_entry(self, code: str, correction: NomenclatureCorrectionDTO) -> NomenclatureEntryDTO:
        """
        Apply an administrative correction.

        A changed description is embedded before anything is written; when the
        embedding call fails the correction is refused and the entry stays as it was.

        :param code: tariff code of the entry.
        :param correction: fields to change.
        :return: the corrected entry.
        """

        if correction.description is None and correction.notes is None:
            raise NomenclatureValidationError(detail="Nothing to correct: provide description or notes.")

        entry = await self._get_or_raise(code=code)

        if correction.description is not None:
            description = self._normalizer.normalize(value=correction.description)
            if not description:
                raise NomenclatureValidationError(detail="Description must not be empty.")
            if description != entry.description or entry.embedding is None:
                embedding = await self._embedding_generator.embed(
                    text=self._document_builder.build_document(description=description)
                )
                if not embedding:
                    raise EmbeddingProviderError(detail="Embedding provider returned an empty embedding.")
                entry.description = description
                entry.embedding = embedding
                entry.embedding_model = self._embedding_generator.model_name

        if correction.notes is not None:
            entry.notes = correction.notes.strip() or None

        saved = await self._repository.save(entry=entry)
        logger.info(f"Nomenclature entry {saved.code} corrected")
        return saved.to_dto()

    async def get_entry(self, code: str) -> NomenclatureEntryDTO:
        entry = await self._get_or_raise(code=code)
        return entry.to_dto()

    async def vectorize_input(self, user_input: str) -> list[float]:
        """
        Embed a product description the way search queries are embedded.

        :param user_input: free-form product text.
        :return: embedding vector.
        """

        normalized = self._query_builder.build_query(user_input=user_input)
        if not normalized:
            raise EmbeddingValidationError(detail="User input is empty after normalization.")
        return await self._embedding_generator.embed(text=normalized)

    async def _get_or_raise(self, code: str) -> NomenclatureEntry:
        normalized = normalize_code(code)
        entry = await self._repository.get_by_code(code=normalized)
        if entry is None:
            raise NomenclatureNotFoundError(detail=f"Nomenclature entry {normalized} not found.")
        return entry

    async def _embed_documents(self, descriptions: list[str]) -> list[list[float] | None]:
        documents = [self._document_builder.build_document(description=description) for description in descriptions]
        try:
            return list(await self._embedding_generator.embed_batch(texts=documents))
        except BatchEmbeddingError as exc:
            logger.warning(f"Storing partial embeddings: {exc.detail}")
            return exc.batch.partial_vectors()

    def _build_row(
            self,
            code: str,
            description: str,
            entry: NomenclatureSeedDTO,
            embedding: list[float] | None,
    ) -> dict:
        chapter = (entry.chapter or "").strip()
        chapter = chapter.zfill(2) if chapter.isdigit() else chapter_of(code)
        notes = entry.notes.strip() if entry.notes and entry.notes.strip() else None
        return {
            "code": code,
            "description": description,
            "section": section_of(code),
            "chapter": chapter[:2],
            "notes": notes,
            "embedding": embedding or None,
            "embedding_model": self._embedding_generator.model_name if embedding else None,
        }
