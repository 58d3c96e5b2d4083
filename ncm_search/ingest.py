"""
Command line loader for the nomenclature dataset.

Usage::

    python -m ncm_search.ingest data/ncm_nomenclator.csv
    python -m ncm_search.ingest data/ncm_nomenclator.csv --embed-missing
"""

import argparse
import asyncio

from ncm_search.config import settings
from ncm_search.core.database import SessionLocal, engine
from ncm_search.core.dependencies.search import get_embedding_generator
from ncm_search.core.migrations import run_migrations_async
from ncm_search.parsers.csv_dataset import NomenclatureCsvParser
from ncm_search.repositories.nomenclature_repository import NomenclatureRepository
from ncm_search.services.embedding_builder import NomenclatureDocumentBuilder, QueryTextBuilder
from ncm_search.services.nomenclature_service import NomenclatureService
from ncm_search.utils.logger import logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Load the NCM nomenclature dataset and embed its descriptions.")
    parser.add_argument("path", help="CSV file or directory of CSV files")
    parser.add_argument(
        "--embed-missing",
        action="store_true",
        help="after seeding, embed every stored entry that still has no vector",
    )
    return parser


async def ingest(path: str, embed_missing: bool = False) -> int:
    """
    Parse the dataset and seed it into storage.

    :param path: CSV file or directory.
    :param embed_missing: also complete entries lacking embeddings.
    :return: process exit code.
    """

    entries = await NomenclatureCsvParser(path=path).run_async()
    if not entries:
        logger.error(f"No nomenclature entries found in {path}")
        return 1

    if settings.database.run_migrations:
        await run_migrations_async()

    try:
        async with SessionLocal() as session:
            service = NomenclatureService(
                repository=NomenclatureRepository(session=session, metric=settings.search.metric),
                embedding_generator=get_embedding_generator(),
                document_builder=NomenclatureDocumentBuilder(passage_prefix=settings.embedding.passage_prefix),
                query_builder=QueryTextBuilder(query_prefix=settings.embedding.query_prefix),
            )
            report = await service.seed(entries=entries)
            logger.info(
                f"Inserted {report.inserted}, existing {report.skipped_existing}, "
                f"invalid {report.skipped_invalid}, duplicates {report.skipped_duplicates}"
            )
            if report.pending_embedding:
                logger.warning(f"{len(report.pending_embedding)} inserted entries are waiting for an embedding")

            if embed_missing:
                embedded = await service.embed_missing()
                logger.info(f"Embedded {embedded} entries that had no vector")
    finally:
        await engine.dispose()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(ingest(path=args.path, embed_missing=args.embed_missing))


if __name__ == "__main__":
    raise SystemExit(main())
