import asyncio
from abc import ABC, abstractmethod

from ncm_search.models.dto.nomenclature import NomenclatureSeedDTO
from ncm_search.utils.logger import logger


class BaseNomenclatureParser(ABC):
    """
    Base parser turning external nomenclature datasets into seed rows.

    Subclasses name their sources and parse one source at a time; a source
    that fails to parse is logged and skipped.
    """

    def __init__(self) -> None:
        self._parser_name = self.__class__.__name__

    def run(self) -> list[NomenclatureSeedDTO]:
        """
        Execute the parsing lifecycle and return seed rows.

        :return: list of parsed entries
        """

        logger.info(f"[{self._parser_name}] Starting parsing process")

        sources = self.discover_sources()
        logger.info(f"[{self._parser_name}] Discovered {len(sources)} sources to parse")
        if not sources:
            logger.warning(f"[{self._parser_name}] No sources found, returning empty list")
            return []

        entries: list[NomenclatureSeedDTO] = []
        for idx, source in enumerate(sources, start=1):
            logger.info(f"[{self._parser_name}] Parsing source {idx}/{len(sources)}: {source}")
            try:
                parsed = self.parse_source(source=source)
            except (OSError, ValueError) as e:
                logger.error(f"[{self._parser_name}] Failed to parse source {idx}: {e}")
                continue
            entries.extend(parsed)
            logger.debug(f"[{self._parser_name}] Extracted {len(parsed)} entries")

        logger.info(f"[{self._parser_name}] Parsing completed: {len(entries)} total entries extracted")
        return entries

    async def run_async(self) -> list[NomenclatureSeedDTO]:
        """
        Async wrapper for running the parser in a worker thread.

        :return: list of parsed entries
        """

        return await asyncio.to_thread(self.run)

    @abstractmethod
    def discover_sources(self) -> list[str]:
        """
        Discover source paths or identifiers to parse.

        :return: list of sources for parsing
        """

    @abstractmethod
    def parse_source(self, source: str) -> list[NomenclatureSeedDTO]:
        """
        Parse nomenclature entries from a source.

        :param source: source path or identifier
        :return: parsed entries from the source
        """

    @staticmethod
    def normalize_text(value: str | None) -> str:
        """
        Normalize text by collapsing whitespace and trimming.

        :param value: raw text
        :return: cleaned text
        """

        if not value:
            return ""
        return " ".join(value.split()).strip()
