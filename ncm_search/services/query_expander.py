import asyncio
import re

from openai import AsyncOpenAI

from ncm_search.config import QueryExpansionSettings
from ncm_search.utils.logger import logger
from ncm_search.utils.ncm_codes import is_code_query

_SYSTEM_PROMPT = (
    "You are a Mercosur NCM customs classifier. Rewrite product descriptions into the wording "
    "a tariff nomenclature would use for the product category.\n"
    "Rules:\n"
    "- one phrase, at most 12 words\n"
    "- use customs terminology for the category (\"mouse\" -> \"input unit for automatic data "
    "processing machines\")\n"
    "- do not add technical attributes that are not in the text\n"
    "- no lists, synonyms or explanations\n"
    "- answer in the language of the product description"
)

_NUMBERED_LINE = re.compile(r"^\s*(\d+)[.)]\s*(.+?)\s*$")


class QueryExpander:
    """
    Rewrite product descriptions into nomenclature-style phrases with an OpenAI chat model.

    Expansion is best effort: when disabled, on code queries, or on any
    provider failure the original text is returned.
    """

    def __init__(self, settings: QueryExpansionSettings, client: AsyncOpenAI | None = None) -> None:
        self._enabled = settings.enabled
        self._model_name = settings.model_name
        self._api_key = settings.api_key
        self._timeout_seconds = settings.timeout_seconds
        self._max_tokens = settings.max_tokens
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def expand(self, query: str) -> str:
        """
        Expand a single product description.

        :param query: trimmed product description.
        :return: expanded phrase, or ``query`` when expansion is not applied.
        """

        if not self._should_expand(query=query):
            return query

        try:
            content = await self._complete(
                prompt=f"Product: \"{query}\"",
                max_tokens=self._max_tokens,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Query expansion failed, using original text: {exc}")
            return query

        expanded = self._clean(content)
        if not expanded:
            return query

        logger.debug(f"Query expansion: '{query}' -> '{expanded}'")
        return expanded

    async def expand_many(self, queries: list[str]) -> list[str]:
        """
        Expand several descriptions with one model call.

        :param queries: product descriptions in item order.
        :return: expansions aligned with ``queries``; originals where a line is missing.
        """

        if not self._enabled or not queries:
            return list(queries)
        if len(queries) == 1:
            return [await self.expand(query=queries[0])]

        positions = [index for index, query in enumerate(queries) if self._should_expand(query=query)]
        if not positions:
            return list(queries)

        numbered = "\n".join(
            f"{number}. \"{queries[index]}\"" for number, index in enumerate(positions, start=1)
        )
        try:
            content = await self._complete(
                prompt=(
                    "Rewrite each product below. Reply only with the numbered list, one line per product.\n"
                    f"{numbered}"
                ),
                max_tokens=self._max_tokens * len(positions),
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Batch query expansion failed, using original texts: {exc}")
            return list(queries)

        lines: dict[int, str] = {}
        for line in (content or "").splitlines():
            match = _NUMBERED_LINE.match(line)
            if match:
                lines.setdefault(int(match.group(1)), self._clean(match.group(2)))

        expanded = list(queries)
        for number, index in enumerate(positions, start=1):
            if lines.get(number):
                expanded[index] = lines[number]
        logger.info(f"Expanded {len(positions)} product descriptions in one call")
        return expanded

    def _should_expand(self, query: str) -> bool:
        return self._enabled and bool(query.strip()) and not is_code_query(query)

    async def _complete(self, prompt: str, max_tokens: int) -> str:
        client = self._get_client()
        response = await asyncio.wait_for(
            client.chat.completions.create(
                model=self._model_name,
                messages=[
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens,
                temperature=0,
            ),
            timeout=self._timeout_seconds,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    def _get_client(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client
        if not self._api_key:
            raise RuntimeError("OPENAI_API_KEY is not configured for query expansion.")

        self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    @staticmethod
    def _clean(content: str | None) -> str:
        if not content:
            return ""
        first_line = content.strip().splitlines()[0] if content.strip() else ""
        return first_line.strip().strip("\"'“”").strip()
