import re
import unicodedata

_TOKEN_PATTERN = re.compile(r"[0-9a-z]+")


class TextNormalizer:
    """
    Lightweight normalizer for free-form text.
    """

    def normalize(self, value: str | None) -> str:
        """
        Collapse whitespace and trim surrounding spaces.
        """

        if not value:
            return ""
        return " ".join(value.split()).strip()

    def fold(self, value: str | None) -> str:
        """
        Lowercase, strip accents and collapse whitespace for comparisons.
        """

        cleaned = self.normalize(value=value).lower()
        decomposed = unicodedata.normalize("NFKD", cleaned)
        return "".join(character for character in decomposed if not unicodedata.combining(character))

    def tokens(self, value: str | None, min_length: int = 1) -> list[str]:
        """
        Split folded text into alphanumeric tokens, keeping first occurrences in order.
        """

        seen: set[str] = set()
        tokens: list[str] = []
        for token in _TOKEN_PATTERN.findall(self.fold(value=value)):
            if len(token) < min_length or token in seen:
                continue
            seen.add(token)
            tokens.append(token)
        return tokens

    @staticmethod
    def retrieval_term(token: str) -> str:
        """
        Trim plural endings so a substring lookup for "machines" also finds "machine".
        """

        if len(token) > 5 and token.endswith("es"):
            return token[:-2]
        if len(token) > 4 and token.endswith("s") and not token.endswith("ss"):
            return token[:-1]
        return token

    @staticmethod
    def tokens_match(left: str, right: str) -> bool:
        """
        Treat tokens as equal when one extends the other by a plural-sized suffix.
        """

        if left == right:
            return True
        shorter, longer = sorted((left, right), key=len)
        return len(shorter) >= 4 and len(longer) - len(shorter) <= 2 and longer.startswith(shorter)


class NomenclatureDocumentBuilder:
    """
    Compose the text embedded for a nomenclature entry.
    """

    def __init__(self, passage_prefix: str = "", normalizer: TextNormalizer | None = None) -> None:
        self._passage_prefix = passage_prefix
        self._normalizer = normalizer or TextNormalizer()

    def build_document(self, description: str | None) -> str:
        cleaned = self._normalizer.normalize(value=description)
        if not cleaned:
            return ""
        return f"{self._passage_prefix}{cleaned}"


class QueryTextBuilder:
    """
    Prepare product descriptions for embedding queries.
    """

    def __init__(self, query_prefix: str = "", normalizer: TextNormalizer | None = None) -> None:
        self._query_prefix = query_prefix
        self._normalizer = normalizer or TextNormalizer()

    def build_query(self, user_input: str) -> str:
        """
        Normalize and prefix user input according to embedding model expectations.
        """

        cleaned = self._normalizer.normalize(value=user_input)
        if not cleaned:
            return ""
        return f"{self._query_prefix}{cleaned}"
