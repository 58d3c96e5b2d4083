import re

CODE_QUERY_PATTERN = re.compile(r"^\d{2,4}[.\d]*$")

# HS sections as (last chapter, roman numeral); chapter 77 is reserved.
_SECTION_BOUNDS: tuple[tuple[int, str], ...] = (
    (5, "I"),
    (14, "II"),
    (15, "III"),
    (24, "IV"),
    (27, "V"),
    (38, "VI"),
    (40, "VII"),
    (43, "VIII"),
    (46, "IX"),
    (49, "X"),
    (63, "XI"),
    (67, "XII"),
    (70, "XIII"),
    (71, "XIV"),
    (83, "XV"),
    (85, "XVI"),
    (89, "XVII"),
    (92, "XVIII"),
    (93, "XIX"),
    (96, "XX"),
    (97, "XXI"),
)


def is_code_query(value: str) -> bool:
    """
    Tell whether free text is a tariff code or code fragment such as ``8471.30``.
    """

    return bool(CODE_QUERY_PATTERN.match(value.strip()))


def code_digits(code: str) -> str:
    """
    Strip separators from a code, keeping only its digits.
    """

    return "".join(character for character in code if character.isdigit())


def normalize_code(code: str) -> str:
    """
    Normalize a stored code: trims whitespace and formats eight bare digits as ``NNNN.NN.NN``.
    """

    cleaned = "".join(code.split())
    if cleaned.isdigit() and len(cleaned) == 8:
        return f"{cleaned[:4]}.{cleaned[4:6]}.{cleaned[6:]}"
    return cleaned


def chapter_of(code: str) -> str:
    digits = code_digits(code)
    return digits[:2] if len(digits) >= 2 else ""


def section_of(code: str) -> str:
    """
    Resolve the HS section (roman numeral) a code belongs to.

    :param code: tariff code in any separator format.
    :return: roman numeral, or an empty string for unknown chapters.
    """

    chapter = chapter_of(code)
    if not chapter:
        return ""

    chapter_number = int(chapter)
    if chapter_number < 1 or chapter_number == 77:
        return ""

    for last_chapter, numeral in _SECTION_BOUNDS:
        if chapter_number <= last_chapter:
            return numeral
    return ""


def heading_of(code: str) -> str:
    """
    Return the four-digit heading of a code.
    """

    return code_digits(code)[:4]
