import pytest

from ncm_search.utils.ncm_codes import (
    chapter_of,
    code_digits,
    heading_of,
    is_code_query,
    normalize_code,
    section_of,
)


class TestCodeQueries:
    """Detection of code-like query text."""

    @pytest.mark.parametrize("value", ["8471", "8471.30", "84", " 8471.30.12 ", "84713012"])
    def test_code_like_text(self, value):
        assert is_code_query(value)

    @pytest.mark.parametrize("value", ["laptop", "8", "8471 laptop", "a8471", "", ".8471"])
    def test_free_text(self, value):
        assert not is_code_query(value)


class TestCodeParts:
    """Derivation of chapter, heading and section from a code."""

    def test_digits_and_normalization(self):
        assert code_digits("8471.30.12") == "84713012"
        assert normalize_code("84713012") == "8471.30.12"
        assert normalize_code(" 8471.30.12 ") == "8471.30.12"
        assert normalize_code("8471.30") == "8471.30"

    def test_chapter_and_heading(self):
        assert chapter_of("8471.30.12") == "84"
        assert heading_of("8471.30.12") == "8471"
        assert chapter_of("8") == ""

    @pytest.mark.parametrize(
        ("code", "section"),
        [
            ("0101.21.00", "I"),
            ("0901.11.10", "II"),
            ("1501.10.00", "III"),
            ("6403.99.90", "XII"),
            ("8471.30.12", "XVI"),
            ("8528.72.00", "XVI"),
            ("8703.23.10", "XVII"),
            ("9701.10.00", "XXI"),
        ],
    )
    def test_sections(self, code, section):
        assert section_of(code) == section

    def test_reserved_and_unknown_chapters(self):
        assert section_of("7701.00.00") == ""
        assert section_of("0001.00.00") == ""
        assert section_of("98") == ""
        assert section_of("") == ""
