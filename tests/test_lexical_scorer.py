import pytest

from ncm_search.config import LexicalWeights
from ncm_search.services.lexical_scorer import LexicalScorer
from tests.conftest import make_entry


@pytest.fixture
def scorer() -> LexicalScorer:
    return LexicalScorer(weights=LexicalWeights())


class TestCodeScores:
    """Scores for code-like queries."""

    def test_exact_code_scores_highest(self, scorer):
        entry = make_entry("8471.30.12", "Portable computers")

        assert scorer.score("8471.30.12", entry) == pytest.approx(1.0)
        assert scorer.score("84713012", entry) == pytest.approx(1.0)

    def test_longer_prefix_scores_closer_to_exact(self, scorer):
        entry = make_entry("8471.30.12", "Portable computers")

        heading = scorer.score("8471", entry)
        subheading = scorer.score("8471.30", entry)

        assert 0.9 < heading < subheading < 1.0

    def test_non_matching_code(self, scorer):
        assert scorer.score("8528", make_entry("8471.30.12", "Portable computers")) == 0.0


class TestDescriptionScores:
    """Scores for free-text queries against descriptions."""

    def test_match_quality_ordering(self, scorer):
        exact = scorer.score("portable computers", make_entry("8471.30.12", "Portable computers"))
        prefix = scorer.score("portable", make_entry("8471.30.12", "Portable computers"))
        substring = scorer.score("computers", make_entry("8471.30.19", "Other portable computers"))
        overlap = scorer.score("computers portable", make_entry("8471.30.19", "Other portable computers"))

        assert exact == pytest.approx(0.8)
        assert prefix == pytest.approx(0.7)
        assert substring == pytest.approx(0.6)
        assert overlap == pytest.approx(0.5)
        assert exact > prefix > substring > overlap

    def test_accents_and_case_are_ignored(self, scorer):
        entry = make_entry("0901.11.10", "Café sin tostar, en grano")

        assert scorer.score("CAFE", entry) == pytest.approx(0.7)

    def test_partial_token_overlap_is_proportional(self, scorer):
        entry = make_entry("8471.41.00", "Other automatic data processing machines")

        assert scorer.score("processing machine laptop", entry) == pytest.approx(0.5 * 2 / 3)

    def test_no_match(self, scorer):
        assert scorer.score("coffee", make_entry("8471.30.12", "Portable computers")) == 0.0

    def test_weights_are_configurable(self):
        scorer = LexicalScorer(weights=LexicalWeights(description_substring=0.4))

        assert scorer.score("computers", make_entry("8471.30.19", "Other portable computers")) == pytest.approx(0.4)


class TestRetrieval:
    """Terms and code prefix handed to the index."""

    def test_terms_skip_short_tokens_and_trim_plurals(self, scorer):
        assert scorer.retrieval_terms("TV de machines") == ["machin"]

    def test_short_query_falls_back_to_whole_text(self, scorer):
        assert scorer.retrieval_terms("TV") == ["tv"]

    def test_code_prefix(self, scorer):
        assert scorer.code_prefix("8471.30") == "847130"
        assert scorer.code_prefix("laptop") is None

    def test_rank_drops_non_matches(self, scorer):
        candidates = [
            make_entry("8471.30.12", "Portable computers"),
            make_entry("0901.11.10", "Coffee, not roasted"),
        ]

        ranked = scorer.rank("portable", candidates)

        assert [item.entry.code for item in ranked] == ["8471.30.12"]
