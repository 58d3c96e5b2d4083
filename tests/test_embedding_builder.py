from ncm_search.services.embedding_builder import NomenclatureDocumentBuilder, QueryTextBuilder, TextNormalizer


class TestTextNormalizer:
    """Whitespace, accent and token handling."""

    def test_normalize_collapses_whitespace(self):
        normalizer = TextNormalizer()

        assert normalizer.normalize("  Portable \n computers  ") == "Portable computers"
        assert normalizer.normalize(None) == ""

    def test_fold_strips_accents_and_case(self):
        assert TextNormalizer().fold("Máquinas  AUTOMÁTICAS") == "maquinas automaticas"

    def test_tokens_are_deduplicated_in_order(self):
        tokens = TextNormalizer().tokens("Café, café y té en grano", min_length=3)

        assert tokens == ["cafe", "grano"]

    def test_retrieval_term_trims_plurals(self):
        assert TextNormalizer.retrieval_term("machines") == "machin"
        assert TextNormalizer.retrieval_term("computers") == "computer"
        assert TextNormalizer.retrieval_term("glass") == "glass"
        assert TextNormalizer.retrieval_term("bus") == "bus"

    def test_tokens_match_allows_plural_suffix(self):
        assert TextNormalizer.tokens_match("computer", "computers")
        assert TextNormalizer.tokens_match("maquinas", "maquina")
        assert not TextNormalizer.tokens_match("car", "cars")
        assert not TextNormalizer.tokens_match("port", "portable")


class TestBuilders:
    """Prefixing of documents and queries."""

    def test_document_prefix(self):
        builder = NomenclatureDocumentBuilder(passage_prefix="passage: ")

        assert builder.build_document("  Coffee,  not roasted ") == "passage: Coffee, not roasted"
        assert builder.build_document("   ") == ""

    def test_query_prefix(self):
        builder = QueryTextBuilder(query_prefix="query: ")

        assert builder.build_query("wireless  mouse") == "query: wireless mouse"
        assert builder.build_query("") == ""
