"""Unit tests for the product analyzer and tokenizer."""

import pytest

from catalog_search.search.analyzers import (
    AnalyzerPipeline,
    LowercaseFilter,
    MinLengthFilter,
    ProductAnalyzer,
    RegexTokenizer,
    get_analyzer,
    tokenize,
)


@pytest.mark.unit
class TestTokenize:
    def test_lowercases_and_splits_on_punctuation(self):
        assert tokenize("iPhone 15 Pro-Max!") == ["iphone", "15", "pro", "max"]

    def test_empty_and_none_return_empty_list(self):
        assert tokenize("") == []
        assert tokenize(None) == []

    def test_whitespace_and_punctuation_only(self):
        assert tokenize("   --- !!! ") == []

    def test_duplicates_and_order_are_kept(self):
        assert tokenize("Cable cable CABLE adapter") == ["cable", "cable", "cable", "adapter"]

    def test_hyphenated_model_numbers_split(self):
        assert tokenize("USB-C") == ["usb", "c"]

    def test_underscore_is_a_word_character(self):
        assert tokenize("usb_c hub") == ["usb_c", "hub"]

    def test_unicode_letters_are_kept(self):
        assert tokenize("Café Crème") == ["café", "crème"]


@pytest.mark.unit
class TestProductAnalyzer:
    def test_tokens_carry_character_offsets(self):
        text = "Wireless Charging Pad"
        tokens = ProductAnalyzer()(text)

        assert [token.text for token in tokens] == ["wireless", "charging", "pad"]
        assert [token.position for token in tokens] == [0, 1, 2]
        for token in tokens:
            assert text[token.start_char : token.end_char].lower() == token.text

    def test_empty_text_returns_empty(self):
        assert ProductAnalyzer()("") == []

    def test_pipeline_renumbers_positions_after_filtering(self):
        def drop_numbers(tokens):
            return (token for token in tokens if not token.text.isdigit())

        pipeline = AnalyzerPipeline(RegexTokenizer(), [LowercaseFilter(), drop_numbers])
        tokens = pipeline("Galaxy S24 2024 Ultra")

        assert [token.text for token in tokens] == ["galaxy", "s24", "ultra"]
        assert [token.position for token in tokens] == [0, 1, 2]

    def test_lowercase_filter_keeps_lowercase_tokens_untouched(self):
        token = next(RegexTokenizer()("cable"))
        assert next(LowercaseFilter()([token])) is token


@pytest.mark.unit
class TestGetAnalyzer:
    @pytest.mark.parametrize("name", [None, "product", "PRODUCT"])
    def test_product_analyzer_names(self, name):
        analyzer = get_analyzer(name)
        assert [token.text for token in analyzer("Pro-Max")] == ["pro", "max"]

    def test_highlight_analyzer_keeps_punctuation_and_drops_short_terms(self):
        analyzer = get_analyzer("highlight")

        assert [token.text for token in analyzer("USB-C  a Cable")] == ["usb-c", "cable"]
        assert [token.position for token in analyzer("USB-C  a Cable")] == [0, 1]

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError, match="Unknown analyzer"):
            get_analyzer("stemming")


@pytest.mark.unit
class TestMinLengthFilter:
    def test_drops_short_tokens(self):
        tokens = MinLengthFilter(3)(RegexTokenizer()("a to the cable"))
        assert [token.text for token in tokens] == ["the", "cable"]
