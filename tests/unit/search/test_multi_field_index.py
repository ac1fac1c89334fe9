"""Unit tests for the field-weighted multi-field index."""

import pytest

from catalog_search.config import SearchSettings
from catalog_search.domain.search import SearchFilters
from catalog_search.search.history import SearchHistory
from catalog_search.search.multi_field_index import FieldIndex, MultiFieldIndex


@pytest.mark.unit
class TestFieldIndex:
    def test_prefix_and_infix_terms_match(self):
        index = FieldIndex("name")
        index.add("1", "iPhone 15")

        assert index.candidates(["iph"], 10) == ["1"]
        assert index.candidates(["hone"], 10) == ["1"]
        assert index.candidates(["android"], 10) == []

    def test_exact_term_beats_prefix_match(self):
        index = FieldIndex("name")
        index.add("1", "iphone case")
        index.add("2", "iph")

        assert index.candidates(["iph"], 10) == ["2", "1"]

    def test_single_document_still_matches(self):
        index = FieldIndex("name")
        index.add("1", "iPhone 15 Pro Max")

        assert index.candidates(["iphone"], 10) == ["1"]

    def test_limit_truncates(self):
        index = FieldIndex("tags")
        for doc_id in ("a", "b", "c"):
            index.add(doc_id, "cable")

        assert index.candidates(["cable"], 2) == ["a", "b"]
        assert index.candidates(["cable"], 0) == []

    def test_idf_is_never_negative(self):
        index = FieldIndex("name")
        for doc_id in ("a", "b", "c"):
            index.add(doc_id, "cable")

        assert index.idf("cable") > 0


@pytest.mark.unit
class TestScoring:
    def test_source_score_is_positional_and_weighted(self):
        index = MultiFieldIndex()

        assert index.source_score("name", 0, 4) == pytest.approx(1.0)
        assert index.source_score("description", 2, 4) == pytest.approx(0.25)
        assert index.source_score("tags", 0, 1) == pytest.approx(0.7)
        assert index.source_score("name", 0, 0) == 0.0

    def test_combined_score_boosts_multi_source_matches(self):
        index = MultiFieldIndex()

        assert index.combined_score([1.0, 0.5]) == pytest.approx(0.75 * 1.4)
        assert index.combined_score([0.8] * 5) == pytest.approx(1.6)
        assert index.combined_score([0.8] * 6) == pytest.approx(1.6)
        assert index.combined_score([]) == 0.0

    def test_custom_field_weights(self):
        settings = SearchSettings(field_weights={"name": 2.0})
        index = MultiFieldIndex(settings=settings)

        assert index.source_score("name", 0, 1) == pytest.approx(2.0)


@pytest.mark.unit
class TestMultiFieldIndex:
    def test_multi_field_match_outranks_single_field(self, make_product):
        stand = make_product("x", "Phone Stand", description="Aluminium desk holder", tags=["phone"])
        lamp = make_product("y", "Desk Lamp", description="Works next to your phone")
        index = MultiFieldIndex([stand, lamp])

        results = index.search("phone")

        assert [result.product.id for result in results] == ["x", "y"]
        assert results[0].relevance > results[1].relevance
        assert results[0].matched_fields == ["main", "name", "tags"]
        assert results[1].matched_fields == ["main", "description"]

    def test_field_candidates_per_field(self, catalog):
        index = MultiFieldIndex(catalog)

        candidates = index.field_candidates("samsung", 10)

        assert candidates["main"] == ["2"]
        assert candidates["description"] == ["2"]
        assert candidates["name"] == []
        assert index.field_candidates("   ", 10) == {name: [] for name in candidates}

    def test_specification_values_are_searchable(self, catalog):
        index = MultiFieldIndex(catalog)

        results = index.search("512gb")

        assert [result.product.id for result in results] == ["2"]
        assert "specs" in results[0].matched_fields

    def test_empty_fields_are_not_indexed(self, catalog):
        index = MultiFieldIndex(catalog)

        assert "4" not in index.field_index("tags")
        assert "4" in index.field_index("name")

    def test_blank_query_returns_nothing(self, catalog):
        history = SearchHistory()
        index = MultiFieldIndex(catalog, history=history)

        assert index.search("  ") == []
        assert len(history) == 0

    def test_records_history(self, catalog):
        history = SearchHistory()
        index = MultiFieldIndex(catalog, history=history)

        index.search("Charging", SearchFilters(in_stock=True))

        assert history.recent_queries() == ["charging"]
        assert history.entries()[0].filters == {"in_stock": True}

    def test_filters_and_limit(self, catalog):
        index = MultiFieldIndex(catalog)

        results = index.search("charging", SearchFilters(in_stock=True))
        assert [result.product.id for result in results] == ["5"]

        assert len(index.search("smartphone", SearchFilters(limit=1))) == 1

    def test_results_carry_highlights(self, catalog):
        index = MultiFieldIndex(catalog)

        result = index.search("galaxy")[0]

        assert result.highlights[0].field == "name"
        match = result.highlights[0].matches[0]
        assert result.highlights[0].text[match.start : match.end] == "Galaxy"

    def test_remove_and_update(self, catalog):
        index = MultiFieldIndex(catalog)

        assert index.remove_product("2") is True
        assert index.remove_product("2") is False
        assert index.search("galaxy") == []

        index.update_product(catalog[0].model_copy(update={"name": "Pixel 9 Pro"}))
        assert [result.product.id for result in index.search("pixel")] == ["1"]
        assert index.get_product("1").name == "Pixel 9 Pro"
        assert len(index) == 4

    def test_clear(self, catalog):
        index = MultiFieldIndex(catalog)
        index.clear()

        assert len(index) == 0
        assert index.search("iphone") == []
