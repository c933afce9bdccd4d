"""
Tests for sort specification building.
"""

import pytest

from discovery.sort_builder import (
    AVAILABLE_SORT_OPTIONS,
    SORT_OPTIONS,
    SortBuilder,
    build_sort_spec,
    normalize_sort_key,
)


@pytest.fixture
def builder(settings):
    return SortBuilder(settings)


class TestSortBuilder:

    def test_default_is_latest(self, builder):
        """Test that no sort key means latest."""
        spec = builder.build(None)

        assert spec.key == "latest"
        assert spec.fields == [("created_at", -1)]
        assert spec.to_dict() == {"created_at": -1}

    def test_price_ascending_with_tiebreak(self, builder):
        """Test price ascending with the created_at tiebreak."""
        spec = builder.build("price_asc")

        assert spec.fields == [("price", 1), ("created_at", -1)]

    def test_unknown_key_falls_back(self, builder):
        """Test that unknown keys fall back to latest."""
        spec = builder.build("cheapest_first")

        assert spec.key == "latest"
        assert spec.fields == [("created_at", -1)]

    def test_created_at_tiebreak_is_appended(self, builder):
        """Test that created_at is appended as a tiebreak."""
        assert builder.build("bestselling").fields == [
            ("sold_count", -1), ("views", -1), ("created_at", -1),
        ]
        assert builder.build("a_to_z").fields == [("name", 1), ("created_at", -1)]

    def test_relevance_with_term(self, builder):
        """Test relevance sorting with a search term."""
        spec = builder.build("relevance", "leather tote")

        assert spec.text_score is True
        assert spec.fields[0] == ("text_score", -1)

    def test_relevance_without_term_is_latest(self, builder):
        """Relevance without a term degrades to latest."""
        spec = builder.build("relevance", "   ")

        assert spec.key == "latest"
        assert spec.text_score is False

    def test_random_sample(self, builder, settings):
        """Test the random sample spec."""
        spec = builder.build("random")

        assert spec.random is True
        assert spec.sample_size == settings.random_sample_size
        assert spec.fields == []

    def test_camel_case_keys(self, builder):
        """Test camelCase sort keys."""
        assert builder.build("createdAt_asc").fields == [("created_at", 1)]
        assert builder.build(" PRICE_DESC ").key == "price_desc"

    def test_every_option_ends_with_created_at(self, builder):
        """Every ordered spec should end on created_at."""
        for key in SORT_OPTIONS:
            assert any(field == "created_at" for field, _ in builder.build(key).fields), key

    def test_available_options(self, builder):
        """Test the UI sort options."""
        options = builder.available_options()

        assert [o.value for o in options] == [value for value, _ in AVAILABLE_SORT_OPTIONS]
        assert all(SortBuilder.is_valid(o.value) for o in options)

    def test_is_valid(self):
        """Test sort key validation."""
        assert SortBuilder.is_valid("random")
        assert not SortBuilder.is_valid("cheapest_first")

    def test_normalize_sort_key(self):
        """Test sort key normalisation edge cases."""
        assert normalize_sort_key("") == "latest"
        assert normalize_sort_key(5) == "latest"
        assert normalize_sort_key("createdAt_desc") == "created_at_desc"

    @pytest.mark.parametrize("raw", ["price_asc", "priceAsc", "price-asc", "PRICE_ASC", " Price Asc "])
    def test_separator_and_case_variants(self, builder, raw):
        """Test that camelCase, hyphenated and spaced keys map to the same sort."""
        assert normalize_sort_key(raw) == "price_asc"
        assert builder.build(raw).key == "price_asc"

    def test_module_shortcut(self):
        """Test the build_sort_spec module shortcut."""
        assert build_sort_spec("price_desc").fields == [("price", -1), ("created_at", -1)]
