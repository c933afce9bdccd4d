"""
Tests for core text and record helpers.
"""

from core.utils import (
    collapse_whitespace,
    fold_accents,
    resolve_path,
    slugify,
    split_camel_case,
    split_csv,
    title_case,
    tokenize_words,
)
from discovery.models import CatalogItem


class TestText:

    def test_collapse_whitespace(self):
        """Test whitespace collapsing."""
        assert collapse_whitespace("  a \t b\n c ") == "a b c"

    def test_tokenize_words(self):
        """Test word tokenising."""
        assert tokenize_words("Men's Leather-Bag") == ["men", "s", "leather", "bag"]
        assert tokenize_words(None) == []

    def test_split_camel_case(self):
        """Test camelCase splitting."""
        assert split_camel_case("NewIn") == "New In"

    def test_title_case(self):
        """Test title casing."""
        assert title_case("OFF white") == "Off White"

    def test_slugify(self):
        """Test slug generation."""
        assert slugify("Off White") == "off-white"
        assert slugify(" EU 38 ") == "eu-38"
        assert slugify("28/30") == "28-30"
        assert slugify("A & B!") == "a-b"

    def test_accents_fold_before_slugging(self):
        """Test that accented letters survive as their base letters."""
        assert fold_accents("Hermès") == "Hermes"
        assert slugify("Chloé") == "chloe"
        assert slugify("Crème Brûlée") == "creme-brulee"


class TestSplitCsv:

    def test_strings_and_lists(self):
        """Test splitting strings and lists."""
        assert split_csv("red, blue,,") == ["red", "blue"]
        assert split_csv(["red,blue", "green"]) == ["red", "blue", "green"]
        assert split_csv(None) == []

    def test_non_strings_are_kept_for_validation(self):
        """Test that non-strings are kept for later validation."""
        assert split_csv(["red", 3]) == ["red", 3]
        assert split_csv(5) == [5]


class TestResolvePath:

    def test_dict_fan_out(self):
        """Test path resolution through lists of dicts."""
        record = {"refs": [{"id": "a"}, {"id": None}, {"id": "b"}]}

        assert resolve_path(record, "refs.id") == ["a", "b"]

    def test_model_attributes(self):
        """Test path resolution on model attributes."""
        item = CatalogItem(id="i1", categoryRefs=[{"categoryId": "c1"}], tags=["x", "y"])

        assert resolve_path(item, "category_refs.category_id") == ["c1"]
        assert resolve_path(item, "tags") == ["x", "y"]

    def test_missing_path(self):
        """Test that missing paths give no values."""
        assert resolve_path({"a": 1}, "b.c") == []
        assert resolve_path({"a": None}, "a") == []
