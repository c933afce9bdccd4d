"""
Tests for the predicate tree.

Covers:
- Leaf evaluation against dicts and models, including list fan-out
- Missing / None fields
- Combinators and flattening helpers
- Mongo-style rendering
"""

from datetime import datetime, timezone

import pytest

from discovery.models import CatalogItem
from discovery.predicates import (
    And,
    Eq,
    Exists,
    In,
    Matches,
    Never,
    Not,
    Or,
    Range,
    conjoin,
    disjoin,
)


@pytest.fixture
def record():
    return {
        "name": "Leather Tote Bag",
        "price": 120.0,
        "gender": "women",
        "category_refs": [{"category_id": "c1"}, {"category_id": "c2"}],
        "colors": [{"name": "Black"}, {"name": "Off-White"}],
        "created_at": datetime(2024, 5, 1),
        "sold_out": None,
    }


class TestLeaves:

    def test_eq(self, record):
        """Test Eq evaluation."""
        assert Eq("gender", "women").evaluate(record)
        assert not Eq("gender", "men").evaluate(record)

    def test_in_fans_out_through_lists(self, record):
        """Test that In reads every value along a list path."""
        assert In("category_refs.category_id", ("c2", "c9")).evaluate(record)
        assert not In("category_refs.category_id", ("c9",)).evaluate(record)

    def test_matches_is_case_insensitive(self, record):
        """Test case-insensitive pattern matching."""
        assert Matches("colors.name", ("off-white",)).evaluate(record)
        assert Matches("name", ("TOTE",)).evaluate(record)
        assert not Matches("name", ("backpack",)).evaluate(record)

    def test_range_bounds_are_inclusive(self, record):
        """Test that Range bounds are inclusive."""
        assert Range("price", gte=120, lte=120).evaluate(record)
        assert not Range("price", gt=120).evaluate(record)

    def test_range_treats_naive_datetimes_as_utc(self, record):
        """Test naive datetimes compared as UTC."""
        since = datetime(2024, 4, 30, tzinfo=timezone.utc)
        assert Range("created_at", gte=since).evaluate(record)

    def test_none_counts_as_missing(self, record):
        """Test that None values count as missing."""
        assert Exists("sold_out", False).evaluate(record)
        assert Exists("price").evaluate(record)
        assert not Eq("sold_out", True).evaluate(record)

    def test_missing_field_never_matches_range(self, record):
        """Test that a missing field never matches a range."""
        assert not Range("stock_quantity", gt=0).evaluate(record)

    def test_never(self, record):
        """Test that Never matches nothing."""
        assert not Never().evaluate(record)

    def test_works_on_models(self):
        """Test evaluation against pydantic models."""
        item = CatalogItem(id="i1", name="Silk Tie", colors=[{"name": "Navy"}], price=40)
        assert Matches("colors.name", ("navy",)).evaluate(item)
        assert Range("price", lte=50).evaluate(item)


class TestCombinators:

    def test_and_or_not(self, record):
        """Test And, Or and Not evaluation."""
        pred = And((Eq("gender", "women"), Or((Eq("price", 1.0), Range("price", gte=100)))))
        assert pred.evaluate(record)
        assert not Not(pred).evaluate(record)

    def test_empty_and_is_true_empty_or_is_false(self, record):
        """Empty And is true; empty Or is false."""
        assert And(()).evaluate(record)
        assert not Or(()).evaluate(record)

    def test_conjoin_flattens_and_skips_none(self):
        """Test that conjoin flattens nested Ands and skips None."""
        a, b, c = Eq("a", 1), Eq("b", 2), Eq("c", 3)
        combined = conjoin([And((a, b)), None, c])
        assert combined == And((a, b, c))

    def test_single_child_is_unwrapped(self):
        """Test that a single child is returned unwrapped."""
        a = Eq("a", 1)
        assert conjoin([a]) is a
        assert disjoin([None, a]) is a

    def test_operators(self, record):
        """Test the &, | and ~ operators."""
        pred = Eq("gender", "women") & ~Eq("price", 5.0)
        assert pred.evaluate(record)
        assert (Eq("gender", "men") | Eq("gender", "women")).evaluate(record)


class TestRendering:

    def test_leaf_rendering(self):
        """Test to_dict for leaf nodes."""
        assert In("gender", ["men"]).to_dict() == {"gender": {"$in": ["men"]}}
        assert Matches("name", ("tote",)).to_dict() == {"name": {"$regex": "tote", "$options": "i"}}
        assert Exists("sold_out", False).to_dict() == {"sold_out": {"$exists": False}}

    def test_multiple_patterns_render_as_alternation(self):
        """Test that several patterns render as one alternation."""
        rendered = Matches("colors.name", ("red", "blue")).to_dict()
        assert rendered == {"colors.name": {"$regex": "(?:red)|(?:blue)", "$options": "i"}}

    def test_range_renders_datetimes_as_iso(self):
        """Test that datetimes render as ISO strings."""
        rendered = Range("created_at", gte=datetime(2024, 1, 1, tzinfo=timezone.utc)).to_dict()
        assert rendered == {"created_at": {"$gte": "2024-01-01T00:00:00+00:00"}}

    def test_never_renders_as_empty_membership(self):
        """Test that Never renders as an empty $in."""
        assert Never().to_dict() == {"_id": {"$in": []}}

    def test_combinators_render(self):
        """Test to_dict for And, Or and Not."""
        pred = And((Eq("active", True), Or((Eq("a", 1), Eq("b", 2)))))
        assert pred.to_dict() == {"$and": [{"active": True}, {"$or": [{"a": 1}, {"b": 2}]}]}
        assert Not(Eq("a", 1)).to_dict() == {"$nor": [{"a": 1}]}
