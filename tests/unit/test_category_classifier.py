"""
Tests for the rule-based category classifier.
"""

import pytest

from discovery.category_classifier import (
    CategoryClassifier,
    category_match_key,
    classify,
    clean_category_label,
    organize_categories,
)
from discovery.constants.category_rules import CategoryRules
from discovery.exceptions import InvalidFacetValueError
from discovery.models import (
    CategoryClassification,
    CategoryGroup,
    ExcludedClassification,
    SizeClassification,
)


@pytest.fixture
def classifier():
    return CategoryClassifier()


class TestClassify:

    def test_womens_tote_bags(self, classifier):
        """Test that "Women's Tote Bags" lands in women / All Bags with high confidence."""
        result = classifier.classify("Women's Tote Bags")

        assert isinstance(result, CategoryClassification)
        assert result.group == CategoryGroup.WOMEN
        assert result.subcategory == "All Bags"
        assert result.confidence > 0.6
        assert result.cleaned_label == "Women's Tote Bags"

    def test_heels_are_womens_footwear(self, classifier):
        """Test that heels classify as women's footwear."""
        result = classifier.classify("Heels & Wedges")

        assert result.group == CategoryGroup.WOMEN
        assert result.subcategory == "Footwear"

    def test_ties_are_mens_accessories(self, classifier):
        """Test that ties classify as men's accessories."""
        result = classifier.classify("Ties & Cufflinks")

        assert result.group == CategoryGroup.MEN
        assert result.subcategory == "Accessories"

    def test_kids_size_terms_tip_kids_clothing(self, classifier):
        """Kids size terms in the name push the score to kids."""
        result = classifier.classify("Girls 4-5T Dresses")

        assert result.group == CategoryGroup.KIDS
        assert result.subcategory == "Clothing"

    def test_watches_are_accessories(self, classifier):
        """Test that watches classify as accessories."""
        result = classifier.classify("Watches")

        assert result.group == CategoryGroup.ACCESSORIES
        assert result.subcategory == "Watches"

    def test_unknown_name_falls_back_to_accessories(self, classifier):
        """Test the accessories fallback for names nothing scores."""
        result = classifier.classify("Sneakers")

        assert result.group == CategoryGroup.ACCESSORIES
        assert result.confidence == 0.5
        assert result.subcategory is None
        assert result.cleaned_label == "Sneakers"

    def test_women_does_not_score_as_men_pattern(self, classifier):
        """The name "WOMEN" must not trip the word-bounded men patterns."""
        assert classifier.score("WOMEN")["women"] > classifier.score("WOMEN")["men"]

    @pytest.mark.parametrize("name", ["Female", "Swimsuits"])
    def test_men_patterns_need_word_boundaries(self, classifier, name):
        """Test that substrings only earn the keyword weight for men."""
        # keyword substring only, no pattern bonus
        assert classifier.score(name)["men"] == 2

    def test_girls_score_as_kids_only(self, classifier):
        """Test that "girls" adds to the kids score and not the women score."""
        scores = classifier.score("Girls")
        assert scores["kids"] > 0
        assert scores["women"] == 0

    @pytest.mark.parametrize("name,tied_with", [
        ("Girls Dresses", "women"),
        ("Girls Skirts", "women"),
        ("Boys Suits", "men"),
    ])
    def test_boys_and_girls_lines_win_ties_as_kids(self, classifier, name, tied_with):
        """Test that a kids score tied with a gendered group classifies as kids."""
        scores = classifier.score(name)
        assert scores["kids"] == scores[tied_with] == max(scores.values())

        result = classifier.classify(name)
        assert result.group == CategoryGroup.KIDS
        assert result.confidence == pytest.approx(0.5)

    def test_tie_break_order_is_injectable(self):
        """Test that the tie-break order is taken from the injected rules."""
        rules = CategoryRules(tie_break_order=("men", "women", "kids", "accessories"))
        custom = CategoryClassifier(rules)

        assert custom.classify("Girls Dresses").group == CategoryGroup.WOMEN


class TestExclusionsAndSizes:

    @pytest.mark.parametrize("name", ["A", "a-b", ".hidden", "Uncategorized", "default", "Coming Soon", "SALE"])
    def test_excluded(self, classifier, name):
        """Test that placeholder and junk names are excluded."""
        assert isinstance(classifier.classify(name), ExcludedClassification)

    @pytest.mark.parametrize("name", ["2T", "4-5T", "6 yrs", "12 years", "110cm", "28/30", "One Size", "XL", "small"])
    def test_sizes(self, classifier, name):
        """Test that size-shaped names classify as sizes."""
        result = classifier.classify(name)

        assert isinstance(result, SizeClassification)
        assert result.original_value == name

    def test_size_patterns_are_anchored(self, classifier):
        """Size patterns only match the whole name."""
        assert not isinstance(classifier.classify("Girls 4-5T Dresses"), SizeClassification)
        assert not isinstance(classifier.classify("Small Accessories"), SizeClassification)

    def test_blank_name_excluded(self, classifier):
        """Test that a blank name is excluded as empty."""
        result = classifier.classify("   ")

        assert isinstance(result, ExcludedClassification)
        assert result.reason == "empty"

    def test_non_string_raises(self, classifier):
        """Test that a non-string name raises InvalidFacetValueError."""
        with pytest.raises(InvalidFacetValueError):
            classifier.classify(42)


class TestLabels:

    def test_slash_padding(self):
        """Test that slashes are padded in cleaned labels."""
        assert clean_category_label("WALLETS/CARD HOLDERS") == "Wallets / Card Holders"

    def test_camel_case_split(self):
        """Test that camelCase names are split into words."""
        assert clean_category_label("NewArrivals") == "New Arrivals"

    def test_match_key(self):
        """Test match keys: lower-case with "&" spelled out."""
        assert category_match_key("Heels & Wedges") == "heels and wedges"
        assert category_match_key("  Heels   and  WEDGES ") == "heels and wedges"


class TestOrganizeCategories:

    def test_tree_groups(self):
        """Test that the tree groups subcategories and routes sizes and exclusions aside."""
        tree = organize_categories([
            "Women's Tote Bags", "Handbags", "Heels & Wedges", "Ties & Cufflinks",
            "Watches", "2T", "A", "Kids Clothing",
        ])

        assert tree.groups[CategoryGroup.WOMEN].subcategories == ["All Bags", "Footwear"]
        assert tree.groups[CategoryGroup.MEN].subcategories == ["Accessories"]
        assert tree.groups[CategoryGroup.ACCESSORIES].subcategories == ["Watches"]
        assert tree.groups[CategoryGroup.KIDS].subcategories == ["Kids Clothing"]
        assert tree.extra_sizes == ["2T"]
        assert tree.excluded_names == ["A"]
        assert tree.stats.total == 8
        assert tree.stats.excluded == 1
        assert tree.stats.sizes == 1

    def test_every_group_present_even_when_empty(self):
        """Test that all four groups appear in an empty tree."""
        tree = organize_categories([])

        assert list(tree.groups) == [
            CategoryGroup.WOMEN, CategoryGroup.MEN, CategoryGroup.KIDS, CategoryGroup.ACCESSORIES,
        ]
        assert tree.groups[CategoryGroup.MEN].label == "MEN"

    def test_accepts_catalog_records(self, sample_categories):
        """Test that organize_categories accepts CatalogCategory records."""
        tree = organize_categories(sample_categories)

        assert "All Bags" in tree.groups[CategoryGroup.WOMEN].subcategories
        assert tree.extra_sizes == ["2T"]

    def test_organizing_is_deterministic(self, sample_categories):
        """Input order does not change the tree."""
        names = [c.name for c in sample_categories]
        assert organize_categories(names) == organize_categories(list(reversed(names)))


class TestCustomRules:

    def test_threshold_is_injectable(self):
        """Test that custom rules change the confidence threshold."""
        strict = CategoryClassifier(CategoryRules(min_confidence=0.95))

        result = strict.classify("Ties & Cufflinks")

        assert result.group == CategoryGroup.ACCESSORIES
        assert result.confidence == 0.5

    def test_module_shortcut_matches_default_instance(self):
        """Test that classify() matches a default CategoryClassifier."""
        assert classify("Handbags") == CategoryClassifier().classify("Handbags")
