"""
Rule-based category classifier.

Maps free-text catalog category names onto the four storefront groups
(women, men, kids, accessories), spots names that are really sizes, and
drops junk entries. Every decision comes from the tables in
``discovery.constants.category_rules`` so results are explainable and
deterministic.
"""

import re
from typing import Dict, Iterable, List, Optional, Union

from core.logging import get_logger
from core.utils import collapse_whitespace, split_camel_case, title_case
from discovery.constants.category_rules import (
    BAG_MEN_TERMS,
    BAG_WOMEN_TERMS,
    CLOTHING_TERMS,
    DEFAULT_CATEGORY_RULES,
    FOOTWEAR_MEN_TERMS,
    FOOTWEAR_TERMS,
    FOOTWEAR_WOMEN_TERMS,
    GROUP_LABELS,
    JEWELLERY_TERMS,
    CategoryRules,
)
from discovery.exceptions import InvalidFacetValueError
from discovery.models import (
    CatalogCategory,
    CategoryClassification,
    CategoryGroup,
    CategoryGroupNode,
    ClassificationResult,
    ExcludedClassification,
    GroupedCategoryTree,
    SizeClassification,
    TreeStats,
)

logger = get_logger(__name__)


def clean_category_label(name: str) -> str:
    """
    Display label for a category name.

    "WALLETS/CARD HOLDERS" -> "Wallets / Card Holders",
    "NewArrivals" -> "New Arrivals". Ampersands are kept.
    """
    label = re.sub(r"\s*/\s*", " / ", name.strip())
    label = split_camel_case(label)
    return title_case(collapse_whitespace(label))


def category_match_key(name: str) -> str:
    """Lower-case key used to compare category names ("Heels & Wedges" -> "heels and wedges")."""
    key = name.lower().replace("&", " and ")
    return collapse_whitespace(key)


class CategoryClassifier:
    """
    Classifies category names into storefront groups.

    Usage:
        classifier = CategoryClassifier()
        result = classifier.classify("Women's Tote Bags")
        result.group          # CategoryGroup.WOMEN
        result.subcategory    # "All Bags"
    """

    def __init__(self, rules: CategoryRules = DEFAULT_CATEGORY_RULES):
        self.rules = rules

    # ------------------------------------------------------------------------
    # Single names
    # ------------------------------------------------------------------------

    def classify(self, name: str) -> ClassificationResult:
        """
        Classify one category name.

        Returns:
            ExcludedClassification for junk names, SizeClassification for
            size-shaped names, CategoryClassification otherwise.

        Raises:
            InvalidFacetValueError: if ``name`` is not a string.
        """
        if not isinstance(name, str):
            raise InvalidFacetValueError(
                f"category name must be a string, got {type(name).__name__}", name
            )
        clean_name = collapse_whitespace(name)
        if not clean_name:
            return ExcludedClassification(original_name=name, reason="empty")

        if self.is_excluded(clean_name):
            return ExcludedClassification(original_name=clean_name, reason="excluded_pattern")

        if self.is_size(clean_name):
            return SizeClassification(original_value=clean_name)

        scores = self.score(clean_name)
        group, confidence = self._pick_group(scores)
        return CategoryClassification(
            group=group,
            subcategory=self.subcategory_for(clean_name, group),
            confidence=round(confidence, 4),
            cleaned_label=clean_category_label(clean_name),
            original_name=clean_name,
        )

    def is_excluded(self, name: str) -> bool:
        return any(p.search(name) for p in self.rules.exclude_patterns)

    def is_size(self, name: str) -> bool:
        return any(p.search(name) for p in self.rules.size_patterns)

    def score(self, name: str) -> Dict[str, int]:
        """Raw group scores for ``name`` (keywords, exclusive patterns, context bonuses)."""
        rules = self.rules
        lower = name.lower()
        scores = {group: 0 for group in rules.group_order}

        for group in rules.group_order:
            for keyword in rules.keywords.get(group, ()):
                if keyword in lower:
                    scores[group] += rules.keyword_weight
            for pattern in rules.patterns.get(group, ()):
                if pattern.search(name):
                    scores[group] += rules.pattern_weight

        if "kids" in scores:
            for pattern in rules.kids_size_patterns:
                if pattern.search(name):
                    scores["kids"] += rules.kids_size_weight

        self._apply_context(lower, scores)
        return scores

    @staticmethod
    def _apply_context(lower: str, scores: Dict[str, int]) -> None:
        def bump(group: str, amount: int) -> None:
            if group in scores:
                scores[group] += amount

        if "bag" in lower:
            if any(t in lower for t in BAG_WOMEN_TERMS):
                bump("women", 2)
            elif any(t in lower for t in BAG_MEN_TERMS):
                bump("men", 1)

        if any(t in lower for t in FOOTWEAR_TERMS):
            if any(t in lower for t in FOOTWEAR_WOMEN_TERMS):
                bump("women", 3)
            elif any(t in lower for t in FOOTWEAR_MEN_TERMS):
                bump("men", 3)

        if any(t in lower for t in CLOTHING_TERMS):
            bump("women", 1)
            bump("men", 1)

        if any(t in lower for t in JEWELLERY_TERMS):
            bump("accessories", 2)
            bump("women", 1)

    def _pick_group(self, scores: Dict[str, int]):
        rules = self.rules
        best = max(rules.tie_break_order, key=lambda g: scores.get(g, 0))  # first maximum wins
        max_score = scores[best]
        total = sum(scores.values())
        confidence = max_score / total if total > 0 else 0.0

        if max_score == 0 or confidence < rules.min_confidence:
            return CategoryGroup(rules.fallback_group), rules.fallback_confidence
        return CategoryGroup(best), confidence

    def subcategory_for(self, name: str, group: Union[CategoryGroup, str]) -> Optional[str]:
        lower = name.lower()
        group_key = group.value if isinstance(group, CategoryGroup) else group
        for subcategory, keywords in self.rules.subcategory_maps.get(group_key, ()):
            if any(keyword in lower for keyword in keywords):
                return subcategory
        return None

    # ------------------------------------------------------------------------
    # Whole catalogs
    # ------------------------------------------------------------------------

    def organize_categories(
        self, categories: Iterable[Union[CatalogCategory, str]]
    ) -> GroupedCategoryTree:
        """
        Classify every category and build the grouped navigation tree.

        Args:
            categories: CatalogCategory records or bare names.

        Returns:
            GroupedCategoryTree with sorted subcategories per group, the
            size-shaped names and the excluded names.
        """
        subcategories: Dict[str, set] = {group: set() for group in self.rules.group_order}
        extra_sizes = set()
        excluded: List[str] = []
        total = 0

        for category in categories:
            total += 1
            name = category.name if isinstance(category, CatalogCategory) else category
            result = self.classify(name)
            if isinstance(result, ExcludedClassification):
                excluded.append(name)
            elif isinstance(result, SizeClassification):
                extra_sizes.add(result.original_value)
            else:
                subcategories[result.group.value].add(result.subcategory or result.cleaned_label)

        groups = {
            CategoryGroup(group): CategoryGroupNode(
                id=CategoryGroup(group),
                label=GROUP_LABELS.get(group, group.upper()),
                subcategories=sorted(subcategories[group]),
            )
            for group in self.rules.group_order
        }
        stats = TreeStats(
            total=total,
            processed=sum(len(node.subcategories) for node in groups.values()),
            excluded=len(excluded),
            sizes=len(extra_sizes),
        )
        logger.debug(
            "Organized categories",
            total=stats.total,
            processed=stats.processed,
            excluded=stats.excluded,
            sizes=stats.sizes,
        )
        return GroupedCategoryTree(
            groups=groups,
            extra_sizes=sorted(extra_sizes),
            excluded_names=excluded,
            stats=stats,
        )


_default_classifier = CategoryClassifier()


def classify(name: str) -> ClassificationResult:
    """Classify one name with the default rules."""
    return _default_classifier.classify(name)


def organize_categories(categories: Iterable[Union[CatalogCategory, str]]) -> GroupedCategoryTree:
    """Build the grouped tree with the default rules."""
    return _default_classifier.organize_categories(categories)
