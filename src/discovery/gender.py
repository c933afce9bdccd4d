"""
Gender detection and the strict gender post-filter.

Detection works on whole-word tokens only, so substrings never count
("leather" does not contain "her", "women" does not contain "men").

The strict filter is deliberately stricter than the storage query: an item
survives only when its own text names the wanted gender and nothing in it
names an excluded one. Items with no gender signal at all are dropped.
"""

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from core.logging import get_logger
from core.utils import resolve_path, tokenize_words
from discovery.constants.gender_patterns import (
    DEFAULT_GENDER_PATTERNS,
    SYNONYM_TO_GENDER,
    GenderPatterns,
)

logger = get_logger(__name__)

_TEXT_FIELDS = ("name", "description", "tags", "primary_category_name", "category_refs.name")
_WORD_EDGE_RE = re.compile(r"^[^\w']+|[^\w']+$")
_POSSESSIVE_RE = re.compile(r"['’]s$")


def normalize_gender_value(value: Any) -> Optional[str]:
    """
    Map a free-form gender value to men / women / kids / unisex.

    Returns None for anything that is not a known synonym.
    """
    if not isinstance(value, str):
        return None
    return SYNONYM_TO_GENDER.get(value.strip().lower())


class GenderDetector:
    """
    Infers a gender from text and applies the strict post-filter.

    Usage:
        detector = GenderDetector()
        detector.detect("Men's Classic Tie")            # "men"
        detector.detect("men and women sneakers")       # "unisex"
        detector.apply_strict_filter(items, "men")
    """

    def __init__(self, patterns: GenderPatterns = DEFAULT_GENDER_PATTERNS):
        self.patterns = patterns
        vocabulary: Set[str] = set(SYNONYM_TO_GENDER)
        for rule in patterns.rules.values():
            vocabulary |= rule.keywords
        self._vocabulary = frozenset(vocabulary)

    # ------------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------------

    def detect(self, text: Optional[str]) -> Optional[str]:
        """
        Detect the gender a piece of text refers to.

        Both women and men keywords present means unisex. Otherwise women,
        kids and men are tried in that order; a gender needs a keyword and
        no exclusion word. Returns None when nothing applies.
        """
        tokens = set(tokenize_words(text))
        if not tokens:
            return None

        rules = self.patterns.rules
        women, men = rules.get("women"), rules.get("men")
        if women and men and tokens & women.keywords and tokens & men.keywords:
            return "unisex"

        for gender in self.patterns.detection_order:
            rule = rules.get(gender)
            if rule and tokens & rule.keywords and not tokens & rule.exclusions:
                return gender

        unisex = rules.get("unisex")
        if unisex and tokens & unisex.keywords:
            return "unisex"
        return None

    def scores(self, text: Optional[str]) -> Dict[str, int]:
        """Keyword score per gender, penalised for every exclusion word present."""
        tokens = set(tokenize_words(text))
        return {
            gender: (
                len(tokens & rule.keywords) * self.patterns.keyword_score
                - len(tokens & rule.exclusions) * self.patterns.exclusion_penalty
            )
            for gender, rule in self.patterns.rules.items()
        }

    def detect_scored(self, keyword: Optional[str], categories: Optional[str] = "") -> Optional[str]:
        """
        Score-based detection over a search keyword plus category text.

        The highest positive score wins; ties follow the women, kids, men,
        unisex priority. Returns None when no score is positive.
        """
        scores = self.scores(f"{keyword or ''} {categories or ''}")
        best: Optional[str] = None
        for gender in self.patterns.score_order:
            score = scores.get(gender, 0)
            if score > 0 and (best is None or score > scores[best]):
                best = gender
        return best

    def is_gender_term(self, word: str) -> bool:
        cleaned = _WORD_EDGE_RE.sub("", word.lower())
        cleaned = _POSSESSIVE_RE.sub("", cleaned)
        return bool(cleaned) and (cleaned in self._vocabulary or f"{cleaned}'s" in self._vocabulary)

    def strip_gender_terms(self, text: Optional[str]) -> str:
        """Remove gender words from ``text`` ("men's leather wallet" -> "leather wallet")."""
        if not text:
            return ""
        return " ".join(word for word in text.split() if not self.is_gender_term(word))

    # ------------------------------------------------------------------------
    # Strict post-filter
    # ------------------------------------------------------------------------

    def item_tokens(self, item: Any, category_names: Optional[Mapping[str, str]] = None) -> Set[str]:
        """Word tokens from an item's name, description, tags and category names."""
        texts: List[str] = []
        for path in _TEXT_FIELDS:
            texts.extend(str(v) for v in resolve_path(item, path))
        if category_names:
            ids = resolve_path(item, "category_refs.category_id") + resolve_path(item, "primary_category_id")
            texts.extend(category_names[i] for i in ids if i in category_names)
        tokens: Set[str] = set()
        for text in texts:
            tokens.update(tokenize_words(text))
        return tokens

    def matches_strictly(
        self, item: Any, gender: str, category_names: Optional[Mapping[str, str]] = None
    ) -> bool:
        rule = self.patterns.rules.get(gender)
        if rule is None:
            return True
        tokens = self.item_tokens(item, category_names)
        return bool(tokens & rule.keywords) and not tokens & rule.exclusions

    def apply_strict_filter(
        self,
        items: Iterable[Any],
        gender: Optional[str],
        category_names: Optional[Mapping[str, str]] = None,
    ) -> List[Any]:
        """
        Keep only items that positively name ``gender`` and name no excluded gender.

        Args:
            items: CatalogItem records or dicts.
            gender: men, women or kids. None or unisex returns the items unchanged.
            category_names: Optional id -> name map for category refs without names.

        Returns:
            The surviving items, in their original order.
        """
        items = list(items)
        gender = normalize_gender_value(gender) if gender else None
        if gender is None or gender == "unisex":
            return items

        kept = [item for item in items if self.matches_strictly(item, gender, category_names)]
        logger.debug("Strict gender filter applied", gender=gender, before=len(items), after=len(kept))
        return kept


_default_detector = GenderDetector()


def detect_gender(text: Optional[str]) -> Optional[str]:
    return _default_detector.detect(text)


def apply_strict_gender_filter(
    items: Iterable[Any],
    gender: Optional[str],
    category_names: Optional[Mapping[str, str]] = None,
) -> List[Any]:
    """Module-level shortcut for ``GenderDetector().apply_strict_filter``."""
    return _default_detector.apply_strict_filter(items, gender, category_names)
