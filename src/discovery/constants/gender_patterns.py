"""
Gender keyword and exclusion tables.

All entries are whole words; callers match them against word tokens, never
substrings, so "leather" does not contain "her" and "women" does not
contain "men". "boy(s)" and "girl(s)" belong to kids only.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Tuple

GENDERS: Tuple[str, ...] = ("men", "women", "kids", "unisex")

# Detection priority; also the tie-break order of the scored variant.
DETECTION_ORDER: Tuple[str, ...] = ("women", "kids", "men")
SCORE_ORDER: Tuple[str, ...] = ("women", "kids", "men", "unisex")

KEYWORD_SCORE = 2
EXCLUSION_PENALTY = 10


@dataclass(frozen=True)
class GenderRule:
    keywords: FrozenSet[str]
    exclusions: FrozenSet[str] = frozenset()


GENDER_PATTERNS: Dict[str, GenderRule] = {
    "women": GenderRule(
        keywords=frozenset({
            "women", "woman", "womens", "ladies", "lady", "female", "feminine", "her", "she",
        }),
        exclusions=frozenset({
            "men", "man", "mens", "male", "masculine", "his", "he", "boy", "boys",
        }),
    ),
    "men": GenderRule(
        keywords=frozenset({
            "men", "man", "mens", "male", "masculine", "gentlemen", "him", "his",
        }),
        exclusions=frozenset({
            "women", "woman", "womens", "ladies", "lady", "girl", "girls",
            "female", "feminine", "her", "she", "skirt", "dress",
        }),
    ),
    "kids": GenderRule(
        keywords=frozenset({
            "kid", "kids", "child", "children", "baby", "babies", "toddler", "infant",
            "youth", "junior", "boy", "boys", "girl", "girls",
        }),
    ),
    "unisex": GenderRule(keywords=frozenset({"unisex"})),
}

# Free-form values (request params, item fields, search words) -> canonical gender.
GENDER_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "men": ("men", "man", "male", "mens", "men's", "masculine", "gentlemen"),
    "women": ("women", "woman", "female", "womens", "women's", "ladies", "feminine"),
    "kids": (
        "kids", "kid", "children", "child", "baby", "babies", "toddler", "toddlers",
        "youth", "junior", "boy", "boys", "girl", "girls",
    ),
    "unisex": ("unisex", "neutral", "universal"),
}

SYNONYM_TO_GENDER: Dict[str, str] = {
    synonym: gender
    for gender, synonyms in GENDER_SYNONYMS.items()
    for synonym in synonyms
}


@dataclass(frozen=True)
class GenderPatterns:
    """Injectable bundle of gender rules."""

    rules: Mapping[str, GenderRule] = field(default_factory=lambda: GENDER_PATTERNS)
    detection_order: Tuple[str, ...] = DETECTION_ORDER
    score_order: Tuple[str, ...] = SCORE_ORDER
    keyword_score: int = KEYWORD_SCORE
    exclusion_penalty: int = EXCLUSION_PENALTY


DEFAULT_GENDER_PATTERNS = GenderPatterns()
