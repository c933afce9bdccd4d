"""
Sort specification builder.

Maps a storefront sort key to an ordered list of (field, direction) pairs.
Direction is 1 for ascending and -1 for descending. ``relevance`` ranks by
text score when there is a search term; ``random`` asks the store for a
random sample instead of an ordering.
"""

import re
from typing import Dict, List, Optional, Tuple

from config.settings import Settings, get_settings
from core.logging import get_logger
from core.utils import split_camel_case
from discovery.models import SortOption, SortSpec

logger = get_logger(__name__)

ASC = 1
DESC = -1

CREATED_AT = "created_at"
TEXT_SCORE = "text_score"
DEFAULT_SORT = "latest"

SortFields = Tuple[Tuple[str, int], ...]

SORT_OPTIONS: Dict[str, SortFields] = {
    # Position
    "position_asc": (("position", ASC), (CREATED_AT, DESC)),
    "position_desc": (("position", DESC), (CREATED_AT, DESC)),
    # Price
    "price_asc": (("price", ASC), (CREATED_AT, DESC)),
    "price_desc": (("price", DESC), (CREATED_AT, DESC)),
    "low_to_high": (("price", ASC), (CREATED_AT, DESC)),
    "high_to_low": (("price", DESC), (CREATED_AT, DESC)),
    # Date
    "latest": ((CREATED_AT, DESC),),
    "newest": ((CREATED_AT, DESC),),
    "created_at_desc": ((CREATED_AT, DESC),),
    "oldest": ((CREATED_AT, ASC),),
    "created_at_asc": ((CREATED_AT, ASC),),
    # Popularity
    "popular": (("views", DESC), (CREATED_AT, DESC)),
    "most_viewed": (("views", DESC), (CREATED_AT, DESC)),
    "trending": (("views", DESC), (CREATED_AT, DESC), ("is_sale", DESC)),
    "bestselling": (("sold_count", DESC), ("views", DESC)),
    "best_selling": (("sold_count", DESC), ("views", DESC)),
    # Rating
    "rating_desc": (("average_rating", DESC), (CREATED_AT, DESC)),
    "rating_asc": (("average_rating", ASC), (CREATED_AT, DESC)),
    "highest_rated": (("average_rating", DESC), (CREATED_AT, DESC)),
    "lowest_rated": (("average_rating", ASC), (CREATED_AT, DESC)),
    # Name
    "name_asc": (("name", ASC),),
    "name_desc": (("name", DESC),),
    "a_to_z": (("name", ASC),),
    "z_to_a": (("name", DESC),),
    # Sale
    "sale_first": (("is_sale", DESC), (CREATED_AT, DESC)),
    "discount_high": (("discount_percentage", DESC), (CREATED_AT, DESC)),
    # Stock
    "in_stock_first": (("stock_quantity", DESC), (CREATED_AT, DESC)),
    # Featured
    "featured": (("is_featured", DESC), (CREATED_AT, DESC)),
}

# all-lower-case spellings of the camelCase keys
_KEY_ALIASES = {
    "createdat_desc": "created_at_desc",
    "createdat_asc": "created_at_asc",
}

AVAILABLE_SORT_OPTIONS: Tuple[Tuple[str, str], ...] = (
    ("relevance", "Most Relevant"),
    ("latest", "Latest"),
    ("popular", "Most Popular"),
    ("price_asc", "Price: Low to High"),
    ("price_desc", "Price: High to Low"),
    ("highest_rated", "Highest Rated"),
    ("bestselling", "Best Selling"),
    ("trending", "Trending"),
    ("a_to_z", "Name: A to Z"),
    ("z_to_a", "Name: Z to A"),
    ("newest", "Newest First"),
    ("oldest", "Oldest First"),
    ("sale_first", "Sale Items First"),
    ("in_stock_first", "In Stock First"),
    ("featured", "Featured Products"),
)


_SEPARATOR_RE = re.compile(r"[\s\-]+")


def normalize_sort_key(sort_key: Optional[str]) -> str:
    """Canonical sort key: "priceAsc", "price-asc" and "PRICE_ASC" all give "price_asc"."""
    if not sort_key or not isinstance(sort_key, str):
        return DEFAULT_SORT
    key = _SEPARATOR_RE.sub("_", split_camel_case(sort_key.strip())).lower()
    return _KEY_ALIASES.get(key, key) or DEFAULT_SORT


class SortBuilder:
    """Builds SortSpec objects from sort keys."""

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()

    def build(self, sort_key: Optional[str], search_term: Optional[str] = None) -> SortSpec:
        key = normalize_sort_key(sort_key)
        has_term = bool(search_term and search_term.strip())

        if key == "relevance":
            if has_term:
                return SortSpec(key=key, fields=[(TEXT_SCORE, DESC), (CREATED_AT, DESC)], text_score=True)
            key = DEFAULT_SORT

        if key == "random":
            return SortSpec(key=key, random=True, sample_size=self._settings.random_sample_size)

        fields = SORT_OPTIONS.get(key)
        if fields is None:
            logger.debug("Unknown sort key, using default", sort=sort_key)
            key, fields = DEFAULT_SORT, SORT_OPTIONS[DEFAULT_SORT]

        ordered: List[Tuple[str, int]] = list(fields)
        if all(field != CREATED_AT for field, _ in ordered):
            ordered.append((CREATED_AT, DESC))
        return SortSpec(key=key, fields=ordered)

    @staticmethod
    def is_valid(sort_key: Optional[str]) -> bool:
        key = normalize_sort_key(sort_key)
        return key in SORT_OPTIONS or key in ("relevance", "random")

    @staticmethod
    def available_options() -> List[SortOption]:
        return [SortOption(value=value, label=label) for value, label in AVAILABLE_SORT_OPTIONS]


def build_sort_spec(sort_key: Optional[str], search_term: Optional[str] = None) -> SortSpec:
    return SortBuilder().build(sort_key, search_term)
