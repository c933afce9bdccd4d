"""
Facet cleaning tables: synonyms, placeholders, accepted size shapes,
business size ranges, condition ordering and colour swatch classes.
"""

import re
from typing import Dict, Pattern, Tuple

# ── Shared ────────────────────────────────────────────────────────
PLACEHOLDER_VALUES = frozenset({
    "n/a", "na", "none", "default", "various", "tbd", "pending", "unknown",
    "color", "colour", "no brand", "-", "--",
})

MIN_LENGTH: Dict[str, int] = {"color": 2, "size": 1, "brand": 2, "condition": 3}
MAX_LENGTH: Dict[str, int] = {"color": 40, "size": 24, "brand": 40, "condition": 40}

# Kinds whose raw values may pack several tokens ("Red, Blue").
SPLIT_KINDS = frozenset({"color", "size", "condition"})
TOKEN_SPLIT_RE: Pattern[str] = re.compile(r"[,;]")

# ── Colours ───────────────────────────────────────────────────────
COLOR_SYNONYMS: Dict[str, str] = {
    "off white": "off-white",
    "off-white": "off-white",
    "offwhite": "off-white",
    "multi color": "multicolor",
    "multi-color": "multicolor",
    "multi colour": "multicolor",
    "multicolour": "multicolor",
    "mettalic": "metallic",
    "grey": "gray",
    "golden": "gold",
}

COLOR_SWATCHES: Dict[str, str] = {
    "black": "bg-black",
    "white": "bg-white border border-gray-200",
    "off-white": "bg-gray-50 border border-gray-200",
    "blue": "bg-blue-500",
    "red": "bg-red-500",
    "green": "bg-green-500",
    "yellow": "bg-yellow-400",
    "purple": "bg-purple-500",
    "pink": "bg-pink-400",
    "brown": "bg-amber-700",
    "gray": "bg-gray-400",
    "beige": "bg-amber-100",
    "navy": "bg-blue-900",
    "gold": "bg-yellow-500",
    "silver": "bg-gray-300",
    "orange": "bg-orange-500",
    "turquoise": "bg-teal-400",
    "teal": "bg-teal-500",
    "lime": "bg-lime-400",
    "maroon": "bg-red-800",
    "burgundy": "bg-red-900",
    "olive": "bg-green-600",
    "aqua": "bg-cyan-400",
    "fuchsia": "bg-fuchsia-500",
    "indigo": "bg-indigo-500",
    "violet": "bg-violet-500",
    "tan": "bg-amber-200",
    "cream": "bg-amber-50",
    "ivory": "bg-yellow-50",
    "khaki": "bg-yellow-200",
    "coral": "bg-orange-300",
    "salmon": "bg-orange-200",
    "crimson": "bg-red-700",
    "magenta": "bg-pink-500",
    "cyan": "bg-cyan-500",
    "mint": "bg-green-200",
    "rose": "bg-rose-400",
    "metallic": "bg-gradient-to-r from-gray-300 to-gray-500",
    "glitter": "bg-gradient-to-r from-yellow-200 via-yellow-400 to-yellow-200",
    "multicolor": "bg-gradient-to-r from-red-500 via-yellow-500 to-blue-500",
}
DEFAULT_SWATCH = "bg-gray-300"

# ── Sizes ─────────────────────────────────────────────────────────
SIZE_SYNONYMS: Dict[str, str] = {
    "extra small": "XS",
    "small": "S",
    "medium": "M",
    "large": "L",
    "extra large": "XL",
    "one size": "One Size",
    "onesize": "One Size",
    "free size": "Free Size",
}

INVALID_SIZE_PATTERNS: Tuple[Pattern[str], ...] = tuple(re.compile(p, re.IGNORECASE) for p in (
    r"^\d{3,}$",
    r"^[^a-z0-9]",
    r"[^\w\s.\-/()]",
    r"^(\.\d*|\d*\.)$",
))

VALID_SIZE_PATTERNS: Tuple[Pattern[str], ...] = tuple(re.compile(p, re.IGNORECASE) for p in (
    r"^(XXS|XS|S|M|L|XL|XXL|XXXL)$",
    r"^\d{1,2}(\.\d{1,2})?$",
    r"^\d{1,2}[A-Z]$",
    r"^(EU|UK|US)\s*\d{1,2}(\.\d{1,2})?$",
    r"^\d{1,2}(\.\d{1,2})?\s+(EU|UK|US)$",
    r"^\d{1,2}/\d{1,2}[A-Z]?$",
    r"^W\d{1,2}$",
    r"^One\s+Size$",
    r"^Free\s+Size$",
    r"^OS$",
))

NUMERIC_SIZE_RANGE: Tuple[float, float] = (2, 60)
REGION_SIZE_RANGES: Dict[str, Tuple[float, float]] = {
    "EU": (30, 50),
    "UK": (4, 20),
    "US": (0, 20),
}
FRACTION_SIZE_RANGE: Tuple[int, int] = (26, 50)

LETTER_SIZE_ORDER: Tuple[str, ...] = ("XXS", "XS", "S", "M", "L", "XL", "XXL", "XXXL")
NUMERIC_SIZE_SORT_BASE = 100
UNRANKED_SORT_ORDER = 9999

# ── Brands ────────────────────────────────────────────────────────
BRAND_CLEAN_PATTERNS: Tuple[Tuple[Pattern[str], str], ...] = (
    (re.compile(r"\s*&\s*"), " & "),
    (re.compile(r"\."), ""),
    (re.compile(r"\s{2,}"), " "),
)

# ── Conditions (best to worst) ────────────────────────────────────
CONDITION_SYNONYMS: Dict[str, str] = {
    "new with tags": "New With Tags",
    "newwithtags": "New With Tags",
    "nwt": "New With Tags",
    "new without tags": "New Without Tags",
    "newwithouttags": "New Without Tags",
    "nwot": "New Without Tags",
    "pristine": "Pristine",
    "like new": "Pristine",
    "likenew": "Pristine",
    "excellent": "Pristine",
    "good": "Good Condition",
    "very good": "Good Condition",
    "good condition": "Good Condition",
    "goodcondition": "Good Condition",
    "fair": "Gently Used",
    "used": "Gently Used",
    "gently used": "Gently Used",
    "gentlyused": "Gently Used",
    "well used": "Used Fairly Well",
    "heavily used": "Used Fairly Well",
    "used fairly well": "Used Fairly Well",
    "usedfairlywell": "Used Fairly Well",
    "pre-owned": "Pre-Owned",
    "pre owned": "Pre-Owned",
    "preowned": "Pre-Owned",
    "vintage": "Vintage",
}

CONDITION_ORDER: Dict[str, int] = {
    "New With Tags": 1,
    "New Without Tags": 2,
    "Pristine": 3,
    "Good Condition": 4,
    "Gently Used": 5,
    "Used Fairly Well": 6,
    "Pre-Owned": 7,
    "Vintage": 8,
}
UNKNOWN_CONDITION_ORDER = 999
