"""
Category classification rules: keyword tables, exclusive patterns, weights
and subcategory maps for the four storefront groups.

The scorer adds KEYWORD_WEIGHT for every keyword found as a substring of the
lower-cased name, PATTERN_WEIGHT for every exclusive pattern hit and
KIDS_SIZE_WEIGHT for every kids size-adjacent pattern hit. TIE_BREAK_ORDER
breaks ties: boys' and girls' lines tie with the gendered group, and kids wins.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Mapping, Pattern, Tuple

# ── Weights & thresholds ──────────────────────────────────────────
KEYWORD_WEIGHT = 2
PATTERN_WEIGHT = 5
KIDS_SIZE_WEIGHT = 3
MIN_CONFIDENCE = 0.3
FALLBACK_GROUP = "accessories"
FALLBACK_CONFIDENCE = 0.5

GROUP_ORDER: Tuple[str, ...] = ("women", "men", "kids", "accessories")
TIE_BREAK_ORDER: Tuple[str, ...] = ("kids", "women", "men", "accessories")

GROUP_LABELS: Dict[str, str] = {
    "women": "WOMEN",
    "men": "MEN",
    "kids": "KIDS",
    "accessories": "ACCESSORIES",
}


def _compile(*patterns: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# ── Keywords (substring match on the lower-cased name) ────────────
GROUP_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "women": (
        "women", "woman", "ladies", "lady", "female", "feminine",
        "dress", "gown", "skirt", "heels", "wedges", "clutch",
        "handbag", "purse", "tote", "shoulder bag", "crossbody",
        "lingerie", "bra", "bikini", "swimsuit", "maternity",
        "blouse", "cardigan", "jumper", "playsuit", "jumpsuit",
        "mini bag", "satchel", "wristlet",
    ),
    "men": (
        "men", "man", "male", "masculine", "guys", "gentleman",
        "mens", "suit", "blazer", "tie", "cufflink", "wallet",
        "loafer", "moccasin", "oxford", "brogue", "derby",
        "belt", "briefcase", "messenger", "backpack",
    ),
    "kids": (
        "kids", "kid", "child", "children", "baby", "infant",
        "toddler", "youth", "junior", "boy", "girl",
        "school", "playground", "nursery",
    ),
    "accessories": (
        "accessory", "accessories", "jewelry", "jewellery",
        "watch", "sunglasses", "glasses", "scarf", "shawl",
        "belt", "hat", "cap", "glove", "sock", "tie",
        "cufflink", "charm", "bracelet", "necklace",
        "earring", "ring", "brooch", "pin",
    ),
}

# ── Exclusive patterns (regex, case-insensitive) ──────────────────
GROUP_PATTERNS: Dict[str, Tuple[Pattern[str], ...]] = {
    "women": _compile(
        r"women", r"ladies", r"dress", r"gown", r"skirt",
        r"heels", r"wedges", r"clutch", r"handbag", r"purse",
        r"tote.*bag", r"shoulder.*bag", r"crossbody", r"satchel",
        r"mini.*bag", r"wristlet", r"playsuit", r"jumpsuit",
    ),
    "men": _compile(
        r"\bmen\b", r"\bmens\b", r"\bman\b", r"(?<!fe)male",
        r"\bsuits?\b", r"blazer", r"\bties?\b", r"cufflink",
        r"loafer", r"moccasin", r"oxford", r"brogue",
        r"briefcase", r"messenger",
    ),
    "kids": _compile(
        r"\bkids\b", r"\bkid\b", r"child", r"children",
        r"baby", r"infant", r"toddler", r"youth",
        r"junior", r"\bboys?\b", r"\bgirls?\b", r"school",
    ),
    "accessories": _compile(
        r"accessor", r"jewelry", r"jewellery", r"watch",
        r"sunglasses", r"glasses", r"scarf", r"shawl",
        r"\bbelt", r"\bhat", r"\bcap", r"glove",
        r"charm", r"bracelet", r"necklace", r"earring",
        r"\bring", r"brooch", r"\bpin\b", r"cufflink",
    ),
}

# Child sizes that also appear inside kids category names ("Girls 4-5T").
KIDS_SIZE_PATTERNS: Tuple[Pattern[str], ...] = _compile(
    r"\d+[at]\b",
    r"\d+\s*yrs",
    r"\d+\s*years",
    r"\d+\s*cm\b",
    r"\d+/\d+",
)

# ── Contextual bonuses ────────────────────────────────────────────
BAG_WOMEN_TERMS: Tuple[str, ...] = ("clutch", "handbag", "tote", "shoulder")
BAG_MEN_TERMS: Tuple[str, ...] = ("backpack", "messenger")
FOOTWEAR_TERMS: Tuple[str, ...] = (
    "shoe", "boot", "sandal", "slipper", "heel", "wedge", "loafer", "sneaker",
)
FOOTWEAR_WOMEN_TERMS: Tuple[str, ...] = ("heel", "wedge")
FOOTWEAR_MEN_TERMS: Tuple[str, ...] = ("oxford", "brogue")
CLOTHING_TERMS: Tuple[str, ...] = ("clothing", "apparel")
JEWELLERY_TERMS: Tuple[str, ...] = ("jewel", "fine")

# ── Hard exclusions ───────────────────────────────────────────────
EXCLUDE_PATTERNS: Tuple[Pattern[str], ...] = _compile(
    r"^[a-z]$",
    r"^[a-z]\s*-\s*[a-z]$",
    r"^\.",
    r"^uncategori[sz]ed$",
    r"^default$",
    r"coming soon",
    r"^sale$",
    r"^just in$",
)

# ── Size-shaped names (anchored) ──────────────────────────────────
SIZE_PATTERNS: Tuple[Pattern[str], ...] = _compile(
    r"^\d+(?:\s*-\s*\d+)?\s*[at]$",
    r"^\d+(?:\s*-\s*\d+)?\s*(?:yrs?|years?)$",
    r"^\d+\s*cm$",
    r"^\d+/\d+[a-z]?$",
    r"^one\s*size$",
    r"^(?:xxs|xs|s|m|l|xl|xxl|xxxl)$",
    r"^(?:extra\s+)?(?:small|medium|large)$",
)

# ── Subcategory maps (ordered, first match wins) ──────────────────
SUBCATEGORY_MAPS: Dict[str, Tuple[Tuple[str, Tuple[str, ...]], ...]] = {
    "women": (
        ("All Bags", ("bag", "tote", "handbag", "clutch", "shoulder", "crossbody",
                      "satchel", "mini bag", "wristlet")),
        ("Footwear", ("shoe", "boot", "heel", "wedge", "flat", "slipper", "sandal",
                      "espadrille", "peeptoe")),
        ("Clothing", ("dress", "gown", "skirt", "short", "blouse", "cardigan", "jumper",
                      "coat", "jacket", "playsuit", "jumpsuit", "swimsuit", "hoodie",
                      "sweatshirt")),
        ("All Accessories", ("scarf", "shawl", "belt", "hat", "cap", "sunglasses")),
        ("Fine Jewellery", ("necklace", "earring", "bracelet", "ring", "charm",
                            "jewelry", "jewellery")),
    ),
    "men": (
        ("Clothing", ("shirt", "trouser", "pant", "suit", "blazer", "jacket", "coat",
                      "hoodie", "sweatshirt", "short")),
        ("Footwear", ("shoe", "boot", "loafer", "moccasin", "oxford", "brogue",
                      "sneaker", "slipper")),
        ("Accessories", ("tie", "cufflink", "belt", "wallet", "watch", "sunglasses",
                         "hat", "cap")),
    ),
    "kids": (
        ("Clothing", ("shirt", "dress", "short", "pant", "trouser", "hoodie",
                      "sweatshirt", "jacket", "coat")),
    ),
    "accessories": (
        ("Jewelry", ("necklace", "earring", "bracelet", "ring", "charm")),
        ("Watches", ("watch",)),
        ("Eyewear", ("sunglasses", "glasses")),
        ("Small Accessories", ("wallet", "belt", "scarf", "hat", "cap")),
    ),
}

# ── Subcategory → concrete catalog category names ─────────────────
# Used when a selection key is not in the live reverse index.
STATIC_SUBCATEGORY_CATEGORIES: Dict[str, Tuple[str, ...]] = {
    "all bags": (
        "All Bags", "Bags", "Handbags", "Tote Bags", "Shoulder Bags", "Crossbody Bags",
        "Clutch", "Mini Bags", "Satchel Bags", "Sling Bags", "Wristlet", "Backpack",
        "Beltbag",
    ),
    "footwear": (
        "Boots", "Heels & Wedges", "Flats & Slippers", "Sneakers", "Espadrilles",
        "Espadrilles & Loafers", "Loafers", "Loafers & Moccasins", "Sliders & Slippers",
        "Peeptoes",
    ),
    "clothing": (
        "Clothing", "Cloting", "Dresses & Gowns", "Shorts & Skirts", "Skirts & Shorts",
        "T Shirts", "T Shirts & Shirts", "Shirts", "Hoodies & Sweatshirts",
        "Hoodies And Sweatshirts", "Jackets & Outerwear", "Cardigans & Jumpers",
        "Denims & Trousers", "Trousers & Denims", "Jumpsuits", "Playsuit & Jumpsuit",
        "Shorts",
    ),
    "all accessories": (
        "All Accessories", "Small Accessories", "Belts", "Scarves", "Shawls & Scarves",
        "Caps", "Sunglasses",
    ),
    "fine jewellery": ("Fine Jewellery", "Earrings", "Necklaces", "Rings", "Charms & Bracelets"),
    "watches": ("Watches",),
    "accessories": ("Ties & Cufflinks", "Wallet", "Wallets/Card Holders", "Belts"),
    "co ord sets womens": ("Co-ord Sets Womens",),
    "co ord sets mens": ("Co-ord Sets Mens",),
    "backpack": ("Backpack",),
}


@dataclass(frozen=True)
class CategoryRules:
    """Immutable bundle of classification rules, injectable for tests."""

    keywords: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: GROUP_KEYWORDS)
    patterns: Mapping[str, Tuple[Pattern[str], ...]] = field(default_factory=lambda: GROUP_PATTERNS)
    kids_size_patterns: Tuple[Pattern[str], ...] = KIDS_SIZE_PATTERNS
    exclude_patterns: Tuple[Pattern[str], ...] = EXCLUDE_PATTERNS
    size_patterns: Tuple[Pattern[str], ...] = SIZE_PATTERNS
    subcategory_maps: Mapping[str, Tuple[Tuple[str, Tuple[str, ...]], ...]] = field(
        default_factory=lambda: SUBCATEGORY_MAPS
    )
    keyword_weight: int = KEYWORD_WEIGHT
    pattern_weight: int = PATTERN_WEIGHT
    kids_size_weight: int = KIDS_SIZE_WEIGHT
    min_confidence: float = MIN_CONFIDENCE
    fallback_group: str = FALLBACK_GROUP
    fallback_confidence: float = FALLBACK_CONFIDENCE
    group_order: Tuple[str, ...] = GROUP_ORDER
    tie_break_order: Tuple[str, ...] = TIE_BREAK_ORDER


DEFAULT_CATEGORY_RULES = CategoryRules()
