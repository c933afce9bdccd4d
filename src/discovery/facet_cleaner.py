"""
Facet value cleaning.

Turns raw attribute strings collected from catalog items ("Off White",
"off-white", "Mettalic", "36,38;40", "A.P.C.") into canonical, de-duplicated
filter options with stable ids, display labels and a sort order.

Pipeline per raw value:
    1. split into tokens (colours, sizes, conditions only)
    2. kind-specific normalisation and synonym mapping
    3. kind-specific exclusion rules (placeholders, length, size shape/range)
    4. merge by canonical id, keeping every raw spelling seen

Cleaning is pure: it depends only on its input and the module tables.
"""

import re
from typing import Dict, Iterable, List, Optional, Tuple, Union

from core.logging import get_logger
from core.utils import collapse_whitespace, fold_accents, slugify, title_case
from discovery.constants.facet_tables import (
    BRAND_CLEAN_PATTERNS,
    COLOR_SWATCHES,
    COLOR_SYNONYMS,
    CONDITION_ORDER,
    CONDITION_SYNONYMS,
    DEFAULT_SWATCH,
    FRACTION_SIZE_RANGE,
    INVALID_SIZE_PATTERNS,
    LETTER_SIZE_ORDER,
    MAX_LENGTH,
    MIN_LENGTH,
    NUMERIC_SIZE_RANGE,
    NUMERIC_SIZE_SORT_BASE,
    PLACEHOLDER_VALUES,
    REGION_SIZE_RANGES,
    SIZE_SYNONYMS,
    SPLIT_KINDS,
    TOKEN_SPLIT_RE,
    UNKNOWN_CONDITION_ORDER,
    UNRANKED_SORT_ORDER,
    VALID_SIZE_PATTERNS,
)
from discovery.exceptions import InvalidFacetValueError
from discovery.models import CanonicalFacetValue, FacetCleanResult, FacetKind, FacetStats

logger = get_logger(__name__)

_NUMERIC_RE = re.compile(r"^\d+(\.\d+)?$")
_REGION_PREFIX_RE = re.compile(r"^(EU|UK|US)\s*(\d+(?:\.\d+)?)$", re.IGNORECASE)
_REGION_SUFFIX_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*(EU|UK|US)$", re.IGNORECASE)
_FRACTION_RE = re.compile(r"^(\d{1,2})/(\d{1,2})[A-Z]?$", re.IGNORECASE)
_LEADING_NUMBER_RE = re.compile(r"^(\d+(?:\.\d+)?)")
_COLOR_STRIP_RE = re.compile(r"[^a-z0-9\s-]")

# (canonical key, display label, sort order, swatch) or None when excluded
_Cleaned = Optional[Tuple[str, str, Optional[float], Optional[str]]]


class FacetCleaner:
    """
    Canonicalises facet values of one kind per call.

    Usage:
        cleaner = FacetCleaner()
        result = cleaner.clean(["Off White", "off-white", "Mettalic"], "color")
        [v.id for v in result.values]   # ["metallic", "off-white"]
    """

    def clean(self, values: Iterable[str], kind: Union[FacetKind, str]) -> FacetCleanResult:
        """
        Clean a list of raw facet values.

        Args:
            values: Raw strings. Must be a list or tuple of str.
            kind: color, size, brand or condition.

        Returns:
            FacetCleanResult with canonical values in display order.

        Raises:
            InvalidFacetValueError: if ``values`` is not a list of strings
                or ``kind`` is unknown.
        """
        kind = self.coerce_kind(kind)
        if not isinstance(values, (list, tuple)):
            raise InvalidFacetValueError(
                f"facet values must be a list of strings, got {type(values).__name__}", values
            )

        merged: Dict[str, CanonicalFacetValue] = {}
        excluded: List[str] = []
        token_count = 0

        for raw in values:
            if not isinstance(raw, str):
                raise InvalidFacetValueError(
                    f"facet values must be strings, got {type(raw).__name__}", raw
                )
            for token in self._tokens(raw, kind):
                token_count += 1
                cleaned = self._clean_token(token, kind)
                if cleaned is None:
                    excluded.append(token)
                    continue
                key, label, sort_order, swatch = cleaned
                value_id = slugify(key)
                existing = merged.get(value_id)
                if existing is None:
                    merged[value_id] = CanonicalFacetValue(
                        id=value_id,
                        label=label,
                        sort_order=sort_order,
                        swatch=swatch,
                        original_values=[token],
                    )
                elif token not in existing.original_values:
                    existing.original_values.append(token)

        ordered = self._order(list(merged.values()), kind)
        if excluded:
            logger.debug("Excluded facet values", kind=kind.value, count=len(excluded))

        return FacetCleanResult(
            values=ordered,
            excluded=excluded,
            stats=FacetStats(
                original=len(values),
                tokens=token_count,
                processed=len(ordered),
                excluded=len(excluded),
            ),
        )

    # ------------------------------------------------------------------------
    # Tokenising & ordering
    # ------------------------------------------------------------------------

    @staticmethod
    def coerce_kind(kind: Union[FacetKind, str]) -> FacetKind:
        try:
            return FacetKind(kind)
        except ValueError:
            raise InvalidFacetValueError(f"unknown facet kind: {kind!r}", kind) from None

    @staticmethod
    def _tokens(raw: str, kind: FacetKind) -> List[str]:
        if kind.value in SPLIT_KINDS:
            tokens = [t.strip() for t in TOKEN_SPLIT_RE.split(raw)]
            tokens = [t for t in tokens if t]
            # Blank input is recorded as an exclusion, not silently dropped.
            return tokens or [raw.strip()]
        return [raw.strip()]

    @staticmethod
    def _order(values: List[CanonicalFacetValue], kind: FacetKind) -> List[CanonicalFacetValue]:
        if kind in (FacetKind.SIZE, FacetKind.CONDITION):
            return sorted(values, key=lambda v: (v.sort_order, v.label.lower()))
        return sorted(values, key=lambda v: v.label.lower())

    def _clean_token(self, token: str, kind: FacetKind) -> _Cleaned:
        if not token:
            return None
        if len(token) < MIN_LENGTH[kind.value] or len(token) > MAX_LENGTH[kind.value]:
            return None
        if token.lower() in PLACEHOLDER_VALUES:
            return None
        if kind is FacetKind.COLOR:
            return self._clean_color(token)
        if kind is FacetKind.SIZE:
            return self._clean_size(token)
        if kind is FacetKind.BRAND:
            return self._clean_brand(token)
        return self._clean_condition(token)

    # ------------------------------------------------------------------------
    # Colours
    # ------------------------------------------------------------------------

    @staticmethod
    def _clean_color(token: str) -> _Cleaned:
        lowered = collapse_whitespace(token.lower())
        lowered = COLOR_SYNONYMS.get(lowered, lowered)
        lowered = collapse_whitespace(lowered.replace("/", " ").replace("&", " "))
        lowered = COLOR_SYNONYMS.get(lowered, lowered)

        normalized = _COLOR_STRIP_RE.sub("", lowered)
        normalized = re.sub(r"[\s-]+", "-", normalized).strip("-")
        if len(normalized) < MIN_LENGTH["color"]:
            return None

        label = title_case(normalized.replace("-", " "))
        return normalized, label, None, color_swatch(normalized)

    # ------------------------------------------------------------------------
    # Sizes
    # ------------------------------------------------------------------------

    @staticmethod
    def _clean_size(token: str) -> _Cleaned:
        normalized = collapse_whitespace(token)
        if any(p.search(normalized) for p in INVALID_SIZE_PATTERNS):
            return None

        normalized = SIZE_SYNONYMS.get(normalized.lower(), normalized)
        # Region codes get a single space before the number ("eu38" -> "EU 38").
        prefix = _REGION_PREFIX_RE.match(normalized)
        if prefix:
            normalized = f"{prefix.group(1).upper()} {prefix.group(2)}"
        suffix = _REGION_SUFFIX_RE.match(normalized)
        if suffix:
            normalized = f"{suffix.group(1)} {suffix.group(2).upper()}"

        if not any(p.match(normalized) for p in VALID_SIZE_PATTERNS):
            return None
        if not is_business_valid_size(normalized):
            return None

        label = normalized.upper()
        return label, label, size_sort_order(label), None

    # ------------------------------------------------------------------------
    # Brands
    # ------------------------------------------------------------------------

    @staticmethod
    def _clean_brand(token: str) -> _Cleaned:
        cleaned = token
        for pattern, replacement in BRAND_CLEAN_PATTERNS:
            cleaned = pattern.sub(replacement, cleaned)
        cleaned = cleaned.strip()

        key = re.sub(r"[^a-z0-9\s&]", "", fold_accents(cleaned).lower())
        key = collapse_whitespace(key.replace("&", " and "))
        if len(key) < MIN_LENGTH["brand"]:
            return None

        words = []
        for word in cleaned.split():
            if word == "&":
                words.append(word)
            elif len(word) <= 2:
                words.append(word.upper())
            else:
                words.append(word[:1].upper() + word[1:].lower())
        return key, " ".join(words), None, None

    # ------------------------------------------------------------------------
    # Conditions
    # ------------------------------------------------------------------------

    @staticmethod
    def _clean_condition(token: str) -> _Cleaned:
        label = canonical_condition(token)
        if label is None:
            return None
        return label.lower(), label, float(CONDITION_ORDER.get(label, UNKNOWN_CONDITION_ORDER)), None


# ============================================================================
# Shared helpers
# ============================================================================

def canonical_condition(value: str) -> Optional[str]:
    """
    Canonical condition label for a free-form value.

    Known synonyms map to the shared table ("like new" -> "Pristine");
    anything else is title-cased. Values shorter than three characters
    return None.
    """
    lowered = collapse_whitespace(value.lower())
    if len(lowered) < MIN_LENGTH["condition"]:
        return None
    mapped = CONDITION_SYNONYMS.get(lowered)
    if mapped is None:
        mapped = CONDITION_SYNONYMS.get(lowered.replace("-", " "))
    return mapped or title_case(lowered)


def color_swatch(color: str) -> str:
    """Display class for a canonical colour; partial matches fall back to the closest base colour."""
    if color in COLOR_SWATCHES:
        return COLOR_SWATCHES[color]
    for name, swatch in COLOR_SWATCHES.items():
        if name in color:
            return swatch
    return DEFAULT_SWATCH


def is_business_valid_size(size: str) -> bool:
    """Range check for sizes that already passed the shape patterns."""
    if _NUMERIC_RE.match(size):
        low, high = NUMERIC_SIZE_RANGE
        return low <= float(size) <= high

    region = _REGION_PREFIX_RE.match(size)
    if region:
        code, number = region.group(1).upper(), float(region.group(2))
    else:
        region = _REGION_SUFFIX_RE.match(size)
        if region:
            code, number = region.group(2).upper(), float(region.group(1))
    if region:
        low, high = REGION_SIZE_RANGES[code]
        return low <= number <= high

    fraction = _FRACTION_RE.match(size)
    if fraction:
        low, high = FRACTION_SIZE_RANGE
        return all(low <= int(part) <= high for part in fraction.groups())

    return True


def size_sort_order(label: str) -> float:
    upper = label.upper()
    if upper in LETTER_SIZE_ORDER:
        return float(LETTER_SIZE_ORDER.index(upper))
    number = _LEADING_NUMBER_RE.match(upper)
    if number:
        return NUMERIC_SIZE_SORT_BASE + float(number.group(1))
    region = _REGION_PREFIX_RE.match(upper)
    if region:
        return NUMERIC_SIZE_SORT_BASE + float(region.group(2))
    return float(UNRANKED_SORT_ORDER)


_default_cleaner = FacetCleaner()


def clean_facet(values: Iterable[str], kind: Union[FacetKind, str]) -> FacetCleanResult:
    """Module-level shortcut for ``FacetCleaner().clean``."""
    return _default_cleaner.clean(values, kind)
