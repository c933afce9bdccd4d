"""
Pydantic models for the discovery engine.

Catalog records accept both camelCase (as stored by the catalog) and
snake_case field names. Request parameters are normalised in
FilterSelection so the composer only ever sees clean lists and bounds.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from core.logging import get_logger
from core.utils import split_csv
from discovery.constants.gender_patterns import SYNONYM_TO_GENDER
from discovery.exceptions import InvalidFilterSelectionError

logger = get_logger(__name__)


# ============================================================================
# Enums
# ============================================================================

class CategoryGroup(str, Enum):
    """Top-level storefront groups."""
    WOMEN = "women"
    MEN = "men"
    KIDS = "kids"
    ACCESSORIES = "accessories"


class FacetKind(str, Enum):
    COLOR = "color"
    SIZE = "size"
    BRAND = "brand"
    CONDITION = "condition"


class Gender(str, Enum):
    MEN = "men"
    WOMEN = "women"
    KIDS = "kids"
    UNISEX = "unisex"


class ResolutionSource(str, Enum):
    """Where a category selection's ids came from."""
    INDEX = "index"                    # live reverse index
    STATIC = "static"                  # subcategory -> concrete names table
    GENDER_LITERAL = "gender_literal"  # category literally named after the gender
    NAME_MATCH = "name_match"          # key was a plain category name
    NONE = "none"


# ============================================================================
# Catalog Records
# ============================================================================

class _CatalogModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CatalogCategory(_CatalogModel):
    id: str
    name: str
    slug: Optional[str] = None
    active: bool = True


class CatalogBrand(_CatalogModel):
    id: str
    name: str
    active: bool = True


class CategoryRef(_CatalogModel):
    category_id: str
    is_primary: bool = False
    name: Optional[str] = None


class BrandRef(_CatalogModel):
    brand_id: str
    is_primary: bool = False


class NamedValue(_CatalogModel):
    name: str


class CatalogItem(_CatalogModel):
    """A sellable catalog item. Read-only to the discovery engine."""
    id: str
    name: str = ""
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category_refs: List[CategoryRef] = Field(default_factory=list)
    primary_category_id: Optional[str] = None
    primary_category_name: Optional[str] = None
    brand_refs: List[BrandRef] = Field(default_factory=list)
    primary_brand_id: Optional[str] = None
    colors: List[NamedValue] = Field(default_factory=list)
    sizes: List[NamedValue] = Field(default_factory=list)
    condition: Optional[str] = None
    gender: Optional[str] = None
    price: Optional[float] = None
    sale_price: Optional[float] = None
    stock_quantity: Optional[int] = None
    sold_out: Optional[bool] = None
    is_sale: bool = False
    created_at: Optional[datetime] = None
    views: int = 0
    active: bool = True

    # Sort-only signals
    position: Optional[int] = None
    sold_count: int = 0
    average_rating: Optional[float] = None
    discount_percentage: Optional[float] = None
    is_featured: bool = False

    @property
    def category_names(self) -> List[str]:
        names = [ref.name for ref in self.category_refs if ref.name]
        if self.primary_category_name:
            names.append(self.primary_category_name)
        return names


# ============================================================================
# Classification
# ============================================================================

class CategoryClassification(BaseModel):
    kind: Literal["category"] = "category"
    group: CategoryGroup
    subcategory: Optional[str] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    cleaned_label: str
    original_name: str


class SizeClassification(BaseModel):
    kind: Literal["size"] = "size"
    original_value: str


class ExcludedClassification(BaseModel):
    kind: Literal["excluded"] = "excluded"
    original_name: Optional[str] = None
    reason: Optional[str] = None


ClassificationResult = Annotated[
    Union[CategoryClassification, SizeClassification, ExcludedClassification],
    Field(discriminator="kind"),
]


class CategoryGroupNode(BaseModel):
    id: CategoryGroup
    label: str
    subcategories: List[str] = Field(default_factory=list)


class TreeStats(BaseModel):
    total: int = 0
    processed: int = 0
    excluded: int = 0
    sizes: int = 0


class GroupedCategoryTree(BaseModel):
    """Category names organised into storefront groups."""
    groups: Dict[CategoryGroup, CategoryGroupNode]
    extra_sizes: List[str] = Field(default_factory=list)
    excluded_names: List[str] = Field(default_factory=list)
    stats: TreeStats = Field(default_factory=TreeStats)


# ============================================================================
# Facets
# ============================================================================

class CanonicalFacetValue(BaseModel):
    id: str
    label: str
    sort_order: Optional[float] = None
    swatch: Optional[str] = None
    original_values: List[str] = Field(default_factory=list)


class FacetStats(BaseModel):
    original: int = 0
    tokens: int = 0
    processed: int = 0
    excluded: int = 0


class FacetCleanResult(BaseModel):
    values: List[CanonicalFacetValue] = Field(default_factory=list)
    excluded: List[str] = Field(default_factory=list)
    stats: FacetStats = Field(default_factory=FacetStats)


# ============================================================================
# Selection Resolution
# ============================================================================

class SelectionResolution(BaseModel):
    selection: str
    category_ids: List[str] = Field(default_factory=list)
    category_names: List[str] = Field(default_factory=list)
    gender: Optional[Gender] = None
    source: ResolutionSource = ResolutionSource.NONE

    @property
    def is_empty(self) -> bool:
        return not self.category_ids


# ============================================================================
# Request Models
# ============================================================================

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_LIST_FIELDS = ("categories", "brands", "colors", "sizes", "conditions", "tags")


def _settings_from(info: ValidationInfo):
    context = info.context or {}
    settings = context.get("settings")
    if settings is None:
        from config.settings import get_settings
        settings = get_settings()
    return settings


class FilterSelection(BaseModel):
    """
    A shopper's filter selection, normalised.

    Comma-separated strings become lists, gender words are mapped to the
    canonical tokens (unknown ones dropped), reversed ranges are swapped,
    negative prices are discarded and pagination is clamped.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    search: Optional[str] = None
    gender: List[Gender] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    brands: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    conditions: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    min_price: Optional[float] = None
    max_price: Optional[float] = None
    price_range: Optional[str] = None

    is_sale: bool = False
    is_new: bool = False
    in_stock: bool = False
    include_sold_out: bool = False

    min_views: Optional[int] = None
    max_views: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    sort: str = "latest"
    page: int = 1
    limit: Optional[int] = Field(default=None, validate_default=True)

    @classmethod
    def from_params(cls, params: Dict[str, Any], settings=None) -> "FilterSelection":
        """
        Build a selection from raw request parameters.

        Raises:
            InvalidFilterSelectionError: if a parameter has the wrong shape.
        """
        try:
            return cls.model_validate(params, context={"settings": settings})
        except ValidationError as e:
            raise InvalidFilterSelectionError(
                "Invalid filter selection",
                errors=e.errors(include_url=False, include_context=False),
            ) from e

    # -- field normalisation ------------------------------------------------

    @field_validator(*_LIST_FIELDS, mode="before")
    @classmethod
    def split_lists(cls, v):
        return split_csv(v)

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, v):
        genders: List[str] = []
        for token in split_csv(v):
            if not isinstance(token, str):
                raise ValueError(f"gender values must be strings, got {type(token).__name__}")
            gender = SYNONYM_TO_GENDER.get(token.strip().lower())
            if gender is None:
                logger.warning("Dropping unknown gender value", value=token)
                continue
            if gender not in genders:
                genders.append(gender)
        return genders

    @field_validator("search", mode="before")
    @classmethod
    def normalize_search(cls, v, info: ValidationInfo):
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("search must be a string")
        v = " ".join(v.split())
        if not v:
            return None
        max_length = _settings_from(info).max_search_length
        return v[:max_length]

    @field_validator("min_price", "max_price", mode="before")
    @classmethod
    def normalize_price(cls, v):
        if v is None or v == "":
            return None
        try:
            value = float(v)
        except (TypeError, ValueError):
            logger.warning("Ignoring unparseable price bound", value=v)
            return None
        return value if value >= 0 else None

    @field_validator("min_views", "max_views", mode="before")
    @classmethod
    def normalize_views(cls, v):
        if v is None or v == "":
            return None
        try:
            value = int(v)
        except (TypeError, ValueError):
            logger.warning("Ignoring unparseable views bound", value=v)
            return None
        return max(value, 0)

    @field_validator("price_range", mode="before")
    @classmethod
    def normalize_price_range(cls, v):
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("priceRange must be a string")
        v = v.strip().lower()
        return v or None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def normalize_date(cls, v):
        if v is None or v == "":
            return None
        if isinstance(v, str) and _DATE_ONLY_RE.match(v.strip()):
            return datetime.strptime(v.strip(), "%Y-%m-%d").replace(tzinfo=timezone.utc)
        return v

    @field_validator("start_date", "end_date", mode="after")
    @classmethod
    def ensure_timezone(cls, v):
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("sort", mode="before")
    @classmethod
    def normalize_sort(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return "latest"
        if not isinstance(v, str):
            raise ValueError("sort must be a string")
        return v.strip()

    @field_validator("page", mode="before")
    @classmethod
    def normalize_page(cls, v):
        try:
            return max(int(v), 1)
        except (TypeError, ValueError):
            return 1

    @field_validator("limit", mode="before")
    @classmethod
    def normalize_limit(cls, v, info: ValidationInfo):
        settings = _settings_from(info)
        if v is None or v == "":
            return settings.default_page_size
        try:
            value = int(v)
        except (TypeError, ValueError):
            return settings.default_page_size
        return min(max(value, 1), settings.max_page_size)

    @model_validator(mode="after")
    def order_ranges(self):
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            self.min_price, self.max_price = self.max_price, self.min_price
        if self.min_views is not None and self.max_views is not None and self.min_views > self.max_views:
            self.min_views, self.max_views = self.max_views, self.min_views
        if self.start_date is not None and self.end_date is not None and self.start_date > self.end_date:
            self.start_date, self.end_date = self.end_date, self.start_date
        return self

    # -- helpers --------------------------------------------------------------

    def is_empty(self) -> bool:
        """True when the selection constrains nothing (sort and paging aside)."""
        return not (
            self.search
            or self.gender
            or any(getattr(self, name) for name in _LIST_FIELDS)
            or self.min_price is not None
            or self.max_price is not None
            or (self.price_range and self.price_range != "all")
            or self.is_sale
            or self.is_new
            or self.in_stock
            or self.min_views is not None
            or self.max_views is not None
            or self.start_date is not None
            or self.end_date is not None
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * (self.limit or 0)


# ============================================================================
# Sorting
# ============================================================================

class SortSpec(BaseModel):
    """Ordered sort fields plus the random / text-score flags."""
    key: str
    fields: List[Tuple[str, int]] = Field(default_factory=list)
    random: bool = False
    text_score: bool = False
    sample_size: Optional[int] = None

    def to_dict(self) -> Dict[str, int]:
        return {field: direction for field, direction in self.fields}


class SortOption(BaseModel):
    value: str
    label: str


# ============================================================================
# Response Models
# ============================================================================

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = -(-total // limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


class DiscoveryResult(BaseModel):
    items: List[CatalogItem] = Field(default_factory=list)
    pagination: Pagination
    applied_gender: Optional[Gender] = None
    sort: SortSpec
    predicate: Dict[str, Any] = Field(default_factory=dict)
    execution_time_ms: float = 0.0


class PriceRangeOption(BaseModel):
    value: str
    label: str
    min: Optional[float] = None
    max: Optional[float] = None


class GenderOption(BaseModel):
    value: Gender
    label: str


class FilterOptions(BaseModel):
    """Everything a storefront needs to render its filter sidebar."""
    categories: GroupedCategoryTree
    brands: List[CanonicalFacetValue] = Field(default_factory=list)
    genders: List[GenderOption] = Field(default_factory=list)
    price_ranges: List[PriceRangeOption] = Field(default_factory=list)
    sort_options: List[SortOption] = Field(default_factory=list)
    facets: Dict[FacetKind, FacetCleanResult] = Field(default_factory=dict)


class Suggestion(BaseModel):
    kind: Literal["category", "brand"]
    id: str
    label: str
