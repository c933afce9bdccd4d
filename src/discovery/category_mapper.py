"""
Category selection mapper.

Resolves storefront selection keys such as ``"women-all-bags"`` into the
concrete catalog category ids they stand for. Resolution reads an immutable
CategorySnapshot built from the full active catalog; a refresh builds a new
snapshot and publishes it with a single reference swap, so readers never
see a half-built index.

Resolution order for ``"<gender>-<subcategory>"``:
    1. live reverse index (``"<group>-<subcategory or label>"`` -> ids)
    2. static subcategory -> concrete category names table
    3. a category literally named after the gender ("MEN")
Keys without a gender prefix are treated as plain category names.
"""

import re
import threading
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Pattern, Sequence, Tuple

from config.settings import Settings, get_settings
from core.logging import get_logger
from core.utils import collapse_whitespace
from discovery.category_classifier import CategoryClassifier, category_match_key
from discovery.collaborators import CatalogSource
from discovery.constants.category_rules import STATIC_SUBCATEGORY_CATEGORIES
from discovery.constants.gender_patterns import SYNONYM_TO_GENDER
from discovery.exceptions import CollaboratorError, InvalidSelectionKeyError
from discovery.models import (
    CatalogBrand,
    CatalogCategory,
    CategoryClassification,
    GroupedCategoryTree,
    ResolutionSource,
    SelectionResolution,
)

logger = get_logger(__name__)

_SELECTION_GROUPS = ("men", "women", "kids")
_GROUP_ALIASES = {"accessories": "accessories", "accessory": "accessories"}
_SHIRT_TERMS = ("shirt", "shirts")
_TSHIRT_TERMS = ("tshirt", "tshirts", "t shirt", "t shirts")
_TSHIRT_RE = re.compile(r"\bt[\s-]?shirts?\b", re.IGNORECASE)
_SHIRT_RE = re.compile(r"\bshirts?\b", re.IGNORECASE)


def subcategory_key(text: str) -> str:
    """Normalised subcategory text: lower-case, separators as spaces, '&' as 'and'."""
    return category_match_key(re.sub(r"[-/_]+", " ", text))


def _flexible_pattern(term: str) -> Pattern[str]:
    """Word-prefix pattern where spaces also match hyphens and slashes."""
    words = [re.escape(word) for word in term.split()]
    return re.compile(r"\b" + r"[\s\-/]+".join(words), re.IGNORECASE)


# ============================================================================
# Snapshot
# ============================================================================

@dataclass(frozen=True)
class CategorySnapshot:
    """Immutable view of the active catalog taxonomy."""

    by_key: Mapping[str, Tuple[str, ...]]
    names_by_id: Mapping[str, str]
    ids_by_name: Mapping[str, Tuple[str, ...]]
    brands_by_id: Mapping[str, str]
    tree: GroupedCategoryTree
    built_at: float

    @classmethod
    def build(
        cls,
        categories: Iterable[CatalogCategory],
        brands: Iterable[CatalogBrand] = (),
        classifier: Optional[CategoryClassifier] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "CategorySnapshot":
        classifier = classifier or CategoryClassifier()
        active = [c for c in categories if c.active]

        by_key: Dict[str, List[str]] = {}
        names_by_id: Dict[str, str] = {}
        ids_by_name: Dict[str, List[str]] = {}
        for category in active:
            names_by_id[category.id] = category.name
            ids_by_name.setdefault(category_match_key(category.name), []).append(category.id)

            result = classifier.classify(category.name)
            if isinstance(result, CategoryClassification):
                label = result.subcategory or result.cleaned_label
                key = f"{result.group.value}-{subcategory_key(label)}"
                by_key.setdefault(key, []).append(category.id)

        return cls(
            by_key=MappingProxyType({k: tuple(v) for k, v in by_key.items()}),
            names_by_id=MappingProxyType(names_by_id),
            ids_by_name=MappingProxyType({k: tuple(v) for k, v in ids_by_name.items()}),
            brands_by_id=MappingProxyType({b.id: b.name for b in brands if b.active}),
            tree=classifier.organize_categories(active),
            built_at=clock(),
        )

    def ids_for_names(self, names: Iterable[str]) -> List[str]:
        """Category ids whose names equal any of ``names`` (case-insensitive)."""
        ids: List[str] = []
        for name in names:
            for category_id in self.ids_by_name.get(category_match_key(name), ()):
                if category_id not in ids:
                    ids.append(category_id)
        return ids

    def category_ids_matching(self, pattern: Pattern[str], exclude: Optional[Pattern[str]] = None) -> List[str]:
        return [
            category_id
            for category_id, name in self.names_by_id.items()
            if pattern.search(name) and not (exclude and exclude.search(name))
        ]

    def brand_ids_matching(self, pattern: Pattern[str]) -> List[str]:
        return [brand_id for brand_id, name in self.brands_by_id.items() if pattern.search(name)]


# ============================================================================
# Mapper
# ============================================================================

def _coerce(records: Iterable[Any], model):
    return [r if isinstance(r, model) else model.model_validate(r) for r in records]


class CategorySelectionMapper:
    """
    Owns the category snapshot and resolves selections against it.

    Usage:
        mapper = CategorySelectionMapper(catalog_source)
        mapper.refresh()
        mapper.resolve_selection("men-all-bags").category_ids
    """

    def __init__(
        self,
        catalog: Optional[CatalogSource] = None,
        classifier: Optional[CategoryClassifier] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._catalog = catalog
        self._classifier = classifier or CategoryClassifier()
        self._settings = settings or get_settings()
        self._clock = clock
        self._snapshot: Optional[CategorySnapshot] = None
        self._refresh_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._refresh_thread: Optional[threading.Thread] = None

    @classmethod
    def from_categories(
        cls,
        categories: Iterable[Any],
        brands: Iterable[Any] = (),
        **kwargs,
    ) -> "CategorySelectionMapper":
        """Mapper over a fixed catalog, without a CatalogSource."""
        mapper = cls(**kwargs)
        mapper._snapshot = CategorySnapshot.build(
            _coerce(categories, CatalogCategory),
            _coerce(brands, CatalogBrand),
            mapper._classifier,
            mapper._clock,
        )
        return mapper

    # ------------------------------------------------------------------------
    # Snapshot lifecycle
    # ------------------------------------------------------------------------

    @property
    def snapshot(self) -> CategorySnapshot:
        """The current snapshot; built once on first use if none exists yet."""
        snapshot = self._snapshot
        if snapshot is None:
            with self._refresh_lock:
                if self._snapshot is None:
                    logger.info("Category index cold start")
                    self._snapshot = self._build()
            snapshot = self._snapshot
        return snapshot

    @property
    def is_stale(self) -> bool:
        snapshot = self._snapshot
        if snapshot is None:
            return True
        return self._clock() - snapshot.built_at >= self._settings.category_index_ttl_seconds

    def refresh(self) -> CategorySnapshot:
        """
        Rebuild the snapshot from the full catalog and publish it.

        Raises:
            CollaboratorError: if the catalog source fails. The previous
                snapshot stays in place.
        """
        with self._refresh_lock:
            self._snapshot = self._build()
            return self._snapshot

    def notify_catalog_changed(self) -> None:
        """Signal that categories or brands changed; rebuilds immediately."""
        logger.info("Catalog change notified, rebuilding category index")
        self.refresh()

    def refresh_if_stale(self) -> bool:
        if not self.is_stale:
            return False
        self.refresh()
        return True

    def _build(self) -> CategorySnapshot:
        if self._catalog is None:
            current = self._snapshot
            if current is not None:
                return current
            return CategorySnapshot.build([], [], self._classifier, self._clock)

        categories = self._fetch("list_active_categories", CatalogCategory)
        brands = self._fetch("list_active_brands", CatalogBrand)
        snapshot = CategorySnapshot.build(categories, brands, self._classifier, self._clock)
        logger.info(
            "Category index refreshed",
            categories=len(snapshot.names_by_id),
            keys=len(snapshot.by_key),
            brands=len(snapshot.brands_by_id),
        )
        return snapshot

    def _fetch(self, operation: str, model) -> List[Any]:
        try:
            records = getattr(self._catalog, operation)()
        except Exception as e:
            logger.error("Catalog fetch failed", operation=operation, error=str(e))
            raise CollaboratorError("CatalogSource", operation, e) from e
        return _coerce(records, model)

    def start_auto_refresh(self, interval: Optional[float] = None) -> None:
        """Rebuild the snapshot every ``interval`` seconds on a daemon thread."""
        if self._refresh_thread is not None and self._refresh_thread.is_alive():
            return
        interval = interval or self._settings.category_index_ttl_seconds
        self._stop_event.clear()
        self._refresh_thread = threading.Thread(
            target=self._auto_refresh_loop,
            args=(interval,),
            name="category-index-refresh",
            daemon=True,
        )
        self._refresh_thread.start()

    def stop_auto_refresh(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        thread = self._refresh_thread
        if thread is not None:
            thread.join(timeout)
        self._refresh_thread = None

    def _auto_refresh_loop(self, interval: float) -> None:
        while not self._stop_event.wait(interval):
            try:
                self.refresh()
            except CollaboratorError as e:
                # Keep serving the previous snapshot; the next tick retries.
                logger.warning("Background category refresh failed", error=str(e))

    # ------------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------------

    def resolve_selection(self, key: str) -> SelectionResolution:
        """
        Resolve one selection key to category ids and an implied gender.

        Raises:
            InvalidSelectionKeyError: if ``key`` is not a non-empty string.
        """
        if not isinstance(key, str):
            raise InvalidSelectionKeyError(key)
        tokens = [t.strip() for t in key.strip().lower().replace("/", "-").split("-")]
        tokens = [t for t in tokens if t]
        if not tokens:
            raise InvalidSelectionKeyError(key)

        snapshot = self.snapshot
        gender = SYNONYM_TO_GENDER.get(tokens[0])
        if gender not in _SELECTION_GROUPS:
            gender = None
        group = gender or _GROUP_ALIASES.get(tokens[0])

        if group and len(tokens) > 1:
            ids, source = self._resolve_grouped(snapshot, group, " ".join(tokens[1:]))
        else:
            gender = None
            ids, source = self._resolve_plain(snapshot, " ".join(tokens))

        resolution = SelectionResolution(
            selection=key,
            category_ids=ids,
            category_names=[snapshot.names_by_id[i] for i in ids],
            gender=gender,
            source=source,
        )
        logger.debug(
            "Resolved category selection",
            selection=key,
            source=resolution.source.value,
            ids=len(resolution.category_ids),
            gender=resolution.gender.value if resolution.gender else None,
        )
        return resolution

    def resolve_selections(self, keys: Sequence[str]) -> List[SelectionResolution]:
        return [self.resolve_selection(key) for key in keys]

    @staticmethod
    def _resolve_grouped(
        snapshot: CategorySnapshot, group: str, subcategory: str
    ) -> Tuple[List[str], ResolutionSource]:
        sub_key = subcategory_key(subcategory)

        ids = snapshot.by_key.get(f"{group}-{sub_key}")
        if ids:
            return list(ids), ResolutionSource.INDEX

        static_names = STATIC_SUBCATEGORY_CATEGORIES.get(sub_key)
        if static_names:
            # Product-type subcategories carry no gender category constraint.
            return snapshot.ids_for_names(static_names), ResolutionSource.STATIC

        return snapshot.ids_for_names([group]), ResolutionSource.GENDER_LITERAL

    @staticmethod
    def _resolve_plain(snapshot: CategorySnapshot, term: str) -> Tuple[List[str], ResolutionSource]:
        term = collapse_whitespace(term)
        if term in _SHIRT_TERMS:
            ids = snapshot.category_ids_matching(_SHIRT_RE, exclude=_TSHIRT_RE)
        elif term in _TSHIRT_TERMS:
            ids = snapshot.category_ids_matching(_TSHIRT_RE)
        else:
            ids = snapshot.category_ids_matching(_flexible_pattern(term))
        return ids, ResolutionSource.NAME_MATCH

    def resolve_brands(self, names: Iterable[str]) -> List[str]:
        """Brand ids whose names contain any of ``names`` (hyphens read as spaces)."""
        snapshot = self.snapshot
        ids: List[str] = []
        for name in names:
            term = collapse_whitespace(name.replace("-", " "))
            if not term:
                continue
            words = [re.escape(word) for word in term.split()]
            pattern = re.compile(r"[\s\-]+".join(words), re.IGNORECASE)
            for brand_id in snapshot.brand_ids_matching(pattern):
                if brand_id not in ids:
                    ids.append(brand_id)
        return ids

    def category_ids_matching(self, pattern: Pattern[str]) -> List[str]:
        return self.snapshot.category_ids_matching(pattern)

    def brand_ids_matching(self, pattern: Pattern[str]) -> List[str]:
        return self.snapshot.brand_ids_matching(pattern)

    @property
    def category_names(self) -> Mapping[str, str]:
        return self.snapshot.names_by_id

    @property
    def tree(self) -> GroupedCategoryTree:
        return self.snapshot.tree
