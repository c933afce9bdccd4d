"""
Discovery service.

Wires the classifier, facet cleaner, category mapper, predicate composer,
sort builder and strict gender filter around the two collaborators
(CatalogSource, ItemStore).

A discovery request flows:
    FilterSelection -> ComposedPredicate + SortSpec -> ItemStore.query_items
    -> strict gender post-filter (when a single gender is in effect)
    -> pagination -> DiscoveryResult

Collaborator failures surface as CollaboratorError and are not retried here.
"""

import re
import threading
import time
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from config.settings import Settings, get_settings
from core.logging import get_logger, log_context
from discovery.category_classifier import CategoryClassifier
from discovery.category_mapper import CategorySelectionMapper
from discovery.collaborators import CatalogSource, ItemStore
from discovery.exceptions import CollaboratorError, DiscoveryError
from discovery.facet_cleaner import FacetCleaner
from discovery.gender import GenderDetector
from discovery.models import (
    CatalogCategory,
    CatalogItem,
    ClassificationResult,
    DiscoveryResult,
    FacetCleanResult,
    FacetKind,
    FilterOptions,
    FilterSelection,
    Gender,
    GenderOption,
    GroupedCategoryTree,
    Pagination,
    PriceRangeOption,
    SelectionResolution,
    SortSpec,
    Suggestion,
)
from discovery.predicate_composer import PRICE_PRESETS, ComposedPredicate, PredicateComposer
from discovery.predicates import Predicate
from discovery.sort_builder import SortBuilder

logger = get_logger(__name__)

MIN_SUGGESTION_LENGTH = 2

GENDER_LABELS: Tuple[Tuple[Gender, str], ...] = (
    (Gender.WOMEN, "Women"),
    (Gender.MEN, "Men"),
    (Gender.KIDS, "Kids"),
    (Gender.UNISEX, "Unisex"),
)


class DiscoveryService:
    """
    Facade over the discovery components.

    Usage:
        service = DiscoveryService(catalog_source, item_store)
        result = service.discover({"categories": "women-all-bags", "colors": "black"})
        result.pagination.total
    """

    def __init__(
        self,
        catalog: CatalogSource,
        store: ItemStore,
        settings: Optional[Settings] = None,
        classifier: Optional[CategoryClassifier] = None,
        detector: Optional[GenderDetector] = None,
        mapper: Optional[CategorySelectionMapper] = None,
        clock=None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.classifier = classifier or CategoryClassifier()
        self.cleaner = FacetCleaner()
        self.detector = detector or GenderDetector()
        self.mapper = mapper or CategorySelectionMapper(catalog, self.classifier, self.settings)
        self.composer = PredicateComposer(self.mapper, self.detector, self.settings, clock)
        self.sorter = SortBuilder(self.settings)

        if self.settings.category_index_auto_refresh:
            self.mapper.start_auto_refresh()

    def close(self) -> None:
        self.mapper.stop_auto_refresh()

    # ------------------------------------------------------------------------
    # Pure operations
    # ------------------------------------------------------------------------

    def classify(self, name: str) -> ClassificationResult:
        return self.classifier.classify(name)

    def organize_categories(
        self, categories: Optional[Iterable[Union[CatalogCategory, str]]] = None
    ) -> GroupedCategoryTree:
        """Grouped tree for ``categories``, or for the current catalog snapshot when omitted."""
        if categories is None:
            return self.mapper.tree
        return self.classifier.organize_categories(categories)

    def clean_facet(self, values: List[str], kind: Union[FacetKind, str]) -> FacetCleanResult:
        return self.cleaner.clean(values, kind)

    def resolve_selection(self, key: str) -> SelectionResolution:
        return self.mapper.resolve_selection(key)

    def build_predicate(
        self,
        selection: Union[FilterSelection, Mapping[str, Any]],
        now: Optional[datetime] = None,
    ) -> ComposedPredicate:
        return self.composer.compose(self._selection(selection), now=now)

    def build_sort_spec(self, sort_key: Optional[str], search_term: Optional[str] = None) -> SortSpec:
        return self.sorter.build(sort_key, search_term)

    def apply_strict_gender_filter(self, items: Iterable[Any], gender: Optional[str]) -> List[Any]:
        return self.detector.apply_strict_filter(items, gender, self.mapper.category_names)

    # ------------------------------------------------------------------------
    # Catalog lifecycle
    # ------------------------------------------------------------------------

    def refresh_categories(self) -> None:
        self.mapper.refresh()

    def refresh_categories_if_stale(self) -> bool:
        """Rebuild the category snapshot when it is older than the TTL. Returns True if rebuilt."""
        return self.mapper.refresh_if_stale()

    def notify_catalog_changed(self) -> None:
        self.mapper.notify_catalog_changed()

    # ------------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------------

    def discover(self, selection: Union[FilterSelection, Mapping[str, Any]]) -> DiscoveryResult:
        """
        Run one discovery request end to end.

        Raises:
            InvalidFilterSelectionError: for structurally invalid parameters.
            CollaboratorError: if the item store or catalog source fails.
        """
        t_start = time.time()
        selection = self._selection(selection)

        with log_context(request_id=uuid.uuid4().hex[:12]):
            composed = self.build_predicate(selection)
            sort_spec = self.build_sort_spec(selection.sort, selection.search)
            limit = selection.limit or self.settings.default_page_size

            if composed.strict_gender:
                items, total = self._strict_page(composed, sort_spec, selection.offset, limit)
            else:
                raw, total = self._query(composed.predicate, sort_spec, selection.offset, limit)
                items = self._items(raw)

            execution_ms = round((time.time() - t_start) * 1000, 2)
            logger.info(
                "Discovery completed",
                total=total,
                returned=len(items),
                page=selection.page,
                strict_gender=composed.strict_gender,
                sort=sort_spec.key,
                execution_ms=execution_ms,
            )
            return DiscoveryResult(
                items=items,
                pagination=Pagination.build(selection.page, limit, total),
                applied_gender=composed.strict_gender,
                sort=sort_spec,
                predicate=composed.to_dict(),
                execution_time_ms=execution_ms,
            )

    def _strict_page(
        self, composed: ComposedPredicate, sort_spec: SortSpec, offset: int, limit: int
    ) -> Tuple[List[CatalogItem], int]:
        scan_limit = self.settings.strict_filter_scan_limit
        raw, store_total = self._query(composed.predicate, sort_spec, 0, scan_limit)
        if store_total > scan_limit:
            logger.warning(
                "Strict gender filter scanned a truncated candidate list",
                store_total=store_total,
                scan_limit=scan_limit,
            )
        kept = self.detector.apply_strict_filter(
            self._items(raw), composed.strict_gender, self.mapper.category_names
        )
        return kept[offset:offset + limit], len(kept)

    def _query(
        self, predicate: Predicate, sort_spec: SortSpec, offset: int, limit: int
    ) -> Tuple[List[Any], int]:
        try:
            items, total = self.store.query_items(predicate, sort_spec, offset, limit)
        except Exception as e:
            logger.error("Item store query failed", error=str(e), offset=offset, limit=limit)
            raise CollaboratorError("ItemStore", "query_items", e) from e
        return list(items), int(total)

    @staticmethod
    def _items(records: Iterable[Any]) -> List[CatalogItem]:
        return [r if isinstance(r, CatalogItem) else CatalogItem.model_validate(r) for r in records]

    def _selection(self, selection: Union[FilterSelection, Mapping[str, Any]]) -> FilterSelection:
        if isinstance(selection, FilterSelection):
            return selection
        return FilterSelection.from_params(dict(selection), settings=self.settings)

    # ------------------------------------------------------------------------
    # Filter options & suggestions
    # ------------------------------------------------------------------------

    def filter_options(self, raw_facets: Optional[Mapping[str, List[str]]] = None) -> FilterOptions:
        """
        Assemble the filter sidebar: category tree, cleaned brands, genders,
        price presets, sort options and any raw facet lists passed in
        (keyed by facet kind) after cleaning.
        """
        snapshot = self.mapper.snapshot
        brands = self.cleaner.clean(sorted(snapshot.brands_by_id.values()), FacetKind.BRAND)

        facets: Dict[FacetKind, FacetCleanResult] = {}
        for kind, values in (raw_facets or {}).items():
            facet_kind = self.cleaner.coerce_kind(kind)
            facets[facet_kind] = self.cleaner.clean(values, facet_kind)

        price_ranges = [PriceRangeOption(value="all", label="All Prices")]
        price_ranges.extend(
            PriceRangeOption(value=value, label=label, min=low, max=high)
            for value, (low, high, label) in PRICE_PRESETS.items()
        )
        return FilterOptions(
            categories=snapshot.tree,
            brands=brands.values,
            genders=[GenderOption(value=g, label=label) for g, label in GENDER_LABELS],
            price_ranges=price_ranges,
            sort_options=self.sorter.available_options(),
            facets=facets,
        )

    def suggest(self, term: Optional[str], limit: Optional[int] = None) -> List[Suggestion]:
        """Category and brand names with a word starting with ``term``."""
        if not isinstance(term, str):
            return []
        term = term.strip()
        if len(term) < MIN_SUGGESTION_LENGTH:
            return []
        limit = limit or self.settings.suggestion_limit
        pattern = re.compile(r"\b" + re.escape(term), re.IGNORECASE)
        snapshot = self.mapper.snapshot

        suggestions: List[Suggestion] = []
        seen = set()
        candidates = [
            ("category", category_id, name)
            for category_id, name in sorted(snapshot.names_by_id.items(), key=lambda kv: kv[1].lower())
        ] + [
            ("brand", brand_id, name)
            for brand_id, name in sorted(snapshot.brands_by_id.items(), key=lambda kv: kv[1].lower())
        ]
        for kind, record_id, name in candidates:
            if len(suggestions) >= limit:
                break
            key = (kind, name.lower())
            if key in seen or not pattern.search(name):
                continue
            seen.add(key)
            suggestions.append(Suggestion(kind=kind, id=record_id, label=name))
        return suggestions


# =============================================================================
# Singleton
# =============================================================================

_service: Optional[DiscoveryService] = None
_service_lock = threading.Lock()


def configure_discovery_service(
    catalog: CatalogSource, store: ItemStore, settings: Optional[Settings] = None
) -> DiscoveryService:
    """Create (or replace) the process-wide DiscoveryService."""
    global _service
    with _service_lock:
        if _service is not None:
            _service.close()
        _service = DiscoveryService(catalog, store, settings=settings)
    return _service


def get_discovery_service() -> DiscoveryService:
    """
    Get the configured DiscoveryService singleton.

    Raises:
        DiscoveryError: if configure_discovery_service() has not been called.
    """
    service = _service
    if service is None:
        with _service_lock:
            service = _service
            if service is None:
                raise DiscoveryError("DiscoveryService is not configured; call configure_discovery_service() first")
    return service


def reset_discovery_service() -> None:
    global _service
    with _service_lock:
        if _service is not None:
            _service.close()
        _service = None
