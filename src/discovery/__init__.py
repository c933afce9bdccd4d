"""
Catalog discovery engine.

Turns a messy catalog taxonomy into consistent filter facets and composes
precise multi-facet queries from shopper selections.

Usage:
    from discovery import DiscoveryService, FilterSelection

    service = DiscoveryService(catalog_source, item_store)
    result = service.discover(FilterSelection(categories=["women-all-bags"]))
"""

from discovery.category_classifier import CategoryClassifier, classify, organize_categories
from discovery.category_mapper import CategorySelectionMapper, CategorySnapshot
from discovery.exceptions import (
    CollaboratorError,
    DiscoveryError,
    InvalidFacetValueError,
    InvalidFilterSelectionError,
    InvalidSelectionKeyError,
    StructuralError,
)
from discovery.facet_cleaner import FacetCleaner, clean_facet
from discovery.gender import GenderDetector, apply_strict_gender_filter, detect_gender
from discovery.models import FilterSelection, SortSpec
from discovery.predicate_composer import ComposedPredicate, PredicateComposer, compose_predicate
from discovery.service import DiscoveryService, configure_discovery_service, get_discovery_service
from discovery.sort_builder import SortBuilder, build_sort_spec

__all__ = [
    "CategoryClassifier",
    "CategorySelectionMapper",
    "CategorySnapshot",
    "ComposedPredicate",
    "DiscoveryService",
    "FacetCleaner",
    "FilterSelection",
    "GenderDetector",
    "PredicateComposer",
    "SortBuilder",
    "SortSpec",
    "apply_strict_gender_filter",
    "build_sort_spec",
    "classify",
    "clean_facet",
    "compose_predicate",
    "configure_discovery_service",
    "detect_gender",
    "get_discovery_service",
    "organize_categories",
    "CollaboratorError",
    "DiscoveryError",
    "InvalidFacetValueError",
    "InvalidFilterSelectionError",
    "InvalidSelectionKeyError",
    "StructuralError",
]
