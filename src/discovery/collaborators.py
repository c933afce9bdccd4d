"""
Interfaces of the collaborators the discovery engine consumes.

The engine never talks to a database itself: it reads the taxonomy from a
CatalogSource and hands composed predicates to an ItemStore.
"""

from typing import List, Protocol, Sequence, Tuple, Union, runtime_checkable

from discovery.models import CatalogBrand, CatalogCategory, CatalogItem, SortSpec
from discovery.predicates import Predicate

# Records may arrive as models or as plain dicts in the catalog's own shape.
CategoryRecord = Union[CatalogCategory, dict]
BrandRecord = Union[CatalogBrand, dict]
ItemRecord = Union[CatalogItem, dict]


@runtime_checkable
class CatalogSource(Protocol):
    """Read-only access to the active catalog taxonomy."""

    def list_active_categories(self) -> Sequence[CategoryRecord]:
        ...

    def list_active_brands(self) -> Sequence[BrandRecord]:
        ...


@runtime_checkable
class ItemStore(Protocol):
    """Executes a composed predicate and returns one page of items plus the total match count."""

    def query_items(
        self,
        predicate: Predicate,
        sort_spec: SortSpec,
        offset: int,
        limit: int,
    ) -> Tuple[List[ItemRecord], int]:
        ...
