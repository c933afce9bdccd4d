"""
Pytest configuration and shared fixtures for the discovery engine tests.
"""
import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Any, List, Tuple

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

# Load environment variables
from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"))


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# In-memory collaborators
# ============================================================================

class InMemoryCatalog:
    """CatalogSource over fixed lists; counts fetches."""

    def __init__(self, categories, brands):
        self.categories = list(categories)
        self.brands = list(brands)
        self.category_calls = 0

    def list_active_categories(self):
        self.category_calls += 1
        return [c for c in self.categories if c.active]

    def list_active_brands(self):
        return [b for b in self.brands if b.active]


class InMemoryItemStore:
    """ItemStore that evaluates predicates in process and sorts by the SortSpec fields."""

    def __init__(self, items):
        self.items = list(items)
        self.calls: List[Tuple[Any, Any, int, int]] = []

    def query_items(self, predicate, sort_spec, offset, limit):
        self.calls.append((predicate, sort_spec, offset, limit))
        matches = [item for item in self.items if predicate.evaluate(item)]
        for field, direction in reversed(sort_spec.fields):
            present = [m for m in matches if getattr(m, field, None) is not None]
            missing = [m for m in matches if getattr(m, field, None) is None]
            present.sort(key=lambda m: getattr(m, field), reverse=direction < 0)
            matches = present + missing
        return matches[offset:offset + limit], len(matches)


class FailingItemStore:
    def query_items(self, predicate, sort_spec, offset, limit):
        raise ConnectionError("store unavailable")


class FailingCatalog:
    def list_active_categories(self):
        raise TimeoutError("catalog timed out")

    def list_active_brands(self):
        return []


# ============================================================================
# Fixtures: Catalog Data
# ============================================================================

@pytest.fixture
def now():
    return NOW


@pytest.fixture
def settings():
    from config.settings import get_settings_for_testing
    return get_settings_for_testing()


@pytest.fixture
def sample_categories():
    from discovery.models import CatalogCategory
    names = {
        "c-tote": "Tote Bags",
        "c-handbags": "Handbags",
        "c-backpack": "Backpack",
        "c-heels": "Heels & Wedges",
        "c-sneakers": "Sneakers",
        "c-dresses": "Dresses & Gowns",
        "c-shirts": "Shirts",
        "c-tshirts": "T Shirts",
        "c-ties": "Ties & Cufflinks",
        "c-men": "MEN",
        "c-women": "WOMEN",
        "c-jewellery": "Fine Jewellery",
        "c-watches": "Watches",
        "c-kids": "Kids Clothing",
        "c-2t": "2T",
        "c-a": "A",
    }
    categories = [CatalogCategory(id=cid, name=name, slug=cid) for cid, name in names.items()]
    categories.append(CatalogCategory(id="c-old", name="Old Stock", active=False))
    return categories


@pytest.fixture
def sample_brands():
    from discovery.models import CatalogBrand
    return [
        CatalogBrand(id="b-gucci", name="Gucci"),
        CatalogBrand(id="b-lv", name="Louis Vuitton"),
        CatalogBrand(id="b-ow", name="Off-White"),
        CatalogBrand(id="b-gone", name="Gone Brand", active=False),
    ]


def _item(**kwargs):
    from discovery.models import CatalogItem
    defaults = {"created_at": NOW - timedelta(days=60), "stock_quantity": 5, "sold_out": False}
    defaults.update(kwargs)
    return CatalogItem.model_validate(defaults)


@pytest.fixture
def sample_items():
    return [
        _item(
            id="i-tie", name="Men's Classic Tie", description="Silk tie for the office",
            category_refs=[{"categoryId": "c-ties", "isPrimary": True}], primary_category_id="c-ties",
            brand_refs=[{"brandId": "b-gucci"}], primary_brand_id="b-gucci",
            colors=[{"name": "Navy"}], sizes=[{"name": "One Size"}],
            gender="men", condition="Pristine", price=120, views=40,
        ),
        _item(
            id="i-scarf", name="Women's Silk Scarf", description="Printed silk scarf",
            category_refs=[{"categoryId": "c-women"}], primary_category_id="c-women",
            colors=[{"name": "Pink"}], gender="women", condition="Good Condition", price=80, views=15,
        ),
        _item(
            id="i-tote", name="Leather Tote Bag", description="Roomy tote for her",
            category_refs=[{"categoryId": "c-tote"}], primary_category_id="c-tote",
            brand_refs=[{"brandId": "b-lv"}], primary_brand_id="b-lv",
            colors=[{"name": "Black"}], sizes=[{"name": "One Size"}],
            gender="women", condition="New With Tags", price=250, views=90,
            created_at=NOW - timedelta(days=3),
        ),
        _item(
            id="i-backpack", name="Leather Backpack", description="Everyday backpack",
            category_refs=[{"categoryId": "c-backpack"}], primary_category_id="c-backpack",
            brand_refs=[{"brandId": "b-ow"}], primary_brand_id="b-ow",
            colors=[{"name": "Black"}], gender="unisex", price=150, views=60, tags=["travel"],
        ),
        _item(
            id="i-jacket", name="Kids Denim Jacket", description="Warm jacket for children",
            category_refs=[{"categoryId": "c-kids"}], primary_category_id="c-kids",
            colors=[{"name": "Blue"}], sizes=[{"name": "4"}, {"name": "6"}],
            gender="kids", price=45, stock_quantity=0, sold_out=True, views=5,
        ),
        _item(
            id="i-heels", name="Red Stiletto Heels", description="Evening heels",
            category_refs=[{"categoryId": "c-heels"}], primary_category_id="c-heels",
            colors=[{"name": "Red"}], sizes=[{"name": "38"}, {"name": "39"}],
            gender="women", price=300, is_sale=True, views=120, created_at=NOW - timedelta(days=10),
        ),
        _item(
            id="i-oxford", name="Men's Oxford Shirt", description="Cotton oxford shirt",
            category_refs=[{"categoryId": "c-shirts"}], primary_category_id="c-shirts",
            colors=[{"name": "White"}], sizes=[{"name": "M"}, {"name": "L"}],
            gender="men", price=60, views=30, tags=["office"],
        ),
        _item(
            id="i-tee", name="Graphic T Shirt", description="Relaxed cotton tee",
            category_refs=[{"categoryId": "c-tshirts"}], primary_category_id="c-tshirts",
            colors=[{"name": "White"}], sizes=[{"name": "S"}, {"name": "M"}],
            gender="unisex", price=25, views=70,
        ),
        _item(
            id="i-archived", name="Archived Sneakers",
            category_refs=[{"categoryId": "c-sneakers"}], primary_category_id="c-sneakers",
            gender="unisex", price=90, active=False,
        ),
    ]


# ============================================================================
# Fixtures: Components
# ============================================================================

@pytest.fixture
def mapper(sample_categories, sample_brands, settings):
    from discovery.category_mapper import CategorySelectionMapper
    return CategorySelectionMapper.from_categories(sample_categories, sample_brands, settings=settings)


@pytest.fixture
def composer(mapper, settings):
    from discovery.predicate_composer import PredicateComposer
    return PredicateComposer(mapper, settings=settings, clock=lambda: NOW)


@pytest.fixture
def catalog(sample_categories, sample_brands):
    return InMemoryCatalog(sample_categories, sample_brands)


@pytest.fixture
def item_store(sample_items):
    return InMemoryItemStore(sample_items)


@pytest.fixture
def service(catalog, item_store, settings):
    from discovery.service import DiscoveryService
    svc = DiscoveryService(catalog, item_store, settings=settings, clock=lambda: NOW)
    yield svc
    svc.close()


@pytest.fixture
def failing_store():
    return FailingItemStore()


@pytest.fixture
def failing_catalog():
    return FailingCatalog()


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "slow: marks tests as slow")
