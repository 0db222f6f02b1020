# storefront/services/catalog_service.py
import logging
import threading
import time
from functools import lru_cache
from typing import Callable, Iterable

from storefront.core.config import get_settings
from storefront.core.supabase_client import supabase_public
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.product import ProductRead

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "ALL"

CATEGORIES: tuple[str, ...] = (
    "Perfumes",
    "Makeup",
    "Skin Care",
    "Hair Care",
    "Accessories",
    "Bags",
    "Watches",
    "Clothing",
    "Shoes",
    "Gifts",
    "Other",
)

# Cache keys: storefront list and admin list are cached separately
STOREFRONT_PRODUCTS = "products"
ADMIN_PRODUCTS = "admin-products"


def filter_products(
    products: Iterable[ProductRead],
    category: str | None = ALL_CATEGORIES,
    search: str | None = None,
) -> list[ProductRead]:
    """
    Category AND name search, preserving input order.

    - category "ALL" (or empty) matches every product, otherwise exact match
    - search is a case-insensitive substring of the name; empty matches all
    """
    needle = (search or "").lower()
    result = []
    for product in products:
        if category and category != ALL_CATEGORIES and product.category != category:
            continue
        if needle and needle not in product.name.lower():
            continue
        result.append(product)
    return result


class ProductListCache:
    """
    Keyed cache of product lists.

    Mutations never patch a cached list; they invalidate it so the next
    read refetches from Supabase. Each key carries a generation, bumped on
    invalidation: a load that started before an invalidation is returned to
    its caller but not stored.
    """

    def __init__(self, ttl_seconds: int = 300):
        self.ttl_seconds = ttl_seconds
        self._store: dict[str, tuple[list[ProductRead], float]] = {}
        self._generations: dict[str, int] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> list[ProductRead] | None:
        with self._lock:
            entry = self._store.get(key)
            if not entry:
                return None
            value, expires = entry
            if time.monotonic() > expires:
                del self._store[key]
                return None
            return list(value)

    def set(self, key: str, value: list[ProductRead]) -> None:
        with self._lock:
            self._store[key] = (list(value), time.monotonic() + self.ttl_seconds)

    def get_or_load(self, key: str, loader: Callable[[], list[ProductRead]]) -> list[ProductRead]:
        cached = self.get(key)
        if cached is not None:
            return cached
        with self._lock:
            generation = self._generations.get(key, 0)
        value = loader()
        with self._lock:
            if self._generations.get(key, 0) == generation:
                self._store[key] = (list(value), time.monotonic() + self.ttl_seconds)
            else:
                logger.debug("Discarded %s list loaded before invalidation", key)
        return list(value)

    def invalidate(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._store.pop(key, None)
                self._generations[key] = self._generations.get(key, 0) + 1
        logger.debug("Invalidated product lists: %s", ", ".join(keys))


class CatalogService:
    """
    Read side of the product catalog for the storefront and admin views.
    """

    def __init__(self, repo: ProductRepository, cache: ProductListCache):
        self.repo = repo
        self.cache = cache

    def _storefront_products(self) -> list[ProductRead]:
        return self.cache.get_or_load(
            STOREFRONT_PRODUCTS,
            lambda: self.repo.list_products(only_in_stock=True),
        )

    def list_storefront(
        self,
        category: str | None = ALL_CATEGORIES,
        search: str | None = None,
    ) -> list[ProductRead]:
        """In-stock products, newest first, filtered."""
        return filter_products(self._storefront_products(), category, search)

    def find_storefront_product(self, product_id: str) -> ProductRead | None:
        for product in self._storefront_products():
            if product.id == product_id:
                return product
        return None

    def list_admin(self, repo: ProductRepository, search: str | None = None) -> list[ProductRead]:
        """
        Every product (in stock or not), newest first, filtered by name.

        Loaded through the admin's own repository so RLS sees the admin.
        """
        products = self.cache.get_or_load(ADMIN_PRODUCTS, lambda: repo.list_products())
        return filter_products(products, ALL_CATEGORIES, search)

    def invalidate_all(self) -> None:
        self.cache.invalidate(STOREFRONT_PRODUCTS, ADMIN_PRODUCTS)


@lru_cache
def get_catalog_service() -> CatalogService:
    """FastAPI dependency returning the process-wide catalog service."""
    settings = get_settings()
    return CatalogService(
        ProductRepository(supabase_public()),
        ProductListCache(settings.PRODUCT_CACHE_TTL_SECONDS),
    )
