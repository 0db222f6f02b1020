# storefront/routers/catalog.py
from fastapi import APIRouter, Depends

from storefront.schemas.product import ProductRead
from storefront.services.catalog_service import (
    ALL_CATEGORIES,
    CATEGORIES,
    CatalogService,
    get_catalog_service,
)

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("", response_model=list[ProductRead])
def list_products(
    category: str = ALL_CATEGORIES,
    q: str | None = None,
    catalog: CatalogService = Depends(get_catalog_service),
):
    """
    List the storefront catalog.

    - Public endpoint.
    - Only in-stock products, newest first.
    - `category=ALL` (default) disables the category filter.
    - `q` is a case-insensitive search on the product name.
    """
    return catalog.list_storefront(category, q)


@router.get("/categories", response_model=list[str])
def list_categories():
    """
    Category choices offered by the admin form and the storefront filter.
    """
    return [ALL_CATEGORIES, *CATEGORIES]
