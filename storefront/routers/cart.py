# storefront/routers/cart.py
from fastapi import APIRouter, Depends

from storefront.core.errors import NotFound
from storefront.schemas.cart import CartItemAdd, CartSummary
from storefront.services.catalog_service import CatalogService, get_catalog_service
from storefront.sessions import BrowsingSession, get_browsing_session

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("", response_model=CartSummary)
def get_my_cart(browsing: BrowsingSession = Depends(get_browsing_session)):
    """
    Get this browser's cart summary.
    """
    return browsing.cart.summary()


@router.post("", response_model=CartSummary)
def add_to_cart(
    payload: CartItemAdd,
    browsing: BrowsingSession = Depends(get_browsing_session),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """
    Add one unit of a catalog product to the cart.

    Adding a product that is already in the cart bumps its quantity.
    Returns the updated cart summary.
    """
    product = catalog.find_storefront_product(payload.product_id)
    if product is None:
        raise NotFound("Product not found")
    browsing.cart.add_item(product)
    return browsing.cart.summary()


@router.delete("/{product_id}", response_model=CartSummary)
def remove_cart_item(
    product_id: str,
    browsing: BrowsingSession = Depends(get_browsing_session),
):
    """
    Remove a product line from the cart (no-op if absent).

    Returns the updated cart summary.
    """
    browsing.cart.remove_item(product_id)
    return browsing.cart.summary()
