# storefront/routers/checkout.py
from fastapi import APIRouter, Depends, Response, status

from storefront.core.config import get_settings
from storefront.core.config_store import LocalConfigStore, get_config_store
from storefront.schemas.checkout import CheckoutLink
from storefront.services.checkout_service import CheckoutService
from storefront.sessions import BrowsingSession, get_browsing_session

router = APIRouter(prefix="/checkout", tags=["Checkout"])


@router.post(
    "",
    response_model=CheckoutLink,
    responses={status.HTTP_204_NO_CONTENT: {"description": "Cart is empty"}},
)
def checkout(
    browsing: BrowsingSession = Depends(get_browsing_session),
    store: LocalConfigStore = Depends(get_config_store),
):
    """
    Compose the WhatsApp order link for the current cart.

    - 204 with no body when the cart is empty.
    - The cart is left as is.
    """
    link = CheckoutService(store, get_settings()).compose(browsing.cart)
    if link is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return link
