# storefront/services/checkout_service.py
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence
from urllib.parse import quote

from storefront.core.config import Settings
from storefront.core.config_store import WHATSAPP_NUMBER_KEY, LocalConfigStore
from storefront.schemas.cart import CartLineItem
from storefront.schemas.checkout import CheckoutLink
from storefront.services.cart_service import CartStore, line_total

logger = logging.getLogger(__name__)

GREETING = "Hello, I would like to order the following products:"

# Same unescaped set as JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"
_CENT = Decimal("0.01")


def format_money(value: float) -> str:
    """
    Two decimals, exact ties rounded up (0.125 -> "0.13").
    """
    return str(Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))


def order_total(items: Sequence[CartLineItem]) -> float:
    return sum((line_total(item) for item in items), 0.0)


def build_order_message(items: Sequence[CartLineItem]) -> str:
    """
    Human-readable order summary sent as the WhatsApp message body.

    Layout:
        <greeting>

        • <name>
          Quantity: <q>
          Price: $<line total>

        ...
        Total: $<grand total>
    """
    parts = [GREETING, "\n\n"]
    for item in items:
        parts.append(
            f"• {item.name}\n"
            f"  Quantity: {item.quantity}\n"
            f"  Price: ${format_money(line_total(item))}\n\n"
        )
    parts.append(f"Total: ${format_money(order_total(items))}")
    return "".join(parts)


def compose_checkout_url(
    items: Sequence[CartLineItem],
    destination_number: str,
    base_url: str = "https://wa.me",
) -> str | None:
    """
    Build the WhatsApp deep link for an order, or None for an empty cart.
    """
    if not items:
        return None
    text = quote(build_order_message(items), safe=_URI_COMPONENT_SAFE)
    return f"{base_url.rstrip('/')}/{destination_number}?text={text}"


def get_destination_number(store: LocalConfigStore, settings: Settings) -> str:
    return store.get(WHATSAPP_NUMBER_KEY) or settings.DEFAULT_WHATSAPP_NUMBER


class CheckoutService:
    """
    Turns a cart into an outbound WhatsApp link.

    The cart is only read: it is not cleared after checkout so the
    customer can resend the same order.
    """

    def __init__(self, store: LocalConfigStore, settings: Settings):
        self.store = store
        self.settings = settings

    def compose(self, cart: CartStore) -> CheckoutLink | None:
        items = cart.items()
        destination = get_destination_number(self.store, self.settings)
        url = compose_checkout_url(items, destination, self.settings.WHATSAPP_BASE_URL)
        if url is None:
            return None

        logger.info("Checkout link composed for %d item(s)", len(items))
        return CheckoutLink(
            url=url,
            message=build_order_message(items),
            total=order_total(items),
        )
