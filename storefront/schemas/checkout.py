# storefront/schemas/checkout.py
from sqlmodel import SQLModel


class CheckoutLink(SQLModel):
    """
    Outbound WhatsApp deep link carrying the order summary.

    The client opens `url` in a new tab; no response is awaited.
    """

    url: str
    message: str
    total: float
