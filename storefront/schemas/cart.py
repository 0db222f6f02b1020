# storefront/schemas/cart.py
from pydantic import ConfigDict
from sqlmodel import Field, SQLModel


class CartItemAdd(SQLModel):
    """
    Payload for adding one unit of a catalog product to the cart.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: str = Field(min_length=1)


class CartLineItem(SQLModel):
    """
    One cart line. Name, price and image are copied when the product is
    first added and are not re-synced with the catalog afterwards.
    """

    product_id: str
    name: str
    price: float
    quantity: int = Field(gt=0)
    image_url: str | None = None


class CartItemRead(CartLineItem):
    """
    Read model for a single cart line, including line_total.
    """

    line_total: float


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    items: list[CartItemRead]
    total_quantity: int
    total_price: float
