# storefront/schemas/product.py
from datetime import datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel


def _price_text(price: float) -> str:
    # 10.0 -> "10", 19.99 -> "19.99"
    price = float(price)
    return str(int(price)) if price.is_integer() else repr(price)


class ProductRead(SQLModel):
    """
    Product row as stored in the `products` table.
    """

    id: str
    name: str
    description: str | None = None
    price: float
    image_url: str | None = None
    category: str | None = None
    in_stock: bool = True
    created_at: datetime | None = None


class ProductDraft(SQLModel):
    """
    Free-form form state while an admin creates or edits a product.

    Every field except `in_stock` is raw text; nothing is validated until
    submit.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = ""
    description: str = ""
    price: str = ""
    image_url: str = ""
    category: str = ""
    in_stock: bool = True

    @classmethod
    def from_product(cls, product: ProductRead) -> "ProductDraft":
        return cls(
            name=product.name,
            description=product.description or "",
            price=_price_text(product.price),
            image_url=product.image_url or "",
            category=product.category or "",
            in_stock=product.in_stock,
        )


class ProductDraftUpdate(SQLModel):
    """
    Partial edit of the open draft. Omitted fields are left unchanged.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    description: str | None = None
    price: str | None = None
    image_url: str | None = None
    category: str | None = None
    in_stock: bool | None = None


class ProductPayload(SQLModel):
    """
    Validated, normalized product ready to insert or update.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    description: str | None = None
    price: float
    image_url: str | None = None
    category: str | None = None
    in_stock: bool
