# storefront/services/cart_service.py
from storefront.schemas.cart import CartItemRead, CartLineItem, CartSummary
from storefront.schemas.product import ProductRead


def line_total(item: CartLineItem) -> float:
    """Price x quantity for one line; the only line-total formula in use."""
    return item.price * item.quantity


class CartStore:
    """
    In-memory cart for one browsing session.

    Rules:
      - at most one line per product id; adding again bumps quantity by 1
      - name/price/image are snapshotted at first add and never re-synced
      - removal deletes the whole line (no partial decrement)
      - lines keep insertion order
    Totals are derived on every read, never stored.
    """

    def __init__(self) -> None:
        self._items: list[CartLineItem] = []

    def _find(self, product_id: str) -> CartLineItem | None:
        for item in self._items:
            if item.product_id == product_id:
                return item
        return None

    def add_item(self, product: ProductRead) -> CartLineItem:
        existing = self._find(product.id)
        if existing is not None:
            existing.quantity += 1
            return existing

        item = CartLineItem(
            product_id=product.id,
            name=product.name,
            price=product.price,
            quantity=1,
            image_url=product.image_url,
        )
        self._items.append(item)
        return item

    def remove_item(self, product_id: str) -> bool:
        """Drop the line for product_id. Returns False if it was not in the cart."""
        before = len(self._items)
        self._items = [item for item in self._items if item.product_id != product_id]
        return len(self._items) != before

    def items(self) -> list[CartLineItem]:
        return [item.model_copy() for item in self._items]

    def total(self) -> float:
        return sum((line_total(item) for item in self._items), 0.0)

    def count(self) -> int:
        return sum(item.quantity for item in self._items)

    def is_empty(self) -> bool:
        return not self._items

    def summary(self) -> CartSummary:
        """
        Return full cart summary:
          - list of CartItemRead (with line_total)
          - total_quantity
          - total_price
        """
        return CartSummary(
            items=[
                CartItemRead(**item.model_dump(), line_total=line_total(item))
                for item in self._items
            ],
            total_quantity=self.count(),
            total_price=self.total(),
        )
