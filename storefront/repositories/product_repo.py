# storefront/repositories/product_repo.py
import logging

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from storefront.core.errors import ServiceError
from storefront.schemas.product import ProductPayload, ProductRead

logger = logging.getLogger(__name__)

TABLE = "products"


class ProductRepository:
    """
    Data access layer for the `products` table (Supabase PostgREST).

    - Pure data operations, no business logic.
    - Provider failures are raised as ServiceError carrying the
      PostgREST error code; callers pick the message shown to users.
    """

    def __init__(self, client: Client):
        self.client = client

    def _run(self, action: str, query):
        try:
            return query.execute()
        except APIError as e:
            logger.warning("products %s failed [%s]: %s", action, e.code, e.message)
            raise ServiceError(e.message or f"products {action} failed", code=e.code)
        except httpx.HTTPError as e:
            logger.warning("products %s failed: %s", action, e)
            raise ServiceError(f"products {action} failed")

    def list_products(self, only_in_stock: bool = False) -> list[ProductRead]:
        """Newest first."""
        query = self.client.table(TABLE).select("*")
        if only_in_stock:
            query = query.eq("in_stock", True)
        query = query.order("created_at", desc=True)
        response = self._run("select", query)
        return [ProductRead.model_validate(row) for row in response.data or []]

    def get_by_id(self, product_id: str) -> ProductRead | None:
        query = self.client.table(TABLE).select("*").eq("id", product_id).maybe_single()
        response = self._run("select", query)
        if response is None or not response.data:
            return None
        return ProductRead.model_validate(response.data)

    def create(self, payload: ProductPayload) -> None:
        self._run("insert", self.client.table(TABLE).insert(payload.model_dump()))

    def update(self, product_id: str, payload: ProductPayload) -> None:
        self._run(
            "update",
            self.client.table(TABLE).update(payload.model_dump()).eq("id", product_id),
        )

    def delete(self, product_id: str) -> None:
        self._run("delete", self.client.table(TABLE).delete().eq("id", product_id))
