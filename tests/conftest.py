"""Shared pytest fixtures: in-memory stand-ins for the Supabase-backed services."""
from __future__ import annotations

import itertools
import os
from datetime import datetime, timedelta, timezone

# Minimal env vars required for importing the app in tests
os.environ.setdefault("SUPABASE_URL", "http://supabase.test")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ADMIN_ACCESS_PASSWORD", "open-sesame")

import pytest
from fastapi.testclient import TestClient

from storefront.core.auth import AccountSession
from storefront.core.config import get_settings
from storefront.core.config_store import LocalConfigStore, get_config_store
from storefront.core.errors import ServiceError
from storefront.schemas.product import ProductPayload, ProductRead
from storefront.services.catalog_service import CatalogService, ProductListCache, get_catalog_service
from storefront.sessions import AdminBackend, SessionRegistry, get_session_registry

ACCESS_PASSWORD = "open-sesame"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-pass"
USER_EMAIL = "user@example.com"
USER_PASSWORD = "user-pass"


def make_product(
    product_id: str,
    price: float = 10.0,
    name: str | None = None,
    category: str | None = None,
    in_stock: bool = True,
) -> ProductRead:
    return ProductRead(
        id=product_id,
        name=name or f"Product {product_id}",
        price=price,
        category=category,
        in_stock=in_stock,
        image_url=f"https://cdn.test/{product_id}.png",
    )


# ============= Fakes =============


class FakeSubscription:
    def __init__(self) -> None:
        self.active = True

    def unsubscribe(self) -> None:
        self.active = False


class FakeAuth:
    """AuthGateway stand-in that notifies listeners like the real client does."""

    def __init__(self, users: dict[str, tuple[str, str]]):
        # email -> (password, account_id)
        self.users = users
        self.session: AccountSession | None = None
        self.listeners = []
        self.subscriptions: list[FakeSubscription] = []
        self.require_confirmation = False
        self.sign_out_calls = 0

    def _notify(self, account: AccountSession | None) -> None:
        for listener in self.listeners:
            listener(account)

    def sign_in(self, email: str, password: str) -> AccountSession | None:
        known = self.users.get(email)
        if known is None or known[0] != password:
            raise ServiceError("Incorrect email or password", status_code=401)
        self.session = AccountSession(account_id=known[1], email=email, access_token="token")
        self._notify(self.session)
        return self.session

    def sign_up(self, email: str, password: str, redirect_to: str) -> AccountSession | None:
        if email in self.users:
            raise ServiceError("This email is already registered", status_code=400)
        account_id = f"acct-{len(self.users) + 1}"
        self.users[email] = (password, account_id)
        self.last_redirect = redirect_to
        if self.require_confirmation:
            return None
        self.session = AccountSession(account_id=account_id, email=email, access_token="token")
        self._notify(self.session)
        return self.session

    def sign_out(self) -> None:
        self.sign_out_calls += 1
        self.session = None
        self._notify(None)

    def get_session(self) -> AccountSession | None:
        return self.session

    def subscribe(self, listener) -> FakeSubscription:
        self.listeners.append(listener)
        subscription = FakeSubscription()
        self.subscriptions.append(subscription)
        return subscription


class FakeProductRepo:
    """ProductRepository stand-in backed by a dict."""

    def __init__(self, products: list[ProductRead] | None = None):
        self.rows: dict[str, ProductRead] = {}
        self.list_calls = 0
        self.fail_writes = False
        self._ids = itertools.count(1)
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for product in products or []:
            self._store(product)

    def _store(self, product: ProductRead) -> ProductRead:
        self._clock += timedelta(minutes=1)
        if product.created_at is None:
            product = product.model_copy(update={"created_at": self._clock})
        self.rows[product.id] = product
        return product

    def list_products(self, only_in_stock: bool = False) -> list[ProductRead]:
        self.list_calls += 1
        rows = [p for p in self.rows.values() if p.in_stock or not only_in_stock]
        return sorted(rows, key=lambda p: p.created_at, reverse=True)

    def get_by_id(self, product_id: str) -> ProductRead | None:
        return self.rows.get(product_id)

    def create(self, payload: ProductPayload) -> None:
        if self.fail_writes:
            raise ServiceError("permission denied for table products", code="42501")
        self._store(ProductRead(id=f"new-{next(self._ids)}", **payload.model_dump()))

    def update(self, product_id: str, payload: ProductPayload) -> None:
        if self.fail_writes:
            raise ServiceError("permission denied for table products", code="42501")
        current = self.rows[product_id]
        self.rows[product_id] = current.model_copy(update=payload.model_dump())

    def delete(self, product_id: str) -> None:
        if self.fail_writes:
            raise ServiceError("permission denied for table products", code="42501")
        self.rows.pop(product_id, None)


class FakeRoleRepo:
    def __init__(self, admins: set[str]):
        self.admins = admins
        self.calls: list[str] = []

    def is_admin(self, account_id: str) -> bool:
        self.calls.append(account_id)
        return account_id in self.admins


class FakeStorage:
    def __init__(self) -> None:
        self.uploads: list[tuple[str, bytes, str]] = []
        self.fail_with: str | None = None

    def upload(self, path: str, file_bytes: bytes, content_type: str) -> str:
        if self.fail_with:
            raise ServiceError(self.fail_with)
        self.uploads.append((path, file_bytes, content_type))
        return f"https://cdn.test/mira-img/{path}"


# ============= Fixtures =============


@pytest.fixture()
def settings():
    return get_settings()


@pytest.fixture()
def product_repo() -> FakeProductRepo:
    return FakeProductRepo(
        [
            make_product("p1", price=10.0, name="Rose Perfume", category="Perfumes"),
            make_product("p2", price=5.0, name="Lip Gloss", category="Makeup"),
            make_product("p3", price=7.5, name="Hair Oil", category="Hair Care", in_stock=False),
        ]
    )


@pytest.fixture()
def catalog(product_repo: FakeProductRepo) -> CatalogService:
    return CatalogService(product_repo, ProductListCache(300))


@pytest.fixture()
def config_store(tmp_path) -> LocalConfigStore:
    return LocalConfigStore(tmp_path / "storefront_config.json")


@pytest.fixture()
def fake_auth() -> FakeAuth:
    return FakeAuth(
        {
            ADMIN_EMAIL: (ADMIN_PASSWORD, "admin-1"),
            USER_EMAIL: (USER_PASSWORD, "user-1"),
        }
    )


@pytest.fixture()
def role_repo() -> FakeRoleRepo:
    return FakeRoleRepo({"admin-1"})


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def backend(fake_auth, product_repo, role_repo, storage) -> AdminBackend:
    return AdminBackend(auth=fake_auth, products=product_repo, roles=role_repo, storage=storage)


@pytest.fixture()
def registry(backend) -> SessionRegistry:
    return SessionRegistry(3600, backend_factory=lambda: backend)


@pytest.fixture()
def client(catalog, config_store, registry):
    """TestClient with Supabase-backed dependencies replaced by fakes."""
    from storefront.main import app

    app.dependency_overrides[get_catalog_service] = lambda: catalog
    app.dependency_overrides[get_config_store] = lambda: config_store
    app.dependency_overrides[get_session_registry] = lambda: registry
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
