# storefront/sessions.py
"""
Server-side browsing sessions.

Everything the storefront keeps per browser (cart, admin gate, product
editor, the admin's Supabase auth session) lives in a BrowsingSession,
found through a cookie. Nothing here is persisted: a session ends when it
sits idle past SESSION_TTL_SECONDS or the app shuts down.
"""
import asyncio
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import AsyncIterator, Callable

from fastapi import Depends, Request, Response

from storefront.core.auth import AuthGateway
from storefront.core.config import get_settings
from storefront.core.storage_utils import ImageStorage
from storefront.core.supabase_client import supabase_for_session
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.role_repo import RoleRepository
from storefront.services.admin_workflow import AdminWorkflow, ProductEditor
from storefront.services.cart_service import CartStore

logger = logging.getLogger(__name__)


@dataclass
class AdminBackend:
    """
    Supabase services for one admin browser, all sharing one private client
    so every call carries the signed-in account's token.
    """

    auth: AuthGateway
    products: ProductRepository
    roles: RoleRepository
    storage: ImageStorage


def build_admin_backend() -> AdminBackend:
    settings = get_settings()
    client = supabase_for_session()
    return AdminBackend(
        auth=AuthGateway(client),
        products=ProductRepository(client),
        roles=RoleRepository(client),
        storage=ImageStorage(client, settings.PRODUCT_IMAGES_BUCKET),
    )


class BrowsingSession:
    """
    State owned by one browser.

    `lock` serializes requests from the same browser so events are applied
    one at a time, in arrival order. It is awaited on the event loop, so
    queued requests never occupy worker threads.
    """

    def __init__(self, session_id: str, backend_factory: Callable[[], AdminBackend]):
        self.id = session_id
        self.cart = CartStore()
        self.workflow = AdminWorkflow()
        self.editor = ProductEditor()
        self.lock = asyncio.Lock()
        self.last_seen = time.monotonic()
        self._backend_factory = backend_factory
        self._backend: AdminBackend | None = None
        self._subscription = None

    def admin_backend(self) -> AdminBackend:
        """
        Supabase services for this browser, created on first admin use.

        Subscribes the gate to auth notifications and restores any session
        the client already holds.
        """
        if self._backend is None:
            backend = self._backend_factory()
            self._subscription = backend.auth.subscribe(self.workflow.session_changed)
            self._backend = backend
            existing = backend.auth.get_session()
            if existing is not None:
                self.workflow.session_changed(existing)
        return self._backend

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def close(self) -> None:
        self.workflow.close()
        self.editor.cancel()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        logger.debug("Browsing session %s closed", self.id[:8])


class SessionRegistry:
    """
    Cookie id -> BrowsingSession, with idle expiry.
    """

    def __init__(
        self,
        ttl_seconds: int,
        backend_factory: Callable[[], AdminBackend] = build_admin_backend,
    ):
        self.ttl_seconds = ttl_seconds
        self.backend_factory = backend_factory
        self._sessions: dict[str, BrowsingSession] = {}
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        expired = [
            sid for sid, s in self._sessions.items()
            if now - s.last_seen > self.ttl_seconds
        ]
        for sid in expired:
            self._sessions.pop(sid).close()

    def resolve(self, session_id: str | None) -> tuple[BrowsingSession, bool]:
        """
        Return (session, created). Unknown or expired ids get a fresh session.
        """
        with self._lock:
            self._prune(time.monotonic())
            session = self._sessions.get(session_id) if session_id else None
            created = session is None
            if created:
                session = BrowsingSession(secrets.token_urlsafe(32), self.backend_factory)
                self._sessions[session.id] = session
            session.touch()
            return session, created

    def __len__(self) -> int:
        return len(self._sessions)

    def drop(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            session.close()

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()


@lru_cache
def get_session_registry() -> SessionRegistry:
    return SessionRegistry(get_settings().SESSION_TTL_SECONDS)


async def get_browsing_session(
    request: Request,
    response: Response,
    registry: SessionRegistry = Depends(get_session_registry),
) -> AsyncIterator[BrowsingSession]:
    """
    FastAPI dependency that yields this browser's BrowsingSession.

    Sets the session cookie on first visit and holds the session lock for
    the rest of the request.

    Usage:

        @router.get("/example")
        def example_endpoint(browsing: BrowsingSession = Depends(get_browsing_session)):
            ...
    """
    settings = get_settings()
    session, created = registry.resolve(request.cookies.get(settings.SESSION_COOKIE_NAME))
    if created:
        response.set_cookie(
            settings.SESSION_COOKIE_NAME,
            session.id,
            max_age=settings.SESSION_TTL_SECONDS,
            httponly=True,
            samesite="lax",
        )
    async with session.lock:
        yield session
