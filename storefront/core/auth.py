# storefront/core/auth.py
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx
from jose import JWTError, jwt
from supabase import Client
from supabase_auth.errors import AuthError

from storefront.core.config import get_settings
from storefront.core.errors import AuthenticationRequired, ServiceError

logger = logging.getLogger(__name__)

# Provider messages we translate into friendlier ones
_AUTH_MESSAGES: dict[str, str] = {
    "Invalid login credentials": "Incorrect email or password",
    "already registered": "This email is already registered",
}

AUTH_FALLBACK_MESSAGE = "Authentication failed, please try again"


@dataclass(frozen=True)
class AccountSession:
    """
    Verified identity of a signed-in account.

    account_id is the Supabase auth user id (JWT "sub"); expires_at is the
    token's "exp" (epoch seconds), None when the token carries no expiry.
    """

    account_id: str
    email: str | None
    access_token: str
    expires_at: float | None = None

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (time.time() if now is None else now) >= self.expires_at


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (SUPABASE_JWT_ALG using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Raises:
        AuthenticationRequired: if token is invalid/expired.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise AuthenticationRequired("Invalid or expired token")


def account_from_token(token: str) -> AccountSession:
    """
    Build an AccountSession from a raw access token.

    Raises:
        AuthenticationRequired: if the token is invalid or has no 'sub'.
    """
    payload = decode_access_token(token)
    sub = payload.get("sub")
    if not sub:
        raise AuthenticationRequired("Token missing sub")
    exp = payload.get("exp")
    return AccountSession(
        account_id=str(sub),
        email=payload.get("email"),
        access_token=token,
        expires_at=float(exp) if exp is not None else None,
    )


def friendly_auth_message(raw: str | None) -> str:
    if not raw:
        return AUTH_FALLBACK_MESSAGE
    for needle, message in _AUTH_MESSAGES.items():
        if needle in raw:
            return message
    return raw


class AuthGateway:
    """
    Supabase Auth for one browsing session.

    Wraps the private client's auth API and converts provider sessions into
    verified AccountSession values. Provider failures become ServiceError
    with a user-facing message.
    """

    def __init__(self, client: Client):
        self.client = client

    def _to_account(self, session) -> AccountSession | None:
        if session is None or not getattr(session, "access_token", None):
            return None
        try:
            return account_from_token(session.access_token)
        except AuthenticationRequired:
            logger.warning("Discarding auth session with an unverifiable token")
            return None

    def sign_in(self, email: str, password: str) -> AccountSession | None:
        try:
            response = self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthError as e:
            raise ServiceError(friendly_auth_message(e.message), status_code=401)
        except httpx.HTTPError as e:
            logger.warning("Sign-in request failed: %s", e)
            raise ServiceError(AUTH_FALLBACK_MESSAGE)
        return self._to_account(response.session)

    def sign_up(self, email: str, password: str, redirect_to: str) -> AccountSession | None:
        """
        Register a new account.

        Returns the new session if the project does not require email
        confirmation, otherwise None.
        """
        try:
            response = self.client.auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {"email_redirect_to": redirect_to},
                }
            )
        except AuthError as e:
            raise ServiceError(friendly_auth_message(e.message), status_code=400)
        except httpx.HTTPError as e:
            logger.warning("Sign-up request failed: %s", e)
            raise ServiceError(AUTH_FALLBACK_MESSAGE)
        return self._to_account(response.session)

    def sign_out(self) -> None:
        try:
            self.client.auth.sign_out()
        except (AuthError, httpx.HTTPError) as e:
            # Local session is dropped either way
            logger.warning("Sign-out request failed: %s", e)

    def get_session(self) -> AccountSession | None:
        try:
            return self._to_account(self.client.auth.get_session())
        except (AuthError, httpx.HTTPError) as e:
            logger.warning("Could not read auth session: %s", e)
            return None

    def subscribe(self, listener: Callable[[AccountSession | None], None]):
        """
        Push session changes to `listener`.

        Returns the provider subscription; call `.unsubscribe()` on teardown.
        """

        def _on_change(event, session) -> None:
            logger.info("Auth event: %s", event)
            listener(self._to_account(session))

        return self.client.auth.on_auth_state_change(_on_change)
