# storefront/services/admin_workflow.py
"""
State machines behind the admin panel.

AdminWorkflow gates the panel:

    LOCKED -> UNAUTHENTICATED -> RESOLVING +-> AUTHORIZED
                                           +-> UNAUTHORIZED

ProductEditor drives the add/edit product dialog:

    CLOSED -> AWAITING_IMAGE -> FILLING_FORM -> CLOSED   (create)
    CLOSED -> EDITING -> CLOSED                          (edit)

Results of slow calls (role lookup, image upload) are applied with tickets:
a result is used once, and only while its ticket is still current.
"""
import enum
import hmac
import itertools

from storefront.core.auth import AccountSession
from storefront.core.errors import (
    AccessDenied,
    AccessLocked,
    AuthenticationRequired,
    AuthorizationDenied,
    InvalidTransition,
)
from storefront.schemas.product import ProductDraft, ProductDraftUpdate, ProductRead

_tickets = itertools.count(1)


class AdminState(str, enum.Enum):
    LOCKED = "locked"
    UNAUTHENTICATED = "unauthenticated"
    RESOLVING = "resolving"
    UNAUTHORIZED = "unauthorized"
    AUTHORIZED = "authorized"


class EditorMode(str, enum.Enum):
    CLOSED = "closed"
    AWAITING_IMAGE = "awaiting_image"
    FILLING_FORM = "filling_form"
    EDITING = "editing"


class AdminWorkflow:
    """
    Access-password gate, account session and role check for one browser.

    The password gate is local to the browsing session; signing out keeps it
    open.
    """

    def __init__(self) -> None:
        self.access_granted = False
        self.account: AccountSession | None = None
        self.is_admin: bool | None = None
        self._lookup_ticket: int | None = None
        self._closed = False

    @property
    def state(self) -> AdminState:
        if not self.access_granted:
            return AdminState.LOCKED
        if self.account is None:
            return AdminState.UNAUTHENTICATED
        if self.is_admin is None:
            return AdminState.RESOLVING
        return AdminState.AUTHORIZED if self.is_admin else AdminState.UNAUTHORIZED

    def submit_access_password(self, candidate: str, expected: str) -> AdminState:
        if self.access_granted:
            return self.state
        if not hmac.compare_digest(candidate.encode(), expected.encode()):
            raise AccessDenied("Incorrect password")
        self.access_granted = True
        if self.account is not None and self.is_admin is None:
            self._lookup_ticket = next(_tickets)
        return self.state

    def session_changed(self, account: AccountSession | None) -> AdminState:
        """
        Apply an auth-provider session notification.

        A new account starts a role lookup; the same account again is a no-op.
        """
        if self._closed:
            return self.state
        if account is None:
            return self._clear_account()

        if self.account is not None and self.account.account_id == account.account_id:
            # token refresh: keep the resolved role
            self.account = account
            return self.state

        self.account = account
        self.is_admin = None
        self._lookup_ticket = next(_tickets) if self.access_granted else None
        return self.state

    def pending_lookup(self) -> tuple[int, str] | None:
        """(ticket, account_id) of the role lookup still to run, if any."""
        if self._closed or self._lookup_ticket is None or self.account is None:
            return None
        return self._lookup_ticket, self.account.account_id

    def complete_role_lookup(self, ticket: int, is_admin: bool) -> bool:
        """
        Record a role lookup result.

        Returns False (and changes nothing) for a stale ticket or after close().
        """
        if self._closed or ticket != self._lookup_ticket:
            return False
        self._lookup_ticket = None
        self.is_admin = bool(is_admin)
        return True

    def sign_out(self) -> AdminState:
        if self.state is AdminState.LOCKED:
            raise InvalidTransition("Not signed in")
        return self._clear_account()

    def _clear_account(self) -> AdminState:
        self.account = None
        self.is_admin = None
        self._lookup_ticket = None
        return self.state

    def expire_stale_session(self, now: float | None = None) -> bool:
        """
        Drop the account once its access token has expired.

        Returns True if the session was dropped; the gate stays open.
        """
        if self.account is None or not self.account.is_expired(now):
            return False
        self._clear_account()
        return True

    def require_access(self) -> None:
        if not self.access_granted:
            raise AccessLocked("Enter the access password first")

    def require_authorized(self) -> AccountSession:
        self.expire_stale_session()
        state = self.state
        if state is AdminState.LOCKED:
            raise AccessLocked("Enter the access password first")
        if state in (AdminState.UNAUTHENTICATED, AdminState.RESOLVING):
            raise AuthenticationRequired("Please sign in")
        if state is AdminState.UNAUTHORIZED:
            raise AuthorizationDenied(
                "You do not have access to the dashboard. "
                "Ask an administrator to grant you the admin role."
            )
        return self.account

    def close(self) -> None:
        """Browsing session torn down: late results are discarded."""
        self._closed = True
        self._lookup_ticket = None


class ProductEditor:
    """
    Add/edit product dialog for one browser.

    Create needs a finished image upload before the form is reachable;
    edit loads the product into the draft and shows every field at once.
    """

    def __init__(self) -> None:
        self.mode = EditorMode.CLOSED
        self.draft: ProductDraft | None = None
        self.product_id: str | None = None
        self.uploading = False
        self.uploaded_image_url: str | None = None
        self.pending_delete_id: str | None = None
        self._upload_ticket: int | None = None

    def _expect(self, *modes: EditorMode) -> None:
        if self.mode not in modes:
            raise InvalidTransition(f"Not allowed while the editor is {self.mode.value}")

    def open_create(self) -> None:
        self._expect(EditorMode.CLOSED)
        self.mode = EditorMode.AWAITING_IMAGE
        self.draft = ProductDraft()

    def begin_upload(self) -> int:
        self._expect(EditorMode.AWAITING_IMAGE)
        if self.uploading:
            raise InvalidTransition("An image upload is already in progress")
        self.uploading = True
        self._upload_ticket = next(_tickets)
        return self._upload_ticket

    def complete_upload(self, ticket: int, url: str) -> bool:
        """
        Record the uploaded image and move to the form step.

        Returns False if the dialog was cancelled while uploading.
        """
        if ticket != self._upload_ticket or self.mode is not EditorMode.AWAITING_IMAGE:
            return False
        self._upload_ticket = None
        self.uploading = False
        self.uploaded_image_url = url
        self.draft = self.draft.model_copy(update={"image_url": url})
        self.mode = EditorMode.FILLING_FORM
        return True

    def fail_upload(self, ticket: int) -> None:
        if ticket == self._upload_ticket:
            self._upload_ticket = None
            self.uploading = False

    def open_edit(self, product: ProductRead) -> None:
        self._expect(EditorMode.CLOSED)
        self.mode = EditorMode.EDITING
        self.product_id = product.id
        self.draft = ProductDraft.from_product(product)

    def update_draft(self, changes: ProductDraftUpdate) -> ProductDraft:
        self._expect(EditorMode.FILLING_FORM, EditorMode.EDITING)
        update = changes.model_dump(exclude_unset=True, exclude_none=True)
        if self.mode is EditorMode.FILLING_FORM and "image_url" in update:
            raise InvalidTransition("The uploaded image cannot be changed here")
        self.draft = self.draft.model_copy(update=update)
        return self.draft

    def submission(self) -> tuple[EditorMode, ProductDraft, str | None]:
        self._expect(EditorMode.FILLING_FORM, EditorMode.EDITING)
        return self.mode, self.draft.model_copy(), self.product_id

    def finish(self) -> None:
        """Persisted successfully: close the dialog."""
        self._reset()

    def cancel(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self.mode = EditorMode.CLOSED
        self.draft = None
        self.product_id = None
        self.uploading = False
        self.uploaded_image_url = None
        self._upload_ticket = None

    # ---- delete confirmation ----

    def request_delete(self, product_id: str) -> None:
        self.pending_delete_id = product_id

    def confirm_delete(self, product_id: str) -> str:
        if self.pending_delete_id is None or self.pending_delete_id != product_id:
            raise InvalidTransition("Confirm the delete request first")
        return product_id

    def dismiss_delete(self, product_id: str | None = None) -> None:
        """Drop the pending delete request; a given id must match it."""
        if product_id is not None and self.pending_delete_id not in (None, product_id):
            raise InvalidTransition("No delete request for this product")
        self.pending_delete_id = None
