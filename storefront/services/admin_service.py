# storefront/services/admin_service.py
import logging

from storefront.core.auth import AUTH_FALLBACK_MESSAGE
from storefront.core.config import Settings
from storefront.core.config_store import WHATSAPP_NUMBER_KEY, LocalConfigStore
from storefront.core.errors import InvalidInput, InvalidTransition, NotFound, PayloadTooLarge, ServiceError
from storefront.core.storage_utils import generate_filename
from storefront.schemas.admin import AdminSessionRead, EditorRead, Notice, WhatsappNumber
from storefront.schemas.product import ProductDraftUpdate, ProductRead
from storefront.services.admin_workflow import AdminState, EditorMode
from storefront.services.catalog_service import CatalogService
from storefront.services.checkout_service import get_destination_number
from storefront.services.validation import validate_product_draft
from storefront.sessions import AdminBackend, BrowsingSession

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB per image


class AdminService:
    """
    Business logic for the admin panel of one browser.

    Responsibilities:
      - drive the gate (access password -> account session -> role check)
      - run the two-step create flow and the edit flow
      - persist products through the admin's own Supabase client
      - invalidate both product lists after every successful write
      - map provider failures to user-facing messages; drafts survive them
    """

    def __init__(
        self,
        browsing: BrowsingSession,
        catalog: CatalogService,
        store: LocalConfigStore,
        settings: Settings,
    ):
        self.browsing = browsing
        self.workflow = browsing.workflow
        self.editor = browsing.editor
        self.catalog = catalog
        self.store = store
        self.settings = settings

    # ---- internal helpers ----

    def _backend(self) -> AdminBackend:
        return self.browsing.admin_backend()

    def _resolve_role(self) -> None:
        """Run the pending role lookup, if any (fail-closed)."""
        pending = self.workflow.pending_lookup()
        if pending is None:
            return
        ticket, account_id = pending
        is_admin = self._backend().roles.is_admin(account_id)
        if not self.workflow.complete_role_lookup(ticket, is_admin):
            logger.info("Discarded stale role lookup for %s", account_id)

    def _require_admin(self) -> AdminBackend:
        self._resolve_role_if_open()
        self.workflow.require_authorized()
        return self._backend()

    def _expire_session(self) -> None:
        if self.workflow.expire_stale_session():
            logger.info("Admin session expired; sign-in required")

    def _resolve_role_if_open(self) -> None:
        self._expire_session()
        if self.workflow.access_granted:
            self._backend()
            self._resolve_role()

    @staticmethod
    def _check_credentials(email: str, password: str) -> tuple[str, str]:
        email = email.strip()
        if not email or not password:
            raise InvalidInput("Please enter your email and password")
        return email, password

    # ---- gate ----

    def snapshot(self, message: str | None = None) -> AdminSessionRead:
        self._resolve_role_if_open()
        account = self.workflow.account
        return AdminSessionRead(
            state=self.workflow.state.value,
            email=account.email if account else None,
            message=message,
        )

    def submit_access_password(self, password: str) -> AdminSessionRead:
        self.workflow.submit_access_password(password, self.settings.ADMIN_ACCESS_PASSWORD)
        logger.info("Admin access password accepted")
        return self.snapshot("Access granted")

    def sign_in(self, email: str, password: str) -> AdminSessionRead:
        self.workflow.require_access()
        self._expire_session()
        if self.workflow.state is not AdminState.UNAUTHENTICATED:
            raise InvalidTransition("Already signed in")
        email, password = self._check_credentials(email, password)

        account = self._backend().auth.sign_in(email, password)
        if account is None:
            raise ServiceError(AUTH_FALLBACK_MESSAGE, status_code=401)
        self.workflow.session_changed(account)
        return self.snapshot("Signed in successfully")

    def sign_up(self, email: str, password: str) -> AdminSessionRead:
        self.workflow.require_access()
        self._expire_session()
        if self.workflow.state is not AdminState.UNAUTHENTICATED:
            raise InvalidTransition("Already signed in")
        email, password = self._check_credentials(email, password)

        account = self._backend().auth.sign_up(email, password, self.settings.AUTH_REDIRECT_URL)
        if account is None:
            # email confirmation pending: back to the sign-in form
            return self.snapshot("Account created. Please sign in.")
        self.workflow.session_changed(account)
        return self.snapshot("Account created")

    def sign_out(self) -> AdminSessionRead:
        self.workflow.require_access()
        self._backend().auth.sign_out()
        self.workflow.sign_out()
        self.editor.cancel()
        self.editor.dismiss_delete()
        return self.snapshot("Signed out successfully")

    # ---- product list ----

    def list_products(self, search: str | None = None) -> list[ProductRead]:
        backend = self._require_admin()
        return self.catalog.list_admin(backend.products, search)

    # ---- editor ----

    def editor_snapshot(self, message: str | None = None) -> EditorRead:
        editor = self.editor
        return EditorRead(
            mode=editor.mode.value,
            uploading=editor.uploading,
            uploaded_image_url=editor.uploaded_image_url,
            product_id=editor.product_id,
            draft=editor.draft,
            pending_delete_id=editor.pending_delete_id,
            message=message,
        )

    def open_create(self) -> EditorRead:
        self._require_admin()
        self.editor.open_create()
        return self.editor_snapshot()

    def upload_image(self, filename: str, content_type: str | None, data: bytes) -> EditorRead:
        """
        Step 1 of create: upload the image, then unlock the form.
        """
        backend = self._require_admin()
        if not content_type or not content_type.startswith("image/"):
            raise InvalidInput("Please choose a valid image file")
        if len(data) > MAX_IMAGE_BYTES:
            raise PayloadTooLarge("Image too large (max 5MB).")

        ticket = self.editor.begin_upload()
        path = generate_filename(filename)
        try:
            url = backend.storage.upload(path, data, content_type)
        except ServiceError as e:
            self.editor.fail_upload(ticket)
            raise ServiceError(f"Image upload failed: {e.message}", code=e.code)

        if not self.editor.complete_upload(ticket, url):
            logger.info("Upload %s finished after the dialog closed; ignored", path)
            return self.editor_snapshot()
        logger.info("Uploaded product image %s", path)
        return self.editor_snapshot("Image uploaded successfully")

    def open_edit(self, product_id: str) -> EditorRead:
        backend = self._require_admin()
        product = backend.products.get_by_id(product_id)
        if product is None:
            raise NotFound("Product not found")
        self.editor.open_edit(product)
        return self.editor_snapshot()

    def update_draft(self, changes: ProductDraftUpdate) -> EditorRead:
        self._require_admin()
        self.editor.update_draft(changes)
        return self.editor_snapshot()

    def submit(self) -> EditorRead:
        """
        Validate the draft and create or update the product.

        On any failure the dialog stays open with the draft intact.
        """
        backend = self._require_admin()
        mode, draft, product_id = self.editor.submission()
        payload = validate_product_draft(draft)

        if mode is EditorMode.FILLING_FORM:
            try:
                backend.products.create(payload)
            except ServiceError as e:
                raise ServiceError("Could not add the product", code=e.code)
            message = "Product added successfully"
        else:
            try:
                backend.products.update(product_id, payload)
            except ServiceError as e:
                raise ServiceError("Could not update the product", code=e.code)
            message = "Product updated successfully"

        self.catalog.invalidate_all()
        self.editor.finish()
        logger.info("%s: %s", message, payload.name)
        return self.editor_snapshot(message)

    def cancel(self) -> EditorRead:
        self.editor.cancel()
        return self.editor_snapshot()

    # ---- delete ----

    def request_delete(self, product_id: str) -> EditorRead:
        self._require_admin()
        self.editor.request_delete(product_id)
        return self.editor_snapshot("Are you sure you want to delete this product?")

    def confirm_delete(self, product_id: str) -> Notice:
        backend = self._require_admin()
        self.editor.confirm_delete(product_id)
        try:
            backend.products.delete(product_id)
        except ServiceError as e:
            raise ServiceError("Could not delete the product", code=e.code)
        self.editor.dismiss_delete()
        self.catalog.invalidate_all()
        logger.info("Deleted product %s", product_id)
        return Notice(message="Product deleted successfully")

    def dismiss_delete(self, product_id: str | None = None) -> EditorRead:
        self.editor.dismiss_delete(product_id)
        return self.editor_snapshot()

    # ---- settings ----

    def get_destination_number(self) -> WhatsappNumber:
        self._require_admin()
        return WhatsappNumber(number=get_destination_number(self.store, self.settings))

    def save_destination_number(self, number: str) -> Notice:
        self._require_admin()
        number = number.strip()
        if not number:
            raise InvalidInput("Please enter the WhatsApp number")
        self.store.set(WHATSAPP_NUMBER_KEY, number)
        return Notice(message="WhatsApp number saved")
