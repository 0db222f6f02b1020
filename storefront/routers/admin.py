# storefront/routers/admin.py
from fastapi import APIRouter, Depends, File, UploadFile

from storefront.core.config import get_settings
from storefront.core.config_store import LocalConfigStore, get_config_store
from storefront.schemas.admin import (
    AccessPasswordSubmit,
    AdminSessionRead,
    Credentials,
    EditorRead,
    Notice,
    WhatsappNumber,
)
from storefront.schemas.product import ProductDraftUpdate, ProductRead
from storefront.services.admin_service import AdminService
from storefront.services.catalog_service import CatalogService, get_catalog_service
from storefront.sessions import BrowsingSession, get_browsing_session

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_admin_service(
    browsing: BrowsingSession = Depends(get_browsing_session),
    catalog: CatalogService = Depends(get_catalog_service),
    store: LocalConfigStore = Depends(get_config_store),
) -> AdminService:
    return AdminService(browsing, catalog, store, get_settings())


# -------- Gate --------


@router.get("/session", response_model=AdminSessionRead)
def get_admin_session(service: AdminService = Depends(get_admin_service)):
    """
    Where this browser is in the admin gate.

    States: locked -> unauthenticated -> resolving -> authorized | unauthorized
    """
    return service.snapshot()


@router.post("/access", response_model=AdminSessionRead)
def submit_access_password(
    payload: AccessPasswordSubmit,
    service: AdminService = Depends(get_admin_service),
):
    """
    Unlock the admin panel with the shared access password.
    """
    return service.submit_access_password(payload.password)


@router.post("/sign-in", response_model=AdminSessionRead)
def sign_in(payload: Credentials, service: AdminService = Depends(get_admin_service)):
    return service.sign_in(payload.email, payload.password)


@router.post("/sign-up", response_model=AdminSessionRead)
def sign_up(payload: Credentials, service: AdminService = Depends(get_admin_service)):
    """
    Register a new account.

    New accounts have no admin role until one is granted in `user_roles`.
    """
    return service.sign_up(payload.email, payload.password)


@router.post("/sign-out", response_model=AdminSessionRead)
def sign_out(service: AdminService = Depends(get_admin_service)):
    return service.sign_out()


# -------- Products (admin only) --------


@router.get("/products", response_model=list[ProductRead])
def list_admin_products(
    q: str | None = None,
    service: AdminService = Depends(get_admin_service),
):
    """
    All products, in stock or not, newest first.

    - `q` is a case-insensitive search on the product name.
    """
    return service.list_products(q)


@router.post("/products/{product_id}/delete", response_model=EditorRead)
def request_delete(product_id: str, service: AdminService = Depends(get_admin_service)):
    """
    Ask to delete a product; must be confirmed before anything is removed.
    """
    return service.request_delete(product_id)


@router.post("/products/{product_id}/delete/confirm", response_model=Notice)
def confirm_delete(product_id: str, service: AdminService = Depends(get_admin_service)):
    return service.confirm_delete(product_id)


@router.post("/products/{product_id}/delete/dismiss", response_model=EditorRead)
def dismiss_delete(product_id: str, service: AdminService = Depends(get_admin_service)):
    """
    Keep the product; drops the pending delete request for it.
    """
    return service.dismiss_delete(product_id)


# -------- Product editor --------


@router.get("/editor", response_model=EditorRead)
def get_editor(service: AdminService = Depends(get_admin_service)):
    return service.editor_snapshot()


@router.post("/editor/create", response_model=EditorRead)
def open_create(service: AdminService = Depends(get_admin_service)):
    """
    Open the add-product dialog at step 1 (image upload).
    """
    return service.open_create()


@router.post(
    "/editor/image",
    response_model=EditorRead,
    summary="Upload the product image (create step 1)",
)
def upload_image(
    file: UploadFile = File(...),
    service: AdminService = Depends(get_admin_service),
):
    """
    Upload the image for the product being created.

    - Only image/* content types are accepted (max 5MB).
    - On success the dialog moves to step 2 with image_url filled in.
    """
    file_bytes = file.file.read()
    return service.upload_image(file.filename or "", file.content_type, file_bytes)


@router.post("/editor/edit/{product_id}", response_model=EditorRead)
def open_edit(product_id: str, service: AdminService = Depends(get_admin_service)):
    """
    Open the edit dialog pre-filled with the product's current values.
    """
    return service.open_edit(product_id)


@router.patch("/editor/draft", response_model=EditorRead)
def update_draft(
    payload: ProductDraftUpdate,
    service: AdminService = Depends(get_admin_service),
):
    """
    Change fields of the open draft. Nothing is validated until submit.
    """
    return service.update_draft(payload)


@router.post("/editor/submit", response_model=EditorRead)
def submit_draft(service: AdminService = Depends(get_admin_service)):
    """
    Validate and save the draft.

    - 422 with the first failing `field` if validation fails.
    - The dialog stays open with the draft on any failure.
    """
    return service.submit()


@router.post("/editor/cancel", response_model=EditorRead)
def cancel_editor(service: AdminService = Depends(get_admin_service)):
    return service.cancel()


# -------- Settings --------


@router.get("/settings/whatsapp", response_model=WhatsappNumber)
def get_whatsapp_number(service: AdminService = Depends(get_admin_service)):
    return service.get_destination_number()


@router.put("/settings/whatsapp", response_model=Notice)
def save_whatsapp_number(
    payload: WhatsappNumber,
    service: AdminService = Depends(get_admin_service),
):
    """
    Save the number checkout messages are sent to.
    """
    return service.save_destination_number(payload.number)
