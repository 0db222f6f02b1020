# storefront/schemas/admin.py
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel

from storefront.schemas.product import ProductDraft

AdminStateName = Literal["locked", "unauthenticated", "resolving", "unauthorized", "authorized"]
EditorModeName = Literal["closed", "awaiting_image", "filling_form", "editing"]


class AccessPasswordSubmit(SQLModel):
    """
    Front-door password for the admin panel.
    """

    model_config = ConfigDict(extra="forbid")

    password: str


class Credentials(SQLModel):
    """
    Email/password for sign-in and sign-up.

    Emptiness is checked by the service so the admin gets one plain message.
    """

    model_config = ConfigDict(extra="forbid")

    email: str = ""
    password: str = ""


class AdminSessionRead(SQLModel):
    """
    Where this browser is in the admin gate, plus an optional notice
    to show as a toast.
    """

    state: AdminStateName
    email: str | None = None
    message: str | None = None


class EditorRead(SQLModel):
    """
    Snapshot of the add/edit product dialog.
    """

    mode: EditorModeName
    uploading: bool = False
    uploaded_image_url: str | None = None
    product_id: str | None = None
    draft: ProductDraft | None = None
    pending_delete_id: str | None = None
    message: str | None = None


class WhatsappNumber(SQLModel):
    """
    Destination number for checkout messages (international format, no '+').
    """

    model_config = ConfigDict(extra="forbid")

    number: str


class Notice(SQLModel):
    message: str
