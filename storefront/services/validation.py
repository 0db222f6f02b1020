# storefront/services/validation.py
"""
Product draft validation.

Rules run in a fixed field order (name, description, price, image_url,
category, in_stock) and the admin is shown only the first violation.
"""
import math
import re
from dataclasses import dataclass

from pydantic import AnyUrl, TypeAdapter, ValidationError

from storefront.core.errors import ProductValidationError
from storefront.schemas.product import ProductDraft, ProductPayload

NAME_MAX = 200
DESCRIPTION_MAX = 2000
PRICE_MAX = 999999
IMAGE_URL_MAX = 500
CATEGORY_MAX = 100

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$", re.ASCII)
_INFINITY_WORDS = {"inf", "+inf", "-inf", "infinity", "+infinity", "-infinity"}

_url_adapter = TypeAdapter(AnyUrl)


@dataclass(frozen=True)
class FieldViolation:
    field: str
    message: str


def parse_price(text: str) -> float | None:
    """
    Parse price text. Returns None if it is not a number at all.

    Infinity is returned as a float so the finiteness rule can reject it
    with its own message.
    """
    value = (text or "").strip()
    if _NUMBER_RE.match(value) or value.lower() in _INFINITY_WORDS:
        return float(value)
    return None


def _is_url(value: str) -> bool:
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def _check_name(draft: ProductDraft) -> FieldViolation | None:
    name = draft.name.strip()
    if not name:
        return FieldViolation("name", "Product name is required")
    if len(name) > NAME_MAX:
        return FieldViolation("name", "Product name is too long")
    return None


def _check_description(draft: ProductDraft) -> FieldViolation | None:
    if len(draft.description.strip()) > DESCRIPTION_MAX:
        return FieldViolation("description", "Description is too long")
    return None


def _check_price(draft: ProductDraft) -> FieldViolation | None:
    price = parse_price(draft.price)
    if price is None:
        return FieldViolation("price", "Price is not a valid number")
    if not math.isfinite(price):
        return FieldViolation("price", "Price must be a finite number")
    if price <= 0:
        return FieldViolation("price", "Price must be positive")
    if price > PRICE_MAX:
        return FieldViolation("price", "Price is too high")
    return None


def _check_image_url(draft: ProductDraft) -> FieldViolation | None:
    url = draft.image_url
    if url == "":
        return None
    if not _is_url(url):
        return FieldViolation("image_url", "Image URL is not valid")
    if len(url) > IMAGE_URL_MAX:
        return FieldViolation("image_url", "Image URL is too long")
    return None


def _check_category(draft: ProductDraft) -> FieldViolation | None:
    if len(draft.category.strip()) > CATEGORY_MAX:
        return FieldViolation("category", "Category is too long")
    return None


def _check_in_stock(draft: ProductDraft) -> FieldViolation | None:
    if not isinstance(draft.in_stock, bool):
        return FieldViolation("in_stock", "Stock status is required")
    return None


_RULES = (
    _check_name,
    _check_description,
    _check_price,
    _check_image_url,
    _check_category,
    _check_in_stock,
)


def find_violations(draft: ProductDraft) -> list[FieldViolation]:
    """Every violated rule, in field order."""
    return [v for v in (rule(draft) for rule in _RULES) if v is not None]


def validate_product_draft(draft: ProductDraft) -> ProductPayload:
    """
    Validate and normalize a draft.

    Raises:
        ProductValidationError: for the first violated rule.
    """
    for rule in _RULES:
        violation = rule(draft)
        if violation is not None:
            raise ProductValidationError(violation.field, violation.message)

    return ProductPayload(
        name=draft.name.strip(),
        description=draft.description.strip() or None,
        price=parse_price(draft.price),
        image_url=draft.image_url or None,
        category=draft.category.strip() or None,
        in_stock=draft.in_stock,
    )
