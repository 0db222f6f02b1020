# storefront/core/storage_utils.py
import logging
import os
import secrets
import time

import httpx
from storage3.exceptions import StorageException
from supabase import Client

from storefront.core.errors import ServiceError

logger = logging.getLogger(__name__)


def generate_filename(original_name: str) -> str:
    """
    Generate a collision-resistant object name for an upload.

    Pattern:
        <epoch millis>-<random token>.<original extension>

    Args:
        original_name: Filename as sent by the browser (e.g. "cake.PNG").

    Returns:
        A filename like "1718000000000-k3j9x0q2a1b4.png".
    """
    _, ext = os.path.splitext(original_name or "")
    ext = ext.lstrip(".").lower() or "bin"
    stamp = int(time.time() * 1000)
    return f"{stamp}-{secrets.token_hex(6)}.{ext}"


class ImageStorage:
    """
    Upload product images to one Supabase Storage bucket.

    The bucket is public: the returned URL is stored as the product's
    image reference.
    """

    def __init__(self, client: Client, bucket: str):
        self.client = client
        self.bucket = bucket

    def upload(self, path: str, file_bytes: bytes, content_type: str) -> str:
        """
        Upload raw bytes and return the public URL of the new object.

        Raises:
            ServiceError: if Supabase rejects the upload.
        """
        try:
            self.client.storage.from_(self.bucket).upload(
                path,
                file_bytes,
                {"content-type": content_type},
            )
        except StorageException as e:
            detail = e.args[0] if e.args else {}
            message = detail.get("message") if isinstance(detail, dict) else str(detail)
            logger.warning("Upload of %s to %s failed: %s", path, self.bucket, message)
            raise ServiceError(message or "unknown error")
        except httpx.HTTPError as e:
            logger.warning("Upload of %s to %s failed: %s", path, self.bucket, e)
            raise ServiceError(str(e) or "unknown error")
        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return self.client.storage.from_(self.bucket).get_public_url(path)
