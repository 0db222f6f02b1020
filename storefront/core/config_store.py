# storefront/core/config_store.py
import json
import logging
import os
import threading
from functools import lru_cache
from pathlib import Path

from storefront.core.config import get_settings

logger = logging.getLogger(__name__)

WHATSAPP_NUMBER_KEY = "whatsapp_number"


class LocalConfigStore:
    """
    Small key/value store persisted to a local JSON file.

    Holds values an admin edits at runtime (the WhatsApp number orders are
    sent to). Survives restarts; scoped to one deployment.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable config file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> str | None:
        with self._lock:
            value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp.open("w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)


@lru_cache
def get_config_store() -> LocalConfigStore:
    """FastAPI dependency returning the process-wide config store."""
    return LocalConfigStore(get_settings().LOCAL_CONFIG_PATH)
