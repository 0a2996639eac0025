"""Durable cache for the premium flag used as a bootstrap hint."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol, Union

logger = logging.getLogger(__name__)

PREMIUM_KEY = "isPremium"


class EntitlementCache(Protocol):
    """Single-key store shared by every writer; last write wins."""

    def get_premium(self) -> Optional[bool]:
        ...

    def set_premium(self, value: bool) -> None:
        ...

    def clear(self) -> None:
        ...


class InMemoryEntitlementCache:
    """Simple in-memory cache suitable for tests and local development."""

    def __init__(self, initial: Optional[bool] = None) -> None:
        self._value = initial

    def get_premium(self) -> Optional[bool]:
        return self._value

    def set_premium(self, value: bool) -> None:
        self._value = bool(value)

    def clear(self) -> None:
        self._value = None


class JsonFileEntitlementCache:
    """Persists the flag as a small JSON document on local disk."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path).expanduser()

    def get_premium(self) -> Optional[bool]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError:
            logger.exception("Failed to read entitlement cache", extra={"cache_path": str(self._path)})
            return None

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Discarding corrupt entitlement cache at %s", self._path)
            return None

        value = data.get(PREMIUM_KEY) if isinstance(data, dict) else None
        return value if isinstance(value, bool) else None

    def set_premium(self, value: bool) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({PREMIUM_KEY: bool(value)})
        fd, tmp_name = tempfile.mkstemp(dir=str(self._path.parent), prefix=".entitlements-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
