"""
SPiD SDK Persistence Implementations

Backends keeping the last session between calls (and between restarts for
the file backend), plus the keyed in-memory cache of entitlement answers.
"""

import json
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote, unquote

import httpx


VARNISH_COOKIE = "SP_ID"


def expires_on(ttl_seconds: float) -> float:
    """Absolute expiry timestamp for a TTL relative to now."""
    return time.time() + float(ttl_seconds)


def is_expired(expires_at: Any) -> bool:
    if not isinstance(expires_at, (int, float)):
        return True
    return time.time() >= expires_at


class NullPersistence:
    """Persistence that stores nothing."""

    def get(self) -> Optional[Any]:
        return None

    def set(self, value: Any, ttl_seconds: float) -> bool:
        return False

    def clear(self) -> None:
        pass


class FilePersistence:
    """File-based persistence (survives restarts)."""

    def __init__(self, key: str, file_path: Optional[str] = None) -> None:
        """
        Initialize file persistence.

        Args:
            key: name of the stored entry, used for the default file name
            file_path: Path to the file. Defaults to ~/.spid/<key>.json
        """
        if file_path:
            self._file_path = Path(file_path)
        else:
            self._file_path = Path.home() / ".spid" / f"{key}.json"
        self.key = key
        self._lock = threading.Lock()

    def _read_data(self) -> Dict[str, Any]:
        """Read the stored entry from file."""
        try:
            if self._file_path.exists():
                with open(self._file_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        return data
        except (json.JSONDecodeError, OSError):
            pass
        return {}

    def get(self) -> Optional[Any]:
        """Get the stored value, removing it once expired."""
        with self._lock:
            data = self._read_data()
            if not data:
                return None
            if is_expired(data.get("expires_at")):
                self._remove()
                return None
            return data.get("value")

    def set(self, value: Any, ttl_seconds: float) -> bool:
        """Store the value with expiration."""
        with self._lock:
            data = {"value": value, "expires_at": expires_on(ttl_seconds)}
            try:
                self._file_path.parent.mkdir(parents=True, exist_ok=True)
                with open(self._file_path, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                # Set restrictive permissions (owner read/write only)
                os.chmod(self._file_path, 0o600)
                return True
            except (OSError, TypeError, ValueError):
                return False

    def clear(self) -> None:
        """Remove the stored value."""
        with self._lock:
            self._remove()

    def _remove(self) -> None:
        try:
            if self._file_path.exists():
                self._file_path.unlink()
        except OSError:
            pass


class CookiePersistence:
    """
    Persistence in a cookie jar, typically the one of the HTTP client so the
    value travels with the requests.

    A session carrying ``sp_id`` also sets the SP_ID cookie used by Varnish.
    """

    def __init__(
        self,
        key: str,
        cookies: Optional[httpx.Cookies] = None,
        set_varnish_cookie: bool = True,
    ) -> None:
        self.key = key
        self.cookies = cookies if cookies is not None else httpx.Cookies()
        self.set_varnish_cookie = set_varnish_cookie

    def get(self) -> Optional[Any]:
        raw = self.cookies.get(self.key)
        if not raw:
            return None
        try:
            data = json.loads(unquote(raw))
        except ValueError:
            return None
        if not isinstance(data, dict) or is_expired(data.get("expires_at")):
            self.clear()
            return None
        return data.get("value")

    def set(self, value: Any, ttl_seconds: float) -> bool:
        if not value:
            return False
        # An empty domain means the cookie is valid for any host
        domain = value.get("baseDomain", "") if isinstance(value, dict) else ""
        try:
            encoded = quote(json.dumps({"value": value, "expires_at": expires_on(ttl_seconds)}))
        except (TypeError, ValueError):
            return False
        # A jar holding one name under two domains makes lookups ambiguous
        self.cookies.delete(self.key)
        if self.set_varnish_cookie and isinstance(value, dict) and value.get("sp_id"):
            self.cookies.delete(VARNISH_COOKIE)
            self.cookies.set(VARNISH_COOKIE, str(value["sp_id"]), domain=domain)
        self.cookies.set(self.key, encoded, domain=domain)
        return True

    def clear(self) -> None:
        self.cookies.delete(self.key)

    def clear_varnish_cookie(self) -> None:
        self.cookies.delete(VARNISH_COOKIE)


class InMemoryCache:
    """Keyed in-memory cache with a TTL per entry."""

    def __init__(self, default_ttl: Optional[float] = None) -> None:
        self.default_ttl = default_ttl
        self._storage: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._storage.get(key)
            if entry is None:
                return None
            if is_expired(entry["expires_at"]):
                del self._storage[key]
                return None
            return entry["value"]

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> bool:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        if ttl is None:
            return False
        with self._lock:
            self._storage[key] = {"value": value, "expires_at": expires_on(ttl)}
        return True

    def clear(self, key: str) -> None:
        with self._lock:
            self._storage.pop(key, None)

    def clear_all(self) -> None:
        with self._lock:
            self._storage.clear()
