"""Per-configuration key/value persistence used by the flows.

This module introduces a *narrow* persistence interface
(:class:`AuthStore`) with an in-memory implementation
(:class:`MemoryAuthStore`) and a JSON-file implementation
(:class:`DiskAuthStore`).  The design follows these goals:

* **Scoping** – every value is addressed by ``(key, config_id)``; configurations
  never see each other's values.
* **Atomicity** – disk writes use *temp-file + os.replace*.
* **Filename safety** – configuration identifiers are slugified / hashed
  before hitting the filesystem.

Values must be JSON-serialisable.  The well-known keys used by the flows are
listed as module constants below.

Environment variables
---------------------
SPA_OIDC_STORAGE_DIR
    Base directory for :class:`DiskAuthStore`.
    Defaults to ``~/.spa-oidc/storage`` when unset.
"""

from __future__ import annotations

import json
import os
import re
from hashlib import sha256
from pathlib import Path
from typing import Any, Final, Protocol, runtime_checkable

AUTH_STATE_CONTROL: Final[str] = "authStateControl"
AUTH_WELL_KNOWN_ENDPOINTS: Final[str] = "authWellKnownEndPoints"
CODE_VERIFIER: Final[str] = "codeVerifier"
AUTHN_RESULT: Final[str] = "authnResult"
CUSTOM_PARAMS_REFRESH: Final[str] = "storageCustomParamsRefresh"
CUSTOM_PARAMS_AUTH_REQUEST: Final[str] = "storageCustomParamsAuthRequest"

# --------------------------------------------------------------------------- #
# helpers                                                                     #
# --------------------------------------------------------------------------- #


def _hash(text: str, length: int = 8) -> str:
    return sha256(text.encode()).hexdigest()[:length]


def _slug(text: str, max_len: int = 60) -> str:
    """Filesystem-safe slug."""
    text = (text or "").strip().lower()
    text = re.sub(r"[^a-z0-9._-]+", "-", text)
    text = re.sub(r"-{2,}", "-", text).strip("-")
    return text[:max_len] or "unknown"


def _atomic_write(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, separators=(",", ":"), sort_keys=True)
    os.replace(tmp, path)  # atomic on POSIX


# --------------------------------------------------------------------------- #
# public interface                                                            #
# --------------------------------------------------------------------------- #


@runtime_checkable
class AuthStore(Protocol):
    """Minimal persistence contract for the flows."""

    def read(self, key: str, config_id: str) -> Any: ...

    def write(self, key: str, value: Any, config_id: str) -> None: ...

    def remove(self, key: str, config_id: str) -> None: ...

    def clear(self, config_id: str) -> None: ...


# --------------------------------------------------------------------------- #
# Memory implementation                                                       #
# --------------------------------------------------------------------------- #


class MemoryAuthStore(AuthStore):
    """Dictionary-backed implementation of :class:`AuthStore`."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    def read(self, key: str, config_id: str) -> Any:
        return self._data.get(config_id, {}).get(key)

    def write(self, key: str, value: Any, config_id: str) -> None:
        self._data.setdefault(config_id, {})[key] = value

    def remove(self, key: str, config_id: str) -> None:
        self._data.get(config_id, {}).pop(key, None)

    def clear(self, config_id: str) -> None:
        self._data.pop(config_id, None)


# --------------------------------------------------------------------------- #
# Disk implementation                                                         #
# --------------------------------------------------------------------------- #


class DiskAuthStore(AuthStore):
    """JSON-file implementation of :class:`AuthStore` (one file per config)."""

    def __init__(self, base_dir: str | os.PathLike | None = None) -> None:
        self.base_dir = Path(
            base_dir
            or os.getenv("SPA_OIDC_STORAGE_DIR")
            or Path.home() / ".spa-oidc" / "storage"
        ).expanduser()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _config_path(self, config_id: str) -> Path:
        # slug keeps the file recognisable, hash keeps distinct ids distinct
        return self.base_dir / f"{_slug(config_id)}-{_hash(config_id)}.json"

    def _load(self, config_id: str) -> dict[str, Any]:
        path = self._config_path(config_id)
        if not path.exists():
            return {}
        with path.open(encoding="utf-8") as fh:
            return json.load(fh)

    def read(self, key: str, config_id: str) -> Any:
        return self._load(config_id).get(key)

    def write(self, key: str, value: Any, config_id: str) -> None:
        data = self._load(config_id)
        data[key] = value
        _atomic_write(self._config_path(config_id), data)

    def remove(self, key: str, config_id: str) -> None:
        data = self._load(config_id)
        if key in data:
            del data[key]
            _atomic_write(self._config_path(config_id), data)

    def clear(self, config_id: str) -> None:
        self._config_path(config_id).unlink(missing_ok=True)
