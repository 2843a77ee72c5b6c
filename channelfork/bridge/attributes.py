"""Attribute bridge — the key/value store used for configuration and state.

The engine reads its routing configuration from the store and publishes
its state and the known-destinations snapshot back into it, so that
operators and other modules can observe a running fork.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class AttributeStoreError(RuntimeError):
    """Base class for attribute store failures."""


class AttributeNotFoundError(AttributeStoreError):
    """Raised when reading or writing an attribute that was never registered."""


class AttributeNotWriteableError(AttributeStoreError):
    """Raised when writing a read-only attribute."""


class AttributeRegistrationError(AttributeStoreError):
    """Raised when an attribute cannot be registered."""


class AttributeTypeError(AttributeStoreError):
    """Raised when an attribute value does not have the requested type."""


@runtime_checkable
class AttributeStore(Protocol):
    """Minimal attribute store contract."""

    def add(self, key: str, value: Any = None, *, writable: bool = True) -> None:
        ...

    def has(self, key: str) -> bool:
        ...

    def get(self, key: str, expected_type: type = object) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class InMemoryAttributeStore:
    """Thread-safe in-process ``AttributeStore``.

    Attributes must be registered with ``add`` before they can be read
    or written.  Registering an existing key is an error.

    Usage
    -----
    >>> store = InMemoryAttributeStore()
    >>> store.add("incoming-channel", "/test-fork", writable=False)
    >>> store.get("incoming-channel", str)
    '/test-fork'
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = {}
        self._writable: dict[str, bool] = {}
        self._lock = threading.Lock()
        for key, value in (initial or {}).items():
            self.add(key, value)

    def add(self, key: str, value: Any = None, *, writable: bool = True) -> None:
        if not key:
            raise AttributeRegistrationError("Attribute key must be non-empty")
        with self._lock:
            if key in self._values:
                raise AttributeRegistrationError(f"Attribute already registered: {key}")
            self._values[key] = value
            self._writable[key] = writable
        logger.debug("Registered attribute %s (writable=%s)", key, writable)

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._values

    def get(self, key: str, expected_type: type = object) -> Any:
        with self._lock:
            if key not in self._values:
                raise AttributeNotFoundError(f"Attribute not found: {key}")
            value = self._values[key]
        if value is not None and not isinstance(value, expected_type):
            raise AttributeTypeError(
                f"Attribute {key} is {type(value).__name__}, "
                f"expected {expected_type.__name__}"
            )
        return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if key not in self._values:
                raise AttributeNotFoundError(f"Attribute not found: {key}")
            if not self._writable[key]:
                raise AttributeNotWriteableError(f"Attribute not writeable: {key}")
            self._values[key] = value

    def snapshot(self) -> dict[str, Any]:
        """Return a shallow copy of every attribute value."""
        with self._lock:
            return dict(self._values)
