"""Unit tests for InMemoryAttributeStore."""

from __future__ import annotations

import pytest

from channelfork.bridge.attributes import (
    AttributeNotFoundError,
    AttributeNotWriteableError,
    AttributeRegistrationError,
    AttributeStore,
    AttributeStoreError,
    AttributeTypeError,
    InMemoryAttributeStore,
)


class TestInMemoryAttributeStore:
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryAttributeStore(), AttributeStore)

    def test_add_and_get(self):
        store = InMemoryAttributeStore()
        store.add("incoming-channel", "/test-fork")
        assert store.has("incoming-channel")
        assert store.get("incoming-channel", str) == "/test-fork"

    def test_initial_values(self):
        store = InMemoryAttributeStore({"a": 1, "b": "two"})
        assert store.snapshot() == {"a": 1, "b": "two"}

    def test_get_missing_raises(self):
        with pytest.raises(AttributeNotFoundError):
            InMemoryAttributeStore().get("missing")

    def test_set_missing_raises(self):
        with pytest.raises(AttributeNotFoundError):
            InMemoryAttributeStore().set("missing", 1)

    def test_set_read_only_raises(self):
        store = InMemoryAttributeStore()
        store.add("message-filter", "$.a", writable=False)
        with pytest.raises(AttributeNotWriteableError):
            store.set("message-filter", "$.b")
        assert store.get("message-filter") == "$.a"

    def test_duplicate_registration_raises(self):
        store = InMemoryAttributeStore()
        store.add("k")
        with pytest.raises(AttributeRegistrationError):
            store.add("k")

    def test_empty_key_rejected(self):
        with pytest.raises(AttributeRegistrationError):
            InMemoryAttributeStore().add("")

    def test_type_mismatch_raises(self):
        store = InMemoryAttributeStore({"k": 42})
        with pytest.raises(AttributeTypeError, match="expected str"):
            store.get("k", str)

    def test_none_passes_any_type(self):
        store = InMemoryAttributeStore({"k": None})
        assert store.get("k", list) is None

    def test_all_errors_share_base(self):
        for exc in (
            AttributeNotFoundError,
            AttributeNotWriteableError,
            AttributeRegistrationError,
            AttributeTypeError,
        ):
            assert issubclass(exc, AttributeStoreError)
