"""Unit tests for the striped map and cache serializers."""

import threading
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from rolegraph.core.auth.schemas import AccessSnapshot
from rolegraph.core.cache import StripedDict, deserialize, serialize


pytestmark = pytest.mark.unit


class TestStripedDict:
    """Tests for StripedDict."""

    def test_set_get_pop(self):
        """set, get and pop should behave like a dict."""
        table: StripedDict[str, int] = StripedDict(stripes=4)
        table.set("a", 1)

        assert table.get("a") == 1
        assert "a" in table
        assert table.pop("a") == 1
        assert table.get("a") is None
        assert table.pop("a") is None

    def test_update_returning_none_removes_key(self):
        """update() removes the key when the function returns None."""
        table: StripedDict[str, int] = StripedDict(stripes=4)
        table.set("a", 1)

        assert table.update("a", lambda _: None) is None
        assert "a" not in table

    def test_items_and_len_span_all_stripes(self):
        """Verify items() and len() see keys in every stripe."""
        table: StripedDict[int, int] = StripedDict(stripes=3)
        for i in range(10):
            table.set(i, i * i)

        assert len(table) == 10
        assert sorted(table.items()) == [(i, i * i) for i in range(10)]

    def test_rejects_non_positive_stripes(self):
        """A map needs at least one stripe."""
        with pytest.raises(ValueError):
            StripedDict(stripes=0)

    def test_concurrent_updates_are_not_lost(self):
        """update() is atomic per key even under thread contention."""
        table: StripedDict[str, int] = StripedDict(stripes=2)

        def bump() -> None:
            for _ in range(500):
                table.update("counter", lambda v: (v or 0) + 1)

        threads = [threading.Thread(target=bump) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert table.get("counter") == 4000


class TestSerializers:
    """Tests for cache value serialization."""

    def test_special_types_survive(self):
        """Verify UUIDs, datetimes and sets survive a serialize/deserialize pass."""
        user_id = uuid4()
        now = datetime(2026, 3, 1, 8, 30, tzinfo=UTC)

        value = deserialize(serialize({"id": user_id, "at": now, "tags": {"b", "a"}}))

        assert value == {"id": user_id, "at": now, "tags": {"a", "b"}}

    def test_pydantic_model_comes_back_as_dict(self):
        """Pydantic models are stored as their JSON dump."""
        snapshot = AccessSnapshot(permissions=frozenset({"role::read"}))

        value = deserialize(serialize(snapshot))

        assert value == {"roles": [], "permissions": ["role::read"], "groups": []}
        assert AccessSnapshot.model_validate(value) == snapshot
