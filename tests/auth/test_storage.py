"""Tests for token storage."""

import json
import os
import stat

import pytest

from depot_client.auth.storage import (
    TOKEN_KEY,
    FileKeyValueStore,
    MemoryKeyValueStore,
    TokenStore,
)
from tests.conftest import FakeBridge


class TestFileKeyValueStore:
    """Tests for FileKeyValueStore."""

    def test_get_returns_none_when_no_file(self, tmp_path):
        """Should return None when nothing was ever written."""
        store = FileKeyValueStore(tmp_path / "storage.json")
        assert store.get("auth_token") is None

    def test_set_creates_parent_dir(self, tmp_path):
        """Should create the storage directory on first write."""
        path = tmp_path / "nested" / "storage.json"
        store = FileKeyValueStore(path)

        store.set("auth_token", "abc")

        assert path.exists()
        assert json.loads(path.read_text()) == {"auth_token": "abc"}

    def test_file_permissions_are_restrictive(self, tmp_path):
        """Should write the file readable by the owner only."""
        store = FileKeyValueStore(tmp_path / "storage.json")
        store.set("auth_token", "abc")

        mode = stat.S_IMODE(os.stat(store.path).st_mode)
        assert mode == 0o600

    def test_set_preserves_other_keys(self, tmp_path):
        """Should not drop unrelated keys."""
        store = FileKeyValueStore(tmp_path / "storage.json")
        store.set("theme", "dark")
        store.set("auth_token", "abc")

        assert store.get("theme") == "dark"
        assert store.get("auth_token") == "abc"

    def test_delete_missing_key_is_noop(self, tmp_path):
        """Should not create the file or fail when the key is absent."""
        store = FileKeyValueStore(tmp_path / "storage.json")
        store.delete("auth_token")
        assert not store.path.exists()

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        """Should treat unreadable JSON as an empty store."""
        path = tmp_path / "storage.json"
        path.write_text("{not json")

        assert FileKeyValueStore(path).get("auth_token") is None

    def test_non_object_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text('["auth_token"]')

        assert FileKeyValueStore(path).get("auth_token") is None


class TestMemoryKeyValueStore:
    def test_set_get_delete(self):
        store = MemoryKeyValueStore()
        store.set("auth_token", "abc")
        assert store.get("auth_token") == "abc"

        store.delete("auth_token")
        store.delete("auth_token")
        assert store.get("auth_token") is None

    def test_clear(self):
        store = MemoryKeyValueStore()
        store.set("auth_token", "abc")
        store.clear()
        assert store.get("auth_token") is None


class BrokenStore:
    """Store whose every operation fails."""

    def get(self, key):
        raise OSError("disk unavailable")

    def set(self, key, value):
        raise OSError("disk unavailable")

    def delete(self, key):
        raise OSError("disk unavailable")


class TestTokenStoreFallback:
    """Tests for TokenStore without a host bridge."""

    @pytest.mark.asyncio
    async def test_round_trip(self, token_store):
        """Should read back the token it wrote."""
        await token_store.set_token("xyz")
        assert await token_store.get_token() == "xyz"

    @pytest.mark.asyncio
    async def test_set_writes_both_stores(self, token_store):
        """Should write the durable and the session store."""
        await token_store.set_token("xyz")

        assert token_store.durable.get(TOKEN_KEY) == "xyz"
        assert token_store.session.get(TOKEN_KEY) == "xyz"

    @pytest.mark.asyncio
    async def test_get_survives_durable_store_cleared(self, token_store):
        """Should fall back to the session store."""
        await token_store.set_token("xyz")
        token_store.durable.delete(TOKEN_KEY)

        assert await token_store.get_token() == "xyz"

    @pytest.mark.asyncio
    async def test_get_survives_session_store_cleared(self, token_store):
        """Should still read from the durable store."""
        await token_store.set_token("xyz")
        token_store.session.clear()

        assert await token_store.get_token() == "xyz"

    @pytest.mark.asyncio
    async def test_get_prefers_durable_store(self, token_store):
        token_store.durable.set(TOKEN_KEY, "durable")
        token_store.session.set(TOKEN_KEY, "session")

        assert await token_store.get_token() == "durable"

    @pytest.mark.asyncio
    async def test_empty_token_counts_as_absent(self, token_store):
        token_store.durable.set(TOKEN_KEY, "")
        assert await token_store.get_token() is None

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, token_store):
        """Deleting twice should leave the same state as deleting once."""
        await token_store.set_token("xyz")

        await token_store.delete_token()
        assert await token_store.get_token() is None

        await token_store.delete_token()
        assert await token_store.get_token() is None

    @pytest.mark.asyncio
    async def test_delete_without_token(self, token_store):
        """Should not fail when nothing is stored."""
        await token_store.delete_token()
        assert await token_store.get_token() is None

    @pytest.mark.asyncio
    async def test_token_persists_across_instances(self, settings, token_store):
        """A new process sees the durable copy only."""
        await token_store.set_token("xyz")

        restarted = TokenStore(
            durable=FileKeyValueStore(settings.storage_path),
            session=MemoryKeyValueStore(),
            bridge_provider=lambda: None,
        )
        assert await restarted.get_token() == "xyz"

    @pytest.mark.asyncio
    async def test_read_failure_returns_none(self):
        """Should swallow storage errors on read."""
        store = TokenStore(BrokenStore(), BrokenStore(), bridge_provider=lambda: None)
        assert await store.get_token() is None

    @pytest.mark.asyncio
    async def test_read_failure_on_durable_falls_back_to_session(self):
        session = MemoryKeyValueStore()
        session.set(TOKEN_KEY, "xyz")
        store = TokenStore(BrokenStore(), session, bridge_provider=lambda: None)

        assert await store.get_token() == "xyz"

    @pytest.mark.asyncio
    async def test_write_failure_is_logged_not_raised(self, caplog):
        """Should keep writing the other store and log the failure."""
        session = MemoryKeyValueStore()
        store = TokenStore(BrokenStore(), session, bridge_provider=lambda: None)

        await store.set_token("xyz")
        await store.delete_token()

        assert "Could not write token" in caplog.text
        assert "Could not delete token" in caplog.text
        assert session.get(TOKEN_KEY) is None

    def test_from_settings(self, settings):
        store = TokenStore.from_settings(settings)

        assert isinstance(store.durable, FileKeyValueStore)
        assert store.durable.path == settings.storage_path
        assert isinstance(store.session, MemoryKeyValueStore)
        assert store.key == settings.token_key


class TestTokenStoreHostBridge:
    """Tests for TokenStore with a host bridge installed."""

    @pytest.mark.asyncio
    async def test_round_trip_through_bridge(self, token_store, bridge_slot):
        """Should store the token in the bridge only."""
        bridge = FakeBridge()
        bridge_slot["bridge"] = bridge

        await token_store.set_token("xyz")

        assert bridge.token == "xyz"
        assert await token_store.get_token() == "xyz"
        assert token_store.durable.get(TOKEN_KEY) is None
        assert token_store.session.get(TOKEN_KEY) is None

    @pytest.mark.asyncio
    async def test_bridge_ignores_local_stores(self, token_store, bridge_slot):
        """A stale local token is not used while a bridge is present."""
        token_store.durable.set(TOKEN_KEY, "stale")
        bridge_slot["bridge"] = FakeBridge()

        assert await token_store.get_token() is None

    @pytest.mark.asyncio
    async def test_delete_through_bridge_is_idempotent(self, token_store, bridge_slot):
        bridge = FakeBridge(token="xyz")
        bridge_slot["bridge"] = bridge

        await token_store.delete_token()
        await token_store.delete_token()

        assert bridge.token is None
        assert await token_store.get_token() is None

    @pytest.mark.asyncio
    async def test_bridge_probed_on_each_call(self, token_store, bridge_slot):
        """Installing a bridge later switches the backend without a new store."""
        await token_store.set_token("local")
        assert token_store.uses_host_bridge is False

        bridge_slot["bridge"] = FakeBridge(token="bridged")

        assert token_store.uses_host_bridge is True
        assert await token_store.get_token() == "bridged"

    @pytest.mark.asyncio
    async def test_bridge_failures_are_swallowed(self, token_store, bridge_slot, caplog):
        bridge_slot["bridge"] = FakeBridge(fail=True)

        await token_store.set_token("xyz")
        await token_store.delete_token()

        assert await token_store.get_token() is None
        assert "host bridge" in caplog.text

    @pytest.mark.asyncio
    async def test_failing_probe_falls_back_to_local(self, settings):
        def probe():
            raise RuntimeError("probe exploded")

        store = TokenStore(
            durable=FileKeyValueStore(settings.storage_path),
            session=MemoryKeyValueStore(),
            bridge_provider=probe,
        )
        await store.set_token("xyz")

        assert await store.get_token() == "xyz"
