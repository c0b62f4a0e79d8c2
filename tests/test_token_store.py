import time

import pytest

from mcp_bridge.token_store import EXPIRY_BUFFER_SECONDS, CredentialRecord, TokenStore


@pytest.fixture
def store(tmp_path):
    store = TokenStore(tmp_path / "nested" / "tokens.db")
    yield store
    store.close()


def test_creates_parent_directory(tmp_path):
    store = TokenStore(tmp_path / "a" / "b" / "tokens.db")
    store.close()
    assert (tmp_path / "a" / "b").is_dir()


def test_missing_token(store):
    assert store.get_token("42", "notion") is None


def test_set_and_get(store):
    store.set_token("42", "notion", "access", refresh_token="refresh", expires_at=2_000_000_000)

    record = store.get_token("42", "notion")

    assert record.access_token == "access"
    assert record.refresh_token == "refresh"
    assert record.expires_at == 2_000_000_000
    assert record.created_at > 0


def test_set_replaces_existing(store):
    store.set_token("42", "notion", "first", refresh_token="r1", expires_at=100)
    store.set_token("42", "notion", "second")

    record = store.get_token("42", "notion")

    assert record.access_token == "second"
    assert record.refresh_token is None
    assert record.expires_at is None


def test_tokens_are_per_service_and_user(store):
    store.set_token("42", "notion", "n")
    store.set_token("42", "gmail", "g")
    store.set_token("7", "notion", "other")

    assert store.get_token("42", "gmail").access_token == "g"
    assert store.get_token("7", "notion").access_token == "other"


def test_delete(store):
    store.set_token("42", "notion", "access")
    store.delete_token("42", "notion")

    assert store.get_token("42", "notion") is None


class TestIsExpired:
    def record(self, expires_at):
        return CredentialRecord(user_id="42", service="n", access_token="t", expires_at=expires_at)

    def test_no_expiry_never_expires(self, store):
        assert not store.is_expired(self.record(None))

    def test_past_expiry(self, store):
        assert store.is_expired(self.record(int(time.time()) - 10))

    def test_within_buffer_counts_as_expired(self, store):
        assert store.is_expired(self.record(int(time.time()) + EXPIRY_BUFFER_SECONDS - 5))

    def test_future_expiry(self, store):
        assert not store.is_expired(self.record(int(time.time()) + 3600))
