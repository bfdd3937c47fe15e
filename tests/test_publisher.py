"""
Tests for the secret publisher upsert.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from realm_export.adapters.memory import InMemorySecretStore
from realm_export.engine.publisher import SecretPublisher
from realm_export.errors import PublishError
from realm_export.models.secret import LookupPolicy, LookupResult, SecretRecord
from realm_export.reliability.policy import RetryPolicy

NAMESPACE = "iam-backups"
NAME = "realm-acme-json-export-20240302-secret"


@pytest.fixture
def store():
    return InMemorySecretStore()


class TestSecretPublisher:
    """Tests for SecretPublisher."""

    def test_creates_when_absent(self, store):
        """Test a missing secret is created with one key."""
        publisher = SecretPublisher(store, labels={"app": "kc"}, annotations={"owner": "iam"})

        publisher.publish(NAMESPACE, NAME, "acme.json", b"{}")

        record = store.get(NAMESPACE, NAME)
        assert record.data == {"acme.json": b"{}"}
        assert record.labels == {"app": "kc"}
        assert record.annotations == {"owner": "iam"}
        assert [op[0] for op in store.operations] == ["read", "create"]

    def test_publish_twice_is_idempotent(self, store):
        """Test create then replace leaves one record with the payload."""
        publisher = SecretPublisher(store)

        publisher.publish(NAMESPACE, NAME, "acme.json", b"payload")
        publisher.publish(NAMESPACE, NAME, "acme.json", b"payload")

        assert len(store.records) == 1
        assert store.get(NAMESPACE, NAME).data == {"acme.json": b"payload"}
        assert [op[0] for op in store.operations] == ["read", "create", "read", "replace"]

    def test_replace_drops_prior_keys(self, store):
        """Test an existing record is replaced wholesale, not merged."""
        store.records[(NAMESPACE, NAME)] = SecretRecord(
            namespace=NAMESPACE,
            name=NAME,
            data={"old.json": b"old", "acme.json": b"stale"},
            labels={"stale": "yes"},
        )
        publisher = SecretPublisher(store, labels={"app": "kc"})

        publisher.publish(NAMESPACE, NAME, "acme.json", b"fresh")

        record = store.get(NAMESPACE, NAME)
        assert record.data == {"acme.json": b"fresh"}
        assert record.labels == {"app": "kc"}

    def test_transient_lookup_error_creates_by_default(self):
        """Test a failed lookup is treated as absent."""
        store = MagicMock()
        store.read.return_value = LookupResult.transient_error("boom", status_code=500)
        publisher = SecretPublisher(store)

        publisher.publish(NAMESPACE, NAME, "acme.json", b"{}")

        store.create.assert_called_once()
        store.replace.assert_not_called()

    def test_transient_lookup_error_fails_under_strict_policy(self):
        """Test LookupPolicy.FAIL surfaces the lookup error."""
        store = MagicMock()
        store.read.return_value = LookupResult.transient_error("boom", status_code=500)
        publisher = SecretPublisher(store, lookup_policy=LookupPolicy.FAIL)

        with pytest.raises(PublishError, match="boom") as exc_info:
            publisher.publish(NAMESPACE, NAME, "acme.json", b"{}")

        assert exc_info.value.status_code == 500
        store.create.assert_not_called()

    def test_store_error_wrapped(self):
        """Test arbitrary store failures become PublishError."""
        store = MagicMock()
        store.read.return_value = LookupResult.not_found()
        store.create.side_effect = RuntimeError("forbidden")
        publisher = SecretPublisher(store)

        with pytest.raises(PublishError, match="forbidden"):
            publisher.publish(NAMESPACE, NAME, "acme.json", b"{}")

    def test_create_conflict_after_failed_lookup(self, store):
        """Test a hidden existing secret makes the create fail."""
        store.records[(NAMESPACE, NAME)] = SecretRecord(namespace=NAMESPACE, name=NAME)
        store.read = MagicMock(return_value=LookupResult.transient_error("timeout"))
        publisher = SecretPublisher(store)

        with pytest.raises(PublishError, match="already exists"):
            publisher.publish(NAMESPACE, NAME, "acme.json", b"{}")

    def test_retryable_publish_error_retried(self):
        """Test a retry policy repeats the whole upsert."""
        store = MagicMock()
        store.read.return_value = LookupResult.not_found()
        store.create.side_effect = [PublishError("503", status_code=503, retryable=True), None]
        publisher = SecretPublisher(store, policy=RetryPolicy(max_retries=2, backoff_seconds=0))

        publisher.publish(NAMESPACE, NAME, "acme.json", b"{}")

        assert store.create.call_count == 2
        assert store.read.call_count == 2
