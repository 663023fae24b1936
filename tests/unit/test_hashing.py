"""Tests for the deterministic hashing helpers behind the audit chain."""

from datetime import UTC, datetime
from uuid import UUID

from warehouse_kernel.utils.hashing import canonicalize_json, hash_audit_entry, hash_payload

ORDER_ID = UUID("12345678-1234-5678-1234-567812345678")


class TestCanonicalJson:

    def test_sorted_compact(self):
        assert canonicalize_json({"b": 1, "a": [2, 3]}) == '{"a":[2,3],"b":1}'

    def test_uuid_and_datetime_rendered(self):
        text = canonicalize_json({"id": ORDER_ID, "at": datetime(2025, 1, 2, tzinfo=UTC)})
        assert str(ORDER_ID) in text
        assert "2025-01-02T00:00:00+00:00" in text


class TestHashes:

    def test_payload_hash_ignores_key_order(self):
        assert hash_payload({"a": 1, "b": 2}) == hash_payload({"b": 2, "a": 1})

    def test_payload_hash_changes_with_content(self):
        assert hash_payload({"quantity": 5}) != hash_payload({"quantity": 6})

    def test_genesis_differs_from_linked(self):
        payload_hash = hash_payload({"quantity": 5})
        genesis = hash_audit_entry("Order", str(ORDER_ID), "CREATE_ORDER", payload_hash, None)
        linked = hash_audit_entry("Order", str(ORDER_ID), "CREATE_ORDER", payload_hash, "f" * 64)

        assert genesis != linked
        assert len(genesis) == 64
