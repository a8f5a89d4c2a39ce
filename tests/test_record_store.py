"""
Tests for the record store gateways
"""
import pytest

from conftest import PROBE, b64
from fingerauth.decision import VerificationDecisionEngine
from fingerauth.errors import ErrorKind, InvalidRecordError
from fingerauth.models import ProbeRequest
from fingerauth.record_store import DynamoDBRecordStore, InMemoryRecordStore
from fingerauth.template_codec import TemplateCodec
from fingerauth.webserver.database import BiometricDatabase


class StubDynamoDBClient:
    def __init__(self, items):
        self.items = items
        self.requests = []

    def get_item(self, TableName, Key):
        self.requests.append((TableName, Key))
        item = self.items.get(Key["studentId"]["S"])
        return {"Item": item} if item is not None else {}


def dynamo_item(images):
    return {"Images": {"M": {label: {"S": value} for label, value in images.items()}}}


class TestInMemoryRecordStore:
    def test_lookup_sorts_references(self):
        store = InMemoryRecordStore()
        store.put("s1", {"b": "Yg==", "a": "YQ=="})
        record = store.lookup("s1")
        assert [r.label for r in record.references] == ["a", "b"]
        assert record.references[0].encoded_image == b"YQ=="

    def test_unknown_subject(self):
        assert InMemoryRecordStore().lookup("nobody") is None


class TestDynamoDBRecordStore:
    def test_lookup(self):
        client = StubDynamoDBClient({"s1": dynamo_item({"f2": "Mg==", "f1": "MQ==", "f3": "Mw=="})})
        store = DynamoDBRecordStore(client=client)

        record = store.lookup("s1")

        assert client.requests == [("Fingerprint-db", {"studentId": {"S": "s1"}})]
        assert record.subject_id == "s1"
        assert [r.label for r in record.references] == ["f1", "f2", "f3"]

    def test_custom_table(self):
        client = StubDynamoDBClient({})
        DynamoDBRecordStore(table_name="other", client=client).lookup("s1")
        assert client.requests[0][0] == "other"

    def test_missing_item(self):
        assert DynamoDBRecordStore(client=StubDynamoDBClient({})).lookup("s1") is None

    @pytest.mark.parametrize("item", [
        {"studentId": {"S": "s1"}},
        {"Images": {"S": "not a map"}},
        {"Images": {"M": {"f1": {"B": b"binary"}}}},
    ])
    def test_malformed_item(self, item):
        store = DynamoDBRecordStore(client=StubDynamoDBClient({"s1": item}))
        with pytest.raises(InvalidRecordError, match="Invalid stored fingerprint data"):
            store.lookup("s1")

    def test_malformed_item_fails_verification(self):
        from conftest import FakeMatchingEngine

        store = DynamoDBRecordStore(client=StubDynamoDBClient({"s1": {"studentId": {"S": "s1"}}}))
        engine = VerificationDecisionEngine(TemplateCodec(FakeMatchingEngine()), record_store=store)

        outcome = engine.verify_subject(ProbeRequest.create("s1", b64(PROBE)))

        assert outcome.kind is ErrorKind.INVALID_RECORD
        assert outcome.message == "Invalid stored fingerprint data"


@pytest.fixture
def db(tmp_path):
    database = BiometricDatabase(db_path=tmp_path / "test.db", encryption_key="test-key")
    yield database
    database.close()


class TestBiometricDatabase:
    def test_save_and_lookup(self, db):
        assert db.save_record("s1", {"f3": "Mw==", "f1": "MQ==", "f2": b"Mg=="}) == 3

        record = db.lookup("s1")

        assert [r.label for r in record.references] == ["f1", "f2", "f3"]
        assert record.references[1].encoded_image == b"Mg=="

    def test_lookup_unknown(self, db):
        assert db.lookup("nobody") is None

    def test_save_replaces_previous_images(self, db):
        db.save_record("s1", {"f1": "MQ==", "f2": "Mg==", "f3": "Mw=="})
        db.save_record("s1", {"g1": "MQ=="})
        assert [r.label for r in db.lookup("s1").references] == ["g1"]

    def test_delete(self, db):
        db.save_record("s1", {"f1": "MQ=="})
        assert db.delete_record("s1") is True
        assert db.delete_record("s1") is False
        assert db.lookup("s1") is None

    def test_stats_and_listing(self, db):
        db.save_record("s1", {"f1": "MQ==", "f2": "Mg=="})
        db.save_record("s2", {"f1": "MQ=="})

        assert db.list_subjects() == [
            {"student_id": "s1", "num_images": 2},
            {"student_id": "s2", "num_images": 1},
        ]
        stats = db.get_stats()
        assert stats["num_subjects"] == 2
        assert stats["num_images"] == 3

    def test_audit_log(self, db):
        db.save_record("s1", {"f1": "MQ=="}, username="admin")
        db.delete_record("s1", username="admin")

        entries = db.get_audit_log()

        assert [e["action"] for e in entries] == ["RECORD_DELETED", "RECORD_SAVED"]
        assert all(e["username"] == "admin" for e in entries)

    def test_persists_across_connections(self, tmp_path):
        path = tmp_path / "persist.db"
        with BiometricDatabase(db_path=path, encryption_key="k1") as first:
            first.save_record("s1", {"f1": "MQ=="})
        with BiometricDatabase(db_path=path, encryption_key="k1") as second:
            assert second.lookup("s1") is not None
