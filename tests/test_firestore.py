"""
Tests for the Firestore snapshot store and cloud config helpers.

The Firestore client is replaced with MagicMock; no network access.
"""

from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as gcp_exceptions
from google.auth import exceptions as auth_exceptions

from cloud.auth import get_credentials
from cloud.firestore import FirestoreSnapshotStore, create_firestore_store
from cloud.utils import check_cloud_config, format_document_path
from common.exceptions import ConfigurationError, StoreError
from models.config import CloudConfig
from models.snapshot import Snapshot
from storage.base import PersistenceClient
from storage.sequence import SequenceAllocator


SNAPSHOT = Snapshot(timestamp=1700000000.0, passenger_count=3, condition="Clear", temperature="21°C")


class Aggregation:
    def __init__(self, alias, value):
        self.alias = alias
        self.value = value


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def store(client):
    return FirestoreSnapshotStore(client, CloudConfig(project_id="demo", credentials_file="creds.json"))


class TestFirestoreSnapshotStore:
    def test_document_layout(self, client, store):
        client.collection.assert_called_once_with("train-1")
        client.collection.return_value.document.assert_called_once_with("carriage-1")
        store.root_ref.collection.assert_called_once_with("history")
        assert store.history_path == "train-1/carriage-1/history"
        assert isinstance(store, PersistenceClient)

    def test_save_creates_history_document(self, store):
        store.save("042", SNAPSHOT)
        store.history_ref.document.assert_called_once_with("042")
        store.history_ref.document.return_value.create.assert_called_once_with(SNAPSHOT.to_record())
        store.history_ref.document.return_value.set.assert_not_called()

    def test_save_existing_key_raises_store_error(self, store):
        store.history_ref.document.return_value.create.side_effect = gcp_exceptions.Conflict("exists")
        with pytest.raises(StoreError):
            store.save("001", SNAPSHOT)

    def test_upsert_latest_overwrites_root_document(self, store):
        store.upsert_latest(SNAPSHOT)
        store.root_ref.set.assert_called_once_with(SNAPSHOT.to_record())

    def test_upsert_latest_error(self, store):
        store.root_ref.set.side_effect = gcp_exceptions.ServiceUnavailable("down")
        with pytest.raises(StoreError):
            store.upsert_latest(SNAPSHOT)

    def test_initial_count_from_aggregation(self, store):
        store.history_ref.count.return_value.get.return_value = [[Aggregation("all", 41)]]
        assert store.initial_count() == 41
        store.history_ref.count.assert_called_once_with(alias="all")

    def test_initial_count_empty_result(self, store):
        store.history_ref.count.return_value.get.return_value = []
        assert store.initial_count() == 0

    def test_initial_count_error(self, store):
        store.history_ref.count.return_value.get.side_effect = gcp_exceptions.ServiceUnavailable("down")
        with pytest.raises(StoreError):
            store.initial_count()

    def test_initial_count_uses_newest_key_after_gap(self, store):
        store.history_ref.count.return_value.get.return_value = [[Aggregation("all", 4)]]
        newest = MagicMock()
        newest.id = "005"
        query = store.history_ref.order_by.return_value.limit.return_value
        query.stream.return_value = [newest]

        assert store.initial_count() == 5
        store.history_ref.order_by.assert_called_once_with("timestamp", direction="DESCENDING")
        store.history_ref.order_by.return_value.limit.assert_called_once_with(1)

    def test_initial_count_ignores_non_numeric_key(self, store):
        store.history_ref.count.return_value.get.return_value = [[Aggregation("all", 3)]]
        odd = MagicMock()
        odd.id = "manual-entry"
        store.history_ref.order_by.return_value.limit.return_value.stream.return_value = [odd]
        assert store.initial_count() == 3

    def test_auth_failure_on_count_is_store_error(self, store):
        store.history_ref.count.return_value.get.side_effect = auth_exceptions.RefreshError("invalid_grant")
        with pytest.raises(StoreError):
            store.initial_count()

    def test_auth_failure_seeds_sequence_at_zero(self, store):
        store.history_ref.count.return_value.get.side_effect = auth_exceptions.RefreshError("invalid_grant")
        allocator = SequenceAllocator.from_store(store)
        assert allocator.current == 0
        assert allocator.allocate() == 1

    def test_transport_failure_on_save_is_store_error(self, store):
        store.history_ref.document.return_value.create.side_effect = auth_exceptions.TransportError("reset")
        with pytest.raises(StoreError):
            store.save("007", SNAPSHOT)

    def test_auth_failure_on_latest_is_store_error(self, store):
        store.root_ref.set.side_effect = auth_exceptions.RefreshError("expired")
        with pytest.raises(StoreError):
            store.upsert_latest(SNAPSHOT)

    def test_custom_layout(self, client):
        cfg = CloudConfig(
            project_id="demo",
            credentials_file="creds.json",
            root_collection="train-7",
            root_document="carriage-2",
            history_collection="log",
        )
        store = FirestoreSnapshotStore(client, cfg)
        assert store.history_path == "train-7/carriage-2/log"


class TestCreateFirestoreStore:
    def test_missing_credentials(self, tmp_path):
        cfg = CloudConfig(project_id="demo", credentials_file=str(tmp_path / "missing.json"))
        with pytest.raises(ConfigurationError):
            create_firestore_store(cfg)

    def test_builds_client(self):
        cfg = CloudConfig(project_id="demo", credentials_file="creds.json")
        fake_credentials = object()
        with patch("cloud.firestore.get_credentials", return_value=fake_credentials), \
                patch("google.cloud.firestore.Client") as client_cls:
            store = create_firestore_store(cfg)
        client_cls.assert_called_once_with(project="demo", credentials=fake_credentials)
        assert store.client is client_cls.return_value


class TestGetCredentials:
    def test_empty_path(self):
        assert get_credentials("") is None

    def test_missing_file(self, tmp_path):
        assert get_credentials(str(tmp_path / "nope.json")) is None

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{}")
        assert get_credentials(str(path)) is None


class TestCheckCloudConfig:
    def test_valid(self):
        assert check_cloud_config({"project_id": "demo", "credentials_file": "creds.json"})

    @pytest.mark.parametrize("cloud", [
        None,
        [],
        {"credentials_file": "creds.json"},
        {"project_id": "demo", "credentials_file": ""},
        {"project_id": "demo", "credentials_file": "c.json", "root_collection": "a/b"},
        {"project_id": "demo", "credentials_file": "c.json", "history_collection": ""},
        {"project_id": "demo", "credentials_file": "c.json", "root_document": 5},
    ])
    def test_invalid(self, cloud):
        assert not check_cloud_config(cloud)

    def test_format_document_path(self):
        assert format_document_path("train-1", "carriage-1", "history", "001") == "train-1/carriage-1/history/001"
