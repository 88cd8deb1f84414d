"""
Firestore snapshot store.

Layout:
    <root_collection>/<root_document>                      latest record
    <root_collection>/<root_document>/<history_collection>/<key>   one per tick
"""

from __future__ import annotations

import logging
from typing import Any

from google.api_core import exceptions as gcp_exceptions
from google.auth import exceptions as auth_exceptions

from common.exceptions import ConfigurationError, StoreError
from models.config import CloudConfig
from models.snapshot import Snapshot
from .auth import get_credentials
from .utils import format_document_path

# API errors plus credential refresh and transport failures
STORE_ERRORS = (gcp_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


class FirestoreSnapshotStore:
    """
    PersistenceClient backed by Cloud Firestore.

    Args:
        client: A google.cloud.firestore.Client (or compatible double)
        cloud_cfg: Collection layout and project settings
    """

    def __init__(self, client: Any, cloud_cfg: CloudConfig):
        self.client = client
        self.cfg = cloud_cfg
        self.root_ref = client.collection(cloud_cfg.root_collection).document(cloud_cfg.root_document)
        self.history_ref = self.root_ref.collection(cloud_cfg.history_collection)

    @property
    def history_path(self) -> str:
        return format_document_path(
            self.cfg.root_collection, self.cfg.root_document, self.cfg.history_collection
        )

    def save(self, key: str, snapshot: Snapshot) -> None:
        """
        Create the history document for key.

        create() fails if the document exists, so an existing record is never
        overwritten.
        """
        try:
            self.history_ref.document(key).create(snapshot.to_record())
        except STORE_ERRORS as e:
            raise StoreError(f"Failed to save {self.history_path}/{key}: {e}") from e

    def upsert_latest(self, snapshot: Snapshot) -> None:
        try:
            self.root_ref.set(snapshot.to_record())
        except STORE_ERRORS as e:
            raise StoreError(f"Failed to update latest snapshot: {e}") from e

    def initial_count(self) -> int:
        """
        Highest sequence index in the history collection.

        Combines a count aggregation with the key of the newest document
        (ordered by timestamp, since keys past the padding width do not sort
        as strings).
        """
        try:
            results = self.history_ref.count(alias="all").get()
            newest = list(
                self.history_ref.order_by("timestamp", direction="DESCENDING").limit(1).stream()
            )
        except STORE_ERRORS as e:
            raise StoreError(f"Failed to count documents in {self.history_path}: {e}") from e

        count = 0
        for result in results:
            for aggregation in result:
                if aggregation.alias == "all":
                    count = int(aggregation.value)

        for doc in newest:
            try:
                count = max(count, int(doc.id))
            except ValueError:
                logging.warning(f"Ignoring non-numeric history key {doc.id}")
        return count


def create_firestore_store(cloud_cfg: CloudConfig) -> FirestoreSnapshotStore:
    """
    Build a Firestore store from configuration.

    Raises:
        ConfigurationError: If credentials cannot be loaded.
    """
    from google.cloud import firestore

    credentials = get_credentials(cloud_cfg.credentials_file)
    if credentials is None:
        raise ConfigurationError(f"Firestore credentials unavailable: {cloud_cfg.credentials_file}")

    client = firestore.Client(project=cloud_cfg.project_id, credentials=credentials)
    logging.info(
        f"Firestore store ready: project={cloud_cfg.project_id} "
        f"path={cloud_cfg.root_collection}/{cloud_cfg.root_document}/{cloud_cfg.history_collection}"
    )
    return FirestoreSnapshotStore(client, cloud_cfg)
