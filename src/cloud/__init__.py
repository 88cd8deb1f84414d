"""
Passenger Monitor - Cloud Module

Google Cloud Firestore storage for snapshot records.
"""

from .auth import get_credentials
from .firestore import FirestoreSnapshotStore, create_firestore_store
from .utils import check_cloud_config, format_document_path

__all__ = [
    'FirestoreSnapshotStore',
    'create_firestore_store',
    'get_credentials',
    'check_cloud_config',
    'format_document_path',
]
