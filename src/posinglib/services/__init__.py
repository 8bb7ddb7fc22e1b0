"""
Services module for posinglib application.

This module contains the service classes that handle business logic:
- ImageNormalizer: Fits images under the record payload ceiling
- filters: Filter predicate over photo records
- ViewerState: Full-screen viewer navigation
- PhotoStore: Per-user DuckDB record store with live snapshots
- DatabaseBackupService: Cloud Storage backup of database files
- IdentityProvider: Token or anonymous sign-in
- UploadSession: Pending upload batch with shared tags
- LiveGallery: Filtered, navigable view over a user's records
"""

from .auth import IdentityProvider, UserIdentity
from .filters import ALL, FilterConfig, active_filter_count, filter_records, matches
from .gallery import LiveGallery
from .image_processor import ImageNormalizer, NormalizedImage, decode_data_url, normalize_image
from .storage import DatabaseBackupService, get_database_blob_path
from .store import PhotoStore, cleanup_photo_stores, get_photo_store
from .upload import BatchWriteResult, UploadSession, WriteOutcome, persist_batch
from .viewer import SWIPE_THRESHOLD_PX, ViewerState

__all__ = [
    "ALL",
    "BatchWriteResult",
    "DatabaseBackupService",
    "FilterConfig",
    "IdentityProvider",
    "ImageNormalizer",
    "LiveGallery",
    "NormalizedImage",
    "PhotoStore",
    "SWIPE_THRESHOLD_PX",
    "UploadSession",
    "UserIdentity",
    "ViewerState",
    "WriteOutcome",
    "active_filter_count",
    "cleanup_photo_stores",
    "decode_data_url",
    "filter_records",
    "get_database_blob_path",
    "get_photo_store",
    "matches",
    "normalize_image",
    "persist_batch",
]
