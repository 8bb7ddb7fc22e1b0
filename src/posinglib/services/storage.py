"""Cloud Storage backup of per-user DuckDB files."""

from datetime import datetime

from google.cloud import storage  # type: ignore[attr-defined]
from google.cloud.exceptions import GoogleCloudError, NotFound

from ..config import AppConfig
from ..error_handling import StorageError
from ..logging_config import get_logger

logger = get_logger(__name__)


def get_database_blob_path(app_id: str, user_id: str, filename: str = "posing_refs.db") -> str:
    """Object path of a user's database file inside the backup bucket."""
    return f"artifacts/{app_id}/users/{user_id}/{filename}"


class DatabaseBackupService:
    """Service mirroring database files to a Google Cloud Storage bucket."""

    def __init__(self, bucket_name: str, project_id: str | None = None) -> None:
        """
        Initialize the backup service.

        Args:
            bucket_name: GCS bucket holding database files
            project_id: GCP project ID (client default when omitted)

        Raises:
            StorageError: If the GCS client cannot be created
        """
        if not bucket_name:
            raise StorageError("A GCS bucket name is required for database backup", code="bucket_missing")

        self.bucket_name = bucket_name
        self.project_id = project_id

        try:
            self.client = storage.Client(project=project_id)
            self.bucket = self.client.bucket(bucket_name)
            logger.info("backup_service_initialized", bucket=bucket_name, project_id=project_id)
        except Exception as e:
            raise StorageError(f"Failed to initialize GCS client: {e}", original_exception=e) from e

    @classmethod
    def from_config(cls, config: AppConfig) -> "DatabaseBackupService | None":
        """Backup service for the configured bucket, or None when backup is off."""
        if not config.backup_enabled:
            return None
        return cls(bucket_name=str(config.gcs_database_bucket), project_id=config.gcp_project_id)

    def upload_database_file(self, gcs_path: str, file_data: bytes, user_id: str) -> dict[str, str]:
        """
        Upload a database file.

        Args:
            gcs_path: Object path inside the bucket
            file_data: Database file bytes
            user_id: Owner of the database, stored as object metadata

        Returns:
            dict: Upload result with GCS path and size

        Raises:
            StorageError: If upload fails
        """
        try:
            blob = self.bucket.blob(gcs_path)
            blob.metadata = {
                "user_id": user_id,
                "upload_timestamp": datetime.now().isoformat(),
                "file_type": "database",
            }
            blob.upload_from_string(file_data, content_type="application/octet-stream")

            logger.info(
                "database_file_uploaded",
                user_id=user_id,
                gcs_path=gcs_path,
                bucket=self.bucket_name,
                file_size=len(file_data),
            )

            return {
                "gcs_path": gcs_path,
                "bucket": self.bucket_name,
                "file_size": str(len(file_data)),
            }

        except GoogleCloudError as e:
            raise StorageError(
                f"Failed to upload database file '{gcs_path}': {e}", code="backup_upload_failed", original_exception=e
            ) from e

    def download_database_file(self, gcs_path: str) -> bytes | None:
        """
        Download a database file.

        Returns:
            bytes: Database file data, or None when no backup exists

        Raises:
            StorageError: If download fails
        """
        try:
            blob = self.bucket.blob(gcs_path)
            file_data: bytes = blob.download_as_bytes()
            logger.info("database_file_downloaded", gcs_path=gcs_path, file_size=len(file_data))
            return file_data

        except NotFound:
            logger.debug("database_backup_not_found", gcs_path=gcs_path)
            return None
        except GoogleCloudError as e:
            raise StorageError(
                f"Failed to download database file '{gcs_path}': {e}",
                code="backup_download_failed",
                original_exception=e,
            ) from e
