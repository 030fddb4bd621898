"""Record image activity: persist and list image-generation records.

The storage collaborator of the orchestration facade.  Each successful
generation is written as one JSON blob to the image-records container at
a deterministic path (see ``utils.blob_paths``); history is read back by
listing the user's prefix.

Writes are synchronous ``azure-storage-blob`` calls.  The facade runs
them with ``asyncio.to_thread`` in the background so that a slow or
failing store never delays or fails the image response.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from ai_gateway.core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_IMAGE_RECORDS_CONTAINER
from ai_gateway.core.exceptions import PermanentError
from ai_gateway.models.records import ImageRecord
from ai_gateway.utils.blob_paths import build_image_record_path, build_user_prefix

if TYPE_CHECKING:
    from azure.storage.blob import BlobServiceClient

logger = logging.getLogger("ai_gateway.activities.record_image")


class ImageRecordWriteError(PermanentError):
    """Raised when an image record cannot be written or read."""

    default_stage = "record_image"
    default_code = "IMAGE_RECORD_WRITE_FAILED"


class ImageRecordStore(Protocol):
    """Storage collaborator used by the facade."""

    def save(self, record: ImageRecord) -> str:
        """Persist *record* and return its location."""

    def list_for_user(self, user_id: str, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[ImageRecord]:
        """Return up to *limit* records of *user_id*, newest first."""


class BlobImageRecordStore:
    """``ImageRecordStore`` backed by Azure Blob Storage.

    Args:
        blob_service_client: An Azure ``BlobServiceClient`` instance.
        container: Target container name.
    """

    def __init__(
        self,
        blob_service_client: BlobServiceClient,
        *,
        container: str = DEFAULT_IMAGE_RECORDS_CONTAINER,
    ) -> None:
        self._client = blob_service_client
        self._container = container

    @property
    def container(self) -> str:
        return self._container

    def save(self, record: ImageRecord) -> str:
        """Upload *record* as JSON and return the blob path.

        Uses ``overwrite=True`` so a retried write of the same record
        lands on the same blob.

        Raises:
            ImageRecordWriteError: If the upload fails.
        """
        path = build_image_record_path(
            record.user_id, record.record_id, timestamp=record.created_at
        )
        try:
            blob_client = self._client.get_blob_client(container=self._container, blob=path)
            blob_client.upload_blob(record.to_json().encode("utf-8"), overwrite=True)
        except Exception as exc:
            msg = f"Failed to upload image record to {path}: {exc}"
            raise ImageRecordWriteError(msg) from exc

        logger.info(
            "Image record written | user=%s | record_id=%s | path=%s",
            record.user_id,
            record.record_id,
            path,
        )
        return path

    def list_for_user(self, user_id: str, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[ImageRecord]:
        """Return up to *limit* records of *user_id*, newest first.

        Blobs that fail to parse, or whose record names a different owner,
        are skipped with a warning.

        Raises:
            ImageRecordWriteError: If the container cannot be listed.
        """
        if limit <= 0:
            return []
        prefix = build_user_prefix(user_id)
        try:
            container = self._client.get_container_client(self._container)
            names = sorted(
                (blob.name for blob in container.list_blobs(name_starts_with=prefix)),
                reverse=True,
            )
        except Exception as exc:
            msg = f"Failed to list image records under {prefix}: {exc}"
            raise ImageRecordWriteError(msg, code="IMAGE_RECORD_LIST_FAILED") from exc

        records: list[ImageRecord] = []
        for name in names:
            if len(records) >= limit:
                break
            try:
                raw = container.download_blob(name).readall()
                record = ImageRecord.from_json(raw)
            except Exception as exc:
                logger.warning("Skipping unreadable image record | path=%s | error=%s", name, exc)
                continue
            if record.user_id != user_id:
                logger.warning("Skipping image record of another user | path=%s", name)
                continue
            records.append(record)

        logger.info(
            "Image history listed | user=%s | returned=%d | available=%d",
            user_id,
            len(records),
            len(names),
        )
        return records
