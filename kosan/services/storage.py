# kosan/services/storage.py
from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from urllib.parse import quote

from ..config import settings

log = logging.getLogger(__name__)

RECEIPT_BUCKET = "kwitansi"
DOCUMENT_BUCKET = "ktp-images"
BUCKETS = (RECEIPT_BUCKET, DOCUMENT_BUCKET)


class StorageError(RuntimeError):
    pass


class LocalBlobStorage:
    """
    Public-read blob buckets on the local filesystem.

    Objects live at <root>/<bucket>/<path> and are served by the app under
    <public_base_url>/<bucket>/<path>.
    """

    def __init__(self, root: str | Path, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _target(self, bucket: str, path: str) -> Path:
        if bucket not in BUCKETS:
            raise StorageError(f"unknown bucket: {bucket}")
        rel = PurePosixPath(path)
        if rel.is_absolute() or ".." in rel.parts or not rel.parts:
            raise StorageError(f"invalid object path: {path}")
        return self.root / bucket / Path(*rel.parts)

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{bucket}/{quote(path)}"

    def upload(self, bucket: str, path: str, data: bytes, *, content_type: str, upsert: bool = True) -> str:
        target = self._target(bucket, path)
        if target.exists() and not upsert:
            raise StorageError(f"object exists: {bucket}/{path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"upload failed: {bucket}/{path}") from e

        log.info("stored %s/%s (%d bytes, %s)", bucket, path, len(data), content_type, extra={"bucket": bucket})
        return self.public_url(bucket, path)


def get_storage() -> LocalBlobStorage:
    return LocalBlobStorage(settings.storage_dir, settings.public_base_url)
