import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable
from urllib.parse import quote

from jose import jwt, JWTError

from src.utils.config import (
    STORAGE_ROOT, PUBLIC_BASE_URL, SECRET_KEY, JWT_ALGORITHM,
    DOCUMENTS_BUCKET, FORMS_BUCKET,
)

logger = logging.getLogger(__name__)

BUCKETS = (DOCUMENTS_BUCKET, FORMS_BUCKET)


class StorageError(Exception):
    pass


class LocalObjectStorage:
    """Bucketed object storage on the local filesystem with signed read URLs.

    Objects live at ``<root>/<bucket>/<path>``; paths follow the
    ``{student_id}/...`` convention.
    """

    def __init__(self, root: str, base_url: str = PUBLIC_BASE_URL, secret_key: str = SECRET_KEY):
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")
        self.secret_key = secret_key

    def resolve(self, bucket: str, path: str) -> Path:
        if bucket not in BUCKETS:
            raise StorageError(f"Unknown bucket: {bucket}")
        bucket_root = (self.root / bucket).resolve()
        target = (bucket_root / path).resolve()
        if bucket_root not in target.parents:
            raise StorageError(f"Invalid object path: {path}")
        return target

    def upload(self, bucket: str, path: str, content: bytes, upsert: bool = False) -> None:
        target = self.resolve(bucket, path)
        if target.exists() and not upsert:
            raise StorageError(f"Object already exists: {bucket}/{path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Failed to write {bucket}/{path}: {e}") from e

    def remove(self, bucket: str, paths: Iterable[str]) -> None:
        for path in paths:
            target = self.resolve(bucket, path)
            try:
                target.unlink(missing_ok=True)
            except OSError as e:
                raise StorageError(f"Failed to remove {bucket}/{path}: {e}") from e

    def exists(self, bucket: str, path: str) -> bool:
        return self.resolve(bucket, path).is_file()

    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        self.resolve(bucket, path)
        expire = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        token = jwt.encode(
            {"bucket": bucket, "path": path, "exp": expire},
            self.secret_key,
            algorithm=JWT_ALGORITHM,
        )
        return f"{self.base_url}/api/storage/{bucket}/{quote(path)}?token={token}"

    def verify_signed_token(self, token: str, bucket: str, path: str) -> bool:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[JWT_ALGORITHM])
        except JWTError:
            return False
        return payload.get("bucket") == bucket and payload.get("path") == path


storage = LocalObjectStorage(STORAGE_ROOT)


def get_storage() -> LocalObjectStorage:
    return storage


def remove_quietly(store: LocalObjectStorage, bucket: str, path: str) -> None:
    """Best-effort delete used for compensating cleanup"""
    try:
        store.remove(bucket, [path])
    except StorageError:
        logger.exception("Cleanup of %s/%s failed", bucket, path)
