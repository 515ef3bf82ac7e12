"""
Local object store for binary blobs with HTTP header metadata.
"""

import json
from typing import Any, AsyncIterable, BinaryIO, Dict, Iterable, Optional, Union
from urllib.parse import quote

from ..core import utils
from ..core.config import DEFAULT_CONTENT_TYPE
from ..core.db import LocalDB
from ..core.errors import NotSupportedLocallyError, ObjectNotFoundError, StorageValidationError
from ..core.models import CreatePublicURLParams, ObjectStorePutParams, coerce_params
from ..core.schema import ObjectResult
from ..util.logging import logger

ObjectData = Union[bytes, bytearray, memoryview, BinaryIO, Iterable[bytes], AsyncIterable[bytes]]

READ_CHUNK_SIZE = 64 * 1024


async def read_all(data: ObjectData) -> bytes:
    """Drain any supported input into memory."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)

    chunks = []
    if hasattr(data, "read"):
        while True:
            chunk = data.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(bytes(chunk))
    elif hasattr(data, "__aiter__"):
        async for chunk in data:
            chunks.append(bytes(chunk))
    elif hasattr(data, "__iter__") and not isinstance(data, str):
        for chunk in data:
            chunks.append(bytes(chunk))
    else:
        raise StorageValidationError(f"Unsupported object data type: {type(data).__name__}")
    return b"".join(chunks)


class LocalObjectStorage:
    """Object storage scoped to one project. Public URLs point at the local router."""

    def __init__(self, db: LocalDB, project_path: str, server_url: str):
        self._db = db
        self._project_path = project_path
        self._server_url = server_url.rstrip("/")

    @staticmethod
    def _validate(bucket: str, key: str) -> None:
        if utils.is_blank(bucket) or utils.is_blank(key):
            raise StorageValidationError("bucket and key are required")
        if "/" in bucket:
            # Public URLs route on the first path segment
            raise StorageValidationError(f"bucket name cannot contain '/': {bucket!r}")

    async def get(self, bucket: str, key: str) -> ObjectResult:
        self._validate(bucket, key)
        with self._db.cursor() as cursor:
            cursor.execute(
                "SELECT data, content_type FROM object_storage "
                "WHERE project_path = ? AND bucket = ? AND key = ?",
                (self._project_path, bucket, key)
            )
            row = cursor.fetchone()

        if row is None:
            return ObjectResult(exists=False)

        return ObjectResult(exists=True, data=bytes(row["data"]), content_type=row["content_type"])

    async def put(self, bucket: str, key: str, data: ObjectData,
                  params: Union[ObjectStorePutParams, Dict[str, Any], None] = None) -> None:
        """Store an object, replacing any existing one under the same key.

        Streams and iterables are read completely before the write.
        """
        self._validate(bucket, key)
        params = coerce_params(ObjectStorePutParams, params) or ObjectStorePutParams()

        buffer = await read_all(data)
        timestamp = utils.now_ms()
        metadata = json.dumps(params.metadata) if params.metadata else None

        with self._db.cursor() as cursor:
            cursor.execute(
                '''
                INSERT INTO object_storage (
                    project_path, bucket, key, data, content_type,
                    content_encoding, cache_control, content_disposition,
                    content_language, metadata, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(project_path, bucket, key)
                DO UPDATE SET
                    data = excluded.data,
                    content_type = excluded.content_type,
                    content_encoding = excluded.content_encoding,
                    cache_control = excluded.cache_control,
                    content_disposition = excluded.content_disposition,
                    content_language = excluded.content_language,
                    metadata = excluded.metadata,
                    updated_at = excluded.updated_at
                ''',
                (
                    self._project_path,
                    bucket,
                    key,
                    buffer,
                    params.content_type or DEFAULT_CONTENT_TYPE,
                    params.content_encoding or None,
                    params.cache_control or None,
                    params.content_disposition or None,
                    params.content_language or None,
                    metadata,
                    timestamp,
                    timestamp,
                )
            )

        logger.log_object_operation("put", bucket, key, details={"size": len(buffer)})

    async def delete(self, bucket: str, key: str) -> bool:
        """Delete an object. Returns True if a row was removed."""
        self._validate(bucket, key)
        with self._db.cursor() as cursor:
            cursor.execute(
                "DELETE FROM object_storage WHERE project_path = ? AND bucket = ? AND key = ?",
                (self._project_path, bucket, key)
            )
            deleted = cursor.rowcount > 0

        logger.log_object_operation("delete", bucket, key, details={"deleted": deleted})
        return deleted

    async def create_public_url(self, bucket: str, key: str,
                                params: Union[CreatePublicURLParams, Dict[str, Any], None] = None) -> str:
        """URL served by the local router. Expiry params are accepted and ignored."""
        self._validate(bucket, key)
        coerce_params(CreatePublicURLParams, params)

        result = await self.get(bucket, key)
        if not result.exists:
            raise ObjectNotFoundError(bucket, key)

        return f"{self._server_url}/_local/object/{quote(bucket, safe='')}/{quote(key, safe='')}"

    # Enumeration and head requests only exist on the hosted service

    async def list_buckets(self):
        raise NotSupportedLocallyError("list_buckets")

    async def list_keys(self, bucket: str):
        raise NotSupportedLocallyError("list_keys")

    async def list_objects(self, bucket: str, prefix: Optional[str] = None, limit: Optional[int] = None):
        raise NotSupportedLocallyError("list_objects")

    async def head_object(self, bucket: str, key: str):
        raise NotSupportedLocallyError("head_object")

    async def delete_bucket(self, bucket: str):
        raise NotSupportedLocallyError("delete_bucket")
