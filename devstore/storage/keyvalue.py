"""
Local key-value store.

Values are stored as bytes tagged with a content type. The content type picks
the decoding on read: JSON is parsed, any text/* type is decoded to str, and
everything else comes back as raw bytes.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from ..core import utils
from ..core.config import DEFAULT_CONTENT_TYPE, MIN_TTL_SECONDS
from ..core.db import LocalDB
from ..core.errors import NotSupportedLocallyError, StorageValidationError
from ..core.schema import KVResult
from ..util.logging import logger

JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain"


@dataclass(frozen=True)
class TextValue:
    text: str
    content_type: str = TEXT_CONTENT_TYPE


@dataclass(frozen=True)
class JsonValue:
    value: Any

    @property
    def content_type(self) -> str:
        return JSON_CONTENT_TYPE


@dataclass(frozen=True)
class BytesValue:
    data: bytes
    content_type: str = DEFAULT_CONTENT_TYPE


KVValue = Union[TextValue, JsonValue, BytesValue]


def to_kv_value(value: Any, content_type: Optional[str] = None) -> KVValue:
    """Classify a caller value into one of the three storable shapes.

    Strings and byte buffers keep an explicit content type override. Numbers,
    booleans, None and containers are always JSON. Anything else is stored as
    its string form.
    """
    if isinstance(value, TextValue):
        return TextValue(value.text, content_type or value.content_type)
    if isinstance(value, BytesValue):
        return BytesValue(value.data, content_type or value.content_type)
    if isinstance(value, JsonValue):
        return value
    if isinstance(value, str):
        return TextValue(value, content_type or TEXT_CONTENT_TYPE)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesValue(bytes(value), content_type or DEFAULT_CONTENT_TYPE)
    if value is None or isinstance(value, (bool, int, float, dict, list, tuple)):
        return JsonValue(value)
    return TextValue(str(value), content_type or TEXT_CONTENT_TYPE)


def media_type(content_type: str) -> str:
    """Content type without parameters, lowercased."""
    return content_type.split(";")[0].strip().lower()


def _check_json_payload(data: bytes) -> None:
    try:
        json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise StorageValidationError(f"Value labelled application/json is not a JSON document: {e}") from e


def encode_value(value: KVValue) -> Tuple[bytes, str]:
    """Serialize a classified value to (bytes, content_type).

    Text or bytes labelled application/json must hold one JSON document.
    """
    if isinstance(value, (TextValue, BytesValue)):
        data = value.text.encode("utf-8") if isinstance(value, TextValue) else value.data
        if media_type(value.content_type) == JSON_CONTENT_TYPE:
            _check_json_payload(data)
        return data, value.content_type
    try:
        return json.dumps(value.value).encode("utf-8"), JSON_CONTENT_TYPE
    except (TypeError, ValueError) as e:
        raise StorageValidationError(f"Value is not JSON serializable: {e}") from e


def decode_value(data: bytes, content_type: str) -> Any:
    """Deserialize stored bytes according to their content type."""
    kind = media_type(content_type)
    if kind == JSON_CONTENT_TYPE:
        return json.loads(data.decode("utf-8"))
    if kind.startswith("text/"):
        return data.decode("utf-8")
    return data


class LocalKeyValueStorage:
    """Key-value storage scoped to one project, with lazy TTL expiry."""

    def __init__(self, db: LocalDB, project_path: str):
        self._db = db
        self._project_path = project_path

    @staticmethod
    def _validate(namespace: str, key: str) -> None:
        if utils.is_blank(namespace) or utils.is_blank(key):
            raise StorageValidationError("namespace and key are required")

    async def get(self, namespace: str, key: str) -> KVResult:
        self._validate(namespace, key)

        with self._db.cursor() as cursor:
            cursor.execute(
                "SELECT value, content_type, expires_at FROM kv_storage "
                "WHERE project_path = ? AND name = ? AND key = ?",
                (self._project_path, namespace, key)
            )
            row = cursor.fetchone()

            if row is None:
                return KVResult(exists=False)

            if row["expires_at"] is not None and row["expires_at"] < utils.now_ms():
                cursor.execute(
                    "DELETE FROM kv_storage WHERE project_path = ? AND name = ? AND key = ?",
                    (self._project_path, namespace, key)
                )
                logger.log_kv_operation("expire", namespace, key)
                return KVResult(exists=False)

        content_type = row["content_type"]
        return KVResult(
            exists=True,
            data=decode_value(bytes(row["value"]), content_type),
            content_type=content_type
        )

    async def set(self, namespace: str, key: str, value: Any,
                  ttl: Optional[int] = None, content_type: Optional[str] = None) -> None:
        """Insert or overwrite a value.

        Args:
            ttl: Time-to-live in seconds, at least 60. None means no expiry.
            content_type: Override for string and bytes values. JSON values
                always use application/json.
        """
        self._validate(namespace, key)
        if ttl is not None and ttl < MIN_TTL_SECONDS:
            raise StorageValidationError(f"ttl must be at least {MIN_TTL_SECONDS} seconds, got {ttl}")

        data, stored_type = encode_value(to_kv_value(value, content_type))
        timestamp = utils.now_ms()
        expires_at = timestamp + int(ttl * 1000) if ttl is not None else None

        with self._db.cursor() as cursor:
            cursor.execute(
                '''
                INSERT INTO kv_storage (
                    project_path, name, key, value, content_type, expires_at, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(project_path, name, key)
                DO UPDATE SET
                    value = excluded.value,
                    content_type = excluded.content_type,
                    expires_at = excluded.expires_at,
                    updated_at = excluded.updated_at
                ''',
                (self._project_path, namespace, key, data, stored_type, expires_at, timestamp, timestamp)
            )

        logger.log_kv_operation("set", namespace, key, details={
            "content_type": stored_type, "size": len(data), "ttl": ttl
        })

    async def delete(self, namespace: str, key: str) -> None:
        self._validate(namespace, key)
        with self._db.cursor() as cursor:
            cursor.execute(
                "DELETE FROM kv_storage WHERE project_path = ? AND name = ? AND key = ?",
                (self._project_path, namespace, key)
            )
        logger.log_kv_operation("delete", namespace, key)

    # Namespace management only exists on the hosted service

    async def get_namespaces(self, *args, **kwargs):
        raise NotSupportedLocallyError("get_namespaces")

    async def get_keys(self, *args, **kwargs):
        raise NotSupportedLocallyError("get_keys")

    async def search(self, *args, **kwargs):
        raise NotSupportedLocallyError("search")

    async def get_stats(self, *args, **kwargs):
        raise NotSupportedLocallyError("get_stats")

    async def get_all_stats(self, *args, **kwargs):
        raise NotSupportedLocallyError("get_all_stats")

    async def create_namespace(self, *args, **kwargs):
        raise NotSupportedLocallyError("create_namespace")

    async def delete_namespace(self, *args, **kwargs):
        raise NotSupportedLocallyError("delete_namespace")
