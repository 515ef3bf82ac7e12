"""
Local stream store.

A stream is written once: chunks are appended to a scratch file on disk, and
close() moves the whole payload into the stream_storage row. Until then the
row's data column is NULL and readers get StreamNotFinalizedError.
"""

import gzip
import json
import sqlite3
import uuid
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from ..core import utils
from ..core.config import DEFAULT_CONTENT_TYPE, STREAM_NAME_MAX_LENGTH, get_stream_temp_dir
from ..core.db import LocalDB
from ..core.errors import (
    StorageValidationError,
    StreamClosedError,
    StreamNotFinalizedError,
    StreamNotFoundError,
)
from ..core.models import CreateStreamProps, ListStreamsParams, coerce_params
from ..core.schema import ListStreamsResponse, StreamInfo
from ..util.logging import logger

READ_CHUNK_SIZE = 64 * 1024

StreamChunk = Union[str, bytes, bytearray, memoryview, Dict[str, Any], List[Any]]


def encode_metadata(metadata: Optional[Dict[str, str]]) -> Optional[str]:
    # Compact separators keep the LIKE filter in list() predictable
    return json.dumps(metadata, separators=(",", ":")) if metadata else None


def chunk_to_bytes(chunk: StreamChunk) -> bytes:
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    if isinstance(chunk, (bytes, bytearray, memoryview)):
        return bytes(chunk)
    try:
        return json.dumps(chunk).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise StorageValidationError(f"Stream chunk is not JSON serializable: {e}") from e


def fetch_stream_row(conn: sqlite3.Connection, project_path: str, stream_id: str) -> sqlite3.Row:
    """Load a finalized stream row.

    Raises:
        StreamNotFoundError: no such stream for this project
        StreamNotFinalizedError: the stream has not been closed yet
    """
    row = conn.execute(
        "SELECT data, content_type FROM stream_storage WHERE project_path = ? AND id = ?",
        (project_path, stream_id)
    ).fetchone()

    if row is None:
        raise StreamNotFoundError(stream_id)
    if row["data"] is None:
        raise StreamNotFinalizedError(stream_id)
    return row


async def iter_stream_data(db: LocalDB, project_path: str, stream_id: str) -> AsyncIterator[bytes]:
    """Lazy, single-pass reader over a finalized stream. The row is read on first iteration."""
    data = bytes(fetch_stream_row(db.open(), project_path, stream_id)["data"])
    for offset in range(0, len(data), READ_CHUNK_SIZE):
        yield data[offset:offset + READ_CHUNK_SIZE]


class LocalStream:
    """Writable handle on one stream.

    The scratch file is opened when the handle is created and is owned by it
    until close(). write() after close() raises StreamClosedError.
    """

    def __init__(self, stream_id: str, url: str, db: LocalDB, project_path: str,
                 temp_dir: Path, compressed: bool = False):
        self.id = stream_id
        self.url = url
        self._db = db
        self._project_path = project_path
        self._compressed = compressed
        self._temp_file_path = Path(temp_dir) / f"{stream_id}.tmp"
        self._bytes_written = 0
        self._closed = False
        self._file = open(self._temp_file_path, "wb")

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    @property
    def compressed(self) -> bool:
        return self._compressed

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, chunk: StreamChunk) -> None:
        """Append a chunk. Dicts and lists are written as JSON."""
        if self._closed:
            raise StreamClosedError(self.id)

        data = chunk_to_bytes(chunk)
        try:
            self._file.write(data)
        except OSError:
            self._abort()
            raise
        self._bytes_written += len(data)

    async def close(self) -> None:
        """Finalize the stream. Calling it again is a no-op."""
        if self._closed:
            return
        self._closed = True

        try:
            self._file.close()
            self._persist()
        except Exception:
            # Scratch file is kept, the bytes are not in the row yet
            logger.log_stream_operation("finalize", self.id, status="failed", details={
                "scratch_file": str(self._temp_file_path)
            })
            raise
        self._remove_temp_file()

        logger.log_stream_operation("finalize", self.id, details={
            "size_bytes": self._bytes_written, "compressed": self._compressed
        })

    def get_reader(self) -> AsyncIterator[bytes]:
        """Async iterator over the finalized bytes.

        Iterating before close() raises StreamNotFinalizedError; iterating
        after the stream was deleted raises StreamNotFoundError.
        """
        return iter_stream_data(self._db, self._project_path, self.id)

    async def __aenter__(self) -> "LocalStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _persist(self) -> None:
        data = self._temp_file_path.read_bytes()
        if self._compressed:
            data = gzip.compress(data)

        with self._db.cursor() as cursor:
            cursor.execute(
                "UPDATE stream_storage SET data = ?, size_bytes = ? WHERE project_path = ? AND id = ?",
                (data, self._bytes_written, self._project_path, self.id)
            )

    def _abort(self) -> None:
        self._closed = True
        try:
            self._file.close()
        finally:
            self._remove_temp_file()
        logger.log_stream_operation("abort", self.id, status="failed")

    def _remove_temp_file(self) -> None:
        try:
            self._temp_file_path.unlink()
        except OSError:
            # Scratch space, nothing to recover
            pass


class LocalStreamStorage:
    """Catalog of write-once streams scoped to one project."""

    def __init__(self, db: LocalDB, project_path: str, server_url: str,
                 temp_dir: Optional[Union[str, Path]] = None):
        self._db = db
        self._project_path = project_path
        self._server_url = server_url.rstrip("/")
        self._temp_dir = Path(temp_dir) if temp_dir is not None else get_stream_temp_dir()
        self._temp_dir.mkdir(parents=True, exist_ok=True)

    def _url(self, stream_id: str) -> str:
        return f"{self._server_url}/_local/stream/{stream_id}"

    @staticmethod
    def _validate_id(stream_id: str) -> None:
        if utils.is_blank(stream_id):
            raise StorageValidationError("Stream id is required")

    async def create(self, name: str, props: Union[CreateStreamProps, Dict[str, Any], None] = None) -> LocalStream:
        if not isinstance(name, str) or not 1 <= len(name) <= STREAM_NAME_MAX_LENGTH:
            raise StorageValidationError(
                f"Stream name must be between 1 and {STREAM_NAME_MAX_LENGTH} characters"
            )
        props = coerce_params(CreateStreamProps, props) or CreateStreamProps()

        stream_id = str(uuid.uuid4())
        # Scratch file first, the row only exists once it is open
        stream = LocalStream(
            stream_id,
            self._url(stream_id),
            self._db,
            self._project_path,
            self._temp_dir,
            props.compress,
        )

        try:
            with self._db.cursor() as cursor:
                cursor.execute(
                    '''
                    INSERT INTO stream_storage (
                        project_path, id, name, metadata, content_type, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?)
                    ''',
                    (
                        self._project_path,
                        stream_id,
                        name,
                        encode_metadata(props.metadata),
                        props.content_type or DEFAULT_CONTENT_TYPE,
                        utils.now_ms(),
                    )
                )
        except Exception:
            stream._abort()
            raise

        logger.log_stream_operation("create", stream_id, details={"name": name, "compress": props.compress})
        return stream

    async def list(self, params: Union[ListStreamsParams, Dict[str, Any], None] = None) -> ListStreamsResponse:
        """List streams, newest first.

        Metadata filters match by substring against the stored JSON, one
        pattern per key/value pair.
        """
        params = coerce_params(ListStreamsParams, params) or ListStreamsParams()

        where = "WHERE project_path = ?"
        args: List[Any] = [self._project_path]

        if params.name:
            where += " AND name = ?"
            args.append(params.name)

        if params.metadata:
            for key, value in params.metadata.items():
                pattern = encode_metadata({key: value})[1:-1]
                pattern = pattern.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
                where += " AND metadata LIKE ? ESCAPE '\\'"
                args.append(f"%{pattern}%")

        conn = self._db.open()
        total = conn.execute(f"SELECT COUNT(*) FROM stream_storage {where}", args).fetchone()[0]

        query = f"SELECT id, name, metadata, size_bytes FROM stream_storage {where} ORDER BY created_at DESC"
        page_args = list(args)
        if params.limit is not None or params.offset is not None:
            query += " LIMIT ? OFFSET ?"
            page_args.append(params.limit if params.limit is not None else -1)
            page_args.append(params.offset or 0)

        rows = conn.execute(query, page_args).fetchall()
        streams = [
            StreamInfo(
                id=row["id"],
                name=row["name"],
                metadata=json.loads(row["metadata"]) if row["metadata"] else {},
                url=self._url(row["id"]),
                size_bytes=row["size_bytes"],
            )
            for row in rows
        ]
        return ListStreamsResponse(streams=streams, total=total)

    async def get(self, stream_id: str) -> StreamInfo:
        self._validate_id(stream_id)
        row = self._db.open().execute(
            "SELECT id, name, metadata, size_bytes FROM stream_storage WHERE project_path = ? AND id = ?",
            (self._project_path, stream_id)
        ).fetchone()

        if row is None:
            raise StreamNotFoundError(stream_id)

        return StreamInfo(
            id=row["id"],
            name=row["name"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            url=self._url(stream_id),
            size_bytes=row["size_bytes"],
        )

    async def download(self, stream_id: str) -> AsyncIterator[bytes]:
        """Reader over a finalized stream of this project."""
        self._validate_id(stream_id)
        # Fail here rather than on first iteration
        fetch_stream_row(self._db.open(), self._project_path, stream_id)
        return iter_stream_data(self._db, self._project_path, stream_id)

    async def delete(self, stream_id: str) -> bool:
        self._validate_id(stream_id)
        with self._db.cursor() as cursor:
            cursor.execute(
                "DELETE FROM stream_storage WHERE project_path = ? AND id = ?",
                (self._project_path, stream_id)
            )
            deleted = cursor.rowcount > 0

        logger.log_stream_operation("delete", stream_id, details={"deleted": deleted})
        return deleted
