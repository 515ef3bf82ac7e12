"""
HTTP boundary for the local stores.

Serves the URLs handed out by LocalObjectStorage.create_public_url() and by
stream handles. Both routes read straight from the shared database.
"""

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from ..core.db import LocalDB
from ..core.errors import StreamNotFinalizedError, StreamNotFoundError
from ..storage.stream import fetch_stream_row
from ..util.logging import logger

# Optional object fields copied to response headers when set
OBJECT_HEADER_COLUMNS = {
    "content_encoding": "Content-Encoding",
    "cache_control": "Cache-Control",
    "content_disposition": "Content-Disposition",
    "content_language": "Content-Language",
}


def create_local_storage_router(db: LocalDB, project_path: str) -> APIRouter:
    """Build the router for one project. Mount it at the application root."""
    router = APIRouter(prefix="/_local", tags=["local-storage"])

    @router.get("/object/{bucket}/{key:path}")
    def get_object(bucket: str, key: str):
        row = db.open().execute(
            '''
            SELECT data, content_type, content_encoding, cache_control,
                   content_disposition, content_language
            FROM object_storage
            WHERE project_path = ? AND bucket = ? AND key = ?
            ''',
            (project_path, bucket, key)
        ).fetchone()

        if row is None:
            raise HTTPException(status_code=404, detail="Object not found")

        headers = {
            header: row[column]
            for column, header in OBJECT_HEADER_COLUMNS.items()
            if row[column]
        }
        logger.log_object_operation("serve", bucket, key)
        return Response(content=bytes(row["data"]), media_type=row["content_type"], headers=headers)

    @router.get("/stream/{stream_id}")
    def get_stream(stream_id: str):
        try:
            row = fetch_stream_row(db.open(), project_path, stream_id)
        except StreamNotFoundError:
            raise HTTPException(status_code=404, detail="Stream not found")
        except StreamNotFinalizedError:
            raise HTTPException(status_code=409, detail="Stream not finalized")

        logger.log_stream_operation("serve", stream_id)
        return Response(content=bytes(row["data"]), media_type=row["content_type"])

    return router
