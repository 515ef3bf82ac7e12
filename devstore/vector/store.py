"""
Local vector store.

Every search scans the whole collection and scores each row with cosine
similarity. That is fine for development data sets and nothing more.
"""

import json
import uuid
from typing import Any, Dict, List, Optional, Union

from ..core import utils
from ..core.config import DEFAULT_EMBEDDING_DIMENSION, VECTOR_STATS_SAMPLE_SIZE
from ..core.db import LocalDB
from ..core.errors import StorageValidationError
from ..core.models import VectorSearchParams, VectorUpsertParams, coerce_params
from ..core.schema import (
    VectorLookup,
    VectorNamespaceStats,
    VectorResult,
    VectorSearchResult,
    VectorUpsertResult,
)
from ..util.logging import logger
from .embeddings import cosine_similarity, simple_embedding

_MISSING = object()


class LocalVectorStorage:
    """Named vector collections scoped to one project."""

    def __init__(self, db: LocalDB, project_path: str):
        self._db = db
        self._project_path = project_path

    @staticmethod
    def _validate_name(name: str) -> None:
        if utils.is_blank(name):
            raise StorageValidationError("Vector storage name is required")

    def _collection_dimension(self, name: str) -> Optional[int]:
        """Dimension of an arbitrary stored vector, or None for an empty collection."""
        row = self._db.open().execute(
            "SELECT embedding FROM vector_storage WHERE project_path = ? AND name = ? LIMIT 1",
            (self._project_path, name)
        ).fetchone()
        if row is None:
            return None
        return len(json.loads(row["embedding"]))

    def _embedding_for(self, doc: VectorUpsertParams, dimension: int) -> List[float]:
        if doc.embeddings is not None:
            if len(doc.embeddings) == 0:
                raise StorageValidationError("Embeddings must be a non-empty array")
            return list(doc.embeddings)
        if doc.document is not None:
            if not doc.document.strip():
                raise StorageValidationError("Document text must be non-empty")
            return simple_embedding(doc.document, dimension)
        raise StorageValidationError("Each document must have either embeddings or document text")

    async def upsert(self, name: str,
                     *documents: Union[VectorUpsertParams, Dict[str, Any]]) -> List[VectorUpsertResult]:
        """Insert or update documents by key.

        Each document is written by its own statement; a failure part way
        through leaves the earlier documents committed. The returned id is
        whatever id the row holds after the write, so updating an existing
        key returns its original id.
        """
        self._validate_name(name)
        if not documents:
            raise StorageValidationError("At least one document is required")

        dimension = self._collection_dimension(name)
        results = []
        conn = self._db.open()

        for raw in documents:
            doc = coerce_params(VectorUpsertParams, raw)
            if utils.is_blank(doc.key):
                raise StorageValidationError("Each document must have a non-empty key")

            embedding = self._embedding_for(doc, dimension or DEFAULT_EMBEDDING_DIMENSION)
            if dimension is None:
                # First vector of a new collection fixes its dimension
                dimension = len(embedding)
            timestamp = utils.now_ms()

            conn.execute(
                '''
                INSERT INTO vector_storage (
                    project_path, name, id, key, embedding, document, metadata, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(project_path, name, key)
                DO UPDATE SET
                    embedding = excluded.embedding,
                    document = excluded.document,
                    metadata = excluded.metadata,
                    updated_at = excluded.updated_at
                ''',
                (
                    self._project_path,
                    name,
                    str(uuid.uuid4()),
                    doc.key,
                    json.dumps(embedding),
                    doc.document,
                    json.dumps(doc.metadata) if doc.metadata else None,
                    timestamp,
                    timestamp,
                )
            )

            row = conn.execute(
                "SELECT id FROM vector_storage WHERE project_path = ? AND name = ? AND key = ?",
                (self._project_path, name, doc.key)
            ).fetchone()
            results.append(VectorUpsertResult(key=doc.key, id=row["id"]))

        logger.log_vector_operation("upsert", name, {"count": len(results)})
        return results

    async def get(self, name: str, key: str) -> VectorLookup:
        if utils.is_blank(name) or utils.is_blank(key):
            raise StorageValidationError("Vector storage name and key are required")

        row = self._db.open().execute(
            '''
            SELECT id, key, embedding, document, metadata
            FROM vector_storage
            WHERE project_path = ? AND name = ? AND key = ?
            ''',
            (self._project_path, name, key)
        ).fetchone()

        if row is None:
            return VectorLookup(exists=False)

        return VectorLookup(
            exists=True,
            data=VectorResult(
                id=row["id"],
                key=row["key"],
                embeddings=json.loads(row["embedding"]),
                document=row["document"],
                metadata=json.loads(row["metadata"]) if row["metadata"] else None,
                similarity=1.0,
            )
        )

    async def get_many(self, name: str, *keys: str) -> Dict[str, VectorResult]:
        """Look up several keys; missing keys are left out of the result."""
        self._validate_name(name)
        found = {}
        for key in keys:
            result = await self.get(name, key)
            if result.exists:
                found[key] = result.data
        return found

    async def search(self, name: str,
                     params: Union[VectorSearchParams, Dict[str, Any]]) -> List[VectorSearchResult]:
        """Rank the collection against a text query.

        The query is embedded at the collection's dimension. Rows with a
        different dimension cannot be compared and are skipped.
        """
        self._validate_name(name)
        params = coerce_params(VectorSearchParams, params)
        if params is None:
            raise StorageValidationError("Query is required")

        dimension = self._collection_dimension(name)
        if dimension is None:
            return []
        query_embedding = simple_embedding(params.query, dimension)

        rows = self._db.open().execute(
            "SELECT id, key, embedding, metadata FROM vector_storage WHERE project_path = ? AND name = ?",
            (self._project_path, name)
        ).fetchall()

        results = []
        for row in rows:
            embedding = json.loads(row["embedding"])
            if len(embedding) != dimension:
                continue

            similarity = cosine_similarity(query_embedding, embedding)
            if params.similarity is not None and similarity < params.similarity:
                continue

            metadata = json.loads(row["metadata"]) if row["metadata"] else None
            if params.metadata:
                row_metadata = metadata or {}
                if not all(row_metadata.get(k, _MISSING) == v for k, v in params.metadata.items()):
                    continue

            results.append(VectorSearchResult(
                id=row["id"],
                key=row["key"],
                similarity=similarity,
                metadata=metadata,
            ))

        results.sort(key=lambda r: r.similarity, reverse=True)
        logger.log_vector_operation("search", name, {"scanned": len(rows), "matched": len(results)})
        return results[:params.limit]

    async def delete(self, name: str, *keys: str) -> int:
        """Delete keys from a collection. Returns the number of rows removed."""
        self._validate_name(name)
        if not keys:
            return 0

        placeholders = ", ".join("?" for _ in keys)
        with self._db.cursor() as cursor:
            cursor.execute(
                f"DELETE FROM vector_storage WHERE project_path = ? AND name = ? AND key IN ({placeholders})",
                (self._project_path, name, *keys)
            )
            deleted = cursor.rowcount

        logger.log_vector_operation("delete", name, {"deleted": deleted})
        return deleted

    async def exists(self, name: str) -> bool:
        self._validate_name(name)
        count = self._db.open().execute(
            "SELECT COUNT(*) FROM vector_storage WHERE project_path = ? AND name = ?",
            (self._project_path, name)
        ).fetchone()[0]
        return count > 0

    async def get_stats(self, name: str) -> VectorNamespaceStats:
        """Approximate size of a collection.

        Up to VECTOR_STATS_SAMPLE_SIZE rows are measured (UTF-8 length of the
        embedding JSON plus document text) and the average is extrapolated to
        the full row count.
        """
        self._validate_name(name)
        return self._stats_for(name)

    async def get_all_stats(self) -> Dict[str, VectorNamespaceStats]:
        names = [
            row["name"] for row in self._db.open().execute(
                "SELECT DISTINCT name FROM vector_storage WHERE project_path = ? ORDER BY name",
                (self._project_path,)
            ).fetchall()
        ]
        return {name: self._stats_for(name) for name in names}

    def _stats_for(self, name: str) -> VectorNamespaceStats:
        conn = self._db.open()
        summary = conn.execute(
            '''
            SELECT COUNT(*) AS count, MIN(created_at) AS created_at, MAX(updated_at) AS last_used
            FROM vector_storage
            WHERE project_path = ? AND name = ?
            ''',
            (self._project_path, name)
        ).fetchone()

        count = summary["count"]
        if count == 0:
            return VectorNamespaceStats(sum=0, count=0)

        sample = conn.execute(
            "SELECT embedding, document FROM vector_storage WHERE project_path = ? AND name = ? LIMIT ?",
            (self._project_path, name, VECTOR_STATS_SAMPLE_SIZE)
        ).fetchall()

        sample_bytes = sum(
            len(row["embedding"].encode("utf-8")) + len((row["document"] or "").encode("utf-8"))
            for row in sample
        )
        estimated = count > len(sample)
        total = round(sample_bytes / len(sample) * count) if estimated else sample_bytes

        return VectorNamespaceStats(
            sum=total,
            count=count,
            created_at=summary["created_at"],
            last_used=summary["last_used"],
            sampled=len(sample),
            estimated=estimated,
        )
