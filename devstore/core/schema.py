"""
Result records returned by the stores.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class KVResult:
    exists: bool
    data: Any = None
    content_type: Optional[str] = None


@dataclass
class ObjectResult:
    exists: bool
    data: Optional[bytes] = None
    content_type: Optional[str] = None


@dataclass
class StreamInfo:
    id: str
    name: str
    metadata: Dict[str, str]
    url: str
    size_bytes: int


@dataclass
class ListStreamsResponse:
    streams: List[StreamInfo]
    total: int
    success: bool = True


@dataclass
class VectorUpsertResult:
    key: str
    id: str


@dataclass
class VectorResult:
    """A stored vector, as returned by direct lookups."""
    id: str
    key: str
    embeddings: List[float]
    document: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    similarity: float = 1.0


@dataclass
class VectorSearchResult:
    id: str
    key: str
    similarity: float
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class VectorNamespaceStats:
    """Approximate storage accounting for one collection."""
    sum: int
    count: int
    created_at: Optional[int] = None
    last_used: Optional[int] = None
    sampled: int = 0
    estimated: bool = False


@dataclass
class VectorLookup:
    exists: bool
    data: Optional[VectorResult] = None
