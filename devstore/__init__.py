"""
Embedded, single-file storage engine standing in for cloud storage during
local development: key-value, objects, write-once streams and vector search,
partitioned by project directory.
"""

from .core.config import VERSION
from .core.db import LocalDB
from .core.errors import (
    DevStoreError,
    NotSupportedLocallyError,
    ObjectNotFoundError,
    StorageValidationError,
    StreamClosedError,
    StreamNotFinalizedError,
    StreamNotFoundError,
)
from .core.utils import normalize_project_path
from .services import LocalServices, create_local_services
from .storage import (
    BytesValue,
    JsonValue,
    LocalKeyValueStorage,
    LocalObjectStorage,
    LocalStream,
    LocalStreamStorage,
    TextValue,
)
from .vector import LocalVectorStorage

__version__ = VERSION

__all__ = [
    'LocalDB',
    'LocalServices',
    'create_local_services',
    'normalize_project_path',
    'LocalKeyValueStorage',
    'LocalObjectStorage',
    'LocalStream',
    'LocalStreamStorage',
    'LocalVectorStorage',
    'TextValue',
    'JsonValue',
    'BytesValue',
    'DevStoreError',
    'StorageValidationError',
    'NotSupportedLocallyError',
    'ObjectNotFoundError',
    'StreamNotFoundError',
    'StreamNotFinalizedError',
    'StreamClosedError',
]
