"""
Error taxonomy for the local storage engine.
"""


class DevStoreError(Exception):
    """Base class for all storage engine errors."""
    pass


class StorageValidationError(DevStoreError, ValueError):
    """Caller supplied an invalid identifier, TTL, limit or document."""
    pass


class NotSupportedLocallyError(DevStoreError, NotImplementedError):
    """Operation exists on the production interface but not on the local engine."""

    def __init__(self, operation: str):
        super().__init__(f"{operation} is not supported by local storage")
        self.operation = operation


class ObjectNotFoundError(DevStoreError, LookupError):
    """No object stored under the given bucket and key."""

    def __init__(self, bucket: str, key: str):
        super().__init__(f"Object not found: {bucket}/{key}")
        self.bucket = bucket
        self.key = key


class StreamNotFoundError(DevStoreError, LookupError):
    """No stream with the given id exists for this project."""

    def __init__(self, stream_id: str):
        super().__init__(f"Stream not found: {stream_id}")
        self.stream_id = stream_id


class StreamNotFinalizedError(DevStoreError):
    """Stream exists but has not been closed yet, so it has no data."""

    def __init__(self, stream_id: str):
        super().__init__(f"Stream not finalized: {stream_id}")
        self.stream_id = stream_id


class StreamClosedError(DevStoreError):
    """Write attempted on a stream that was already closed."""

    def __init__(self, stream_id: str):
        super().__init__(f"Stream is closed: {stream_id}")
        self.stream_id = stream_id
