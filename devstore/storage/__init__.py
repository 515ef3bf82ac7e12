from .keyvalue import BytesValue, JsonValue, LocalKeyValueStorage, TextValue
from .objectstore import LocalObjectStorage
from .stream import LocalStream, LocalStreamStorage

__all__ = [
    'BytesValue',
    'JsonValue',
    'LocalKeyValueStorage',
    'TextValue',
    'LocalObjectStorage',
    'LocalStream',
    'LocalStreamStorage',
]
