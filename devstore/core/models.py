"""
Input parameter models for the stores.
Every store accepts either one of these models or a plain dict.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import STREAM_LIST_MAX_LIMIT, VECTOR_SEARCH_DEFAULT_LIMIT
from .errors import StorageValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class _Params(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ObjectStorePutParams(_Params):
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None
    cache_control: Optional[str] = None
    content_disposition: Optional[str] = None
    content_language: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None


class CreatePublicURLParams(_Params):
    # Accepted for interface compatibility, links never expire locally
    expires_duration: Optional[int] = None


class CreateStreamProps(_Params):
    metadata: Optional[Dict[str, str]] = None
    content_type: Optional[str] = None
    compress: bool = False


class ListStreamsParams(_Params):
    name: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None
    limit: Optional[int] = Field(default=None, ge=1, le=STREAM_LIST_MAX_LIMIT)
    offset: Optional[int] = Field(default=None, ge=0)


class VectorUpsertParams(_Params):
    key: str
    embeddings: Optional[List[float]] = None
    document: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class VectorSearchParams(_Params):
    query: str
    similarity: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = None
    limit: int = Field(default=VECTOR_SEARCH_DEFAULT_LIMIT, ge=1)

    @field_validator('query')
    @classmethod
    def query_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('query cannot be empty')
        return v


def coerce_params(model: Type[ModelT], params: Union[ModelT, Dict[str, Any], None]) -> Optional[ModelT]:
    """Return params as a validated model, raising StorageValidationError on bad input."""
    if params is None or isinstance(params, model):
        return params
    try:
        return model.model_validate(params)
    except ValidationError as e:
        raise StorageValidationError(f"Invalid {model.__name__}: {e}") from e
