"""
Engine Results

Discriminated result type returned by every orchestrator operation:
either a Success carrying the payload or a Failure carrying the error kind
and message, never both.
"""

from typing import Any, Dict, Literal, Union

from pydantic import BaseModel, Field

from .errors import ErrorKind


def _jsonable(value: Any) -> Any:
    """Convert payloads (models, lists, dicts of models) to JSON data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    return value


class Success(BaseModel):
    """Successful operation with its payload."""
    success: Literal[True] = True
    data: Any = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True
        arbitrary_types_allowed = True

    def to_envelope(self) -> Dict[str, Any]:
        return {
            "success": True,
            "data": _jsonable(self.data),
            "metadata": _jsonable(self.metadata),
        }


class Failure(BaseModel):
    """Failed operation; carries no data."""
    success: Literal[False] = False
    error: str
    error_kind: ErrorKind

    class Config:
        frozen = True

    def to_envelope(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.error,
            "errorKind": self.error_kind.value,
        }


EngineResult = Union[Success, Failure]
