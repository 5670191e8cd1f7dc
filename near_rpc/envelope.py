"""
JSON-RPC 2.0 envelopes.

- RequestEnvelope: {"jsonrpc": "2.0", "id": int, "method": str, "params": value}
- ResponseEnvelope: {"jsonrpc": "2.0", "id": ..., "result": value} or
  {"jsonrpc": "2.0", "id": ..., "error": {"code", "message", "data"?}}

A reply must carry exactly one of `result`/`error`. Presence is what counts, so
`{"result": null}` is a successful reply whose value is None.
"""

from __future__ import annotations

import json
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic import ValidationError as PydanticValidationError


class EnvelopeError(ValueError):
    """The reply body is not a usable JSON-RPC response envelope."""


class RequestEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)
    jsonrpc: Literal["2.0"] = "2.0"
    id: int
    method: str
    params: Any = None


class ErrorObject(BaseModel):
    model_config = ConfigDict(frozen=True)
    code: int
    message: str
    data: Optional[Any] = None


class ResponseEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)
    jsonrpc: Literal["2.0"] = "2.0"
    id: Optional[Union[int, str]] = None
    result: Any = None
    error: Optional[ErrorObject] = None

    @model_validator(mode="before")
    @classmethod
    def _exactly_one_member(cls, data: Any) -> Any:
        if isinstance(data, dict):
            has_result = "result" in data
            has_error = "error" in data and data["error"] is not None
            if has_result == has_error:
                raise ValueError("response must contain exactly one of 'result' or 'error'")
        return data

    @property
    def is_error(self) -> bool:
        return self.error is not None


def encode_request(env: RequestEnvelope) -> bytes:
    """Compact JSON bytes for the wire."""
    payload = env.model_dump(mode="json")
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode_response(body: Union[bytes, str]) -> ResponseEnvelope:
    """Parse a reply body. Raises EnvelopeError on invalid JSON or shape."""
    try:
        raw = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise EnvelopeError(f"reply is not JSON: {e}") from e
    if not isinstance(raw, dict):
        raise EnvelopeError(f"reply must be a JSON object, got {type(raw).__name__}")
    try:
        return ResponseEnvelope.model_validate(raw)
    except PydanticValidationError as e:
        first = e.errors(include_url=False)[0]
        where = ".".join(str(p) for p in first.get("loc", ())) or "<root>"
        raise EnvelopeError(f"malformed reply envelope: {where}: {first.get('msg')}") from e


__all__ = [
    "EnvelopeError",
    "RequestEnvelope",
    "ErrorObject",
    "ResponseEnvelope",
    "encode_request",
    "decode_response",
]
