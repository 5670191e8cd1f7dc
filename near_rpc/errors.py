"""
Typed error classes for near-rpc-typed.

Call-time failures all derive from `RpcFailure` and carry a `kind`
(`FailureKind`) so callers can branch on the cause:

    try:
        status = await client.status()
    except RpcFailure as e:
        if e.retryable:
            ...  # TIMEOUT / TRANSPORT
        raise

Build-time failures (`SchemaDocumentError`, `AliasConflictError`) are raised while
loading a schema document or building the method registry, never from a call.
Schema-resolution anomalies and compile fallbacks are not errors at all: they
degrade to permissive validators and are only logged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, ClassVar, Optional, Tuple, Union

__all__ = [
    "NearRpcError",
    "FailureKind",
    "JsonRpcCode",
    "Issue",
    "RpcFailure",
    "UnknownMethod",
    "RpcTimeout",
    "TransportError",
    "RemoteError",
    "ValidationError",
    "SchemaDocumentError",
    "AliasConflictError",
    "from_jsonrpc_error",
]


class NearRpcError(Exception):
    """Base class for all near-rpc-typed errors."""


class FailureKind(str, Enum):
    UNKNOWN_METHOD = "unknown_method"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    REMOTE_ERROR = "remote_error"
    VALIDATION_ERROR = "validation_error"


class JsonRpcCode(IntEnum):
    # JSON-RPC 2.0 reserved codes
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server errors (implementation-defined range: -32099 to -32000)
    SERVER_ERROR = -32000


PathItem = Union[str, int]


@dataclass(frozen=True)
class Issue:
    """One validation problem: where in the value (`path`) and why (`reason`)."""

    path: Tuple[PathItem, ...]
    reason: str
    code: str = "invalid"

    @property
    def location(self) -> str:
        out = ""
        for item in self.path:
            if isinstance(item, int):
                out += f"[{item}]"
            else:
                out += f".{item}" if out else str(item)
        return out or "<root>"

    def __str__(self) -> str:
        return f"{self.location}: {self.reason}"

    def to_dict(self) -> dict:
        return {"path": list(self.path), "reason": self.reason, "code": self.code}


# ---------------------------------------------------------------------------
# Call-time failures
# ---------------------------------------------------------------------------


class RpcFailure(NearRpcError):
    """Base for every failure surfaced by a call. `kind` tells them apart."""

    kind: ClassVar[FailureKind]

    @property
    def retryable(self) -> bool:
        return self.kind in (FailureKind.TIMEOUT, FailureKind.TRANSPORT)


@dataclass(eq=False)
class UnknownMethod(RpcFailure):
    """The method is not in the registry. Raised before any network I/O."""

    kind: ClassVar[FailureKind] = FailureKind.UNKNOWN_METHOD

    method: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"UnknownMethod: {self.method!r} is not a registered RPC method"


@dataclass(eq=False)
class RpcTimeout(RpcFailure):
    """The call did not complete within the per-call timeout and was cancelled."""

    kind: ClassVar[FailureKind] = FailureKind.TIMEOUT

    method: Optional[str]
    timeout: Optional[float]
    request_id: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        rid = f" id={self.request_id}" if self.request_id is not None else ""
        limit = f"within {self.timeout:g}s" if self.timeout is not None else "before the HTTP client gave up"
        return f"RpcTimeout[{self.method or '-'}]{rid}: no reply {limit}"


@dataclass(eq=False)
class TransportError(RpcFailure):
    """
    The request did not produce a usable reply.

    Fields:
      - status: HTTP status code when the server answered with a non-2xx status
      - cause: human-readable cause, such as connection error text or a malformed envelope
    """

    kind: ClassVar[FailureKind] = FailureKind.TRANSPORT

    cause: str
    status: Optional[int] = None
    method: Optional[str] = None
    request_id: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        parts = [f"TransportError[{self.method or '-'}]"]
        if self.status is not None:
            parts.append(f"http={self.status}")
        if self.request_id is not None:
            parts.append(f"id={self.request_id}")
        return " ".join(parts) + f": {self.cause}"


@dataclass(eq=False)
class RemoteError(RpcFailure):
    """The server answered with a JSON-RPC error object; fields are kept verbatim."""

    kind: ClassVar[FailureKind] = FailureKind.REMOTE_ERROR

    code: int
    message: str
    data: Optional[Any] = None
    method: Optional[str] = None
    request_id: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        parts = [f"RemoteError[{self.method or '-'}] code={self.code} msg={self.message!r}"]
        if self.request_id is not None:
            parts.append(f"id={self.request_id}")
        if self.data is not None:
            parts.append(f"data={self.data!r}")
        return " ".join(parts)

    @property
    def code_enum(self) -> Optional[JsonRpcCode]:
        try:
            return JsonRpcCode(self.code)
        except ValueError:
            return None


@dataclass(eq=False)
class ValidationError(RpcFailure):
    """
    A value did not match its schema.

    `direction` is "response" for a server result that does not fit the client's
    schema (a client/schema mismatch, not a server-reported problem), "request"
    for params rejected before sending, or "value" for offline checks.
    """

    kind: ClassVar[FailureKind] = FailureKind.VALIDATION_ERROR

    issues: Tuple[Issue, ...]
    method: Optional[str] = None
    schema: Optional[str] = None
    direction: str = "value"

    def __str__(self) -> str:
        where = self.method or self.schema or "-"
        shown = "; ".join(str(i) for i in self.issues[:5])
        more = f" (+{len(self.issues) - 5} more)" if len(self.issues) > 5 else ""
        return f"ValidationError[{where}] {self.direction} rejected: {shown}{more}"

    @property
    def paths(self) -> Tuple[Tuple[PathItem, ...], ...]:
        return tuple(i.path for i in self.issues)


# ---------------------------------------------------------------------------
# Build-time failures
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class SchemaDocumentError(NearRpcError):
    """The schema document itself is unreadable or structurally invalid."""

    message: str
    source: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        src = f" [{self.source}]" if self.source else ""
        return f"SchemaDocumentError{src}: {self.message}"


@dataclass(eq=False)
class AliasConflictError(NearRpcError):
    """Two names that must share a binding declare different schemas."""

    name: str
    other: str
    schemas: Tuple[Tuple[Optional[str], Optional[str]], ...] = field(default_factory=tuple)

    def __str__(self) -> str:  # pragma: no cover - trivial
        pairs = ", ".join(f"({req} -> {res})" for req, res in self.schemas)
        return f"AliasConflictError: {self.name!r} and {self.other!r} disagree on schemas: {pairs}"


def from_jsonrpc_error(
    err_obj: Any,
    *,
    method: Optional[str] = None,
    request_id: Optional[int] = None,
) -> RemoteError:
    """
    Convert a JSON-RPC error object into RemoteError.

    `err_obj` should resemble: {"code": int, "message": str, "data": any?}
    """
    return RemoteError(
        code=int(err_obj.get("code", JsonRpcCode.SERVER_ERROR)),
        message=str(err_obj.get("message", "Unknown JSON-RPC error")),
        data=err_obj.get("data"),
        method=method,
        request_id=request_id,
    )
