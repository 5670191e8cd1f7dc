"""
near-rpc-typed: typed, runtime-validated NEAR JSON-RPC client.
Convenience exports for the most common APIs.
"""

from .version import __version__  # noqa: F401

# Config & errors
from .config import (  # noqa: F401
    BETANET_URL,
    LOCAL_URL,
    MAINNET_URL,
    TESTNET_URL,
    ClientConfig,
)
from .errors import (  # noqa: F401
    AliasConflictError,
    FailureKind,
    Issue,
    NearRpcError,
    RemoteError,
    RpcFailure,
    RpcTimeout,
    SchemaDocumentError,
    TransportError,
    UnknownMethod,
    ValidationError,
)

# Client
from .client import NearRpcClient  # noqa: F401
from .dispatch import Dispatcher  # noqa: F401
from .transport import HttpxTransport, Transport  # noqa: F401

# Registry & schema pipeline
from .registry import (  # noqa: F401
    MethodBinding,
    MethodRegistry,
    build_registry,
    default_registry,
    registry_from_document,
)
from .schema import Validator, bundled_document, compile_schema, load_document  # noqa: F401

__all__ = [
    "__version__",
    "ClientConfig",
    "MAINNET_URL",
    "TESTNET_URL",
    "BETANET_URL",
    "LOCAL_URL",
    "NearRpcError",
    "RpcFailure",
    "FailureKind",
    "Issue",
    "UnknownMethod",
    "RpcTimeout",
    "TransportError",
    "RemoteError",
    "ValidationError",
    "SchemaDocumentError",
    "AliasConflictError",
    "NearRpcClient",
    "Dispatcher",
    "Transport",
    "HttpxTransport",
    "MethodBinding",
    "MethodRegistry",
    "build_registry",
    "registry_from_document",
    "default_registry",
    "Validator",
    "compile_schema",
    "load_document",
    "bundled_document",
]
