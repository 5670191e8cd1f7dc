"""
Client configuration: endpoint, headers, per-call timeout and validation toggles.

- Immutable after construction (frozen dataclass, read-only headers).
- Supports overrides via environment variables (NEAR_RPC_*).
- Provides the public NEAR endpoints as constants.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .version import user_agent

MAINNET_URL = "https://rpc.mainnet.near.org"
TESTNET_URL = "https://rpc.testnet.near.org"
BETANET_URL = "https://rpc.betanet.near.org"
LOCAL_URL = "http://localhost:3030"

DEFAULT_TIMEOUT = 30.0

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None else default


def _parse_bool(val: Optional[str], default: bool) -> bool:
    if val is None or val.strip() == "":
        return default
    s = val.strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise ValueError(f"Expected a boolean flag, got: {val!r}")


def _ensure_scheme(url: str) -> str:
    lower = url.lower()
    if not (lower.startswith("http://") or lower.startswith("https://")):
        raise ValueError(f"URL must start with http:// or https://, got: {url!r}")
    return url


def _default_headers() -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "User-Agent": user_agent(),
    }


def _freeze_headers(headers: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    merged = _default_headers()
    if headers:
        merged.update({str(k): str(v) for k, v in headers.items()})
    return MappingProxyType(merged)


@dataclass(frozen=True)
class ClientConfig:
    url: str = MAINNET_URL
    headers: Mapping[str, str] = field(default_factory=dict)
    # seconds, per call
    timeout: float = DEFAULT_TIMEOUT
    validate_responses: bool = True
    validate_requests: bool = False

    def __post_init__(self) -> None:
        _ensure_scheme(self.url)
        if not self.timeout or float(self.timeout) <= 0:
            raise ValueError(f"timeout must be positive, got: {self.timeout!r}")
        object.__setattr__(self, "timeout", float(self.timeout))
        if not isinstance(self.headers, MappingProxyType):
            object.__setattr__(self, "headers", _freeze_headers(self.headers))

    @classmethod
    def from_env(cls, prefix: str = "NEAR_RPC_", **overrides: Any) -> "ClientConfig":
        """
        Create config from environment variables:

        NEAR_RPC_URL                 (http/https, default mainnet)
        NEAR_RPC_TIMEOUT             (float seconds)
        NEAR_RPC_VALIDATE_RESPONSES  (bool, default on)
        NEAR_RPC_VALIDATE_REQUESTS   (bool, default off)
        NEAR_RPC_HEADERS             (JSON object of extra headers)

        Keyword overrides win over the environment.
        """
        headers_raw = _env(f"{prefix}HEADERS")
        headers: Dict[str, str] = {}
        if headers_raw:
            try:
                parsed = json.loads(headers_raw)
            except json.JSONDecodeError as e:
                raise ValueError(f"{prefix}HEADERS must be a JSON object: {e}") from e
            if not isinstance(parsed, dict):
                raise ValueError(f"{prefix}HEADERS must be a JSON object")
            headers = {str(k): str(v) for k, v in parsed.items()}

        data: Dict[str, Any] = {
            "url": _env(f"{prefix}URL", MAINNET_URL) or MAINNET_URL,
            "headers": headers,
            "timeout": float(_env(f"{prefix}TIMEOUT", str(DEFAULT_TIMEOUT)) or DEFAULT_TIMEOUT),
            "validate_responses": _parse_bool(_env(f"{prefix}VALIDATE_RESPONSES"), True),
            "validate_requests": _parse_bool(_env(f"{prefix}VALIDATE_REQUESTS"), False),
        }
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)

    def with_overrides(self, **overrides: Any) -> "ClientConfig":
        """
        Return a new config with keyword overrides applied.
        Unknown keys raise TypeError; `None` values are ignored.
        """
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "headers" in changes:
            extra = dict(self.headers)
            extra.update(changes["headers"])
            changes["headers"] = extra
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "headers": dict(self.headers),
            "timeout": self.timeout,
            "validate_responses": self.validate_responses,
            "validate_requests": self.validate_requests,
        }


__all__ = [
    "ClientConfig",
    "MAINNET_URL",
    "TESTNET_URL",
    "BETANET_URL",
    "LOCAL_URL",
    "DEFAULT_TIMEOUT",
]
