"""
Version helpers for near-rpc-typed.
We keep a static __version__ (PEP 440) and a small helper for the User-Agent.
"""

from __future__ import annotations

# Bump this when publishing
__version__ = "0.1.0"


def user_agent() -> str:
    """Default User-Agent header sent by the HTTP transport."""
    return f"near-rpc-typed-python/{__version__}"


__all__ = ["__version__", "user_agent"]
