"""
Test helpers:
- A small OpenRPC document exercising refs, aliases and inline schemas
- A scripted in-process transport (no network)
- JSON-RPC reply builders
"""
from __future__ import annotations

import asyncio
import inspect
import json
import typing as t

URL = "http://near.test/rpc"


def ref(name: str) -> dict:
    return {"$ref": f"#/components/schemas/{name}"}


def method(name: str, params: t.Optional[str], result: t.Optional[str]) -> dict:
    entry: dict = {"name": name}
    if params is not None:
        entry["params"] = [{"name": "request", "schema": ref(params)}]
    if result is not None:
        entry["result"] = {"name": "response", "schema": ref(result)}
    return entry


MINI_DOC: dict = {
    "openrpc": "1.3.2",
    "info": {"title": "mini", "version": "0.0.1"},
    "methods": [
        method("echo", "EchoRequest", "EchoResponse"),
        method("EXPERIMENTAL_echo", "EchoRequest", "EchoResponse"),
        method("height", None, "Height"),
        method("ping", None, None),
        {
            "name": "sum",
            "params": [{"name": "request", "schema": {"type": "array", "items": {"type": "integer"}}}],
            "result": {"name": "response", "schema": {"type": "integer"}},
        },
    ],
    "components": {
        "schemas": {
            "EchoRequest": {
                "type": "object",
                "required": ["text"],
                "properties": {"text": {"type": "string"}, "repeat": {"type": "integer", "minimum": 1}},
            },
            "EchoResponse": {
                "type": "object",
                "required": ["text"],
                "properties": {"text": {"type": "string"}},
            },
            "Height": {"type": "integer", "format": "uint64", "minimum": 0},
        }
    },
}


def rpc_result(request: dict, result: t.Any) -> dict:
    return {"jsonrpc": "2.0", "id": request["id"], "result": result}


def rpc_error(request: dict, code: int, message: str, data: t.Any = None) -> dict:
    err: dict = {"code": code, "message": message}
    if data is not None:
        err["data"] = data
    return {"jsonrpc": "2.0", "id": request["id"], "error": err}


Responder = t.Callable[[dict], t.Any]


class ScriptedTransport:
    """
    In-process Transport: decodes each request, hands it to `responder` and
    encodes whatever it returns (dict -> JSON, bytes passed through). The
    responder may be a coroutine function.
    """

    def __init__(self, responder: Responder) -> None:
        self.responder = responder
        self.sent: t.List[dict] = []
        self.closed = False

    async def send(self, body: bytes) -> bytes:
        req = json.loads(body)
        self.sent.append(req)
        out = self.responder(req)
        if inspect.isawaitable(out):
            out = await out
        if isinstance(out, bytes):
            return out
        return json.dumps(out).encode("utf-8")

    async def aclose(self) -> None:
        self.closed = True


async def sleep_then(delay: float, value: t.Any) -> t.Any:
    await asyncio.sleep(delay)
    return value


