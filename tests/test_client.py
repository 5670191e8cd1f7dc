from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest
import respx

from near_rpc import (
    TESTNET_URL,
    NearRpcClient,
    RemoteError,
    RpcTimeout,
    TransportError,
    UnknownMethod,
    ValidationError,
)
from near_rpc.errors import JsonRpcCode

from rpc_helpers import URL, ScriptedTransport, rpc_error, rpc_result

STATUS: dict = {
    "chain_id": "testnet",
    "genesis_hash": "FWJ9kR6KFWoyMoNjpLXXGHeuiy7tEY6GmoFeCA5yuc6b",
    "latest_protocol_version": 73,
    "node_public_key": "ed25519:6ZxX5Lq5p7yq4E6g5rHj3GQ2eT1pWxYd3Kc5m9sQf1aB",
    "protocol_version": 73,
    "rpc_addr": "0.0.0.0:3030",
    "node_key": None,
    "validator_account_id": None,
    "validator_public_key": None,
    "detailed_debug_status": None,
    "sync_info": {
        "latest_block_hash": "5Nnnb3VsgWFgK6CSPt6VNanSBkd5mZyVs5u4fL4s1VRM",
        "latest_block_height": 187_000_123,
        "latest_block_time": "2025-01-30T10:00:00.000000000Z",
        "latest_state_root": "8u8PPzq8m4V8cPyDvTMoZmZPPkLx1LZnUVqy2TJ4GPfX",
        "syncing": False,
        "earliest_block_height": 186_000_000,
        "epoch_id": "2F7M2xh4gUBMbXXUXp8eYZEqSdp1p9ftPqspjR7GLTVf",
    },
    "uptime_sec": 86_400,
    "validators": [{"account_id": "node0"}, {"account_id": "node1"}],
    "version": {"build": "2.4.0", "commit": "a1b2c3", "rustc_version": "1.82.0", "version": "2.4.0"},
}

BLOCK: dict = {
    "author": "node0",
    "header": {
        "hash": "5Nnnb3VsgWFgK6CSPt6VNanSBkd5mZyVs5u4fL4s1VRM",
        "height": 187_000_123,
        "prev_hash": "9fMXq7rD5xV4aHGzzM9pYgb6QqSDMbAmXuUz1ZfQ1uL4",
        "epoch_id": "2F7M2xh4gUBMbXXUXp8eYZEqSdp1p9ftPqspjR7GLTVf",
        "timestamp": 1_738_231_200_000_000_000,
        "timestamp_nanosec": "1738231200000000000",
        "gas_price": "100000000",
        "chunks_included": 1,
        "block_ordinal": 150_000_000,
    },
    "chunks": [
        {
            "chunk_hash": "6fT3pXb3Kc3Gm5uCNEj9QZ1JaZ6Y1nU6cWvDgXqz6yQ8",
            "shard_id": 0,
            "height_created": 187_000_123,
            "height_included": 187_000_123,
            "gas_used": 0,
            "gas_limit": 1_000_000_000_000_000,
            "congestion_info": {"allowed_shard": 0},
        }
    ],
}


def answer(result: Any) -> Callable[[httpx.Request], httpx.Response]:
    """respx side effect replying with `result` under the request's own id."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=rpc_result(json.loads(request.content), result))

    return handler


def sent(route: respx.Route, call: int = -1) -> dict:
    return json.loads(route.calls[call].request.content)


@pytest.fixture()
def rpc():
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.mark.asyncio
async def test_status(rpc):
    route = rpc.post(URL).mock(side_effect=answer(STATUS))
    async with NearRpcClient(URL, timeout=2.0) as near:
        status = await near.status()

    assert status == STATUS
    body = sent(route)
    assert body == {"jsonrpc": "2.0", "id": 1, "method": "status", "params": {}}
    headers = route.calls[0].request.headers
    assert headers["content-type"] == "application/json"
    assert headers["user-agent"].startswith("near-rpc-typed-python/")


@pytest.mark.asyncio
async def test_status_missing_field_is_a_response_validation_error(rpc):
    broken = {k: v for k, v in STATUS.items() if k != "chain_id"}
    rpc.post(URL).mock(side_effect=answer(broken))
    async with NearRpcClient(URL) as near:
        with pytest.raises(ValidationError) as ei:
            await near.status()
    err = ei.value
    assert err.direction == "response"
    assert err.method == "status"
    assert err.schema == "RpcStatusResponse"
    assert ("chain_id",) in err.paths


@pytest.mark.asyncio
async def test_validation_can_be_turned_off(rpc):
    rpc.post(URL).mock(side_effect=answer({"unexpected": True}))
    async with NearRpcClient(URL, validate_responses=False) as near:
        assert await near.status() == {"unexpected": True}


@pytest.mark.asyncio
async def test_block_keeps_undeclared_fields_of_open_views(rpc):
    route = rpc.post(URL).mock(side_effect=answer(BLOCK))
    async with NearRpcClient(URL) as near:
        block = await near.block({"finality": "final"})
    assert sent(route)["params"] == {"finality": "final"}
    assert block["header"]["block_ordinal"] == 150_000_000
    assert block["chunks"][0]["congestion_info"] == {"allowed_shard": 0}


@pytest.mark.asyncio
async def test_block_with_unknown_top_level_key_is_rejected(rpc):
    rpc.post(URL).mock(side_effect=answer({**BLOCK, "surprise": 1}))
    async with NearRpcClient(URL) as near:
        with pytest.raises(ValidationError) as ei:
            await near.block({"block_id": 187_000_123})
    assert ("surprise",) in ei.value.paths


@pytest.mark.asyncio
async def test_query_view_account_and_call_function(rpc):
    account = {
        "block_hash": "5Nnnb3VsgWFgK6CSPt6VNanSBkd5mZyVs5u4fL4s1VRM",
        "block_height": 187_000_123,
        "amount": "1000000000000000000000000",
        "locked": "0",
        "code_hash": "11111111111111111111111111111111",
        "storage_usage": 182,
        "storage_paid_at": 0,
    }
    call_result = {
        "block_hash": "5Nnnb3VsgWFgK6CSPt6VNanSBkd5mZyVs5u4fL4s1VRM",
        "block_height": 187_000_124,
        "logs": [],
        "result": [123, 125],
    }
    route = rpc.post(URL).mock(side_effect=[answer(account), answer(call_result)])
    async with NearRpcClient(URL) as near:
        got = await near.query({"finality": "final", "request_type": "view_account", "account_id": "near"})
        assert got["amount"] == "1000000000000000000000000"

        out = await near.query(
            {
                "finality": "optimistic",
                "request_type": "call_function",
                "account_id": "wrap.near",
                "method_name": "ft_metadata",
                "args_base64": "e30=",
            }
        )
    assert bytes(out["result"]) == b"{}"
    assert [sent(route, i)["id"] for i in range(2)] == [1, 2]
    assert sent(route, 1)["params"]["method_name"] == "ft_metadata"


@pytest.mark.asyncio
async def test_call_function_with_out_of_range_byte_is_rejected(rpc):
    bad = {"block_hash": "h", "block_height": 1, "logs": [], "result": [300]}
    rpc.post(URL).mock(side_effect=answer(bad))
    async with NearRpcClient(URL) as near:
        with pytest.raises(ValidationError):
            await near.query({"finality": "final", "request_type": "call_function", "account_id": "a", "method_name": "m", "args_base64": ""})


@pytest.mark.asyncio
async def test_health_returns_none(rpc):
    route = rpc.post(URL).mock(side_effect=answer(None))
    async with NearRpcClient(URL) as near:
        assert await near.health() is None
    assert sent(route)["method"] == "health"


@pytest.mark.asyncio
async def test_default_params_for_optional_requests(rpc):
    route = rpc.post(URL).mock(
        side_effect=[
            answer({"gas_price": "100000000"}),
            answer({"current_validators": [], "epoch_height": 3000, "epoch_start_height": 187_000_000}),
            answer([]),
        ]
    )
    async with NearRpcClient(URL) as near:
        assert await near.gas_price() == {"gas_price": "100000000"}
        assert (await near.validators())["epoch_height"] == 3000
        assert await near.validators_ordered() == []
    assert sent(route, 0)["params"] == {"block_id": None}
    assert sent(route, 1)["params"] == {"latest": None}
    assert sent(route, 2) == {"jsonrpc": "2.0", "id": 3, "method": "EXPERIMENTAL_validators_ordered", "params": {"block_id": None}}


@pytest.mark.asyncio
async def test_named_methods_use_successor_names(rpc):
    changes = {"block_hash": "h", "changes": [{"type": "account_touched", "account_id": "near"}]}
    route = rpc.post(URL).mock(side_effect=[answer(changes), answer(changes), answer([{"start": 1, "end": 5}])])
    async with NearRpcClient(URL) as near:
        assert await near.block_effects({"finality": "final"}) == changes
        assert await near.changes_in_block({"block_id": 1}) == changes
        assert await near.maintenance_windows({"account_id": "node0"}) == [{"start": 1, "end": 5}]
    assert [sent(route, i)["method"] for i in range(3)] == [
        "block_effects",
        "EXPERIMENTAL_changes_in_block",
        "maintenance_windows",
    ]


@pytest.mark.asyncio
async def test_remote_error(rpc):
    data = {"name": "HANDLER_ERROR", "cause": {"name": "UNKNOWN_BLOCK", "info": {}}}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=rpc_error(json.loads(request.content), -32000, "Server error", data))

    rpc.post(URL).mock(side_effect=handler)
    async with NearRpcClient(URL) as near:
        with pytest.raises(RemoteError) as ei:
            await near.block({"block_id": 1})
    err = ei.value
    assert err.code == -32000 and err.code_enum is JsonRpcCode.SERVER_ERROR
    assert err.data == data
    assert err.method == "block"


@pytest.mark.asyncio
async def test_http_error_status(rpc):
    rpc.post(URL).mock(return_value=httpx.Response(503, text="upstream unavailable"))
    async with NearRpcClient(URL) as near:
        with pytest.raises(TransportError) as ei:
            await near.status()
    assert ei.value.status == 503
    assert "upstream unavailable" in ei.value.cause
    assert ei.value.retryable


@pytest.mark.asyncio
async def test_network_failures(rpc):
    rpc.post(URL).mock(side_effect=[httpx.ConnectError("refused"), httpx.ReadTimeout("slow")])
    async with NearRpcClient(URL) as near:
        with pytest.raises(TransportError) as ei:
            await near.status()
        assert ei.value.status is None and ei.value.request_id == 1

        with pytest.raises(RpcTimeout) as ti:
            await near.status()
        assert ti.value.method == "status" and ti.value.request_id == 2
        assert ti.value.timeout == near.config.timeout


@pytest.mark.asyncio
async def test_unknown_method_is_not_sent(rpc):
    route = rpc.post(URL).mock(side_effect=answer(None))
    async with NearRpcClient(URL) as near:
        with pytest.raises(UnknownMethod):
            await near.call("EXPERIMENTAL_time_travel", {})
    assert not route.called


@pytest.mark.asyncio
async def test_generic_call_reaches_legacy_names(rpc):
    route = rpc.post(URL).mock(side_effect=answer({"archive": False, "chain_id": "testnet", "version": STATUS["version"]}))
    async with NearRpcClient(URL) as near:
        cfg = await near.call("EXPERIMENTAL_client_config")
    assert cfg["chain_id"] == "testnet"
    assert sent(route)["params"] == {}


@pytest.mark.asyncio
async def test_closing():
    transport = ScriptedTransport(lambda req: rpc_result(req, None))
    async with NearRpcClient(URL, transport=transport) as near:
        await near.health()
    assert transport.closed

    async with httpx.AsyncClient() as http:
        near = NearRpcClient(URL, http_client=http)
        await near.aclose()
        assert not http.is_closed


def test_constructors(monkeypatch):
    assert NearRpcClient.testnet().url == TESTNET_URL
    assert NearRpcClient.local(timeout=1).config.timeout == 1.0

    monkeypatch.setenv("NEAR_RPC_URL", URL)
    monkeypatch.setenv("NEAR_RPC_TIMEOUT", "4")
    from_env = NearRpcClient.from_env()
    assert from_env.url == URL and from_env.config.timeout == 4.0


@pytest.mark.asyncio
async def test_per_call_timeout_is_the_only_limit():
    async with NearRpcClient(URL, timeout=0.5) as near:
        http = near.transport._ensure_client()
        assert http.timeout == httpx.Timeout(None)
