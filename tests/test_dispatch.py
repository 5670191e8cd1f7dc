from __future__ import annotations

import asyncio

import pytest

from near_rpc.dispatch import Dispatcher
from near_rpc.errors import (
    FailureKind,
    RemoteError,
    RpcFailure,
    RpcTimeout,
    TransportError,
    UnknownMethod,
    ValidationError,
)

from rpc_helpers import ScriptedTransport, rpc_error, rpc_result, sleep_then


def _echo(req):
    return rpc_result(req, {"text": req["params"].get("text", "")})


@pytest.fixture()
def make_dispatcher(mini_registry, config):
    def make(responder, **overrides):
        transport = ScriptedTransport(responder)
        cfg = config.with_overrides(**overrides) if overrides else config
        return Dispatcher(mini_registry, transport, cfg), transport

    return make


@pytest.mark.asyncio
async def test_ids_increase_from_one(make_dispatcher):
    d, transport = make_dispatcher(_echo)
    assert d.next_id == 1
    for _ in range(3):
        assert await d.call("echo", {"text": "hi"}) == {"text": "hi"}
    assert [r["id"] for r in transport.sent] == [1, 2, 3]
    assert d.next_id == 4
    assert all(r["jsonrpc"] == "2.0" and r["method"] == "echo" for r in transport.sent)


@pytest.mark.asyncio
async def test_concurrent_calls_get_distinct_ids(make_dispatcher):
    async def slow_echo(req):
        # later requests answer first
        await asyncio.sleep(0.01 * (10 - req["id"]))
        return _echo(req)

    d, transport = make_dispatcher(slow_echo)
    results = await asyncio.gather(*(d.call("echo", {"text": str(i)}) for i in range(8)))
    assert [r["text"] for r in results] == [str(i) for i in range(8)]
    ids = [r["id"] for r in transport.sent]
    assert sorted(ids) == list(range(1, 9))


@pytest.mark.asyncio
async def test_missing_params_are_sent_as_empty_object(make_dispatcher):
    d, transport = make_dispatcher(lambda req: rpc_result(req, 12))
    assert await d.call("height") == 12
    assert transport.sent[0]["params"] == {}


@pytest.mark.asyncio
async def test_unknown_method_sends_nothing(make_dispatcher):
    d, transport = make_dispatcher(_echo)
    with pytest.raises(UnknownMethod) as ei:
        await d.call("nope", {})
    assert ei.value.method == "nope"
    assert ei.value.kind is FailureKind.UNKNOWN_METHOD
    assert transport.sent == []
    assert d.next_id == 1


@pytest.mark.asyncio
async def test_remote_error_fields_are_kept(make_dispatcher):
    data = {"name": "HANDLER_ERROR", "cause": {"name": "UNKNOWN_ACCOUNT"}}
    d, _ = make_dispatcher(lambda req: rpc_error(req, -32000, "Server error", data))
    with pytest.raises(RemoteError) as ei:
        await d.call("echo", {"text": "x"})
    err = ei.value
    assert (err.code, err.message, err.data) == (-32000, "Server error", data)
    assert err.method == "echo" and err.request_id == 1
    assert not err.retryable


@pytest.mark.asyncio
async def test_response_validation(make_dispatcher):
    d, _ = make_dispatcher(lambda req: rpc_result(req, {"txt": "typo"}))
    with pytest.raises(ValidationError) as ei:
        await d.call("echo", {"text": "x"})
    err = ei.value
    assert err.direction == "response"
    assert err.method == "echo"
    assert err.schema == "EchoResponse"
    assert ("text",) in err.paths and ("txt",) in err.paths


@pytest.mark.asyncio
async def test_response_validation_can_be_disabled(make_dispatcher):
    d, _ = make_dispatcher(lambda req: rpc_result(req, {"txt": "typo"}), validate_responses=False)
    assert await d.call("echo", {"text": "x"}) == {"txt": "typo"}


@pytest.mark.asyncio
async def test_null_result_for_a_method_without_result_schema(make_dispatcher):
    d, _ = make_dispatcher(lambda req: rpc_result(req, None))
    assert await d.call("ping") is None


@pytest.mark.asyncio
async def test_request_validation_is_opt_in(make_dispatcher):
    d, transport = make_dispatcher(_echo)
    # off by default: the server decides
    await d.call("echo", {"text": "x", "repeat": 0})
    assert len(transport.sent) == 1

    strict, strict_transport = make_dispatcher(_echo, validate_requests=True)
    with pytest.raises(ValidationError) as ei:
        await strict.call("echo", {"text": "x", "repeat": 0})
    assert ei.value.direction == "request"
    assert ei.value.schema == "EchoRequest"
    assert ei.value.paths == (("repeat",),)
    assert strict_transport.sent == []


@pytest.mark.asyncio
async def test_timeout(make_dispatcher):
    d, _ = make_dispatcher(lambda req: sleep_then(1.0, rpc_result(req, {"text": ""})))
    with pytest.raises(RpcTimeout) as ei:
        await d.call("echo", {"text": "x"}, timeout=0.05)
    err = ei.value
    assert err.method == "echo" and err.request_id == 1
    assert err.timeout == 0.05
    assert err.retryable and isinstance(err, RpcFailure)


@pytest.mark.asyncio
async def test_configured_timeout_applies_when_not_overridden(make_dispatcher):
    d, _ = make_dispatcher(lambda req: sleep_then(1.0, rpc_result(req, 1)), timeout=0.05)
    with pytest.raises(RpcTimeout) as ei:
        await d.call("height")
    assert ei.value.timeout == 0.05


@pytest.mark.asyncio
async def test_reply_with_wrong_id(make_dispatcher):
    d, _ = make_dispatcher(lambda req: {"jsonrpc": "2.0", "id": req["id"] + 100, "result": {"text": ""}})
    with pytest.raises(TransportError) as ei:
        await d.call("echo", {"text": "x"})
    assert ei.value.request_id == 1
    assert "does not match" in str(ei.value.cause)


@pytest.mark.asyncio
async def test_unparseable_reply(make_dispatcher):
    d, _ = make_dispatcher(lambda req: b"<html>502</html>")
    with pytest.raises(TransportError) as ei:
        await d.call("echo", {"text": "x"})
    assert ei.value.method == "echo"
    assert ei.value.status is None


@pytest.mark.asyncio
async def test_transport_failures_gain_call_context(make_dispatcher):
    def boom(req):
        raise TransportError("HTTP 503: unavailable", status=503)

    d, _ = make_dispatcher(boom)
    with pytest.raises(TransportError) as ei:
        await d.call("echo", {"text": "x"})
    err = ei.value
    assert (err.method, err.request_id, err.status) == ("echo", 1, 503)
    assert err.kind is FailureKind.TRANSPORT


@pytest.mark.asyncio
async def test_any_transport_exception_becomes_a_transport_error(make_dispatcher):
    def refuse(req):
        raise ConnectionRefusedError("refused")

    d, _ = make_dispatcher(refuse)
    with pytest.raises(TransportError) as ei:
        await d.call("height")
    err = ei.value
    assert (err.method, err.request_id) == ("height", 1)
    assert err.cause == "ConnectionRefusedError: refused"
    assert isinstance(err.__cause__, ConnectionRefusedError)
    assert err.retryable


@pytest.mark.asyncio
async def test_builtin_timeout_from_transport_is_a_timeout(make_dispatcher):
    def stall(req):
        raise TimeoutError("socket read")

    d, _ = make_dispatcher(stall, timeout=1.5)
    with pytest.raises(RpcTimeout) as ei:
        await d.call("height")
    assert (ei.value.method, ei.value.timeout, ei.value.request_id) == ("height", 1.5, 1)


@pytest.mark.asyncio
async def test_transport_timeout_without_a_limit_reports_the_call_limit(make_dispatcher):
    def gave_up(req):
        raise RpcTimeout(None, None)

    d, _ = make_dispatcher(gave_up)
    with pytest.raises(RpcTimeout) as ei:
        await d.call("height", timeout=0.75)
    assert ei.value.timeout == 0.75
