"""
Dispatch engine: the generic `call(method, params)`.

For every call:
  1. look the method up (unknown -> UnknownMethod, nothing is sent)
  2. optionally validate params (config.validate_requests)
  3. take the next correlation id
  4. send one request envelope, bounded by the per-call timeout
  5. timeout -> RpcTimeout; any transport failure -> TransportError
  6. reply with `error` -> RemoteError (code/message/data untouched)
  7. reply with `result` -> validated (config.validate_responses) and returned

There are no retries: exactly one request goes out per call. Concurrent calls
share nothing but the id counter.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Any, Optional

from .config import ClientConfig
from .envelope import EnvelopeError, RequestEnvelope, decode_response, encode_request
from .errors import RpcTimeout, TransportError, UnknownMethod, ValidationError, from_jsonrpc_error
from .registry import MethodRegistry
from .transport import Transport

log = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


class Dispatcher:
    """Correlated, validated JSON-RPC calls over one transport."""

    def __init__(self, registry: MethodRegistry, transport: Transport, config: ClientConfig) -> None:
        self.registry = registry
        self.transport = transport
        self.config = config
        # ids start at 1 so an unset/default 0 never matches a real request
        self._ids = itertools.count(1)
        self._last_id = 0

    @property
    def next_id(self) -> int:
        """Id the next call will use (diagnostics only)."""
        return self._last_id + 1

    def _allocate_id(self) -> int:
        rid = next(self._ids)
        self._last_id = rid
        return rid

    async def call(self, method: str, params: Any = None, *, timeout: Optional[float] = None) -> Any:
        binding = self.registry.lookup(method)
        if binding is None:
            log.info("rejecting call to unknown method %r", method)
            raise UnknownMethod(method)

        if params is None:
            params = {}
        if self.config.validate_requests:
            try:
                params = binding.request.validate(params)
            except ValidationError as e:
                raise ValidationError(
                    e.issues, method=method, schema=binding.request_schema, direction="request"
                ) from e

        rid = self._allocate_id()
        body = encode_request(RequestEnvelope(id=rid, method=method, params=params))
        limit = timeout if timeout is not None else self.config.timeout
        started = time.perf_counter()
        log.debug("-> %s id=%d (%d bytes)", method, rid, len(body))

        try:
            raw = await asyncio.wait_for(self.transport.send(body), timeout=limit)
        except (asyncio.TimeoutError, TimeoutError) as e:
            log.warning("%s id=%d timed out after %.0f ms", method, rid, _elapsed_ms(started))
            raise RpcTimeout(method, limit, rid) from e
        except RpcTimeout as e:
            log.warning("%s id=%d timed out in transport after %.0f ms", method, rid, _elapsed_ms(started))
            raise RpcTimeout(method, e.timeout if e.timeout is not None else limit, rid) from e
        except TransportError as e:
            log.warning("%s id=%d transport failure: %s", method, rid, e.cause)
            raise TransportError(e.cause, status=e.status, method=method, request_id=rid) from e
        except Exception as e:
            # any other failure of a caller-supplied transport; CancelledError still propagates
            log.warning("%s id=%d transport raised %s: %s", method, rid, type(e).__name__, e)
            raise TransportError(f"{type(e).__name__}: {e}", method=method, request_id=rid) from e

        try:
            reply = decode_response(raw)
        except EnvelopeError as e:
            log.warning("%s id=%d bad reply: %s", method, rid, e)
            raise TransportError(str(e), method=method, request_id=rid) from e
        if reply.id != rid:
            log.warning("%s id=%d reply carried id %r", method, rid, reply.id)
            raise TransportError(
                f"reply id {reply.id!r} does not match request id {rid}", method=method, request_id=rid
            )

        if reply.error is not None:
            err = from_jsonrpc_error(reply.error.model_dump(), method=method, request_id=rid)
            log.info("<- %s id=%d error code=%d %s (%.0f ms)", method, rid, err.code, err.message, _elapsed_ms(started))
            raise err

        result = reply.result
        if self.config.validate_responses:
            try:
                result = binding.response.validate(result)
            except ValidationError as e:
                log.warning(
                    "%s id=%d result does not match %s: %s",
                    method, rid, binding.result_schema or "<any>", "; ".join(str(i) for i in e.issues[:3]),
                )
                raise ValidationError(
                    e.issues, method=method, schema=binding.result_schema, direction="response"
                ) from e

        log.debug("<- %s id=%d ok (%.0f ms)", method, rid, _elapsed_ms(started))
        return result


__all__ = ["Dispatcher"]
