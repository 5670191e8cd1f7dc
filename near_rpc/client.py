"""
Async NEAR JSON-RPC client.

    async with NearRpcClient.mainnet() as near:
        status = await near.status()
        print(status["sync_info"]["latest_block_height"])

        acct = await near.query({"finality": "final", "request_type": "view_account", "account_id": "near"})

Every named method is a thin wrapper over `call(method, params)`, which looks the
method up in the registry, sends one JSON-RPC request and validates the result
against the method's compiled response schema. Errors are the typed failures
from `near_rpc.errors`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union, cast

import httpx

from .config import BETANET_URL, LOCAL_URL, MAINNET_URL, TESTNET_URL, ClientConfig
from .dispatch import Dispatcher
from .registry import MethodRegistry, default_registry
from .transport import HttpxTransport, Transport
from .types import (
    BlockHeightRanges,
    CryptoHash,
    GenesisConfig,
    RpcBlockRequest,
    RpcBlockResponse,
    RpcChunkRequest,
    RpcChunkResponse,
    RpcClientConfigResponse,
    RpcCongestionLevelRequest,
    RpcCongestionLevelResponse,
    RpcGasPriceRequest,
    RpcGasPriceResponse,
    RpcLightClientBlockProofRequest,
    RpcLightClientBlockProofResponse,
    RpcLightClientExecutionProofRequest,
    RpcLightClientExecutionProofResponse,
    RpcLightClientNextBlockRequest,
    RpcLightClientNextBlockResponse,
    RpcMaintenanceWindowsRequest,
    RpcNetworkInfoResponse,
    RpcProtocolConfigRequest,
    RpcProtocolConfigResponse,
    RpcQueryRequest,
    RpcQueryResponse,
    RpcReceiptRequest,
    RpcReceiptResponse,
    RpcSendTransactionRequest,
    RpcSplitStorageInfoResponse,
    RpcStateChangesInBlockByTypeRequest,
    RpcStateChangesInBlockByTypeResponse,
    RpcStateChangesInBlockRequest,
    RpcStateChangesInBlockResponse,
    RpcStatusResponse,
    RpcTransactionResponse,
    RpcTransactionStatusRequest,
    RpcValidatorRequest,
    RpcValidatorResponse,
    RpcValidatorsOrderedRequest,
    ValidatorStakeViews,
)

log = logging.getLogger(__name__)


class NearRpcClient:
    """
    Typed async client for one NEAR RPC endpoint.

    Args:
        url_or_config: endpoint URL or a full `ClientConfig` (default: mainnet).
        registry: method registry; defaults to the bundled NEAR document.
        transport: anything implementing `Transport`; defaults to `HttpxTransport`.
        http_client: an `httpx.AsyncClient` for the default transport (left open
            on `aclose()`).
        **overrides: `ClientConfig` fields (timeout, headers, validate_responses, ...).
    """

    def __init__(
        self,
        url_or_config: Union[str, ClientConfig, None] = None,
        *,
        registry: Optional[MethodRegistry] = None,
        transport: Optional[Transport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        **overrides: Any,
    ) -> None:
        if isinstance(url_or_config, ClientConfig):
            config = url_or_config.with_overrides(**overrides)
        else:
            config = ClientConfig(url=url_or_config or MAINNET_URL).with_overrides(**overrides)
        self.config = config
        self.registry = registry if registry is not None else default_registry()
        self.transport: Transport = transport if transport is not None else HttpxTransport(
            config.url, headers=config.headers, timeout=None, client=http_client
        )
        self._dispatcher = Dispatcher(self.registry, self.transport, config)
        log.debug("NearRpcClient(url=%s, methods=%d)", config.url, len(self.registry))

    # --- constructors --------------------------------------------------------

    @classmethod
    def mainnet(cls, **kwargs: Any) -> "NearRpcClient":
        return cls(MAINNET_URL, **kwargs)

    @classmethod
    def testnet(cls, **kwargs: Any) -> "NearRpcClient":
        return cls(TESTNET_URL, **kwargs)

    @classmethod
    def betanet(cls, **kwargs: Any) -> "NearRpcClient":
        return cls(BETANET_URL, **kwargs)

    @classmethod
    def local(cls, **kwargs: Any) -> "NearRpcClient":
        return cls(LOCAL_URL, **kwargs)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "NearRpcClient":
        """Build from NEAR_RPC_* environment variables (see `ClientConfig.from_env`)."""
        return cls(ClientConfig.from_env(), **kwargs)

    # --- lifecycle -----------------------------------------------------------

    async def __aenter__(self) -> "NearRpcClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        await self.transport.aclose()

    def __repr__(self) -> str:
        return f"NearRpcClient(url={self.config.url!r})"

    @property
    def url(self) -> str:
        return self.config.url

    # --- generic -------------------------------------------------------------

    async def call(self, method: str, params: Any = None, *, timeout: Optional[float] = None) -> Any:
        """
        Call any registered method by name.

        Raises:
            UnknownMethod: `method` is not in the registry (nothing is sent).
            RpcTimeout: no reply within `timeout` (or the configured timeout).
            TransportError: HTTP/network failure or a malformed reply.
            RemoteError: the server answered with a JSON-RPC error.
            ValidationError: the result does not match the method's schema.
        """
        return await self._dispatcher.call(method, params, timeout=timeout)

    async def _call(self, method: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self._dispatcher.call(method, dict(params) if params is not None else {})

    # --- node / network ------------------------------------------------------

    async def status(self) -> RpcStatusResponse:
        """Node status: version, chain id, sync info and validators."""
        return cast(RpcStatusResponse, await self._call("status"))

    async def health(self) -> None:
        """Returns None when the node is healthy; a RemoteError otherwise."""
        await self._call("health")

    async def network_info(self) -> RpcNetworkInfoResponse:
        return cast(RpcNetworkInfoResponse, await self._call("network_info"))

    async def client_config(self) -> RpcClientConfigResponse:
        return cast(RpcClientConfigResponse, await self._call("client_config"))

    async def split_storage_info(self) -> RpcSplitStorageInfoResponse:
        return cast(RpcSplitStorageInfoResponse, await self._call("EXPERIMENTAL_split_storage_info"))

    # --- blocks / chunks ------------------------------------------------------

    async def block(self, request: RpcBlockRequest) -> RpcBlockResponse:
        """Block by height/hash (`block_id`), `finality` or `sync_checkpoint`."""
        return cast(RpcBlockResponse, await self._call("block", request))

    async def chunk(self, request: RpcChunkRequest) -> RpcChunkResponse:
        return cast(RpcChunkResponse, await self._call("chunk", request))

    async def gas_price(self, request: Optional[RpcGasPriceRequest] = None) -> RpcGasPriceResponse:
        """Gas price at `block_id`, or at the latest block when omitted/None."""
        params = request if request is not None else {"block_id": None}
        return cast(RpcGasPriceResponse, await self._call("gas_price", params))

    async def congestion_level(self, request: RpcCongestionLevelRequest) -> RpcCongestionLevelResponse:
        return cast(RpcCongestionLevelResponse, await self._call("EXPERIMENTAL_congestion_level", request))

    # --- state ------------------------------------------------------------------

    async def query(self, request: RpcQueryRequest) -> RpcQueryResponse:
        """
        View account/code/state/access keys or call a view function.

        `request` combines a block reference with a `request_type` shape:

            {"finality": "final", "request_type": "call_function",
             "account_id": "wrap.near", "method_name": "ft_metadata", "args_base64": "e30="}
        """
        return cast(RpcQueryResponse, await self._call("query", request))

    async def changes_in_block(self, request: RpcStateChangesInBlockRequest) -> RpcStateChangesInBlockByTypeResponse:
        return cast(
            RpcStateChangesInBlockByTypeResponse,
            await self._call("EXPERIMENTAL_changes_in_block", request),
        )

    async def block_effects(self, request: RpcStateChangesInBlockRequest) -> RpcStateChangesInBlockByTypeResponse:
        return cast(RpcStateChangesInBlockByTypeResponse, await self._call("block_effects", request))

    async def changes(self, request: RpcStateChangesInBlockByTypeRequest) -> RpcStateChangesInBlockResponse:
        return cast(RpcStateChangesInBlockResponse, await self._call("changes", request))

    # --- transactions -------------------------------------------------------------

    async def send_tx(self, request: RpcSendTransactionRequest) -> RpcTransactionResponse:
        return cast(RpcTransactionResponse, await self._call("send_tx", request))

    async def broadcast_tx_async(self, request: RpcSendTransactionRequest) -> CryptoHash:
        """Submit and return the transaction hash without waiting."""
        return cast(CryptoHash, await self._call("broadcast_tx_async", request))

    async def broadcast_tx_commit(self, request: RpcSendTransactionRequest) -> RpcTransactionResponse:
        return cast(RpcTransactionResponse, await self._call("broadcast_tx_commit", request))

    async def tx(self, request: RpcTransactionStatusRequest) -> RpcTransactionResponse:
        return cast(RpcTransactionResponse, await self._call("tx", request))

    async def receipt(self, request: RpcReceiptRequest) -> RpcReceiptResponse:
        return cast(RpcReceiptResponse, await self._call("EXPERIMENTAL_receipt", request))

    # --- validators ------------------------------------------------------------------

    async def validators(self, request: Optional[RpcValidatorRequest] = None) -> RpcValidatorResponse:
        """Validators for an epoch, a block, or (default) the latest epoch."""
        params = request if request is not None else {"latest": None}
        return cast(RpcValidatorResponse, await self._call("validators", params))

    async def validators_ordered(self, request: Optional[RpcValidatorsOrderedRequest] = None) -> ValidatorStakeViews:
        params = request if request is not None else {"block_id": None}
        return cast(ValidatorStakeViews, await self._call("EXPERIMENTAL_validators_ordered", params))

    async def maintenance_windows(self, request: RpcMaintenanceWindowsRequest) -> BlockHeightRanges:
        return cast(BlockHeightRanges, await self._call("maintenance_windows", request))

    # --- light client ------------------------------------------------------------------

    async def light_client_proof(
        self, request: RpcLightClientExecutionProofRequest
    ) -> RpcLightClientExecutionProofResponse:
        return cast(RpcLightClientExecutionProofResponse, await self._call("light_client_proof", request))

    async def next_light_client_block(
        self, request: RpcLightClientNextBlockRequest
    ) -> RpcLightClientNextBlockResponse:
        return cast(RpcLightClientNextBlockResponse, await self._call("next_light_client_block", request))

    async def light_client_block_proof(
        self, request: RpcLightClientBlockProofRequest
    ) -> RpcLightClientBlockProofResponse:
        return cast(RpcLightClientBlockProofResponse, await self._call("light_client_block_proof", request))

    # --- config ---------------------------------------------------------------------------

    async def protocol_config(self, request: RpcProtocolConfigRequest) -> RpcProtocolConfigResponse:
        return cast(RpcProtocolConfigResponse, await self._call("EXPERIMENTAL_protocol_config", request))

    async def genesis_config(self) -> GenesisConfig:
        return cast(GenesisConfig, await self._call("genesis_config"))


__all__ = ["NearRpcClient"]
