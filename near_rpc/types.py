"""
Static shapes for the NEAR JSON-RPC payloads used by `NearRpcClient`.

These are `TypedDict`s and aliases mirroring the bundled document, for editors
and type checkers only. Runtime checking is done by the compiled validators in
`near_rpc.schema`; nothing here performs validation or I/O.

Large server views (block headers, genesis/protocol config, validator sets) are
typed as `Dict[str, Any]` and only their commonly read fields are spelled out.
`near_rpc.codegen` emits the complete set from a schema document.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from typing_extensions import Literal, NotRequired, TypedDict

# --- Aliases -----------------------------------------------------------------

AccountId = str
CryptoHash = str  # base58
EpochId = CryptoHash
PublicKey = str
NearToken = str  # yoctoNEAR as decimal string
NearGas = int
ShardId = int
SignedTransaction = str  # base64 borsh
BlockId = Union[int, CryptoHash]

Finality = Literal["optimistic", "near-final", "final"]
SyncCheckpoint = Literal["genesis", "earliest_available"]
TxExecutionStatus = Literal[
    "NONE", "INCLUDED", "EXECUTED_OPTIMISTIC", "INCLUDED_FINAL", "EXECUTED", "FINAL"
]


class EmptyRequest(TypedDict):
    pass


# --- Block references ---------------------------------------------------------


class BlockById(TypedDict):
    block_id: BlockId


class BlockByFinality(TypedDict):
    finality: Finality


class BlockBySyncCheckpoint(TypedDict):
    sync_checkpoint: SyncCheckpoint


BlockReference = Union[BlockById, BlockByFinality, BlockBySyncCheckpoint]
RpcBlockRequest = BlockReference
RpcStateChangesInBlockRequest = BlockReference
RpcProtocolConfigRequest = BlockReference


# --- Status / network --------------------------------------------------------


class Version(TypedDict):
    build: str
    commit: str
    version: str
    rustc_version: NotRequired[str]


class StatusSyncInfo(TypedDict):
    latest_block_hash: CryptoHash
    latest_block_height: int
    latest_block_time: str
    latest_state_root: CryptoHash
    syncing: bool
    earliest_block_hash: NotRequired[Optional[CryptoHash]]
    earliest_block_height: NotRequired[Optional[int]]
    earliest_block_time: NotRequired[Optional[str]]
    epoch_id: NotRequired[Optional[EpochId]]
    epoch_start_height: NotRequired[Optional[int]]


class ValidatorInfo(TypedDict):
    account_id: AccountId


class RpcStatusResponse(TypedDict):
    chain_id: str
    genesis_hash: CryptoHash
    latest_protocol_version: int
    node_public_key: PublicKey
    protocol_version: int
    sync_info: StatusSyncInfo
    uptime_sec: int
    validators: List[ValidatorInfo]
    version: Version
    detailed_debug_status: NotRequired[Optional[Dict[str, Any]]]
    node_key: NotRequired[Optional[PublicKey]]
    rpc_addr: NotRequired[Optional[str]]
    validator_account_id: NotRequired[Optional[AccountId]]
    validator_public_key: NotRequired[Optional[PublicKey]]


RpcHealthResponse = None


class RpcNetworkInfoResponse(TypedDict):
    active_peers: List[Dict[str, Any]]
    known_producers: List[Dict[str, Any]]
    num_active_peers: int
    peer_max_count: int
    received_bytes_per_sec: int
    sent_bytes_per_sec: int


# --- Blocks / chunks -----------------------------------------------------------


class RpcBlockResponse(TypedDict):
    author: AccountId
    chunks: List[Dict[str, Any]]
    header: Dict[str, Any]


class ChunkById(TypedDict):
    chunk_id: CryptoHash


class ChunkByBlockShard(TypedDict):
    block_id: BlockId
    shard_id: ShardId


RpcChunkRequest = Union[ChunkByBlockShard, ChunkById]
RpcCongestionLevelRequest = RpcChunkRequest


class RpcChunkResponse(TypedDict):
    author: AccountId
    header: Dict[str, Any]
    receipts: List[Dict[str, Any]]
    transactions: List[Dict[str, Any]]


class RpcCongestionLevelResponse(TypedDict):
    congestion_level: float


class RpcGasPriceRequest(TypedDict, total=False):
    block_id: Optional[BlockId]


class RpcGasPriceResponse(TypedDict):
    gas_price: NearToken


# --- Query -------------------------------------------------------------------

# BlockReference fields merged with one of the request_type shapes, e.g.
#   {"finality": "final", "request_type": "view_account", "account_id": "near"}
RpcQueryRequest = Dict[str, Any]


class CallResult(TypedDict):
    block_hash: CryptoHash
    block_height: int
    logs: List[str]
    result: List[int]


RpcQueryResponse = Dict[str, Any]


# --- Transactions ----------------------------------------------------------------


class RpcSendTransactionRequest(TypedDict):
    signed_tx_base64: SignedTransaction
    wait_until: NotRequired[TxExecutionStatus]


class TxStatusBySignedTx(TypedDict):
    signed_tx_base64: SignedTransaction
    wait_until: NotRequired[TxExecutionStatus]


class TxStatusByHash(TypedDict):
    sender_account_id: AccountId
    tx_hash: CryptoHash
    wait_until: NotRequired[TxExecutionStatus]


RpcTransactionStatusRequest = Union[TxStatusBySignedTx, TxStatusByHash]
RpcTransactionResponse = Dict[str, Any]


class RpcReceiptRequest(TypedDict):
    receipt_id: CryptoHash


RpcReceiptResponse = Dict[str, Any]


# --- Validators ------------------------------------------------------------------


class ValidatorsByEpoch(TypedDict):
    epoch_id: EpochId


class ValidatorsByBlock(TypedDict):
    block_id: BlockId


class ValidatorsLatest(TypedDict):
    latest: None


RpcValidatorRequest = Union[ValidatorsByEpoch, ValidatorsByBlock, ValidatorsLatest]
RpcValidatorResponse = Dict[str, Any]


class RpcValidatorsOrderedRequest(TypedDict, total=False):
    block_id: Optional[BlockId]


class ValidatorStakeView(TypedDict):
    account_id: AccountId
    public_key: PublicKey
    stake: NearToken
    validator_stake_struct_version: NotRequired[Literal["V1"]]


ValidatorStakeViews = List[ValidatorStakeView]


# --- Light client -------------------------------------------------------------------


class TransactionProofRequest(TypedDict):
    type: Literal["transaction"]
    light_client_head: CryptoHash
    sender_id: AccountId
    transaction_hash: CryptoHash


class ReceiptProofRequest(TypedDict):
    type: Literal["receipt"]
    light_client_head: CryptoHash
    receipt_id: CryptoHash
    receiver_id: AccountId


RpcLightClientExecutionProofRequest = Union[TransactionProofRequest, ReceiptProofRequest]
RpcLightClientExecutionProofResponse = Dict[str, Any]


class RpcLightClientNextBlockRequest(TypedDict):
    last_block_hash: CryptoHash


RpcLightClientNextBlockResponse = Dict[str, Any]


class RpcLightClientBlockProofRequest(TypedDict):
    block_hash: CryptoHash
    light_client_head: CryptoHash


RpcLightClientBlockProofResponse = Dict[str, Any]


# --- State changes ----------------------------------------------------------------

# BlockReference fields merged with one of the changes_type shapes.
RpcStateChangesInBlockByTypeRequest = Dict[str, Any]


class StateChangeKindView(TypedDict):
    type: Literal["account_touched", "access_key_touched", "data_touched", "contract_code_touched"]
    account_id: AccountId


class RpcStateChangesInBlockByTypeResponse(TypedDict):
    block_hash: CryptoHash
    changes: List[StateChangeKindView]


class RpcStateChangesInBlockResponse(TypedDict):
    block_hash: CryptoHash
    changes: List[Dict[str, Any]]


# --- Config / node -----------------------------------------------------------------

RpcProtocolConfigResponse = Dict[str, Any]
GenesisConfig = Dict[str, Any]
RpcClientConfigResponse = Dict[str, Any]


class RpcMaintenanceWindowsRequest(TypedDict):
    account_id: AccountId


class BlockHeightRange(TypedDict):
    start: int
    end: int


BlockHeightRanges = List[BlockHeightRange]


class RpcSplitStorageInfoResponse(TypedDict, total=False):
    cold_head_height: Optional[int]
    final_head_height: Optional[int]
    head_height: Optional[int]
    hot_db_kind: Optional[str]
