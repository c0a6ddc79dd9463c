"""
Qubic RPC endpoint accessors (read-only).

Every accessor takes the RpcService explicitly. Required identifiers are
validated before any I/O. Foundational reads (tick info, balances, assets,
approved transactions) propagate errors; the rest log a warning and degrade
to None / [] so one failing source never blocks the rest of the dashboard.
"""
import base64
from typing import Any
from pydantic import ValidationError
from shared.errors import DecodeError, MissingIdentifierError, RpcError
from shared.rpc import RpcService
from dashboard.models.schemas import TickInfo, Transaction
import structlog

logger = structlog.get_logger()


def _require(value: Any, name: str):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingIdentifierError(name)


def _require_tick(tick: int | None, name: str = "tick"):
    if tick is None or tick < 0:
        raise MissingIdentifierError(name)


def _parse_transactions(items: Any, money_flew: bool | None = None) -> list[Transaction]:
    if not isinstance(items, list):
        return []
    try:
        txs = [Transaction.model_validate(item) for item in items]
    except ValidationError as e:
        raise DecodeError(f"Malformed transaction payload: {e.error_count()} errors") from e
    if money_flew is not None:
        for tx in txs:
            tx.money_flew = money_flew
    return txs


async def _degrade(coro, default: Any, event: str, **context):
    try:
        return await coro
    except RpcError as e:
        logger.warning(event, error=str(e), kind=e.kind, **context)
        return default


# ===== Foundational reads (propagate) =====

async def get_tick_info(rpc: RpcService) -> TickInfo:
    data = await rpc.get_json("v1/tick-info")
    if not isinstance(data, dict):
        raise DecodeError("tick-info response is not an object")
    try:
        return TickInfo.model_validate(data.get("tickInfo") or {})
    except ValidationError as e:
        raise DecodeError(f"Malformed tick-info payload: {e.error_count()} errors") from e


async def get_balance(rpc: RpcService, identity_id: str) -> dict:
    _require(identity_id, "identityId")
    return await rpc.get_json(f"v1/balances/{identity_id}")


async def get_owned_assets(rpc: RpcService, identity: str) -> dict:
    _require(identity, "identity")
    return await rpc.get_json(f"v1/assets/{identity}/owned")


async def get_approved_transactions(rpc: RpcService, tick: int) -> list[Transaction]:
    """Approved transactions for one tick. Approved means the funds moved."""
    _require_tick(tick)
    data = await rpc.get_json(f"v1/ticks/{tick}/approved-transactions")
    items = data.get("approvedTransactions") if isinstance(data, dict) else None
    return _parse_transactions(items, money_flew=True)


# ===== Degrading reads =====

async def _fetch_v2_tick_transactions(rpc: RpcService, tick: int) -> list[Transaction]:
    data = await rpc.get_json(f"v2/ticks/{tick}/transactions")
    return _parse_transactions(data.get("transactions") if isinstance(data, dict) else None)


async def get_transactions_by_tick(rpc: RpcService, tick: int) -> list[Transaction]:
    _require_tick(tick)
    return await _degrade(
        _fetch_v2_tick_transactions(rpc, tick), [], "tick_transactions_failed", tick=tick
    )


async def _fetch_v1_tick_transactions(rpc: RpcService, tick: int) -> list[Transaction]:
    data = await rpc.get_json(f"v1/tick-transactions/{tick}")
    return _parse_transactions(data.get("transactions") if isinstance(data, dict) else None)


async def get_tick_transactions(rpc: RpcService, tick: int) -> list[Transaction]:
    _require_tick(tick)
    return await _degrade(
        _fetch_v1_tick_transactions(rpc, tick), [], "tick_transactions_v1_failed", tick=tick
    )


async def get_tick_data(rpc: RpcService, tick: int) -> dict | None:
    _require_tick(tick)
    return await _degrade(rpc.get_json(f"v1/ticks/{tick}"), None, "tick_data_failed", tick=tick)


async def get_tick_info_detailed(rpc: RpcService, tick: int) -> dict | None:
    _require_tick(tick)
    return await _degrade(rpc.get_json(f"v1/tick-info/{tick}"), None, "tick_info_failed", tick=tick)


async def get_entity_info(rpc: RpcService, entity_id: str) -> dict | None:
    _require(entity_id, "entityId")
    return await _degrade(
        rpc.get_json(f"v1/entities/{entity_id}"), None, "entity_info_failed", entity_id=entity_id
    )


async def get_network_status(rpc: RpcService) -> dict | None:
    """Processed tick intervals, last processed tick, etc."""
    return await _degrade(rpc.get_json("v1/status"), None, "network_status_failed")


async def get_transfers_by_identity(
    rpc: RpcService, identity: str, from_tick: int, to_tick: int
) -> dict | None:
    _require(identity, "identity")
    _require_tick(from_tick, "fromTick")
    _require_tick(to_tick, "toTick")
    return await _degrade(
        rpc.get_json(f"v1/transfers/{identity}/{from_tick}/{to_tick}"),
        None,
        "transfers_failed",
        identity=identity,
    )


async def get_transaction_info(rpc: RpcService, tx_id: str) -> dict | None:
    _require(tx_id, "txId")
    return await _degrade(rpc.get_json(f"v1/transaction/{tx_id}"), None, "transaction_info_failed", tx_id=tx_id)


async def get_transaction_status(rpc: RpcService, tx_id: str) -> dict | None:
    _require(tx_id, "txId")
    return await _degrade(
        rpc.get_json(f"v1/transaction-status/{tx_id}"), None, "transaction_status_failed", tx_id=tx_id
    )


async def get_chain_hash(rpc: RpcService, tick: int) -> dict | None:
    _require_tick(tick)
    return await _degrade(rpc.get_json(f"v1/chain-hash/{tick}"), None, "chain_hash_failed", tick=tick)


async def get_store_hash(rpc: RpcService, tick: int) -> dict | None:
    _require_tick(tick)
    return await _degrade(rpc.get_json(f"v1/store-hash/{tick}"), None, "store_hash_failed", tick=tick)


async def get_quorum_tick(rpc: RpcService, tick: int) -> dict | None:
    _require_tick(tick)
    return await _degrade(rpc.get_json(f"v1/quorum-tick/{tick}"), None, "quorum_tick_failed", tick=tick)


async def query_smart_contract(
    rpc: RpcService,
    contract_index: int,
    input_type: int,
    input_size: int,
    request_data: str,
) -> dict | None:
    """Read-only contract query. `request_data` is base64 (see to_base64)."""
    _require(contract_index, "contractIndex")
    body = {
        "contractIndex": contract_index,
        "inputType": input_type,
        "inputSize": input_size,
        "requestData": request_data,
    }
    return await _degrade(
        rpc.post_json("v1/querySmartContract", body),
        None,
        "smart_contract_query_failed",
        contract_index=contract_index,
    )


async def decode_event(rpc: RpcService, event_type: int, event_data: str) -> dict | None:
    _require(event_type, "eventType")
    _require(event_data, "eventData")
    return await _degrade(
        rpc.post_json(
            rpc.events_path("v1/events/decodeEvent"),
            {"eventType": event_type, "eventData": event_data},
            cacheable=True,
        ),
        None,
        "event_decode_failed",
        event_type=event_type,
    )


async def get_transaction_with_events(rpc: RpcService, tx_id: str) -> dict | None:
    """Transaction details plus each of its events decoded, in order."""
    tx_data = await get_transaction_info(rpc, tx_id)
    if not tx_data or not isinstance(tx_data.get("transaction"), dict):
        return None

    transaction = tx_data["transaction"]
    decoded_events = []
    events = transaction.get("events")
    if isinstance(events, list):
        for event in events:
            if event.get("eventType") is None or not event.get("eventData"):
                continue
            decoded = await decode_event(rpc, event.get("eventType"), event.get("eventData"))
            if decoded:
                decoded_events.append({**event, "decoded": decoded})

    return {**transaction, "decodedEvents": decoded_events}


# ===== Range helpers =====

async def get_transactions_by_tick_range(
    rpc: RpcService, start_tick: int, end_tick: int
) -> list[Transaction]:
    """Approved transactions for ticks start..end inclusive; failed ticks are skipped."""
    _require_tick(start_tick, "startTick")
    _require_tick(end_tick, "endTick")
    logger.info("fetching_tick_range", start_tick=start_tick, end_tick=end_tick)

    all_txs: list[Transaction] = []
    for tick in range(start_tick, end_tick + 1):
        try:
            all_txs.extend(await get_approved_transactions(rpc, tick))
        except RpcError as e:
            logger.warning("tick_fetch_failed", tick=tick, error=str(e), kind=e.kind)
            continue

    logger.info("tick_range_fetched", count=len(all_txs))
    return all_txs


async def get_market_activity(rpc: RpcService, start_tick: int, end_tick: int) -> list[Transaction]:
    """All non-zero transfers in the range, reported as market activity."""
    txs = await get_transactions_by_tick_range(rpc, start_tick, end_tick)
    return [tx for tx in txs if (tx.amount or 0) > 0]


# ===== Payload helpers =====

def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def from_base64(b64: str) -> bytes:
    return base64.b64decode(b64)
