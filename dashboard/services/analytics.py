"""
Dashboard analytics — fetch a tick window through the endpoint client and fold
it with the aggregation engine.

Every accessor returns a Fetched result instead of raising, so one failing
data source never takes down unrelated widgets; the caller chooses between
`or_default([])` and `unwrap()`. All windows end at the safe tick.
"""
from datetime import datetime, timezone
from typing import Awaitable, TypeVar
from shared.errors import RpcError, TickUnavailableError
from shared.result import Fetched
from shared.rpc import RpcService
from dashboard.config import (
    ALERT_TICKS_BACK,
    DISTRIBUTION_TICKS_BACK,
    HEATMAP_STRIDE,
    HEATMAP_TICKS_BACK,
    HOLDER_SAMPLE_INTERVAL,
    HOLDER_TICKS_BACK,
    LARGE_TX_THRESHOLD_QU,
    RECENT_TX_LIMIT,
    RECENT_TX_TICKS_BACK,
    TRADE_PER_TICK_LIMIT,
    TRADE_TICKS,
    WHALE_TICKS_BACK,
    WHALE_TOP_N,
)
from dashboard.models.schemas import (
    AlertEvent,
    DistributionTier,
    HeatmapCell,
    HolderGrowthPoint,
    RecentTransaction,
    TradeEvent,
    Transaction,
    WhaleRecord,
)
from dashboard.services import aggregator
from dashboard.services.client import (
    get_approved_transactions,
    get_tick_info,
    get_transactions_by_tick,
    get_transactions_by_tick_range,
)
from dashboard.services.ticks import safe_tick, tick_window
import structlog

logger = structlog.get_logger()

T = TypeVar("T")


async def _resolve_tick(rpc: RpcService, current_tick: int | None) -> int:
    if current_tick is None:
        current_tick = (await get_tick_info(rpc)).tick
    if not current_tick:
        raise TickUnavailableError()
    return current_tick


async def _guarded(name: str, work: Awaitable[T]) -> Fetched[T]:
    try:
        return Fetched.success(await work)
    except RpcError as e:
        logger.warning("aggregate_unavailable", aggregate=name, error=str(e), kind=e.kind)
        return Fetched.failure(e)
    except Exception as e:
        logger.error("aggregate_failed", aggregate=name, error=str(e))
        return Fetched.failure(e)


async def _sample_window(rpc: RpcService, ticks: list[int]) -> dict[int, list[Transaction]]:
    return {tick: await get_transactions_by_tick(rpc, tick) for tick in ticks}


# ===== Whales & alerts =====

async def _whale_activity(rpc, ticks_back, top_n, current_tick) -> list[WhaleRecord]:
    current = await _resolve_tick(rpc, current_tick)
    start, end = tick_window(current, ticks_back)
    txs = await get_transactions_by_tick_range(rpc, start, end)
    return aggregator.identify_whales(aggregator.aggregate_by_wallet(txs), top_n=top_n)


async def get_whale_activity(
    rpc: RpcService,
    ticks_back: int = WHALE_TICKS_BACK,
    top_n: int = WHALE_TOP_N,
    current_tick: int | None = None,
) -> Fetched[list[WhaleRecord]]:
    return await _guarded("whale_activity", _whale_activity(rpc, ticks_back, top_n, current_tick))


async def _recent_alerts(rpc, ticks_back, threshold_qu, current_tick) -> list[AlertEvent]:
    current = await _resolve_tick(rpc, current_tick)
    start, end = tick_window(current, ticks_back)
    txs = await get_transactions_by_tick_range(rpc, start, end)
    return aggregator.generate_alerts(
        txs, threshold_qu=threshold_qu, timestamp_label=f"< {ticks_back} ticks ago"
    )


async def get_recent_alerts(
    rpc: RpcService,
    ticks_back: int = ALERT_TICKS_BACK,
    threshold_qu: float = LARGE_TX_THRESHOLD_QU,
    current_tick: int | None = None,
) -> Fetched[list[AlertEvent]]:
    return await _guarded("recent_alerts", _recent_alerts(rpc, ticks_back, threshold_qu, current_tick))


# ===== Holders, distribution, heatmap =====

async def _holder_growth(rpc, ticks_back, sample_interval, current_tick, now) -> list[HolderGrowthPoint]:
    current = await _resolve_tick(rpc, current_tick)
    end = safe_tick(current)
    start = max(0, end - ticks_back)
    samples = await _sample_window(rpc, aggregator.sample_ticks(start, end, sample_interval))
    return aggregator.build_holder_growth(samples, current, now or datetime.now(timezone.utc))


async def get_holder_growth(
    rpc: RpcService,
    ticks_back: int = HOLDER_TICKS_BACK,
    sample_interval: int = HOLDER_SAMPLE_INTERVAL,
    current_tick: int | None = None,
    now: datetime | None = None,
) -> Fetched[list[HolderGrowthPoint]]:
    """Active wallets per sampled tick. A point sample, not a cumulative holder count."""
    return await _guarded(
        "holder_growth", _holder_growth(rpc, ticks_back, sample_interval, current_tick, now)
    )


async def _token_distribution(rpc, ticks_back, current_tick) -> list[DistributionTier]:
    current = await _resolve_tick(rpc, current_tick)
    end = safe_tick(current)
    start = max(0, end - ticks_back)

    txs: list[Transaction] = []
    for tick in range(start, end + 1):
        txs.extend(await get_transactions_by_tick(rpc, tick))

    return aggregator.compute_distribution(aggregator.replay_balances(txs))


async def get_token_distribution(
    rpc: RpcService,
    ticks_back: int = DISTRIBUTION_TICKS_BACK,
    current_tick: int | None = None,
) -> Fetched[list[DistributionTier]]:
    """Wallet tiers from balances replayed over the window (approximate)."""
    return await _guarded("token_distribution", _token_distribution(rpc, ticks_back, current_tick))


async def _flow_heatmap(rpc, ticks_back, stride, current_tick, now) -> list[HeatmapCell]:
    current = await _resolve_tick(rpc, current_tick)
    end = safe_tick(current)
    start = max(0, end - ticks_back)
    samples = await _sample_window(rpc, aggregator.sample_ticks(start, end, stride))
    counts = {tick: len(txs) for tick, txs in samples.items()}
    return aggregator.build_activity_heatmap(counts, current, now or datetime.now(timezone.utc))


async def get_transaction_flow_heatmap(
    rpc: RpcService,
    ticks_back: int = HEATMAP_TICKS_BACK,
    stride: int = HEATMAP_STRIDE,
    current_tick: int | None = None,
    now: datetime | None = None,
) -> Fetched[list[HeatmapCell]]:
    return await _guarded(
        "transaction_heatmap", _flow_heatmap(rpc, ticks_back, stride, current_tick, now)
    )


# ===== Tables =====

async def _recent_transactions(rpc, ticks_back, limit, current_tick) -> list[RecentTransaction]:
    current = await _resolve_tick(rpc, current_tick)
    start, end = tick_window(current, ticks_back)
    txs = await get_transactions_by_tick_range(rpc, start, end)
    return aggregator.format_recent_transactions(txs, limit=limit)


async def get_recent_transactions(
    rpc: RpcService,
    ticks_back: int = RECENT_TX_TICKS_BACK,
    limit: int = RECENT_TX_LIMIT,
    current_tick: int | None = None,
) -> Fetched[list[RecentTransaction]]:
    return await _guarded(
        "recent_transactions", _recent_transactions(rpc, ticks_back, limit, current_tick)
    )


async def _trading_history(rpc, ticks, per_tick_limit, current_tick, now) -> list[TradeEvent]:
    current = await _resolve_tick(rpc, current_tick)
    start, end = tick_window(current, ticks)
    now = now or datetime.now(timezone.utc)

    trades: list[TradeEvent] = []
    for tick in range(start, end + 1):
        try:
            txs = await get_approved_transactions(rpc, tick)
        except RpcError as e:
            logger.warning("trade_tick_failed", tick=tick, error=str(e), kind=e.kind)
            continue
        trades.extend(aggregator.build_trade_events(txs[:per_tick_limit], now, fallback_tick=tick))

    logger.info("trades_found", count=len(trades), start_tick=start, end_tick=end)
    return trades


async def get_token_trading_history(
    rpc: RpcService,
    ticks: int = TRADE_TICKS,
    per_tick_limit: int = TRADE_PER_TICK_LIMIT,
    current_tick: int | None = None,
    now: datetime | None = None,
) -> Fetched[list[TradeEvent]]:
    """Recent non-zero transfers labelled buy/sell/transfer by the amount-band policy."""
    return await _guarded(
        "trading_history", _trading_history(rpc, ticks, per_tick_limit, current_tick, now)
    )
