"""
Aggregation engine — pure, deterministic folds over already-fetched
transaction batches. No I/O happens here.

Amounts stay exact ints through every addition; conversion to display units
(QU, floats, percentages) happens only on the final record.

Known approximations (by design, there is no indexer behind this):
- holder growth counts distinct wallets active *in each sampled tick*, a point
  sample rather than a cumulative holder count;
- balances are replayed from a short window of transfers, clamped at zero,
  and are not a true ledger snapshot;
- tick -> wall clock mapping assumes a fixed seconds-per-tick.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Mapping, Sequence
from dashboard.config import (
    ALERT_LIMIT,
    DISTRIBUTION_TIERS,
    HEATMAP_WINDOW_HOURS,
    LARGE_TX_THRESHOLD_QU,
    RECENT_TX_LIMIT,
    SECONDS_PER_TICK,
    TRADE_BANDS,
    UNITS_PER_QU,
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

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


@dataclass
class WalletTotals:
    outgoing: int = 0
    incoming: int = 0

    @property
    def volume(self) -> int:
        return abs(self.incoming) + abs(self.outgoing)


def _to_display(raw: int, divisor: int) -> Decimal:
    return Decimal(raw) / Decimal(divisor)


# ===== Wallets & whales =====

def aggregate_by_wallet(transactions: Iterable[Transaction]) -> dict[str, WalletTotals]:
    """Per-wallet outgoing/incoming totals. Unsettled or amount-less transfers are skipped."""
    wallets: dict[str, WalletTotals] = {}

    for tx in transactions:
        if not tx.settled or tx.amount is None:
            continue

        # Both sides exist before accumulating
        source = wallets.setdefault(tx.source_id, WalletTotals())
        dest = wallets.setdefault(tx.dest_id, WalletTotals())

        source.outgoing += tx.amount
        dest.incoming += tx.amount

    return wallets


def identify_whales(
    wallets: Mapping[str, WalletTotals],
    top_n: int = WHALE_TOP_N,
    divisor: int = UNITS_PER_QU,
) -> list[WhaleRecord]:
    """
    Top N wallets by absolute volume, relabelled "Whale #1".."Whale #N".
    The real wallet id is dropped. Ties keep the mapping's iteration order.
    """
    ranked = sorted(wallets.values(), key=lambda w: w.volume, reverse=True)[:max(top_n, 0)]

    whales = []
    for idx, totals in enumerate(ranked):
        buys = _to_display(totals.incoming, divisor)
        sells = _to_display(totals.outgoing, divisor)
        whales.append(WhaleRecord(
            wallet=f"Whale #{idx + 1}",
            buys=float(buys),
            sells=float(sells),
            net=float(buys - sells),
        ))
    return whales


# ===== Alerts =====

def generate_alerts(
    transactions: Sequence[Transaction],
    threshold_qu: float = LARGE_TX_THRESHOLD_QU,
    divisor: int = UNITS_PER_QU,
    limit: int = ALERT_LIMIT,
    timestamp_label: str = "< 5 ticks ago",
) -> list[AlertEvent]:
    """
    Large-transfer and new-wallet alerts in scan order (not severity order),
    capped to the first `limit`.
    """
    threshold = Decimal(str(threshold_qu))
    alerts: list[AlertEvent] = []
    seen_wallets: set[str] = set()

    for tx in transactions:
        if len(alerts) >= limit:
            break
        if not tx.settled or tx.amount is None:
            continue

        amount = _to_display(tx.amount, divisor)
        whole = math.floor(amount)

        if amount > threshold:
            alerts.append(AlertEvent(
                id=len(alerts) + 1,
                type="large_tx",
                message=f"{tx.source_id[:8]}... transferred {whole} QU",
                impact="High" if amount > threshold * 2 else "Medium",
                timestamp=timestamp_label,
                amount=float(amount),
            ))

        if tx.source_id not in seen_wallets and amount > threshold / 2:
            seen_wallets.add(tx.source_id)
            alerts.append(AlertEvent(
                id=len(alerts) + 1,
                type="new_wallet",
                message=f"New wallet purchased {whole} QU",
                impact="Medium",
                timestamp=timestamp_label,
            ))

    return alerts[:limit]


# ===== Holder growth =====

def count_active_wallets(transactions: Iterable[Transaction]) -> int:
    """Distinct wallets on either side of a settled transfer."""
    wallets: set[str] = set()
    for tx in transactions:
        if tx.settled:
            wallets.add(tx.source_id)
            wallets.add(tx.dest_id)
    return len(wallets)


def tick_to_timestamp(
    tick: int,
    current_tick: int,
    now: datetime,
    seconds_per_tick: int = SECONDS_PER_TICK,
) -> datetime:
    return now - timedelta(seconds=(current_tick - tick) * seconds_per_tick)


def sample_ticks(start_tick: int, end_tick: int, stride: int) -> list[int]:
    if stride <= 0:
        raise ValueError("stride must be positive")
    return list(range(start_tick, end_tick + 1, stride))


def build_holder_growth(
    samples: Mapping[int, Sequence[Transaction]],
    current_tick: int,
    now: datetime,
    seconds_per_tick: int = SECONDS_PER_TICK,
) -> list[HolderGrowthPoint]:
    """One point per sampled tick: wallets active in that tick (not cumulative)."""
    points = []
    for tick, txs in samples.items():
        ts = tick_to_timestamp(tick, current_tick, now, seconds_per_tick)
        points.append(HolderGrowthPoint(
            date=f"{ts:%b} {ts.day}",
            timestamp=ts,
            tick=tick,
            holders=count_active_wallets(txs),
        ))
    return points


# ===== Distribution =====

def replay_balances(transactions: Iterable[Transaction]) -> dict[str, int]:
    """
    Approximate balances by replaying transfers from zero. The source is only
    debited when its running balance covers the amount, so no balance goes
    negative. Not a ledger: anything held before the window is invisible.
    """
    balances: dict[str, int] = {}

    for tx in transactions:
        if not tx.settled or tx.amount is None:
            continue

        balances[tx.dest_id] = balances.get(tx.dest_id, 0) + tx.amount

        source_balance = balances.get(tx.source_id, 0)
        if source_balance >= tx.amount:
            balances[tx.source_id] = source_balance - tx.amount

    return balances


def compute_distribution(
    balances: Mapping[str, int],
    tiers: Sequence[tuple[str, int, int | None]] = DISTRIBUTION_TIERS,
) -> list[DistributionTier]:
    """Bucket wallets ranked by balance into tiers; percentages at 2 dp of the total."""
    ranked = sorted(balances.values(), reverse=True)
    if not ranked:
        return []

    total = sum(ranked)
    result = []
    for label, lo, hi in tiers:
        bucket = ranked[lo:hi]
        amount = sum(bucket)
        percentage = (amount * 10000 // total) / 100 if total else 0.0
        result.append(DistributionTier(
            tier=label,
            percentage=percentage,
            wallet_count=len(bucket),
            total_amount=amount,
        ))
    return result


# ===== Heatmap =====

def heatmap_bucket(ts: datetime, window_hours: int = HEATMAP_WINDOW_HOURS) -> tuple[str, int]:
    return WEEKDAYS[ts.weekday()], (ts.hour // window_hours) * window_hours


def build_activity_heatmap(
    tick_counts: Mapping[int, int],
    current_tick: int,
    now: datetime,
    seconds_per_tick: int = SECONDS_PER_TICK,
    window_hours: int = HEATMAP_WINDOW_HOURS,
) -> list[HeatmapCell]:
    """Sum per-tick transaction counts into (weekday, 4h window) cells."""
    activity: dict[tuple[str, int], int] = {}
    for tick, count in tick_counts.items():
        ts = tick_to_timestamp(tick, current_tick, now, seconds_per_tick)
        key = heatmap_bucket(ts, window_hours)
        activity[key] = activity.get(key, 0) + count

    return [HeatmapCell(day=day, hour=hour, activity=count) for (day, hour), count in activity.items()]


# ===== Trades & table rows =====

def classify_trade(amount: int, bands: Sequence[tuple[str, int]] = TRADE_BANDS) -> str:
    """Heuristic buy/sell/transfer label by raw amount magnitude; bands are policy."""
    for label, floor in bands:
        if amount > floor:
            return label
    return "transfer"


def build_trade_events(
    transactions: Iterable[Transaction],
    now: datetime,
    fallback_tick: int = 0,
    bands: Sequence[tuple[str, int]] = TRADE_BANDS,
) -> list[TradeEvent]:
    trades = []
    for tx in transactions:
        amount = tx.amount or 0
        if amount == 0:
            continue
        trades.append(TradeEvent(
            tick=tx.tick_number or fallback_tick,
            tx_id=tx.tx_id or "",
            type=classify_trade(amount, bands),
            from_=tx.source_id,
            to=tx.dest_id,
            amount=amount,
            timestamp=now,
        ))
    return trades


def format_recent_transactions(
    transactions: Sequence[Transaction],
    limit: int = RECENT_TX_LIMIT,
    divisor: int = UNITS_PER_QU,
) -> list[RecentTransaction]:
    rows = []
    for idx, tx in enumerate(transactions[:limit]):
        amount = f"{tx.amount // divisor:,} QU" if tx.amount is not None else "0 QU"
        rows.append(RecentTransaction(
            id=tx.tx_id or f"tx-{idx}",
            amount=amount,
            tick=tx.tick_number or 0,
        ))
    return rows
