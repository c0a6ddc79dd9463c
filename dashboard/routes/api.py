"""
Dashboard REST API routes. Aggregate widgets get a {ok, data, error} envelope
so a degraded source renders as "no data" instead of an error banner.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from shared.errors import MissingIdentifierError, RateLimitedError, RpcError, UpstreamError
from shared.result import Fetched
from shared.rpc import RpcService
from dashboard.models.schemas import (
    AlertEvent,
    DistributionTier,
    FetchedResponse,
    HealthResponse,
    HeatmapCell,
    HolderGrowthPoint,
    RecentTransaction,
    TickStatusResponse,
    TradeEvent,
    WhaleRecord,
)
from dashboard.services import analytics
from dashboard.services.client import get_balance
from dashboard.services.ticks import TickTracker

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


def get_rpc(request: Request) -> RpcService:
    return request.app.state.rpc


def get_tracker(request: Request) -> TickTracker:
    return request.app.state.tick_tracker


def _envelope(result: Fetched) -> dict:
    return {
        "ok": result.ok,
        "data": result.or_default([]),
        "error": str(result.error) if result.error else None,
        "error_kind": result.error_kind,
    }


@router.get("/health", response_model=HealthResponse)
async def health(
    rpc: RpcService = Depends(get_rpc),
    tracker: TickTracker = Depends(get_tracker),
):
    resp = HealthResponse(
        current_tick=tracker.current_tick,
        queue_pending=rpc.queue.pending,
        cache_entries=len(rpc.cache),
    )
    if not tracker.known:
        resp.status = "ok (tick unknown)"
    return resp


@router.get("/tick", response_model=TickStatusResponse)
async def tick_status(tracker: TickTracker = Depends(get_tracker)):
    return TickStatusResponse(
        current_tick=tracker.current_tick,
        epoch=tracker.epoch,
        safe_tick=tracker.safe_tick,
        last_update=tracker.last_update,
        is_loading=tracker.is_loading,
        error=tracker.error,
    )


@router.get("/whales", response_model=FetchedResponse[list[WhaleRecord]])
async def whales(
    ticks_back: int = Query(10, ge=1, le=50),
    top_n: int = Query(6, ge=1, le=20),
    rpc: RpcService = Depends(get_rpc),
    tracker: TickTracker = Depends(get_tracker),
):
    result = await analytics.get_whale_activity(
        rpc, ticks_back=ticks_back, top_n=top_n, current_tick=tracker.current_tick
    )
    return _envelope(result)


@router.get("/alerts", response_model=FetchedResponse[list[AlertEvent]])
async def alerts(
    ticks_back: int = Query(5, ge=1, le=50),
    threshold: float = Query(1000, gt=0),
    rpc: RpcService = Depends(get_rpc),
    tracker: TickTracker = Depends(get_tracker),
):
    result = await analytics.get_recent_alerts(
        rpc, ticks_back=ticks_back, threshold_qu=threshold, current_tick=tracker.current_tick
    )
    return _envelope(result)


@router.get("/holders", response_model=FetchedResponse[list[HolderGrowthPoint]])
async def holders(
    ticks_back: int = Query(100, ge=1, le=1000),
    sample_interval: int = Query(10, ge=1),
    rpc: RpcService = Depends(get_rpc),
    tracker: TickTracker = Depends(get_tracker),
):
    result = await analytics.get_holder_growth(
        rpc, ticks_back=ticks_back, sample_interval=sample_interval, current_tick=tracker.current_tick
    )
    return _envelope(result)


@router.get("/distribution", response_model=FetchedResponse[list[DistributionTier]])
async def distribution(
    ticks_back: int = Query(20, ge=1, le=200),
    rpc: RpcService = Depends(get_rpc),
    tracker: TickTracker = Depends(get_tracker),
):
    result = await analytics.get_token_distribution(
        rpc, ticks_back=ticks_back, current_tick=tracker.current_tick
    )
    return _envelope(result)


@router.get("/heatmap", response_model=FetchedResponse[list[HeatmapCell]])
async def heatmap(
    ticks_back: int = Query(168, ge=1, le=2000),
    stride: int = Query(5, ge=1),
    rpc: RpcService = Depends(get_rpc),
    tracker: TickTracker = Depends(get_tracker),
):
    result = await analytics.get_transaction_flow_heatmap(
        rpc, ticks_back=ticks_back, stride=stride, current_tick=tracker.current_tick
    )
    return _envelope(result)


@router.get("/transactions/recent", response_model=FetchedResponse[list[RecentTransaction]])
async def recent_transactions(
    limit: int = Query(10, ge=1, le=100),
    rpc: RpcService = Depends(get_rpc),
    tracker: TickTracker = Depends(get_tracker),
):
    result = await analytics.get_recent_transactions(
        rpc, limit=limit, current_tick=tracker.current_tick
    )
    return _envelope(result)


@router.get("/trades", response_model=FetchedResponse[list[TradeEvent]])
async def trades(
    ticks: int = Query(2, ge=1, le=10),
    rpc: RpcService = Depends(get_rpc),
    tracker: TickTracker = Depends(get_tracker),
):
    result = await analytics.get_token_trading_history(
        rpc, ticks=ticks, current_tick=tracker.current_tick
    )
    return _envelope(result)


@router.get("/balances/{identity}")
async def balance(identity: str, rpc: RpcService = Depends(get_rpc)):
    try:
        return await get_balance(rpc, identity)
    except MissingIdentifierError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RateLimitedError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except UpstreamError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except RpcError as e:
        raise HTTPException(status_code=503, detail=str(e))
