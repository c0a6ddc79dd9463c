"""
Qubic Dashboard data service — FastAPI application (port 8010)

Read-only data layer for the network dashboard: a rate-limited, cached client
for the Qubic RPC plus the wallet analytics (whales, alerts, holder growth,
distribution tiers, activity heatmap) the frontend widgets render.

The lifespan is the composition root: it owns the one RpcService and the
TickTracker, and hands both to the routes through app.state.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from shared.rpc import RpcService
from shared.utils.logging import setup_logging
from shared.utils.scheduler import schedule_interval, start_scheduler, stop_scheduler
from dashboard.config import SERVICE_NAME, TICK_REFRESH_INTERVAL
from dashboard.routes.api import router
from dashboard.services.ticks import TickTracker
import structlog

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    rpc = RpcService()
    tracker = TickTracker(rpc)
    app.state.rpc = rpc
    app.state.tick_tracker = tracker

    logger.info("dashboard_starting", service=SERVICE_NAME, rpc=rpc.base_url)
    start_scheduler()
    schedule_interval(tracker.refresh, seconds=TICK_REFRESH_INTERVAL, job_id="tick_refresh")

    yield

    stop_scheduler()
    await rpc.aclose()
    logger.info("dashboard_stopped")


app = FastAPI(
    title="Qubic Dashboard Data Service",
    description="Rate-limited, cached read access to the Qubic RPC with wallet-level analytics for the dashboard.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("dashboard.main:app", host="0.0.0.0", port=8010, reload=True)
