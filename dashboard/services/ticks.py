"""
Tick bookkeeping: safe-tick lag compensation and the tick tracker that the
scheduler refreshes on a fixed cadence.
"""
from datetime import datetime, timezone
from shared.errors import RpcError, TickUnavailableError
from shared.rpc import RpcService
from dashboard.config import SAFE_TICK_LAG
from dashboard.services.client import get_tick_info
import structlog

logger = structlog.get_logger()


def safe_tick(current_tick: int, lag: int = SAFE_TICK_LAG) -> int:
    """Most recent tick assumed fully indexed upstream."""
    return max(0, current_tick - lag)


def tick_window(current_tick: int, ticks_back: int, lag: int = SAFE_TICK_LAG) -> tuple[int, int]:
    """Inclusive (start, end) window of `ticks_back` ticks ending at the safe tick."""
    end = safe_tick(current_tick, lag)
    start = max(0, end - ticks_back + 1)
    return start, end


class TickTracker:
    """
    Holds the latest tick and epoch. A tick of 0 means "not yet known";
    dependent work should defer until `require_tick()` stops raising.
    """

    def __init__(self, rpc: RpcService):
        self.rpc = rpc
        self.current_tick = 0
        self.epoch = 0
        self.last_update: datetime | None = None
        self.is_loading = True
        self.error: str | None = None

    @property
    def known(self) -> bool:
        return self.current_tick > 0

    @property
    def safe_tick(self) -> int:
        return safe_tick(self.current_tick)

    def require_tick(self) -> int:
        if not self.known:
            raise TickUnavailableError()
        return self.current_tick

    async def refresh(self) -> int:
        try:
            info = await get_tick_info(self.rpc)
            if info.tick:
                self.current_tick = info.tick
                self.epoch = info.epoch
                self.last_update = datetime.now(timezone.utc)
                self.error = None
                logger.debug("tick_refreshed", tick=info.tick, epoch=info.epoch)
        except RpcError as e:
            logger.error("tick_refresh_failed", error=str(e), kind=e.kind)
            # Keep showing the last good tick; only surface the error before the first one
            if not self.known:
                self.error = str(e)
        finally:
            self.is_loading = False
        return self.current_tick
