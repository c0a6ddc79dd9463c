from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator
from datetime import datetime
from typing import Generic, Literal, Optional, TypeVar

T = TypeVar("T")


class Transaction(BaseModel):
    """
    A ledger transaction as returned by the Qubic RPC.

    Amounts arrive as decimal strings and are kept as exact ints. The v2
    per-tick endpoint wraps each record as {"transaction": {...}, "timestamp",
    "moneyFlew"}; both shapes are accepted.
    """
    source_id: str = Field("", alias="sourceId")
    dest_id: str = Field("", alias="destId")
    amount: Optional[int] = None
    tick_number: Optional[int] = Field(None, alias="tickNumber")
    input_type: int = Field(0, alias="inputType")
    input_size: int = Field(0, alias="inputSize")
    input_hex: Optional[str] = Field("", alias="inputHex")
    signature_hex: Optional[str] = Field("", alias="signatureHex")
    tx_id: str = Field("", alias="txId")
    timestamp: Optional[str] = None
    money_flew: Optional[bool] = Field(None, alias="moneyFlew")

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _unwrap_v2(cls, data):
        if isinstance(data, dict) and isinstance(data.get("transaction"), dict):
            inner = dict(data["transaction"])
            for key in ("timestamp", "moneyFlew"):
                if key in data and key not in inner:
                    inner[key] = data[key]
            return inner
        return data

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, v):
        if v is None or v == "":
            return None
        if isinstance(v, bool) or isinstance(v, float):
            raise ValueError("amount must be an integer or decimal string")
        amount = v if isinstance(v, int) else int(str(v).strip())
        if amount < 0:
            raise ValueError("amount must not be negative")
        return amount

    @field_validator("input_type", "input_size", mode="before")
    @classmethod
    def _default_zero(cls, v):
        return v or 0

    @field_validator("timestamp", mode="before")
    @classmethod
    def _stringify_timestamp(cls, v):
        return None if v is None else str(v)

    @property
    def settled(self) -> bool:
        return self.money_flew is not False


class TickInfo(BaseModel):
    tick: int = 0
    epoch: int = 0
    duration: Optional[int] = None
    initial_tick: Optional[int] = Field(None, alias="initialTick")

    model_config = {"populate_by_name": True}


class WhaleRecord(BaseModel):
    wallet: str
    buys: float
    sells: float
    net: float


class AlertEvent(BaseModel):
    id: int
    type: Literal["whale_buy", "whale_sell", "new_wallet", "large_tx"]
    message: str
    impact: Literal["High", "Medium", "Low"]
    timestamp: str
    amount: Optional[float] = None


class HolderGrowthPoint(BaseModel):
    date: str
    timestamp: datetime
    tick: int
    holders: int


class DistributionTier(BaseModel):
    tier: str
    percentage: float
    wallet_count: int
    total_amount: int

    @field_serializer("total_amount", when_used="json")
    def _amount_as_string(self, v: int) -> str:
        return str(v)


class HeatmapCell(BaseModel):
    day: str
    hour: int
    activity: int


class TradeEvent(BaseModel):
    tick: int
    tx_id: str
    type: Literal["buy", "sell", "transfer"]
    from_: str = Field(alias="from")
    to: str
    amount: int
    timestamp: datetime

    model_config = {"populate_by_name": True}

    @field_serializer("amount", when_used="json")
    def _amount_as_string(self, v: int) -> str:
        return str(v)


class RecentTransaction(BaseModel):
    id: str
    type: str = "Transfer"
    amount: str
    tick: int


class TickStatusResponse(BaseModel):
    current_tick: int
    epoch: int
    safe_tick: int
    last_update: Optional[datetime]
    is_loading: bool
    error: Optional[str]


class FetchedResponse(BaseModel, Generic[T]):
    ok: bool
    data: T
    error: Optional[str] = None
    error_kind: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "dashboard"
    version: str = "1.0.0"
    current_tick: int = 0
    queue_pending: int = 0
    cache_entries: int = 0
