"""
Explicit success/failure result for accessors that aggregate several upstream
reads. Callers decide whether to degrade (`or_default`) or propagate (`unwrap`).
"""
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar
from shared.errors import RpcError

T = TypeVar("T")


@dataclass(frozen=True)
class Fetched(Generic[T]):
    data: Optional[T] = None
    error: Optional[Exception] = None

    @classmethod
    def success(cls, data: T) -> "Fetched[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, error: Exception) -> "Fetched[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> str | None:
        if self.error is None:
            return None
        if isinstance(self.error, RpcError):
            return self.error.kind
        return "internal"

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.data

    def or_default(self, default: T) -> T:
        return default if self.error is not None else self.data
