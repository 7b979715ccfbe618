from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator

from bodyvantage.domain import RequestStatus

T = TypeVar("T")


class RequestState(BaseModel, Generic[T]):
    """Lifecycle of one remote operation plus its last known payload. Pure data."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: RequestStatus = "idle"
    payload: Optional[T] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _validate_lifecycle(self) -> "RequestState[T]":
        if self.status == "succeeded":
            if self.payload is None:
                raise ValueError("succeeded state requires a payload")
            if self.error is not None:
                raise ValueError("succeeded state cannot carry an error")
        elif self.status == "failed":
            if self.error is None:
                raise ValueError("failed state requires an error")
            if self.payload is not None:
                raise ValueError("failed state cannot carry a payload")
        elif self.payload is not None or self.error is not None:
            raise ValueError(f"{self.status} state carries neither payload nor error")
        return self

    @property
    def loading(self) -> bool:
        return self.status == "pending"

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def idle(cls) -> "RequestState[Any]":
        return cls(status="idle")

    @classmethod
    def pending(cls) -> "RequestState[Any]":
        return cls(status="pending")

    @classmethod
    def success(cls, payload: Any) -> "RequestState[Any]":
        return cls(status="succeeded", payload=payload)

    @classmethod
    def failure(cls, error: str) -> "RequestState[Any]":
        return cls(status="failed", error=error)
