"""Per-item outcomes of fan-out batch operations."""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, StrictInt, StrictStr

T = TypeVar("T")


class BatchFailure(BaseModel):
    """A tagged failure for one item of a batch."""

    index: StrictInt = Field(..., ge=0, description="Position of the item in the input batch")
    item_id: StrictStr | None = Field(None, description="Identifier of the failed item, if any")
    error_code: StrictStr = Field(..., description="Stable error code")
    message: StrictStr = Field(..., description="Human-readable failure message")


@dataclass(frozen=True)
class BatchItem(Generic[T]):
    """Outcome of one batch item: either a value or a failure."""

    index: int
    value: T | None = None
    error: BatchFailure | None = None
    # Raised exception behind `error`; kept out of equality and repr
    cause: Exception | None = field(default=None, compare=False, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class BatchResult(Generic[T]):
    """Ordered outcomes of a batch, in input order."""

    items: list[BatchItem[T]] = field(default_factory=list)

    @property
    def succeeded(self) -> list[T]:
        return [item.value for item in self.items if item.error is None]  # type: ignore[misc]

    @property
    def failed(self) -> list[BatchFailure]:
        return [item.error for item in self.items if item.error is not None]

    @property
    def ok(self) -> bool:
        return all(item.ok for item in self.items)

    @property
    def any_succeeded(self) -> bool:
        return any(item.ok for item in self.items)

    @property
    def first_cause(self) -> Exception | None:
        """Exception of the first failed item, in input order."""
        return next((item.cause for item in self.items if item.cause is not None), None)

    def __len__(self) -> int:
        return len(self.items)
