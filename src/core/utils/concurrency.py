"""Bounded fan-out helpers for independent per-item storage calls."""

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from aws_lambda_powertools import Logger

from core.models.batch import BatchFailure, BatchItem, BatchResult
from core.models.errors import ImageServiceError
from core.utils.constants import ERROR_CODE_INTERNAL_ERROR

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")

logger = Logger(UTC=True)


def fan_out(
    func: Callable[[ItemT], ResultT],
    items: Sequence[ItemT],
    *,
    max_workers: int,
) -> list[tuple[ResultT | None, Exception | None]]:
    """Run `func` over `items` concurrently and wait for every call.

    At most `max_workers` calls are in flight. The returned outcomes are in
    input order, each either ``(value, None)`` or ``(None, exc)``.
    """
    if not items:
        return []

    workers = max(1, min(max_workers, len(items)))

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(func, item) for item in items]

        outcomes: list[tuple[ResultT | None, Exception | None]] = []
        for future in futures:
            try:
                outcomes.append((future.result(), None))
            except Exception as exc:
                outcomes.append((None, exc))

    return outcomes


def failure_from_exception(
    exc: Exception,
    *,
    index: int,
    item_id: str | None = None,
) -> BatchFailure:
    """Tag an exception raised for one batch item."""
    if isinstance(exc, ImageServiceError):
        return BatchFailure(
            index=index,
            item_id=item_id,
            error_code=exc.error_code,
            message=exc.message,
        )

    logger.warning(
        "Unexpected error in batch item",
        extra={"index": index, "item_id": item_id, "error_type": type(exc).__name__},
    )
    return BatchFailure(
        index=index,
        item_id=item_id,
        error_code=ERROR_CODE_INTERNAL_ERROR,
        message="Unexpected error while processing item",
    )


def fan_out_settled(
    func: Callable[[ItemT], ResultT],
    items: Sequence[ItemT],
    *,
    max_workers: int,
    item_id: Callable[[ItemT], str | None] = lambda _: None,
) -> BatchResult[ResultT]:
    """Run `func` over `items` concurrently, recording per-item failures."""
    outcomes = fan_out(func, items, max_workers=max_workers)

    batch_items: list[BatchItem[ResultT]] = []
    for index, (item, (value, error)) in enumerate(zip(items, outcomes)):
        if error is None:
            batch_items.append(BatchItem(index=index, value=value))
        else:
            batch_items.append(
                BatchItem(
                    index=index,
                    error=failure_from_exception(error, index=index, item_id=item_id(item)),
                    cause=error,
                )
            )

    return BatchResult(items=batch_items)
