import threading
import time

from core.models.errors import NotFoundError
from core.utils.concurrency import (
    failure_from_exception,
    fan_out,
    fan_out_settled,
)


class TestFanOut:
    def test_preserves_input_order(self) -> None:
        def slow_echo(value: int) -> int:
            time.sleep(0.01 * (5 - value))
            return value

        outcomes = fan_out(slow_echo, [0, 1, 2, 3, 4], max_workers=5)

        assert [value for value, _ in outcomes] == [0, 1, 2, 3, 4]

    def test_respects_max_workers(self) -> None:
        lock = threading.Lock()
        state = {"current": 0, "peak": 0}

        def track(_: int) -> None:
            with lock:
                state["current"] += 1
                state["peak"] = max(state["peak"], state["current"])
            time.sleep(0.02)
            with lock:
                state["current"] -= 1

        fan_out(track, list(range(10)), max_workers=3)

        assert state["peak"] <= 3

    def test_collects_errors_without_stopping(self) -> None:
        seen = []

        def maybe_fail(value: int) -> int:
            seen.append(value)
            if value == 1:
                raise RuntimeError("boom")
            return value

        outcomes = fan_out(maybe_fail, [0, 1, 2], max_workers=1)

        assert sorted(seen) == [0, 1, 2]
        assert outcomes[0] == (0, None)
        assert isinstance(outcomes[1][1], RuntimeError)
        assert outcomes[2] == (2, None)

    def test_empty_input(self) -> None:
        assert fan_out(lambda x: x, [], max_workers=4) == []


class TestFanOutSettled:
    def test_tags_failures_with_index_and_id(self) -> None:
        def check(image_id: str) -> str:
            if image_id == "img_b":
                raise NotFoundError(message="Image not found in this discovery")
            return image_id

        result = fan_out_settled(
            check,
            ["img_a", "img_b", "img_c"],
            max_workers=3,
            item_id=lambda image_id: image_id,
        )

        assert not result.ok
        assert result.succeeded == ["img_a", "img_c"]
        assert len(result.failed) == 1
        failure = result.failed[0]
        assert failure.index == 1
        assert failure.item_id == "img_b"
        assert failure.error_code == "NOT_FOUND"
        assert failure.message == "Image not found in this discovery"
        assert isinstance(result.first_cause, NotFoundError)
        assert result.any_succeeded


class TestFailureFromException:
    def test_unexpected_errors_are_not_leaked(self) -> None:
        failure = failure_from_exception(RuntimeError("socket 10.0.0.1 refused"), index=0)

        assert failure.error_code == "INTERNAL_ERROR"
        assert "10.0.0.1" not in failure.message
