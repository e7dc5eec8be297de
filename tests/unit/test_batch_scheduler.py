"""Unit tests for BatchScheduler and its retry cascade."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from datetime import date, timedelta
from typing import Any

import httpx
import pytest

from gsc_data._internal.api_client import SearchConsoleAPIClient
from gsc_data._internal.batch_scheduler import BatchScheduler, validate_batch_size
from gsc_data._internal.query_builder import build_query
from gsc_data.enums import Dimension
from gsc_data.exceptions import AuthenticationError, BatchItemFailedError, QueryError
from gsc_data.report_config import ReportConfig
from gsc_data.types import SearchAnalyticsQuery
from helpers import (
    batch_bodies,
    batch_response,
    gsc_row,
    query_body,
    respond_to_queries,
)

START = date(2024, 1, 1)
CONFIG = ReportConfig(
    site_url="https://example.com/",
    start_date=START,
    end_date=START + timedelta(days=30),
)


def days(n: int) -> list[date]:
    return [START + timedelta(days=i) for i in range(n)]


def build_day(day: date) -> SearchAnalyticsQuery:
    return build_query(CONFIG, [Dimension.DATE], start_date=day, end_date=day)


def first_key(payload: dict[str, Any], request_id: str) -> str:
    return str(payload["rows"][0]["keys"][0])


def echo_day(body: dict[str, Any]) -> tuple[int, dict[str, Any]]:
    return 200, {"rows": [gsc_row(body["startDate"])]}


class Recorder:
    """Transport handler wrapper counting physical calls and query bodies."""

    def __init__(self, handler: Callable[[dict[str, Any]], tuple[int, Any]]) -> None:
        self.calls = 0
        self.per_day: Counter[str] = Counter()
        self._handler = handler
        self._transport = respond_to_queries(self._record)

    def _record(self, body: dict[str, Any]) -> tuple[int, Any]:
        self.per_day[body["startDate"]] += 1
        return self._handler(body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        response: httpx.Response = self._transport(request)
        return response


@pytest.fixture
def make_scheduler(
    mock_client_factory: Callable[..., SearchConsoleAPIClient],
) -> Callable[..., tuple[BatchScheduler, Recorder, list[float]]]:
    """Build a scheduler over a recording mock transport."""

    def factory(
        handler: Callable[[dict[str, Any]], tuple[int, Any]] = echo_day,
        batch_size: int = 10,
        **kwargs: Any,
    ) -> tuple[BatchScheduler, Recorder, list[float]]:
        recorder = Recorder(handler)
        sleeps: list[float] = []
        scheduler = BatchScheduler(
            mock_client_factory(recorder),
            batch_size=batch_size,
            sleep=sleeps.append,
            **kwargs,
        )
        return scheduler, recorder, sleeps

    return factory


def fails_for(
    bad_days: set[str], times: int | None = None, status: int = 400
) -> Callable[[dict[str, Any]], tuple[int, Any]]:
    """Handler failing the given days, forever or for the first ``times`` tries."""
    seen: Counter[str] = Counter()

    def handler(body: dict[str, Any]) -> tuple[int, Any]:
        day = body["startDate"]
        seen[day] += 1
        if day in bad_days and (times is None or seen[day] <= times):
            return status, {"error": {"code": status, "message": "Bad request"}}
        return echo_day(body)

    return handler


class TestValidateBatchSize:
    """Tests for validate_batch_size()."""

    @pytest.mark.parametrize("size", [1, 10, 1000])
    def test_in_range(self, size: int) -> None:
        """Sizes 1..1000 pass through."""
        assert validate_batch_size(size) == size

    @pytest.mark.parametrize("size", [0, -1, 1001])
    def test_out_of_range(self, size: int) -> None:
        """Sizes outside 1..1000 raise ValueError."""
        with pytest.raises(ValueError, match="Batch size"):
            validate_batch_size(size)

    def test_setter_validates(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """Changing the batch size validates it."""
        scheduler, _, _ = make_scheduler()
        scheduler.batch_size = 50
        assert scheduler.batch_size == 50
        with pytest.raises(ValueError):
            scheduler.batch_size = 0


class TestRun:
    """Tests for BatchScheduler.run() on the happy path."""

    def test_yields_results_in_order(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """Every item yields once, in item order, grouped in batches."""
        scheduler, recorder, sleeps = make_scheduler(batch_size=3)

        results = list(scheduler.run(days(7), build_day, first_key))

        assert results == [d.isoformat() for d in days(7)]
        # 3 + 3 as batches, the trailing single as a direct query
        assert recorder.calls == 3
        assert sleeps == []

    def test_empty_items(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """No items means no calls."""
        scheduler, recorder, _ = make_scheduler()
        assert list(scheduler.run([], build_day, first_key)) == []
        assert recorder.calls == 0

    def test_lazy_dispatch(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """The next chunk is only sent when the consumer asks for more."""
        scheduler, recorder, _ = make_scheduler(batch_size=2)
        results = scheduler.run(days(6), build_day, first_key)

        assert recorder.calls == 0
        next(results)
        assert recorder.calls == 1
        next(results)
        assert recorder.calls == 1
        next(results)
        assert recorder.calls == 2

    def test_none_results_skipped(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """Handlers returning None produce nothing."""
        scheduler, _, _ = make_scheduler(batch_size=5)

        def keep_even(payload: dict[str, Any], request_id: str) -> str | None:
            day = first_key(payload, request_id)
            return day if int(day[-2:]) % 2 == 0 else None

        assert list(scheduler.run(days(4), build_day, keep_even)) == [
            "2024-01-02",
            "2024-01-04",
        ]

    def test_duplicate_items_collapse(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """Items building the same query are sent and yielded once."""
        scheduler, recorder, _ = make_scheduler(batch_size=3)
        day1, day2 = days(2)

        results = list(scheduler.run([day1, day1, day2], build_day, first_key))

        assert results == [day1.isoformat(), day2.isoformat()]
        assert recorder.per_day[day1.isoformat()] == 1

    def test_duplicates_collapse_across_chunks(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """A repeat in a later chunk is skipped without an error callback."""
        scheduler, recorder, _ = make_scheduler(batch_size=1)
        day1, day2 = days(2)
        errors: list[Any] = []

        results = list(
            scheduler.run(
                [day1, day2, day1], build_day, first_key, lambda e, i: errors.append(i)
            )
        )

        assert results == [day1.isoformat(), day2.isoformat()]
        assert recorder.per_day[day1.isoformat()] == 1
        assert errors == []

    def test_handler_receives_request_id(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """The correlation id passed to the handler is the query's id."""
        scheduler, _, _ = make_scheduler(batch_size=2)
        ids = list(scheduler.run(days(2), build_day, lambda payload, rid: rid))
        assert ids == [build_day(d).request_id for d in days(2)]


class TestErrors:
    """Tests for build and handler failures."""

    def test_build_failure_reported_once(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """Items whose query cannot be built are reported and skipped."""
        scheduler, recorder, sleeps = make_scheduler(batch_size=3)
        bad = days(3)[1]
        errors: list[tuple[BaseException, Any]] = []

        def build(day: date) -> SearchAnalyticsQuery:
            if day == bad:
                raise ValueError("cannot build")
            return build_day(day)

        results = list(
            scheduler.run(
                days(3), build, first_key, lambda e, item: errors.append((e, item))
            )
        )

        assert results == ["2024-01-01", "2024-01-03"]
        assert len(errors) == 1
        assert isinstance(errors[0][0], ValueError)
        assert errors[0][1] == bad
        assert recorder.calls == 1
        assert sleeps == []

    def test_handler_failure_reported_once(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """Handler exceptions are reported for the item and not retried."""
        scheduler, recorder, sleeps = make_scheduler(batch_size=3)
        errors: list[Any] = []

        def handle(payload: dict[str, Any], request_id: str) -> str:
            day = first_key(payload, request_id)
            if day == "2024-01-02":
                raise KeyError("rows")
            return day

        results = list(
            scheduler.run(days(3), build_day, handle, lambda e, item: errors.append(item))
        )

        assert results == ["2024-01-01", "2024-01-03"]
        assert errors == [date(2024, 1, 2)]
        assert recorder.per_day["2024-01-02"] == 1
        assert sleeps == []

    def test_default_error_callback_logs(
        self,
        make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Without on_error, failures are logged at ERROR level."""
        scheduler, _, _ = make_scheduler()

        def build(day: date) -> SearchAnalyticsQuery:
            raise ValueError("nope")

        assert list(scheduler.run(days(1), build, first_key)) == []
        assert "nope" in caplog.text


class TestRetryCascade:
    """Tests for the shrinking-batch retry cascade."""

    def test_failed_items_come_after_the_pass(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """A transiently failing item is yielded after the rest of the pass."""
        scheduler, _, sleeps = make_scheduler(
            fails_for({"2024-01-02"}, times=1), batch_size=3, retry_cooldown=5.0
        )

        results = list(scheduler.run(days(3), build_day, first_key))

        assert results == ["2024-01-01", "2024-01-03", "2024-01-02"]
        assert sleeps == [5.0]

    def test_converges_when_failures_are_transient(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """Items failing a few times still yield exactly once."""
        bad = {"2024-01-02", "2024-01-05", "2024-01-07"}
        scheduler, recorder, _ = make_scheduler(fails_for(bad, times=3), batch_size=8)
        errors: list[Any] = []

        results = list(
            scheduler.run(days(8), build_day, first_key, lambda e, i: errors.append(i))
        )

        assert sorted(results) == [d.isoformat() for d in days(8)]
        assert errors == []
        for day in bad:
            assert recorder.per_day[day] == 4

    def test_permanent_failure_reported_once(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """An item failing at every size is reported once after the backoff."""
        scheduler, recorder, sleeps = make_scheduler(
            fails_for({"2024-01-02"}),
            batch_size=4,
            retry_cooldown=60.0,
            max_single_retries=3,
        )
        errors: list[tuple[BaseException, Any]] = []

        results = list(
            scheduler.run(
                days(4), build_day, first_key, lambda e, i: errors.append((e, i))
            )
        )

        assert results == ["2024-01-01", "2024-01-03", "2024-01-04"]
        # batch 4 -> 2 -> 1, then three single retries with backoff
        assert sleeps == [60.0, 60.0, 60.0, 120.0, 240.0]
        assert len(errors) == 1
        error, item = errors[0]
        assert item == date(2024, 1, 2)
        assert isinstance(error, BatchItemFailedError)
        assert error.item == item
        assert error.attempts == 6
        assert isinstance(error.last_error, QueryError)
        assert recorder.per_day["2024-01-02"] == 6
    def test_failed_outer_call_retries_every_item(
        self, mock_client_factory: Callable[..., SearchConsoleAPIClient]
    ) -> None:
        """When the whole batch call fails, each item goes through the cascade."""
        inner = respond_to_queries(echo_day)
        outer_calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if "/batch/" in request.url.path and not outer_calls:
                outer_calls.append(1)
                return httpx.Response(400, json={"error": {"message": "bad batch"}})
            response: httpx.Response = inner(request)
            return response

        sleeps: list[float] = []
        scheduler = BatchScheduler(
            mock_client_factory(handler),
            batch_size=4,
            retry_cooldown=1.0,
            sleep=sleeps.append,
        )

        results = list(scheduler.run(days(4), build_day, first_key))

        assert results == [d.isoformat() for d in days(4)]
        assert sleeps == [1.0]

    def test_missing_part_is_retried(
        self, mock_client_factory: Callable[..., SearchConsoleAPIClient]
    ) -> None:
        """A part absent from the batch response counts as a failure."""
        sent: Counter[str] = Counter()

        def handler(request: httpx.Request) -> httpx.Response:
            if "/batch/" in request.url.path:
                bodies = batch_bodies(request)
                for body in bodies.values():
                    sent[body["startDate"]] += 1
                # answer only the first part
                correlation_id, body = next(iter(bodies.items()))
                return batch_response([(correlation_id, *echo_day(body))])
            body = query_body(request)
            sent[body["startDate"]] += 1
            status, payload = echo_day(body)
            return httpx.Response(status, json=payload)

        sleeps: list[float] = []
        scheduler = BatchScheduler(
            mock_client_factory(handler),
            batch_size=2,
            retry_cooldown=1.0,
            sleep=sleeps.append,
        )

        results = list(scheduler.run(days(2), build_day, first_key))

        assert results == ["2024-01-01", "2024-01-02"]
        assert sent == {"2024-01-01": 1, "2024-01-02": 2}
        assert sleeps == [1.0]


class TestAuthentication:
    """A 401 stops the run instead of entering the cascade."""

    @pytest.mark.parametrize("batch_size", [1, 3])
    def test_rejected_credentials_raise(
        self,
        make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]],
        batch_size: int,
    ) -> None:
        """Every query answered with 401 raises on the first dispatch."""
        scheduler, recorder, sleeps = make_scheduler(
            lambda body: (401, {"error": {"code": 401, "message": "Invalid token"}}),
            batch_size=batch_size,
            retry_cooldown=60.0,
        )
        errors: list[Any] = []

        with pytest.raises(AuthenticationError):
            list(
                scheduler.run(
                    days(6), build_day, first_key, lambda e, i: errors.append(i)
                )
            )

        assert recorder.calls == 1
        assert sleeps == []
        assert errors == []

    def test_rejected_part_raises(
        self, make_scheduler: Callable[..., tuple[BatchScheduler, Recorder, list[float]]]
    ) -> None:
        """A single 401 part inside a batch response also stops the run."""
        scheduler, recorder, sleeps = make_scheduler(
            fails_for({"2024-01-02"}, status=401),
            batch_size=3,
            retry_cooldown=60.0,
        )

        with pytest.raises(AuthenticationError):
            list(scheduler.run(days(6), build_day, first_key))

        assert recorder.calls == 1
        assert sleeps == []
