"""Tests for eastwest_manager.readiness."""

from __future__ import annotations

import time

import pytest

from eastwest_manager.errors import ReadinessTimeoutError
from eastwest_manager.readiness import (
    NotReadyError,
    PollState,
    running_pod_check,
    wait_for_running_pod,
    wait_until,
)
from tests.conftest import FakeCluster, pod

SELECTOR = "istio=eastwestgateway"


class _SleepRecorder:
    """Records requested sleeps without sleeping."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


# ── TestPollState ────────────────────────────────────────────────────────


class TestPollState:
    def test_values(self):
        assert [s.value for s in PollState] == ["Polling", "Satisfied", "TimedOut"]


# ── TestRunningPodCheck ──────────────────────────────────────────────────


class TestRunningPodCheck:
    def test_returns_running_pod(self):
        cluster = FakeCluster(pod_responses=[[pod("a", "Pending"), pod("b", "Running")]])
        assert running_pod_check(cluster, "istio-system", SELECTOR)() == "b"
        assert cluster.list_calls == [("istio-system", SELECTOR)]

    def test_no_running_pod(self):
        cluster = FakeCluster(pod_responses=[[pod("a", "Pending")]])
        with pytest.raises(NotReadyError, match="no ready pods for istio=eastwestgateway"):
            running_pod_check(cluster, "istio-system", SELECTOR)()

    def test_empty_list(self):
        cluster = FakeCluster(pod_responses=[[]])
        with pytest.raises(NotReadyError):
            running_pod_check(cluster, "istio-system", SELECTOR)()

    def test_listing_bounded_by_deadline(self):
        cluster = FakeCluster()
        running_pod_check(cluster, "istio-system", SELECTOR, deadline=time.monotonic() + 10)()
        running_pod_check(cluster, "istio-system", SELECTOR)()
        bounded, unbounded = cluster.list_timeouts
        assert 9 < bounded <= 10
        assert unbounded is None


# ── TestWaitUntil ────────────────────────────────────────────────────────


class TestWaitUntil:
    def test_returns_check_value(self):
        assert wait_until(lambda: 42, timeout=1, interval=0.1, describe="x") == 42

    def test_fatal_error_not_retried(self):
        calls = []

        def _check():
            calls.append(1)
            raise PermissionError("forbidden")

        with pytest.raises(PermissionError):
            wait_until(_check, timeout=5, interval=0.01, describe="x", fatal=(PermissionError,))
        assert len(calls) == 1

    @pytest.mark.parametrize("exc_type", [KeyboardInterrupt, SystemExit])
    def test_interrupts_propagate(self, exc_type):
        responses = [exc_type(), "ok"]
        calls = []

        def _check():
            calls.append(1)
            item = responses.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item

        with pytest.raises(exc_type):
            wait_until(_check, timeout=5, interval=0.01, describe="x", sleep=_SleepRecorder())
        assert len(calls) == 1

    def test_non_fatal_errors_absorbed(self):
        responses = [ValueError("a"), ValueError("b"), "ok"]

        def _check():
            item = responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        sleep = _SleepRecorder()
        result = wait_until(_check, timeout=5, interval=0.25, describe="x", fatal=(PermissionError,), sleep=sleep)
        assert result == "ok"
        assert sleep.calls == [0.25, 0.25]

    def test_timeout_carries_last_condition(self):
        def _check():
            raise NotReadyError("still waiting")

        with pytest.raises(ReadinessTimeoutError) as exc_info:
            wait_until(_check, timeout=0.05, interval=0.01, describe="thing", cluster="west")
        err = exc_info.value
        assert err.last_condition == "still waiting"
        assert err.cluster == "west"
        assert "thing" in str(err)
        assert isinstance(err, TimeoutError)


# ── TestWaitForRunningPod ────────────────────────────────────────────────


class TestWaitForRunningPod:
    @pytest.mark.parametrize("misses", [0, 1, 3, 7])
    def test_success_after_k_misses(self, misses):
        responses = [[] for _ in range(misses)] + [[pod("gw-0")]]
        cluster = FakeCluster(pod_responses=responses)
        sleep = _SleepRecorder()
        name = wait_for_running_pod(cluster, "istio-system", SELECTOR, timeout=30, interval=0.5, sleep=sleep)
        assert name == "gw-0"
        assert len(cluster.list_calls) == misses + 1
        assert sleep.calls == [0.5] * misses

    def test_list_failures_are_transient(self):
        cluster = FakeCluster(pod_responses=[RuntimeError("connection refused"), [pod("a", "Pending")], [pod("gw-0")]])
        sleep = _SleepRecorder()
        assert wait_for_running_pod(cluster, "istio-system", SELECTOR, timeout=30, interval=0.1, sleep=sleep) == "gw-0"
        assert len(cluster.list_calls) == 3

    def test_times_out_no_earlier_than_deadline(self):
        cluster = FakeCluster(pod_responses=[[pod("a", "Pending")]])
        timeout = 0.3
        start = time.monotonic()
        with pytest.raises(ReadinessTimeoutError) as exc_info:
            wait_for_running_pod(cluster, "istio-system", SELECTOR, timeout=timeout, interval=0.05)
        elapsed = time.monotonic() - start
        assert elapsed >= timeout
        assert "no ready pods for istio=eastwestgateway" in str(exc_info.value)
        assert exc_info.value.cluster == "west"

    def test_timeout_after_persistent_list_failure(self):
        cluster = FakeCluster(pod_responses=[RuntimeError("forbidden")])
        with pytest.raises(ReadinessTimeoutError) as exc_info:
            wait_for_running_pod(cluster, "istio-system", SELECTOR, timeout=0.1, interval=0.02)
        assert exc_info.value.last_condition == "forbidden"

    def test_slow_listing_abandoned_at_deadline(self):
        cluster = FakeCluster(pod_responses=[[pod("gw-0")]], list_delay=1.0)
        timeout = 0.3
        start = time.monotonic()
        with pytest.raises(ReadinessTimeoutError) as exc_info:
            wait_for_running_pod(cluster, "istio-system", SELECTOR, timeout=timeout, interval=0.05)
        elapsed = time.monotonic() - start
        assert timeout <= elapsed < 0.9
        assert "still pending at the deadline" in exc_info.value.last_condition
        assert cluster.list_timeouts[0] <= timeout

    def test_slow_listing_after_misses_reports_last_miss(self):
        calls = []

        def _check():
            calls.append(1)
            if len(calls) > 1:
                time.sleep(1.0)
            raise NotReadyError("no ready pods yet")

        start = time.monotonic()
        with pytest.raises(ReadinessTimeoutError) as exc_info:
            wait_until(_check, timeout=0.3, interval=0.05, describe="x")
        assert time.monotonic() - start < 0.9
        assert exc_info.value.last_condition == "no ready pods yet"
