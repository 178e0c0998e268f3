# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */


"""Fixed-interval readiness polling bounded by a deadline."""

from __future__ import annotations

import time
from collections.abc import Callable
from concurrent import futures
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
)

from eastwest_manager import logger
from eastwest_manager.constants import POD_PHASE_RUNNING
from eastwest_manager.errors import ReadinessTimeoutError
from eastwest_manager.kube import Cluster

T = TypeVar("T")


class PollState(Enum):
    """States of a readiness poll. SATISFIED and TIMED_OUT are terminal."""

    POLLING = "Polling"
    SATISFIED = "Satisfied"
    TIMED_OUT = "TimedOut"


class NotReadyError(RuntimeError):
    """The polled condition does not hold yet."""


def wait_until(
    check: Callable[[], T],
    *,
    timeout: float,
    interval: float,
    describe: str,
    fatal: tuple[type[BaseException], ...] = (),
    cluster: str | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call *check* every *interval* seconds until it returns or *timeout* passes.

    Any ``Exception`` raised by *check* means the condition does not hold yet
    and is absorbed, except for the types listed in *fatal*, which propagate
    immediately. ``KeyboardInterrupt`` and ``SystemExit`` always propagate.
    The deadline is only declared once at least *timeout* seconds have
    elapsed, and an attempt still running at the deadline is abandoned.

    Args:
        check: Returns a value when the condition holds, raises otherwise.
        timeout: Seconds before giving up.
        interval: Fixed seconds to wait between attempts.
        describe: What is being waited for, used in messages.
        fatal: Exception types that abort polling instead of being retried.
        cluster: Cluster being polled, used in messages.
        sleep: Sleep function, replaceable in tests.

    Returns:
        The value returned by the first successful *check*.

    Raises:
        ReadinessTimeoutError: If *check* never succeeded before the deadline.
    """
    deadline = time.monotonic() + timeout
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="poll")
    misses: list[BaseException] = []

    def _remaining() -> float:
        return max(deadline - time.monotonic(), 0.0)

    def _attempt() -> T:
        future = executor.submit(check)
        try:
            return future.result(timeout=_remaining())
        except futures.TimeoutError:
            if future.done():
                return future.result()
            if misses:
                raise NotReadyError(str(misses[-1])) from None
            raise NotReadyError(f"{describe} still pending at the deadline") from None

    def _past_deadline(retry_state: RetryCallState) -> bool:
        return time.monotonic() >= deadline

    def _wait(retry_state: RetryCallState) -> float:
        return min(interval, _remaining())

    def _log_miss(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if exc is not None:
            misses.append(exc)
        logger.debug(
            "%s [%s] attempt %d after %.1fs: %s",
            describe, PollState.POLLING.value, retry_state.attempt_number,
            retry_state.seconds_since_start or 0.0, exc,
        )

    retrying = Retrying(
        stop=_past_deadline,
        wait=_wait,
        retry=retry_if_exception_type(Exception) & retry_if_not_exception_type(fatal),
        before_sleep=_log_miss,
        sleep=sleep,
    )
    try:
        result = retrying(_attempt)
    except RetryError as err:
        last = err.last_attempt.exception()
        logger.debug("%s [%s] after %d attempts", describe, PollState.TIMED_OUT.value, err.last_attempt.attempt_number)
        raise ReadinessTimeoutError(
            f"timed out after {timeout}s waiting for {describe}",
            cluster=cluster,
            last_condition=str(last) if last is not None else None,
        ) from last
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
    logger.debug("%s [%s]", describe, PollState.SATISFIED.value)
    return result


def running_pod_check(
    cluster: Cluster,
    namespace: str,
    selector: str,
    deadline: float | None = None,
) -> Callable[[], str]:
    """Build a check that returns the name of a Running pod matching *selector*.

    Args:
        cluster: Cluster to list pods in.
        namespace: Namespace to list pods in.
        selector: Label selector the pods must match.
        deadline: ``time.monotonic()`` value bounding each pod listing, or None.

    Returns:
        Callable raising :class:`NotReadyError` while no matching pod is Running.
    """

    def _check() -> str:
        budget = None if deadline is None else max(deadline - time.monotonic(), 0.0)
        for pod in cluster.list_pods(namespace, selector, timeout=budget):
            if pod.get("status", {}).get("phase") == POD_PHASE_RUNNING:
                return pod.get("metadata", {}).get("name", "")
        raise NotReadyError(f"no ready pods for {selector}")

    return _check


def wait_for_running_pod(
    cluster: Cluster,
    namespace: str,
    selector: str,
    *,
    timeout: float,
    interval: float,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Wait until at least one pod matching *selector* is Running.

    Pod listing failures are treated like "no running pod yet". Each listing
    is bounded by the time left before the deadline.

    Returns:
        Name of a Running pod.

    Raises:
        ReadinessTimeoutError: If no pod was Running before the deadline.
    """
    return wait_until(
        running_pod_check(cluster, namespace, selector, deadline=time.monotonic() + timeout),
        timeout=timeout,
        interval=interval,
        describe=f"running pods for {selector} in {namespace}",
        cluster=cluster.name,
        sleep=sleep,
    )
