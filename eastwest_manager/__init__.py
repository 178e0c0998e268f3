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


"""eastwest_manager - East-west gateway provisioning for multi-cluster mesh tests."""

from __future__ import annotations

import io
import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from rich.console import Console


class ClusterConsole:
    """Console proxy that captures output per cluster while tasks run in parallel.

    Output printed by a thread inside :meth:`capture` is kept under the cluster
    name and printed later by :meth:`replay`, so per-cluster blocks never
    interleave. Every other attribute is forwarded to the active console.
    """

    def __init__(self, real_console: Console) -> None:
        object.__setattr__(self, "_real", real_console)
        object.__setattr__(self, "_local", threading.local())
        object.__setattr__(self, "_captured", {})
        object.__setattr__(self, "_lock", threading.Lock())

    def __getattr__(self, name: str):
        target = getattr(self._local, "console", self._real)
        return getattr(target, name)

    @contextmanager
    def capture(self, cluster: str) -> Iterator[io.StringIO]:
        """Capture the current thread's output under *cluster*, even if it fails."""
        buf = io.StringIO()
        self._local.console = Console(file=buf, stderr=False)
        try:
            yield buf
        finally:
            del self._local.console
            with self._lock:
                self._captured[cluster] = buf.getvalue()

    def replay(self, clusters: Iterable[str]) -> None:
        """Print and forget captured output, in the given cluster order."""
        with self._lock:
            blocks = [self._captured.pop(name, "") for name in clusters]
        for text in blocks:
            if text:
                self._real.print(text, end="", markup=False, highlight=False)


console = ClusterConsole(Console(stderr=True))
logger = logging.getLogger("eastwest_manager")
