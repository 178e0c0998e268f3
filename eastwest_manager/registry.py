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


"""Run-scoped registry of applied manifests, replayed at teardown."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass

from eastwest_manager import console, logger
from eastwest_manager.errors import ApplyError
from eastwest_manager.kube import Cluster


@dataclass(frozen=True)
class CleanupRecord:
    """A manifest applied to a cluster.

    Attributes:
        cluster: Name of the cluster the manifest was applied to.
        manifest: Applied manifest text.
    """

    cluster: str
    manifest: str


class CleanupRegistry:
    """Thread-safe list of applied manifests, shared by all cluster tasks.

    Registrations are never deduplicated; every record is replayed once.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[CleanupRecord] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def register(self, cluster: str, manifest: str) -> CleanupRecord:
        record = CleanupRecord(cluster=cluster, manifest=manifest)
        with self._lock:
            self._records.append(record)
        logger.debug("Registered manifest for cleanup in %s", cluster)
        return record

    def records(self) -> list[CleanupRecord]:
        with self._lock:
            return list(self._records)

    def records_for(self, cluster: str) -> list[CleanupRecord]:
        with self._lock:
            return [record for record in self._records if record.cluster == cluster]

    def drain(self) -> list[CleanupRecord]:
        """Remove and return every record, in registration order."""
        with self._lock:
            drained, self._records = self._records, []
        return drained

    def teardown(self, clusters: Mapping[str, Cluster], namespace: str) -> None:
        """Delete every registered manifest, newest first.

        A failed delete does not stop the remaining ones; all failures are
        reported together once every record has been processed.

        Args:
            clusters: Cluster access by cluster name.
            namespace: Namespace the manifests were applied to.

        Raises:
            ApplyError: If any manifest could not be deleted or its cluster is unknown.
        """
        failures: list[str] = []
        for record in reversed(self.drain()):
            cluster = clusters.get(record.cluster)
            if cluster is None:
                logger.warning("No cluster access for %s; skipping cleanup", record.cluster)
                failures.append(f"{record.cluster}: unknown cluster")
                continue
            console.print(f"[yellow]\u2139\ufe0f  Cleaning up eastwestgateway resources in {record.cluster}...[/yellow]")
            try:
                cluster.delete_yaml(namespace, record.manifest)
            except ApplyError as err:
                logger.warning("Cleanup in %s failed: %s", record.cluster, err)
                failures.append(f"{record.cluster}: {err}")
        if failures:
            raise ApplyError(f"cleanup failed for {len(failures)} manifest(s): " + "; ".join(failures))
