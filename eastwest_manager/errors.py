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


"""Error types raised by each stage of the gateway deployment sequence."""

from __future__ import annotations


class EastWestError(RuntimeError):
    """Base error carrying the failed stage and, when known, the cluster.

    Attributes:
        stage: Name of the deployment stage that failed.
        cluster: Name of the cluster being deployed, or None.
    """

    stage = "eastwest"

    def __init__(self, message: str, *, cluster: str | None = None) -> None:
        self.cluster = cluster
        prefix = f"{self.stage}: " if cluster is None else f"{self.stage} ({cluster}): "
        super().__init__(prefix + message)


class ConfigError(EastWestError):
    """Prerequisite settings, tools, or inputs are unavailable."""

    stage = "config"


class GenerationError(EastWestError):
    """The gateway operator config could not be generated."""

    stage = "generate"


class PersistenceError(EastWestError):
    """The generated operator config could not be written to disk."""

    stage = "persist"


class RenderError(EastWestError):
    """istioctl failed to render the operator config into resources."""

    stage = "render"


class ApplyError(EastWestError):
    """Resources could not be applied to or deleted from a cluster."""

    stage = "apply"


class ReadinessTimeoutError(EastWestError, TimeoutError):
    """A readiness condition did not hold before the deadline.

    Attributes:
        last_condition: Last observed reason the condition did not hold.
    """

    stage = "readiness"

    def __init__(
        self,
        message: str,
        *,
        cluster: str | None = None,
        last_condition: str | None = None,
    ) -> None:
        self.last_condition = last_condition
        if last_condition:
            message = f"{message}: {last_condition}"
        super().__init__(message, cluster=cluster)
