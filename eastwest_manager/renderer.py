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


"""Rendering the gateway operator config into resources with istioctl."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

import yaml

from eastwest_manager import console, logger
from eastwest_manager.config import DeploymentContext
from eastwest_manager.constants import (
    ISTIOCTL_SET_HUB,
    ISTIOCTL_SET_PULL_POLICY,
    ISTIOCTL_SET_TAG,
)
from eastwest_manager.errors import RenderError


@dataclass(frozen=True)
class RenderSettings:
    """Inputs of ``istioctl manifest generate``.

    Attributes:
        namespace: Istio system namespace.
        manifests_dir: Directory holding the Istio install manifests.
        hub: Image hub.
        tag: Image tag.
        pull_policy: Image pull policy.
        config_file: Persisted operator config to render.
    """

    namespace: str
    manifests_dir: Path
    hub: str
    tag: str
    pull_policy: str
    config_file: Path

    @classmethod
    def from_context(cls, ctx: DeploymentContext, config_file: Path) -> RenderSettings:
        return cls(
            namespace=ctx.namespace,
            manifests_dir=ctx.manifests_dir,
            hub=ctx.image.hub,
            tag=ctx.image.tag,
            pull_policy=ctx.image.pull_policy,
            config_file=config_file,
        )

    def to_args(self) -> list[str]:
        """Serialize to the istioctl argument vector."""
        return [
            "manifest", "generate",
            "--istioNamespace", self.namespace,
            "--manifests", str(self.manifests_dir),
            "--set", f"{ISTIOCTL_SET_HUB}={self.hub}",
            "--set", f"{ISTIOCTL_SET_TAG}={self.tag}",
            "--set", f"{ISTIOCTL_SET_PULL_POLICY}={self.pull_policy}",
            "-f", str(self.config_file),
        ]


@dataclass(frozen=True)
class RenderResult:
    """Output of a successful render.

    Attributes:
        manifest: Rendered resources (istioctl stdout).
        diagnostics: istioctl stderr.
    """

    manifest: str
    diagnostics: str = ""


def count_resources(manifest: str) -> int:
    """Count the non-empty YAML documents in a rendered manifest.

    Raises:
        RenderError: If the manifest is not valid YAML.
    """
    try:
        return sum(1 for doc in yaml.safe_load_all(manifest) if doc)
    except yaml.YAMLError as err:
        raise RenderError(f"rendered manifest is not valid YAML: {err}") from err


def render_manifest(istioctl: str, settings: RenderSettings, cluster_name: str | None = None) -> RenderResult:
    """Run ``istioctl manifest generate`` for a persisted operator config.

    On failure both output streams are logged at error level and nothing is
    returned, so a partial manifest never reaches the cluster. The resource
    count is informational: output that does not parse as YAML is logged and
    still returned.

    Args:
        istioctl: istioctl binary.
        settings: Render inputs.
        cluster_name: Cluster the manifest is rendered for, used in messages.

    Returns:
        The rendered manifest and istioctl's diagnostics.

    Raises:
        RenderError: If istioctl cannot be started, exits nonzero, or renders nothing.
    """
    args = settings.to_args()
    console.print(f"[yellow]\u2139\ufe0f  Rendering eastwestgateway for {cluster_name}: {' '.join(args)}[/yellow]")
    try:
        result = subprocess.run(
            [istioctl, *args],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as err:
        raise RenderError(f"failed running {istioctl}: {err}", cluster=cluster_name) from err

    if result.returncode != 0:
        logger.error(result.stdout)
        logger.error(result.stderr)
        logger.error("istioctl exited with status %d", result.returncode)
        raise RenderError(
            f"failed installing eastwestgateway via IstioOperator: exit status {result.returncode}",
            cluster=cluster_name,
        )
    if not result.stdout.strip():
        logger.error(result.stderr)
        raise RenderError("istioctl rendered an empty manifest", cluster=cluster_name)

    try:
        logger.info("Rendered %d resources for %s", count_resources(result.stdout), cluster_name)
    except RenderError as err:
        logger.warning("Could not count rendered resources for %s: %s", cluster_name, err)
    return RenderResult(manifest=result.stdout, diagnostics=result.stderr)
