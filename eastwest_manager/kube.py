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


"""kubectl access to target clusters: list pods, apply and delete manifests."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any, Protocol

import sh

from eastwest_manager.config import ClusterTarget
from eastwest_manager.constants import KUBECTL_LIST_TIMEOUT_SECONDS
from eastwest_manager.errors import ApplyError, ConfigError


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        ConfigError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise ConfigError(f"Required command '{cmd}' not found. Please install it first.") from err


def run_kubectl(args: list[str], timeout: float = KUBECTL_LIST_TIMEOUT_SECONDS) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    Uses subprocess instead of sh because the pod listing is parsed as JSON
    and needs stdout kept apart from warnings printed on stderr.

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "default"]``).
        timeout: Maximum seconds to wait for the command to complete.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    try:
        result = subprocess.run(
            ["kubectl", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)


def _decode(output: bytes | str | None) -> str:
    if isinstance(output, bytes):
        return output.decode(errors="replace").strip()
    return (output or "").strip()


class Cluster(Protocol):
    """Cluster operations the gateway deployment consumes."""

    name: str

    def list_pods(self, namespace: str, selector: str, timeout: float | None = None) -> list[dict[str, Any]]: ...

    def apply_yaml(self, namespace: str, manifest: str) -> None: ...

    def apply_yaml_files(self, namespace: str, *files: Path) -> None: ...

    def delete_yaml(self, namespace: str, manifest: str) -> None: ...


class KubeCluster:
    """A cluster reached through kubectl, optionally pinned to a context.

    Attributes:
        name: Cluster name used in messages and cleanup records.
        context: kubeconfig context, or None for the current context.
        kubeconfig: kubeconfig file, or None for kubectl's default.
    """

    def __init__(self, name: str, context: str | None = None, kubeconfig: Path | None = None) -> None:
        self.name = name
        self.context = context
        self.kubeconfig = kubeconfig

    @classmethod
    def for_target(cls, target: ClusterTarget) -> KubeCluster:
        return cls(target.name, context=target.context, kubeconfig=target.kubeconfig)

    def __repr__(self) -> str:
        return f"KubeCluster(name={self.name!r}, context={self.context!r})"

    def _global_args(self) -> list[str]:
        args: list[str] = []
        if self.kubeconfig is not None:
            args += ["--kubeconfig", str(self.kubeconfig)]
        if self.context:
            args += ["--context", self.context]
        return args

    def list_pods(self, namespace: str, selector: str, timeout: float | None = None) -> list[dict[str, Any]]:
        """List pods matching a label selector.

        Args:
            namespace: Namespace to list pods in.
            selector: Label selector (e.g. ``istio=eastwestgateway``).
            timeout: Seconds kubectl may take, capped at the default list timeout.

        Returns:
            Pod objects as returned by the API server.

        Raises:
            RuntimeError: If kubectl fails or returns unparseable output.
        """
        if timeout is None or timeout > KUBECTL_LIST_TIMEOUT_SECONDS:
            timeout = KUBECTL_LIST_TIMEOUT_SECONDS
        ok, stdout, stderr = run_kubectl([
            *self._global_args(),
            "get", "pods", "-n", namespace, "-l", selector, "-o", "json",
        ], timeout=timeout)
        if not ok:
            raise RuntimeError(f"listing pods {selector} in {self.name}/{namespace} failed: {stderr.strip()}")
        try:
            return json.loads(stdout).get("items", [])
        except json.JSONDecodeError as err:
            raise RuntimeError(f"unparseable pod list from {self.name}: {err}") from err

    def apply_yaml(self, namespace: str, manifest: str) -> None:
        """Apply manifest text to the cluster.

        Raises:
            ApplyError: If kubectl rejects the manifest.
        """
        try:
            sh.kubectl(*self._global_args(), "apply", "-n", namespace, "-f", "-", _in=manifest)
        except (sh.ErrorReturnCode, sh.CommandNotFound) as err:
            raise ApplyError(
                f"applying manifest to {namespace} failed: {_decode(getattr(err, 'stderr', str(err)))}",
                cluster=self.name,
            ) from err

    def apply_yaml_files(self, namespace: str, *files: Path) -> None:
        """Apply one or more manifest files to the cluster.

        Raises:
            ApplyError: If kubectl rejects any of the files.
        """
        file_args = [item for path in files for item in ("-f", str(path))]
        try:
            sh.kubectl(*self._global_args(), "apply", "-n", namespace, *file_args)
        except (sh.ErrorReturnCode, sh.CommandNotFound) as err:
            names = ", ".join(Path(p).name for p in files)
            raise ApplyError(
                f"applying {names} to {namespace} failed: {_decode(getattr(err, 'stderr', str(err)))}",
                cluster=self.name,
            ) from err

    def delete_yaml(self, namespace: str, manifest: str) -> None:
        """Delete the resources described by manifest text.

        Raises:
            ApplyError: If kubectl fails to delete the resources.
        """
        try:
            sh.kubectl(
                *self._global_args(),
                "delete", "--ignore-not-found", "-n", namespace, "-f", "-",
                _in=manifest,
            )
        except (sh.ErrorReturnCode, sh.CommandNotFound) as err:
            raise ApplyError(
                f"deleting manifest from {namespace} failed: {_decode(getattr(err, 'stderr', str(err)))}",
                cluster=self.name,
            ) from err
