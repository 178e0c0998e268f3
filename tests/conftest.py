"""Shared fixtures: fake cluster access, deployment context, subprocess fakes."""

from __future__ import annotations

import subprocess
import time
from pathlib import Path
from typing import Any

import pytest

from eastwest_manager.config import ClusterTarget, DeploymentContext, ImageSettings

HUB = "gcr.io/istio-testing"
TAG = "1.22-dev"
GENERATED_CONFIG = b"apiVersion: install.istio.io/v1alpha1\nkind: IstioOperator\n"
RENDERED_MANIFEST = (
    "apiVersion: v1\nkind: Service\nmetadata:\n  name: istio-eastwestgateway\n"
    "---\n"
    "apiVersion: apps/v1\nkind: Deployment\nmetadata:\n  name: istio-eastwestgateway\n"
)


def pod(name: str, phase: str = "Running") -> dict[str, Any]:
    return {
        "metadata": {"name": name, "labels": {"istio": "eastwestgateway"}},
        "status": {"phase": phase},
    }


class FakeCluster:
    """In-memory stand-in for KubeCluster.

    ``pod_responses`` are returned by successive ``list_pods`` calls; an
    exception instance is raised instead of returned, and the last response
    repeats forever. ``list_delay`` makes every listing block that many seconds.
    """

    def __init__(self, name: str = "west", pod_responses: list | None = None,
                 apply_error: Exception | None = None, delete_error: Exception | None = None,
                 list_delay: float = 0.0) -> None:
        self.name = name
        self.pod_responses = list(pod_responses if pod_responses is not None else [[pod(f"{name}-gw")]])
        self.apply_error = apply_error
        self.delete_error = delete_error
        self.list_calls: list[tuple[str, str]] = []
        self.list_timeouts: list[float | None] = []
        self.list_delay = list_delay
        self.applied: list[tuple[str, str]] = []
        self.applied_files: list[tuple[str, tuple[Path, ...]]] = []
        self.deleted: list[tuple[str, str]] = []

    def list_pods(self, namespace: str, selector: str, timeout: float | None = None) -> list[dict[str, Any]]:
        self.list_calls.append((namespace, selector))
        self.list_timeouts.append(timeout)
        if self.list_delay:
            time.sleep(self.list_delay)
        response = self.pod_responses.pop(0) if len(self.pod_responses) > 1 else self.pod_responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def apply_yaml(self, namespace: str, manifest: str) -> None:
        if self.apply_error is not None:
            raise self.apply_error
        self.applied.append((namespace, manifest))

    def apply_yaml_files(self, namespace: str, *files: Path) -> None:
        if self.apply_error is not None:
            raise self.apply_error
        self.applied_files.append((namespace, files))

    def delete_yaml(self, namespace: str, manifest: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append((namespace, manifest))


class FakeTools:
    """``subprocess.run`` replacement for the generator script and istioctl.

    Both modules share the ``subprocess`` module, so one side effect serves
    both; calls are dispatched on the program name.
    """

    def __init__(self, ctx: DeploymentContext, *, gen_output: bytes = GENERATED_CONFIG, gen_rc: int = 0,
                 manifest: str = RENDERED_MANIFEST, render_stderr: str = "", render_rc: int = 0) -> None:
        self.ctx = ctx
        self.gen_output = gen_output
        self.gen_rc = gen_rc
        self.manifest = manifest
        self.render_stderr = render_stderr
        self.render_rc = render_rc
        self.gen_calls: list[dict[str, Any]] = []
        self.render_calls: list[list[str]] = []

    def __call__(self, argv: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        if argv[0] == str(self.ctx.gen_gateway_script):
            self.gen_calls.append(kwargs)
            return subprocess.CompletedProcess(argv, self.gen_rc, stdout=self.gen_output)
        if argv[0] == self.ctx.istioctl:
            self.render_calls.append(list(argv[1:]))
            return subprocess.CompletedProcess(argv, self.render_rc, stdout=self.manifest, stderr=self.render_stderr)
        raise AssertionError(f"unexpected command {argv}")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    import os

    for key in list(os.environ):
        if key.startswith("EASTWEST_") or key == "SINGLE_CLUSTER":
            monkeypatch.delenv(key)


@pytest.fixture
def ctx(tmp_path: Path) -> DeploymentContext:
    return DeploymentContext(
        workdir=tmp_path / "work",
        namespace="istio-system",
        image=ImageSettings(hub=HUB, tag=TAG, pull_policy="IfNotPresent"),
        mesh_id="mesh1",
        multicluster=False,
        istio_src=tmp_path / "istio",
        ready_timeout=5.0,
        ready_interval=0.01,
    )


@pytest.fixture
def west() -> ClusterTarget:
    return ClusterTarget(name="west", network="network-2")
