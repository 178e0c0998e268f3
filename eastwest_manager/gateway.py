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


"""East-west gateway deployment and exposure through the gateway."""

from __future__ import annotations

import time
from collections.abc import Callable

from rich.panel import Panel

from eastwest_manager import console
from eastwest_manager.config import ClusterTarget, DeploymentContext
from eastwest_manager.constants import EASTWEST_INGRESS_SERVICE_NAME, EASTWEST_SELECTOR
from eastwest_manager.errors import ReadinessTimeoutError
from eastwest_manager.generator import generate_gateway_config, persist_gateway_config
from eastwest_manager.kube import Cluster
from eastwest_manager.readiness import wait_for_running_pod
from eastwest_manager.registry import CleanupRegistry
from eastwest_manager.renderer import RenderResult, RenderSettings, render_manifest


def apply_manifest(cluster: Cluster, namespace: str, manifest: str) -> None:
    """Submit rendered resources to a cluster.

    Raises:
        ApplyError: If the cluster rejects the manifest.
    """
    console.print(f"[yellow]\u2139\ufe0f  Applying eastwestgateway resources to {cluster.name}/{namespace}...[/yellow]")
    cluster.apply_yaml(namespace, manifest)


def render_eastwest_gateway(ctx: DeploymentContext, target: ClusterTarget) -> RenderResult:
    """Generate, persist, and render the east-west gateway for one cluster.

    Args:
        ctx: Deployment context for the run.
        target: Cluster the gateway is rendered for.

    Returns:
        The rendered manifest.

    Raises:
        GenerationError: If the generator script fails.
        PersistenceError: If the operator config cannot be written.
        RenderError: If istioctl fails.
    """
    operator_config = generate_gateway_config(ctx.gen_gateway_script, target, ctx.mesh_id, ctx.multicluster)
    config_file = persist_gateway_config(ctx.workdir, target.name, operator_config)
    return render_manifest(ctx.istioctl, RenderSettings.from_context(ctx, config_file), target.name)


def deploy_eastwest_gateway(
    ctx: DeploymentContext,
    target: ClusterTarget,
    cluster: Cluster,
    registry: CleanupRegistry,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Deploy a dedicated gateway for cross-cluster discovery and cross-network services.

    Runs generate, persist, render, apply, and wait-for-ready in order; the
    first failing stage aborts the rest. The applied manifest is registered
    for cleanup only once a gateway pod is Running. Resources already applied
    are not rolled back on failure.

    Args:
        ctx: Deployment context for the run.
        target: Cluster the gateway is deployed to.
        cluster: Access to the target cluster.
        registry: Run-wide cleanup registry.
        sleep: Sleep function used between readiness polls.

    Returns:
        Name of a Running gateway pod.

    Raises:
        GenerationError: If the generator script fails.
        PersistenceError: If the operator config cannot be written.
        RenderError: If istioctl fails.
        ApplyError: If the cluster rejects the manifest.
        ReadinessTimeoutError: If no gateway pod is Running before the deadline.
    """
    console.print(Panel.fit(f"Deploying eastwestgateway in {target.name}", style="bold blue"))
    rendered = render_eastwest_gateway(ctx, target)
    apply_manifest(cluster, ctx.namespace, rendered.manifest)

    console.print(f"[yellow]\u2139\ufe0f  Waiting for {EASTWEST_INGRESS_SERVICE_NAME} to be ready...[/yellow]")
    try:
        pod = wait_for_running_pod(
            cluster,
            ctx.namespace,
            EASTWEST_SELECTOR,
            timeout=ctx.ready_timeout,
            interval=ctx.ready_interval,
            sleep=sleep,
        )
    except ReadinessTimeoutError as err:
        raise ReadinessTimeoutError(
            f"failed waiting for {EASTWEST_INGRESS_SERVICE_NAME} to become ready",
            cluster=target.name,
            last_condition=err.last_condition,
        ) from err

    registry.register(target.name, rendered.manifest)
    console.print(f"[green]\u2705 {EASTWEST_INGRESS_SERVICE_NAME} ready in {target.name} ({pod})[/green]")
    return pod


def expose_services(ctx: DeploymentContext, cluster: Cluster) -> None:
    """Expose cross-network services through the east-west gateway."""
    console.print(f"[yellow]\u2139\ufe0f  Exposing services via eastwestgateway in {cluster.name}[/yellow]")
    cluster.apply_yaml_files(ctx.namespace, ctx.expose_services_file)


def expose_istiod(ctx: DeploymentContext, cluster: Cluster) -> None:
    """Expose istiod to remote clusters through the east-west gateway."""
    console.print(f"[yellow]\u2139\ufe0f  Exposing istiod via eastwestgateway in {cluster.name}[/yellow]")
    cluster.apply_yaml_files(ctx.namespace, ctx.expose_istiod_file)
