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


"""Orchestration functions that compose the gateway steps into workflows."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed

from rich.panel import Panel

from eastwest_manager import console
from eastwest_manager.config import ClusterTarget, DeploymentContext
from eastwest_manager.errors import ConfigError
from eastwest_manager.gateway import deploy_eastwest_gateway, expose_istiod, expose_services
from eastwest_manager.kube import Cluster, KubeCluster, require_command
from eastwest_manager.registry import CleanupRegistry

ClusterFactory = Callable[[ClusterTarget], Cluster]

# ============================================================================
# Internal helpers
# ============================================================================


def _check_prerequisites(ctx: DeploymentContext) -> None:
    """Check CLI tools and the gateway generator script.

    Args:
        ctx: Deployment context with the istioctl binary and Istio source root.

    Raises:
        ConfigError: If a tool or the generator script is missing.
    """
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    for cmd in ("kubectl", ctx.istioctl):
        require_command(cmd)
    if not ctx.gen_gateway_script.is_file():
        raise ConfigError(f"gateway generator script not found: {ctx.gen_gateway_script}")
    console.print("[green]\u2705 All required tools are available[/green]")


def _run_parallel(tasks: dict[str, Callable[[], None]]) -> None:
    """Run tasks in parallel, printing each task's output as a clean block.

    Every task runs to completion before the first failure is re-raised.

    Args:
        tasks: Mapping of task name to callable.

    Raises:
        Exception: Re-raises the first exception from any failed task.
    """
    if not tasks:
        return

    def _run_task(name: str, fn: Callable) -> None:
        with console.capture(name):
            fn()

    errors: list[BaseException] = []
    with ThreadPoolExecutor(max_workers=len(tasks)) as executor:
        futures = {executor.submit(_run_task, name, fn): name for name, fn in tasks.items()}
        for future in as_completed(futures):
            exc = future.exception()
            if exc is not None:
                errors.append(exc)

    console.replay(tasks)

    if errors:
        raise errors[0]


def _should_expose_istiod(ctx: DeploymentContext, target: ClusterTarget, expose: bool | None) -> bool:
    if expose is None:
        return ctx.multicluster and target.primary
    return expose and target.primary


# ============================================================================
# Public API
# ============================================================================


def run_eastwest_setup(
    ctx: DeploymentContext,
    targets: list[ClusterTarget],
    registry: CleanupRegistry,
    *,
    expose_cross_network: bool = True,
    expose_control_plane: bool | None = None,
    cluster_factory: ClusterFactory = KubeCluster.for_target,
    check_prerequisites: bool = True,
) -> dict[str, Cluster]:
    """Deploy the east-west gateway on every cluster and expose through it.

    Gateways are deployed concurrently, one task per cluster. Exposure only
    starts once every gateway is ready.

    Args:
        ctx: Deployment context for the run.
        targets: Clusters to deploy to.
        registry: Run-wide cleanup registry.
        expose_cross_network: Whether to apply expose-services on every cluster.
        expose_control_plane: Whether to apply expose-istiod on primary
            clusters; None applies it only in multicluster runs.
        cluster_factory: Builds cluster access for a target.
        check_prerequisites: Whether to check for kubectl, istioctl, and the script.

    Returns:
        Cluster access by cluster name, for use at teardown.

    Raises:
        ConfigError: If no clusters are given, names repeat, or prerequisites are missing.
        EastWestError: If any cluster's deployment or exposure fails.
    """
    if not targets:
        raise ConfigError("at least one cluster is required")
    repeated = [name for name, count in Counter(target.name for target in targets).items() if count > 1]
    if repeated:
        raise ConfigError(f"duplicate cluster names: {', '.join(repeated)}")

    if check_prerequisites:
        _check_prerequisites(ctx)

    clusters = {target.name: cluster_factory(target) for target in targets}

    # Phase 1: Parallel gateway deployment, one task per cluster
    _run_parallel({
        target.name: (lambda t=target: deploy_eastwest_gateway(ctx, t, clusters[t.name], registry))
        for target in targets
    })

    # Phase 2: Sequential exposure through the ready gateways
    for target in targets:
        cluster = clusters[target.name]
        if expose_cross_network:
            expose_services(ctx, cluster)
        if _should_expose_istiod(ctx, target, expose_control_plane):
            expose_istiod(ctx, cluster)

    console.print(f"[green]\u2705 eastwestgateway ready in {len(targets)} cluster(s)[/green]")
    return clusters


def run_teardown(registry: CleanupRegistry, clusters: Mapping[str, Cluster], namespace: str) -> None:
    """Delete every resource registered during the run.

    Args:
        registry: Run-wide cleanup registry; emptied by this call.
        clusters: Cluster access by cluster name.
        namespace: Namespace the resources were applied to.

    Raises:
        ApplyError: If any registered manifest could not be deleted.
    """
    console.print(Panel.fit("Cleaning up eastwestgateway", style="bold blue"))
    count = len(registry)
    registry.teardown(clusters, namespace)
    console.print(f"[green]\u2705 Removed {count} eastwestgateway manifest(s)[/green]")
