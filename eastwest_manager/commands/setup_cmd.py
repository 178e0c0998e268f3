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


"""Setup subcommands (gateway, render)."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer
from rich.markup import escape

from eastwest_manager import console
from eastwest_manager.config import display_config, parse_cluster_spec, resolve_context, resolve_image_settings
from eastwest_manager.errors import ConfigError, EastWestError
from eastwest_manager.gateway import render_eastwest_gateway
from eastwest_manager.kube import KubeCluster
from eastwest_manager.orchestrator import run_eastwest_setup, run_teardown
from eastwest_manager.registry import CleanupRegistry

app = typer.Typer(help="East-west gateway setup workflows.")


def _fail(err: EastWestError) -> NoReturn:
    console.print(f"[red]\u274c {escape(str(err))}[/red]")
    raise typer.Exit(1) from err


@app.command()
def gateway(
    clusters: list[str] = typer.Option(
        ..., "--cluster", "-c", help="Cluster as name:network[:context]; suffix the name with * for a primary"),
    istio_src: Path | None = typer.Option(
        None, "--istio-src", help="Istio source root (overrides EASTWEST_ISTIO_SRC)"),
    workdir: Path | None = typer.Option(
        None, "--workdir", help="Directory for generated operator configs"),
    namespace: str | None = typer.Option(
        None, "--namespace", "-n", help="Istio system namespace"),
    hub: str | None = typer.Option(
        None, "--hub", help="Image hub (overrides EASTWEST_HUB)"),
    tag: str | None = typer.Option(
        None, "--tag", help="Image tag (overrides EASTWEST_TAG)"),
    pull_policy: str | None = typer.Option(
        None, "--pull-policy", help="Image pull policy"),
    mesh: str | None = typer.Option(
        None, "--mesh", help="Mesh identifier"),
    multicluster: bool = typer.Option(
        False, "--multicluster", help="Treat the mesh as multicluster (implied by several --cluster)"),
    skip_expose_services: bool = typer.Option(
        False, "--skip-expose-services", help="Skip exposing services through the gateway"),
    expose_istiod: bool = typer.Option(
        False, "--expose-istiod", help="Expose istiod on primary clusters even in single-cluster runs"),
    teardown: bool = typer.Option(
        False, "--teardown", help="Delete the deployed gateways before exiting"),
) -> None:
    """Deploy the east-west gateway on every cluster and expose through it."""
    registry = CleanupRegistry()
    try:
        targets = [parse_cluster_spec(spec) for spec in clusters]
        if len(targets) > 1:
            multicluster = True
        ctx = resolve_context(
            resolve_image_settings(hub=hub, tag=tag, pull_policy=pull_policy),
            workdir=workdir,
            namespace=namespace,
            mesh_id=mesh,
            multicluster=True if multicluster else None,
            istio_src=istio_src,
        )
    except ConfigError as err:
        _fail(err)

    display_config(ctx, targets)
    access = {target.name: KubeCluster.for_target(target) for target in targets}

    error: EastWestError | None = None
    try:
        run_eastwest_setup(
            ctx,
            targets,
            registry,
            expose_cross_network=not skip_expose_services,
            expose_control_plane=True if expose_istiod else None,
            cluster_factory=lambda target: access[target.name],
        )
    except EastWestError as err:
        error = err

    if teardown:
        try:
            run_teardown(registry, access, ctx.namespace)
        except EastWestError as err:
            error = error or err

    if error is not None:
        _fail(error)


@app.command()
def render(
    cluster: str = typer.Option(
        ..., "--cluster", "-c", help="Cluster as name:network[:context]"),
    istio_src: Path | None = typer.Option(
        None, "--istio-src", help="Istio source root (overrides EASTWEST_ISTIO_SRC)"),
    workdir: Path | None = typer.Option(
        None, "--workdir", help="Directory for generated operator configs"),
    namespace: str | None = typer.Option(
        None, "--namespace", "-n", help="Istio system namespace"),
    hub: str | None = typer.Option(
        None, "--hub", help="Image hub (overrides EASTWEST_HUB)"),
    tag: str | None = typer.Option(
        None, "--tag", help="Image tag (overrides EASTWEST_TAG)"),
    pull_policy: str | None = typer.Option(
        None, "--pull-policy", help="Image pull policy"),
    mesh: str | None = typer.Option(
        None, "--mesh", help="Mesh identifier"),
    multicluster: bool = typer.Option(
        False, "--multicluster", help="Treat the mesh as multicluster"),
) -> None:
    """Generate and render the east-west gateway without applying it."""
    try:
        target = parse_cluster_spec(cluster)
        ctx = resolve_context(
            resolve_image_settings(hub=hub, tag=tag, pull_policy=pull_policy),
            workdir=workdir,
            namespace=namespace,
            mesh_id=mesh,
            multicluster=True if multicluster else None,
            istio_src=istio_src,
        )
        rendered = render_eastwest_gateway(ctx, target)
    except EastWestError as err:
        _fail(err)
    typer.echo(rendered.manifest, nl=False)
