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


"""Expose subcommands (services, istiod)."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape

from eastwest_manager import console
from eastwest_manager.config import parse_cluster_spec, resolve_context
from eastwest_manager.errors import EastWestError
from eastwest_manager.gateway import expose_istiod, expose_services
from eastwest_manager.kube import KubeCluster

app = typer.Typer(help="Expose workloads through an installed east-west gateway.")


def _expose(cluster: str, istio_src: Path | None, namespace: str | None, istiod: bool) -> None:
    try:
        target = parse_cluster_spec(cluster)
        ctx = resolve_context(namespace=namespace, istio_src=istio_src)
        access = KubeCluster.for_target(target)
        if istiod:
            expose_istiod(ctx, access)
        else:
            expose_services(ctx, access)
    except EastWestError as err:
        console.print(f"[red]\u274c {escape(str(err))}[/red]")
        raise typer.Exit(1) from err
    console.print(f"[green]\u2705 Applied to {target.name}[/green]")


@app.command()
def services(
    cluster: str = typer.Option(..., "--cluster", "-c", help="Cluster as name:network[:context]"),
    istio_src: Path | None = typer.Option(None, "--istio-src", help="Istio source root"),
    namespace: str | None = typer.Option(None, "--namespace", "-n", help="Istio system namespace"),
) -> None:
    """Expose cross-network services via the east-west gateway."""
    _expose(cluster, istio_src, namespace, istiod=False)


@app.command()
def istiod(
    cluster: str = typer.Option(..., "--cluster", "-c", help="Cluster as name:network[:context]"),
    istio_src: Path | None = typer.Option(None, "--istio-src", help="Istio source root"),
    namespace: str | None = typer.Option(None, "--namespace", "-n", help="Istio system namespace"),
) -> None:
    """Expose istiod to remote clusters via the east-west gateway."""
    _expose(cluster, istio_src, namespace, istiod=True)
