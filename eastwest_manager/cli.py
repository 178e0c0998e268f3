#!/usr/bin/env python3
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


"""
cli.py - CLI for east-west gateway provisioning in multi-cluster mesh tests.

Subcommands:
    setup      Deploy gateways (gateway) or render one without applying (render)
    expose     Apply the fixed exposure manifests (services, istiod)

Environment Variables:
    - EASTWEST_HUB / EASTWEST_TAG (required unless --hub/--tag are given)
    - EASTWEST_PULL_POLICY (default: IfNotPresent)
    - EASTWEST_ISTIO_SRC (default: current directory)
    - EASTWEST_WORKDIR (default: /tmp/eastwest)
    - EASTWEST_SYSTEM_NAMESPACE (default: istio-system)
    - EASTWEST_MESH_ID (default: testmesh0)
    - EASTWEST_READY_TIMEOUT / EASTWEST_READY_INTERVAL (default: 60 / 0.2 seconds)

Examples:
    # Single cluster, one network
    eastwest-manager setup gateway -c west:network-2 --hub docker.io/istio --tag 1.22.0

    # Two clusters on separate networks, west hosts the control plane
    eastwest-manager setup gateway -c 'west*:network-1:kind-west' -c east:network-2:kind-east

    # Show what istioctl renders for a cluster
    eastwest-manager setup render -c west:network-2

For detailed usage information, run: eastwest-manager --help
"""

from __future__ import annotations

import logging
import sys

import typer
from rich.markup import escape

from eastwest_manager import console
from eastwest_manager.commands import expose_cmd, setup_cmd

app = typer.Typer(
    help="East-west gateway provisioning for multi-cluster mesh tests.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log readiness polls and other details"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.add_typer(setup_cmd.app, name="setup")
app.add_typer(expose_cmd.app, name="expose")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {escape(str(e))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
