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


"""Generation and persistence of the east-west gateway operator config."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from pathlib import Path

from eastwest_manager import logger
from eastwest_manager.config import ClusterTarget
from eastwest_manager.constants import (
    ENV_CLUSTER,
    ENV_MESH,
    ENV_NETWORK,
    ENV_SINGLE_CLUSTER,
    GATEWAY_CONFIG_FILENAME,
)
from eastwest_manager.errors import GenerationError, PersistenceError


def gateway_env(
    target: ClusterTarget,
    mesh_id: str,
    multicluster: bool,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Build the generator script environment for a cluster.

    The caller's environment is inherited; ``SINGLE_CLUSTER=1`` is set only
    for single-cluster runs and stripped otherwise.

    Args:
        target: Cluster the gateway is generated for.
        mesh_id: Mesh identifier shared by all clusters.
        multicluster: Whether the environment spans more than one cluster.
        base_env: Environment to inherit, or None for ``os.environ``.

    Returns:
        Complete environment for the generator subprocess.
    """
    env = dict(os.environ if base_env is None else base_env)
    env.update({
        ENV_CLUSTER: target.name,
        ENV_NETWORK: target.network,
        ENV_MESH: mesh_id,
    })
    if multicluster:
        env.pop(ENV_SINGLE_CLUSTER, None)
    else:
        env[ENV_SINGLE_CLUSTER] = "1"
    return env


def generate_gateway_config(
    script: Path,
    target: ClusterTarget,
    mesh_id: str,
    multicluster: bool,
) -> bytes:
    """Run the generator script and capture the operator config it prints.

    Args:
        script: Path to ``gen-eastwest-gateway.sh``.
        target: Cluster the gateway is generated for.
        mesh_id: Mesh identifier shared by all clusters.
        multicluster: Whether the environment spans more than one cluster.

    Returns:
        Combined stdout/stderr of the script.

    Raises:
        GenerationError: If the script cannot be started or exits nonzero.
    """
    env = gateway_env(target, mesh_id, multicluster)
    try:
        result = subprocess.run(
            [str(script)],
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
        )
    except OSError as err:
        raise GenerationError(
            f"failed generating eastwestgateway operator yaml: {err}", cluster=target.name
        ) from err

    if result.returncode != 0:
        output = result.stdout.decode(errors="replace").strip()
        raise GenerationError(
            f"failed generating eastwestgateway operator yaml: exit status {result.returncode}: {output}",
            cluster=target.name,
        )
    return result.stdout


def gateway_config_path(workdir: Path, cluster_name: str) -> Path:
    return Path(workdir) / GATEWAY_CONFIG_FILENAME.format(cluster=cluster_name)


def persist_gateway_config(workdir: Path, cluster_name: str, config: bytes) -> Path:
    """Write the operator config where istioctl will read it.

    An existing file from an earlier attempt is overwritten.

    Args:
        workdir: Working directory of the run.
        cluster_name: Cluster the config was generated for.
        config: Operator config produced by the generator script.

    Returns:
        Path of the written file.

    Raises:
        PersistenceError: If the directory or file cannot be written.
    """
    path = gateway_config_path(workdir, cluster_name)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(config)
    except OSError as err:
        raise PersistenceError(f"failed writing {path}: {err}", cluster=cluster_name) from err
    logger.debug("Wrote eastwestgateway operator config for %s to %s", cluster_name, path)
    return path
