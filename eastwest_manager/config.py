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


"""Configuration classes, cluster targets, and config resolution/display."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from eastwest_manager import console
from eastwest_manager.constants import (
    COMPONENT_DEPLOY_DELAY_SECONDS,
    COMPONENT_DEPLOY_TIMEOUT_SECONDS,
    DEFAULT_ISTIOCTL,
    DEFAULT_MESH_ID,
    DEFAULT_PULL_POLICY,
    DEFAULT_SYSTEM_NAMESPACE,
    DEFAULT_WORKDIR,
    PULL_POLICIES,
    REL_EXPOSE_ISTIOD,
    REL_EXPOSE_SERVICES,
    REL_GEN_GATEWAY_SCRIPT,
    REL_MANIFESTS_DIR,
)
from eastwest_manager.errors import ConfigError


# ============================================================================
# Configuration classes
# ============================================================================

class ImageSettings(BaseSettings):
    """Container image settings, auto-loaded from EASTWEST_* env vars.

    Attributes:
        hub: Image registry/hub the gateway images are pulled from.
        tag: Image tag of the gateway images.
        pull_policy: Kubernetes image pull policy for the gateway pods.
    """

    model_config = SettingsConfigDict(env_prefix="EASTWEST_", extra="ignore")

    hub: str = ""
    tag: str = ""
    pull_policy: str = Field(default=DEFAULT_PULL_POLICY, pattern=r"^(Always|IfNotPresent|Never)$")


class DeploymentSettings(BaseSettings):
    """Deployment settings, auto-loaded from EASTWEST_* env vars.

    Attributes:
        istio_src: Root of the Istio source tree (samples and manifests).
        workdir: Directory where generated operator configs are written.
        system_namespace: Namespace the gateway is installed into.
        mesh_id: Mesh identifier shared by all clusters of the run.
        multicluster: Whether the environment spans more than one cluster.
        istioctl: istioctl binary used to render manifests.
        ready_timeout: Seconds to wait for a running gateway pod.
        ready_interval: Seconds between readiness polls.
    """

    model_config = SettingsConfigDict(env_prefix="EASTWEST_", extra="ignore")

    istio_src: Path = Path(".")
    workdir: Path = Path(DEFAULT_WORKDIR)
    system_namespace: str = DEFAULT_SYSTEM_NAMESPACE
    mesh_id: str = DEFAULT_MESH_ID
    multicluster: bool = False
    istioctl: str = DEFAULT_ISTIOCTL
    ready_timeout: float = Field(default=COMPONENT_DEPLOY_TIMEOUT_SECONDS, gt=0)
    ready_interval: float = Field(default=COMPONENT_DEPLOY_DELAY_SECONDS, gt=0)


# ============================================================================
# Run-scoped values
# ============================================================================

@dataclass(frozen=True)
class ClusterTarget:
    """A cluster the east-west gateway is deployed to.

    Attributes:
        name: Cluster name, also used in the generated config file name.
        network: Network the cluster belongs to.
        context: kubeconfig context used to reach the cluster, or None.
        kubeconfig: kubeconfig file used to reach the cluster, or None.
        primary: Whether the cluster hosts a control plane exposed to remotes.
    """

    name: str
    network: str
    context: str | None = None
    kubeconfig: Path | None = None
    primary: bool = False


@dataclass(frozen=True)
class DeploymentContext:
    """Settings shared by every deployment call of a run.

    Attributes:
        workdir: Directory where generated operator configs are written.
        namespace: Namespace the gateway is installed into.
        image: Resolved image settings.
        mesh_id: Mesh identifier shared by all clusters.
        multicluster: Whether the environment spans more than one cluster.
        istio_src: Root of the Istio source tree.
        istioctl: istioctl binary used to render manifests.
        ready_timeout: Seconds to wait for a running gateway pod.
        ready_interval: Seconds between readiness polls.
    """

    workdir: Path
    namespace: str
    image: ImageSettings
    mesh_id: str
    multicluster: bool
    istio_src: Path
    istioctl: str = DEFAULT_ISTIOCTL
    ready_timeout: float = COMPONENT_DEPLOY_TIMEOUT_SECONDS
    ready_interval: float = COMPONENT_DEPLOY_DELAY_SECONDS

    @property
    def gen_gateway_script(self) -> Path:
        return self.istio_src / REL_GEN_GATEWAY_SCRIPT

    @property
    def manifests_dir(self) -> Path:
        return self.istio_src / REL_MANIFESTS_DIR

    @property
    def expose_services_file(self) -> Path:
        return self.istio_src / REL_EXPOSE_SERVICES

    @property
    def expose_istiod_file(self) -> Path:
        return self.istio_src / REL_EXPOSE_ISTIOD


# ============================================================================
# Config resolution
# ============================================================================

def resolve_image_settings(
    hub: str | None = None,
    tag: str | None = None,
    pull_policy: str | None = None,
) -> ImageSettings:
    """Merge CLI overrides with EASTWEST_* env vars and validate the result.

    Args:
        hub: CLI override for the image hub, or None.
        tag: CLI override for the image tag, or None.
        pull_policy: CLI override for the image pull policy, or None.

    Returns:
        Image settings with a non-empty hub and tag.

    Raises:
        ConfigError: If hub or tag is unset, or the pull policy is invalid.
    """
    try:
        image = ImageSettings()
    except ValidationError as err:
        raise ConfigError(f"invalid image settings: {err}") from err

    overrides = {
        key: value
        for key, value in (("hub", hub), ("tag", tag), ("pull_policy", pull_policy))
        if value is not None
    }
    if overrides:
        image = image.model_copy(update=overrides)

    if not image.hub or not image.tag:
        raise ConfigError("image hub and tag must be set (--hub/--tag or EASTWEST_HUB/EASTWEST_TAG)")
    if image.pull_policy not in PULL_POLICIES:
        raise ConfigError(
            f"invalid image pull policy {image.pull_policy!r}, expected one of {', '.join(PULL_POLICIES)}"
        )
    return image


def resolve_context(
    image: ImageSettings | None = None,
    *,
    workdir: Path | None = None,
    namespace: str | None = None,
    mesh_id: str | None = None,
    multicluster: bool | None = None,
    istio_src: Path | None = None,
) -> DeploymentContext:
    """Build the run's deployment context.

    Resolution priority: CLI arguments > EASTWEST_* environment variables > defaults.

    Args:
        image: Resolved image settings, or None when no images are rendered.
        workdir: CLI override for the working directory, or None.
        namespace: CLI override for the system namespace, or None.
        mesh_id: CLI override for the mesh identifier, or None.
        multicluster: CLI override for the multicluster flag, or None.
        istio_src: CLI override for the Istio source root, or None.

    Returns:
        The deployment context for this run.

    Raises:
        ConfigError: If the environment holds invalid deployment settings.
    """
    try:
        settings = DeploymentSettings()
    except ValidationError as err:
        raise ConfigError(f"invalid deployment settings: {err}") from err

    overrides: dict = {}
    if workdir is not None:
        overrides["workdir"] = workdir
    if namespace is not None:
        overrides["system_namespace"] = namespace
    if mesh_id is not None:
        overrides["mesh_id"] = mesh_id
    if multicluster is not None:
        overrides["multicluster"] = multicluster
    if istio_src is not None:
        overrides["istio_src"] = istio_src
    if overrides:
        settings = settings.model_copy(update=overrides)

    return DeploymentContext(
        workdir=settings.workdir,
        namespace=settings.system_namespace,
        image=image if image is not None else ImageSettings.model_construct(),
        mesh_id=settings.mesh_id,
        multicluster=settings.multicluster,
        istio_src=settings.istio_src,
        istioctl=settings.istioctl,
        ready_timeout=settings.ready_timeout,
        ready_interval=settings.ready_interval,
    )


def parse_cluster_spec(spec: str) -> ClusterTarget:
    """Parse a ``name:network[:context]`` cluster spec.

    A trailing ``*`` on the name marks the cluster as primary.

    Args:
        spec: Cluster spec string (e.g. ``west*:network-2:kind-west``).

    Returns:
        The parsed cluster target.

    Raises:
        ConfigError: If the spec has the wrong number of fields or empty fields.
    """
    parts = spec.split(":")
    if len(parts) not in (2, 3) or not all(parts[:2]):
        raise ConfigError(f"invalid cluster spec {spec!r}, expected name:network[:context]")
    name, network = parts[0], parts[1]
    context = parts[2] if len(parts) == 3 and parts[2] else None
    primary = name.endswith("*")
    if primary:
        name = name[:-1]
        if not name:
            raise ConfigError(f"invalid cluster spec {spec!r}, cluster name is empty")
    return ClusterTarget(name=name, network=network, context=context, primary=primary)


# ============================================================================
# Display
# ============================================================================

def display_config(ctx: DeploymentContext, targets: list[ClusterTarget]) -> None:
    """Print the resolved configuration.

    Args:
        ctx: Deployment context for the run.
        targets: Clusters the gateway is deployed to.
    """
    console.print(Panel.fit("Configuration", style="bold blue"))
    console.print("[yellow]Deployment:[/yellow]")
    console.print(f"  istio_src       : {ctx.istio_src}")
    console.print(f"  workdir         : {ctx.workdir}")
    console.print(f"  namespace       : {ctx.namespace}")
    console.print(f"  mesh_id         : {ctx.mesh_id}")
    console.print(f"  multicluster    : {ctx.multicluster}")
    console.print(f"  ready_timeout   : {ctx.ready_timeout}s (every {ctx.ready_interval}s)")
    console.print("[yellow]Images:[/yellow]")
    console.print(f"  hub             : {ctx.image.hub}")
    console.print(f"  tag             : {ctx.image.tag}")
    console.print(f"  pull_policy     : {ctx.image.pull_policy}")
    console.print("[yellow]Clusters:[/yellow]")
    for target in targets:
        role = " (primary)" if target.primary else ""
        context = target.context or "(current context)"
        console.print(f"  {target.name:<16}: network={target.network} context={context}{role}")
