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


"""Paths, labels, and defaults for east-west gateway provisioning."""

from __future__ import annotations

from pathlib import Path

# -- Istio source layout (relative to the Istio source root) --
REL_MC_SAMPLES = Path("samples") / "multicluster"
REL_GEN_GATEWAY_SCRIPT = REL_MC_SAMPLES / "gen-eastwest-gateway.sh"
REL_EXPOSE_SERVICES = REL_MC_SAMPLES / "expose-services.yaml"
REL_EXPOSE_ISTIOD = REL_MC_SAMPLES / "expose-istiod.yaml"
REL_MANIFESTS_DIR = Path("manifests")

# -- Persisted operator config --
GATEWAY_CONFIG_FILENAME = "eastwest-{cluster}.yaml"

# -- Generator script environment --
ENV_CLUSTER = "CLUSTER"
ENV_NETWORK = "NETWORK"
ENV_MESH = "MESH"
ENV_SINGLE_CLUSTER = "SINGLE_CLUSTER"

# -- Gateway identity --
EASTWEST_INGRESS_ISTIO_LABEL = "eastwestgateway"
EASTWEST_INGRESS_SERVICE_NAME = "istio-eastwestgateway"
LABEL_ISTIO = "istio"
EASTWEST_SELECTOR = f"{LABEL_ISTIO}={EASTWEST_INGRESS_ISTIO_LABEL}"

# -- Pod phases --
POD_PHASE_RUNNING = "Running"

# -- istioctl --
ISTIOCTL_SET_HUB = "hub"
ISTIOCTL_SET_TAG = "tag"
ISTIOCTL_SET_PULL_POLICY = "values.global.imagePullPolicy"
PULL_POLICIES = ("Always", "IfNotPresent", "Never")

# -- Deployment defaults --
DEFAULT_SYSTEM_NAMESPACE = "istio-system"
DEFAULT_MESH_ID = "testmesh0"
DEFAULT_ISTIOCTL = "istioctl"
DEFAULT_PULL_POLICY = "IfNotPresent"
DEFAULT_WORKDIR = "/tmp/eastwest"

# -- Readiness polling --
COMPONENT_DEPLOY_TIMEOUT_SECONDS = 60.0
COMPONENT_DEPLOY_DELAY_SECONDS = 0.2

# -- kubectl --
KUBECTL_LIST_TIMEOUT_SECONDS = 30
