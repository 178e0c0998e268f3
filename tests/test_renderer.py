"""Tests for eastwest_manager.renderer."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from eastwest_manager.errors import RenderError
from eastwest_manager.renderer import RenderSettings, count_resources, render_manifest
from tests.conftest import HUB, RENDERED_MANIFEST, TAG


def _settings(**overrides) -> RenderSettings:
    values = dict(
        namespace="istio-system",
        manifests_dir=Path("/src/istio/manifests"),
        hub="docker.io/istio",
        tag="1.22.0",
        pull_policy="Always",
        config_file=Path("/work/eastwest-west.yaml"),
    )
    values.update(overrides)
    return RenderSettings(**values)


def _completed(stdout: str = "", stderr: str = "", rc: int = 0) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(["istioctl"], rc, stdout=stdout, stderr=stderr)


# ── TestRenderSettings ───────────────────────────────────────────────────


class TestRenderSettings:
    def test_argument_vector(self):
        assert _settings().to_args() == [
            "manifest", "generate",
            "--istioNamespace", "istio-system",
            "--manifests", "/src/istio/manifests",
            "--set", "hub=docker.io/istio",
            "--set", "tag=1.22.0",
            "--set", "values.global.imagePullPolicy=Always",
            "-f", "/work/eastwest-west.yaml",
        ]

    def test_identical_inputs_identical_args(self):
        assert _settings().to_args() == _settings().to_args()

    def test_each_field_changes_args(self):
        base = _settings().to_args()
        for field, value in [
            ("namespace", "other"),
            ("manifests_dir", Path("/elsewhere")),
            ("hub", "quay.io/x"),
            ("tag", "2.0"),
            ("pull_policy", "Never"),
            ("config_file", Path("/work/eastwest-east.yaml")),
        ]:
            assert _settings(**{field: value}).to_args() != base

    def test_from_context(self, ctx):
        settings = RenderSettings.from_context(ctx, Path("/w/eastwest-west.yaml"))
        assert settings.namespace == "istio-system"
        assert settings.manifests_dir == ctx.istio_src / "manifests"
        assert settings.hub == HUB
        assert settings.tag == TAG
        assert settings.pull_policy == "IfNotPresent"


# ── TestCountResources ───────────────────────────────────────────────────


class TestCountResources:
    def test_counts_documents(self):
        assert count_resources(RENDERED_MANIFEST) == 2

    def test_skips_empty_documents(self):
        assert count_resources("---\n---\nkind: A\n---\n") == 1

    def test_invalid_yaml(self):
        with pytest.raises(RenderError):
            count_resources("kind: [unclosed")


# ── TestRenderManifest ───────────────────────────────────────────────────


class TestRenderManifest:
    @patch("eastwest_manager.renderer.subprocess.run")
    def test_success(self, mock_run):
        mock_run.return_value = _completed(stdout=RENDERED_MANIFEST, stderr="warning: x")
        result = render_manifest("istioctl", _settings(), "west")
        assert result.manifest == RENDERED_MANIFEST
        assert result.diagnostics == "warning: x"
        assert mock_run.call_args.args[0] == ["istioctl", *_settings().to_args()]

    @patch("eastwest_manager.renderer.subprocess.run")
    def test_failure_logs_both_streams(self, mock_run, caplog):
        caplog.set_level(logging.ERROR, logger="eastwest_manager")
        mock_run.return_value = _completed(stdout="partial: yaml", stderr="Error: bad overlay", rc=1)
        with pytest.raises(RenderError) as exc_info:
            render_manifest("istioctl", _settings(), "west")
        assert exc_info.value.cluster == "west"
        messages = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
        assert "partial: yaml" in messages
        assert "Error: bad overlay" in messages

    @patch("eastwest_manager.renderer.subprocess.run")
    def test_empty_manifest(self, mock_run):
        mock_run.return_value = _completed(stdout="  \n")
        with pytest.raises(RenderError):
            render_manifest("istioctl", _settings(), "west")

    @patch("eastwest_manager.renderer.subprocess.run")
    def test_istioctl_missing(self, mock_run):
        mock_run.side_effect = FileNotFoundError("istioctl")
        with pytest.raises(RenderError):
            render_manifest("istioctl", _settings(), "west")

    @patch("eastwest_manager.renderer.subprocess.run")
    def test_unparseable_manifest_still_returned(self, mock_run, caplog):
        caplog.set_level(logging.WARNING, logger="eastwest_manager")
        mock_run.return_value = _completed(stdout="kind: [unclosed")
        result = render_manifest("istioctl", _settings(), "west")
        assert result.manifest == "kind: [unclosed"
        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert any("Could not count rendered resources for west" in m for m in warnings)
