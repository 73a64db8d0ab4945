"""Tests for memdock.assets: Dockerfile, entrypoint and compose rendering."""

import os

import yaml

from memdock.assets import DOCKERIGNORE_ENTRIES, build_compose, get_templates_dir, render_assets
from memdock.config import Configuration, MemdockSettings, ServiceSettings


class TestTemplates:
    def test_shipped_templates_exist(self):
        templates = get_templates_dir()
        assert (templates / "Dockerfile").is_file()
        assert (templates / "docker-entrypoint.sh").is_file()

    def test_dockerfile_declares_healthcheck_and_volume(self):
        text = (get_templates_dir() / "Dockerfile").read_text()
        assert "HEALTHCHECK" in text
        assert "/app/data" in text


class TestBuildCompose:
    def test_service_definition(self, settings, config):
        service = build_compose(settings, config)["services"]["memory"]

        assert service["image"] == "memory-docker:latest"
        assert service["container_name"] == "mcp-memory-service"
        assert service["ports"] == ["8000:8000"]
        assert service["volumes"] == [f"{config.data_directory}:/app/data"]
        assert service["restart"] == "unless-stopped"
        assert service["environment"]["MCP_HTTP_PORT"] == "8000"

    def test_custom_port(self, home, config):
        settings = MemdockSettings(home=home, service=ServiceSettings(http_port=9100))
        service = build_compose(settings, config)["services"]["memory"]
        assert service["ports"] == ["9100:9100"]


class TestRenderAssets:
    def test_writes_all_files(self, settings, config):
        paths = render_assets(settings, config)

        assert paths["dockerfile"] == settings.home / "Dockerfile"
        assert paths["entrypoint"].read_text().startswith("#!")
        assert os.access(paths["entrypoint"], os.X_OK)

        with open(paths["compose"]) as f:
            compose = yaml.safe_load(f)
        assert compose == build_compose(settings, config)

    def test_rerender_is_identical(self, settings, config):
        paths = render_assets(settings, config)
        first = paths["compose"].read_bytes()
        render_assets(settings, config)
        assert paths["compose"].read_bytes() == first


def _ignored(paths):
    lines = paths["dockerignore"].read_text().splitlines()
    return [line for line in lines if line and not line.startswith("#")]


class TestDockerignore:
    def test_build_context_excludes_workspace_state(self, settings, config):
        paths = render_assets(settings, config)

        assert paths["dockerignore"] == settings.home / ".dockerignore"
        ignored = _ignored(paths)
        for entry in ("data", "config.json", "manifest.json", ".clone-*"):
            assert entry in ignored
        # the checkout itself is what the image is built from
        assert "mcp-memory-service" not in ignored

    def test_custom_data_directory_under_home(self, settings):
        config = Configuration(data_directory=settings.home / "state" / "db")
        assert "state/db" in _ignored(render_assets(settings, config))

    def test_data_directory_outside_home_not_listed(self, settings, config):
        ignored = _ignored(render_assets(settings, config))
        assert not any(str(config.data_directory) in entry for entry in ignored)
        assert ignored == list(DOCKERIGNORE_ENTRIES)
