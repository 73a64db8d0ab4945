"""
Pytest fixtures and test configuration for memdock tests.
"""

import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from memdock.config import Configuration, MemdockSettings, ServiceSettings
from memdock.runtime import STATE_ABSENT, DockerRuntime
from memdock.service import ServiceController


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path_factory):
    """Keep tests away from the real home directory and MEMDOCK_* settings."""
    import os

    for key in list(os.environ):
        if key.startswith("MEMDOCK_") or key.startswith("MCP_"):
            monkeypatch.delenv(key, raising=False)
    fake_home = tmp_path_factory.mktemp("userhome")
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: fake_home))
    return fake_home


@pytest.fixture
def home(tmp_path):
    path = tmp_path / "memdock-home"
    path.mkdir()
    return path


@pytest.fixture
def settings(home):
    return MemdockSettings(home=home, service=ServiceSettings())


@pytest.fixture
def config(tmp_path):
    return Configuration(data_directory=tmp_path / "data")


@pytest.fixture
def runtime():
    """A DockerRuntime double: available, container absent, image present."""
    rt = MagicMock(spec=DockerRuntime)
    rt.is_available.return_value = True
    rt.container_state.return_value = STATE_ABSENT
    rt.image_exists.return_value = True
    rt.container_uptime.return_value = "Up 5 minutes"
    rt.container_resources.return_value = "CPU: 0.5%  Memory: 200MiB / 2GiB"
    rt.compose_stream.return_value = 0
    rt.stream.return_value = 0
    return rt


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps(clock):
    return clock.sleeps


@pytest.fixture
def controller(runtime, clock):
    return ServiceController(
        runtime,
        container="mcp-memory-service",
        image="memory-docker:latest",
        health_url="http://localhost:8000/api/health",
        sleep=clock.sleep,
        clock=clock,
    )


def completed(returncode=0, stdout="", stderr=""):
    """Build a subprocess.CompletedProcess for mocking subprocess.run."""
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def make_response(status_code=200, json_data=None, text=""):
    """Create a mock streamed HTTP response, usable as ``with httpx.stream(...)``."""
    resp = MagicMock()
    resp.status_code = status_code
    body = json.dumps(json_data) if json_data is not None else text
    resp.iter_bytes.return_value = [body.encode("utf-8")] if body else []
    resp.__enter__.return_value = resp
    resp.__exit__.return_value = False
    return resp
