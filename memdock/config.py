"""Configuration for memdock.

Two kinds of configuration live here:

- ``Configuration``: the operator's persisted choices (data directory), owned
  by ``ConfigStore`` and stored as ``<home>/config.json``.
- ``ServiceSettings`` / ``MemdockSettings``: environment-style settings read
  once at startup and threaded through every component. Service settings are
  passed through to the container untouched.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from memdock.errors import ConfigError
from memdock.utils import atomic_write_json, get_memdock_home, resolve_path

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"

DEFAULT_REPO_URL = "https://github.com/doobidoo/mcp-memory-service.git"
DEFAULT_REPO_BRANCH = "main"
DEFAULT_IMAGE = "memory-docker:latest"
DEFAULT_CONTAINER = "mcp-memory-service"
SOURCE_DIRNAME = "mcp-memory-service"

# Env vars forwarded verbatim to the container when set.
PASSTHROUGH_PREFIX = "MCP_"


@dataclass
class Configuration:
    """Persisted operator configuration."""

    data_directory: Path

    def to_dict(self) -> dict:
        return {"data_directory": str(self.data_directory)}

    @classmethod
    def from_dict(cls, data: dict) -> "Configuration":
        if not isinstance(data, dict) or not data.get("data_directory"):
            raise ConfigError("Configuration is missing 'data_directory'")
        return cls(data_directory=Path(data["data_directory"]))


class ConfigStore:
    """Load and save the configuration record."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @classmethod
    def default(cls, home: Optional[Path] = None) -> "ConfigStore":
        return cls((home or get_memdock_home()) / CONFIG_FILENAME)

    def load(self) -> Optional[Configuration]:
        """Return the stored configuration, or None if none has been saved."""
        if not self.path.exists():
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Configuration file {self.path} is not valid JSON: {e}")
        except OSError as e:
            raise ConfigError(f"Could not read {self.path}: {e}")
        return Configuration.from_dict(data)

    def save(self, config: Configuration) -> Configuration:
        """Resolve the data directory to an absolute path and persist atomically."""
        resolved = Configuration(data_directory=resolve_path(config.data_directory))
        try:
            atomic_write_json(self.path, resolved.to_dict())
        except OSError as e:
            raise ConfigError(f"Could not write {self.path}: {e}")
        logger.debug(f"Saved configuration to {self.path}: {resolved.data_directory}")
        return resolved


def ensure_data_directory(config: Configuration) -> Path:
    """Create the data directory if needed and check it is writable."""
    path = config.data_directory
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(f"Could not create data directory {path}: {e}")
    if not os.access(path, os.W_OK):
        raise ConfigError(f"Data directory {path} is not writable")
    return path


@dataclass
class ServiceSettings:
    """Settings handed to the memory service container as environment variables."""

    storage_backend: str = "sqlite_vec"
    http_host: str = "0.0.0.0"
    http_port: int = 8000
    log_level: str = "INFO"
    http_enabled: bool = True
    extra_env: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServiceSettings":
        env = os.environ if environ is None else environ
        port_raw = env.get("MEMDOCK_HTTP_PORT", "8000")
        try:
            port = int(port_raw)
        except ValueError:
            raise ConfigError(f"MEMDOCK_HTTP_PORT must be an integer, got '{port_raw}'")
        if not 0 < port < 65536:
            raise ConfigError(f"MEMDOCK_HTTP_PORT out of range: {port}")
        return cls(
            storage_backend=env.get("MEMDOCK_STORAGE_BACKEND", "sqlite_vec"),
            http_host=env.get("MEMDOCK_HTTP_HOST", "0.0.0.0"),
            http_port=port,
            log_level=env.get("MEMDOCK_LOG_LEVEL", "INFO").upper(),
            http_enabled=env.get("MEMDOCK_HTTP_ENABLED", "true").lower() != "false",
            extra_env={k: v for k, v in env.items() if k.startswith(PASSTHROUGH_PREFIX)},
        )

    @property
    def base_url(self) -> str:
        return f"http://localhost:{self.http_port}"

    @property
    def health_url(self) -> str:
        return f"{self.base_url}/api/health"

    @property
    def mcp_url(self) -> str:
        return f"{self.base_url}/mcp"

    def to_container_env(self) -> Dict[str, str]:
        env = dict(self.extra_env)
        env.update(
            {
                "MCP_MEMORY_STORAGE_BACKEND": self.storage_backend,
                "MCP_MEMORY_SQLITE_PATH": "/app/data/sqlite_vec.db",
                "MCP_MEMORY_BACKUPS_PATH": "/app/data/backups",
                "MCP_HTTP_ENABLED": "true" if self.http_enabled else "false",
                "MCP_HTTP_HOST": self.http_host,
                "MCP_HTTP_PORT": str(self.http_port),
                "LOG_LEVEL": self.log_level,
            }
        )
        return env


@dataclass
class MemdockSettings:
    """Everything memdock needs to know about where things live."""

    home: Path
    repo_url: str = DEFAULT_REPO_URL
    repo_branch: str = DEFAULT_REPO_BRANCH
    image: str = DEFAULT_IMAGE
    container: str = DEFAULT_CONTAINER
    docker_bin: str = "docker"
    platform: Optional[str] = None
    service: ServiceSettings = field(default_factory=ServiceSettings)

    @classmethod
    def from_env(
        cls, home: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None
    ) -> "MemdockSettings":
        env = os.environ if environ is None else environ
        return cls(
            home=home or get_memdock_home(env.get("MEMDOCK_HOME")),
            repo_url=env.get("MEMDOCK_REPO_URL", DEFAULT_REPO_URL),
            repo_branch=env.get("MEMDOCK_REPO_BRANCH", DEFAULT_REPO_BRANCH),
            image=env.get("MEMDOCK_IMAGE", DEFAULT_IMAGE),
            container=env.get("MEMDOCK_CONTAINER", DEFAULT_CONTAINER),
            docker_bin=env.get("MEMDOCK_DOCKER_BIN", "docker"),
            platform=env.get("MEMDOCK_PLATFORM") or None,
            service=ServiceSettings.from_env(env),
        )

    @property
    def source_dir(self) -> Path:
        return self.home / SOURCE_DIRNAME

    @property
    def manifest_path(self) -> Path:
        return self.home / "manifest.json"

    @property
    def compose_file(self) -> Path:
        return self.home / "docker-compose.yml"

    @property
    def config_store(self) -> ConfigStore:
        return ConfigStore.default(self.home)
