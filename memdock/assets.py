"""Render the Dockerfile, entrypoint, .dockerignore and compose file into the workspace.

These files are fully regenerable: every build overwrites them.
"""

import logging
import shutil
from pathlib import Path
from typing import Dict

import yaml

from memdock.config import Configuration, MemdockSettings

logger = logging.getLogger(__name__)

SERVICE_NAME = "memory"
CONTAINER_DATA_DIR = "/app/data"

# Workspace state that must never reach the image build context.
DOCKERIGNORE_ENTRIES = (
    "data",
    "config.json",
    "manifest.json",
    "docker-compose.yml",
    ".clone-*",
    "mcp-memory-service/.git",
)


def get_templates_dir() -> Path:
    """Get the templates directory shipped inside the memdock package."""
    return Path(__file__).parent / "templates"


def build_compose(settings: MemdockSettings, config: Configuration) -> Dict:
    port = settings.service.http_port
    return {
        "services": {
            SERVICE_NAME: {
                "image": settings.image,
                "container_name": settings.container,
                "ports": [f"{port}:{port}"],
                "volumes": [f"{config.data_directory}:{CONTAINER_DATA_DIR}"],
                "environment": dict(sorted(settings.service.to_container_env().items())),
                "restart": "unless-stopped",
            }
        }
    }


def build_dockerignore(settings: MemdockSettings, config: Configuration) -> str:
    """Exclude workspace state, and the data directory when it lives under home."""
    entries = list(DOCKERIGNORE_ENTRIES)
    home = settings.home.expanduser().resolve()
    data_dir = Path(config.data_directory).expanduser().resolve()
    if home in data_dir.parents:
        relative = data_dir.relative_to(home).as_posix()
        if relative not in entries:
            entries.append(relative)
    return "# Generated by memdock on every build.\n" + "".join(f"{e}\n" for e in entries)


def render_assets(settings: MemdockSettings, config: Configuration) -> Dict[str, Path]:
    """Write Dockerfile, entrypoint, .dockerignore and compose file into ``settings.home``.

    ``settings.home`` doubles as the image build context, so the .dockerignore
    keeps the database, configuration and staging checkouts out of it.
    """
    home = settings.home
    home.mkdir(parents=True, exist_ok=True)
    templates = get_templates_dir()

    dockerfile = home / "Dockerfile"
    shutil.copyfile(templates / "Dockerfile", dockerfile)

    entrypoint = home / "docker-entrypoint.sh"
    shutil.copyfile(templates / "docker-entrypoint.sh", entrypoint)
    entrypoint.chmod(0o755)

    dockerignore = home / ".dockerignore"
    dockerignore.write_text(build_dockerignore(settings, config), encoding="utf-8")

    compose_file = settings.compose_file
    with open(compose_file, "w", encoding="utf-8") as f:
        yaml.safe_dump(build_compose(settings, config), f, sort_keys=False)

    logger.debug(f"Rendered deployment assets into {home}")
    return {
        "dockerfile": dockerfile,
        "entrypoint": entrypoint,
        "dockerignore": dockerignore,
        "compose": compose_file,
    }
