"""Config command for memdock CLI - show or change the stored data directory."""

from pathlib import Path
from typing import TYPE_CHECKING

from memdock.cli.commands.helpers import print_json
from memdock.config import Configuration, ensure_data_directory

if TYPE_CHECKING:
    from memdock.config import MemdockSettings


def cmd_config(args, settings: "MemdockSettings"):
    store = settings.config_store
    action = getattr(args, "config_action", None) or "show"

    if action == "set":
        config = store.save(Configuration(data_directory=Path(args.data_dir)))
        ensure_data_directory(config)
        print(f"✓ Data directory set to {config.data_directory}")
        print("  Run memdock build to regenerate the compose file")
        return

    config = store.load()
    print_json(
        {
            "home": str(settings.home),
            "config_file": str(store.path),
            "data_directory": str(config.data_directory) if config else None,
            "repo_url": settings.repo_url,
            "repo_branch": settings.repo_branch,
            "image": settings.image,
            "container": settings.container,
            "service": settings.service.to_container_env(),
        }
    )
