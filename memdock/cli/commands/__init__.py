"""CLI command modules for memdock.

Each module contains related command handlers dispatched from __main__.py.
"""

from memdock.cli.commands.build import cmd_build
from memdock.cli.commands.config import cmd_config
from memdock.cli.commands.service import (
    cmd_cleanup,
    cmd_health,
    cmd_logs,
    cmd_ps,
    cmd_restart,
    cmd_shell,
    cmd_start,
    cmd_stats,
    cmd_status,
    cmd_stop,
    cmd_version,
)
from memdock.cli.commands.setup import cmd_install_claude

__all__ = [
    "cmd_build",
    "cmd_cleanup",
    "cmd_config",
    "cmd_health",
    "cmd_install_claude",
    "cmd_logs",
    "cmd_ps",
    "cmd_restart",
    "cmd_shell",
    "cmd_start",
    "cmd_stats",
    "cmd_status",
    "cmd_stop",
    "cmd_version",
]
