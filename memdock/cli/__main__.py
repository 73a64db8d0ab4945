"""
memdock CLI - build, run and wire up the MCP memory service container.

Usage:
    memdock build [--yes] [--no-update] [--integrate] [--scope SCOPE] [--hooks]
    memdock install-claude [--scope SCOPE] [--hooks] [--yes]
    memdock config [show | set DATA_DIR]
    memdock start | stop | restart | status | health
    memdock logs | logs-tail | shell | ps | stats
    memdock version
    memdock cleanup
"""

import argparse
import logging
import sys

from memdock import __version__
from memdock.cli.commands import (
    cmd_build,
    cmd_cleanup,
    cmd_config,
    cmd_health,
    cmd_install_claude,
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
from memdock.config import MemdockSettings
from memdock.errors import MemdockError, NotRunningError
from memdock.utils import get_memdock_home

logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

COMMANDS = {
    "build": cmd_build,
    "install-claude": cmd_install_claude,
    "config": cmd_config,
    "start": cmd_start,
    "stop": cmd_stop,
    "restart": cmd_restart,
    "status": cmd_status,
    "logs": cmd_logs,
    "logs-tail": cmd_logs,
    "health": cmd_health,
    "shell": cmd_shell,
    "ps": cmd_ps,
    "stats": cmd_stats,
    "version": cmd_version,
    "cleanup": cmd_cleanup,
}


def _add_scope(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--scope",
        choices=["user", "project"],
        default="user",
        help="user: ~/.claude (all projects); project: ./.claude",
    )
    p.add_argument(
        "--hooks", action="store_true", help="Also install the upstream memory trigger hooks"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memdock",
        description="Build, run and manage the MCP memory service container",
    )
    parser.add_argument("--home", help="Workspace directory (default: $MEMDOCK_HOME or ~/.memdock)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"memdock {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    # build
    p_build = subparsers.add_parser("build", help="Clone/update source, configure and build the image")
    p_build.add_argument("--yes", "-y", action="store_true", help="Accept all defaults")
    p_build.add_argument(
        "--no-update", dest="no_update", action="store_true", help="Keep the existing checkout"
    )
    p_build.add_argument(
        "--integrate", action="store_true", help="Start the service and register it with Claude Code"
    )
    _add_scope(p_build)

    # install-claude
    p_install = subparsers.add_parser("install-claude", help="Register the service with Claude Code")
    p_install.add_argument("--yes", "-y", action="store_true", help="Answer yes to every question")
    _add_scope(p_install)

    # config
    p_config = subparsers.add_parser("config", help="Show or change configuration")
    config_sub = p_config.add_subparsers(dest="config_action")
    config_sub.add_parser("show", help="Show current configuration")
    config_set = config_sub.add_parser("set", help="Set the data directory")
    config_set.add_argument("data_dir", help="Host directory for the service's database")

    # lifecycle
    subparsers.add_parser("start", help="Start the service (detached mode)")
    subparsers.add_parser("stop", help="Stop the service")
    subparsers.add_parser("restart", help="Restart the service")
    subparsers.add_parser("status", help="Show service status")
    subparsers.add_parser("logs", help="View logs (follow mode)")
    subparsers.add_parser("logs-tail", help="View last 100 lines of logs")
    subparsers.add_parser("health", help="Check service health")
    subparsers.add_parser("shell", help="Open shell in container")
    subparsers.add_parser("ps", help="Show container processes")
    subparsers.add_parser("stats", help="Show resource usage")
    subparsers.add_parser("version", help="Show repository version and manifest")
    subparsers.add_parser("cleanup", help="Remove container and volumes (DELETES DATA!)")
    subparsers.add_parser("help", help="Show this help message")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command in (None, "help"):
        parser.print_help()
        return

    try:
        settings = MemdockSettings.from_env(home=get_memdock_home(args.home))
    except MemdockError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

    try:
        COMMANDS[args.command](args, settings)
    except NotRunningError as e:
        print(f"❌ Error: {e}")
        print("   Start it with: memdock start")
        sys.exit(1)
    except MemdockError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nAborted.")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Command failed: {e}", exc_info=args.debug)
        sys.exit(1)


if __name__ == "__main__":
    main()
