"""Service lifecycle commands: start, stop, restart, status, logs, health, ..."""

import json
import logging
import sys
from typing import TYPE_CHECKING

from memdock import manifest
from memdock.cli.commands.helpers import ask_raw
from memdock.orchestrator import MCP_ENTRY_NAME, SCOPE_USER, assistant_paths
from memdock.service import OUTCOME_ABORTED, OUTCOME_NOOP, HealthResult, ServiceController
from memdock.settings import MCP_NAMESPACE, read_entry

if TYPE_CHECKING:
    from memdock.config import MemdockSettings

logger = logging.getLogger(__name__)


def _controller(settings: "MemdockSettings") -> ServiceController:
    return ServiceController.from_settings(settings)


def _print_access_points(settings: "MemdockSettings") -> None:
    base = settings.service.base_url
    print("Access Points:")
    print(f"  - Dashboard:  {base}/")
    print(f"  - MCP API:    {settings.service.mcp_url}")
    print(f"  - API Docs:   {base}/api/docs")
    print(f"  - Health:     {settings.service.health_url}")


def _print_registration(settings: "MemdockSettings") -> None:
    settings_path, _ = assistant_paths(SCOPE_USER)
    entry = read_entry(settings_path, MCP_NAMESPACE, MCP_ENTRY_NAME)
    url = entry.get("url") if isinstance(entry, dict) else None
    if url is None:
        print("ℹ️  Not registered with Claude Code (run: memdock install-claude)")
    elif url == settings.service.mcp_url:
        print(f"✓ Registered with Claude Code: {url}")
    else:
        print(f"⚠️  Claude Code points at {url}, expected {settings.service.mcp_url}")
        print("   Re-register with: memdock install-claude")


def _print_health_payload(health: HealthResult) -> None:
    if health.payload is None:
        return
    if isinstance(health.payload, (dict, list)):
        print(json.dumps(health.payload, indent=2))
    else:
        print(health.payload)


def cmd_start(args, settings: "MemdockSettings"):
    """Start the service (detached) and wait briefly for it to become healthy."""
    controller = _controller(settings)
    print("ℹ️  Starting MCP Memory Service...")
    result = controller.start()
    if result.outcome == OUTCOME_NOOP:
        print("⚠️  Service is already running")
        print()
        cmd_status(args, settings, controller=controller)
        return

    print("✓ Service started")
    print()
    if result.health and result.health.healthy:
        print("✓ Service is healthy!")
        print()
        _print_access_points(settings)
        print()
        print("View logs: memdock logs")
    else:
        print("⚠️  Service started but health check failed")
        print("   Check logs: memdock logs")


def cmd_stop(args, settings: "MemdockSettings"):
    controller = _controller(settings)
    result = controller.stop()
    if result.outcome == OUTCOME_NOOP:
        print("⚠️  Service is not running")
        return
    print("✓ Service stopped")


def cmd_restart(args, settings: "MemdockSettings"):
    controller = _controller(settings)
    print("ℹ️  Restarting MCP Memory Service...")
    result = controller.restart()
    print("✓ Service restarted")
    if result.health and result.health.healthy:
        print("✓ Service is healthy!")
    else:
        print("⚠️  Health check failed after restart")
        print("   Check logs: memdock logs")


def cmd_status(args, settings: "MemdockSettings", controller: ServiceController = None):
    """Show container state, uptime, health, resource usage and the Claude Code registration."""
    controller = controller or _controller(settings)
    status = controller.status()

    print("MCP Memory Service - Status")
    print("=" * 40)
    if not status.running:
        print(f"⚠️  Container is not running ({status.state})")
        print()
        print("Start the service with: memdock start")
        return

    print("✓ Container is running")
    if status.uptime:
        print(f"  Uptime: {status.uptime}")

    if status.health and status.health.healthy:
        print("✓ Service is healthy")
        if status.health.payload is not None:
            print()
            print("Health Details:")
            _print_health_payload(status.health)
    else:
        error = status.health.error if status.health else "no response"
        print(f"❌ Service health check failed ({error})")

    if status.resources:
        print()
        print("Resource Usage:")
        print(f"  {status.resources}")
    print()
    _print_access_points(settings)
    print()
    _print_registration(settings)


def cmd_health(args, settings: "MemdockSettings"):
    """Single health request. Exits 1 when unhealthy or not running."""
    controller = _controller(settings)
    print("Health Check")
    print("=" * 40)
    health = controller.health_check()
    if not health.healthy:
        print(f"❌ Health check failed ({health.error})")
        sys.exit(1)
    print("✓ Service is healthy")
    print()
    _print_health_payload(health)


def cmd_logs(args, settings: "MemdockSettings"):
    controller = _controller(settings)
    follow = getattr(args, "command", "logs") == "logs"
    if follow:
        print("ℹ️  Showing logs (Ctrl+C to exit)...")
    else:
        print("ℹ️  Last 100 lines of logs:")
    print()
    returncode = controller.logs(follow=follow)
    if returncode != 0:
        sys.exit(returncode)


def cmd_shell(args, settings: "MemdockSettings"):
    controller = _controller(settings)
    print("ℹ️  Opening shell in container (type 'exit' to leave)...")
    sys.exit(controller.shell())


def cmd_ps(args, settings: "MemdockSettings"):
    returncode = _controller(settings).ps()
    if returncode != 0:
        sys.exit(returncode)


def cmd_stats(args, settings: "MemdockSettings"):
    controller = _controller(settings)
    print("ℹ️  Resource usage (Ctrl+C to exit)...")
    print()
    returncode = controller.stats()
    if returncode != 0:
        sys.exit(returncode)


def cmd_version(args, settings: "MemdockSettings"):
    """Print the manifest of the last build."""
    print("Repository Version & Manifest")
    print("=" * 40)
    data = manifest.read(settings.manifest_path)
    if data is None:
        print("❌ Manifest file not found")
        print()
        print("ℹ️  Run memdock build to generate the manifest")
        sys.exit(1)
    print(json.dumps(data, indent=2))


def cmd_cleanup(args, settings: "MemdockSettings"):
    """Remove the container, its volumes and the database files after typing 'yes'."""
    controller = _controller(settings)
    target = controller.clearable_data_directory()
    if target is not None:
        print(f"⚠️  This will remove the container and delete the database in {target}!")
        print("   Other files in that directory are left alone.")
    else:
        print("⚠️  This will remove the container and its volumes!")
        if controller.data_directory is not None:
            print(f"   {controller.data_directory} is a protected directory and is not touched.")
    result = controller.cleanup(ask_raw)
    print()
    if result.outcome == OUTCOME_ABORTED:
        print("ℹ️  Cleanup cancelled")
        return
    print("✓ Cleanup complete")
    print()
    print("ℹ️  To start fresh, run: memdock build && memdock start")
