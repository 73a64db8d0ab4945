"""Setup command for memdock CLI - register the memory service with Claude Code."""

import sys
from typing import TYPE_CHECKING

from memdock.cli.commands.helpers import auto_confirm, auto_prompt
from memdock.orchestrator import (
    SCOPE_PROJECT,
    SCOPE_USER,
    IntegrationReport,
    ProvisioningOrchestrator,
)
from memdock.scaffold import DEFAULT_TEMPLATES

if TYPE_CHECKING:
    from memdock.config import MemdockSettings


def print_integration_summary(report: IntegrationReport) -> None:
    if report.aborted:
        print("ℹ️  Installation cancelled")
        return

    print("=" * 50)
    print("Claude Code Integration Complete")
    print("=" * 50)
    print()
    print("✓ MCP server registered: memory")
    print(f"✓ Slash commands created: {len(report.commands)} commands")
    if report.hooks is not None:
        if report.hooks.installed:
            print("✓ Memory trigger hooks installed")
        else:
            print(f"⚠️  Hooks not installed: {report.hooks.reason}")
        for warning in report.hooks.warnings:
            print(f"⚠️  {warning}")
    print()

    if report.merge is not None:
        for warning in report.merge.warnings:
            print(f"⚠️  {warning}")
        if report.merge.backup_path is not None:
            print(f"ℹ️  Backup saved: {report.merge.backup_path}")
        if not report.merge.changed:
            print("  settings.json already up to date")

    print("Available Commands:")
    for template in DEFAULT_TEMPLATES:
        print(f"  /{template.name:<18} {template.description}")
    print()
    print("Configuration Location:")
    print(f"  Settings: {report.settings_path}")
    print(f"  Commands: {report.commands_dir}")
    print()
    print("Next steps:")
    print("  1. Restart Claude Code (if running)")
    print("  2. Type /memory-status to test the integration")


def cmd_install_claude(args, settings: "MemdockSettings"):
    """Register the running memory service with Claude Code.

    Examples:
        memdock install-claude                    # user-wide (~/.claude)
        memdock install-claude --scope project    # ./.claude in this directory
        memdock install-claude --hooks            # also install trigger hooks
    """
    scope = getattr(args, "scope", None) or SCOPE_USER
    if scope not in (SCOPE_USER, SCOPE_PROJECT):
        print(f"❌ Unknown scope: {scope}")
        print(f"Available: {SCOPE_USER}, {SCOPE_PROJECT}")
        sys.exit(1)

    assume_yes = getattr(args, "yes", False)
    orchestrator = ProvisioningOrchestrator(
        settings,
        confirm=auto_confirm(assume_yes),
        prompt=auto_prompt(assume_yes),
        scope=scope,
    )

    label = "user-wide" if scope == SCOPE_USER else "project-local"
    print(f"MCP Memory Service - Claude Code Setup ({label})")
    print("=" * 50)
    report = orchestrator.integrate(with_hooks=getattr(args, "hooks", False))
    print()
    print_integration_summary(report)
