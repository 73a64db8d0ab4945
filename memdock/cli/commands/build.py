"""Build command: fetch the upstream source, configure, and build the image."""

from typing import TYPE_CHECKING

from memdock.cli.commands.helpers import auto_confirm, auto_prompt
from memdock.cli.commands.setup import print_integration_summary
from memdock.orchestrator import ProvisioningOrchestrator

if TYPE_CHECKING:
    from memdock.config import MemdockSettings


def cmd_build(args, settings: "MemdockSettings"):
    """Provision the memory service.

    Examples:
        memdock build                      # clone/update, configure, build
        memdock build --yes                # accept every default
        memdock build --no-update          # keep the existing checkout
        memdock build --integrate          # also start and register with Claude Code
    """
    assume_yes = getattr(args, "yes", False)
    update = False if getattr(args, "no_update", False) else (True if assume_yes else None)

    orchestrator = ProvisioningOrchestrator(
        settings,
        confirm=auto_confirm(assume_yes),
        prompt=auto_prompt(assume_yes),
        scope=getattr(args, "scope", "user") or "user",
    )

    print("MCP Memory Service - Build")
    print("=" * 40)
    report = orchestrator.run(
        update=update,
        integrate=getattr(args, "integrate", False),
        with_hooks=getattr(args, "hooks", False),
    )

    print()
    print("=" * 40)
    print("Build Complete")
    print("=" * 40)
    for step in report.steps:
        detail = f" ({step.detail})" if step.detail else ""
        print(f"  {step.name:<12} {step.status}{detail}")
    print()

    if report.integration is not None:
        print_integration_summary(report.integration)
    else:
        print("Next steps:")
        print("  memdock start             # start the service")
        print("  memdock install-claude    # register with Claude Code")
