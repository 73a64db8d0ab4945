"""End-to-end provisioning: fetch, record, configure, build, integrate.

Each step is safe to skip or re-run. Running the whole sequence twice with no
external changes leaves the same observable state as running it once: the
checkout converges, the configuration is only prompted for once, the compose
file and slash commands are regenerated identically, and the settings merge
is a no-op the second time.

Interactive input is injected (``confirm`` for yes/no, ``prompt`` for free
text) so the flow can be driven without a terminal.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from memdock import manifest
from memdock.assets import render_assets
from memdock.config import Configuration, MemdockSettings, ensure_data_directory
from memdock.environment import check_environment
from memdock.errors import AssistantMissingError, MemdockError
from memdock.hooks import HookInstallResult, install_hooks
from memdock.runtime import DockerRuntime
from memdock.scaffold import DEFAULT_TEMPLATES, materialize
from memdock.service import OperationResult, ServiceController
from memdock.settings import MCP_NAMESPACE, MergeResult, merge_entry
from memdock.source import SourceFetcher

logger = logging.getLogger(__name__)

MCP_ENTRY_NAME = "memory"

SCOPE_USER = "user"
SCOPE_PROJECT = "project"

STEP_DONE = "done"
STEP_SKIPPED = "skipped"
STEP_WARNING = "warning"
STEP_ABORTED = "aborted"


@dataclass
class StepOutcome:
    name: str
    status: str
    detail: str = ""


@dataclass
class IntegrationReport:
    settings_path: Path
    commands_dir: Path
    service: Optional[OperationResult] = None
    merge: Optional[MergeResult] = None
    commands: List[Path] = field(default_factory=list)
    hooks: Optional[HookInstallResult] = None
    aborted: bool = False


@dataclass
class ProvisioningReport:
    steps: List[StepOutcome] = field(default_factory=list)
    config: Optional[Configuration] = None
    integration: Optional[IntegrationReport] = None

    def add(self, name: str, status: str, detail: str = "") -> StepOutcome:
        outcome = StepOutcome(name, status, detail)
        self.steps.append(outcome)
        return outcome

    def step(self, name: str) -> Optional[StepOutcome]:
        for outcome in self.steps:
            if outcome.name == name:
                return outcome
        return None


def assistant_paths(scope: str, cwd: Optional[Path] = None) -> tuple:
    """Return (settings.json, commands dir) for the given install scope."""
    if scope == SCOPE_PROJECT:
        base = (cwd or Path.cwd()) / ".claude"
    else:
        base = Path.home() / ".claude"
    return base / "settings.json", base / "commands"


def _always(answer: bool) -> Callable[[str], bool]:
    return lambda _prompt: answer


class ProvisioningOrchestrator:
    """Sequence the provisioning steps against one workspace."""

    def __init__(
        self,
        settings: MemdockSettings,
        confirm: Callable[[str], bool],
        prompt: Callable[[str, str], str],
        runtime: Optional[DockerRuntime] = None,
        controller: Optional[ServiceController] = None,
        scope: str = SCOPE_USER,
        cwd: Optional[Path] = None,
        assistant_home: Optional[Path] = None,
    ):
        self.settings = settings
        self.confirm = confirm
        self.prompt = prompt
        self.runtime = runtime or DockerRuntime(
            settings.docker_bin, compose_file=settings.compose_file
        )
        self._controller = controller
        self.scope = scope
        self.cwd = cwd
        self.assistant_home = assistant_home or Path.home() / ".claude"

    @property
    def controller(self) -> ServiceController:
        if self._controller is None:
            self._controller = ServiceController.from_settings(self.settings, self.runtime)
        return self._controller

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    def run(
        self,
        update: Optional[bool] = None,
        integrate: bool = False,
        with_hooks: bool = False,
    ) -> ProvisioningReport:
        """Run every step in order.

        Args:
            update: True/False to update an existing checkout without asking;
                None to ask.
            integrate: Start the service and register it with the assistant.
            with_hooks: Also run the upstream hook installer during integration.
        """
        report = ProvisioningReport()

        check_environment(self.runtime).raise_for_missing()
        report.add("environment", STEP_DONE)

        fetch = self.fetch_source(update)
        report.add("source", STEP_DONE, fetch.action)

        manifest_outcome = self.record_manifest()
        report.steps.append(manifest_outcome)

        report.config = self.configure()
        report.add("config", STEP_DONE, str(report.config.data_directory))

        self.build(report.config)
        report.add("build", STEP_DONE, self.settings.image)

        if integrate:
            report.integration = self.integrate(with_hooks=with_hooks)
            status = STEP_ABORTED if report.integration.aborted else STEP_DONE
            report.add("integrate", status)
        else:
            report.add("integrate", STEP_SKIPPED)
        return report

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def fetch_source(self, update: Optional[bool] = None):
        fetcher = SourceFetcher(
            self.settings.source_dir, self.settings.repo_url, self.settings.repo_branch
        )
        confirm = self.confirm if update is None else _always(update)
        print(f"ℹ️  Fetching {self.settings.repo_url} ({self.settings.repo_branch})...")
        result = fetcher.fetch_or_update(confirm)
        print(f"✓ Source {result.action}: {result.path}")
        return result

    def record_manifest(self) -> StepOutcome:
        """Write manifest.json. Never fails the run."""
        try:
            record = manifest.generate(self.settings.source_dir, self.settings.repo_url)
            path = manifest.write(record, self.settings.manifest_path)
        except (MemdockError, OSError) as e:
            logger.warning(f"Manifest generation failed: {e}")
            print(f"⚠️  Could not write manifest: {e}")
            return StepOutcome("manifest", STEP_WARNING, str(e))
        short = record.commit_short or "unknown revision"
        print(f"✓ Manifest written ({short}): {path}")
        return StepOutcome("manifest", STEP_DONE, short)

    def configure(self) -> Configuration:
        """Load the configuration, prompting for it only on the first run."""
        store = self.settings.config_store
        config = store.load()
        if config is None:
            default = str(self.settings.home / "data")
            answer = self.prompt("Data directory", default)
            config = store.save(Configuration(data_directory=Path(answer or default)))
            print(f"✓ Configuration saved: {store.path}")
        else:
            logger.debug(f"Reusing configuration from {store.path}")
        ensure_data_directory(config)
        return config

    def build(self, config: Configuration) -> None:
        assets = render_assets(self.settings, config)
        print(f"ℹ️  Building image {self.settings.image} (this can take a while)...")
        self.runtime.build(
            self.settings.home,
            self.settings.image,
            dockerfile=assets["dockerfile"],
            platform=self.settings.platform,
        )
        print(f"✓ Image built: {self.settings.image}")

    def integrate(self, with_hooks: bool = False) -> IntegrationReport:
        """Start the service, register it in settings.json, write slash commands."""
        settings_path, commands_dir = assistant_paths(self.scope, self.cwd)
        report = IntegrationReport(settings_path=settings_path, commands_dir=commands_dir)

        if not self.assistant_home.is_dir():
            raise AssistantMissingError(
                f"Claude Code not found at {self.assistant_home}. Install Claude Code first."
            )

        report.service = self.controller.start()
        health = report.service.health
        if health is None:
            health = self.controller.fetch_health()
        if not health.healthy:
            print("⚠️  Memory service is not healthy")
            if not self.confirm("Continue anyway?"):
                report.aborted = True
                return report

        entry = {"type": "http", "url": self.settings.service.mcp_url}
        report.merge = merge_entry(
            settings_path,
            MCP_NAMESPACE,
            MCP_ENTRY_NAME,
            entry,
            confirm_discard=lambda msg: self.confirm(f"{msg} Replace it? (a backup is kept)"),
        )
        if report.merge.aborted:
            report.aborted = True
            return report

        report.commands = materialize(commands_dir, DEFAULT_TEMPLATES)

        if with_hooks:
            report.hooks = install_hooks(self.settings.source_dir)
        return report
