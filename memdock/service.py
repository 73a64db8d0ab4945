"""Lifecycle control for the memory service container.

The service is treated as a small state machine whose state lives in the
container runtime::

    absent -> stopped -> running -> (healthy | unhealthy) -> stopped

``cleanup`` returns it to ``absent`` from any state. Nothing here persists
state of its own; every call asks the runtime.
"""

import json
import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, List, Optional

import httpx

from memdock.errors import ImageMissingError, NotRunningError, RuntimeUnavailableError
from memdock.runtime import STATE_ABSENT, STATE_RUNNING, DockerRuntime

if TYPE_CHECKING:
    from memdock.config import MemdockSettings

logger = logging.getLogger(__name__)

# Wall-clock limit for one request to the health endpoint.
HEALTH_TIMEOUT = 2.0
# Wall-clock limit for the whole wait after start/restart.
HEALTH_WAIT_TIMEOUT = 6.0
HEALTH_POLL_INTERVAL = 1.0
MAX_HEALTH_BODY = 64 * 1024

CLEANUP_TOKEN = "yes"
# What the service writes into its data directory. Nothing else is deleted.
SERVICE_DATA_PATTERNS = ("sqlite_vec.db*", "backups")
LOG_TAIL_LINES = 100

OUTCOME_STARTED = "started"
OUTCOME_STOPPED = "stopped"
OUTCOME_RESTARTED = "restarted"
OUTCOME_REMOVED = "removed"
OUTCOME_NOOP = "noop"
OUTCOME_ABORTED = "aborted"


@dataclass
class HealthResult:
    """Outcome of probing the health endpoint."""

    healthy: bool
    payload: Optional[Any] = None
    status_code: Optional[int] = None
    error: Optional[str] = None


@dataclass
class OperationResult:
    """Outcome of a lifecycle operation."""

    outcome: str
    message: str = ""
    health: Optional[HealthResult] = None

    @property
    def changed(self) -> bool:
        return self.outcome not in (OUTCOME_NOOP, OUTCOME_ABORTED)


@dataclass
class ServiceStatus:
    state: str
    uptime: Optional[str] = None
    health: Optional[HealthResult] = None
    resources: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.state == STATE_RUNNING


def is_protected_directory(path: Path, workspace: Optional[Path] = None) -> bool:
    """True for a filesystem root, the home directory, or the workspace or any of its parents."""
    path = path.expanduser().resolve()
    if path == Path(path.anchor) or path == Path.home().resolve():
        return True
    if workspace is not None:
        workspace = workspace.expanduser().resolve()
        if path == workspace or path in workspace.parents:
            return True
    return False


class ServiceController:
    """Drive the memory service container through docker compose."""

    def __init__(
        self,
        runtime: DockerRuntime,
        container: str,
        image: str,
        health_url: str,
        health_timeout: float = HEALTH_TIMEOUT,
        wait_timeout: float = HEALTH_WAIT_TIMEOUT,
        poll_interval: float = HEALTH_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        data_directory: Optional[Path] = None,
        workspace: Optional[Path] = None,
    ):
        self.runtime = runtime
        self.container = container
        self.image = image
        self.health_url = health_url
        self.health_timeout = health_timeout
        self.wait_timeout = wait_timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock
        self.data_directory = data_directory
        self.workspace = workspace

    @classmethod
    def from_settings(
        cls, settings: "MemdockSettings", runtime: Optional[DockerRuntime] = None
    ) -> "ServiceController":
        """Build a controller for the workspace described by ``settings``."""
        runtime = runtime or DockerRuntime(settings.docker_bin, compose_file=settings.compose_file)
        config = settings.config_store.load()
        return cls(
            runtime,
            container=settings.container,
            image=settings.image,
            health_url=settings.service.health_url,
            data_directory=config.data_directory if config else None,
            workspace=settings.home,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> OperationResult:
        """Bring the service up and wait (bounded) for it to report healthy."""
        self._require_runtime()
        if self.runtime.container_state(self.container) == STATE_RUNNING:
            logger.info(f"{self.container} already running; start is a no-op")
            return OperationResult(OUTCOME_NOOP, "Service is already running")

        if not self.runtime.image_exists(self.image):
            raise ImageMissingError(self.image)

        self.runtime.compose("up", "-d")
        health = self.wait_until_healthy()
        return OperationResult(OUTCOME_STARTED, "Service started", health=health)

    def stop(self) -> OperationResult:
        self._require_runtime()
        if self.runtime.container_state(self.container) != STATE_RUNNING:
            logger.info(f"{self.container} not running; stop is a no-op")
            return OperationResult(OUTCOME_NOOP, "Service is not running")

        self.runtime.compose("stop")
        return OperationResult(OUTCOME_STOPPED, "Service stopped")

    def restart(self) -> OperationResult:
        self.stop()
        result = self.start()
        return OperationResult(OUTCOME_RESTARTED, "Service restarted", health=result.health)

    def clearable_data_directory(self) -> Optional[Path]:
        """The resolved data directory whose database files cleanup deletes, if any."""
        if self.data_directory is None:
            return None
        if is_protected_directory(self.data_directory, self.workspace):
            return None
        return self.data_directory.expanduser().resolve()

    def cleanup(self, ask: Callable[[str], str]) -> OperationResult:
        """Remove the container, its volumes and the database files after an exact ``yes``.

        ``ask`` receives the prompt and returns the operator's raw answer.
        Anything other than ``yes`` aborts with no changes. Only the files
        the service writes (``SERVICE_DATA_PATTERNS``) are deleted from the
        data directory, and a root, home or workspace directory is never
        touched.
        """
        self._require_runtime()
        target = self.clearable_data_directory()
        if target is not None:
            question = f"Database files in {target} will be deleted. "
        elif self.data_directory is not None:
            logger.warning(f"Refusing to clear protected data directory {self.data_directory}")
            question = f"Data directory {self.data_directory} will be left in place. "
        else:
            question = ""
        answer = ask(f"{question}Are you sure? (type '{CLEANUP_TOKEN}' to confirm): ")
        if (answer or "").strip() != CLEANUP_TOKEN:
            return OperationResult(OUTCOME_ABORTED, "Cleanup cancelled")

        self.runtime.compose("down", "-v")
        # The data directory is bind-mounted, so `down -v` alone leaves it behind.
        if target is not None and target.is_dir():
            removed = self._remove_service_data(target)
            logger.info(f"Removed {len(removed)} database path(s) from {target}")
        return OperationResult(OUTCOME_REMOVED, "Cleanup complete")

    @staticmethod
    def _remove_service_data(directory: Path) -> List[Path]:
        removed = []
        for pattern in SERVICE_DATA_PATTERNS:
            for path in sorted(directory.glob(pattern)):
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                else:
                    path.unlink()
                removed.append(path)
        if not any(directory.iterdir()):
            directory.rmdir()
        return removed

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def state(self) -> str:
        self._require_runtime()
        return self.runtime.container_state(self.container)

    def status(self) -> ServiceStatus:
        """Report lifecycle state, uptime, health and resource usage. Read-only."""
        state = self.state()
        if state != STATE_RUNNING:
            return ServiceStatus(state=state)
        return ServiceStatus(
            state=state,
            uptime=self.runtime.container_uptime(self.container),
            health=self.fetch_health(),
            resources=self.runtime.container_resources(self.container),
        )

    def health_check(self) -> HealthResult:
        """Single bounded health request. Raises NotRunningError if the container is down.

        A running but unhealthy service returns ``HealthResult(healthy=False)``.
        """
        if self.state() != STATE_RUNNING:
            raise NotRunningError("Container is not running")
        return self.fetch_health()

    def fetch_health(self, timeout: Optional[float] = None) -> HealthResult:
        """GET the health endpoint once, giving up after ``timeout`` seconds in total.

        httpx applies its timeout to each network operation separately, so the
        body is streamed and the deadline checked after every chunk. A server
        that trickles its answer is reported unhealthy instead of holding the
        caller.
        """
        budget = self.health_timeout if timeout is None else timeout
        deadline = self._clock() + budget
        try:
            with httpx.stream("GET", self.health_url, timeout=budget) as response:
                status_code = response.status_code
                body = b""
                for chunk in response.iter_bytes():
                    body += chunk
                    if self._clock() > deadline:
                        break
                    if len(body) > MAX_HEALTH_BODY:
                        return HealthResult(
                            healthy=False, status_code=status_code, error="response too large"
                        )
        except httpx.HTTPError as e:
            logger.debug(f"Health request to {self.health_url} failed: {e}")
            return HealthResult(healthy=False, error=str(e) or type(e).__name__)

        if self._clock() > deadline:
            logger.debug(f"Health request to {self.health_url} exceeded {budget}s")
            return HealthResult(
                healthy=False, status_code=status_code, error=f"timed out after {budget:g}s"
            )

        text = body.decode("utf-8", errors="replace")
        try:
            payload = json.loads(text)
        except ValueError:
            payload = text or None

        healthy = 200 <= status_code < 300
        error = None if healthy else f"HTTP {status_code}"
        return HealthResult(healthy=healthy, payload=payload, status_code=status_code, error=error)

    def wait_until_healthy(self) -> HealthResult:
        """Poll the health endpoint until it answers or ``wait_timeout`` seconds pass.

        Each request is capped at the time remaining, and no sleep is started
        that would end past the deadline.
        """
        deadline = self._clock() + self.wait_timeout
        attempts = 0
        while True:
            attempts += 1
            remaining = deadline - self._clock()
            result = self.fetch_health(timeout=max(0.0, min(self.health_timeout, remaining)))
            if result.healthy:
                logger.debug(f"Healthy after {attempts} request(s)")
                return result
            if deadline - self._clock() <= self.poll_interval:
                break
            self._sleep(self.poll_interval)
        logger.info(f"Service not healthy after {attempts} requests: {result.error}")
        return result

    # ------------------------------------------------------------------
    # Terminal pass-through
    # ------------------------------------------------------------------

    def logs(self, follow: bool = False) -> int:
        """Dump recent logs, or follow them until interrupted."""
        state = self.state()
        if follow:
            if state != STATE_RUNNING:
                raise NotRunningError()
            try:
                return self.runtime.compose_stream("logs", "-f")
            except KeyboardInterrupt:
                return 0
        if state == STATE_ABSENT:
            raise NotRunningError("Container not found")
        return self.runtime.compose_stream("logs", f"--tail={LOG_TAIL_LINES}")

    def shell(self) -> int:
        self._require_running()
        return self.runtime.stream("exec", "-it", self.container, "/bin/bash")

    def ps(self) -> int:
        self._require_running()
        return self.runtime.compose_stream("ps")

    def stats(self) -> int:
        self._require_running()
        try:
            return self.runtime.stream("stats", self.container)
        except KeyboardInterrupt:
            return 0

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    def _require_runtime(self) -> None:
        if not self.runtime.is_available():
            raise RuntimeUnavailableError()

    def _require_running(self) -> None:
        if self.state() != STATE_RUNNING:
            raise NotRunningError()
