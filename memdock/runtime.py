"""Docker CLI wrapper.

Uses subprocess to call ``docker`` / ``docker compose`` with timeouts. Captured
calls raise ``RuntimeCommandError`` on failure; streamed calls inherit the
terminal and return the exit code.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from memdock.errors import BuildError, RuntimeCommandError, ToolMissingError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60
INFO_TIMEOUT = 10

STATE_ABSENT = "absent"
STATE_STOPPED = "stopped"
STATE_RUNNING = "running"

_RUNNING_STATES = ("running", "restarting")


class DockerRuntime:
    """Shell exec wrapper for the docker CLI."""

    def __init__(
        self,
        docker_bin: str = "docker",
        compose_file: Optional[Path] = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.bin = docker_bin
        self.compose_file = compose_file
        self.timeout = timeout
        self._compose_cmd: Optional[List[str]] = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_available(self) -> bool:
        """True when the docker binary exists and the daemon answers."""
        if shutil.which(self.bin) is None:
            logger.debug(f"{self.bin} not found on PATH")
            return False
        try:
            result = subprocess.run(
                [self.bin, "info"],
                capture_output=True,
                text=True,
                timeout=INFO_TIMEOUT,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
            logger.debug(f"docker info failed: {e}")
            return False
        return result.returncode == 0

    def container_state(self, name: str) -> str:
        """Return ``absent``, ``stopped`` or ``running`` for a container."""
        result = self._run(
            ["ps", "-a", "--filter", f"name=^{name}$", "--format", "{{.State}}"]
        )
        states = [line.strip().lower() for line in result.stdout.splitlines() if line.strip()]
        if not states:
            return STATE_ABSENT
        if states[0] in _RUNNING_STATES:
            return STATE_RUNNING
        return STATE_STOPPED

    def container_uptime(self, name: str) -> Optional[str]:
        result = self._run(["ps", "--filter", f"name=^{name}$", "--format", "{{.Status}}"])
        status = result.stdout.strip()
        return status or None

    def container_resources(self, name: str) -> Optional[str]:
        try:
            result = self._run(
                [
                    "stats",
                    "--no-stream",
                    "--format",
                    "CPU: {{.CPUPerc}}  Memory: {{.MemUsage}}",
                    name,
                ]
            )
        except RuntimeCommandError as e:
            logger.debug(f"docker stats failed: {e}")
            return None
        return result.stdout.strip() or None

    def image_exists(self, image: str) -> bool:
        result = self._run(["image", "inspect", image], check=False)
        return result.returncode == 0

    # ------------------------------------------------------------------
    # Compose
    # ------------------------------------------------------------------

    def compose_command(self) -> List[str]:
        """Prefer the ``docker compose`` plugin, fall back to ``docker-compose``."""
        if self._compose_cmd is not None:
            return self._compose_cmd
        result = self._run(["compose", "version"], check=False)
        if result.returncode == 0:
            self._compose_cmd = [self.bin, "compose"]
        elif shutil.which("docker-compose"):
            self._compose_cmd = ["docker-compose"]
        else:
            raise ToolMissingError("docker compose")
        return self._compose_cmd

    def _compose_args(self, args: Sequence[str]) -> List[str]:
        cmd = list(self.compose_command())
        if self.compose_file is not None:
            cmd += ["-f", str(self.compose_file)]
        return cmd + list(args)

    def compose(self, *args: str) -> subprocess.CompletedProcess:
        """Run a compose subcommand and capture its output."""
        return self._exec(self._compose_args(args))

    def compose_stream(self, *args: str) -> int:
        """Run a compose subcommand attached to the terminal."""
        return self.stream_raw(self._compose_args(args))

    # ------------------------------------------------------------------
    # Build / interactive
    # ------------------------------------------------------------------

    def build(
        self,
        context_dir: Path,
        image: str,
        dockerfile: Optional[Path] = None,
        platform: Optional[str] = None,
    ) -> None:
        cmd = [self.bin, "build", "-t", image]
        if dockerfile is not None:
            cmd += ["-f", str(dockerfile)]
        if platform:
            cmd += ["--platform", platform]
        cmd.append(str(context_dir))
        returncode = self.stream_raw(cmd)
        if returncode != 0:
            raise BuildError(f"docker build failed with exit code {returncode}")

    def stream(self, *args: str) -> int:
        return self.stream_raw([self.bin] + list(args))

    def stream_raw(self, cmd: List[str]) -> int:
        logger.debug(f"Streaming: {' '.join(cmd)}")
        try:
            return subprocess.run(cmd).returncode
        except FileNotFoundError:
            raise ToolMissingError(cmd[0])

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        return self._exec([self.bin] + args, check=check)

    def _exec(self, cmd: List[str], check: bool = True) -> subprocess.CompletedProcess:
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise ToolMissingError(cmd[0])
        except subprocess.TimeoutExpired:
            raise RuntimeCommandError(cmd, -1, f"timed out after {self.timeout}s")
        if check and result.returncode != 0:
            raise RuntimeCommandError(cmd, result.returncode, result.stderr)
        return result
