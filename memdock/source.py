"""Fetch or update the upstream memory service checkout.

Fresh clones land in a hidden sibling directory and are renamed into place
only once ``git clone`` has succeeded, so an interrupted run never leaves a
partial tree at the final path. Leftovers from interrupted runs are removed
on the next call.
"""

import logging
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from memdock.errors import SourceError, ToolMissingError

logger = logging.getLogger(__name__)

CLONE_TIMEOUT = 600
PARTIAL_PREFIX = ".clone-"

ACTION_CLONED = "cloned"
ACTION_UPDATED = "updated"
ACTION_KEPT = "kept"


@dataclass
class FetchResult:
    action: str
    path: Path


class SourceFetcher:
    """Clone-or-pull the upstream repository into ``target``."""

    def __init__(self, target: Path, url: str, branch: str = "main", shallow: bool = False):
        self.target = Path(target)
        self.url = url
        self.branch = branch
        self.shallow = shallow

    def fetch_or_update(self, confirm: Optional[Callable[[str], bool]] = None) -> FetchResult:
        """Clone when absent; otherwise offer an in-place update.

        Args:
            confirm: Asked whether to update an existing checkout. ``None``
                means update without asking.
        """
        self.clear_partial_clones()

        if self.target.exists():
            if not (self.target / ".git").exists():
                raise SourceError(
                    f"{self.target} exists but is not a git checkout. "
                    "Remove it and run again."
                )
            if confirm is not None and not confirm("Update existing repository?"):
                logger.info(f"Keeping existing checkout at {self.target}")
                return FetchResult(ACTION_KEPT, self.target)
            self._git(["pull", "--ff-only"], cwd=self.target)
            return FetchResult(ACTION_UPDATED, self.target)

        self.target.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(
            tempfile.mkdtemp(dir=self.target.parent, prefix=f"{PARTIAL_PREFIX}{self.target.name}-")
        )
        try:
            args = ["clone", "--branch", self.branch]
            if self.shallow:
                args += ["--depth", "1"]
            self._git(args + [self.url, str(staging)])
            staging.rename(self.target)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        return FetchResult(ACTION_CLONED, self.target)

    def clear_partial_clones(self) -> List[Path]:
        parent = self.target.parent
        if not parent.is_dir():
            return []
        removed = []
        for leftover in parent.glob(f"{PARTIAL_PREFIX}{self.target.name}-*"):
            logger.info(f"Removing interrupted clone {leftover}")
            shutil.rmtree(leftover, ignore_errors=True)
            removed.append(leftover)
        return removed

    def _git(self, args: List[str], cwd: Optional[Path] = None) -> None:
        cmd = ["git"] + args
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd, cwd=cwd, capture_output=True, text=True, timeout=CLONE_TIMEOUT
            )
        except FileNotFoundError:
            raise ToolMissingError("git")
        except subprocess.TimeoutExpired:
            raise SourceError(f"git {args[0]} timed out after {CLONE_TIMEOUT}s")
        if result.returncode != 0:
            raise SourceError(f"git {args[0]} failed: {result.stderr.strip()}")
