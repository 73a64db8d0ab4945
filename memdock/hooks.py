"""Install the upstream project's Claude Code memory trigger hooks.

The upstream checkout ships its own installer under ``claude-hooks/``. This
module checks its prerequisites and runs it; missing prerequisites are
reported in the result rather than raised, since hooks are optional.
"""

import logging
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

HOOKS_DIRNAME = "claude-hooks"
INSTALLER = "install_hooks.py"
INSTALL_TIMEOUT = 300
MIN_PYTHON = (3, 7)
MIN_NODE_MAJOR = 14


@dataclass
class HookInstallResult:
    installed: bool
    reason: str = ""
    warnings: List[str] = field(default_factory=list)


def _version_of(cmd: List[str], runner: Callable) -> Optional[Tuple[int, ...]]:
    try:
        result = runner(cmd, capture_output=True, text=True, timeout=10)
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        return None
    if result.returncode != 0:
        return None
    match = re.search(r"(\d+)(?:\.(\d+))?", (result.stdout or "") + (result.stderr or ""))
    if not match:
        return None
    return tuple(int(part) for part in match.groups() if part is not None)


def install_hooks(
    source_dir: Path, runner: Callable = subprocess.run, python_bin: str = "python3"
) -> HookInstallResult:
    """Run ``install_hooks.py --natural-triggers`` from the upstream checkout."""
    hooks_dir = Path(source_dir) / HOOKS_DIRNAME
    if not (hooks_dir / INSTALLER).exists():
        return HookInstallResult(
            False, f"{HOOKS_DIRNAME}/{INSTALLER} not found in {source_dir}"
        )

    warnings = []
    python_version = _version_of([python_bin, "--version"], runner)
    if python_version is None:
        return HookInstallResult(False, "Python 3 is required for hooks installation")
    if python_version[:2] < MIN_PYTHON:
        found = ".".join(str(p) for p in python_version)
        return HookInstallResult(False, f"Python 3.7+ is required (found {found})")

    node_version = _version_of(["node", "--version"], runner)
    if node_version is None:
        return HookInstallResult(False, "Node.js not found - required for hooks")
    if node_version[0] < MIN_NODE_MAJOR:
        warnings.append(f"Node.js {MIN_NODE_MAJOR}+ recommended (found v{node_version[0]})")

    cmd = [python_bin, INSTALLER, "--natural-triggers"]
    logger.debug(f"Running {' '.join(cmd)} in {hooks_dir}")
    try:
        result = runner(cmd, cwd=hooks_dir, timeout=INSTALL_TIMEOUT)
    except (subprocess.TimeoutExpired, OSError) as e:
        return HookInstallResult(False, f"Hook installer failed: {e}", warnings)
    if result.returncode != 0:
        return HookInstallResult(
            False, f"Hook installer exited with code {result.returncode}", warnings
        )
    return HookInstallResult(True, "Memory trigger hooks installed", warnings)
