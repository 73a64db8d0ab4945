"""Build provenance: which upstream revision went into the image.

The manifest is diagnostic. Generation never fails because git metadata is
missing (shallow or detached checkouts, a directory that is not a checkout at
all); unavailable fields are recorded as the empty string.
"""

import logging
import subprocess
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from memdock.errors import SourceMissingError
from memdock.utils import atomic_write_json, read_json

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 10
UNAVAILABLE = ""


@dataclass
class ManifestRecord:
    url: str = UNAVAILABLE
    commit: str = UNAVAILABLE
    commit_short: str = UNAVAILABLE
    branch: str = UNAVAILABLE
    commit_date: str = UNAVAILABLE
    commit_message: str = UNAVAILABLE
    build_date: str = UNAVAILABLE
    script_version: str = UNAVAILABLE

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "repository": {
                key: data[key]
                for key in ("url", "commit", "commit_short", "branch", "commit_date", "commit_message")
            },
            "build": {"date": data["build_date"], "script_version": data["script_version"]},
        }


def _git(source_dir: Path, args: List[str]) -> str:
    try:
        result = subprocess.run(
            ["git", "-C", str(source_dir)] + args,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
        logger.debug(f"git {' '.join(args)} failed: {e}")
        return UNAVAILABLE
    if result.returncode != 0:
        logger.debug(f"git {' '.join(args)} exited {result.returncode}: {result.stderr.strip()}")
        return UNAVAILABLE
    return result.stdout.strip()


def _script_version() -> str:
    from memdock import __version__

    return __version__


def generate(
    source_dir: Path, source_url: Optional[str] = None, now: Optional[datetime] = None
) -> ManifestRecord:
    """Collect revision metadata from ``source_dir``."""
    source_dir = Path(source_dir)
    if not source_dir.is_dir():
        raise SourceMissingError(f"Source directory not found: {source_dir}")

    branch = _git(source_dir, ["rev-parse", "--abbrev-ref", "HEAD"])
    return ManifestRecord(
        url=source_url or _git(source_dir, ["remote", "get-url", "origin"]),
        commit=_git(source_dir, ["rev-parse", "HEAD"]),
        commit_short=_git(source_dir, ["rev-parse", "--short", "HEAD"]),
        # Detached checkouts report "HEAD"; that is not a branch name.
        branch=UNAVAILABLE if branch == "HEAD" else branch,
        commit_date=_git(source_dir, ["log", "-1", "--format=%cI"]),
        commit_message=_git(source_dir, ["log", "-1", "--format=%s"]),
        build_date=(now or datetime.now(timezone.utc)).isoformat(),
        script_version=_script_version(),
    )


def write(record: ManifestRecord, path: Path) -> Path:
    atomic_write_json(Path(path), record.to_dict())
    return Path(path)


def read(path: Path) -> Optional[dict]:
    return read_json(Path(path))
