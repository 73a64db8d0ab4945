"""Workspace and file helpers shared across memdock."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_HOME_DIRNAME = ".memdock"


def get_memdock_home(override: Optional[Union[str, Path]] = None) -> Path:
    """Get the memdock workspace directory.

    Resolution order:
    1. explicit override (``--home`` flag)
    2. MEMDOCK_HOME environment variable
    3. ~/.memdock
    """
    if override:
        return resolve_path(override)
    env_home = os.environ.get("MEMDOCK_HOME")
    if env_home:
        return resolve_path(env_home)
    return Path.home() / DEFAULT_HOME_DIRNAME


def resolve_path(value: Union[str, Path], base: Optional[Path] = None) -> Path:
    """Expand ``~`` and make a path absolute against ``base`` (default: cwd)."""
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (base or Path.cwd()) / path
    return Path(os.path.normpath(path))


def atomic_write_text(path: Path, content: str, mode: Optional[int] = None) -> None:
    """Write text to ``path`` via a temp file in the same directory and rename.

    A crash mid-write leaves the previous file untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def dump_json(data: Any) -> str:
    """Serialize to the pretty-printed form used for every file memdock writes."""
    return json.dumps(data, indent=2) + "\n"


def atomic_write_json(path: Path, data: Any, mode: Optional[int] = None) -> None:
    atomic_write_text(path, dump_json(data), mode=mode)


def read_json(path: Path) -> Optional[Any]:
    """Read a JSON file, returning None when it is missing or unreadable."""
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return None
