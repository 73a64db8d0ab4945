"""Merge a named entry into the assistant's JSON settings document.

Only ``document[namespace][entry_name]`` is ever replaced. Every other
top-level key, and every sibling entry inside the namespace, is carried over
in its original order. The merge is deliberately not a generic deep merge.

An unparsable document is not fatal: it is backed up, a warning is recorded,
and the merge proceeds from an empty document.
"""

import json
import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from memdock.errors import SettingsWriteError
from memdock.utils import atomic_write_text, dump_json

logger = logging.getLogger(__name__)

MCP_NAMESPACE = "mcpServers"
BACKUP_TIME_FORMAT = "%Y%m%d-%H%M%S"


@dataclass
class MergeResult:
    """Typed outcome of ``merge_entry``."""

    path: Path
    created: bool = False
    changed: bool = False
    aborted: bool = False
    backup_path: Optional[Path] = None
    warnings: List[str] = field(default_factory=list)


def backup_path_for(document_path: Path, now: Optional[datetime] = None) -> Path:
    stamp = (now or datetime.now()).strftime(BACKUP_TIME_FORMAT)
    return document_path.with_name(f"{document_path.name}.backup-{stamp}")


def _load_document(document_path: Path, warnings: List[str]) -> Dict[str, Any]:
    try:
        raw = document_path.read_text(encoding="utf-8")
    except OSError as e:
        warnings.append(f"Could not read {document_path}: {e}. Starting fresh.")
        return {}
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        warnings.append(f"Existing {document_path.name} is invalid ({e}). Starting fresh.")
        return {}
    if not isinstance(data, dict):
        warnings.append(f"Existing {document_path.name} is not a JSON object. Starting fresh.")
        return {}
    return data


def merge_entry(
    document_path: Path,
    namespace: str,
    entry_name: str,
    entry_value: Any,
    confirm_discard: Optional[Callable[[str], bool]] = None,
    now: Optional[datetime] = None,
) -> MergeResult:
    """Set ``document[namespace][entry_name] = entry_value`` and write it back.

    Args:
        document_path: Settings file; created (with parents) if missing.
        namespace: Reserved top-level key holding named entries.
        entry_name: Entry to add or replace.
        entry_value: JSON-serialisable value for the entry.
        confirm_discard: Called with a warning message when the existing
            document cannot be used. Returning False aborts with no changes.
            When omitted, unreadable content is discarded with a warning.
        now: Clock override for the backup timestamp.

    Raises:
        SettingsWriteError: the backup or the document could not be written.
    """
    document_path = Path(document_path)
    result = MergeResult(path=document_path)
    existed = document_path.exists()
    original_text = None

    if existed:
        document = _load_document(document_path, result.warnings)
        try:
            original_text = document_path.read_text(encoding="utf-8")
        except OSError:
            original_text = None
        if result.warnings and confirm_discard is not None:
            if not confirm_discard(result.warnings[-1]):
                result.aborted = True
                return result
    else:
        document = {}
        result.created = True

    for warning in result.warnings:
        logger.warning(warning)

    servers = document.get(namespace)
    if not isinstance(servers, dict):
        if servers is not None:
            msg = f"'{namespace}' in {document_path.name} is not an object; replacing it"
            result.warnings.append(msg)
            logger.warning(msg)
        servers = {}
        document[namespace] = servers
    servers[entry_name] = entry_value

    new_text = dump_json(document)
    if existed and new_text == original_text:
        logger.debug(f"{document_path} already up to date")
        return result

    if existed:
        result.backup_path = backup_path_for(document_path, now)
        try:
            shutil.copy2(document_path, result.backup_path)
        except OSError as e:
            raise SettingsWriteError(f"Could not back up {document_path}: {e}")
        logger.debug(f"Backed up {document_path} to {result.backup_path}")

    try:
        atomic_write_text(document_path, new_text)
    except OSError as e:
        raise SettingsWriteError(f"Could not write {document_path}: {e}")
    result.changed = True
    return result


def read_entry(document_path: Path, namespace: str, entry_name: str) -> Optional[Any]:
    """Return the named entry, or None if the document or entry is missing."""
    try:
        with open(document_path, encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, json.JSONDecodeError):
        return None
    if not isinstance(document, dict):
        return None
    servers = document.get(namespace)
    if not isinstance(servers, dict):
        return None
    return servers.get(entry_name)
