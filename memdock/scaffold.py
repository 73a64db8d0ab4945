"""Slash-command files for the coding assistant."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

from memdock.errors import ScaffoldError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandTemplate:
    name: str
    description: str
    body: str


DEFAULT_TEMPLATES = (
    CommandTemplate(
        "memory-status",
        "Check memory service status and statistics",
        """Check the status of the MCP memory service and provide a summary of:
1. Service health and availability
2. Number of stored memories
3. Recent activity
4. Database statistics

Use the appropriate MCP tools to gather this information.""",
    ),
    CommandTemplate(
        "memory-save",
        "Save important information to memory",
        """Save the following information to the MCP memory service:

$1

Make sure to:
1. Use appropriate entities and tags
2. Add relevant context
3. Confirm the memory was saved successfully""",
    ),
    CommandTemplate(
        "memory-search",
        "Search memories by query",
        """Search the MCP memory service for: $1

Provide:
1. Relevant memories found
2. Similarity scores
3. Context from each memory
4. Suggestions for refining the search if needed""",
    ),
    CommandTemplate(
        "memory-recall",
        "Recall memories about a topic",
        """Recall and summarize all memories related to: $1

Provide:
1. A comprehensive summary of what is remembered
2. Related entities and connections
3. Timeline if relevant
4. Any gaps in memory""",
    ),
    CommandTemplate(
        "memory-stats",
        "Show detailed memory statistics",
        """Provide detailed statistics about the MCP memory service:
1. Total number of memories
2. Storage usage
3. Most common entities
4. Recent activity summary
5. Database health metrics

Present the information in a clear, formatted way.""",
    ),
    CommandTemplate(
        "memory-export",
        "Export memories to a file",
        """Export memories from the MCP memory service.

If a query is provided ($1), export only matching memories.
Otherwise, export all memories.

Save to a JSON file and provide:
1. Export summary (count, size)
2. File location
3. Format description""",
    ),
    CommandTemplate(
        "memory-clear",
        "Clear memories (with confirmation)",
        """⚠️  WARNING: This will delete memories!

Query to clear: $1

Before proceeding:
1. Show what will be deleted
2. Ask for explicit confirmation
3. Only proceed if user confirms with 'yes'

If confirmed, delete the memories and provide a summary of what was removed.""",
    ),
)


def render_command(template: CommandTemplate) -> str:
    return f"---\ndescription: {template.description}\n---\n\n{template.body}\n"


def materialize(target_directory: Path, templates: Iterable[CommandTemplate]) -> List[Path]:
    """Write each template to ``<target>/<name>.md``, overwriting older copies."""
    target_directory = Path(target_directory)
    written = []
    try:
        target_directory.mkdir(parents=True, exist_ok=True)
        for template in templates:
            path = target_directory / f"{template.name}.md"
            path.write_text(render_command(template), encoding="utf-8")
            written.append(path)
    except OSError as e:
        raise ScaffoldError(f"Could not write slash commands to {target_directory}: {e}")
    logger.debug(f"Wrote {len(written)} slash command(s) to {target_directory}")
    return written
