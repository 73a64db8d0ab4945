"""One-shot capability check run before provisioning."""

import logging
import shutil
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from memdock.errors import RuntimeUnavailableError, ToolMissingError
from memdock.runtime import DockerRuntime

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("git",)


@dataclass
class EnvironmentReport:
    """What the host can do. ``raise_for_missing`` turns gaps into errors."""

    runtime_available: bool
    tools: Dict[str, bool] = field(default_factory=dict)

    @property
    def missing_tools(self) -> List[str]:
        return [name for name, present in self.tools.items() if not present]

    @property
    def ok(self) -> bool:
        return self.runtime_available and not self.missing_tools

    def raise_for_missing(self) -> None:
        if self.ok:
            return
        if not self.runtime_available:
            raise RuntimeUnavailableError()
        missing = self.missing_tools
        if missing:
            raise ToolMissingError(missing[0])


def check_environment(
    runtime: DockerRuntime, tools: Iterable[str] = REQUIRED_TOOLS
) -> EnvironmentReport:
    report = EnvironmentReport(
        runtime_available=runtime.is_available(),
        tools={tool: shutil.which(tool) is not None for tool in tools},
    )
    logger.debug(f"Environment: {report}")
    return report
