"""Error taxonomy for memdock.

Library components raise these; the CLI turns them into messages and exit codes.
"""


class MemdockError(Exception):
    """Base for all memdock errors."""

    pass


# =============================================================================
# PRECONDITIONS
# =============================================================================


class PreconditionFailure(MemdockError):
    """A required tool or resource is missing. Aborts the current operation only."""

    pass


class RuntimeUnavailableError(PreconditionFailure):
    """The container runtime is not installed or not reachable."""

    def __init__(self, message: str = "Docker is not running. Please start Docker."):
        super().__init__(message)


class ToolMissingError(PreconditionFailure):
    """A required command-line tool is not on PATH."""

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"{tool} is not installed")


class ImageMissingError(PreconditionFailure):
    """The service image has not been built yet."""

    def __init__(self, image: str):
        self.image = image
        super().__init__(f"Docker image '{image}' not found. Build it first with: memdock build")


class SourceMissingError(PreconditionFailure):
    """The upstream source checkout does not exist."""

    pass


class AssistantMissingError(PreconditionFailure):
    """The coding assistant's configuration home does not exist."""

    pass


# =============================================================================
# SERVICE STATE
# =============================================================================


class NotRunningError(MemdockError):
    """The managed service is not running.

    Informational for start/stop; an error for commands that need a live container.
    """

    def __init__(self, message: str = "Service is not running"):
        super().__init__(message)


# =============================================================================
# OPERATIONAL FAILURES
# =============================================================================


class ConfigError(MemdockError):
    """The configuration record could not be read or written."""

    pass


class SettingsWriteError(MemdockError):
    """The assistant settings document could not be written."""

    pass


class ScaffoldError(MemdockError):
    """Slash-command files could not be written."""

    pass


class SourceError(MemdockError):
    """Fetching or updating the upstream source failed."""

    pass


class BuildError(MemdockError):
    """Building the service image failed."""

    pass


class RuntimeCommandError(MemdockError):
    """A container runtime command exited non-zero."""

    def __init__(self, args, returncode: int, stderr: str = ""):
        self.cmd = list(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr and stderr.strip() else ""
        super().__init__(f"'{' '.join(self.cmd)}' failed with exit code {returncode}{detail}")
