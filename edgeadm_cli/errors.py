"""Errors raised while installing or tearing down the edge agent."""

from typing import Optional


class EdgeInstallError(Exception):
    """Base class for every failure surfaced by the installer.

    ``step`` names the lifecycle step that failed so the CLI can tell the
    user where the operation stopped.
    """

    step = "install"

    def __init__(self, message: str, *, step: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        if step:
            self.step = step
        self.details = details


class AlreadyRunningError(EdgeInstallError):
    """Raised when edgecore is already running on this node."""

    step = "preflight"


class UnsupportedCGroupDriverError(EdgeInstallError):
    """Raised for a cgroup driver other than systemd or cgroupfs."""

    step = "config"

    def __init__(self, driver: str):
        super().__init__(f"unsupported CGroupDriver: {driver}", details={"cgroup_driver": driver})
        self.driver = driver


class DirectoryCreateError(EdgeInstallError):
    """Raised when a config directory cannot be created."""

    step = "config"


class SerializationError(EdgeInstallError):
    """Raised when a config document cannot be serialized or written."""

    step = "config"


class ExternalOperationError(EdgeInstallError):
    """Raised when a host operation (download, start, kill) fails."""
