"""Install, start and tear down edgecore on this node.

The installer never tracks state in memory: whether edgecore is running is
asked of the host every time. The running check and the install that follows
are not atomic, so two concurrent ``join`` runs on one host can race.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .config import EDGECORE_BINARY_NAME, EdgePaths
from .edgeconfig import ConfigBuilder
from .errors import AlreadyRunningError, EdgeInstallError, ExternalOperationError
from .params import Advisory, DeploymentParameters, InstallOptions
from .urls import resolve_urls
from .version import ToolVersion

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    """Observed state of edgecore on this host."""

    NOT_INSTALLED = "not-installed"
    INSTALLED = "installed"
    RUNNING = "running"
    STOPPED = "stopped"


class EdgeCoreInstaller:
    """Joins this node to a KubeEdge cluster and removes it again.

    Args:
        params: User-supplied deployment parameters.
        version: edgecore release to install.
        ops: Host operations (see :class:`edgeadm_cli.host.HostOperations`).
        paths: Filesystem layout; defaults to :meth:`EdgePaths.from_env`.
    """

    def __init__(
        self,
        params: DeploymentParameters,
        version: ToolVersion,
        ops: Any,
        paths: Optional[EdgePaths] = None,
    ):
        self.params = params
        self.version = version
        self.ops = ops
        self.paths = paths or EdgePaths.from_env()
        self.builder = ConfigBuilder(self.paths, ops)

    def install(self) -> list[Advisory]:
        """Download edgecore, write its config and start it.

        Raises:
            AlreadyRunningError: edgecore is already running; nothing was done.
            EdgeInstallError: any later step failed. Earlier steps are kept.
        """
        if _external("preflight", self.ops.is_process_running, EDGECORE_BINARY_NAME):
            raise AlreadyRunningError(
                "EdgeCore is already running on this node, please run reset to clean up first"
            )

        urls = resolve_urls(self.params.download_url, self.params.region)
        logger.debug("Release URLs: %s", urls)
        options = InstallOptions(
            version=self.version,
            urls=urls,
            tarball_path=Path(self.params.tarball_path) if self.params.tarball_path else None,
        )
        _external("download", self.ops.acquire_binaries, options)

        _, advisories = self.builder.create_config_files(self.params, self.version)

        _external("start", self.ops.start_agent)
        return advisories

    def tear_down(self) -> None:
        """Stop edgecore. Succeeds when no edgecore process exists."""
        _external("teardown", self.ops.kill_process, EDGECORE_BINARY_NAME)

    def state(self) -> LifecycleState:
        if _external("status", self.ops.is_process_running, EDGECORE_BINARY_NAME):
            return LifecycleState.RUNNING
        if not self.paths.edgecore_binary.exists():
            return LifecycleState.NOT_INSTALLED
        if self.paths.edgecore_yaml.exists() or self.paths.legacy_edge_yaml.exists():
            return LifecycleState.STOPPED
        return LifecycleState.INSTALLED


def _external(step: str, func, *args):
    """Run a host operation, wrapping unexpected failures with the step name."""
    try:
        return func(*args)
    except EdgeInstallError:
        raise
    except Exception as exc:
        raise ExternalOperationError(f"{step} failed: {exc}", step=step) from exc
