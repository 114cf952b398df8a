"""Value types passed between the CLI, the installer and the host."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .urls import ResolvedURLs
from .version import ToolVersion


class CGroupDriver(str, Enum):
    """Cgroup drivers edged can be configured with."""

    SYSTEMD = "systemd"
    CGROUPFS = "cgroupfs"


@dataclass(frozen=True)
class DeploymentParameters:
    """Everything the user supplied for joining this node.

    Empty strings and ``None`` both mean "keep the default".
    """

    cloud_core_ip: str = ""
    edge_node_name: Optional[str] = None
    edge_node_ip: Optional[str] = None
    runtime_type: Optional[str] = None
    remote_runtime_endpoint: Optional[str] = None
    token: Optional[str] = None
    cert_port: Optional[int] = None
    quic_port: Optional[int] = None
    tunnel_port: Optional[int] = None
    cgroup_driver: Optional[str] = None
    config_path: Optional[str] = None
    download_url: Optional[str] = None
    region: Optional[str] = None
    tarball_path: Optional[str] = None

    @property
    def cloud_host(self) -> str:
        """Host part of ``cloud_core_ip``."""
        return self.cloud_core_ip.split(":")[0]


@dataclass(frozen=True)
class InstallOptions:
    """What ``acquire_binaries`` needs to fetch one release."""

    version: ToolVersion
    urls: ResolvedURLs
    tarball_path: Optional[Path] = None
    component: str = "edgecore"


@dataclass(frozen=True)
class Advisory:
    """Outcome of a best-effort step; a failure here never aborts a run."""

    ok: bool
    message: str = ""

    @classmethod
    def success(cls, message: str = "") -> "Advisory":
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, message: str) -> "Advisory":
        return cls(ok=False, message=message)
