"""Configuration and constants for the edgeadm CLI."""

import os
import sys
from dataclasses import dataclass
from pathlib import Path

# Agent
EDGECORE_BINARY_NAME = "edgecore"
EDGECORE_SERVICE_FILE = "edgecore.service"
DEFAULT_KUBEEDGE_VERSION = "1.3.1"

# Cloud side defaults
DEFAULT_CERT_PORT = 10002
DEFAULT_QUIC_PORT = 10001
DEFAULT_TUNNEL_PORT = 10004
DEFAULT_WEBSOCKET_PORT = 10000
DEFAULT_PROJECT_ID = "e632aba927ea4ac2b575ec1603d56f10"

# Release hosts
DEFAULT_RELEASE_HOST = "https://kubeedge.pek3b.qingstor.com"
GITHUB_DOWNLOAD_URL = "https://github.com/kubeedge/kubeedge/releases/download"
GITHUB_SERVICE_FILE_FORMAT = (
    "https://raw.githubusercontent.com/kubeedge/kubeedge/release-{version}/build/tools/{filename}"
)
REGION_EN = "en"

# Filesystem
DEFAULT_KUBEEDGE_DIR = "/etc/kubeedge"
DEFAULT_BIN_DIR = "/usr/local/bin"
SYSTEMD_UNIT_DIR = Path("/etc/systemd/system")
SYSTEMD_RUNTIME_DIR = Path("/run/systemd/system")

# Environment overrides
KUBEEDGE_DIR_ENV = "EDGEADM_KUBEEDGE_DIR"
BIN_DIR_ENV = "EDGEADM_BIN_DIR"
DOWNLOAD_URL_ENV = "EDGEADM_DOWNLOAD_URL"
REGION_ENV = "EDGEADM_REGION"


def get_kubeedge_dir() -> Path:
    """Get the KubeEdge root directory from environment or default."""
    return Path(os.getenv(KUBEEDGE_DIR_ENV, DEFAULT_KUBEEDGE_DIR))


def get_bin_dir() -> Path:
    """Get the directory edgecore is installed into."""
    return Path(os.getenv(BIN_DIR_ENV, DEFAULT_BIN_DIR))


@dataclass(frozen=True)
class EdgePaths:
    """Every fixed location the installer reads or writes."""

    root: Path
    bin_dir: Path
    systemd_unit_dir: Path = SYSTEMD_UNIT_DIR

    @classmethod
    def from_env(cls) -> "EdgePaths":
        return cls(root=get_kubeedge_dir(), bin_dir=get_bin_dir())

    @property
    def config_dir(self) -> Path:
        return self.root / "config"

    @property
    def edgecore_yaml(self) -> Path:
        return self.config_dir / "edgecore.yaml"

    @property
    def legacy_conf_dir(self) -> Path:
        return self.root / "edge" / "conf"

    @property
    def legacy_edge_yaml(self) -> Path:
        return self.legacy_conf_dir / "edge.yaml"

    @property
    def legacy_modules_yaml(self) -> Path:
        return self.legacy_conf_dir / "modules.yaml"

    @property
    def cloud_cert_dir(self) -> Path:
        return self.root / "certs"

    @property
    def ca_dir(self) -> Path:
        return self.root / "ca"

    @property
    def service_file(self) -> Path:
        return self.root / EDGECORE_SERVICE_FILE

    @property
    def systemd_unit(self) -> Path:
        return self.systemd_unit_dir / EDGECORE_SERVICE_FILE

    @property
    def edgecore_binary(self) -> Path:
        return self.bin_dir / EDGECORE_BINARY_NAME

    @property
    def log_file(self) -> Path:
        return self.root / "edgecore.log"


def clean_subprocess_env() -> dict[str, str]:
    """Return a copy of the environment safe to hand to child processes.

    Frozen (PyInstaller) builds point LD_LIBRARY_PATH at their bundle; the
    original value is kept in LD_LIBRARY_PATH_ORIG.
    """
    env = dict(os.environ)
    if not getattr(sys, "frozen", False):
        return env
    original = env.pop("LD_LIBRARY_PATH_ORIG", None)
    if original is not None:
        env["LD_LIBRARY_PATH"] = original
    else:
        env.pop("LD_LIBRARY_PATH", None)
    return env
