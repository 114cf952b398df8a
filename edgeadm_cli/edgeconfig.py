"""Generate the edgecore configuration for a given release.

Releases from 1.2.0 on read one structured ``config/edgecore.yaml``. Older
releases read ``edge/conf/edge.yaml`` plus ``edge/conf/modules.yaml``. The
two layouts share no keys, so exactly one of them is produced per run.
"""

import logging
import os
import socket
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Optional, Union

import yaml

from .config import (
    DEFAULT_CERT_PORT,
    DEFAULT_PROJECT_ID,
    DEFAULT_QUIC_PORT,
    DEFAULT_TUNNEL_PORT,
    DEFAULT_WEBSOCKET_PORT,
    EdgePaths,
)
from .errors import DirectoryCreateError, SerializationError, UnsupportedCGroupDriverError
from .params import Advisory, CGroupDriver, DeploymentParameters
from .version import SchemaVariant, ToolVersion, is_release_1_2, select_variant

logger = logging.getLogger(__name__)

DEFAULT_RUNTIME_TYPE = "docker"
DEFAULT_RUNTIME_ENDPOINT = "unix:///var/run/dockershim.sock"
LEGACY_ENABLED_MODULES = [
    "eventbus",
    "servicebus",
    "websocket",
    "metaManager",
    "edged",
    "twin",
    "dbTest",
    "edgemesh",
]


def _default_hostname() -> str:
    return socket.gethostname().lower()


def _default_node_ip() -> str:
    try:
        return socket.gethostbyname(socket.gethostname())
    except OSError:
        return "127.0.0.1"


# ---- modern layout (>= 1.2.0) ------------------------------------------------


@dataclass
class EdgeHubConfig:
    """Connection from the node to cloudcore."""

    websocket_server: str
    http_server: str
    quic_server: str
    tls_ca_file: str
    tls_cert_file: str
    tls_private_key_file: str
    token: str = ""
    heartbeat: int = 15

    def to_dict(self) -> dict[str, Any]:
        return {
            "enable": True,
            "heartbeat": self.heartbeat,
            "httpServer": self.http_server,
            "projectID": DEFAULT_PROJECT_ID,
            "quic": {
                "enable": False,
                "handshakeTimeout": 30,
                "readDeadline": 15,
                "server": self.quic_server,
                "writeDeadline": 15,
            },
            "rotateCertificates": True,
            "tlsCaFile": self.tls_ca_file,
            "tlsCertFile": self.tls_cert_file,
            "tlsPrivateKeyFile": self.tls_private_key_file,
            "token": self.token,
            "websocket": {
                "enable": True,
                "handshakeTimeout": 30,
                "readDeadline": 15,
                "server": self.websocket_server,
                "writeDeadline": 15,
            },
        }


@dataclass
class EdgedConfig:
    """Node identity and container runtime settings."""

    hostname_override: str
    node_ip: str
    runtime_type: str = DEFAULT_RUNTIME_TYPE
    cgroup_driver: str = CGroupDriver.CGROUPFS.value
    remote_runtime_endpoint: str = DEFAULT_RUNTIME_ENDPOINT
    remote_image_endpoint: str = DEFAULT_RUNTIME_ENDPOINT

    def to_dict(self) -> dict[str, Any]:
        return {
            "cgroupDriver": self.cgroup_driver,
            "cgroupRoot": "",
            "cgroupsPerQOS": True,
            "clusterDNS": "",
            "clusterDomain": "",
            "devicePluginEnabled": False,
            "dockerAddress": "unix:///var/run/docker.sock",
            "enable": True,
            "gpuPluginEnabled": False,
            "hostnameOverride": self.hostname_override,
            "imageGCHighThreshold": 80,
            "imageGCLowThreshold": 40,
            "imagePullProgressDeadline": 60,
            "maximumDeadContainersPerPod": 1,
            "nodeIP": self.node_ip,
            "nodeStatusUpdateFrequency": 10,
            "podSandboxImage": "kubeedge/pause:3.1",
            "registerNode": True,
            "registerNodeNamespace": "default",
            "remoteImageEndpoint": self.remote_image_endpoint,
            "remoteRuntimeEndpoint": self.remote_runtime_endpoint,
            "runtimeRequestTimeout": 2,
            "runtimeType": self.runtime_type,
        }


@dataclass
class EdgeStreamConfig:
    """Reverse tunnel from cloudcore to the node."""

    tunnel_server: str
    tls_tunnel_ca_file: str
    tls_tunnel_cert_file: str
    tls_tunnel_private_key_file: str
    enable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "enable": self.enable,
            "handshakeTimeout": 30,
            "readDeadline": 15,
            "server": self.tunnel_server,
            "tlsTunnelCAFile": self.tls_tunnel_ca_file,
            "tlsTunnelCertFile": self.tls_tunnel_cert_file,
            "tlsTunnelPrivateKeyFile": self.tls_tunnel_private_key_file,
            "writeDeadline": 15,
        }


@dataclass
class ModernConfig:
    """The single ``edgecore.yaml`` document."""

    edge_hub: EdgeHubConfig
    edged: EdgedConfig
    edge_stream: EdgeStreamConfig

    variant: ClassVar[SchemaVariant] = SchemaVariant.MODERN

    @classmethod
    def default(cls, paths: EdgePaths) -> "ModernConfig":
        ca_file = str(paths.ca_dir / "rootCA.crt")
        cert_file = str(paths.cloud_cert_dir / "edge.crt")
        key_file = str(paths.cloud_cert_dir / "edge.key")
        return cls(
            edge_hub=EdgeHubConfig(
                websocket_server=f"127.0.0.1:{DEFAULT_WEBSOCKET_PORT}",
                http_server=f"https://127.0.0.1:{DEFAULT_CERT_PORT}",
                quic_server=f"127.0.0.1:{DEFAULT_QUIC_PORT}",
                tls_ca_file=ca_file,
                tls_cert_file=cert_file,
                tls_private_key_file=key_file,
            ),
            edged=EdgedConfig(
                hostname_override=_default_hostname(),
                node_ip=_default_node_ip(),
            ),
            edge_stream=EdgeStreamConfig(
                tunnel_server=f"127.0.0.1:{DEFAULT_TUNNEL_PORT}",
                tls_tunnel_ca_file=ca_file,
                tls_tunnel_cert_file=cert_file,
                tls_tunnel_private_key_file=key_file,
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": "edgecore.config.kubeedge.io/v1alpha1",
            "kind": "EdgeCore",
            "database": {
                "aliasName": "default",
                "dataSource": "/var/lib/kubeedge/edgecore.db",
                "driverName": "sqlite3",
            },
            "modules": {
                "dbTest": {"enable": False},
                "deviceTwin": {"enable": True},
                "edgeHub": self.edge_hub.to_dict(),
                "edgeMesh": {"enable": True, "lbStrategy": "RoundRobin"},
                "edgeStream": self.edge_stream.to_dict(),
                "edged": self.edged.to_dict(),
                "eventBus": {
                    "enable": True,
                    "mqttMode": 2,
                    "mqttQOS": 0,
                    "mqttRetain": False,
                    "mqttServerExternal": "tcp://127.0.0.1:1883",
                    "mqttServerInternal": "tcp://127.0.0.1:1884",
                    "mqttSessionQueueSize": 100,
                },
                "metaManager": {
                    "contextSendGroup": "hub",
                    "contextSendModule": "websocket",
                    "enable": True,
                    "podStatusSyncInterval": 60,
                },
                "serviceBus": {"enable": False},
            },
        }

    def directory(self, paths: EdgePaths) -> Path:
        return paths.config_dir

    def documents(self, paths: EdgePaths) -> list[tuple[Path, dict[str, Any]]]:
        return [(paths.edgecore_yaml, self.to_dict())]


# ---- legacy layout (< 1.2.0) -------------------------------------------------


@dataclass
class LegacyConfig:
    """The ``edge.yaml`` + ``modules.yaml`` pair."""

    node_id: str
    websocket_url: str
    runtime_type: str = ""
    cert_dir: str = "/etc/kubeedge/certs"
    enabled_modules: list[str] = field(default_factory=lambda: list(LEGACY_ENABLED_MODULES))

    variant: ClassVar[SchemaVariant] = SchemaVariant.LEGACY

    def to_dict(self) -> dict[str, Any]:
        return {
            "mqtt": {
                "server": "tcp://127.0.0.1:1883",
                "internal-server": "tcp://127.0.0.1:1884",
                "mode": 0,
                "session-queue-size": 100,
                "access-timeout": 0,
                "qos": 0,
                "retain": False,
            },
            "edgehub": {
                "websocket": {
                    "url": self.websocket_url,
                    "certfile": f"{self.cert_dir}/edge.crt",
                    "keyfile": f"{self.cert_dir}/edge.key",
                    "handshake-timeout": 30,
                    "write-deadline": 15,
                    "read-deadline": 15,
                },
                "controller": {
                    "protocol": "websocket",
                    "heartbeat": 15,
                    "project-id": DEFAULT_PROJECT_ID,
                    "node-id": self.node_id,
                },
            },
            "edged": {
                "register-node-namespace": "default",
                "hostname-override": self.node_id,
                "interface-name": "eth0",
                "edged-memory-capacity-bytes": 7852396000,
                "node-status-update-frequency": 10,
                "device-plugin-enabled": False,
                "gpu-plugin-enabled": False,
                "image-gc-high-threshold": 80,
                "image-gc-low-threshold": 40,
                "maximum-dead-containers-per-container": 1,
                "docker-address": "unix:///var/run/docker.sock",
                "runtime-type": self.runtime_type,
                "remote-runtime-endpoint": DEFAULT_RUNTIME_ENDPOINT,
                "remote-image-endpoint": DEFAULT_RUNTIME_ENDPOINT,
                "runtime-request-timeout": 2,
                "podsandbox-image": "kubeedge/pause:3.1",
                "image-pull-progress-deadline": 60,
                "cgroup-driver": CGroupDriver.CGROUPFS.value,
            },
            "mesh": {"loadbalance": {"strategy-name": "RoundRobin"}},
        }

    def modules_dict(self) -> dict[str, Any]:
        return {"modules": {"enabled": list(self.enabled_modules)}}

    def directory(self, paths: EdgePaths) -> Path:
        return paths.legacy_conf_dir

    def documents(self, paths: EdgePaths) -> list[tuple[Path, dict[str, Any]]]:
        return [
            (paths.legacy_edge_yaml, self.to_dict()),
            (paths.legacy_modules_yaml, self.modules_dict()),
        ]


ConfigDocument = Union[ModernConfig, LegacyConfig]


# ---- writing -----------------------------------------------------------------


def write_yaml_file(path: Path, payload: dict[str, Any]) -> None:
    """Serialize ``payload`` and replace ``path`` atomically."""
    try:
        serialized = yaml.safe_dump(payload, default_flow_style=False, sort_keys=False)
    except yaml.YAMLError as exc:
        raise SerializationError(f"failed to serialize {path.name}: {exc}") from exc

    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)
            tmp_file.write(serialized)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.replace(tmp_path, path)
    except OSError as exc:
        raise SerializationError(f"failed to write {path}: {exc}") from exc
    logger.debug("Wrote %s", path)


class ConfigBuilder:
    """Builds and persists the config document for one release.

    ``ops`` supplies ``generate_unique_id`` and ``copy_file``; see
    :class:`edgeadm_cli.host.HostOperations`.
    """

    def __init__(self, paths: EdgePaths, ops: Any):
        self.paths = paths
        self.ops = ops

    def build(self, params: DeploymentParameters, version: ToolVersion) -> ConfigDocument:
        if select_variant(version) is SchemaVariant.MODERN:
            return self._build_modern(params, version)
        return self._build_legacy(params)

    def _build_modern(self, params: DeploymentParameters, version: ToolVersion) -> ModernConfig:
        config = ModernConfig.default(self.paths)
        hub, edged, stream = config.edge_hub, config.edged, config.edge_stream

        hub.websocket_server = params.cloud_core_ip
        if params.edge_node_name:
            edged.hostname_override = params.edge_node_name
        if params.edge_node_ip:
            edged.node_ip = params.edge_node_ip
        if params.runtime_type:
            edged.runtime_type = params.runtime_type
        if params.cgroup_driver:
            try:
                edged.cgroup_driver = CGroupDriver(params.cgroup_driver).value
            except ValueError:
                raise UnsupportedCGroupDriverError(params.cgroup_driver) from None
        if params.remote_runtime_endpoint:
            edged.remote_runtime_endpoint = params.remote_runtime_endpoint
            edged.remote_image_endpoint = params.remote_runtime_endpoint
        if params.token:
            hub.token = params.token

        host = params.cloud_host
        hub.http_server = f"https://{host}:{params.cert_port or DEFAULT_CERT_PORT}"
        hub.quic_server = f"{host}:{params.quic_port or DEFAULT_QUIC_PORT}"
        stream.tunnel_server = f"{host}:{params.tunnel_port or DEFAULT_TUNNEL_PORT}"
        stream.enable = True

        if is_release_1_2(version):
            hub.tls_private_key_file = str(self.paths.cloud_cert_dir / "server.key")
            hub.tls_cert_file = str(self.paths.cloud_cert_dir / "server.crt")
        return config

    def _build_legacy(self, params: DeploymentParameters) -> LegacyConfig:
        # Without an explicit node name every run registers a new node.
        node_id = params.edge_node_name or self.ops.generate_unique_id()
        server = params.cloud_core_ip or "0.0.0.0"
        url = f"wss://{server}:{DEFAULT_WEBSOCKET_PORT}/{DEFAULT_PROJECT_ID}/{node_id}/events"
        return LegacyConfig(
            node_id=node_id,
            websocket_url=url,
            runtime_type=params.runtime_type or "",
            cert_dir=str(self.paths.cloud_cert_dir),
        )

    def persist(self, document: ConfigDocument, override_path: Optional[str] = None) -> list[Advisory]:
        """Write ``document`` and apply the optional local override file.

        Returns the advisories from best-effort steps.
        """
        directory = document.directory(self.paths)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DirectoryCreateError(f"not able to create {directory} folder path") from exc

        for path, payload in document.documents(self.paths):
            write_yaml_file(path, payload)

        advisories: list[Advisory] = []
        if override_path:
            advisory = self.ops.copy_file(Path(override_path), self.paths.edgecore_yaml)
            if not advisory.ok:
                logger.warning("Config override not applied: %s", advisory.message)
            advisories.append(advisory)
        return advisories

    def create_config_files(
        self, params: DeploymentParameters, version: ToolVersion
    ) -> tuple[ConfigDocument, list[Advisory]]:
        document = self.build(params, version)
        logger.info("Writing %s config for edgecore %s", document.variant.value, version)
        return document, self.persist(document, params.config_path)
