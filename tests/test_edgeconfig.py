import pytest
import yaml

from conftest import load_yaml
from edgeadm_cli.config import DEFAULT_PROJECT_ID, EdgePaths
from edgeadm_cli.edgeconfig import ConfigBuilder, LegacyConfig, ModernConfig, write_yaml_file
from edgeadm_cli.errors import DirectoryCreateError, SerializationError, UnsupportedCGroupDriverError
from edgeadm_cli.params import DeploymentParameters
from edgeadm_cli.version import SchemaVariant, ToolVersion

V = ToolVersion.parse


@pytest.fixture
def builder(edge_paths, fake_ops):
    return ConfigBuilder(edge_paths, fake_ops)


# ---- modern ------------------------------------------------------------------


def test_modern_defaults_derived_from_cloud_host(builder):
    doc = builder.build(DeploymentParameters(cloud_core_ip="1.2.3.4:443"), V("1.3.0"))

    assert isinstance(doc, ModernConfig)
    assert doc.variant is SchemaVariant.MODERN
    assert doc.edge_hub.websocket_server == "1.2.3.4:443"
    assert doc.edge_hub.http_server == "https://1.2.3.4:10002"
    assert doc.edge_hub.quic_server == "1.2.3.4:10001"
    assert doc.edge_stream.tunnel_server == "1.2.3.4:10004"
    assert doc.edge_stream.enable is True


def test_modern_port_overrides(builder):
    params = DeploymentParameters(
        cloud_core_ip="10.0.0.1:10000", cert_port=20002, quic_port=20001, tunnel_port=20004
    )
    doc = builder.build(params, V("1.4.0"))

    assert doc.edge_hub.http_server == "https://10.0.0.1:20002"
    assert doc.edge_hub.quic_server == "10.0.0.1:20001"
    assert doc.edge_stream.tunnel_server == "10.0.0.1:20004"


def test_modern_unset_fields_keep_defaults(builder):
    default = ModernConfig.default(builder.paths)
    doc = builder.build(
        DeploymentParameters(cloud_core_ip="1.2.3.4:10000", edge_node_name="", token=""),
        V("1.3.0"),
    )

    assert doc.edged == default.edged
    assert doc.edge_hub.token == ""
    assert doc.edge_hub.tls_cert_file == default.edge_hub.tls_cert_file


def test_modern_overlays_explicit_fields(builder):
    params = DeploymentParameters(
        cloud_core_ip="1.2.3.4:10000",
        edge_node_name="edge-1",
        edge_node_ip="192.168.0.7",
        runtime_type="remote",
        remote_runtime_endpoint="unix:///run/containerd/containerd.sock",
        token="secret",
    )
    doc = builder.build(params, V("1.3.0"))

    assert doc.edged.hostname_override == "edge-1"
    assert doc.edged.node_ip == "192.168.0.7"
    assert doc.edged.runtime_type == "remote"
    assert doc.edged.remote_runtime_endpoint == "unix:///run/containerd/containerd.sock"
    assert doc.edged.remote_image_endpoint == "unix:///run/containerd/containerd.sock"
    assert doc.edge_hub.token == "secret"


@pytest.mark.parametrize("driver", ["systemd", "cgroupfs"])
def test_modern_cgroup_driver(builder, driver):
    doc = builder.build(DeploymentParameters(cloud_core_ip="1.2.3.4:1", cgroup_driver=driver), V("1.3.0"))
    assert doc.edged.cgroup_driver == driver


def test_modern_rejects_unknown_cgroup_driver(builder):
    with pytest.raises(UnsupportedCGroupDriverError) as excinfo:
        builder.build(DeploymentParameters(cloud_core_ip="1.2.3.4:1", cgroup_driver="invalid"), V("1.3.0"))
    assert excinfo.value.driver == "invalid"
    assert "invalid" in str(excinfo.value)


@pytest.mark.parametrize("version", ["1.2.0", "1.2.3", "1.2.9"])
def test_release_1_2_uses_cloud_tls_files(builder, edge_paths, version):
    doc = builder.build(DeploymentParameters(cloud_core_ip="1.2.3.4:1"), V(version))
    assert doc.edge_hub.tls_private_key_file == str(edge_paths.cloud_cert_dir / "server.key")
    assert doc.edge_hub.tls_cert_file == str(edge_paths.cloud_cert_dir / "server.crt")


def test_release_1_3_keeps_default_tls_files(builder, edge_paths):
    doc = builder.build(DeploymentParameters(cloud_core_ip="1.2.3.4:1"), V("1.3.0"))
    assert doc.edge_hub.tls_private_key_file == str(edge_paths.cloud_cert_dir / "edge.key")
    assert doc.edge_hub.tls_cert_file == str(edge_paths.cloud_cert_dir / "edge.crt")


def test_release_1_1_takes_legacy_branch(builder):
    doc = builder.build(DeploymentParameters(cloud_core_ip="1.2.3.4"), V("1.1.9"))
    assert isinstance(doc, LegacyConfig)


def test_modern_persist_writes_single_document(builder, edge_paths):
    doc, advisories = builder.create_config_files(
        DeploymentParameters(cloud_core_ip="1.2.3.4:10000", token="t"), V("1.3.0")
    )

    assert advisories == []
    data = load_yaml(edge_paths.edgecore_yaml)
    assert data["kind"] == "EdgeCore"
    hub = data["modules"]["edgeHub"]
    assert hub["websocket"]["server"] == "1.2.3.4:10000"
    assert hub["httpServer"] == "https://1.2.3.4:10002"
    assert hub["quic"]["server"] == "1.2.3.4:10001"
    assert hub["token"] == "t"
    assert data["modules"]["edgeStream"]["server"] == "1.2.3.4:10004"
    assert data["modules"]["edgeStream"]["enable"] is True
    assert not edge_paths.legacy_conf_dir.exists()


def test_persist_is_idempotent(builder, edge_paths):
    params = DeploymentParameters(cloud_core_ip="1.2.3.4:10000")
    builder.create_config_files(params, V("1.3.0"))
    builder.create_config_files(params, V("1.3.0"))
    assert list(edge_paths.config_dir.iterdir()) == [edge_paths.edgecore_yaml]


# ---- legacy ------------------------------------------------------------------


def test_legacy_generates_node_id_per_call(builder):
    params = DeploymentParameters(cloud_core_ip="1.2.3.4", edge_node_name="")
    first = builder.build(params, V("1.0.0"))
    second = builder.build(params, V("1.0.0"))

    assert first.node_id
    assert first.node_id != second.node_id
    assert f"/{first.node_id}/events" in first.websocket_url


def test_legacy_uses_node_name(builder):
    doc = builder.build(DeploymentParameters(cloud_core_ip="1.2.3.4", edge_node_name="node1"), V("1.0.0"))

    assert doc.node_id == "node1"
    assert doc.websocket_url == f"wss://1.2.3.4:10000/{DEFAULT_PROJECT_ID}/node1/events"


def test_legacy_defaults_server_address(builder):
    doc = builder.build(DeploymentParameters(edge_node_name="node1"), V("1.1.0"))
    assert doc.websocket_url.startswith("wss://0.0.0.0:10000/")


def test_legacy_copies_runtime_type_verbatim(builder):
    doc = builder.build(DeploymentParameters(cloud_core_ip="1.2.3.4", runtime_type="remote"), V("1.1.0"))
    assert doc.runtime_type == "remote"


def test_legacy_ignores_cgroup_driver(builder):
    doc = builder.build(DeploymentParameters(cloud_core_ip="1.2.3.4", cgroup_driver="invalid"), V("1.1.0"))
    assert isinstance(doc, LegacyConfig)


def test_legacy_persist_writes_two_documents(builder, edge_paths):
    doc, _ = builder.create_config_files(
        DeploymentParameters(cloud_core_ip="1.2.3.4", edge_node_name="node1", runtime_type="docker"),
        V("1.1.0"),
    )

    edge = load_yaml(edge_paths.legacy_edge_yaml)
    assert edge["edgehub"]["websocket"]["url"] == doc.websocket_url
    assert edge["edgehub"]["controller"]["node-id"] == "node1"
    assert edge["edged"]["runtime-type"] == "docker"
    modules = load_yaml(edge_paths.legacy_modules_yaml)
    assert "edged" in modules["modules"]["enabled"]
    assert not edge_paths.edgecore_yaml.exists()


def test_variants_have_disjoint_keys(builder):
    modern = builder.build(DeploymentParameters(cloud_core_ip="1.2.3.4:1"), V("1.3.0")).to_dict()
    legacy = builder.build(DeploymentParameters(cloud_core_ip="1.2.3.4"), V("1.1.0")).to_dict()
    assert not set(modern) & set(legacy)


# ---- override file and failures -----------------------------------------------


def test_override_file_replaces_generated_config(builder, edge_paths, tmp_path):
    override = tmp_path / "mine.yaml"
    override.write_text("custom: true\n")

    _, advisories = builder.create_config_files(
        DeploymentParameters(cloud_core_ip="1.2.3.4:1", config_path=str(override)), V("1.3.0")
    )

    assert [a.ok for a in advisories] == [True]
    assert edge_paths.edgecore_yaml.read_text() == "custom: true\n"


def test_missing_override_file_is_advisory(builder, edge_paths, tmp_path):
    _, advisories = builder.create_config_files(
        DeploymentParameters(cloud_core_ip="1.2.3.4:1", config_path=str(tmp_path / "missing.yaml")),
        V("1.3.0"),
    )

    assert len(advisories) == 1
    assert advisories[0].ok is False
    assert load_yaml(edge_paths.edgecore_yaml)["kind"] == "EdgeCore"


def test_directory_create_failure(fake_ops, tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    builder = ConfigBuilder(EdgePaths(root=blocker, bin_dir=tmp_path / "bin"), fake_ops)

    with pytest.raises(DirectoryCreateError):
        builder.create_config_files(DeploymentParameters(cloud_core_ip="1.2.3.4:1"), V("1.3.0"))


def test_serialization_failure(builder, monkeypatch):
    def boom(*args, **kwargs):
        raise yaml.YAMLError("cannot represent")

    monkeypatch.setattr(yaml, "safe_dump", boom)
    with pytest.raises(SerializationError):
        builder.create_config_files(DeploymentParameters(cloud_core_ip="1.2.3.4:1"), V("1.3.0"))


def test_write_yaml_file_leaves_no_temp_files(tmp_path):
    target = tmp_path / "out.yaml"
    write_yaml_file(target, {"a": 1})
    assert [p.name for p in tmp_path.iterdir()] == ["out.yaml"]
    assert load_yaml(target) == {"a": 1}
