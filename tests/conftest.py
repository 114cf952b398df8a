"""Pytest configuration for edgeadm tests."""

import shutil
import uuid
from pathlib import Path

import pytest
import yaml

from edgeadm_cli.config import EdgePaths
from edgeadm_cli.params import Advisory


class FakeHostOperations:
    """Records every host call; never touches processes or the network."""

    def __init__(self, running: bool = False):
        self.running = running
        self.calls: list[tuple] = []
        self.errors: dict[str, Exception] = {}
        self.config_seen_at_start: list[Path] = []
        self.paths: EdgePaths | None = None

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.errors:
            raise self.errors[name]

    @property
    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]

    def is_process_running(self, name: str) -> bool:
        self._record("is_process_running", name)
        return self.running

    def acquire_binaries(self, options) -> None:
        self._record("acquire_binaries", options)

    def start_agent(self) -> None:
        self._record("start_agent")
        if self.paths is not None:
            self.config_seen_at_start = [
                p
                for p in (self.paths.edgecore_yaml, self.paths.legacy_edge_yaml)
                if p.exists()
            ]
        self.running = True

    def kill_process(self, name: str) -> None:
        self._record("kill_process", name)
        self.running = False

    def copy_file(self, src: Path, dst: Path) -> Advisory:
        self.calls.append(("copy_file", src, dst))
        try:
            shutil.copyfile(src, dst)
        except OSError as exc:
            return Advisory.failure(f"fail to copy file {src} to {dst}: {exc}")
        return Advisory.success()

    def generate_unique_id(self) -> str:
        return str(uuid.uuid4())


@pytest.fixture
def edge_paths(tmp_path) -> EdgePaths:
    return EdgePaths(
        root=tmp_path / "kubeedge",
        bin_dir=tmp_path / "bin",
        systemd_unit_dir=tmp_path / "systemd",
    )


@pytest.fixture
def fake_ops(edge_paths) -> FakeHostOperations:
    ops = FakeHostOperations()
    ops.paths = edge_paths
    return ops


def load_yaml(path: Path) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)
