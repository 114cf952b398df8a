"""Host-side operations the installer depends on.

This module provides the logic for:
  1. Looking up and killing the edgecore process
  2. Fetching a KubeEdge release tarball, verifying and unpacking it
  3. Starting edgecore, through systemd when available

:class:`HostOperations` is the default implementation; the installer accepts
any object with the same methods.
"""

import hashlib
import logging
import platform
import shutil
import subprocess
import tarfile
import tempfile
import uuid
from pathlib import Path
from typing import Optional

import httpx
from rich.console import Console

from .config import (
    EDGECORE_BINARY_NAME,
    EDGECORE_SERVICE_FILE,
    SYSTEMD_RUNTIME_DIR,
    EdgePaths,
    clean_subprocess_env,
)
from .errors import ExternalOperationError
from .params import Advisory, InstallOptions

logger = logging.getLogger(__name__)

ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
}


def host_arch() -> str:
    """Release architecture name for this machine."""
    machine = platform.machine().lower()
    try:
        return ARCH_ALIASES[machine]
    except KeyError:
        raise ExternalOperationError(
            f"unsupported architecture: {machine}", step="download"
        ) from None


def tarball_name(version: str, arch: str) -> str:
    return f"kubeedge-v{version}-linux-{arch}.tar.gz"


def sha512_of(path: Path) -> str:
    """SHA-512 of a file, read in chunks."""
    h = hashlib.sha512()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


class HostOperations:
    """Process, download and filesystem primitives on the local machine."""

    def __init__(
        self,
        paths: EdgePaths,
        *,
        console: Optional[Console] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.paths = paths
        self.console = console or Console()
        self._http = http_client

    # ---- helpers ---------------------------------------------------------

    def _run(self, cmd: list[str], *, check: bool = True, **kwargs) -> subprocess.CompletedProcess:
        logger.debug("$ %s", " ".join(cmd))
        kwargs.setdefault("env", clean_subprocess_env())
        return subprocess.run(cmd, check=check, **kwargs)

    def has_systemd(self) -> bool:
        return SYSTEMD_RUNTIME_DIR.is_dir() and shutil.which("systemctl") is not None

    def _client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(follow_redirects=True, timeout=60.0)
        return self._http

    def _download(self, url: str, dest: Path) -> None:
        logger.info("Downloading %s", url)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            with self._client().stream("GET", url) as response:
                response.raise_for_status()
                with open(dest, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as exc:
            raise ExternalOperationError(f"failed to download {url}: {exc}", step="download") from exc
        except OSError as exc:
            raise ExternalOperationError(f"failed to save {dest}: {exc}", step="download") from exc

    def _expected_checksum(self, url: str) -> Optional[str]:
        """Published SHA-512 for a tarball, or None when none is published."""
        try:
            response = self._client().get(url)
        except httpx.HTTPError as exc:
            raise ExternalOperationError(f"failed to fetch {url}: {exc}", step="download") from exc
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise ExternalOperationError(
                f"failed to fetch {url}: HTTP {response.status_code}", step="download"
            )
        text = response.text.strip()
        return text.split()[0].lower() if text else None

    # ---- process lookup --------------------------------------------------

    def is_process_running(self, name: str) -> bool:
        try:
            proc = self._run(["pgrep", "-x", name], check=False, capture_output=True)
        except FileNotFoundError as exc:
            raise ExternalOperationError(
                f"required command not found: {exc.filename}", step="preflight"
            ) from exc
        except OSError as exc:
            raise ExternalOperationError(f"cannot run pgrep: {exc}", step="preflight") from exc
        if proc.returncode == 0:
            return True
        if proc.returncode == 1:
            return False
        raise ExternalOperationError(
            f"pgrep {name} failed (exit {proc.returncode})", step="preflight"
        )

    def kill_process(self, name: str) -> None:
        if self.paths.systemd_unit.exists() and self.has_systemd():
            self._run(["systemctl", "stop", name], check=False)

        try:
            proc = self._run(["pkill", "-x", name], check=False, capture_output=True)
        except FileNotFoundError as exc:
            raise ExternalOperationError(
                f"required command not found: {exc.filename}", step="teardown"
            ) from exc
        # pkill exits 1 when nothing matched.
        if proc.returncode not in (0, 1):
            stderr = proc.stderr.decode(errors="replace").strip() if proc.stderr else ""
            raise ExternalOperationError(
                f"failed to kill {name} (exit {proc.returncode})",
                step="teardown",
                details={"stderr": stderr},
            )
        if proc.returncode == 0:
            logger.info("Stopped %s", name)

    # ---- acquisition -----------------------------------------------------

    def acquire_binaries(self, options: InstallOptions) -> None:
        version = str(options.version)
        filename = tarball_name(version, host_arch())

        with tempfile.TemporaryDirectory(prefix="edgeadm-") as work:
            work_dir = Path(work)
            local = options.tarball_path / filename if options.tarball_path else None
            if local is not None and local.is_file():
                self.console.print(f"[dim]Using local tarball {local}[/dim]")
                tarball = local
            else:
                tarball = work_dir / filename
                url = options.urls.tarball_url(version, filename)
                self.console.print(f"[cyan]Downloading {filename}...[/cyan]")
                self._download(url, tarball)
                expected = self._expected_checksum(
                    options.urls.tarball_url(version, f"checksum_{filename}.txt")
                )
                if expected is None:
                    logger.warning("No checksum published for %s, skipping verification", filename)
                elif sha512_of(tarball) != expected:
                    raise ExternalOperationError(
                        f"checksum mismatch for {filename}", step="download"
                    )

            self._install_from_tarball(tarball, work_dir, version, options.component)

        if self.has_systemd():
            self._download(
                options.urls.service_file_url(_release_line(version), EDGECORE_SERVICE_FILE),
                self.paths.service_file,
            )

    def _install_from_tarball(self, tarball: Path, work_dir: Path, version: str, component: str) -> None:
        try:
            with tarfile.open(tarball, "r:gz") as archive:
                member = next(
                    (m for m in archive.getmembers() if m.isfile() and m.name.endswith(f"edge/{component}")),
                    None,
                )
                if member is None:
                    raise ExternalOperationError(
                        f"{component} not found in {tarball.name}", step="download"
                    )
                source = archive.extractfile(member)
                if source is None:
                    raise ExternalOperationError(
                        f"cannot read {member.name} from {tarball.name}", step="download"
                    )
                with source, open(work_dir / component, "wb") as out:
                    shutil.copyfileobj(source, out)
        except (tarfile.TarError, OSError) as exc:
            raise ExternalOperationError(f"failed to unpack {tarball.name}: {exc}", step="download") from exc

        try:
            self.paths.bin_dir.mkdir(parents=True, exist_ok=True)
            target = self.paths.bin_dir / component
            shutil.copyfile(work_dir / component, target)
            target.chmod(0o755)
        except OSError as exc:
            raise ExternalOperationError(f"failed to install {component}: {exc}", step="download") from exc
        self.console.print(f"[green]Installed:[/green] {target} (v{version})")

    # ---- start -----------------------------------------------------------

    def start_agent(self) -> None:
        if self.paths.service_file.exists() and self.has_systemd():
            self._start_with_systemd()
        else:
            self._start_detached()

    def _start_with_systemd(self) -> None:
        try:
            shutil.copyfile(self.paths.service_file, self.paths.systemd_unit)
            self._run(["systemctl", "daemon-reload"])
            self._run(["systemctl", "enable", EDGECORE_BINARY_NAME])
            self._run(["systemctl", "start", EDGECORE_BINARY_NAME])
        except subprocess.CalledProcessError as exc:
            raise ExternalOperationError(
                f"systemctl command failed (exit {exc.returncode})", step="start"
            ) from exc
        except OSError as exc:
            raise ExternalOperationError(f"failed to install systemd unit: {exc}", step="start") from exc
        self.console.print(f"[green]Service enabled and started:[/green] {EDGECORE_SERVICE_FILE}")

    def _start_detached(self) -> None:
        binary = self.paths.edgecore_binary
        try:
            log = open(self.paths.log_file, "ab")
        except OSError as exc:
            raise ExternalOperationError(f"cannot open {self.paths.log_file}: {exc}", step="start") from exc
        try:
            subprocess.Popen(
                [str(binary)],
                stdout=log,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                env=clean_subprocess_env(),
                start_new_session=True,
            )
        except OSError as exc:
            raise ExternalOperationError(f"failed to start {binary}: {exc}", step="start") from exc
        finally:
            log.close()
        self.console.print(f"[green]Started[/green] {binary} [dim](logs: {self.paths.log_file})[/dim]")

    # ---- misc ------------------------------------------------------------

    def copy_file(self, src: Path, dst: Path) -> Advisory:
        try:
            shutil.copyfile(src, dst)
        except OSError as exc:
            return Advisory.failure(f"fail to copy file {src} to {dst}: {exc}")
        return Advisory.success(f"copied {src} to {dst}")

    def generate_unique_id(self) -> str:
        return str(uuid.uuid4())


def _release_line(version: str) -> str:
    """``1.3.1`` -> ``1.3``, the branch name used for service files."""
    return ".".join(version.split(".")[:2])
