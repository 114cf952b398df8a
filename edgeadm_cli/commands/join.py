"""Join command: install edgecore and connect it to cloudcore."""

import click
from rich.console import Console

from ..config import DEFAULT_KUBEEDGE_VERSION, DOWNLOAD_URL_ENV, REGION_ENV, EdgePaths
from ..errors import AlreadyRunningError, EdgeInstallError
from ..host import HostOperations
from ..installer import EdgeCoreInstaller
from ..params import DeploymentParameters
from ..utils import fail, parse_version, print_advisories, print_success

console = Console()

PORT = click.IntRange(1, 65535)


@click.command()
@click.option("--cloudcore-ipport", "-e", required=True, help="IP:port of cloudcore's websocket endpoint")
@click.option(
    "--kubeedge-version",
    default=DEFAULT_KUBEEDGE_VERSION,
    show_default=True,
    callback=parse_version,
    help="edgecore release to install, as x.y.z or a pre-release such as 1.3.0-beta.0",
)
@click.option("--edgenode-name", "-i", default="", help="Node name; defaults to the hostname")
@click.option("--edgenode-ip", default="", help="IP address reported for this node")
@click.option("--runtimetype", "-r", default="", help="Container runtime (docker, remote)")
@click.option("--remote-runtime-endpoint", "-p", default="", help="CRI endpoint for the remote runtime")
@click.option("--token", "-t", default="", help="Token issued by cloudcore for edge authentication")
@click.option("--certport", type=PORT, default=None, help="cloudcore HTTPS certificate port [10002]")
@click.option("--quicport", type=PORT, default=None, help="cloudcore QUIC port [10001]")
@click.option("--tunnelport", type=PORT, default=None, help="cloudcore stream tunnel port [10004]")
@click.option("--cgroupdriver", default="", help="cgroup driver: systemd or cgroupfs")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default="",
    help="Local edgecore.yaml copied over the generated one",
)
@click.option(
    "--tarballpath",
    type=click.Path(file_okay=False),
    default="",
    help="Directory holding a pre-downloaded release tarball",
)
@click.option("--download-url", envvar=DOWNLOAD_URL_ENV, default="", help="Custom release host")
@click.option("--region", envvar=REGION_ENV, default="", help="Release region; 'en' downloads from GitHub")
def join(
    cloudcore_ipport,
    kubeedge_version,
    edgenode_name,
    edgenode_ip,
    runtimetype,
    remote_runtime_endpoint,
    token,
    certport,
    quicport,
    tunnelport,
    cgroupdriver,
    config_path,
    tarballpath,
    download_url,
    region,
):
    """Install edgecore, write its config and start it.

    Refuses to run when edgecore is already running; run 'edgeadm reset' first.

    \b
    Examples:
        sudo edgeadm join -e 192.168.1.10:10000 -t TOKEN
        sudo edgeadm join -e 192.168.1.10:10000 --kubeedge-version 1.2.1 --cgroupdriver systemd
        sudo edgeadm join -e 192.168.1.10:10000 --region en
    """
    params = DeploymentParameters(
        cloud_core_ip=cloudcore_ipport,
        edge_node_name=edgenode_name,
        edge_node_ip=edgenode_ip,
        runtime_type=runtimetype,
        remote_runtime_endpoint=remote_runtime_endpoint,
        token=token,
        cert_port=certport,
        quic_port=quicport,
        tunnel_port=tunnelport,
        cgroup_driver=cgroupdriver,
        config_path=config_path,
        download_url=download_url,
        region=region,
        tarball_path=tarballpath,
    )
    paths = EdgePaths.from_env()
    installer = EdgeCoreInstaller(
        params, kubeedge_version, HostOperations(paths, console=console), paths
    )

    console.print(f"[cyan]Joining edge node to {cloudcore_ipport} (edgecore v{kubeedge_version})[/cyan]")
    try:
        advisories = installer.install()
    except AlreadyRunningError as exc:
        fail(exc, hint="Run: sudo edgeadm reset")
    except EdgeInstallError as exc:
        fail(exc)

    print_advisories(advisories)
    print_success("edgecore is installed and running")
    console.print("[dim]Check status: edgeadm status[/dim]")
