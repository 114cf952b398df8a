"""Reset command: stop edgecore on this node."""

import click
from rich.console import Console
from rich.prompt import Confirm

from ..config import DEFAULT_KUBEEDGE_VERSION, EdgePaths
from ..errors import EdgeInstallError
from ..host import HostOperations
from ..installer import EdgeCoreInstaller
from ..params import DeploymentParameters
from ..utils import fail, print_success
from ..version import ToolVersion

console = Console()


@click.command()
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def reset(force):
    """Stop edgecore on this node.

    Installed binaries and config files are left in place.

    \b
    Examples:
        sudo edgeadm reset
        sudo edgeadm reset --force
    """
    if not force and not Confirm.ask("Stop edgecore on this node?", default=False):
        console.print("[dim]Aborted.[/dim]")
        return

    paths = EdgePaths.from_env()
    installer = EdgeCoreInstaller(
        DeploymentParameters(),
        ToolVersion.parse(DEFAULT_KUBEEDGE_VERSION),
        HostOperations(paths, console=console),
        paths,
    )
    try:
        installer.tear_down()
    except EdgeInstallError as exc:
        fail(exc)

    print_success("edgecore stopped")
