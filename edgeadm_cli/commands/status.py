"""Status command: report what edgecore is doing on this node."""

import click
from rich.console import Console
from rich.table import Table

from ..config import DEFAULT_KUBEEDGE_VERSION, EdgePaths
from ..errors import EdgeInstallError
from ..host import HostOperations
from ..installer import EdgeCoreInstaller, LifecycleState
from ..params import DeploymentParameters
from ..utils import fail
from ..version import ToolVersion

console = Console()

STATE_STYLES = {
    LifecycleState.RUNNING: "green",
    LifecycleState.STOPPED: "yellow",
    LifecycleState.INSTALLED: "cyan",
    LifecycleState.NOT_INSTALLED: "red",
}


@click.command()
def status():
    """Show whether edgecore is installed and running."""
    paths = EdgePaths.from_env()
    installer = EdgeCoreInstaller(
        DeploymentParameters(),
        ToolVersion.parse(DEFAULT_KUBEEDGE_VERSION),
        HostOperations(paths, console=console),
        paths,
    )
    try:
        state = installer.state()
    except EdgeInstallError as exc:
        fail(exc)

    table = Table(title="edgecore")
    table.add_column("Item", style="cyan")
    table.add_column("Value")
    style = STATE_STYLES[state]
    table.add_row("State", f"[{style}]{state.value}[/{style}]")
    table.add_row("Binary", str(paths.edgecore_binary))
    if paths.edgecore_yaml.exists():
        table.add_row("Config", str(paths.edgecore_yaml))
    elif paths.legacy_edge_yaml.exists():
        table.add_row("Config", f"{paths.legacy_edge_yaml} (legacy)")
    console.print(table)
