"""Main entry point for the edgeadm CLI."""

import click

from . import __version__
from .commands import join, reset, status
from .utils import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="edgeadm")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs")
def cli(verbose: bool) -> None:
    """edgeadm - Join this machine to a KubeEdge cluster as an edge node.

    \b
    Commands:
      join     Install edgecore, write its config and start it
      reset    Stop edgecore on this node
      status   Show whether edgecore is installed and running

    \b
    Examples:
      sudo edgeadm join --cloudcore-ipport 192.168.1.10:10000 --token TOKEN
      sudo edgeadm join --cloudcore-ipport 10.0.0.5:10000 --kubeedge-version 1.1.0
      sudo edgeadm reset
      edgeadm status
    """
    configure_logging(verbose)


# Register commands
cli.add_command(join)
cli.add_command(reset)
cli.add_command(status)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
