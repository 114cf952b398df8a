"""CLI commands for edgeadm."""

from .join import join
from .reset import reset
from .status import status

__all__ = ["join", "reset", "status"]
