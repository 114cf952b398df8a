"""edgeadm - install and manage the KubeEdge edge node agent."""

__version__ = "0.3.0"
