"""edgelan - declarative LAN convergence for SASE edge sites."""

__version__ = "0.1.0"
