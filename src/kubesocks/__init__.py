"""kubesocks - SOCKS5 proxy pod with a local port-forward into a cluster."""

__version__ = "0.1.0"
