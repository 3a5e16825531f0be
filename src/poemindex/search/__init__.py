"""Search cluster access."""

from .client import build_client, check_connectivity

__all__ = ["build_client", "check_connectivity"]
