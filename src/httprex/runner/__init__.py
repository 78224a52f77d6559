"""Session composition root and command-line entrypoint."""

from httprex.runner.session import HttpRexSession, build_provider

__all__ = [
    "HttpRexSession",
    "build_provider",
]
