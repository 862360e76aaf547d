"""
LSP server publishing lint annotations as editor diagnostics.
"""

from .server import create_server, start_server

__all__ = ["create_server", "start_server"]
