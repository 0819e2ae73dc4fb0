"""
Entry point for the Chapbook LSP server.

Usage:
    python -m chapbook_analyzer.lsp
"""

from .server import start_server

if __name__ == "__main__":
    start_server()
