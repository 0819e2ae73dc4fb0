"""
Chapbook Language Server Protocol implementation.

Provides IDE features for Chapbook stories written in Twee 3:
- Diagnostics
- Semantic tokens
- Completion
- Hover documentation
- Go-to-definition and find references
- Folding ranges
"""

from .server import start_server

__all__ = ["start_server"]
