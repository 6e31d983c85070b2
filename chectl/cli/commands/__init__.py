"""CLI command modules.

Command Groups:
- server: Che server lifecycle (start, stop, delete, status)
"""

from .server import server_app

__all__ = ["server_app"]
