"""CLI command modules.

Command Groups:
- server: Manage saved server profiles
- dump: Export a database to a SQL file
- import: Load a SQL file into a database
"""

from .dump import dump
from .import_db import import_db
from .server import server_app

__all__ = ["dump", "import_db", "server_app"]
