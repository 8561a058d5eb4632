"""mysql-dumper: MySQL dumps and imports, directly or through SSH tunnels."""

__version__ = "0.1.0"
