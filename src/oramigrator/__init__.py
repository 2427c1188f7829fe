"""
oramigrator - move Oracle schemas from a local database into a container
"""

__version__ = "0.3.0"

from .core import MigratorError, OracleMigrator

__all__ = ["OracleMigrator", "MigratorError"]
