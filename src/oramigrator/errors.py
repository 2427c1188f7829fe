"""Domain errors for oramigrator."""


class MigratorError(RuntimeError):
    """Raised when the migration cannot continue safely."""
