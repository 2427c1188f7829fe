"""Run configuration and host prerequisite validation for oramigrator."""

import os
import shutil
from typing import Callable, Iterable

from oramigrator.constants import EXPDP_CMD, MAX_PORT, MIN_PORT, RESET_SCOPES, SQLPLUS_CMD
from oramigrator.errors import MigratorError
from oramigrator.errors_catalog import actionable_error


class ValidationService:
    """Rejects a run before any file system or container engine side effect."""

    def __init__(self, which: Callable = shutil.which):
        self.which = which

    def validate_output_dir(self, output_dir: str):
        if not output_dir or not os.path.isdir(output_dir):
            raise MigratorError(actionable_error("output_dir_not_found", path=output_dir))

    def validate_port(self, port) -> int:
        try:
            value = int(port)
        except (TypeError, ValueError):
            value = None

        if value is None or isinstance(port, bool) or not MIN_PORT <= value <= MAX_PORT:
            raise MigratorError(
                actionable_error("invalid_port", port=port, low=MIN_PORT, high=MAX_PORT)
            )
        return value

    @staticmethod
    def normalize_schemas(schemas) -> str:
        """Trim each comma-separated schema name and drop empty entries."""
        if not schemas:
            return ""
        names = [name.strip() for name in str(schemas).split(",")]
        return ",".join(name for name in names if name)

    def validate_schemas(self, schemas) -> str:
        normalized = self.normalize_schemas(schemas)
        if not normalized:
            raise MigratorError(actionable_error("empty_schemas"))
        return normalized

    def validate_reset_scope(self, reset_scope: str):
        if reset_scope not in RESET_SCOPES:
            raise MigratorError(
                f"Invalid reset scope '{reset_scope}'. Use one of: {', '.join(RESET_SCOPES)}."
            )

    def ensure_commands(self, commands: Iterable[str]):
        for command in commands:
            if self.which(command) is None:
                raise MigratorError(actionable_error("command_not_found", command=command))

    def validate_environment(self, container_engine: str, run_cmd: Callable, console):
        console.print("[blue]Validating prerequisites...[/blue]")
        self.ensure_commands([SQLPLUS_CMD, EXPDP_CMD, container_engine])
        run_cmd([container_engine, "--version"], capture_output=True)
        console.print(f"[green]{container_engine}, {SQLPLUS_CMD} and {EXPDP_CMD} are available.[/green]")
