"""Source-side Data Pump export service for oramigrator."""

import os
import re
from typing import Callable

from oramigrator.constants import (
    DUMP_FILENAME,
    EXPDP_CMD,
    EXPORT_DIRECTORY,
    EXPORT_LOGFILE,
    EXPORT_USER,
    SQLPLUS_CMD,
)
from oramigrator.errors import MigratorError
from oramigrator.errors_catalog import actionable_error
from oramigrator.models import RunConfiguration, WorkspaceLayout


class SourceExportService:
    """Prepares the export user on the local database and runs expdp."""

    SESSION_SETTINGS = (
        "SET HEADING OFF",
        "SET FEEDBACK OFF",
        "SET ECHO OFF",
        "SET PAGESIZE 0",
        "SET VERIFY OFF",
    )

    def __init__(self, logger, console):
        self.logger = logger
        self.console = console

    @staticmethod
    def parse_count(raw_output: str) -> int:
        """Recover a single-digit count from unformatted sqlplus output.

        Every non-digit character is dropped and the last remaining digit is
        the result, so any banner or format change in the client output can
        break this.
        """
        digits = re.sub(r"\D", "", raw_output or "")
        if not digits:
            raise MigratorError(
                f"Could not read a numeric result from {SQLPLUS_CMD} output: {raw_output!r}"
            )
        return int(digits[-1])

    @staticmethod
    def to_database_path(path: str) -> str:
        return os.path.abspath(path).replace("\\", "/")

    def build_session(self, config: RunConfiguration, statements) -> str:
        lines = [
            "WHENEVER SQLERROR EXIT SQL.SQLCODE",
            f'CONNECT {config.db_user}/"{config.db_password}" AS SYSDBA',
        ]
        lines.extend(self.SESSION_SETTINGS)
        lines.extend(statements)
        lines.append("EXIT;")
        return "\n".join(lines) + "\n"

    def run_sysdba_session(self, config: RunConfiguration, statements, run_cmd: Callable):
        session = self.build_session(config, statements)
        return run_cmd(
            [SQLPLUS_CMD, "-S", "/nolog"],
            check=True,
            capture_output=True,
            input_text=session,
        )

    def export_user_exists(self, config: RunConfiguration, run_cmd: Callable) -> bool:
        result = self.run_sysdba_session(
            config,
            [f"SELECT COUNT(*) FROM dba_users WHERE username = '{EXPORT_USER}';"],
            run_cmd,
        )
        count = self.parse_count(result.stdout)
        self.logger.debug("Export user %s count: %s", EXPORT_USER, count)
        return count > 0

    def build_export_user_statements(self, config: RunConfiguration, dump_dir: str):
        return [
            f'CREATE USER {EXPORT_USER} IDENTIFIED BY "{config.export_user_password}";',
            f"GRANT CREATE SESSION, DATAPUMP_EXP_FULL_DATABASE TO {EXPORT_USER};",
            f"CREATE OR REPLACE DIRECTORY {EXPORT_DIRECTORY} AS '{self.to_database_path(dump_dir)}';",
            f"GRANT READ, WRITE ON DIRECTORY {EXPORT_DIRECTORY} TO {EXPORT_USER};",
        ]

    def ensure_export_user(self, config: RunConfiguration, layout: WorkspaceLayout, run_cmd: Callable):
        if self.export_user_exists(config, run_cmd):
            self.logger.info("Export user %s already exists.", EXPORT_USER)
            return False

        self.console.print(f"[blue]Creating export user {EXPORT_USER}...[/blue]")
        self.logger.info("Creating export user %s and directory %s", EXPORT_USER, EXPORT_DIRECTORY)
        self.run_sysdba_session(
            config,
            self.build_export_user_statements(config, layout.dump_dir),
            run_cmd,
        )
        return True

    def build_export_command(self, config: RunConfiguration):
        return [
            EXPDP_CMD,
            f'{EXPORT_USER}/"{config.export_user_password}"',
            f"DIRECTORY={EXPORT_DIRECTORY}",
            f"DUMPFILE={DUMP_FILENAME}",
            f"LOGFILE={EXPORT_LOGFILE}",
            f"SCHEMAS={config.schemas}",
        ]

    def log_export_output(self, result):
        """Relay expdp's stdout and stderr to the log, one record per line."""
        output = "\n".join(part for part in (result.stdout, result.stderr) if part)
        for line in output.splitlines():
            if line.strip():
                self.logger.info("%s: %s", EXPDP_CMD, line.rstrip())

    def export_schemas(self, config: RunConfiguration, layout: WorkspaceLayout, run_cmd: Callable) -> str:
        self.ensure_export_user(config, layout, run_cmd)

        self.console.print(f"[blue]Exporting schemas {config.schemas}...[/blue]")
        self.logger.info("Exporting schemas %s to %s", config.schemas, layout.dump_file)

        # expdp status is not trusted; the dump file on disk decides
        result = run_cmd(self.build_export_command(config), check=False, capture_output=True)
        self.log_export_output(result)
        if result.returncode != 0:
            self.logger.warning("%s exited with code %s", EXPDP_CMD, result.returncode)

        if not os.path.isfile(layout.dump_file):
            raise MigratorError(
                actionable_error("dump_missing", path=layout.dump_file, log=EXPORT_LOGFILE)
            )

        self.console.print(f"[green]Dump file created: {layout.dump_file}[/green]")
        self.logger.info("Dump file created: %s", layout.dump_file)
        return layout.dump_file
