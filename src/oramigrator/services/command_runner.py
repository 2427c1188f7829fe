"""Subprocess execution service for oramigrator."""

import subprocess
from typing import List, Optional

from oramigrator.errors import MigratorError
from oramigrator.errors_catalog import actionable_error


class CommandRunner:
    """Runs external commands with consistent error handling."""

    def __init__(self, logger, secrets=None):
        self.logger = logger
        self.secrets = [secret for secret in (secrets or []) if secret]

    def mask(self, text: str) -> str:
        for secret in self.secrets:
            text = text.replace(secret, "****")
        return text

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        input_text: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        cmd_str = self.mask(" ".join(cmd))
        self.logger.debug("Executing: %s", cmd_str)

        try:
            result = subprocess.run(
                cmd,
                text=True,
                capture_output=capture_output,
                input=input_text,
            )
        except FileNotFoundError as exc:
            raise MigratorError(actionable_error("command_not_found", command=cmd[0])) from exc
        except Exception as exc:
            raise MigratorError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if capture_output and result.stdout:
            self.logger.debug("Command output: %s", self.mask(result.stdout.strip()))

        if result.returncode == 0:
            return result

        details = ""
        if capture_output:
            # sqlplus reports errors on stdout
            details = (result.stderr or "").strip() or (result.stdout or "").strip()
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if details:
            message = f"{message}\n{self.mask(details)}"

        if check:
            raise MigratorError(message)

        self.logger.debug(message)
        return result
