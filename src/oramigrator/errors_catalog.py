"""Actionable error catalog for oramigrator."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "output_dir_not_found": {
        "what": "Output directory not found: {path}",
        "next": "Create the directory before running the migration.",
    },
    "invalid_port": {
        "what": "Invalid container port: {port}. The port must be between {low} and {high}.",
        "next": "Pass a four-digit port with `--port`.",
    },
    "empty_schemas": {
        "what": "No schema names were provided.",
        "next": "Pass one or more comma-separated schema names with `--schemas`.",
    },
    "command_not_found": {
        "what": "Required command not found: {command}",
        "next": "Install it or add its directory to PATH and try again.",
    },
    "dump_missing": {
        "what": "Dump file was not created: {path}",
        "next": "Inspect `{log}` in the dump directory and the export output above.",
    },
    "import_failed": {
        "what": "The import inside container {container} reported a failure.",
        "next": "Inspect the container logs with `{engine} logs {container}`.",
    },
    "import_timed_out": {
        "what": "The import inside container {container} did not finish within {minutes} minute(s).",
        "next": "Inspect the container logs or raise `--import-timeout-minutes`.",
    },
}


def actionable_error(code: str, **kwargs) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
