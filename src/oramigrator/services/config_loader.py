"""Configuration loader for oramigrator."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from oramigrator.errors import MigratorError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "output_dir",
        "port",
        "schemas",
        "locale",
        "db_user",
        "db_password",
        "container_engine",
        "base_image",
        "export_user_password",
        "import_user_password",
        "poll_interval",
        "import_timeout_minutes",
        "reset_scope",
        "verbose",
        "dry_run",
        "log_file",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise MigratorError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise MigratorError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise MigratorError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise MigratorError(f"Unknown configuration keys: {unknown_list}")

        # schemas may be given as a YAML list
        schemas = parsed.get("schemas")
        if isinstance(schemas, (list, tuple)):
            parsed["schemas"] = ",".join(str(item) for item in schemas)

        return parsed
