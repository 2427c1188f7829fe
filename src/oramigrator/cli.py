import logging
import os

import click
from rich.logging import RichHandler

from .constants import RESET_SCOPES
from .core import MigratorError, OracleMigrator
from .services.config_loader import ConfigLoader

DEFAULT_CONFIG_NAME = ".oramigrator.yml"


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option(
    "--output-dir",
    required=False,
    type=click.Path(),
    help="Existing directory that holds logs, the dump and the generated container files.",
)
@click.option("--port", required=False, type=int, help="Host port mapped to the container listener (1000-9999).")
@click.option("--schemas", required=False, help="Comma-separated schema names to migrate.")
@click.option("--locale", required=False, help="NLS_LANG value for the target container.")
@click.option("--db-user", required=False, help="Privileged (SYSDBA) user of the local database.")
@click.option("--db-password", required=False, help="Password of --db-user. Prompted for when omitted.")
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_NAME} if present.",
)
@click.option("--container-engine", required=False, help="Container engine executable (default: docker).")
@click.option("--base-image", required=False, help="Oracle image the target container is built from.")
@click.option("--export-user-password", required=False, help="Password for the export user created locally.")
@click.option("--import-user-password", required=False, help="Password for the import user in the container.")
@click.option(
    "--poll-interval",
    required=False,
    type=float,
    default=None,
    help="Seconds between container log checks (default: 10).",
)
@click.option(
    "--import-timeout-minutes",
    required=False,
    type=float,
    default=None,
    help="Give up waiting for the import after this many minutes (default: wait forever).",
)
@click.option(
    "--reset-scope",
    required=False,
    type=click.Choice(RESET_SCOPES),
    help="Reset every container and image on the host, or only those created by oramigrator.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option(
    "--dry-run",
    is_flag=True,
    default=None,
    help="Validate inputs and print the migration plan without changing anything.",
)
@click.option("--log-file", type=click.Path(), help="Additional log file path")
def main(
    output_dir,
    port,
    schemas,
    locale,
    db_user,
    db_password,
    config,
    container_engine,
    base_image,
    export_user_password,
    import_user_password,
    poll_interval,
    import_timeout_minutes,
    reset_scope,
    verbose,
    dry_run,
    log_file,
):
    """Export Oracle schemas from the local database and import them into a new container."""
    logger = logging.getLogger("oramigrator")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_NAME)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except MigratorError as exc:
        raise click.ClickException(str(exc)) from exc

    output_dir = _resolve_option(output_dir, config_values, "output_dir")
    port = _resolve_option(port, config_values, "port")
    schemas = _resolve_option(schemas, config_values, "schemas", default="")
    locale = _resolve_option(locale, config_values, "locale", default="AMERICAN_AMERICA.AL32UTF8")
    db_user = _resolve_option(db_user, config_values, "db_user")
    db_password = _resolve_option(db_password, config_values, "db_password")
    container_engine = _resolve_option(container_engine, config_values, "container_engine", default="docker")
    base_image = _resolve_option(base_image, config_values, "base_image")
    export_user_password = _resolve_option(
        export_user_password, config_values, "export_user_password", default="dpexport"
    )
    import_user_password = _resolve_option(
        import_user_password, config_values, "import_user_password", default="dpimport"
    )
    poll_interval = _resolve_option(poll_interval, config_values, "poll_interval", default=10.0)
    import_timeout_minutes = _resolve_option(import_timeout_minutes, config_values, "import_timeout_minutes")
    reset_scope = _resolve_option(reset_scope, config_values, "reset_scope", default="host")
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    dry_run = bool(_resolve_option(dry_run, config_values, "dry_run", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")

    if not output_dir:
        raise click.ClickException("Missing required option '--output-dir' (or provide it in config).")
    if port is None:
        raise click.ClickException("Missing required option '--port' (or provide it in config).")
    if not db_user:
        raise click.ClickException("Missing required option '--db-user' (or provide it in config).")
    if db_password is None and not dry_run:
        db_password = click.prompt(f"Password for {db_user}", hide_input=True)

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    options = {
        "output_dir": output_dir,
        "port": port,
        "schemas": schemas,
        "locale": locale,
        "db_user": db_user,
        "db_password": db_password or "",
        "container_engine": container_engine,
        "export_user_password": export_user_password,
        "import_user_password": import_user_password,
        "poll_interval": poll_interval,
        "import_timeout_minutes": import_timeout_minutes,
        "reset_scope": reset_scope,
        "verbose": verbose,
        "dry_run": dry_run,
    }
    if base_image:
        options["base_image"] = base_image

    migrator = OracleMigrator(**options)
    raise SystemExit(migrator.run())


if __name__ == "__main__":
    main()
