import logging
import os
import shutil
import uuid
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from .constants import (
    CONTAINER_NAME,
    DEFAULT_BASE_IMAGE,
    DEFAULT_CONTAINER_ENGINE,
    DEFAULT_POLL_INTERVAL_SECONDS,
    IMAGE_TAG,
    RESET_SCOPE_HOST,
    SQLPLUS_CMD,
)
from .errors import MigratorError
from .errors_catalog import actionable_error
from .models import ImportState, RunConfiguration, WorkspaceLayout
from .services.artifacts import ArtifactService
from .services.command_runner import CommandRunner
from .services.docker_runtime import DockerRuntimeService
from .services.filesystem import FileSystemService
from .services.manifest import ManifestService
from .services.source_export import SourceExportService
from .services.validation import ValidationService

console = Console()
logger = logging.getLogger("oramigrator")

LOG_FORMAT = "%(asctime)s - %(message)s"


class LogFileFormatter(logging.Formatter):
    """Writes each record as a single `<timestamp> - <message>` line.

    Continuation lines of multi-line messages and tracebacks are joined with " | ".
    """

    def format(self, record):
        lines = [line.rstrip() for line in super().format(record).splitlines() if line.strip()]
        return " | ".join(lines)


class OracleMigrator:
    """Moves Oracle schemas from the local database into a fresh container."""

    def __init__(
        self,
        output_dir: str,
        port,
        schemas: str,
        locale: str,
        db_user: str,
        db_password: str,
        container_engine: str = DEFAULT_CONTAINER_ENGINE,
        base_image: str = DEFAULT_BASE_IMAGE,
        export_user_password: str = "dpexport",
        import_user_password: str = "dpimport",
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        import_timeout_minutes: Optional[float] = None,
        reset_scope: str = RESET_SCOPE_HOST,
        verbose: bool = False,
        dry_run: bool = False,
        cancel_event=None,
    ):
        self.output_dir = output_dir
        self.port = port
        self.schemas = schemas
        self.locale = locale
        self.db_user = db_user
        self.db_password = db_password
        self.container_engine = container_engine
        self.base_image = base_image
        self.export_user_password = export_user_password
        self.import_user_password = import_user_password
        self.poll_interval = poll_interval
        self.import_timeout_minutes = import_timeout_minutes
        self.reset_scope = reset_scope
        self.verbose = verbose
        self.dry_run = dry_run
        self.cancel_event = cancel_event

        self.run_id = uuid.uuid4().hex[:10]
        self.config: Optional[RunConfiguration] = None
        self.layout = WorkspaceLayout.under(output_dir or ".")
        self.log_handler: Optional[logging.Handler] = None
        self.current_step_name: Optional[str] = None

        self.validation_service = ValidationService(which=shutil.which)
        self.command_runner = CommandRunner(
            logger=logger,
            secrets=[db_password, export_user_password, import_user_password],
        )
        self.filesystem_service = FileSystemService(logger=logger)
        self.artifact_service = ArtifactService(
            logger=logger,
            console=console,
            filesystem_service=self.filesystem_service,
        )
        self.export_service = SourceExportService(logger=logger, console=console)
        self.docker_runtime_service = DockerRuntimeService(
            logger=logger,
            console=console,
            engine=container_engine,
        )
        self.manifest_service = ManifestService(
            manifest_file=self.layout.manifest_file,
            logger=logger,
        )

    def _run_cmd(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        input_text: Optional[str] = None,
    ):
        return self.command_runner.run(
            cmd,
            check=check,
            capture_output=capture_output,
            input_text=input_text,
        )

    def _run_step(self, name: str, callback, *args, **kwargs):
        self.manifest_service.stage_started(name)
        self.current_step_name = name

        try:
            result = callback(*args, **kwargs)
        except BaseException as exc:
            self.manifest_service.stage_finished(name, "failed", error=str(exc) or type(exc).__name__)
            raise

        self.manifest_service.stage_finished(name, "success")
        self.current_step_name = None
        return result

    def _attach_log_file(self):
        """Append log records to logs/oramigrator.log once the logs directory exists."""
        if self.log_handler is not None or not os.path.isdir(self.layout.logs_dir):
            return

        handler = logging.FileHandler(self.layout.log_file, mode="a", encoding="utf-8")
        handler.setLevel(logging.DEBUG if self.verbose else logging.INFO)
        handler.setFormatter(LogFileFormatter(LOG_FORMAT))
        if logger.getEffectiveLevel() > handler.level:
            logger.setLevel(handler.level)
        logger.addHandler(handler)
        self.log_handler = handler

    def _detach_log_file(self):
        if self.log_handler is None:
            return
        logger.removeHandler(self.log_handler)
        self.log_handler.close()
        self.log_handler = None

    def _settings(self) -> Dict[str, Any]:
        config = self.config
        return {
            "output_dir": self.layout.root,
            "port": config.port,
            "schemas": config.schemas,
            "locale": config.locale,
            "db_user": config.db_user,
            "container_engine": config.container_engine,
            "base_image": config.base_image,
            "reset_scope": config.reset_scope,
            "poll_interval_seconds": config.poll_interval_seconds,
            "import_timeout_minutes": config.import_timeout_minutes,
        }

    def validate_configuration(self) -> RunConfiguration:
        """Check operator input. Nothing is written before this passes."""
        self.validation_service.validate_output_dir(self.output_dir)
        port = self.validation_service.validate_port(self.port)
        schemas = self.validation_service.validate_schemas(self.schemas)
        self.validation_service.validate_reset_scope(self.reset_scope)

        if not self.db_user:
            raise MigratorError("A source database user is required.")

        try:
            poll_interval = float(self.poll_interval)
        except (TypeError, ValueError) as exc:
            raise MigratorError(
                f"Invalid poll interval: {self.poll_interval!r}. It must be a number of seconds."
            ) from exc
        if poll_interval < 0:
            raise MigratorError("The poll interval cannot be negative.")

        timeout_minutes = self.import_timeout_minutes
        if timeout_minutes is not None:
            try:
                timeout_minutes = float(timeout_minutes)
            except (TypeError, ValueError) as exc:
                raise MigratorError(
                    f"Invalid import timeout: {timeout_minutes!r}. It must be a number of minutes."
                ) from exc
            if timeout_minutes <= 0:
                raise MigratorError("The import timeout must be a positive number of minutes.")

        return RunConfiguration(
            output_dir=self.layout.root,
            port=port,
            schemas=schemas,
            locale=self.locale or "",
            db_user=self.db_user,
            db_password=self.db_password or "",
            container_engine=self.container_engine,
            base_image=self.base_image,
            export_user_password=self.export_user_password,
            import_user_password=self.import_user_password,
            poll_interval_seconds=poll_interval,
            import_timeout_minutes=timeout_minutes,
            reset_scope=self.reset_scope,
        )

    def validate_environment(self):
        self.validation_service.validate_environment(
            self.container_engine,
            self._run_cmd,
            console,
        )

    def generate_artifacts(self) -> List[str]:
        created = self.artifact_service.generate(self.config, self.layout)
        for path in created:
            self.manifest_service.add_artifact(os.path.basename(path), path)
        return created

    def reset_dump_dir(self):
        logger.info("Clearing dump directory %s", self.layout.dump_dir)
        self.filesystem_service.clear_dir(self.layout.dump_dir)

    def reset_container_engine(self):
        self.docker_runtime_service.reset_engine(self._run_cmd, self.config.reset_scope)

    def export_schemas(self) -> str:
        dump_file = self.export_service.export_schemas(self.config, self.layout, self._run_cmd)
        self.manifest_service.add_artifact("dump_file", dump_file)
        return dump_file

    def build_image(self):
        self.docker_runtime_service.build_image(self.layout, self._run_cmd)

    def run_container(self):
        self.docker_runtime_service.run_container(self.config, self._run_cmd)

    def wait_for_import(self):
        timeout_seconds = None
        if self.config.import_timeout_minutes is not None:
            timeout_seconds = self.config.import_timeout_minutes * 60

        state = self.docker_runtime_service.wait_for_import(
            self._run_cmd,
            poll_interval=self.config.poll_interval_seconds,
            timeout_seconds=timeout_seconds,
            cancel_event=self.cancel_event,
        )

        if state is ImportState.DONE:
            return state
        if state is ImportState.FAILED:
            raise MigratorError(
                actionable_error("import_failed", container=CONTAINER_NAME, engine=self.container_engine)
            )
        if state is ImportState.TIMED_OUT:
            raise MigratorError(
                actionable_error(
                    "import_timed_out",
                    container=CONTAINER_NAME,
                    minutes=self.config.import_timeout_minutes,
                )
            )
        raise MigratorError("The wait for the import was cancelled.")

    def print_plan(self):
        config = self.config
        table = Table(title="Migration plan")
        table.add_column("Stage", style="cyan")
        table.add_column("Action")

        table.add_row("workspace", f"create {self.layout.logs_dir} and {self.layout.dump_dir}")
        for artifact in self.artifact_service.plan(config, self.layout):
            state = "keep existing" if os.path.exists(artifact.path) else "create"
            table.add_row("artifacts", f"{state} {artifact.path}")
        table.add_row("reset", f"clear {self.layout.dump_dir}")
        table.add_row(
            "reset",
            f"stop/remove all containers and images ({config.reset_scope} scope) via {config.container_engine}",
        )
        table.add_row("export", f"{SQLPLUS_CMD} -S /nolog (ensure export user and directory)")
        table.add_row(
            "export",
            self.command_runner.mask(" ".join(self.export_service.build_export_command(config))),
        )
        table.add_row("build", " ".join(self.docker_runtime_service.build_image_command(self.layout)))
        table.add_row("run", " ".join(self.docker_runtime_service.run_container_command(config)))
        timeout = (
            f"{config.import_timeout_minutes} minute(s)"
            if config.import_timeout_minutes is not None
            else "no timeout"
        )
        table.add_row(
            "wait",
            f"poll {config.container_engine} logs {CONTAINER_NAME} every "
            f"{config.poll_interval_seconds}s ({timeout})",
        )
        console.print(table)

    def run(self) -> int:
        exit_code = 1
        manifest_status = "failed"
        manifest_error: Optional[str] = None

        try:
            self._attach_log_file()
            logger.info("Starting oramigrator run %s...", self.run_id)

            self.config = self.validate_configuration()

            if self.dry_run:
                self.print_plan()
                console.print("[green]Dry run complete. No changes were made.[/green]")
                manifest_status = "dry_run"
                exit_code = 0
                return exit_code

            self.validate_environment()

            self.filesystem_service.prepare_workspace(self.layout)
            self._attach_log_file()
            self.manifest_service.start_run(self.run_id, self._settings())

            self._run_step("generate_artifacts", self.generate_artifacts)
            self._run_step("reset_dump_dir", self.reset_dump_dir)
            self._run_step("reset_container_engine", self.reset_container_engine)
            self._run_step("export_schemas", self.export_schemas)
            self._run_step("build_image", self.build_image)
            self._run_step("run_container", self.run_container)
            self._run_step("wait_for_import", self.wait_for_import)

            console.print(
                f"[bold green]Migration complete. Schemas {self.config.schemas} are available "
                f"in container {CONTAINER_NAME} ({IMAGE_TAG}) on port {self.config.port}.[/bold green]"
            )
            logger.info("Migration complete. Container %s is ready.", CONTAINER_NAME)
            manifest_status = "success"
            exit_code = 0
            return exit_code

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            manifest_status = "aborted"
            manifest_error = "Operation cancelled by user."
            return exit_code
        except MigratorError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            if self.current_step_name:
                logger.error("Stage %s failed: %s", self.current_step_name, exc)
            else:
                logger.error(str(exc))
            manifest_error = str(exc)
            return exit_code
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            manifest_error = str(exc)
            return exit_code
        finally:
            if manifest_status != "dry_run":
                self.manifest_service.finalize(manifest_status, error=manifest_error)
            self._detach_log_file()
