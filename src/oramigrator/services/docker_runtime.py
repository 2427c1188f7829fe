"""Container engine services for oramigrator."""

import time
from typing import Callable, List, Optional

from oramigrator.constants import (
    CONTAINER_DB_PORT,
    CONTAINER_NAME,
    IMAGE_TAG,
    IMPORT_COMPLETED_MARKER,
    IMPORT_FAILED_MARKER,
    MANAGED_LABEL,
    RESET_SCOPE_PROJECT,
)
from oramigrator.models import ImportState, RunConfiguration, WorkspaceLayout


class DockerRuntimeService:
    """Resets engine state, builds and runs the target container, awaits the import."""

    def __init__(self, logger, console, engine: str = "docker"):
        self.logger = logger
        self.console = console
        self.engine = engine

    def _scope_filter(self, reset_scope: str) -> List[str]:
        if reset_scope == RESET_SCOPE_PROJECT:
            return ["--filter", f"label={MANAGED_LABEL}"]
        return []

    def _list_ids(self, cmd: List[str], run_cmd: Callable) -> List[str]:
        result = run_cmd(cmd, check=False, capture_output=True)
        return [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]

    def reset_engine(self, run_cmd: Callable, reset_scope: str):
        """Stop and remove containers, then force-remove images.

        With the host scope this touches every container and image on the
        host, not only the ones this tool created. Results are not verified.
        """
        scope_filter = self._scope_filter(reset_scope)
        self.console.print(f"[dim]Resetting {self.engine} state ({reset_scope} scope)...[/dim]")
        self.logger.info("Resetting %s state (%s scope)", self.engine, reset_scope)

        running = self._list_ids([self.engine, "ps", "-q"] + scope_filter, run_cmd)
        if running:
            run_cmd([self.engine, "stop"] + running, check=False, capture_output=True)

        containers = self._list_ids([self.engine, "ps", "-aq"] + scope_filter, run_cmd)
        if containers:
            run_cmd([self.engine, "rm"] + containers, check=False, capture_output=True)

        images = self._list_ids([self.engine, "images", "-q"] + scope_filter, run_cmd)
        if images:
            # an image can be listed once per tag
            unique_images = list(dict.fromkeys(images))
            run_cmd([self.engine, "rmi", "-f"] + unique_images, check=False, capture_output=True)

        self.logger.info(
            "Stopped %s, removed %s container(s) and %s image(s)",
            len(running),
            len(containers),
            len(set(images)),
        )

    def build_image_command(self, layout: WorkspaceLayout) -> List[str]:
        return [
            self.engine,
            "build",
            "-t",
            IMAGE_TAG,
            "--label",
            MANAGED_LABEL,
            "-f",
            layout.dockerfile,
            layout.root,
        ]

    def run_container_command(self, config: RunConfiguration) -> List[str]:
        return [
            self.engine,
            "run",
            "-d",
            "--name",
            CONTAINER_NAME,
            "--label",
            MANAGED_LABEL,
            "-p",
            f"{config.port}:{CONTAINER_DB_PORT}",
            "-e",
            "ORACLE_ALLOW_REMOTE=true",
            "-e",
            f"NLS_LANG={config.locale}",
            IMAGE_TAG,
        ]

    def build_image(self, layout: WorkspaceLayout, run_cmd: Callable):
        self.console.print(f"[blue]Building image {IMAGE_TAG}...[/blue]")
        self.logger.info("Building image %s from %s", IMAGE_TAG, layout.dockerfile)
        run_cmd(self.build_image_command(layout), check=True)

    def run_container(self, config: RunConfiguration, run_cmd: Callable):
        self.console.print(f"[blue]Starting container {CONTAINER_NAME} on port {config.port}...[/blue]")
        self.logger.info("Starting container %s on port %s", CONTAINER_NAME, config.port)
        run_cmd(self.run_container_command(config), check=True, capture_output=True)

    def fetch_logs(self, run_cmd: Callable, container_name: str = CONTAINER_NAME) -> str:
        result = run_cmd([self.engine, "logs", container_name], check=False, capture_output=True)
        return f"{result.stdout or ''}{result.stderr or ''}"

    def wait_for_import(
        self,
        run_cmd: Callable,
        poll_interval: float,
        timeout_seconds: Optional[float] = None,
        cancel_event=None,
        container_name: str = CONTAINER_NAME,
        completed_marker: str = IMPORT_COMPLETED_MARKER,
        failed_marker: Optional[str] = IMPORT_FAILED_MARKER,
    ) -> ImportState:
        """Poll the container log until the import reaches a terminal state.

        Without timeout_seconds and cancel_event the wait is unbounded. The
        markers are matched anywhere in the combined log output.
        """
        self.console.print("[yellow]Waiting for the import to finish...[/yellow]")
        self.logger.info("Waiting for import in container %s", container_name)

        state = ImportState.WAITING
        seen_length = 0
        polls = 0
        start = time.monotonic()

        while state is ImportState.WAITING:
            output = self.fetch_logs(run_cmd, container_name)
            polls += 1

            if completed_marker in output:
                state = ImportState.DONE
                break
            if failed_marker and failed_marker in output:
                state = ImportState.FAILED
                break

            delta = output[seen_length:] if len(output) >= seen_length else output
            seen_length = len(output)
            lines = [line.rstrip() for line in delta.splitlines() if line.strip()]
            for line in lines:
                self.logger.info("Import in progress (poll %s): %s", polls, line)
            if not lines:
                self.logger.info("Import in progress (poll %s), no new log output.", polls)

            if timeout_seconds is not None and time.monotonic() - start >= timeout_seconds:
                state = ImportState.TIMED_OUT
                break

            if cancel_event is not None:
                if cancel_event.wait(poll_interval):
                    state = ImportState.CANCELLED
            else:
                time.sleep(poll_interval)

        self.logger.info("Import wait finished after %s poll(s): %s", polls, state.value)
        return state
