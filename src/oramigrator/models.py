"""Shared domain models for oramigrator."""

import enum
import os
from dataclasses import dataclass
from typing import Optional

from .constants import (
    DEFAULT_BASE_IMAGE,
    DEFAULT_CONTAINER_ENGINE,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DOCKERFILE_NAME,
    DUMP_DIRNAME,
    DUMP_FILENAME,
    IMPORT_SCRIPT_NAME,
    INIT_SQL_NAME,
    LOG_FILENAME,
    LOGS_DIRNAME,
    MANIFEST_FILENAME,
    RESET_SCOPE_HOST,
)


@dataclass(frozen=True)
class RunConfiguration:
    """Operator-supplied parameters, immutable for the whole run."""

    output_dir: str
    port: int
    schemas: str
    locale: str
    db_user: str
    db_password: str
    container_engine: str = DEFAULT_CONTAINER_ENGINE
    base_image: str = DEFAULT_BASE_IMAGE
    export_user_password: str = "dpexport"
    import_user_password: str = "dpimport"
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    import_timeout_minutes: Optional[float] = None
    reset_scope: str = RESET_SCOPE_HOST


@dataclass(frozen=True)
class WorkspaceLayout:
    """Paths of everything the migration keeps under the output directory."""

    root: str
    logs_dir: str
    dump_dir: str
    log_file: str
    manifest_file: str
    dump_file: str
    dockerfile: str
    init_sql: str
    import_script: str

    @classmethod
    def under(cls, root: str) -> "WorkspaceLayout":
        root = os.path.abspath(root)
        logs_dir = os.path.join(root, LOGS_DIRNAME)
        dump_dir = os.path.join(root, DUMP_DIRNAME)
        return cls(
            root=root,
            logs_dir=logs_dir,
            dump_dir=dump_dir,
            log_file=os.path.join(logs_dir, LOG_FILENAME),
            manifest_file=os.path.join(logs_dir, MANIFEST_FILENAME),
            dump_file=os.path.join(dump_dir, DUMP_FILENAME),
            dockerfile=os.path.join(root, DOCKERFILE_NAME),
            init_sql=os.path.join(root, INIT_SQL_NAME),
            import_script=os.path.join(root, IMPORT_SCRIPT_NAME),
        )


@dataclass(frozen=True)
class GeneratedArtifact:
    """A text file consumed by the target container."""

    path: str
    content: str
    encoding: str = "utf-8"
    mode: Optional[int] = None


class ImportState(enum.Enum):
    WAITING = "waiting"
    DONE = "done"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
