"""Container build file and first-start script generation for oramigrator."""

from pathlib import PurePosixPath
from typing import List

from oramigrator.constants import (
    CONTAINER_DUMP_DIR,
    CONTAINER_INITDB_DIR,
    DUMP_DIRNAME,
    DUMP_FILENAME,
    IMPORT_COMPLETED_MARKER,
    IMPORT_DIRECTORY,
    IMPORT_FAILED_MARKER,
    IMPORT_LOGFILE,
    IMPORT_SCRIPT_NAME,
    IMPORT_USER,
    INIT_SQL_NAME,
    SCRIPT_MODE,
)
from oramigrator.models import GeneratedArtifact, RunConfiguration, WorkspaceLayout


class ArtifactService:
    """Renders and materializes the files the target image is built from."""

    # impdp exits with 5 when the job completed with warnings
    IMPDP_SUCCESS_CODES = (0, 5)

    def __init__(self, logger, console, filesystem_service):
        self.logger = logger
        self.console = console
        self.filesystem_service = filesystem_service

    def build_init_sql(self, import_user_password: str) -> str:
        return f"""
CREATE USER {IMPORT_USER} IDENTIFIED BY "{import_user_password}";
GRANT CONNECT, RESOURCE, DATAPUMP_IMP_FULL_DATABASE TO {IMPORT_USER};
ALTER USER {IMPORT_USER} QUOTA UNLIMITED ON USERS;
CREATE OR REPLACE DIRECTORY {IMPORT_DIRECTORY} AS '{CONTAINER_DUMP_DIR}';
GRANT READ, WRITE ON DIRECTORY {IMPORT_DIRECTORY} TO {IMPORT_USER};
""".lstrip()

    def build_import_script(self, schemas: str, import_user_password: str) -> str:
        success_test = " || ".join(
            f'[ "$status" -eq {code} ]' for code in self.IMPDP_SUCCESS_CODES
        )
        return f"""#!/bin/bash
chmod -R 777 {CONTAINER_DUMP_DIR}

impdp {IMPORT_USER}/"{import_user_password}" \\
  DIRECTORY={IMPORT_DIRECTORY} \\
  DUMPFILE={DUMP_FILENAME} \\
  LOGFILE={IMPORT_LOGFILE} \\
  SCHEMAS={schemas}
status=$?

if {success_test}; then
  echo "{IMPORT_COMPLETED_MARKER}"
else
  echo "{IMPORT_FAILED_MARKER} (impdp exit code $status)"
fi
"""

    def build_dockerfile(self, base_image: str) -> str:
        initdb = PurePosixPath(CONTAINER_INITDB_DIR)
        return f"""
FROM {base_image}
COPY ./{DUMP_DIRNAME}/ {CONTAINER_DUMP_DIR}/
COPY ./{INIT_SQL_NAME} {initdb / INIT_SQL_NAME}
COPY ./{IMPORT_SCRIPT_NAME} {initdb / IMPORT_SCRIPT_NAME}
""".lstrip()

    def plan(self, config: RunConfiguration, layout: WorkspaceLayout) -> List[GeneratedArtifact]:
        return [
            GeneratedArtifact(
                path=layout.dockerfile,
                content=self.build_dockerfile(config.base_image),
            ),
            GeneratedArtifact(
                path=layout.init_sql,
                content=self.build_init_sql(config.import_user_password),
            ),
            GeneratedArtifact(
                path=layout.import_script,
                content=self.build_import_script(config.schemas, config.import_user_password),
                mode=SCRIPT_MODE,
            ),
        ]

    def generate(self, config: RunConfiguration, layout: WorkspaceLayout) -> List[str]:
        """Create missing artifacts. Existing files are never overwritten."""
        self.console.print("[blue]Generating container artifacts...[/blue]")
        created = []
        for artifact in self.plan(config, layout):
            if self.filesystem_service.write_if_missing(artifact):
                created.append(artifact.path)
        return created
