"""Fixed names and paths shared by the migration stages."""

DIR_MODE = 0o755
SCRIPT_MODE = 0o755

MIN_PORT = 1000
MAX_PORT = 9999
CONTAINER_DB_PORT = 1521

LOGS_DIRNAME = "logs"
DUMP_DIRNAME = "dump"
LOG_FILENAME = "oramigrator.log"
MANIFEST_FILENAME = "run-manifest.json"

DOCKERFILE_NAME = "Dockerfile"
INIT_SQL_NAME = "01_create_import_user.sql"
IMPORT_SCRIPT_NAME = "02_import_schemas.sh"

DUMP_FILENAME = "EXPORT.DMP"
EXPORT_LOGFILE = "export.log"
IMPORT_LOGFILE = "import.log"

EXPORT_USER = "DPEXPORT"
EXPORT_DIRECTORY = "DP_EXPORT_DIR"
IMPORT_USER = "DPIMPORT"
IMPORT_DIRECTORY = "DP_IMPORT_DIR"

SQLPLUS_CMD = "sqlplus"
EXPDP_CMD = "expdp"

DEFAULT_CONTAINER_ENGINE = "docker"
DEFAULT_BASE_IMAGE = "oracleinanutshell/oracle-xe-11g:latest"
CONTAINER_DUMP_DIR = "/opt/oramigrator/dump"
CONTAINER_INITDB_DIR = "/docker-entrypoint-initdb.d"

IMAGE_TAG = "oramigrator/oracle-target"
CONTAINER_NAME = "oramigrator-target"
MANAGED_LABEL = "oramigrator.managed=true"

IMPORT_COMPLETED_MARKER = "ORAMIGRATOR IMPORT COMPLETED"
IMPORT_FAILED_MARKER = "ORAMIGRATOR IMPORT FAILED"

DEFAULT_POLL_INTERVAL_SECONDS = 10.0

RESET_SCOPE_HOST = "host"
RESET_SCOPE_PROJECT = "project"
RESET_SCOPES = (RESET_SCOPE_HOST, RESET_SCOPE_PROJECT)
