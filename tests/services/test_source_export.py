import subprocess

import pytest

from oramigrator.errors import MigratorError
from oramigrator.models import RunConfiguration, WorkspaceLayout
from oramigrator.services.source_export import SourceExportService


class DummyLogger:
    def __init__(self):
        self.records = []

    def info(self, message, *args, **_kwargs):
        self.records.append(("info", message % args))

    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, message, *args, **_kwargs):
        self.records.append(("warning", message % args))


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


def _service(logger=None) -> SourceExportService:
    return SourceExportService(logger=logger or DummyLogger(), console=DummyConsole())


def _config(tmp_path) -> RunConfiguration:
    return RunConfiguration(
        output_dir=str(tmp_path),
        port=1521,
        schemas="HR,SCOTT",
        locale="AMERICAN_AMERICA.AL32UTF8",
        db_user="sys",
        db_password="secret",
    )


class FakeClient:
    """Stands in for sqlplus and expdp."""

    def __init__(self, count_output, dump_file=None, expdp_returncode=0, expdp_output=""):
        self.count_output = count_output
        self.dump_file = dump_file
        self.expdp_returncode = expdp_returncode
        self.expdp_output = expdp_output
        self.sessions = []
        self.commands = []

    def __call__(self, cmd, check=True, capture_output=False, input_text=None):
        self.commands.append(cmd)
        if cmd[0] == "sqlplus":
            self.sessions.append(input_text)
            stdout = self.count_output if "SELECT COUNT(*)" in input_text else ""
            return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr="")
        if cmd[0] == "expdp" and self.dump_file is not None:
            with open(self.dump_file, "wb") as file_obj:
                file_obj.write(b"dump")
        return subprocess.CompletedProcess(cmd, self.expdp_returncode, stdout=self.expdp_output, stderr="")


@pytest.mark.parametrize(
    "raw_output, expected",
    [
        ("\n\n         0\n\n", 0),
        ("\r\n\t  1 \r\n", 1),
        ("Connected.\n\n  COUNT(*)\n----------\n         1\n", 1),
        ("SQL*Plus: Release 19.0.0.0.0\n\n         0\n", 0),
    ],
)
def test_parse_count_extracts_digit_from_noisy_output(raw_output, expected):
    assert SourceExportService.parse_count(raw_output) == expected


def test_parse_count_rejects_output_without_digits():
    with pytest.raises(MigratorError, match="numeric result"):
        SourceExportService.parse_count("\n  no rows selected\n")


def test_to_database_path_uses_forward_slashes(tmp_path):
    converted = SourceExportService.to_database_path(str(tmp_path / "dump"))

    assert "\\" not in converted
    assert converted.endswith("/dump")


def test_session_connects_as_sysdba_with_quiet_settings(tmp_path):
    session = _service().build_session(_config(tmp_path), ["SELECT 1 FROM dual;"])

    lines = session.splitlines()
    assert lines[1] == 'CONNECT sys/"secret" AS SYSDBA'
    for setting in ("SET HEADING OFF", "SET FEEDBACK OFF", "SET ECHO OFF", "SET PAGESIZE 0"):
        assert setting in lines
    assert lines[-1] == "EXIT;"


def test_ensure_export_user_creates_user_and_directory_when_missing(tmp_path):
    layout = WorkspaceLayout.under(str(tmp_path))
    client = FakeClient(count_output="\n         0\n")

    created = _service().ensure_export_user(_config(tmp_path), layout, client)

    assert created is True
    assert len(client.sessions) == 2
    create_session = client.sessions[1]
    assert 'CREATE USER DPEXPORT IDENTIFIED BY "dpexport";' in create_session
    assert "DATAPUMP_EXP_FULL_DATABASE TO DPEXPORT" in create_session
    assert f"CREATE OR REPLACE DIRECTORY DP_EXPORT_DIR AS '{layout.dump_dir}';" in create_session
    assert "GRANT READ, WRITE ON DIRECTORY DP_EXPORT_DIR TO DPEXPORT;" in create_session


def test_ensure_export_user_skips_creation_when_present(tmp_path):
    layout = WorkspaceLayout.under(str(tmp_path))
    client = FakeClient(count_output="\n         1\n")

    created = _service().ensure_export_user(_config(tmp_path), layout, client)

    assert created is False
    assert len(client.sessions) == 1


def test_export_schemas_runs_expdp_and_returns_dump_path(tmp_path):
    layout = WorkspaceLayout.under(str(tmp_path))
    (tmp_path / "dump").mkdir()
    client = FakeClient(count_output="1", dump_file=layout.dump_file, expdp_returncode=5)

    dump_file = _service().export_schemas(_config(tmp_path), layout, client)

    assert dump_file == layout.dump_file
    expdp_cmd = client.commands[-1]
    assert expdp_cmd[0] == "expdp"
    assert expdp_cmd[1] == 'DPEXPORT/"dpexport"'
    assert "DIRECTORY=DP_EXPORT_DIR" in expdp_cmd
    assert "DUMPFILE=EXPORT.DMP" in expdp_cmd
    assert "LOGFILE=export.log" in expdp_cmd
    assert "SCHEMAS=HR,SCOTT" in expdp_cmd


def test_export_schemas_fails_when_dump_is_missing(tmp_path):
    layout = WorkspaceLayout.under(str(tmp_path))
    (tmp_path / "dump").mkdir()
    client = FakeClient(count_output="1")

    with pytest.raises(MigratorError, match="Dump file was not created"):
        _service().export_schemas(_config(tmp_path), layout, client)


def test_export_schemas_logs_expdp_errors_line_by_line_when_dump_is_missing(tmp_path):
    layout = WorkspaceLayout.under(str(tmp_path))
    (tmp_path / "dump").mkdir()
    logger = DummyLogger()
    client = FakeClient(
        count_output="1",
        expdp_returncode=1,
        expdp_output="\nORA-39001: invalid argument value\nORA-39000: bad dump file specification\n",
    )

    with pytest.raises(MigratorError, match="Dump file was not created"):
        _service(logger).export_schemas(_config(tmp_path), layout, client)

    assert ("info", "expdp: ORA-39001: invalid argument value") in logger.records
    assert ("info", "expdp: ORA-39000: bad dump file specification") in logger.records
    assert ("warning", "expdp exited with code 1") in logger.records
    assert all("\n" not in message for _level, message in logger.records)
