from click.testing import CliRunner

import oramigrator.cli as cli_module


def _fake_migrator(captured, exit_code=0):
    class FakeMigrator:
        def __init__(self, **kwargs):
            captured.update(kwargs)

        def run(self):
            return exit_code

    return FakeMigrator


def test_cli_uses_config_and_allows_cli_override(tmp_path, monkeypatch):
    config_file = tmp_path / ".oramigrator.yml"
    config_file.write_text(
        "output_dir: /srv/migration\n"
        "port: 1521\n"
        "schemas: [HR, SCOTT]\n"
        "db_user: sys\n"
        "db_password: secret\n"
        "poll_interval: 5\n",
        encoding="utf-8",
    )

    captured = {}
    monkeypatch.setattr(cli_module, "OracleMigrator", _fake_migrator(captured))

    result = CliRunner().invoke(
        cli_module.main,
        ["--config", str(config_file), "--port", "1600", "--reset-scope", "project", "--dry-run"],
    )

    assert result.exit_code == 0
    assert captured["output_dir"] == "/srv/migration"
    assert captured["port"] == 1600
    assert captured["schemas"] == "HR,SCOTT"
    assert captured["db_password"] == "secret"
    assert captured["poll_interval"] == 5.0
    assert captured["reset_scope"] == "project"
    assert captured["dry_run"] is True
    assert "base_image" not in captured


def test_cli_uses_default_config_file_when_present(tmp_path, monkeypatch):
    (tmp_path / ".oramigrator.yml").write_text(
        "output_dir: out\nport: 1700\nschemas: HR\ndb_user: sys\ndb_password: pw\n",
        encoding="utf-8",
    )

    captured = {}
    monkeypatch.setattr(cli_module, "OracleMigrator", _fake_migrator(captured))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, [])

    assert result.exit_code == 0
    assert captured["output_dir"] == "out"
    assert captured["port"] == 1700
    assert captured["import_timeout_minutes"] is None


def test_cli_prompts_for_missing_password(tmp_path, monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "OracleMigrator", _fake_migrator(captured))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(
        cli_module.main,
        ["--output-dir", str(tmp_path), "--port", "1521", "--schemas", "HR", "--db-user", "sys"],
        input="hidden\n",
    )

    assert result.exit_code == 0
    assert captured["db_password"] == "hidden"


def test_cli_requires_output_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, ["--port", "1521", "--db-user", "sys"])

    assert result.exit_code != 0
    assert "--output-dir" in result.output


def test_cli_propagates_run_exit_code(tmp_path, monkeypatch):
    monkeypatch.setattr(cli_module, "OracleMigrator", _fake_migrator({}, exit_code=1))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(
        cli_module.main,
        [
            "--output-dir",
            str(tmp_path),
            "--port",
            "999",
            "--schemas",
            "HR",
            "--db-user",
            "sys",
            "--db-password",
            "pw",
        ],
    )

    assert result.exit_code == 1


def test_cli_reports_non_numeric_poll_interval_without_traceback(tmp_path, monkeypatch):
    (tmp_path / ".oramigrator.yml").write_text(
        f"output_dir: {tmp_path}\nport: 1521\nschemas: HR\ndb_user: sys\ndb_password: pw\npoll_interval: abc\n",
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, ["--dry-run"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Invalid poll interval" in result.output
    assert "Traceback" not in result.output
