import sys

import pytest

from oramigrator.errors import MigratorError
from oramigrator.services.command_runner import CommandRunner


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


def test_command_runner_raises_with_stderr():
    runner = CommandRunner(logger=DummyLogger())

    with pytest.raises(MigratorError, match="boom"):
        runner.run(
            [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(1)"],
            check=True,
            capture_output=True,
        )


def test_command_runner_reports_stdout_when_stderr_is_empty():
    runner = CommandRunner(logger=DummyLogger())

    with pytest.raises(MigratorError, match="ORA-01017"):
        runner.run(
            [sys.executable, "-c", "import sys; print('ORA-01017: invalid username'); sys.exit(1)"],
            check=True,
            capture_output=True,
        )


def test_command_runner_returns_when_check_disabled():
    runner = CommandRunner(logger=DummyLogger())

    result = runner.run(
        [sys.executable, "-c", "import sys; sys.exit(1)"],
        check=False,
        capture_output=True,
    )

    assert result.returncode == 1


def test_command_runner_passes_input_on_stdin():
    runner = CommandRunner(logger=DummyLogger())

    result = runner.run(
        [sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"],
        capture_output=True,
        input_text="select 1 from dual;",
    )

    assert result.stdout == "SELECT 1 FROM DUAL;"


def test_command_runner_masks_secrets_in_errors():
    runner = CommandRunner(logger=DummyLogger(), secrets=["s3cret"])

    with pytest.raises(MigratorError) as exc_info:
        runner.run(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad s3cret'); sys.exit(1)", "s3cret"],
            check=True,
            capture_output=True,
        )

    assert "s3cret" not in str(exc_info.value)
    assert "****" in str(exc_info.value)


def test_command_runner_missing_executable_raises_actionable_error():
    runner = CommandRunner(logger=DummyLogger())

    with pytest.raises(MigratorError, match="Required command not found: definitely-not-a-command"):
        runner.run(["definitely-not-a-command", "--version"], capture_output=True)



def test_command_runner_waits_for_slow_commands_to_finish():
    runner = CommandRunner(logger=DummyLogger())

    result = runner.run(
        [sys.executable, "-c", "import time; time.sleep(0.5); print('done')"],
        capture_output=True,
    )

    assert result.returncode == 0
    assert result.stdout.strip() == "done"
