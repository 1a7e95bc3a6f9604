"""
Unit tests for subprocess execution helpers.
"""

import subprocess
import sys
import pytest
from unittest.mock import patch

from ghcupkit.core.exceptions import ProcessError
from ghcupkit.core.platform import PlatformInfo
from ghcupkit.core.process import (
    CapturedProcess,
    darwin_notarization,
    exec_logged,
    execute_out,
    make,
    make_command,
)


def _completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout=stdout, stderr=stderr
    )


class TestExecuteOut:
    """Tests for execute_out."""

    def test_captures_output(self, tmp_path):
        with patch("subprocess.run", return_value=_completed(0, "3.4.0.0\n", "")) as run:
            result = execute_out(["cabal", "--numeric-version"], tmp_path)

        assert result == CapturedProcess(0, "3.4.0.0\n", "")
        assert result.ok
        args, kwargs = run.call_args
        assert args[0] == ["cabal", "--numeric-version"]
        assert kwargs["cwd"] == tmp_path
        assert kwargs["capture_output"] is True

    def test_nonzero_exit_is_not_raised(self):
        with patch("subprocess.run", return_value=_completed(2, "", "oops")):
            result = execute_out(["false"])

        assert not result.ok
        assert result.exit_code == 2

    def test_missing_program(self):
        with patch("subprocess.run", side_effect=FileNotFoundError("no such file")):
            with pytest.raises(ProcessError) as exc_info:
                execute_out(["does-not-exist"])

        assert exc_info.value.exit_code is None
        assert "Could not execute" in str(exc_info.value)

    def test_undecodable_output_is_replaced(self, tmp_path):
        command = [sys.executable, "-c", "import sys; sys.stdout.buffer.write(b'caf\\xe9')"]

        result = execute_out(command, tmp_path)

        assert result.ok
        assert result.stdout.startswith("caf")
        assert len(result.stdout) == 4

    def test_undecodable_output_is_logged(self, tmp_path):
        command = [sys.executable, "-c", "import sys; sys.stdout.buffer.write(b'\\xe9\\n')"]

        exec_logged(command, tmp_path, "patch", tmp_path / "logs")

        assert (tmp_path / "logs" / "patch.log").exists()


class TestExecLogged:
    """Tests for exec_logged."""

    def test_writes_log(self, tmp_path):
        logs = tmp_path / "logs"
        with patch("subprocess.run", return_value=_completed(0, "configured\n", "")):
            exec_logged(["./configure"], tmp_path, "ghc-conf", logs)

        content = (logs / "ghc-conf.log").read_text()
        assert "$ ./configure" in content
        assert "configured" in content

    def test_failure_raises_with_exit_code(self, tmp_path):
        with patch("subprocess.run", return_value=_completed(1, "", "error: boom\n")):
            with pytest.raises(ProcessError) as exc_info:
                exec_logged(["make", "install"], tmp_path, "ghc-make", tmp_path)

        assert exc_info.value.exit_code == 1
        assert exc_info.value.command == ["make", "install"]
        assert "error: boom" in (tmp_path / "ghc-make.log").read_text()


class TestMake:
    """Tests for make helpers."""

    def test_prefers_gmake(self, tmp_path):
        with patch("ghcupkit.core.process.find_executable", return_value=tmp_path / "gmake"):
            assert make_command() == "gmake"

    def test_falls_back_to_make(self):
        with patch("ghcupkit.core.process.find_executable", return_value=None):
            assert make_command() == "make"

    def test_make_logs_to_ghc_make(self, tmp_path):
        with patch("ghcupkit.core.process.make_command", return_value="make"), patch(
            "subprocess.run", return_value=_completed(0)
        ) as run:
            make(["install"], tmp_path, tmp_path / "logs")

        assert run.call_args[0][0] == ["make", "install"]
        assert (tmp_path / "logs" / "ghc-make.log").exists()


class TestDarwinNotarization:
    """Tests for darwin_notarization."""

    def test_noop_on_linux(self, tmp_path):
        with patch("subprocess.run") as run:
            darwin_notarization(PlatformInfo("linux", "x64"), tmp_path)
        run.assert_not_called()

    def test_clears_quarantine_on_macos(self, tmp_path):
        with patch("subprocess.run", return_value=_completed(0)) as run:
            darwin_notarization(PlatformInfo("macos", "arm64"), tmp_path)

        command = run.call_args[0][0]
        assert command[:4] == ["xattr", "-r", "-d", "com.apple.quarantine"]

    def test_failure_raises(self, tmp_path):
        with patch("subprocess.run", return_value=_completed(1, "", "denied")):
            with pytest.raises(ProcessError):
                darwin_notarization(PlatformInfo("macos", "x64"), tmp_path)
