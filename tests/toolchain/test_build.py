"""
Unit tests for build orchestration and cleanup.
"""

import os
import shutil
import sys
import pytest
from unittest.mock import patch

from ghcupkit.config.settings import AppState, KeepDirs, Settings
from ghcupkit.core.exceptions import BuildFailed, PatchFailed, ProcessError
from ghcupkit.core.filesystem import safe_rmtree
from ghcupkit.core.process import CapturedProcess
from ghcupkit.toolchain.build import (
    BuildRunner,
    apply_patches,
    build_scope,
    list_patches,
    run_build_action,
)


@pytest.fixture
def build_dirs(tmp_path):
    """A populated build directory and a half-populated install directory."""
    build_dir = tmp_path / "tmp" / "ghc-build"
    (build_dir / "_build").mkdir(parents=True)
    (build_dir / "_build" / "stage1.o").write_text("obj")
    install_dir = tmp_path / "ghc" / "9.2.1"
    (install_dir / "bin").mkdir(parents=True)
    return build_dir, install_dir


def _fail():
    raise RuntimeError("make: *** [install] Error 2")


# ==============================================================================
# run_build_action
# ==============================================================================


class TestRunBuildAction:
    """Tests for retention policy handling."""

    @pytest.mark.parametrize(
        "keep_dirs,build_dir_kept",
        [
            (KeepDirs.ALWAYS, True),
            (KeepDirs.ERRORS, True),
            (KeepDirs.NEVER, False),
        ],
    )
    def test_success(self, build_dirs, keep_dirs, build_dir_kept):
        build_dir, install_dir = build_dirs

        result = run_build_action(build_dir, install_dir, keep_dirs, lambda: 42)

        assert result == 42
        assert build_dir.exists() is build_dir_kept
        assert install_dir.exists()

    @pytest.mark.parametrize(
        "keep_dirs,build_dir_kept",
        [
            (KeepDirs.ALWAYS, True),
            (KeepDirs.ERRORS, False),
            (KeepDirs.NEVER, False),
        ],
    )
    def test_failure(self, build_dirs, keep_dirs, build_dir_kept):
        build_dir, install_dir = build_dirs

        with pytest.raises(BuildFailed) as exc_info:
            run_build_action(build_dir, install_dir, keep_dirs, _fail)

        assert build_dir.exists() is build_dir_kept
        assert not install_dir.exists()
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert exc_info.value.build_dir == build_dir
        assert "Error 2" in str(exc_info.value)

    def test_failure_without_install_dir(self, build_dirs):
        build_dir, install_dir = build_dirs

        with pytest.raises(BuildFailed):
            run_build_action(build_dir, None, KeepDirs.NEVER, _fail)

        assert not build_dir.exists()
        assert install_dir.exists()

    def test_cleanup_of_missing_dirs(self, tmp_path):
        # the action may fail before creating anything
        with pytest.raises(BuildFailed):
            run_build_action(tmp_path / "never-created", tmp_path / "nope", KeepDirs.NEVER, _fail)

    def test_interrupt_cleans_up_and_propagates(self, build_dirs):
        build_dir, install_dir = build_dirs

        def interrupted():
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            run_build_action(build_dir, install_dir, KeepDirs.NEVER, interrupted)

        assert not build_dir.exists()
        assert not install_dir.exists()

    def test_failed_install_dir_removal_still_cleans_build_dir(self, build_dirs):
        build_dir, install_dir = build_dirs
        real_rmtree = safe_rmtree

        def rmtree(path):
            if path == install_dir:
                raise PermissionError(13, "Permission denied", str(path))
            real_rmtree(path)

        with patch("ghcupkit.toolchain.build.safe_rmtree", side_effect=rmtree):
            with pytest.raises(BuildFailed) as exc_info:
                run_build_action(build_dir, install_dir, KeepDirs.NEVER, _fail)

        assert isinstance(exc_info.value.cause, RuntimeError)
        assert not build_dir.exists()

    def test_build_scope_yields_build_dir(self, build_dirs):
        build_dir, install_dir = build_dirs

        with build_scope(str(build_dir), install_dir, KeepDirs.ALWAYS) as scoped:
            assert scoped == build_dir


# ==============================================================================
# Patches
# ==============================================================================


class TestPatches:
    """Tests for patch application."""

    @pytest.fixture
    def patch_dir(self, tmp_path):
        patches = tmp_path / "patches"
        patches.mkdir()
        (patches / "002-more.patch").write_text("")
        (patches / "001-fix.patch").write_text("")
        (patches / "subdir").mkdir()
        return patches

    def test_list_patches_sorted(self, patch_dir):
        assert list_patches(patch_dir) == ["001-fix.patch", "002-more.patch"]

    def test_applied_in_order(self, patch_dir, tmp_path):
        with patch("ghcupkit.toolchain.build.exec_logged") as exec_logged:
            apply_patches(patch_dir, tmp_path / "src", tmp_path / "logs")

        applied = [c.args[0][-1] for c in exec_logged.call_args_list]
        assert applied == [
            str(patch_dir / "001-fix.patch"),
            str(patch_dir / "002-more.patch"),
        ]
        assert exec_logged.call_args_list[0].args[0][:3] == ["patch", "-p1", "-i"]

    def test_first_failure_stops(self, patch_dir, tmp_path):
        def fake_exec(command, workdir, log_name, logs_dir):
            if command[-1].endswith("001-fix.patch"):
                raise ProcessError(command, 1)

        with patch("ghcupkit.toolchain.build.exec_logged", side_effect=fake_exec) as exec_logged:
            with pytest.raises(PatchFailed) as exc_info:
                apply_patches(patch_dir, tmp_path / "src", tmp_path / "logs")

        assert exc_info.value.patch == "001-fix.patch"
        assert "001-fix.patch" in str(exc_info.value)
        assert exec_logged.call_count == 1

    @pytest.mark.integration
    @pytest.mark.skipif(shutil.which("patch") is None, reason="patch not installed")
    def test_real_patch(self, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        (src / "hello.txt").write_text("hello\n")
        patches = tmp_path / "patches"
        patches.mkdir()
        (patches / "001-greet.patch").write_text(
            "--- a/hello.txt\n"
            "+++ b/hello.txt\n"
            "@@ -1 +1 @@\n"
            "-hello\n"
            "+hello world\n"
        )

        apply_patches(patches, src, tmp_path / "logs")

        assert (src / "hello.txt").read_text() == "hello world\n"
        assert (tmp_path / "logs" / "patch.log").exists()

    @pytest.mark.integration
    @pytest.mark.skipif(shutil.which("patch") is None, reason="patch not installed")
    def test_real_patch_without_logs_dir(self, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        (src / "hello.txt").write_text("hello\n")
        patches = tmp_path / "patches"
        patches.mkdir()
        (patches / "001-greet.patch").write_text(
            "--- a/hello.txt\n+++ b/hello.txt\n@@ -1 +1 @@\n-hello\n+hello world\n"
        )

        apply_patches(patches, src)

        assert os.listdir(src) == ["hello.txt"]
        assert (src / "hello.txt").read_text() == "hello world\n"

    @pytest.mark.integration
    @pytest.mark.skipif(shutil.which("patch") is None, reason="patch not installed")
    @pytest.mark.skipif(not sys.platform.startswith("linux"), reason="needs non-UTF-8 file names")
    def test_real_patch_of_non_utf8_file_name(self, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        name = os.fsdecode(b"caf\xe9.txt")
        (src / name).write_bytes(b"hello\n")
        patches = tmp_path / "patches"
        patches.mkdir()
        (patches / "001-greet.patch").write_bytes(
            b"--- a/caf\xe9.txt\n+++ b/caf\xe9.txt\n@@ -1 +1 @@\n-hello\n+hello world\n"
        )

        apply_patches(patches, src, tmp_path / "logs")

        assert (src / name).read_bytes() == b"hello world\n"

    def test_failure_without_logs_dir(self, patch_dir, tmp_path):
        failed = CapturedProcess(1, "", "Hunk #1 FAILED")
        with patch("ghcupkit.toolchain.build.execute_out", return_value=failed) as execute:
            with pytest.raises(PatchFailed) as exc_info:
                apply_patches(patch_dir, tmp_path)

        assert exc_info.value.patch == "001-fix.patch"
        assert execute.call_count == 1
        assert not (tmp_path / "patch.log").exists()


# ==============================================================================
# BuildRunner
# ==============================================================================


class TestBuildRunner:
    """Tests for BuildRunner."""

    @pytest.fixture
    def runner(self, dirs):
        return BuildRunner(AppState(Settings(keep_dirs=KeepDirs.NEVER), dirs))

    def test_uses_configured_policy(self, runner, build_dirs):
        build_dir, install_dir = build_dirs

        assert runner.run(build_dir, install_dir, lambda: "ok") == "ok"
        assert not build_dir.exists()

    def test_scope(self, runner, build_dirs):
        build_dir, install_dir = build_dirs

        with pytest.raises(BuildFailed):
            with runner.scope(build_dir, install_dir):
                raise ProcessError(["make"], 2)

        assert not install_dir.exists()

    def test_make_logs_to_logs_dir(self, runner, dirs, tmp_path):
        with patch("ghcupkit.toolchain.build.make") as make:
            runner.make(["-j4", "install"], tmp_path)

        make.assert_called_once_with(["-j4", "install"], tmp_path, dirs.logs_dir)

    def test_apply_patches_logs_to_logs_dir(self, runner, dirs, tmp_path):
        with patch("ghcupkit.toolchain.build.apply_patches") as apply:
            runner.apply_patches(tmp_path / "patches", tmp_path / "src")

        apply.assert_called_once_with(tmp_path / "patches", tmp_path / "src", dirs.logs_dir)
