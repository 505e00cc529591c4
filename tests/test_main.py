"""End-to-end tests for the opencv-ci-install entry point with real scripts."""
from __future__ import annotations

import logging

import pytest

from opencv_ci import main as main_mod
from opencv_ci.ci_config import BuildVariant
from opencv_ci.installers import SCRIPTS, InstallerRegistry
from opencv_ci.lib.host import OsFamily
from opencv_ci.logging_utils import default_log_path


@pytest.fixture(autouse=True)
def fresh_logging():
    """Give every main() call its own handlers and log file."""
    root = logging.getLogger()
    before = list(root.handlers)

    def reset():
        for h in list(root.handlers):
            if h not in before:
                root.removeHandler(h)
                h.close()
        for attr in ("_opencv_ci_configured", "_opencv_ci_log_path"):
            if hasattr(root, attr):
                delattr(root, attr)

    reset()
    yield
    reset()


@pytest.fixture()
def ci_dir(tmp_path):
    """A CI directory whose scripts record their own name into ran.txt."""
    d = tmp_path / "ci"
    d.mkdir()
    log = tmp_path / "ran.txt"
    for script in SCRIPTS.values():
        p = d / script
        p.write_text(
            f'#!/bin/sh\necho "{script} ${{CHOCO_LLVM_VERSION:-}}" >> "{log}"\nexit ${{FAKE_EXIT:-0}}\n',
            encoding="utf-8",
        )
        p.chmod(0o755)
    return d


@pytest.fixture()
def ran(tmp_path):
    def _ran():
        p = tmp_path / "ran.txt"
        return p.read_text(encoding="utf-8").splitlines() if p.exists() else []

    return _ran


@pytest.fixture()
def clean_env(monkeypatch):
    for var in (
        "OSTYPE",
        "VCPKG_VERSION",
        "BREW_OPENCV_VERSION",
        "CMAKE_C_COMPILER_LAUNCHER",
        "CMAKE_CXX_COMPILER_LAUNCHER",
        "OPENCV_CI_DIR",
        "OPENCV_CI_CONFIG",
        "CHOCO_LLVM_VERSION",
        "FAKE_EXIT",
    ):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


def _argv(tmp_path, ci_dir, *extra):
    return ["--ci-dir", str(ci_dir), "--log", str(tmp_path / "logs" / "run.log"), *extra]


class TestRun:

    def test_linux_default(self, ci_dir, ran, clean_env):
        result = main_mod.run(
            environ={"PATH": "/usr/bin:/bin"}, host="linux-gnu-x86_64", ci_dir=str(ci_dir), reclaim=False
        )
        assert result.family is OsFamily.LINUX
        assert result.variant is BuildVariant.PACKAGE_MANAGER
        assert ran() == ["install-ubuntu.sh "]

    def test_host_from_ostype(self, ci_dir, ran):
        result = main_mod.run(
            environ={"PATH": "/usr/bin:/bin", "OSTYPE": "msys", "VCPKG_VERSION": "2024.11.16"},
            ci_dir=str(ci_dir),
        )
        assert result.installer == "install-windows-vcpkg.sh"
        assert ran() == ["install-windows-vcpkg.sh 19.1.5"]

    def test_ci_dir_from_env(self, ci_dir, ran):
        main_mod.run(
            environ={"PATH": "/usr/bin:/bin", "OPENCV_CI_DIR": str(ci_dir), "BREW_OPENCV_VERSION": "4.10.0"},
            host="darwin21.0",
        )
        assert ran() == ["install-macos-brew.sh "]


class TestMain:

    def test_success_exit_zero(self, tmp_path, ci_dir, ran, clean_env):
        rc = main_mod.main(_argv(tmp_path, ci_dir, "--host", "darwin21.0"))
        assert rc == 0
        assert ran() == ["install-macos-framework.sh "]

    def test_installer_status_propagated(self, tmp_path, ci_dir, ran, clean_env):
        clean_env.setenv("FAKE_EXIT", "5")
        rc = main_mod.main(_argv(tmp_path, ci_dir, "--host", "cygwin"))
        assert rc == 5
        assert ran() == ["install-windows-chocolatey.sh 19.1.5"]

    def test_freebsd_unsupported(self, tmp_path, ci_dir, ran, clean_env, caplog):
        rc = main_mod.main(_argv(tmp_path, ci_dir, "--host", "freebsd13.0"))
        assert rc == 1
        assert ran() == []
        assert "FreeBSD is not supported" in caplog.text

    def test_unknown_host(self, tmp_path, ci_dir, ran, clean_env, caplog):
        rc = main_mod.main(_argv(tmp_path, ci_dir, "--host", "beos"))
        assert rc == 1
        assert ran() == []
        assert "Unknown OS: beos" in caplog.text

    def test_dry_run_runs_nothing(self, tmp_path, ci_dir, ran, clean_env):
        rc = main_mod.main(_argv(tmp_path, ci_dir, "--host", "linux-gnu", "--skip-reclaim", "--dry-run"))
        assert rc == 0
        assert ran() == []

    def test_missing_config_is_error(self, tmp_path, ci_dir, ran, clean_env):
        rc = main_mod.main(
            _argv(tmp_path, ci_dir, "--host", "darwin21.0", "--config", str(tmp_path / "nope.yaml"))
        )
        assert rc == 1
        assert ran() == []

    def test_missing_script(self, tmp_path, clean_env):
        rc = main_mod.main(_argv(tmp_path, tmp_path / "empty", "--host", "darwin21.0"))
        assert rc == 127

    @pytest.mark.parametrize("host", ["linux-gnu", "darwin21.0"])
    def test_log_goes_to_requested_file(self, tmp_path, ci_dir, clean_env, host):
        log = tmp_path / "logs" / "run.log"
        assert main_mod.main(_argv(tmp_path, ci_dir, "--host", host, "--skip-reclaim")) == 0
        text = log.read_text(encoding="utf-8")
        assert f"Host signature: {host}" in text
        assert "Done:" in text

    def test_default_log_outside_checkout(self, tmp_path, ci_dir, clean_env, monkeypatch):
        runner_temp = tmp_path / "runner-temp"
        runner_temp.mkdir()
        checkout = tmp_path / "checkout"
        checkout.mkdir()
        clean_env.setenv("RUNNER_TEMP", str(runner_temp))
        monkeypatch.chdir(checkout)

        rc = main_mod.main(["--ci-dir", str(ci_dir), "--host", "darwin21.0"])

        assert rc == 0
        assert (runner_temp / "opencv-ci-install.log").exists()
        assert list(checkout.iterdir()) == []

    def test_missing_registration_is_clean_error(self, tmp_path, ci_dir, ran, clean_env, monkeypatch, caplog):
        monkeypatch.setattr(main_mod, "default_registry", lambda ci_dir, dry_run=False: InstallerRegistry())
        rc = main_mod.main(_argv(tmp_path, ci_dir, "--host", "darwin21.0"))
        assert rc == 1
        assert ran() == []
        assert "No installer registered for macOS/framework" in caplog.text
        assert "Traceback" not in caplog.text


class TestDefaultLogPath:

    def test_runner_temp(self, tmp_path):
        assert default_log_path({"RUNNER_TEMP": str(tmp_path)}) == str(tmp_path / "opencv-ci-install.log")

    def test_system_temp(self, monkeypatch, tmp_path):
        monkeypatch.setattr("tempfile.gettempdir", lambda: str(tmp_path))
        path = default_log_path({})
        assert path == str(tmp_path / "opencv-ci-install.log")
