"""Tests for the noctum-install command line."""

import signal
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from noctum_installer import __version__
from noctum_installer.cli.commands import _exit_on_sigterm, app
from noctum_installer.config.schema import ServiceIdentity
from noctum_installer.errors import (
    DownloadError,
    ExtractionError,
    PrivilegeError,
    ServiceError,
    ServiceInstallError,
    UnsupportedPlatformError,
    VersionResolutionError,
)
from noctum_installer.orchestrator import InstallResult, UninstallResult
from noctum_installer.release.platform import Architecture, OSFamily, PlatformTag
from noctum_installer.service.base import ServiceInfo, ServiceStatus

runner = CliRunner()

BINARY = Path("/usr/local/bin/noctum")


def _installed(service=None) -> InstallResult:
    return InstallResult(
        version="1.2.3",
        platform=PlatformTag(OSFamily.LINUX, Architecture.X86_64),
        binary_path=BINARY,
        service=service,
    )


@pytest.fixture
def identity(tmp_path):
    return ServiceIdentity(user="dev", group="staff", home=tmp_path)


@pytest.fixture
def cli_env(identity):
    """Patch everything the CLI reaches outside of argument handling."""
    with (
        patch("noctum_installer.config.current_identity", return_value=identity),
        patch("noctum_installer.log.setup_logging"),
        patch("noctum_installer.cli.commands.signal.signal"),
        patch("noctum_installer.orchestrator.LifecycleOrchestrator") as orchestrator_cls,
    ):
        yield orchestrator_cls


def _options(orchestrator_cls):
    return orchestrator_cls.call_args.args[1]


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestInstall:
    def test_default_installs_binary_only(self, cli_env, identity):
        cli_env.return_value.run.return_value = _installed()

        result = runner.invoke(app, [])

        assert result.exit_code == 0, result.output
        options = _options(cli_env)
        assert not options.uninstall
        assert not options.manage_service
        assert options.install_dir == Path("/usr/local/bin")
        assert options.identity == identity
        assert "installed to" in result.output
        assert "Next steps" in result.output
        assert "Start noctum" in result.output

    def test_service_flag(self, cli_env):
        service = ServiceInfo(
            status=ServiceStatus.RUNNING,
            pid=99,
            service_file=Path("/etc/systemd/system/noctum.service"),
        )
        cli_env.return_value.run.return_value = _installed(service)

        result = runner.invoke(app, ["--service"])

        assert result.exit_code == 0, result.output
        assert _options(cli_env).manage_service
        assert "Service running" in result.output
        assert "running as a service" in result.output

    def test_service_without_manager(self, cli_env):
        cli_env.return_value.run.return_value = _installed()

        result = runner.invoke(app, ["--service"])

        assert result.exit_code == 0
        assert "service was not installed" in result.output
        assert "Start noctum" in result.output

    def test_no_service_flag(self, cli_env):
        cli_env.return_value.run.return_value = _installed()
        result = runner.invoke(app, ["--no-service"])
        assert result.exit_code == 0
        assert not _options(cli_env).manage_service

    def test_install_dir(self, cli_env, tmp_path):
        cli_env.return_value.run.return_value = _installed()
        result = runner.invoke(app, ["--install-dir", str(tmp_path / "bin")])
        assert result.exit_code == 0
        assert _options(cli_env).install_dir == tmp_path / "bin"

    def test_install_dir_from_environment(self, cli_env, tmp_path, monkeypatch):
        monkeypatch.setenv("NOCTUM_INSTALL_INSTALL_DIR", str(tmp_path / "opt"))
        cli_env.return_value.run.return_value = _installed()
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert _options(cli_env).install_dir == tmp_path / "opt"

    def test_installs_sigterm_handler(self, cli_env):
        cli_env.return_value.run.return_value = _installed()
        with patch("noctum_installer.cli.commands.signal.signal") as mock_signal:
            runner.invoke(app, [])
        mock_signal.assert_called_once_with(signal.SIGTERM, _exit_on_sigterm)


class TestUninstall:
    def test_uninstall(self, cli_env, tmp_path):
        cli_env.return_value.run.return_value = UninstallResult(
            binary_removed=True, service_removed=True,
        )

        result = runner.invoke(app, ["--uninstall"])

        assert result.exit_code == 0, result.output
        assert _options(cli_env).uninstall
        assert "Service removed" in result.output
        assert "Binary removed" in result.output
        assert "were not removed" in result.output

    def test_uninstall_ignores_service_flag(self, cli_env):
        cli_env.return_value.run.return_value = UninstallResult(
            binary_removed=False, service_removed=False,
        )

        result = runner.invoke(app, ["--uninstall", "--service"])

        assert result.exit_code == 0
        options = _options(cli_env)
        assert options.uninstall
        assert not options.manage_service
        assert "Binary not found" in result.output


class TestExitCodes:
    @pytest.mark.parametrize(
        "error,code",
        [
            (UnsupportedPlatformError("Unsupported OS: 'Windows'"), 2),
            (VersionResolutionError("could not reach GitHub"), 3),
            (DownloadError("Download failed"), 4),
            (ExtractionError("archive is corrupt"), 5),
            (PrivilegeError("sudo authentication was declined"), 6),
            (ServiceError("systemctl failed"), 7),
        ],
    )
    def test_error_exit_codes(self, cli_env, error, code):
        cli_env.return_value.run.side_effect = error

        result = runner.invoke(app, [])

        assert result.exit_code == code
        assert "Error:" in result.output

    def test_service_install_error_points_at_binary(self, cli_env):
        cli_env.return_value.run.side_effect = ServiceInstallError(
            "setting up the service failed", binary_path=BINARY,
        )

        result = runner.invoke(app, ["--service"])

        assert result.exit_code == 7
        assert "usable without a service" in result.output
        assert f"{BINARY} start" in result.output

    def test_interrupt(self, cli_env):
        cli_env.return_value.run.side_effect = KeyboardInterrupt

        result = runner.invoke(app, [])

        assert result.exit_code == 130
        assert "Cancelled" in result.output

    def test_sigterm_handler_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            _exit_on_sigterm(signal.SIGTERM, None)
        assert exc_info.value.code == 128 + signal.SIGTERM


class TestStatus:
    def _adapter(self, info: ServiceInfo) -> MagicMock:
        adapter = MagicMock()
        adapter.status.return_value = info
        return adapter

    def test_running(self, cli_env, tmp_path):
        (tmp_path / "noctum").write_bytes(b"x")
        adapter = self._adapter(ServiceInfo(
            status=ServiceStatus.RUNNING,
            pid=4242,
            service_file=Path("/etc/systemd/system/noctum.service"),
        ))

        with (
            patch("noctum_installer.release.platform.resolve_os_family", return_value=OSFamily.LINUX),
            patch("noctum_installer.service.get_adapter", return_value=adapter),
            patch("noctum_installer.privilege.get_elevator"),
        ):
            result = runner.invoke(app, ["--install-dir", str(tmp_path), "status"])

        assert result.exit_code == 0, result.output
        assert "running" in result.output
        assert "4242" in result.output
        assert "noctum.service" in result.output
        cli_env.assert_not_called()

    def test_not_installed(self, cli_env):
        adapter = self._adapter(ServiceInfo(status=ServiceStatus.NOT_INSTALLED))

        with (
            patch("noctum_installer.release.platform.resolve_os_family", return_value=OSFamily.MACOS),
            patch("noctum_installer.service.get_adapter", return_value=adapter),
            patch("noctum_installer.privilege.get_elevator"),
        ):
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "not installed" in result.output
        assert "PID" not in result.output

    def test_unsupported_os(self, cli_env):
        with patch(
            "noctum_installer.release.platform.resolve_os_family",
            side_effect=UnsupportedPlatformError("Unsupported OS: 'Windows'"),
        ):
            result = runner.invoke(app, ["status"])
        assert result.exit_code == 2
