"""Linux systemd (system scope) service adapter."""

import os
import subprocess
import tempfile
from pathlib import Path
from string import Template

from loguru import logger

from noctum_installer.errors import ServiceError, TemplateError
from noctum_installer.privilege import Elevator, PrivilegedAction, needs_elevation
from noctum_installer.service.base import (
    ServiceAdapter,
    ServiceDescriptor,
    ServiceInfo,
    ServiceStatus,
)
from noctum_installer.service.template import render_template

UNIT_DIR = Path("/etc/systemd/system")

UNIT_TEMPLATE = Template("""\
[Unit]
Description=${description}
After=network.target

[Service]
Type=simple
ExecStart="${exec_path}" start
Restart=on-failure
RestartSec=10
User=${run_as_user}
Group=${run_as_group}
Environment="HOME=${home_dir}"
StandardOutput=append:${stdout_log}
StandardError=append:${stderr_log}

[Install]
WantedBy=multi-user.target
""")


def _unit_value(value: str) -> str:
    """Escape systemd specifiers in a value taken verbatim (User=, append:)."""
    if "\n" in value:
        raise TemplateError(f"Value {value!r} contains a newline")
    return value.replace("%", "%%")


def _in_quotes(value: str) -> str:
    """Escape a value placed inside double quotes (ExecStart=, Environment=)."""
    return _unit_value(value).replace("\\", "\\\\").replace('"', '\\"')


class SystemdAdapter(ServiceAdapter):

    def __init__(
        self,
        elevator: Elevator,
        service_name: str = "noctum",
        unit_dir: Path = UNIT_DIR,
        log_path: Path | None = None,
    ):
        self.elevator = elevator
        self.service_name = service_name
        self.unit_dir = Path(unit_dir)
        self.log_path = log_path

    @property
    def unit_name(self) -> str:
        return f"{self.service_name}.service"

    @property
    def service_file(self) -> Path:
        return self.unit_dir / self.unit_name

    def render(self, descriptor: ServiceDescriptor) -> str:
        fields = {k: _unit_value(v) for k, v in descriptor.fields().items()}
        # ExecStart also expands $VAR.
        fields["exec_path"] = _in_quotes(str(descriptor.exec_path)).replace("$", "$$")
        fields["home_dir"] = _in_quotes(str(descriptor.home_dir))
        fields["description"] = f"{self.service_name} daemon"
        return render_template(UNIT_TEMPLATE, fields)

    def install(self, descriptor: ServiceDescriptor) -> None:
        unit = self.render(descriptor)
        self.ensure_log_dirs(descriptor, owner=(descriptor.run_as_user, descriptor.run_as_group))
        self._write_unit(unit)

        # Every step runs on every install; restart starts a stopped unit
        # and picks up a new binary in a running one.
        self._ctl("daemon-reload")
        self._ctl("enable", self.unit_name)
        self._ctl("restart", self.unit_name)
        logger.info(f"Installed and started {self.unit_name}")

    def uninstall(self) -> None:
        if not self.is_installed():
            logger.info(f"{self.service_file} not found; nothing to uninstall")
            return
        try:
            self._ctl("stop", self.unit_name)
        except ServiceError as e:
            logger.warning(f"Could not stop {self.unit_name}: {e}")
        try:
            self._ctl("disable", self.unit_name)
        except ServiceError:
            pass
        self._remove_unit()
        try:
            self._ctl("daemon-reload")
        except ServiceError as e:
            logger.warning(f"{self.service_file} removed, but systemd was not reloaded: {e}")
        logger.info(f"Removed {self.unit_name}")

    def start(self) -> None:
        if not self.is_installed():
            raise ServiceError("Service not installed. Run install first.")
        self._ctl("start", self.unit_name)

    def stop(self) -> None:
        if not self.is_installed():
            raise ServiceError("Service not installed.")
        self._ctl("stop", self.unit_name)

    def status(self) -> ServiceInfo:
        if not self.is_installed():
            return ServiceInfo(status=ServiceStatus.NOT_INSTALLED)

        try:
            result = subprocess.run(
                ["systemctl", "is-active", self.unit_name],
                capture_output=True, text=True,
            )
            active = result.stdout.strip() == "active"
        except FileNotFoundError:
            active = False

        pid = None
        if active:
            pid = self._get_pid()

        return ServiceInfo(
            status=ServiceStatus.RUNNING if active else ServiceStatus.STOPPED,
            pid=pid,
            service_file=self.service_file,
            log_path=self.log_path,
        )

    def is_installed(self) -> bool:
        return self.service_file.exists()

    def _write_unit(self, unit: str) -> None:
        """Atomically place *unit* at the service file path.

        Without write access the unit is staged in a user-owned temp file
        and only the final copy runs elevated.
        """
        if not needs_elevation(self.unit_dir):
            self.unit_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=f".{self.unit_name}.", dir=self.unit_dir)
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(unit)
                os.chmod(tmp, 0o644)
                os.replace(tmp, self.service_file)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
            return

        fd, tmp = tempfile.mkstemp(prefix=f"{self.unit_name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(unit)
            self._elevated(
                f"write {self.service_file}",
                "install", "-m", "0644", tmp, str(self.service_file),
            )
        finally:
            Path(tmp).unlink(missing_ok=True)

    def _remove_unit(self) -> None:
        try:
            self.service_file.unlink(missing_ok=True)
        except PermissionError:
            self._elevated(f"remove {self.service_file}", "rm", "-f", str(self.service_file))

    def _get_pid(self) -> int | None:
        try:
            result = subprocess.run(
                ["systemctl", "show", "-p", "MainPID", self.unit_name],
                capture_output=True, text=True,
            )
            # Output: MainPID=12345
            for line in result.stdout.splitlines():
                if line.startswith("MainPID="):
                    pid = int(line.split("=", 1)[1])
                    return pid if pid > 0 else None
        except (FileNotFoundError, ValueError):
            pass
        return None

    def _elevated(self, description: str, *argv: str) -> None:
        try:
            self.elevator.run(PrivilegedAction(description=description, argv=argv))
        except FileNotFoundError as e:
            raise ServiceError(f"Could not {description}: {e}") from e
        except subprocess.CalledProcessError as e:
            raise ServiceError(
                f"Could not {description}: {(e.stderr or '').strip()}"
            ) from e

    def _ctl(self, *args: str) -> None:
        self._elevated(f"run systemctl {' '.join(args)}", "systemctl", *args)
