"""macOS launchd (user agent) service adapter."""

import os
import plistlib
import subprocess
import tempfile
from pathlib import Path

from loguru import logger

from noctum_installer.config.paths import get_launch_agents_dir
from noctum_installer.errors import ServiceError
from noctum_installer.service.base import (
    ServiceAdapter,
    ServiceDescriptor,
    ServiceInfo,
    ServiceStatus,
)
from noctum_installer.service.template import check_fields

LABEL = "com.noctum.daemon"

# Descriptor fields the agent definition is built from.
PLIST_FIELDS = (
    "exec_path",
    "run_as_user",
    "run_as_group",
    "home_dir",
    "stdout_log",
    "stderr_log",
)


class LaunchdAdapter(ServiceAdapter):

    def __init__(self, home: Path, label: str = LABEL, log_path: Path | None = None):
        self.home = Path(home)
        self.label = label
        self.log_path = log_path

    @property
    def service_file(self) -> Path:
        return get_launch_agents_dir(self.home) / f"{self.label}.plist"

    def build_plist(self, fields: dict[str, str]) -> dict:
        """Agent definition for descriptor *fields*.

        KeepAlive.SuccessfulExit=false restarts only after a non-zero exit.
        UserName/GroupName are only honoured in the system domain.
        """
        check_fields(PLIST_FIELDS, fields)
        return {
            "Label": self.label,
            "ProgramArguments": [fields["exec_path"], "start"],
            "RunAtLoad": True,
            "KeepAlive": {"SuccessfulExit": False},
            "UserName": fields["run_as_user"],
            "GroupName": fields["run_as_group"],
            "EnvironmentVariables": {"HOME": fields["home_dir"]},
            "StandardOutPath": fields["stdout_log"],
            "StandardErrorPath": fields["stderr_log"],
        }

    def render(self, descriptor: ServiceDescriptor) -> bytes:
        return plistlib.dumps(self.build_plist(descriptor.fields()))

    def install(self, descriptor: ServiceDescriptor) -> None:
        plist = self.render(descriptor)
        self.ensure_log_dirs(descriptor, owner=(descriptor.run_as_user, descriptor.run_as_group))

        # launchd would otherwise keep the old registration for this label.
        if self.is_installed():
            self._unload()

        self._write_plist(plist)
        self._launchctl("load", str(self.service_file))
        logger.info(f"Loaded {self.label}")

    def uninstall(self) -> None:
        if not self.is_installed():
            logger.info(f"{self.service_file} not found; nothing to uninstall")
            return
        self._unload()
        self.service_file.unlink(missing_ok=True)
        logger.info(f"Removed {self.service_file}")

    def start(self) -> None:
        if not self.is_installed():
            raise ServiceError("Service not installed. Run install first.")
        self._launchctl("load", str(self.service_file))

    def stop(self) -> None:
        if not self.is_installed():
            raise ServiceError("Service not installed.")
        self._launchctl("unload", str(self.service_file))

    def status(self) -> ServiceInfo:
        if not self.is_installed():
            return ServiceInfo(status=ServiceStatus.NOT_INSTALLED)

        try:
            result = subprocess.run(
                ["launchctl", "list", self.label],
                capture_output=True, text=True,
            )
            if result.returncode == 0:
                pid = self._parse_pid(result.stdout)
                if pid is not None:
                    return ServiceInfo(
                        status=ServiceStatus.RUNNING,
                        pid=pid,
                        service_file=self.service_file,
                        log_path=self.log_path,
                    )
        except FileNotFoundError:
            pass

        return ServiceInfo(
            status=ServiceStatus.STOPPED,
            service_file=self.service_file,
            log_path=self.log_path,
        )

    def is_installed(self) -> bool:
        return self.service_file.exists()

    def _write_plist(self, plist: bytes) -> None:
        target = self.service_file
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{self.label}.", dir=target.parent)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(plist)
            os.chmod(tmp, 0o644)
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _unload(self) -> None:
        try:
            self._launchctl("unload", str(self.service_file))
        except ServiceError as e:
            # Not loaded, e.g. after a reboot with the agent disabled.
            logger.debug(f"Ignoring unload failure: {e}")

    @staticmethod
    def _launchctl(*args: str) -> None:
        try:
            subprocess.run(
                ["launchctl", *args],
                check=True, capture_output=True, text=True,
            )
        except FileNotFoundError as e:
            raise ServiceError(f"launchctl {' '.join(args)} failed: {e}") from e
        except subprocess.CalledProcessError as e:
            raise ServiceError(
                f"launchctl {' '.join(args)} failed: {e.stderr.strip()}"
            ) from e

    @staticmethod
    def _parse_pid(output: str) -> int | None:
        """Extract PID from launchctl list output."""
        for line in output.splitlines():
            parts = line.strip().rstrip(";").split("=")
            if len(parts) == 2 and parts[0].strip() == '"PID"':
                try:
                    return int(parts[1].strip())
                except ValueError:
                    pass
        return None
