"""Abstract service adapter interface and shared types."""

import dataclasses
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from loguru import logger


class ServiceStatus(Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    NOT_INSTALLED = "not_installed"


@dataclass
class ServiceInfo:
    status: ServiceStatus
    pid: int | None = None
    service_file: Path | None = None
    log_path: Path | None = None


@dataclass(frozen=True)
class ServiceDescriptor:
    """Everything a service manager needs to supervise the daemon.

    Rendered into both the systemd unit and the launchd plist; every field
    must appear in each rendering.
    """

    exec_path: Path
    run_as_user: str
    run_as_group: str
    home_dir: Path
    stdout_log: Path
    stderr_log: Path

    def fields(self) -> dict[str, str]:
        """Field values as strings, keyed by field name."""
        return {f.name: str(getattr(self, f.name)) for f in dataclasses.fields(self)}


class ServiceAdapter(ABC):
    """Abstract base for platform-specific service managers."""

    # False for adapters that cannot actually supervise anything.
    supervised = True

    @property
    @abstractmethod
    def service_file(self) -> Path | None:
        """Where the service descriptor lives."""

    @abstractmethod
    def install(self, descriptor: ServiceDescriptor) -> None:
        """Write the descriptor, register it and (re)start the service."""

    @abstractmethod
    def uninstall(self) -> None:
        """Stop, deregister and delete the descriptor. No-op if absent."""

    @abstractmethod
    def start(self) -> None:
        """Start the service."""

    @abstractmethod
    def stop(self) -> None:
        """Stop the service."""

    @abstractmethod
    def status(self) -> ServiceInfo:
        """Get current service status."""

    @abstractmethod
    def is_installed(self) -> bool:
        """Check whether the descriptor file exists."""

    @staticmethod
    def ensure_log_dirs(descriptor: ServiceDescriptor, owner: tuple[str, str] | None = None) -> None:
        """Create the directories holding the service logs.

        When running as root on behalf of another user, every directory
        created here is handed to *owner* ``(user, group)``.
        """
        for log in (descriptor.stdout_log, descriptor.stderr_log):
            log_dir = log.parent
            created = []
            missing = log_dir
            while not missing.exists():
                created.append(missing)
                missing = missing.parent
            if not created:
                continue

            log_dir.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Created log directory {log_dir}")
            if not owner or os.geteuid() != 0:
                continue
            for path in reversed(created):
                try:
                    shutil.chown(path, *owner)
                except (LookupError, PermissionError) as e:
                    logger.warning(f"Could not hand {path} to {owner[0]}: {e}")
                    break
