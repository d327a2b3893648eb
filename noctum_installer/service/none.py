"""Fallback adapter for hosts without a supported service manager."""

from pathlib import Path

from loguru import logger

from noctum_installer.service.base import (
    ServiceAdapter,
    ServiceDescriptor,
    ServiceInfo,
    ServiceStatus,
)


class NoneAdapter(ServiceAdapter):
    """Does nothing, except tell the user to start the daemon by hand."""

    supervised = False

    def __init__(self, reason: str = "No supported service manager found"):
        self.reason = reason

    @property
    def service_file(self) -> Path | None:
        return None

    def install(self, descriptor: ServiceDescriptor) -> None:
        logger.warning(
            f"{self.reason}. Service not installed; "
            f"start the daemon manually with: {descriptor.exec_path} start"
        )

    def uninstall(self) -> None:
        pass

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def status(self) -> ServiceInfo:
        return ServiceInfo(status=ServiceStatus.NOT_INSTALLED)

    def is_installed(self) -> bool:
        return False
