"""Service management: adapter factory and re-exports."""

import shutil

from loguru import logger

from noctum_installer.config.paths import get_log_dir
from noctum_installer.config.schema import InstallerSettings, ServiceIdentity
from noctum_installer.errors import ServiceManagerUnavailableError
from noctum_installer.privilege import Elevator
from noctum_installer.release.platform import OSFamily
from noctum_installer.service.base import (
    ServiceAdapter,
    ServiceDescriptor,
    ServiceInfo,
    ServiceStatus,
)

__all__ = [
    "ServiceAdapter",
    "ServiceDescriptor",
    "ServiceInfo",
    "ServiceStatus",
    "get_adapter",
    "require_systemctl",
]


def require_systemctl() -> str:
    """Return the path to systemctl, or raise ServiceManagerUnavailableError."""
    systemctl = shutil.which("systemctl")
    if systemctl is None:
        raise ServiceManagerUnavailableError("systemctl not found; systemd is not available")
    return systemctl


def get_adapter(
    os_family: OSFamily,
    settings: InstallerSettings,
    identity: ServiceIdentity,
    elevator: Elevator,
) -> ServiceAdapter:
    """Return the ServiceAdapter for *os_family*.

    On Linux without systemd this degrades to a NoneAdapter with a warning.
    """
    log_path = get_log_dir(identity.home) / f"{settings.binary_name}.log"

    if os_family == OSFamily.MACOS:
        from noctum_installer.service.launchd import LaunchdAdapter
        return LaunchdAdapter(home=identity.home, label=settings.launchd_label, log_path=log_path)

    try:
        require_systemctl()
    except ServiceManagerUnavailableError as e:
        from noctum_installer.service.none import NoneAdapter
        logger.debug(f"Falling back to no service manager: {e}")
        return NoneAdapter(reason=str(e))

    from noctum_installer.service.systemd import SystemdAdapter
    return SystemdAdapter(elevator, service_name=settings.service_name, log_path=log_path)
