"""Platform detection and release-suffix mapping."""

import platform as _platform
from dataclasses import dataclass
from enum import Enum

from noctum_installer.errors import UnsupportedPlatformError


class OSFamily(Enum):
    LINUX = "linux"
    MACOS = "macos"


class Architecture(Enum):
    X86_64 = "x86_64"
    ARM64 = "aarch64"


# Kernel names are matched exactly; "linux" or "darwin" are not accepted.
_KERNELS = {
    "Linux": OSFamily.LINUX,
    "Darwin": OSFamily.MACOS,
}

_ARCHES = {
    "x86_64": Architecture.X86_64,
    "arm64": Architecture.ARM64,
    "aarch64": Architecture.ARM64,
}

_OS_SUFFIX = {
    OSFamily.LINUX: "unknown-linux-gnu",
    OSFamily.MACOS: "apple-darwin",
}


@dataclass(frozen=True)
class PlatformTag:
    """A supported (OS family, architecture) pair."""

    os_family: OSFamily
    arch: Architecture

    @property
    def release_suffix(self) -> str:
        """Target triple used in release asset names, e.g. x86_64-unknown-linux-gnu."""
        return f"{self.arch.value}-{_OS_SUFFIX[self.os_family]}"

    def __str__(self) -> str:
        return self.release_suffix


def resolve_os_family(system: str | None = None) -> OSFamily:
    """Map a kernel name (``uname -s``) to an OSFamily."""
    system = _platform.system() if system is None else system
    try:
        return _KERNELS[system]
    except KeyError:
        raise UnsupportedPlatformError(
            f"Unsupported operating system: {system!r}. "
            f"Supported: {', '.join(_KERNELS)}"
        ) from None


def resolve_platform(system: str | None = None, machine: str | None = None) -> PlatformTag:
    """Return the PlatformTag for the running (or given) kernel and machine.

    Raises UnsupportedPlatformError for anything outside the supported table.
    """
    os_family = resolve_os_family(system)
    machine = _platform.machine() if machine is None else machine
    try:
        arch = _ARCHES[machine]
    except KeyError:
        raise UnsupportedPlatformError(
            f"Unsupported architecture: {machine!r} on {os_family.value}. "
            f"Supported: {', '.join(_ARCHES)}"
        ) from None
    return PlatformTag(os_family=os_family, arch=arch)
