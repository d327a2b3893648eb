"""Installer error taxonomy.

Every fatal failure is an ``InstallerError`` carrying the process exit code
the CLI terminates with.
"""


class InstallerError(Exception):
    """Base class for all installer failures."""

    exit_code = 1


class UnsupportedPlatformError(InstallerError):
    """Raised when the kernel name or CPU architecture is not supported."""

    exit_code = 2


class VersionResolutionError(InstallerError):
    """Raised when the latest release version cannot be determined."""

    exit_code = 3


class DownloadError(InstallerError):
    """Raised on network errors or non-2xx responses while downloading."""

    exit_code = 4


class ExtractionError(InstallerError):
    """Raised when the release archive is malformed or lacks the binary."""

    exit_code = 5


class PrivilegeError(InstallerError):
    """Raised when privilege elevation is declined or fails."""

    exit_code = 6


class ServiceError(InstallerError):
    """Raised when a service manager operation fails."""

    exit_code = 7


class TemplateError(ServiceError):
    """Raised when a service descriptor template cannot be rendered."""


class ServiceInstallError(ServiceError):
    """Raised when the binary deployed but service installation failed.

    The binary at ``binary_path`` is left in place and usable manually.
    """

    def __init__(self, message: str, binary_path=None):
        super().__init__(message)
        self.binary_path = binary_path


class ServiceManagerUnavailableError(InstallerError):
    """No supported service manager was found. Non-fatal."""
