"""Platform detection, release resolution and artifact deployment."""

from noctum_installer.release.artifact import ArtifactInstaller
from noctum_installer.release.locator import ReleaseArtifact, ReleaseLocator
from noctum_installer.release.platform import (
    Architecture,
    OSFamily,
    PlatformTag,
    resolve_os_family,
    resolve_platform,
)

__all__ = [
    "Architecture",
    "ArtifactInstaller",
    "OSFamily",
    "PlatformTag",
    "ReleaseArtifact",
    "ReleaseLocator",
    "resolve_os_family",
    "resolve_platform",
]
