"""Resolve the latest release and build per-platform download URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import httpx
from loguru import logger

from noctum_installer import __version__
from noctum_installer.config.schema import InstallerSettings
from noctum_installer.errors import VersionResolutionError
from noctum_installer.release.platform import PlatformTag

SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)

USER_AGENT = f"noctum-installer/{__version__}"


@dataclass(frozen=True)
class ReleaseArtifact:
    """A release tarball for one platform. ``tarball_path`` is set once downloaded."""

    version: str
    download_url: str
    tarball_path: Path | None = None


def open_client(
    settings: InstallerSettings,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Build the HTTP client used for both the release API and asset downloads."""
    return httpx.Client(
        timeout=settings.timeout,
        transport=transport,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


def parse_version(tag: str) -> str:
    """Strip an optional 'v' prefix and validate the rest as SemVer.

    Raises VersionResolutionError if the tag is not a version.
    """
    version = tag.strip()
    if version.startswith("v"):
        version = version[1:]
    if not SEMVER_RE.match(version):
        raise VersionResolutionError(f"Release tag {tag!r} is not a version")
    return version


class ReleaseLocator:
    """Looks up the latest published release on GitHub.

    Nothing is cached: every call to ``latest_version`` hits the endpoint.
    """

    def __init__(
        self,
        settings: InstallerSettings,
        transport: httpx.BaseTransport | None = None,
    ):
        self.settings = settings
        self._transport = transport

    def latest_version(self) -> str:
        """Fetch the latest release tag and return it without the 'v' prefix."""
        url = self.settings.release_api_url
        logger.debug(f"Resolving latest version from {url}")
        try:
            with open_client(self.settings, self._transport) as client:
                r = client.get(url, headers={"Accept": "application/vnd.github+json"})
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPStatusError as e:
            raise VersionResolutionError(
                f"Could not determine latest version: {url} returned "
                f"{e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise VersionResolutionError(
                f"Could not determine latest version: {e}"
            ) from e
        except ValueError as e:
            raise VersionResolutionError(
                f"Could not determine latest version: invalid JSON from {url}"
            ) from e

        tag = data.get("tag_name") if isinstance(data, dict) else None
        if not isinstance(tag, str) or not tag:
            raise VersionResolutionError(
                "Could not determine latest version: response has no tag_name"
            )
        version = parse_version(tag)
        logger.info(f"Latest version: {version}")
        return version

    def build_download_url(self, version: str, tag: PlatformTag) -> str:
        """Compose the tarball URL for a version and platform."""
        return (
            f"{self.settings.release_base}/v{version}/"
            f"{self.settings.binary_name}-{tag.release_suffix}.tar.gz"
        )

    def resolve(self, tag: PlatformTag) -> ReleaseArtifact:
        """Latest version plus its download URL for *tag*."""
        version = self.latest_version()
        return ReleaseArtifact(version=version, download_url=self.build_download_url(version, tag))
