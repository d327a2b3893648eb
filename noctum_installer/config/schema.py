"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict


class InstallerSettings(BaseSettings):
    """Where releases come from and where things get installed.

    Every field can be overridden with a ``NOCTUM_INSTALL_`` environment
    variable, e.g. ``NOCTUM_INSTALL_INSTALL_DIR=~/.local/bin``.
    """

    model_config = SettingsConfigDict(env_prefix="NOCTUM_INSTALL_")

    repo: str = "SeanCheatham/Noctum"
    binary_name: str = "noctum"
    service_name: str = "noctum"
    launchd_label: str = "com.noctum.daemon"
    install_dir: Path = Path("/usr/local/bin")
    github_api: str = "https://api.github.com"
    github_base: str = "https://github.com"
    timeout: float = 30.0

    @property
    def release_api_url(self) -> str:
        """Endpoint listing the latest release."""
        return f"{self.github_api}/repos/{self.repo}/releases/latest"

    @property
    def release_base(self) -> str:
        """Base URL that versioned release assets hang off."""
        return f"{self.github_base}/{self.repo}/releases/download"


class ServiceIdentity(BaseModel):
    """The account the supervised daemon runs as."""

    model_config = ConfigDict(frozen=True)

    user: str
    group: str
    home: Path


class InstallOptions(BaseModel):
    """Immutable per-run options, built once from the parsed CLI flags."""

    model_config = ConfigDict(frozen=True)

    uninstall: bool = False
    manage_service: bool = False
    install_dir: Path = Path("/usr/local/bin")
    identity: ServiceIdentity
