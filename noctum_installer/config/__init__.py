"""Configuration module for noctum-installer."""

from noctum_installer.config.identity import current_identity
from noctum_installer.config.paths import (
    get_config_dir,
    get_data_dir,
    get_launch_agents_dir,
    get_log_dir,
)
from noctum_installer.config.schema import InstallerSettings, InstallOptions, ServiceIdentity

__all__ = [
    "InstallOptions",
    "InstallerSettings",
    "ServiceIdentity",
    "current_identity",
    "get_config_dir",
    "get_data_dir",
    "get_launch_agents_dir",
    "get_log_dir",
]
