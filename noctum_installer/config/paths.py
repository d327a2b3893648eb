"""Per-user paths the installer reads, creates, or deliberately leaves alone."""

from __future__ import annotations

from pathlib import Path

APP_DIR_NAME = "noctum"


def get_config_dir(home: Path) -> Path:
    """Daemon configuration directory. Never created or removed by the installer."""
    return home / ".config" / APP_DIR_NAME


def get_data_dir(home: Path) -> Path:
    """Daemon data directory. Never removed by the installer."""
    return home / ".local" / "share" / APP_DIR_NAME


def get_log_dir(home: Path) -> Path:
    """Service log directory, inside the data directory."""
    return get_data_dir(home) / "logs"


def get_launch_agents_dir(home: Path) -> Path:
    return home / "Library" / "LaunchAgents"
