"""Privilege elevation.

Every operation that needs root is expressed as a ``PrivilegedAction`` and
executed through an ``Elevator``. Tests substitute a recording elevator.

``Elevator.run`` raises ``PrivilegeError`` when elevation itself fails and
``subprocess.CalledProcessError`` when the elevated command fails, so
callers can tell "wrong password" apart from "systemctl said no".
"""

from __future__ import annotations

import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from noctum_installer.errors import PrivilegeError


@dataclass(frozen=True)
class PrivilegedAction:
    """A single command that must run with elevated rights."""

    description: str
    argv: tuple[str, ...]

    def __str__(self) -> str:
        return " ".join(self.argv)


class Elevator(ABC):
    """Executes PrivilegedActions."""

    @abstractmethod
    def run(self, action: PrivilegedAction) -> subprocess.CompletedProcess:
        """Run the action with elevated rights."""


class SudoElevator(Elevator):
    """Runs actions through ``sudo``, prompting for a password if needed."""

    def __init__(self, sudo: str = "sudo"):
        self.sudo = sudo
        self._prompted = False

    def _authenticate(self, sudo: str, action: PrivilegedAction) -> None:
        if self._prompted:
            logger.debug(f"Re-validating sudo to {action.description}")
        else:
            logger.warning(f"Requesting sudo permission to {action.description}")
            self._prompted = True
        # Interactive: the prompt is written to the controlling tty.
        result = subprocess.run([sudo, "-v"])
        if result.returncode != 0:
            raise PrivilegeError(
                f"Administrator rights are required to {action.description}; "
                "sudo authentication was declined or failed"
            )

    def run(self, action: PrivilegedAction) -> subprocess.CompletedProcess:
        sudo = shutil.which(self.sudo)
        if sudo is None:
            raise PrivilegeError(
                f"Administrator rights are required to {action.description}, "
                f"but '{self.sudo}' was not found"
            )
        self._authenticate(sudo, action)
        logger.debug(f"sudo {action}")
        return subprocess.run(
            [sudo, "-n", *action.argv],
            check=True, capture_output=True, text=True,
        )


class DirectElevator(Elevator):
    """Runs actions as-is. Used when the installer already runs as root."""

    def run(self, action: PrivilegedAction) -> subprocess.CompletedProcess:
        logger.debug(f"{action}")
        return subprocess.run(
            list(action.argv),
            check=True, capture_output=True, text=True,
        )


def needs_elevation(path: Path) -> bool:
    """Whether creating files in *path* (or its nearest existing parent) needs root."""
    path = Path(path)
    while not path.exists():
        if path.parent == path:
            return True
        path = path.parent
    return not os.access(path, os.W_OK | os.X_OK)


def get_elevator() -> Elevator:
    """Return the elevator appropriate for the current effective user."""
    if os.geteuid() == 0:
        return DirectElevator()
    return SudoElevator()
