"""Download, extract and deploy the release binary."""

from __future__ import annotations

import os
import secrets
import shutil
import subprocess
import tarfile
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path, PurePosixPath

import httpx
from loguru import logger

from noctum_installer.config.schema import InstallerSettings
from noctum_installer.errors import (
    DownloadError,
    ExtractionError,
    InstallerError,
    PrivilegeError,
)
from noctum_installer.privilege import Elevator, PrivilegedAction, needs_elevation
from noctum_installer.release.locator import open_client

WORKSPACE_PREFIX = "noctum-install-"
CHUNK_SIZE = 64 * 1024

# $1 target dir, $2 source, $3 staging name, $4 final name.
_ELEVATED_DEPLOY = (
    'mkdir -p "$1" && install -m 0755 "$2" "$3" && mv -f "$3" "$4" '
    '|| { rm -f "$3"; exit 1; }'
)


class ArtifactInstaller:
    """Fetches a release tarball and places its binary on the system path."""

    def __init__(
        self,
        settings: InstallerSettings,
        elevator: Elevator,
        transport: httpx.BaseTransport | None = None,
    ):
        self.settings = settings
        self.elevator = elevator
        self._transport = transport

    def installed_path(self, target_dir: Path) -> Path:
        return Path(target_dir).expanduser() / self.settings.binary_name

    def is_deployed(self, target_dir: Path) -> bool:
        return self.installed_path(target_dir).is_file()

    @contextmanager
    def workspace(self) -> Iterator[Path]:
        """Create a process-unique temp directory, removed on every exit path."""
        path = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX))
        logger.debug(f"Created workspace {path}")
        try:
            yield path
        finally:
            shutil.rmtree(path, ignore_errors=True)
            logger.debug(f"Removed workspace {path}")

    def fetch(self, url: str, workspace: Path) -> Path:
        """Stream *url* into *workspace* and return the tarball path."""
        tarball = workspace / url.rsplit("/", 1)[-1]
        logger.info(f"Downloading {url}")
        try:
            with open_client(self.settings, self._transport) as client:
                with client.stream("GET", url) as r:
                    r.raise_for_status()
                    with open(tarball, "wb") as f:
                        for chunk in r.iter_bytes(CHUNK_SIZE):
                            f.write(chunk)
        except httpx.HTTPStatusError as e:
            tarball.unlink(missing_ok=True)
            raise DownloadError(
                f"Download failed: {url} returned {e.response.status_code}. "
                "Check that the release exists for your platform."
            ) from e
        except (httpx.HTTPError, OSError) as e:
            tarball.unlink(missing_ok=True)
            raise DownloadError(f"Download failed: {e}") from e

        logger.debug(f"Downloaded {tarball.stat().st_size} bytes to {tarball}")
        return tarball

    def extract(self, tarball: Path, workspace: Path) -> Path:
        """Extract the binary from *tarball* and return its path."""
        name = self.settings.binary_name
        dest = workspace / "extract"
        dest.mkdir(exist_ok=True)
        logger.info(f"Extracting {tarball.name}")
        try:
            with tarfile.open(tarball, "r:gz") as tf:
                members = tf.getmembers()
                member = next(
                    (m for m in members if m.isfile() and PurePosixPath(m.name).name == name),
                    None,
                )
                if member is None:
                    raise ExtractionError(
                        f"Binary '{name}' not found in {tarball.name}. "
                        f"Contents: {', '.join(m.name for m in members) or '(empty)'}"
                    )
                tf.extractall(dest, members=[member], filter="data")
        except (tarfile.TarError, EOFError, OSError) as e:
            raise ExtractionError(f"Failed to extract {tarball.name}: {e}") from e

        return dest / member.name.lstrip("/")

    def deploy(self, executable: Path, target_dir: Path) -> Path:
        """Install *executable* into *target_dir* as ``binary_name``.

        The binary is written under a temporary name next to the destination
        and renamed into place, so a running daemon keeps its old inode and a
        half-written file is never visible at the final path. Falls back to
        the elevator when *target_dir* is not writable.
        """
        target_dir = Path(target_dir).expanduser()
        dest = target_dir / self.settings.binary_name

        if not needs_elevation(target_dir):
            try:
                self._deploy_direct(executable, target_dir, dest)
            except PermissionError:
                logger.debug(f"Direct deploy into {target_dir} was refused")
                self._deploy_elevated(executable, target_dir, dest)
            except OSError as e:
                raise InstallerError(f"Failed to install {dest}: {e}") from e
        else:
            self._deploy_elevated(executable, target_dir, dest)

        logger.info(f"Installed {dest}")
        return dest

    def _deploy_direct(self, executable: Path, target_dir: Path, dest: Path) -> None:
        target_dir.mkdir(parents=True, exist_ok=True)
        fd, staging_name = tempfile.mkstemp(
            prefix=f".{self.settings.binary_name}.", suffix=".tmp", dir=target_dir,
        )
        os.close(fd)
        staging = Path(staging_name)
        try:
            shutil.copyfile(executable, staging)
            os.chmod(staging, 0o755)
            os.replace(staging, dest)
        except BaseException:
            staging.unlink(missing_ok=True)
            raise

    def _deploy_elevated(self, executable: Path, target_dir: Path, dest: Path) -> None:
        staging = target_dir / f".{self.settings.binary_name}.{secrets.token_hex(4)}.tmp"
        action = PrivilegedAction(
            description=f"install {dest.name} to {target_dir}",
            argv=(
                "sh", "-c", _ELEVATED_DEPLOY, "sh",
                str(target_dir), str(executable), str(staging), str(dest),
            ),
        )
        try:
            self.elevator.run(action)
        except subprocess.CalledProcessError as e:
            raise PrivilegeError(
                f"Failed to install {dest} with elevated rights: {(e.stderr or '').strip()}"
            ) from e

    def remove(self, target_dir: Path) -> bool:
        """Delete the installed binary. Returns False if there was none."""
        dest = self.installed_path(target_dir)
        if not dest.exists() and not dest.is_symlink():
            logger.info(f"Binary not found at {dest}")
            return False
        try:
            dest.unlink()
        except PermissionError:
            action = PrivilegedAction(
                description=f"remove {dest}",
                argv=("rm", "-f", str(dest)),
            )
            try:
                self.elevator.run(action)
            except subprocess.CalledProcessError as e:
                raise PrivilegeError(
                    f"Failed to remove {dest}: {(e.stderr or '').strip()}"
                ) from e
        logger.info(f"Removed {dest}")
        return True
