"""Shared fixtures and fakes."""

import io
import subprocess
import tarfile
import tempfile
from pathlib import Path

import httpx
import pytest

from noctum_installer.config.schema import InstallerSettings, InstallOptions, ServiceIdentity
from noctum_installer.privilege import Elevator, PrivilegedAction
from noctum_installer.service.base import ServiceDescriptor


class FakeElevator(Elevator):
    """Records every action. File commands run for real, everything else is faked."""

    REAL_COMMANDS = {"sh", "install", "rm", "mkdir"}

    def __init__(self):
        self.actions: list[PrivilegedAction] = []

    def run(self, action: PrivilegedAction) -> subprocess.CompletedProcess:
        self.actions.append(action)
        if action.argv[0] in self.REAL_COMMANDS:
            return subprocess.run(list(action.argv), check=True, capture_output=True, text=True)
        return subprocess.CompletedProcess(list(action.argv), 0, "", "")

    @property
    def commands(self) -> list[tuple[str, ...]]:
        return [a.argv for a in self.actions]


def make_tarball(members: dict[str, bytes]) -> bytes:
    """Build an in-memory .tar.gz with the given file members."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def release_transport(tarball: bytes, tag: str = "v1.2.3", requests: list | None = None):
    """MockTransport serving a latest-release endpoint and one tarball."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(str(request.url))
        if request.url.path.endswith("/releases/latest"):
            return httpx.Response(200, json={"tag_name": tag})
        if request.url.path.endswith(".tar.gz"):
            return httpx.Response(200, content=tarball)
        return httpx.Response(404)

    return httpx.MockTransport(handler)


@pytest.fixture
def elevator():
    return FakeElevator()


@pytest.fixture
def settings():
    return InstallerSettings()


@pytest.fixture
def identity(tmp_path):
    home = tmp_path / "home" / "dev"
    home.mkdir(parents=True)
    return ServiceIdentity(user="dev", group="staff", home=home)


@pytest.fixture
def options(tmp_path, identity):
    return InstallOptions(
        manage_service=True,
        install_dir=tmp_path / "bin",
        identity=identity,
    )


@pytest.fixture
def descriptor(identity):
    log_dir = identity.home / ".local" / "share" / "noctum" / "logs"
    return ServiceDescriptor(
        exec_path=Path("/usr/local/bin/noctum"),
        run_as_user=identity.user,
        run_as_group=identity.group,
        home_dir=identity.home,
        stdout_log=log_dir / "noctum.log",
        stderr_log=log_dir / "noctum.err.log",
    )


@pytest.fixture
def scratch(tmp_path, monkeypatch):
    """Redirect the system temp dir so leftover workspaces are visible."""
    d = tmp_path / "scratch"
    d.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(d))
    return d
