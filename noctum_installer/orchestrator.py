"""Install and uninstall sequencing."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from pathlib import Path

from loguru import logger

from noctum_installer.config.paths import get_config_dir, get_data_dir, get_log_dir
from noctum_installer.config.schema import InstallerSettings, InstallOptions
from noctum_installer.errors import PrivilegeError, ServiceError, ServiceInstallError
from noctum_installer.privilege import Elevator, get_elevator
from noctum_installer.release.artifact import ArtifactInstaller
from noctum_installer.release.locator import ReleaseLocator
from noctum_installer.release.platform import (
    OSFamily,
    PlatformTag,
    resolve_os_family,
    resolve_platform,
)
from noctum_installer.service import ServiceAdapter, get_adapter
from noctum_installer.service.base import ServiceDescriptor, ServiceInfo


@dataclass
class InstallResult:
    version: str
    platform: PlatformTag
    binary_path: Path
    service: ServiceInfo | None = None

    @property
    def supervised(self) -> bool:
        return self.service is not None


@dataclass
class UninstallResult:
    binary_removed: bool
    service_removed: bool
    preserved: list[Path] = field(default_factory=list)


class LifecycleOrchestrator:
    """Runs one install or uninstall from start to finish.

    Collaborators default to the real implementations; tests pass fakes.
    """

    def __init__(
        self,
        settings: InstallerSettings,
        options: InstallOptions,
        *,
        elevator: Elevator | None = None,
        locator: ReleaseLocator | None = None,
        installer: ArtifactInstaller | None = None,
        platform_resolver: Callable[[], PlatformTag] = resolve_platform,
        os_family_resolver: Callable[[], OSFamily] = resolve_os_family,
        adapter_factory: Callable[..., ServiceAdapter] = get_adapter,
    ):
        self.settings = settings
        self.options = options
        self.elevator = elevator or get_elevator()
        self.locator = locator or ReleaseLocator(settings)
        self.installer = installer or ArtifactInstaller(settings, self.elevator)
        self.platform_resolver = platform_resolver
        self.os_family_resolver = os_family_resolver
        self.adapter_factory = adapter_factory

    def run(self) -> InstallResult | UninstallResult:
        if self.options.uninstall:
            return self.uninstall()
        return self.install()

    def build_descriptor(self, binary_path: Path) -> ServiceDescriptor:
        identity = self.options.identity
        log_dir = get_log_dir(identity.home)
        name = self.settings.binary_name
        return ServiceDescriptor(
            exec_path=binary_path,
            run_as_user=identity.user,
            run_as_group=identity.group,
            home_dir=identity.home,
            stdout_log=log_dir / f"{name}.log",
            stderr_log=log_dir / f"{name}.err.log",
        )

    def adapter_for(self, tag: PlatformTag | None = None) -> ServiceAdapter:
        os_family = tag.os_family if tag else self.os_family_resolver()
        return self.adapter_factory(os_family, self.settings, self.options.identity, self.elevator)

    def install(self) -> InstallResult:
        tag = self.platform_resolver()
        logger.info(f"Platform: {tag}")

        artifact = self.locator.resolve(tag)

        with self.installer.workspace() as workspace:
            tarball = self.installer.fetch(artifact.download_url, workspace)
            artifact = replace(artifact, tarball_path=tarball)
            executable = self.installer.extract(artifact.tarball_path, workspace)
            binary_path = self.installer.deploy(executable, self.options.install_dir)

        result = InstallResult(version=artifact.version, platform=tag, binary_path=binary_path)
        if not self.options.manage_service:
            return result

        # From here on the binary is in place; failures leave it usable by hand.
        try:
            adapter = self.adapter_for(tag)
            adapter.install(self.build_descriptor(binary_path))
            if adapter.supervised:
                result.service = adapter.status()
        except (ServiceError, PrivilegeError) as e:
            raise ServiceInstallError(
                f"{binary_path} was installed, but setting up the service failed: {e}",
                binary_path=binary_path,
            ) from e
        return result

    def uninstall(self) -> UninstallResult:
        adapter = self.adapter_for()
        service_removed = adapter.is_installed()
        adapter.uninstall()

        binary_removed = self.installer.remove(self.options.install_dir)

        home = self.options.identity.home
        preserved = [p for p in (get_config_dir(home), get_data_dir(home)) if p.exists()]
        return UninstallResult(
            binary_removed=binary_removed,
            service_removed=service_removed,
            preserved=preserved,
        )
