from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import requests

from .catalog import COMPONENTS, MANDATORY, OPTIONAL, ComponentSpec, component
from .config import InstallerConfig
from .download import download
from .errors import CommandError, PackageInstallError, ServiceSetupError, UninstallError
from .lib.pkg import AptPackageManager
from .lib.systemd import SystemdServiceManager
from .release import ReleaseInfo

logger = logging.getLogger(__name__)

Downloader = Callable[..., Path]


def install_plan(selected: Iterable[str]) -> Tuple[ComponentSpec, ...]:
    """Mandatory components in dependency order, then the selection.

    Selected names must be optional components; duplicates are dropped.
    """

    plan: List[ComponentSpec] = list(MANDATORY)
    for name in selected:
        spec = component(name)
        if spec.mandatory:
            raise ValueError(f"{name} is mandatory and cannot be selected")
        if spec not in plan:
            plan.append(spec)
    return tuple(plan)


def uninstall_plan() -> Tuple[ComponentSpec, ...]:
    """Reverse of the full install order: optional first, base last."""

    full = sorted(COMPONENTS, key=lambda c: c.install_order_rank)
    return tuple(reversed(full))


@dataclass(frozen=True)
class ServiceHandle:
    component_name: str
    unit_name: str
    unit_sources: Tuple[str, ...]
    installed_path: str


@dataclass(frozen=True)
class ServiceState:
    active: bool
    enabled: bool

    def describe(self) -> str:
        return f"{'active' if self.active else 'inactive'}, {'enabled' if self.enabled else 'disabled'}"


@dataclass
class InstallResult:
    plan: Tuple[ComponentSpec, ...]
    services: Dict[str, ServiceState] = field(default_factory=dict)
    service_failures: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.service_failures


@dataclass
class UninstallResult:
    stopped_units: List[str] = field(default_factory=list)
    removed_units: List[str] = field(default_factory=list)
    removed_packages: List[str] = field(default_factory=list)


class LifecycleOrchestrator:
    """Drives the package and service managers through install/uninstall plans."""

    def __init__(
        self,
        cfg: InstallerConfig,
        *,
        packages: Optional[AptPackageManager] = None,
        services: Optional[SystemdServiceManager] = None,
        downloader: Downloader = download,
        session: Optional[requests.Session] = None,
        scratch_dir: Optional[str] = None,
        dry_run: bool = False,
    ) -> None:
        self.cfg = cfg
        self.dry_run = dry_run
        self.packages = packages or AptPackageManager(dry_run=dry_run)
        self.services = services or SystemdServiceManager(dry_run=dry_run)
        self.downloader = downloader
        self.session = session
        # pid-qualified so two concurrent runs never share downloads.
        self.scratch_dir = scratch_dir or os.path.join(cfg.scratch_root, f"softether-install-{os.getpid()}")

    def service_handle(self, name: str) -> ServiceHandle:
        spec = component(name)
        return ServiceHandle(
            component_name=spec.name,
            unit_name=spec.unit_name,
            unit_sources=(
                f"{self.cfg.services_primary_base}/{spec.unit_name}",
                f"{self.cfg.services_fallback_base}/{spec.unit_name}",
            ),
            installed_path=os.path.join(self.cfg.unit_dir, spec.unit_name),
        )

    def _fetch(self, dest_name: str, mirrors: Iterable[str]) -> Path:
        return self.downloader(
            dest_name,
            tuple(mirrors),
            dest_dir=self.scratch_dir,
            connect_timeout=self.cfg.connect_timeout,
            total_timeout=self.cfg.total_timeout,
            session=self.session,
        )

    # -- install ---------------------------------------------------------

    def install_all(self, release: ReleaseInfo, selected: Iterable[str]) -> InstallResult:
        plan = install_plan(selected)
        optional = [spec for spec in plan if not spec.mandatory]
        logger.info("Install plan: %s", ", ".join(spec.name for spec in plan))

        result = InstallResult(plan=plan)
        try:
            # Everything is fetched before dpkg runs so that a dead mirror
            # never leaves a half-installed set of packages.
            debs: Dict[str, Path] = {}
            for spec in plan:
                asset = release.asset(spec.name)
                debs[spec.name] = self._fetch(asset.filename, asset.mirror_urls)

            units: Dict[str, Path] = {}
            for spec in optional:
                handle = self.service_handle(spec.name)
                units[spec.name] = self._fetch(handle.unit_name, handle.unit_sources)

            for spec in plan:
                self._install_package(spec, debs[spec.name])

            for spec in optional:
                handle = self.service_handle(spec.name)
                try:
                    result.services[spec.name] = self._setup_service(handle, units[spec.name])
                except ServiceSetupError as e:
                    logger.error("Service setup failed for %s: %s", spec.name, e)
                    result.service_failures[spec.name] = str(e)
        finally:
            shutil.rmtree(self.scratch_dir, ignore_errors=True)

        return result

    def _install_package(self, spec: ComponentSpec, deb: Path) -> None:
        logger.info("Installing %s...", spec.package_name)
        if self.packages.install_file(str(deb)):
            return

        logger.info("Attempting to repair missing dependencies for %s", spec.package_name)
        try:
            self.packages.repair_dependencies()
        except CommandError as e:
            raise PackageInstallError(
                f"{spec.package_name} could not be installed and dependency repair failed ({e})"
            ) from e

        if not self.packages.is_installed(spec.package_name):
            raise PackageInstallError(f"{spec.package_name} is still not installed after dependency repair")

    def _setup_service(self, handle: ServiceHandle, unit_file: Path) -> ServiceState:
        logger.info("Setting up service for %s...", handle.component_name)
        unit = handle.unit_name
        try:
            dest = Path(handle.installed_path)
            if self.dry_run:
                logger.info("Would install %s -> %s", unit_file, dest)
            else:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(unit_file), str(dest))
                dest.chmod(0o644)
            self.services.reload()
            self.services.enable(unit)
            self.services.start(unit)
        except (CommandError, OSError) as e:
            raise ServiceSetupError(f"{unit}: {e}") from e

        state = ServiceState(active=self.services.is_active(unit), enabled=self.services.is_enabled(unit))
        logger.info("%s is %s", unit, state.describe())
        return state

    # -- uninstall -------------------------------------------------------

    def uninstall_all(self) -> UninstallResult:
        result = UninstallResult()
        try:
            for spec in OPTIONAL:
                self._teardown_service(self.service_handle(spec.name), result)
            self.services.reload()

            for spec in uninstall_plan():
                if not self.packages.is_present(spec.package_name):
                    logger.debug("%s not installed; skipping", spec.package_name)
                    continue
                logger.info("Removing %s...", spec.package_name)
                self.packages.remove(spec.package_name)
                result.removed_packages.append(spec.package_name)

            self.packages.autoremove()
        except (CommandError, OSError) as e:
            raise UninstallError(str(e)) from e
        return result

    def _teardown_service(self, handle: ServiceHandle, result: UninstallResult) -> None:
        unit = handle.unit_name
        if self.services.is_active(unit):
            logger.info("Stopping %s...", unit)
            self.services.stop(unit)
            result.stopped_units.append(unit)
        if self.services.is_enabled(unit):
            logger.info("Disabling %s...", unit)
            self.services.disable(unit)

        path = Path(handle.installed_path)
        if path.exists():
            logger.info("Removing %s...", path)
            if not self.dry_run:
                path.unlink()
            result.removed_units.append(unit)
