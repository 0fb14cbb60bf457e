from __future__ import annotations

import logging

from .command import run_cmd

logger = logging.getLogger(__name__)

# apt-get must never prompt: the operator's terminal is only used for the menu.
_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class AptPackageManager:
    """dpkg/apt-get boundary used by the lifecycle orchestrator."""

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run

    def install_file(self, path: str) -> bool:
        """dpkg -i a local archive; False when dpkg reports a failure
        (typically unmet dependencies)."""
        r = run_cmd(["dpkg", "-i", path], check=False, dry_run=self.dry_run)
        if not r.ok:
            logger.warning("dpkg -i %s failed (%s)", path, r.returncode)
        return r.ok

    def repair_dependencies(self) -> None:
        run_cmd(["apt-get", "install", "-f", "-y"], env=_APT_ENV, dry_run=self.dry_run)

    def is_installed(self, package: str) -> bool:
        if self.dry_run:
            return False
        r = run_cmd(["dpkg-query", "-W", "-f=${Status}", package], check=False)
        return r.ok and "install ok installed" in r.stdout

    def is_present(self, package: str) -> bool:
        """True for any state dpkg still tracks: unpacked, half-configured,
        config-files and so on. Only "not-installed" or unknown counts as absent."""
        if self.dry_run:
            return False
        r = run_cmd(["dpkg-query", "-W", "-f=${Status}", package], check=False)
        words = r.stdout.split()
        return r.ok and len(words) == 3 and words[2] != "not-installed"

    def remove(self, package: str) -> None:
        run_cmd(["apt-get", "remove", "-y", "--purge", package], env=_APT_ENV, dry_run=self.dry_run)

    def autoremove(self) -> None:
        run_cmd(["apt-get", "autoremove", "-y"], env=_APT_ENV, dry_run=self.dry_run)
