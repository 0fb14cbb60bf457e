# tests/conftest.py
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest
import requests

from softether_installer.config import InstallerConfig
from softether_installer.errors import CommandError

GITHUB_BASE = "https://github.com/parkycai/softether-vpn-deb/releases/download/v5.02.5187-deb"


def release_doc(tag="v5.02.5187-deb", components=("common", "vpncmd", "vpnclient", "vpnserver", "vpnbridge")):
    return {
        "tag_name": tag,
        "assets": [
            {"browser_download_url": f"{GITHUB_BASE}/softether-{c}_5.02.5187_amd64.deb"}
            for c in components
        ],
    }


class FakeResponse:
    """Just enough of requests.Response for the resolver and downloader."""

    def __init__(self, status_code=200, chunks=(b"data",), json_data=None, json_error=None):
        self.status_code = status_code
        self._chunks = list(chunks)
        self._json_data = json_data
        self._json_error = json_error

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)

    def iter_content(self, chunk_size=1):
        for chunk in self._chunks:
            if isinstance(chunk, BaseException):
                raise chunk
            yield chunk

    def json(self):
        if self._json_error is not None:
            raise self._json_error
        return self._json_data


class FakePackageManager:
    """Records dpkg/apt calls against an in-memory set of installed packages."""

    def __init__(
        self,
        installed: Optional[Set[str]] = None,
        failing: Optional[Dict[str, str]] = None,
        partial: Optional[Set[str]] = None,
    ):
        self.installed: Set[str] = set(installed or ())
        # Unpacked or half-configured packages dpkg still tracks.
        self.partial: Set[str] = set(partial or ())
        # file name fragment -> "repairable" | "broken"
        self.failing = dict(failing or {})
        self.calls: List[tuple] = []
        self._pending: Optional[str] = None

    @staticmethod
    def _package_of(path: str) -> str:
        return Path(path).name.split("_", 1)[0]

    def install_file(self, path):
        self.calls.append(("install_file", path))
        pkg = self._package_of(path)
        mode = self.failing.get(pkg)
        if mode is None:
            self.installed.add(pkg)
            return True
        # dpkg leaves a failed package unpacked but unconfigured.
        self.partial.add(pkg)
        self._pending = pkg if mode == "repairable" else None
        return False

    def repair_dependencies(self):
        self.calls.append(("repair_dependencies",))
        if self._pending is not None:
            self.installed.add(self._pending)
            self.partial.discard(self._pending)
            self._pending = None

    def is_installed(self, package):
        self.calls.append(("is_installed", package))
        return package in self.installed

    def is_present(self, package):
        self.calls.append(("is_present", package))
        return package in self.installed or package in self.partial

    def remove(self, package):
        self.calls.append(("remove", package))
        if package not in self.installed and package not in self.partial:
            raise CommandError(["apt-get", "remove", package], 100)
        self.installed.discard(package)
        self.partial.discard(package)

    def autoremove(self):
        self.calls.append(("autoremove",))


class FakeServiceManager:
    """Models systemd unit state; errors like systemctl when a unit file is missing."""

    def __init__(self, unit_dir: Path, active=(), enabled=(), fail_start=()):
        self.unit_dir = Path(unit_dir)
        self.active: Set[str] = set(active)
        self.enabled: Set[str] = set(enabled)
        self.fail_start = set(fail_start)
        self.calls: List[tuple] = []

    def _require_unit(self, unit):
        if not (self.unit_dir / unit).exists():
            raise CommandError(["systemctl", "enable", unit], 1, f"Unit {unit} not found")

    def is_active(self, unit):
        self.calls.append(("is_active", unit))
        return unit in self.active

    def is_enabled(self, unit):
        self.calls.append(("is_enabled", unit))
        return unit in self.enabled

    def stop(self, unit):
        self.calls.append(("stop", unit))
        if unit not in self.active:
            raise CommandError(["systemctl", "stop", unit], 5)
        self.active.discard(unit)

    def disable(self, unit):
        self.calls.append(("disable", unit))
        if unit not in self.enabled:
            raise CommandError(["systemctl", "disable", unit], 1)
        self.enabled.discard(unit)

    def enable(self, unit):
        self.calls.append(("enable", unit))
        self._require_unit(unit)
        self.enabled.add(unit)

    def start(self, unit):
        self.calls.append(("start", unit))
        self._require_unit(unit)
        if unit in self.fail_start:
            raise CommandError(["systemctl", "start", unit], 1, "Job failed")
        self.active.add(unit)

    def reload(self):
        self.calls.append(("reload",))


class FakeDownloader:
    """Writes a placeholder file per request instead of touching the network."""

    def __init__(self):
        self.requests: List[tuple] = []

    def __call__(self, dest_name, mirror_urls, *, dest_dir, **kwargs):
        self.requests.append((dest_name, tuple(mirror_urls)))
        out = Path(dest_dir)
        out.mkdir(parents=True, exist_ok=True)
        path = out / dest_name
        path.write_text(f"contents of {dest_name}\n", encoding="utf-8")
        return path


@pytest.fixture
def cfg(tmp_path):
    return InstallerConfig(
        raw={
            "services": {"unit_dir": str(tmp_path / "units")},
            "download": {"scratch_root": str(tmp_path / "scratch")},
        }
    )
