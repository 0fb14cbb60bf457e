from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

DEFAULT_RELEASE_API_URL = "https://api.github.com/repos/parkycai/softether-vpn-deb/releases/latest"
DEFAULT_PACKAGES_CDN_BASE = "https://cdn.jsdelivr.net/gh/parkycai/softether-vpn-deb@packages"
DEFAULT_SERVICES_PRIMARY = "https://cdn.jsdelivr.net/gh/parkycai/softether-vpn-deb@latest"
DEFAULT_SERVICES_FALLBACK = "https://raw.githubusercontent.com/parkycai/softether-vpn-deb/main"


@dataclass(frozen=True)
class InstallerConfig:
    raw: Dict[str, Any] = field(default_factory=dict)

    def _section(self, name: str) -> Dict[str, Any]:
        return self.raw.get(name) or {}

    @property
    def release_api_url(self) -> str:
        return str(self._section("release").get("api_url") or DEFAULT_RELEASE_API_URL)

    @property
    def packages_cdn_base(self) -> str:
        # An explicit empty string disables the CDN mirror for packages.
        value = self._section("release").get("packages_cdn_base", DEFAULT_PACKAGES_CDN_BASE)
        return str(value or "").rstrip("/")

    @property
    def tag_pattern(self) -> str:
        return str(self._section("release").get("tag_pattern") or r"^v(?P<version>[^\s]+)-(?P<suffix>[^\s-]+)$")

    @property
    def services_primary_base(self) -> str:
        return str(self._section("services").get("primary_base") or DEFAULT_SERVICES_PRIMARY).rstrip("/")

    @property
    def services_fallback_base(self) -> str:
        return str(self._section("services").get("fallback_base") or DEFAULT_SERVICES_FALLBACK).rstrip("/")

    @property
    def unit_dir(self) -> str:
        return str(self._section("services").get("unit_dir") or "/etc/systemd/system")

    @property
    def connect_timeout(self) -> float:
        return float(self._section("download").get("connect_timeout") or 20)

    @property
    def total_timeout(self) -> float:
        return float(self._section("download").get("total_timeout") or 600)

    @property
    def scratch_root(self) -> str:
        return str(self._section("download").get("scratch_root") or "/tmp")


def load_config(path: Optional[str]) -> InstallerConfig:
    """Load installer config from YAML; no path means built-in defaults."""

    if path is None:
        return InstallerConfig()

    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {path}")

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ConfigError("Installer config must be YAML")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping/object")

    for section in ("release", "services", "download"):
        if not isinstance(raw.get(section) or {}, dict):
            raise ConfigError(f"{path}: '{section}' must be a mapping")

    pattern = (raw.get("release") or {}).get("tag_pattern")
    if pattern:
        try:
            compiled = re.compile(str(pattern))
        except re.error as e:
            raise ConfigError(f"{path}: invalid release.tag_pattern: {e}") from e
        if "version" not in compiled.groupindex:
            raise ConfigError(f"{path}: release.tag_pattern needs a (?P<version>...) group")

    return InstallerConfig(raw=raw)
