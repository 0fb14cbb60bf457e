from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urlsplit

import requests

from .config import InstallerConfig
from .errors import ResolveError

logger = logging.getLogger(__name__)

# Metadata is small; only the connect phase shares the download timeout.
_METADATA_READ_TIMEOUT = 30

DEFAULT_PACKAGE_PREFIX = "softether"


@dataclass(frozen=True)
class AssetRef:
    filename: str
    mirror_urls: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.mirror_urls:
            raise ValueError(f"AssetRef {self.filename} needs at least one mirror URL")


@dataclass(frozen=True)
class ReleaseInfo:
    tag: str
    version: str
    assets: Mapping[str, AssetRef] = field(default_factory=dict)

    def asset(self, component: str) -> AssetRef:
        return self.assets[component]


def parse_version(tag: str, pattern: str) -> str:
    """Extract the version from a release tag, e.g. v5.02.5187-deb -> 5.02.5187."""

    m = re.match(pattern, tag)
    if not m or not m.group("version"):
        raise ResolveError(f"Release tag {tag!r} does not match the expected tag format")
    return m.group("version")


def _filename(url: str) -> str:
    return urlsplit(url).path.rsplit("/", 1)[-1]


def match_assets(
    assets: Iterable[Any],
    components: Iterable[str],
    *,
    prefix: str,
) -> Dict[str, Tuple[str, str]]:
    """Map each component to (filename, download url).

    Matching is on the filename starting with '<prefix>-<component>_'. When
    several assets match, the first in listing order wins; this is not
    stable across releases that rename or duplicate assets, so it is logged.
    """

    urls: List[str] = []
    for a in assets:
        if not isinstance(a, dict):
            continue
        url = a.get("browser_download_url")
        if isinstance(url, str) and url:
            urls.append(url)

    found: Dict[str, Tuple[str, str]] = {}
    for component in components:
        needle = f"{prefix}-{component}_"
        matches = [u for u in urls if _filename(u).startswith(needle)]
        if not matches:
            raise ResolveError(f"No package found for {prefix}-{component} in release assets")
        if len(matches) > 1:
            logger.warning(
                "Multiple assets match %s; using first: %s (ignored: %s)",
                needle,
                _filename(matches[0]),
                ", ".join(_filename(u) for u in matches[1:]),
            )
        found[component] = (_filename(matches[0]), matches[0])
    return found


def build_release_info(
    doc: Any,
    components: Iterable[str],
    cfg: InstallerConfig,
    *,
    prefix: str = DEFAULT_PACKAGE_PREFIX,
) -> ReleaseInfo:
    """Validate a release metadata document and turn it into a ReleaseInfo."""

    if not isinstance(doc, dict):
        raise ResolveError("Release metadata is not a JSON object")

    tag = doc.get("tag_name")
    if not isinstance(tag, str) or not tag.strip():
        raise ResolveError("Release metadata has no tag_name")
    tag = tag.strip()
    version = parse_version(tag, cfg.tag_pattern)

    assets = doc.get("assets")
    if not isinstance(assets, list):
        raise ResolveError(f"Release {tag} has no assets list")

    matched = match_assets(assets, components, prefix=prefix)

    refs: Dict[str, AssetRef] = {}
    for component, (filename, github_url) in matched.items():
        mirrors: List[str] = []
        if cfg.packages_cdn_base:
            mirrors.append(f"{cfg.packages_cdn_base}-{version}/{filename}")
        mirrors.append(github_url)
        refs[component] = AssetRef(filename=filename, mirror_urls=tuple(mirrors))

    return ReleaseInfo(tag=tag, version=version, assets=refs)


def resolve_release(
    cfg: InstallerConfig,
    components: Iterable[str],
    *,
    prefix: str = DEFAULT_PACKAGE_PREFIX,
    session: Optional[requests.Session] = None,
) -> ReleaseInfo:
    """Fetch latest-release metadata and resolve one asset per component.

    Any missing piece aborts the whole resolution; partial releases are not
    supported.
    """

    http = session or requests.Session()
    url = cfg.release_api_url
    logger.info("Fetching release information from %s", url)

    try:
        response = http.get(
            url,
            headers={"Accept": "application/vnd.github+json"},
            timeout=(cfg.connect_timeout, _METADATA_READ_TIMEOUT),
        )
        response.raise_for_status()
    except requests.exceptions.HTTPError as e:
        raise ResolveError(f"Release metadata request failed: {e}") from e
    except requests.exceptions.RequestException as e:
        raise ResolveError(f"Release metadata endpoint unreachable: {e}") from e

    try:
        doc = response.json()
    except ValueError as e:
        raise ResolveError(f"Release metadata is not valid JSON: {e}") from e

    info = build_release_info(doc, components, cfg, prefix=prefix)
    logger.info("Latest release %s (version %s)", info.tag, info.version)
    for component, ref in info.assets.items():
        logger.debug("Asset %s: %s via %s", component, ref.filename, ", ".join(ref.mirror_urls))
    return info
