from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import requests
from urllib3.exceptions import ReadTimeoutError

from .errors import DownloadError

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 20.0
DEFAULT_TOTAL_TIMEOUT = 600.0
# Longest a single read may stall before the mirror is given up on.
STALL_TIMEOUT = 60.0

_CHUNK_SIZE = 64 * 1024

# Substrings urllib3/socket put into connection errors when the host name
# could not be resolved.
_DNS_MARKERS = (
    "NameResolutionError",
    "Name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "Temporary failure in name resolution",
    "No address associated with hostname",
)


class _TransferTimeout(Exception):
    pass


def classify_failure(exc: BaseException) -> str:
    """Map a mirror failure to one of: dns, connect, http, timeout, io."""

    if isinstance(exc, (_TransferTimeout, requests.exceptions.Timeout)):
        return "timeout"
    if isinstance(exc, requests.exceptions.HTTPError):
        return "http"
    if isinstance(exc, requests.exceptions.ConnectionError):
        # requests re-raises a read timeout hit while streaming the body as
        # a ConnectionError wrapping the urllib3 error.
        if exc.args and isinstance(exc.args[0], ReadTimeoutError):
            return "timeout"
        text = str(exc)
        if "Read timed out" in text:
            return "timeout"
        if any(marker in text for marker in _DNS_MARKERS):
            return "dns"
        return "connect"
    if isinstance(exc, requests.exceptions.RequestException):
        # Interrupted or malformed transfers.
        return "connect"
    if isinstance(exc, OSError):
        return "io"
    return "connect"


def _describe(kind: str, url: str, exc: BaseException) -> str:
    if kind == "dns":
        return f"could not resolve host for {url}"
    if kind == "connect":
        return f"failed to connect to {url}"
    if kind == "http":
        response = getattr(exc, "response", None)
        status = response.status_code if response is not None else "unknown"
        return f"HTTP {status} for {url}"
    if kind == "timeout":
        return f"timed out fetching {url}"
    return f"could not write download from {url}: {exc}"


def _fetch_once(
    http: requests.Session,
    url: str,
    part: Path,
    *,
    connect_timeout: float,
    total_timeout: float,
) -> int:
    deadline = time.monotonic() + total_timeout
    written = 0
    # The read timeout bounds a single stalled read; the deadline bounds the
    # whole transfer.
    read_timeout = min(total_timeout, STALL_TIMEOUT)
    with http.get(url, stream=True, timeout=(connect_timeout, read_timeout)) as response:
        response.raise_for_status()
        with open(part, "wb") as f:
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                if time.monotonic() > deadline:
                    raise _TransferTimeout(f"transfer exceeded {total_timeout:.0f}s")
                if chunk:
                    f.write(chunk)
                    written += len(chunk)
    return written


def download(
    dest_name: str,
    mirror_urls: Sequence[str],
    *,
    dest_dir: str,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    total_timeout: float = DEFAULT_TOTAL_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> Path:
    """Download one asset, trying each mirror in order.

    The body is streamed to '<dest_name>.part' and renamed on success, so a
    failed or interrupted attempt never leaves a file under the final name.
    Raises DownloadError once every mirror has failed.
    """

    if not mirror_urls:
        raise ValueError(f"No mirrors given for {dest_name}")

    http = session or requests.Session()
    out_dir = Path(dest_dir)
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DownloadError(dest_name, [], reason=f"cannot create {out_dir}: {e}") from e
    dest = out_dir / dest_name
    part = out_dir / f"{dest_name}.part"

    failures: List[Tuple[str, str]] = []
    for attempt, url in enumerate(mirror_urls, start=1):
        logger.info("Downloading %s (mirror %d/%d)...", dest_name, attempt, len(mirror_urls))
        logger.debug("GET %s", url)
        try:
            size = _fetch_once(
                http,
                url,
                part,
                connect_timeout=connect_timeout,
                total_timeout=total_timeout,
            )
            os.replace(part, dest)
        except (requests.exceptions.RequestException, _TransferTimeout, OSError) as e:
            part.unlink(missing_ok=True)
            kind = classify_failure(e)
            failures.append((url, kind))
            logger.warning("Mirror failed [%s]: %s", kind, _describe(kind, url, e))
            continue

        logger.info("Download of %s completed (%d bytes).", dest_name, size)
        return dest

    raise DownloadError(dest_name, failures)
