from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional

import requests

from . import __version__
from .catalog import ACTION_EXIT, ACTION_UNINSTALL, PACKAGE_PREFIX, Catalog, component_names
from .config import load_config
from .errors import InstallerError, PrivilegeError
from .lifecycle import LifecycleOrchestrator
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .menu import DEFAULT_TTY, read_choice
from .release import resolve_release

logger = logging.getLogger(__name__)


def check_root() -> None:
    if os.geteuid() != 0:
        raise PrivilegeError("This installer must be run as root. Please use sudo.")


def run(
    *,
    config_path: Optional[str] = None,
    log_path: str = DEFAULT_LOG_PATH,
    dry_run: bool = False,
    tty_path: str = DEFAULT_TTY,
    session: Optional[requests.Session] = None,
) -> int:
    """Resolve the latest release, ask what to do, then install or uninstall."""

    configure_logging(log_path=log_path)

    if dry_run:
        logger.info("Dry run: system commands are logged, not executed")
    else:
        check_root()

    cfg = load_config(config_path)
    http = session or requests.Session()

    release = resolve_release(cfg, component_names(), prefix=PACKAGE_PREFIX, session=http)
    catalog = Catalog(release)

    selection = catalog.resolve_selection(read_choice(catalog, tty_path=tty_path))
    if selection.action == ACTION_EXIT:
        logger.info("Exiting without installing.")
        return 0

    orchestrator = LifecycleOrchestrator(cfg, session=http, dry_run=dry_run)

    if selection.action == ACTION_UNINSTALL:
        logger.info("Uninstalling all SoftEther VPN components and services...")
        orchestrator.uninstall_all()
        logger.info("Uninstallation completed successfully!")
        return 0

    result = orchestrator.install_all(release, selection.components)
    for name, state in result.services.items():
        logger.info("%s: %s", name, state.describe())
    if not result.ok:
        for name, message in result.service_failures.items():
            print(f"Error [service]: {name}: {message}", file=sys.stderr)
        logger.error("Packages installed, but %d service(s) failed to start", len(result.service_failures))
        return 1

    logger.info("Installation and service setup completed successfully!")
    logger.info("You can configure SoftEther VPN using vpncmd or SoftEther VPN Server Manager.")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="softether-installer")
    p.add_argument("--config", default=None, help="Path to installer config (yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--dry-run", action="store_true", help="Log package/service commands instead of running them")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = p.parse_args(argv)

    try:
        return run(config_path=args.config, log_path=args.log, dry_run=bool(args.dry_run))
    except InstallerError as e:
        logger.debug("Installer failed", exc_info=True)
        print(f"Error [{e.category}]: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
