from __future__ import annotations

import logging

from .command import run_cmd

logger = logging.getLogger(__name__)


class SystemdServiceManager:
    """systemctl boundary; unit files are handled by the orchestrator."""

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run

    def is_active(self, unit: str) -> bool:
        if self.dry_run:
            return False
        return run_cmd(["systemctl", "is-active", "--quiet", unit], check=False).ok

    def is_enabled(self, unit: str) -> bool:
        if self.dry_run:
            return False
        return run_cmd(["systemctl", "is-enabled", "--quiet", unit], check=False).ok

    def stop(self, unit: str) -> None:
        run_cmd(["systemctl", "stop", unit], dry_run=self.dry_run)

    def disable(self, unit: str) -> None:
        run_cmd(["systemctl", "disable", unit], dry_run=self.dry_run)

    def enable(self, unit: str) -> None:
        run_cmd(["systemctl", "enable", unit], dry_run=self.dry_run)

    def start(self, unit: str) -> None:
        run_cmd(["systemctl", "start", unit], dry_run=self.dry_run)

    def reload(self) -> None:
        run_cmd(["systemctl", "daemon-reload"], dry_run=self.dry_run)
