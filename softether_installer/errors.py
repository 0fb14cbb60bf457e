from __future__ import annotations


class InstallerError(Exception):
    """Base for every failure reported to the operator."""

    category = "installer"


class ConfigError(InstallerError):
    category = "config"


class CommandError(InstallerError):
    category = "command"

    def __init__(self, argv: list[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"Command failed ({returncode}): {' '.join(self.argv)}")


class ResolveError(InstallerError):
    category = "release"


class DownloadError(InstallerError):
    category = "download"

    def __init__(self, dest_name: str, failures: list[tuple[str, str]], *, reason: str = "") -> None:
        self.dest_name = dest_name
        # (url, failure kind) per attempted mirror, in order.
        self.failures = list(failures)
        if reason:
            super().__init__(f"Cannot download {dest_name}: {reason}")
            return
        tried = ", ".join(f"{url} ({kind})" for url, kind in self.failures)
        super().__init__(f"All mirrors failed for {dest_name}: {tried}")


class InvalidChoiceError(InstallerError):
    category = "input"


class PackageInstallError(InstallerError):
    category = "package"


class ServiceSetupError(InstallerError):
    category = "service"


class PrivilegeError(InstallerError):
    category = "privilege"


class TerminalUnavailableError(InstallerError):
    category = "terminal"


class UninstallError(InstallerError):
    category = "uninstall"
