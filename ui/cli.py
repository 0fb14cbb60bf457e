from __future__ import annotations

from softether_installer.main import main as installer_main


def main(argv: list[str] | None = None) -> int:
    """`softether-installer` console script."""
    return installer_main(argv)


if __name__ == "__main__":
    raise SystemExit(main())
