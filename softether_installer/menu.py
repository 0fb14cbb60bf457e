from __future__ import annotations

from typing import TextIO

from .catalog import Catalog
from .errors import TerminalUnavailableError

DEFAULT_TTY = "/dev/tty"


def render_menu(catalog: Catalog) -> str:
    mandatory = " and ".join(f"{name} v{version}" for name, version in catalog.list_mandatory())
    lines = [
        f"Select SoftEther VPN components to install ({mandatory} will be installed automatically):",
    ]
    for number, text in catalog.menu_entries():
        lines.append(f"{number}) {text}")
    lines.append("")
    lines.append("Enter the number of your choice (e.g., '1' for vpnclient):")
    return "\n".join(lines) + "\n"


def prompt(catalog: Catalog, out: TextIO, inp: TextIO) -> str:
    """Write the menu to out and return one line read from inp."""

    out.write(render_menu(catalog))
    out.flush()
    line = inp.readline()
    return line.strip()


def read_choice(catalog: Catalog, tty_path: str = DEFAULT_TTY) -> str:
    """Ask on the controlling terminal, even when stdin is a pipe."""

    try:
        with open(tty_path, "r", encoding="utf-8") as tty_in, open(tty_path, "a", encoding="utf-8") as tty_out:
            return prompt(catalog, tty_out, tty_in)
    except OSError as e:
        raise TerminalUnavailableError(
            "No terminal available for interactive input. Please run interactively."
        ) from e
