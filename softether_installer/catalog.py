from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import InvalidChoiceError
from .release import DEFAULT_PACKAGE_PREFIX as PACKAGE_PREFIX
from .release import ReleaseInfo


@dataclass(frozen=True)
class ComponentSpec:
    name: str
    mandatory: bool
    install_order_rank: int

    @property
    def package_name(self) -> str:
        return f"{PACKAGE_PREFIX}-{self.name}"

    @property
    def unit_name(self) -> str:
        return f"{PACKAGE_PREFIX}-{self.name}.service"


# "common" is the base every other package depends on, "vpncmd" the tool.
# Optional components have no dependencies on each other.
COMMON = ComponentSpec("common", mandatory=True, install_order_rank=0)
VPNCMD = ComponentSpec("vpncmd", mandatory=True, install_order_rank=1)
VPNCLIENT = ComponentSpec("vpnclient", mandatory=False, install_order_rank=2)
VPNSERVER = ComponentSpec("vpnserver", mandatory=False, install_order_rank=2)
VPNBRIDGE = ComponentSpec("vpnbridge", mandatory=False, install_order_rank=2)

COMPONENTS: Tuple[ComponentSpec, ...] = (COMMON, VPNCMD, VPNCLIENT, VPNSERVER, VPNBRIDGE)
MANDATORY: Tuple[ComponentSpec, ...] = tuple(
    sorted((c for c in COMPONENTS if c.mandatory), key=lambda c: c.install_order_rank)
)
OPTIONAL: Tuple[ComponentSpec, ...] = tuple(c for c in COMPONENTS if not c.mandatory)

_BY_NAME = {c.name: c for c in COMPONENTS}

ACTION_INSTALL = "install"
ACTION_UNINSTALL = "uninstall"
ACTION_EXIT = "exit"


def component(name: str) -> ComponentSpec:
    try:
        return _BY_NAME[name]
    except KeyError:
        raise KeyError(f"Unknown component: {name}") from None


def component_names() -> List[str]:
    return [c.name for c in COMPONENTS]


@dataclass(frozen=True)
class MenuEntry:
    number: int
    action: str
    components: Tuple[str, ...] = ()
    label: Optional[str] = None


@dataclass(frozen=True)
class Selection:
    action: str
    components: Tuple[str, ...] = ()


MENU: Tuple[MenuEntry, ...] = (
    MenuEntry(1, ACTION_INSTALL, ("vpnclient",)),
    MenuEntry(2, ACTION_INSTALL, ("vpnserver",)),
    MenuEntry(3, ACTION_INSTALL, ("vpnclient", "vpnserver")),
    MenuEntry(4, ACTION_INSTALL, ("vpnbridge",)),
    MenuEntry(5, ACTION_UNINSTALL, label="Uninstall All"),
    MenuEntry(6, ACTION_EXIT, label="Exit without installing"),
)


class Catalog:
    """Fixed set of components, paired with the versions of one release."""

    def __init__(self, release: ReleaseInfo) -> None:
        self.release = release

    def version_of(self, name: str) -> str:
        # Every asset of a release shares the release tag's version.
        component(name)
        return self.release.version

    def list_optional(self) -> List[Tuple[str, str]]:
        return [(c.name, self.version_of(c.name)) for c in OPTIONAL]

    def list_mandatory(self) -> List[Tuple[str, str]]:
        return [(c.name, self.version_of(c.name)) for c in MANDATORY]

    def menu_entries(self) -> List[Tuple[int, str]]:
        """(number, text) pairs in display order."""
        lines = []
        for entry in MENU:
            if entry.label is not None:
                text = entry.label
            else:
                text = "+".join(f"{name} (v{self.version_of(name)})" for name in entry.components)
            lines.append((entry.number, text))
        return lines

    def resolve_selection(self, choice: str) -> Selection:
        raw = (choice or "").strip()
        if not (raw.isascii() and raw.isdigit()):
            raise InvalidChoiceError(f"Invalid choice: {raw!r}")
        for entry in MENU:
            # Exact text match: "01" is not choice 1.
            if raw == str(entry.number):
                return Selection(action=entry.action, components=entry.components)
        raise InvalidChoiceError(f"Invalid choice: {raw} (expected 1-{len(MENU)})")
