"""Install SoftEther VPN from the packages published on its GitHub release.

A run resolves the latest release tag and its .deb assets, asks the operator
which optional components to add on top of ``common`` and ``vpncmd``,
downloads everything through the CDN mirror with GitHub as fallback, and then
installs packages in dependency order and starts their systemd units.
"Uninstall All" walks the same components in reverse.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
