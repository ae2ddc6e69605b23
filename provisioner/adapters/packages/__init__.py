"""Package manager adapters."""

from provisioner.adapters.packages.homebrew import HomebrewAdapter
from provisioner.adapters.packages.vscode import VSCodeExtensionsAdapter

__all__ = [
    "HomebrewAdapter",
    "VSCodeExtensionsAdapter",
]
