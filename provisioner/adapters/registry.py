"""
Adapter registry — central lookup for package managers.

Package steps name their manager (``brew``, ``cask``, ``vscode``);
the registry resolves that name to an adapter. The step catalog
never instantiates package managers directly.
"""

from __future__ import annotations

import logging
from typing import Any

from provisioner.adapters.base import PackageManager
from provisioner.adapters.shell.command import CommandRunner

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Registry of package managers keyed by name."""

    def __init__(self) -> None:
        self._adapters: dict[str, PackageManager] = {}

    @classmethod
    def with_defaults(cls, runner: CommandRunner | None = None) -> AdapterRegistry:
        """Registry preloaded with the built-in package managers."""
        from provisioner.adapters.packages import HomebrewAdapter, VSCodeExtensionsAdapter

        runner = runner or CommandRunner()
        registry = cls()
        registry.register(HomebrewAdapter(runner))
        registry.register(HomebrewAdapter(runner, cask=True))
        registry.register(VSCodeExtensionsAdapter(runner))
        return registry

    def register(self, adapter: PackageManager) -> None:
        """Register a package manager under its name."""
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def unregister(self, name: str) -> None:
        """Remove an adapter from the registry."""
        self._adapters.pop(name, None)

    def get(self, name: str) -> PackageManager | None:
        """Look up an adapter by name."""
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        """List all registered adapter names."""
        return list(self._adapters.keys())

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Get availability status of all registered adapters."""
        status = {}
        for name, adapter in self._adapters.items():
            try:
                available = adapter.is_available()
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "binary": adapter.binary,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status
