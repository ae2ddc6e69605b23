"""Adapters — bindings for package managers, commands, and files.

Public re-exports for convenient access.
"""

from provisioner.adapters.base import PackageManager
from provisioner.adapters.mock import MockCommandRunner, MockPackageManager
from provisioner.adapters.registry import AdapterRegistry
from provisioner.adapters.shell.command import CommandResult, CommandRunner
from provisioner.adapters.shell.filesystem import LocalFileSystem

__all__ = [
    "AdapterRegistry",
    "CommandResult",
    "CommandRunner",
    "LocalFileSystem",
    "MockCommandRunner",
    "MockPackageManager",
    "PackageManager",
]
