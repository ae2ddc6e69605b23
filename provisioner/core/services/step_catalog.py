"""
Step catalog — turns declared step specs into runnable Steps.

Each step kind is a builder method ``_kind_<name>`` whose keyword
arguments are the kind's parameters in provision.yml. A builder
returns the probe/apply pair; the factory wraps it with the common
fields (id, dependencies, probe-failure policy, timeout).

Kinds:
    ensure_dir        directory exists
    config_block      marker-keyed block in a config file
    path_entry        PATH export in the shell profile
    env_var           environment export in the shell profile
    package           package installed through a package manager
    vscode_extension  editor extension installed
    file              file exists with the given content
    ssh_key           SSH key pair generated
    git_config        global git config key has a value
    command           free-form probe/apply shell commands
"""

from __future__ import annotations

import inspect
import logging
import socket
from collections.abc import Callable
from pathlib import Path
from typing import Any

from provisioner.adapters.registry import AdapterRegistry
from provisioner.adapters.shell.command import CommandRunner
from provisioner.adapters.shell.filesystem import LocalFileSystem
from provisioner.core.config.loader import ConfigError
from provisioner.core.config.templating import expand_path
from provisioner.core.models.plan_file import StepSpec
from provisioner.core.models.step import ApplyResult, ProbePolicy, ProbeResult, Step
from provisioner.core.services.config_patcher import ConfigPatcher, shell_config_line

logger = logging.getLogger(__name__)

Probe = Callable[[], ProbeResult]
Apply = Callable[[], ApplyResult]

MARKER_PREFIX = "# provisioner:"

# Steps that must never run twice get "fail" when their probe errors.
_DEFAULT_PROBE_POLICY: dict[str, ProbePolicy] = {
    "ssh_key": "fail",
}


def _profile_path_entry(directory: str) -> str:
    """Rewrite a leading ``~`` as ``$HOME``: tildes do not expand inside quotes."""
    if directory == "~" or directory.startswith("~/"):
        return "$HOME" + directory[1:]
    return directory


def _parse_mode(mode: int | str | None) -> int | None:
    if mode is None or isinstance(mode, int):
        return mode
    return int(mode, 8)


class StepFactory:
    """Builds Steps for every kind in the catalog.

    Args:
        registry: Package managers for ``package``/``vscode_extension`` steps.
        runner: Command runner for command-backed kinds.
        filesystem: Filesystem primitives.
        patcher: Config patcher for profile-editing kinds.
        profile: Default config file for ``path_entry``/``env_var``/``config_block``.
        shell: Shell flavour used to render export lines.
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        runner: CommandRunner | None = None,
        filesystem: LocalFileSystem | None = None,
        patcher: ConfigPatcher | None = None,
        profile: str = "~/.zshrc",
        shell: str = "zsh",
    ):
        self._registry = registry
        self._runner = runner or CommandRunner()
        self._fs = filesystem or LocalFileSystem()
        self._patcher = patcher or ConfigPatcher(self._fs)
        self._profile = profile
        self._shell = shell

    @staticmethod
    def kinds() -> list[str]:
        """All step kinds the factory can build."""
        return sorted(
            name.removeprefix("_kind_")
            for name in dir(StepFactory)
            if name.startswith("_kind_")
        )

    def step(self, kind: str, step_id: str, **params: Any) -> Step:
        """Shortcut for building a step in code rather than from YAML."""
        common = {k: params.pop(k) for k in list(params) if k in StepSpec.model_fields}
        return self.build(StepSpec(id=step_id, kind=kind, **common, **params))

    def build(self, spec: StepSpec) -> Step:
        """Turn one declared spec into a Step.

        Raises:
            ConfigError: Unknown kind, missing/unknown/empty parameters,
                a value the kind cannot use (e.g. ``mode: rwx``), or an
                unknown package manager.
        """
        builder = getattr(self, f"_kind_{spec.kind}", None)
        if builder is None:
            raise ConfigError(
                f"Step '{spec.id}': unknown kind '{spec.kind}'. "
                f"Valid: {', '.join(self.kinds())}"
            )

        params = spec.params
        signature = inspect.signature(builder)
        try:
            signature.bind(spec, **params)
        except TypeError as e:
            raise ConfigError(f"Step '{spec.id}' ({spec.kind}): {e}") from e

        # A YAML null is only accepted where the parameter itself defaults to None
        nulls = sorted(
            name for name, value in params.items()
            if value is None and signature.parameters[name].default is not None
        )
        if nulls:
            raise ConfigError(
                f"Step '{spec.id}' ({spec.kind}): parameter(s) must not be empty: {', '.join(nulls)}"
            )

        # Builders resolve paths and modes eagerly, so bad values surface here
        try:
            probe, apply, default_description = builder(spec, **params)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Step '{spec.id}' ({spec.kind}): invalid parameter: {e}") from e
        policy = spec.on_probe_failure or _DEFAULT_PROBE_POLICY.get(spec.kind, "attempt")

        return Step(
            id=spec.id,
            probe=probe,
            apply=apply,
            description=spec.description or default_description,
            depends_on=frozenset(spec.depends_on),
            after=frozenset(spec.after),
            on_probe_failure=policy,
            timeout=spec.timeout,
            kind=spec.kind,
        )

    def build_all(self, specs: list[StepSpec]) -> list[Step]:
        return [self.build(spec) for spec in specs]

    # ------------------------------------------------------------------
    # Filesystem kinds
    # ------------------------------------------------------------------

    def _kind_ensure_dir(self, spec: StepSpec, path: str, mode: int | str | None = None):
        target = expand_path(path)
        file_mode = _parse_mode(mode)

        def probe() -> ProbeResult:
            if self._fs.is_dir(target):
                return ProbeResult.satisfied()
            if self._fs.exists(target):
                return ProbeResult.failure(f"{target} exists and is not a directory")
            return ProbeResult.not_satisfied()

        def apply() -> ApplyResult:
            try:
                self._fs.mkdir(target)
                if file_mode is not None:
                    self._fs.chmod(target, file_mode)
            except OSError as e:
                return ApplyResult.failure(f"cannot create {target}: {e}")
            return ApplyResult.applied(f"created {target}")

        return probe, apply, f"Directory {path}"

    def _kind_file(
        self,
        spec: StepSpec,
        path: str,
        content: str,
        mode: int | str | None = None,
    ):
        target = expand_path(path)
        file_mode = _parse_mode(mode)

        def probe() -> ProbeResult:
            return ProbeResult.from_bool(self._fs.exists(target))

        def apply() -> ApplyResult:
            if self._fs.exists(target):
                return ApplyResult.applied(f"{target} already exists")
            try:
                self._fs.write_text(target, content)
                if file_mode is not None:
                    self._fs.chmod(target, file_mode)
            except OSError as e:
                return ApplyResult.failure(f"cannot write {target}: {e}")
            return ApplyResult.applied(f"written {target}")

        return probe, apply, f"File {path}"

    # ------------------------------------------------------------------
    # Config-file kinds
    # ------------------------------------------------------------------

    def _block_step(self, path: str, marker: str, content: str) -> tuple[Probe, Apply]:
        target = expand_path(path)

        def probe() -> ProbeResult:
            try:
                return ProbeResult.from_bool(self._patcher.has_block(target, marker))
            except (OSError, UnicodeError) as e:
                return ProbeResult.failure(f"cannot read {target}: {e}")

        def apply() -> ApplyResult:
            result = self._patcher.ensure_block(target, marker, content)
            if not result.ok:
                return ApplyResult.failure(result.reason)
            return ApplyResult.applied(f"{result.status}: {marker} in {target}")

        return probe, apply

    def _kind_config_block(
        self,
        spec: StepSpec,
        marker: str,
        content: str,
        path: str | None = None,
    ):
        target = path or self._profile
        probe, apply = self._block_step(target, marker, content)
        return probe, apply, f"Block {marker!r} in {target}"

    def _kind_path_entry(
        self,
        spec: StepSpec,
        directory: str,
        path: str | None = None,
        marker: str | None = None,
    ):
        target = path or self._profile
        marker = marker or f"{MARKER_PREFIX} PATH {directory}"
        line = shell_config_line(self._shell, path_entry=_profile_path_entry(directory))
        probe, apply = self._block_step(target, marker, line)
        return probe, apply, f"{directory} on PATH"

    def _kind_env_var(
        self,
        spec: StepSpec,
        name: str,
        value: str,
        path: str | None = None,
        marker: str | None = None,
    ):
        target = path or self._profile
        marker = marker or f"{MARKER_PREFIX} env {name}"
        line = shell_config_line(self._shell, env_var=(name, value))
        probe, apply = self._block_step(target, marker, line)
        return probe, apply, f"Export {name}"

    # ------------------------------------------------------------------
    # Package kinds
    # ------------------------------------------------------------------

    def _package_step(self, spec: StepSpec, manager: str, package: str) -> tuple[Probe, Apply]:
        adapter = self._registry.get(manager)
        if adapter is None:
            raise ConfigError(
                f"Step '{spec.id}': unknown package manager '{manager}'. "
                f"Registered: {', '.join(self._registry.list_adapters())}"
            )

        def probe() -> ProbeResult:
            return adapter.is_installed(package)

        def apply() -> ApplyResult:
            return adapter.install(package, timeout=spec.timeout)

        return probe, apply

    def _kind_package(
        self,
        spec: StepSpec,
        name: str,
        manager: str = "brew",
        cask: bool = False,
    ):
        manager = "cask" if cask else manager
        probe, apply = self._package_step(spec, manager, name)
        return probe, apply, f"Install {name} ({manager})"

    def _kind_vscode_extension(self, spec: StepSpec, extension: str):
        probe, apply = self._package_step(spec, "vscode", extension)
        return probe, apply, f"VS Code extension {extension}"

    # ------------------------------------------------------------------
    # Identity kinds
    # ------------------------------------------------------------------

    def _kind_ssh_key(
        self,
        spec: StepSpec,
        path: str = "~/.ssh/id_ed25519",
        key_type: str = "ed25519",
        comment: str = "",
    ):
        key = expand_path(path)

        def probe() -> ProbeResult:
            try:
                key.stat()
            except FileNotFoundError:
                return ProbeResult.not_satisfied()
            except OSError as e:
                return ProbeResult.failure(f"cannot stat {key}: {e}")
            return ProbeResult.satisfied()

        def apply() -> ApplyResult:
            if self._fs.exists(key):
                return ApplyResult.applied(f"{key} already exists")
            try:
                self._fs.mkdir(key.parent)
                self._fs.chmod(key.parent, 0o700)
            except OSError as e:
                return ApplyResult.failure(f"cannot create {key.parent}: {e}")
            result = self._runner.run(
                ["ssh-keygen", "-t", key_type, "-C", comment or self._default_key_comment(),
                 "-f", str(key), "-N", ""],
                timeout=spec.timeout,
            )
            if not result.ok:
                return ApplyResult.failure(result.error, output=result.output)
            public = key.with_name(key.name + ".pub")
            try:
                public_key = self._fs.read_text(public).strip()
            except OSError:
                public_key = ""
            lines = [f"generated {key}"]
            if public_key:
                lines += [public_key, "add it at https://github.com/settings/keys"]
            return ApplyResult.applied("\n".join(lines))

        return probe, apply, f"SSH key {path}"

    def _default_key_comment(self) -> str:
        result = self._runner.run(["git", "config", "--get", "user.email"])
        if result.ok and result.stdout.strip():
            return result.stdout.strip()
        return f"{Path.home().name}@{socket.gethostname()}"

    def _kind_git_config(self, spec: StepSpec, key: str, value: str, scope: str = "global"):
        scope_flag = f"--{scope}"

        def probe() -> ProbeResult:
            result = self._runner.run(["git", "config", scope_flag, "--get", key])
            if result.not_found or result.timed_out:
                return ProbeResult.failure(result.error)
            if result.exit_code == 1:
                return ProbeResult.not_satisfied("unset")
            if not result.ok:
                return ProbeResult.failure(result.error)
            current = result.stdout.strip()
            if current == value:
                return ProbeResult.satisfied()
            return ProbeResult.not_satisfied(f"currently {current!r}")

        def apply() -> ApplyResult:
            result = self._runner.run(["git", "config", scope_flag, key, value], timeout=spec.timeout)
            if not result.ok:
                return ApplyResult.failure(result.error, output=result.output)
            return ApplyResult.applied(f"{key} = {value}")

        return probe, apply, f"git config {key}"

    # ------------------------------------------------------------------
    # Free-form commands
    # ------------------------------------------------------------------

    def _kind_command(self, spec: StepSpec, run: str, unless: str | None = None):
        """``unless`` is the probe: exit 0 means the goal already holds."""

        def probe() -> ProbeResult:
            if unless is None:
                return ProbeResult.not_satisfied("no probe command")
            result = self._runner.run(unless, shell=True, timeout=spec.timeout)
            if result.timed_out:
                return ProbeResult.failure("probe timeout")
            if result.not_found:
                return ProbeResult.failure(result.error)
            return ProbeResult.from_bool(result.ok)

        def apply() -> ApplyResult:
            result = self._runner.run(run, shell=True, timeout=spec.timeout)
            if not result.ok:
                return ApplyResult.failure(result.error, output=result.output[-2000:])
            return ApplyResult.applied(result.stdout.strip()[-2000:])

        return probe, apply, run
