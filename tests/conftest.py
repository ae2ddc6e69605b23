"""
Shared test fixtures and configuration.
"""

from collections.abc import Callable
from pathlib import Path

import pytest

from provisioner.adapters.mock import MockCommandRunner, MockPackageManager
from provisioner.adapters.registry import AdapterRegistry
from provisioner.core.models.step import ApplyResult, ProbeResult, Step
from provisioner.core.services.step_catalog import StepFactory


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A temporary $HOME so ``~`` expands inside tmp_path."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


@pytest.fixture
def brew() -> MockPackageManager:
    return MockPackageManager(adapter_name="brew")


@pytest.fixture
def runner() -> MockCommandRunner:
    return MockCommandRunner()


@pytest.fixture
def registry(brew: MockPackageManager) -> AdapterRegistry:
    reg = AdapterRegistry()
    reg.register(brew)
    reg.register(MockPackageManager(adapter_name="cask"))
    reg.register(MockPackageManager(adapter_name="vscode"))
    return reg


@pytest.fixture
def factory(home: Path, registry: AdapterRegistry, runner: MockCommandRunner) -> StepFactory:
    return StepFactory(registry=registry, runner=runner, profile="~/.zshrc", shell="zsh")


class FakeStep:
    """Scriptable step with a call log, for engine tests."""

    def __init__(
        self,
        step_id: str,
        satisfied: bool = False,
        apply_fails: bool = False,
        probe_fails: bool = False,
        depends_on: tuple[str, ...] = (),
        after: tuple[str, ...] = (),
        on_probe_failure: str = "attempt",
        calls: list[str] | None = None,
    ):
        self.id = step_id
        self.satisfied = satisfied
        self.apply_fails = apply_fails
        self.probe_fails = probe_fails
        self.calls = calls if calls is not None else []
        self.step = Step(
            id=step_id,
            probe=self.probe,
            apply=self.apply,
            depends_on=frozenset(depends_on),
            after=frozenset(after),
            on_probe_failure=on_probe_failure,
        )

    def probe(self) -> ProbeResult:
        self.calls.append(f"probe:{self.id}")
        if self.probe_fails:
            return ProbeResult.failure("probe tool missing")
        return ProbeResult.from_bool(self.satisfied)

    def apply(self) -> ApplyResult:
        self.calls.append(f"apply:{self.id}")
        if self.apply_fails:
            return ApplyResult.failure("boom")
        self.satisfied = True
        return ApplyResult.applied("done")


@pytest.fixture
def fake_step() -> Callable[..., FakeStep]:
    return FakeStep
