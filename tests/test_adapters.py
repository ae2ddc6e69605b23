"""
Tests for adapters — command runner, filesystem, package managers, registry, mocks.
"""

import sys
from pathlib import Path

import pytest

from provisioner.adapters.mock import MockCommandRunner, MockPackageManager
from provisioner.adapters.packages import HomebrewAdapter, VSCodeExtensionsAdapter
from provisioner.adapters.registry import AdapterRegistry
from provisioner.adapters.shell.command import CommandResult, CommandRunner
from provisioner.adapters.shell.filesystem import LocalFileSystem

# ── Command Runner Tests ─────────────────────────────────────────────


class TestCommandRunner:
    def test_success(self):
        result = CommandRunner().run([sys.executable, "-c", "print('hello')"])
        assert result.ok
        assert result.stdout.strip() == "hello"
        assert result.duration_ms >= 0

    def test_failure(self):
        result = CommandRunner().run(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad\\n'); sys.exit(3)"]
        )
        assert not result.ok
        assert result.exit_code == 3
        assert result.error == "exit 3: bad"

    def test_missing_binary(self):
        result = CommandRunner().run(["definitely-not-a-real-binary-xyz"])
        assert result.not_found
        assert result.exit_code == 127
        assert result.error == "command not found: definitely-not-a-real-binary-xyz"

    def test_timeout(self):
        result = CommandRunner().run([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)
        assert result.timed_out
        assert result.error == "timeout"

    def test_default_timeout(self):
        runner = CommandRunner(default_timeout=0.2)
        assert runner.run([sys.executable, "-c", "import time; time.sleep(5)"]).timed_out

    def test_shell(self):
        result = CommandRunner().run("echo one && echo two", shell=True)
        assert result.ok
        assert result.stdout.split() == ["one", "two"]

    def test_shell_not_found(self):
        result = CommandRunner().run("definitely-not-a-real-binary-xyz", shell=True)
        assert result.not_found

    def test_env_overrides(self):
        runner = CommandRunner(env_overrides={"PROVISIONER_TEST_VAR": "42"})
        result = runner.run([sys.executable, "-c", "import os; print(os.environ['PROVISIONER_TEST_VAR'])"])
        assert result.stdout.strip() == "42"

    def test_cwd(self, tmp_path: Path):
        result = CommandRunner().run([sys.executable, "-c", "import os; print(os.getcwd())"], cwd=str(tmp_path))
        assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()

    def test_which(self):
        assert CommandRunner().which("definitely-not-a-real-binary-xyz") is None


class TestCommandResult:
    def test_error_without_output(self):
        assert CommandResult(argv=["x"], exit_code=2).error == "exit 2"

    def test_error_uses_last_line(self):
        r = CommandResult(argv=["x"], exit_code=1, stderr="warning\nfatal: nope\n")
        assert r.error == "exit 1: fatal: nope"

    def test_output_combines_streams(self):
        assert CommandResult(stdout="out\n", stderr="err\n").output == "out\n\nerr"


# ── Filesystem Tests ─────────────────────────────────────────────────


class TestLocalFileSystem:
    def test_read_missing_is_empty(self, tmp_path: Path):
        assert LocalFileSystem().read_text(tmp_path / "nope") == ""

    def test_append_creates_parents(self, tmp_path: Path):
        target = tmp_path / "a" / "b" / "file"
        fs = LocalFileSystem()
        fs.append_text(target, "one\n")
        fs.append_text(target, "two\n")
        assert target.read_text() == "one\ntwo\n"

    def test_write_and_exists(self, tmp_path: Path):
        fs = LocalFileSystem()
        target = tmp_path / "x" / "file"
        assert not fs.exists(target)
        fs.write_text(target, "data")
        assert fs.exists(target)
        assert not fs.is_dir(target)

    def test_mkdir_idempotent(self, tmp_path: Path):
        fs = LocalFileSystem()
        fs.mkdir(tmp_path / "d" / "e")
        fs.mkdir(tmp_path / "d" / "e")
        assert fs.is_dir(tmp_path / "d" / "e")

    def test_read_directory_raises(self, tmp_path: Path):
        with pytest.raises(OSError):
            LocalFileSystem().read_text(tmp_path)


# ── Package Manager Tests ────────────────────────────────────────────


class TestHomebrewAdapter:
    def test_names(self):
        assert HomebrewAdapter(MockCommandRunner()).name == "brew"
        assert HomebrewAdapter(MockCommandRunner(), cask=True).name == "cask"

    def test_installed(self):
        runner = MockCommandRunner()
        assert HomebrewAdapter(runner).is_installed("jq").is_satisfied
        assert runner.calls == [["brew", "list", "jq"]]

    def test_not_installed(self):
        runner = MockCommandRunner()
        runner.set_response(["brew", "list", "jq"], exit_code=1, stderr="Error: No such keg")
        probe = HomebrewAdapter(runner).is_installed("jq")
        assert not probe.is_satisfied
        assert not probe.failed

    def test_cask_flags(self):
        runner = MockCommandRunner()
        adapter = HomebrewAdapter(runner, cask=True)
        adapter.is_installed("postman")
        adapter.install("postman")
        assert runner.calls == [
            ["brew", "list", "--cask", "postman"],
            ["brew", "install", "--cask", "postman"],
        ]

    def test_unavailable(self):
        runner = MockCommandRunner(available=[])
        adapter = HomebrewAdapter(runner)
        assert not adapter.is_available()
        probe = adapter.is_installed("jq")
        assert probe.failed
        assert "brew not found" in probe.reason
        assert runner.calls == []

    def test_install_already_installed_on_error_exit(self):
        runner = MockCommandRunner()
        runner.set_response(
            ["brew", "install", "jq"], exit_code=1,
            stderr="Warning: jq 1.7 is already installed and up-to-date.",
        )
        assert HomebrewAdapter(runner).install("jq").ok

    def test_install_failure(self):
        runner = MockCommandRunner()
        runner.set_response(["brew", "install", "nope"], exit_code=1, stderr="Error: No available formula")
        result = HomebrewAdapter(runner).install("nope")
        assert not result.ok
        assert "No available formula" in result.reason


class TestVSCodeExtensionsAdapter:
    def test_case_insensitive_probe(self):
        runner = MockCommandRunner()
        runner.set_response(["code", "--list-extensions"], stdout="MS-Python.Python\nesbenp.prettier-vscode\n")
        adapter = VSCodeExtensionsAdapter(runner)
        assert adapter.is_installed("ms-python.python").is_satisfied
        assert not adapter.is_installed("golang.go").is_satisfied

    def test_listing_failure(self):
        runner = MockCommandRunner()
        runner.set_response(["code", "--list-extensions"], exit_code=1)
        assert VSCodeExtensionsAdapter(runner).is_installed("golang.go").failed

    def test_install_argv(self):
        assert VSCodeExtensionsAdapter(MockCommandRunner()).install_argv("golang.go") == [
            "code", "--install-extension", "golang.go", "--force",
        ]


# ── Registry Tests ──────────────────────────────────────────────────


class TestAdapterRegistry:
    def test_with_defaults(self):
        registry = AdapterRegistry.with_defaults(MockCommandRunner())
        assert registry.list_adapters() == ["brew", "cask", "vscode"]
        assert isinstance(registry.get("vscode"), VSCodeExtensionsAdapter)

    def test_register_and_get(self):
        registry = AdapterRegistry()
        mock = MockPackageManager(adapter_name="apt")
        registry.register(mock)
        assert registry.get("apt") is mock

    def test_get_missing(self):
        assert AdapterRegistry().get("nope") is None

    def test_unregister(self):
        registry = AdapterRegistry()
        registry.register(MockPackageManager(adapter_name="apt"))
        registry.unregister("apt")
        assert registry.list_adapters() == []

    def test_adapter_status(self):
        registry = AdapterRegistry.with_defaults(MockCommandRunner(available=["brew"]))
        status = registry.adapter_status()
        assert status["brew"]["available"]
        assert status["cask"]["binary"] == "brew"
        assert not status["vscode"]["available"]
        assert status["vscode"]["type"] == "VSCodeExtensionsAdapter"


# ── Mock Tests ──────────────────────────────────────────────────────


class TestMockPackageManager:
    def test_install_then_probe(self):
        mock = MockPackageManager()
        assert not mock.is_installed("jq").is_satisfied
        assert mock.install("jq").ok
        assert mock.is_installed("jq").is_satisfied
        assert mock.call_log == [("probe", "jq"), ("install", "jq"), ("probe", "jq")]

    def test_reinstall_is_ok(self):
        mock = MockPackageManager(installed={"jq"})
        assert mock.install("jq").output == "jq already installed"

    def test_failure(self):
        mock = MockPackageManager()
        mock.set_failure("jq", "boom")
        assert not mock.install("jq").ok
        assert "jq" not in mock.installed

    def test_unavailable(self):
        assert MockPackageManager(available=False).is_installed("jq").failed

    def test_reset(self):
        mock = MockPackageManager()
        mock.set_failure("jq")
        mock.install("jq")
        mock.reset()
        assert mock.call_log == []
        assert mock.install("jq").ok


class TestMockCommandRunner:
    def test_default_success(self):
        assert MockCommandRunner().run(["anything"]).ok

    def test_longest_prefix(self):
        runner = MockCommandRunner()
        runner.set_response(["git"], exit_code=1)
        runner.set_response(["git", "config"], stdout="value")
        assert runner.run(["git", "config", "--get", "x"]).stdout == "value"
        assert runner.run(["git", "status"]).exit_code == 1

    def test_unavailable_binary(self):
        assert MockCommandRunner(available=["git"]).run(["brew", "list"]).not_found
