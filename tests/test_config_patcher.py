"""
Tests for the config patcher — marker-keyed block insertion.
"""

from pathlib import Path

from provisioner.core.services.config_patcher import ConfigPatcher, shell_config_line

MARKER = "# provisioner: PATH ~/bin"
LINE = 'export PATH="$HOME/bin:$PATH"'


class TestEnsureBlock:
    def test_inserts_into_missing_file(self, tmp_path: Path):
        profile = tmp_path / ".zshrc"
        result = ConfigPatcher().ensure_block(profile, MARKER, LINE)
        assert result.status == "inserted"
        assert result.ok
        assert profile.read_text() == f"{MARKER}\n{LINE}\n"

    def test_already_present(self, tmp_path: Path):
        profile = tmp_path / ".zshrc"
        profile.write_text(f"{MARKER}\n{LINE}\n")
        result = ConfigPatcher().ensure_block(profile, MARKER, LINE)
        assert result.status == "already_present"
        assert profile.read_text() == f"{MARKER}\n{LINE}\n"

    def test_marker_written_once(self, tmp_path: Path):
        profile = tmp_path / ".zshrc"
        patcher = ConfigPatcher()
        for _ in range(5):
            patcher.ensure_block(profile, MARKER, LINE)
        assert profile.read_text().count(MARKER) == 1

    def test_first_content_wins(self, tmp_path: Path):
        profile = tmp_path / ".zshrc"
        patcher = ConfigPatcher()
        patcher.ensure_block(profile, MARKER, "first")
        result = patcher.ensure_block(profile, MARKER, "second")
        assert result.status == "already_present"
        assert "first" in profile.read_text()
        assert "second" not in profile.read_text()

    def test_preserves_existing_content(self, tmp_path: Path):
        profile = tmp_path / ".zshrc"
        profile.write_text("alias ll='ls -la'\n")
        ConfigPatcher().ensure_block(profile, MARKER, LINE)
        assert profile.read_text() == f"alias ll='ls -la'\n{MARKER}\n{LINE}\n"

    def test_adds_newline_before_block(self, tmp_path: Path):
        profile = tmp_path / ".zshrc"
        profile.write_text("alias ll='ls -la'")
        ConfigPatcher().ensure_block(profile, MARKER, LINE)
        assert profile.read_text().splitlines() == ["alias ll='ls -la'", MARKER, LINE]

    def test_marker_inside_content_not_duplicated(self, tmp_path: Path):
        profile = tmp_path / ".zshrc"
        content = f"{MARKER}\n{LINE}"
        ConfigPatcher().ensure_block(profile, MARKER, content)
        assert profile.read_text() == f"{MARKER}\n{LINE}\n"

    def test_creates_parent_directories(self, tmp_path: Path):
        config = tmp_path / ".config" / "fish" / "config.fish"
        result = ConfigPatcher().ensure_block(config, MARKER, "set -gx PATH ~/bin $PATH")
        assert result.status == "inserted"
        assert config.is_file()

    def test_independent_markers(self, tmp_path: Path):
        profile = tmp_path / ".zshrc"
        patcher = ConfigPatcher()
        patcher.ensure_block(profile, "# provisioner: a", "export A=1")
        patcher.ensure_block(profile, "# provisioner: b", "export B=2")
        text = profile.read_text()
        assert text.index("export A=1") < text.index("export B=2")

    def test_io_failure(self, tmp_path: Path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        result = ConfigPatcher().ensure_block(blocker / ".zshrc", MARKER, LINE)
        assert result.status == "io_failed"
        assert not result.ok
        assert result.reason

    def test_non_utf8_profile(self, tmp_path: Path):
        profile = tmp_path / ".zshrc"
        profile.write_bytes(b"# caf\xe9\nexport A=1\n")
        result = ConfigPatcher().ensure_block(profile, "# m", "export B=2")
        assert result.status == "inserted"
        assert profile.read_bytes() == b"# caf\xe9\nexport A=1\n# m\nexport B=2\n"

    def test_non_utf8_profile_already_present(self, tmp_path: Path):
        profile = tmp_path / ".zshrc"
        profile.write_bytes(b"# m\nalias caf\xe9=ls\n")
        result = ConfigPatcher().ensure_block(profile, "# m", "export B=2")
        assert result.status == "already_present"
        assert profile.read_bytes() == b"# m\nalias caf\xe9=ls\n"

    def test_empty_marker_rejected(self, tmp_path: Path):
        result = ConfigPatcher().ensure_block(tmp_path / ".zshrc", "", LINE)
        assert result.status == "io_failed"
        assert not (tmp_path / ".zshrc").exists()


class TestHasBlock:
    def test_missing_file(self, tmp_path: Path):
        assert not ConfigPatcher().has_block(tmp_path / ".zshrc", MARKER)

    def test_present(self, tmp_path: Path):
        profile = tmp_path / ".zshrc"
        profile.write_text(f"{MARKER}\n")
        assert ConfigPatcher().has_block(profile, MARKER)

    def test_non_utf8_profile(self, tmp_path: Path):
        profile = tmp_path / ".zshrc"
        profile.write_bytes(b"# caf\xe9\n")
        assert not ConfigPatcher().has_block(profile, "# m")
        assert ConfigPatcher().has_block(profile, "# caf")

    def test_read_only(self, tmp_path: Path):
        profile = tmp_path / ".zshrc"
        ConfigPatcher().has_block(profile, MARKER)
        assert not profile.exists()


class TestShellConfigLine:
    def test_posix_path(self):
        assert shell_config_line("zsh", path_entry="$HOME/bin") == 'export PATH="$HOME/bin:$PATH"'

    def test_posix_env(self):
        assert shell_config_line("bash", env_var=("NVM_DIR", "$HOME/.nvm")) == 'export NVM_DIR="$HOME/.nvm"'

    def test_fish_path(self):
        assert shell_config_line("fish", path_entry="$HOME/bin") == "set -gx PATH $HOME/bin $PATH"

    def test_fish_env(self):
        assert shell_config_line("fish", env_var=("EDITOR", "vim")) == "set -gx EDITOR vim"

    def test_nothing_requested(self):
        assert shell_config_line("zsh") == ""
