"""Tests for settings and logging configuration."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from modgraph.config import Settings
from modgraph.render import Palette


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path: Path):
    for name in ("SOURCE_DIRS", "VENDOR_DIR", "FOREIGN_MODULES", "TEST_PATTERNS", "LOG_LEVEL"):
        monkeypatch.delenv(f"MODGRAPH_{name}", raising=False)
    monkeypatch.chdir(tmp_path)


class TestSettings:
    """Tests for Settings class."""

    def test_defaults(self, tmp_path: Path):
        """Test default settings."""
        settings = Settings()

        assert settings.source_dirs == [tmp_path.resolve()]
        assert settings.vendor_dir == "vendor"
        assert settings.foreign_modules == ["C", "__future__"]
        assert settings.test_patterns == ["test_*.py", "*_test.py"]
        assert settings.log_level == "INFO"
        assert settings.palette == Palette()

    def test_csv_from_environment(self, monkeypatch, tmp_path: Path):
        """Test that list settings are read as comma-separated values."""
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()
        monkeypatch.setenv("MODGRAPH_SOURCE_DIRS", f"{tmp_path / 'a'}, {tmp_path / 'b'}")
        monkeypatch.setenv("MODGRAPH_FOREIGN_MODULES", "C,cffi")

        settings = Settings()
        assert settings.source_dirs == [(tmp_path / "a").resolve(), (tmp_path / "b").resolve()]
        assert settings.foreign_modules == ["C", "cffi"]

    def test_missing_source_dir(self, tmp_path: Path):
        """Test that source directories must exist."""
        with pytest.raises(ValidationError):
            Settings(source_dirs=str(tmp_path / "missing"))

    def test_source_dir_must_be_directory(self, tmp_path: Path):
        """Test that source directories cannot be files."""
        (tmp_path / "file.py").write_text("")
        with pytest.raises(ValidationError):
            Settings(source_dirs=[tmp_path / "file.py"])

    def test_log_level(self, monkeypatch):
        """Test log level normalization and validation."""
        monkeypatch.setenv("MODGRAPH_LOG_LEVEL", "debug")
        assert Settings().log_level == "DEBUG"

        monkeypatch.setenv("MODGRAPH_LOG_LEVEL", "loud")
        with pytest.raises(ValidationError):
            Settings()

    def test_palette_colors(self):
        """Test that color settings build the renderer palette."""
        settings = Settings(root_color="purple", broken_color="black")

        assert settings.palette.root == "purple"
        assert settings.palette.broken == "black"
        assert settings.palette.user_keep == "#76E1FE"
