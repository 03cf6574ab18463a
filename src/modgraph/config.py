"""Configuration management for modgraph."""

import logging
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .render.palette import Palette


def _split_csv(v: str | list[str]) -> list[str]:
    if isinstance(v, str):
        if not v.strip():
            return []
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MODGRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Resolution settings
    source_dirs: Annotated[list[Path], NoDecode] = Field(
        default_factory=lambda: [Path.cwd()],
        description="Directories searched for modules (comma-separated)",
    )
    vendor_dir: str = Field(
        default="vendor",
        description="Sub-path tried as a last resort when resolving a module",
    )
    foreign_modules: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["C", "__future__"],
        description="Pseudo-modules that are recorded but never resolved",
    )
    test_patterns: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["test_*.py", "*_test.py"],
        description="Glob patterns that identify test files",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    # Rendering settings
    user_keep_color: str = Field(default="#76E1FE", description="Fill for kept modules")
    root_color: str = Field(default="green", description="Fill for root modules")
    single_parent_color: str = Field(
        default="#fcd92d", description="Fill for modules imported exactly once"
    )
    broken_color: str = Field(default="red", description="Fill for unresolvable modules")

    @field_validator("foreign_modules", "test_patterns", mode="before")
    @classmethod
    def parse_csv(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated string into list."""
        return _split_csv(v)

    @field_validator("source_dirs", mode="before")
    @classmethod
    def validate_source_dirs(cls, v: str | list[str | Path]) -> list[Path]:
        """Convert strings to Paths and validate that each directory exists."""
        if isinstance(v, str):
            v = _split_csv(v)
        paths = []
        for item in v:
            path = Path(item) if isinstance(item, str) else item
            if not path.exists():
                raise ValueError(f"Source directory does not exist: {path}")
            if not path.is_dir():
                raise ValueError(f"Source directory is not a directory: {path}")
            paths.append(path.resolve())
        return paths

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @property
    def palette(self) -> Palette:
        """Get the fill colors used by the renderer."""
        return Palette(
            user_keep=self.user_keep_color,
            root=self.root_color,
            single_parent=self.single_parent_color,
            broken=self.broken_color,
        )


def setup_logging(level: str) -> None:
    """Configure logging for the application.

    Log records go to stderr so that rendered graphs on stdout stay clean.
    """
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
