"""TOML config loading for chtholly.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_NAME = "chtholly.toml"


@dataclass
class PackageConfig:
    name: str = "untitled"
    version: str = "0.0.0"


@dataclass
class FormatConfig:
    indent_width: int = 4


@dataclass
class DiagnosticsConfig:
    color: bool = True


@dataclass
class ChthollyConfig:
    package: PackageConfig = field(default_factory=PackageConfig)
    format: FormatConfig = field(default_factory=FormatConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find chtholly.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_NAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_NAME} found in any parent directory")
        path = parent


def load_config(path: Path) -> ChthollyConfig:
    """Parse a chtholly.toml file into a ChthollyConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = ChthollyConfig()

    if "package" in data:
        pkg = data["package"]
        config.package = PackageConfig(
            name=pkg.get("name", "untitled"),
            version=pkg.get("version", "0.0.0"),
        )

    if "format" in data:
        fmt = data["format"]
        config.format = FormatConfig(
            indent_width=fmt.get("indent_width", 4),
        )

    if "diagnostics" in data:
        diag = data["diagnostics"]
        config.diagnostics = DiagnosticsConfig(
            color=diag.get("color", True),
        )

    return config


def config_for(path: Path) -> ChthollyConfig:
    """Load the nearest config above ``path``, or defaults if there is none."""
    try:
        return load_config(find_config(path))
    except FileNotFoundError:
        return ChthollyConfig()
