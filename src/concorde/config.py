"""TOML config loading for concorde.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from concorde.parser import DEFAULT_MAX_DEPTH

CONFIG_NAME = "concorde.toml"


@dataclass
class ParserConfig:
    max_depth: int = DEFAULT_MAX_DEPTH


@dataclass
class FormatConfig:
    indent: int = 2


@dataclass
class ConcordeConfig:
    parser: ParserConfig = field(default_factory=ParserConfig)
    format: FormatConfig = field(default_factory=FormatConfig)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find concorde.toml. Raises FileNotFoundError."""
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


def load_config(path: Path) -> ConcordeConfig:
    """Parse a concorde.toml file into a ConcordeConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = ConcordeConfig()

    if "parser" in data:
        config.parser = ParserConfig(
            max_depth=data["parser"].get("max_depth", DEFAULT_MAX_DEPTH),
        )

    if "format" in data:
        config.format = FormatConfig(indent=data["format"].get("indent", 2))

    return config


def config_for(path: Path) -> ConcordeConfig:
    """Load the config governing ``path``, or defaults when there is none."""
    try:
        return load_config(find_config(path))
    except FileNotFoundError:
        return ConcordeConfig()
