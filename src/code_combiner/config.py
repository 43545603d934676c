from __future__ import annotations

import os
from enum import StrEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomlkit
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from tomlkit.exceptions import TOMLKitError

from code_combiner.exceptions import ConfigFileError
from code_combiner.settings import ENV_FILE

if TYPE_CHECKING:
    from code_combiner.settings import Settings

CONFIG_FILE_NAME = ".pcc_config.toml"
CONFIG_ENV_VAR = "PCC_CONFIG"
DEFAULT_OUTPUT_FILE_NAME = "combined_code.txt"

DEFAULT_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")
DEFAULT_EXTERNAL_ROOTS: frozenset[str] = frozenset({"node_modules"})

DEFAULT_EXCLUDES = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "__pycache__",
    ".mypy_cache",
    ".ruff_cache",
    ".pytest_cache",
    "node_modules",
    ".next",
    ".turbo",
    "dist",
    "build",
    "coverage",
    ".DS_Store",
    ".idea",
    ".vscode",
}


class Action(StrEnum):
    """What to do with the combined document."""

    COPY = auto()
    SAVE = auto()
    STDOUT = auto()


class DefaultSection(BaseModel):
    """The `[default]` table of the user configuration file."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    action: str | None = Field(default=None, description="Default action: copy, save or stdout.")
    output_path: str | None = Field(default=None, description="Output file path for `save`.")
    output_file_name: str | None = Field(default=None, description="Output file name in the working directory.")
    ignore_patterns: list[str] = Field(default_factory=list, description="Ignore patterns (gitignore syntax).")
    use_relative_paths: bool | None = Field(default=None, description="Display paths relative to the cwd.")
    deps: bool | None = Field(default=None, description="Resolve dependencies by default.")
    extensions: list[str] | None = Field(default=None, description="Candidate extensions, in probe order.")
    external_roots: list[str] | None = Field(default=None, description="Package roots treated as external.")


class UserConfig(BaseModel):
    """User configuration file contents."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    default: DefaultSection = Field(default_factory=DefaultSection)


def config_file_path(explicit: str | None = None) -> Path:
    """Locate the user configuration file.

    Precedence is the explicit path, then the `PCC_CONFIG` environment variable
    (a `.env` file found from the working directory is loaded first), then
    `~/.pcc_config.toml`.

    Args:
        explicit (str | None): path given on the command line, if any

    Returns:
        Path: the configuration file path (it may not exist)
    """
    if explicit:
        return expand_tilde(explicit)
    if ENV_FILE:
        load_dotenv(ENV_FILE)
    from_env = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if from_env:
        return expand_tilde(from_env)
    return Path.home() / CONFIG_FILE_NAME


def load_config(path: Path) -> UserConfig:
    """Load the user configuration file.

    Args:
        path (Path): the TOML file to read

    Raises:
        ConfigFileError: if the file exists but is not valid TOML or does not match the schema

    Returns:
        UserConfig: the parsed configuration, or defaults when the file does not exist
    """
    if not path.is_file():
        return UserConfig()
    try:
        document = tomlkit.parse(path.read_text(encoding="utf-8"))
        data: dict[str, Any] = document.unwrap()
        return UserConfig.model_validate(data)
    except (TOMLKitError, ValidationError, UnicodeDecodeError) as exc:
        raise ConfigFileError(path=path, message=f"Invalid configuration file {path}: {exc}") from exc


def convert_ignore_patterns(patterns: list[str]) -> list[str]:
    """Expand directory patterns so they match everything below the directory.

    Args:
        patterns (list[str]): raw ignore patterns

    Returns:
        list[str]: the patterns with `dir/` rewritten as `dir/**`
    """
    out: list[str] = []
    for pattern in patterns:
        p = pattern.strip()
        if not p:
            continue
        out.append(f"{p}**" if p.endswith("/") else p)
    return out


def expand_tilde(path: str) -> Path:
    """Expand a leading `~` to the user's home directory."""
    return Path(path).expanduser()


class ProcessingOptions(BaseModel):
    """Options merged from the configuration file and the command line."""

    model_config = ConfigDict(frozen=True)

    ignore_patterns: list[str] = Field(default_factory=list)
    ignore_file_path: Path | None = None
    use_relative_paths: bool = True
    deps: bool = False
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    external_roots: frozenset[str] = DEFAULT_EXTERNAL_ROOTS
    workers: int = 0

    @classmethod
    def from_settings(cls, settings: Settings, config: UserConfig) -> ProcessingOptions:
        """Merge command line settings over the configuration file.

        Config ignore patterns come first and command line patterns are appended.

        Args:
            settings (Settings): the parsed command line
            config (UserConfig): the loaded configuration file

        Returns:
            ProcessingOptions: the merged options
        """
        default = config.default
        patterns = [*default.ignore_patterns, *settings.ignore_patterns]
        if settings.relative is not None:
            relative = settings.relative
        elif default.use_relative_paths is not None:
            relative = default.use_relative_paths
        else:
            relative = True
        return cls(
            ignore_patterns=convert_ignore_patterns(patterns),
            ignore_file_path=expand_tilde(settings.ignore_file_path) if settings.ignore_file_path else None,
            use_relative_paths=relative,
            deps=settings.deps or bool(default.deps),
            extensions=tuple(normalize_extensions(default.extensions)) if default.extensions else DEFAULT_EXTENSIONS,
            external_roots=frozenset(default.external_roots)
            if default.external_roots is not None
            else DEFAULT_EXTERNAL_ROOTS,
            workers=settings.workers,
        )


def normalize_extensions(extensions: list[str]) -> list[str]:
    """Return extensions with a leading dot, deduplicated, order kept."""
    out: list[str] = []
    for ext in extensions:
        e = ext.strip()
        if not e:
            continue
        e = e if e.startswith(".") else f".{e}"
        if e not in out:
            out.append(e)
    return out


def resolve_output_path(settings: Settings, config: UserConfig, cwd: Path | None = None) -> Path:
    """Pick the output file for the `save` action.

    Args:
        settings (Settings): the parsed command line
        config (UserConfig): the loaded configuration file
        cwd (Path | None): working directory, defaults to `Path.cwd()`

    Returns:
        Path: `--output-path`, else config `output_path`, else `output_file_name` or
            `combined_code.txt` in the working directory
    """
    if settings.output_path:
        return expand_tilde(settings.output_path)
    if config.default.output_path:
        return expand_tilde(config.default.output_path)
    base = cwd or Path.cwd()
    return base / (config.default.output_file_name or DEFAULT_OUTPUT_FILE_NAME)
