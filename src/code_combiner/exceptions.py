from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CodeCombinerError(Exception):
    """Base exception for errors in the code_combiner package."""

    message: str = "code_combiner failed."

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ConfigFileError(CodeCombinerError):
    """Raised when the user configuration file cannot be parsed."""

    path: Path = Path()
    message: str = "The configuration file could not be parsed."


@dataclass(frozen=True)
class ClipboardError(CodeCombinerError):
    """Raised when the combined output cannot be copied to the clipboard."""

    message: str = "Could not copy the combined code to the clipboard."


@dataclass(frozen=True)
class NoActionError(CodeCombinerError):
    """Raised when neither the command line nor the config file selects an action."""

    message: str = "No action specified: use --copy, --save or --stdout, or set `action` in the config file."


@dataclass(frozen=True)
class UnknownActionError(CodeCombinerError):
    """Raised when the configured default action is not recognised."""

    action: str = ""
    message: str = "Unknown action in configuration file."


@dataclass(frozen=True)
class NoEntryPointsError(CodeCombinerError):
    """Raised when dependency resolution is requested without any entry file."""

    message: str = "Either <TARGETS> or --target/--reference must be specified."


@dataclass(frozen=True)
class SpecifierParseError(CodeCombinerError):
    """Raised when import specifiers cannot be extracted from a source file."""

    file: Path = Path()
    line: int = 0
    message: str = "The file could not be scanned for imports."
