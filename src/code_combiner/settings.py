from __future__ import annotations

from pathlib import Path

from dotenv import find_dotenv
from pydantic import BaseModel, ConfigDict, Field

ENV_FILE = find_dotenv(usecwd=True)


class Settings(BaseModel):
    """Command line settings for the code_combiner tool."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    targets: list[Path] = Field(default_factory=list, description="Target files or directories to process.")
    target_files: list[Path] = Field(default_factory=list, description="Target files to be modified.")
    reference_files: list[Path] = Field(default_factory=list, description="Reference files for context.")

    copy_output: bool = Field(default=False, description="Copy the combined code to clipboard.")
    save: bool = Field(default=False, description="Save the combined code to file.")
    stdout: bool = Field(default=False, description="Print the combined code.")
    output_path: str = Field(default="", description="Output file path.")

    ignore_file_path: str = Field(default="", description="Ignore file path in .gitignore format.")
    ignore_patterns: list[str] = Field(default_factory=list, description="Additional ignore patterns.")
    relative: bool | None = Field(default=None, description="Use relative paths (None defers to config).")

    deps: bool = Field(default=False, description="Resolve dependencies.")
    workers: int = Field(default=0, ge=0, description="Threads reading files ahead during resolution.")

    config_path: str = Field(default="", description="User configuration file.")
    log_file: str = Field(default="", description="Log file path.")
    verbose: bool = Field(default=False, description="Log resolution misses.")

    @property
    def has_inputs(self) -> bool:
        """Whether any positional, target or reference file was supplied."""
        return bool(self.targets or self.target_files or self.reference_files)
