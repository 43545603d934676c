from __future__ import annotations

from pathlib import Path

import pytest

from code_combiner import config
from code_combiner.config import (
    DEFAULT_EXTENSIONS,
    DEFAULT_EXTERNAL_ROOTS,
    DefaultSection,
    ProcessingOptions,
    UserConfig,
    config_file_path,
    convert_ignore_patterns,
    load_config,
    normalize_extensions,
    resolve_output_path,
)
from code_combiner.exceptions import ConfigFileError
from code_combiner.settings import Settings


@pytest.mark.unit
def test_load_config_missing_file_gives_defaults(tmp_path: Path) -> None:
    assert load_config(tmp_path / "missing.toml") == UserConfig()


@pytest.mark.unit
def test_load_config_reads_default_table(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(
        '[default]\naction = "save"\nignore_patterns = ["dist/"]\nuse_relative_paths = false\n'
        'deps = true\nextensions = ["ts", ".tsx"]\nexternal_roots = ["node_modules", "vendor"]\n',
        encoding="utf-8",
    )

    loaded = load_config(path)

    assert loaded.default.action == "save"
    assert loaded.default.ignore_patterns == ["dist/"]
    assert loaded.default.use_relative_paths is False
    assert loaded.default.deps is True
    assert loaded.default.extensions == ["ts", ".tsx"]
    assert loaded.default.external_roots == ["node_modules", "vendor"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "content",
    [
        "[default\naction = 'copy'\n",
        "[default]\ndeps = 'maybe'\n",
        "[default]\nignore_patterns = 3\n",
    ],
)
def test_load_config_rejects_invalid_files(tmp_path: Path, content: str) -> None:
    path = tmp_path / "config.toml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigFileError) as exc_info:
        load_config(path)

    assert exc_info.value.path == path
    assert str(path) in str(exc_info.value)


@pytest.mark.unit
def test_config_file_path_precedence(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "ENV_FILE", "")
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("PCC_CONFIG", raising=False)

    assert config_file_path() == tmp_path / ".pcc_config.toml"

    monkeypatch.setenv("PCC_CONFIG", str(tmp_path / "from_env.toml"))
    assert config_file_path() == tmp_path / "from_env.toml"
    assert config_file_path(str(tmp_path / "explicit.toml")) == tmp_path / "explicit.toml"


@pytest.mark.unit
def test_config_file_path_reads_dotenv(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(f"PCC_CONFIG={tmp_path / 'dotenv.toml'}\n", encoding="utf-8")
    monkeypatch.setattr(config, "ENV_FILE", str(env_file))
    monkeypatch.setenv("PCC_CONFIG", "")
    monkeypatch.delenv("PCC_CONFIG")

    assert config_file_path() == tmp_path / "dotenv.toml"


@pytest.mark.unit
def test_convert_ignore_patterns() -> None:
    assert convert_ignore_patterns(["dist/", " *.log ", "", "src/gen/"]) == ["dist/**", "*.log", "src/gen/**"]


@pytest.mark.unit
def test_normalize_extensions() -> None:
    assert normalize_extensions(["ts", ".tsx", " ts ", ""]) == [".ts", ".tsx"]


@pytest.mark.unit
def test_processing_options_defaults() -> None:
    options = ProcessingOptions.from_settings(Settings(), UserConfig())

    assert options.ignore_patterns == []
    assert options.use_relative_paths is True
    assert options.deps is False
    assert options.extensions == DEFAULT_EXTENSIONS
    assert options.external_roots == DEFAULT_EXTERNAL_ROOTS


@pytest.mark.unit
def test_processing_options_merge_command_line_over_config() -> None:
    user = UserConfig(
        default=DefaultSection(
            ignore_patterns=["build/"],
            use_relative_paths=False,
            deps=True,
            extensions=["ts"],
            external_roots=[],
        ),
    )

    options = ProcessingOptions.from_settings(Settings(ignore_patterns=["*.spec.ts"], workers=2), user)
    assert options.ignore_patterns == ["build/**", "*.spec.ts"]
    assert options.use_relative_paths is False
    assert options.deps is True
    assert options.extensions == (".ts",)
    assert options.external_roots == frozenset()
    assert options.workers == 2

    options = ProcessingOptions.from_settings(Settings(relative=True), user)
    assert options.use_relative_paths is True


@pytest.mark.unit
def test_resolve_output_path_precedence(tmp_path: Path) -> None:
    named = UserConfig(default=DefaultSection(output_file_name="out.xml"))
    with_path = UserConfig(default=DefaultSection(output_path=str(tmp_path / "cfg.xml"), output_file_name="out.xml"))

    assert resolve_output_path(Settings(), UserConfig(), tmp_path) == tmp_path / "combined_code.txt"
    assert resolve_output_path(Settings(), named, tmp_path) == tmp_path / "out.xml"
    assert resolve_output_path(Settings(), with_path, tmp_path) == tmp_path / "cfg.xml"
    assert resolve_output_path(Settings(output_path=str(tmp_path / "cli.xml")), with_path, tmp_path) == tmp_path / "cli.xml"
