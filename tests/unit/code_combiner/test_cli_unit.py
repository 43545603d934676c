from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from code_combiner import __version__, cli
from code_combiner.config import ProcessingOptions
from code_combiner.settings import Settings

if TYPE_CHECKING:
    from pytest_mock import MockerFixture

    from conftest import MakeProject


@pytest.mark.unit
def test_parse_args_collects_inputs_and_flags() -> None:
    settings = cli.parse_args(
        [
            "src",
            "lib/a.ts",
            "--target",
            "src/cart.ts",
            "--reference",
            "src/types.ts",
            "--reference",
            "src/api.ts",
            "--save",
            "--output-path",
            "~/out.xml",
            "--ignore",
            "*.test.ts",
            "--absolute",
            "--deps",
            "--workers",
            "3",
        ],
    )

    assert settings.targets == [Path("src"), Path("lib/a.ts")]
    assert settings.target_files == [Path("src/cart.ts")]
    assert settings.reference_files == [Path("src/types.ts"), Path("src/api.ts")]
    assert settings.save is True
    assert settings.copy_output is False
    assert settings.output_path == "~/out.xml"
    assert settings.ignore_patterns == ["*.test.ts"]
    assert settings.relative is False
    assert settings.deps is True
    assert settings.workers == 3


@pytest.mark.unit
def test_parse_args_relative_defaults_to_config() -> None:
    assert cli.parse_args(["a.ts"]).relative is None
    assert cli.parse_args(["a.ts", "--relative"]).relative is True


@pytest.mark.unit
def test_parse_args_actions_are_exclusive(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["a.ts", "--copy", "--stdout"])

    assert exc_info.value.code == 2
    assert "not allowed with" in capsys.readouterr().err


@pytest.mark.unit
def test_parse_args_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["--version"])

    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


@pytest.mark.unit
def test_main_without_inputs_fails(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--stdout"]) == 1
    assert "Either <TARGETS> or --target/--reference must be specified." in capsys.readouterr().err


@pytest.mark.unit
def test_main_without_action_fails(
    make_project: MakeProject,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    root = make_project({"a.ts": "export {};\n"})
    monkeypatch.chdir(root)

    assert cli.main(["a.ts", "--config", str(root / "none.toml")]) == 1
    assert "No action specified" in capsys.readouterr().err


@pytest.mark.unit
def test_main_reports_invalid_config(
    make_project: MakeProject,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    root = make_project({"a.ts": "", "bad.toml": "[default\n"})
    monkeypatch.chdir(root)

    assert cli.main(["a.ts", "--stdout", "--config", str(root / "bad.toml")]) == 1
    assert "Invalid configuration file" in capsys.readouterr().err


@pytest.mark.unit
def test_main_passes_document_to_action(make_project: MakeProject, monkeypatch: pytest.MonkeyPatch, mocker: MockerFixture) -> None:
    root = make_project({"a.ts": "export const a = 1;\n"})
    monkeypatch.chdir(root)
    execute = mocker.patch.object(cli, "execute_action", return_value="done")

    assert cli.main(["a.ts", "--copy", "--config", str(root / "none.toml")]) == 0

    settings, _, document = execute.call_args.args
    assert settings.copy_output is True
    assert '<file name="a.ts">' in document


@pytest.mark.unit
def test_build_resolution_context_reads_tsconfig(make_project: MakeProject) -> None:
    root = make_project({"tsconfig.json": '{"compilerOptions": {"baseUrl": "src", "paths": {"@/*": ["*"]}}}'})

    context = cli.build_resolution_context(root, ProcessingOptions(extensions=(".ts",)))

    assert context.root == root
    assert context.extensions == (".ts",)
    assert context.base_url == root / "src"
    assert [a.pattern for a in context.aliases] == ["@/*"]


@pytest.mark.unit
def test_combine_skips_missing_target(make_project: MakeProject) -> None:
    root = make_project({"a.ts": "a"})

    document = cli.combine(Settings(targets=[Path("a.ts"), Path("gone.ts")]), ProcessingOptions(), root)

    assert '<file name="a.ts">' in document
    assert "gone.ts" not in document


@pytest.mark.unit
@pytest.mark.parametrize("value", ["-1", "many"])
def test_parse_args_rejects_invalid_workers(value: str, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["a.ts", "--workers", value])

    assert exc_info.value.code == 2
    assert "--workers" in capsys.readouterr().err
