from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from code_combiner import cli

if TYPE_CHECKING:
    from conftest import MakeProject

TSCONFIG = """{
  // aliases used by the app
  "compilerOptions": {
    "baseUrl": ".",
    "paths": {
      "@app/*": ["src/*"],
    },
  },
}
"""


@pytest.mark.end2end
def test_end_to_end_save_with_aliases(make_project: MakeProject, monkeypatch: pytest.MonkeyPatch) -> None:
    root = make_project(
        {
            "tsconfig.json": TSCONFIG,
            "src/main.ts": 'import { render } from "./api";\nimport React from "react";\nrender();\n',
            "src/api.ts": 'import { fmt } from "@app/utils/format";\nexport const render = () => fmt(1) > 0;\n',
            "src/utils/format.ts": "export const fmt = (n: number) => n;\n",
        },
    )
    monkeypatch.chdir(root)
    output = root / "out" / "combined.xml"

    exit_code = cli.main(
        [
            "src/main.ts",
            "--deps",
            "--save",
            "--output-path",
            str(output),
            "--config",
            str(root / "missing.toml"),
        ],
    )

    assert exit_code == 0
    document = output.read_text(encoding="utf-8")
    assert document.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<project>\n  <file name="src/main.ts">')
    assert document.index('<file name="src/api.ts">') < document.index('<file name="src/utils/format.ts">')
    assert "<importer>src/api.ts</importer>" in document
    assert "fmt(1) &gt; 0" in document
    assert "react" not in document.split("<dependencies>")[1]


@pytest.mark.end2end
def test_end_to_end_cycle_is_not_fatal(make_project: MakeProject, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    root = make_project(
        {
            "A.ts": 'import { b } from "./B";\nimport x from "pkg-x";\n',
            "B.ts": 'import { c } from "./C";\nimport { a } from "./A";\n',
            "C.ts": "export const c = 1;\n",
        },
    )
    monkeypatch.chdir(root)

    exit_code = cli.main(["A.ts", "--deps", "--stdout", "--config", str(root / "missing.toml")])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert out.index('<file name="B.ts">') < out.index('<file name="C.ts">')
    assert out.count("<importer>A.ts</importer>") == 2
    assert out.count("<importer>B.ts</importer>") == 1
