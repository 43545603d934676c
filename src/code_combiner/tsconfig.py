"""Read path aliases from ``tsconfig.json``."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from code_combiner.logging import logger
from code_combiner.resolver import Alias

TSCONFIG_FILE_NAME = "tsconfig.json"
MAX_EXTENDS_DEPTH = 8


def strip_json_comments(text: str) -> str:
    """Remove `//` and `/* */` comments and trailing commas from JSONC text.

    String contents are left untouched.

    Args:
        text (str): the JSON-with-comments text

    Returns:
        str: plain JSON text
    """
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            j = i + 1
            while j < n and text[j] != '"':
                j += 2 if text[j] == "\\" else 1
            out.append(text[i : j + 1])
            i = j + 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end < 0 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end < 0 else end + 2
        elif ch == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "}]":
                i += 1
                continue
            out.append(ch)
            i += 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def read_tsconfig(path: Path) -> dict[str, Any]:
    """Parse one tsconfig file.

    Args:
        path (Path): the tsconfig file

    Returns:
        dict[str, Any]: the parsed object, or an empty dict when the file is
            missing or not valid JSON (a warning is logged)
    """
    try:
        data = json.loads(strip_json_comments(path.read_text(encoding="utf-8-sig")))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as e:
        logger.warning("tsconfig_unreadable", path=str(path), error=str(e))
        return {}
    return data if isinstance(data, dict) else {}


def _extended_config(path: Path, extends: str) -> Path | None:
    if not extends.startswith((".", "/")):
        # Package configs (e.g. "@tsconfig/node20") live in node_modules.
        return None
    candidate = (path.parent / extends).resolve()
    if candidate.suffix != ".json":
        candidate = candidate.with_name(candidate.name + ".json")
    return candidate


def _compiler_options(path: Path, depth: int = 0) -> tuple[dict[str, Any], dict[str, Path]]:
    """Merge `compilerOptions` along the `extends` chain.

    Returns:
        tuple: the merged options, and for `baseUrl`/`paths` the directory of
            the file that defined them (relative entries are resolved against it)
    """
    data = read_tsconfig(path)
    options: dict[str, Any] = {}
    origins: dict[str, Path] = {}
    extends = data.get("extends")
    if isinstance(extends, str) and depth < MAX_EXTENDS_DEPTH:
        parent = _extended_config(path, extends)
        if parent is not None:
            options, origins = _compiler_options(parent, depth + 1)
    own = data.get("compilerOptions")
    if isinstance(own, dict):
        options.update(own)
        for key in ("baseUrl", "paths"):
            if key in own:
                origins[key] = path.parent
    return options, origins


def load_tsconfig_aliases(project_root: Path) -> tuple[tuple[Alias, ...], Path | None]:
    """Build the alias table from the project's ``tsconfig.json``.

    `paths` entries use their first target. Targets are relative to `baseUrl`
    when set, otherwise to the tsconfig that declares `paths`.

    Args:
        project_root (Path): directory holding ``tsconfig.json``

    Returns:
        tuple: the aliases, and the absolute `baseUrl` directory (None when unset)
    """
    tsconfig = project_root / TSCONFIG_FILE_NAME
    if not tsconfig.is_file():
        return (), None

    options, origins = _compiler_options(tsconfig)
    base_url: Path | None = None
    raw_base = options.get("baseUrl")
    if isinstance(raw_base, str):
        base_url = (origins.get("baseUrl", project_root) / raw_base).resolve()

    aliases: list[Alias] = []
    paths = options.get("paths")
    if isinstance(paths, dict):
        anchor = base_url or origins.get("paths", project_root).resolve()
        for pattern, targets in paths.items():
            first = targets[0] if isinstance(targets, list) and targets else targets
            if not isinstance(first, str):
                continue
            aliases.append(Alias(pattern=pattern, target=str(anchor / first)))
    logger.info("tsconfig_loaded", path=str(tsconfig), aliases=len(aliases), base_url=str(base_url or ""))
    return tuple(aliases), base_url
