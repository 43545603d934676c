from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from code_combiner.config import DEFAULT_EXTENSIONS, DEFAULT_EXTERNAL_ROOTS
from code_combiner.logging import logger

RELATIVE_PREFIXES = ("./", "../")
SCRIPT_SUFFIXES = frozenset({".js", ".jsx", ".mjs", ".cjs"})


class Alias(BaseModel):
    """One path alias, e.g. ``@app/*`` mapped to ``/project/src/*``.

    Attributes:
        pattern: the specifier pattern, with at most one `*`.
        target: absolute replacement, with a `*` where the matched remainder goes.
    """

    model_config = ConfigDict(frozen=True)

    pattern: str
    target: str

    @property
    def prefix(self) -> str:
        """The literal part of the pattern before the wildcard."""
        return self.pattern.split("*", 1)[0]

    @property
    def is_wildcard(self) -> bool:
        return "*" in self.pattern

    def substitute(self, specifier: str) -> str | None:
        """Rewrite `specifier` through this alias, or return None when it does not match."""
        if self.is_wildcard:
            prefix, suffix = self.pattern.split("*", 1)
            if not specifier.startswith(prefix) or not specifier.endswith(suffix):
                return None
            if len(specifier) < len(prefix) + len(suffix):
                return None
            rest = specifier[len(prefix) : len(specifier) - len(suffix)]
        elif specifier == self.pattern:
            rest = ""
        elif specifier.startswith(self.pattern.rstrip("/") + "/"):
            rest = specifier[len(self.pattern.rstrip("/")) + 1 :]
        else:
            return None
        if "*" in self.target:
            return self.target.replace("*", rest, 1)
        return f"{self.target.rstrip('/')}/{rest}" if rest else self.target


class ResolutionContext(BaseModel):
    """Immutable per-run configuration for the resolver.

    Attributes:
        root: project root; absolute specifiers are resolved inside it.
        extensions: candidate extensions, probed in this order.
        aliases: alias table, kept sorted longest prefix first.
        base_url: directory where bare specifiers are looked up, if any.
        external_roots: package roots and directory names that are always external.
    """

    model_config = ConfigDict(frozen=True)

    root: Path
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    aliases: tuple[Alias, ...] = ()
    base_url: Path | None = None
    external_roots: frozenset[str] = Field(default=DEFAULT_EXTERNAL_ROOTS)

    @field_validator("root")
    @classmethod
    def _absolute_root(cls, value: Path) -> Path:
        return value.resolve()

    @field_validator("aliases")
    @classmethod
    def _longest_prefix_first(cls, value: tuple[Alias, ...]) -> tuple[Alias, ...]:
        return tuple(sorted(value, key=lambda a: len(a.prefix), reverse=True))

    def match_alias(self, specifier: str) -> str | None:
        """Apply the longest matching alias to `specifier`."""
        for alias in self.aliases:
            substituted = alias.substitute(specifier)
            if substituted is not None:
                return substituted
        return None


def is_relative(specifier: str) -> bool:
    return specifier in {".", ".."} or specifier.startswith(RELATIVE_PREFIXES)


def package_root(specifier: str) -> str:
    """Return the package part of a bare specifier (`@scope/name` or `name`)."""
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) > 1:
        return "/".join(parts[:2])
    return parts[0]


def is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def probe_candidates(base: Path, extensions: tuple[str, ...]) -> Path | None:
    """Find the file a module path refers to.

    The path itself is used when it already carries a candidate extension.
    A missing `.js`-family path is retried with each extension in place of its
    suffix. Otherwise each extension is appended in order, then `index.<ext>`
    is tried inside the path as a directory.

    Args:
        base (Path): the module path, possibly without extension
        extensions (tuple[str, ...]): candidate extensions in probe order

    Returns:
        Path | None: the first existing candidate, or None
    """
    if base.suffix in extensions and base.is_file():
        return base
    if base.suffix in SCRIPT_SUFFIXES:
        # ESM-style `./foo.js` naming a TypeScript source
        for ext in extensions:
            candidate = base.with_suffix(ext)
            if candidate.is_file():
                return candidate
    if base.name:
        for ext in extensions:
            candidate = base.with_name(base.name + ext)
            if candidate.is_file():
                return candidate
    if base.is_dir():
        for ext in extensions:
            candidate = base / f"index{ext}"
            if candidate.is_file():
                return candidate
    return None


def _under_external_root(file_id: Path, context: ResolutionContext) -> bool:
    parts = file_id.relative_to(context.root).parts if is_within(file_id, context.root) else file_id.parts
    return any(part in context.external_roots for part in parts)


def resolve_specifier(specifier: str, importer: Path, context: ResolutionContext) -> Path | None:
    """Resolve an import specifier to a file.

    Args:
        specifier (str): the raw specifier, e.g. ``./util`` or ``@app/utils/format``
        importer (Path): the importing file (a resolved absolute path)
        context (ResolutionContext): the resolution configuration

    Returns:
        Path | None: the resolved, normalized file path, or None when the
            specifier is external (a package, or no matching file on disk)
    """
    spec = specifier.strip()
    if not spec or package_root(spec) in context.external_roots:
        return None

    aliased = context.match_alias(spec)
    if aliased is not None:
        base = Path(aliased)
    elif is_relative(spec):
        base = importer.parent / spec
    elif spec.startswith("/"):
        absolute = Path(spec)
        base = absolute if is_within(absolute, context.root) else context.root / spec.lstrip("/")
    elif context.base_url is not None:
        base = context.base_url / spec
    else:
        return None

    hit = probe_candidates(Path(os.path.normpath(base)), context.extensions)
    if hit is None:
        logger.debug("resolution_miss", specifier=specifier, importer=str(importer))
        return None
    file_id = hit.resolve()
    if _under_external_root(file_id, context):
        return None
    return file_id
