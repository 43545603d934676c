"""Extract import specifiers from JavaScript and TypeScript sources.

Sources are parsed with tree-sitter; the grammar is picked from the file
extension (``typescript``, ``tsx`` or ``javascript``, the latter with JSX).
The recognized forms are:

- ``import x from "m"``, ``import {a} from "m"``, ``import * as ns from "m"``,
  ``import type {T} from "m"``, ``import "m"``;
- re-exports ``export * from "m"``, ``export * as ns from "m"``, ``export {a} from "m"``;
- ``import x = require("m")`` and CommonJS ``require("m")``;
- dynamic ``import("m")``.

Only literal arguments are recognized for ``import(...)`` and ``require(...)``:
a plain string, or a template literal without substitutions. Anything computed
(``import(name)``, ``import("./" + x)``) is skipped without error.
"""

from __future__ import annotations

from functools import cache
from pathlib import Path
from typing import TYPE_CHECKING

from tree_sitter import Parser
from tree_sitter_language_pack import get_language

from code_combiner.exceptions import SpecifierParseError

if TYPE_CHECKING:
    from tree_sitter import Node

DEFAULT_GRAMMAR = "typescript"
GRAMMARS: dict[str, str] = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}


def grammar_for(file_id: Path | None) -> str:
    """Name of the tree-sitter grammar used for `file_id`."""
    if file_id is None:
        return DEFAULT_GRAMMAR
    return GRAMMARS.get(file_id.suffix.lower(), DEFAULT_GRAMMAR)


@cache
def get_parser(grammar: str) -> Parser:
    return Parser(get_language(grammar))


class _Source:
    """Parsed source bytes with helpers to read node text."""

    def __init__(self, content: str, file_id: Path, grammar: str) -> None:
        self.file_id = file_id
        self.data = content.encode("utf-8")
        self.root = get_parser(grammar).parse(self.data).root_node

    def text(self, node: Node) -> str:
        return self.data[node.start_byte : node.end_byte].decode("utf-8")

    def literal(self, node: Node | None) -> str | None:
        """Value of a string literal, or of a template literal without substitutions."""
        if node is None:
            return None
        if node.type == "string":
            return self.text(node)[1:-1]
        if node.type == "template_string" and not any(c.type == "template_substitution" for c in node.named_children):
            return self.text(node)[1:-1]
        return None

    def first_error(self) -> Node:
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.type == "ERROR" or node.is_missing:
                return node
            stack.extend(reversed([c for c in node.children if c.has_error or c.is_missing]))
        return self.root


def _import_source(src: _Source, node: Node) -> str | None:
    source = node.child_by_field_name("source")
    if source is not None:
        return src.literal(source)
    for child in node.named_children:
        if child.type == "string":
            return src.literal(child)
        if child.type == "import_require_clause":
            # import x = require("m")
            clause_source = child.child_by_field_name("source")
            if clause_source is None:
                clause_source = next((c for c in child.named_children if c.type == "string"), None)
            return src.literal(clause_source)
    return None


def _call_source(src: _Source, node: Node) -> str | None:
    function = node.child_by_field_name("function")
    if function is None:
        return None
    if function.type != "import" and not (function.type == "identifier" and src.text(function) == "require"):
        return None
    arguments = node.child_by_field_name("arguments")
    if arguments is None or not arguments.named_children:
        return None
    return src.literal(arguments.named_children[0])


def specifiers_from_tree(src: _Source) -> list[str]:
    """Find import specifiers in a parsed source, in source order."""
    found: list[str] = []
    stack = [src.root]
    while stack:
        node = stack.pop()
        spec: str | None = None
        if node.type == "import_statement":
            spec = _import_source(src, node)
        elif node.type == "export_statement":
            spec = src.literal(node.child_by_field_name("source"))
        elif node.type == "call_expression":
            spec = _call_source(src, node)
        if spec:
            found.append(spec)
        stack.extend(reversed(node.named_children))
    return found


def extract_specifiers(content: str, file_id: Path | None = None) -> list[str]:
    """Extract the raw import specifiers of one source file.

    Duplicates are kept; the order is the order of first appearance in the source.

    Args:
        content (str): the file's text
        file_id (Path | None, optional): the file, used to pick the grammar and in error messages

    Raises:
        SpecifierParseError: if the source has syntax errors

    Returns:
        list[str]: the specifiers, in source order
    """
    file_id = file_id or Path("<string>")
    src = _Source(content, file_id, grammar_for(file_id))
    if src.root.has_error:
        line = src.first_error().start_point[0] + 1
        raise SpecifierParseError(file=file_id, line=line, message=f"{file_id}:{line}: syntax error")
    return specifiers_from_tree(src)


def decode_source(raw: bytes, file_id: Path) -> str:
    """Decode file bytes as UTF-8 (a BOM is dropped).

    Raises:
        SpecifierParseError: if the bytes are not valid UTF-8
    """
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise SpecifierParseError(file=file_id, message=f"{file_id}: not valid UTF-8 ({exc.reason})") from exc
