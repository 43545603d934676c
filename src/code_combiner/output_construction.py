from __future__ import annotations

import io
from typing import TYPE_CHECKING
from xml.sax.saxutils import escape, quoteattr

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from collections.abc import Sequence

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'
INDENT = "  "


class SourceFile(BaseModel):
    """A file as it appears in the combined document.

    Attributes:
        name: display path.
        content: file text.
        importers: display paths of the files importing it (dependencies only).
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Display path")
    content: str = Field("", description="File text")
    importers: tuple[str, ...] = Field(default=(), description="Display paths of importing files")


def format_file(source: SourceFile, depth: int = 1) -> str:
    """Render one `<file>` element.

    Content lines are indented one level below the element and XML-escaped.

    Args:
        source (SourceFile): the file to render
        depth (int, optional): nesting depth of the element. Defaults to 1.

    Returns:
        str: the element, ending with a newline
    """
    pad = INDENT * depth
    inner = INDENT * (depth + 1)
    out = io.StringIO()
    out.write(f"{pad}<file name={quoteattr(source.name)}>\n")
    if source.importers:
        out.write(f"{inner}<imported_by>\n")
        for importer in source.importers:
            out.write(f"{inner}{INDENT}<importer>{escape(importer)}</importer>\n")
        out.write(f"{inner}</imported_by>\n")
    for line in source.content.splitlines():
        out.write(f"{inner}{escape(line)}\n" if line else "\n")
    out.write(f"{pad}</file>\n")
    return out.getvalue()


def _section(out: io.StringIO, tag: str, files: Sequence[SourceFile]) -> None:
    if not files:
        return
    out.write(f"{INDENT}<{tag}>\n")
    for source in files:
        out.write(format_file(source, depth=2))
    out.write(f"{INDENT}</{tag}>\n")


def build_xml(
    *,
    targets: Sequence[SourceFile] = (),
    references: Sequence[SourceFile] = (),
    files: Sequence[SourceFile] = (),
    dependencies: Sequence[SourceFile] = (),
) -> str:
    """Build the combined XML document.

    Sections appear in the order targets, references, plain files, dependencies;
    empty sections are omitted.

    Args:
        targets (Sequence[SourceFile]): files to be modified
        references (Sequence[SourceFile]): files given for context only
        files (Sequence[SourceFile]): files from positional paths
        dependencies (Sequence[SourceFile]): files reached through imports, with importers

    Returns:
        str: the XML document
    """
    out = io.StringIO()
    out.write(XML_HEADER)
    out.write("<project>\n")
    _section(out, "targets", targets)
    _section(out, "references", references)
    for source in files:
        out.write(format_file(source, depth=1))
    _section(out, "dependencies", dependencies)
    out.write("</project>\n")
    return out.getvalue()
