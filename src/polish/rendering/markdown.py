"""Markdown note rendering."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml
from pydantic import BaseModel, Field

from polish.ingestion.models import FileInfo, FileType

from .formatting import format_bytes

MAX_DOCUMENT_CHARS = 5000
MAX_PREVIEW_CHARS = 1000
MAX_CODE_LINES = 50
MAX_FUNCTIONS = 10

_LANGUAGES = {
    "js": "javascript",
    "ts": "typescript",
    "py": "python",
    "rb": "ruby",
    "java": "java",
    "cpp": "cpp",
    "c": "c",
    "cs": "csharp",
    "go": "go",
    "rs": "rust",
    "php": "php",
    "swift": "swift",
    "kt": "kotlin",
}

_JS_FUNCTIONS = re.compile(r"function\s+(\w+)|const\s+(\w+)\s*=\s*(?:\([^)]*\)\s*=>|function)")
_FUNCTION_PATTERNS = {
    "javascript": _JS_FUNCTIONS,
    "typescript": _JS_FUNCTIONS,
    "python": re.compile(r"def\s+(\w+)\s*\("),
    "java": re.compile(r"(?:public|private|protected)?\s*(?:static)?\s*\w+\s+(\w+)\s*\("),
}


class Frontmatter(BaseModel):
    """Metadata header written at the top of every generated note.

    Attributes:
        title: Note title, the original filename stem.
        original_file: Wiki link to the relocated original file.
        source_path: Path the file was found at before organizing.
        file_type: Original extension.
        created: Creation timestamp of the original file (ISO-8601).
        processed: Processing timestamp (ISO-8601).
        tags: Final ranked tag list.
        archive_type: Archive extension, only for archive summaries.
        extracted_files: Number of organized archive members, only for archive summaries.
    """

    title: str
    original_file: str
    source_path: str
    file_type: str
    created: str
    processed: str
    tags: List[str] = Field(default_factory=list)
    archive_type: Optional[str] = None
    extracted_files: Optional[int] = None

    def to_mapping(self) -> Dict[str, Any]:
        """Return the populated fields in declaration order."""
        return self.model_dump(mode="json", exclude_none=True)


def language_for_extension(extension: str) -> str:
    """Return the fenced-code language for an extension, passing unknown ones through."""
    return _LANGUAGES.get(extension, extension)


def extract_functions(content: str, language: str) -> List[str]:
    """Return distinct function names found by the per-language pattern, in order."""
    pattern = _FUNCTION_PATTERNS.get(language)
    if pattern is None:
        return []
    names: List[str] = []
    for match in pattern.finditer(content):
        name = next((group for group in match.groups() if group), None)
        if name and name not in names:
            names.append(name)
    return names


class MarkdownRenderer:
    """Render a frontmatter block, a type-specific body, and a footer into one note."""

    def render(
        self,
        file: FileInfo,
        content: Optional[str],
        frontmatter: Frontmatter,
        *,
        location: Optional[Path] = None,
    ) -> str:
        """Return the complete markdown note for a file.

        Args:
            file: File the note describes.
            content: Extracted content, or ``None`` when nothing could be extracted.
            frontmatter: Metadata header for the note.
            location: Path linked from the footer; defaults to the file's own path.

        Returns:
            str: Markdown document.
        """
        sections = [self.render_frontmatter(frontmatter), f"# {frontmatter.title}\n"]

        if file.type is FileType.IMAGE:
            sections.append(self._image_body(file, content))
        elif file.type is FileType.CODE:
            sections.append(self._code_body(file, content))
        elif file.type is FileType.DOCUMENT:
            sections.append(self._document_body(content))
        else:
            sections.append(self._default_body(file, content))

        sections.append(self._footer(file, location))
        return "\n".join(sections)

    def render_archive_summary(
        self,
        file: FileInfo,
        frontmatter: Frontmatter,
        groups: Mapping[str, Sequence[Tuple[str, str]]],
        *,
        location: Optional[Path] = None,
    ) -> str:
        """Return the summary note for an expanded archive.

        Args:
            file: The archive file.
            frontmatter: Metadata header for the note.
            groups: Category name mapped to ``(label, link target)`` pairs for each member.
            location: Path linked from the footer; defaults to the archive's own path.
        """
        lines = [
            "## Archive Contents",
            f"Expanded from {file.name} ({format_bytes(file.size_bytes)}).",
        ]
        total = sum(len(entries) for entries in groups.values())
        lines.append(f"{total} file(s) organized.")
        for category, entries in groups.items():
            lines.append("")
            lines.append(f"### {category}")
            for label, target in entries:
                lines.append(f"- [[{target}|{label}]]")

        sections = [
            self.render_frontmatter(frontmatter),
            f"# {frontmatter.title}\n",
            "\n".join(lines),
            self._footer(file, location),
        ]
        return "\n".join(sections)

    def render_frontmatter(self, frontmatter: Frontmatter) -> str:
        """Serialize the frontmatter as a ``---`` delimited YAML block."""
        body = yaml.safe_dump(
            frontmatter.to_mapping(),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )
        return f"---\n{body}---\n"

    # ------------------------------------------------------------------ #
    # Bodies                                                             #
    # ------------------------------------------------------------------ #

    def _image_body(self, file: FileInfo, content: Optional[str]) -> str:
        lines = [
            f"![[{file.name}]]",
            "",
            "## Description",
            f"Image file: {file.name}",
            "",
            "## Properties",
            f"- **Format**: {file.extension.upper()}",
            f"- **Size**: {format_bytes(file.size_bytes)}",
            f"- **Modified**: {file.modified_at.date().isoformat()}",
        ]
        if content:
            lines.extend(["", "## Metadata", "```", content, "```"])
        return "\n".join(lines)

    def _code_body(self, file: FileInfo, content: Optional[str]) -> str:
        language = language_for_extension(file.extension)
        lines = ["## Overview", f"Source code file written in {language}.", ""]
        if content is None:
            return "\n".join(lines)

        source_lines = content.split("\n")
        lines.extend(
            [
                "## Statistics",
                f"- **Lines of code**: {len(source_lines)}",
                f"- **File size**: {format_bytes(file.size_bytes)}",
                "",
            ]
        )

        functions = extract_functions(content, language)
        if functions:
            lines.append("## Key Functions")
            lines.extend(f"- `{name}`" for name in functions[:MAX_FUNCTIONS])
            lines.append("")

        lines.append("## Code Preview")
        lines.append(f"```{language}")
        lines.append("\n".join(source_lines[:MAX_CODE_LINES]))
        if len(source_lines) > MAX_CODE_LINES:
            lines.append("// ... (truncated)")
        lines.append("```")
        return "\n".join(lines)

    def _document_body(self, content: Optional[str]) -> str:
        if content is None:
            return "## Content\n\n*Unable to extract content from this document.*"

        lines = ["## Content\n"]
        if len(content) > MAX_DOCUMENT_CHARS:
            lines.append(content[:MAX_DOCUMENT_CHARS])
            lines.append("\n\n*... (content truncated)*")
        else:
            lines.append(content)
        return "\n".join(lines)

    def _default_body(self, file: FileInfo, content: Optional[str]) -> str:
        lines = [
            "## File Information",
            f"- **Type**: {file.type.value}",
            f"- **Format**: {file.extension}",
            f"- **Size**: {format_bytes(file.size_bytes)}",
            f"- **Modified**: {file.modified_at.date().isoformat()}",
        ]
        if content:
            lines.extend(["", "## Content Preview", "```", content[:MAX_PREVIEW_CHARS]])
            if len(content) > MAX_PREVIEW_CHARS:
                lines.append("... (truncated)")
            lines.append("```")
        return "\n".join(lines)

    def _footer(self, file: FileInfo, location: Optional[Path]) -> str:
        target = location or file.path
        return f"\n---\n*Original file: [{target.name}]({_file_uri(target)})*"


def _file_uri(path: Path) -> str:
    if path.is_absolute():
        return path.as_uri()
    return f"file://{path.as_posix()}"


__all__ = [
    "Frontmatter",
    "MarkdownRenderer",
    "extract_functions",
    "language_for_extension",
    "MAX_DOCUMENT_CHARS",
]
