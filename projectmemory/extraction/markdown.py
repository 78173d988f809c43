"""Tokenizer for the labeled-record markdown dialect used by the memory files.

Every memory file (DECISIONS.md, DEVLOG.md, ATTEMPTS.md, BLOCKED.md) is a list of
`## ` sections whose bodies use the same conventions:

    **Label:** inline value
    **Label:**
    - bullet item
    - `path/to/file` - what changed
    ```
    fenced code
    ```
    ---

Sections are split line by line (fenced code never starts a section) and each
body is turned into a flat token list. Record parsers then ask the body for
fields, bullet lists and code blocks instead of running regexes over raw text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from projectmemory.extraction.models import FileChangeEntry

SECTION_PREFIX = "## "

LABEL_RE = re.compile(r"^\s*(?:-\s+)?\*\*(?P<label>[^*]+?):\*\*\s*(?P<value>.*?)\s*$")
ITEM_RE = re.compile(r"^\s*-\s+(?P<text>.+?)\s*$")
RULE_RE = re.compile(r"^\s*(?:-{3,}|\*{3,}|_{3,})\s*$")
SUBHEADING_RE = re.compile(r"^\s*#{3,}\s")
FENCE = "```"
FILE_CHANGE_RE = re.compile(r"^`(?P<path>[^`]+)`\s*-\s*(?P<change>.+)$")


@dataclass
class Token:
    kind: str  # "label" | "item" | "code" | "rule" | "heading" | "text" | "blank"
    text: str
    label: str = ""


@dataclass
class Section:
    title: str  # heading text after the prefix, stripped
    lines: list[str] = field(default_factory=list)

    @property
    def body(self) -> SectionBody:
        return SectionBody(self.lines)


def split_sections(text: str | None, prefix: str = SECTION_PREFIX) -> list[Section]:
    """Split text into sections at lines starting with `prefix`.

    Text before the first heading is preamble and is dropped. Lines inside
    fenced code blocks never start a section.
    """
    if not text:
        return []
    return split_lines(text.splitlines(), prefix)


def split_lines(lines: list[str], prefix: str) -> list[Section]:
    sections: list[Section] = []
    current: Section | None = None
    in_fence = False

    for line in lines:
        if not in_fence and line.startswith(prefix):
            current = Section(title=line[len(prefix):].strip())
            sections.append(current)
            continue
        if line.lstrip().startswith(FENCE) and not _is_inline_fence(line):
            in_fence = not in_fence
        if current is not None:
            current.lines.append(line)

    return sections


def tokenize(lines: list[str]) -> list[Token]:
    tokens: list[Token] = []
    code_lines: list[str] | None = None

    for line in lines:
        if code_lines is not None:
            if line.lstrip().startswith(FENCE):
                tokens.append(Token("code", "\n".join(code_lines).strip()))
                code_lines = None
            else:
                code_lines.append(line)
            continue

        stripped = line.strip()
        if stripped.startswith(FENCE):
            if _is_inline_fence(line):
                tokens.append(Token("code", stripped[3:-3].strip()))
            else:
                # The info string (```bash) is a rendering hint, not code
                code_lines = []
            continue

        if not stripped:
            tokens.append(Token("blank", ""))
            continue
        if RULE_RE.match(line):
            tokens.append(Token("rule", stripped))
            continue
        if SUBHEADING_RE.match(line):
            tokens.append(Token("heading", stripped.lstrip("#").strip()))
            continue

        label_match = LABEL_RE.match(line)
        if label_match:
            tokens.append(
                Token("label", label_match.group("value"), label=label_match.group("label").strip())
            )
            continue

        item_match = ITEM_RE.match(line)
        if item_match:
            tokens.append(Token("item", item_match.group("text")))
        else:
            tokens.append(Token("text", stripped))

    # Unterminated fence: keep what was collected
    if code_lines is not None:
        tokens.append(Token("code", "\n".join(code_lines).strip()))

    return tokens


class SectionBody:
    """Query interface over one section's tokens."""

    def __init__(self, lines: list[str]) -> None:
        self.lines = lines
        self.tokens = tokenize(lines)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def normalized_text(self) -> str:
        """Lowercased body with bold markers removed, for keyword scans."""
        return self.text.lower().replace("**", "")

    def field(self, *labels: str) -> str | None:
        """Inline value of the first non-empty `**Label:** value` among `labels`."""
        wanted = {label.lower() for label in labels}
        for token in self.tokens:
            if token.kind == "label" and token.label.lower() in wanted and token.text:
                return token.text
        return None

    def items(self, *labels: str) -> list[str]:
        """Bullet items following `**Label:**`, up to the next label, rule or heading."""
        wanted = {label.lower() for label in labels}
        collecting = False
        items: list[str] = []

        for token in self.tokens:
            if collecting:
                if token.kind in ("label", "rule", "heading"):
                    break
                if token.kind == "item":
                    items.append(token.text)
            elif token.kind == "label" and token.label.lower() in wanted:
                collecting = True

        return items

    def all_items(self) -> list[str]:
        return [t.text for t in self.tokens if t.kind == "item"]

    def code_block(self) -> str:
        for token in self.tokens:
            if token.kind == "code":
                return token.text
        return ""

    def text_lines(self) -> list[str]:
        return [t.text for t in self.tokens if t.kind == "text"]

    def file_changes(self) -> list[FileChangeEntry]:
        """Bullets of the form `` `path` - change description ``."""
        changes: list[FileChangeEntry] = []
        for item in self.all_items():
            match = FILE_CHANGE_RE.match(item)
            if match:
                changes.append(
                    FileChangeEntry(path=match.group("path"), change=match.group("change").strip())
                )
        return changes


def _is_inline_fence(line: str) -> bool:
    stripped = line.strip()
    return len(stripped) > 6 and stripped.startswith(FENCE) and stripped.endswith(FENCE)
