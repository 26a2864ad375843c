"""Header comment parser for sandbox scripts and tools.

Every script in the scripts directory and every program in the tools
directory documents itself in a leading comment block. The block follows
this grammar, read top to bottom and stopping at the first line that does
not match::

    header      := [interpreter] [echo] line* [separator]
    interpreter := "#!" ...                 (first physical line only)
    echo        := MARKER " " <file name>   (first comment line, skipped)
    line        := MARKER [" "] text
    separator   := MARKER " " "---" ...     (ends the header)

``MARKER`` is ``#`` for shell and Python sources and ``//`` for Go
sources. Everything after the first separator (usually a translated copy
of the header) is ignored. Inside the header:

* the first non-empty line is the one-line summary;
* ``Usage:`` / ``Options:`` / ``Examples:`` labels (and their Japanese
  counterparts) open blocks whose lines are collected verbatim.

Scripts end a block at a blank comment line. Tools keep blank-separated
paragraphs in the same block until the next label.
"""

import logging
import os
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from .config import DEFAULT_CONTAINER_ONLY_SCRIPTS, DEFAULT_HOST_ONLY_SCRIPTS
from .models import ScriptInfo, ToolInfo


logger = logging.getLogger("metadata_parser")

COMMENT_MARKERS = {".sh": "#", ".bash": "#", ".py": "#", ".go": "//"}
SEPARATOR = "---"
TEST_SCRIPT_PREFIX = "test-"

SECTION_LABELS: Dict[str, Tuple[str, ...]] = {
    "usage": ("usage:", "使用法:"),
    "options": ("options:", "オプション:"),
    "examples": ("examples:", "例:"),
}


class MetadataError(Exception):
    """Script or tool metadata could not be produced."""
    pass


@dataclass
class Header:
    """Comment lines collected from one file header."""
    lines: List[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        for text in self.lines:
            if text.strip():
                return text.strip()
        return ""

    @property
    def localized_summary(self) -> Optional[str]:
        """Translated summary line directly following the summary, if any.

        Only non-ASCII text counts; an ASCII line there is ordinary body text.
        """
        texts = [text.strip() for text in self.lines if text.strip()]
        if len(texts) < 2 or texts[1].isascii():
            return None
        return texts[1]

    def sections(self, blank_ends_section: bool = True) -> Dict[str, List[str]]:
        """Collect labelled blocks keyed by section name."""
        sections: Dict[str, List[str]] = {}
        current: Optional[str] = None

        for text in self.lines:
            stripped = text.strip()

            label = _match_label(stripped)
            if label is not None:
                section, remainder = label
                current = section
                block = sections.setdefault(section, [])
                if remainder:
                    block.append(remainder)
                continue

            if not stripped:
                if blank_ends_section:
                    current = None
                continue

            if current is not None:
                sections[current].append(text)

        return sections


def _match_label(stripped: str) -> Optional[Tuple[str, str]]:
    lowered = stripped.lower()
    for section, labels in SECTION_LABELS.items():
        for label in labels:
            if lowered.startswith(label):
                return section, stripped[len(label):].strip()
    return None


def _strip_marker(line: str, marker: str) -> str:
    text = line[len(marker):]
    if text.startswith(" "):
        text = text[1:]
    return text.rstrip()


def _is_filename_echo(text: str, path: Path) -> bool:
    word = text.strip()
    if not word or any(ch.isspace() for ch in word):
        return False
    return word in (path.name, path.stem) or word.endswith(path.suffix)


def comment_marker(path: Path) -> str:
    """Return the line comment marker used by the file's language."""
    return COMMENT_MARKERS.get(path.suffix, "#")


def read_header(path: Path) -> Header:
    """Read the leading comment block of a file.

    A file without a header yields an empty ``Header``.
    """
    marker = comment_marker(path)
    header = Header()
    echo_checked = False

    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for index, raw in enumerate(f):
            line = raw.rstrip("\r\n")
            if index == 0 and line.startswith("#!"):
                continue
            if not line.startswith(marker):
                break

            text = _strip_marker(line, marker)
            if text.strip().startswith(SEPARATOR):
                break

            if not echo_checked:
                echo_checked = True
                if _is_filename_echo(text, path):
                    continue

            header.lines.append(text)

    return header


def validate_name(name: str, kind: str = "file") -> None:
    """Reject names that could escape their directory."""
    if not name:
        raise MetadataError(f"empty {kind} name")
    if "/" in name or os.sep in name or ".." in name:
        raise MetadataError(f"invalid {kind} name: {name}")


def _block(lines: Optional[List[str]]) -> Optional[str]:
    if not lines:
        return None
    return textwrap.dedent("\n".join(lines)).strip("\n")


@dataclass(frozen=True)
class HostOnlyPolicy:
    """Classifies scripts by the environment they are allowed to run in."""
    host_only: FrozenSet[str] = frozenset(DEFAULT_HOST_ONLY_SCRIPTS)
    container_only: FrozenSet[str] = frozenset(DEFAULT_CONTAINER_ONLY_SCRIPTS)

    @classmethod
    def from_names(cls, host_only: Iterable[str], container_only: Iterable[str] = ()) -> "HostOnlyPolicy":
        return cls(host_only=frozenset(host_only), container_only=frozenset(container_only))

    def is_host_only(self, name: str) -> bool:
        return name in self.host_only

    def environment(self, name: str) -> str:
        if name in self.host_only:
            return "host"
        if name in self.container_only:
            return "container"
        return "any"


class _Catalog:
    """Directory of self-documenting files."""

    kind = "file"

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _accepts(self, name: str) -> bool:
        raise NotImplementedError

    def _entries(self) -> List[Path]:
        try:
            names = sorted(os.listdir(self.directory))
        except OSError as e:
            raise MetadataError(f"reading directory {self.directory}: {e.strerror or e}")

        return [
            self.directory / name
            for name in names
            if self._accepts(name) and (self.directory / name).is_file()
        ]

    def resolve(self, name: str) -> Path:
        """Return the path of ``name`` inside the catalog directory."""
        validate_name(name, self.kind)
        path = self.directory / name
        if not path.is_file():
            raise MetadataError(f"{self.kind} not found: {name}")
        return path

    def _read(self, path: Path) -> Header:
        try:
            return read_header(path)
        except OSError as e:
            raise MetadataError(f"reading {self.kind} {path.name}: {e.strerror or e}")


class ScriptCatalog(_Catalog):
    """Shell scripts under the sandbox scripts directory."""

    kind = "script"

    def __init__(self, directory: str, policy: Optional[HostOnlyPolicy] = None,
                 excluded: Iterable[str] = ("help.sh",)):
        super().__init__(directory)
        self.policy = policy or HostOnlyPolicy()
        self.excluded = frozenset(excluded)

    def _accepts(self, name: str) -> bool:
        # Leading underscore marks sourced libraries
        return name.endswith(".sh") and not name.startswith("_") and name not in self.excluded

    @staticmethod
    def category(name: str) -> str:
        return "test" if name.startswith(TEST_SCRIPT_PREFIX) else "utility"

    def is_host_only(self, name: str) -> bool:
        return self.policy.is_host_only(name)

    def _info(self, path: Path, header: Header) -> ScriptInfo:
        return ScriptInfo(
            name=path.name,
            description=header.summary,
            description_localized=header.localized_summary,
            category=self.category(path.name),
            environment=self.policy.environment(path.name),
            host_only=self.policy.is_host_only(path.name),
        )

    def list_scripts(self) -> List[ScriptInfo]:
        """Summaries of every listed script, sorted by name."""
        scripts = []
        for path in self._entries():
            try:
                header = self._read(path)
            except MetadataError as e:
                logger.warning(f"Skipping script: {e}")
                continue
            scripts.append(self._info(path, header))
        return scripts

    def get_script_info(self, name: str) -> ScriptInfo:
        """Full metadata for one script, including usage and options."""
        path = self.resolve(name)
        header = self._read(path)
        sections = header.sections(blank_ends_section=True)

        info = self._info(path, header)
        info.usage = _block(sections.get("usage"))
        info.options = _block(sections.get("options"))
        return info


class ToolCatalog(_Catalog):
    """Single-file programs under the sandbox tools directory."""

    kind = "tool"

    def __init__(self, directory: str, extensions: Iterable[str] = (".go",)):
        super().__init__(directory)
        self.extensions = tuple(extensions)

    def _accepts(self, name: str) -> bool:
        stem, suffix = os.path.splitext(name)
        if suffix not in self.extensions:
            return False
        return not (stem.endswith("_test") or stem.startswith("test_"))

    def list_tools(self) -> List[ToolInfo]:
        """Summaries of every tool program, sorted by name."""
        tools = []
        for path in self._entries():
            try:
                header = self._read(path)
            except MetadataError as e:
                logger.warning(f"Skipping tool: {e}")
                continue
            tools.append(ToolInfo(name=path.name, description=header.summary))
        return tools

    def get_tool_info(self, name: str) -> ToolInfo:
        """Full metadata for one tool, including usage and examples."""
        path = self.resolve(name)
        header = self._read(path)
        sections = header.sections(blank_ends_section=False)

        examples = [line.strip() for line in sections.get("examples", [])]
        return ToolInfo(
            name=path.name,
            description=header.summary,
            usage=_block(sections.get("usage")),
            options=_block(sections.get("options")),
            examples=examples or None,
        )
