"""Comment scanner that extracts ``@group`` annotations from source text.

The scanner is a single forward pass over the document lines.  It does not
tokenize the language; a line is classified as a comment purely from the
comment markers of the active :class:`LanguageDescriptor`.

Only whole-line comments capture the code that follows them.  How far that
capture extends is decided by one of three :class:`CaptureStrategy`
implementations, selected by the descriptor's ``capture`` tag:

- ``indentation``: Python-like, the block ends on dedent.
- ``brace``: curly-brace languages, the block ends when braces balance.
- ``generic``: everything else, the block ends at a blank line or comment.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

import pathspec

from . import config
from .hierarchy import enrich_with_hierarchy
from .languages import (
    LanguageRegistry,
    get_file_type,
    get_language_registry,
    is_supported_file_type,
)
from .models import CaptureStrategyKind, CodeGroup, CommentMarkers, LanguageDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommentMatch:
    """Inner text of a comment found on one line."""

    text: str
    whole_line: bool


def _indentation(line: str) -> int:
    return len(line) - len(line.lstrip())


def _starts_comment(stripped: str, markers: CommentMarkers) -> bool:
    if markers.line and stripped.startswith(markers.line):
        return True
    return bool(markers.block_start and stripped.startswith(markers.block_start))


def classify_comment(line: str, markers: CommentMarkers) -> Optional[CommentMatch]:
    """Return the comment carried by *line*, or None if it has none.

    Whole-line comments are checked before inline ones; a marker kind that
    the language does not define simply never matches.
    """
    stripped = line.strip()
    if not stripped:
        return None

    if markers.line and stripped.startswith(markers.line):
        return CommentMatch(stripped[len(markers.line):], whole_line=True)

    if markers.has_block:
        start, end = markers.block_start, markers.block_end
        if (
            stripped.startswith(start)
            and stripped.endswith(end)
            and len(stripped) >= len(start) + len(end)
        ):
            return CommentMatch(stripped[len(start):len(stripped) - len(end)], whole_line=True)

    if markers.line:
        pos = stripped.find(markers.line)
        if pos > 0:
            return CommentMatch(stripped[pos + len(markers.line):], whole_line=False)

    if markers.has_block:
        start, end = markers.block_start, markers.block_end
        pos = stripped.find(start)
        if pos > 0:
            close = stripped.find(end, pos + len(start))
            if close != -1:
                return CommentMatch(stripped[pos + len(start):close], whole_line=False)

    return None


# ===================================================================
# Capture strategies
# ===================================================================

class CaptureStrategy(ABC):
    """Decides which lines after an annotation comment belong to it."""

    @abstractmethod
    def capture(self, lines: List[str], comment_index: int, markers: CommentMarkers) -> List[int]:
        """Return 0-based indexes of captured lines, in ascending order."""
        ...


class IndentationCapture(CaptureStrategy):
    """Indentation-delimited blocks.

    The block width is the deeper of the comment's indentation and the first
    captured line's; any later line indented less than that ends the block.
    """

    def capture(self, lines: List[str], comment_index: int, markers: CommentMarkers) -> List[int]:
        base = _indentation(lines[comment_index])
        width: Optional[int] = None
        captured: List[int] = []

        for j in range(comment_index + 1, len(lines)):
            raw = lines[j]
            stripped = raw.strip()
            if not stripped or _starts_comment(stripped, markers):
                break
            indent = _indentation(raw)
            if width is None:
                if indent < base:
                    break
                width = max(base, indent)
            elif indent < width:
                break
            captured.append(j)

        return captured


class BraceCapture(CaptureStrategy):
    """Curly-brace blocks, tracked with a running ``{``/``}`` balance.

    Capture ends after the line that brings the balance back to zero once a
    ``{`` has been seen.  A line that drives the balance negative (closing an
    enclosing scope) is not captured.  A blank line before the first ``{``
    ends the capture, so a declaration without a body keeps only its own
    lines.
    """

    def capture(self, lines: List[str], comment_index: int, markers: CommentMarkers) -> List[int]:
        balance = 0
        started = False
        captured: List[int] = []

        for j in range(comment_index + 1, len(lines)):
            stripped = lines[j].strip()
            if _starts_comment(stripped, markers):
                break
            if not stripped and not started:
                break

            opens = stripped.count("{")
            balance += opens - stripped.count("}")
            if opens:
                started = True
            if balance < 0:
                break

            captured.append(j)
            if started and balance == 0:
                break

        return captured


class GenericCapture(CaptureStrategy):
    """Capture until a blank line or the start of another comment."""

    def capture(self, lines: List[str], comment_index: int, markers: CommentMarkers) -> List[int]:
        captured: List[int] = []
        for j in range(comment_index + 1, len(lines)):
            stripped = lines[j].strip()
            if not stripped or _starts_comment(stripped, markers):
                break
            captured.append(j)
        return captured


CAPTURE_STRATEGIES: Dict[CaptureStrategyKind, CaptureStrategy] = {
    CaptureStrategyKind.INDENTATION: IndentationCapture(),
    CaptureStrategyKind.BRACE: BraceCapture(),
    CaptureStrategyKind.GENERIC: GenericCapture(),
}


# ===================================================================
# Scanner
# ===================================================================

class CommentScanner:
    """Finds ``@group`` annotations in documents of any configured language."""

    def __init__(self, registry: Optional[LanguageRegistry] = None) -> None:
        self.registry = registry or get_language_registry()

    # ------------------------------------------------------------------
    # Document-level scanning
    # ------------------------------------------------------------------

    def scan_text(
        self,
        text: str,
        file_path: str,
        language_id: Optional[str] = None,
    ) -> List[CodeGroup]:
        return self.scan_lines(text.split("\n"), file_path, language_id)

    def scan_lines(
        self,
        lines: List[str],
        file_path: str,
        language_id: Optional[str] = None,
    ) -> List[CodeGroup]:
        descriptor = self.registry.resolve(language_id=language_id, file_path=file_path)
        if descriptor is None:
            logger.warning("No language configuration found for %s", file_path)
            return []
        return self.scan_with_descriptor(lines, file_path, descriptor)

    def scan_with_descriptor(
        self,
        lines: List[str],
        file_path: str,
        descriptor: LanguageDescriptor,
    ) -> List[CodeGroup]:
        markers = descriptor.comment_markers
        strategy = CAPTURE_STRATEGIES[descriptor.capture]
        groups: List[CodeGroup] = []

        i = 0
        while i < len(lines):
            comment = classify_comment(lines[i], markers)
            if comment is None:
                i += 1
                continue

            parsed = self._match_annotation(comment.text, descriptor)
            if parsed is None:
                i += 1
                continue

            functionality, description = parsed
            line_numbers = [i + 1]
            next_index = i + 1
            if comment.whole_line:
                captured = strategy.capture(lines, i, markers)
                line_numbers.extend(j + 1 for j in captured)
                if captured:
                    next_index = captured[-1] + 1

            logger.debug(
                "Found code group '%s' in %s at line %d (%d lines)",
                functionality, file_path, i + 1, len(line_numbers),
            )
            groups.append(enrich_with_hierarchy(CodeGroup(
                functionality=functionality,
                description=description,
                file_path=file_path,
                line_numbers=line_numbers,
            )))
            i = next_index

        return groups

    def _match_annotation(
        self,
        comment_text: str,
        descriptor: LanguageDescriptor,
    ) -> Optional[Tuple[str, str]]:
        match = self.registry.pattern.search(comment_text)
        if match is None:
            for extra in self.registry.extra_patterns(descriptor):
                match = extra.search(comment_text)
                if match is not None:
                    break
        if match is None:
            return None

        name = (match.group(1) or "").strip().lower()
        if not name:
            return None
        description = ""
        if match.re.groups >= 2:
            description = (match.group(2) or "").strip()
        return name, description

    # ------------------------------------------------------------------
    # File / workspace scanning
    # ------------------------------------------------------------------

    def scan_file(self, file_path: Path, language_id: Optional[str] = None) -> List[CodeGroup]:
        try:
            source = file_path.read_text(encoding="utf-8", errors="ignore")
        except OSError as exc:
            logger.warning("Failed to read %s: %s", file_path, exc)
            return []
        return self.scan_text(source, str(file_path), language_id)

    def scan_workspace(
        self,
        root: Path,
        respect_gitignore: bool = True,
        extra_skip_dirs: Iterable[str] = (),
    ) -> Dict[str, List[CodeGroup]]:
        """Scan every supported file under *root*, keyed by file type."""
        root = root.resolve()
        skip_dirs = set(config.SKIP_DIRS) | set(extra_skip_dirs)
        ignore_spec = _load_ignore_spec(root, respect_gitignore)

        corpus: Dict[str, List[CodeGroup]] = {}
        seen: Set[Tuple[str, str, Tuple[int, ...]]] = set()
        scanned = 0

        for file_path in _walk_files(root, root, skip_dirs, ignore_spec):
            file_type = get_file_type(str(file_path))
            if not is_supported_file_type(file_type):
                continue
            scanned += 1
            for group in self.scan_file(file_path):
                key = (group.functionality, group.file_path, tuple(group.line_numbers))
                if key in seen:
                    continue
                seen.add(key)
                corpus.setdefault(file_type, []).append(group)

        total = sum(len(groups) for groups in corpus.values())
        logger.info("Workspace scan complete. Processed %d files, found %d groups", scanned, total)
        return corpus


# ===================================================================
# Helpers
# ===================================================================

def _load_ignore_spec(root: Path, respect_gitignore: bool) -> pathspec.PathSpec:
    """Default skip patterns plus ``.gitignore`` entries when requested."""
    patterns: List[str] = list(config.SKIP_FILE_PATTERNS)
    gitignore = root / ".gitignore"
    if respect_gitignore and gitignore.exists():
        try:
            with open(gitignore, encoding="utf-8") as f:
                patterns.extend(f.read().splitlines())
        except OSError as exc:
            logger.warning("Could not read %s: %s", gitignore, exc)
    return pathspec.GitIgnoreSpec.from_lines(patterns)


def _walk_files(
    current: Path,
    root: Path,
    skip_dirs: Set[str],
    ignore_spec: pathspec.PathSpec,
) -> List[Path]:
    """Regular files under *current*, skipping excluded and ignored paths.

    Symlinks resolving outside *root* are skipped.
    """
    files: List[Path] = []
    try:
        entries = sorted(current.iterdir())
    except OSError as exc:
        logger.warning("Cannot list %s: %s", current, exc)
        return files

    for item in entries:
        if item.is_symlink() and not item.resolve().is_relative_to(root):
            continue
        rel = item.relative_to(root).as_posix()
        if item.is_dir():
            if item.name in skip_dirs or item.name.startswith("."):
                continue
            if ignore_spec.match_file(rel + "/"):
                continue
            files.extend(_walk_files(item, root, skip_dirs, ignore_spec))
        elif item.is_file():
            if not ignore_spec.match_file(rel):
                files.append(item)
    return files
