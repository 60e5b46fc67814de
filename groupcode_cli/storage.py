"""Persistence layer for workspace code groups.

Two JSON files live in ``<workspace>/.groupcode/``:

- ``codegroups.json``: file type -> list of
  ``{functionality, description, filePath, lineNumbers}`` records, with
  workspace-relative paths and compact ``"8-11,15-18"`` line ranges.
- ``functionalities.json``: the hierarchy index derived from those records
  on every save (level, parent, children, group count, file types per path).

Hierarchy fields of a :class:`CodeGroup` are never written; they are
recomputed after every load.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from . import config
from .hierarchy import (
    HIERARCHY_DELIMITER,
    enrich_with_hierarchy,
    get_ancestor_paths,
    normalize_path,
    parse_hierarchy,
)
from .line_ranges import encode_line_ranges, normalize_line_numbers
from .models import CodeGroup, HierarchyIndex, HierarchyIndexEntry

logger = logging.getLogger(__name__)

Corpus = Dict[str, List[CodeGroup]]


class InvalidWorkspaceError(ValueError):
    """Raised when a store is opened without a usable workspace path."""


class AnnotationStore:
    """Reads and writes the code group corpus of one workspace."""

    def __init__(self, workspace_path: Any) -> None:
        if not workspace_path or not isinstance(workspace_path, (str, Path)):
            raise InvalidWorkspaceError("Invalid workspace path")
        if isinstance(workspace_path, str) and not workspace_path.strip():
            raise InvalidWorkspaceError("Invalid workspace path")
        self.workspace_path = Path(workspace_path).expanduser()
        self.store_dir = self.workspace_path / config.STORE_DIR_NAME
        self.groups_path = self.store_dir / config.GROUPS_FILE_NAME
        self.index_path = self.store_dir / config.INDEX_FILE_NAME

    def exists(self) -> bool:
        return self.groups_path.exists()

    def ensure_store_dir(self) -> Path:
        self.store_dir.mkdir(parents=True, exist_ok=True)
        return self.store_dir

    # ------------------------------------------------------------------
    # Path conversion
    # ------------------------------------------------------------------

    def to_relative(self, file_path: str) -> str:
        path = Path(file_path)
        if path.is_absolute():
            try:
                path = Path(os.path.relpath(path, self.workspace_path))
            except ValueError:
                # different drive on Windows
                pass
        return path.as_posix()

    def to_absolute(self, file_path: str) -> str:
        path = Path(file_path)
        if not path.is_absolute():
            path = self.workspace_path / path
        return str(os.path.normpath(path))

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def serialize(self, corpus: Corpus) -> Dict[str, List[Dict[str, str]]]:
        """Build the on-disk records, dropping groups without name or path."""
        payload: Dict[str, List[Dict[str, str]]] = {}
        for file_type, groups in corpus.items():
            if not file_type:
                continue
            records = []
            for group in groups:
                if not group.functionality or not group.file_path:
                    continue
                records.append({
                    "functionality": group.functionality,
                    "description": group.description or "",
                    "filePath": self.to_relative(group.file_path),
                    "lineNumbers": encode_line_ranges(group.line_numbers),
                })
            payload[file_type] = records
        return payload

    def save(self, corpus: Corpus) -> HierarchyIndex:
        """Write the corpus and its freshly derived hierarchy index."""
        self.ensure_store_dir()
        payload = self.serialize(corpus)
        self.groups_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

        index = build_hierarchy_index(corpus)
        self.index_path.write_text(json.dumps(index.to_dict(), indent=2), encoding="utf-8")

        logger.info(
            "Saved %d groups across %d file types to %s",
            sum(len(v) for v in payload.values()), len(payload), self.groups_path,
        )
        return index

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self) -> Optional[Corpus]:
        """Load the corpus, or None when nothing has been saved yet.

        Records missing ``functionality`` or ``filePath`` are dropped, as are
        unparseable line-range tokens.
        """
        if not self.groups_path.exists():
            return None
        try:
            payload = json.loads(self.groups_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Error loading code groups from %s: %s", self.groups_path, exc)
            return None
        if not isinstance(payload, dict):
            logger.error("Unexpected code group payload in %s", self.groups_path)
            return None

        corpus: Corpus = {}
        for file_type, records in payload.items():
            if not isinstance(records, list):
                continue
            groups = [g for g in (self.deserialize_record(r) for r in records) if g is not None]
            if groups:
                corpus[file_type] = groups
        return corpus

    def deserialize_record(self, record: Any) -> Optional[CodeGroup]:
        if not isinstance(record, dict):
            return None
        functionality = record.get("functionality")
        file_path = record.get("filePath")
        if not functionality or not file_path:
            logger.debug("Dropping incomplete code group record: %r", record)
            return None
        line_numbers = normalize_line_numbers(record.get("lineNumbers"))
        if not line_numbers:
            logger.debug("Dropping code group record without lines: %r", record)
            return None

        group = CodeGroup(
            functionality=str(functionality),
            description=str(record.get("description") or ""),
            file_path=self.to_absolute(str(file_path)),
            line_numbers=line_numbers,
        )
        if HIERARCHY_DELIMITER in group.functionality:
            group = enrich_with_hierarchy(group)
        return group

    def load_hierarchy_index(self) -> Optional[HierarchyIndex]:
        if not self.index_path.exists():
            return None
        try:
            payload = json.loads(self.index_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Error loading hierarchy index from %s: %s", self.index_path, exc)
            return None
        if not isinstance(payload, dict):
            logger.error("Unexpected hierarchy index payload in %s", self.index_path)
            return None

        index = HierarchyIndex(version=str(payload.get("version", config.INDEX_VERSION)))
        entries = payload.get("functionalities")
        if not isinstance(entries, dict):
            return index
        for path, entry in entries.items():
            if not isinstance(entry, dict):
                continue
            try:
                level = int(entry.get("level", 0))
                group_count = int(entry.get("groupCount", 0))
            except (TypeError, ValueError):
                logger.debug("Dropping malformed index entry %r: %r", path, entry)
                continue
            index.functionalities[path] = HierarchyIndexEntry(
                level=level,
                parent=entry.get("parent"),
                children=list(entry.get("children") or []),
                group_count=group_count,
                file_types=list(entry.get("fileTypes") or []),
            )
        return index

    def clear(self) -> bool:
        removed = False
        for path in (self.groups_path, self.index_path):
            if path.exists():
                path.unlink()
                removed = True
        return removed


# ===================================================================
# Hierarchy index
# ===================================================================

def build_hierarchy_index(corpus: Corpus) -> HierarchyIndex:
    """Derive the per-path metadata index from a flat corpus.

    Every path and each of its ancestors gets an entry even when no group
    sits directly on it.  Parent/child links are filled in a second pass.
    """
    entries: Dict[str, HierarchyIndexEntry] = {}
    file_types: Dict[str, Set[str]] = {}

    for file_type, groups in corpus.items():
        for group in groups:
            parsed = parse_hierarchy(group.functionality)
            if not parsed.hierarchy_path:
                continue
            full_path = normalize_path(group.functionality)
            for ancestor in get_ancestor_paths(group.functionality):
                if ancestor not in entries:
                    ancestor_parsed = parse_hierarchy(ancestor)
                    entries[ancestor] = HierarchyIndexEntry(
                        level=ancestor_parsed.level,
                        parent=ancestor_parsed.parent or None,
                    )
                    file_types[ancestor] = set()
                file_types[ancestor].add(file_type)
            entries[full_path].group_count += 1

    children: Dict[str, Set[str]] = {path: set() for path in entries}
    for path, entry in entries.items():
        if entry.parent is not None and entry.parent in children:
            children[entry.parent].add(path)

    for path, entry in entries.items():
        entry.children = sorted(children[path])
        entry.file_types = sorted(file_types[path])

    return HierarchyIndex(version=config.INDEX_VERSION, functionalities=entries)


# ===================================================================
# Corpus helpers
# ===================================================================

def group_by_functionality(corpus: Corpus) -> Dict[str, List[CodeGroup]]:
    """Re-key a file-type corpus by exact functionality name."""
    by_name: Dict[str, List[CodeGroup]] = {}
    for groups in corpus.values():
        for group in groups:
            if group.functionality:
                by_name.setdefault(group.functionality, []).append(group)
    return by_name


def get_functionality_groups(corpus: Corpus, functionality: str) -> Corpus:
    """Groups matching *functionality* case-insensitively, by file type."""
    wanted = functionality.lower()
    matches: Corpus = {}
    for file_type, groups in corpus.items():
        found = [g for g in groups if g.functionality.lower() == wanted]
        if found:
            matches[file_type] = found
    return matches


def replace_file_groups(corpus: Corpus, file_path: str, file_type: str, groups: List[CodeGroup]) -> Corpus:
    """Drop every group previously found in *file_path* and add *groups*.

    Re-scanning a document replaces its annotations wholesale.
    """
    updated: Corpus = {}
    for key, existing in corpus.items():
        kept = [g for g in existing if g.file_path != file_path]
        if kept:
            updated[key] = kept
    if groups:
        updated.setdefault(file_type, []).extend(groups)
    return updated
