"""Hierarchical group paths such as ``"Auth > Login > Validation"``.

Segment matching here is case-sensitive, while group identity elsewhere
(``storage.get_functionality_groups``) is case-insensitive.  Both behaviours
are relied upon by callers.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Set

from .models import CodeGroup, HierarchyNode, HierarchyPath

HIERARCHY_DELIMITER = ">"
HIERARCHY_JOIN = " > "

_VALID_SEGMENT_RE = re.compile(r"^[a-zA-Z0-9\s\-_]+$")


def _empty_path() -> HierarchyPath:
    return HierarchyPath(hierarchy_path=[], level=0, parent="", leaf="")


def parse_hierarchy(functionality: object) -> HierarchyPath:
    """Split *functionality* into its path segments.

    Empty, delimiter-only, or non-string input yields a level 0 path.
    """
    if not functionality or not isinstance(functionality, str):
        return _empty_path()

    parts = [p.strip() for p in functionality.split(HIERARCHY_DELIMITER)]
    parts = [p for p in parts if p]
    if not parts:
        return _empty_path()

    return HierarchyPath(
        hierarchy_path=parts,
        level=len(parts),
        parent=HIERARCHY_JOIN.join(parts[:-1]) if len(parts) > 1 else "",
        leaf=parts[-1],
    )


def format_hierarchy_path(parts: Iterable[str]) -> str:
    return HIERARCHY_JOIN.join(parts)


def normalize_path(functionality: str) -> str:
    """Return the canonical ``A > B`` spelling of *functionality*."""
    return format_hierarchy_path(parse_hierarchy(functionality).hierarchy_path)


def enrich_with_hierarchy(group: CodeGroup) -> CodeGroup:
    """Return a copy of *group* with freshly computed hierarchy fields."""
    parsed = parse_hierarchy(group.functionality)
    return replace(
        group,
        hierarchy_path=list(parsed.hierarchy_path),
        level=parsed.level,
        parent=parsed.parent,
        leaf=parsed.leaf,
    )


def get_ancestor_paths(functionality: str) -> List[str]:
    """``"A > B > C"`` -> ``["A", "A > B", "A > B > C"]``."""
    parts = parse_hierarchy(functionality).hierarchy_path
    return [format_hierarchy_path(parts[:i]) for i in range(1, len(parts) + 1)]


def is_descendant_of(functionality: str, ancestor: str) -> bool:
    if not functionality or not ancestor:
        return False

    func_parts = parse_hierarchy(functionality).hierarchy_path
    ancestor_parts = parse_hierarchy(ancestor).hierarchy_path

    if len(func_parts) <= len(ancestor_parts):
        return False
    return func_parts[: len(ancestor_parts)] == ancestor_parts


def get_parent(functionality: str) -> Optional[str]:
    return parse_hierarchy(functionality).parent or None


def build_hierarchy_tree(groups: Iterable[CodeGroup]) -> Dict[str, HierarchyNode]:
    """Build a nested tree of :class:`HierarchyNode` keyed by root segment.

    Intermediate nodes are created on demand; each group is attached only to
    the node of its own leaf segment.
    """
    roots: Dict[str, HierarchyNode] = {}

    for group in groups:
        enriched = enrich_with_hierarchy(group)
        if not enriched.hierarchy_path:
            continue

        current_level = roots
        full_path = ""
        last = len(enriched.hierarchy_path) - 1
        for index, part in enumerate(enriched.hierarchy_path):
            full_path = f"{full_path}{HIERARCHY_JOIN}{part}" if full_path else part
            node = current_level.get(part)
            if node is None:
                node = HierarchyNode(name=part, full_path=full_path, level=index + 1)
                current_level[part] = node
            if index == last:
                node.groups.append(enriched)
            current_level = node.children

    return roots


def iter_tree(roots: Dict[str, HierarchyNode]) -> Iterable[HierarchyNode]:
    """Depth-first walk over every node in insertion order."""
    stack = list(reversed(list(roots.values())))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(list(node.children.values())))


def count_groups_in_node(node: HierarchyNode) -> int:
    return len(node.groups) + sum(count_groups_in_node(c) for c in node.children.values())


def get_functionalities_at_level(groups: Iterable[CodeGroup], level: int) -> Set[str]:
    return {
        g.functionality
        for g in groups
        if parse_hierarchy(g.functionality).level == level
    }


def is_valid_hierarchy(functionality: object) -> bool:
    """True when every segment is non-empty and uses only safe characters."""
    if not functionality or not isinstance(functionality, str):
        return False

    parts = [p.strip() for p in functionality.split(HIERARCHY_DELIMITER)]
    if any(not p for p in parts):
        return False
    return all(_VALID_SEGMENT_RE.match(p) for p in parts)


def get_hierarchy_depth(groups: Iterable[CodeGroup]) -> int:
    return max((parse_hierarchy(g.functionality).level for g in groups), default=0)
