"""Core data models shared by scanning, storage, and refactoring analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


@dataclass
class CodeGroup:
    """One ``@group`` annotation found in a source file.

    The hierarchy fields are derived from ``functionality`` and are always
    recomputed; they are never read back from persisted data.
    """

    functionality: str
    file_path: str
    line_numbers: List[int]
    description: str = ""
    hierarchy_path: List[str] = field(default_factory=list)
    level: int = 0
    parent: str = ""
    leaf: str = ""

    @property
    def first_line(self) -> int:
        return self.line_numbers[0] if self.line_numbers else 0


@dataclass(frozen=True)
class HierarchyPath:
    hierarchy_path: List[str]
    level: int
    parent: str
    leaf: str


@dataclass
class HierarchyNode:
    name: str
    full_path: str
    level: int
    children: Dict[str, "HierarchyNode"] = field(default_factory=dict)
    groups: List[CodeGroup] = field(default_factory=list)


@dataclass
class HierarchyIndexEntry:
    level: int
    parent: Optional[str]
    children: List[str] = field(default_factory=list)
    group_count: int = 0
    file_types: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "level": self.level,
            "parent": self.parent,
            "children": list(self.children),
            "groupCount": self.group_count,
            "fileTypes": list(self.file_types),
        }


@dataclass
class HierarchyIndex:
    version: str
    functionalities: Dict[str, HierarchyIndexEntry] = field(default_factory=dict)

    @property
    def total_functionalities(self) -> int:
        return len(self.functionalities)

    def to_dict(self) -> Dict[str, object]:
        return {
            "version": self.version,
            "totalFunctionalities": self.total_functionalities,
            "functionalities": {
                path: entry.to_dict() for path, entry in self.functionalities.items()
            },
        }


class CaptureStrategyKind(str, Enum):
    """How the scanner decides where an annotated code block ends."""

    INDENTATION = "indentation"
    BRACE = "brace"
    GENERIC = "generic"


@dataclass(frozen=True)
class CommentMarkers:
    line: Optional[str] = None
    block_start: Optional[str] = None
    block_end: Optional[str] = None

    @property
    def has_block(self) -> bool:
        return bool(self.block_start and self.block_end)


@dataclass(frozen=True)
class LanguageDescriptor:
    name: str
    file_types: tuple
    comment_markers: CommentMarkers
    capture: CaptureStrategyKind = CaptureStrategyKind.GENERIC
    extra_patterns: tuple = ()

    def matches(self, file_type: str) -> bool:
        wanted = file_type.lower()
        return any(t.lower() == wanted for t in self.file_types)


class RefactoringIssueType(str, Enum):
    DUPLICATE = "duplicate"
    SIMILAR = "similar"
    ORPHANED = "orphaned"
    INCONSISTENT_NAMING = "inconsistent_naming"
    SINGLE_USE = "single_use"
    TOO_LARGE = "too_large"
    TOO_SMALL = "too_small"


class RefactoringSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class IssueLocation:
    file: str
    line: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


@dataclass
class IssueMetrics:
    similarity: Optional[float] = None
    usage_count: Optional[int] = None
    file_count: Optional[int] = None
    line_count: Optional[int] = None


@dataclass
class RefactoringIssue:
    type: RefactoringIssueType
    severity: RefactoringSeverity
    group_name: str
    message: str
    suggestion: str
    affected_groups: List[str] = field(default_factory=list)
    locations: List[IssueLocation] = field(default_factory=list)
    metrics: IssueMetrics = field(default_factory=IssueMetrics)


class PatternSuggestionType(str, Enum):
    CONSOLIDATION = "consolidation"
    HIERARCHY = "hierarchy"
    SIMILAR = "similar"


@dataclass
class PatternSuggestion:
    """A proposed rename for an existing group name."""

    original_name: str
    suggested_name: str
    reason: str
    confidence: float
    type: PatternSuggestionType


@dataclass
class SemanticMatch:
    is_similar: bool
    normalized_name: str
    matched_existing: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class PatternAnalysis:
    similar: List[PatternSuggestion] = field(default_factory=list)
    hierarchies: List[PatternSuggestion] = field(default_factory=list)
    all: List[PatternSuggestion] = field(default_factory=list)
