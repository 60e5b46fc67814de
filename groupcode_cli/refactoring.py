"""Detect naming and structural problems across all code groups."""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .models import (
    CodeGroup,
    IssueLocation,
    IssueMetrics,
    RefactoringIssue,
    RefactoringIssueType,
    RefactoringSeverity,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

GroupsByName = Mapping[str, Sequence[CodeGroup]]

# Order in which checks run and in which their issues are reported.
CHECK_ORDER: List[RefactoringIssueType] = [
    RefactoringIssueType.DUPLICATE,
    RefactoringIssueType.SIMILAR,
    RefactoringIssueType.ORPHANED,
    RefactoringIssueType.INCONSISTENT_NAMING,
    RefactoringIssueType.SINGLE_USE,
    RefactoringIssueType.TOO_LARGE,
    RefactoringIssueType.TOO_SMALL,
]

NAMING_PATTERNS: Dict[str, "re.Pattern[str]"] = {
    "camelCase": re.compile(r"^[a-z][a-zA-Z0-9]*$"),
    "PascalCase": re.compile(r"^[A-Z][a-zA-Z0-9]*$"),
    "snake_case": re.compile(r"^[a-z][a-z0-9_]*$"),
    "kebab-case": re.compile(r"^[a-z][a-z0-9-]*$"),
    "withSpaces": re.compile(r"\s"),
    "withSpecialChars": re.compile(r"[^a-zA-Z0-9\s\-_]"),
}

ISSUE_LABELS: Dict[RefactoringIssueType, str] = {
    RefactoringIssueType.DUPLICATE: "Duplicate Groups",
    RefactoringIssueType.SIMILAR: "Similar Groups",
    RefactoringIssueType.ORPHANED: "Orphaned Groups",
    RefactoringIssueType.INCONSISTENT_NAMING: "Inconsistent Naming",
    RefactoringIssueType.SINGLE_USE: "Single-Use Groups",
    RefactoringIssueType.TOO_LARGE: "Too Large Groups",
    RefactoringIssueType.TOO_SMALL: "Too Small Groups",
}


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance using the full ``(len+1) x (len+1)`` matrix."""
    matrix = [[0] * (len(b) + 1) for _ in range(len(a) + 1)]
    for i in range(len(a) + 1):
        matrix[i][0] = i
    for j in range(len(b) + 1):
        matrix[0][j] = j

    for i in range(1, len(a) + 1):
        for j in range(1, len(b) + 1):
            if a[i - 1] == b[j - 1]:
                matrix[i][j] = matrix[i - 1][j - 1]
            else:
                matrix[i][j] = min(
                    matrix[i - 1][j - 1] + 1,
                    matrix[i][j - 1] + 1,
                    matrix[i - 1][j] + 1,
                )
    return matrix[len(a)][len(b)]


def string_similarity(a: str, b: str) -> float:
    """Case-insensitive similarity in ``[0, 1]`` (1 - normalised distance)."""
    s1, s2 = a.lower(), b.lower()
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    return 1 - levenshtein_distance(s1, s2) / max(len(s1), len(s2))


@dataclass
class RefactoringConfig:
    """Thresholds and enabled checks for :class:`GroupRefactoringAnalyzer`."""

    similarity_threshold: float = 0.8
    orphaned_threshold: int = 90
    single_use_threshold: int = 2
    too_large_threshold: int = 50
    too_small_threshold: int = 2
    enabled_checks: List[RefactoringIssueType] = field(default_factory=lambda: [
        RefactoringIssueType.DUPLICATE,
        RefactoringIssueType.SIMILAR,
        RefactoringIssueType.ORPHANED,
        RefactoringIssueType.INCONSISTENT_NAMING,
        RefactoringIssueType.SINGLE_USE,
    ])

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "RefactoringConfig":
        """Build a config from a ``[refactoring]`` TOML section.

        Unknown check names are logged and skipped.
        """
        defaults = cls()
        checks = []
        for name in payload.get("enabled_checks", [c.value for c in defaults.enabled_checks]):
            try:
                checks.append(RefactoringIssueType(name))
            except ValueError:
                logger.warning("Unknown refactoring check '%s' ignored", name)
        return cls(
            similarity_threshold=float(payload.get("similarity_threshold", defaults.similarity_threshold)),
            orphaned_threshold=int(payload.get("orphaned_threshold", defaults.orphaned_threshold)),
            single_use_threshold=int(payload.get("single_use_threshold", defaults.single_use_threshold)),
            too_large_threshold=int(payload.get("too_large_threshold", defaults.too_large_threshold)),
            too_small_threshold=int(payload.get("too_small_threshold", defaults.too_small_threshold)),
            enabled_checks=checks,
        )


def _default_stat(path: str) -> float:
    return os.stat(path).st_mtime


def _locations(definitions: Sequence[CodeGroup]) -> List[IssueLocation]:
    return [IssueLocation(file=d.file_path, line=d.first_line) for d in definitions]


def _unique_files(definitions: Sequence[CodeGroup]) -> List[str]:
    return list(dict.fromkeys(d.file_path for d in definitions))


class GroupRefactoringAnalyzer:
    """Find duplicate, similar, stale, and badly sized code groups.

    Args:
        config: Thresholds and enabled checks (defaults when omitted).
        stat: Returns a file's modification time in epoch seconds; may raise
            ``OSError`` for files that cannot be inspected.
        clock: Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        config: Optional[RefactoringConfig] = None,
        stat: Optional[Callable[[str], float]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.config = config or RefactoringConfig()
        self.stat = stat or _default_stat
        self.clock = clock or time.time

    def analyze_groups(self, groups: GroupsByName) -> List[RefactoringIssue]:
        """Run every enabled check over *groups* (name -> occurrences)."""
        detectors = {
            RefactoringIssueType.DUPLICATE: self._detect_duplicates,
            RefactoringIssueType.SIMILAR: self._detect_similar_groups,
            RefactoringIssueType.ORPHANED: self._detect_orphaned_groups,
            RefactoringIssueType.INCONSISTENT_NAMING: self._detect_inconsistent_naming,
            RefactoringIssueType.SINGLE_USE: self._detect_single_use_groups,
            RefactoringIssueType.TOO_LARGE: self._detect_too_large_groups,
            RefactoringIssueType.TOO_SMALL: self._detect_too_small_groups,
        }

        issues: List[RefactoringIssue] = []
        for check in CHECK_ORDER:
            if check in self.config.enabled_checks:
                found = detectors[check](groups)
                logger.debug("%s check found %d issue(s)", check.value, len(found))
                issues.extend(found)
        return issues

    def _detect_duplicates(self, groups: GroupsByName) -> List[RefactoringIssue]:
        """Names that differ only in case or surrounding whitespace."""
        normalized: Dict[str, List[str]] = {}
        for name in groups:
            normalized.setdefault(name.lower().strip(), []).append(name)

        issues = []
        for names in normalized.values():
            if len(names) < 2:
                continue
            locations: List[IssueLocation] = []
            for name in names:
                locations.extend(_locations(groups[name]))

            issues.append(RefactoringIssue(
                type=RefactoringIssueType.DUPLICATE,
                severity=RefactoringSeverity.WARNING,
                group_name=names[0],
                message=f"Found {len(names)} variations of the same group name",
                suggestion=f'Standardize to one name: "{names[0]}" (found: {", ".join(names)})',
                affected_groups=list(names),
                locations=locations,
                metrics=IssueMetrics(usage_count=len(locations)),
            ))
        return issues

    def _detect_similar_groups(self, groups: GroupsByName) -> List[RefactoringIssue]:
        """Pairs of distinct names within the similarity threshold."""
        names = list(groups)
        issues = []
        for i, name1 in enumerate(names):
            for name2 in names[i + 1:]:
                if name1.lower().strip() == name2.lower().strip():
                    continue
                similarity = string_similarity(name1, name2)
                if similarity < self.config.similarity_threshold:
                    continue

                locations = _locations(groups[name1]) + _locations(groups[name2])
                issues.append(RefactoringIssue(
                    type=RefactoringIssueType.SIMILAR,
                    severity=RefactoringSeverity.INFO,
                    group_name=name1,
                    message=f'"{name1}" and "{name2}" are {round(similarity * 100)}% similar',
                    suggestion="Consider merging these groups or renaming for clarity",
                    affected_groups=[name1, name2],
                    locations=locations,
                    metrics=IssueMetrics(similarity=similarity, usage_count=len(locations)),
                ))
        return issues

    def _detect_orphaned_groups(self, groups: GroupsByName) -> List[RefactoringIssue]:
        """Groups whose files have all gone untouched for the threshold window.

        Files that cannot be stat'ed are ignored; a group none of whose files
        could be inspected is not reported.
        """
        now = self.clock()
        threshold = self.config.orphaned_threshold * SECONDS_PER_DAY
        issues = []

        for group_name, definitions in groups.items():
            files = _unique_files(definitions)
            latest: Optional[float] = None
            for file_path in files:
                try:
                    mtime = self.stat(file_path)
                except OSError as exc:
                    logger.debug("Cannot stat %s: %s", file_path, exc)
                    continue
                if latest is None or mtime > latest:
                    latest = mtime
                if mtime > now - threshold:
                    break

            if latest is None or latest > now - threshold:
                continue

            days = int((now - latest) // SECONDS_PER_DAY)
            issues.append(RefactoringIssue(
                type=RefactoringIssueType.ORPHANED,
                severity=RefactoringSeverity.INFO,
                group_name=group_name,
                message=f"Group hasn't been modified in {days} days",
                suggestion="Review if this group is still relevant or needs updating",
                locations=_locations(definitions),
                metrics=IssueMetrics(usage_count=len(definitions), file_count=len(files)),
            ))
        return issues

    def _detect_inconsistent_naming(self, groups: GroupsByName) -> List[RefactoringIssue]:
        """One aggregate issue when two or more conventions each cover 3+ names."""
        by_pattern: Dict[str, List[str]] = {}
        for name in groups:
            for pattern_name, regex in NAMING_PATTERNS.items():
                if regex.search(name):
                    by_pattern.setdefault(pattern_name, []).append(name)

        significant = [(p, names) for p, names in by_pattern.items() if len(names) >= 3]
        if len(significant) < 2:
            return []

        affected = [name for _, names in significant for name in names]
        breakdown = ", ".join(f"{p}: {len(names)} groups" for p, names in significant)
        return [RefactoringIssue(
            type=RefactoringIssueType.INCONSISTENT_NAMING,
            severity=RefactoringSeverity.INFO,
            group_name="Multiple Groups",
            message=f"Found {len(significant)} different naming conventions",
            suggestion=f"Consider standardizing to one naming convention ({breakdown})",
            affected_groups=affected,
            metrics=IssueMetrics(usage_count=len(affected)),
        )]

    def _detect_single_use_groups(self, groups: GroupsByName) -> List[RefactoringIssue]:
        issues = []
        for group_name, definitions in groups.items():
            if len(definitions) >= self.config.single_use_threshold:
                continue
            issues.append(RefactoringIssue(
                type=RefactoringIssueType.SINGLE_USE,
                severity=RefactoringSeverity.INFO,
                group_name=group_name,
                message=f"Group is only used {len(definitions)} time(s)",
                suggestion="Consider if this group adds value or could be merged with related groups",
                locations=_locations(definitions),
                metrics=IssueMetrics(
                    usage_count=len(definitions),
                    file_count=len(_unique_files(definitions)),
                ),
            ))
        return issues

    def _detect_too_large_groups(self, groups: GroupsByName) -> List[RefactoringIssue]:
        issues = []
        for group_name, definitions in groups.items():
            files = _unique_files(definitions)
            if len(files) <= self.config.too_large_threshold:
                continue
            issues.append(RefactoringIssue(
                type=RefactoringIssueType.TOO_LARGE,
                severity=RefactoringSeverity.WARNING,
                group_name=group_name,
                message=f"Group spans {len(files)} files",
                suggestion="Consider splitting this large group into more specific sub-groups",
                locations=_locations(definitions),
                metrics=IssueMetrics(
                    usage_count=len(definitions),
                    file_count=len(files),
                    line_count=sum(len(d.line_numbers) for d in definitions),
                ),
            ))
        return issues

    def _detect_too_small_groups(self, groups: GroupsByName) -> List[RefactoringIssue]:
        """Rare groups confined to one file; rare cross-file groups are fine."""
        issues = []
        for group_name, definitions in groups.items():
            if len(definitions) >= self.config.too_small_threshold:
                continue
            if len(_unique_files(definitions)) != 1:
                continue
            issues.append(RefactoringIssue(
                type=RefactoringIssueType.TOO_SMALL,
                severity=RefactoringSeverity.INFO,
                group_name=group_name,
                message=f"Group has only {len(definitions)} occurrence(s) in a single file",
                suggestion=(
                    "Groups are most valuable when they connect code across files. "
                    "Consider removing or expanding this group."
                ),
                locations=_locations(definitions),
                metrics=IssueMetrics(
                    usage_count=len(definitions),
                    file_count=1,
                    line_count=sum(len(d.line_numbers) for d in definitions),
                ),
            ))
        return issues


def generate_report(issues: Sequence[RefactoringIssue]) -> str:
    """Render a Markdown summary grouped by issue type.

    Types appear in the order they were first seen, issues within a type in
    discovery order.
    """
    grouped: Dict[RefactoringIssueType, List[RefactoringIssue]] = {}
    for issue in issues:
        grouped.setdefault(issue.type, []).append(issue)

    lines = [
        "# Group Refactoring Analysis Report",
        "",
        f"Total Issues Found: {len(issues)}",
        "",
    ]
    for issue_type, type_issues in grouped.items():
        lines.append(f"## {ISSUE_LABELS.get(issue_type, issue_type.value)} ({len(type_issues)})")
        lines.append("")
        for issue in type_issues:
            lines.append(f"### {issue.group_name}")
            lines.append(f"- **Message**: {issue.message}")
            lines.append(f"- **Suggestion**: {issue.suggestion}")
            if len(issue.affected_groups) > 1:
                lines.append(f"- **Affected Groups**: {', '.join(issue.affected_groups)}")
            metrics = _format_metrics(issue.metrics)
            if metrics:
                lines.append(f"- **Metrics**: {metrics}")
            lines.append("")

    return "\n".join(lines)


def _format_metrics(metrics: IssueMetrics) -> str:
    parts = []
    if metrics.similarity:
        parts.append(f"Similarity: {round(metrics.similarity * 100)}%")
    if metrics.usage_count:
        parts.append(f"Usage: {metrics.usage_count}")
    if metrics.file_count:
        parts.append(f"Files: {metrics.file_count}")
    if metrics.line_count:
        parts.append(f"Lines: {metrics.line_count}")
    return ", ".join(parts)
