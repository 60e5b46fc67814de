"""Naming pattern analysis: consolidation and hierarchy suggestions.

Names are compared after normalization, which expands common abbreviations
(``config`` -> ``configuration``), folds word forms (``validate`` ->
``validation``) and sorts the words, so ``"API Config"`` and
``"configuration api"`` normalize to the same string.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .hierarchy import HIERARCHY_DELIMITER, format_hierarchy_path
from .models import (
    CodeGroup,
    PatternAnalysis,
    PatternSuggestion,
    PatternSuggestionType,
    SemanticMatch,
)
from .refactoring import string_similarity

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.8
ANALYSIS_SIMILARITY_THRESHOLD = 0.75
SEMANTIC_MATCH_THRESHOLD = 0.85
MAX_PREFIX_WORDS = 3

ABBREVIATIONS: Dict[str, str] = {
    "config": "configuration",
    "configs": "configuration",
    "conf": "configuration",
    "mgmt": "management",
    "mgr": "manager",
    "util": "utility",
    "utils": "utilities",
    "func": "function",
    "funcs": "functions",
    "val": "validation",
    "vals": "validation",
    "auth": "authentication",
    "proc": "processing",
    "init": "initialization",
    "comp": "component",
    "comps": "components",
    "db": "database",
    "err": "error",
    "msg": "message",
    "msgs": "messages",
    "req": "request",
    "res": "response",
    "btn": "button",
    "btns": "buttons",
    "nav": "navigation",
    "info": "information",
    "calc": "calculation",
    "calcs": "calculations",
    "param": "parameter",
    "params": "parameters",
    "doc": "document",
    "docs": "documents",
    "str": "string",
    "num": "number",
    "int": "integer",
    "bool": "boolean",
    "arr": "array",
    "obj": "object",
    "fmt": "format",
    "env": "environment",
    "tmp": "temporary",
    "temp": "temporary",
    "src": "source",
    "dest": "destination",
    "dir": "directory",
    "dirs": "directories",
    "gen": "generation",
    "sync": "synchronization",
    "async": "asynchronous",
}

# Verb and plural forms folded onto one canonical noun.
WORD_FORMS: Dict[str, str] = {
    "normalize": "normalization",
    "normalizing": "normalization",
    "normalized": "normalization",
    "validate": "validation",
    "validating": "validation",
    "validated": "validation",
    "initialize": "initialization",
    "initializing": "initialization",
    "initialized": "initialization",
    "optimize": "optimization",
    "optimizing": "optimization",
    "optimized": "optimization",
    "synchronize": "synchronization",
    "synchronizing": "synchronization",
    "synchronized": "synchronization",
    "serialize": "serialization",
    "serializing": "serialization",
    "serialized": "serialization",
    "authorize": "authorization",
    "authorizing": "authorization",
    "authorized": "authorization",
    "authenticate": "authentication",
    "authenticating": "authentication",
    "authenticated": "authentication",
    "localize": "localization",
    "localizing": "localization",
    "localized": "localization",
    "generate": "generation",
    "generating": "generation",
    "generated": "generation",
    "calculate": "calculation",
    "calculating": "calculation",
    "calculated": "calculation",
    "navigate": "navigation",
    "navigating": "navigation",
    "navigated": "navigation",
    "migrate": "migration",
    "migrating": "migration",
    "migrated": "migration",
    "aggregate": "aggregation",
    "aggregating": "aggregation",
    "aggregated": "aggregation",
    "configure": "configuration",
    "configuring": "configuration",
    "configured": "configuration",
    "verify": "verification",
    "verifying": "verification",
    "verified": "verification",
    "modify": "modification",
    "modifying": "modification",
    "modified": "modification",
    "notify": "notification",
    "notifying": "notification",
    "notified": "notification",
    "classify": "classification",
    "classifying": "classification",
    "classified": "classification",
    "parse": "parsing",
    "parsed": "parsing",
    "format": "formatting",
    "formats": "formatting",
    "formatted": "formatting",
    "transform": "transformation",
    "transforms": "transformation",
    "transforming": "transformation",
    "transformed": "transformation",
    "convert": "conversion",
    "converts": "conversion",
    "converting": "conversion",
    "converted": "conversion",
    "process": "processing",
    "processes": "processing",
    "processed": "processing",
    "handle": "handling",
    "handles": "handling",
    "handled": "handling",
    "render": "rendering",
    "renders": "rendering",
    "rendered": "rendering",
    "fetch": "fetching",
    "fetches": "fetching",
    "fetched": "fetching",
    "load": "loading",
    "loads": "loading",
    "loaded": "loading",
    "save": "saving",
    "saves": "saving",
    "saved": "saving",
    "create": "creation",
    "creates": "creation",
    "creating": "creation",
    "created": "creation",
    "delete": "deletion",
    "deletes": "deletion",
    "deleting": "deletion",
    "deleted": "deletion",
    "update": "updating",
    "updates": "updating",
    "updated": "updating",
    "execute": "execution",
    "executes": "execution",
    "executing": "execution",
    "executed": "execution",
    "handler": "handling",
    "handlers": "handling",
    "helper": "helpers",
    "utility": "utilities",
    "service": "services",
    "controller": "controllers",
    "component": "components",
    "module": "modules",
    "model": "models",
    "view": "views",
    "route": "routes",
    "test": "tests",
    "spec": "specs",
    "datetime": "date time",
    "date-time": "date time",
    "timestamp": "date time",
}


def _word_pattern(table: Dict[str, str]) -> "re.Pattern[str]":
    words = sorted(table, key=len, reverse=True)
    return re.compile(r"\b(" + "|".join(re.escape(w) for w in words) + r")\b")


_ABBREVIATION_RE = _word_pattern(ABBREVIATIONS)
_WORD_FORM_RE = _word_pattern(WORD_FORMS)


def canonical_words(name: str) -> List[str]:
    """Lower-cased words of *name* with abbreviations and word forms folded, in order."""
    text = " ".join(name.lower().split())
    text = _ABBREVIATION_RE.sub(lambda m: ABBREVIATIONS[m.group(1)], text)
    text = _WORD_FORM_RE.sub(lambda m: WORD_FORMS[m.group(1)], text)
    return text.split()


def normalize_variations(name: str) -> str:
    return " ".join(sorted(canonical_words(name)))


def _title(words: Sequence[str]) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in words)


def _unique_names(groups: Iterable[CodeGroup]) -> List[str]:
    return list(dict.fromkeys(g.functionality for g in groups if g.functionality))


class PatternAnalyzer:
    """Suggests consolidated or hierarchical names for existing groups."""

    def find_similar_groups(
        self,
        groups: Sequence[CodeGroup],
        threshold: float = SIMILARITY_THRESHOLD,
    ) -> List[PatternSuggestion]:
        """Pairs of names that look alike as typed or after normalization.

        The better name of each pair (see :meth:`choose_best_name`) becomes
        the suggestion for the other.
        """
        names = _unique_names(groups)
        normalized = {name: normalize_variations(name) for name in names}
        suggestions: List[PatternSuggestion] = []

        for i, first in enumerate(names):
            for second in names[i + 1:]:
                semantic = normalized[first] == normalized[second]
                similarity = max(
                    string_similarity(first, second),
                    string_similarity(normalized[first], normalized[second]),
                )
                if not semantic and similarity < threshold:
                    continue

                suggested = self.choose_best_name(first, second, groups)
                original = second if suggested == first else first
                if semantic:
                    reason = f'Semantically identical to "{suggested}" (same meaning, different wording)'
                else:
                    reason = f'Very similar to "{suggested}" ({round(similarity * 100)}% match)'
                suggestions.append(PatternSuggestion(
                    original_name=original,
                    suggested_name=suggested,
                    reason=reason,
                    confidence=1.0 if semantic else similarity,
                    type=PatternSuggestionType.SIMILAR,
                ))

        logger.debug("Found %d similar name pairs among %d names", len(suggestions), len(names))
        return suggestions

    @staticmethod
    def choose_best_name(first: str, second: str, groups: Sequence[CodeGroup]) -> str:
        """Prefer the more used name, then the longer one, then alphabetical order."""
        first_count = sum(1 for g in groups if g.functionality == first)
        second_count = sum(1 for g in groups if g.functionality == second)
        if first_count != second_count:
            return first if first_count > second_count else second
        if len(first) != len(second):
            return first if len(first) > len(second) else second
        return min(first, second)

    def check_semantic_similarity(self, new_name: str, existing_names: Iterable[str]) -> SemanticMatch:
        normalized_new = normalize_variations(new_name)
        for existing in existing_names:
            normalized_existing = normalize_variations(existing)
            if normalized_new == normalized_existing:
                return SemanticMatch(
                    is_similar=True,
                    normalized_name=normalized_new,
                    matched_existing=existing,
                    reason=(
                        f'"{new_name}" is semantically identical to "{existing}" '
                        f'(both normalize to "{normalized_new}")'
                    ),
                )
            similarity = string_similarity(normalized_new, normalized_existing)
            if similarity >= SEMANTIC_MATCH_THRESHOLD:
                return SemanticMatch(
                    is_similar=True,
                    normalized_name=normalized_new,
                    matched_existing=existing,
                    reason=f'"{new_name}" is {round(similarity * 100)}% similar to "{existing}"',
                )
        return SemanticMatch(is_similar=False, normalized_name=normalized_new)

    def get_normalized_name(self, name: str) -> str:
        return normalize_variations(name)

    def find_matching_group(self, new_name: str, groups: Iterable[CodeGroup]) -> Optional[str]:
        """Existing name that *new_name* duplicates, or None when it is new."""
        result = self.check_semantic_similarity(new_name, _unique_names(groups))
        return result.matched_existing if result.is_similar else None

    def find_best_match(self, new_name: str, groups: Sequence[CodeGroup]) -> Optional[PatternSuggestion]:
        candidate = CodeGroup(functionality=new_name, file_path="", line_numbers=[])
        suggestions = self.find_similar_groups(list(groups) + [candidate], ANALYSIS_SIMILARITY_THRESHOLD)
        for suggestion in suggestions:
            if suggestion.original_name.lower() == new_name.lower():
                return suggestion
        return None

    def suggest_hierarchies(self, groups: Iterable[CodeGroup]) -> List[PatternSuggestion]:
        """Propose ``Prefix > Rest`` names for flat names sharing leading words.

        Prefixes of one to three words are compared after normalization.
        Each name gets at most one proposal, using the longest prefix it
        shares with at least one other name.
        """
        flat = [
            name for name in _unique_names(groups)
            if HIERARCHY_DELIMITER not in name
        ]
        words_by_name = {name: canonical_words(name) for name in flat}

        sharing: Dict[Tuple[str, ...], List[str]] = {}
        for name, words in words_by_name.items():
            for size in range(1, min(MAX_PREFIX_WORDS, len(words) - 1) + 1):
                sharing.setdefault(tuple(words[:size]), []).append(name)

        suggestions: List[PatternSuggestion] = []
        for name, words in words_by_name.items():
            for size in range(min(MAX_PREFIX_WORDS, len(words) - 1), 0, -1):
                prefix = tuple(words[:size])
                members = sharing.get(prefix, [])
                if len(members) < 2:
                    continue
                parent = _title(prefix)
                suggestions.append(PatternSuggestion(
                    original_name=name,
                    suggested_name=format_hierarchy_path([parent, _title(words[size:])]),
                    reason=f'Found {len(members)} groups starting with "{parent}"',
                    confidence=min(0.7 + len(members) * 0.1, 0.95),
                    type=PatternSuggestionType.HIERARCHY,
                ))
                break

        logger.debug("Suggested %d hierarchies for %d flat names", len(suggestions), len(flat))
        return suggestions

    def analyze_patterns(self, groups: Sequence[CodeGroup]) -> PatternAnalysis:
        similar = self.find_similar_groups(groups, ANALYSIS_SIMILARITY_THRESHOLD)
        hierarchies = self.suggest_hierarchies(groups)
        combined = sorted(similar + hierarchies, key=lambda s: s.confidence, reverse=True)
        return PatternAnalysis(similar=similar, hierarchies=hierarchies, all=combined)

    def get_suggested_name(self, partial_name: str, groups: Sequence[CodeGroup]) -> Optional[str]:
        """Hierarchical name proposed for *partial_name*, if it is one of the flat names."""
        normalized = normalize_variations(partial_name)
        if len(normalized.split()) < 2:
            return None
        for suggestion in self.suggest_hierarchies(groups):
            if normalize_variations(suggestion.original_name) == normalized:
                return suggestion.suggested_name
        return None

    def generate_report(self, groups: Sequence[CodeGroup]) -> str:
        """Render the analysis as Markdown."""
        analysis = self.analyze_patterns(groups)
        lines = ["# Code Group Pattern Analysis", ""]

        if analysis.similar:
            lines += ["## Similar Names (Consolidation Suggested)", ""]
            for s in analysis.similar:
                lines.append(f"- **{s.original_name}** → **{s.suggested_name}**")
                lines.append(f"  - {s.reason}")
                lines.append(f"  - Confidence: {round(s.confidence * 100)}%")
                lines.append("")

        if analysis.hierarchies:
            lines += ["## Hierarchy Suggestions", ""]
            by_parent: Dict[str, List[PatternSuggestion]] = {}
            for s in analysis.hierarchies:
                parent = s.suggested_name.split(HIERARCHY_DELIMITER)[0].strip()
                by_parent.setdefault(parent, []).append(s)
            for parent, suggestions in by_parent.items():
                lines += [f"### {parent}", ""]
                for s in suggestions:
                    lines.append(f"- **{s.original_name}** → **{s.suggested_name}**")
                lines.append("")

        if not analysis.all:
            lines.append("✅ No pattern issues found. Your group naming is consistent!")
            lines.append("")

        return "\n".join(lines)
