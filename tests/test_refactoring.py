"""Tests for group refactoring analysis."""

import pytest

from groupcode_cli.models import RefactoringIssueType, RefactoringSeverity
from groupcode_cli.refactoring import (
    GroupRefactoringAnalyzer,
    RefactoringConfig,
    generate_report,
    levenshtein_distance,
    string_similarity,
)

DAY = 24 * 60 * 60
NOW = 1000 * DAY


def _missing(path):
    raise OSError(f"cannot stat {path}")


def _analyzer(*checks, stat=_missing, **thresholds):
    config = RefactoringConfig(enabled_checks=list(checks), **thresholds)
    return GroupRefactoringAnalyzer(config=config, stat=stat, clock=lambda: NOW)


def _of_type(issues, issue_type):
    return [i for i in issues if i.type == issue_type]


class TestSimilarity:

    def test_identity(self):
        assert string_similarity("Auth Login", "Auth Login") == 1.0

    def test_case_insensitive(self):
        assert string_similarity("AUTH", "auth") == 1.0

    def test_symmetric(self):
        assert string_similarity("payments", "payment") == string_similarity("payment", "payments")

    def test_empty(self):
        assert string_similarity("", "nonempty") == 0.0
        assert string_similarity("nonempty", "") == 0.0

    def test_value(self):
        assert string_similarity("user login", "user logins") == pytest.approx(1 - 1 / 11)

    def test_levenshtein(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3


class TestDuplicates:

    def test_case_variants_make_one_issue(self, make_group):
        groups = {
            "Auth Login": [make_group("Auth Login", file_path="/ws/a.js")],
            "auth login": [make_group("auth login", file_path="/ws/a.js", line_numbers=[10])],
            "AUTH LOGIN": [make_group("AUTH LOGIN", file_path="/ws/b.py")],
        }
        issues = GroupRefactoringAnalyzer(stat=_missing, clock=lambda: NOW).analyze_groups(groups)

        duplicates = _of_type(issues, RefactoringIssueType.DUPLICATE)
        assert len(duplicates) == 1
        issue = duplicates[0]
        assert issue.severity == RefactoringSeverity.WARNING
        assert issue.group_name == "Auth Login"
        assert len(issue.affected_groups) == 3
        assert issue.metrics.usage_count == 3
        assert [str(loc) for loc in issue.locations] == ["/ws/a.js:1", "/ws/a.js:10", "/ws/b.py:1"]

    def test_case_variants_are_not_reported_as_similar(self, make_group):
        groups = {"Auth": [make_group("Auth")], "auth": [make_group("auth")]}
        issues = _analyzer(RefactoringIssueType.SIMILAR).analyze_groups(groups)
        assert issues == []


class TestSimilar:

    def test_near_names(self, make_group):
        groups = {
            "user login": [make_group("user login")],
            "user logins": [make_group("user logins")],
            "payments": [make_group("payments")],
        }
        issues = _analyzer(RefactoringIssueType.SIMILAR).analyze_groups(groups)
        assert len(issues) == 1
        assert issues[0].affected_groups == ["user login", "user logins"]
        assert issues[0].severity == RefactoringSeverity.INFO
        assert issues[0].metrics.similarity == pytest.approx(0.909, abs=0.001)
        assert "91% similar" in issues[0].message

    def test_threshold(self, make_group):
        groups = {"user login": [make_group("user login")], "user logins": [make_group("user logins")]}
        issues = _analyzer(RefactoringIssueType.SIMILAR, similarity_threshold=0.95).analyze_groups(groups)
        assert issues == []


class TestOrphaned:

    def test_stale_group(self, make_group):
        mtimes = {"/ws/a.js": NOW - 120 * DAY, "/ws/b.js": NOW - 100 * DAY}
        groups = {"old": [make_group("old", file_path="/ws/a.js"), make_group("old", file_path="/ws/b.js")]}
        issues = _analyzer(RefactoringIssueType.ORPHANED, stat=mtimes.__getitem__).analyze_groups(groups)

        assert len(issues) == 1
        assert issues[0].message == "Group hasn't been modified in 100 days"
        assert issues[0].metrics.file_count == 2

    def test_recent_file_keeps_group_alive(self, make_group):
        mtimes = {"/ws/a.js": NOW - 120 * DAY, "/ws/b.js": NOW - 5 * DAY}
        groups = {"mixed": [make_group("mixed", file_path="/ws/a.js"), make_group("mixed", file_path="/ws/b.js")]}
        issues = _analyzer(RefactoringIssueType.ORPHANED, stat=mtimes.__getitem__).analyze_groups(groups)
        assert issues == []

    def test_unstatable_files_are_skipped(self, make_group):
        def stat(path):
            if path == "/ws/gone.js":
                raise OSError("gone")
            return NOW - 200 * DAY

        groups = {"old": [make_group("old", file_path="/ws/gone.js"), make_group("old", file_path="/ws/a.js")]}
        issues = _analyzer(RefactoringIssueType.ORPHANED, stat=stat).analyze_groups(groups)
        assert len(issues) == 1
        assert "200 days" in issues[0].message

    def test_no_statable_file_is_not_flagged(self, make_group):
        groups = {"ghost": [make_group("ghost", file_path="/ws/gone.js")]}
        assert _analyzer(RefactoringIssueType.ORPHANED).analyze_groups(groups) == []


class TestNaming:

    def test_mixed_conventions(self, make_group):
        names = ["userLogin", "userLogout", "dataLoad", "user_login", "user_logout", "data_load"]
        groups = {n: [make_group(n)] for n in names}
        issues = _analyzer(RefactoringIssueType.INCONSISTENT_NAMING).analyze_groups(groups)

        assert len(issues) == 1
        assert issues[0].group_name == "Multiple Groups"
        assert sorted(issues[0].affected_groups) == sorted(names)
        assert "2 different naming conventions" in issues[0].message

    def test_minor_convention_is_ignored(self, make_group):
        names = ["userLogin", "userLogout", "dataLoad", "user_login", "user_logout"]
        groups = {n: [make_group(n)] for n in names}
        assert _analyzer(RefactoringIssueType.INCONSISTENT_NAMING).analyze_groups(groups) == []


class TestSizeChecks:

    def test_single_use(self, make_group):
        groups = {
            "once": [make_group("once")],
            "twice": [make_group("twice"), make_group("twice", file_path="/ws/b.js")],
        }
        issues = _analyzer(RefactoringIssueType.SINGLE_USE).analyze_groups(groups)
        assert [i.group_name for i in issues] == ["once"]
        assert issues[0].message == "Group is only used 1 time(s)"

    def test_too_small_and_too_large_are_exclusive(self, make_group):
        groups = {
            "tiny": [make_group("tiny")],
            "huge": [make_group("huge", file_path=f"/ws/f{i}.js") for i in range(60)],
        }
        issues = _analyzer(
            RefactoringIssueType.TOO_LARGE,
            RefactoringIssueType.TOO_SMALL,
        ).analyze_groups(groups)

        by_type = {(i.type, i.group_name) for i in issues}
        assert by_type == {
            (RefactoringIssueType.TOO_LARGE, "huge"),
            (RefactoringIssueType.TOO_SMALL, "tiny"),
        }
        large = _of_type(issues, RefactoringIssueType.TOO_LARGE)[0]
        assert large.severity == RefactoringSeverity.WARNING
        assert large.metrics.file_count == 60
        assert large.metrics.line_count == 180

    def test_rare_cross_file_group_is_not_too_small(self, make_group):
        groups = {"spread": [make_group("spread", file_path="/ws/a.js"), make_group("spread", file_path="/ws/b.js")]}
        issues = _analyzer(RefactoringIssueType.TOO_SMALL, too_small_threshold=3).analyze_groups(groups)
        assert issues == []


class TestAnalyzer:

    def test_defaults(self):
        config = RefactoringConfig()
        assert config.similarity_threshold == 0.8
        assert config.orphaned_threshold == 90
        assert RefactoringIssueType.TOO_LARGE not in config.enabled_checks
        assert RefactoringIssueType.TOO_SMALL not in config.enabled_checks

    def test_no_checks_enabled(self, make_group):
        assert _analyzer().analyze_groups({"a": [make_group("a")]}) == []

    def test_issue_order_follows_check_order(self, make_group):
        groups = {
            "Billing": [make_group("Billing")],
            "billing": [make_group("billing")],
        }
        issues = _analyzer(
            RefactoringIssueType.SINGLE_USE,
            RefactoringIssueType.DUPLICATE,
        ).analyze_groups(groups)
        assert [i.type for i in issues] == [
            RefactoringIssueType.DUPLICATE,
            RefactoringIssueType.SINGLE_USE,
            RefactoringIssueType.SINGLE_USE,
        ]

    def test_config_from_dict(self):
        config = RefactoringConfig.from_dict({
            "similarity_threshold": 0.9,
            "too_large_threshold": 10,
            "enabled_checks": ["duplicate", "bogus", "too_large"],
        })
        assert config.similarity_threshold == 0.9
        assert config.too_large_threshold == 10
        assert config.orphaned_threshold == 90
        assert config.enabled_checks == [RefactoringIssueType.DUPLICATE, RefactoringIssueType.TOO_LARGE]


class TestReport:

    def test_groups_by_type_in_first_seen_order(self, make_group):
        groups = {
            "Auth": [make_group("Auth")],
            "auth": [make_group("auth")],
            "user login": [make_group("user login")],
            "user logins": [make_group("user logins")],
        }
        issues = _analyzer(
            RefactoringIssueType.DUPLICATE,
            RefactoringIssueType.SIMILAR,
        ).analyze_groups(groups)
        report = generate_report(issues)

        assert report.startswith("# Group Refactoring Analysis Report")
        assert "Total Issues Found: 2" in report
        assert report.index("## Duplicate Groups (1)") < report.index("## Similar Groups (1)")
        assert "- **Affected Groups**: Auth, auth" in report
        assert "Similarity: 91%" in report

    def test_deterministic(self, make_group):
        groups = {"a": [make_group("a")], "b": [make_group("b")]}
        issues = _analyzer(RefactoringIssueType.SINGLE_USE).analyze_groups(groups)
        assert generate_report(issues) == generate_report(issues)

    def test_empty(self):
        assert "Total Issues Found: 0" in generate_report([])
