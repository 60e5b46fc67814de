"""Tests for naming pattern suggestions."""

import pytest

from groupcode_cli.models import PatternSuggestionType
from groupcode_cli.patterns import PatternAnalyzer, canonical_words, normalize_variations


@pytest.fixture
def analyzer() -> PatternAnalyzer:
    return PatternAnalyzer()


class TestNormalization:

    def test_abbreviations_and_word_order(self):
        assert normalize_variations("API Config") == "api configuration"
        assert normalize_variations("configuration   api") == "api configuration"

    def test_word_forms(self):
        assert normalize_variations("Validate Input") == normalize_variations("input validation")
        assert normalize_variations("timestamp") == "date time"
        assert normalize_variations("time date") == "date time"

    def test_canonical_words_keep_order(self):
        assert canonical_words("Auth  Login") == ["authentication", "login"]

    def test_get_normalized_name(self, analyzer: PatternAnalyzer):
        assert analyzer.get_normalized_name("DB Utils") == "database utilities"


class TestFindSimilarGroups:

    def test_semantic_match_prefers_more_used_name(self, analyzer: PatternAnalyzer, make_group):
        groups = [
            make_group("api config"),
            make_group("api config", file_path="/ws/b.js"),
            make_group("api configuration"),
        ]
        [suggestion] = analyzer.find_similar_groups(groups)

        assert suggestion.original_name == "api configuration"
        assert suggestion.suggested_name == "api config"
        assert suggestion.confidence == 1.0
        assert suggestion.type == PatternSuggestionType.SIMILAR
        assert suggestion.reason.startswith("Semantically identical")

    def test_string_similarity_prefers_longer_name(self, analyzer: PatternAnalyzer, make_group):
        groups = [make_group("user profile"), make_group("user profiles"), make_group("payments")]
        [suggestion] = analyzer.find_similar_groups(groups)

        assert suggestion.original_name == "user profile"
        assert suggestion.suggested_name == "user profiles"
        assert suggestion.confidence == pytest.approx(12 / 13)
        assert "92% match" in suggestion.reason

    def test_unrelated_names(self, analyzer: PatternAnalyzer, make_group):
        assert analyzer.find_similar_groups([make_group("payments"), make_group("logging")]) == []

    def test_choose_best_name_falls_back_to_alphabetical(self):
        assert PatternAnalyzer.choose_best_name("beta", "alfa", []) == "alfa"


class TestSemanticMatching:

    def test_check_semantic_similarity(self, analyzer: PatternAnalyzer):
        result = analyzer.check_semantic_similarity("user profile", ["payments", "user profiles"])
        assert result.is_similar
        assert result.matched_existing == "user profiles"
        assert result.normalized_name == "profile user"
        assert "92% similar" in result.reason

    def test_no_similar_name(self, analyzer: PatternAnalyzer):
        result = analyzer.check_semantic_similarity("billing", ["user profiles"])
        assert not result.is_similar
        assert result.matched_existing is None

    def test_find_matching_group(self, analyzer: PatternAnalyzer, make_group):
        groups = [make_group("auth login"), make_group("payments")]
        assert analyzer.find_matching_group("Authentication Login", groups) == "auth login"
        assert analyzer.find_matching_group("reporting", groups) is None

    def test_find_best_match(self, analyzer: PatternAnalyzer, make_group):
        groups = [make_group("user profiles"), make_group("user profiles", file_path="/ws/b.js")]
        suggestion = analyzer.find_best_match("user profile", groups)
        assert suggestion.original_name == "user profile"
        assert suggestion.suggested_name == "user profiles"
        assert analyzer.find_best_match("billing", groups) is None


class TestSuggestHierarchies:

    def test_shared_prefix(self, analyzer: PatternAnalyzer, make_group):
        groups = [make_group("user login"), make_group("user logout"), make_group("payments")]
        suggestions = analyzer.suggest_hierarchies(groups)

        assert [(s.original_name, s.suggested_name) for s in suggestions] == [
            ("user login", "User > Login"),
            ("user logout", "User > Logout"),
        ]
        assert suggestions[0].type == PatternSuggestionType.HIERARCHY
        assert suggestions[0].reason == 'Found 2 groups starting with "User"'
        assert suggestions[0].confidence == pytest.approx(0.9)

    def test_longest_shared_prefix_wins(self, analyzer: PatternAnalyzer, make_group):
        groups = [make_group("api user login"), make_group("api user logout"), make_group("api status")]
        suggested = {s.original_name: s for s in analyzer.suggest_hierarchies(groups)}

        assert suggested["api user login"].suggested_name == "Api User > Login"
        assert suggested["api status"].suggested_name == "Api > Status"
        assert suggested["api status"].confidence == pytest.approx(0.95)

    def test_abbreviated_prefix_is_expanded(self, analyzer: PatternAnalyzer, make_group):
        groups = [make_group("auth login"), make_group("authentication signup")]
        names = [s.suggested_name for s in analyzer.suggest_hierarchies(groups)]
        assert names == ["Authentication > Login", "Authentication > Signup"]

    def test_hierarchical_and_single_word_names_are_skipped(self, analyzer: PatternAnalyzer, make_group):
        groups = [make_group("auth > login"), make_group("auth > logout"), make_group("auth")]
        assert analyzer.suggest_hierarchies(groups) == []

    def test_get_suggested_name(self, analyzer: PatternAnalyzer, make_group):
        groups = [make_group("user login"), make_group("user logout")]
        assert analyzer.get_suggested_name("User Login", groups) == "User > Login"
        assert analyzer.get_suggested_name("login", groups) is None
        assert analyzer.get_suggested_name("user signup", groups) is None


class TestAnalyzePatterns:

    def test_all_is_sorted_by_confidence(self, analyzer: PatternAnalyzer, make_group):
        analysis = analyzer.analyze_patterns([make_group("user profile"), make_group("user profiles")])

        assert len(analysis.similar) == 1
        assert len(analysis.hierarchies) == 2
        assert len(analysis.all) == 3
        assert analysis.all[0].type == PatternSuggestionType.SIMILAR
        confidences = [s.confidence for s in analysis.all]
        assert confidences == sorted(confidences, reverse=True)

    def test_report(self, analyzer: PatternAnalyzer, make_group):
        report = analyzer.generate_report([make_group("user login"), make_group("user logout")])

        assert report.startswith("# Code Group Pattern Analysis")
        assert "## Similar Names" not in report
        assert "## Hierarchy Suggestions" in report
        assert "### User" in report
        assert "- **user login** → **User > Login**" in report

    def test_report_without_suggestions(self, analyzer: PatternAnalyzer):
        assert "No pattern issues found" in analyzer.generate_report([])
