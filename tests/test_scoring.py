# tests/test_scoring.py
"""Tests for the scoring algorithm."""

import logging

import pytest

from pagescore.config import ScoringOptions
from pagescore.models import Category, PageAnalysis, RuleResult, Severity
from pagescore.rules import Rule, RuleRegistry
from pagescore.scoring import INTERPRETATIONS, ScoringAlgorithm

PAGE = PageAnalysis.empty("https://example.com/")


def fixed(passed, score, severity="low", message=""):
    result = RuleResult(passed=passed, score=score, severity=Severity(severity), message=message)
    return lambda analysis: result


def rule(rule_id, category="technical", weight=1, severity="medium", check=None):
    return Rule(
        id=rule_id,
        name=f"Rule {rule_id}",
        category=category,
        weight=weight,
        severity=severity,
        check=check or fixed(True, 100),
    )


def scorer(*rules, **options) -> ScoringAlgorithm:
    return ScoringAlgorithm(RuleRegistry(rules), ScoringOptions(**options))


class TestCategoryScores:
    """Per-category weighted means with penalty and bonus."""

    def test_weighted_mean(self):
        algorithm = scorer(
            rule("a", weight=3, check=fixed(False, 50, "medium")),
            rule("b", weight=1, check=fixed(True, 100)),
        )
        scores = algorithm.calculate_category_scores(PAGE)
        assert scores.technical.score == pytest.approx(62.5)
        assert scores.technical.total_weight == 4

    def test_critical_penalty(self):
        algorithm = scorer(
            rule("a", severity="critical", check=fixed(False, 50, "critical")),
            rule("b", check=fixed(True, 100)),
        )
        assert algorithm.calculate_category_scores(PAGE).technical.score == pytest.approx(70.0)

    def test_penalty_only_for_critical_failures(self):
        algorithm = scorer(
            rule("a", check=fixed(False, 50, "high")),
            rule("b", check=fixed(True, 100)),
        )
        assert algorithm.calculate_category_scores(PAGE).technical.score == pytest.approx(75.0)

    def test_bonus_applied_at_threshold(self):
        algorithm = scorer(rule("a", check=fixed(False, 90, "low")))
        assert algorithm.calculate_category_scores(PAGE).technical.score == pytest.approx(99.0)

    def test_bonus_not_applied_below_threshold(self):
        algorithm = scorer(rule("a", check=fixed(False, 85, "low")))
        assert algorithm.calculate_category_scores(PAGE).technical.score == pytest.approx(85.0)

    def test_bonus_clamped(self):
        algorithm = scorer(rule("a", check=fixed(True, 100)))
        assert algorithm.calculate_category_scores(PAGE).technical.score == 100.0

    def test_empty_category_scores_zero(self):
        scores = scorer(rule("a")).calculate_category_scores(PAGE)
        assert scores.content.score == 0.0
        assert scores.performance.score == 0.0

    def test_out_of_range_scores_clamped(self, caplog):
        algorithm = scorer(rule("a", check=fixed(False, 150, "low")))
        with caplog.at_level(logging.WARNING):
            score = algorithm.calculate_category_scores(PAGE).technical.score
        assert score == 100.0
        assert "out-of-range" in caplog.text

    def test_lookup_by_category(self):
        scores = scorer(rule("a", category="content")).calculate_category_scores(PAGE)
        assert scores[Category.CONTENT] is scores.content
        assert scores["content"].score == 100.0
        assert [c.category for c in scores] == [Category.TECHNICAL, Category.CONTENT, Category.PERFORMANCE]


class TestRaisingRules:

    def test_raising_rule_counts_as_failed(self, caplog):
        def broken(analysis):
            raise KeyError("missing field")

        algorithm = scorer(
            rule("broken", severity="high", check=broken),
            rule("fine", check=fixed(True, 100)),
        )
        with caplog.at_level(logging.WARNING):
            evaluation = algorithm.evaluate(PAGE)

        assert "Rule 'broken' raised during evaluation" in caplog.text
        assert evaluation.category_scores.technical.score == pytest.approx(50.0)
        assert [issue.id for issue in evaluation.issues] == ["broken"]
        assert evaluation.issues[0].severity is Severity.HIGH


class TestOverallScore:

    def test_weighted_by_category(self):
        algorithm = scorer(
            rule("t", category="technical", check=fixed(False, 50, "medium")),
            rule("c", category="content", check=fixed(False, 80, "medium")),
            rule("p", category="performance", check=fixed(False, 20, "medium")),
        )
        scores = algorithm.calculate_category_scores(PAGE)
        # 50 * 0.40 + 80 * 0.35 + 20 * 0.25
        assert algorithm.calculate_overall_score(scores) == pytest.approx(53.0)

    def test_custom_category_weights(self):
        algorithm = scorer(
            rule("t", category="technical", check=fixed(False, 40, "medium")),
            category_weights={"technical": 1.0, "content": 0.0, "performance": 0.0},
        )
        scores = algorithm.calculate_category_scores(PAGE)
        assert algorithm.calculate_overall_score(scores) == pytest.approx(40.0)

    def test_zero_weights(self):
        algorithm = scorer(rule("t"), category_weights={})
        assert algorithm.calculate_overall_score(algorithm.calculate_category_scores(PAGE)) == 0.0

    def test_seo_score_integers_in_bounds(self):
        algorithm = scorer(
            rule("t", category="technical", check=fixed(False, 0, "critical")),
            rule("c", category="content", check=fixed(True, 100)),
            rule("p", category="performance", check=fixed(False, 62.5, "low")),
        )
        score = algorithm.calculate_seo_score(PAGE)
        assert score.technical == 0
        assert score.content == 100
        assert score.performance == 63
        for value in (score.overall, score.technical, score.content, score.performance):
            assert isinstance(value, int)
            assert 0 <= value <= 100

    def test_all_failing(self):
        algorithm = ScoringAlgorithm(RuleRegistry([
            rule(f"r{i}", category=category, severity="critical", check=fixed(False, 0, "critical"))
            for i, category in enumerate(["technical", "content", "performance"])
        ]))
        assert algorithm.calculate_seo_score(PAGE).overall == 0


class TestIssues:
    """Issue generation and ordering."""

    def test_sorted_by_severity_weight_then_registration(self):
        algorithm = scorer(
            rule("r1", category="technical", weight=5, check=fixed(False, 50, "medium")),
            rule("r2", category="content", weight=1, check=fixed(False, 0, "critical")),
            rule("r3", category="performance", weight=10, check=fixed(False, 50, "medium")),
            rule("r4", category="technical", weight=5, check=fixed(False, 50, "medium")),
            rule("r5", category="content", weight=3, check=fixed(False, 30, "high")),
            rule("r6", category="content", weight=3, check=fixed(True, 100)),
        )
        issues = algorithm.evaluate(PAGE).issues
        assert [issue.id for issue in issues] == ["r2", "r5", "r3", "r1", "r4"]

    def test_issue_severity_comes_from_result(self):
        algorithm = scorer(rule("r1", severity="critical", check=fixed(False, 85, "low", "minor")))
        issue = algorithm.evaluate(PAGE).issues[0]
        assert issue.severity is Severity.LOW

    def test_custom_rule_issue_uses_result_text(self):
        algorithm = scorer(rule("custom", weight=2, check=fixed(False, 10, "high", "Something is off")))
        issue = algorithm.evaluate(PAGE).issues[0]
        assert issue.title == "Rule custom"
        assert issue.description == "Something is off"
        assert issue.category is Category.TECHNICAL
        assert issue.weight == 2

    def test_no_issues_when_everything_passes(self):
        assert scorer(rule("a"), rule("b", category="content")).evaluate(PAGE).issues == []

    def test_default_catalog_orders_critical_first(self):
        issues = ScoringAlgorithm().evaluate(PAGE).issues
        assert [issue.id for issue in issues[:3]] == [
            "title_exists", "meta_description_exists", "h1_exists",
        ]
        ranks = [issue.severity.rank for issue in issues]
        assert ranks == sorted(ranks, reverse=True)


class TestInterpretation:

    @pytest.mark.parametrize("score,grade", [
        (100, "A"), (90, "A"), (89.9, "B"), (80, "B"), (75, "C"), (60, "D"), (59, "F"), (0, "F"),
    ])
    def test_get_grade(self, score, grade):
        assert ScoringAlgorithm.get_grade(score) == grade

    def test_interpretation(self):
        algorithm = ScoringAlgorithm()
        assert algorithm.get_interpretation(95) == INTERPRETATIONS["A"]
        assert algorithm.get_interpretation(10) == INTERPRETATIONS["F"]

    def test_improvement_potential(self):
        algorithm = scorer(
            rule("t1", category="technical", check=fixed(False, 0, "medium")),
            rule("t2", category="technical", check=fixed(True, 100)),
            rule("c1", category="content", weight=1, check=fixed(False, 96, "low")),
            rule("c2", category="content", weight=9, check=fixed(True, 100)),
        )
        improvements = algorithm.calculate_improvement_potential(
            algorithm.calculate_category_scores(PAGE)
        )
        assert len(improvements) == 1
        improvement = improvements[0]
        assert improvement.category is Category.TECHNICAL
        assert improvement.current_score == 50.0
        assert improvement.potential_score == 100.0
        assert improvement.gain == 50.0
        assert improvement.failed_rules == ["t1"]

    def test_improvements_sorted_by_gain(self):
        algorithm = scorer(
            rule("t1", category="technical", check=fixed(False, 60, "medium")),
            rule("c1", category="content", check=fixed(False, 20, "medium")),
        )
        improvements = algorithm.calculate_improvement_potential(
            algorithm.calculate_category_scores(PAGE)
        )
        assert [item.category for item in improvements] == [Category.CONTENT, Category.TECHNICAL]

    def test_summary(self):
        summary = ScoringAlgorithm().generate_summary(PAGE)
        assert summary["url"] == "https://example.com/"
        assert summary["grade"] == ScoringAlgorithm.get_grade(summary["score"]["overall"])
        assert summary["issue_counts"]["critical"] == 3
        assert len(summary["top_issues"]) == 5
        assert summary["improvements"]
