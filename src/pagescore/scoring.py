"""Scoring algorithm: rule outcomes to category scores, overall score and issues.

Per category the score is the weight-averaged rule score. A failed
critical result is multiplied by the critical penalty, and a category
mean at or above the bonus threshold is multiplied by the bonus. Every
score is clamped to [0, 100].
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from pagescore.config import AnalysisThresholds, ScoringOptions, default_thresholds
from pagescore.constants import GRADE_THRESHOLDS, MIN_IMPROVEMENT_POINTS
from pagescore.exceptions import RuleEvaluationError
from pagescore.issue_templates import build_issue
from pagescore.models import (
    Category,
    PageAnalysis,
    RuleResult,
    SEOIssue,
    SEOScore,
    Severity,
)
from pagescore.rules import Rule, RuleRegistry
from pagescore.utils import clamp, round_half_up

logger = logging.getLogger(__name__)

INTERPRETATIONS = {
    "A": "Excellent SEO. The page follows nearly all best practices.",
    "B": "Good SEO with a few areas to improve.",
    "C": "Fair SEO. Several issues are holding the page back.",
    "D": "Poor SEO. Significant problems need attention.",
    "F": "Critical SEO problems. Fix the high priority issues first.",
}


@dataclass(frozen=True)
class RuleOutcome:
    """A rule, its result and its registration position."""
    rule: Rule
    result: RuleResult
    index: int


@dataclass
class CategoryScore:
    category: Category
    score: float
    total_weight: float
    outcomes: List[RuleOutcome] = field(default_factory=list)
    max_score: float = 100.0

    @property
    def failed(self) -> List[RuleOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.result.passed]


@dataclass
class CategoryScores:
    """Scores of all categories for one analysis."""
    technical: CategoryScore
    content: CategoryScore
    performance: CategoryScore
    analysis: PageAnalysis

    def __getitem__(self, category) -> CategoryScore:
        return getattr(self, Category(category).value)

    def __iter__(self) -> Iterator[CategoryScore]:
        return iter((self.technical, self.content, self.performance))


@dataclass(frozen=True)
class Improvement:
    """Points a category would gain if all of its failed rules passed."""
    category: Category
    current_score: float
    potential_score: float
    gain: float
    failed_rules: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "current_score": self.current_score,
            "potential_score": self.potential_score,
            "gain": self.gain,
            "failed_rules": list(self.failed_rules),
        }


@dataclass
class Evaluation:
    """Score and ordered issues from a single pass over the rules."""
    score: SEOScore
    issues: List[SEOIssue]
    category_scores: CategoryScores


class ScoringAlgorithm:
    """Turns a PageAnalysis into scores and a ranked issue list."""

    def __init__(
        self,
        registry: Optional[RuleRegistry] = None,
        options: Optional[ScoringOptions] = None,
        thresholds: Optional[AnalysisThresholds] = None,
    ):
        self.thresholds = thresholds or default_thresholds
        self.registry = registry if registry is not None else RuleRegistry.with_default_rules(self.thresholds)
        self.options = options or ScoringOptions()

    # -- category scores --------------------------------------------------

    def calculate_category_scores(self, analysis: PageAnalysis) -> CategoryScores:
        """Evaluate every registered rule and score each category.

        Args:
            analysis: Page to score

        Returns:
            CategoryScores holding per-rule outcomes
        """
        order = {rule.id: index for index, rule in enumerate(self.registry.all_rules())}
        scores = {}

        for category in Category:
            outcomes = [
                RuleOutcome(rule, self._evaluate_rule(rule, analysis), order[rule.id])
                for rule in self.registry.get_rules_by_category(category)
            ]
            scores[category.value] = self._score_category(category, outcomes)

        return CategoryScores(analysis=analysis, **scores)

    def _evaluate_rule(self, rule: Rule, analysis: PageAnalysis) -> RuleResult:
        try:
            result = rule.check(analysis)
        except Exception as e:
            error = RuleEvaluationError(rule.id, e)
            logger.warning(str(error))
            return RuleResult(
                passed=False,
                score=0,
                severity=rule.severity,
                message=f"Rule could not be evaluated: {e}",
                recommendation="Check the rule implementation",
            )

        if not 0 <= result.score <= 100:
            logger.warning(f"Rule {rule.id} returned out-of-range score {result.score}")
        return result

    def _adjusted_score(self, result: RuleResult) -> float:
        score = clamp(result.score)
        if not result.passed and result.severity == Severity.CRITICAL:
            score *= self.options.critical_penalty
        return score

    def _score_category(self, category: Category, outcomes: List[RuleOutcome]) -> CategoryScore:
        total_weight = sum(outcome.rule.weight for outcome in outcomes)
        if total_weight == 0:
            return CategoryScore(category=category, score=0.0, total_weight=0, outcomes=outcomes)

        weighted = sum(self._adjusted_score(o.result) * o.rule.weight for o in outcomes)
        return CategoryScore(
            category=category,
            score=self._apply_bonus(weighted / total_weight),
            total_weight=total_weight,
            outcomes=outcomes,
        )

    def _apply_bonus(self, mean: float) -> float:
        if mean >= self.options.bonus_threshold:
            mean *= self.options.bonus_multiplier
        return clamp(mean)

    # -- overall ----------------------------------------------------------

    def calculate_overall_score(self, category_scores: CategoryScores) -> float:
        """Weighted sum of the category scores, clamped to [0, 100]."""
        weights = self.options.category_weights
        total_weight = sum(weights.get(c.value, 0) for c in Category)
        if total_weight == 0:
            return 0.0

        overall = sum(
            category_scores[c].score * weights.get(c.value, 0) for c in Category
        ) / total_weight
        return clamp(overall)

    def calculate_seo_score(
        self,
        analysis: PageAnalysis,
        category_scores: Optional[CategoryScores] = None,
    ) -> SEOScore:
        """Integer scores for the analysis."""
        if category_scores is None:
            category_scores = self.calculate_category_scores(analysis)

        return SEOScore(
            overall=int(round_half_up(self.calculate_overall_score(category_scores))),
            technical=int(round_half_up(category_scores.technical.score)),
            content=int(round_half_up(category_scores.content.score)),
            performance=int(round_half_up(category_scores.performance.score)),
            timestamp=datetime.now(),
        )

    # -- issues -----------------------------------------------------------

    def generate_issues(self, category_scores: CategoryScores) -> List[SEOIssue]:
        """One issue per failed rule, most severe first.

        Ties are broken by rule weight, then by registration order.
        """
        failed = [outcome for category in category_scores for outcome in category.failed]
        failed.sort(key=lambda o: (-o.result.severity.rank, -o.rule.weight, o.index))

        return [
            build_issue(o.rule, o.result, category_scores.analysis, self.thresholds)
            for o in failed
        ]

    def evaluate(self, analysis: PageAnalysis) -> Evaluation:
        """Score the analysis and list its issues, evaluating each rule once."""
        category_scores = self.calculate_category_scores(analysis)
        return Evaluation(
            score=self.calculate_seo_score(analysis, category_scores),
            issues=self.generate_issues(category_scores),
            category_scores=category_scores,
        )

    # -- interpretation ---------------------------------------------------

    @staticmethod
    def get_grade(score: float) -> str:
        for threshold, grade in GRADE_THRESHOLDS:
            if score >= threshold:
                return grade
        return "F"

    def get_interpretation(self, score: float) -> str:
        return INTERPRETATIONS[self.get_grade(score)]

    def calculate_improvement_potential(self, category_scores: CategoryScores) -> List[Improvement]:
        """Gain per category if every failed rule passed.

        Only gains above MIN_IMPROVEMENT_POINTS are reported, largest first.
        """
        improvements = []
        for category_score in category_scores:
            failed = category_score.failed
            if not failed or category_score.total_weight == 0:
                continue

            weighted = sum(
                (100 if not o.result.passed else self._adjusted_score(o.result)) * o.rule.weight
                for o in category_score.outcomes
            )
            potential = self._apply_bonus(weighted / category_score.total_weight)
            gain = potential - category_score.score
            if gain > MIN_IMPROVEMENT_POINTS:
                improvements.append(Improvement(
                    category=category_score.category,
                    current_score=round_half_up(category_score.score, 1),
                    potential_score=round_half_up(potential, 1),
                    gain=round_half_up(gain, 1),
                    failed_rules=[o.rule.id for o in failed],
                ))

        improvements.sort(key=lambda item: item.gain, reverse=True)
        return improvements

    def generate_summary(self, analysis: PageAnalysis) -> Dict[str, Any]:
        """Compact summary for logs and the command line."""
        evaluation = self.evaluate(analysis)
        severity_counts = {severity.value: 0 for severity in Severity}
        for issue in evaluation.issues:
            severity_counts[issue.severity.value] += 1

        overall = evaluation.score.overall
        return {
            "url": analysis.url,
            "score": evaluation.score.to_dict(),
            "grade": self.get_grade(overall),
            "interpretation": self.get_interpretation(overall),
            "issue_counts": severity_counts,
            "top_issues": [issue.title for issue in evaluation.issues[:5]],
            "improvements": [
                item.to_dict()
                for item in self.calculate_improvement_potential(evaluation.category_scores)
            ],
        }
