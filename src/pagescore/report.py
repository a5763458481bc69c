"""Report assembly: score, ranked issues and optional external suggestions."""

import uuid
from datetime import datetime
from typing import Optional

from pagescore.models import AISuggestions, PageAnalysis, SEOReport
from pagescore.scoring import ScoringAlgorithm


def build_report(
    analysis: PageAnalysis,
    scoring: Optional[ScoringAlgorithm] = None,
    suggestions: Optional[AISuggestions] = None,
    report_id: Optional[str] = None,
) -> SEOReport:
    """Evaluate analysis and package the result.

    Args:
        analysis: Page analysis to report on
        scoring: Scoring algorithm; the default catalog when omitted
        suggestions: Externally generated suggestions, attached unchanged
        report_id: Identifier to use instead of a random one

    Returns:
        SEOReport
    """
    scoring = scoring or ScoringAlgorithm()
    evaluation = scoring.evaluate(analysis)
    overall = evaluation.score.overall

    return SEOReport(
        id=report_id or uuid.uuid4().hex,
        url=analysis.url,
        timestamp=datetime.now(),
        score=evaluation.score,
        issues=evaluation.issues,
        analysis=analysis,
        grade=scoring.get_grade(overall),
        interpretation=scoring.get_interpretation(overall),
        improvements=[
            item.to_dict()
            for item in scoring.calculate_improvement_potential(evaluation.category_scores)
        ],
        suggestions=suggestions,
    )


def attach_suggestions(report: SEOReport, suggestions: AISuggestions) -> SEOReport:
    """Attach suggestions produced after the report was built."""
    report.suggestions = suggestions
    return report
