"""Single-page SEO analysis and scoring engine."""

__version__ = "0.1.0"

from pagescore.document import Document, MutationRecord, NavigationTiming
from pagescore.assembler import CancellationToken, PageAssembler
from pagescore.analyzer import PageAnalyzer
from pagescore.cache import CacheEntry, CacheManager, fingerprint
from pagescore.monitor import (
    ChangeMonitor,
    EventChannel,
    PageSnapshot,
    SignificantChange,
    classify_change,
)
from pagescore.rules import Rule, RuleRegistry, default_rules
from pagescore.scoring import Evaluation, ScoringAlgorithm
from pagescore.report import build_report
from pagescore.models import (
    AISuggestions,
    AnalysisState,
    Category,
    ContentStats,
    Headings,
    ImageStats,
    LinkStats,
    MetaTags,
    PageAnalysis,
    PerformanceMetrics,
    RuleResult,
    SEOIssue,
    SEOReport,
    SEOScore,
    Severity,
)
from pagescore.config import (
    AnalysisOptions,
    AnalysisThresholds,
    CacheOptions,
    MonitorOptions,
    ScoringOptions,
    settings,
)
from pagescore.exceptions import (
    AnalysisAbortedError,
    AssemblyError,
    BusyError,
    ExtractionError,
    FetchError,
    PageScoreError,
    RuleEvaluationError,
)

__all__ = [
    # Core
    "Document",
    "MutationRecord",
    "NavigationTiming",
    "PageAssembler",
    "CancellationToken",
    "PageAnalyzer",
    "CacheManager",
    "CacheEntry",
    "fingerprint",
    "ChangeMonitor",
    "EventChannel",
    "PageSnapshot",
    "SignificantChange",
    "classify_change",
    "Rule",
    "RuleRegistry",
    "default_rules",
    "ScoringAlgorithm",
    "Evaluation",
    "build_report",
    # Models
    "AISuggestions",
    "AnalysisState",
    "Category",
    "ContentStats",
    "Headings",
    "ImageStats",
    "LinkStats",
    "MetaTags",
    "PageAnalysis",
    "PerformanceMetrics",
    "RuleResult",
    "SEOIssue",
    "SEOReport",
    "SEOScore",
    "Severity",
    # Config
    "AnalysisOptions",
    "AnalysisThresholds",
    "CacheOptions",
    "MonitorOptions",
    "ScoringOptions",
    "settings",
    # Errors
    "PageScoreError",
    "ExtractionError",
    "RuleEvaluationError",
    "AnalysisAbortedError",
    "BusyError",
    "AssemblyError",
    "FetchError",
]
