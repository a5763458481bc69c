"""Data records produced and consumed by the analysis pipeline."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pagescore.constants import SEVERITY_RANK


class Severity(str, Enum):
    """How much a failed rule hurts the page."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank, higher is more severe."""
        return SEVERITY_RANK[self.value]


class Category(str, Enum):
    """Rule categories; each contributes a fixed share of the overall score."""
    TECHNICAL = "technical"
    CONTENT = "content"
    PERFORMANCE = "performance"


class AnalysisState(str, Enum):
    """Lifecycle of a page analysis context."""
    IDLE = "idle"
    ANALYZING = "analyzing"
    FAILED = "failed"


@dataclass(frozen=True)
class MetaTags:
    """Head metadata of a page. Missing values are empty strings."""
    title: str = ""
    description: str = ""
    keywords: str = ""
    canonical: str = ""
    robots: str = ""
    viewport: str = ""
    charset: str = ""
    lang: str = ""
    og_tags: Dict[str, str] = field(default_factory=dict)
    twitter_tags: Dict[str, str] = field(default_factory=dict)
    structured_data: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class HeadingEntry:
    """One non-empty heading in document order."""
    level: int
    text: str
    locator: str


@dataclass(frozen=True)
class Headings:
    """Heading texts per level plus the flattened hierarchy."""
    h1: Tuple[str, ...] = ()
    h2: Tuple[str, ...] = ()
    h3: Tuple[str, ...] = ()
    h4: Tuple[str, ...] = ()
    h5: Tuple[str, ...] = ()
    h6: Tuple[str, ...] = ()
    hierarchy: Tuple[HeadingEntry, ...] = ()

    def count(self, level: int) -> int:
        """Number of headings at the given level (1-6)."""
        return len(getattr(self, f"h{level}"))

    @property
    def total(self) -> int:
        return len(self.hierarchy)


@dataclass(frozen=True)
class ContentStats:
    """Quantitative description of the visible text."""
    word_count: int = 0
    readability_score: float = 0.0
    readability_grade: str = "N/A"
    sentence_count: int = 0
    keyword_density: Dict[str, float] = field(default_factory=dict)
    paragraph_count: int = 0
    list_count: int = 0
    text_to_html_ratio: float = 0.0
    language: str = "en"
    internal_links: int = 0
    external_links: int = 0
    text_length: int = 0
    html_length: int = 0


@dataclass(frozen=True)
class ImageInfo:
    """A single <img> element."""
    src: str
    alt: Optional[str] = None
    width: Optional[str] = None
    height: Optional[str] = None
    file_size: Optional[int] = None  # bytes, only when measured by the host
    format: str = "unknown"
    loading: Optional[str] = None
    locator: str = "img"

    @property
    def has_alt(self) -> bool:
        return self.alt is not None and self.alt.strip() != ""


@dataclass(frozen=True)
class ImageStats:
    """Image inventory of a page."""
    total_images: int = 0
    images_with_alt: int = 0
    images_without_alt: int = 0
    images_with_empty_alt: int = 0
    images_with_good_alt: int = 0
    images_missing_dimensions: int = 0
    lazy_images: int = 0
    image_formats: Dict[str, int] = field(default_factory=dict)
    large_images: Tuple[ImageInfo, ...] = ()
    broken_images: Tuple[str, ...] = ()
    average_file_size: Optional[int] = None
    images: Tuple[ImageInfo, ...] = ()

    @property
    def missing_alt_ratio(self) -> float:
        if self.total_images == 0:
            return 0.0
        return self.images_without_alt / self.total_images


@dataclass(frozen=True)
class LinkInfo:
    """A single <a href> element."""
    href: str
    text: str = ""
    is_internal: bool = False
    is_external: bool = False
    nofollow: bool = False
    kind: str = "internal"  # internal, anchor, external, mailto, tel, javascript, other
    locator: str = "a"


@dataclass(frozen=True)
class LinkStats:
    """Links grouped by classification. A link may appear in several groups."""
    internal: Tuple[LinkInfo, ...] = ()
    external: Tuple[LinkInfo, ...] = ()
    anchor: Tuple[LinkInfo, ...] = ()
    mailto: Tuple[LinkInfo, ...] = ()
    tel: Tuple[LinkInfo, ...] = ()
    nofollow: Tuple[LinkInfo, ...] = ()
    broken: Tuple[LinkInfo, ...] = ()
    total: int = 0


@dataclass(frozen=True)
class ResourceCount:
    scripts: int = 0
    stylesheets: int = 0
    images: int = 0
    fonts: int = 0
    total: int = 0


@dataclass(frozen=True)
class PerformanceMetrics:
    """Timings in milliseconds, sizes in bytes.

    Core Web Vitals are copied from host measurements only and are None
    when nothing was measured.
    """
    page_size: int = 0
    load_time: float = 0.0
    dom_content_loaded: float = 0.0
    first_contentful_paint: Optional[float] = None
    largest_contentful_paint: Optional[float] = None
    cumulative_layout_shift: Optional[float] = None
    first_input_delay: Optional[float] = None
    resource_count: ResourceCount = field(default_factory=ResourceCount)
    timing_available: bool = False


@dataclass(frozen=True)
class PageAnalysis:
    """Immutable result of analyzing one page at one moment.

    Every section is always present; sections that were not extracted hold
    their empty defaults.
    """
    url: str
    timestamp: datetime = field(default_factory=datetime.now)
    meta_tags: MetaTags = field(default_factory=MetaTags)
    headings: Headings = field(default_factory=Headings)
    content: ContentStats = field(default_factory=ContentStats)
    images: ImageStats = field(default_factory=ImageStats)
    links: LinkStats = field(default_factory=LinkStats)
    performance: PerformanceMetrics = field(default_factory=PerformanceMetrics)

    @classmethod
    def empty(cls, url: str) -> "PageAnalysis":
        return cls(url=url)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-ready dictionary."""
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


# Empty section factories keyed by PageAnalysis field name
SECTION_DEFAULTS = {
    "meta_tags": MetaTags,
    "headings": Headings,
    "content": ContentStats,
    "images": ImageStats,
    "links": LinkStats,
    "performance": PerformanceMetrics,
}


@dataclass(frozen=True)
class RuleResult:
    """Outcome of one rule predicate."""
    passed: bool
    score: float
    severity: Severity
    message: str = ""
    recommendation: str = ""
    locator: Optional[str] = None


@dataclass(frozen=True)
class SEOIssue:
    """A failed rule, phrased for the reader."""
    id: str
    category: Category
    severity: Severity
    title: str
    description: str
    recommendation: str
    current_value: str
    expected_value: str
    impact: str
    weight: float
    locator: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        data["severity"] = self.severity.value
        return data


@dataclass(frozen=True)
class SEOScore:
    """Integer scores in [0, 100]."""
    overall: int
    technical: int
    content: int
    performance: int
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "technical": self.technical,
            "content": self.content,
            "performance": self.performance,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class AISuggestions:
    """Suggestions produced by an external language model, attached verbatim."""
    title_optimization: str = ""
    meta_description_suggestion: str = ""
    content_improvements: List[str] = field(default_factory=list)
    keyword_suggestions: List[str] = field(default_factory=list)
    structure_recommendations: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AISuggestions":
        return cls(
            title_optimization=data.get("title_optimization", ""),
            meta_description_suggestion=data.get("meta_description_suggestion", ""),
            content_improvements=list(data.get("content_improvements", [])),
            keyword_suggestions=list(data.get("keyword_suggestions", [])),
            structure_recommendations=list(data.get("structure_recommendations", [])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SEOReport:
    """Everything known about one evaluated page."""
    id: str
    url: str
    timestamp: datetime
    score: SEOScore
    issues: List[SEOIssue]
    analysis: PageAnalysis
    grade: str
    interpretation: str
    improvements: List[Dict[str, Any]] = field(default_factory=list)
    suggestions: Optional[AISuggestions] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-ready dictionary."""
        return {
            "id": self.id,
            "url": self.url,
            "timestamp": self.timestamp.isoformat(),
            "score": self.score.to_dict(),
            "grade": self.grade,
            "interpretation": self.interpretation,
            "issues": [issue.to_dict() for issue in self.issues],
            "improvements": self.improvements,
            "suggestions": self.suggestions.to_dict() if self.suggestions else None,
            "analysis": self.analysis.to_dict(),
        }
