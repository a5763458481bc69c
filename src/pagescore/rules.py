"""Rule registry and the default catalog of weighted SEO rules.

Each rule is a total predicate over PageAnalysis returning a graded
RuleResult. Weights are relative within a category. Graded failure scores:

technical
    title_exists             missing 0 (critical)
    title_length             <10 chars 30 (high), <30 60, >60 70 (medium); n/a when missing
    meta_description_exists  missing 0 (critical)
    meta_description_length  <50 chars 40 (high), <120 or >160 70 (medium); n/a when missing
    h1_exists                none 0 (critical)
    h1_unique                more than one 50 (high)
    images_alt               missing share >50% 30 (high), >20% 70 (medium), >0 85 (low)
    canonical_url            missing 70 (medium), invalid 30 (high), other host 50 (high)
    mobile_friendly          no viewport 0 (high), no device-width 60 (medium)
    open_graph               none 40 (medium), missing title/description/image 80 (low)
    robots_meta              missing 60 (low), noindex 0 (high)
    lang_attribute           missing 0 (medium)

content
    content_length           <100 words 20 (high), <300 60 (medium)
    readability              below minimum 60 (low)
    text_html_ratio          <5% 40 (medium), below minimum 70 (medium)
    internal_links           none 40 (medium), below minimum 70 (medium), above maximum 80 (low)
    heading_structure        no headings 50 (medium), no h2 60 (medium), skipped level 70 (low)
    external_links           none 70 (low), above maximum 80 (low)
    keyword_density          densest keyword above maximum 50 (medium)

performance
    page_size                >5 MB 30 (high), >3 MB 60 (medium), above maximum 80 (medium)
    load_time                >2x maximum 30 (high), above maximum 60 (high); passes unmeasured
    https_usage              not https 0 (high)
    image_optimization       alt share and oversized images, 50-70 (medium)
    resource_count           above maximum 70 (low)
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, Iterable, List, Optional, Union
from urllib.parse import urlparse

from pagescore.config import AnalysisThresholds, default_thresholds
from pagescore.models import Category, PageAnalysis, RuleResult, Severity

logger = logging.getLogger(__name__)

RuleCheck = Callable[[PageAnalysis], RuleResult]

MEGABYTE = 1_000_000


@dataclass(frozen=True)
class Rule:
    """A named, weighted, categorized predicate over PageAnalysis."""
    id: str
    name: str
    category: Category
    weight: float
    severity: Severity
    check: RuleCheck

    def __post_init__(self):
        object.__setattr__(self, "category", Category(self.category))
        object.__setattr__(self, "severity", Severity(self.severity))
        if self.weight <= 0:
            raise ValueError(f"Rule '{self.id}' must have a positive weight, got {self.weight}")

    def evaluate(self, analysis: PageAnalysis) -> RuleResult:
        return self.check(analysis)


class RuleRegistry:
    """Ordered catalog of rules.

    Registering an id that already exists replaces the rule in its
    original position, so registration order stays stable.
    """

    def __init__(self, rules: Optional[Iterable[Rule]] = None):
        self._rules: Dict[str, Rule] = {}
        for rule in rules or []:
            self.register_rule(rule)

    @classmethod
    def with_default_rules(
        cls, thresholds: Optional[AnalysisThresholds] = None
    ) -> "RuleRegistry":
        """Registry preloaded with the default catalog."""
        return cls(default_rules(thresholds))

    def register_rule(self, rule: Rule) -> None:
        if rule.id in self._rules:
            logger.debug(f"Replacing rule {rule.id}")
        self._rules[rule.id] = rule

    def unregister_rule(self, rule_id: str) -> Optional[Rule]:
        return self._rules.pop(rule_id, None)

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def get_rules_by_category(self, category: Union[Category, str]) -> List[Rule]:
        """Rules of one category in registration order."""
        category = Category(category)
        return [rule for rule in self._rules.values() if rule.category == category]

    def all_rules(self) -> List[Rule]:
        return list(self._rules.values())

    def registration_index(self, rule_id: str) -> int:
        return list(self._rules).index(rule_id)

    def total_weight(self, category: Optional[Union[Category, str]] = None) -> float:
        """Sum of rule weights, optionally for one category."""
        rules = self.all_rules() if category is None else self.get_rules_by_category(category)
        return sum(rule.weight for rule in rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def __iter__(self):
        return iter(self._rules.values())


def _passed(message: str = "") -> RuleResult:
    return RuleResult(passed=True, score=100, severity=Severity.LOW, message=message)


def _failed(
    score: float,
    severity: Severity,
    message: str,
    recommendation: str = "",
    locator: Optional[str] = None,
) -> RuleResult:
    return RuleResult(
        passed=False,
        score=score,
        severity=severity,
        message=message,
        recommendation=recommendation,
        locator=locator,
    )


def _hostname(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


# =============================================================================
# Technical rules
# =============================================================================

def check_title_exists(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    if analysis.meta_tags.title:
        return _passed("Title tag present")
    return _failed(0, Severity.CRITICAL, "Page has no title", "Add a <title> tag", "head > title")


def check_title_length(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    title = analysis.meta_tags.title
    if not title:
        return _passed("No title to measure")

    length = len(title)
    if length < t.title_too_short_length:
        return _failed(30, Severity.HIGH, f"Title is only {length} characters", locator="head > title")
    if length < t.title_min_length:
        return _failed(60, Severity.MEDIUM, f"Title is short ({length} characters)", locator="head > title")
    if length > t.title_max_length:
        return _failed(70, Severity.MEDIUM, f"Title is long ({length} characters)", locator="head > title")
    return _passed(f"Title length {length} is within range")


def check_meta_description_exists(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    if analysis.meta_tags.description:
        return _passed("Meta description present")
    return _failed(
        0, Severity.CRITICAL, "Page has no meta description",
        "Add a meta description", 'meta[name="description"]',
    )


def check_meta_description_length(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    description = analysis.meta_tags.description
    if not description:
        return _passed("No meta description to measure")

    length = len(description)
    locator = 'meta[name="description"]'
    if length < 50:
        return _failed(40, Severity.HIGH, f"Meta description is only {length} characters", locator=locator)
    if length < t.meta_description_min or length > t.meta_description_max:
        return _failed(70, Severity.MEDIUM, f"Meta description is {length} characters", locator=locator)
    return _passed(f"Meta description length {length} is within range")


def check_h1_exists(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    if analysis.headings.count(1) > 0:
        return _passed("H1 present")
    return _failed(0, Severity.CRITICAL, "Page has no H1 heading", "Add one H1 heading", "h1")


def check_h1_unique(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    count = analysis.headings.count(1)
    if count <= 1:
        return _passed("At most one H1")
    return _failed(50, Severity.HIGH, f"Page has {count} H1 headings", locator="h1")


def check_images_alt(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    images = analysis.images
    if images.total_images == 0 or images.images_without_alt == 0:
        return _passed("All images have alt text")

    ratio = images.missing_alt_ratio
    message = f"{images.images_without_alt} of {images.total_images} images lack alt text"
    locator = 'img:not([alt]), img[alt=""]'
    if ratio > 0.5:
        return _failed(30, Severity.HIGH, message, locator=locator)
    if ratio > 0.2:
        return _failed(70, Severity.MEDIUM, message, locator=locator)
    return _failed(85, Severity.LOW, message, locator=locator)


def check_canonical_url(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    canonical = analysis.meta_tags.canonical
    locator = 'link[rel="canonical"]'
    if not canonical:
        return _failed(70, Severity.MEDIUM, "No canonical URL", locator="head")

    parsed = urlparse(canonical)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return _failed(30, Severity.HIGH, f"Canonical URL '{canonical}' is not absolute", locator=locator)

    page_host = _hostname(analysis.url)
    if page_host and _hostname(canonical) != page_host:
        return _failed(50, Severity.HIGH, f"Canonical URL points to {parsed.hostname}", locator=locator)
    return _passed("Canonical URL is valid")


def check_mobile_friendly(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    viewport = analysis.meta_tags.viewport
    if not viewport:
        return _failed(0, Severity.HIGH, "No viewport meta tag", locator="head")
    if "width=device-width" not in viewport.replace(" ", "").lower():
        return _failed(60, Severity.MEDIUM, "Viewport does not use device width", locator='meta[name="viewport"]')
    return _passed("Viewport configured")


def check_open_graph(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    og_tags = analysis.meta_tags.og_tags
    if not og_tags:
        return _failed(40, Severity.MEDIUM, "No Open Graph tags", locator="head")

    missing = [key for key in ("title", "description", "image") if not og_tags.get(key)]
    if missing:
        return _failed(
            80, Severity.LOW, f"Open Graph tags missing: {', '.join(missing)}",
            locator='meta[property^="og:"]',
        )
    return _passed("Open Graph tags present")


def check_robots_meta(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    robots = analysis.meta_tags.robots.lower()
    if not robots:
        return _failed(60, Severity.LOW, "No robots meta tag", locator="head")
    if "noindex" in robots:
        return _failed(0, Severity.HIGH, "Robots meta tag blocks indexing", locator='meta[name="robots"]')
    return _passed("Robots meta tag allows indexing")


def check_lang_attribute(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    if analysis.meta_tags.lang:
        return _passed("Language declared")
    return _failed(0, Severity.MEDIUM, "No lang attribute on <html>", locator="html")


# =============================================================================
# Content rules
# =============================================================================

def check_content_length(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    words = analysis.content.word_count
    if words < t.thin_content_word_count:
        return _failed(20, Severity.HIGH, f"Only {words} words of content", locator="body")
    if words < t.min_word_count:
        return _failed(60, Severity.MEDIUM, f"Only {words} words of content", locator="body")
    return _passed(f"{words} words of content")


def check_readability(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    content = analysis.content
    if content.word_count == 0 or content.readability_score >= t.min_readability:
        return _passed("Readable text")
    return _failed(60, Severity.LOW, f"Readability score {content.readability_score}", locator="body")


def check_text_html_ratio(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    ratio = analysis.content.text_to_html_ratio
    if ratio >= t.min_text_html_ratio:
        return _passed(f"Text/HTML ratio {ratio}%")
    if ratio < 5:
        return _failed(40, Severity.MEDIUM, f"Text/HTML ratio is {ratio}%", locator="body")
    return _failed(70, Severity.MEDIUM, f"Text/HTML ratio is {ratio}%", locator="body")


def check_internal_links(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    count = len(analysis.links.internal)
    if count == 0:
        return _failed(40, Severity.MEDIUM, "No internal links", locator="body")
    if count < t.min_internal_links:
        return _failed(70, Severity.MEDIUM, f"Only {count} internal links", locator="a[href]")
    if count > t.max_internal_links:
        return _failed(80, Severity.LOW, f"{count} internal links", locator="a[href]")
    return _passed(f"{count} internal links")


def check_heading_structure(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    headings = analysis.headings
    if headings.total == 0:
        return _failed(50, Severity.MEDIUM, "Page has no headings", locator="body")
    if headings.count(2) == 0:
        return _failed(60, Severity.MEDIUM, "No H2 subheadings", locator="h1")

    previous = None
    for entry in headings.hierarchy:
        if previous is not None and entry.level > previous + 1:
            return _failed(
                70, Severity.LOW, f"Heading level jumps from H{previous} to H{entry.level}",
                locator=entry.locator,
            )
        previous = entry.level
    return _passed("Heading levels are nested correctly")


def check_external_links(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    count = len(analysis.links.external)
    if count < t.min_external_links:
        return _failed(70, Severity.LOW, "No external links", locator="body")
    if count > t.max_external_links:
        return _failed(80, Severity.LOW, f"{count} external links", locator="a[href]")
    return _passed(f"{count} external links")


def check_keyword_density(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    density = analysis.content.keyword_density
    if not density:
        return _passed("No repeated keywords")

    keyword, value = max(density.items(), key=lambda item: item[1])
    if value > t.max_keyword_density:
        return _failed(50, Severity.MEDIUM, f"'{keyword}' makes up {value}% of the text", locator="body")
    return _passed(f"Densest keyword at {value}%")


# =============================================================================
# Performance rules
# =============================================================================

def check_page_size(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    size = analysis.performance.page_size
    megabytes = f"{size / MEGABYTE:.2f} MB"
    if size > 5 * MEGABYTE:
        return _failed(30, Severity.HIGH, f"Page weighs {megabytes}")
    if size > 3 * MEGABYTE:
        return _failed(60, Severity.MEDIUM, f"Page weighs {megabytes}")
    if size > t.max_page_size_bytes:
        return _failed(80, Severity.MEDIUM, f"Page weighs {megabytes}")
    return _passed(f"Page weighs {megabytes}")


def check_load_time(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    performance = analysis.performance
    if not performance.timing_available:
        return _passed("Load time not measured")

    load_time = performance.load_time
    if load_time >= 2 * t.max_load_time_ms:
        return _failed(30, Severity.HIGH, f"Page loaded in {load_time:.0f} ms")
    if load_time >= t.max_load_time_ms:
        return _failed(60, Severity.HIGH, f"Page loaded in {load_time:.0f} ms")
    return _passed(f"Page loaded in {load_time:.0f} ms")


def check_https_usage(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    if urlparse(analysis.url).scheme == "https":
        return _passed("Served over HTTPS")
    return _failed(0, Severity.HIGH, "Page is not served over HTTPS")


def check_image_optimization(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    images = analysis.images
    if images.total_images == 0:
        return _passed("No images")

    too_many_missing = images.missing_alt_ratio >= t.max_missing_alt_ratio
    oversized = len(images.large_images)
    if too_many_missing and oversized:
        return _failed(50, Severity.MEDIUM, f"{oversized} oversized images and missing alt text", locator="img")
    if oversized:
        return _failed(70, Severity.MEDIUM, f"{oversized} oversized images", locator=images.large_images[0].locator)
    if too_many_missing:
        return _failed(
            60, Severity.MEDIUM,
            f"{images.missing_alt_ratio:.0%} of images lack alt text",
            locator='img:not([alt]), img[alt=""]',
        )
    return _passed("Images optimized")


def check_resource_count(analysis: PageAnalysis, t: AnalysisThresholds) -> RuleResult:
    total = analysis.performance.resource_count.total
    if total > t.max_resource_count:
        return _failed(70, Severity.LOW, f"Page references {total} resources", locator="head")
    return _passed(f"{total} resources")


# (id, name, category, weight, severity, check)
DEFAULT_RULE_TABLE = (
    ("title_exists", "Title tag", Category.TECHNICAL, 15, Severity.CRITICAL, check_title_exists),
    ("title_length", "Title length", Category.TECHNICAL, 10, Severity.HIGH, check_title_length),
    ("meta_description_exists", "Meta description", Category.TECHNICAL, 15, Severity.CRITICAL, check_meta_description_exists),
    ("meta_description_length", "Meta description length", Category.TECHNICAL, 8, Severity.HIGH, check_meta_description_length),
    ("h1_exists", "H1 heading", Category.TECHNICAL, 15, Severity.CRITICAL, check_h1_exists),
    ("h1_unique", "Single H1", Category.TECHNICAL, 6, Severity.HIGH, check_h1_unique),
    ("images_alt", "Image alt text", Category.TECHNICAL, 8, Severity.MEDIUM, check_images_alt),
    ("canonical_url", "Canonical URL", Category.TECHNICAL, 5, Severity.MEDIUM, check_canonical_url),
    ("mobile_friendly", "Mobile viewport", Category.TECHNICAL, 6, Severity.HIGH, check_mobile_friendly),
    ("open_graph", "Open Graph tags", Category.TECHNICAL, 6, Severity.MEDIUM, check_open_graph),
    ("robots_meta", "Robots meta tag", Category.TECHNICAL, 3, Severity.LOW, check_robots_meta),
    ("lang_attribute", "Language attribute", Category.TECHNICAL, 3, Severity.MEDIUM, check_lang_attribute),
    ("content_length", "Content length", Category.CONTENT, 20, Severity.HIGH, check_content_length),
    ("readability", "Readability", Category.CONTENT, 8, Severity.LOW, check_readability),
    ("text_html_ratio", "Text to HTML ratio", Category.CONTENT, 12, Severity.MEDIUM, check_text_html_ratio),
    ("internal_links", "Internal links", Category.CONTENT, 10, Severity.MEDIUM, check_internal_links),
    ("heading_structure", "Heading structure", Category.CONTENT, 8, Severity.MEDIUM, check_heading_structure),
    ("external_links", "External links", Category.CONTENT, 8, Severity.LOW, check_external_links),
    ("keyword_density", "Keyword density", Category.CONTENT, 10, Severity.MEDIUM, check_keyword_density),
    ("page_size", "Page size", Category.PERFORMANCE, 25, Severity.MEDIUM, check_page_size),
    ("load_time", "Load time", Category.PERFORMANCE, 30, Severity.HIGH, check_load_time),
    ("https_usage", "HTTPS", Category.PERFORMANCE, 15, Severity.HIGH, check_https_usage),
    ("image_optimization", "Image optimization", Category.PERFORMANCE, 20, Severity.MEDIUM, check_image_optimization),
    ("resource_count", "Resource count", Category.PERFORMANCE, 10, Severity.LOW, check_resource_count),
)


def default_rules(thresholds: Optional[AnalysisThresholds] = None) -> List[Rule]:
    """Build the default catalog bound to the given thresholds."""
    thresholds = thresholds or default_thresholds
    return [
        Rule(
            id=rule_id,
            name=name,
            category=category,
            weight=weight,
            severity=severity,
            check=partial(check, t=thresholds),
        )
        for rule_id, name, category, weight, severity, check in DEFAULT_RULE_TABLE
    ]
