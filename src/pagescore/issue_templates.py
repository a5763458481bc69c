"""Reader-facing text for failed rules, keyed by rule id.

Templates are plain lookups; nothing here calls out to a model. Expected
values are formatted with the active thresholds and current values are
computed from the analysis.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Optional

from pagescore.config import AnalysisThresholds, default_thresholds
from pagescore.models import PageAnalysis, RuleResult, SEOIssue

if TYPE_CHECKING:
    from pagescore.rules import Rule


@dataclass(frozen=True)
class IssueTemplate:
    title: str
    description: str
    recommendation: str
    expected_value: str
    impact: str
    current_value: Callable[[PageAnalysis], str]
    locator: Optional[str] = None


def _missing_alt(analysis: PageAnalysis) -> str:
    images = analysis.images
    return f"{images.images_without_alt} of {images.total_images} images missing alt text"


def _densest_keyword(analysis: PageAnalysis) -> str:
    density = analysis.content.keyword_density
    if not density:
        return "No repeated keywords"
    keyword, value = max(density.items(), key=lambda item: item[1])
    return f"'{keyword}' at {value}%"


def _heading_outline(analysis: PageAnalysis) -> str:
    headings = analysis.headings
    counts = [f"H{level}: {headings.count(level)}" for level in range(1, 7) if headings.count(level)]
    return ", ".join(counts) if counts else "No headings"


def _load_time(analysis: PageAnalysis) -> str:
    if not analysis.performance.timing_available:
        return "Not measured"
    return f"{analysis.performance.load_time:.0f} ms"


TEMPLATES: Dict[str, IssueTemplate] = {
    "title_exists": IssueTemplate(
        title="Missing page title",
        description="The page has no <title> tag. Search engines show the title as the headline of the result.",
        recommendation="Add a unique, descriptive <title> of {title_min_length}-{title_max_length} characters.",
        expected_value="A non-empty <title> tag",
        impact="Pages without a title rank poorly and get few clicks.",
        current_value=lambda a: "No title tag",
        locator="head > title",
    ),
    "title_length": IssueTemplate(
        title="Title length out of range",
        description="The title is outside the length search engines display in full.",
        recommendation="Rewrite the title to {title_min_length}-{title_max_length} characters with the main keyword first.",
        expected_value="{title_min_length}-{title_max_length} characters",
        impact="Short titles waste ranking signal; long titles are truncated in results.",
        current_value=lambda a: f"{len(a.meta_tags.title)} characters",
        locator="head > title",
    ),
    "meta_description_exists": IssueTemplate(
        title="Missing meta description",
        description="The page has no meta description, so search engines pick a snippet themselves.",
        recommendation="Add a meta description of {meta_description_min}-{meta_description_max} characters summarizing the page.",
        expected_value="A non-empty meta description",
        impact="A missing description lowers click-through rate from results.",
        current_value=lambda a: "No meta description",
        locator='meta[name="description"]',
    ),
    "meta_description_length": IssueTemplate(
        title="Meta description length out of range",
        description="The meta description is shorter or longer than what results display well.",
        recommendation="Adjust the meta description to {meta_description_min}-{meta_description_max} characters.",
        expected_value="{meta_description_min}-{meta_description_max} characters",
        impact="Snippets that are too short or truncated attract fewer clicks.",
        current_value=lambda a: f"{len(a.meta_tags.description)} characters",
        locator='meta[name="description"]',
    ),
    "h1_exists": IssueTemplate(
        title="Missing H1 heading",
        description="The page has no H1 heading describing its main topic.",
        recommendation="Add exactly one H1 that states the topic of the page.",
        expected_value="One H1 heading",
        impact="Without an H1, search engines have a weaker signal of what the page is about.",
        current_value=lambda a: "0 H1 headings",
        locator="h1",
    ),
    "h1_unique": IssueTemplate(
        title="Multiple H1 headings",
        description="More than one H1 dilutes the main topic of the page.",
        recommendation="Keep a single H1 and demote the others to H2.",
        expected_value="One H1 heading",
        impact="Competing H1 headings blur the page topic.",
        current_value=lambda a: f"{a.headings.count(1)} H1 headings",
        locator="h1",
    ),
    "images_alt": IssueTemplate(
        title="Images missing alt text",
        description="Some images have no alt text, so screen readers and image search cannot describe them.",
        recommendation="Add short descriptive alt text to every meaningful image.",
        expected_value="0 images missing alt text",
        impact="Missing alt text hurts accessibility and image search visibility.",
        current_value=_missing_alt,
        locator='img:not([alt]), img[alt=""]',
    ),
    "canonical_url": IssueTemplate(
        title="Canonical URL problem",
        description="The canonical link is missing, invalid or points to another host.",
        recommendation="Add <link rel=\"canonical\"> with the absolute URL of this page.",
        expected_value="An absolute canonical URL on the same host",
        impact="Duplicate content may split ranking signals across URLs.",
        current_value=lambda a: a.meta_tags.canonical or "No canonical link",
        locator='link[rel="canonical"]',
    ),
    "mobile_friendly": IssueTemplate(
        title="Missing mobile viewport",
        description="The page has no usable viewport meta tag and will render zoomed out on phones.",
        recommendation='Add <meta name="viewport" content="width=device-width, initial-scale=1">.',
        expected_value="width=device-width",
        impact="Mobile-first indexing penalizes pages that are not mobile friendly.",
        current_value=lambda a: a.meta_tags.viewport or "No viewport meta tag",
        locator='meta[name="viewport"]',
    ),
    "open_graph": IssueTemplate(
        title="Incomplete Open Graph tags",
        description="Social networks use Open Graph tags to build link previews.",
        recommendation="Add og:title, og:description and og:image.",
        expected_value="og:title, og:description and og:image",
        impact="Shared links show poor previews and get fewer clicks.",
        current_value=lambda a: f"{len(a.meta_tags.og_tags)} Open Graph tags",
        locator='meta[property^="og:"]',
    ),
    "robots_meta": IssueTemplate(
        title="Robots meta tag problem",
        description="The robots meta tag is missing or prevents indexing.",
        recommendation='Add <meta name="robots" content="index, follow"> unless the page should stay hidden.',
        expected_value="index, follow",
        impact="A noindex directive removes the page from search results.",
        current_value=lambda a: a.meta_tags.robots or "No robots meta tag",
        locator='meta[name="robots"]',
    ),
    "lang_attribute": IssueTemplate(
        title="Missing language attribute",
        description="The <html> element does not declare the page language.",
        recommendation='Add a lang attribute such as <html lang="en">.',
        expected_value="A lang attribute on <html>",
        impact="Search engines may serve the page to the wrong audience.",
        current_value=lambda a: "No lang attribute",
        locator="html[lang]",
    ),
    "content_length": IssueTemplate(
        title="Thin content",
        description="The page has little text for search engines to understand and rank.",
        recommendation="Expand the content to at least {min_word_count} words of useful text.",
        expected_value="At least {min_word_count} words",
        impact="Thin pages rarely rank for competitive queries.",
        current_value=lambda a: f"{a.content.word_count} words",
        locator="body",
    ),
    "readability": IssueTemplate(
        title="Hard to read text",
        description="Long sentences and long words make the text hard to read.",
        recommendation="Use shorter sentences and plainer words.",
        expected_value="Readability score of at least {min_readability}",
        impact="Hard text increases bounce rate.",
        current_value=lambda a: f"{a.content.readability_score} ({a.content.readability_grade})",
        locator="body",
    ),
    "text_html_ratio": IssueTemplate(
        title="Low text to HTML ratio",
        description="Markup outweighs visible text on this page.",
        recommendation="Add text content or remove unnecessary markup and inline code.",
        expected_value="At least {min_text_html_ratio}%",
        impact="Markup-heavy pages load slower and carry less content signal.",
        current_value=lambda a: f"{a.content.text_to_html_ratio}%",
        locator="body",
    ),
    "internal_links": IssueTemplate(
        title="Internal linking problem",
        description="The page links to too few or too many other pages on the site.",
        recommendation="Link to {min_internal_links}-{max_internal_links} related pages on this site.",
        expected_value="{min_internal_links}-{max_internal_links} internal links",
        impact="Weak internal linking limits crawling and ranking signal flow.",
        current_value=lambda a: f"{len(a.links.internal)} internal links",
        locator="a[href]",
    ),
    "heading_structure": IssueTemplate(
        title="Poor heading structure",
        description="Headings are missing or skip levels.",
        recommendation="Use one H1, then H2 sections, then H3 subsections without skipping levels.",
        expected_value="One H1, at least one H2, no skipped levels",
        impact="A flat or broken outline makes the page harder to scan and index.",
        current_value=_heading_outline,
        locator="h1, h2, h3, h4, h5, h6",
    ),
    "external_links": IssueTemplate(
        title="External linking problem",
        description="The page has no outbound links, or a very large number of them.",
        recommendation="Link to {min_external_links}-{max_external_links} authoritative external sources.",
        expected_value="{min_external_links}-{max_external_links} external links",
        impact="Relevant outbound links add context and credibility.",
        current_value=lambda a: f"{len(a.links.external)} external links",
        locator="a[href]",
    ),
    "keyword_density": IssueTemplate(
        title="Keyword stuffing",
        description="A single keyword makes up an unusually large share of the text.",
        recommendation="Use the keyword naturally and add synonyms.",
        expected_value="At most {max_keyword_density}% per keyword",
        impact="Keyword stuffing can trigger ranking penalties.",
        current_value=_densest_keyword,
        locator="body",
    ),
    "page_size": IssueTemplate(
        title="Large page size",
        description="The page and its measured resources are heavy to download.",
        recommendation="Compress images, minify scripts and styles, and remove unused code.",
        expected_value="Under {max_page_size_bytes} bytes",
        impact="Heavy pages load slowly, especially on mobile networks.",
        current_value=lambda a: f"{a.performance.page_size} bytes",
    ),
    "load_time": IssueTemplate(
        title="Slow load time",
        description="The page took long to finish loading.",
        recommendation="Reduce server response time, defer scripts and cache static assets.",
        expected_value="Under {max_load_time_ms} ms",
        impact="Slow pages lose visitors and rank lower.",
        current_value=_load_time,
    ),
    "https_usage": IssueTemplate(
        title="Not served over HTTPS",
        description="The page is served over an insecure connection.",
        recommendation="Serve the page over HTTPS and redirect HTTP to it.",
        expected_value="https",
        impact="Browsers warn visitors and search engines prefer secure pages.",
        current_value=lambda a: a.url.split(":", 1)[0] if ":" in a.url else "unknown",
    ),
    "image_optimization": IssueTemplate(
        title="Images not optimized",
        description="Images are oversized or many of them lack alt text.",
        recommendation="Compress oversized images, serve modern formats and add alt text.",
        expected_value="No oversized images and under 10% missing alt text",
        impact="Unoptimized images slow the page and lose image search traffic.",
        current_value=lambda a: (
            f"{len(a.images.large_images)} oversized, {_missing_alt(a)}"
        ),
        locator="img",
    ),
    "resource_count": IssueTemplate(
        title="Too many resources",
        description="The page references many scripts, stylesheets, images and fonts.",
        recommendation="Bundle scripts and styles and lazy-load offscreen images.",
        expected_value="At most {max_resource_count} resources",
        impact="Every request adds latency.",
        current_value=lambda a: f"{a.performance.resource_count.total} resources",
        locator="head",
    ),
}


def build_issue(
    rule: "Rule",
    result: RuleResult,
    analysis: PageAnalysis,
    thresholds: Optional[AnalysisThresholds] = None,
) -> SEOIssue:
    """Phrase a failed rule result as an SEOIssue.

    Rules without a template (custom rules) fall back to the result's own
    message and recommendation.

    Args:
        rule: The failed rule
        result: Its result
        analysis: Analysis the rule was evaluated on
        thresholds: Thresholds used to format expected values

    Returns:
        The issue
    """
    values = (thresholds or default_thresholds).to_dict()
    template = TEMPLATES.get(rule.id)

    if template is None:
        return SEOIssue(
            id=rule.id,
            category=rule.category,
            severity=result.severity,
            title=rule.name,
            description=result.message,
            recommendation=result.recommendation,
            current_value=result.message,
            expected_value="",
            impact="",
            weight=rule.weight,
            locator=result.locator,
        )

    return SEOIssue(
        id=rule.id,
        category=rule.category,
        severity=result.severity,
        title=template.title,
        description=template.description,
        recommendation=template.recommendation.format(**values),
        current_value=template.current_value(analysis),
        expected_value=template.expected_value.format(**values),
        impact=template.impact,
        weight=rule.weight,
        locator=result.locator or template.locator,
    )
