"""Performance metrics from host-measured timing and the resource inventory."""

from pagescore.document import Document
from pagescore.extractors.base import Extractor
from pagescore.models import PerformanceMetrics, ResourceCount
from pagescore.utils import as_list


class PerformanceExtractor(Extractor):
    """Reads navigation timing and counts page resources.

    Never raises for missing timing: timings fall back to 0 and the
    Core Web Vitals stay None. Page size counts the HTML plus resources
    whose size the host actually measured.
    """

    section = "performance"

    def extract(self, document: Document, url: str = "") -> PerformanceMetrics:
        html = document.html
        page_size = len(html.encode('utf-8')) + sum(document.resource_sizes.values())

        timing = document.timing
        if timing is None:
            return PerformanceMetrics(
                page_size=page_size,
                resource_count=count_resources(document),
            )

        return PerformanceMetrics(
            page_size=page_size,
            load_time=timing.load_time or 0.0,
            dom_content_loaded=timing.dom_content_loaded or 0.0,
            first_contentful_paint=timing.first_contentful_paint,
            largest_contentful_paint=timing.largest_contentful_paint,
            cumulative_layout_shift=timing.cumulative_layout_shift,
            first_input_delay=timing.first_input_delay,
            resource_count=count_resources(document),
            timing_available=timing.load_time is not None,
        )


def count_resources(document: Document) -> ResourceCount:
    """Count scripts, stylesheets, images and preloaded fonts."""
    soup = document.soup
    scripts = len(soup.find_all('script'))
    stylesheets = len(soup.find_all('style'))
    fonts = 0

    for link in soup.find_all('link'):
        rels = [rel.lower() for rel in as_list(link.get('rel'))]
        if 'stylesheet' in rels:
            stylesheets += 1
        elif 'preload' in rels and (link.get('as') or '').lower() == 'font':
            fonts += 1

    images = len(soup.find_all('img'))
    return ResourceCount(
        scripts=scripts,
        stylesheets=stylesheets,
        images=images,
        fonts=fonts,
        total=scripts + stylesheets + images + fonts,
    )


def extract(document: Document, url: str = "") -> PerformanceMetrics:
    return PerformanceExtractor().extract(document, url)
