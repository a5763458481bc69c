"""Link inventory and internal/external classification."""

from typing import List, Optional
from urllib.parse import urlparse

from pagescore.constants import LOCALHOST_NAMES, PLACEHOLDER_HREFS
from pagescore.document import Document
from pagescore.extractors.base import Extractor
from pagescore.utils import as_list
from pagescore.models import LinkInfo, LinkStats


def classify_link(href: str, page_url: str = "") -> str:
    """Classify an href relative to the page it appears on.

    Args:
        href: Raw href attribute value
        page_url: URL of the containing page

    Returns:
        One of 'internal', 'anchor', 'external', 'mailto', 'tel',
        'javascript' or 'other'
    """
    href = (href or '').strip()
    lowered = href.lower()

    if lowered.startswith('mailto:'):
        return 'mailto'
    if lowered.startswith('tel:'):
        return 'tel'
    if lowered.startswith('javascript:'):
        return 'javascript'
    if href.startswith('#'):
        return 'anchor'

    parsed = urlparse(href)
    if href.startswith('//') or parsed.scheme in ('http', 'https'):
        page_host = _hostname(page_url)
        if page_host and parsed.hostname and parsed.hostname.lower() == page_host:
            return 'internal'
        return 'external'

    if parsed.scheme:
        return 'other'

    # Relative paths resolve against the page itself
    return 'internal'


def is_potentially_broken(href: str, page_url: str = "") -> bool:
    """Flag hrefs that go nowhere, or point at localhost from a public page."""
    href = (href or '').strip()
    if href.lower() in PLACEHOLDER_HREFS:
        return True

    host = urlparse(href).hostname if '//' in href else None
    if host and host.lower() in LOCALHOST_NAMES:
        return _hostname(page_url) not in LOCALHOST_NAMES
    return False


def _hostname(url: str) -> Optional[str]:
    if not url:
        return None
    host = urlparse(url).hostname
    return host.lower() if host else None


class LinksExtractor(Extractor):
    """Builds the link inventory of a page."""

    section = "links"

    def extract(self, document: Document, url: str = "") -> LinkStats:
        page_url = url or document.url
        groups = {
            'internal': [], 'external': [], 'anchor': [], 'mailto': [],
            'tel': [], 'nofollow': [], 'broken': [],
        }
        links: List[LinkInfo] = []

        for index, anchor in enumerate(document.soup.find_all('a', href=True), start=1):
            href = anchor['href'].strip()
            kind = classify_link(href, page_url)
            rels = [rel.lower() for rel in as_list(anchor.get('rel'))]

            info = LinkInfo(
                href=href,
                text=anchor.get_text(' ', strip=True),
                is_internal=kind in ('internal', 'anchor'),
                is_external=kind == 'external',
                nofollow='nofollow' in rels,
                kind=kind,
                locator=_locator(anchor, href, index),
            )
            links.append(info)

            if info.is_internal:
                groups['internal'].append(info)
            if info.is_external:
                groups['external'].append(info)
            if kind in ('anchor', 'mailto', 'tel'):
                groups[kind].append(info)
            if info.nofollow:
                groups['nofollow'].append(info)
            if is_potentially_broken(href, page_url):
                groups['broken'].append(info)

        return LinkStats(
            total=len(links),
            **{name: tuple(items) for name, items in groups.items()},
        )


def _locator(anchor, href: str, index: int) -> str:
    if anchor.get('id'):
        return f"#{anchor['id']}"
    classes = as_list(anchor.get('class'))
    if classes:
        return f"a.{classes[0]}"
    if href:
        return f'a[href="{href}"]'
    return f"a:nth-of-type({index})"


def extract(document: Document, url: str = "") -> LinkStats:
    return LinksExtractor().extract(document, url)
