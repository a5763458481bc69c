"""Head metadata extraction: title, meta tags, social tags, structured data."""

import json
import logging
from typing import Any, Dict, List

from bs4 import BeautifulSoup

from pagescore.document import Document
from pagescore.extractors.base import Extractor
from pagescore.models import MetaTags
from pagescore.utils import as_list

logger = logging.getLogger(__name__)

# Named meta tags copied into MetaTags fields
NAMED_META = ('description', 'keywords', 'robots', 'viewport')


class MetaTagsExtractor(Extractor):
    """Extracts title, named meta tags, Open Graph, Twitter and structured data."""

    section = "meta_tags"

    def extract(self, document: Document, url: str = "") -> MetaTags:
        soup = document.soup

        title = ""
        title_tag = soup.find('title')
        if title_tag:
            title = title_tag.get_text(strip=True)

        named: Dict[str, str] = {}
        og_tags: Dict[str, str] = {}
        twitter_tags: Dict[str, str] = {}
        charset = ""

        for meta in soup.find_all('meta'):
            name = (meta.get('name') or '').strip().lower()
            prop = (meta.get('property') or '').strip().lower()
            http_equiv = (meta.get('http-equiv') or '').strip().lower()
            content = (meta.get('content') or '').strip()

            if meta.get('charset') and not charset:
                charset = meta['charset'].strip()
            elif http_equiv == 'content-type' and 'charset=' in content.lower() and not charset:
                charset = content.lower().split('charset=', 1)[1].strip()

            if name in NAMED_META and name not in named:
                named[name] = content

            if prop.startswith('og:'):
                og_tags[prop[3:]] = content

            twitter_key = name if name.startswith('twitter:') else prop
            if twitter_key.startswith('twitter:'):
                twitter_tags[twitter_key[8:]] = content

        canonical = ""
        for link in soup.find_all('link'):
            rels = [rel.lower() for rel in as_list(link.get('rel'))]
            if 'canonical' in rels:
                canonical = (link.get('href') or '').strip()
                break

        lang = ""
        if soup.html is not None:
            lang = (soup.html.get('lang') or '').strip()

        return MetaTags(
            title=title,
            description=named.get('description', ''),
            keywords=named.get('keywords', ''),
            canonical=canonical,
            robots=named.get('robots', ''),
            viewport=named.get('viewport', ''),
            charset=charset,
            lang=lang,
            og_tags=og_tags,
            twitter_tags=twitter_tags,
            structured_data=extract_structured_data(soup, url),
        )


def extract_structured_data(soup: BeautifulSoup, url: str = "") -> List[Dict[str, Any]]:
    """Collect JSON-LD blocks and microdata items.

    Invalid JSON-LD blocks are skipped with a warning.

    Args:
        soup: Parsed document
        url: Page URL, for log messages

    Returns:
        List of {'type': 'json-ld', 'data': ...} and
        {'type': 'microdata', 'item_type': ..., 'data': {...}} records
    """
    blocks: List[Dict[str, Any]] = []

    for script in soup.find_all('script', attrs={'type': 'application/ld+json'}):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            blocks.append({'type': 'json-ld', 'data': json.loads(raw)})
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping invalid JSON-LD on {url or 'page'}: {e}")

    for item in soup.find_all(attrs={'itemscope': True}):
        item_type = item.get('itemtype')
        if not item_type:
            continue
        properties: Dict[str, str] = {}
        for prop in item.find_all(attrs={'itemprop': True}):
            value = prop.get('content') or prop.get('href') or prop.get_text(strip=True)
            properties[prop['itemprop']] = value
        blocks.append({'type': 'microdata', 'item_type': item_type, 'data': properties})

    return blocks


def extract(document: Document, url: str = "") -> MetaTags:
    return MetaTagsExtractor().extract(document, url)
