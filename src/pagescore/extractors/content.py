"""Visible text statistics: word count, readability, keywords, language."""

from pagescore.constants import CJK_LANGUAGE_RATIO
from pagescore.document import Document
from pagescore.extractors.base import Extractor
from pagescore.extractors.links import classify_link
from pagescore.extractors.text import (
    cjk_ratio,
    count_sentences,
    count_text_syllables,
    count_words,
    flesch_reading_ease,
    keyword_density,
    score_to_grade,
)
from pagescore.models import ContentStats
from pagescore.utils import round_half_up


class ContentExtractor(Extractor):
    """Measures the visible text of a page.

    Script, style and noscript subtrees are removed before measuring.
    """

    section = "content"

    def extract(self, document: Document, url: str = "") -> ContentStats:
        page_url = url or document.url
        html = document.html
        soup = document.soup
        text = document.visible_text()

        word_count = count_words(text)
        sentence_count = count_sentences(text)
        readability = flesch_reading_ease(
            word_count, sentence_count, count_text_syllables(text)
        )

        internal = external = 0
        for anchor in soup.find_all('a', href=True):
            kind = classify_link(anchor['href'], page_url)
            if kind in ('internal', 'anchor'):
                internal += 1
            elif kind == 'external':
                external += 1

        ratio = 0.0
        if html:
            ratio = round_half_up(len(text) / len(html) * 100, 2)

        return ContentStats(
            word_count=word_count,
            readability_score=readability,
            readability_grade=score_to_grade(readability, word_count),
            sentence_count=sentence_count,
            keyword_density=keyword_density(text),
            paragraph_count=len(soup.find_all('p')),
            list_count=len(soup.find_all(['ul', 'ol'])),
            text_to_html_ratio=ratio,
            language=detect_language(soup, text),
            internal_links=internal,
            external_links=external,
            text_length=len(text),
            html_length=len(html),
        )


def detect_language(soup, text: str) -> str:
    """Declared language, else a guess from the share of CJK characters."""
    if soup.html is not None and soup.html.get('lang'):
        return soup.html['lang'].strip()

    for meta in soup.find_all('meta'):
        if (meta.get('http-equiv') or '').lower() == 'content-language' and meta.get('content'):
            return meta['content'].strip()

    if cjk_ratio(text) > CJK_LANGUAGE_RATIO:
        return 'zh'
    return 'en'


def extract(document: Document, url: str = "") -> ContentStats:
    return ContentExtractor().extract(document, url)
