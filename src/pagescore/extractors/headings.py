"""Heading structure extraction."""

from typing import Dict, List

from pagescore.document import Document
from pagescore.extractors.base import Extractor
from pagescore.models import HeadingEntry, Headings

HEADING_TAGS = ['h1', 'h2', 'h3', 'h4', 'h5', 'h6']


class HeadingsExtractor(Extractor):
    """Collects non-empty headings per level and in document order."""

    section = "headings"

    def extract(self, document: Document, url: str = "") -> Headings:
        levels: Dict[int, List[str]] = {level: [] for level in range(1, 7)}
        seen: Dict[int, int] = {level: 0 for level in range(1, 7)}
        hierarchy: List[HeadingEntry] = []

        for element in document.soup.find_all(HEADING_TAGS):
            level = int(element.name[1])
            seen[level] += 1
            text = element.get_text(' ', strip=True)
            if not text:
                continue

            if element.get('id'):
                locator = f"#{element['id']}"
            else:
                locator = f"{element.name}:nth-of-type({seen[level]})"

            levels[level].append(text)
            hierarchy.append(HeadingEntry(level=level, text=text, locator=locator))

        return Headings(
            h1=tuple(levels[1]),
            h2=tuple(levels[2]),
            h3=tuple(levels[3]),
            h4=tuple(levels[4]),
            h5=tuple(levels[5]),
            h6=tuple(levels[6]),
            hierarchy=tuple(hierarchy),
        )


def extract(document: Document, url: str = "") -> Headings:
    return HeadingsExtractor().extract(document, url)
