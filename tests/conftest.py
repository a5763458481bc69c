# tests/conftest.py
"""Shared fixtures: synthetic pages built from predictable vocabulary."""

from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence, Tuple

import pytest

from pagescore.cache import CacheManager
from pagescore.config import MonitorOptions
from pagescore.document import Document

CONSONANTS = "bcdfghklmnprstvz"

BASE_URL = "https://shop.example.com/mugs"

GOOD_TITLE = "Handmade Ceramic Mugs and Bowls for Every Day"
GOOD_DESCRIPTION = ("Shop handmade ceramic mugs and bowls, " * 5)[:139] + "."


def word(index: int) -> str:
    """A unique one-syllable word: consonant, 'a', consonant, consonant."""
    return (
        CONSONANTS[index % 16]
        + "a"
        + CONSONANTS[(index // 16) % 16]
        + CONSONANTS[(index // 256) % 16]
    )


def make_text(count: int, start: int = 0, sentence_length: int = 10) -> str:
    """count unique words split into sentences of sentence_length words."""
    words = [word(i) for i in range(start, start + count)]
    sentences = [
        " ".join(words[i:i + sentence_length]) + "."
        for i in range(0, len(words), sentence_length)
    ]
    return " ".join(sentences)


def build_page(
    title: Optional[str] = GOOD_TITLE,
    description: Optional[str] = GOOD_DESCRIPTION,
    h1s: Sequence[str] = ("Ceramic studio",),
    h2s: Sequence[str] = ("Glazes",),
    word_count: int = 400,
    images: Iterable[Tuple[str, Optional[str]]] = (),
    internal_links: int = 3,
    external_links: int = 1,
    lang: Optional[str] = "en",
    viewport: bool = True,
    canonical: Optional[str] = BASE_URL,
    og: bool = True,
    robots: Optional[str] = "index, follow",
    extra_head: str = "",
    extra_body: str = "",
) -> str:
    """Assemble a complete HTML page from the given parts."""
    head = ['<meta charset="utf-8">']
    if title is not None:
        head.append(f"<title>{title}</title>")
    if description is not None:
        head.append(f'<meta name="description" content="{description}">')
    if viewport:
        head.append('<meta name="viewport" content="width=device-width, initial-scale=1">')
    if canonical:
        head.append(f'<link rel="canonical" href="{canonical}">')
    if og:
        head.append('<meta property="og:title" content="Ceramic mugs">')
        head.append('<meta property="og:description" content="Handmade mugs">')
        head.append('<meta property="og:image" content="https://shop.example.com/og.png">')
    if robots:
        head.append(f'<meta name="robots" content="{robots}">')
    head.append(extra_head)

    body = [f"<h1>{text}</h1>" for text in h1s]
    body.extend(f"<h2>{text}</h2>" for text in h2s)
    if word_count:
        body.append(f"<p>{make_text(word_count)}</p>")
    for src, alt in images:
        alt_attr = "" if alt is None else f' alt="{alt}"'
        body.append(f'<img src="{src}"{alt_attr} width="100" height="100">')
    for i in range(internal_links):
        body.append(f'<a href="/page-{i}">{word(3000 + i)}</a>')
    for i in range(external_links):
        body.append(f'<a href="https://partner{i}.example.org/">{word(3500 + i)}</a>')
    body.append(extra_body)

    lang_attr = f' lang="{lang}"' if lang else ""
    return (
        f"<!DOCTYPE html><html{lang_attr}><head>{''.join(head)}</head>"
        f"<body>{''.join(body)}</body></html>"
    )


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def good_html():
    """A page that follows every rule in the default catalog."""
    return build_page(images=[("/img/mug.jpg", "Blue hand thrown ceramic mug")])


@pytest.fixture
def good_document(good_html):
    return Document(good_html, url=BASE_URL)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheManager(ttl_seconds=300, max_size=50, clock=clock)


@pytest.fixture
def fast_monitor_options():
    return MonitorOptions(debounce_seconds=0.01)
