"""Metric extractors, one per PageAnalysis section."""

from typing import Dict

from pagescore.extractors.base import Extractor
from pagescore.extractors.content import ContentExtractor
from pagescore.extractors.headings import HeadingsExtractor
from pagescore.extractors.images import ImagesExtractor
from pagescore.extractors.links import LinksExtractor
from pagescore.extractors.meta_tags import MetaTagsExtractor
from pagescore.extractors.performance import PerformanceExtractor


def default_extractors() -> Dict[str, Extractor]:
    """Fresh extractor instances keyed by PageAnalysis field name, in run order."""
    extractors = [
        MetaTagsExtractor(),
        HeadingsExtractor(),
        ContentExtractor(),
        ImagesExtractor(),
        LinksExtractor(),
        PerformanceExtractor(),
    ]
    return {extractor.section: extractor for extractor in extractors}


__all__ = [
    "Extractor",
    "ContentExtractor",
    "HeadingsExtractor",
    "ImagesExtractor",
    "LinksExtractor",
    "MetaTagsExtractor",
    "PerformanceExtractor",
    "default_extractors",
]
