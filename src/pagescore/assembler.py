"""Page analysis assembler: runs the extractors and builds PageAnalysis."""

import asyncio
import dataclasses
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from pagescore.config import AnalysisOptions
from pagescore.document import Document
from pagescore.exceptions import AnalysisAbortedError, AssemblyError, ExtractionError
from pagescore.extractors import Extractor, default_extractors
from pagescore.models import SECTION_DEFAULTS, PageAnalysis

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, str], None]

# (PageAnalysis field, progress stage, AnalysisOptions flag, label)
STAGES: Tuple[Tuple[str, str, str, str], ...] = (
    ("meta_tags", "meta-tags", "include_meta_tags", "meta tags"),
    ("headings", "headings", "include_headings", "heading structure"),
    ("content", "content", "include_content", "content"),
    ("images", "images", "include_images", "images"),
    ("links", "links", "include_links", "links"),
    ("performance", "performance", "include_performance", "performance"),
)


class CancellationToken:
    """Cooperative cancellation flag checked between stages."""

    def __init__(self):
        self._cancelled = False
        self.reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self, stage: Optional[str] = None) -> None:
        if self._cancelled:
            raise AnalysisAbortedError(stage)


def report_progress(
    callback: Optional[ProgressCallback], stage: str, percent: int, message: str
) -> None:
    if callback is not None:
        callback(stage, percent, message)


class PageAssembler:
    """Runs the enabled extractors and assembles one PageAnalysis.

    A failing extractor is logged and its section falls back to the empty
    default; the other sections are still produced. A detached document
    fails the whole call.
    """

    def __init__(self, extractors: Optional[Dict[str, Extractor]] = None):
        """
        Args:
            extractors: Replacements for the default extractors, keyed by section
        """
        self.extractors = default_extractors()
        if extractors:
            self.extractors.update(extractors)

    async def assemble(
        self,
        document: Document,
        url: str,
        options: Optional[AnalysisOptions] = None,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> PageAnalysis:
        """Analyze document as url.

        Args:
            document: Document to analyze
            url: URL recorded on the analysis
            options: Which sections to extract
            token: Cancellation token checked before every stage
            progress: Callback receiving (stage, percent, message)

        Returns:
            A new PageAnalysis with every section present

        Raises:
            AssemblyError: If the document is detached
            AnalysisAbortedError: If token was cancelled
        """
        options = options or AnalysisOptions()
        self._check_attached(document)

        stages = [stage for stage in STAGES if getattr(options, stage[2])]
        sections = {}
        for position, (section, stage, _flag, label) in enumerate(stages):
            if token is not None:
                token.raise_if_cancelled(stage)
            report_progress(
                progress, stage, int(position * 100 / len(stages)), f"Analyzing {label}"
            )
            sections[section] = self.extract_section(section, document, url)
            await asyncio.sleep(0)

        if token is not None:
            token.raise_if_cancelled("complete")
        self._check_attached(document)

        analysis = PageAnalysis(url=url, timestamp=datetime.now(), **sections)
        report_progress(progress, "complete", 100, "Analysis complete")
        return analysis

    async def reassemble(
        self,
        document: Document,
        base: PageAnalysis,
        sections: Iterable[str],
        token: Optional[CancellationToken] = None,
    ) -> PageAnalysis:
        """Re-extract only the given sections and merge them into a copy of base.

        Sections not listed keep the identical objects from base.
        """
        self._check_attached(document)
        wanted = list(sections)
        fresh = {}
        for section, stage, _flag, _label in STAGES:
            if section not in wanted:
                continue
            if token is not None:
                token.raise_if_cancelled(stage)
            fresh[section] = self.extract_section(section, document, base.url)
            await asyncio.sleep(0)

        if token is not None:
            token.raise_if_cancelled("complete")
        self._check_attached(document)
        return dataclasses.replace(base, timestamp=datetime.now(), **fresh)

    def extract_section(self, section: str, document: Document, url: str):
        """Run one extractor, substituting the empty section on failure."""
        try:
            return self.extractors[section].extract(document, url)
        except AssemblyError:
            raise
        except Exception as e:
            error = ExtractionError(section, e)
            logger.warning(str(error))
            return SECTION_DEFAULTS[section]()

    @staticmethod
    def _check_attached(document: Document) -> None:
        if not document.is_attached:
            raise AssemblyError(f"Document {document.url or '<anonymous>'} is detached")


def sections_for_changes(changed: Iterable[str]) -> List[str]:
    """Map changed monitor sections to the PageAnalysis sections to re-extract.

    Content depends on links (link counts), and performance is re-derived
    whenever content, images or links changed.
    """
    changed = set(changed)
    sections = set()
    if "meta" in changed:
        sections.add("meta_tags")
    if "headings" in changed:
        sections.add("headings")
    if "content" in changed:
        sections.add("content")
    if "images" in changed:
        sections.add("images")
    if "links" in changed:
        sections.update(("links", "content"))
    if sections & {"content", "images", "links"}:
        sections.add("performance")
    return [stage[0] for stage in STAGES if stage[0] in sections]
