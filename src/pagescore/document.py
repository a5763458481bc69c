"""Live document handle: parsed HTML plus the facts a host measured about it."""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from bs4 import BeautifulSoup

from pagescore.constants import NON_CONTENT_TAGS
from pagescore.exceptions import AssemblyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationTiming:
    """Navigation timing measured by the host, in milliseconds from navigation start.

    Any field left as None was not measured.
    """
    load_time: Optional[float] = None
    dom_content_loaded: Optional[float] = None
    response_time: Optional[float] = None
    first_contentful_paint: Optional[float] = None
    largest_contentful_paint: Optional[float] = None
    cumulative_layout_shift: Optional[float] = None
    first_input_delay: Optional[float] = None


@dataclass(frozen=True)
class MutationRecord:
    """One observed change to the document."""
    kind: str  # childList, attributes or characterData
    target: str = "document"
    detail: Optional[str] = None


MutationCallback = Callable[[List[MutationRecord]], None]


class Document:
    """An HTML document that can be analyzed, mutated and observed.

    The soup is parsed lazily and reparsed after every mutation. Observers
    registered with observe() receive each batch of mutation records.
    """

    def __init__(
        self,
        html: str,
        url: str = "",
        timing: Optional[NavigationTiming] = None,
        resource_sizes: Optional[Dict[str, int]] = None,
    ):
        """
        Args:
            html: Full page markup
            url: Address the markup was loaded from
            timing: Navigation timing, if the host measured it
            resource_sizes: Known byte sizes of subresources keyed by URL
        """
        self._html = html
        self.url = url
        self.timing = timing
        self.resource_sizes: Dict[str, int] = dict(resource_sizes or {})
        self._soup: Optional[BeautifulSoup] = None
        self._text: Optional[str] = None
        self._attached = True
        self._observers: List[MutationCallback] = []
        self.version = 0

    @property
    def html(self) -> str:
        self._ensure_attached()
        return self._html

    @property
    def soup(self) -> BeautifulSoup:
        """Shared parse tree. Callers must not modify it."""
        self._ensure_attached()
        if self._soup is None:
            self._soup = BeautifulSoup(self._html, "html.parser")
        return self._soup

    def fresh_soup(self) -> BeautifulSoup:
        """A private parse tree the caller may modify."""
        self._ensure_attached()
        return BeautifulSoup(self._html, "html.parser")

    def visible_text(self) -> str:
        """Body text without script, style and noscript content, whitespace collapsed."""
        if self._text is None:
            soup = self.fresh_soup()
            for tag in soup.find_all(NON_CONTENT_TAGS):
                tag.decompose()
            body = soup.body or soup
            self._text = body.get_text(' ', strip=True)
        return self._text

    @property
    def is_attached(self) -> bool:
        return self._attached

    def detach(self) -> None:
        """Mark the document as gone. Later reads raise AssemblyError."""
        self._attached = False
        self._soup = None
        self._text = None
        logger.debug(f"Document {self.url} detached")

    def _ensure_attached(self) -> None:
        if not self._attached:
            raise AssemblyError(f"Document {self.url or '<anonymous>'} is detached")

    # -- mutation ---------------------------------------------------------

    def update(self, html: str, records: Optional[List[MutationRecord]] = None) -> None:
        """Replace the markup and notify observers.

        Args:
            html: New page markup
            records: Mutation records to deliver; defaults to one childList record
        """
        self._ensure_attached()
        self._html = html
        self._soup = None
        self._text = None
        self.version += 1
        self._notify(records or [MutationRecord(kind="childList")])

    def set_title(self, title: str) -> None:
        """Change the <title> text, creating the element if needed."""
        soup = self.fresh_soup()
        if soup.title is None:
            head = soup.head
            if head is None:
                head = soup.new_tag("head")
                if soup.html is not None:
                    soup.html.insert(0, head)
                else:
                    soup.insert(0, head)
            head.append(soup.new_tag("title"))
        soup.title.string = title
        self.update(str(soup), [MutationRecord(kind="characterData", target="title", detail=title)])

    # -- observation ------------------------------------------------------

    def observe(self, callback: MutationCallback) -> Callable[[], None]:
        """Register a mutation observer.

        Returns:
            A function that removes the observer
        """
        self._observers.append(callback)

        def disconnect() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return disconnect

    def _notify(self, records: List[MutationRecord]) -> None:
        for callback in list(self._observers):
            callback(records)
