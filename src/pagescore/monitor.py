"""Change monitor: debounced mutation observation and change classification."""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, FrozenSet, List, Optional, Set, Union

from pagescore.config import MonitorOptions
from pagescore.constants import TEXT_LENGTH_CHANGE_RATIO
from pagescore.document import Document, MutationRecord
from pagescore.extractors.headings import HEADING_TAGS

logger = logging.getLogger(__name__)

# Sections a change can touch, named after the extractor groups
SECTIONS = ("meta", "headings", "content", "images", "links")


@dataclass(frozen=True)
class PageSnapshot:
    """The handful of document facts compared between checks."""
    title: str = ""
    description: str = ""
    heading_count: int = 0
    image_count: int = 0
    link_count: int = 0
    text_length: int = 0
    html_length: int = 0

    @classmethod
    def capture(cls, document: Document) -> "PageSnapshot":
        soup = document.soup
        description = ""
        for meta in soup.find_all('meta'):
            if (meta.get('name') or '').lower() == 'description':
                description = (meta.get('content') or '').strip()
                break

        return cls(
            title=soup.title.get_text(strip=True) if soup.title else "",
            description=description,
            heading_count=len(soup.find_all(HEADING_TAGS)),
            image_count=len(soup.find_all('img')),
            link_count=len(soup.find_all('a', href=True)),
            text_length=len(document.visible_text()),
            html_length=len(document.html),
        )


@dataclass(frozen=True)
class ChangeSet:
    sections: FrozenSet[str] = frozenset()

    @property
    def significant(self) -> bool:
        return bool(self.sections)


def classify_change(
    old: PageSnapshot,
    new: PageSnapshot,
    text_change_ratio: float = TEXT_LENGTH_CHANGE_RATIO,
) -> ChangeSet:
    """Decide which sections changed between two snapshots.

    Args:
        old: Snapshot taken at the last significant change
        new: Current snapshot
        text_change_ratio: Relative text length change that counts as a content change

    Returns:
        ChangeSet; significant when any section is flagged
    """
    sections: Set[str] = set()

    if old.title != new.title or old.description != new.description:
        sections.add("meta")
    if old.heading_count != new.heading_count:
        sections.add("headings")
    if old.image_count != new.image_count:
        sections.add("images")
    if old.link_count != new.link_count:
        sections.add("links")

    if old.text_length == 0:
        if new.text_length > 0:
            sections.add("content")
    elif abs(new.text_length - old.text_length) / old.text_length > text_change_ratio:
        sections.add("content")

    return ChangeSet(sections=frozenset(sections))


@dataclass(frozen=True)
class SignificantChange:
    """Published when a debounced batch of mutations changed the page meaningfully."""
    url: str
    sections: FrozenSet[str]
    previous: PageSnapshot
    current: PageSnapshot
    mutation_count: int = 0
    detected_at: datetime = field(default_factory=datetime.now)


ChangeHandler = Callable[[SignificantChange], Union[None, Awaitable[None]]]


class EventChannel:
    """Delivers SignificantChange events to subscribers.

    Plain callables run inline; coroutine functions are scheduled as tasks
    on the running loop. drain() waits for scheduled handlers.
    """

    def __init__(self):
        self._subscribers: List[ChangeHandler] = []
        self._tasks: Set[asyncio.Future] = set()
        self.skipped = 0

    def subscribe(self, handler: ChangeHandler) -> Callable[[], None]:
        """Register handler. Returns a function that unsubscribes it."""
        self._subscribers.append(handler)

        def unsubscribe() -> None:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return unsubscribe

    def publish(self, event: SignificantChange) -> None:
        """Call every handler with event.

        Coroutine handlers need a running loop. Without one they are closed
        unrun and logged, and publish still returns normally.
        """
        for handler in list(self._subscribers):
            result = handler(event)
            if not inspect.isawaitable(result):
                continue
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                if inspect.iscoroutine(result):
                    result.close()
                self.skipped += 1
                logger.warning(
                    f"Skipped async change handler for {event.url}: no running event loop"
                )
                continue
            self.track(asyncio.ensure_future(result))

    def track(self, task: "asyncio.Future") -> None:
        """Let drain() wait for task; a failure is logged like a handler's."""
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: "asyncio.Future") -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Change handler failed: {task.exception()!r}")

    async def drain(self) -> None:
        """Wait until every scheduled handler has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


class ChangeMonitor:
    """Watches a document and publishes significant changes.

    Mutation bursts are debounced: classification runs once the document
    has been quiet for debounce_seconds. The baseline snapshot only moves
    when a significant change is published, so small edits accumulate.
    """

    def __init__(
        self,
        document: Document,
        channel: Optional[EventChannel] = None,
        options: Optional[MonitorOptions] = None,
        url: Optional[str] = None,
    ):
        self.document = document
        self.channel = channel or EventChannel()
        self.options = options or MonitorOptions()
        self.url = url or document.url
        self._baseline: Optional[PageSnapshot] = None
        self._pending: List[MutationRecord] = []
        self._timer: Optional[asyncio.TimerHandle] = None
        self._disconnect: Optional[Callable[[], None]] = None
        self.changes_published = 0
        self.mutations_seen = 0

    @property
    def is_running(self) -> bool:
        return self._disconnect is not None

    @property
    def baseline(self) -> Optional[PageSnapshot]:
        return self._baseline

    def start(self) -> None:
        if self.is_running:
            return
        self._baseline = PageSnapshot.capture(self.document)
        self._disconnect = self.document.observe(self._on_mutations)
        logger.debug(f"Change monitor started for {self.url}")

    def stop(self) -> None:
        """Stop observing. Pending mutations are classified first."""
        if not self.is_running:
            return
        if self._pending and self.document.is_attached:
            self.check_now()
        self._cancel_timer()
        self._disconnect()
        self._disconnect = None
        logger.debug(f"Change monitor stopped for {self.url}")

    def reset_baseline(self, snapshot: Optional[PageSnapshot] = None) -> None:
        """Compare future mutations against snapshot, the current document by default.

        PageAnalyzer calls this after a full analysis with the snapshot taken
        when extraction started, so edits made during the run still count.
        """
        self._baseline = snapshot or PageSnapshot.capture(self.document)

    def _on_mutations(self, records: List[MutationRecord]) -> None:
        self._pending.extend(records)
        self.mutations_seen += len(records)
        self._cancel_timer()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop to debounce on; classify right away
            self.check_now()
            return
        self._timer = loop.call_later(self.options.debounce_seconds, self._flush)

    def _flush(self) -> None:
        self._timer = None
        if not self.document.is_attached:
            logger.debug(f"Document {self.url} detached, dropping {len(self._pending)} mutations")
            self._pending.clear()
            return
        self.check_now()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def check_now(self) -> Optional[SignificantChange]:
        """Classify the current document against the baseline immediately.

        Returns:
            The published event, or None when the change was insignificant
        """
        self._cancel_timer()
        mutation_count = len(self._pending)
        self._pending.clear()

        current = PageSnapshot.capture(self.document)
        previous = self._baseline or current
        changes = classify_change(previous, current, self.options.text_change_ratio)
        if not changes.significant:
            return None

        self._baseline = current
        event = SignificantChange(
            url=self.url,
            sections=changes.sections,
            previous=previous,
            current=current,
            mutation_count=mutation_count,
        )
        self.changes_published += 1
        logger.debug(f"Significant change on {self.url}: {sorted(changes.sections)}")
        self.channel.publish(event)
        return event
