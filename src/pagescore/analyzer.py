"""Per-page analysis context tying the assembler, cache, scoring and monitor together."""

import asyncio
import logging
from typing import Callable, FrozenSet, Iterable, List, Optional, Set

from pagescore.assembler import (
    CancellationToken,
    PageAssembler,
    ProgressCallback,
    report_progress,
    sections_for_changes,
)
from pagescore.cache import CacheManager, fingerprint
from pagescore.config import (
    AnalysisOptions,
    AnalysisThresholds,
    CacheOptions,
    MonitorOptions,
    ScoringOptions,
)
from pagescore.document import Document
from pagescore.exceptions import AnalysisAbortedError, AssemblyError, BusyError
from pagescore.models import AISuggestions, AnalysisState, PageAnalysis, SEOReport
from pagescore.monitor import (
    ChangeMonitor,
    EventChannel,
    PageSnapshot,
    SignificantChange,
    classify_change,
)
from pagescore.report import build_report
from pagescore.rules import RuleRegistry
from pagescore.scoring import Evaluation, ScoringAlgorithm

logger = logging.getLogger(__name__)

StateListener = Callable[[AnalysisState, AnalysisState], None]
UpdateListener = Callable[[PageAnalysis, Optional[SignificantChange]], None]


class PageAnalyzer:
    """Analysis context for one page.

    At most one analysis runs at a time; a second request while one is in
    flight raises BusyError before anything is awaited. Cancelled or failed
    analyses never touch the cache or last_analysis. An analysis whose
    document changed while it ran is kept but not cached.

    State: IDLE -> ANALYZING -> IDLE, or IDLE -> ANALYZING -> FAILED -> IDLE.
    """

    def __init__(
        self,
        document: Document,
        url: Optional[str] = None,
        registry: Optional[RuleRegistry] = None,
        cache: Optional[CacheManager] = None,
        assembler: Optional[PageAssembler] = None,
        scoring_options: Optional[ScoringOptions] = None,
        monitor_options: Optional[MonitorOptions] = None,
        thresholds: Optional[AnalysisThresholds] = None,
    ):
        self.document = document
        self.url = url or document.url
        self.assembler = assembler or PageAssembler()
        self.cache = cache if cache is not None else CacheManager.from_options(CacheOptions.from_env())
        self.scoring = ScoringAlgorithm(registry, scoring_options, thresholds)
        self.monitor_options = monitor_options or MonitorOptions.from_env()
        self.channel = EventChannel()
        self.monitor: Optional[ChangeMonitor] = None

        self.state = AnalysisState.IDLE
        self.last_analysis: Optional[PageAnalysis] = None
        self._last_snapshot: Optional[PageSnapshot] = None
        self._deferred: Set[str] = set()
        self._token: Optional[CancellationToken] = None
        self._busy = False
        self._state_listeners: List[StateListener] = []
        self._update_listeners: List[UpdateListener] = []
        self._unsubscribe_channel: Optional[Callable[[], None]] = None

    # -- state ------------------------------------------------------------

    @property
    def is_analyzing(self) -> bool:
        return self._busy

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def add_update_listener(self, listener: UpdateListener) -> None:
        """Listener called with (analysis, event) after each realtime update."""
        self._update_listeners.append(listener)

    def _set_state(self, state: AnalysisState) -> None:
        if state == self.state:
            return
        previous, self.state = self.state, state
        logger.debug(f"{self.url}: {previous.value} -> {state.value}")
        for listener in list(self._state_listeners):
            listener(previous, state)

    def _begin(self) -> CancellationToken:
        if self._busy:
            raise BusyError()
        self._busy = True
        self._token = CancellationToken()
        self._set_state(AnalysisState.ANALYZING)
        return self._token

    def _end(self) -> None:
        self._busy = False
        self._token = None
        self._set_state(AnalysisState.IDLE)
        if self._deferred:
            self._schedule_deferred()

    def _remember(self, analysis: PageAnalysis, snapshot: PageSnapshot) -> None:
        """Record analysis together with the document state it was extracted from."""
        self.last_analysis = analysis
        self._last_snapshot = snapshot

    def _store(self, analysis: PageAnalysis, page_fingerprint: str, version: int) -> None:
        if self.document.version != version:
            logger.debug(f"{self.url} changed during analysis, result not cached")
            return
        self.cache.set(self.url, analysis, self.document, page_fingerprint)

    # -- full analysis ----------------------------------------------------

    async def analyze(
        self,
        options: Optional[AnalysisOptions] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> PageAnalysis:
        """Analyze the page, serving from the cache when the document is unchanged.

        Args:
            options: Sections to extract and cache behaviour
            progress: Callback receiving (stage, percent, message)

        Returns:
            The page analysis

        Raises:
            BusyError: If an analysis is already running
            AnalysisAbortedError: If cancel_analysis() was called meanwhile
            AssemblyError: If the document is detached
        """
        token = self._begin()
        return await self._run_full(options or AnalysisOptions(), progress, token)

    def start_analysis(
        self,
        options: Optional[AnalysisOptions] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> "asyncio.Task[PageAnalysis]":
        """Claim the context synchronously and run the analysis as a task.

        Must be called from a running event loop.
        """
        loop = asyncio.get_running_loop()
        token = self._begin()
        return loop.create_task(self._run_full(options or AnalysisOptions(), progress, token))

    def cancel_analysis(self, reason: Optional[str] = None) -> bool:
        """Request cancellation of the in-flight analysis.

        Returns:
            True if an analysis was running
        """
        if self._token is None:
            return False
        self._token.cancel(reason)
        logger.info(f"Cancellation requested for {self.url}")
        return True

    async def _run_full(
        self,
        options: AnalysisOptions,
        progress: Optional[ProgressCallback],
        token: CancellationToken,
    ) -> PageAnalysis:
        try:
            # Extractors read the live document, so pin what it looked like now
            version = self.document.version
            snapshot = PageSnapshot.capture(self.document)

            if options.use_cache and not options.force_refresh:
                cached = self.cache.get(self.url, self.document)
                if cached is not None:
                    report_progress(progress, "cache", 100, "Loaded from cache")
                    self._remember(cached, snapshot)
                    return cached

            page_fingerprint = fingerprint(self.document)
            analysis = await self.assembler.assemble(
                self.document, self.url, options, token, progress
            )
            token.raise_if_cancelled("cache")

            if options.use_cache:
                self._store(analysis, page_fingerprint, version)
            self._remember(analysis, snapshot)
            logger.info(f"Analyzed {self.url}")

            if self.monitor is not None and self.monitor.is_running and not self._deferred:
                self.monitor.reset_baseline(snapshot)
            if options.enable_realtime:
                self.start_realtime()
            return analysis
        except (AnalysisAbortedError, asyncio.CancelledError):
            logger.info(f"Analysis of {self.url} aborted")
            raise
        except Exception:
            self._set_state(AnalysisState.FAILED)
            raise
        finally:
            self._end()

    # -- incremental analysis ---------------------------------------------

    def detect_changed_sections(self) -> List[str]:
        """Monitor sections that differ from the document at the last analysis."""
        if self._last_snapshot is None:
            return []
        changes = classify_change(
            self._last_snapshot,
            PageSnapshot.capture(self.document),
            self.monitor_options.text_change_ratio,
        )
        return sorted(changes.sections)

    async def analyze_incremental(
        self, changed: Optional[Iterable[str]] = None
    ) -> Optional[PageAnalysis]:
        """Re-extract only what changed and merge it into the last analysis.

        Args:
            changed: Changed monitor sections; detected from the document when None

        Returns:
            The merged analysis, or None when nothing changed. Falls back to
            a full analysis when there is no previous one.
        """
        if self.last_analysis is None:
            return await self.analyze(AnalysisOptions(force_refresh=True))

        token = self._begin()
        try:
            version = self.document.version
            snapshot = PageSnapshot.capture(self.document)
            if changed is None:
                changed = self.detect_changed_sections()
            sections = sections_for_changes(changed)
            if not sections:
                return None

            page_fingerprint = fingerprint(self.document)
            analysis = await self.assembler.reassemble(
                self.document, self.last_analysis, sections, token
            )
            token.raise_if_cancelled("cache")

            self._store(analysis, page_fingerprint, version)
            self._remember(analysis, snapshot)
            logger.info(f"Incrementally updated {self.url}: {', '.join(sections)}")
            return analysis
        except (AnalysisAbortedError, asyncio.CancelledError):
            logger.info(f"Incremental analysis of {self.url} aborted")
            raise
        except Exception:
            self._set_state(AnalysisState.FAILED)
            raise
        finally:
            self._end()

    # -- realtime ---------------------------------------------------------

    def start_realtime(self, options: Optional[MonitorOptions] = None) -> ChangeMonitor:
        """Watch the document and update the analysis on significant changes.

        The monitor compares against the document as it was at the last
        analysis, so edits made since then are picked up by the next check.
        """
        if self.monitor is None:
            self.monitor = ChangeMonitor(
                self.document, self.channel, options or self.monitor_options, url=self.url
            )
            self._unsubscribe_channel = self.channel.subscribe(self._on_significant_change)
        if not self.monitor.is_running:
            self.monitor.start()
            if self._last_snapshot is not None:
                self.monitor.reset_baseline(self._last_snapshot)
        return self.monitor

    def stop_realtime(self) -> None:
        if self.monitor is not None:
            self.monitor.stop()
        if self._unsubscribe_channel is not None:
            self._unsubscribe_channel()
            self._unsubscribe_channel = None
        self.monitor = None
        self._deferred.clear()

    async def _on_significant_change(self, event: SignificantChange) -> None:
        await self._apply_realtime_update(event.sections, event)

    async def _apply_realtime_update(
        self, sections: FrozenSet[str], event: Optional[SignificantChange] = None
    ) -> None:
        # Sections skipped while busy ride along with the next update
        sections = frozenset(sections) | self._deferred
        self._deferred = set()
        try:
            analysis = await self.analyze_incremental(sections)
        except BusyError:
            self._deferred.update(sections)
            logger.info(
                f"Deferred realtime update of {self.url} ({', '.join(sorted(sections))}): "
                f"analysis in progress"
            )
            return
        except AnalysisAbortedError:
            return
        except AssemblyError as e:
            logger.warning(f"Realtime update of {self.url} failed: {e}")
            return

        if analysis is None:
            return
        for listener in list(self._update_listeners):
            listener(analysis, event)

    def _schedule_deferred(self) -> None:
        """Run the deferred realtime update once the current analysis has ended."""
        if self.monitor is None or not self.monitor.is_running:
            self._deferred.clear()
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # detect_changed_sections() still reports them
            return
        sections, self._deferred = frozenset(self._deferred), set()
        self.channel.track(loop.create_task(self._apply_realtime_update(sections)))

    # -- evaluation -------------------------------------------------------

    def evaluate(self, analysis: Optional[PageAnalysis] = None) -> Evaluation:
        """Score an analysis, by default the last one."""
        analysis = analysis or self.last_analysis
        if analysis is None:
            raise ValueError(f"No analysis of {self.url} to evaluate")
        return self.scoring.evaluate(analysis)

    async def audit(
        self,
        options: Optional[AnalysisOptions] = None,
        suggestions: Optional[AISuggestions] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> SEOReport:
        """Analyze, score and package the page as a report."""
        analysis = await self.analyze(options, progress)
        return build_report(analysis, self.scoring, suggestions)
