# tests/test_analyzer.py
"""Tests for PageAnalyzer: busy handling, cancellation, caching and realtime updates."""

import asyncio
import logging

import pytest

from conftest import BASE_URL, GOOD_TITLE, build_page
from pagescore.analyzer import PageAnalyzer
from pagescore.assembler import PageAssembler
from pagescore.config import AnalysisOptions, MonitorOptions
from pagescore.document import Document
from pagescore.exceptions import AnalysisAbortedError, AssemblyError, BusyError
from pagescore.extractors import MetaTagsExtractor
from pagescore.models import AnalysisState, PageAnalysis, SEOReport


class CountingExtractor(MetaTagsExtractor):
    """Meta tags extractor that counts its calls."""

    def __init__(self):
        self.calls = 0

    def extract(self, document, url=""):
        self.calls += 1
        return super().extract(document, url)


@pytest.fixture
def document(good_html):
    return Document(good_html, url=BASE_URL)


@pytest.fixture
def counter():
    return CountingExtractor()


@pytest.fixture
def analyzer(document, cache, counter, fast_monitor_options):
    return PageAnalyzer(
        document,
        cache=cache,
        assembler=PageAssembler(extractors={"meta_tags": counter}),
        monitor_options=fast_monitor_options,
    )


class TestAnalyze:
    """Full analysis through the analyzer."""

    @pytest.mark.asyncio
    async def test_analyze(self, analyzer):
        analysis = await analyzer.analyze()
        assert isinstance(analysis, PageAnalysis)
        assert analysis.url == BASE_URL
        assert analyzer.last_analysis is analysis
        assert analyzer.state == AnalysisState.IDLE
        assert not analyzer.is_analyzing

    @pytest.mark.asyncio
    async def test_cached_result_is_identical(self, analyzer, counter):
        first = await analyzer.analyze()
        second = await analyzer.analyze()
        assert second is first
        assert counter.calls == 1

    @pytest.mark.asyncio
    async def test_cache_hit_reports_progress(self, analyzer):
        await analyzer.analyze()
        events = []
        await analyzer.analyze(progress=lambda stage, percent, message: events.append((stage, percent)))
        assert events == [("cache", 100)]

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_cache(self, analyzer, counter):
        first = await analyzer.analyze()
        second = await analyzer.analyze(AnalysisOptions(force_refresh=True))
        assert second is not first
        assert counter.calls == 2
        assert await analyzer.analyze() is second

    @pytest.mark.asyncio
    async def test_use_cache_false_never_stores(self, analyzer, cache):
        await analyzer.analyze(AnalysisOptions(use_cache=False))
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_changed_document_misses_cache(self, analyzer, document, counter):
        first = await analyzer.analyze()
        document.update(build_page(title="Another Handmade Ceramic Mug Title Here"))
        second = await analyzer.analyze()
        assert second is not first
        assert second.meta_tags.title == "Another Handmade Ceramic Mug Title Here"
        assert counter.calls == 2

    @pytest.mark.asyncio
    async def test_url_override(self, document, cache):
        analyzer = PageAnalyzer(document, url="https://shop.example.com/other", cache=cache)
        analysis = await analyzer.analyze()
        assert analysis.url == "https://shop.example.com/other"

    @pytest.mark.asyncio
    async def test_document_changed_mid_analysis_is_not_cached(self, analyzer, document):
        task = analyzer.start_analysis()
        await asyncio.sleep(0)
        document.set_title("Changed Title While Extracting The Mug Page")
        first = await task

        assert first.meta_tags.title == GOOD_TITLE
        assert len(analyzer.cache) == 0
        assert analyzer.detect_changed_sections() == ["meta"]

        second = await analyzer.analyze()
        assert second is not first
        assert second.meta_tags.title == "Changed Title While Extracting The Mug Page"
        assert await analyzer.analyze() is second


class TestBusyAndCancel:

    @pytest.mark.asyncio
    async def test_second_request_is_busy(self, analyzer):
        task = analyzer.start_analysis()
        assert analyzer.is_analyzing
        with pytest.raises(BusyError):
            await analyzer.analyze()
        analysis = await task
        assert analyzer.last_analysis is analysis
        assert not analyzer.is_analyzing

    @pytest.mark.asyncio
    async def test_busy_during_incremental(self, analyzer):
        await analyzer.analyze()
        task = analyzer.start_analysis(AnalysisOptions(force_refresh=True))
        with pytest.raises(BusyError):
            await analyzer.analyze_incremental(["meta"])
        await task

    def test_start_analysis_needs_event_loop(self, analyzer):
        with pytest.raises(RuntimeError):
            analyzer.start_analysis()
        assert not analyzer.is_analyzing

    @pytest.mark.asyncio
    async def test_cancel_before_first_stage(self, analyzer, cache):
        task = analyzer.start_analysis()
        assert analyzer.cancel_analysis("navigated away") is True
        with pytest.raises(AnalysisAbortedError):
            await task
        assert len(cache) == 0
        assert analyzer.last_analysis is None
        assert analyzer.state == AnalysisState.IDLE

    @pytest.mark.asyncio
    async def test_cancel_mid_analysis(self, analyzer, cache):
        def progress(stage, percent, message):
            if stage == "images":
                analyzer.cancel_analysis()

        with pytest.raises(AnalysisAbortedError) as exc_info:
            await analyzer.analyze(progress=progress)
        assert exc_info.value.stage == "links"
        assert len(cache) == 0
        assert analyzer.last_analysis is None

        # The context is usable again
        assert await analyzer.analyze() is not None

    def test_cancel_when_idle(self, analyzer):
        assert analyzer.cancel_analysis() is False


class TestState:

    @pytest.mark.asyncio
    async def test_transitions(self, analyzer):
        transitions = []
        analyzer.add_state_listener(lambda old, new: transitions.append((old, new)))
        await analyzer.analyze()
        assert transitions == [
            (AnalysisState.IDLE, AnalysisState.ANALYZING),
            (AnalysisState.ANALYZING, AnalysisState.IDLE),
        ]

    @pytest.mark.asyncio
    async def test_failure_passes_through_failed(self, analyzer, document):
        transitions = []
        analyzer.add_state_listener(lambda old, new: transitions.append(new))
        document.detach()
        with pytest.raises(AssemblyError):
            await analyzer.analyze()
        assert transitions == [AnalysisState.ANALYZING, AnalysisState.FAILED, AnalysisState.IDLE]
        assert analyzer.last_analysis is None


class TestIncremental:
    """Incremental re-analysis."""

    @pytest.mark.asyncio
    async def test_title_change_reuses_other_sections(self, analyzer, document, cache):
        base = await analyzer.analyze()
        document.set_title("Brand New Title For The Ceramic Mug Shop")

        assert analyzer.detect_changed_sections() == ["meta"]
        updated = await analyzer.analyze_incremental()

        assert updated.meta_tags.title == "Brand New Title For The Ceramic Mug Shop"
        assert updated.headings is base.headings
        assert updated.content is base.content
        assert updated.images is base.images
        assert updated.links is base.links
        assert updated.performance is base.performance
        assert analyzer.last_analysis is updated
        assert cache.get(BASE_URL, document) is updated

    @pytest.mark.asyncio
    async def test_nothing_changed(self, analyzer):
        await analyzer.analyze()
        assert analyzer.detect_changed_sections() == []
        assert await analyzer.analyze_incremental() is None

    @pytest.mark.asyncio
    async def test_without_previous_analysis_runs_full(self, analyzer, counter):
        analysis = await analyzer.analyze_incremental()
        assert analysis is not None
        assert analyzer.last_analysis is analysis
        assert counter.calls == 1

    @pytest.mark.asyncio
    async def test_explicit_sections(self, analyzer, document):
        base = await analyzer.analyze()
        document.update(build_page(internal_links=8, images=[("/img/mug.jpg", "Blue hand thrown ceramic mug")]))
        updated = await analyzer.analyze_incremental(["links"])
        assert len(updated.links.internal) == 8
        assert updated.content is not base.content
        assert updated.headings is base.headings
        assert updated.meta_tags is base.meta_tags


class TestRealtime:

    @pytest.mark.asyncio
    async def test_significant_change_updates_analysis(self, analyzer, document):
        updates = []
        analyzer.add_update_listener(lambda analysis, event: updates.append((analysis, event)))
        base = await analyzer.analyze(AnalysisOptions(enable_realtime=True))
        assert analyzer.monitor.is_running

        document.set_title("Realtime Title For The Ceramic Mug Shop")
        await asyncio.sleep(0.05)
        await analyzer.channel.drain()

        assert len(updates) == 1
        analysis, event = updates[0]
        assert event.sections == {"meta"}
        assert analysis.meta_tags.title == "Realtime Title For The Ceramic Mug Shop"
        assert analysis.images is base.images
        assert analyzer.last_analysis is analysis
        analyzer.stop_realtime()
        assert analyzer.monitor is None
        assert analyzer.channel.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_insignificant_change_ignored(self, analyzer, document):
        updates = []
        analyzer.add_update_listener(lambda analysis, event: updates.append(analysis))
        await analyzer.analyze(AnalysisOptions(enable_realtime=True))

        document.update(build_page(
            images=[("/img/mug.jpg", "Blue hand thrown ceramic mug")],
            extra_body='<span class="badge"></span>',
        ))
        await asyncio.sleep(0.05)
        await analyzer.channel.drain()
        assert updates == []
        analyzer.stop_realtime()

    @pytest.mark.asyncio
    async def test_change_while_busy_is_applied_afterwards(self, analyzer, document):
        updates = []
        analyzer.add_update_listener(lambda analysis, event: updates.append(analysis))
        await analyzer.analyze()
        monitor = analyzer.start_realtime()

        task = analyzer.start_analysis(AnalysisOptions(force_refresh=True))
        await asyncio.sleep(0)
        document.set_title("Changed While Busy For The Ceramic Mug Shop")
        monitor.check_now()
        await analyzer.channel.drain()
        full = await task
        await analyzer.channel.drain()

        assert full.meta_tags.title == GOOD_TITLE
        assert len(updates) == 1
        assert updates[0].meta_tags.title == "Changed While Busy For The Ceramic Mug Shop"
        assert analyzer.last_analysis is updates[0]
        assert analyzer.detect_changed_sections() == []
        assert await analyzer.analyze() is updates[0]
        analyzer.stop_realtime()

    @pytest.mark.asyncio
    async def test_full_analysis_resets_monitor_baseline(self, analyzer, document):
        analyzer.monitor_options = MonitorOptions(debounce_seconds=0.2)
        await analyzer.analyze(AnalysisOptions(enable_realtime=True))
        monitor = analyzer.monitor

        task = analyzer.start_analysis(AnalysisOptions(force_refresh=True))
        await asyncio.sleep(0)
        document.set_title("Edited Mid Run For The Ceramic Mug Shop")
        await task

        # The baseline is the document the full run started from
        assert monitor.baseline.title == GOOD_TITLE
        await asyncio.sleep(0.3)
        await analyzer.channel.drain()
        assert analyzer.last_analysis.meta_tags.title == "Edited Mid Run For The Ceramic Mug Shop"
        analyzer.stop_realtime()

    def test_mutation_after_event_loop_closed(self, analyzer, document, caplog):
        asyncio.run(analyzer.analyze(AnalysisOptions(enable_realtime=True)))

        with caplog.at_level(logging.WARNING, logger="pagescore.monitor"):
            document.set_title("Edited After The Loop Closed For Mugs")

        assert "no running event loop" in caplog.text
        assert analyzer.channel.skipped == 1
        assert analyzer.detect_changed_sections() == ["meta"]
        analyzer.stop_realtime()


class TestEvaluate:

    def test_requires_analysis(self, analyzer):
        with pytest.raises(ValueError):
            analyzer.evaluate()

    @pytest.mark.asyncio
    async def test_good_page_scores_full_marks(self, analyzer):
        await analyzer.analyze()
        evaluation = analyzer.evaluate()
        assert evaluation.issues == []
        assert evaluation.score.overall == 100

    @pytest.mark.asyncio
    async def test_audit(self, analyzer):
        report = await analyzer.audit()
        assert isinstance(report, SEOReport)
        assert report.url == BASE_URL
        assert report.grade == "A"
        assert report.issues == []
