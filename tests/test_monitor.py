# tests/test_monitor.py
"""Tests for change classification and the debounced change monitor."""

import asyncio
import logging

import pytest

from conftest import BASE_URL, build_page, make_text
from pagescore.config import MonitorOptions
from pagescore.document import Document
from pagescore.monitor import (
    ChangeMonitor,
    EventChannel,
    PageSnapshot,
    SignificantChange,
    classify_change,
)


def snapshot(**fields) -> PageSnapshot:
    base = dict(title="T", description="D", heading_count=2, image_count=1,
                link_count=4, text_length=1000, html_length=5000)
    base.update(fields)
    return PageSnapshot(**base)


class TestClassifyChange:
    """Test suite for classify_change."""

    def test_no_change(self):
        changes = classify_change(snapshot(), snapshot())
        assert not changes.significant
        assert changes.sections == frozenset()

    def test_html_length_alone_is_insignificant(self):
        assert not classify_change(snapshot(), snapshot(html_length=9000)).significant

    @pytest.mark.parametrize("fields,section", [
        ({"title": "New"}, "meta"),
        ({"description": "New"}, "meta"),
        ({"heading_count": 3}, "headings"),
        ({"image_count": 0}, "images"),
        ({"link_count": 5}, "links"),
        ({"text_length": 1100}, "content"),
    ])
    def test_single_section(self, fields, section):
        assert classify_change(snapshot(), snapshot(**fields)).sections == {section}

    def test_small_text_change_ignored(self):
        assert not classify_change(snapshot(), snapshot(text_length=1050)).significant

    def test_text_shrinking(self):
        assert classify_change(snapshot(), snapshot(text_length=900)).sections == {"content"}

    def test_text_from_empty(self):
        assert classify_change(snapshot(text_length=0), snapshot(text_length=10)).sections == {"content"}
        assert not classify_change(snapshot(text_length=0), snapshot(text_length=0)).significant

    def test_custom_ratio(self):
        assert classify_change(snapshot(), snapshot(text_length=1020), text_change_ratio=0.01).significant

    def test_several_sections(self):
        changes = classify_change(snapshot(), snapshot(title="X", link_count=9))
        assert changes.sections == {"meta", "links"}


class TestPageSnapshot:

    def test_capture(self):
        html = build_page(images=[("/a.jpg", "alt text here")], h2s=("One", "Two"))
        shot = PageSnapshot.capture(Document(html, url=BASE_URL))
        assert shot.title.startswith("Handmade")
        assert shot.heading_count == 3
        assert shot.image_count == 1
        assert shot.link_count == 4
        assert shot.text_length > 0
        assert shot.html_length == len(html)


class TestEventChannel:

    def test_sync_handlers_run_inline(self):
        channel = EventChannel()
        received = []
        unsubscribe = channel.subscribe(received.append)
        event = SignificantChange(url=BASE_URL, sections=frozenset({"meta"}),
                                  previous=snapshot(), current=snapshot(title="X"))
        channel.publish(event)
        assert received == [event]

        unsubscribe()
        channel.publish(event)
        assert received == [event]
        assert channel.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_async_handlers_drained(self):
        channel = EventChannel()
        received = []

        async def handler(event):
            await asyncio.sleep(0)
            received.append(event)

        channel.subscribe(handler)
        event = SignificantChange(url=BASE_URL, sections=frozenset({"links"}),
                                  previous=snapshot(), current=snapshot(link_count=1))
        channel.publish(event)
        assert received == []
        await channel.drain()
        assert received == [event]

    @pytest.mark.asyncio
    async def test_failing_async_handler_logged(self, caplog):
        channel = EventChannel()

        async def handler(event):
            raise RuntimeError("handler broke")

        channel.subscribe(handler)
        with caplog.at_level(logging.ERROR):
            channel.publish(SignificantChange(url=BASE_URL, sections=frozenset({"meta"}),
                                              previous=snapshot(), current=snapshot()))
            await channel.drain()
        assert "Change handler failed" in caplog.text


class TestChangeMonitor:
    """Test suite for ChangeMonitor."""

    @pytest.fixture
    def document(self):
        return Document(build_page(), url=BASE_URL)

    @pytest.fixture
    def events(self):
        return []

    @pytest.fixture
    def monitor(self, document, events, fast_monitor_options):
        channel = EventChannel()
        channel.subscribe(events.append)
        monitor = ChangeMonitor(document, channel, fast_monitor_options)
        monitor.start()
        yield monitor
        monitor.stop()

    @pytest.mark.asyncio
    async def test_burst_is_debounced(self, document, monitor, events):
        for count in (1, 2, 3):
            document.update(build_page(h2s=tuple(f"Section {i}" for i in range(count + 1))))
        assert events == []

        await asyncio.sleep(0.05)
        assert len(events) == 1
        assert events[0].sections == {"headings"}
        assert events[0].mutation_count == 3
        assert monitor.mutations_seen == 3

    @pytest.mark.asyncio
    async def test_title_change(self, document, monitor, events):
        document.set_title("A Completely Different Title")
        await asyncio.sleep(0.05)
        assert [event.sections for event in events] == [{"meta"}]
        assert events[0].current.title == "A Completely Different Title"
        assert monitor.baseline.title == "A Completely Different Title"

    @pytest.mark.asyncio
    async def test_insignificant_change_publishes_nothing(self, document, monitor, events):
        document.update(build_page(extra_body='<div class="spacer"></div>'))
        await asyncio.sleep(0.05)
        assert events == []
        assert monitor.changes_published == 0

    @pytest.mark.asyncio
    async def test_small_changes_accumulate_against_baseline(self, document, monitor, events):
        # About 2080 characters of text: 15 extra words add under 5%, 30 add over 5%
        for extra in (15, 30):
            html = build_page(extra_body=f"<p>{make_text(extra, start=5000)}</p>")
            document.update(html)
            await asyncio.sleep(0.05)
        assert [event.sections for event in events] == [{"content"}]

    @pytest.mark.asyncio
    async def test_detached_document_dropped(self, document, monitor, events):
        document.update(build_page(h1s=("A", "B")))
        document.detach()
        await asyncio.sleep(0.05)
        assert events == []

    @pytest.mark.asyncio
    async def test_stop_flushes_pending(self, document, events):
        channel = EventChannel()
        channel.subscribe(events.append)
        monitor = ChangeMonitor(document, channel, MonitorOptions(debounce_seconds=10))
        monitor.start()

        document.update(build_page(images=[("/new.png", "A new picture of a mug")]))
        assert events == []
        monitor.stop()

        assert [event.sections for event in events] == [{"images"}]
        assert not monitor.is_running

        document.update(build_page(h1s=()))
        await asyncio.sleep(0.05)
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_check_now_skips_debounce(self, document, events):
        channel = EventChannel()
        channel.subscribe(events.append)
        monitor = ChangeMonitor(document, channel, MonitorOptions(debounce_seconds=10))
        monitor.start()
        assert monitor.check_now() is None

        document.update(build_page(internal_links=10))
        event = monitor.check_now()
        assert event is not None
        assert event.sections == {"links"}
        assert event.mutation_count == 1
        assert events == [event]
        monitor.stop()
        assert len(events) == 1

    def test_without_event_loop_classifies_immediately(self, document, events):
        channel = EventChannel()
        channel.subscribe(events.append)
        monitor = ChangeMonitor(document, channel, MonitorOptions(debounce_seconds=5))
        monitor.start()
        document.set_title("Another title")
        assert [event.sections for event in events] == [{"meta"}]
        monitor.stop()

    def test_without_event_loop_skips_coroutine_handlers(self, document, events, caplog):
        handled = []

        async def on_change(event):
            handled.append(event)

        channel = EventChannel()
        channel.subscribe(on_change)
        channel.subscribe(events.append)
        monitor = ChangeMonitor(document, channel, MonitorOptions(debounce_seconds=5))
        monitor.start()

        with caplog.at_level(logging.WARNING, logger="pagescore.monitor"):
            document.set_title("Another title")

        assert handled == []
        assert len(events) == 1
        assert channel.skipped == 1
        assert "no running event loop" in caplog.text
        monitor.stop()

    def test_start_is_idempotent(self, document):
        monitor = ChangeMonitor(document)
        monitor.start()
        monitor.start()
        document.set_title("Another title")
        assert monitor.mutations_seen == 1

    def test_reset_baseline(self, document):
        monitor = ChangeMonitor(document)
        original = PageSnapshot.capture(document)
        document.set_title("Another title")

        monitor.reset_baseline()
        assert monitor.baseline.title == "Another title"

        monitor.reset_baseline(original)
        assert monitor.baseline is original

    def test_stopped_monitor_ignores_mutations(self, document):
        monitor = ChangeMonitor(document)
        monitor.start()
        monitor.stop()
        document.set_title("Another title")
        assert monitor.mutations_seen == 0
        assert monitor.changes_published == 0
