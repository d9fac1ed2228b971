"""
SCOUT — Poller Tests
Covers: SeenSet trimming, SeenStore snapshots, check cycle (dedup, notify
order, URL remap), run-lock and min-interval rejection, feed retry,
initialization paging.
Run with: python -m pytest tests/test_poller.py -v
"""

import asyncio
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from enrichment.incremental import PollerState, SeenSet, SeenStore
from extractors.contact_info import ContactInfo
from fetching.errors import NetworkError
from poller import AutoScraper
from settings.loader import ScraperSettings
from sources.base import Candidate, CandidateFeed, FeedPage


# ──────────────────────────────────────────────────
#  Fakes
# ──────────────────────────────────────────────────

class FakeFeed(CandidateFeed):
    """Returns pages in order; an exception in the list is raised instead."""

    def __init__(self, pages):
        self.pages = list(pages)
        self.calls = []

    async def fetch_candidates(self, window, cursor=None):
        self.calls.append(cursor)
        page = self.pages[min(len(self.calls), len(self.pages)) - 1]
        if isinstance(page, BaseException):
            raise page
        return page


class BlockingFeed(CandidateFeed):
    def __init__(self, items):
        self.items = items
        self.release = asyncio.Event()
        self.entered = asyncio.Event()

    async def fetch_candidates(self, window, cursor=None):
        self.entered.set()
        await self.release.wait()
        return FeedPage(items=self.items)


class FakeEnricher:
    def __init__(self, fail=False):
        self.fail = fail
        self.seen_batches = []

    async def extract_contact_info(self, candidates, max_to_process=None):
        self.seen_batches.append([c.id for c in candidates])
        if self.fail:
            raise RuntimeError("enricher down")
        return [
            c.with_contact_info(ContactInfo(canonical_url=f"https://{c.id.lower()}.io", emails={"hi@acme.io"}))
            for c in candidates
        ]

    @property
    def stats(self):
        return {"processed": 0, "failed": 0}


class FakeNotifier:
    def __init__(self, fail_ids=()):
        self.fail_ids = set(fail_ids)
        self.sent = []

    async def notify(self, candidate):
        self.sent.append(candidate.id)
        if candidate.id in self.fail_ids:
            raise RuntimeError("webhook 500")
        return True


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _settings():
    settings = ScraperSettings.no_delays()
    settings.poll.feed_backoff_seconds = 0
    return settings


def _items(*ids):
    return [Candidate(id=i, name=i, website=f"https://ph.co/{i}") for i in ids]


def _poller(feed, enricher=None, notifier=None, settings=None, clock=None, store=None):
    return AutoScraper(
        feed,
        enricher or FakeEnricher(),
        notifier=notifier,
        settings=settings or _settings(),
        store=store,
        clock=clock or Clock(),
    )


# ──────────────────────────────────────────────────
#  SeenSet / SeenStore
# ──────────────────────────────────────────────────

class TestSeenSet:
    def test_trim_keeps_newest_tail(self):
        seen = SeenSet((str(i) for i in range(1001)), trim_threshold=1000, cap=500)
        dropped = seen.trim()
        assert dropped == 501
        assert len(seen) == 500
        assert seen.snapshot() == [str(i) for i in range(501, 1001)]

    def test_no_trim_at_threshold(self):
        seen = SeenSet((str(i) for i in range(1000)))
        assert seen.trim() == 0
        assert len(seen) == 1000

    def test_readding_keeps_position(self):
        seen = SeenSet(["a", "b", "c"], trim_threshold=2, cap=2)
        assert seen.add("a") is False
        seen.trim()
        assert seen.snapshot() == ["b", "c"]

    def test_hydrate_replaces(self):
        seen = SeenSet(["x"])
        seen.hydrate(["a", "b"])
        assert "x" not in seen
        assert seen.snapshot() == ["a", "b"]


class TestSeenStore:
    def test_round_trip(self, tmp_path):
        store = SeenStore(str(tmp_path / "data" / "seen_ids.json"))
        store.save(["a", "b"])
        assert store.load() == ["a", "b"]

    def test_missing_file(self, tmp_path):
        assert SeenStore(str(tmp_path / "none.json")).load() == []

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "seen.json"
        path.write_text("{not json")
        assert SeenStore(str(path)).load() == []


# ──────────────────────────────────────────────────
#  Check cycle
# ──────────────────────────────────────────────────

class TestCheckOnce:
    def test_only_new_items_are_enriched_and_notified_in_order(self):
        feed = FakeFeed([FeedPage(items=_items("A", "B", "C"))])
        enricher = FakeEnricher()
        notifier = FakeNotifier()
        poller = _poller(feed, enricher, notifier)
        poller.hydrate(["A"])

        result = asyncio.run(poller.check_once())

        assert result.status == "ok"
        assert [c.id for c in result.new_items] == ["B", "C"]
        assert enricher.seen_batches == [["B", "C"]]
        assert notifier.sent == ["B", "C"]
        assert {"A", "B", "C"} <= set(poller.snapshot())

    def test_website_remapped_to_resolved_url(self):
        poller = _poller(FakeFeed([FeedPage(items=_items("B"))]))
        result = asyncio.run(poller.check_once())
        assert result.new_items[0].website == "https://b.io"

    def test_duplicates_within_page_counted_once(self):
        notifier = FakeNotifier()
        poller = _poller(FakeFeed([FeedPage(items=_items("B", "B"))]), notifier=notifier)
        asyncio.run(poller.check_once())
        assert notifier.sent == ["B"]

    def test_nothing_new(self):
        notifier = FakeNotifier()
        poller = _poller(FakeFeed([FeedPage(items=_items("A"))]), notifier=notifier)
        poller.hydrate(["A"])
        result = asyncio.run(poller.check_once())
        assert result.status == "ok"
        assert result.new_items == []
        assert notifier.sent == []

    def test_ids_marked_seen_even_if_enrichment_fails(self):
        notifier = FakeNotifier()
        poller = _poller(FakeFeed([FeedPage(items=_items("B"))]), FakeEnricher(fail=True), notifier)
        result = asyncio.run(poller.check_once())
        assert result.status == "ok"
        assert "B" in poller.seen
        assert notifier.sent == ["B"]
        assert result.new_items[0].contact is None

    def test_notification_failure_does_not_abort(self):
        notifier = FakeNotifier(fail_ids={"B"})
        poller = _poller(FakeFeed([FeedPage(items=_items("B", "C"))]), notifier=notifier)
        result = asyncio.run(poller.check_once())
        assert result.status == "ok"
        assert notifier.sent == ["B", "C"]

    def test_feed_failure_retries_then_reports(self):
        feed = FakeFeed([NetworkError("down")])
        poller = _poller(feed)
        result = asyncio.run(poller.check_once())
        assert result.status == "feed_error"
        assert len(feed.calls) == 3
        assert not poller.state.is_running

    def test_seen_set_trimmed_after_cycle(self):
        settings = _settings()
        settings.poll.seen_trim_threshold = 3
        settings.poll.seen_cap = 2
        poller = _poller(FakeFeed([FeedPage(items=_items("d"))]), settings=settings)
        poller.hydrate(["a", "b", "c"])
        asyncio.run(poller.check_once())
        assert poller.snapshot() == ["c", "d"]

    def test_snapshot_persisted(self, tmp_path):
        store = SeenStore(str(tmp_path / "seen.json"))
        poller = _poller(FakeFeed([FeedPage(items=_items("B"))]), store=store)
        asyncio.run(poller.check_once())
        assert json.loads((tmp_path / "seen.json").read_text()) == ["B"]

    def test_store_write_failure_propagates(self):
        class BrokenStore(SeenStore):
            def save(self, ids):
                raise OSError("disk full")

        poller = _poller(FakeFeed([FeedPage(items=_items("B"))]), store=BrokenStore("unused.json"))
        with pytest.raises(OSError):
            asyncio.run(poller.check_once())
        assert not poller._lock.locked()


# ──────────────────────────────────────────────────
#  Admission: rate limiter and run-lock
# ──────────────────────────────────────────────────

class TestAdmission:
    def test_rate_limited_inside_min_interval(self):
        clock = Clock(1000.0)
        feed = FakeFeed([FeedPage(items=[])])
        poller = _poller(feed, clock=clock)

        first = asyncio.run(poller.check_once())
        clock.now = 1010.0
        second = asyncio.run(poller.check_once())

        assert first.status == "ok"
        assert second.status == "rate_limited"
        assert second.retry_after == 20
        assert len(feed.calls) == 1

    def test_allowed_after_min_interval(self):
        clock = Clock(1000.0)
        feed = FakeFeed([FeedPage(items=[])])
        poller = _poller(feed, clock=clock)
        asyncio.run(poller.check_once())
        clock.now = 1031.0
        assert asyncio.run(poller.check_once()).status == "ok"
        assert len(feed.calls) == 2

    def test_overlapping_cycle_rejected(self):
        async def run():
            feed = BlockingFeed(_items("B"))
            poller = _poller(feed)
            first = asyncio.ensure_future(poller.check_once())
            await feed.entered.wait()
            assert poller.state.is_running

            second = await poller.check_once()
            init = await poller.initialize(days_back=1)
            reset_ok = poller.reset()

            feed.release.set()
            done = await first
            return second, init, reset_ok, done

        second, init, reset_ok, done = asyncio.run(run())
        assert second.status == "busy"
        assert init.status == "busy"
        assert reset_ok is False
        assert done.status == "ok"


# ──────────────────────────────────────────────────
#  Initialize
# ──────────────────────────────────────────────────

class TestInitialize:
    def test_pages_through_cursor(self):
        feed = FakeFeed([
            FeedPage(items=_items("1", "2"), next_cursor="c1", has_more=True),
            FeedPage(items=_items("3"), next_cursor=None, has_more=False),
        ])
        notifier = FakeNotifier()
        poller = _poller(feed, notifier=notifier)
        poller.hydrate(["old"])

        result = asyncio.run(poller.initialize(days_back=7))

        assert result.status == "ok"
        assert result.count == 3
        assert result.seen_ids == ["1", "2", "3"]
        assert feed.calls == [None, "c1"]
        assert "old" not in poller.seen
        assert notifier.sent == []

    def test_page_cap(self):
        settings = _settings()
        settings.poll.init_max_pages = 2
        feed = FakeFeed([FeedPage(items=_items("x"), next_cursor="more", has_more=True)])
        result = asyncio.run(_poller(feed, settings=settings).initialize(today_only=True))
        assert result.status == "ok"
        assert len(feed.calls) == 2

    def test_first_page_failure_keeps_existing_set(self):
        feed = FakeFeed([NetworkError("down")])
        poller = _poller(feed)
        poller.hydrate(["old"])
        result = asyncio.run(poller.initialize(days_back=1))
        assert result.status == "feed_error"
        assert poller.snapshot() == ["old"]

    def test_reset_clears_state(self):
        poller = _poller(FakeFeed([FeedPage(items=_items("B"))]))
        asyncio.run(poller.check_once())
        assert poller.reset() is True
        assert len(poller.seen) == 0
        assert poller.state == PollerState(last_run_at=1000.0)

    def test_reset_keeps_min_interval(self):
        clock = Clock(1000.0)
        feed = FakeFeed([FeedPage(items=_items("B"))])
        poller = _poller(feed, clock=clock)
        asyncio.run(poller.check_once())
        poller.reset()
        clock.now = 1010.0
        result = asyncio.run(poller.check_once())
        assert result.status == "rate_limited"
        assert len(feed.calls) == 1


# ──────────────────────────────────────────────────
#  Loop
# ──────────────────────────────────────────────────

class TestRunForever:
    def test_stop_ends_loop(self):
        clock = Clock()
        feed = FakeFeed([FeedPage(items=[])])
        poller = _poller(feed, clock=clock)

        async def run():
            asyncio.get_running_loop().call_later(0.3, poller.stop)
            await asyncio.wait_for(poller.run_forever(interval_minutes=0.001), timeout=5)

        asyncio.run(run())
        assert len(feed.calls) == 1
        assert poller.stats["total_runs"] == 1
