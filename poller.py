"""
SCOUT — Auto Scraper (poll loop)
Watches the upstream feed for new products, enriches each one with contact
info and pushes it to the notification sink.

Owns the only cross-cycle state: the seen set and the run-lock. A cycle that
arrives while another holds the lock, or too soon after the last one started,
is rejected with a status instead of being queued.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

from enrichment.contact_enricher import ContactEnricher
from enrichment.incremental import PollerState, SeenSet, SeenStore
from fetching.errors import ConcurrencyConflict, FetchTimeout, RateLimited, ScoutError
from fetching.retry import RetryPolicy
from settings.loader import ScraperSettings
from sources.base import Candidate, CandidateFeed, FeedPage, FeedWindow

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_BUSY = "busy"
STATUS_RATE_LIMITED = "rate_limited"
STATUS_FEED_ERROR = "feed_error"


@dataclass
class CheckResult:
    status: str
    new_items: List[Candidate] = field(default_factory=list)
    message: str = ""
    retry_after: Optional[int] = None


@dataclass
class InitResult:
    status: str
    seen_ids: List[str] = field(default_factory=list)
    count: int = 0
    message: str = ""


class AutoScraper:
    """Poller: seen-set dedup, run-lock, min-interval limiter and notifications."""

    def __init__(
        self,
        feed: CandidateFeed,
        enricher: ContactEnricher,
        notifier=None,
        settings: Optional[ScraperSettings] = None,
        store: Optional[SeenStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.feed = feed
        self.enricher = enricher
        self.notifier = notifier
        self.settings = settings or ScraperSettings()
        self.store = store
        self.clock = clock

        poll = self.settings.poll
        self.seen = SeenSet(trim_threshold=poll.seen_trim_threshold, cap=poll.seen_cap)
        self.state = PollerState()
        self._lock = asyncio.Lock()
        self._stopping: Optional[asyncio.Event] = None
        self._feed_retry = RetryPolicy(
            max_attempts=poll.feed_max_attempts,
            base_delay=poll.feed_backoff_seconds,
        )

    # ── Persistence hooks ──────────────────────────

    def hydrate(self, ids: List[str]):
        """Restore the seen set from a persisted snapshot."""
        self.seen.hydrate(ids)
        logger.info(f"  💾 Hydrated {len(self.seen)} seen ids")

    def snapshot(self) -> List[str]:
        return self.seen.snapshot()

    def _persist(self):
        if self.store is None:
            return
        try:
            self.store.save(self.seen.snapshot())
        except OSError as e:
            logger.error(f"  ❌ Could not save seen ids to {self.store.path}: {e}")
            raise

    def reset(self) -> bool:
        """
        Forget every seen id and all counters. Refused while a cycle runs.
        last_run_at survives so the min-interval limiter still applies.
        """
        if self._lock.locked():
            logger.warning("  ⏳ Reset refused: a cycle is in progress")
            return False
        self.seen.clear()
        self.state = PollerState(last_run_at=self.state.last_run_at)
        self._persist()
        return True

    # ── Feed access ────────────────────────────────

    async def _fetch_page(self, window: FeedWindow, cursor: Optional[str] = None) -> FeedPage:
        timeout = self.settings.timeouts.feed
        try:
            return await asyncio.wait_for(self.feed.fetch_candidates(window, cursor), timeout=timeout)
        except asyncio.TimeoutError:
            raise FetchTimeout("feed", timeout)

    # ── Initialize ─────────────────────────────────

    async def initialize(self, days_back: Optional[int] = None, today_only: bool = False) -> InitResult:
        """
        Seed the seen set from a historical window without notifying.

        Pages through the feed (bounded page count, pause between pages) and
        replaces the seen set with every id found. If the very first page
        fails the existing set is left alone.
        """
        if self._lock.locked():
            return InitResult(status=STATUS_BUSY, message="A check is already running")

        poll = self.settings.poll
        async with self._lock:
            self.state.is_running = True
            try:
                if today_only:
                    window = FeedWindow.today(page_size=poll.init_page_size)
                    label = "today"
                else:
                    days = days_back if days_back is not None else poll.init_days_back
                    window = FeedWindow.last_days(days, page_size=poll.init_page_size)
                    label = f"last {days} days"

                logger.info(f"  🌱 Initializing seen set from {label}")
                collected = SeenSet(trim_threshold=self.seen.trim_threshold, cap=self.seen.cap)
                cursor = None
                pages = 0
                while pages < poll.init_max_pages:
                    try:
                        page = await self._feed_retry.run(
                            lambda: self._fetch_page(window, cursor), label="feed page"
                        )
                    except ScoutError as e:
                        logger.error(f"  ❌ Initialization stopped on page {pages + 1}: {e}")
                        if pages == 0:
                            return InitResult(
                                status=STATUS_FEED_ERROR,
                                message=f"Could not fetch feed: {e}",
                            )
                        break

                    pages += 1
                    collected.update(item.id for item in page.items)
                    logger.info(f"  📄 Page {pages}: {len(page.items)} items, {len(collected)} seen")

                    if not page.has_more or not page.next_cursor:
                        break
                    cursor = page.next_cursor
                    if pages < poll.init_max_pages:
                        await asyncio.sleep(self.settings.delays.between_init_pages)

                self.seen.hydrate(collected.snapshot())
                self._persist()
                ids = self.seen.snapshot()
                message = f"Initialized with {len(ids)} products from {label}"
                self.state.last_status = STATUS_OK
                self.state.last_message = message
                logger.info(f"  ✅ {message}")
                return InitResult(status=STATUS_OK, seen_ids=ids, count=len(ids), message=message)
            finally:
                self.state.is_running = False

    # ── Check cycle ────────────────────────────────

    def _admit(self, now: float):
        """Raise unless a new cycle may start at `now`."""
        if self._lock.locked():
            raise ConcurrencyConflict("A check is already running")
        last = self.state.last_run_at
        min_interval = self.settings.poll.min_interval_seconds
        if last is not None and now - last < min_interval:
            wait = max(1, math.ceil(min_interval - (now - last)))
            raise RateLimited(f"Please wait {wait} seconds before checking again", retry_after=wait)

    async def check_once(self) -> CheckResult:
        now = self.clock()
        try:
            self._admit(now)
        except ConcurrencyConflict as e:
            logger.info("  ⏳ Check already in progress, rejecting")
            return CheckResult(status=STATUS_BUSY, message=str(e))
        except RateLimited as e:
            logger.info(f"  ⏳ Rate limited, retry in {e.retry_after}s")
            return CheckResult(status=STATUS_RATE_LIMITED, message=str(e), retry_after=int(e.retry_after))

        async with self._lock:
            self.state.is_running = True
            self.state.last_run_at = now
            self.state.total_runs += 1
            try:
                result = await self._cycle()
            finally:
                self.state.is_running = False
            self.state.last_status = result.status
            self.state.last_message = result.message
            return result

    async def _cycle(self) -> CheckResult:
        poll = self.settings.poll
        window = FeedWindow.last_days(poll.lookback_days, page_size=poll.max_items_per_cycle)

        try:
            page = await self._feed_retry.run(lambda: self._fetch_page(window), label="feed check")
        except ScoutError as e:
            logger.error(f"  ❌ Feed check failed: {e}")
            return CheckResult(status=STATUS_FEED_ERROR, message=f"Could not fetch feed: {e}")

        self.state.total_checked += len(page.items)
        new_items: List[Candidate] = []
        batch_ids = set()
        for item in page.items:
            if item.id in self.seen or item.id in batch_ids:
                continue
            batch_ids.add(item.id)
            new_items.append(item)

        # Mark before enrichment so a crash mid-batch never replays these ids
        self.seen.update(item.id for item in new_items)
        self._persist()

        if not new_items:
            logger.info(f"  💤 No new products among {len(page.items)} fetched")
            self.seen.trim()
            return CheckResult(status=STATUS_OK, message="No new products found")

        logger.info(f"  🆕 {len(new_items)} new products")
        self.state.total_found += len(new_items)

        try:
            enriched = await self.enricher.extract_contact_info(new_items, max_to_process=len(new_items))
        except Exception as e:
            logger.error(f"  ❌ Enrichment failed, notifying raw items: {e}")
            enriched = list(new_items)

        enriched = [
            replace(item, website=item.exact_website_url) if item.website and item.exact_website_url else item
            for item in enriched
        ]

        await self._notify_all(enriched)

        if self.seen.trim():
            self._persist()
        return CheckResult(
            status=STATUS_OK,
            new_items=enriched,
            message=f"Found {len(enriched)} new products",
        )

    async def _notify_all(self, items: List[Candidate]):
        if self.notifier is None:
            return
        delivered = 0
        for i, item in enumerate(items):
            if i > 0:
                await asyncio.sleep(self.settings.delays.between_notifications)
            try:
                ok = await self.notifier.notify(item)
            except Exception as e:
                logger.warning(f"  ⚠️ Notification for {item.name or item.id} raised: {e}")
                ok = False
            if ok:
                delivered += 1
            else:
                logger.warning(f"  ⚠️ Notification for {item.name or item.id} failed")
        logger.info(f"  📣 Delivered {delivered}/{len(items)} notifications")

    # ── Loop ───────────────────────────────────────

    async def run_forever(self, interval_minutes: Optional[float] = None):
        """Check every `interval_minutes` until stop() is called."""
        interval = (interval_minutes or self.settings.poll.interval_minutes) * 60
        self._stopping = asyncio.Event()
        logger.info(f"  🔁 Polling every {interval / 60:g} minutes")
        while not self._stopping.is_set():
            result = await self.check_once()
            logger.info(f"  [{result.status}] {result.message}")
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    def stop(self):
        if self._stopping is not None:
            self._stopping.set()

    @property
    def stats(self) -> dict:
        return {
            **self.state.summary(),
            "seen": len(self.seen),
            **self.enricher.stats,
        }
