"""
Contact Enricher — drives the single-site scraper over a list of candidates.

Items run one at a time, in input order, with a politeness pause between
them. A circuit breaker counts consecutive failures and stops the batch when
it trips; everything already processed is kept and the rest is returned
untouched, so the output always lines up with the input.
"""

import asyncio
import logging
from typing import List, Optional

from deep_scrape import ContactScraper
from extractors.contact_info import ContactInfo
from resolver.urls import ensure_scheme, is_listing_url, is_redirect_wrapper, normalize_url
from settings.loader import ScraperSettings
from sources.base import Candidate

logger = logging.getLogger(__name__)

# ContactInfo.error values that count against the breaker
FAILURE_ERRORS = frozenset({"timeout", "network", "http_error"})


class CircuitBreaker:
    """Consecutive-failure counter. Any success closes it again."""

    def __init__(self, threshold: int = 3):
        self.threshold = threshold
        self.failures = 0

    def record(self, failed: bool):
        if failed:
            self.failures += 1
        else:
            self.failures = 0

    @property
    def is_open(self) -> bool:
        return self.failures >= self.threshold

    def reset(self):
        self.failures = 0


class ContactEnricher:
    """Batch orchestrator around ContactScraper."""

    def __init__(self, scraper: ContactScraper, settings: Optional[ScraperSettings] = None):
        self.scraper = scraper
        self.settings = settings or scraper.settings
        self._processed = 0
        self._failed = 0
        self._skipped = 0
        self._breaker_trips = 0

    async def extract_contact_info(
        self,
        candidates: List[Candidate],
        max_to_process: Optional[int] = None,
    ) -> List[Candidate]:
        """
        Enrich up to `max_to_process` candidates that have a usable URL.

        Returns a list the same length and order as `candidates`; items that
        were not processed come back unchanged.
        """
        if max_to_process is None:
            max_to_process = self.settings.batch.default_max_to_process
        results = list(candidates)
        work = [(i, c) for i, c in enumerate(candidates) if c.target_url][:max(0, max_to_process)]

        logger.info(f"  🔎 Enriching {len(work)} of {len(candidates)} candidates")
        if not work:
            return results

        breaker = CircuitBreaker(self.settings.batch.circuit_breaker_threshold)
        timeouts = self.settings.timeouts

        for n, (index, candidate) in enumerate(work):
            if breaker.is_open:
                self._breaker_trips += 1
                logger.warning(
                    f"  🛑 Circuit breaker tripped after {breaker.failures} consecutive failures, "
                    f"leaving {len(work) - n} candidates unprocessed"
                )
                break

            url = ensure_scheme(candidate.target_url)
            if is_redirect_wrapper(url):
                resolved = await self.scraper.resolver.resolve_redirect(url)
                url = resolved or url

            if is_listing_url(url):
                self._skipped += 1
                logger.info(f"  ⏭️  {candidate.name or candidate.id}: no website beyond the listing, skipping")
                continue

            failed = False
            try:
                info = await asyncio.wait_for(
                    self.scraper.scrape_website(url), timeout=timeouts.per_item
                )
                failed = info.error in FAILURE_ERRORS
            except asyncio.TimeoutError:
                logger.warning(f"  ⏱️ {candidate.name or candidate.id}: timed out after {timeouts.per_item:g}s")
                info = ContactInfo.empty(normalize_url(url), error="timeout")
                failed = True
            except Exception as e:
                logger.error(f"  ❌ {candidate.name or candidate.id}: {e}")
                info = ContactInfo.empty(normalize_url(url), error="crashed")
                failed = True

            results[index] = candidate.with_contact_info(info)
            breaker.record(failed)
            self._processed += 1
            if failed:
                self._failed += 1

            await asyncio.sleep(self.settings.delays.between_items)

        return results

    async def process_batches(
        self,
        candidates: List[Candidate],
        batch_size: Optional[int] = None,
    ) -> List[Candidate]:
        """Chunk `candidates` and enrich each chunk; a failed chunk is returned as-is."""
        batch_size = batch_size or self.settings.batch.default_batch_size
        out: List[Candidate] = []
        total = len(candidates)

        for start in range(0, total, batch_size):
            chunk = candidates[start:start + batch_size]
            logger.info(f"  📦 Batch {start // batch_size + 1}: items {start + 1}-{start + len(chunk)} of {total}")
            try:
                out.extend(await self.extract_contact_info(chunk, max_to_process=len(chunk)))
            except Exception as e:
                logger.error(f"  ❌ Batch starting at {start} failed, keeping raw items: {e}")
                out.extend(chunk)

            if start + batch_size < total:
                await asyncio.sleep(self.settings.delays.between_batches)

        return out

    @property
    def stats(self) -> dict:
        return {
            "processed": self._processed,
            "failed": self._failed,
            "skipped": self._skipped,
            "breaker_trips": self._breaker_trips,
        }
