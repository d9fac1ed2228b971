"""
SCOUT — Single-Site Contact Scraper
Given one website URL, find the emails, social profiles and contact/about
pages it publishes.

    start → resolve canonical → fetch main page → parse and extract → done

Each stage is time-bounded and degrades to an empty-but-valid ContactInfo
carrying whatever canonical URL was determined. Nothing here raises.
"""

import asyncio
import logging
from typing import Optional

from bs4 import BeautifulSoup

from extractors.contact_info import ContactInfo, ContactInfoBuilder
from extractors.emails import extract_emails
from extractors.links import (
    collect_external_links,
    contact_page_text,
    footer_fragment,
    locate_pages,
    team_sections,
)
from extractors.social import extract_social
from extractors.strategy import collect, run_strategies
from extractors.surfaces import EMAIL_STRATEGIES, emails_from_url
from fetching.errors import FetchTimeout, InvalidInput, NetworkError, ScoutError
from fetching.fetcher import Fetcher
from resolver.urls import UrlResolver, ensure_scheme, host_of, host_matches, is_valid_url, normalize_url
from settings.loader import ScraperSettings

logger = logging.getLogger(__name__)


class ContactScraper:
    """Resolver + Fetcher + every extractor, composed for one site at a time."""

    def __init__(self, fetcher: Fetcher, settings: Optional[ScraperSettings] = None):
        self.fetcher = fetcher
        self.settings = settings or ScraperSettings()
        self.timeouts = self.settings.timeouts
        self.resolver = UrlResolver(fetcher, self.timeouts)

    def is_bypassed(self, url: str) -> bool:
        """Big platforms never publish a product's contact details."""
        host = host_of(url)
        if host.startswith("www."):
            host = host[4:]
        return any(host_matches(host, d) for d in self.settings.extraction.bypass_domains)

    @staticmethod
    def validate(url) -> str:
        """Default a missing scheme to https, then require an absolute http(s) URL."""
        if isinstance(url, str) and url.strip() and "://" not in url:
            url = ensure_scheme(url)
        if not is_valid_url(url):
            raise InvalidInput(f"not an absolute http(s) URL: {url!r}")
        return url.strip()

    async def scrape_website(self, url: str) -> ContactInfo:
        try:
            url = self.validate(url)
        except InvalidInput as e:
            logger.warning(f"  ⚠️ Skipping: {e}")
            return ContactInfo.empty(url if isinstance(url, str) else "", error="invalid_url")

        if self.is_bypassed(url):
            logger.info(f"  ⏭️  Bypassing major platform: {url}")
            return ContactInfo.empty(normalize_url(url), error="bypassed")

        # Stage 1: canonical URL (find_canonical_url never raises, only stalls)
        try:
            canonical = await asyncio.wait_for(
                self.resolver.find_canonical_url(url), timeout=self.timeouts.canonical
            )
        except asyncio.TimeoutError:
            logger.info(f"  ⏱️ Canonical lookup timed out for {url}")
            canonical = normalize_url(url)
        canonical = canonical or normalize_url(url)

        # Stage 2: main page, fetched as requested; canonical is only reported
        try:
            result = await self.fetcher.fetch(
                url,
                timeout=self.timeouts.main_page,
                body_timeout=self.timeouts.body,
            )
        except FetchTimeout as e:
            logger.warning(f"  ⏱️ {e}")
            return ContactInfo.empty(canonical, error="timeout")
        except NetworkError as e:
            logger.warning(f"  ❌ Could not fetch {url}: {e}")
            return ContactInfo.empty(canonical, error="network")

        if not result.ok:
            logger.warning(f"  ❌ {url} returned HTTP {result.status}")
            return ContactInfo.empty(canonical, error="http_error")
        if not result.text.strip():
            return ContactInfo.empty(canonical, error="empty_body")

        # Stage 3: parse and extract, including secondary pages
        try:
            return await asyncio.wait_for(
                self._extract(canonical, result.url or url, result.text),
                timeout=self.timeouts.parse,
            )
        except asyncio.TimeoutError:
            logger.warning(f"  ⏱️ Extraction timed out for {canonical}")
            return ContactInfo.empty(canonical, error="timeout")
        except Exception as e:
            logger.error(f"  ❌ Extraction error on {canonical}: {e}")
            return ContactInfo.empty(canonical, error="parse")

    async def _extract(self, canonical: str, page_url: str, html: str) -> ContactInfo:
        max_handle = self.settings.extraction.max_twitter_handle_length
        soup = BeautifulSoup(html, "html.parser")
        builder = ContactInfoBuilder(canonical)

        builder.add_emails(self._page_emails(soup))
        builder.add_emails(emails_from_url(page_url))
        builder.add_social(extract_social(soup, max_handle))

        footer = footer_fragment(soup)
        if footer is not None:
            builder.add_emails(self._page_emails(footer))
            builder.add_social(extract_social(footer, max_handle))

        pages = locate_pages(soup, page_url)
        builder.add_emails(pages.mailto_emails)
        builder.set_contact_url(pages.contact_url)
        builder.set_about_url(pages.about_url)
        builder.add_external_links(collect_external_links(soup, page_url))

        if pages.contact_url:
            builder.merge(await self._secondary_page(pages.contact_url, canonical, contact_page_text))
        if pages.about_url:
            builder.merge(await self._secondary_page(pages.about_url, canonical, team_sections))

        info = builder.build()
        logger.info(
            f"  📬 {canonical}: {len(info.emails)} emails, "
            f"{sum(len(v) for v in info.social.to_dict().values())} social links"
        )
        return info

    @staticmethod
    def _page_emails(soup: BeautifulSoup) -> set:
        return collect(run_strategies(soup, EMAIL_STRATEGIES))

    async def _secondary_page(self, url: str, canonical: str, focus) -> ContactInfo:
        """Contact / about page: emails and social only, never fatal."""
        try:
            result = await self.fetcher.fetch(
                url,
                timeout=self.timeouts.secondary_page,
                body_timeout=self.timeouts.body,
            )
        except ScoutError as e:
            logger.debug(f"  Secondary page {url} failed: {e}")
            return ContactInfo.empty(canonical)
        if not result.ok or not result.text:
            return ContactInfo.empty(canonical)

        soup = BeautifulSoup(result.text, "html.parser")
        info = ContactInfo.empty(canonical)
        info.emails |= self._page_emails(soup)
        info.emails |= extract_emails(focus(soup))
        info.social.update(extract_social(soup, self.settings.extraction.max_twitter_handle_length))
        return info


async def scrape_website(url: str, settings: Optional[ScraperSettings] = None) -> ContactInfo:
    """One-off scrape with a throwaway Fetcher."""
    async with Fetcher() as fetcher:
        return await ContactScraper(fetcher, settings).scrape_website(url)
