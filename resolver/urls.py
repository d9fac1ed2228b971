"""
SCOUT — URL Normalizer / Resolver
Canonicalizes candidate URLs and unwraps listing-site "visit" redirectors so
the extractor always works on the product's real website.
"""

import logging
from typing import Iterator, Optional, Sequence, Tuple
from urllib.parse import parse_qs, urljoin, urlparse

from bs4 import BeautifulSoup

from fetching.errors import ScoutError
from settings.loader import TimeoutSettings

logger = logging.getLogger(__name__)


# (host, path prefix) pairs of known listing-site redirectors
REDIRECT_WRAPPERS: Sequence[Tuple[str, str]] = (
    ("producthunt.com", "/r/"),
    ("ph.co", "/"),
)

# Hosts that are the listing site itself, never a product's website
LISTING_HOSTS = ("producthunt.com", "ph.co")

CONTENT_PATH_HINTS = ("product", "item", "page")
VISIT_TEXT_HINTS = ("visit", "website", "home")


# ── Pure helpers ─────────────────────────────────

def host_of(url: str) -> str:
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return ""
    return host.lower()


def host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def is_valid_url(s) -> bool:
    """True if `s` parses as an absolute http/https URL."""
    if not s or not isinstance(s, str) or not s.strip():
        return False
    try:
        parsed = urlparse(s.strip())
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    return not any(c.isspace() for c in parsed.netloc)


def ensure_scheme(url: str) -> str:
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url.lstrip("/")
    return url


def normalize_url(url: str) -> str:
    """
    Default the scheme to https, lowercase the host, drop one trailing slash
    from the path, and keep the query only for content-bearing paths
    (product / item / page).
    """
    if not url:
        return ""
    url = ensure_scheme(url)
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    if not parsed.netloc:
        return url

    path = parsed.path
    if path.endswith("/"):
        path = path[:-1]

    normalized = f"{parsed.scheme}://{parsed.netloc.lower()}{path}"
    if parsed.query and any(hint in path.lower() for hint in CONTENT_PATH_HINTS):
        normalized += f"?{parsed.query}"
    return normalized


def is_redirect_wrapper(url: str) -> bool:
    """True for known listing-site 'visit' redirector links."""
    if not url:
        return False
    try:
        parsed = urlparse(ensure_scheme(url))
    except ValueError:
        return False
    host = (parsed.hostname or "").lower()
    path = parsed.path or "/"
    return any(
        host_matches(host, domain) and path.startswith(prefix)
        for domain, prefix in REDIRECT_WRAPPERS
    )


def is_listing_url(url: str) -> bool:
    """True if `url` still points at the listing site itself."""
    host = host_of(ensure_scheme(url)) if url else ""
    return any(host_matches(host, domain) for domain in LISTING_HOSTS)


def canonical_link(soup: BeautifulSoup) -> Optional[str]:
    link = soup.find("link", rel="canonical", href=True)
    if link:
        return link["href"].strip()
    return None


# ── Resolver ─────────────────────────────────────

class UrlResolver:
    """
    Network-backed resolution. Both operations degrade instead of raising:
    resolve_redirect() returns None, find_canonical_url() returns its input.
    """

    def __init__(self, fetcher, timeouts: Optional[TimeoutSettings] = None):
        self.fetcher = fetcher
        self.timeouts = timeouts or TimeoutSettings()

    async def resolve_redirect(self, url: str) -> Optional[str]:
        """
        Find the true destination of a redirect-wrapper link.

        1. a `url=` query parameter on the wrapper itself
        2. otherwise ONE fetch of the wrapper page, scanning (first match wins):
           canonical <link>, og:url / twitter:url meta, first external
           rel=nofollow anchor, an anchor whose text reads visit/website/home
        """
        if not is_valid_url(url):
            logger.warning(f"  ⚠️ Cannot resolve redirect, invalid URL: {url}")
            return None

        try:
            param = parse_qs(urlparse(url).query).get("url")
        except ValueError:
            param = None
        if param and is_valid_url(param[0]):
            logger.info(f"  🔗 Found destination in query parameter: {param[0]}")
            return normalize_url(param[0])

        try:
            result = await self.fetcher.fetch(url, timeout=self.timeouts.redirect_page)
        except ScoutError as e:
            logger.warning(f"  ⚠️ Could not fetch redirect page {url}: {e}")
            return None

        if not result.ok or not result.text:
            logger.info(f"  ⚠️ Redirect page {url} returned {result.status}")
            return None

        try:
            soup = BeautifulSoup(result.text, "html.parser")
            for candidate in self._destination_candidates(soup, result.url):
                if is_valid_url(candidate) and not is_listing_url(candidate):
                    logger.info(f"  🔗 Resolved {url} → {candidate}")
                    return normalize_url(candidate)
        except Exception as e:
            logger.warning(f"  ⚠️ Could not parse redirect page {url}: {e}")
            return None

        logger.info(f"  ❓ No destination found on redirect page {url}")
        return None

    @staticmethod
    def _destination_candidates(soup: BeautifulSoup, page_url: str) -> Iterator[str]:
        canonical = canonical_link(soup)
        if canonical:
            yield urljoin(page_url, canonical)

        for meta in soup.find_all("meta"):
            key = (meta.get("property") or meta.get("name") or "").lower()
            if key in ("og:url", "twitter:url") and meta.get("content"):
                yield meta["content"].strip()

        for a in soup.find_all("a", rel="nofollow", href=True):
            href = a["href"].strip()
            if href.startswith("http"):
                yield href

        for a in soup.find_all("a", href=True):
            text = a.get_text(" ", strip=True).lower()
            href = a["href"].strip()
            if href.startswith("http") and any(hint in text for hint in VISIT_TEXT_HINTS):
                yield href

    async def find_canonical_url(self, url: str) -> str:
        """
        Follow HTTP redirects, prefer an explicit canonical <link>, else the
        final URL. Any failure returns `url` unchanged.
        """
        try:
            result = await self.fetcher.fetch(url, timeout=self.timeouts.canonical)
        except ScoutError as e:
            logger.info(f"  ⚠️ Canonical lookup failed for {url}: {e}")
            return url

        if not result.ok:
            logger.info(f"  ⚠️ Canonical lookup for {url} returned {result.status}")
            return url

        final_url = result.url or url
        if not result.text:
            return normalize_url(final_url)

        try:
            canonical = canonical_link(BeautifulSoup(result.text, "html.parser"))
        except Exception as e:
            logger.debug(f"  Canonical parse failed for {url}: {e}")
            return normalize_url(final_url)

        if canonical and is_valid_url(canonical):
            logger.debug(f"  Found canonical URL: {canonical}")
            return normalize_url(canonical)
        return normalize_url(final_url)
