"""
SCOUT — Social Link Scanner
Twitter/X handles, Facebook, Instagram and LinkedIn profile URLs, taken from
anchors, social-looking elements, icon elements inside social anchors, and
bare @handles in visible text.
"""

import re
from typing import Iterator, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from .contact_info import SocialLinks

DEFAULT_MAX_HANDLE_LENGTH = 16  # including the leading "@"

TWITTER_HOSTS = ("twitter.com", "x.com")
FACEBOOK_HOSTS = ("facebook.com", "fb.com")
INSTAGRAM_HOSTS = ("instagram.com",)
LINKEDIN_HOSTS = ("linkedin.com",)

# First path segments on twitter.com / x.com that are not usernames
TWITTER_RESERVED_PATHS = frozenset({
    "share", "intent", "home", "search", "explore", "hashtag", "compose",
    "notifications", "messages", "settings", "i", "status", "statuses",
    "tweet", "retweet", "like", "reply", "follow", "unfollow", "block",
    "mute", "report", "lists", "moments", "topics", "bookmarks", "login",
    "signup", "tos", "privacy",
})
INSTAGRAM_RESERVED_PATHS = frozenset({"p", "explore", "direct", "stories", "reel", "reels", "accounts"})
LINKEDIN_PROFILE_PREFIXES = ("/in/", "/company/", "/school/")

TEXT_HANDLE = re.compile(r"(?:^|(?<=\s))(@[A-Za-z0-9_]{1,15})(?=\s|$)")
HANDLE_SHAPE = re.compile(r"^@[A-Za-z0-9_]+$")

SOCIAL_MARKERS = ("twitter", "x.com", "facebook", "instagram", "linkedin", "social")
ICON_TAGS = ("svg", "i", "img", "span", "use", "path")


def _host(url: str) -> str:
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""
    for prefix in ("www.", "mobile.", "m."):
        if host.startswith(prefix):
            host = host[len(prefix):]
    return host


def _on(host: str, domains) -> bool:
    return any(host == d or host.endswith("." + d) for d in domains)


def _absolute(href: str) -> Optional[str]:
    href = href.strip()
    if not href or href in ("#", "/") or href.lower().startswith(("javascript:", "mailto:", "tel:")):
        return None
    if href.startswith("//"):
        return "https:" + href
    if href.startswith(("http://", "https://")):
        return href
    if any(marker in href.lower() for marker in ("twitter.com/", "x.com/", "facebook.com/", "fb.com/", "instagram.com/", "linkedin.com/")):
        return "https://" + href.lstrip("/")
    return None


def normalize_handle(raw: str, max_length: int = DEFAULT_MAX_HANDLE_LENGTH) -> Optional[str]:
    """'@acme' / 'acme' -> '@acme', or None for reserved words and bad shapes."""
    handle = re.sub(r"[?#].*$", "", raw or "").strip().strip("/")
    if not handle:
        return None
    if handle.lstrip("@").lower() in TWITTER_RESERVED_PATHS:
        return None
    if not handle.startswith("@"):
        handle = "@" + handle
    if len(handle) <= 1 or len(handle) > max_length:
        return None
    if not HANDLE_SHAPE.match(handle):
        return None
    return handle


def twitter_handle_from_url(url: str, max_length: int = DEFAULT_MAX_HANDLE_LENGTH) -> Optional[str]:
    if not _on(_host(url), TWITTER_HOSTS):
        return None
    segments = [s for s in urlparse(url).path.split("/") if s]
    if not segments:
        return None
    return normalize_handle(segments[0], max_length)


def facebook_page_from_url(url: str) -> Optional[str]:
    parsed = urlparse(url)
    if not _on(_host(url), FACEBOOK_HOSTS):
        return None
    path = parsed.path.rstrip("/")
    if not path or "/sharer" in path or "/dialog" in path or "/share" in path:
        return None
    return f"{parsed.scheme}://{parsed.netloc.lower()}{path}"


def instagram_profile_from_url(url: str) -> Optional[str]:
    parsed = urlparse(url)
    if not _on(_host(url), INSTAGRAM_HOSTS):
        return None
    segments = [s for s in parsed.path.split("/") if s]
    if not segments or segments[0].lower() in INSTAGRAM_RESERVED_PATHS:
        return None
    return f"{parsed.scheme}://{parsed.netloc.lower()}/{segments[0]}"


def linkedin_profile_from_url(url: str) -> Optional[str]:
    parsed = urlparse(url)
    if not _on(_host(url), LINKEDIN_HOSTS):
        return None
    path = parsed.path.rstrip("/")
    if "/share" in path or "/shareArticle" in path:
        return None
    if not any(path.startswith(prefix) or prefix in path for prefix in LINKEDIN_PROFILE_PREFIXES):
        return None
    return f"{parsed.scheme}://{parsed.netloc.lower()}{path}"


def classify_url(url: str, social: SocialLinks, max_handle_length: int = DEFAULT_MAX_HANDLE_LENGTH):
    """File one absolute URL under the network it belongs to, if any."""
    handle = twitter_handle_from_url(url, max_handle_length)
    if handle:
        social.twitter.add(handle)
        return
    for network, parse in (
        ("facebook", facebook_page_from_url),
        ("instagram", instagram_profile_from_url),
        ("linkedin", linkedin_profile_from_url),
    ):
        value = parse(url)
        if value:
            getattr(social, network).add(value)
            return


def _marked(el: Tag) -> bool:
    """Does the element's class / id / aria-label / title mention a network?"""
    bits = [
        " ".join(el.get("class") or []),
        el.get("id") or "",
        el.get("aria-label") or "",
        el.get("title") or "",
    ]
    blob = " ".join(bits).lower()
    return any(marker in blob for marker in SOCIAL_MARKERS)


def _candidate_hrefs(soup: BeautifulSoup) -> Iterator[str]:
    for a in soup.find_all("a", href=True):
        yield a["href"]

    # Social-looking elements and icons: own link attributes first, then the
    # anchor they sit in.
    for el in soup.find_all(True):
        if not (_marked(el) or el.name in ICON_TAGS):
            continue
        for attr in ("href", "data-href", "data-url", "xlink:href"):
            value = el.get(attr)
            if isinstance(value, str) and value:
                yield value
        parent = el.find_parent("a", href=True)
        if parent is not None:
            yield parent["href"]


def extract_text_handles(text: str, max_length: int = DEFAULT_MAX_HANDLE_LENGTH) -> set:
    """Bare '@handle' tokens bounded by whitespace."""
    handles = set()
    for match in TEXT_HANDLE.findall(text or ""):
        handle = normalize_handle(match, max_length)
        if handle:
            handles.add(handle)
    return handles


def extract_social(soup: BeautifulSoup, max_handle_length: int = DEFAULT_MAX_HANDLE_LENGTH,
                   include_text_handles: bool = True) -> SocialLinks:
    social = SocialLinks()
    seen = set()
    for href in _candidate_hrefs(soup):
        url = _absolute(href)
        if not url or url in seen:
            continue
        seen.add(url)
        try:
            classify_url(url, social, max_handle_length)
        except ValueError:
            continue

    if include_text_handles:
        body = soup.body or soup
        social.twitter |= extract_text_handles(body.get_text(" "), max_handle_length)
    return social
