"""
SCOUT — Page Locator
Finds the site's own contact and about pages, collects outbound links and
isolates the footer for a second, focused extraction pass.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Set
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from .surfaces import mailto_address

CONTACT_PATTERN = re.compile(r"contact|support|get[-_ ]?in[-_ ]?touch|reach[-_ ]?us|help", re.IGNORECASE)
ABOUT_PATTERN = re.compile(r"about|team|company|who[-_ ]?we[-_ ]?are|our[-_ ]?story", re.IGNORECASE)
FOOTER_SELECTORS = ("footer", "[class*=footer]", "[id*=footer]", "[role=contentinfo]")


@dataclass
class PageLinks:
    contact_url: Optional[str] = None
    about_url: Optional[str] = None
    mailto_emails: Set[str] = field(default_factory=set)


def _host(url: str) -> str:
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


def same_site(url: str, base_url: str) -> bool:
    return bool(_host(url)) and _host(url) == _host(base_url)


def locate_pages(soup: BeautifulSoup, base_url: str) -> PageLinks:
    """
    One pass over the anchors. First same-site match wins per category, by
    href substring or visible text; mailto: targets are kept as emails.
    """
    found = PageLinks()
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if not href or href.startswith(("#", "javascript:", "tel:")):
            continue

        if href.lower().startswith("mailto:"):
            address = mailto_address(href)
            if address:
                found.mailto_emails.add(address)
            continue

        url = urljoin(base_url, href)
        if not url.startswith(("http://", "https://")) or not same_site(url, base_url):
            continue

        path = urlparse(url).path
        text = a.get_text(" ", strip=True)
        if found.contact_url is None and (CONTACT_PATTERN.search(path) or CONTACT_PATTERN.search(text)):
            found.contact_url = url
        elif found.about_url is None and (ABOUT_PATTERN.search(path) or ABOUT_PATTERN.search(text)):
            found.about_url = url
    return found


def collect_external_links(soup: BeautifulSoup, base_url: str) -> Set[str]:
    """Every absolute anchor href on a different host than the page."""
    own = _host(base_url)
    links = set()
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if not href.startswith(("http://", "https://")):
            continue
        host = _host(href)
        if host and host != own:
            links.add(href)
    return links


def footer_fragment(soup: BeautifulSoup) -> Optional[BeautifulSoup]:
    """The page footer re-parsed on its own, or None if there isn't one."""
    parts = []
    for selector in FOOTER_SELECTORS:
        for el in soup.select(selector):
            parts.append(str(el))
        if parts:
            break
    if not parts:
        return None
    return BeautifulSoup("".join(parts), "html.parser")


def contact_page_text(soup: BeautifulSoup) -> str:
    """Form fields and prose blocks of a contact page."""
    blobs = []
    for field_el in soup.find_all(["input", "textarea"]):
        blobs.append(field_el.get("value", "") or "")
        blobs.append(field_el.get("placeholder", "") or "")
    for el in soup.find_all(["p", "div", "span", "address"]):
        blobs.append(el.get_text(" ", strip=True))
    return "\n".join(b for b in blobs if b)


def team_sections(soup: BeautifulSoup) -> str:
    """Text of team / member / founder blocks on an about page."""
    blobs = []
    for el in soup.select("[class*=team], [class*=member], [class*=founder], [id*=team]"):
        blobs.append(el.get_text(" ", strip=True))
    return "\n".join(blobs)
