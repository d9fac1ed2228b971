"""
SCOUT — Email Surface Scanners
One strategy per place an address can hide in a page. Every scanner reads a
single surface of the parsed document and feeds its text through
extract_emails(), so the cleaning and placeholder filtering are shared.

Surfaces:
    raw html / visible text     style attributes + <style> (CSS escapes)
    data-* (base64 / %-encoded) comments, hidden elements, <noscript>
    meta tags                   JSON-LD structured data
    inline scripts              alt / aria-label / title attributes
    contact forms               mailto: anchors
    img src, event handlers     contact-looking elements
"""

import base64
import binascii
import html
import json
import re
from typing import Iterator, List, Optional, Set, Tuple
from urllib.parse import parse_qsl, unquote, urlparse

from bs4 import BeautifulSoup, Comment

from .emails import extract_emails, extract_emails_from_all
from .strategy import Strategy


CSS_ESCAPE = re.compile(r"\\([0-9a-fA-F]{1,6})\s?")
QUOTED_EMAIL = re.compile(r"""["'`]([^"'`\s]+@[^"'`\s]+\.[a-z]{2,})["'`]""", re.IGNORECASE)
CONCAT_CHAIN = re.compile(r"""(?:["'][^"'\n]*["']\s*\+\s*)+["'][^"'\n]*["']""")
STRING_LITERAL = re.compile(r"""["']([^"'\n]*)["']""")
FROM_CHAR_CODE = re.compile(r"String\.fromCharCode\(([\d\s,]+)\)")
BASE64_SHAPE = re.compile(r"^[A-Za-z0-9+/]{8,}={0,2}$")

HIDDEN_STYLE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)
EMAIL_JSON_KEYS = frozenset({"email", "emailaddress", "contactpoint", "contactemail", "authoremail"})
EVENT_HANDLERS = ("onclick", "onmouseover", "onmousedown", "onfocus", "onload")
CONTACT_SELECTORS = (
    "[class*=email]", "[class*=contact]", "[id*=email]", "[id*=contact]",
    "[data-email]", "[data-contact]", "address", "footer",
)


def decode_css_escapes(text: str) -> str:
    r"""'\40' / '\0040 ' -> '@'."""
    def _sub(match):
        try:
            return chr(int(match.group(1), 16))
        except (ValueError, OverflowError):
            return match.group(0)
    return CSS_ESCAPE.sub(_sub, text)


def _try_base64(value: str) -> str:
    if not BASE64_SHAPE.match(value):
        return ""
    try:
        return base64.b64decode(value, validate=True).decode("utf-8", errors="ignore")
    except (binascii.Error, ValueError):
        return ""


def decode_char_codes(script: str) -> Iterator[str]:
    for match in FROM_CHAR_CODE.finditer(script):
        try:
            codes = [int(c) for c in match.group(1).split(",") if c.strip()]
            yield "".join(chr(c) for c in codes)
        except (ValueError, OverflowError):
            continue


def join_concatenations(script: str) -> Iterator[str]:
    """'jane' + '@' + 'acme.io' -> 'jane@acme.io'."""
    for match in CONCAT_CHAIN.finditer(script):
        yield "".join(STRING_LITERAL.findall(match.group(0)))


def find_json_emails(data, depth: int = 0) -> Set[str]:
    """Walk parsed JSON-LD and pull values stored under email-ish keys."""
    found: Set[str] = set()
    if depth > 20:
        return found
    if isinstance(data, dict):
        for key, value in data.items():
            if str(key).lower() in EMAIL_JSON_KEYS and isinstance(value, str):
                found |= extract_emails(value.replace("mailto:", " "))
            found |= find_json_emails(value, depth + 1)
    elif isinstance(data, list):
        for item in data:
            found |= find_json_emails(item, depth + 1)
    return found


# ── Strategies ───────────────────────────────────

def scan_html(soup: BeautifulSoup) -> Set[str]:
    return extract_emails_from_all([str(soup), html.unescape(soup.get_text(" "))])


def scan_styles(soup: BeautifulSoup) -> Set[str]:
    blobs = [el.get("style", "") for el in soup.find_all(style=True)]
    blobs += [tag.get_text() for tag in soup.find_all("style")]
    return extract_emails_from_all(decode_css_escapes(b) for b in blobs)


def scan_data_attributes(soup: BeautifulSoup) -> Set[str]:
    blobs: List[str] = []
    for el in soup.find_all(True):
        for attr, value in el.attrs.items():
            if not attr.startswith("data-") or not isinstance(value, str):
                continue
            blobs.append(value)
            blobs.append(unquote(value))
            blobs.append(_try_base64(value.strip()))
    return extract_emails_from_all(blobs)


def scan_comments(soup: BeautifulSoup) -> Set[str]:
    return extract_emails_from_all(str(c) for c in soup.find_all(string=lambda s: isinstance(s, Comment)))


def scan_hidden(soup: BeautifulSoup) -> Set[str]:
    blobs = []
    for el in soup.find_all(True):
        classes = el.get("class") or []
        if (
            el.has_attr("hidden")
            or "hidden" in classes
            or HIDDEN_STYLE.search(el.get("style", "") or "")
        ):
            blobs.append(str(el))
    blobs += [str(tag) for tag in soup.find_all("noscript")]
    return extract_emails_from_all(blobs)


def scan_meta(soup: BeautifulSoup) -> Set[str]:
    blobs = []
    for meta in soup.find_all("meta"):
        blobs.append(meta.get("content", "") or "")
        key = (meta.get("property") or meta.get("name") or meta.get("itemprop") or "").lower()
        if "email" in key or key.startswith(("og:", "twitter:")):
            blobs.append(meta.get("value", "") or "")
    return extract_emails_from_all(blobs)


def scan_json_ld(soup: BeautifulSoup) -> Set[str]:
    found: Set[str] = set()
    for tag in soup.find_all("script", type="application/ld+json"):
        raw = tag.string or tag.get_text() or ""
        try:
            data = json.loads(raw)
        except ValueError:
            found |= extract_emails(raw)
            continue
        found |= find_json_emails(data)
        found |= extract_emails(json.dumps(data))
    return found


def scan_scripts(soup: BeautifulSoup) -> Set[str]:
    blobs: List[str] = []
    for tag in soup.find_all("script"):
        script = tag.string or tag.get_text() or ""
        if not script:
            continue
        blobs += QUOTED_EMAIL.findall(script)
        blobs += list(join_concatenations(script))
        blobs += list(decode_char_codes(script))
    return extract_emails_from_all(blobs)


def scan_labels(soup: BeautifulSoup) -> Set[str]:
    blobs = []
    for attr in ("alt", "aria-label", "title"):
        blobs += [el.get(attr, "") for el in soup.find_all(attrs={attr: True})]
    return extract_emails_from_all(blobs)


def scan_forms(soup: BeautifulSoup) -> Set[str]:
    blobs = []
    for form in soup.find_all("form"):
        form_id = " ".join([form.get("id", "") or "", " ".join(form.get("class") or []), form.get("action", "") or ""]).lower()
        contact_form = "contact" in form_id or "email" in form_id
        for field in form.find_all(["input", "textarea"]):
            if contact_form or field.get("type") == "hidden" or "email" in (field.get("name") or "").lower():
                blobs.append(field.get("value", "") or "")
                blobs.append(field.get("placeholder", "") or "")
    return extract_emails_from_all(blobs)


def mailto_address(href: str) -> Optional[str]:
    """Address part of a mailto: href, as written, or None."""
    href = href.strip()
    if not href.lower().startswith("mailto:"):
        return None
    address = unquote(href[len("mailto:"):].split("?", 1)[0]).strip()
    if "@" not in address or any(c.isspace() for c in address):
        return None
    return address


def mailto_addresses(soup: BeautifulSoup) -> Set[str]:
    """mailto: targets taken as written (no placeholder filter)."""
    emails = set()
    for a in soup.find_all("a", href=True):
        address = mailto_address(a["href"])
        if address:
            emails.add(address)
    return emails


def scan_images(soup: BeautifulSoup) -> Set[str]:
    return extract_emails_from_all(unquote(img.get("src", "") or "") for img in soup.find_all("img"))


def scan_event_handlers(soup: BeautifulSoup) -> Set[str]:
    blobs = []
    for attr in EVENT_HANDLERS:
        for el in soup.find_all(attrs={attr: True}):
            handler = el.get(attr, "")
            blobs.append(handler)
            blobs += list(join_concatenations(handler))
    return extract_emails_from_all(blobs)


def scan_contact_elements(soup: BeautifulSoup) -> Set[str]:
    blobs = []
    for selector in CONTACT_SELECTORS:
        for el in soup.select(selector):
            blobs.append(html.unescape(el.get_text(" ")))
            blobs.append(el.get("data-email", "") or "")
    return extract_emails_from_all(blobs)


def emails_from_url(url: str) -> Set[str]:
    """Addresses carried in a page URL's query parameters or path."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return set()
    blobs = [unquote(parsed.path)]
    blobs += [value for _, value in parse_qsl(parsed.query)]
    return extract_emails_from_all(blobs)


EMAIL_STRATEGIES: List[Tuple[str, Strategy]] = [
    ("html", scan_html),
    ("styles", scan_styles),
    ("data_attributes", scan_data_attributes),
    ("comments", scan_comments),
    ("hidden", scan_hidden),
    ("meta", scan_meta),
    ("json_ld", scan_json_ld),
    ("scripts", scan_scripts),
    ("labels", scan_labels),
    ("forms", scan_forms),
    ("mailto", mailto_addresses),
    ("images", scan_images),
    ("event_handlers", scan_event_handlers),
    ("contact_elements", scan_contact_elements),
]


