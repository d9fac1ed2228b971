"""
SCOUT — Email Extractor
The one filtered email function every surface scanner feeds into.

Four patterns run over any text blob:
    1. strict RFC-5322-like address
    2. simple fallback address
    3. bracket obfuscation   jane [at] acme [dot] io, jane(at)acme.io
    4. spoken obfuscation    jane at acme dot io
Matches are cleaned, lowercased and filtered against placeholder domains.
"""

import re
from typing import Iterable, Set


STRICT_EMAIL = re.compile(
    r"[a-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[a-z0-9!#$%&'*+/=?^_`{|}~-]+)*"
    r"@(?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z0-9](?:[a-z0-9-]*[a-z0-9])?",
    re.IGNORECASE,
)

SIMPLE_EMAIL = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

_AT = r"\s*[\[\(\{]\s*at\s*[\]\)\}]\s*"
_DOT = r"\s*[\[\(\{]\s*dot\s*[\]\)\}]\s*"

BRACKET_OBFUSCATED = re.compile(
    rf"([a-z0-9._%+-]+){_AT}([a-z0-9-]+(?:(?:{_DOT}|\.)[a-z0-9-]+)+)",
    re.IGNORECASE,
)
SPOKEN_OBFUSCATED = re.compile(
    r"\b([a-z0-9._%+-]+)\s+at\s+([a-z0-9-]+(?:\s+dot\s+[a-z0-9-]+)+)\b",
    re.IGNORECASE,
)
_DOT_MARKER = re.compile(rf"{_DOT}|\s+dot\s+", re.IGNORECASE)

# Final shape check applied after cleaning
VALID_EMAIL = re.compile(r"^[a-z0-9._%+'-]+@[a-z0-9-]+(?:\.[a-z0-9-]+)*\.[a-z]{2,}$")

# Placeholder / documentation / noise domains. A domain matches when it is
# equal to an entry or a subdomain of one.
PLACEHOLDER_DOMAINS = frozenset({
    "example.com", "example.org", "example.net", "domain.com", "yourdomain.com",
    "email.com", "yourcompany.com", "company.com", "acme.com", "test.com",
    "sample.com", "website.com", "mail.com", "gmail.example", "localhost",
    "test.local", "demo.com", "placeholder.com", "yoursite.com", "site.com",
    "user.com", "username.com", "mydomain.com", "mysite.com", "mycompany.com",
    "myemail.com", "emailaddress.com", "mailaddress.com", "mailbox.com",
    "mailme.com", "emailme.com", "contactme.com", "contactus.com",
    "info.example", "support.example", "contact.example", "hello.example",
    "noreply.example", "sentry.io", "wixpress.com",
})

# Asset filenames that look like addresses (logo@2x.png)
ASSET_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".css", ".js", ".ico")

SUSPICIOUS_CHARS = re.compile(r"[<>{}()\[\]\\/]")


def _trim_tld(domain: str) -> str:
    """Cut text glued onto the TLD: 'acme.ioFollow' -> 'acme.io'."""
    parts = domain.rsplit(".", 1)
    if len(parts) != 2:
        return domain
    base, tld = parts
    for i in range(1, len(tld)):
        if tld[i].isupper() and tld[i - 1].islower():
            tld = tld[:i]
            break
    return f"{base}.{tld}"


def clean_email(raw: str) -> str:
    raw = raw.strip().strip(".,;:'\"")
    if "@" not in raw:
        return raw.lower()
    local, domain = raw.rsplit("@", 1)
    domain = _trim_tld(domain.strip(".-"))
    return f"{local}@{domain}".lower()


def is_placeholder_domain(domain: str) -> bool:
    domain = domain.lower()
    return any(domain == d or domain.endswith("." + d) for d in PLACEHOLDER_DOMAINS)


def is_acceptable_email(email: str) -> bool:
    """Filter applied to every candidate address."""
    if not email or "@" not in email or SUSPICIOUS_CHARS.search(email):
        return False
    local, domain = email.rsplit("@", 1)
    if not local or len(local) > 64 or len(email) > 254:
        return False
    if "." not in domain or len(domain) < 4:
        return False
    if is_placeholder_domain(domain):
        return False
    if domain.endswith(ASSET_SUFFIXES):
        return False
    return bool(VALID_EMAIL.match(email))


def find_email_candidates(text: str) -> Set[str]:
    """Raw, unfiltered matches from all four patterns."""
    found: Set[str] = set()
    if not text:
        return found

    if "@" in text:
        found.update(STRICT_EMAIL.findall(text))
        found.update(SIMPLE_EMAIL.findall(text))

    lowered = text.lower()
    if "at" in lowered:
        for local, domain in BRACKET_OBFUSCATED.findall(text):
            found.add(f"{local}@{_DOT_MARKER.sub('.', domain)}")
        if " dot " in lowered:
            for local, domain in SPOKEN_OBFUSCATED.findall(text):
                found.add(f"{local}@{_DOT_MARKER.sub('.', domain)}")
    return found


def extract_emails(text: str) -> Set[str]:
    """Every acceptable email address in `text`, cleaned and lowercased."""
    emails = set()
    for raw in find_email_candidates(text):
        email = clean_email(raw)
        if is_acceptable_email(email):
            emails.add(email)
    return emails


def extract_emails_from_all(blobs: Iterable[str]) -> Set[str]:
    emails: Set[str] = set()
    for blob in blobs:
        if blob:
            emails |= extract_emails(blob)
    return emails
