"""
SCOUT — Candidate model and the feed capability.
A feed hands back one page of candidates for a time window plus a cursor for
the next page; the poller owns the paging loop.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from extractors.contact_info import ContactInfo


@dataclass
class Maker:
    id: str = ""
    name: str = ""
    username: str = ""
    headline: str = ""
    twitter_username: str = ""


@dataclass
class Candidate:
    """One listed product. `id` is the dedup key."""
    id: str
    name: str = ""
    url: str = ""                  # listing page
    website: str = ""              # usually a listing-site redirect wrapper
    tagline: str = ""
    description: str = ""
    image_url: str = ""
    votes_count: int = 0
    created_at: str = ""
    makers: List[Maker] = field(default_factory=list)
    contact: Optional[ContactInfo] = None
    exact_website_url: str = ""

    @property
    def target_url(self) -> str:
        return (self.website or self.url or "").strip()

    def with_contact_info(self, info: ContactInfo) -> "Candidate":
        """A copy carrying `info`; every other field is kept."""
        exact = info.canonical_url or self.target_url
        return replace(self, contact=info, exact_website_url=exact)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["contact"] = self.contact.to_dict() if self.contact else None
        return d


@dataclass
class FeedWindow:
    """[posted_after, posted_before) plus a page size."""
    posted_after: datetime
    posted_before: Optional[datetime] = None
    page_size: int = 20

    @classmethod
    def last_days(cls, days: int, page_size: int = 20, now: Optional[datetime] = None) -> "FeedWindow":
        now = now or datetime.now(timezone.utc)
        return cls(posted_after=now - timedelta(days=days), posted_before=now, page_size=page_size)

    @classmethod
    def today(cls, page_size: int = 20, now: Optional[datetime] = None) -> "FeedWindow":
        now = now or datetime.now(timezone.utc)
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return cls(posted_after=start, posted_before=now, page_size=page_size)


@dataclass
class FeedPage:
    items: List[Candidate] = field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False


class CandidateFeed(ABC):
    """Upstream listing feed."""

    @abstractmethod
    async def fetch_candidates(self, window: FeedWindow, cursor: Optional[str] = None) -> FeedPage:
        """
        One page of candidates inside `window`, starting after `cursor`.

        Raises:
            RateLimited / NetworkError / FetchTimeout on transient failure,
            ParseError on a malformed response.
        """

    async def close(self):
        pass
