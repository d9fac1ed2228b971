"""
SCOUT — ContactInfo value type.
Every field is mandatory and starts empty, so a result is always well-formed:
failures produce an empty-but-valid value carrying the canonical URL.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Set


SOCIAL_NETWORKS = ("twitter", "facebook", "instagram", "linkedin")


@dataclass
class SocialLinks:
    twitter: Set[str] = field(default_factory=set)
    facebook: Set[str] = field(default_factory=set)
    instagram: Set[str] = field(default_factory=set)
    linkedin: Set[str] = field(default_factory=set)

    def update(self, other: "SocialLinks") -> "SocialLinks":
        for network in SOCIAL_NETWORKS:
            getattr(self, network).update(getattr(other, network))
        return self

    def is_empty(self) -> bool:
        return not any(getattr(self, network) for network in SOCIAL_NETWORKS)

    def to_dict(self) -> dict:
        return {network: sorted(getattr(self, network)) for network in SOCIAL_NETWORKS}


@dataclass
class ContactInfo:
    """Consolidated contact signals for one website."""
    canonical_url: str = ""
    emails: Set[str] = field(default_factory=set)
    social: SocialLinks = field(default_factory=SocialLinks)
    contact_url: Optional[str] = None
    about_url: Optional[str] = None
    external_links: Set[str] = field(default_factory=set)
    # Why the result degraded; None for a normal scrape
    error: Optional[str] = None

    @classmethod
    def empty(cls, canonical_url: str = "", error: Optional[str] = None) -> "ContactInfo":
        return cls(canonical_url=canonical_url or "", error=error)

    def merge(self, other: "ContactInfo") -> "ContactInfo":
        """Union `other`'s signals into this one. Page URLs: first one found wins."""
        self.emails.update(other.emails)
        self.social.update(other.social)
        self.external_links.update(other.external_links)
        self.contact_url = self.contact_url or other.contact_url
        self.about_url = self.about_url or other.about_url
        return self

    def is_empty(self) -> bool:
        return not self.emails and self.social.is_empty()

    def to_dict(self) -> dict:
        return {
            "canonical_url": self.canonical_url,
            "emails": sorted(self.emails),
            "social": self.social.to_dict(),
            "contact_url": self.contact_url,
            "about_url": self.about_url,
            "external_links": sorted(self.external_links),
            "error": self.error,
        }


class ContactInfoBuilder:
    """Accumulates partial results from independent extractors."""

    def __init__(self, canonical_url: str = ""):
        self._info = ContactInfo.empty(canonical_url)

    def add_emails(self, emails: Iterable[str]) -> "ContactInfoBuilder":
        self._info.emails.update(e for e in emails if e)
        return self

    def add_social(self, social: SocialLinks) -> "ContactInfoBuilder":
        self._info.social.update(social)
        return self

    def add_external_links(self, links: Iterable[str]) -> "ContactInfoBuilder":
        self._info.external_links.update(links)
        return self

    def set_contact_url(self, url: Optional[str]) -> "ContactInfoBuilder":
        if url and not self._info.contact_url:
            self._info.contact_url = url
        return self

    def set_about_url(self, url: Optional[str]) -> "ContactInfoBuilder":
        if url and not self._info.about_url:
            self._info.about_url = url
        return self

    def merge(self, other: ContactInfo) -> "ContactInfoBuilder":
        self._info.merge(other)
        return self

    def build(self) -> ContactInfo:
        return self._info
