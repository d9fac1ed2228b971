"""SCOUT Extractors — pure functions from a parsed page to contact signals."""
from .contact_info import ContactInfo, ContactInfoBuilder, SocialLinks
from .emails import extract_emails, is_acceptable_email
from .links import PageLinks, collect_external_links, footer_fragment, locate_pages
from .social import extract_social
from .strategy import StrategyResult, collect, run_strategies
from .surfaces import EMAIL_STRATEGIES, emails_from_url

__all__ = [
    "ContactInfo", "ContactInfoBuilder", "SocialLinks",
    "extract_emails", "is_acceptable_email",
    "PageLinks", "collect_external_links", "footer_fragment", "locate_pages",
    "extract_social",
    "StrategyResult", "collect", "run_strategies",
    "EMAIL_STRATEGIES", "emails_from_url",
]
