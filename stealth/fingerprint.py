"""
SCOUT — Client Identity Rotation
Picks a realistic, internally-consistent set of request headers per fetch so
trivial User-Agent blocking does not single the crawler out.
"""

import random
from typing import Dict, List, Optional


# ──────────────────────────────────────────────────
#  Identity pool
# ──────────────────────────────────────────────────

USER_AGENTS = [
    # Chrome on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    # Chrome on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    # Safari on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
    # Firefox on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:122.0) Gecko/20100101 Firefox/122.0",
    # Edge on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36 Edg/121.0.0.0",
]

LANGUAGES = {
    "en-US": "en-US,en;q=0.9",
    "en-GB": "en-GB,en;q=0.9",
    "en-CA": "en-CA,en;q=0.9,fr-CA;q=0.5",
}

ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


class FingerprintManager:
    """
    Hands out request headers drawn from a small fixed pool.
    Each call is an independent draw; `stats` reports how varied the
    identities were over a run.
    """

    def __init__(self, user_agents: Optional[List[str]] = None, rng: Optional[random.Random] = None):
        self.user_agents = list(user_agents or USER_AGENTS)
        self._rng = rng or random.Random()
        self._issued: List[str] = []

    def user_agent(self) -> str:
        ua = self._rng.choice(self.user_agents)
        self._issued.append(ua)
        return ua

    def headers(self, accept: str = ACCEPT_HTML) -> Dict[str, str]:
        """Headers for one outbound request."""
        locale = self._rng.choice(list(LANGUAGES))
        return {
            "User-Agent": self.user_agent(),
            "Accept": accept,
            "Accept-Language": LANGUAGES[locale],
            "Cache-Control": "no-cache",
        }

    @property
    def stats(self) -> dict:
        return {
            "identities_issued": len(self._issued),
            "unique_user_agents": len(set(self._issued)),
        }
