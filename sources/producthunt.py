"""
SCOUT — Product Hunt Feed
GraphQL client for recently launched products. HTTP 429 is retried with
doubling backoff; anything else surfaces as a ScoutError for the caller's
own retry policy.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

import aiohttp

from fetching.errors import FetchTimeout, NetworkError, ParseError, RateLimited
from fetching.retry import RetryPolicy
from .base import Candidate, CandidateFeed, FeedPage, FeedWindow, Maker

logger = logging.getLogger(__name__)

API_URL = "https://api.producthunt.com/v2/api/graphql"

POSTS_QUERY = """
query GetPosts($postedAfter: DateTime!, $postedBefore: DateTime!, $first: Int!, $after: String) {
  posts(postedAfter: $postedAfter, postedBefore: $postedBefore, first: $first, after: $after) {
    edges {
      node {
        id
        name
        tagline
        description
        url
        website
        votesCount
        createdAt
        thumbnail { url }
        makers { id name username headline twitterUsername }
      }
    }
    pageInfo { endCursor hasNextPage }
  }
}
"""


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def parse_posts(payload: dict) -> FeedPage:
    """GraphQL response body -> FeedPage."""
    if not isinstance(payload, dict):
        raise ParseError("response is not a JSON object")
    if payload.get("errors"):
        raise ParseError(f"GraphQL errors: {payload['errors']}")
    try:
        posts = payload["data"]["posts"]
        edges = posts.get("edges") or []
        page_info = posts.get("pageInfo") or {}
    except (KeyError, TypeError, AttributeError) as e:
        raise ParseError(f"unexpected response shape: {e}") from e

    items = []
    for edge in edges:
        node = (edge or {}).get("node") or {}
        if not node.get("id"):
            continue
        items.append(Candidate(
            id=str(node["id"]),
            name=node.get("name") or "",
            url=node.get("url") or "",
            website=node.get("website") or "",
            tagline=node.get("tagline") or "",
            description=node.get("description") or "",
            image_url=(node.get("thumbnail") or {}).get("url") or "",
            votes_count=int(node.get("votesCount") or 0),
            created_at=node.get("createdAt") or "",
            makers=[
                Maker(
                    id=str(m.get("id") or ""),
                    name=m.get("name") or "",
                    username=m.get("username") or "",
                    headline=m.get("headline") or "",
                    twitter_username=m.get("twitterUsername") or "",
                )
                for m in (node.get("makers") or []) if m
            ],
        ))

    return FeedPage(
        items=items,
        next_cursor=page_info.get("endCursor"),
        has_more=bool(page_info.get("hasNextPage")),
    )


class ProductHuntFeed(CandidateFeed):
    """Bearer-token client over the public v2 GraphQL API."""

    def __init__(self, token: str, timeout: float = 20.0, rate_limit_retries: int = 3,
                 rate_limit_backoff: float = 1.0, session: Optional[aiohttp.ClientSession] = None):
        self.token = token
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._rate_limit_policy = RetryPolicy(
            max_attempts=rate_limit_retries + 1,
            base_delay=rate_limit_backoff,
            factor=2.0,
            retry_on=(RateLimited,),
        )

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self):
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch_candidates(self, window: FeedWindow, cursor: Optional[str] = None) -> FeedPage:
        variables = {
            "postedAfter": _iso(window.posted_after),
            "postedBefore": _iso(window.posted_before or datetime.now(window.posted_after.tzinfo)),
            "first": int(window.page_size),
            "after": cursor,
        }
        payload = await self._rate_limit_policy.run(
            lambda: self._post({"query": POSTS_QUERY, "variables": variables}),
            label="Product Hunt query",
        )
        page = parse_posts(payload)
        logger.info(f"  📥 Product Hunt: {len(page.items)} posts (more: {page.has_more})")
        return page

    async def _post(self, body: dict) -> dict:
        if not self.token:
            raise NetworkError("PH_TOKEN is not configured", status=401)
        session = self._ensure_session()
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Cache-Control": "no-cache",
        }
        try:
            async with session.post(
                API_URL,
                json=body,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if resp.status == 429:
                    retry_after = resp.headers.get("Retry-After")
                    raise RateLimited(
                        "Product Hunt rate limit exceeded",
                        retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
                    )
                if resp.status >= 400:
                    raise NetworkError(f"Product Hunt API returned {resp.status}", status=resp.status)
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise ParseError(f"invalid JSON from Product Hunt: {e}") from e
        except asyncio.TimeoutError:
            raise FetchTimeout(API_URL, self.timeout)
        except aiohttp.ClientError as e:
            raise NetworkError(f"{type(e).__name__}: {e}") from e
