"""
SCOUT — Feed and Webhook Tests
Covers: GraphQL response parsing, 429 handling against a local server,
Discord/Slack payloads, webhook delivery results, CLI flags.
Run with: python -m pytest tests/test_feed_webhook.py -v
"""

import asyncio
import os
import sys
from datetime import datetime, timezone

import pytest
from aiohttp import web

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from engine import parse_args
from extractors.contact_info import ContactInfo, SocialLinks
from fetching.errors import NetworkError, ParseError, RateLimited
from output.webhook import PH_ORANGE, WebhookNotifier
from sources.base import Candidate, FeedWindow, Maker
from sources.producthunt import ProductHuntFeed, parse_posts


SAMPLE = {
    "data": {
        "posts": {
            "edges": [
                {"node": {
                    "id": "101",
                    "name": "Acme",
                    "tagline": "Rockets for everyone",
                    "url": "https://www.producthunt.com/posts/acme",
                    "website": "https://www.producthunt.com/r/abc",
                    "votesCount": 42,
                    "createdAt": "2026-10-17T08:00:00Z",
                    "thumbnail": {"url": "https://img.ph/acme.png"},
                    "makers": [{"id": "7", "name": "Ada", "username": "ada", "twitterUsername": "ada"}],
                }},
                {"node": {"id": "102", "name": "Beta"}},
                {"node": {"name": "no id"}},
            ],
            "pageInfo": {"endCursor": "cur2", "hasNextPage": True},
        }
    }
}


def _window():
    return FeedWindow.last_days(1, now=datetime(2026, 10, 17, tzinfo=timezone.utc))


async def _start_server(handler, path="/graphql", method="POST"):
    app = web.Application()
    app.router.add_route(method, path, handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]
    return runner, f"http://{host}:{port}{path}"


# ──────────────────────────────────────────────────
#  Product Hunt feed
# ──────────────────────────────────────────────────

class TestParsePosts:
    def test_parses_nodes_and_cursor(self):
        page = parse_posts(SAMPLE)
        assert [c.id for c in page.items] == ["101", "102"]
        acme = page.items[0]
        assert acme.votes_count == 42
        assert acme.image_url == "https://img.ph/acme.png"
        assert acme.makers[0].name == "Ada"
        assert acme.contact is None
        assert page.next_cursor == "cur2"
        assert page.has_more

    def test_graphql_errors(self):
        with pytest.raises(ParseError):
            parse_posts({"errors": [{"message": "bad token"}]})

    def test_missing_data(self):
        with pytest.raises(ParseError):
            parse_posts({"nothing": True})

    def test_not_an_object(self):
        with pytest.raises(ParseError):
            parse_posts(["nope"])


class TestProductHuntFeed:
    def test_retries_rate_limit_then_succeeds(self, monkeypatch):
        calls = []

        async def handler(request):
            calls.append(request.headers.get("Authorization"))
            body = await request.json()
            assert body["variables"]["after"] == "cur1"
            if len(calls) == 1:
                return web.json_response({"error": "slow down"}, status=429)
            return web.json_response(SAMPLE)

        async def run():
            runner, url = await _start_server(handler)
            monkeypatch.setattr("sources.producthunt.API_URL", url)
            feed = ProductHuntFeed("tok", timeout=5, rate_limit_backoff=0)
            try:
                return await feed.fetch_candidates(_window(), cursor="cur1")
            finally:
                await feed.close()
                await runner.cleanup()

        page = asyncio.run(run())
        assert len(calls) == 2
        assert calls[0] == "Bearer tok"
        assert len(page.items) == 2

    def test_rate_limit_exhausted(self, monkeypatch):
        async def handler(request):
            return web.json_response({}, status=429)

        async def run():
            runner, url = await _start_server(handler)
            monkeypatch.setattr("sources.producthunt.API_URL", url)
            feed = ProductHuntFeed("tok", timeout=5, rate_limit_retries=1, rate_limit_backoff=0)
            try:
                await feed.fetch_candidates(_window())
            finally:
                await feed.close()
                await runner.cleanup()

        with pytest.raises(RateLimited):
            asyncio.run(run())

    def test_server_error_is_network_error(self, monkeypatch):
        async def handler(request):
            return web.Response(status=502, text="bad gateway")

        async def run():
            runner, url = await _start_server(handler)
            monkeypatch.setattr("sources.producthunt.API_URL", url)
            feed = ProductHuntFeed("tok", timeout=5, rate_limit_backoff=0)
            try:
                await feed.fetch_candidates(_window())
            finally:
                await feed.close()
                await runner.cleanup()

        with pytest.raises(NetworkError) as exc:
            asyncio.run(run())
        assert exc.value.status == 502

    def test_missing_token(self):
        async def run():
            feed = ProductHuntFeed("")
            try:
                await feed.fetch_candidates(_window())
            finally:
                await feed.close()

        with pytest.raises(NetworkError):
            asyncio.run(run())


# ──────────────────────────────────────────────────
#  Webhook notifier
# ──────────────────────────────────────────────────

def _candidate(contact_url=None):
    info = ContactInfo(
        canonical_url="https://acme.io",
        emails={"hello@acme.io", "press@acme.io"},
        social=SocialLinks(twitter={"@acmehq"}),
        contact_url=contact_url,
    )
    return Candidate(
        id="101",
        name="Acme",
        tagline="Rockets",
        url="https://www.producthunt.com/posts/acme",
        website="https://acme.io",
        votes_count=42,
        makers=[Maker(name="Ada"), Maker(name="Linus")],
    ).with_contact_info(info)


class TestPayloads:
    def test_discord_embed(self):
        payload = WebhookNotifier.discord_payload(_candidate())
        embed = payload["embeds"][0]
        fields = {f["name"]: f["value"] for f in embed["fields"]}

        assert payload["content"] == "🚀 **New Product Alert!** Acme"
        assert embed["color"] == PH_ORANGE
        assert fields["Votes"] == "42"
        assert fields["Website"] == "[Visit Website](https://acme.io)"
        assert fields["Emails"] == "hello@acme.io, press@acme.io"
        assert fields["Twitter"] == "@acmehq"
        assert fields["Makers"] == "Ada, Linus"
        assert "Contact Links" not in fields

    def test_discord_contact_link(self):
        payload = WebhookNotifier.discord_payload(_candidate("https://acme.io/contact"))
        fields = {f["name"]: f["value"] for f in payload["embeds"][0]["fields"]}
        assert fields["Contact Links"] == "[Contact](https://acme.io/contact)"

    def test_discord_without_contact(self):
        payload = WebhookNotifier.discord_payload(Candidate(id="1", name="Bare"))
        fields = {f["name"]: f["value"] for f in payload["embeds"][0]["fields"]}
        assert fields["Emails"] == "None found"
        assert fields["Website"] == "No website"
        assert fields["Makers"] == "Unknown"

    def test_slack_blocks(self):
        payload = WebhookNotifier.slack_payload(_candidate())
        assert payload["blocks"][0]["text"]["text"] == "🚀 New Product: Acme"
        assert "hello@acme.io" in payload["blocks"][1]["text"]["text"]


class TestNotify:
    def test_disabled(self):
        assert asyncio.run(WebhookNotifier("").notify(_candidate())) is False

    def test_invalid_discord_url(self):
        notifier = WebhookNotifier("https://example.com/hook", platform="discord")
        assert asyncio.run(notifier.notify(_candidate())) is False

    def test_slack_delivery(self):
        received = []

        async def handler(request):
            received.append(await request.json())
            return web.Response(text="ok")

        async def run():
            runner, url = await _start_server(handler, path="/hook")
            try:
                notifier = WebhookNotifier(url, platform="slack")
                delivered = await notifier.notify(_candidate())
                return delivered, notifier.stats
            finally:
                await runner.cleanup()

        delivered, stats = asyncio.run(run())
        assert delivered is True
        assert stats["notifications_sent"] == 1
        assert "blocks" in received[0]

    def test_error_status_is_false(self):
        async def handler(request):
            return web.Response(status=500)

        async def run():
            runner, url = await _start_server(handler, path="/hook")
            try:
                notifier = WebhookNotifier(url, platform="slack")
                return await notifier.notify(_candidate()), notifier.stats
            finally:
                await runner.cleanup()

        delivered, stats = asyncio.run(run())
        assert delivered is False
        assert stats["notifications_failed"] == 1

    def test_unreachable_is_false(self):
        notifier = WebhookNotifier("http://127.0.0.1:1/hook", platform="slack", timeout=2)
        assert asyncio.run(notifier.notify(_candidate())) is False


# ──────────────────────────────────────────────────
#  CLI
# ──────────────────────────────────────────────────

class TestCli:
    def test_defaults(self):
        args = parse_args([])
        assert not args.loop
        assert args.init_days == 0
        assert args.scrape == ""

    def test_flags(self):
        args = parse_args(["--init-days", "7", "--loop", "--platform", "slack", "--webhook", "https://h"])
        assert args.init_days == 7
        assert args.loop
        assert args.platform == "slack"
        assert args.webhook == "https://h"
