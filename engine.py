"""
╔══════════════════════════════════════════════════════════════╗
║                                                              ║
║   🔭  SCOUT ENGINE — Launch Contact Finder                   ║
║                                                              ║
║   Watches Product Hunt for new launches, finds each          ║
║   product's emails and social profiles, and alerts a         ║
║   Discord/Slack channel.                                     ║
║                                                              ║
║   Usage:                                                     ║
║     python engine.py --scrape https://acme.io  # One site    ║
║     python engine.py --init-days 7    # Seed seen products   ║
║     python engine.py --today-only     # Seed from today      ║
║     python engine.py --once           # One check cycle      ║
║     python engine.py --loop           # Poll forever         ║
║                                                              ║
╚══════════════════════════════════════════════════════════════╝
"""

import asyncio
import argparse
import json
import logging
import time
from datetime import datetime

from dotenv import load_dotenv
load_dotenv()  # .env → os.environ (PH_TOKEN, WEBHOOK_URL, etc.)

# ── Internal modules ──
from deep_scrape import ContactScraper
from enrichment.contact_enricher import ContactEnricher
from enrichment.incremental import SeenStore
from fetching.fetcher import Fetcher
from output.webhook import WebhookNotifier
from poller import AutoScraper
from settings.loader import load_settings
from sources.producthunt import ProductHuntFeed
from stealth.fingerprint import FingerprintManager
from stealth.proxy import ProxyManager

logger = logging.getLogger(__name__)


class ScoutEngine:
    """
    Main orchestrator. Wires together:
    - Settings (config/scraper.yaml + environment)
    - Fetch layer (fingerprints, proxies)
    - Single-site scraper and batch enricher
    - Product Hunt feed, seen-id store and webhook output
    """

    def __init__(self, args):
        self.args = args
        self.settings = load_settings(args.config or None)
        if args.webhook:
            self.settings.webhook_url = args.webhook
        if args.platform:
            self.settings.webhook_platform = args.platform

        self.fingerprint_mgr = FingerprintManager()
        self.proxy_mgr = ProxyManager()
        self.fetcher = Fetcher(self.fingerprint_mgr, self.proxy_mgr if self.proxy_mgr.enabled else None)
        self.scraper = ContactScraper(self.fetcher, self.settings)
        self.enricher = ContactEnricher(self.scraper, self.settings)
        self.feed = ProductHuntFeed(
            self.settings.ph_token,
            timeout=self.settings.timeouts.feed,
            rate_limit_backoff=1.0,
        )
        self.webhook = WebhookNotifier(
            webhook_url=self.settings.webhook_url,
            platform=self.settings.webhook_platform,
            timeout=self.settings.timeouts.notify,
        )
        self.store = SeenStore(self.settings.poll.seen_store_path)
        self.poller = AutoScraper(
            self.feed,
            self.enricher,
            notifier=self.webhook,
            settings=self.settings,
            store=self.store,
        )

    async def run(self):
        start = time.time()
        self._print_banner()
        try:
            if self.args.scrape:
                await self._scrape_one(self.args.scrape)
                return

            self.poller.hydrate(self.store.load())

            if self.args.today_only or self.args.init_days:
                result = await self.poller.initialize(
                    days_back=self.args.init_days or None,
                    today_only=self.args.today_only,
                )
                print(f"  🌱  [{result.status}] {result.message}")

            if self.args.loop:
                if not self.settings.poll.enabled:
                    print("  ⏸️  Polling is disabled in config (poll.enabled: false)")
                else:
                    await self.poller.run_forever()
            elif self.args.once or not (self.args.today_only or self.args.init_days):
                result = await self.poller.check_once()
                print(f"  🔎  [{result.status}] {result.message}")
                for item in result.new_items:
                    self._print_candidate(item)
        finally:
            await self.fetcher.close()
            await self.feed.close()
            self._print_summary(time.time() - start)

    async def _scrape_one(self, url: str):
        info = await self.scraper.scrape_website(url)
        print(json.dumps(info.to_dict(), indent=2))

    def _print_banner(self):
        print(f"\n{'='*60}")
        print("  🔭  SCOUT ENGINE")
        print(f"{'='*60}")
        print(f"  ⏰  {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"  🔒  Proxy: {'ON' if self.proxy_mgr.enabled else 'OFF'}")
        print(f"  📣  Webhook: {self.settings.webhook_platform if self.webhook.enabled else 'OFF'}")
        print()

    @staticmethod
    def _print_candidate(item):
        contact = item.contact
        print(f"  🚀  {item.name} — {item.exact_website_url or item.website or 'no website'}")
        if contact:
            print(f"       📧 {', '.join(sorted(contact.emails)) or 'None found'}")
            print(f"       🐦 {', '.join(sorted(contact.social.twitter)) or 'None found'}")

    def _print_summary(self, elapsed: float):
        print(f"\n{'='*60}")
        print("  📊  SCOUT SUMMARY")
        print(f"{'='*60}")
        print(f"  ⏱️  Duration: {elapsed:.1f}s")
        poll_stats = self.poller.stats
        print(f"  🆕  New products found: {poll_stats['total_found']}")
        print(f"  👀  Seen ids: {poll_stats['seen']}")
        print(f"  🔎  Sites enriched: {poll_stats['processed']} ({poll_stats['failed']} failed)")
        fetch_stats = self.fetcher.stats
        print(f"  🌐  Requests: {fetch_stats['requests']} ({fetch_stats['timeouts']} timeouts)")
        print(f"  📣  Notifications sent: {self.webhook.stats['notifications_sent']}")
        print()


# ──────────────────────────────────────────────────
#  CLI
# ──────────────────────────────────────────────────

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="🔭 SCOUT — Launch Contact Finder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scrape", type=str, default="", metavar="URL",
        help="Scrape a single website and print its contact info as JSON",
    )
    parser.add_argument(
        "--init-days", type=int, default=0, metavar="N",
        help="Seed the seen set from the last N days without notifying",
    )
    parser.add_argument(
        "--today-only", action="store_true",
        help="Seed the seen set from today's launches only",
    )
    parser.add_argument(
        "--once", action="store_true",
        help="Run a single check cycle (default when no other mode is given)",
    )
    parser.add_argument(
        "--loop", action="store_true",
        help="Keep polling every poll.interval_minutes",
    )
    parser.add_argument(
        "--webhook", type=str, default="",
        help="Discord/Slack webhook URL (overrides WEBHOOK_URL)",
    )
    parser.add_argument(
        "--platform", type=str, default="",
        choices=["", "discord", "slack"],
        help="Webhook platform (default: discord)",
    )
    parser.add_argument(
        "--config", type=str, default="",
        help="Path to scraper.yaml (default: config/scraper.yaml)",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Debug logging",
    )
    return parser.parse_args(argv)


async def main():
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(message)s'
    )
    engine = ScoutEngine(args)
    await engine.run()


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
