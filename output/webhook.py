"""
SCOUT — Webhook Notifier
Posts one alert per newly discovered product to Discord or Slack.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from sources.base import Candidate

logger = logging.getLogger(__name__)

PH_ORANGE = 0xDA552F
PH_LOGO = "https://ph-static.imgix.net/ph-logo-1.png"
BOT_NAME = "Product Hunt Scraper"


def _joined(values, empty: str = "None found", limit: int = 1024) -> str:
    text = ", ".join(sorted(values)) if values else empty
    return text[:limit]


class WebhookNotifier:
    """
    Sends formatted notifications via webhooks.
    Supports Discord and Slack webhook formats.
    """

    def __init__(self, webhook_url: str = "", platform: str = "discord", timeout: float = 5.0,
                 session: Optional[aiohttp.ClientSession] = None):
        """
        Args:
            webhook_url: Discord/Slack webhook URL
            platform: "discord" or "slack"
            timeout: seconds before a POST is abandoned
        """
        self.webhook_url = webhook_url
        self.platform = platform.lower()
        self.timeout = timeout
        self.enabled = bool(webhook_url)
        self._session = session
        self._sent_count = 0
        self._failed_count = 0

    async def notify(self, candidate: Candidate) -> bool:
        """Send one product alert. Never raises; returns whether it was delivered."""
        if not self.enabled:
            return False
        if self.platform == "discord":
            if "discord.com/api/webhooks" not in self.webhook_url and "discordapp.com/api/webhooks" not in self.webhook_url:
                logger.error("  ❌ Invalid Discord webhook URL")
                return False
            payload = self.discord_payload(candidate)
        elif self.platform == "slack":
            payload = self.slack_payload(candidate)
        else:
            logger.error(f"  ❌ Unknown webhook platform: {self.platform}")
            return False
        return await self._post(payload, candidate.name)

    @staticmethod
    def discord_payload(candidate: Candidate) -> dict:
        contact = candidate.contact
        emails = contact.emails if contact else set()
        twitter = contact.social.twitter if contact else set()
        website = candidate.exact_website_url or candidate.website or "No website"

        embed = {
            "title": candidate.name,
            "description": candidate.tagline,
            "url": candidate.url,
            "color": PH_ORANGE,
            "thumbnail": {"url": candidate.image_url or PH_LOGO},
            "fields": [
                {"name": "Votes", "value": str(candidate.votes_count), "inline": True},
                {
                    "name": "Website",
                    "value": f"[Visit Website]({website})" if website.startswith("http") else website,
                    "inline": True,
                },
                {"name": "Emails", "value": _joined(emails), "inline": False},
                {"name": "Twitter", "value": _joined(twitter), "inline": False},
                {
                    "name": "Makers",
                    "value": ", ".join(m.name for m in candidate.makers if m.name) or "Unknown",
                    "inline": False,
                },
            ],
            "footer": {"text": BOT_NAME, "icon_url": PH_LOGO},
        }
        if candidate.created_at:
            embed["timestamp"] = candidate.created_at
        if contact and contact.contact_url:
            embed["fields"].append({
                "name": "Contact Links",
                "value": f"[Contact]({contact.contact_url})",
                "inline": False,
            })

        return {
            "content": f"🚀 **New Product Alert!** {candidate.name}",
            "embeds": [embed],
            "username": BOT_NAME,
            "avatar_url": PH_LOGO,
        }

    @staticmethod
    def slack_payload(candidate: Candidate) -> dict:
        contact = candidate.contact
        emails = _joined(contact.emails if contact else set())
        twitter = _joined(contact.social.twitter if contact else set())
        website = candidate.exact_website_url or candidate.website or "No website"
        return {
            "blocks": [
                {
                    "type": "header",
                    "text": {"type": "plain_text", "text": f"🚀 New Product: {candidate.name}"[:150]},
                },
                {
                    "type": "section",
                    "text": {
                        "type": "mrkdwn",
                        "text": (
                            f"*{candidate.name}* — {candidate.tagline}\n"
                            f"🌐 {website} | ▲ {candidate.votes_count}\n"
                            f"📧 {emails}\n"
                            f"🐦 {twitter}"
                        ),
                    },
                },
            ]
        }

    async def _post(self, payload: dict, label: str) -> bool:
        """Send webhook POST request."""
        try:
            if self._session is not None and not self._session.closed:
                return await self._send(self._session, payload, label)
            async with aiohttp.ClientSession() as session:
                return await self._send(session, payload, label)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self._failed_count += 1
            logger.warning(f"  ⚠️  Webhook error for {label}: {e}")
            return False

    async def _send(self, session: aiohttp.ClientSession, payload: dict, label: str) -> bool:
        async with session.post(
            self.webhook_url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as resp:
            if resp.status in (200, 204):
                self._sent_count += 1
                logger.info(f"  📣 Sent {self.platform} notification for {label}")
                return True
            self._failed_count += 1
            logger.warning(f"  ⚠️  Webhook returned status {resp.status} for {label}")
            return False

    @property
    def stats(self) -> dict:
        return {
            "enabled": self.enabled,
            "platform": self.platform,
            "notifications_sent": self._sent_count,
            "notifications_failed": self._failed_count,
        }
