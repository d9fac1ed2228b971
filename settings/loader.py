"""
Load and validate the scraper configuration.

Everything tunable lives in config/scraper.yaml: stage timeouts, politeness
delays, circuit-breaker and poll-loop limits. Secrets and deployment knobs
come from the environment and win over the file.
"""

import os
import yaml
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "scraper.yaml"


@dataclass
class TimeoutSettings:
    """Per-stage budgets, in seconds."""
    canonical: float = 8.0
    main_page: float = 8.0
    body: float = 5.0
    parse: float = 8.0
    secondary_page: float = 5.0
    redirect_page: float = 8.0
    per_item: float = 15.0
    notify: float = 5.0
    feed: float = 20.0


@dataclass
class DelaySettings:
    """Politeness pauses, in seconds."""
    between_items: float = 0.5
    between_batches: float = 1.0
    between_notifications: float = 0.2
    between_init_pages: float = 1.0


@dataclass
class ExtractionSettings:
    max_twitter_handle_length: int = 16
    bypass_domains: List[str] = field(default_factory=lambda: [
        "facebook.com", "fb.com", "apple.com", "google.com", "microsoft.com",
        "amazon.com", "twitter.com", "x.com", "instagram.com", "linkedin.com",
        "youtube.com", "github.com", "netflix.com", "spotify.com", "adobe.com",
        "salesforce.com", "oracle.com", "ibm.com", "intel.com", "cisco.com",
        "samsung.com", "meta.com", "alphabet.com", "openai.com", "anthropic.com",
    ])


@dataclass
class BatchSettings:
    circuit_breaker_threshold: int = 3
    default_max_to_process: int = 10
    default_batch_size: int = 5


@dataclass
class PollSettings:
    enabled: bool = True
    interval_minutes: float = 30.0
    max_items_per_cycle: int = 100
    min_interval_seconds: float = 30.0
    lookback_days: int = 1
    init_days_back: int = 7
    init_page_size: int = 50
    init_max_pages: int = 10
    seen_trim_threshold: int = 1000
    seen_cap: int = 500
    feed_max_attempts: int = 3
    feed_backoff_seconds: float = 5.0
    seen_store_path: str = "data/seen_ids.json"


@dataclass
class ScraperSettings:
    """Complete crawler configuration."""
    timeouts: TimeoutSettings = field(default_factory=TimeoutSettings)
    delays: DelaySettings = field(default_factory=DelaySettings)
    extraction: ExtractionSettings = field(default_factory=ExtractionSettings)
    batch: BatchSettings = field(default_factory=BatchSettings)
    poll: PollSettings = field(default_factory=PollSettings)
    ph_token: str = ""
    webhook_url: str = ""
    webhook_platform: str = "discord"

    @classmethod
    def no_delays(cls) -> "ScraperSettings":
        """Settings with every politeness delay zeroed (tests, one-shot CLI runs)."""
        return cls(delays=DelaySettings(0.0, 0.0, 0.0, 0.0))


def _section(cls, raw: Optional[dict]):
    """Build a settings dataclass from a YAML mapping, ignoring unknown keys."""
    raw = raw or {}
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in raw.items() if k in known})


def load_settings(path: Optional[str] = None, env: Optional[dict] = None) -> ScraperSettings:
    """Load config/scraper.yaml (if present) and apply environment overrides."""
    env = os.environ if env is None else env
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH

    raw = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

    settings = ScraperSettings(
        timeouts=_section(TimeoutSettings, raw.get("timeouts")),
        delays=_section(DelaySettings, raw.get("delays")),
        extraction=_section(ExtractionSettings, raw.get("extraction")),
        batch=_section(BatchSettings, raw.get("batch")),
        poll=_section(PollSettings, raw.get("poll")),
        webhook_platform=raw.get("webhook_platform", "discord"),
    )

    settings.ph_token = env.get("PH_TOKEN", "")
    settings.webhook_url = env.get("WEBHOOK_URL", raw.get("webhook_url", "")) or ""
    settings.webhook_platform = env.get("WEBHOOK_PLATFORM", settings.webhook_platform)
    if env.get("SCOUT_POLL_INTERVAL"):
        settings.poll.interval_minutes = float(env["SCOUT_POLL_INTERVAL"])
    if env.get("SCOUT_MAX_ITEMS"):
        settings.poll.max_items_per_cycle = int(env["SCOUT_MAX_ITEMS"])

    return settings
