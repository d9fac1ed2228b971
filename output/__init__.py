"""SCOUT Output — notification sinks."""
from .webhook import WebhookNotifier

__all__ = ["WebhookNotifier"]
