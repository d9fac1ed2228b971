"""SCOUT Stealth — rotating client identity and optional proxies."""
from .fingerprint import FingerprintManager
from .proxy import ProxyManager

__all__ = ["FingerprintManager", "ProxyManager"]
