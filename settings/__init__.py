from .loader import ScraperSettings, load_settings

__all__ = ["ScraperSettings", "load_settings"]
