"""SCOUT Sources — upstream candidate feeds."""
from .base import Candidate, CandidateFeed, FeedPage, FeedWindow, Maker
from .producthunt import ProductHuntFeed

__all__ = ["Candidate", "CandidateFeed", "FeedPage", "FeedWindow", "Maker", "ProductHuntFeed"]
