"""SCOUT Enrichment — batch contact enrichment and poll-loop memory."""
from .contact_enricher import CircuitBreaker, ContactEnricher
from .incremental import PollerState, SeenSet, SeenStore

__all__ = ["CircuitBreaker", "ContactEnricher", "PollerState", "SeenSet", "SeenStore"]
