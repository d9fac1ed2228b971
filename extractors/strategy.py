"""
Extraction strategies as explicit results.

Each strategy is a plain function over a parsed document. run_strategies()
turns every call into a StrategyResult (found set or ExtractError) and
collect() folds the successful ones, so one broken heuristic never hides what
the others found.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

from bs4 import BeautifulSoup

from fetching.errors import ExtractError

logger = logging.getLogger(__name__)

Strategy = Callable[[BeautifulSoup], Iterable[str]]


@dataclass
class StrategyResult:
    name: str
    found: Set[str] = field(default_factory=set)
    error: Optional[ExtractError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def apply_strategy(name: str, strategy: Strategy, soup: BeautifulSoup) -> StrategyResult:
    try:
        return StrategyResult(name=name, found=set(strategy(soup)))
    except Exception as e:
        logger.debug(f"  Strategy {name} failed: {e}")
        return StrategyResult(name=name, error=ExtractError(name, e))


def run_strategies(soup: BeautifulSoup, strategies: Sequence[Tuple[str, Strategy]]) -> List[StrategyResult]:
    return [apply_strategy(name, fn, soup) for name, fn in strategies]


def collect(results: Iterable[StrategyResult]) -> Set[str]:
    found: Set[str] = set()
    for result in results:
        if result.ok:
            found |= result.found
    return found
