"""
Incremental polling — dedup memory and poll-loop state.

Provides:
- SeenSet: insertion-ordered set of candidate ids, trimmed to its newest tail
- PollerState: run flags and counters for the poll loop
- SeenStore: JSON snapshot of the seen set on disk
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

logger = logging.getLogger(__name__)

# Default trimming bounds
DEFAULT_TRIM_THRESHOLD = 1000   # trim once the set grows beyond this
DEFAULT_SEEN_CAP = 500          # ...down to this many most recent ids


class SeenSet:
    """
    Ids of candidates already observed.

    Only grows through add(); trim() is the sole way anything is removed, and
    it keeps the most recently added ids. Re-adding an id keeps its original
    position.
    """

    def __init__(self, ids: Iterable[str] = (), trim_threshold: int = DEFAULT_TRIM_THRESHOLD,
                 cap: int = DEFAULT_SEEN_CAP):
        self.trim_threshold = trim_threshold
        self.cap = cap
        self._ids: Dict[str, None] = {}
        self.update(ids)

    def __contains__(self, item_id) -> bool:
        return item_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def add(self, item_id: str) -> bool:
        """Record `item_id`; True if it was new."""
        if item_id in self._ids:
            return False
        self._ids[item_id] = None
        return True

    def update(self, ids: Iterable[str]) -> int:
        return sum(1 for item_id in ids if self.add(str(item_id)))

    def clear(self):
        self._ids.clear()

    def hydrate(self, ids: Iterable[str]):
        """Replace the contents with a persisted snapshot (oldest first)."""
        self._ids = {}
        self.update(ids)

    def snapshot(self) -> List[str]:
        return list(self._ids)

    def trim(self) -> int:
        """Drop the oldest ids once over the threshold. Returns how many were dropped."""
        if len(self._ids) <= self.trim_threshold:
            return 0
        keep = list(self._ids)[-self.cap:] if self.cap > 0 else []
        dropped = len(self._ids) - len(keep)
        self._ids = dict.fromkeys(keep)
        logger.info(f"  [incremental] Trimmed seen set by {dropped} ids, {len(self._ids)} remain")
        return dropped


@dataclass
class PollerState:
    is_running: bool = False
    last_run_at: Optional[float] = None
    total_runs: int = 0
    total_found: int = 0
    total_checked: int = 0
    last_status: str = ""
    last_message: str = ""

    def summary(self) -> dict:
        return asdict(self)


class SeenStore:
    """Seen-set snapshot persisted as a JSON list of ids."""

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> List[str]:
        if not self.path.exists():
            return []
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"  [incremental] Could not read {self.path}, starting fresh: {e}")
            return []
        if isinstance(data, dict):
            data = data.get("seen_ids", [])
        return [str(x) for x in data] if isinstance(data, list) else []

    def save(self, ids: List[str]):
        """Atomically write the snapshot. Raises OSError on failure."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump(list(ids), f)
        os.replace(tmp, self.path)
