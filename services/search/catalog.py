"""
Tutorial catalog lookup.

The catalog is a JSON document listing tutorial series in a fixed order:

    {"series": [{"tutorial": [{"url": "...", "tags": ["..."]}]}, ...]}

Series are addressed by name, short name or number. "all" spans every series
except the legacy one; "faq" is routed to the remote FAQ search instead.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Tuple

from services.search.models import Tutorial
from shared.logging.logger import get_logger

log = get_logger("search.catalog")

FAQ_ALIASES = ("faq", "f", "7")

# (catalog index, aliases, included in "all")
SERIES: Tuple[Tuple[int, Tuple[str, ...], bool], ...] = (
    (0, ("v2series", "v2", "1"), True),
    (1, ("csgobootcamp", "bc", "2"), True),
    (2, ("3dsmax", "3ds", "3"), True),
    (3, ("writtentutorials", "written", "4"), True),
    (4, ("legacyseries", "v1", "lg", "5"), False),
    (5, ("hammertroubleshooting", "ht", "6"), True),
)


def is_faq(series: str) -> bool:
    return series.strip().lower() in FAQ_ALIASES


def series_indexes(series: str) -> List[int]:
    wanted = series.strip().lower()
    return [
        index
        for index, aliases, in_all in SERIES
        if wanted in aliases or (wanted == "all" and in_all)
    ]


class TutorialCatalog:
    def __init__(self, series: List[List[Tutorial]]):
        self._series = series

    @classmethod
    def load(cls, path: Path) -> "TutorialCatalog":
        """
        Load the catalog file. A missing or unreadable file yields an empty
        catalog so the bot can still answer FAQ searches.
        """
        path = Path(path)
        if not path.exists():
            log.warning(f"Tutorial catalog not found at {path}; tutorial search disabled")
            return cls([])

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.warning(f"Failed to load tutorial catalog ({e}); tutorial search disabled")
            return cls([])

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict) -> "TutorialCatalog":
        series: List[List[Tutorial]] = []
        raw_series = data.get("series", []) if isinstance(data, dict) else []

        for entry in raw_series if isinstance(raw_series, list) else []:
            tutorials: List[Tutorial] = []
            raw_tutorials = entry.get("tutorial", []) if isinstance(entry, dict) else []
            for item in raw_tutorials:
                if not isinstance(item, dict) or not item.get("url"):
                    continue
                tags = [str(tag).lower() for tag in item.get("tags", []) if tag]
                tutorials.append(Tutorial(url=str(item["url"]), tags=tags))
            series.append(tutorials)

        log.info(f"Tutorial catalog loaded: {sum(len(s) for s in series)} tutorial(s) in {len(series)} series")
        return cls(series)

    def _series_at(self, index: int) -> List[Tutorial]:
        if index < len(self._series):
            return self._series[index]
        return []

    def match(self, series: str, term: str) -> List[Tutorial]:
        """
        Tutorials in the requested series tagged with any word of `term`,
        de-duplicated in first-seen order.
        """
        found: List[Tutorial] = []
        seen: set[str] = set()
        words = term.lower().split()

        for index in series_indexes(series):
            for word in words:
                for tutorial in self._series_at(index):
                    if word in tutorial.tags and tutorial.url not in seen:
                        seen.add(tutorial.url)
                        found.append(tutorial)

        return found

