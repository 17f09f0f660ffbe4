from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Tutorial:
    """One catalog entry from searchData.json."""
    url: str
    tags: List[str] = field(default_factory=list, hash=False, compare=False)


@dataclass
class ScrapedPage:
    title: str
    description: str
    image_url: str


@dataclass
class SearchResult:
    title: str
    url: str
    description: str
    image_url: Optional[str] = None
