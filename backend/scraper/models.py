"""Data models for the scraper pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, List, Literal, Optional

ExtractionMode = Literal["playwright", "parser"]


@dataclass
class FetchedPage:
    """The HTML a fetcher ended up with, plus the final (post-redirect) URL.

    ``title`` is the rendered document title when the fetch path has one
    (browser), and ``None`` otherwise (plain HTTP).
    """

    url: str
    html: str
    title: Optional[str] = None


@dataclass
class ScrapeResult:
    """Structured job details extracted from a single Upwork job page."""

    url: str
    title: str
    description: str
    budget: Optional[str]
    skills: str
    mode: ExtractionMode
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
