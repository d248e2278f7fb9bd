"""Shared typed models for the research-query pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Paper:
    """Normalized paper record shared by retrieval, synthesis and rendering.

    ``id`` is the provider's stable work identifier and the only key used to
    join an inline citation back to its source record.
    """

    id: str
    title: str
    authors: tuple[str, ...] = field(default_factory=tuple)
    year: int = 0
    journal: str | None = None
    url: str = ""
    abstract: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire representation used inside ``papers`` frames."""
        return {
            "id": self.id,
            "title": self.title,
            "authors": list(self.authors),
            "year": self.year,
            "journal": self.journal,
            "url": self.url,
            "abstract": self.abstract,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Paper:
        """Rebuild a Paper from its wire representation.

        Raises ValueError when the required ``id`` or ``title`` is missing.
        """
        paper_id = data.get("id")
        title = data.get("title")
        if not isinstance(paper_id, str) or not isinstance(title, str):
            raise ValueError(f"Paper record missing id/title: {data!r}")

        authors = data.get("authors") or []
        year = data.get("year")
        return cls(
            id=paper_id,
            title=title,
            authors=tuple(a for a in authors if isinstance(a, str)),
            year=year if isinstance(year, int) else 0,
            journal=data.get("journal") or None,
            url=data.get("url") or "",
            abstract=data.get("abstract") or None,
        )
