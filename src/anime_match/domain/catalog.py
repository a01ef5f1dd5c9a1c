"""Domain models for catalog lookups."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ItemSummary:
    """Catalog entry for a title that can be selected."""

    id: str
    title: str
    synopsis: str
    genres: tuple[str, ...] = field(default_factory=tuple)
    year: int | None = None
    image_url: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "synopsis": self.synopsis,
            "genres": list(self.genres),
            "year": self.year,
            "image_url": self.image_url,
        }
