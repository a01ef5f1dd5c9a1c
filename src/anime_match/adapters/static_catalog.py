"""Built-in catalog used when no external provider is configured."""

from dataclasses import dataclass, field

from anime_match.domain.catalog import ItemSummary
from anime_match.services.catalog import CatalogProvider

_IMAGE_BASE = "https://cdn.myanimelist.net/images/anime"

DEFAULT_TITLES: tuple[ItemSummary, ...] = (
    ItemSummary(
        id="1",
        title="Attack on Titan",
        synopsis="Humanity fights to survive against man-eating giants.",
        genres=("Action", "Drama", "Fantasy", "Military"),
        year=2013,
        image_url=f"{_IMAGE_BASE}/10/47347.jpg",
    ),
    ItemSummary(
        id="2",
        title="Death Note",
        synopsis="A student finds a notebook that kills anyone whose name is "
        "written in it.",
        genres=("Psychological", "Supernatural", "Thriller"),
        year=2006,
        image_url=f"{_IMAGE_BASE}/9/9453.jpg",
    ),
    ItemSummary(
        id="3",
        title="One Piece",
        synopsis="A rubber-bodied young pirate hunts for the greatest treasure "
        "in the world.",
        genres=("Adventure", "Comedy", "Drama", "Shounen"),
        year=1999,
        image_url=f"{_IMAGE_BASE}/6/73245.jpg",
    ),
    ItemSummary(
        id="4",
        title="Demon Slayer",
        synopsis="A boy becomes a demon hunter to save his sister.",
        genres=("Action", "Supernatural", "Historical"),
        year=2019,
        image_url=f"{_IMAGE_BASE}/1286/99889.jpg",
    ),
    ItemSummary(
        id="5",
        title="My Hero Academia",
        synopsis="In a world of superpowers, a powerless boy dreams of "
        "becoming a hero.",
        genres=("Action", "School", "Superhero"),
        year=2016,
        image_url=f"{_IMAGE_BASE}/10/78745.jpg",
    ),
    ItemSummary(
        id="6",
        title="Fullmetal Alchemist: Brotherhood",
        synopsis="Two alchemist brothers search for the Philosopher's Stone "
        "to restore their bodies.",
        genres=("Action", "Adventure", "Drama", "Fantasy"),
        year=2009,
        image_url=f"{_IMAGE_BASE}/1223/96541.jpg",
    ),
    ItemSummary(
        id="7",
        title="Naruto",
        synopsis="A mischievous young ninja seeks recognition and dreams of "
        "becoming Hokage.",
        genres=("Action", "Adventure", "Martial Arts"),
        year=2002,
        image_url=f"{_IMAGE_BASE}/13/17405.jpg",
    ),
    ItemSummary(
        id="8",
        title="Dragon Ball Z",
        synopsis="Goku and his friends defend Earth against ever stronger foes.",
        genres=("Action", "Adventure", "Martial Arts"),
        year=1989,
        image_url=f"{_IMAGE_BASE}/1935/95961.jpg",
    ),
    ItemSummary(
        id="9",
        title="Spirited Away",
        synopsis="A girl must work in a world of spirits to save her parents.",
        genres=("Adventure", "Family", "Supernatural"),
        year=2001,
        image_url=f"{_IMAGE_BASE}/6/79597.jpg",
    ),
    ItemSummary(
        id="10",
        title="Cowboy Bebop",
        synopsis="Bounty hunters drift through space on jazz-soaked adventures.",
        genres=("Action", "Drama", "Sci-Fi", "Space"),
        year=1998,
        image_url=f"{_IMAGE_BASE}/4/19644.jpg",
    ),
    ItemSummary(
        id="11",
        title="Hunter x Hunter",
        synopsis="A boy becomes a professional Hunter to find his father.",
        genres=("Action", "Adventure", "Fantasy"),
        year=2011,
        image_url=f"{_IMAGE_BASE}/11/33657.jpg",
    ),
    ItemSummary(
        id="12",
        title="Jujutsu Kaisen",
        synopsis="High school students fight curses with supernatural arts.",
        genres=("Action", "School", "Supernatural"),
        year=2020,
        image_url=f"{_IMAGE_BASE}/1171/109222.jpg",
    ),
    ItemSummary(
        id="13",
        title="Your Name",
        synopsis="Two teenagers mysteriously swap bodies and must find each "
        "other.",
        genres=("Romance", "Drama", "Supernatural"),
        year=2016,
        image_url=f"{_IMAGE_BASE}/5/87048.jpg",
    ),
    ItemSummary(
        id="14",
        title="Mob Psycho 100",
        synopsis="A student with enormous psychic powers tries to live a "
        "normal life.",
        genres=("Action", "Comedy", "Supernatural"),
        year=2016,
        image_url=f"{_IMAGE_BASE}/8/80356.jpg",
    ),
    ItemSummary(
        id="15",
        title="One Punch Man",
        synopsis="A hero who wins every fight with one punch looks for a "
        "worthy opponent.",
        genres=("Action", "Comedy", "Superhero"),
        year=2015,
        image_url=f"{_IMAGE_BASE}/12/76049.jpg",
    ),
)


@dataclass
class StaticCatalog(CatalogProvider):
    """Catalog backed by a fixed list of titles; list order is popularity."""

    titles: tuple[ItemSummary, ...] = field(default=DEFAULT_TITLES)

    async def search(self, query: str, limit: int = 10) -> list[ItemSummary]:
        """Match the query against title, genres and synopsis."""
        needle = query.strip().lower()
        if not needle:
            return list(self.titles[:limit])
        matches = [item for item in self.titles if _matches(item, needle)]
        return matches[:limit]

    async def popular(self, limit: int = 10) -> list[ItemSummary]:
        """Return the first titles."""
        return list(self.titles[:limit])

    async def get_item(self, item_id: str) -> ItemSummary | None:
        """Return a title by id."""
        for item in self.titles:
            if item.id == item_id:
                return item
        return None


def _matches(item: ItemSummary, needle: str) -> bool:
    return (
        needle in item.title.lower()
        or any(needle in genre.lower() for genre in item.genres)
        or needle in item.synopsis.lower()
    )
