from __future__ import annotations

from dataclasses import dataclass, field

BRAND_GENRE = "Brand"
OTHER_GENRE = "Other"

GENRE_TAXONOMY: tuple[str, ...] = (
    "Hip-Hop/Rap",
    "Pop",
    "R&B",
    "Country",
    "Rock",
    "Electronic/EDM",
    "Latin",
    "K-Pop",
    "Alternative",
    "Indie",
    "Afrobeats",
    "Reggaeton",
    "Gospel",
    "Folk",
    OTHER_GENRE,
)

GENRE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Hip-Hop/Rap": (
        "Drake",
        "Travis Scott",
        "Kendrick Lamar",
        "Future",
        "Lil Baby",
        "Gunna",
        "21 Savage",
        "Metro Boomin",
        "Megan Thee Stallion",
        "Cardi B",
        "Doja Cat",
        "Lil Uzi Vert",
        "Playboi Carti",
        "J. Cole",
        "Nicki Minaj",
        "hip-hop",
        "hip hop",
        "rap",
        "trap",
        "drill",
    ),
    "Pop": (
        "Taylor Swift",
        "Sabrina Carpenter",
        "Olivia Rodrigo",
        "Dua Lipa",
        "Ariana Grande",
        "Billie Eilish",
        "Harry Styles",
        "Chappell Roan",
        "Tate McRae",
        "Charli XCX",
        "pop",
    ),
    "R&B": (
        "SZA",
        "Brent Faiyaz",
        "Summer Walker",
        "Giveon",
        "Daniel Caesar",
        "Victoria Monet",
        "Kehlani",
        "r&b",
        "rnb",
        "soul",
    ),
    "Country": (
        "Morgan Wallen",
        "Zach Bryan",
        "Luke Combs",
        "Lainey Wilson",
        "Jelly Roll",
        "Chris Stapleton",
        "Kane Brown",
        "country",
    ),
    "Rock": (
        "Foo Fighters",
        "Green Day",
        "Metallica",
        "Sleep Token",
        "Bad Omens",
        "Linkin Park",
        "rock",
        "metal",
        "punk",
    ),
    "Electronic/EDM": (
        "Fred again..",
        "John Summit",
        "Calvin Harris",
        "David Guetta",
        "Skrillex",
        "Kaytranada",
        "Dom Dolla",
        "edm",
        "house",
        "techno",
        "dubstep",
    ),
    "Latin": (
        "Peso Pluma",
        "Karol G",
        "Grupo Frontera",
        "Fuerza Regida",
        "Natanael Cano",
        "latin",
        "corridos",
    ),
    "K-Pop": (
        "BTS",
        "BLACKPINK",
        "NewJeans",
        "Stray Kids",
        "TWICE",
        "SEVENTEEN",
        "LE SSERAFIM",
        "k-pop",
        "kpop",
    ),
    "Alternative": (
        "Twenty One Pilots",
        "Arctic Monkeys",
        "The Neighbourhood",
        "Cage The Elephant",
        "alternative",
        "alt-rock",
    ),
    "Indie": (
        "Phoebe Bridgers",
        "Clairo",
        "beabadoobee",
        "Mitski",
        "Boygenius",
        "indie",
        "bedroom pop",
    ),
    "Afrobeats": (
        "Burna Boy",
        "Wizkid",
        "Rema",
        "Tems",
        "Davido",
        "Asake",
        "Ayra Starr",
        "afrobeats",
        "afrobeat",
        "amapiano",
    ),
    "Reggaeton": (
        "Bad Bunny",
        "J Balvin",
        "Daddy Yankee",
        "Feid",
        "Rauw Alejandro",
        "reggaeton",
        "dembow",
    ),
    "Gospel": (
        "Kirk Franklin",
        "Maverick City Music",
        "Elevation Worship",
        "Forrest Frank",
        "gospel",
        "worship",
    ),
    "Folk": (
        "Noah Kahan",
        "Hozier",
        "The Lumineers",
        "Mumford & Sons",
        "Gregory Alan Isakov",
        "folk",
        "americana",
    ),
    OTHER_GENRE: (
        "soundtrack",
        "podcast",
        "comedy",
        "audiobook",
        "meditation",
    ),
}

BRAND_KEYWORDS: tuple[str, ...] = (
    "Nike",
    "Adidas",
    "Puma",
    "Spotify",
    "Apple Music",
    "Amazon",
    "McDonald's",
    "Coca-Cola",
    "Pepsi",
    "Samsung",
    "Netflix",
    "Red Bull",
    "Sephora",
    "Fenty Beauty",
    "Duolingo",
    "Uber Eats",
    "DoorDash",
    "Gymshark",
)

# Terms scored against external search snippets, per taxonomy genre.
GENRE_SEARCH_TERMS: dict[str, tuple[str, ...]] = {
    "Hip-Hop/Rap": ("hip-hop", "hip hop", "rap", "rapper", "trap", "drill"),
    "Pop": ("pop", "pop music", "pop singer", "pop artist"),
    "R&B": ("r&b", "rnb", "r and b", "rhythm and blues", "soul", "neo-soul"),
    "Country": ("country", "country music", "country singer", "nashville"),
    "Rock": ("rock", "rock music", "metal", "punk", "alternative rock"),
    "Electronic/EDM": ("electronic", "edm", "house", "techno", "dubstep", "dj", "dance music"),
    "Latin": ("latin", "reggaeton", "latin pop", "latin music", "corrido", "regional mexicano"),
    "K-Pop": ("k-pop", "kpop", "k pop", "korean pop", "korean"),
    "Alternative": ("alternative", "alt-rock", "indie rock", "alternative rock"),
    "Indie": ("indie", "indie pop", "indie folk", "indie rock", "bedroom pop"),
    "Afrobeats": ("afrobeats", "afrobeat", "afropop", "amapiano", "nigerian"),
    "Reggaeton": ("reggaeton", "reggaetón", "perreo", "dembow"),
    "Gospel": ("gospel", "christian", "worship", "ccm", "christian music"),
    "Folk": ("folk", "folk music", "acoustic", "singer-songwriter", "americana"),
}


@dataclass(frozen=True)
class Taxonomy:
    """Read-only genre and brand keyword maps used by the classifier."""

    genre_keywords: dict[str, tuple[str, ...]] = field(default_factory=lambda: dict(GENRE_KEYWORDS))
    brand_keywords: tuple[str, ...] = BRAND_KEYWORDS
    search_terms: dict[str, tuple[str, ...]] = field(default_factory=lambda: dict(GENRE_SEARCH_TERMS))

    @property
    def genres(self) -> tuple[str, ...]:
        return tuple(self.genre_keywords.keys())

    def is_genre(self, label: str | None) -> bool:
        return bool(label) and label in self.genre_keywords


DEFAULT_TAXONOMY = Taxonomy()
