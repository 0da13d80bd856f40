"""
Map topology: the cities, their home disease colour, and the routes between them.

The board is static for the lifetime of a session. Only infection counts and
research stations (which live in the state dict) change during play.
"""

DISEASE_COLORS = ("red", "blue", "yellow", "black")

# ── Cities ───────────────────────────────────────────────────────────

CITY_COLORS = {
    # North America & Europe
    "Atlanta": "blue",
    "Chicago": "blue",
    "New York": "blue",
    "Washington": "blue",
    "San Francisco": "blue",
    "London": "blue",
    "Madrid": "blue",
    "Paris": "blue",
    "Milan": "blue",
    "St. Petersburg": "blue",
    # Latin America & Africa
    "Los Angeles": "yellow",
    "Mexico City": "yellow",
    "Miami": "yellow",
    "Bogota": "yellow",
    "Lima": "yellow",
    "Santiago": "yellow",
    "Buenos Aires": "yellow",
    "Sao Paulo": "yellow",
    "Lagos": "yellow",
    "Kinshasa": "yellow",
    "Khartoum": "yellow",
    "Johannesburg": "yellow",
    # Middle East & North Africa
    "Algiers": "black",
    "Istanbul": "black",
    "Cairo": "black",
    "Moscow": "black",
    "Baghdad": "black",
    "Riyadh": "black",
    "Tehran": "black",
    "Karachi": "black",
    "Delhi": "black",
    # Asia & Pacific
    "Mumbai": "red",
    "Chennai": "red",
    "Kolkata": "red",
    "Beijing": "red",
    "Seoul": "red",
    "Tokyo": "red",
    "Shanghai": "red",
    "Hong Kong": "red",
    "Taipei": "red",
    "Ho Chi Minh City": "red",
    "Bangkok": "red",
    "Jakarta": "red",
    "Manila": "red",
    "Sydney": "red",
}

# ── Routes ───────────────────────────────────────────────────────────

ROUTES = (
    # North America
    ("San Francisco", "Chicago"),
    ("San Francisco", "Los Angeles"),
    ("Chicago", "Los Angeles"),
    ("Chicago", "Mexico City"),
    ("Chicago", "Atlanta"),
    ("Chicago", "New York"),
    ("New York", "Washington"),
    ("New York", "London"),
    ("New York", "Madrid"),
    ("Washington", "Atlanta"),
    ("Washington", "Miami"),
    ("Atlanta", "Miami"),
    ("Los Angeles", "Mexico City"),
    ("Miami", "Mexico City"),
    ("Miami", "Bogota"),
    # South America
    ("Mexico City", "Bogota"),
    ("Bogota", "Lima"),
    ("Bogota", "Sao Paulo"),
    ("Lima", "Santiago"),
    ("Lima", "Sao Paulo"),
    ("Santiago", "Buenos Aires"),
    ("Buenos Aires", "Sao Paulo"),
    # Europe
    ("London", "Paris"),
    ("London", "Madrid"),
    ("Madrid", "Paris"),
    ("Madrid", "Algiers"),
    ("Paris", "Milan"),
    ("Paris", "Algiers"),
    ("Milan", "St. Petersburg"),
    ("Milan", "Istanbul"),
    ("St. Petersburg", "Moscow"),
    ("St. Petersburg", "Istanbul"),
    # Africa & Middle East
    ("Algiers", "Istanbul"),
    ("Algiers", "Cairo"),
    ("Istanbul", "Cairo"),
    ("Istanbul", "Baghdad"),
    ("Istanbul", "Moscow"),
    ("Moscow", "Tehran"),
    ("Cairo", "Baghdad"),
    ("Cairo", "Riyadh"),
    ("Cairo", "Khartoum"),
    ("Baghdad", "Riyadh"),
    ("Baghdad", "Tehran"),
    ("Baghdad", "Karachi"),
    ("Riyadh", "Karachi"),
    ("Khartoum", "Lagos"),
    ("Khartoum", "Kinshasa"),
    ("Lagos", "Kinshasa"),
    ("Kinshasa", "Johannesburg"),
    # Asia
    ("Tehran", "Karachi"),
    ("Tehran", "Delhi"),
    ("Karachi", "Delhi"),
    ("Karachi", "Mumbai"),
    ("Delhi", "Mumbai"),
    ("Delhi", "Kolkata"),
    ("Mumbai", "Chennai"),
    ("Chennai", "Kolkata"),
    ("Chennai", "Bangkok"),
    ("Chennai", "Jakarta"),
    ("Kolkata", "Bangkok"),
    ("Kolkata", "Hong Kong"),
    ("Beijing", "Seoul"),
    ("Beijing", "Shanghai"),
    ("Seoul", "Tokyo"),
    ("Seoul", "Shanghai"),
    ("Tokyo", "Shanghai"),
    ("Tokyo", "San Francisco"),
    ("Shanghai", "Hong Kong"),
    ("Shanghai", "Taipei"),
    ("Hong Kong", "Taipei"),
    ("Hong Kong", "Bangkok"),
    ("Hong Kong", "Ho Chi Minh City"),
    ("Hong Kong", "Manila"),
    ("Taipei", "Manila"),
    ("Bangkok", "Ho Chi Minh City"),
    ("Bangkok", "Jakarta"),
    ("Ho Chi Minh City", "Jakarta"),
    ("Ho Chi Minh City", "Manila"),
    ("Jakarta", "Sydney"),
    ("Manila", "Sydney"),
)


class Board:
    """Cities and an undirected adjacency relation between them."""

    def __init__(self, city_colors, routes):
        for a, b in routes:
            if a not in city_colors or b not in city_colors:
                raise ValueError(f"Route {a} - {b} references an unknown city")
        self.city_colors = dict(city_colors)
        self._adjacency = {name: set() for name in self.city_colors}
        for a, b in routes:
            self._adjacency[a].add(b)
            self._adjacency[b].add(a)

    @classmethod
    def standard(cls):
        return cls(CITY_COLORS, ROUTES)

    @property
    def city_names(self):
        """City names in board order (stable, used for random draws)."""
        return list(self.city_colors)

    def color_of(self, city):
        return self.city_colors[city]

    def has_city(self, city):
        return city in self.city_colors

    def are_connected(self, a, b):
        """True if a route joins a and b. A city is always connected to itself."""
        if a == b:
            return True
        return b in self._adjacency.get(a, ())

    def neighbors_of(self, city):
        return frozenset(self._adjacency.get(city, ()))
