"""
Territory map generation for new rooms.

Maps are flat: territories have no adjacency, and their coordinates only tell the
client where to draw them.
"""

import random

from app.services.room_state import Territory

MAP_SIZE_TERRITORY_COUNTS: dict[str, int] = {
    "small": 50,
    "medium": 100,
    "large": 150,
}
DEFAULT_TERRITORY_COUNT = 100

CANVAS_WIDTH = 1000.0
CANVAS_HEIGHT = 700.0
PRODUCTION_MIN = 100
PRODUCTION_MAX = 599


def territory_count_for(map_size: str | None) -> int:
    if not isinstance(map_size, str):
        return DEFAULT_TERRITORY_COUNT
    return MAP_SIZE_TERRITORY_COUNTS.get(map_size, DEFAULT_TERRITORY_COUNT)


def generate_territories(
    map_size: str | None,
    rng: random.Random | None = None,
    *,
    width: float = CANVAS_WIDTH,
    height: float = CANVAS_HEIGHT,
    production_min: int = PRODUCTION_MIN,
    production_max: int = PRODUCTION_MAX,
) -> dict[str, Territory]:
    """Build a fresh, unowned territory mapping keyed ``T-1`` .. ``T-N``.

    ``map_size`` picks N from ``MAP_SIZE_TERRITORY_COUNTS``; unknown sizes fall back to
    ``DEFAULT_TERRITORY_COUNT``. Production values are uniform integers in
    ``[production_min, production_max]`` and coordinates are uniform over the canvas.
    """
    rng = rng or random.Random()
    low, high = sorted((max(1, production_min), max(1, production_max)))
    territories: dict[str, Territory] = {}
    for index in range(1, territory_count_for(map_size) + 1):
        territory_id = f"T-{index}"
        territories[territory_id] = Territory(
            id=territory_id,
            name=f"Sector {index}",
            production_value=rng.randint(low, high),
            x=rng.uniform(0, width),
            y=rng.uniform(0, height),
        )
    return territories
