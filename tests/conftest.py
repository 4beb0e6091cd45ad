import pytest

from models import Marking as M, Tile

# 2×2 box in its solved orientation (TOP, RIGHT, BOTTOM, LEFT).  Every tile has
# exactly two marked sides, so the only arrangements are the four rotations.
SMALL_CATALOG = (
    Tile(1, (M.NONE, M.GIRL_TOP, M.LADY_TOP, M.NONE)),
    Tile(2, (M.NONE, M.NONE, M.WATERING_CAN_LEFT, M.GIRL_BOTTOM)),
    Tile(3, (M.LADY_BOTTOM, M.CAKE_LEFT, M.NONE, M.NONE)),
    Tile(4, (M.WATERING_CAN_RIGHT, M.NONE, M.NONE, M.CAKE_RIGHT)),
)

SMALL_SOLUTIONS = {
    ((1, "A"), (2, "A"), (3, "A"), (4, "A")),
    ((2, "B"), (4, "B"), (1, "B"), (3, "B")),
    ((4, "C"), (3, "C"), (2, "C"), (1, "C")),
    ((3, "D"), (1, "D"), (4, "D"), (2, "D")),
}

# An arrangement of the built-in box, position by position.
KNOWN_DEFAULT = (
    (2, "A"), (6, "B"), (4, "D"),
    (8, "D"), (1, "C"), (9, "B"),
    (5, "C"), (7, "A"), (3, "B"),
)


@pytest.fixture
def small_catalog():
    return list(SMALL_CATALOG)
