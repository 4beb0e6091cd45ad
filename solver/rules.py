"""Edge compatibility and tile orientation."""

from __future__ import annotations

from typing import Dict, Tuple

from models import InvariantViolation, Marking, Orientation, Side, Tile

_PAIRS = (
    (Marking.GIRL_TOP, Marking.GIRL_BOTTOM),
    (Marking.LADY_TOP, Marking.LADY_BOTTOM),
    (Marking.WATERING_CAN_LEFT, Marking.WATERING_CAN_RIGHT),
    (Marking.CAKE_LEFT, Marking.CAKE_RIGHT),
)

COMPLEMENT: Dict[Marking, Marking] = {}
for _a, _b in _PAIRS:
    COMPLEMENT[_a] = _b
    COMPLEMENT[_b] = _a


def compatible(a: Marking, b: Marking) -> bool:
    """Return ``True`` when the two markings form a complementary pair."""
    return COMPLEMENT.get(a) is b


def side_marking(tile: Tile, orientation: Orientation, side: Side) -> Marking:
    """Marking currently facing ``side`` when ``tile`` is turned to ``orientation``."""
    try:
        o = Orientation(orientation).offset
        s = Side(side)
    except (TypeError, ValueError):
        raise InvariantViolation(f"bad orientation/side: {orientation!r}/{side!r}")
    return tile.markings[(s + o) % 4]


def oriented_markings(tile: Tile, orientation: Orientation) -> Tuple[Marking, Marking, Marking, Marking]:
    return tuple(side_marking(tile, orientation, side) for side in Side)  # type: ignore[return-value]


def edge_fits(a: Tuple[Marking, ...], a_side: Side, b: Tuple[Marking, ...]) -> bool:
    """Check oriented tile ``a`` against ``b`` lying on its ``a_side``."""
    return compatible(a[a_side], b[Side(a_side).opposite])


__all__ = ["COMPLEMENT", "compatible", "side_marking", "oriented_markings", "edge_fits"]
