from __future__ import annotations

from typing import Dict, FrozenSet, Tuple

from models import InvariantViolation, Side

_SIDES_CACHE: Dict[Tuple[int, int], Dict[Side, int]] = {}


def _check(position: int, grid_size: int) -> None:
    if grid_size <= 0:
        raise InvariantViolation(f"grid size must be positive, got {grid_size}")
    if not 1 <= position <= grid_size * grid_size:
        raise InvariantViolation(
            f"position {position} outside 1..{grid_size * grid_size}"
        )


def row_col(position: int, grid_size: int) -> Tuple[int, int]:
    _check(position, grid_size)
    return divmod(position - 1, grid_size)


def neighbor_sides(position: int, grid_size: int) -> Dict[Side, int]:
    """Map each side of ``position`` that has a neighbour to that neighbour's position."""
    key = (int(position), int(grid_size))
    cached = _SIDES_CACHE.get(key)
    if cached is not None:
        return dict(cached)
    _check(position, grid_size)

    n = grid_size
    sides: Dict[Side, int] = {}
    if position > n:
        sides[Side.TOP] = position - n
    if position % n != 0:
        sides[Side.RIGHT] = position + 1
    if position <= n * (n - 1):
        sides[Side.BOTTOM] = position + n
    if (position - 1) % n != 0:
        sides[Side.LEFT] = position - 1
    _SIDES_CACHE[key] = sides
    return dict(sides)


def neighbors_of(position: int, grid_size: int) -> FrozenSet[int]:
    return frozenset(neighbor_sides(position, grid_size).values())


def earlier_neighbors(position: int, grid_size: int) -> Tuple[Tuple[Side, int], ...]:
    """Neighbours already filled when positions are filled in increasing order."""
    return tuple(
        (side, other)
        for side, other in neighbor_sides(position, grid_size).items()
        if other < position
    )


__all__ = ["row_col", "neighbor_sides", "neighbors_of", "earlier_neighbors"]
