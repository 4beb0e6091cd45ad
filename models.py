from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple


class PuzzleError(Exception):
    """Base class for solver errors."""


class ConfigurationError(PuzzleError):
    """The catalog or grid size cannot describe a square board."""


class InvariantViolation(PuzzleError):
    """Internal state broke an invariant; this is a programming error."""


class Marking(Enum):
    GIRL_TOP = "girl-top"
    GIRL_BOTTOM = "girl-bottom"
    LADY_TOP = "lady-top"
    LADY_BOTTOM = "lady-bottom"
    WATERING_CAN_LEFT = "watering-can-left"
    WATERING_CAN_RIGHT = "watering-can-right"
    CAKE_LEFT = "cake-left"
    CAKE_RIGHT = "cake-right"
    # printed mirrored on some tiles; never matches a real neighbour
    WATERING_CAN_MIRRORED = "watering-can-mirrored"
    NONE = "none"

    @classmethod
    def parse(cls, raw: Any) -> "Marking":
        if isinstance(raw, Marking):
            return raw
        text = str(raw or "").strip()
        if not text:
            raise ValueError("empty marking")
        key = text.upper().replace("-", "_").replace(" ", "_")
        if key in cls.__members__:
            return cls[key]
        value = text.lower().replace("_", "-").replace(" ", "-")
        for member in cls:
            if member.value == value:
                return member
        raise ValueError(f"unknown marking {raw!r}")


class Side(IntEnum):
    TOP = 0
    RIGHT = 1
    BOTTOM = 2
    LEFT = 3

    @property
    def opposite(self) -> "Side":
        return Side((self + 2) % 4)


class Orientation(IntEnum):
    """Clockwise quarter turns: A=0°, B=90°, C=180°, D=270°."""

    A = 0
    B = 1
    C = 2
    D = 3

    @property
    def label(self) -> str:
        return self.name

    @property
    def offset(self) -> int:
        return int(self)

    def next(self) -> "Orientation":
        return Orientation((self + 1) % 4)

    @classmethod
    def parse(cls, raw: Any) -> "Orientation":
        if isinstance(raw, Orientation):
            return raw
        if isinstance(raw, int) and not isinstance(raw, bool):
            if 0 <= raw < 4:
                return cls(raw)
            raise ValueError(f"orientation out of range: {raw}")
        text = str(raw or "").strip().upper()
        if text in cls.__members__:
            return cls[text]
        if text.isdigit() and int(text) < 4:
            return cls(int(text))
        raise ValueError(f"unknown orientation {raw!r}")


UNPLACED = 0


@dataclass(frozen=True)
class Tile:
    id: int
    markings: Tuple[Marking, Marking, Marking, Marking]

    def __post_init__(self):
        if len(self.markings) != 4:
            raise ConfigurationError(
                f"tile {self.id} needs exactly 4 markings, got {len(self.markings)}"
            )
        object.__setattr__(self, "markings", tuple(Marking.parse(m) for m in self.markings))

    def label(self) -> str:
        return f"#{self.id}"


@dataclass
class PlacedTile:
    tile: Tile
    position: int = UNPLACED
    orientation: Orientation = Orientation.A

    @property
    def is_placed(self) -> bool:
        return self.position != UNPLACED


class Placement(NamedTuple):
    position: int
    tile_id: int
    orientation: Orientation


@dataclass(frozen=True)
class Solution:
    grid_size: int
    placements: Tuple[Placement, ...]

    def pairs(self) -> List[Tuple[int, str]]:
        return [(p.tile_id, p.orientation.label) for p in self.placements]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "grid_size": self.grid_size,
            "placements": [
                {"position": p.position, "tile": p.tile_id, "orientation": p.orientation.label}
                for p in self.placements
            ],
        }

    def __str__(self) -> str:
        return " ".join(f"{tid}{label}" for tid, label in self.pairs())


class Board:
    """N×N slots plus one PlacedTile per catalog tile.

    Position assignment stays a partial injective function from tiles to
    positions; violating it raises :class:`InvariantViolation`.
    """

    def __init__(self, grid_size: int, tiles: Sequence[Tile]):
        self.size = int(grid_size)
        self.cells = self.size * self.size
        self.pieces: List[PlacedTile] = [PlacedTile(t) for t in tiles]
        self._slots: List[Optional[PlacedTile]] = [None] * self.cells

    def _check_position(self, position: int) -> None:
        if not 1 <= position <= self.cells:
            raise InvariantViolation(f"position {position} outside 1..{self.cells}")

    def piece_at(self, position: int) -> Optional[PlacedTile]:
        self._check_position(position)
        return self._slots[position - 1]

    def place(self, piece: PlacedTile, position: int, orientation: Orientation) -> None:
        self._check_position(position)
        if piece.is_placed:
            raise InvariantViolation(
                f"tile {piece.tile.id} already sits at position {piece.position}"
            )
        if self._slots[position - 1] is not None:
            raise InvariantViolation(f"position {position} is already occupied")
        piece.position = position
        piece.orientation = orientation
        self._slots[position - 1] = piece

    def unplace(self, piece: PlacedTile) -> None:
        if not piece.is_placed:
            return
        if self._slots[piece.position - 1] is not piece:
            raise InvariantViolation(
                f"slot {piece.position} does not hold tile {piece.tile.id}"
            )
        self._slots[piece.position - 1] = None
        piece.position = UNPLACED
        piece.orientation = Orientation.A

    def available(self) -> List[PlacedTile]:
        return [p for p in self.pieces if not p.is_placed]

    def is_clear(self) -> bool:
        return all(s is None for s in self._slots) and not any(p.is_placed for p in self.pieces)

    def snapshot(self) -> Solution:
        placements = []
        for idx, piece in enumerate(self._slots):
            if piece is None:
                raise InvariantViolation(f"snapshot of incomplete board (position {idx + 1} empty)")
            placements.append(Placement(idx + 1, piece.tile.id, piece.orientation))
        return Solution(self.size, tuple(placements))
