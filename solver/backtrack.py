"""Depth-first backtracking search over tile placements."""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from catalog import as_tiles
from config import CFG
from models import (
    Board,
    ConfigurationError,
    InvariantViolation,
    Orientation,
    Side,
    Solution,
    Tile,
)
from solver.rules import edge_fits, oriented_markings
from solver.topology import earlier_neighbors

log = logging.getLogger(__name__)


def resolve_grid_size(tiles: Sequence[Tile], grid_size: Optional[int] = None) -> int:
    """Return the board side length for ``tiles`` or raise :class:`ConfigurationError`."""

    n = len(tiles)
    if n == 0:
        raise ConfigurationError("Bad catalog: no tiles")
    side = math.isqrt(n)
    if side * side != n:
        raise ConfigurationError(f"Bad catalog: {n} tiles do not fill a square grid")
    if grid_size:
        try:
            requested = int(grid_size)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Bad grid size: {grid_size!r}")
        if requested != side:
            raise ConfigurationError(
                f"Bad grid size: {requested}×{requested} board needs {requested * requested} tiles, catalog has {n}"
            )
    ids = [t.id for t in tiles]
    if len(set(ids)) != n:
        raise ConfigurationError("Bad catalog: duplicate tile ids")
    if any(int(i) <= 0 for i in ids):
        raise ConfigurationError("Bad catalog: tile ids must be positive")
    return side


@dataclass
class SearchLimits:
    max_solutions: Optional[int] = None
    time_limit: Optional[float] = None
    node_limit: Optional[int] = None
    cancel: Optional[threading.Event] = None

    @classmethod
    def from_config(cls, cfg=CFG, **overrides) -> "SearchLimits":
        """Build limits from ``CFG``; zero means "no limit" as in the env knobs."""

        def _positive(value, cast):
            try:
                v = cast(value)
            except (TypeError, ValueError):
                return None
            return v if v > 0 else None

        limits = cls(
            max_solutions=_positive(getattr(cfg, "MAX_SOLUTIONS", 0), int),
            time_limit=_positive(getattr(cfg, "TIME_LIMIT", 0), float),
            node_limit=_positive(getattr(cfg, "NODE_LIMIT", 0), int),
        )
        for key, value in overrides.items():
            if value is not None:
                setattr(limits, key, value)
        return limits


@dataclass
class SearchStats:
    grid_size: int
    tiles: int
    nodes: int = 0
    pruned: int = 0
    solutions: int = 0
    started: float = field(default_factory=time.time)
    elapsed: float = 0.0
    reason: Optional[str] = None

    def touch(self) -> None:
        self.elapsed = max(0.0, time.time() - self.started)

    def to_dict(self) -> Dict[str, object]:
        return {
            "grid_size": self.grid_size,
            "tiles": self.tiles,
            "nodes": self.nodes,
            "pruned": self.pruned,
            "solutions": self.solutions,
            "elapsed": round(self.elapsed, 4),
            "reason": self.reason,
        }


class _Run:
    """Limits and counters for one ``find_all`` call."""

    def __init__(self, limits: SearchLimits, stats: SearchStats):
        self.limits = limits
        self.stats = stats
        self.deadline = (
            stats.started + float(limits.time_limit) if limits.time_limit else None
        )

    def should_stop(self) -> bool:
        if self.stats.reason:
            return True
        cancel = self.limits.cancel
        if cancel is not None and cancel.is_set():
            self.stats.reason = "cancelled"
            return True
        if self.deadline is not None and time.time() >= self.deadline:
            self.stats.reason = "time_limit"
            return True
        return False

    def node_limit_hit(self) -> bool:
        limit = self.limits.node_limit
        if limit and self.stats.nodes >= limit:
            self.stats.reason = "node_limit"
            return True
        return False

    def solutions_capped(self) -> bool:
        limit = self.limits.max_solutions
        if limit and self.stats.solutions >= limit:
            self.stats.reason = "max_solutions"
            return True
        return False


class BacktrackingSolver:
    """Fill positions 1..N² in order, trying every free tile in every orientation.

    An orientation is kept only when it is compatible with every neighbour
    filled earlier (the tiles above and to the left); anything else is pruned
    before the search goes deeper.  Solutions are yielded as immutable
    snapshots and the board is restored on every exit path, including early
    stops and a consumer abandoning the generator.
    """

    def __init__(
        self,
        catalog,
        grid_size: Optional[int] = None,
        *,
        on_progress: Optional[Callable[[SearchStats], None]] = None,
        progress_every: Optional[int] = None,
    ):
        self.tiles: List[Tile] = as_tiles(catalog)
        self.grid_size = resolve_grid_size(self.tiles, grid_size)
        self.board = Board(self.grid_size, self.tiles)
        self.on_progress = on_progress
        every = progress_every if progress_every is not None else getattr(CFG, "PROGRESS_EVERY", 0)
        self.progress_every = max(0, int(every or 0))
        self.last_stats: Optional[SearchStats] = None
        self._checks: Dict[int, Tuple[Tuple[Side, int], ...]] = {
            pos: earlier_neighbors(pos, self.grid_size)
            for pos in range(1, self.board.cells + 1)
        }

    # ---------------- public API ----------------

    def find_all(self, limits: Optional[SearchLimits] = None) -> Iterator[Solution]:
        limits = limits or SearchLimits()
        if not self.board.is_clear():
            raise InvariantViolation("board is not clear; another search is still running")

        stats = SearchStats(grid_size=self.grid_size, tiles=len(self.tiles))
        self.last_stats = stats
        run = _Run(limits, stats)
        log.debug("search start grid=%d tiles=%d limits=%s", self.grid_size, len(self.tiles), limits)

        search = self._search(1, run)
        try:
            yield from search
        except GeneratorExit:
            if stats.reason is None:
                stats.reason = "abandoned"
            raise
        finally:
            search.close()
            if stats.reason is None:
                stats.reason = "exhausted"
            stats.touch()
            if not self.board.is_clear():
                raise InvariantViolation("board not restored after search")
            log.debug("search end %s", stats.to_dict())

    def find_first(self, limits: Optional[SearchLimits] = None) -> Optional[Solution]:
        gen = self.find_all(limits)
        try:
            first = next(gen, None)
        finally:
            gen.close()
        if first is not None and self.last_stats is not None:
            self.last_stats.reason = "first_found"
        return first

    def count(self, limits: Optional[SearchLimits] = None) -> int:
        return sum(1 for _ in self.find_all(limits))

    # ---------------- internals ----------------

    def _fits(self, tile: Tile, orientation: Orientation, checks: Tuple[Tuple[Side, int], ...]) -> bool:
        if not checks:
            return True
        mine = oriented_markings(tile, orientation)
        for side, other in checks:
            neighbour = self.board.piece_at(other)
            if neighbour is None:
                raise InvariantViolation(f"position {other} should be filled before its neighbours")
            if not edge_fits(mine, side, oriented_markings(neighbour.tile, neighbour.orientation)):
                return False
        return True

    def _tick(self, stats: SearchStats) -> None:
        if self.on_progress is None or not self.progress_every:
            return
        if stats.nodes % self.progress_every == 0:
            stats.touch()
            try:
                self.on_progress(stats)
            except Exception:
                log.exception("progress callback failed")

    def _search(self, position: int, run: _Run) -> Iterator[Solution]:
        if run.should_stop():
            return
        board = self.board
        stats = run.stats
        last = position == board.cells
        checks = self._checks[position]

        for piece in board.available():
            for orientation in Orientation:
                if run.node_limit_hit():
                    return
                stats.nodes += 1
                self._tick(stats)
                if not self._fits(piece.tile, orientation, checks):
                    stats.pruned += 1
                    continue
                board.place(piece, position, orientation)
                try:
                    if last:
                        stats.solutions += 1
                        yield board.snapshot()
                        run.solutions_capped()
                    else:
                        yield from self._search(position + 1, run)
                finally:
                    board.unplace(piece)
                if stats.reason:
                    return


__all__ = [
    "BacktrackingSolver",
    "SearchLimits",
    "SearchStats",
    "resolve_grid_size",
]
