"""CP-SAT model of the edge-matching puzzle.

Used as an independent check of the backtracking engine: both must agree on
the number of arrangements for a catalog.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Sequence, Tuple

from ortools.sat.python import cp_model as _cp

from catalog import as_tiles
from config import CFG
from models import Orientation, Placement, Solution, Tile
from solver.backtrack import resolve_grid_size
from solver.rules import compatible, side_marking
from solver.topology import earlier_neighbors

log = logging.getLogger(__name__)

Var = Tuple[int, int, int]  # (tile index, position, orientation)


def build_model(tiles: Sequence[Tile], grid_size: int):
    """Return ``(model, x)`` where ``x[(t, p, o)]`` is the placement literal."""

    m = _cp.CpModel()
    n = len(tiles)
    cells = grid_size * grid_size
    positions = range(1, cells + 1)

    x: Dict[Var, _cp.IntVar] = {}
    for t in range(n):
        for p in positions:
            for o in Orientation:
                x[(t, p, int(o))] = m.NewBoolVar(f"x_{tiles[t].id}_{p}_{o.label}")

    # every tile exactly once, every cell exactly once
    for t in range(n):
        m.Add(sum(x[(t, p, int(o))] for p in positions for o in Orientation) == 1)
    for p in positions:
        m.Add(sum(x[(t, p, int(o))] for t in range(n) for o in Orientation) == 1)

    # a placement at p needs a compatible placement on each earlier neighbour
    for p in positions:
        for side, q in earlier_neighbors(p, grid_size):
            for t in range(n):
                for o in Orientation:
                    mine = side_marking(tiles[t], o, side)
                    partners = [
                        x[(u, q, int(ou))]
                        for u in range(n)
                        if u != t
                        for ou in Orientation
                        if compatible(mine, side_marking(tiles[u], ou, side.opposite))
                    ]
                    lit = x[(t, p, int(o))]
                    if partners:
                        m.AddBoolOr(partners).OnlyEnforceIf(lit)
                    else:
                        m.Add(lit == 0)
    return m, x


class _SolutionCollector(_cp.CpSolverSolutionCallback):
    def __init__(self, x, tiles: Sequence[Tile], grid_size: int, limit: Optional[int] = None):
        _cp.CpSolverSolutionCallback.__init__(self)
        self._x = x
        self._tiles = tiles
        self._grid_size = grid_size
        self._limit = limit
        self.solutions: List[Solution] = []

    def on_solution_callback(self):
        chosen: Dict[int, Placement] = {}
        for (t, p, o), var in self._x.items():
            if self.BooleanValue(var):
                chosen[p] = Placement(p, self._tiles[t].id, Orientation(o))
        self.solutions.append(
            Solution(self._grid_size, tuple(chosen[p] for p in sorted(chosen)))
        )
        if self._limit and len(self.solutions) >= self._limit:
            self.StopSearch()


def _make_solver(seconds: Optional[float]) -> _cp.CpSolver:
    solver = _cp.CpSolver()
    if seconds:
        solver.parameters.max_time_in_seconds = float(seconds)
    solver.parameters.max_memory_in_mb = int(getattr(CFG, "MAX_MEMORY_MB", 1024))
    solver.parameters.log_search_progress = False
    return solver


def count_solutions(
    catalog,
    grid_size: Optional[int] = None,
    max_seconds: Optional[float] = None,
    max_solutions: Optional[int] = None,
) -> Tuple[bool, List[Solution], Optional[str]]:
    """Enumerate every arrangement.

    Returns ``(complete, solutions, reason)``; ``complete`` is ``False`` when the
    timebox or ``max_solutions`` stopped the enumeration early.
    """

    tiles = as_tiles(catalog)
    side = resolve_grid_size(tiles, grid_size)
    seconds = max_seconds if max_seconds is not None else getattr(CFG, "CP_SAT_SECONDS", 30.0)

    t0 = time.time()
    m, x = build_model(tiles, side)
    solver = _make_solver(seconds)
    solver.parameters.enumerate_all_solutions = True
    # enumeration is only exhaustive on a single worker
    solver.parameters.num_search_workers = 1

    collector = _SolutionCollector(x, tiles, side, limit=max_solutions)
    res = solver.Solve(m, collector)
    elapsed = time.time() - t0
    log.info(
        "cp-sat enumeration status=%s solutions=%d elapsed=%.2fs",
        solver.StatusName(res), len(collector.solutions), elapsed,
    )

    if res == _cp.OPTIMAL:
        return True, collector.solutions, None
    if res == _cp.INFEASIBLE:
        return True, [], None
    if res == _cp.MODEL_INVALID:
        return False, collector.solutions, "Model invalid (configuration error)"
    if max_solutions and len(collector.solutions) >= max_solutions:
        return False, collector.solutions, "Stopped at solution limit"
    return False, collector.solutions, "Stopped before enumeration finished (timebox)"


def solve_first(
    catalog,
    grid_size: Optional[int] = None,
    max_seconds: Optional[float] = None,
) -> Tuple[bool, Optional[Solution], Optional[str]]:
    tiles = as_tiles(catalog)
    side = resolve_grid_size(tiles, grid_size)
    seconds = max_seconds if max_seconds is not None else getattr(CFG, "CP_SAT_SECONDS", 30.0)

    m, x = build_model(tiles, side)
    solver = _make_solver(seconds)
    solver.parameters.num_search_workers = int(getattr(CFG, "WORKERS", 1))
    res = solver.Solve(m)

    if res in (_cp.OPTIMAL, _cp.FEASIBLE):
        chosen = {}
        for (t, p, o), var in x.items():
            if solver.BooleanValue(var):
                chosen[p] = Placement(p, tiles[t].id, Orientation(o))
        return True, Solution(side, tuple(chosen[p] for p in sorted(chosen))), None
    if res == _cp.INFEASIBLE:
        return False, None, "Proven infeasible"
    if res == _cp.MODEL_INVALID:
        return False, None, "Model invalid (configuration error)"
    return False, None, "Stopped before solution (timebox)"


__all__ = ["build_model", "count_solutions", "solve_first"]
