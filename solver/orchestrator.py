# Orchestrator: validate catalog, run the backtracking search, optional CP-SAT cross-check
from __future__ import annotations

import threading
import time
from typing import Any, Dict, List, Optional

from catalog import DEFAULT_CATALOG, as_tiles, load_catalog_file
from config import CFG
from models import ConfigurationError, Solution
from progress import (
    set_phase, set_attempt, set_progress_pct, set_search_counts,
    set_tile_count, set_elapsed, set_status, set_message,
    log_attempt_detail,
)
from solver.analysis import dead_tiles
from solver.backtrack import BacktrackingSolver, SearchLimits, SearchStats

NO_SOLUTION_REASON = "No arrangement exists"


def default_catalog() -> List:
    """The catalog named by ``CFG.CATALOG_FILE``, else the built-in box."""
    path = (getattr(CFG, "CATALOG_FILE", "") or "").strip()
    if path:
        return load_catalog_file(path)
    return list(DEFAULT_CATALOG)


def _stop_note(stats: SearchStats) -> Optional[str]:
    notes = {
        "max_solutions": "Stopped at solution limit",
        "time_limit": "Stopped at time limit",
        "node_limit": "Stopped at node limit",
        "cancelled": "Cancelled",
    }
    return notes.get(stats.reason or "")


def _publish(stats: SearchStats) -> None:
    set_search_counts(stats.nodes, stats.solutions)


def _cross_check(tiles, grid_size: int, found: int, complete: bool) -> Dict[str, Any]:
    from solver.cp_isolate import run_cp_sat_isolated

    seconds = float(getattr(CFG, "CP_SAT_SECONDS", 30.0))
    set_phase("cp_sat")
    set_attempt(f"CP-SAT enumeration ({seconds:g}s)")
    cp_complete, pairs, reason, crash = run_cp_sat_isolated(tiles, grid_size, seconds)
    out: Dict[str, Any] = {
        "complete": bool(cp_complete),
        "count": len(pairs),
        "reason": reason,
        "crash": crash,
    }
    if cp_complete and complete:
        out["agrees"] = len(pairs) == found
    log_attempt_detail("Cross-check", **{k: v for k, v in out.items() if v is not None})
    return out


def solve_puzzle(
    catalog=None,
    *,
    grid_size: Optional[int] = None,
    mode: Optional[str] = None,
    max_solutions: Optional[int] = None,
    time_limit: Optional[float] = None,
    node_limit: Optional[int] = None,
    cross_check: Optional[bool] = None,
    cancel: Optional[threading.Event] = None,
) -> Dict[str, Any]:
    """
    Run one search and return a result dict:
      ok, solutions, count, stats, reason, grid_size, tiles, mode, cross_check.
    ``mode`` is "first" or "all" (default from ``CFG.FIND_FIRST``).
    """
    t0 = time.time()
    if mode is None:
        mode = "first" if getattr(CFG, "FIND_FIRST", False) else "all"
    mode = str(mode).lower()
    if cross_check is None:
        cross_check = bool(getattr(CFG, "CROSS_CHECK", False))

    result: Dict[str, Any] = {
        "ok": False,
        "mode": mode,
        "solutions": [],
        "count": 0,
        "stats": {},
        "reason": None,
        "grid_size": 0,
        "tiles": [],
        "cross_check": None,
    }

    try:
        tiles = as_tiles(catalog) if catalog is not None else default_catalog()
        if mode not in ("first", "all"):
            raise ConfigurationError(f"Bad mode: {mode!r} (expected 'first' or 'all')")
        solver = BacktrackingSolver(
            tiles,
            grid_size if grid_size is not None else (getattr(CFG, "GRID_SIZE", 0) or None),
            on_progress=_publish,
        )
    except ConfigurationError as e:
        set_status("Error")
        set_message(str(e))
        log_attempt_detail("Configuration rejected", reason=str(e))
        result["reason"] = str(e)
        return result

    n = solver.grid_size
    result["grid_size"] = n
    result["tiles"] = solver.tiles
    set_tile_count(len(solver.tiles))

    dead = dead_tiles(solver.tiles)
    if dead:
        log_attempt_detail("Tiles without any compatible edge", tiles=",".join(map(str, dead)))

    limits = SearchLimits.from_config(
        CFG,
        max_solutions=max_solutions,
        time_limit=time_limit,
        node_limit=node_limit,
        cancel=cancel,
    )
    log_attempt_detail(
        "Run setup",
        grid=f"{n}x{n}",
        tiles=len(solver.tiles),
        mode=mode,
        max_solutions=limits.max_solutions,
        time_limit=limits.time_limit,
        node_limit=limits.node_limit,
    )

    set_status("Solving")
    set_phase("backtrack")
    set_attempt(f"{n} × {n} board, {len(solver.tiles)} tiles")
    set_progress_pct(0.0)

    # InvariantViolation propagates to the caller.
    solutions: List[Solution] = []
    if mode == "first":
        first = solver.find_first(limits)
        if first is not None:
            solutions.append(first)
    else:
        solutions.extend(solver.find_all(limits))

    stats = solver.last_stats
    _publish(stats)
    set_progress_pct(100.0)
    result.update({
        "ok": True,
        "solutions": solutions,
        "count": len(solutions),
        "stats": stats.to_dict(),
    })
    if not solutions:
        result["reason"] = _stop_note(stats) or NO_SOLUTION_REASON
    else:
        result["reason"] = _stop_note(stats)

    log_attempt_detail(
        "Search finished",
        solutions=len(solutions),
        nodes=stats.nodes,
        pruned=stats.pruned,
        stop=stats.reason,
        elapsed=f"{stats.elapsed:.3f}s",
    )

    if cross_check:
        complete = mode == "all" and stats.reason == "exhausted"
        result["cross_check"] = _cross_check(solver.tiles, n, len(solutions), complete)

    set_elapsed(time.time() - t0)
    return result


__all__ = ["solve_puzzle", "default_catalog", "NO_SOLUTION_REASON"]
