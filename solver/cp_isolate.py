# solver/cp_isolate.py
"""Run the CP-SAT enumeration in a child process.

OR-Tools can exhaust memory or die in native code on large catalogs; keeping it
in a spawned child means the web worker survives and can report the failure.
"""
import multiprocessing as mp
import traceback
from typing import List, Optional, Tuple

from catalog import catalog_to_dicts

Pairs = List[List[Tuple[int, str]]]


def _enumerate_in_child(q, catalog_rows, grid_size, max_seconds: float):
    # top-level so spawn can pickle it
    try:
        from solver.cp_sat import count_solutions
        complete, solutions, reason = count_solutions(catalog_rows, grid_size, max_seconds)
        q.put(("ok", complete, [s.pairs() for s in solutions], reason))
    except MemoryError:
        q.put(("failed", False, [], "Cross-check ran out of memory"))
    except Exception as e:
        q.put(("failed", False, [], f"{type(e).__name__}: {e}\n{traceback.format_exc()}"))


def run_cp_sat_isolated(catalog, grid_size, max_seconds: float) -> Tuple[bool, Pairs, Optional[str], Optional[str]]:
    """
    Enumerate every arrangement of ``catalog`` with CP-SAT in a spawned child.

    Returns ``(complete, solution_pairs, reason, crash_note)``; ``crash_note``
    is set only when the child was killed, crashed, or sent nothing back.
    """
    ctx = mp.get_context("spawn")
    q = ctx.Queue()
    child = ctx.Process(
        target=_enumerate_in_child,
        args=(q, catalog_to_dicts(catalog), grid_size, float(max_seconds)),
        daemon=True,
    )
    child.start()

    # model time plus a margin for interpreter start-up and teardown
    deadline = float(max_seconds) + 5.0
    try:
        # drain before join; a large result would otherwise block the child on a full pipe
        outcome = q.get(timeout=deadline)
    except Exception:
        outcome = None
    child.join(2.0)

    if child.is_alive():
        child.terminate()
        child.join(2.0)
        if outcome is None:
            return False, [], "Stopped before enumeration finished (timebox)", "killed: timeout"

    if outcome is None:
        if child.exitcode not in (0, None):
            return False, [], f"Cross-check stopped (child exit {child.exitcode})", "child crashed"
        return False, [], "No result from child process", "no-result"

    tag, complete, pairs, reason = outcome
    if tag != "ok":
        return False, [], reason, None
    return complete, pairs, reason, None
