import threading

import pytest

from catalog import DEFAULT_CATALOG
from config import CFG
from models import ConfigurationError, InvariantViolation, Marking, Side, Tile
from solver.backtrack import BacktrackingSolver, SearchLimits, resolve_grid_size
from solver.rules import compatible, side_marking
from solver.topology import neighbor_sides

from conftest import KNOWN_DEFAULT, SMALL_SOLUTIONS


def _key(solution):
    return tuple(solution.pairs())


def _assert_valid(solution, tiles):
    by_id = {t.id: t for t in tiles}
    n = solution.grid_size
    placed = {p.position: p for p in solution.placements}
    assert sorted(placed) == list(range(1, n * n + 1))
    assert sorted(p.tile_id for p in solution.placements) == sorted(by_id)
    for pos, p in placed.items():
        for side, other in neighbor_sides(pos, n).items():
            q = placed[other]
            mine = side_marking(by_id[p.tile_id], p.orientation, side)
            theirs = side_marking(by_id[q.tile_id], q.orientation, side.opposite)
            assert compatible(mine, theirs), (pos, side, other)


# ---------------- small board ----------------

def test_small_board_has_exactly_the_four_rotations(small_catalog):
    solver = BacktrackingSolver(small_catalog)
    found = [_key(s) for s in solver.find_all()]
    assert len(found) == 4
    assert set(found) == SMALL_SOLUTIONS
    assert solver.last_stats.reason == "exhausted"
    assert solver.last_stats.solutions == 4
    assert solver.board.is_clear()


def test_find_first_returns_identity_arrangement(small_catalog):
    solver = BacktrackingSolver(small_catalog)
    first = solver.find_first()
    assert _key(first) == ((1, "A"), (2, "A"), (3, "A"), (4, "A"))
    assert str(first) == "1A 2A 3A 4A"
    assert solver.last_stats.reason == "first_found"
    assert solver.board.is_clear()


def test_count_matches_find_all(small_catalog):
    solver = BacktrackingSolver(small_catalog)
    assert solver.count() == 4
    # repeatable on the same solver
    assert solver.count() == 4


def test_every_solution_satisfies_all_neighbour_pairs(small_catalog):
    for s in BacktrackingSolver(small_catalog).find_all():
        _assert_valid(s, small_catalog)


@pytest.mark.parametrize("marking", [Marking.NONE, Marking.GIRL_TOP, Marking.WATERING_CAN_MIRRORED])
def test_uniform_catalog_has_no_arrangement(marking):
    tiles = [Tile(i, (marking,) * 4) for i in range(1, 5)]
    solver = BacktrackingSolver(tiles)
    assert list(solver.find_all()) == []
    assert solver.find_first() is None
    assert solver.last_stats.reason == "exhausted"
    assert solver.board.is_clear()


def test_single_tile_board_has_four_orientations():
    solver = BacktrackingSolver([Tile(7, (Marking.NONE,) * 4)])
    assert solver.grid_size == 1
    assert [_key(s) for s in solver.find_all()] == [((7, "A"),), ((7, "B"),), ((7, "C"),), ((7, "D"),)]


def test_pruning_is_counted(small_catalog):
    solver = BacktrackingSolver(small_catalog)
    solver.count()
    stats = solver.last_stats
    assert stats.nodes > 0
    assert 0 < stats.pruned < stats.nodes


# ---------------- built-in catalog ----------------

def test_default_catalog_contains_known_arrangement():
    solver = BacktrackingSolver(DEFAULT_CATALOG)
    assert solver.grid_size == 3
    found = [_key(s) for s in solver.find_all()]
    assert KNOWN_DEFAULT in found
    # whole-board rotations come in groups of four
    assert len(found) % 4 == 0
    assert len(set(found)) == len(found)


def test_default_catalog_solutions_are_valid():
    for s in BacktrackingSolver(DEFAULT_CATALOG).find_all():
        _assert_valid(s, DEFAULT_CATALOG)


# ---------------- limits and cleanup ----------------

def test_max_solutions_stops_early_and_restores_board(small_catalog):
    solver = BacktrackingSolver(small_catalog)
    found = list(solver.find_all(SearchLimits(max_solutions=2)))
    assert len(found) == 2
    assert solver.last_stats.reason == "max_solutions"
    assert solver.board.is_clear()


def test_node_limit_stops_search(small_catalog):
    solver = BacktrackingSolver(small_catalog)
    list(solver.find_all(SearchLimits(node_limit=5)))
    assert solver.last_stats.nodes == 5
    assert solver.last_stats.reason == "node_limit"
    assert solver.board.is_clear()


def test_cancel_before_start_yields_nothing(small_catalog):
    cancel = threading.Event()
    cancel.set()
    solver = BacktrackingSolver(small_catalog)
    assert list(solver.find_all(SearchLimits(cancel=cancel))) == []
    assert solver.last_stats.reason == "cancelled"
    assert solver.last_stats.nodes == 0
    assert solver.board.is_clear()


def test_cancel_during_search_keeps_found_solutions(small_catalog):
    cancel = threading.Event()
    solver = BacktrackingSolver(small_catalog)
    found = []
    for s in solver.find_all(SearchLimits(cancel=cancel)):
        found.append(s)
        cancel.set()
    assert len(found) == 1
    assert solver.last_stats.reason == "cancelled"
    assert solver.board.is_clear()


def test_elapsed_time_limit_stops_search(small_catalog):
    solver = BacktrackingSolver(small_catalog)
    # a deadline already in the past
    found = list(solver.find_all(SearchLimits(time_limit=1e-9)))
    assert found == []
    assert solver.last_stats.reason == "time_limit"
    assert solver.board.is_clear()


def test_abandoned_generator_restores_board(small_catalog):
    solver = BacktrackingSolver(small_catalog)
    gen = solver.find_all()
    next(gen)
    assert not solver.board.is_clear()
    gen.close()
    assert solver.board.is_clear()
    assert solver.last_stats.reason == "abandoned"


def test_second_search_refused_while_first_is_suspended(small_catalog):
    solver = BacktrackingSolver(small_catalog)
    gen = solver.find_all()
    next(gen)
    with pytest.raises(InvariantViolation):
        next(solver.find_all())
    gen.close()
    assert solver.count() == 4


def test_progress_callback_receives_stats(small_catalog):
    seen = []
    solver = BacktrackingSolver(small_catalog, on_progress=lambda st: seen.append(st.nodes), progress_every=3)
    solver.count()
    assert seen
    assert all(n % 3 == 0 for n in seen)


def test_failing_progress_callback_does_not_stop_search(small_catalog):
    def boom(_stats):
        raise RuntimeError("ui gone")

    solver = BacktrackingSolver(small_catalog, on_progress=boom, progress_every=1)
    assert solver.count() == 4


# ---------------- configuration ----------------

def test_wrong_tile_count_is_rejected():
    with pytest.raises(ConfigurationError):
        BacktrackingSolver(list(DEFAULT_CATALOG)[:8])


def test_empty_catalog_is_rejected():
    with pytest.raises(ConfigurationError):
        resolve_grid_size([])


def test_grid_size_mismatch_is_rejected(small_catalog):
    with pytest.raises(ConfigurationError):
        BacktrackingSolver(small_catalog, grid_size=3)
    assert resolve_grid_size(small_catalog, 2) == 2


def test_duplicate_ids_are_rejected(small_catalog):
    tiles = small_catalog[:3] + [Tile(1, small_catalog[3].markings)]
    with pytest.raises(ConfigurationError):
        BacktrackingSolver(tiles)


def test_tile_needs_four_markings():
    with pytest.raises(ConfigurationError):
        Tile(1, (Marking.NONE, Marking.NONE, Marking.NONE))


def test_search_limits_from_config(monkeypatch):
    monkeypatch.setattr(CFG, "MAX_SOLUTIONS", 3)
    monkeypatch.setattr(CFG, "TIME_LIMIT", 0.0)
    monkeypatch.setattr(CFG, "NODE_LIMIT", 0)
    limits = SearchLimits.from_config(CFG, node_limit=50, time_limit=None)
    assert limits.max_solutions == 3
    assert limits.time_limit is None
    assert limits.node_limit == 50
    assert limits.cancel is None


def test_stats_to_dict_shape(small_catalog):
    solver = BacktrackingSolver(small_catalog)
    solver.count()
    d = solver.last_stats.to_dict()
    assert set(d) == {"grid_size", "tiles", "nodes", "pruned", "solutions", "elapsed", "reason"}
    assert d["grid_size"] == 2 and d["tiles"] == 4 and d["solutions"] == 4
    assert Side.TOP.opposite is Side.BOTTOM
