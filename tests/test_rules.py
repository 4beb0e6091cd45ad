import pytest

from models import InvariantViolation, Marking, Orientation, Side, Tile
from solver.rules import COMPLEMENT, compatible, edge_fits, oriented_markings, side_marking


def _tile():
    return Tile(1, (Marking.GIRL_TOP, Marking.LADY_TOP, Marking.CAKE_LEFT, Marking.NONE))


def test_compatible_is_symmetric_for_every_marking_pair():
    for a in Marking:
        for b in Marking:
            assert compatible(a, b) == compatible(b, a)


def test_designated_pairs_match():
    assert compatible(Marking.GIRL_TOP, Marking.GIRL_BOTTOM)
    assert compatible(Marking.LADY_BOTTOM, Marking.LADY_TOP)
    assert compatible(Marking.WATERING_CAN_LEFT, Marking.WATERING_CAN_RIGHT)
    assert compatible(Marking.CAKE_RIGHT, Marking.CAKE_LEFT)
    assert len(COMPLEMENT) == 8


def test_no_marking_matches_itself():
    for m in Marking:
        assert not compatible(m, m)


def test_unusable_markings_never_pair():
    for m in Marking:
        assert not compatible(Marking.NONE, m)
        assert not compatible(Marking.WATERING_CAN_MIRRORED, m)


def test_cross_motif_halves_do_not_pair():
    assert not compatible(Marking.GIRL_TOP, Marking.LADY_BOTTOM)
    assert not compatible(Marking.CAKE_LEFT, Marking.WATERING_CAN_RIGHT)


def test_orientation_a_is_identity():
    tile = _tile()
    for side in Side:
        assert side_marking(tile, Orientation.A, side) is tile.markings[side]


def test_side_marking_formula_for_every_orientation_and_side():
    tile = _tile()
    for o in Orientation:
        for side in Side:
            assert side_marking(tile, o, side) is tile.markings[(side + o) % 4]


def test_rotating_through_all_orientations_visits_each_marking_once():
    tile = _tile()
    for side in Side:
        seen = []
        o = Orientation.A
        for _ in range(4):
            seen.append(side_marking(tile, o, side))
            o = o.next()
        assert o is Orientation.A
        assert sorted(m.value for m in seen) == sorted(m.value for m in tile.markings)


def test_oriented_markings_shifts_by_one_step():
    tile = _tile()
    a = oriented_markings(tile, Orientation.A)
    b = oriented_markings(tile, Orientation.B)
    assert a == tile.markings
    assert b == a[1:] + a[:1]


def test_side_marking_rejects_out_of_range_values():
    tile = _tile()
    with pytest.raises(InvariantViolation):
        side_marking(tile, 4, Side.TOP)
    with pytest.raises(InvariantViolation):
        side_marking(tile, Orientation.A, -1)
    with pytest.raises(InvariantViolation):
        side_marking(tile, "x", Side.TOP)


def test_edge_fits_uses_opposite_side():
    left = (Marking.NONE, Marking.CAKE_LEFT, Marking.NONE, Marking.NONE)
    right = (Marking.NONE, Marking.NONE, Marking.NONE, Marking.CAKE_RIGHT)
    assert edge_fits(left, Side.RIGHT, right)
    assert not edge_fits(left, Side.TOP, right)
    assert edge_fits(right, Side.LEFT, left)


def test_marking_and_orientation_parsing():
    assert Marking.parse("girl-top") is Marking.GIRL_TOP
    assert Marking.parse("LADY_BOTTOM") is Marking.LADY_BOTTOM
    assert Marking.parse("watering can left") is Marking.WATERING_CAN_LEFT
    with pytest.raises(ValueError):
        Marking.parse("dragon")
    assert Orientation.parse("c") is Orientation.C
    assert Orientation.parse(3) is Orientation.D
    assert Orientation.D.next() is Orientation.A
    with pytest.raises(ValueError):
        Orientation.parse(7)
