"""Pairwise edge compatibility report for a catalog.

Before searching it is useful to know how many ways every tile can touch every
other tile.  A tile whose total is zero can never be placed next to anything
and the board has no solution.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from catalog import as_tiles
from models import Side, Tile
from solver.rules import compatible

log = logging.getLogger(__name__)


def edge_match_pairs(a: Tile, b: Tile) -> List[Tuple[Side, Side]]:
    """Every (side of ``a``, side of ``b``) whose canonical markings are compatible."""
    return [
        (Side(i), Side(j))
        for i in range(4)
        for j in range(4)
        if compatible(a.markings[i], b.markings[j])
    ]


def catalog_match_counts(catalog: Sequence[Tile]) -> Dict[int, int]:
    """Total compatible edge pairs of each tile against all the others, keyed by tile id."""
    tiles = as_tiles(catalog)
    totals: Dict[int, int] = {}
    pairs_checked = 0
    for a in tiles:
        occ = 0
        for b in tiles:
            if a is b:
                continue
            pairs_checked += 1
            matches = edge_match_pairs(a, b)
            for sa, sb in matches:
                log.debug("tile %d %s fits tile %d %s", a.id, sa.name, b.id, sb.name)
            occ += len(matches)
        totals[a.id] = occ
    log.info("pair analysis: %d ordered pairs, totals=%s", pairs_checked, totals)
    return totals


def dead_tiles(catalog: Sequence[Tile]) -> List[int]:
    return [tid for tid, total in catalog_match_counts(catalog).items() if total == 0]


__all__ = ["edge_match_pairs", "catalog_match_counts", "dead_tiles"]
