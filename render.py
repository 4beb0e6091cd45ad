import random
from html import escape
from typing import Dict, Iterable, Tuple

from models import Marking, Side, Solution, Tile
from solver.rules import oriented_markings
from solver.topology import row_col

_SHORT = {
    Marking.GIRL_TOP: "G↑",
    Marking.GIRL_BOTTOM: "G↓",
    Marking.LADY_TOP: "L↑",
    Marking.LADY_BOTTOM: "L↓",
    Marking.WATERING_CAN_LEFT: "W←",
    Marking.WATERING_CAN_RIGHT: "W→",
    Marking.CAKE_LEFT: "C←",
    Marking.CAKE_RIGHT: "C→",
    Marking.WATERING_CAN_MIRRORED: "W×",
    Marking.NONE: "·",
}

def _color(name: str) -> str:
    rng = random.Random(name)
    r = rng.randint(40, 200)
    g = rng.randint(40, 200)
    b = rng.randint(40, 200)
    return f"rgb({r},{g},{b})"

def _motif(marking: Marking) -> str:
    # both halves of a pair share a colour
    return marking.name.rsplit("_", 1)[0]

def render_solution(solution: Solution, tiles: Iterable[Tile]) -> Tuple[str, str]:
    by_id: Dict[int, Tile] = {t.id: t for t in tiles}
    n = solution.grid_size
    scale = 120
    pad = 14
    svg_w = n * scale + 2
    svg_h = n * scale + 2

    palette: Dict[str, str] = {}
    cells = []
    for p in solution.placements:
        row, col = row_col(p.position, n)
        x = col * scale + 1
        y = row * scale + 1
        cx = x + scale // 2
        cy = y + scale // 2
        cells.append(
            f'<rect x="{x}" y="{y}" width="{scale}" height="{scale}" fill="#f7f3ea" stroke="black" stroke-width="1"/>'
            f'<text x="{cx}" y="{cy + 5}" font-size="16" text-anchor="middle" fill="black">{p.tile_id}{p.orientation.label}</text>'
        )
        tile = by_id.get(p.tile_id)
        if tile is None:
            continue
        faces = oriented_markings(tile, p.orientation)
        anchors = {
            Side.TOP: (cx, y + pad),
            Side.RIGHT: (x + scale - pad, cy + 4),
            Side.BOTTOM: (cx, y + scale - pad + 8),
            Side.LEFT: (x + pad, cy + 4),
        }
        for side, (tx, ty) in anchors.items():
            marking = faces[side]
            motif = _motif(marking)
            color = palette.setdefault(motif, _color(motif))
            cells.append(
                f'<text x="{tx}" y="{ty}" font-size="12" text-anchor="middle" fill="{color}">{escape(_SHORT[marking])}</text>'
            )

    frame = f'<rect x="1" y="1" width="{svg_w - 2}" height="{svg_h - 2}" fill="none" stroke="black" stroke-width="2"/>'
    svg = (
        f'<svg class="board-svg" xmlns="http://www.w3.org/2000/svg" '
        f'width="{svg_w}" height="{svg_h}" '
        f'viewBox="0 0 {svg_w} {svg_h}" preserveAspectRatio="xMinYMin meet">'
        f'{"".join(cells)}{frame}</svg>'
    )

    legend = "".join(
        f"<li><span class='swatch' style='background:{c}'></span>{escape(m.lower().replace('_', ' '))}</li>"
        for m, c in palette.items()
    )
    return svg, legend
