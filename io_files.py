"""Helpers for writing solver outputs to disk."""

from __future__ import annotations

import os
from typing import Iterable, Optional

from config import CFG
from models import Solution


def resolve_output_path(base_dir: str, configured_name: str, fallback: str) -> str:
    """Return the absolute path where an output artifact should be written."""

    name = (configured_name or "").strip() or fallback
    if os.path.isabs(name):
        return name
    return os.path.join(base_dir, name)


def write_solutions(solutions: Iterable[Solution], base_dir: str, *, reason: Optional[str] = None) -> str:
    """Write one line per arrangement, ``position:tile+orientation`` in position order."""

    path = resolve_output_path(base_dir, CFG.SOLUTIONS_OUT, "solutions.txt")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    count = 0
    with open(path, "w", encoding="utf-8") as f:
        for idx, solution in enumerate(solutions, start=1):
            cells = " ".join(
                f"{p.position}:{p.tile_id}{p.orientation.label}" for p in solution.placements
            )
            f.write(f"#{idx} {cells}\n")
            count += 1
        if not count:
            f.write(f"No solution{f' ({reason})' if reason else ''}\n")
    return path


def write_layout_view_html(boards_svg: str, legend_html: str, base_dir: str, *, title: str = "Board View") -> str:
    """Write the rendered boards/legend preview to the configured HTML file."""

    path = resolve_output_path(base_dir, CFG.LAYOUT_HTML, "layout_view.html")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as vf:
        vf.write(
            f"""<!doctype html>
<html><head><meta charset='utf-8'><title>{title}</title></head>
<body>
<h1>{title}</h1>
<section class='boards'>{boards_svg}</section>
<section class='legend'><h3>Legend</h3><ul>{legend_html}</ul></section>
</body></html>"""
        )
    return path


__all__ = ["resolve_output_path", "write_solutions", "write_layout_view_html"]
