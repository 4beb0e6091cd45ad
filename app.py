"""Flask front end: edit a catalog, run the search, watch progress, download results."""
from __future__ import annotations
import os
import time
from typing import Any, Dict, List, Optional, Tuple

from flask import Flask, request, render_template, send_from_directory, jsonify, url_for

from solver.analysis import catalog_match_counts
from solver.orchestrator import solve_puzzle, default_catalog
from catalog import parse_catalog, catalog_to_dicts
from config import CFG
from io_files import resolve_output_path, write_solutions, write_layout_view_html
from render import render_solution
from models import PuzzleError

from progress import (
    reset as progress_reset,
    as_json as progress_json,
    start_timer as progress_start,
    update as progress_update,
    set_elapsed, set_done, set_result_url,
)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _solutions_path() -> str:
    return resolve_output_path(BASE_DIR, CFG.SOLUTIONS_OUT, "solutions.txt")


def _layout_path() -> str:
    return resolve_output_path(BASE_DIR, CFG.LAYOUT_HTML, "layout_view.html")


LAST_RESULT: Dict[str, Any] = {
    "ok": False,
    "reason": "",
    "mode": "all",
    "grid_size": 0,
    "count": 0,
    "shown": 0,
    "stats": {},
    "boards": [],
    "legend": "",
    "solutions": [],
    "cross_check": None,
    "elapsed_str": "0s",
    "solutions_filename": os.path.basename(_solutions_path()),
    "layout_filename": os.path.basename(_layout_path()),
}

app = Flask(__name__, static_folder=".", template_folder="templates")


@app.after_request
def _no_cache_progress(resp):
    if request.path == "/progress":
        resp.headers["Cache-Control"] = "no-store, max-age=0"
        resp.headers["Pragma"] = "no-cache"
        resp.headers["Expires"] = "0"
    return resp


@app.route("/")
def index():
    return render_template("index.html", tiles=catalog_to_dicts(default_catalog()))


@app.route("/result/latest")
def result_latest():
    return render_template("result.html", **LAST_RESULT)


def _merge_like_mapping() -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        merged.update(payload)

    for k, v in request.form.to_dict(flat=False).items():
        merged.setdefault(k, v if isinstance(v, list) else [v])

    for k, v in request.args.to_dict(flat=False).items():
        merged.setdefault(k, v if isinstance(v, list) else [v])

    return merged


def _first(like: Dict[str, Any], key: str) -> Any:
    val = like.get(key)
    if isinstance(val, (list, tuple)):
        return val[0] if val else None
    return val


def _opt_number(like: Dict[str, Any], key: str, cast) -> Optional[Any]:
    raw = _first(like, key)
    if raw in (None, ""):
        return None
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def _opt_flag(like: Dict[str, Any], key: str) -> Optional[bool]:
    raw = _first(like, key)
    if raw is None:
        return None
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


def _catalog_from_request(like: Dict[str, Any]) -> Tuple[Optional[List], Optional[str]]:
    """Catalog posted with the request, ``(None, None)`` when nothing was posted."""
    has_tiles = "tiles" in like or any(k.startswith(("top", "right", "bottom", "left")) for k in like)
    if not has_tiles:
        return None, None
    tiles, err = parse_catalog(like)
    if err:
        return None, f"Bad catalog: {err}"
    return tiles, None


def _render_boards(result: Dict[str, Any]) -> Tuple[List[str], str]:
    limit = max(0, int(getattr(CFG, "MAX_RENDERED", 12)))
    boards: List[str] = []
    legend = ""
    for solution in result.get("solutions", [])[:limit]:
        svg, legend = render_solution(solution, result.get("tiles") or [])
        boards.append(svg)
    return boards, legend


def _json_result(result: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "ok": result.get("ok", False),
        "mode": result.get("mode"),
        "reason": result.get("reason"),
        "grid_size": result.get("grid_size", 0),
        "count": result.get("count", 0),
        "stats": result.get("stats", {}),
        "solutions": [s.to_dict() for s in result.get("solutions", [])],
        "cross_check": result.get("cross_check"),
    }


@app.route("/solve", methods=["POST"])
def solve():
    progress_reset()
    progress_start()
    progress_update(status="Solving", phase="setup", attempt="Reading catalog", percent=0)

    t0 = time.time()
    like = _merge_like_mapping()
    tiles, err = _catalog_from_request(like)

    if err:
        result: Dict[str, Any] = {"ok": False, "reason": err, "solutions": [], "count": 0}
    else:
        try:
            result = solve_puzzle(
                tiles,
                mode=_first(like, "mode"),
                max_solutions=_opt_number(like, "max_solutions", int),
                time_limit=_opt_number(like, "time_limit", float),
                cross_check=_opt_flag(like, "cross_check"),
            )
        except (PuzzleError, OSError, RuntimeError) as e:
            result = {
                "ok": False,
                "reason": f"solver exception: {type(e).__name__}: {e}",
                "solutions": [],
                "count": 0,
            }

    reason_text = result.get("reason") or f"{result.get('count', 0)} arrangement(s) found"
    set_done(bool(result.get("ok")), reason=reason_text)
    set_elapsed(time.time() - t0)

    # every run replaces the result page and the downloads, whatever the response format
    boards, legend = _render_boards(result)
    write_solutions(result.get("solutions", []), BASE_DIR, reason=reason_text)
    write_layout_view_html("".join(boards), legend, BASE_DIR)

    LAST_RESULT.update({
        "ok": bool(result.get("ok")),
        "reason": reason_text,
        "mode": result.get("mode", "all"),
        "grid_size": result.get("grid_size", 0),
        "count": result.get("count", 0),
        "shown": len(boards),
        "stats": result.get("stats", {}),
        "boards": boards,
        "legend": legend,
        "solutions": [str(s) for s in result.get("solutions", [])],
        "cross_check": result.get("cross_check"),
        "elapsed_str": progress_json()["elapsed_str"],
        "solutions_filename": os.path.basename(_solutions_path()),
        "layout_filename": os.path.basename(_layout_path()),
    })
    set_result_url(url_for("result_latest"))

    if request.is_json:
        return jsonify(_json_result(result))
    return render_template("result.html", **LAST_RESULT)


@app.route("/analysis")
def analysis():
    tiles = default_catalog()
    return jsonify({
        "tiles": catalog_to_dicts(tiles),
        "match_counts": {str(k): v for k, v in catalog_match_counts(tiles).items()},
    })


@app.route("/download/solutions")
def download_solutions():
    path = _solutions_path()
    return send_from_directory(os.path.dirname(path), os.path.basename(path), as_attachment=True)


@app.route("/download/html")
def download_html():
    path = _layout_path()
    return send_from_directory(os.path.dirname(path), os.path.basename(path), as_attachment=True)


@app.route("/progress")
def progress():
    return jsonify(progress_json())


if __name__ == "__main__":
    app.run(debug=False)
