# catalog.py: built-in tile set plus tolerant request/file parsing
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from models import ConfigurationError, Marking, Tile

M = Marking

# The nine tiles of the 3×3 box, canonical TOP, RIGHT, BOTTOM, LEFT as printed.
DEFAULT_CATALOG: Tuple[Tile, ...] = (
    Tile(1, (M.GIRL_TOP, M.LADY_TOP, M.WATERING_CAN_RIGHT, M.WATERING_CAN_RIGHT)),
    Tile(2, (M.CAKE_LEFT, M.GIRL_TOP, M.LADY_TOP, M.WATERING_CAN_RIGHT)),
    Tile(3, (M.GIRL_TOP, M.LADY_TOP, M.LADY_BOTTOM, M.CAKE_LEFT)),
    Tile(4, (M.GIRL_TOP, M.GIRL_BOTTOM, M.CAKE_RIGHT, M.WATERING_CAN_LEFT)),
    Tile(5, (M.WATERING_CAN_MIRRORED, M.LADY_TOP, M.CAKE_RIGHT, M.CAKE_RIGHT)),
    Tile(6, (M.GIRL_BOTTOM, M.LADY_TOP, M.CAKE_LEFT, M.WATERING_CAN_LEFT)),
    Tile(7, (M.GIRL_BOTTOM, M.GIRL_BOTTOM, M.WATERING_CAN_RIGHT, M.CAKE_LEFT)),
    Tile(8, (M.LADY_BOTTOM, M.CAKE_LEFT, M.GIRL_BOTTOM, M.LADY_BOTTOM)),
    Tile(9, (M.WATERING_CAN_LEFT, M.GIRL_TOP, M.CAKE_RIGHT, M.LADY_BOTTOM)),
)

_SIDE_KEYS = ("top", "right", "bottom", "left")


def _to_int(x: Any) -> Optional[int]:
    try:
        return int(float(x))
    except (TypeError, ValueError):
        return None


def _as_listish(val: Any) -> List[Any]:
    if val is None:
        return []
    if isinstance(val, (list, tuple)):
        return list(val)
    return [val]


def _getlist(container: Any, key: str) -> List[Any]:
    if container is None:
        return []
    # MultiDict is a dict too; ask it for every value first
    if hasattr(container, "getlist"):
        return list(container.getlist(key))
    if isinstance(container, dict) and key in container:
        return _as_listish(container[key])
    return []


def as_tile(obj: Any, default_id: int) -> Tile:
    """Coerce ``obj`` into a :class:`Tile`.

    Accepts a Tile, a mapping with ``markings`` (or top/right/bottom/left keys)
    and an optional ``id``, an ``(id, markings)`` pair, or a bare sequence of
    four markings (which takes ``default_id``).
    """
    if isinstance(obj, Tile):
        return obj
    if isinstance(obj, dict):
        raw_id = obj.get("id")
        if raw_id is None or str(raw_id).strip() == "":
            tid = default_id
        else:
            tid = _to_int(raw_id)
            if tid is None:
                raise ConfigurationError(f"Bad tile id: {raw_id!r}")
        if "markings" in obj:
            marks = _as_listish(obj["markings"])
        else:
            marks = [obj.get(k) for k in _SIDE_KEYS]
        return Tile(tid, tuple(marks))
    if isinstance(obj, (list, tuple)):
        if len(obj) == 2 and isinstance(obj[1], (list, tuple)):
            tid = _to_int(obj[0])
            if tid is None:
                raise ConfigurationError(f"Bad tile id: {obj[0]!r}")
            return Tile(tid, tuple(obj[1]))
        return Tile(default_id, tuple(obj))
    raise ConfigurationError(f"Not a tile-like value: {obj!r}")


def as_tiles(items: Iterable[Any]) -> List[Tile]:
    try:
        return [as_tile(item, idx + 1) for idx, item in enumerate(items)]
    except ValueError as e:
        raise ConfigurationError(f"Bad catalog: {e}")
    except TypeError:
        raise ConfigurationError("Bad catalog: not iterable (expected a list of tiles)")


def parse_catalog(form_like: Any) -> Tuple[List[Tile], Optional[str]]:
    """
    Return (tiles, error_message_or_None).
    Accepts a JSON ``tiles`` list (objects or 4-name lists) or parallel form
    arrays ``top[]/right[]/bottom[]/left[]``.  Never raises.
    """
    if not form_like:
        return [], "nothing parsed from request"

    # --- Shape 1: explicit JSON tiles list --------------------------------
    if isinstance(form_like, dict) and isinstance(form_like.get("tiles"), list):
        try:
            tiles = as_tiles(form_like["tiles"])
        except ConfigurationError as e:
            return [], str(e)
        if tiles:
            return tiles, None

    # --- Shape 2: parallel side arrays (form posts) -----------------------
    for suffix in ("[]", ""):
        columns = [_getlist(form_like, f"{k}{suffix}") for k in _SIDE_KEYS]
        if not all(columns):
            continue
        ids = _getlist(form_like, f"id{suffix}")
        rows = []
        for idx, marks in enumerate(zip(*columns)):
            if not any(str(m or "").strip() for m in marks):
                continue
            raw_id = ids[idx] if idx < len(ids) else None
            if raw_id is None or str(raw_id).strip() == "":
                raw_id = idx + 1
            rows.append({"id": raw_id, "markings": list(marks)})
        try:
            tiles = as_tiles(rows)
        except ConfigurationError as e:
            return [], str(e)
        if tiles:
            return tiles, None

    return [], "nothing parsed from request"


def load_catalog_file(path: str) -> List[Tile]:
    """Read a JSON catalog: either a list of tiles or ``{"tiles": [...]}``."""
    try:
        with Path(path).open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read catalog {path}: {e}")
    if isinstance(data, list):
        data = {"tiles": data}
    tiles, err = parse_catalog(data)
    if err:
        raise ConfigurationError(f"Bad catalog file {path}: {err}")
    return tiles


def catalog_to_dicts(tiles: Sequence[Tile]) -> List[Dict[str, Any]]:
    return [{"id": t.id, "markings": [m.value for m in t.markings]} for t in tiles]


__all__ = [
    "DEFAULT_CATALOG",
    "as_tile",
    "as_tiles",
    "parse_catalog",
    "load_catalog_file",
    "catalog_to_dicts",
]
