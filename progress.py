"""Live run state for the web front end, plus the solver attempt log.

``PROGRESS`` is the single source of truth behind ``/progress``.  Every
setter takes ``PROGRESS_LOCK``, writes the whole dict atomically to a JSON
file so a second process (the CP-SAT child, another worker) can read the same
snapshot, and records phase/attempt transitions in ``logs/solver_attempts.log``.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

PROGRESS_LOCK = threading.Lock()

_ROOT = Path(__file__).resolve().parent


def _state_file_path() -> Path:
    configured = os.environ.get("PROGRESS_STATE_FILE")
    if configured:
        return Path(configured)
    return _ROOT / "logs" / "progress_state.json"


STATE_FILE = _state_file_path()
STATE_FILE_TMP = STATE_FILE.with_name(STATE_FILE.name + ".tmp")
_LAST_STATE_MTIME: float = 0.0


def _fresh_state(run_id: int = 0) -> Dict[str, Any]:
    return {
        "status": "Idle",          # Idle | Solving | Solved | Error
        "phase": "",               # setup | backtrack | cp_sat
        "attempt": "",             # e.g. "3 × 3 board, 9 tiles"
        "percent": 0.0,
        "nodes": 0,                # placements tried so far
        "solutions": 0,            # arrangements found so far
        "tile_count": 0,
        "elapsed_start": None,
        "elapsed": 0.0,
        "message": "",
        "done": False,
        "ok": None,
        "result_url": "",
        "run_id": run_id,
    }


PROGRESS: Dict[str, Any] = _fresh_state()

# Timing bookkeeping for the attempt log; never exposed through /progress.
_RUN: Dict[str, Any] = {
    "start": None,
    "phase": "",
    "phase_start": None,
    "attempt": "",
    "attempt_start": None,
}


# ------------------------------
# Attempt log
# ------------------------------

def _init_logger() -> logging.Logger:
    logger = logging.getLogger("solver.attempt_log")
    if logger.handlers:
        return logger
    log_path = _ROOT / "logs" / "solver_attempts.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        return logger
    handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger


ATTEMPT_LOGGER = _init_logger()


def _seconds(value: Optional[float]) -> Optional[str]:
    return None if value is None else f"{max(0.0, value):.2f}s"


def _since(start: Any, now: float) -> Optional[float]:
    return now - float(start) if isinstance(start, (int, float)) else None


def _emit(event: str, **fields: Any) -> None:
    if not ATTEMPT_LOGGER.handlers:
        return
    extras = " ".join(f"{k}={v}" for k, v in fields.items() if v not in (None, ""))
    if extras:
        ATTEMPT_LOGGER.info("%s | %s", event, extras)
    else:
        ATTEMPT_LOGGER.info("%s", event)


def log_attempt_detail(event: str, **fields: Any) -> None:
    """Write a free-form line tagged with the current phase and attempt."""
    with PROGRESS_LOCK:
        _emit(event, phase=_RUN["phase"], attempt=_RUN["attempt"], **fields)


def _close_attempt_locked(now: float, reason: str) -> None:
    if not _RUN["attempt"]:
        return
    _emit(
        "Attempt finished",
        phase=_RUN["phase"],
        attempt=_RUN["attempt"],
        duration=_seconds(_since(_RUN["attempt_start"], now)),
        reason=reason,
    )
    _RUN["attempt"] = ""
    _RUN["attempt_start"] = None


def _enter_phase_locked(phase: str) -> None:
    if phase == _RUN["phase"]:
        return
    now = time.time()
    _close_attempt_locked(now, "phase_change")
    if _RUN["phase"]:
        _emit("Phase finished", phase=_RUN["phase"], duration=_seconds(_since(_RUN["phase_start"], now)))
    _RUN["phase"] = phase
    _RUN["phase_start"] = now
    if phase:
        _emit("Phase started", phase=phase)


def _enter_attempt_locked(attempt: str) -> None:
    if attempt == _RUN["attempt"]:
        return
    now = time.time()
    _close_attempt_locked(now, "switch")
    _RUN["attempt"] = attempt
    _RUN["attempt_start"] = now if attempt else None
    if attempt:
        _emit("Attempt started", phase=_RUN["phase"], attempt=attempt)


# ------------------------------
# Persistence
# ------------------------------

def _persist_locked() -> None:
    global _LAST_STATE_MTIME
    try:
        STATE_FILE.parent.mkdir(parents=True, exist_ok=True)
        with STATE_FILE_TMP.open("w", encoding="utf-8") as fh:
            json.dump(PROGRESS, fh, ensure_ascii=False, separators=(",", ":"))
        STATE_FILE_TMP.replace(STATE_FILE)
        _LAST_STATE_MTIME = STATE_FILE.stat().st_mtime
    except (OSError, TypeError, ValueError):
        # progress is advisory; solving carries on without the file
        pass


def _load_persisted_locked(force: bool = False) -> None:
    global _LAST_STATE_MTIME
    try:
        mtime = STATE_FILE.stat().st_mtime
        if not force and mtime <= _LAST_STATE_MTIME:
            return
        with STATE_FILE.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError):
        return
    if isinstance(data, dict):
        PROGRESS.update({k: data[k] for k in PROGRESS if k in data})
        _LAST_STATE_MTIME = mtime


def _touch_elapsed_locked() -> None:
    t0 = PROGRESS.get("elapsed_start")
    if t0 is not None:
        PROGRESS["elapsed"] = time.time() - float(t0)


# ------------------------------
# Run lifecycle
# ------------------------------

def reset() -> None:
    """Start a new run: clear the state and bump ``run_id``."""
    with PROGRESS_LOCK:
        _close_attempt_locked(time.time(), "reset")
        try:
            run_id = int(PROGRESS.get("run_id", 0)) + 1
        except (TypeError, ValueError):
            run_id = 1
        PROGRESS.clear()
        PROGRESS.update(_fresh_state(run_id))
        _RUN.update(start=None, phase="", phase_start=None, attempt="", attempt_start=None)
        _emit("Progress reset", run=run_id)
        _persist_locked()


def start_timer() -> None:
    with PROGRESS_LOCK:
        now = time.time()
        PROGRESS["elapsed_start"] = now
        PROGRESS["elapsed"] = 0.0
        _RUN["start"] = now
        _emit("Run timer started", run=PROGRESS["run_id"])
        _persist_locked()


def set_done(ok: Any = None, *, reason: Any = None, message: Any = None) -> None:
    """Mark the run finished.

    With ``ok`` given the status becomes "Solved" or "Error"; without it an
    idle run is taken as solved.  ``message`` (or ``reason``) is kept for the UI.
    """
    text = message if message is not None else reason
    with PROGRESS_LOCK:
        now = time.time()
        _touch_elapsed_locked()
        if ok is not None:
            PROGRESS["ok"] = bool(ok)
            PROGRESS["status"] = "Solved" if ok else "Error"
        elif PROGRESS.get("status") in ("", "Idle", None):
            PROGRESS["ok"] = True
            PROGRESS["status"] = "Solved"
        if text is not None:
            PROGRESS["message"] = str(text)
        PROGRESS["percent"] = 100.0
        PROGRESS["done"] = True

        _close_attempt_locked(now, "run_complete")
        _emit(
            "Run finished",
            status=PROGRESS["status"],
            ok=PROGRESS["ok"],
            duration=_seconds(_since(_RUN["start"], now)),
            nodes=PROGRESS["nodes"],
            solutions=PROGRESS["solutions"],
            message=PROGRESS["message"],
        )
        _RUN.update(start=None, phase_start=None)
        _persist_locked()


# ------------------------------
# Setters (tolerant of junk input)
# ------------------------------

def _as_text(v: Any) -> str:
    return "" if v is None else str(v)


def _as_count(v: Any) -> int:
    try:
        return max(0, int(v))
    except (TypeError, ValueError):
        return 0


def _as_seconds(v: Any) -> float:
    try:
        return max(0.0, float(v))
    except (TypeError, ValueError):
        return 0.0


def _as_percent(v: Any) -> float:
    return min(100.0, _as_seconds(v))


def _store(key: str, value: Any, *, touch: bool = False, hook: Optional[Callable[[Any], None]] = None) -> None:
    with PROGRESS_LOCK:
        PROGRESS[key] = value
        if hook is not None:
            hook(value)
        if touch:
            _touch_elapsed_locked()
        _persist_locked()


def set_status(v: Any) -> None:
    _store("status", str(v))


def set_phase(v: Any) -> None:
    _store("phase", _as_text(v), hook=_enter_phase_locked)


def set_attempt(v: Any) -> None:
    _store("attempt", _as_text(v), hook=_enter_attempt_locked)


def set_progress_pct(pct: Any) -> None:
    _store("percent", _as_percent(pct), touch=True)


def set_tile_count(n: Any) -> None:
    _store("tile_count", _as_count(n))


def set_elapsed(seconds: Any) -> None:
    _store("elapsed", _as_seconds(seconds))


def set_message(msg: Any) -> None:
    _store("message", _as_text(msg))


def set_result_url(url: Any) -> None:
    _store("result_url", _as_text(url))


def set_search_counts(nodes: Any, solutions: Any) -> None:
    """Publish the engine's node and solution counters together."""
    with PROGRESS_LOCK:
        PROGRESS["nodes"] = _as_count(nodes)
        PROGRESS["solutions"] = _as_count(solutions)
        _touch_elapsed_locked()
        _persist_locked()


_UPDATERS: Dict[str, Callable[[Any], None]] = {
    "status": set_status,
    "phase": set_phase,
    "attempt": set_attempt,
    "percent": set_progress_pct,
    "tile_count": set_tile_count,
    "elapsed": set_elapsed,
    "message": set_message,
}


def update(**kw: Any) -> None:
    """Bulk update by keyword; unknown keys are ignored."""
    for k, v in kw.items():
        fn = _UPDATERS.get(k)
        if fn is not None:
            fn(v)
    if "nodes" in kw or "solutions" in kw:
        with PROGRESS_LOCK:
            nodes = kw.get("nodes", PROGRESS["nodes"])
            solutions = kw.get("solutions", PROGRESS["solutions"])
        set_search_counts(nodes, solutions)


# ------------------------------
# Snapshots for the UI
# ------------------------------

def _fmt_elapsed(seconds: float) -> str:
    total = int(max(0.0, float(seconds)))
    m, s = divmod(total, 60)
    h, m = divmod(m, 60)
    if h:
        return f"{h}h {m}m"
    if m:
        return f"{m}m {s}s"
    return f"{s}s"


def snapshot() -> Dict[str, Any]:
    with PROGRESS_LOCK:
        _load_persisted_locked()
        _touch_elapsed_locked()
        snap = {k: v for k, v in PROGRESS.items() if k != "elapsed_start"}
    snap["elapsed_str"] = _fmt_elapsed(snap["elapsed"])
    return snap


def as_json() -> Dict[str, Any]:
    # what /progress serves
    return snapshot()


with PROGRESS_LOCK:
    _load_persisted_locked(force=True)
