# config.py
import os

# ======= Board =======
# 0 derives the side length from the catalog size.
GRID_SIZE = int(os.getenv("TM_GRID_SIZE", "0"))

# ======= Search caps =======
MAX_SOLUTIONS  = int(os.getenv("TM_MAX_SOLUTIONS", "0"))      # 0 = unlimited
TIME_LIMIT     = float(os.getenv("TM_TIME_LIMIT", "0"))       # seconds, 0 = none
NODE_LIMIT     = int(os.getenv("TM_NODE_LIMIT", "0"))         # 0 = none
FIND_FIRST     = int(os.getenv("TM_FIND_FIRST", "0")) != 0
PROGRESS_EVERY = int(os.getenv("TM_PROGRESS_EVERY", "5000"))  # nodes between progress pushes

# ======= CP-SAT cross-check =======
CROSS_CHECK     = int(os.getenv("TM_CROSS_CHECK", "0")) != 0
CP_SAT_SECONDS  = float(os.getenv("TM_CP_SAT_SECONDS", "30"))
WORKERS         = int(os.getenv("TM_WORKERS", "1"))
MAX_MEMORY_MB   = int(os.getenv("TM_MAX_MEMORY_MB", "1024"))

# ======= Inputs / outputs =======
CATALOG_FILE  = os.getenv("TM_CATALOG_FILE", "")
SOLUTIONS_OUT = os.getenv("TM_SOLUTIONS_OUT", "solutions.txt")
LAYOUT_HTML   = os.getenv("TM_LAYOUT_HTML", "layout_view.html")
MAX_RENDERED  = int(os.getenv("TM_MAX_RENDERED", "12"))       # boards drawn on the result page

class CFG:
    GRID_SIZE = GRID_SIZE

    MAX_SOLUTIONS  = MAX_SOLUTIONS
    TIME_LIMIT     = TIME_LIMIT
    NODE_LIMIT     = NODE_LIMIT
    FIND_FIRST     = FIND_FIRST
    PROGRESS_EVERY = PROGRESS_EVERY

    CROSS_CHECK    = CROSS_CHECK
    CP_SAT_SECONDS = CP_SAT_SECONDS
    WORKERS        = WORKERS
    MAX_MEMORY_MB  = MAX_MEMORY_MB

    CATALOG_FILE  = CATALOG_FILE
    SOLUTIONS_OUT = SOLUTIONS_OUT
    LAYOUT_HTML   = LAYOUT_HTML
    MAX_RENDERED  = MAX_RENDERED

__all__ = ["CFG"]
