"""
Monorepo import shim (dev only).

Loaded automatically by Python at startup *if* the repo root is on sys.path,
so `python -m planner_api` works from a checkout without an editable install.
"""
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent

src_roots = [ROOT] + list((ROOT / "packages").glob("*/src")) + list((ROOT / "services").glob("*/src"))

# Prepend deterministically (preserve order; avoid dups)
for p in map(str, src_roots):
    if p and p not in sys.path:
        sys.path.insert(0, p)
