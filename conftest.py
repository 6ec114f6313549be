"""
Project-wide PyTest bootstrap.

Puts every `*/src` directory on sys.path so tests import the project's
packages without an editable install, and pins the engine to offline mode so
no test reaches for a real ArangoDB.
"""

from pathlib import Path
import os, sys

os.environ.setdefault("OFFLINE_MODE", "1")
os.environ.setdefault("ENVIRONMENT", "test")

ROOT = Path(__file__).parent.resolve()
_paths = (
    [str(ROOT)]
    + [str(p) for p in (ROOT / "packages").glob("*/src")]  # packages/*/src
    + [str(p) for p in (ROOT / "services").glob("*/src")]  # services/*/src
)
# Local paths take precedence over site-packages
for _p in reversed(_paths):
    if _p not in sys.path:
        sys.path.insert(0, _p)


def _try_import(pm, name: str):
    try:
        pm.import_plugin(name)
    except ModuleNotFoundError:
        pass


def pytest_configure(config):
    _try_import(config.pluginmanager, "pytest_asyncio")
