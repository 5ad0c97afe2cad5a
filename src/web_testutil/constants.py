"""Global constants."""

import pathlib


def _find_project_root() -> pathlib.Path:
    """Find the project root (directory containing web-testutil.yaml, pyproject.toml or .git).

    Search order:
      1. Walk up from cwd
      2. Walk up from the package source directory (editable install)
    Fallback: cwd
    """
    markers = ("web-testutil.yaml", "pyproject.toml", ".git")

    def _search(start: pathlib.Path) -> pathlib.Path | None:
        for d in [start, *start.parents]:
            if any((d / m).exists() for m in markers):
                return d
        return None

    found = _search(pathlib.Path.cwd())
    if found:
        return found

    pkg_dir = pathlib.Path(__file__).resolve().parent  # src/web_testutil/
    found = _search(pkg_dir)
    if found:
        return found

    return pathlib.Path.cwd()


PROJECT_ROOT = _find_project_root()

DEFAULT_TIMEOUT_MS = 1000
DEFAULT_INTERVAL_MS = 50
DEFAULT_BASE_SEGMENT = "base"
DEFAULT_LOG_TAIL = 20
CONFIG_FILE = str(PROJECT_ROOT / "web-testutil.yaml")
