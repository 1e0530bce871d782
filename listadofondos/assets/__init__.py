from __future__ import annotations

from importlib.resources import files


def read_text(rel_path: str) -> str:
    """
    Read a packaged asset as text. Use posix-style relative paths from assets/ root.
    Example: read_text("config/default.yaml")
    """
    return files(__package__).joinpath(rel_path).read_text(encoding="utf-8")


def has_asset(rel_path: str) -> bool:
    return files(__package__).joinpath(rel_path).is_file()
