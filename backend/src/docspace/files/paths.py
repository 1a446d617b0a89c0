"""Virtual folder path helpers.

Folder paths always start and end with '/'. The root folder is '/'.
"""

import re
from typing import Optional, Tuple

_SLASHES = re.compile(r"/+")


def normalize_folder_path(path: Optional[str]) -> str:
    """
    Example:
        >>> normalize_folder_path("docs/reports")
        '/docs/reports/'
        >>> normalize_folder_path("")
        '/'
    """
    value = (path or "/").strip()
    value = _SLASHES.sub("/", f"/{value}/")
    return value


def sanitize_folder_name(name: str) -> str:
    return name.strip().replace("/", "-").replace("\\", "-")


def join_folder_path(parent_path: str, folder_name: str) -> str:
    return f"{normalize_folder_path(parent_path)}{folder_name}/"


def parent_of(folder_path: str) -> str:
    """Parent of a normalized folder path; the root is its own parent."""
    trimmed = normalize_folder_path(folder_path).rstrip("/")
    if not trimmed:
        return "/"
    return trimmed[: trimmed.rfind("/") + 1]


def split_file_path(path: str) -> Tuple[str, str]:
    """Split '/docs/a.txt' into ('/docs/', 'a.txt')."""
    value = "/" + path.strip().lstrip("/")
    folder, _, name = value.rpartition("/")
    return normalize_folder_path(folder), name
