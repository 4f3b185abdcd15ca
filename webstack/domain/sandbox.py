"""Filesystem sandbox utilities for safe path resolution."""

from pathlib import Path


class ForbiddenPath(Exception):
    """Raised when a requested path escapes the configured sandbox."""


def resolve_sandbox_path(directory: str, user_path: str) -> Path:
    """Resolve a URL path inside ``directory``.

    An empty path (``/``) resolves to the root itself. Paths with ``..``
    segments or NUL bytes, and symlinks pointing outside the root, raise
    :class:`ForbiddenPath`.
    """
    if "\x00" in user_path:
        raise ForbiddenPath

    directory_root = Path(directory).resolve()
    relative_part = user_path.lstrip("/")
    if ".." in Path(relative_part).parts:
        raise ForbiddenPath

    target = (directory_root / relative_part).resolve()
    if not (target == directory_root or directory_root in target.parents):
        raise ForbiddenPath

    return target


def is_hidden(relative_path: str) -> bool:
    """Return True when any segment of the URL path is a dotfile."""
    return any(part.startswith(".") for part in relative_path.split("/") if part)
