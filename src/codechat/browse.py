"""Directory listing used by the folder picker."""

from pathlib import Path

from .errors import NotFoundError, PermissionDeniedError, ValidationError


def list_directory(path: str | None = None) -> dict:
    """List the non-hidden subdirectories of ``path`` (home if empty).

    Returns ``{"path", "parent", "directories"}`` where ``parent`` is None
    at the filesystem root.
    """
    if path and "\x00" in path:
        raise ValidationError("Invalid path")

    target = Path(path).expanduser() if path else Path.home()
    try:
        target = target.resolve()
    except OSError as e:
        raise ValidationError(f"Invalid path: {e}") from e

    if not target.exists():
        raise NotFoundError(f"Directory not found: {target}")
    if not target.is_dir():
        raise ValidationError(f"Not a directory: {target}")

    try:
        directories = [
            entry.name
            for entry in target.iterdir()
            if not entry.name.startswith(".") and entry.is_dir()
        ]
    except PermissionError as e:
        raise PermissionDeniedError(f"Permission denied: {target}") from e

    directories.sort(key=str.lower)
    parent = target.parent if target.parent != target else None

    return {
        "path": str(target),
        "parent": str(parent) if parent else None,
        "directories": directories,
    }
