"""
Validation for user-supplied output paths (screenshots).
"""

import os
import tempfile
from pathlib import Path

from browser_tools.errors import InvalidPathError


def validate_file_path(
    path: str,
    *,
    allow_absolute: bool = True,
    base_dir: str | Path | None = None,
) -> Path:
    """Validate a user-supplied file path.

    Rejects empty paths, NUL bytes and ``..`` components. When ``base_dir`` is
    given the resolved path must stay inside it.

    Args:
        path: Raw path from the command line
        allow_absolute: Whether absolute paths are accepted
        base_dir: Optional directory the path must not escape

    Returns:
        The path, resolved against base_dir when one is given

    Raises:
        InvalidPathError: If the path fails any check
    """
    if not path or not path.strip():
        raise InvalidPathError(path, "path is empty")
    if "\x00" in path:
        raise InvalidPathError(path, "path contains a NUL byte")

    candidate = Path(path).expanduser()
    if ".." in candidate.parts:
        raise InvalidPathError(path, "path traversal is not allowed")
    if candidate.is_absolute() and not allow_absolute:
        raise InvalidPathError(path, "absolute paths are not allowed")

    if base_dir is not None:
        base = Path(base_dir).resolve()
        resolved = (base / candidate).resolve()
        if not resolved.is_relative_to(base):
            raise InvalidPathError(path, f"path escapes {base}")
        return resolved

    return candidate


def validate_screenshot_path(path: str | None) -> Path:
    """Resolve where a screenshot is written.

    ``None`` or an empty path selects a fresh ``screenshot-*.png`` in the
    system temp directory. Any other path is validated and gets a ``.png``
    extension.
    """
    if not path:
        fd, name = tempfile.mkstemp(prefix="screenshot-", suffix=".png")
        os.close(fd)
        Path(name).chmod(0o644)
        return Path(name)

    target = validate_file_path(path)
    if target.suffix.lower() != ".png":
        target = target.with_suffix(".png")
    return target
