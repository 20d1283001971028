"""
Utility functions for file system operations and string sanitization.

This module provides helper functions for:
- Sanitizing uploaded file names for safe filesystem usage
- Ensuring directory creation with proper error handling
- Picking a non-colliding destination for a stored file
"""

from __future__ import annotations

import re
from pathlib import Path

# Pattern to match characters that are not safe for filesystem paths
# Allows: alphanumeric characters, dots, underscores, and hyphens
SANITIZE_PATTERN = re.compile(r"[^a-zA-Z0-9._-]+")


def sanitize_filename(filename: str, fallback: str = "image") -> str:
    """
    Generate a filesystem-safe file name from an uploaded file name.

    Any directory part is dropped, unsafe characters are replaced with
    hyphens and the extension is lower-cased.

    Args:
        filename: The name the client sent with the upload
        fallback: Stem to use if sanitization leaves nothing

    Returns:
        A filesystem-safe file name

    Example:
        >>> sanitize_filename("../My Photo!.JPG")
        "My-Photo.jpg"
    """
    path = Path(filename.replace("\\", "/")).name
    stem, suffix = split_extension(path)
    safe_stem = SANITIZE_PATTERN.sub("-", stem.strip()).strip("-_.") or fallback
    safe_suffix = SANITIZE_PATTERN.sub("", suffix).lower()
    return f"{safe_stem}{safe_suffix}"


def ensure_directory(path: Path) -> Path:
    """
    Create a directory if it doesn't exist, including parent directories.

    Args:
        path: The directory path to create

    Returns:
        The same path object for chaining

    Raises:
        OSError: If directory creation fails due to permissions or other I/O errors
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def split_extension(filename: str) -> tuple[str, str]:
    """
    Split a filename into stem and extension components.

    Example:
        >>> split_extension("photo.jpeg")
        ("photo", ".jpeg")
    """
    path = Path(filename)
    return path.stem, path.suffix


def unique_destination(directory: Path, filename: str) -> Path:
    """
    Return ``directory / filename``, renamed with a numeric suffix if taken.

    Example:
        photo.jpg, photo_0.jpg, photo_1.jpg, ...
    """
    destination = directory / filename
    stem, suffix = split_extension(filename)
    counter = 0
    while destination.exists():
        destination = directory / f"{stem}_{counter}{suffix}"
        counter += 1
    return destination
