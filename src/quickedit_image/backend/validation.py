"""
Upload validation for image fields.

Checks, in order: file extension, file size, that the payload is an image,
and its resolution. An image above the maximum resolution is scaled down
rather than rejected; one below the minimum is rejected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from .entities import ImageFieldSettings
from .utils import split_extension

logger = logging.getLogger(__name__)


class ImageValidationError(ValueError):
    def __init__(self, errors: Sequence[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


@dataclass
class ProcessedImage:
    content: bytes
    width: int
    height: int
    format: str
    resized: bool = False


def parse_resolution(value: str) -> Optional[Tuple[int, int]]:
    """Parse ``"WIDTHxHEIGHT"``; empty or zero values mean "no limit"."""
    if not value:
        return None
    try:
        width, height = (int(part) for part in value.lower().split("x", 1))
    except ValueError:
        raise ValueError(f"Malformed resolution: {value!r}") from None
    if width <= 0 or height <= 0:
        return None
    return width, height


def _format_size(size: int) -> str:
    if size < 1024:
        return f"{size} bytes"
    if size < 1024 * 1024:
        return f"{size / 1024:.2f} KB"
    return f"{size / (1024 * 1024):.2f} MB"


def validate_image_upload(
    filename: str,
    content: bytes,
    settings: ImageFieldSettings,
    default_max_filesize: int,
    default_extensions: Sequence[str],
) -> ProcessedImage:
    """Validate an uploaded image against the field's settings.

    Raises:
        ImageValidationError: with every problem found, in check order
    """
    extensions = [ext.lower() for ext in (settings.file_extensions or default_extensions)]
    max_filesize = settings.max_filesize or default_max_filesize
    errors: List[str] = []

    _, suffix = split_extension(filename)
    if suffix.lstrip(".").lower() not in extensions:
        errors.append(f"Only files with the following extensions are allowed: {' '.join(extensions)}.")

    if max_filesize and len(content) > max_filesize:
        errors.append(
            f"The file is {_format_size(len(content))} exceeding the maximum file size of {_format_size(max_filesize)}."
        )

    if errors:
        raise ImageValidationError(errors)

    try:
        with Image.open(BytesIO(content)) as unchecked:
            unchecked.verify()
        image = Image.open(BytesIO(content))
        image.load()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        logger.info(f"Rejected {filename}: not an image ({exc})")
        raise ImageValidationError(
            [f"The image file is invalid or the image type is not allowed. Allowed types: {' '.join(extensions)}"]
        ) from exc

    image_format = image.format or "PNG"
    width, height = image.size

    minimum = parse_resolution(settings.min_resolution)
    if minimum and (width < minimum[0] or height < minimum[1]):
        raise ImageValidationError([
            f"The image is too small. The minimum dimensions are {minimum[0]}x{minimum[1]} pixels "
            f"and the image size is {width}x{height} pixels."
        ])

    maximum = parse_resolution(settings.max_resolution)
    if maximum and (width > maximum[0] or height > maximum[1]):
        image.thumbnail(maximum)
        buffer = BytesIO()
        image.save(buffer, format=image_format)
        logger.info(f"Resized {filename} from {width}x{height} to {image.width}x{image.height}")
        return ProcessedImage(buffer.getvalue(), image.width, image.height, image_format, resized=True)

    return ProcessedImage(content, width, height, image_format)
