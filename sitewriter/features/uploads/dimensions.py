from io import BytesIO
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from sitewriter.core.errors import ValidationError


def image_dimensions(data: bytes) -> Tuple[int, int]:
    """Width and height of an encoded image, without decoding the pixels."""
    try:
        with Image.open(BytesIO(data)) as img:
            return img.size
    except (UnidentifiedImageError, OSError) as exc:
        raise ValidationError("Could not read image dimensions", details={"field": "file"}) from exc


def ratio_and_orientation(width: int, height: int) -> Tuple[float, str]:
    if width <= 0 or height <= 0:
        raise ValidationError("Image has no area", details={"field": "file"})
    ratio = width / height
    if ratio > 1:
        return ratio, "landscape"
    if ratio < 1:
        return ratio, "portrait"
    return ratio, "square"


def derive_ratio(data: bytes) -> Tuple[float, str]:
    return ratio_and_orientation(*image_dimensions(data))
