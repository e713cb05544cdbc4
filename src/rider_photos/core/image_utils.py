"""Pure helpers for keys, filenames and thumbnail geometry."""

import re
import secrets
import time
from typing import Tuple
from urllib.parse import unquote_plus

# Sanity ceiling on reported dimensions before any scaling math.
DIMENSION_SANITY_CEILING = 10000

MAX_KEY_LENGTH = 1024
# No "+" or ",": keys whose spaces arrive "+"-encoded are rejected before decoding.
KEY_PATTERN = re.compile(r"[A-Za-z0-9!_.*'()\-/]+")
PATH_TRAVERSAL_TOKEN = ".."
# Same alphabet Rekognition accepts for ExternalImageId.
USER_ID_PATTERN = re.compile(r"[A-Za-z0-9_.\-:]+")


def decode_source_key(raw_key: str) -> str:
    """
    Decode an S3 key as delivered in S3 event notifications.

    Object keys may contain spaces or non-ASCII characters; notifications
    encode spaces as ``+`` and everything else with percent escapes.
    """
    return unquote_plus(raw_key)


def clamp_dimensions(width: int, height: int) -> Tuple[int, int]:
    """Bound reported dimensions by DIMENSION_SANITY_CEILING."""
    return min(width, DIMENSION_SANITY_CEILING), min(height, DIMENSION_SANITY_CEILING)


def compute_target_size(
    width: int, height: int, max_width: int, max_height: int
) -> Tuple[int, int]:
    """
    Calculate the thumbnail size for an image.

    The smallest of the width ratio, the height ratio and 1 is applied to both
    dimensions, so the result fits both bounds, keeps the aspect ratio and is
    never larger than the source.

    Args:
        width: Source width in pixels
        height: Source height in pixels
        max_width: Upper bound on the output width
        max_height: Upper bound on the output height

    Returns:
        (width, height) rounded to the nearest integer
    """
    width, height = clamp_dimensions(width, height)

    scale = min(max_width / width, max_height / height, 1)

    return _round_half_up(scale * width), _round_half_up(scale * height)


def _round_half_up(value: float) -> int:
    # Halves round up: 12.5 -> 13. Never below one pixel.
    return max(1, int(value + 0.5))


def needs_resize(source: Tuple[int, int], target: Tuple[int, int]) -> bool:
    """True when either target dimension is strictly smaller than the source."""
    return target[0] < source[0] or target[1] < source[1]


def file_extension(key: str) -> str:
    """Lower-cased text after the last ``.`` of ``key``; the whole key when there is none."""
    return key.rsplit(".", 1)[-1].lower()


def generate_secure_filename(original_key: str) -> str:
    """
    Generate a destination filename unrelated to the uploaded name.

    Format: ``{epoch milliseconds}-{16 hex chars}.{extension}``, the hex part
    drawn from the OS CSPRNG.
    """
    timestamp = time.time_ns() // 1_000_000
    random_part = secrets.token_hex(8)
    return f"{timestamp}-{random_part}.{file_extension(original_key)}"
