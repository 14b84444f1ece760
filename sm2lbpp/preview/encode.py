"""PNG encoding and Base64 transcoding of the preview image.

The thumbnail is embedded as a single comment line:

    ;thumbnail: data:image/png;base64,<payload>

encode_png() is the image-container boundary (Pillow). Its failures are split
into AllocationError and ImageEncodingError. The Base64 helpers stream the
payload in chunks whose size is a multiple of 3 bytes. Every chunk except the
last then encodes without padding, so the concatenated output equals a
one-shot encoding.
"""

import base64
import io
import logging
from typing import BinaryIO, Optional, Tuple

import numpy as np
from PIL import Image

from ..diagnostics import AllocationError, ImageEncodingError

logger = logging.getLogger(__name__)

THUMBNAIL_PREFIX = b";thumbnail: data:image/png;base64,"

# 48 KiB of input per chunk (multiple of 3)
BASE64_CHUNK = 3 * 16384


def encode_png(image: np.ndarray, size_px: Optional[Tuple[int, int]] = None) -> bytes:
    """Encode a top-down RGBA image as PNG.

    Parameters
    ----------
    image : np.ndarray
        RGBA uint8, shape (H, W, 4), row 0 = top
    size_px : Optional[Tuple[int, int]]
        Expected (width, height); checked if given

    Returns
    -------
    bytes
        PNG file content

    Raises
    ------
    AllocationError
        If encoding runs out of memory
    ImageEncodingError
        For any other encoder failure (bad buffer, codec error)
    """
    if image.ndim != 3 or image.shape[2] != 4 or image.dtype != np.uint8:
        raise ImageEncodingError(
            f"Expected RGBA uint8 image (H, W, 4), got {image.dtype} {image.shape}"
        )
    if size_px is not None and (image.shape[1], image.shape[0]) != tuple(size_px):
        raise ImageEncodingError(
            f"Image size {image.shape[1]}x{image.shape[0]} does not match {size_px[0]}x{size_px[1]}"
        )

    buf = io.BytesIO()
    try:
        Image.fromarray(image).save(buf, format="PNG")
    except MemoryError as e:
        raise AllocationError("Out of memory while encoding PNG") from e
    except (OSError, ValueError, TypeError) as e:
        raise ImageEncodingError(f"PNG encoding failed: {e}") from e

    data = buf.getvalue()
    logger.debug(f"Encoded {image.shape[1]}x{image.shape[0]} PNG, {len(data)} bytes")
    return data


def iter_base64(data: bytes, chunk_size: int = BASE64_CHUNK):
    """Yield the Base64 encoding of data in pieces.

    Raises
    ------
    ValueError
        If chunk_size is not a positive multiple of 3
    """
    if chunk_size <= 0 or chunk_size % 3:
        raise ValueError(f"chunk_size must be a positive multiple of 3, got {chunk_size}")
    view = memoryview(data)
    for offset in range(0, len(view), chunk_size):
        yield base64.b64encode(view[offset:offset + chunk_size])


def write_base64(f: BinaryIO, data: bytes, chunk_size: int = BASE64_CHUNK) -> int:
    """Stream the Base64 encoding of data into f.

    Returns
    -------
    int
        Number of bytes written
    """
    written = 0
    for piece in iter_base64(data, chunk_size):
        f.write(piece)
        written += len(piece)
    return written
