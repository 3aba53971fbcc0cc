from __future__ import annotations

import base64
import io

from PIL import Image, ImageOps, UnidentifiedImageError

from ..core.constants import IMAGE_JPEG_QUALITY, IMAGE_MAX_EDGE
from ..core.exceptions import ValidationError

DATA_URL_PREFIX = "data:image/jpeg;base64,"


def compress_image(raw: bytes, *, max_edge: int = IMAGE_MAX_EDGE, quality: int = IMAGE_JPEG_QUALITY) -> str:
    """Downscale to ``max_edge`` on the longer side and re-encode as JPEG.

    Returns an inline ``data:`` URL, which is what records store.
    """

    if not raw:
        raise ValidationError("Empty image upload")
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError):
        raise ValidationError("Uploaded file is not a readable image")

    img = ImageOps.exif_transpose(img)
    if img.mode != "RGB":
        # JPEG has no alpha channel; flatten onto white.
        rgba = img.convert("RGBA")
        img = Image.new("RGB", rgba.size, (255, 255, 255))
        img.paste(rgba, mask=rgba.getchannel("A"))

    img.thumbnail((max_edge, max_edge), Image.Resampling.LANCZOS)

    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=int(quality), optimize=True)
    return DATA_URL_PREFIX + base64.b64encode(buf.getvalue()).decode("ascii")
