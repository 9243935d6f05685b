"""
localcontent/images.py -- Image derivatives.

The asset store depends on the small ``ImageProcessor`` protocol below and
never on Pillow directly; a store built without a processor simply serves
originals.  ``PillowImageProcessor`` is the stock implementation.

Resizing follows the usual ``fit`` modes of image CDNs:

    cover     scale to fill the box, crop the overflow at ``position``
    contain   scale to fit inside the box, pad with ``background``
    fill      stretch to exactly the box, ignoring aspect ratio
    inside    scale to fit inside the box, no padding
    outside   scale to cover the box, no cropping

When only one of width/height is given the other follows the aspect
ratio.  ``without_enlargement`` / ``without_reduction`` skip a resize that
would grow / shrink the image.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Literal, Optional, Protocol, Union

from PIL import Image, ImageColor, ImageOps
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

ImageFormat = Literal["avif", "webp", "jpeg", "png"]
FitMode = Literal["contain", "cover", "fill", "inside", "outside"]

FORMAT_CONTENT_TYPES = {
    "avif": "image/avif",
    "webp": "image/webp",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
}

_PIL_FORMATS = {"avif": "AVIF", "webp": "WEBP", "jpeg": "JPEG", "png": "PNG"}

# Numeric gravity constants: centre, north, east, south, west, NE, SE, SW, NW
_GRAVITY = {
    0: (0.5, 0.5), 1: (0.5, 0.0), 2: (1.0, 0.5), 3: (0.5, 1.0), 4: (0.0, 0.5),
    5: (1.0, 0.0), 6: (1.0, 1.0), 7: (0.0, 1.0), 8: (0.0, 0.0),
}


class AssetTransformOptions(BaseModel):
    """Derivative options accepted by ``AssetStore.get_asset``.

    Field names are snake_case; camelCase aliases (``withoutEnlargement``)
    are accepted too.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)
    format: Optional[ImageFormat] = None
    quality: Optional[int] = Field(default=None, ge=1, le=100)
    fit: Optional[FitMode] = None
    position: Optional[Union[int, str]] = None
    background: Optional[str] = None
    without_enlargement: Optional[bool] = None
    without_reduction: Optional[bool] = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


@dataclass(frozen=True)
class ProcessedImage:
    data: bytes
    width: int
    height: int
    content_type: str | None


class ImageProcessor(Protocol):
    def metadata(self, data: bytes) -> tuple[int, int]:
        """Return ``(width, height)`` of the encoded image."""

    def transform(self, data: bytes, options: AssetTransformOptions) -> ProcessedImage:
        """Resize / re-encode the image according to *options*."""


# ---------------------------------------------------------------------------
# Geometry helpers
# ---------------------------------------------------------------------------

def parse_position(position) -> tuple[float, float]:
    """Map a position (keyword string or gravity number) to centering fractions."""
    if position is None:
        return (0.5, 0.5)
    if isinstance(position, int) and not isinstance(position, bool):
        return _GRAVITY.get(position, (0.5, 0.5))
    text = str(position).lower().replace("-", " ")
    x, y = 0.5, 0.5
    if "top" in text or "north" in text:
        y = 0.0
    elif "bottom" in text or "south" in text:
        y = 1.0
    if "left" in text or "west" in text:
        x = 0.0
    elif "right" in text or "east" in text:
        x = 1.0
    return (x, y)


def target_size(
    source: tuple[int, int],
    width: int | None,
    height: int | None,
    fit: str,
) -> tuple[int, int]:
    """Return the size the image is scaled to before any crop or pad."""
    src_w, src_h = source
    if width and not height:
        return width, max(1, round(src_h * width / src_w))
    if height and not width:
        return max(1, round(src_w * height / src_h)), height
    if fit == "fill":
        return width, height
    if fit in ("contain", "inside"):
        scale = min(width / src_w, height / src_h)
    else:
        scale = max(width / src_w, height / src_h)
    return max(1, round(src_w * scale)), max(1, round(src_h * scale))


# ---------------------------------------------------------------------------
# Pillow implementation
# ---------------------------------------------------------------------------

class PillowImageProcessor:
    """ImageProcessor backed by Pillow."""

    resample = Image.Resampling.LANCZOS

    def metadata(self, data: bytes) -> tuple[int, int]:
        with Image.open(io.BytesIO(data)) as img:
            return img.size

    def transform(self, data: bytes, options: AssetTransformOptions) -> ProcessedImage:
        with Image.open(io.BytesIO(data)) as source:
            source_format = (source.format or "PNG").upper()
            img = source.copy()

        if options.width or options.height:
            img = self._resize(img, options)

        out_format = _PIL_FORMATS[options.format] if options.format else source_format
        buffer = io.BytesIO()
        save_kwargs = {}
        if options.quality is not None and out_format in ("JPEG", "WEBP", "AVIF"):
            save_kwargs["quality"] = options.quality
        if out_format == "JPEG" and img.mode not in ("RGB", "L", "CMYK"):
            img = img.convert("RGB")
        img.save(buffer, format=out_format, **save_kwargs)

        return ProcessedImage(
            data=buffer.getvalue(),
            width=img.width,
            height=img.height,
            content_type=FORMAT_CONTENT_TYPES.get(out_format.lower()),
        )

    def _resize(self, img: Image.Image, options: AssetTransformOptions) -> Image.Image:
        fit = options.fit or "cover"
        width, height = options.width, options.height
        scaled = target_size(img.size, width, height, fit)

        grows = scaled[0] > img.width or scaled[1] > img.height
        shrinks = scaled[0] < img.width or scaled[1] < img.height
        if (options.without_enlargement and grows) or (options.without_reduction and shrinks):
            logger.debug("Skipping resize of %sx%s to %sx%s", img.width, img.height, *scaled)
            return img

        if not (width and height) or fit in ("fill", "inside", "outside"):
            return img.resize(scaled, self.resample)

        centering = parse_position(options.position)
        if fit == "cover":
            return ImageOps.fit(img, (width, height), self.resample, centering=centering)

        # contain
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA" if "A" in img.mode or img.mode == "P" else "RGB")
        return ImageOps.pad(
            img, (width, height), self.resample,
            color=self._background(options.background, img.mode),
            centering=centering,
        )

    @staticmethod
    def _background(background: str | None, mode: str):
        """Padding colour for *mode* ("RGB" or "RGBA"); opaque black by default."""
        color = ImageColor.getrgb(background) if background else (0, 0, 0)
        if mode == "RGBA":
            return color if len(color) == 4 else (*color, 255)
        return color[:3]
