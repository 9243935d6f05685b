"""
localcontent/assets.py -- Binary asset storage with on-demand derivatives.

Assets are plain files in ``<content_dir>/assets/``.  Nothing about them is
persisted besides the bytes: the content type comes from the file
extension and image dimensions are read from the file when asked for.

Derivatives (resized / re-encoded images) are computed per request by the
optional image processor and never written back.  When the processor is
missing or fails, the original bytes are served and a warning is logged.

Usage:
    from localcontent.assets import AssetStore
    from localcontent.images import PillowImageProcessor

    assets = AssetStore(content_dir, image_processor=PillowImageProcessor())
    uploaded = assets.upload_asset(png_bytes, "logo.png")
    thumb = assets.get_asset(uploaded.filename, {"width": 200, "format": "webp"})
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import quote, urlencode

from localcontent.errors import InvalidIdentifierError
from localcontent.images import AssetTransformOptions, ImageProcessor
from localcontent.utils import is_safe_name, safe_unlink

logger = logging.getLogger(__name__)

ASSETS_DIRNAME = "assets"

CONTENT_TYPES = {
    # Images
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".svg": "image/svg+xml",
    # Videos
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    # Audio
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    # Documents
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    # Archives
    ".zip": "application/zip",
    ".rar": "application/x-rar-compressed",
    # Other
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
}


def content_type_for(filename: str) -> str | None:
    """Return the MIME type for *filename*'s extension, or None if unknown."""
    return CONTENT_TYPES.get(os.path.splitext(filename)[1].lower())


def asset_kind(content_type: str | None) -> str:
    """Classify a content type for display purposes."""
    if not content_type:
        return "unknown"
    if content_type.startswith("image/"):
        return "image"
    if content_type.startswith("video/"):
        return "video"
    if content_type.startswith("audio/"):
        return "audio"
    if content_type.startswith("text/"):
        return "text"
    if "javascript" in content_type or "json" in content_type:
        return "code"
    if "zip" in content_type or "compressed" in content_type:
        return "archive"
    return "other"


def format_file_size(size: int) -> str:
    """Format a byte count as ``"1.5 KB"``."""
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(units) - 1:
        value /= 1024
        unit += 1
    return f"{value:.1f} {units[unit]}"


def coerce_options(options: AssetTransformOptions | Mapping[str, Any] | None) -> AssetTransformOptions:
    if isinstance(options, AssetTransformOptions):
        return options
    return AssetTransformOptions.model_validate(dict(options or {}))


def asset_query(options: AssetTransformOptions | Mapping[str, Any] | None) -> str:
    """Return the URL query string describing a derivative (may be empty)."""
    params = coerce_options(options).model_dump(by_alias=True, exclude_none=True)
    for key, value in params.items():
        if isinstance(value, bool):
            params[key] = "true" if value else "false"
    return urlencode(params)


def make_asset_url(prefix: str, key: str, options=None) -> str:
    """Build the URL under which an HTTP layer serves *key*."""
    url = f"{prefix.rstrip('/')}/{quote(key)}"
    query = asset_query(options)
    return f"{url}?{query}" if query else url


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class UploadedAsset:
    filename: str
    path: str
    size: int
    content_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AssetData:
    data: bytes
    content_type: str | None = None
    width: int | None = None
    height: int | None = None


@dataclass
class Asset:
    name: str
    key: str
    size: int
    content_type: str | None = None
    width: int | None = None
    height: int | None = None

    @property
    def kind(self) -> str:
        return asset_kind(self.content_type)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# AssetStore
# ---------------------------------------------------------------------------

class AssetStore:
    """CRUD over the assets directory.

    Parameters
    ----------
    content_dir : str or pathlib.Path
    image_processor : ImageProcessor, optional
        Used for image dimensions and derivatives.  Without one, images are
        served untransformed and without dimensions.
    """

    def __init__(self, content_dir, image_processor: ImageProcessor | None = None):
        self.content_dir = Path(content_dir)
        self.assets_dir = self.content_dir / ASSETS_DIRNAME
        self.image_processor = image_processor

    def asset_path(self, filename: str) -> Path:
        return self.assets_dir / filename

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def upload_asset(self, data: bytes, filename: str, content_type: str | None = None) -> UploadedAsset:
        """Store *data* under *filename*, or a suffixed variant if taken.

        ``logo.png`` becomes ``logo-1.png``, ``logo-2.png``, ... until a
        free name is found.  The check and the write are separate steps,
        so two concurrent uploads of the same name may pick the same free
        name; the later write then replaces the earlier one.

        Raises
        ------
        InvalidIdentifierError
            If *filename* has no usable base name.
        """
        name = os.path.basename(str(filename).replace("\\", "/"))
        if not is_safe_name(name):
            raise InvalidIdentifierError(f"Invalid asset filename: {filename!r}")

        os.makedirs(self.assets_dir, exist_ok=True)
        final_name = self._unique_filename(name)
        path = self.asset_path(final_name)
        self._write_bytes(path, data)

        size = os.stat(path).st_size
        logger.debug("Stored asset %s (%d bytes)", final_name, size)
        return UploadedAsset(
            filename=final_name,
            path=str(path),
            size=size,
            content_type=content_type or content_type_for(name),
        )

    def _unique_filename(self, filename: str) -> str:
        base, ext = os.path.splitext(filename)
        candidate = filename
        counter = 1
        while self.asset_path(candidate).exists():
            candidate = f"{base}-{counter}{ext}"
            counter += 1
        return candidate

    @staticmethod
    def _write_bytes(path: Path, data: bytes) -> None:
        with open(path, "wb") as fh:
            fh.write(bytes(data))

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_asset(self, filename: str, options=None) -> AssetData | None:
        """Return an asset's bytes, transformed if options are given.

        Parameters
        ----------
        filename : str
        options : AssetTransformOptions or dict, optional
            Derivative options.  Only checked and applied for image content
            types; a missing file is None whatever the options.

        Returns
        -------
        AssetData or None
            None when the file does not exist.  ``width``/``height``
            describe the returned bytes.
        """
        if not is_safe_name(filename):
            return None
        try:
            data = self.asset_path(filename).read_bytes()
        except OSError:
            return None

        result = AssetData(data=data, content_type=content_type_for(filename))
        if not (result.content_type or "").startswith("image/"):
            return result
        options = coerce_options(options)

        if self.image_processor is None:
            if not options.is_empty():
                logger.warning("No image processor configured; serving %s untransformed", filename)
            return result

        try:
            result.width, result.height = self.image_processor.metadata(data)
        except Exception:
            logger.debug("Could not read image metadata for %s", filename, exc_info=True)

        if options.is_empty():
            return result

        try:
            processed = self.image_processor.transform(data, options)
        except Exception as exc:
            logger.warning("Could not transform %s, serving the original instead: %s", filename, exc)
            return result

        result.data = processed.data
        result.width, result.height = processed.width, processed.height
        if options.format and processed.content_type:
            result.content_type = processed.content_type
        return result

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_assets(
        self,
        search: str | None = None,
        limit: int | None = None,
        start_after: str | None = None,
    ) -> list[Asset]:
        """List stored assets in filename order.

        Parameters
        ----------
        search : str, optional
            Case-insensitive substring the filename must contain.
        limit : int, optional
            Maximum number of assets returned.  Zero or negative returns none.
        start_after : str, optional
            Resume after this filename.  Ignored if it is not in the list.
        """
        try:
            with os.scandir(self.assets_dir) as it:
                files = sorted(entry.name for entry in it if entry.is_file())
        except FileNotFoundError:
            return []

        if search:
            needle = search.lower()
            files = [f for f in files if needle in f.lower()]
        if start_after and start_after in files:
            files = files[files.index(start_after) + 1:]
        if limit is not None:
            files = files[:max(0, limit)]

        assets = []
        for filename in files:
            try:
                size = self.asset_path(filename).stat().st_size
            except OSError:
                # removed while listing
                continue
            asset = Asset(name=filename, key=filename, size=size, content_type=content_type_for(filename))
            if asset.kind == "image":
                asset.width, asset.height = self._dimensions(filename)
            assets.append(asset)
        return assets

    def _dimensions(self, filename: str) -> tuple[int | None, int | None]:
        if self.image_processor is None:
            return None, None
        try:
            return self.image_processor.metadata(self.asset_path(filename).read_bytes())
        except Exception:
            logger.debug("Could not read image metadata for %s", filename, exc_info=True)
            return None, None

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_asset(self, filename: str) -> bool:
        """Delete an asset.  Returns False if there was nothing to delete."""
        if not is_safe_name(filename):
            return False
        deleted = safe_unlink(self.asset_path(filename))
        if deleted:
            logger.debug("Deleted asset %s", filename)
        return deleted
