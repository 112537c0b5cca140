"""Turn camera, library, document and share-intent assets into Attachments."""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from ..domain.models import Attachment, PickedAsset, SharedFile
from ..logging import get_logger
from ..paths import is_remote_uri, uri_basename, uri_to_path

LOG = get_logger("orchestrator-normalize")

JPEG_QUALITY = 80
JPEG_MIME = "image/jpeg"
FALLBACK_MIME = "application/octet-stream"

EXTENSION_MIME: Dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "heic": "image/heic",
    "pdf": "application/pdf",
    "txt": "text/plain",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
}


def resolve_mime_type(declared: Optional[str], filename: str) -> str:
    """Declared MIME type, else the extension table, else octet-stream.

    Generic values such as "image" or "video" (no "/") count as undeclared.
    """
    if declared and "/" in declared:
        return declared
    ext = os.path.splitext(filename or "")[1].lower().lstrip(".")
    return EXTENSION_MIME.get(ext, FALLBACK_MIME)


def _jpeg_name(name: str) -> str:
    stem, _ = os.path.splitext(name)
    return f"{stem or 'image'}.jpg"


@dataclass
class Converted:
    uri: str
    name: str


@dataclass
class Unconverted:
    uri: str
    name: str
    reason: str


ConversionResult = Union[Converted, Unconverted]


class AttachmentNormalizer:
    """Builds Attachments with consistent naming, typing and JPEG re-encoding.

    Re-encoding never drops an item: when Pillow cannot read or write the
    image the original URI and name are kept.
    """

    def __init__(self, output_dir: str, *, quality: int = JPEG_QUALITY) -> None:
        self.output_dir = os.path.abspath(output_dir)
        self.quality = int(quality)

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex

    def convert_to_jpeg(self, uri: str, name: str) -> ConversionResult:
        if is_remote_uri(uri):
            return Unconverted(uri=uri, name=name, reason="remote URI")
        src = uri_to_path(uri)
        LOG.debug(f"Converting image to JPEG: {src}")
        try:
            os.makedirs(self.output_dir, exist_ok=True)
            dest = os.path.join(self.output_dir, f"{uuid.uuid4().hex}_{_jpeg_name(os.path.basename(name))}")
            with Image.open(src) as im:
                im = ImageOps.exif_transpose(im)
                if im.mode not in ("RGB", "L"):
                    im = im.convert("RGB")
                im.save(dest, format="JPEG", quality=self.quality)
        except (OSError, UnidentifiedImageError, ValueError, Image.DecompressionBombError) as exc:
            LOG.warning(f"Failed to convert image {src!r}; uploading original: {exc}")
            return Unconverted(uri=uri, name=name, reason=str(exc))
        LOG.info(f"Image converted: {os.path.basename(src)} -> {os.path.basename(dest)}")
        return Converted(uri=dest, name=_jpeg_name(name))

    def _from_image(self, uri: str, name: str, declared: Optional[str]) -> Attachment:
        result = self.convert_to_jpeg(uri, name)
        if isinstance(result, Converted):
            return Attachment(id=self._new_id(), name=result.name, uri=result.uri, type=JPEG_MIME)
        return Attachment(
            id=self._new_id(),
            name=result.name,
            uri=result.uri,
            type=resolve_mime_type(declared, result.name),
        )

    def _is_image(self, kind: Optional[str], declared: Optional[str], name: str) -> bool:
        if kind:
            return kind == "image"
        return resolve_mime_type(declared, name).startswith("image/")

    def _normalize(self, uri: str, name: str, declared: Optional[str], kind: Optional[str]) -> Attachment:
        if self._is_image(kind, declared, name):
            return self._from_image(uri, name, declared)
        return Attachment(id=self._new_id(), name=name, uri=uri, type=resolve_mime_type(declared, name))

    def from_camera(self, assets: Iterable[PickedAsset]) -> List[Attachment]:
        out: List[Attachment] = []
        for asset in assets:
            name = asset.file_name or uri_basename(asset.uri) or "photo.jpg"
            out.append(self._from_image(asset.uri, name, asset.mime_type))
        return out

    def from_library(self, assets: Iterable[PickedAsset]) -> List[Attachment]:
        out: List[Attachment] = []
        for asset in assets:
            name = asset.file_name or uri_basename(asset.uri) or "unnamed"
            out.append(self._normalize(asset.uri, name, asset.mime_type, asset.kind))
        return out

    def from_documents(self, assets: Iterable[PickedAsset]) -> List[Attachment]:
        out: List[Attachment] = []
        for asset in assets:
            name = asset.file_name or uri_basename(asset.uri) or "unnamed"
            out.append(self._normalize(asset.uri, name, asset.mime_type, asset.kind))
        return out

    def from_share_files(self, files: Iterable[SharedFile]) -> List[Attachment]:
        out: List[Attachment] = []
        for index, f in enumerate(files):
            uri = f.location()
            name = f.file_name or f.name or uri_basename(uri) or f"shared-file-{index}"
            out.append(self._normalize(uri, name, f.mime_type or f.type, None))
        return out
