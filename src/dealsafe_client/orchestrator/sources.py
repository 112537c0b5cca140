"""Camera, photo-library and document picker seams."""

from __future__ import annotations

import os
from typing import Iterable, List, Optional, Protocol

from ..domain.models import PermissionResult, PickedAsset
from ..paths import expand_abs
from .normalize import resolve_mime_type


class MediaPicker(Protocol):
    def request_permission(self) -> PermissionResult: ...

    def pick(self) -> Optional[List[PickedAsset]]:
        """Return picked assets, or None when the user canceled."""
        ...


def guess_kind(name: str) -> Optional[str]:
    mime = resolve_mime_type(None, name)
    if mime.startswith("image/"):
        return "image"
    if mime.startswith("video/"):
        return "video"
    return None


class LocalFilePicker:
    """Picker over an explicit list of local files (used by the CLI)."""

    def __init__(self, paths: Iterable[str]) -> None:
        self.paths = [expand_abs(p) for p in paths]

    def request_permission(self) -> PermissionResult:
        return PermissionResult(granted=True)

    def pick(self) -> Optional[List[PickedAsset]]:
        if not self.paths:
            return None
        assets: List[PickedAsset] = []
        for path in self.paths:
            name = os.path.basename(path)
            size = os.path.getsize(path) if os.path.isfile(path) else None
            assets.append(PickedAsset(uri=path, file_name=name, kind=guess_kind(name), size=size))
        return assets
