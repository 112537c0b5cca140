from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass
class Attachment:
    """Normalized, uploadable unit derived from any input source."""

    id: str
    name: str
    uri: str
    type: str


@dataclass
class UsageGuide:
    raw: str
    steps: List[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> Optional["UsageGuide"]:
        if not isinstance(data, dict):
            return None
        steps = data.get("steps")
        return cls(
            raw=str(data.get("raw") or ""),
            steps=[str(s) for s in steps] if isinstance(steps, list) else [],
        )


@dataclass
class Voucher:
    """Server-owned voucher record as returned by the analysis endpoints."""

    id: int
    file_url: str = ""
    file_type: str = ""
    original_filename: str = ""
    file_size: int = 0
    number_of_persons: Optional[int] = None
    redemption_method: Optional[str] = None
    redemption_value: Optional[str] = None
    description: Optional[str] = None
    expires_at: Optional[str] = None
    is_valid: bool = False
    rejection_reason: Optional[str] = None
    confidence_score: Optional[float] = None
    usage_guide: Optional[UsageGuide] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Voucher":
        return cls(
            id=int(data["id"]),
            file_url=str(data.get("file_url") or ""),
            file_type=str(data.get("file_type") or ""),
            original_filename=str(data.get("original_filename") or ""),
            file_size=int(data.get("file_size") or 0),
            number_of_persons=data.get("number_of_persons"),
            redemption_method=data.get("redemption_method"),
            redemption_value=data.get("redemption_value"),
            description=data.get("description"),
            expires_at=data.get("expires_at"),
            is_valid=bool(data.get("is_valid")),
            rejection_reason=data.get("rejection_reason"),
            confidence_score=data.get("confidence_score"),
            usage_guide=UsageGuide.from_json(data.get("usage_guide")),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )

    def title(self) -> str:
        """Return the description, or the uploaded filename when analysis gave none."""
        return self.description or self.original_filename

    def redemption_text(self) -> str:
        """Return "<METHOD>: <value>", "<METHOD>" or "N/A"."""
        method = (self.redemption_method or "").upper()
        if self.redemption_value:
            return f"{method}: {self.redemption_value}"
        return method or "N/A"


@dataclass
class UploadSuccess:
    voucher: Voucher


@dataclass
class UploadFailure:
    name: str
    message: str
    hint: str = ""


UploadOutcome = Union[UploadSuccess, UploadFailure]


@dataclass
class User:
    id: int
    phone_number: str
    created_at: str = ""

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=int(data["id"]),
            phone_number=str(data.get("phone_number") or ""),
            created_at=str(data.get("created_at") or ""),
        )

    def to_json(self) -> Dict[str, Any]:
        return {"id": self.id, "phone_number": self.phone_number, "created_at": self.created_at}


@dataclass
class Session:
    token: str
    user: User


@dataclass
class SharedFile:
    """File descriptor delivered by a share intent."""

    path: Optional[str] = None
    uri: Optional[str] = None
    file_name: Optional[str] = None
    name: Optional[str] = None
    mime_type: Optional[str] = None
    type: Optional[str] = None

    def location(self) -> str:
        return self.path or self.uri or ""


@dataclass
class ShareEvent:
    text: Optional[str] = None
    web_url: Optional[str] = None
    files: List[SharedFile] = field(default_factory=list)
    captured_at: float = 0.0

    def key(self) -> str:
        """Composite identity used only for deduplicating redeliveries."""
        paths: Tuple[str, ...] = tuple(f.location() for f in self.files)
        return json.dumps(
            {
                "text": self.text,
                "webUrl": self.web_url,
                "files": list(paths),
                "timestamp": self.captured_at,
            },
            sort_keys=True,
        )


@dataclass
class PickedAsset:
    """Raw asset handed over by the camera, photo library or document picker."""

    uri: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    kind: Optional[str] = None  # "image" | "video" | None
    size: Optional[int] = None
    asset_id: Optional[str] = None


@dataclass
class PermissionResult:
    granted: bool
    can_ask_again: bool = True
