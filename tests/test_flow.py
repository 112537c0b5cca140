from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from PIL import Image

from dealsafe_client.domain.models import PermissionResult, PickedAsset
from dealsafe_client.orchestrator.flow import FlowConfig, IngestFlow, build_flow_config
from dealsafe_client.orchestrator.sources import LocalFilePicker, guess_kind


class _Picker:
    def __init__(self, assets: Optional[List[PickedAsset]], permission: Optional[PermissionResult] = None) -> None:
        self.assets = assets
        self.permission = permission or PermissionResult(granted=True)
        self.picked = 0

    def request_permission(self) -> PermissionResult:
        return self.permission

    def pick(self) -> Optional[List[PickedAsset]]:
        self.picked += 1
        return self.assets


class _BrokenPicker(_Picker):
    def pick(self):
        raise RuntimeError("document provider crashed")


def _png(path: Path) -> Path:
    Image.new("RGB", (16, 16), (0, 128, 0)).save(path, format="PNG")
    return path


def test_start_restores_session_and_loads_vouchers(flow, backend, http_session, notifier, tmp_path):
    backend.add_voucher()
    flow.auth.verify_otp("12345678", backend.otp_code)

    fresh = IngestFlow(flow.config, notifier=notifier, http_session=http_session, sleep=lambda _: None)
    assert fresh.start()
    assert len(fresh.store.vouchers) == 1


def test_start_without_session(flow, backend):
    assert not flow.start()
    assert backend.calls == []


def test_camera_photo_is_uploaded_as_jpeg(logged_in_flow, backend, tmp_path):
    src = _png(tmp_path / "capture.png")
    report = logged_in_flow.take_photo(_Picker([PickedAsset(uri=str(src))]))

    assert len(report.successes) == 1
    assert backend.uploads[0]["filename"] == "capture.jpg"
    assert backend.uploads[0]["mimeType"] == "image/jpeg"
    assert b"\xff\xd8" in backend.uploads[0]["body"]


def test_camera_denied_with_settings_hint(logged_in_flow, notifier):
    camera = _Picker([], PermissionResult(granted=False, can_ask_again=False))
    assert logged_in_flow.take_photo(camera) is None
    assert camera.picked == 0
    assert notifier.errors[0][0] == "Camera Permission Required"


def test_camera_denied_can_ask_again(logged_in_flow, notifier):
    camera = _Picker([], PermissionResult(granted=False, can_ask_again=True))
    assert logged_in_flow.take_photo(camera) is None
    assert notifier.errors == [("Permission required", "Camera permission is required to take photos")]


def test_library_denied(logged_in_flow, notifier):
    library = _Picker([], PermissionResult(granted=False, can_ask_again=True))
    assert logged_in_flow.choose_photos(library) is None
    assert notifier.errors == [("Permission required", "Media library permission is required to choose photos")]


def test_library_multi_select_is_one_batch(logged_in_flow, backend, tmp_path):
    a = _png(tmp_path / "a.png")
    b = _png(tmp_path / "b.png")
    report = logged_in_flow.choose_photos(
        _Picker([PickedAsset(uri=str(a), kind="image"), PickedAsset(uri=str(b), kind="image")])
    )
    assert [v.original_filename for v in report.successes] == ["a.jpg", "b.jpg"]
    assert backend.paths().count("/api/vouchers") == 1


def test_canceled_picker_does_nothing(logged_in_flow, backend, sleeps):
    assert logged_in_flow.choose_photos(_Picker(None)) is None
    assert logged_in_flow.choose_files(_Picker([])) is None
    assert backend.calls == []
    assert sleeps == []


def test_documents_keep_their_type(logged_in_flow, backend, tmp_path):
    pdf = tmp_path / "voucher.pdf"
    pdf.write_bytes(b"%PDF-1.4")
    logged_in_flow.choose_files(_Picker([PickedAsset(uri=str(pdf), file_name="voucher.pdf", mime_type="application/pdf")]))
    assert backend.uploads[0]["mimeType"] == "application/pdf"
    assert b"%PDF-1.4" in backend.uploads[0]["body"]


def test_document_picker_error_is_reported(logged_in_flow, notifier):
    assert logged_in_flow.choose_files(_BrokenPicker([])) is None
    assert notifier.errors == [("File picker error", "document provider crashed")]


def test_sources_require_a_session(flow, notifier):
    picker = _Picker([PickedAsset(uri="/tmp/x.jpg")])
    assert flow.take_photo(picker) is None
    assert flow.choose_files(picker) is None
    assert picker.picked == 0
    assert notifier.errors == [("Not authenticated", "Please log in first")] * 2


def test_local_file_picker(tmp_path):
    f = tmp_path / "x.png"
    f.write_bytes(b"123")
    assets = LocalFilePicker([str(f)]).pick()
    assert assets[0].file_name == "x.png"
    assert assets[0].kind == "image"
    assert assets[0].size == 3
    assert LocalFilePicker([]).pick() is None
    assert guess_kind("clip.mov") == "video"
    assert guess_kind("menu.pdf") is None


def test_build_flow_config_prefers_arguments(tmp_path, monkeypatch):
    monkeypatch.setenv("DEALSAFE_API_URL", "https://env.example.com/")

    class Args:
        base_url = None
        timeout = 7
        insecure = True
        state_dir = str(tmp_path / "state")

    config = build_flow_config(Args(), script_dir=str(tmp_path))

    assert config == FlowConfig(
        base_url="https://env.example.com",
        timeout=7,
        insecure=True,
        state_dir=str(tmp_path / "state"),
    )
    assert Path(config.state_dir).is_dir()
    assert config.converted_dir == str(tmp_path / "state" / "converted")
