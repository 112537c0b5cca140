from __future__ import annotations

from pathlib import Path

import pytest

from dealsafe_client.orchestrator.watch import DropFolderShareSource, list_basenames_in_dir_by_ext


def test_existing_files_are_baseline(tmp_path: Path):
    (tmp_path / "old.jpg").write_bytes(b"x")
    source = DropFolderShareSource(str(tmp_path), clock=lambda: 1.0)
    assert source.scan_once() == []
    assert not source.has_event


def test_new_files_become_one_pending_event(tmp_path: Path):
    source = DropFolderShareSource(str(tmp_path), clock=lambda: 5.0)
    (tmp_path / "b.pdf").write_bytes(b"%PDF")
    (tmp_path / "a.jpg").write_bytes(b"x")
    (tmp_path / "ignored.docx").write_bytes(b"x")

    found = source.scan_once()

    assert [Path(p).name for p in found] == ["a.jpg", "b.pdf"]
    assert source.has_event
    assert [f.file_name for f in source.payload.files] == ["a.jpg", "b.pdf"]
    assert source.payload.captured_at == 5.0


def test_pending_event_is_redelivered_until_acknowledged(tmp_path: Path):
    source = DropFolderShareSource(str(tmp_path))
    (tmp_path / "a.jpg").write_bytes(b"x")
    source.scan_once()
    first = source.payload
    (tmp_path / "c.jpg").write_bytes(b"x")
    source.scan_once()
    assert source.payload is first

    source.acknowledge()
    source.scan_once()
    assert [f.file_name for f in source.payload.files] == ["c.jpg"]


def test_missing_directory_is_rejected(tmp_path: Path):
    with pytest.raises(NotADirectoryError):
        DropFolderShareSource(str(tmp_path / "missing"))


def test_listing_error_is_exposed_as_share_error(tmp_path: Path):
    watch = tmp_path / "inbox"
    watch.mkdir()
    source = DropFolderShareSource(str(watch))
    watch.rmdir()
    assert source.scan_once() == []
    assert source.error and "Failed to list directory" in source.error


def test_list_basenames_filters_extensions(tmp_path: Path):
    (tmp_path / "A.JPG").write_bytes(b"x")
    (tmp_path / "b.txt").write_bytes(b"x")
    (tmp_path / "sub").mkdir()
    assert list_basenames_in_dir_by_ext(str(tmp_path), ["jpg"]) == {"A.JPG"}


def test_dropped_files_are_uploaded_once(logged_in_flow, backend, tmp_path: Path):
    inbox = tmp_path / "inbox"
    inbox.mkdir()
    source = DropFolderShareSource(str(inbox), clock=lambda: 9.0)
    (inbox / "gift.pdf").write_bytes(b"%PDF-1.4")

    source.scan_once()
    assert logged_in_flow.handle_share(source)
    source.scan_once()
    assert not logged_in_flow.handle_share(source)

    assert [u["filename"] for u in backend.uploads] == ["gift.pdf"]
