"""
Unit tests for IngestionDriver.

Tests:
- Known hash: never moved, never deleted, store unchanged
- New hash: moved by extension table, exactly one store entry added
- Identical files in one batch: first by submission order wins
- Move failures leave the store unchanged
"""

import hashlib
from unittest.mock import patch

import pytest
import structlog

from mediasort.ingest import IngestionDriver
from mediasort.models import FileRecord, IngestReport


def _sha(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


@pytest.mark.asyncio
async def test_known_hash_is_left_in_place(session, library, write_file):
    content = b"already in the library"
    session.store.register(_sha(content), "/library/images/original.jpg")
    src = write_file(library["inbox"] / "copy.jpg", content)

    report = await IngestionDriver(session).run([src])

    assert src.read_bytes() == content
    assert list(library["images"].iterdir()) == []
    assert session.store.snapshot() == {_sha(content): "/library/images/original.jpg"}
    assert report.duplicates == 1
    assert report.moved == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name, root",
    [
        ("a.jpg", "images"),
        ("a.png", "images"),
        ("a.flac", "music"),
        ("a.mp3", "music"),
        ("a.mov", "videos"),
        ("a.mp4", "videos"),
        ("a.webm", "videos"),
        ("a.txt", "unknown"),
        ("a.JPG", "unknown"),
    ],
)
async def test_new_hash_is_moved_by_extension(session, library, write_file, name, root):
    content = f"content of {name}".encode()
    src = write_file(library["inbox"] / name, content)

    report = await IngestionDriver(session).run([src])

    dest = library[root] / name
    assert dest.read_bytes() == content
    assert not src.exists()
    assert session.store.snapshot() == {_sha(content): str(dest)}
    assert report.moved == 1


@pytest.mark.asyncio
async def test_identical_files_first_submitted_wins(session, library, write_file):
    content = b"same picture twice"
    a = write_file(library["inbox"] / "a.jpg", content)
    b = write_file(library["inbox"] / "b.jpg", content)

    with structlog.testing.capture_logs() as logs:
        report = await IngestionDriver(session).run([a, b])

    assert not a.exists()
    assert (library["images"] / "a.jpg").read_bytes() == content
    assert b.read_bytes() == content
    assert not (library["images"] / "b.jpg").exists()
    assert session.store.snapshot() == {_sha(content): str(library["images"] / "a.jpg")}
    assert report.moved == 1
    assert report.duplicates == 1

    duplicates = [entry for entry in logs if entry["event"] == "ingest_duplicate"]
    assert len(duplicates) == 1
    assert duplicates[0]["file_path"] == str(b)
    assert duplicates[0]["canonical"] == str(library["images"] / "a.jpg")


@pytest.mark.asyncio
async def test_unreadable_input_is_counted_and_skipped(session, library, write_file):
    good = write_file(library["inbox"] / "good.mp3", b"song")
    missing = library["inbox"] / "missing.mp3"

    report = await IngestionDriver(session).run([missing, good])

    assert report.received == 1
    assert report.moved == 1
    assert report.failed == 1
    assert len(session.store) == 1


@pytest.mark.asyncio
async def test_copy_failure_leaves_store_unchanged(session, library, write_file):
    content = b"will not copy"
    src = write_file(library["inbox"] / "clip.mp4", content)

    with patch("mediasort.mover.FileMover._copy", side_effect=OSError("I/O error")):
        report = await IngestionDriver(session).run([src])

    assert src.read_bytes() == content
    assert len(session.store) == 0
    assert report.failed == 1
    assert report.removal_failed == 0


@pytest.mark.asyncio
async def test_removal_failure_is_reported_distinctly(session, library, write_file):
    content = b"stuck in the inbox"
    src = write_file(library["inbox"] / "song.flac", content)

    with structlog.testing.capture_logs() as logs:
        with patch("mediasort.mover.os.unlink", side_effect=PermissionError("denied")):
            report = await IngestionDriver(session).run([src])

    assert src.exists()
    assert (library["music"] / "song.flac").read_bytes() == content
    assert len(session.store) == 0
    assert report.removal_failed == 1
    failed = [entry for entry in logs if entry["event"] == "ingest_move_failed"]
    assert failed[0]["status"] == "source_removal_failed"


@pytest.mark.asyncio
async def test_name_collision_registers_disambiguated_path(session, library, write_file):
    (library["images"] / "photo.jpg").write_bytes(b"older different photo")
    content = b"new photo, same name"
    src = write_file(library["inbox"] / "photo.jpg", content)

    await IngestionDriver(session).run([src])

    expected = library["images"] / f"photo_{_sha(content)[:12]}.jpg"
    assert expected.read_bytes() == content
    assert (library["images"] / "photo.jpg").read_bytes() == b"older different photo"
    assert session.store.get(_sha(content)) == str(expected)


@pytest.mark.asyncio
async def test_handle_single_record(session, library, write_file):
    content = b"direct"
    src = write_file(library["inbox"] / "x.png", content)
    report = IngestReport()

    await IngestionDriver(session).handle(
        FileRecord(path=src, content_hash=_sha(content)), report
    )

    assert report.received == 1
    assert report.moved_files == [(str(src), str(library["images"] / "x.png"))]
