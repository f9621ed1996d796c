"""
Shared pytest fixtures for mediasort tests.

Provides:
- library: category roots + store file under tmp_path
- media_config / session: config and run session over that library
- write_file: helper to create files with given bytes
"""

import json
import sys
from pathlib import Path

import pytest

# Add repo root to PYTHONPATH (once for all tests)
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from mediasort.session import RunSession  # noqa: E402
from mediasort.settings import MediaSortConfig  # noqa: E402
from mediasort.store import DedupStore  # noqa: E402


@pytest.fixture
def library(tmp_path):
    """
    Library layout.

    tmp_path/
        library/{videos,music,images,unknown}/
        db/store.json   ({} on disk)
        inbox/          (files to ingest)
    """
    roots = {}
    for name in ("videos", "music", "images", "unknown"):
        roots[name] = tmp_path / "library" / name
        roots[name].mkdir(parents=True)

    store_path = tmp_path / "db" / "store.json"
    store_path.parent.mkdir()
    store_path.write_text("{}", encoding="utf-8")

    inbox = tmp_path / "inbox"
    inbox.mkdir()

    return {"root": tmp_path / "library", "store": store_path, "inbox": inbox, **roots}


@pytest.fixture
def media_config(library):
    """Config over the library fixture."""
    return MediaSortConfig(
        store_path=library["store"],
        videos=library["videos"],
        music=library["music"],
        images=library["images"],
        unknown=library["unknown"],
        library_root=library["root"],
        workers=4,
    )


@pytest.fixture
def session(media_config):
    """Run session with an empty store."""
    return RunSession(media_config, DedupStore())


@pytest.fixture
def config_file(library, tmp_path):
    """cfg.json in the historical key layout."""
    path = tmp_path / "cfg.json"
    path.write_text(
        json.dumps(
            {
                "db": str(library["store"]),
                "videos": str(library["videos"]),
                "music": str(library["music"]),
                "images": str(library["images"]),
                "unknown": str(library["unknown"]),
                "root": str(library["root"]),
                "workers": 2,
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def write_file():
    """Create a file (and parents) with the given bytes."""

    def _write(path: Path, content: bytes) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return _write
