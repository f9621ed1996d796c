"""
Hash-indexed dedup store.

The store maps content hash -> canonical path. It is loaded once at startup,
mutated only by the single aggregator of a run, and written back wholesale.

Persisted format: exactly one JSON object {hash: path}. Anything after the
first JSON value is rejected as malformed.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterator, Mapping, Optional

import structlog

from config.exceptions import StoreLoadError, StoreSaveError

logger = structlog.get_logger(__name__)


class DedupStore:
    """
    In-memory mapping content hash -> canonical path.

    At most one canonical path is recorded per hash. Not thread-safe: only the
    aggregator task of a run may mutate it.
    """

    def __init__(self, entries: Optional[Mapping[str, str]] = None):
        self._entries: dict[str, str] = dict(entries or {})

    def __contains__(self, content_hash: object) -> bool:
        return content_hash in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def get(self, content_hash: str) -> Optional[str]:
        return self._entries.get(content_hash)

    def register(self, content_hash: str, path: str | os.PathLike) -> None:
        """
        Record the canonical path for a hash.

        Raises:
            KeyError: If the hash already has a canonical path
        """
        if content_hash in self._entries:
            raise KeyError(f"Hash already registered: {content_hash}")
        self._entries[content_hash] = str(path)

    def replace_all(self, entries: Mapping[str, str]) -> None:
        """Swap the whole content (used by a rebuild)."""
        self._entries = dict(entries)

    def snapshot(self) -> dict[str, str]:
        """Copy of the current mapping."""
        return dict(self._entries)

    @classmethod
    def load(cls, path: str | os.PathLike, allow_missing: bool = False) -> "DedupStore":
        """
        Load a store file.

        Args:
            path: Store JSON file
            allow_missing: Return an empty store if the file does not exist

        Raises:
            StoreLoadError: Missing (unless allowed), unreadable or malformed file
        """
        store_file = Path(path)
        if allow_missing and not store_file.exists():
            logger.warning("store_missing_starting_empty", path=str(store_file))
            return cls()

        try:
            text = store_file.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreLoadError(f"Cannot read store {store_file}: {e}") from e

        entries = decode_store(text, source=str(store_file))
        logger.info("store_loaded", path=str(store_file), entries=len(entries))
        return cls(entries)

    def save(self, path: str | os.PathLike) -> None:
        """
        Persist the store atomically (temp file + replace).

        Raises:
            StoreSaveError: If the file cannot be written
        """
        write_mapping(path, self._entries)
        logger.info("store_saved", path=str(path), entries=len(self._entries))


def decode_store(text: str, source: str = "<string>") -> dict[str, str]:
    """
    Decode a persisted store.

    Empty or whitespace-only content is an empty store. Otherwise the text must
    hold exactly one JSON object whose keys and values are strings.

    Raises:
        StoreLoadError: On any other shape
    """
    if not text.strip():
        return {}

    decoder = json.JSONDecoder()
    stripped = text.lstrip()
    try:
        value, end = decoder.raw_decode(stripped)
    except json.JSONDecodeError as e:
        raise StoreLoadError(f"Malformed store {source}: {e}") from e

    if stripped[end:].strip():
        raise StoreLoadError(
            f"Malformed store {source}: trailing data after the first JSON value "
            f"(offset {end})"
        )

    if not isinstance(value, dict):
        raise StoreLoadError(
            f"Malformed store {source}: expected a JSON object, got {type(value).__name__}"
        )

    for key, path in value.items():
        if not isinstance(path, str):
            raise StoreLoadError(
                f"Malformed store {source}: path for {key} is {type(path).__name__}, expected string"
            )

    return value


def write_mapping(path: str | os.PathLike, mapping: Mapping[str, str]) -> None:
    """
    Write a hash -> path mapping as one JSON object (temp file + os.replace).

    Raises:
        StoreSaveError: If any step fails; the temp file is removed
    """
    target = Path(path)
    tmp = target.with_name(target.name + ".tmp")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(dict(mapping), f, sort_keys=True)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, target)
    except (OSError, ValueError) as e:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                logger.warning("store_tmp_cleanup_failed", path=str(tmp))
        raise StoreSaveError(f"Cannot write {target}: {e}") from e
