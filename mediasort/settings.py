"""
mediasort configuration.

Loads and validates the run configuration (store path + category roots).
JSON is the historical format (cfg.json); YAML files are accepted too.
"""

import json
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from config.exceptions import ConfigLoadError
from mediasort.models import Category

logger = structlog.get_logger(__name__)

DEFAULT_EXTENSIONS: Mapping[str, Category] = MappingProxyType(
    {
        ".jpg": Category.image,
        ".png": Category.image,
        ".flac": Category.audio,
        ".mp3": Category.audio,
        ".mov": Category.video,
        ".mp4": Category.video,
        ".webm": Category.video,
    }
)

YAML_SUFFIXES = {".yaml", ".yml"}


class MediaSortConfig(BaseModel):
    """
    mediasort run configuration.

    Attributes:
        store_path: Dedup store JSON file
        config_path: Where ingest mode writes the config back (optional)
        videos / music / images / unknown: Category destination roots
        library_root: Rebuild walk root (falls back to videos)
        workers: Worker ceiling (defaults to CPU count)
        chunk_size: Hash/copy block size in bytes
        snapshot_retention: Timestamped snapshots kept after a rebuild (0 = keep all)
        allow_missing_store: Treat a missing store file as empty
        extensions: Extension -> category table
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    store_path: Path = Field(..., alias="db", description="Dedup store file")
    config_path: Optional[Path] = Field(default=None, alias="cfg", description="Config write-back path")
    videos: Path = Field(..., description="Video destination root")
    music: Path = Field(..., description="Audio destination root")
    images: Path = Field(..., description="Image destination root")
    unknown: Path = Field(..., description="Unknown destination root")
    library_root: Optional[Path] = Field(default=None, alias="root", description="Rebuild walk root")
    workers: Optional[int] = Field(default=None, ge=1, description="Worker ceiling")
    chunk_size: int = Field(default=65536, ge=1, description="Hash/copy block size")
    snapshot_retention: int = Field(default=10, ge=0, description="Timestamped snapshots kept")
    allow_missing_store: bool = Field(default=False, description="Missing store = empty store")
    extensions: Dict[str, Category] = Field(
        default_factory=lambda: dict(DEFAULT_EXTENSIONS),
        description="Extension -> category",
    )

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: Dict[str, Category]) -> Dict[str, Category]:
        """Each extension must start with a dot. Case is kept as written."""
        for ext in v:
            if not ext.startswith("."):
                raise ValueError(f"Extension '{ext}' must start with '.'")
        return v

    @field_validator("store_path", "videos", "music", "images", "unknown")
    @classmethod
    def validate_path_not_empty(cls, v: Path) -> Path:
        """Paths cannot be empty."""
        if not str(v).strip() or str(v) == ".":
            raise ValueError("Path cannot be empty")
        return v

    def category_root(self, category: Category) -> Path:
        """Destination root for a category."""
        return {
            Category.image: self.images,
            Category.audio: self.music,
            Category.video: self.videos,
            Category.unknown: self.unknown,
        }[category]

    @property
    def rebuild_root(self) -> Path:
        """Root walked by a rebuild."""
        return self.library_root if self.library_root is not None else self.videos

    def category_table(self) -> Mapping[str, Category]:
        """Read-only extension table for this run."""
        return MappingProxyType(dict(self.extensions))


def _read_raw(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() in YAML_SUFFIXES:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict) and "mediasort" in raw:
                raw = raw["mediasort"]
            return raw
        return json.load(f)


def load_config(path: str | os.PathLike) -> MediaSortConfig:
    """
    Load and validate a config file.

    Args:
        path: JSON (or .yaml/.yml) config file

    Returns:
        Validated MediaSortConfig

    Raises:
        ConfigLoadError: If the file is missing, unparsable or invalid
    """
    config_file = Path(path)
    try:
        raw = _read_raw(config_file)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigLoadError(f"Cannot read config {config_file}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigLoadError(f"Invalid config {config_file}: expected a mapping at top level")

    try:
        cfg = MediaSortConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid config {config_file}: {e}") from e

    logger.info("config_loaded", path=str(config_file))
    return cfg


def save_config(cfg: MediaSortConfig, path: str | os.PathLike) -> bool:
    """
    Write the config back as JSON (aliased keys).

    Failures are logged, not raised.

    Returns:
        True if written
    """
    target = Path(path)
    try:
        payload = cfg.model_dump(mode="json", by_alias=True, exclude_none=True)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
            f.write("\n")
    except (OSError, ValueError) as e:
        logger.error("config_save_failed", path=str(target), error=str(e))
        return False

    logger.info("config_saved", path=str(target))
    return True
