"""
Run session: the config and the dedup store of one process run.

Built once at startup and handed to the ingestion driver or the reconciler.
Ingest runs write the store back exactly once, at the end.
"""

import os
from typing import Optional

import structlog

from config.exceptions import StoreSaveError
from mediasort.settings import MediaSortConfig, load_config, save_config
from mediasort.store import DedupStore

logger = structlog.get_logger(__name__)


class RunSession:
    """
    Attributes:
        config: Run configuration
        store: Dedup store, owned by the active aggregator
    """

    def __init__(self, config: MediaSortConfig, store: Optional[DedupStore] = None):
        self.config = config
        self.store = store if store is not None else DedupStore()
        self._persisted = False

    @classmethod
    def open(cls, config_path: str | os.PathLike) -> "RunSession":
        """
        Load config then store.

        Raises:
            ConfigLoadError: Config missing or invalid
            StoreLoadError: Store missing (unless allowed) or malformed
        """
        config = load_config(config_path)
        store = DedupStore.load(config.store_path, allow_missing=config.allow_missing_store)
        return cls(config, store)

    def persist(self) -> bool:
        """
        Write the store (and the config, if config_path is set) once.

        Save failures are logged; the run still completes.

        Returns:
            True if the store was written
        """
        if self._persisted:
            logger.warning("session_already_persisted", store_path=str(self.config.store_path))
            return False
        self._persisted = True

        if self.config.config_path is not None:
            save_config(self.config, self.config.config_path)

        try:
            self.store.save(self.config.store_path)
        except StoreSaveError as e:
            logger.error("store_save_failed", path=str(self.config.store_path), error=str(e))
            return False
        return True
