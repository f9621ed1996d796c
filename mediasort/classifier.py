"""
Extension -> category classification.

Matching is exact and case-sensitive: ".JPG" is not ".jpg" and lands in
Category.unknown.
"""

from pathlib import Path
from typing import Mapping, Optional

import structlog

from mediasort.models import Category
from mediasort.settings import DEFAULT_EXTENSIONS

logger = structlog.get_logger(__name__)


class ExtensionClassifier:
    """
    Maps a file extension to its destination category.

    Attributes:
        table: Read-only extension -> category table
    """

    def __init__(self, table: Optional[Mapping[str, Category]] = None):
        self.table: Mapping[str, Category] = table if table is not None else DEFAULT_EXTENSIONS

    def classify(self, path: Path) -> Category:
        """
        Category for a file path, from its last suffix.

        Unknown extensions log a warning naming the extension and the path.
        """
        ext = Path(path).suffix
        category = self.table.get(ext)
        if category is None:
            logger.warning("unknown_extension", extension=ext, file_path=str(path))
            return Category.unknown
        return category
