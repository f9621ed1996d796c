"""
mediasort - Canonical exception hierarchy.

Source of truth for all mediasort exceptions.
"""


class MediaSortError(Exception):
    """Base exception mediasort."""


class ConfigLoadError(MediaSortError):
    """Config file missing, unreadable or invalid."""


class StoreError(MediaSortError):
    """Errors around the persisted dedup store."""


class StoreLoadError(StoreError):
    """Store file missing, unreadable or malformed."""


class StoreSaveError(StoreError):
    """Store or snapshot could not be written."""


class MoveError(MediaSortError):
    """A single file relocation failed."""

    def __init__(self, message: str, source=None, destination=None):
        super().__init__(message)
        self.source = source
        self.destination = destination


class SourceOpenError(MoveError):
    """Source could not be opened; source untouched."""


class DestinationOpenError(MoveError):
    """Destination could not be created; source untouched."""


class CopyError(MoveError):
    """Copy failed or copied bytes do not match; source untouched."""


class SourceRemovalError(MoveError):
    """Copy succeeded but the source could not be removed.

    The content now exists at both locations.
    """


class DestinationConflictError(MoveError):
    """Destination and its disambiguated name are both taken."""
