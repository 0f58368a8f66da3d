# homewatch/errors.py
from __future__ import annotations


class HomewatchError(Exception):
    """Base class for errors surfaced by the intelligence endpoints."""

    status_code = 500


class StoreQueryFailure(HomewatchError):
    """The event store rejected a range query or update."""


class AcknowledgmentCommitFailure(StoreQueryFailure):
    """Marking records as voice-acknowledged failed."""


class DirectoryUnreadable(HomewatchError):
    """A media folder could not be listed."""


class EmptyDirectory(HomewatchError):
    """A media folder has no files."""

    def __init__(self, message: str = "No files available"):
        super().__init__(message)


class FileReadFailure(HomewatchError):
    """A single media file could not be read."""


class InvalidLabel(HomewatchError):
    status_code = 400
