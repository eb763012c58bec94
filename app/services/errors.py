"""
Game service error classes.

Each error carries the HTTP status the API layer should answer with and a
message that is safe to show to the end user.
"""


class GameServiceError(Exception):
    """Base exception for game catalog and ingestion errors."""

    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class IngestionError(GameServiceError):
    """Base exception for rejected uploads."""


class NoFileProvided(IngestionError):
    default_message = "No file uploaded"


class FileTooLarge(IngestionError):
    default_message = "File size exceeds the upload limit"


class UnsupportedFileType(IngestionError):
    default_message = "Only .html and .zip files are allowed"


class InvalidTitle(IngestionError):
    default_message = "Title must contain at least one letter or digit"


class DuplicateTitle(IngestionError):
    status_code = 409
    default_message = "A game with this title already exists"


class MissingEntryFile(IngestionError):
    default_message = "ZIP must contain an index.html file"


class ProcessingFailed(IngestionError):
    default_message = "Failed to process uploaded file"


class InvalidArchive(Exception):
    """Raised when a ZIP archive is corrupt or unsafe to extract."""


class GameNotFound(GameServiceError):
    status_code = 404
    default_message = "Game not found"


class PermissionDenied(GameServiceError):
    status_code = 403
    default_message = "You can only modify your own games"
