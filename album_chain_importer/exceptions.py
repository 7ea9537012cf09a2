"""
Custom exceptions for the album chain importer.
"""


class MigrationError(Exception):
    """Base exception for import errors."""
    pass


class ConfigurationError(MigrationError):
    """Error related to configuration."""
    pass


class AlbumError(MigrationError):
    """Error related to album operations."""
    pass


class MissingChainState(AlbumError):
    """A chain state record required to place an item is absent."""
    def __init__(self, message: str, album_id: str = None):
        super().__init__(message)
        self.album_id = album_id


class RemoteCreationFailure(AlbumError):
    """The destination service failed to create an album."""
    def __init__(self, message: str, album_name: str = None, status_code: int = None):
        super().__init__(message)
        self.album_name = album_name
        self.status_code = status_code


class DownloadError(MigrationError):
    """Error while obtaining item content."""
    pass


class ContentFetchFailure(DownloadError):
    """Item content could not be read from staging or fetched remotely."""
    def __init__(self, message: str, locator: str = None):
        super().__init__(message)
        self.locator = locator


class UploadError(MigrationError):
    """Error during item upload."""
    pass


class UploadFailure(UploadError):
    """The destination service rejected or failed an item upload."""
    def __init__(self, message: str, destination_uri: str = None, status_code: int = None):
        super().__init__(message)
        self.destination_uri = destination_uri
        self.status_code = status_code


class InvariantViolation(AssertionError):
    """A programming fault. Never swallowed by the importer."""
    pass
