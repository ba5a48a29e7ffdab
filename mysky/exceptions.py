class MySkyError(Exception):
    """Base class for errors raised by MySky record operations."""


class NotAuthenticatedError(MySkyError):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class RecordNotFoundError(MySkyError):
    """Raised by update paths when the record to merge into does not exist."""


class InvalidRecordError(MySkyError):
    """Raised before a write when a field holds a value its lexicon does not allow."""
