class LectioError(Exception):
    """Base class for lectio errors."""


class StoreError(LectioError):
    """A read or write against the persistent store failed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
