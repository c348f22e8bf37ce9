class ShardError(Exception):
    """Base class for errors raised by the snippet core."""


class ParseError(ShardError, ValueError):
    def __init__(self, text: str, reason: str = "malformed color"):
        self.text = text
        self.reason = reason
        super().__init__(f"Invalid color format: {text!r} ({reason})")


class NotFoundError(ShardError, LookupError):
    def __init__(self, snippet_id: str):
        self.snippet_id = snippet_id
        super().__init__(f"Snippet not found: {snippet_id}")


class MigrationError(ShardError):
    def __init__(self, message: str, version: int | None = None):
        self.version = version
        super().__init__(message)


class StorageIOError(ShardError):
    pass


class ImportFormatError(ShardError, ValueError):
    pass
