"""Exception types for beeper-reader.

Every error raised by the store or config layers derives from
BeeperReaderError so the CLI can report them uniformly.
"""


class BeeperReaderError(Exception):
    """Base exception for all beeper-reader errors."""

    pass


class InvalidArgumentError(BeeperReaderError):
    """Raised when a required filter is missing (e.g. blank search query)."""

    pass


class NotFoundError(BeeperReaderError):
    """Raised when a single-entity lookup matches no row.

    Attributes:
        entity_id: The ID that was looked up
    """

    def __init__(self, message: str, entity_id: str | None = None):
        super().__init__(message)
        self.entity_id = entity_id


class DatabaseNotFoundError(BeeperReaderError):
    """Raised when no index.db could be located.

    Attributes:
        tried: Every candidate path that was checked, in order
    """

    def __init__(self, message: str, tried: list[str] | None = None):
        super().__init__(message)
        self.tried = tried or []


class StorageUnavailableError(BeeperReaderError):
    """Raised when the database cannot be opened or pinged."""

    pass


class IndexUnavailableError(BeeperReaderError):
    """Raised when the FTS5 module or the FTS table is missing.

    Never escapes the store: search recovers by switching to a LIKE scan.
    """

    pass


class StorageQueryError(BeeperReaderError):
    """Raised when a query fails for any reason other than a missing index."""

    pass


class NameLookupError(StorageQueryError):
    """Raised when a bridge database cannot be queried.

    Attributes:
        path: The bridge database that failed
    """

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path
