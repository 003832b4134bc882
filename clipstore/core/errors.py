"""Exception hierarchy shared by the storage and action layers"""


class ClipStoreError(Exception):
    """Base class for all clipstore errors"""


class DatabaseConnectionError(ClipStoreError, ConnectionError):
    """The database could not be opened or created"""


class QueryError(ClipStoreError):
    """A statement failed or returned the wrong kind of result"""


class QueryTimeoutError(ClipStoreError, TimeoutError):
    """The driver did not produce a result within the polling budget"""


class StorageError(ClipStoreError):
    """An entry store operation failed"""


class NotFoundError(StorageError):
    """No entry exists with the requested id"""

    def __init__(self, entry_id: int):
        super().__init__(f"Clipboard entry {entry_id} not found")
        self.entry_id = entry_id
