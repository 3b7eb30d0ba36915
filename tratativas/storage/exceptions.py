class StorageError(Exception):
    """Raised when the object store rejects a request or cannot be reached."""


class ObjectExistsError(StorageError):
    """Raised when uploading to a path that already holds an object."""
