from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ObjectInfo:
    """An object listed from the store."""

    path: str
    created_at: datetime | None = None
    size_bytes: int | None = None


class BaseObjectStore(ABC):
    """Contract for durable object storage backends."""

    @abstractmethod
    def upload(self, path: str, content: bytes, content_type: str) -> str:
        """Store ``content`` at ``path`` without overwriting.

        Returns:
            The key the object was stored under.

        Raises:
            ObjectExistsError: if an object already exists at ``path``.
            StorageError: on any other failure.
        """

    @abstractmethod
    def signed_url(self, path: str, expires_in_seconds: int) -> str:
        """Return a URL that resolves to the object at ``path``."""

    @abstractmethod
    def list_objects(self, prefix: str) -> list[ObjectInfo]:
        """List all objects under ``prefix``, recursing into folders."""

    @abstractmethod
    def delete(self, paths: list[str]) -> None:
        """Delete the objects at ``paths``.

        Paths are normalised as in ``upload``. Missing objects are ignored.
        """
