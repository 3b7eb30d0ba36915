from tratativas.documents.exceptions import PublishError
from tratativas.documents.models import StagedFile
from tratativas.documents.staging import LocalStaging, path_segment
from tratativas.logging.logger import Log
from tratativas.storage.base import BaseObjectStore
from tratativas.storage.exceptions import ObjectExistsError, StorageError

PDF_CONTENT_TYPE = "application/pdf"


def remote_document_path(numero_tratativa: str, filename: str) -> str:
    return f"documentos/{path_segment(numero_tratativa)}/{filename}"


class Publisher:
    """Uploads the merged document once and resolves its URL.

    A publish that fails after the upload may have reached storage removes
    the object again, so the next run for the record does not collide.
    """

    def __init__(
        self,
        store: BaseObjectStore,
        staging: LocalStaging,
        url_expires_seconds: int,
        log: Log,
    ) -> None:
        self._store = store
        self._staging = staging
        self._url_expires_seconds = url_expires_seconds
        self._log = log

    def publish(self, merged: StagedFile, numero_tratativa: str) -> str:
        """Upload ``merged`` under documentos/<numero>/ and return its URL.

        Raises:
            StagingError: if the merged file cannot be read.
            PublishError: on a path collision or any storage failure.
        """
        path = remote_document_path(numero_tratativa, merged.path.name)
        content = self._staging.read(merged.path)
        try:
            key = self._store.upload(path, content, PDF_CONTENT_TYPE)
        except ObjectExistsError as exc:
            raise PublishError(
                f"A document already exists at {path}", path, collision=True
            ) from exc
        except StorageError as exc:
            # The request may have been stored before the response was lost.
            self._discard(path)
            raise PublishError(f"Upload failed for {path}: {exc}", path) from exc
        try:
            url = self._store.signed_url(key, self._url_expires_seconds)
        except StorageError as exc:
            self._discard(key)
            raise PublishError(f"Could not resolve URL for {key}: {exc}", key) from exc
        self._log.info(f"Published {len(content)} bytes to {key}", url=url)
        return url

    def _discard(self, path: str) -> None:
        try:
            self._store.delete([path])
        except StorageError as exc:
            self._log.error(
                f"Could not remove unpublished object {path}, the next run for "
                f"this tratativa will collide until it is deleted: {exc}",
                object_path=path,
            )
            return
        self._log.warning(f"Removed unpublished object {path}")
