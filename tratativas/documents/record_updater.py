import time

from tratativas.database.models import TratativaRecord
from tratativas.database.repositories.tratativa_repository import TratativaRepository
from tratativas.documents.exceptions import (
    RecordStoreError,
    RecordUpdateError,
    TratativaNotFoundError,
)
from tratativas.logging.logger import Log


class RecordUpdater:
    """Writes the published document URL back onto the tratativa.

    This is the one step that runs after an external side effect, so it alone
    is retried, and only for record-store transport failures.
    """

    def __init__(
        self,
        repo: TratativaRepository,
        max_attempts: int,
        log: Log,
        retry_delay_seconds: float = 1.0,
    ) -> None:
        self._repo = repo
        self._max_attempts = max(1, max_attempts)
        self._retry_delay_seconds = retry_delay_seconds
        self._log = log

    def update(self, tratativa_id: int, url: str) -> TratativaRecord:
        attempt = 1
        while True:
            try:
                record = self._repo.update_document_url(tratativa_id, url)
                break
            except TratativaNotFoundError as exc:
                self._reconciliation_required(tratativa_id, url, str(exc))
                raise RecordUpdateError(str(exc), url) from exc
            except RecordStoreError as exc:
                if attempt == self._max_attempts:
                    self._reconciliation_required(tratativa_id, url, str(exc))
                    raise RecordUpdateError(
                        f"Could not save document URL for tratativa {tratativa_id} "
                        f"after {attempt} attempts: {exc}",
                        url,
                    ) from exc
                self._log.warning(
                    f"Document URL update for tratativa {tratativa_id} failed "
                    f"(attempt {attempt}/{self._max_attempts}): {exc}"
                )
                time.sleep(self._retry_delay_seconds * attempt)
                attempt += 1
        self._log.info(f"Tratativa {tratativa_id} now references {url}")
        return record

    def _reconciliation_required(self, tratativa_id: int, url: str, reason: str) -> None:
        self._log.error(
            f"RECONCILIATION REQUIRED: document for tratativa {tratativa_id} "
            f"was published but the record was not updated: {reason}",
            reconciliation_required=True,
            tratativa_id=tratativa_id,
            url=url,
        )
