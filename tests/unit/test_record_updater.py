from unittest.mock import MagicMock, patch

import pytest

from tratativas.documents.exceptions import (
    RecordStoreError,
    RecordUpdateError,
    TratativaNotFoundError,
)
from tratativas.documents.record_updater import RecordUpdater

URL = "https://storage.example.com/doc.pdf"


def _make_updater(max_attempts: int = 3) -> tuple[RecordUpdater, MagicMock, MagicMock]:
    repo = MagicMock()
    log = MagicMock()
    return RecordUpdater(repo, max_attempts, log), repo, log


class TestRecordUpdater:
    def test_updates_once_on_success(self) -> None:
        updater, repo, log = _make_updater()

        updater.update(42, URL)

        repo.update_document_url.assert_called_once_with(42, URL)
        log.error.assert_not_called()

    @patch("tratativas.documents.record_updater.time.sleep")
    def test_retries_transport_failures(self, mock_sleep: MagicMock) -> None:
        updater, repo, _log = _make_updater()
        record = MagicMock()
        repo.update_document_url.side_effect = [
            RecordStoreError("connection reset"),
            record,
        ]

        assert updater.update(42, URL) is record
        assert repo.update_document_url.call_count == 2
        mock_sleep.assert_called_once_with(1.0)

    @patch("tratativas.documents.record_updater.time.sleep")
    def test_gives_up_and_flags_reconciliation(self, mock_sleep: MagicMock) -> None:
        updater, repo, log = _make_updater(max_attempts=3)
        repo.update_document_url.side_effect = RecordStoreError("down")

        with pytest.raises(RecordUpdateError) as exc_info:
            updater.update(42, URL)

        assert exc_info.value.url == URL
        assert repo.update_document_url.call_count == 3
        assert mock_sleep.call_count == 2
        message = log.error.call_args.args[0]
        assert message.startswith("RECONCILIATION REQUIRED")
        assert log.error.call_args.kwargs["url"] == URL

    @patch("tratativas.documents.record_updater.time.sleep")
    def test_missing_row_is_not_retried(self, mock_sleep: MagicMock) -> None:
        updater, repo, log = _make_updater()
        repo.update_document_url.side_effect = TratativaNotFoundError("Tratativa 42 not found")

        with pytest.raises(RecordUpdateError, match="not found"):
            updater.update(42, URL)

        repo.update_document_url.assert_called_once()
        mock_sleep.assert_not_called()
        log.error.assert_called_once()
