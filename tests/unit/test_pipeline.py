from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pymupdf
import pytest

from tratativas.database.models import TratativaRecord
from tratativas.documents.cleanup import CleanupSweeper
from tratativas.documents.exceptions import (
    DocumentAlreadyPublishedError,
    FieldValidationError,
    PipelineBusyError,
    PipelineError,
    PublishError,
    RecordUpdateError,
    RenderError,
)
from tratativas.documents.field_mapper import FieldMapper
from tratativas.documents.locks import RecordLocks
from tratativas.documents.merger import PdfMerger
from tratativas.documents.models import PipelineStage
from tratativas.documents.pipeline import DocumentPipeline
from tratativas.documents.publisher import Publisher
from tratativas.documents.staging import LocalStaging
from tratativas.rendering.base import RenderTemplate
from tratativas.storage.base import BaseObjectStore, ObjectInfo
from tratativas.storage.exceptions import ObjectExistsError, StorageError

RecordFactory = Callable[..., TratativaRecord]
URL = "https://storage.example.com/documentos/1234/doc.pdf"


class _MemoryStore(BaseObjectStore):
    """No-overwrite store that can fail the next signing request."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.sign_failures = 0

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        if path in self.objects:
            raise ObjectExistsError(f"Object already exists: {path}")
        self.objects[path] = content
        return path

    def signed_url(self, path: str, expires_in_seconds: int) -> str:
        if self.sign_failures > 0:
            self.sign_failures -= 1
            raise StorageError("Storage sign failed with HTTP 503")
        return f"https://storage.example.com/{path}"

    def list_objects(self, prefix: str) -> list[ObjectInfo]:
        return [ObjectInfo(path=p) for p in self.objects if p.startswith(prefix)]

    def delete(self, paths: list[str]) -> None:
        for path in paths:
            self.objects.pop(path, None)


class _Harness:
    def __init__(
        self,
        temp_dir: Path,
        record: TratativaRecord,
        page1: bytes,
        page2: bytes,
        locks: RecordLocks | None = None,
        store: BaseObjectStore | None = None,
    ) -> None:
        self.temp_dir = temp_dir
        self.repo = MagicMock()
        self.repo.find_by_id.return_value = record
        self.renderer = MagicMock()
        self.renderer.render.side_effect = lambda template, fields: (
            page1 if template.page == 1 else page2
        )
        self.published: list[bytes] = []
        staging = LocalStaging(temp_dir, MagicMock())
        if store is None:
            self.publisher = MagicMock()
            self.publisher.publish.side_effect = self._publish
        else:
            self.publisher = Publisher(store, staging, 3600, MagicMock())
        self.updater = MagicMock()
        self.log = MagicMock()
        self.pipeline = DocumentPipeline(
            repo=self.repo,
            mapper=FieldMapper(MagicMock()),
            renderer=self.renderer,
            folha1=RenderTemplate(page=1, template_id="t1", api_key="k1"),
            folha2=RenderTemplate(page=2, template_id="t2", api_key="k2"),
            staging=staging,
            merger=PdfMerger(MagicMock()),
            publisher=self.publisher,
            updater=self.updater,
            sweeper=CleanupSweeper(temp_dir, MagicMock(), "temp", 3600, MagicMock()),
            log=self.log,
            locks=locks,
        )

    def _publish(self, merged, numero_tratativa: str) -> str:
        self.published.append(merged.path.read_bytes())
        return URL

    def leftover_files(self) -> list[Path]:
        if not self.temp_dir.exists():
            return []
        return list(self.temp_dir.iterdir())


@pytest.fixture()
def harness_factory(
    tmp_path: Path,
    make_record: RecordFactory,
    folha1_pdf_bytes: bytes,
    folha2_pdf_bytes: bytes,
) -> Callable[..., _Harness]:
    def factory(
        locks: RecordLocks | None = None,
        store: BaseObjectStore | None = None,
        **overrides: object,
    ) -> _Harness:
        return _Harness(
            tmp_path / "temp",
            make_record(**overrides),
            folha1_pdf_bytes,
            folha2_pdf_bytes,
            locks=locks,
            store=store,
        )

    return factory


class TestPipelineSuccess:
    def test_publishes_merged_document_and_updates_record(
        self, harness_factory: Callable[..., _Harness]
    ) -> None:
        h = harness_factory()

        result = h.pipeline.run(42)

        assert result.url == URL
        assert result.record_id == 42
        h.updater.update.assert_called_once_with(42, URL)
        numero = h.publisher.publish.call_args.args[1]
        assert numero == "1234"
        merged_name = h.publisher.publish.call_args.args[0].path.name
        assert merged_name == "1234 - JOÃO DA SILVA - LOGÍSTICA 04-04-2025.pdf"

    def test_merged_document_has_page1_then_page2(
        self, harness_factory: Callable[..., _Harness]
    ) -> None:
        h = harness_factory()

        h.pipeline.run(42)

        with pymupdf.open(stream=h.published[0], filetype="pdf") as doc:
            assert doc.page_count == 2
            assert "Folha 1 content" in doc[0].get_text()
            assert "Folha 2 content" in doc[1].get_text()

    def test_each_page_rendered_once_with_its_template(
        self, harness_factory: Callable[..., _Harness]
    ) -> None:
        h = harness_factory()

        h.pipeline.run(42)

        templates = [c.args[0].template_id for c in h.renderer.render.call_args_list]
        assert templates == ["t1", "t2"]
        page2_fields = h.renderer.render.call_args_list[1].args[1]
        assert page2_fields["DOP_ADVERTIDO"] == "X"
        assert page2_fields["DOP_SUSPENSO"] == " "

    def test_stages_complete_in_order(self, harness_factory: Callable[..., _Harness]) -> None:
        h = harness_factory()

        result = h.pipeline.run(42)

        assert result.completed_stages == (
            PipelineStage.LOADING,
            PipelineStage.VALIDATING_PAGE1,
            PipelineStage.RENDERING_PAGE1,
            PipelineStage.VALIDATING_PAGE2,
            PipelineStage.RENDERING_PAGE2,
            PipelineStage.STAGING,
            PipelineStage.MERGING,
            PipelineStage.PUBLISHING,
            PipelineStage.UPDATING_RECORD,
        )

    def test_temp_directory_is_empty_afterwards(
        self, harness_factory: Callable[..., _Harness]
    ) -> None:
        h = harness_factory()

        h.pipeline.run(42)

        assert h.leftover_files() == []


class TestPipelineValidation:
    def test_missing_page1_field_stops_before_rendering(
        self, harness_factory: Callable[..., _Harness]
    ) -> None:
        h = harness_factory(lider="")

        with pytest.raises(FieldValidationError) as exc_info:
            h.pipeline.run(42)

        assert exc_info.value.page == 1
        assert exc_info.value.missing_fields == ["DOP_LIDER"]
        assert exc_info.value.stage == "VALIDATING_PAGE1"
        h.renderer.render.assert_not_called()
        h.publisher.publish.assert_not_called()
        assert h.leftover_files() == []

    def test_undetermined_outcome_fails_page2(
        self, harness_factory: Callable[..., _Harness]
    ) -> None:
        h = harness_factory(
            grau_penalidade="", penalidade="Outro", codigo_infracao="X1", advertido=""
        )

        with pytest.raises(FieldValidationError) as exc_info:
            h.pipeline.run(42)

        assert exc_info.value.page == 2
        assert exc_info.value.missing_fields == ["DOP_ADVERTIDO", "DOP_SUSPENSO"]
        assert exc_info.value.stage == "VALIDATING_PAGE2"
        assert h.renderer.render.call_count == 1

    def test_already_published_is_refused(
        self, harness_factory: Callable[..., _Harness]
    ) -> None:
        h = harness_factory(document_url="https://existing")

        with pytest.raises(DocumentAlreadyPublishedError) as exc_info:
            h.pipeline.run(42)

        assert exc_info.value.stage == "LOADING"
        h.renderer.render.assert_not_called()


class TestPipelineFailures:
    def test_page2_render_failure_leaves_nothing_behind(
        self, harness_factory: Callable[..., _Harness], folha1_pdf_bytes: bytes
    ) -> None:
        h = harness_factory()

        def render(template: RenderTemplate, fields: dict) -> bytes:
            if template.page == 2:
                raise RenderError(2, "service", "Template not found")
            return folha1_pdf_bytes

        h.renderer.render.side_effect = render

        with pytest.raises(RenderError) as exc_info:
            h.pipeline.run(42)

        assert exc_info.value.stage == "RENDERING_PAGE2"
        assert h.renderer.render.call_count == 2
        h.publisher.publish.assert_not_called()
        h.updater.update.assert_not_called()
        assert h.leftover_files() == []

    def test_publish_collision_does_not_update_record(
        self, harness_factory: Callable[..., _Harness]
    ) -> None:
        h = harness_factory()
        h.publisher.publish.side_effect = PublishError(
            "A document already exists", "documentos/1234/x.pdf", collision=True
        )

        with pytest.raises(PublishError) as exc_info:
            h.pipeline.run(42)

        assert exc_info.value.stage == "PUBLISHING"
        assert exc_info.value.collision is True
        h.updater.update.assert_not_called()
        assert h.leftover_files() == []

    def test_record_update_failure_reports_stage(
        self, harness_factory: Callable[..., _Harness]
    ) -> None:
        h = harness_factory()
        h.updater.update.side_effect = RecordUpdateError("db down", URL)

        with pytest.raises(RecordUpdateError) as exc_info:
            h.pipeline.run(42)

        assert exc_info.value.stage == "UPDATING_RECORD"
        assert h.leftover_files() == []

    def test_unexpected_error_is_wrapped(self, harness_factory: Callable[..., _Harness]) -> None:
        h = harness_factory()
        h.publisher.publish.side_effect = KeyError("boom")

        with pytest.raises(PipelineError, match="Unexpected error") as exc_info:
            h.pipeline.run(42)

        assert exc_info.value.stage == "PUBLISHING"

    def test_failure_is_logged_with_stage(self, harness_factory: Callable[..., _Harness]) -> None:
        h = harness_factory(lider="")

        with pytest.raises(FieldValidationError):
            h.pipeline.run(42)

        assert h.log.error.call_args.kwargs["stage"] == "VALIDATING_PAGE1"


class TestPipelineConcurrency:
    def test_concurrent_run_for_same_record_is_refused(
        self, harness_factory: Callable[..., _Harness]
    ) -> None:
        locks = RecordLocks()
        locks.acquire(42)
        h = harness_factory(locks=locks)

        with pytest.raises(PipelineBusyError):
            h.pipeline.run(42)

        h.repo.find_by_id.assert_not_called()

    def test_lock_released_after_failure(self, harness_factory: Callable[..., _Harness]) -> None:
        locks = RecordLocks()
        h = harness_factory(locks=locks, lider="")

        with pytest.raises(FieldValidationError):
            h.pipeline.run(42)

        assert locks.acquire(42) is True


class TestPipelineRerun:
    def test_rerun_after_page2_render_failure_stores_one_document(
        self,
        harness_factory: Callable[..., _Harness],
        folha1_pdf_bytes: bytes,
        folha2_pdf_bytes: bytes,
    ) -> None:
        store = _MemoryStore()
        h = harness_factory(store=store)
        failures = [RenderError(2, "service", "Renderer overloaded")]

        def render(template: RenderTemplate, fields: dict) -> bytes:
            if template.page == 2 and failures:
                raise failures.pop()
            return folha1_pdf_bytes if template.page == 1 else folha2_pdf_bytes

        h.renderer.render.side_effect = render

        with pytest.raises(RenderError) as exc_info:
            h.pipeline.run(42)
        assert exc_info.value.stage == "RENDERING_PAGE2"
        assert store.objects == {}

        result = h.pipeline.run(42)

        assert list(store.objects) == [
            "documentos/1234/1234 - JOÃO DA SILVA - LOGÍSTICA 04-04-2025.pdf"
        ]
        h.updater.update.assert_called_once_with(42, result.url)
        assert h.leftover_files() == []

    def test_rerun_after_signing_failure_stores_one_document(
        self, harness_factory: Callable[..., _Harness]
    ) -> None:
        store = _MemoryStore()
        store.sign_failures = 1
        h = harness_factory(store=store)

        with pytest.raises(PublishError) as exc_info:
            h.pipeline.run(42)
        assert exc_info.value.stage == "PUBLISHING"
        assert exc_info.value.collision is False
        assert store.objects == {}
        h.updater.update.assert_not_called()

        result = h.pipeline.run(42)

        assert len(store.objects) == 1
        assert result.url.startswith("https://storage.example.com/documentos/1234/")
        h.updater.update.assert_called_once_with(42, result.url)
        assert h.leftover_files() == []
