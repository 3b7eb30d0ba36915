from pathlib import Path

from tratativas.database.models import TratativaRecord
from tratativas.database.repositories.tratativa_repository import TratativaRepository
from tratativas.documents.cleanup import CleanupSweeper
from tratativas.documents.exceptions import (
    DocumentAlreadyPublishedError,
    FieldValidationError,
    PipelineBusyError,
    PipelineError,
)
from tratativas.documents.field_mapper import MARKED, FieldMapper
from tratativas.documents.field_validator import (
    REQUIRED_FOLHA1,
    REQUIRED_FOLHA2,
    missing_fields,
)
from tratativas.documents.locks import RecordLocks
from tratativas.documents.merger import PdfMerger
from tratativas.documents.models import (
    MappedFieldSet,
    PipelineResult,
    PipelineRun,
    PipelineStage,
)
from tratativas.documents.publisher import Publisher
from tratativas.documents.record_updater import RecordUpdater
from tratativas.documents.staging import (
    FOLHA1_SUFFIX,
    FOLHA2_SUFFIX,
    LocalStaging,
    document_filename,
)
from tratativas.logging.logger import Log
from tratativas.rendering.base import BaseRenderClient, RenderTemplate

_MARKER_KEYS = ["DOP_ADVERTIDO", "DOP_SUSPENSO"]


class DocumentPipeline:
    """Generates, merges and publishes the two-page tratativa document.

    Stages run strictly in order; the first failure aborts the run. Files
    staged during the run are removed whatever the outcome.
    """

    def __init__(
        self,
        *,
        repo: TratativaRepository,
        mapper: FieldMapper,
        renderer: BaseRenderClient,
        folha1: RenderTemplate,
        folha2: RenderTemplate,
        staging: LocalStaging,
        merger: PdfMerger,
        publisher: Publisher,
        updater: RecordUpdater,
        sweeper: CleanupSweeper,
        log: Log,
        locks: RecordLocks | None = None,
    ) -> None:
        self._repo = repo
        self._mapper = mapper
        self._renderer = renderer
        self._folha1 = folha1
        self._folha2 = folha2
        self._staging = staging
        self._merger = merger
        self._publisher = publisher
        self._updater = updater
        self._sweeper = sweeper
        self._log = log
        self._locks = locks or RecordLocks()

    def run(self, tratativa_id: int) -> PipelineResult:
        """Run the pipeline for one tratativa and return the published URL.

        Raises:
            PipelineError: with ``stage`` set to the stage that failed.
        """
        if not self._locks.acquire(tratativa_id):
            raise PipelineBusyError(
                f"A document is already being generated for tratativa {tratativa_id}",
                stage=PipelineStage.LOADING.value,
            )
        run = PipelineRun(record_id=tratativa_id)
        self._log.info(f"Starting document pipeline for tratativa {tratativa_id}")
        try:
            result = self._execute(run)
        except PipelineError as exc:
            self._fail(run, exc)
            raise
        except Exception as exc:
            error = PipelineError(f"Unexpected error: {exc}")
            self._fail(run, error)
            raise error from exc
        finally:
            self._cleanup(run)
            self._locks.release(tratativa_id)
        run.enter(PipelineStage.SUCCEEDED)
        self._log.info(f"Tratativa {tratativa_id} document published: {result.url}")
        return result

    def _execute(self, run: PipelineRun) -> PipelineResult:
        record = self._repo.find_by_id(run.record_id)
        if record.document_url:
            raise DocumentAlreadyPublishedError(
                f"Tratativa {record.id} already has a document: {record.document_url}"
            )

        run.enter(PipelineStage.VALIDATING_PAGE1)
        fields1 = self._prepare(record, 1)
        run.enter(PipelineStage.RENDERING_PAGE1)
        page1 = self._renderer.render(self._folha1, fields1)

        run.enter(PipelineStage.VALIDATING_PAGE2)
        fields2 = self._prepare(record, 2)
        run.enter(PipelineStage.RENDERING_PAGE2)
        page2 = self._renderer.render(self._folha2, fields2)

        run.enter(PipelineStage.STAGING)
        self._staging.ensure_dir()
        for content, suffix in ((page1, FOLHA1_SUFFIX), (page2, FOLHA2_SUFFIX)):
            run.staged_files.append(
                self._staging.write(content, document_filename(record, suffix))
            )

        run.enter(PipelineStage.MERGING)
        run.output_path = self._staging.path_for(document_filename(record))
        merged = self._merger.merge([f.path for f in run.staged_files], run.output_path)
        run.staged_files.append(merged)

        run.enter(PipelineStage.PUBLISHING)
        url = self._publisher.publish(merged, record.numero_tratativa)

        run.enter(PipelineStage.UPDATING_RECORD)
        self._updater.update(record.id, url)

        run.enter(PipelineStage.CLEANING_UP)
        return PipelineResult(
            record_id=record.id,
            url=url,
            completed_stages=tuple(run.completed_stages),
        )

    def _prepare(self, record: TratativaRecord, page: int) -> MappedFieldSet:
        fields = self._mapper.map(record, page)
        required = REQUIRED_FOLHA1 if page == 1 else REQUIRED_FOLHA2
        missing = missing_fields(fields, required)
        if page == 2 and MARKED not in (fields["DOP_ADVERTIDO"], fields["DOP_SUSPENSO"]):
            missing.extend(_MARKER_KEYS)
        if missing:
            raise FieldValidationError(page, missing)
        return fields

    def _fail(self, run: PipelineRun, exc: PipelineError) -> None:
        if exc.stage is None:
            exc.stage = run.stage.value
        run.stage = PipelineStage.FAILED
        self._log.error(
            f"Document pipeline for tratativa {run.record_id} failed at "
            f"{exc.stage}: {exc.message}",
            tratativa_id=run.record_id,
            stage=exc.stage,
            completed_stages=[s.value for s in run.completed_stages],
        )

    def _cleanup(self, run: PipelineRun) -> None:
        paths: list[Path] = [f.path for f in run.staged_files]
        if run.output_path is not None and run.output_path not in paths:
            paths.append(run.output_path)
        self._sweeper.cleanup_run(paths)
