from dataclasses import dataclass
from pathlib import Path

from tratativas.config.settings import Settings
from tratativas.database.connection import Database
from tratativas.database.repositories.tratativa_repository import TratativaRepository
from tratativas.documents.cleanup import CleanupSweeper
from tratativas.documents.field_mapper import FieldMapper
from tratativas.documents.intake import TratativaIntake
from tratativas.documents.merger import PdfMerger
from tratativas.documents.pipeline import DocumentPipeline
from tratativas.documents.publisher import Publisher
from tratativas.documents.record_updater import RecordUpdater
from tratativas.documents.staging import LocalStaging
from tratativas.logging.logger import Log
from tratativas.rendering.base import RenderTemplate
from tratativas.rendering.doppio_client import DoppioRenderClient
from tratativas.storage.supabase_store import SupabaseObjectStore
from tratativas.worker.scheduler import CleanupScheduler


@dataclass
class Services:
    """Long-lived collaborators shared by the API and the scheduler."""

    db: Database
    repo: TratativaRepository
    intake: TratativaIntake
    pipeline: DocumentPipeline
    scheduler: CleanupScheduler
    renderer: DoppioRenderClient | None = None
    store: SupabaseObjectStore | None = None

    def close(self) -> None:
        self.scheduler.stop()
        self.db.close()
        if self.renderer is not None:
            self.renderer.close()
        if self.store is not None:
            self.store.close()


def build_services(settings: Settings, log: Log) -> Services:
    """Build the pipeline and its adapters from settings."""
    temp_dir = Path(settings.temp_dir)
    db = Database(settings)
    repo = TratativaRepository(db)
    store = SupabaseObjectStore(
        base_url=settings.supabase_url,
        api_key=settings.supabase_key,
        bucket=settings.storage_bucket,
        timeout_seconds=settings.storage_timeout_seconds,
        log=log.child("storage"),
    )
    renderer = DoppioRenderClient(
        api_url=settings.doppio_api_url,
        timeout_seconds=settings.render_timeout_seconds,
        log=log.child("render"),
    )
    staging = LocalStaging(temp_dir, log.child("staging"))
    sweeper = CleanupSweeper(
        temp_dir=temp_dir,
        store=store,
        remote_prefix=settings.remote_temp_prefix,
        min_age_seconds=settings.cleanup_min_age_seconds,
        log=log.child("cleanup"),
    )
    pipeline = DocumentPipeline(
        repo=repo,
        mapper=FieldMapper(log.child("mapper")),
        renderer=renderer,
        folha1=RenderTemplate(
            page=1,
            template_id=settings.doppio_template_id_folha1,
            api_key=settings.doppio_api_key_folha1,
        ),
        folha2=RenderTemplate(
            page=2,
            template_id=settings.doppio_template_id_folha2,
            api_key=settings.doppio_api_key_folha2,
        ),
        staging=staging,
        merger=PdfMerger(log.child("merge")),
        publisher=Publisher(
            store, staging, settings.signed_url_expires_seconds, log.child("publish")
        ),
        updater=RecordUpdater(repo, settings.record_update_attempts, log.child("update")),
        sweeper=sweeper,
        log=log.child("pipeline"),
    )
    return Services(
        db=db,
        repo=repo,
        intake=TratativaIntake(repo, log.child("intake")),
        pipeline=pipeline,
        scheduler=CleanupScheduler(
            sweeper, settings.cleanup_interval_seconds, log.child("scheduler")
        ),
        renderer=renderer,
        store=store,
    )
