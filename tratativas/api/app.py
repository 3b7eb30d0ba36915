"""HTTP surface for tratativa intake, listing and document generation."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from tratativas.bootstrap import Services
from tratativas.config.settings import Settings
from tratativas.database.models import TratativaRecord
from tratativas.documents.exceptions import (
    DocumentAlreadyPublishedError,
    FieldValidationError,
    PipelineBusyError,
    PipelineError,
    PublishError,
    RecordStoreError,
    RenderError,
    TratativaNotFoundError,
)
from tratativas.logging.logger import Log

_ERROR_STATUS: dict[type[PipelineError], int] = {
    FieldValidationError: 400,
    TratativaNotFoundError: 404,
    DocumentAlreadyPublishedError: 409,
    PipelineBusyError: 409,
    RenderError: 502,
    PublishError: 502,
    RecordStoreError: 502,
}


class PdfTaskRequest(BaseModel):
    id: int


class TratativaForm(BaseModel):
    numero_documento: str | None = None
    nome: str | None = None
    funcao: str | None = None
    setor: str | None = None
    cpf: str | None = None
    data_infracao: str | None = None
    hora_infracao: str | None = None
    codigo_infracao: str | None = None
    descricao_infracao: str | None = None
    tipo_penalidade: str | None = None
    descricao_penalidade: str | None = None
    lider: str | None = None
    valor_registrado: str | None = None
    valor_limite: str | None = None
    metrica: str | None = None
    url_imagem: str | None = None
    advertido: str | None = None


def error_response(exc: PipelineError) -> JSONResponse:
    """Map a pipeline error to its HTTP status and a stack-trace-free body."""
    status_code = next(
        (code for cls, code in _ERROR_STATUS.items() if isinstance(exc, cls)), 500
    )
    body: dict[str, Any] = {"status": "error", "message": exc.message}
    if exc.stage is not None:
        body["stage"] = exc.stage
    if isinstance(exc, FieldValidationError):
        body["missing_fields"] = exc.missing_fields
    return JSONResponse(status_code=status_code, content=body)


def _serialize(record: TratativaRecord) -> dict[str, Any]:
    data = asdict(record)
    data["created_at"] = record.created_at.isoformat() if record.created_at else None
    return data


def _services(request: Request) -> Services:
    return request.app.state.services


router = APIRouter(prefix="/api/tratativa")


@router.get("/test-connection")
def test_connection() -> dict[str, str]:
    return {"status": "success", "message": "API is running"}


@router.get("/list")
def list_tratativas(request: Request) -> dict[str, Any]:
    records = _services(request).repo.list_all()
    return {"status": "success", "data": [_serialize(r) for r in records]}


@router.get("/list-without-pdf")
def list_tratativas_without_pdf(request: Request) -> dict[str, Any]:
    records = _services(request).repo.list_without_document()
    return {"status": "success", "data": [_serialize(r) for r in records]}


@router.post("/create")
def create_tratativa(form: TratativaForm, request: Request) -> dict[str, Any]:
    record = _services(request).intake.create(form.model_dump())
    return {
        "status": "success",
        "message": "Tratativa created",
        "id": record.id,
        "numero_tratativa": record.numero_tratativa,
    }


@router.post("/pdftasks")
def run_pdf_task(task: PdfTaskRequest, request: Request) -> dict[str, Any]:
    result = _services(request).pipeline.run(task.id)
    return {
        "status": "success",
        "message": "PDF document generated and saved",
        "id": result.record_id,
        "url": result.url,
    }


def create_app(settings: Settings, services: Services, log: Log) -> FastAPI:
    """Build the FastAPI application around already-built services."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        services.db.open()
        services.scheduler.start()
        log.info(f"Application started ({settings.app_env})")
        try:
            yield
        finally:
            services.close()
            log.info("Application stopped")

    app = FastAPI(title="Tratativas", version="1.0.0", lifespan=lifespan)
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PipelineError)
    async def handle_pipeline_error(request: Request, exc: PipelineError) -> JSONResponse:
        log.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return error_response(exc)

    app.include_router(router)
    return app
