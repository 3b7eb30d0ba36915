from pathlib import Path


class PipelineError(Exception):
    """Base exception for all document pipeline errors.

    ``stage`` is filled in by the pipeline with the stage that failed.
    """

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage


class TratativaNotFoundError(PipelineError):
    """Raised when a tratativa id matches no row."""


class RecordStoreError(PipelineError):
    """Raised when the record store cannot be reached or rejects a query."""


class DocumentAlreadyPublishedError(PipelineError):
    """Raised when the tratativa already references a published document."""


class PipelineBusyError(PipelineError):
    """Raised when another run for the same tratativa is in flight."""


class FieldValidationError(PipelineError):
    """Raised when required template fields are missing or empty."""

    def __init__(self, page: int | None, missing_fields: list[str]) -> None:
        where = f"page {page}" if page is not None else "tratativa"
        super().__init__(
            f"Missing required fields for {where}: {', '.join(missing_fields)}"
        )
        self.page = page
        self.missing_fields = missing_fields


class RenderError(PipelineError):
    """Raised when the template renderer fails to produce a page.

    ``kind`` is one of ``transport``, ``service`` or ``empty``.
    """

    def __init__(self, page: int, kind: str, cause: str) -> None:
        super().__init__(f"Render failed for page {page}: {cause}")
        self.page = page
        self.kind = kind
        self.cause = cause


class StagingError(PipelineError):
    """Raised when a file cannot be written to or read from the temp directory."""


class MergeError(PipelineError):
    """Raised when staged pages cannot be merged into one document."""

    def __init__(self, message: str, files: list[Path]) -> None:
        super().__init__(message)
        self.files = files


class PublishError(PipelineError):
    """Raised when the merged document cannot be uploaded or signed."""

    def __init__(self, message: str, path: str, collision: bool = False) -> None:
        super().__init__(message)
        self.path = path
        self.collision = collision


class RecordUpdateError(PipelineError):
    """Raised when the published URL could not be written to the tratativa.

    The document exists in storage at ``url`` but nothing references it.
    """

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url
