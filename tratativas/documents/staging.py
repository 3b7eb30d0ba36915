from pathlib import Path

from tratativas.database.models import TratativaRecord
from tratativas.documents.exceptions import StagingError
from tratativas.documents.models import StagedFile
from tratativas.logging.logger import Log

FOLHA1_SUFFIX = "_FOLHA1"
FOLHA2_SUFFIX = "_FOLHA2"


def path_segment(value: str) -> str:
    """Make ``value`` safe as a single path component."""
    return value.replace("/", "-")


def document_filename(record: TratativaRecord, suffix: str = "") -> str:
    """Build '<numero> - <NOME> - <SETOR> <DD-MM-YYYY><suffix>.pdf'."""
    numero = path_segment(record.numero_tratativa)
    name = path_segment(record.funcionario.upper())
    department = path_segment(record.setor.upper())
    day = path_segment(record.data_infracao)
    return f"{numero} - {name} - {department} {day}{suffix}.pdf"


class LocalStaging:
    """Holds rendered and merged documents in the local temp directory."""

    def __init__(self, temp_dir: Path, log: Log) -> None:
        self._temp_dir = temp_dir
        self._log = log

    @property
    def temp_dir(self) -> Path:
        return self._temp_dir

    def ensure_dir(self) -> Path:
        """Create the temp directory if missing. Idempotent."""
        try:
            self._temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StagingError(
                f"Cannot create temp directory {self._temp_dir}: {exc}"
            ) from exc
        return self._temp_dir.resolve()

    def path_for(self, filename: str) -> Path:
        return self.ensure_dir() / filename

    def write(self, content: bytes, filename: str) -> StagedFile:
        """Write ``content`` under ``filename`` and return its absolute path.

        Raises:
            StagingError: if the directory or file cannot be written.
        """
        path = self.path_for(filename)
        try:
            path.write_bytes(content)
        except OSError as exc:
            raise StagingError(f"Cannot write staged file {path}: {exc}") from exc
        self._log.info(f"Staged {len(content)} bytes at {path}", size=len(content))
        return StagedFile(path=path, size_bytes=len(content))

    def read(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StagingError(f"Cannot read staged file {path}: {exc}") from exc
