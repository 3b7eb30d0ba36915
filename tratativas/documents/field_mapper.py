import re

from tratativas.database.models import TratativaRecord
from tratativas.documents.models import MappedFieldSet
from tratativas.logging.logger import Log

MARKED = "X"
UNMARKED = " "

_RANK_PATTERN = re.compile(r"\s*(P[1-4])\b", re.IGNORECASE)
_WARNED_RANKS = frozenset({"P1", "P2"})
_SUSPENDED_RANKS = frozenset({"P3", "P4"})
_WARNED_STATUSES = frozenset({"advertido", "warned"})
_SUSPENDED_STATUSES = frozenset({"suspenso", "suspended"})


def severity_rank(*values: str) -> str | None:
    """Return the leading P1-P4 token of the first value that starts with one."""
    for value in values:
        match = _RANK_PATTERN.match(value or "")
        if match:
            return match.group(1).upper()
    return None


def outcome_markers(rank: str | None, status: str) -> tuple[bool, bool]:
    """Return (warned, suspended) for a severity rank or explicit status."""
    if rank in _WARNED_RANKS:
        return True, False
    if rank in _SUSPENDED_RANKS:
        return False, True
    normalized = status.strip().lower()
    if normalized in _WARNED_STATUSES:
        return True, False
    if normalized in _SUSPENDED_STATUSES:
        return False, True
    return False, False


def redact(fields: MappedFieldSet) -> MappedFieldSet:
    """Copy of ``fields`` safe to log."""
    return {**fields, "DOP_CPF": "REDACTED"} if "DOP_CPF" in fields else dict(fields)


class FieldMapper:
    """Builds the flat template field set for page 1 or page 2."""

    def __init__(self, log: Log) -> None:
        self._log = log

    def map(self, record: TratativaRecord, page: int) -> MappedFieldSet:
        if page not in (1, 2):
            raise ValueError(f"page must be 1 or 2, got {page}")
        rank = severity_rank(record.grau_penalidade, record.penalidade, record.codigo_infracao)
        fields: MappedFieldSet = {
            "DOP_NUMERO_DOCUMENTO": record.numero_tratativa,
            "DOP_NOME": record.funcionario,
            "DOP_FUNCAO": record.funcao,
            "DOP_SETOR": record.setor,
            "DOP_DESC_INFRACAO": record.descricao_infracao,
            "DOP_DATA_INFRACAO": record.data_infracao,
            "DOP_HORA_INFRACAO": record.hora_infracao,
            "DOP_VALOR_REGISTRADO": record.valor_praticado,
            "DOP_METRICA": record.medida,
            "DOP_VALOR_LIMITE": record.texto_limite,
            "DOP_DATA_EXTENSA": record.data_infracao_extensa,
            "DOP_COD_INFRACAO": record.codigo_infracao,
            "DOP_GRAU_PENALIDADE": rank or record.grau_penalidade,
            "DOP_PENALIDADE": record.penalidade,
            "DOP_DESC_PENALIDADE": record.texto_infracao,
            "DOP_IMAGEM": record.imagem_evidencia1,
            "DOP_LIDER": record.lider,
            "DOP_CPF": record.cpf,
        }
        if page == 2:
            warned, suspended = outcome_markers(rank, record.advertido)
            if not (warned or suspended):
                self._log.warning(
                    f"Tratativa {record.id}: penalty outcome undetermined, "
                    "no severity rank or status found",
                    tratativa_id=record.id,
                    penalidade=record.penalidade,
                    advertido=record.advertido,
                )
            fields["DOP_ADVERTIDO"] = MARKED if warned else UNMARKED
            fields["DOP_SUSPENSO"] = MARKED if suspended else UNMARKED
        return {key: "" if value is None else str(value) for key, value in fields.items()}
